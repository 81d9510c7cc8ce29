# segvis - palette.py
# Class Color Table
# (C) 2025 MUSE Corp. All rights reserved.

"""
Class color table (RGBA per class id) used by the overlay/mask kernels.

This module contains:
- ClassPalette: colors + labels, file loading and default alpha policy
- generate_colors: deterministic palette for tables without a colors file
"""

import os

import numpy as np

from segvis.utils.logger import get_logger

logger = get_logger("segvis.palette")

try:
    import cupy as cp
    HAS_CUDA = True
except ImportError:
    HAS_CUDA = False


def generate_colors(num_classes):
    """
    VOC 스타일 비트 인터리빙 팔레트. 클래스 0은 검정.
    Returns (num_classes, 3) uint8.
    """
    ids = np.arange(num_classes, dtype=np.int64)
    colors = np.zeros((num_classes, 3), dtype=np.int64)
    cid = ids.copy()
    for shift in range(7, -1, -1):
        for ch in range(3):
            colors[:, ch] |= ((cid >> ch) & 1) << shift
        cid >>= 3
    return colors.astype(np.uint8)


class ClassPalette:
    """
    RGBA color per class id, values in [0, 255].

    Alpha is the blend strength used in overlay mode. Classes whose alpha
    came from a colors file are "explicit" and keep it when a default
    overlay alpha is applied.
    """

    def __init__(self, colors, labels=None, explicit_alpha=None):
        colors = np.asarray(colors, dtype=np.float32)
        if colors.ndim != 2 or colors.shape[1] not in (3, 4) or colors.shape[0] == 0:
            raise ValueError(f"class colors must be (N, 3) or (N, 4), got {colors.shape}")

        if colors.shape[1] == 3:
            alpha = np.full((colors.shape[0], 1), 255.0, dtype=np.float32)
            colors = np.concatenate([colors, alpha], axis=1)
            if explicit_alpha is None:
                explicit_alpha = np.zeros(colors.shape[0], dtype=bool)

        self.colors = np.ascontiguousarray(colors, dtype=np.float32)
        if explicit_alpha is None:
            explicit_alpha = np.ones(self.num_classes, dtype=bool)
        self.explicit_alpha = np.asarray(explicit_alpha, dtype=bool)

        if labels is None:
            labels = [f"class {i}" for i in range(self.num_classes)]
        self.labels = list(labels)

        self._device_colors = None

    @property
    def num_classes(self):
        return self.colors.shape[0]

    @classmethod
    def generate(cls, num_classes, labels=None):
        return cls(generate_colors(num_classes), labels=labels)

    @classmethod
    def from_files(cls, colors_path, labels_path=None, num_classes=None):
        """
        Colors file: one class per line, "r g b" or "r g b a".
        Labels file: one label per line.
        Missing colors file -> generated palette sized from labels/num_classes.
        """
        labels = None
        if labels_path is not None and os.path.exists(labels_path):
            with open(labels_path, 'r') as f:
                labels = [line.strip() for line in f if line.strip()]

        if colors_path is None or not os.path.exists(colors_path):
            if colors_path is not None:
                logger.warning(f"class colors file not found: {colors_path}, generating palette")
            n = num_classes or (len(labels) if labels else 21)
            if labels is not None and len(labels) < n:
                labels = labels + [f"class {i}" for i in range(len(labels), n)]
            return cls.generate(n, labels=labels[:n] if labels else None)

        rows = []
        explicit = []
        with open(colors_path, 'r') as f:
            for line_no, line in enumerate(f, 1):
                line = line.split('#', 1)[0].strip()
                if not line:
                    continue
                parts = line.replace(',', ' ').split()
                if len(parts) not in (3, 4):
                    raise ValueError(f"{colors_path}:{line_no}: expected 'r g b [a]', got '{line}'")
                values = [float(p) for p in parts]
                explicit.append(len(values) == 4)
                if len(values) == 3:
                    values.append(255.0)
                rows.append(values)

        if not rows:
            raise ValueError(f"{colors_path}: no class colors")

        if labels is not None and len(labels) != len(rows):
            logger.warning(f"{len(labels)} labels for {len(rows)} class colors")
            labels = (labels + [f"class {i}" for i in range(len(labels), len(rows))])[:len(rows)]

        logger.info(f"loaded {len(rows)} class colors from {colors_path}")
        return cls(rows, labels=labels, explicit_alpha=explicit)

    def set_overlay_alpha(self, alpha, explicit_exempt=True):
        """Apply the overlay blend alpha to every class (explicit ones skipped by default)."""
        alpha = float(np.clip(alpha, 0.0, 255.0))
        target = ~self.explicit_alpha if explicit_exempt else np.ones(self.num_classes, dtype=bool)
        self.colors[target, 3] = alpha
        self._device_colors = None

    def set_class_color(self, class_id, r, g, b, a=None):
        if a is None:
            a = self.colors[class_id, 3]
        else:
            self.explicit_alpha[class_id] = True
        self.colors[class_id] = (r, g, b, a)
        self._device_colors = None

    def get_class_color(self, class_id):
        return tuple(float(c) for c in self.colors[class_id])

    def get_class_label(self, class_id):
        return self.labels[class_id]

    def find_class(self, label):
        """Class id for a label, or -1."""
        try:
            return self.labels.index(label)
        except ValueError:
            return -1

    def device_colors(self):
        """Color table on the device, uploaded once and re-uploaded after edits."""
        if not HAS_CUDA:
            return self.colors
        if self._device_colors is None:
            self._device_colors = cp.asarray(self.colors)
        return self._device_colors

    def __len__(self):
        return self.num_classes
