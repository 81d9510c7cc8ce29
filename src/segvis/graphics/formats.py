# segvis - formats.py
# Pixel format / filter mode / status definitions
# (C) 2025 MUSE Corp. All rights reserved.

"""
Enumerations shared by the kernels, the dispatcher and the pipeline.

This module contains:
- PixelFormat: image format tags (only four are renderable)
- FilterMode: point / linear resampling of the class-score grid
- VisualizationFlags: overlay / mask outputs requested by the pipeline
- Status: result code returned by every rendering operation
"""

import enum

import numpy as np

from segvis.utils.logger import get_logger

logger = get_logger("segvis.formats")


class PixelFormat(enum.Enum):
    """Image format tag carried alongside a buffer."""

    RGB8 = "rgb8"
    RGBA8 = "rgba8"
    RGB32F = "rgb32f"
    RGBA32F = "rgba32f"
    BGR8 = "bgr8"
    BGRA8 = "bgra8"
    GRAY8 = "gray8"
    GRAY32F = "gray32f"
    UNKNOWN = "unknown"

    @classmethod
    def from_str(cls, name):
        if isinstance(name, cls):
            return name
        try:
            return cls(str(name).strip().lower())
        except ValueError:
            return cls.UNKNOWN

    @property
    def channels(self):
        return _FORMAT_LAYOUT.get(self, (None, 0))[1]

    @property
    def dtype(self):
        return _FORMAT_LAYOUT.get(self, (None, 0))[0]

    @property
    def ctype(self):
        """C element type used for kernel template instantiation."""
        if self.dtype is None:
            return None
        return "float" if self.dtype == np.float32 else "unsigned char"

    def __str__(self):
        return self.value


_FORMAT_LAYOUT = {
    PixelFormat.RGB8: (np.uint8, 3),
    PixelFormat.RGBA8: (np.uint8, 4),
    PixelFormat.RGB32F: (np.float32, 3),
    PixelFormat.RGBA32F: (np.float32, 4),
    PixelFormat.BGR8: (np.uint8, 3),
    PixelFormat.BGRA8: (np.uint8, 4),
    PixelFormat.GRAY8: (np.uint8, 1),
    PixelFormat.GRAY32F: (np.float32, 1),
}

# Overlay / mask / blit 가 받는 포맷 (닫힌 집합)
SUPPORTED_FORMATS = (
    PixelFormat.RGB8,
    PixelFormat.RGBA8,
    PixelFormat.RGB32F,
    PixelFormat.RGBA32F,
)

SUPPORTED_FORMATS_STR = ", ".join(str(f) for f in SUPPORTED_FORMATS)


class FilterMode(enum.Enum):
    POINT = "point"
    LINEAR = "linear"

    @classmethod
    def from_str(cls, name, default=None):
        if isinstance(name, cls):
            return name
        default = cls.LINEAR if default is None else default
        if name is None:
            return default
        try:
            return cls(str(name).strip().lower())
        except ValueError:
            logger.warning(f"unknown filter mode '{name}', using '{default.value}'")
            return default


class VisualizationFlags(enum.IntFlag):
    NONE = 0
    OVERLAY = 1
    MASK = 2

    @classmethod
    def from_str(cls, text, default=None):
        """Parse strings like "overlay|mask" or "overlay,mask"."""
        default = cls.OVERLAY | cls.MASK if default is None else default
        if text is None:
            return default
        flags = cls.NONE
        for token in str(text).replace(",", "|").split("|"):
            token = token.strip().lower()
            if not token:
                continue
            if token == "overlay":
                flags |= cls.OVERLAY
            elif token == "mask":
                flags |= cls.MASK
            else:
                logger.warning(f"unknown visualization flag '{token}'")
        return flags if flags else default


class Status(enum.IntEnum):
    """Result of a rendering operation. Only SUCCESS is truthy."""

    SUCCESS = 0
    INVALID_POINTER = 1
    INVALID_ARGUMENT = 2
    LAUNCH_FAILURE = 3

    def __bool__(self):
        return self is Status.SUCCESS

    @property
    def ok(self):
        return self is Status.SUCCESS
