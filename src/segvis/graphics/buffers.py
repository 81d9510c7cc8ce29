# segvis - buffers.py
# Output Buffer Contexts for Overlay / Mask / Composite and Matting
# (C) 2025 MUSE Corp. All rights reserved.

"""
Caller-owned output buffers, reallocated only when the frame size changes.

This module contains:
- SegmentationBuffers: overlay / mask / composite images for one frame size
- MattingBuffers: binary-mask and blended outputs of the matting path

Not thread-safe: one frame is fully processed before the next allocate().
"""

import numpy as np

from segvis.graphics.formats import PixelFormat, VisualizationFlags
from segvis.utils.logger import get_logger

logger = get_logger("segvis.buffers")


class SegmentationBuffers:
    """
    Overlay, mask and composite images sized from the input frame.

    - overlay: full frame size
    - mask: half size when the overlay is also requested, otherwise full size
    - composite: overlay and mask side by side (widths summed)

    `output` refers to the buffer to display: composite if both outputs are
    requested, else whichever one exists.
    """

    def __init__(self, xp=np, fmt=PixelFormat.RGB8):
        fmt = PixelFormat.from_str(fmt)
        if fmt.dtype is None or fmt.channels < 3:
            raise ValueError(f"unsupported buffer format: {fmt}")
        self.xp = xp
        self.format = fmt
        self.flags = VisualizationFlags.NONE

        self.overlay = None
        self.mask = None
        self.composite = None
        self.output = None

        self.overlay_size = (0, 0)
        self.mask_size = (0, 0)
        self.composite_size = (0, 0)
        self.output_size = (0, 0)

    def _alloc(self, width, height):
        return self.xp.zeros((height, width, self.format.channels), dtype=self.format.dtype)

    def allocate(self, width, height, flags):
        """
        Make buffers for a width x height frame. No-op if nothing changed.
        Returns False for a zero-sized frame or empty flags.
        """
        flags = VisualizationFlags(flags)
        if width <= 0 or height <= 0:
            logger.error(f"segvis:  invalid frame size for buffers ({width}x{height})")
            return False
        if not flags & (VisualizationFlags.OVERLAY | VisualizationFlags.MASK):
            logger.error("segvis:  no visualization outputs requested")
            return False

        if self.output is not None and self.overlay_size == (width, height) and self.flags == flags:
            return True

        self.release()
        self.flags = flags
        self.overlay_size = (width, height)

        if flags & VisualizationFlags.OVERLAY:
            self.overlay = self._alloc(width, height)
            self.output = self.overlay
            self.output_size = self.overlay_size

        if flags & VisualizationFlags.MASK:
            if flags & VisualizationFlags.OVERLAY:
                self.mask_size = (max(1, width // 2), max(1, height // 2))
            else:
                self.mask_size = self.overlay_size
            self.mask = self._alloc(*self.mask_size)
            self.output = self.mask
            self.output_size = self.mask_size

        if self.has_composite:
            self.composite_size = (self.overlay_size[0] + self.mask_size[0], self.overlay_size[1])
            self.composite = self._alloc(*self.composite_size)
            self.output = self.composite
            self.output_size = self.composite_size

        logger.debug(f"[Buffers] allocated {self.format} buffers for {width}x{height} "
                     f"(output {self.output_size[0]}x{self.output_size[1]})")
        return True

    @property
    def has_composite(self):
        return bool(self.flags & VisualizationFlags.OVERLAY) and bool(self.flags & VisualizationFlags.MASK)

    def release(self):
        self.overlay = None
        self.mask = None
        self.composite = None
        self.output = None
        self.overlay_size = (0, 0)
        self.mask_size = (0, 0)
        self.composite_size = (0, 0)
        self.output_size = (0, 0)
        self.flags = VisualizationFlags.NONE


class MattingBuffers:
    """Binary mask and blended RGB8 outputs for the matting path."""

    def __init__(self, xp=np):
        self.xp = xp
        self.mask = None
        self.blend = None
        self.size = (0, 0)

    def allocate(self, width, height):
        if width <= 0 or height <= 0:
            logger.error(f"segvis:  invalid frame size for matting buffers ({width}x{height})")
            return False
        if self.blend is not None and self.size == (width, height):
            return True

        self.mask = self.xp.zeros((height, width, 3), dtype=np.uint8)
        self.blend = self.xp.zeros((height, width, 3), dtype=np.uint8)
        self.size = (width, height)
        logger.debug(f"[Buffers] allocated matting buffers for {width}x{height}")
        return True

    def release(self):
        self.mask = None
        self.blend = None
        self.size = (0, 0)
