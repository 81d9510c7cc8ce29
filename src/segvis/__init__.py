# segvis - __init__.py
# (C) 2025 MUSE Corp. All rights reserved.

from segvis.graphics.formats import PixelFormat, FilterMode, VisualizationFlags, Status
from segvis.graphics.palette import ClassPalette
from segvis.graphics.seg_renderer import SegmentationRenderer, DEFAULT_MATTE_BACKGROUND
from segvis.graphics.buffers import SegmentationBuffers, MattingBuffers
from segvis.core.engine_loop import SegmentationPipeline
from segvis.core.image_io import load_image, save_image
from segvis.utils.config import SegVisConfig

__version__ = "0.1.0"

__all__ = [
    'PixelFormat',
    'FilterMode',
    'VisualizationFlags',
    'Status',
    'ClassPalette',
    'SegmentationRenderer',
    'DEFAULT_MATTE_BACKGROUND',
    'SegmentationBuffers',
    'MattingBuffers',
    'SegmentationPipeline',
    'SegVisConfig',
    'load_image',
    'save_image',
]
