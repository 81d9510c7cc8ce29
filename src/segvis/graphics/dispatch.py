# segvis - dispatch.py
# Kernel Dispatch Table (format x filter x mode -> kernel)
# (C) 2025 MUSE Corp. All rights reserved.

"""
Routing from (pixel format, filter mode, mask_only) to a specialized kernel.

The table is built once per backend. On CUDA every entry is a separate
instantiation of the segment_overlay<> template compiled through
cupy.RawModule name expressions; on the host every entry is a separate
numpy routine from host_kernels.make_segment_overlay(). No kernel branches
on filter mode or mask_only per pixel.
"""

import itertools

from segvis.graphics import host_kernels
from segvis.graphics.formats import (
    PixelFormat, FilterMode, Status, SUPPORTED_FORMATS, SUPPORTED_FORMATS_STR,
)
from segvis.graphics.kernels.cuda_kernels import (
    SEGMENT_OVERLAY_KERNEL_CODE, segment_overlay_name,
    TENSOR_TO_RGB_KERNEL_CODE, COMPOSITE_MATTE_KERNEL_CODE, MATTE_TO_MASK_KERNEL_CODE,
    BLIT_KERNEL_CODE, blit_name, NVRTC_OPTIONS,
)
from segvis.utils.logger import get_logger

logger = get_logger("segvis.dispatch")

try:
    import cupy as cp
    HAS_CUDA = True
except ImportError:
    HAS_CUDA = False

BACKEND_CUDA = "cuda"
BACKEND_CPU = "cpu"

# 8x8 스레드 타일
BLOCK_DIM = (8, 8)


def launch_geometry(width, height, block_dim=BLOCK_DIM):
    """(grid_dim, block_dim) covering a width x height raster."""
    grid_dim = ((width + block_dim[0] - 1) // block_dim[0],
                (height + block_dim[1] - 1) // block_dim[1])
    return grid_dim, block_dim


def validate_format(fmt, operation="resample_and_blend"):
    """SUCCESS for the four renderable formats, INVALID_ARGUMENT otherwise."""
    fmt = PixelFormat.from_str(fmt)
    if fmt not in SUPPORTED_FORMATS:
        logger.error(f"segvis:  {operation}() -- unsupported image format ({fmt})")
        logger.error(f"                     supported formats are: {SUPPORTED_FORMATS_STR}")
        return Status.INVALID_ARGUMENT
    return Status.SUCCESS


def overlay_keys():
    return list(itertools.product(SUPPORTED_FORMATS, (FilterMode.POINT, FilterMode.LINEAR), (False, True)))


class KernelDispatcher:
    """Kernel table for one backend. Stateless after construction."""

    def __init__(self, backend=BACKEND_CPU):
        if backend == BACKEND_CUDA and not HAS_CUDA:
            raise RuntimeError("CUDA backend requested but CuPy is not installed")

        self.backend = backend
        self.overlay_table = {}
        self.blit_table = {}
        self.tensor_to_rgb = None
        self.composite_matte = None
        self.matte_to_mask = None

        if backend == BACKEND_CUDA:
            self._build_cuda()
        else:
            self._build_host()

        logger.debug(f"[Dispatch] {len(self.overlay_table)} overlay kernels ready ({backend})")

    def _build_cuda(self):
        names = {
            key: segment_overlay_name(key[0].ctype, key[0].channels, key[1] is FilterMode.LINEAR, key[2])
            for key in overlay_keys()
        }
        module = cp.RawModule(code=SEGMENT_OVERLAY_KERNEL_CODE, options=NVRTC_OPTIONS,
                              name_expressions=list(names.values()))
        self.overlay_table = {key: module.get_function(name) for key, name in names.items()}

        blit_names = {fmt: blit_name(fmt.ctype, fmt.channels) for fmt in SUPPORTED_FORMATS}
        blit_module = cp.RawModule(code=BLIT_KERNEL_CODE, options=NVRTC_OPTIONS,
                                   name_expressions=list(blit_names.values()))
        self.blit_table = {fmt: blit_module.get_function(name) for fmt, name in blit_names.items()}

        matte_module = cp.RawModule(
            code=TENSOR_TO_RGB_KERNEL_CODE + COMPOSITE_MATTE_KERNEL_CODE + MATTE_TO_MASK_KERNEL_CODE,
            options=NVRTC_OPTIONS)
        self.tensor_to_rgb = matte_module.get_function('tensor_to_rgb_kernel')
        self.composite_matte = matte_module.get_function('composite_matte_kernel')
        self.matte_to_mask = matte_module.get_function('matte_to_mask_kernel')

    def _build_host(self):
        self.overlay_table = {
            key: host_kernels.make_segment_overlay(key[0].dtype, key[0].channels,
                                                   key[1] is FilterMode.LINEAR, key[2])
            for key in overlay_keys()
        }
        self.blit_table = {fmt: host_kernels.make_blit(fmt.channels) for fmt in SUPPORTED_FORMATS}
        self.tensor_to_rgb = host_kernels.tensor_to_rgb
        self.composite_matte = host_kernels.composite_matte
        self.matte_to_mask = host_kernels.matte_to_mask

    def lookup(self, fmt, filter_mode, mask_only):
        """Kernel for a validated (format, filter mode, mask_only) combination."""
        return self.overlay_table[(PixelFormat.from_str(fmt), FilterMode.from_str(filter_mode), bool(mask_only))]

    def lookup_blit(self, fmt):
        return self.blit_table[PixelFormat.from_str(fmt)]
