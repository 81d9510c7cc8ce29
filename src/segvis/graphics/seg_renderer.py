# segvis - seg_renderer.py
# Segmentation Visualization Engine (Overlay / Mask / Matte)
# (C) 2025 MUSE Corp. All rights reserved.

import numpy as np

from segvis.graphics.dispatch import (
    KernelDispatcher, launch_geometry, validate_format, BACKEND_CUDA, BACKEND_CPU,
)
from segvis.graphics.formats import PixelFormat, FilterMode, Status
from segvis.utils.logger import get_logger

logger = get_logger("segvis.renderer")

try:
    import cupy as cp
    HAS_CUDA = True
except ImportError:
    HAS_CUDA = False

# launch / synchronize 에서 잡는 디바이스 에러
DEVICE_ERRORS = (cp.cuda.driver.CUDADriverError, cp.cuda.runtime.CUDARuntimeError) if HAS_CUDA else ()

# BackgroundMattingV2 데모 배경 (green screen)
DEFAULT_MATTE_BACKGROUND = (120.0, 255.0, 155.0)

RGB8_FORMAT = PixelFormat.RGB8


def cuda_available():
    if not HAS_CUDA:
        return False
    try:
        return cp.cuda.runtime.getDeviceCount() > 0
    except cp.cuda.runtime.CUDARuntimeError:
        return False


def resolve_backend(backend="auto"):
    backend = (backend or "auto").lower()
    if backend == "auto":
        return BACKEND_CUDA if cuda_available() else BACKEND_CPU
    if backend == BACKEND_CUDA and not cuda_available():
        logger.warning("[Renderer] CUDA backend requested but no device/CuPy found. Fallback to CPU Mode.")
        return BACKEND_CPU
    if backend not in (BACKEND_CUDA, BACKEND_CPU):
        logger.warning(f"[Renderer] unknown backend '{backend}', using auto")
        return resolve_backend("auto")
    return backend


class SegmentationRenderer:
    """
    Turns a class-score grid into overlay / mask images and converts
    matting tensors into RGB8 pixels.

    Every operation validates its arguments, launches one kernel and returns
    a Status. Launches are asynchronous on the CUDA backend; call
    synchronize() before reading an output buffer. Nothing is written when
    validation fails.

    Buffers are caller-owned arrays of the backend's array module
    (cupy on CUDA, numpy on CPU), laid out (height, width, channels) and
    C-contiguous.
    """

    def __init__(self, backend="auto"):
        self.backend = resolve_backend(backend)
        self.xp = cp if self.backend == BACKEND_CUDA else np
        self.stream = cp.cuda.Stream(non_blocking=True) if self.backend == BACKEND_CUDA else None
        self.dispatcher = KernelDispatcher(self.backend)
        logger.info(f"[Renderer] backend: {self.backend}")

    # =========================================================================
    # Validation
    # =========================================================================
    def _is_array(self, buf):
        if self.backend == BACKEND_CUDA:
            return isinstance(buf, cp.ndarray)
        return isinstance(buf, np.ndarray)

    def _check_buffer(self, op, name, buf, count, dtype, channels=None):
        if buf is None:
            logger.error(f"segvis:  {op}() -- NULL {name}")
            return Status.INVALID_POINTER
        if not self._is_array(buf):
            logger.error(f"segvis:  {op}() -- {name} is {type(buf).__name__}, "
                         f"expected a {self.xp.__name__} array for the {self.backend} backend")
            return Status.INVALID_ARGUMENT
        if buf.dtype != np.dtype(dtype):
            logger.error(f"segvis:  {op}() -- {name} dtype {buf.dtype} does not match {np.dtype(dtype)}")
            return Status.INVALID_ARGUMENT
        if channels is not None and buf.ndim == 3 and buf.shape[-1] != channels:
            logger.error(f"segvis:  {op}() -- {name} has {buf.shape[-1]} channels, format needs {channels}")
            return Status.INVALID_ARGUMENT
        if buf.size < count:
            logger.error(f"segvis:  {op}() -- {name} holds {buf.size} elements, needs {count}")
            return Status.INVALID_ARGUMENT
        if not buf.flags.c_contiguous:
            logger.error(f"segvis:  {op}() -- {name} must be C-contiguous")
            return Status.INVALID_ARGUMENT
        return Status.SUCCESS

    @staticmethod
    def _check_dims(op, name, width, height):
        if width is None or height is None or int(width) <= 0 or int(height) <= 0:
            logger.error(f"segvis:  {op}() -- invalid {name} dimensions ({width}x{height})")
            return Status.INVALID_ARGUMENT
        return Status.SUCCESS

    def _color_table(self, class_colors):
        colors = class_colors
        if hasattr(class_colors, 'device_colors'):
            colors = class_colors.device_colors() if self.backend == BACKEND_CUDA else class_colors.colors
        elif self.backend == BACKEND_CUDA and isinstance(colors, np.ndarray):
            colors = cp.asarray(colors)
        return colors

    # =========================================================================
    # Launch
    # =========================================================================
    def _launch(self, op, kernel, width, height, args):
        if self.backend == BACKEND_CUDA:
            grid_dim, block_dim = launch_geometry(width, height)
            kernel_args = tuple(
                np.int32(a) if isinstance(a, (int, np.integer)) and not isinstance(a, bool) else
                np.float32(a) if isinstance(a, float) else a
                for a in args
            )
            try:
                with self.stream:
                    kernel(grid_dim, block_dim, kernel_args)
            except DEVICE_ERRORS as e:
                logger.error(f"segvis:  {op}() -- kernel launch failed: {e}")
                return Status.LAUNCH_FAILURE
        else:
            try:
                kernel(*args)
            except MemoryError as e:
                logger.error(f"segvis:  {op}() -- out of host memory: {e}")
                return Status.LAUNCH_FAILURE
        return Status.SUCCESS

    def synchronize(self):
        """
        Wait for every launched kernel. Outputs are valid only after this.

        Faults a kernel hits after launch surface here and are returned as
        LAUNCH_FAILURE.
        """
        if self.stream is None:
            return Status.SUCCESS
        try:
            self.stream.synchronize()
        except DEVICE_ERRORS as e:
            logger.error(f"segvis:  synchronize() -- device error: {e}")
            return Status.LAUNCH_FAILURE
        return Status.SUCCESS

    # =========================================================================
    # Operations
    # =========================================================================
    def resample_and_blend(self, input_image, in_width, in_height,
                           output_image, width, height, fmt,
                           class_colors, scores, scores_dim=None,
                           filter_mode=FilterMode.LINEAR, mask_only=False):
        """
        Upsample the class-score grid to width x height and color it.

        mask_only=True writes the class color (alpha opaque);
        mask_only=False alpha-blends it onto input_image, sampled nearest.

        Opaque alpha is 255 for every RGBA format, rgba32f included: float
        images here carry 0~255 values like the class colors, not 0~1.

        :param scores_dim: (scores_width, scores_height); defaults to the
                           shape of a 2-D scores array
        """
        op = "resample_and_blend"

        if output_image is None:
            logger.error(f"segvis:  {op}() -- NULL output image")
            return Status.INVALID_POINTER
        status = self._check_dims(op, "output", width, height)
        if not status:
            return status
        status = validate_format(fmt, op)
        if not status:
            return status
        fmt = PixelFormat.from_str(fmt)

        if class_colors is None:
            logger.error(f"segvis:  {op}() -- NULL class color table")
            return Status.INVALID_POINTER
        if scores is None:
            logger.error(f"segvis:  {op}() -- NULL class scores")
            return Status.INVALID_POINTER

        if scores_dim is None:
            if getattr(scores, 'ndim', 0) != 2:
                logger.error(f"segvis:  {op}() -- scores_dim is required unless scores is a 2-D grid")
                return Status.INVALID_ARGUMENT
            scores_dim = (scores.shape[1], scores.shape[0])
        scores_width, scores_height = (int(v) for v in scores_dim)
        status = self._check_dims(op, "class score", scores_width, scores_height)
        if not status:
            return status

        width, height = int(width), int(height)
        channels = fmt.channels

        if not mask_only:
            if input_image is None:
                logger.error(f"segvis:  {op}() -- NULL input image")
                return Status.INVALID_POINTER
            status = self._check_dims(op, "input", in_width, in_height)
            if not status:
                return status
            in_width, in_height = int(in_width), int(in_height)
            status = self._check_buffer(op, "input image", input_image, in_width * in_height * channels,
                                        fmt.dtype, channels)
            if not status:
                return status
        else:
            in_width = int(in_width or 0)
            in_height = int(in_height or 0)

        status = self._check_buffer(op, "output image", output_image, width * height * channels,
                                    fmt.dtype, channels)
        if not status:
            return status
        status = self._check_buffer(op, "class scores", scores, scores_width * scores_height, np.uint8)
        if not status:
            return status

        colors = self._color_table(class_colors)
        status = self._check_buffer(op, "class color table", colors, 4, np.float32)
        if not status:
            return status
        if colors.size % 4 != 0:
            logger.error(f"segvis:  {op}() -- class color table must hold RGBA entries")
            return Status.INVALID_ARGUMENT

        kernel = self.dispatcher.lookup(fmt, filter_mode, mask_only)

        if mask_only and input_image is None:
            # 마스크 모드에서는 입력을 읽지 않음
            input_image = output_image

        return self._launch(op, kernel, width, height,
                            (input_image, in_width, in_height,
                             output_image, width, height,
                             colors, scores, scores_width, scores_height))

    def tensor_to_rgb(self, src_tensor, dst_image, width, height):
        """Planar float tensor (3 x H x W, 0~1) -> RGB8 image, saturating."""
        op = "tensor_to_rgb"

        status = self._check_matte_common(op, dst_image, width, height)
        if not status:
            return status
        width, height = int(width), int(height)

        status = self._check_buffer(op, "source tensor", src_tensor, 3 * width * height, np.float32)
        if not status:
            return status

        return self._launch(op, self.dispatcher.tensor_to_rgb, width, height,
                            (src_tensor, dst_image, width, height))

    def composite_matte(self, src_tensor, alpha_tensor, dst_image, width, height,
                        background=DEFAULT_MATTE_BACKGROUND):
        """
        Foreground tensor x alpha over a solid background -> RGB8 image.

        out = clip(255 * fg * alpha + (1 - alpha) * background, 0, 255)
        """
        op = "composite_matte"

        status = self._check_matte_common(op, dst_image, width, height)
        if not status:
            return status
        width, height = int(width), int(height)

        status = self._check_buffer(op, "source tensor", src_tensor, 3 * width * height, np.float32)
        if not status:
            return status
        status = self._check_buffer(op, "alpha tensor", alpha_tensor, width * height, np.float32)
        if not status:
            return status

        if background is None or len(background) != 3:
            logger.error(f"segvis:  {op}() -- background must be an (r, g, b) triple")
            return Status.INVALID_ARGUMENT
        bg_r, bg_g, bg_b = (float(c) for c in background)

        return self._launch(op, self.dispatcher.composite_matte, width, height,
                            (src_tensor, alpha_tensor, dst_image, width, height, bg_r, bg_g, bg_b))

    def matte_to_mask(self, alpha_tensor, dst_image, width, height):
        """Alpha tensor (H x W, 0~1) -> grayscale RGB8 mask."""
        op = "matte_to_mask"

        status = self._check_matte_common(op, dst_image, width, height)
        if not status:
            return status
        width, height = int(width), int(height)

        status = self._check_buffer(op, "alpha tensor", alpha_tensor, width * height, np.float32)
        if not status:
            return status

        return self._launch(op, self.dispatcher.matte_to_mask, width, height,
                            (alpha_tensor, dst_image, width, height))

    def _check_matte_common(self, op, dst_image, width, height):
        if dst_image is None:
            logger.error(f"segvis:  {op}() -- NULL output image")
            return Status.INVALID_POINTER
        status = self._check_dims(op, "output", width, height)
        if not status:
            return status
        return self._check_buffer(op, "output image", dst_image, int(width) * int(height) * 3, RGB8_FORMAT.dtype,
                                  RGB8_FORMAT.channels)

    def blit(self, src_image, src_width, src_height, dst_image, dst_width, dst_height, fmt, x=0, y=0):
        """Copy src_image into dst_image at (x, y), clipped to dst."""
        op = "blit"

        if src_image is None or dst_image is None:
            logger.error(f"segvis:  {op}() -- NULL {'source' if src_image is None else 'destination'} image")
            return Status.INVALID_POINTER
        status = self._check_dims(op, "source", src_width, src_height)
        if not status:
            return status
        status = self._check_dims(op, "destination", dst_width, dst_height)
        if not status:
            return status
        status = validate_format(fmt, op)
        if not status:
            return status
        fmt = PixelFormat.from_str(fmt)

        src_width, src_height = int(src_width), int(src_height)
        dst_width, dst_height = int(dst_width), int(dst_height)

        status = self._check_buffer(op, "source image", src_image, src_width * src_height * fmt.channels, fmt.dtype,
                                    fmt.channels)
        if not status:
            return status
        status = self._check_buffer(op, "destination image", dst_image,
                                    dst_width * dst_height * fmt.channels, fmt.dtype, fmt.channels)
        if not status:
            return status

        return self._launch(op, self.dispatcher.lookup_blit(fmt), src_width, src_height,
                            (src_image, src_width, src_height, dst_image, dst_width, dst_height, int(x), int(y)))
