# segvis - engine_loop.py
# Per-frame visualization flow: overlay / mask / composite, matting
# (C) 2025 MUSE Corp. All rights reserved.

from segvis.core.image_io import load_image, save_image
from segvis.graphics.buffers import SegmentationBuffers, MattingBuffers
from segvis.graphics.formats import PixelFormat, FilterMode, VisualizationFlags
from segvis.graphics.palette import ClassPalette
from segvis.graphics.seg_renderer import SegmentationRenderer
from segvis.utils.config import SegVisConfig
from segvis.utils.logger import get_logger

logger = get_logger("segvis.engine")


class SegmentationPipeline:
    """
    Turns (frame, class-score grid) pairs into display images.

    Owns the renderer, the class palette and the output buffers; buffers are
    reused until the frame size changes. One frame at a time: render()
    synchronizes before returning, so the returned image is complete.
    """

    def __init__(self, config=None, renderer=None, palette=None, fmt=PixelFormat.RGB8):
        self.config = config if config is not None else SegVisConfig()

        self.renderer = renderer or SegmentationRenderer(self.config.get("backend", "auto"))
        self.format = PixelFormat.from_str(fmt)

        if palette is None:
            palette = ClassPalette.from_files(self.config.get("colors_path"),
                                              self.config.get("labels_path"),
                                              num_classes=self.config.get("num_classes"))
        self.palette = palette
        self.palette.set_overlay_alpha(self.config.get("overlay_alpha", 150.0))

        self.filter_mode = FilterMode.from_str(self.config.get("filter_mode"))
        self.flags = VisualizationFlags.from_str(self.config.get("visualize"))

        self.buffers = SegmentationBuffers(self.renderer.xp, self.format)
        self.matting_buffers = MattingBuffers(self.renderer.xp)

        self.frame_count = 0

        logger.info(f"[ENGINE] filter={self.filter_mode.value}, visualize={self.flags!r}, "
                    f"classes={self.palette.num_classes}, format={self.format}")

    def render(self, frame, scores, width=None, height=None):
        """
        Overlay and/or mask for one frame; composite when both are requested.

        :param frame: (H, W, C) image in the pipeline format
        :param scores: (h_s, w_s) uint8 class-index grid
        :return: the output image (see SegmentationBuffers.output), or None
        """
        if frame is None or scores is None:
            logger.error("segvis:  render() -- missing frame or class scores")
            return None

        height = height or frame.shape[0]
        width = width or frame.shape[1]

        if not self.buffers.allocate(width, height, self.flags):
            logger.error("segvis:  failed to allocate buffers")
            return None

        buf = self.buffers

        if self.flags & VisualizationFlags.OVERLAY:
            status = self.renderer.resample_and_blend(
                frame, width, height, buf.overlay, *buf.overlay_size, self.format,
                self.palette, scores, filter_mode=self.filter_mode, mask_only=False)
            if not status:
                logger.error(f"segvis:  failed to process segmentation overlay ({status.name})")
                return None

        if self.flags & VisualizationFlags.MASK:
            status = self.renderer.resample_and_blend(
                None, 0, 0, buf.mask, *buf.mask_size, self.format,
                self.palette, scores, filter_mode=self.filter_mode, mask_only=True)
            if not status:
                logger.error(f"segvis:  failed to process segmentation mask ({status.name})")
                return None

        if buf.has_composite:
            status = self.renderer.blit(buf.overlay, *buf.overlay_size,
                                        buf.composite, *buf.composite_size, self.format, 0, 0)
            if status:
                status = self.renderer.blit(buf.mask, *buf.mask_size,
                                            buf.composite, *buf.composite_size, self.format,
                                            buf.overlay_size[0], 0)
            if not status:
                logger.error(f"segvis:  failed to compose composite image ({status.name})")
                return None

        # wait for the GPU to finish
        status = self.renderer.synchronize()
        if not status:
            logger.error(f"segvis:  failed to finish segmentation frame ({status.name})")
            return None
        self.frame_count += 1
        return buf.output

    def render_matte(self, fg_tensor, alpha_tensor, width, height):
        """
        Matting path: grayscale mask of the alpha plus the foreground blended
        onto the configured background.

        :return: the blended RGB8 image, or None
        """
        if not self.matting_buffers.allocate(width, height):
            logger.error("segvis:  failed to allocate matting buffers")
            return None

        mb = self.matting_buffers

        status = self.renderer.matte_to_mask(alpha_tensor, mb.mask, width, height)
        if not status:
            logger.error(f"segvis:  failed to process matte mask ({status.name})")
            return None

        status = self.renderer.composite_matte(fg_tensor, alpha_tensor, mb.blend, width, height,
                                               background=self.config.matte_background)
        if not status:
            logger.error(f"segvis:  failed to process matte blend ({status.name})")
            return None

        status = self.renderer.synchronize()
        if not status:
            logger.error(f"segvis:  failed to finish matte frame ({status.name})")
            return None
        self.frame_count += 1
        return mb.blend

    def load_frame(self, path):
        """Read an image file as a frame in the pipeline format (None on failure)."""
        return load_image(path, self.format, self.renderer.xp)

    def render_file(self, image_path, scores, output_path=None):
        """
        render() on a frame read from image_path; the result is written to
        output_path when given.
        """
        frame = self.load_frame(image_path)
        if frame is None:
            return None
        out = self.render(frame, scores)
        if out is not None and output_path:
            if not save_image(output_path, out):
                return None
        return out

    def set_filter_mode(self, mode):
        self.filter_mode = FilterMode.from_str(mode)

    def set_visualization(self, flags):
        """Takes effect on the next render(); buffers are reallocated then."""
        if isinstance(flags, str):
            flags = VisualizationFlags.from_str(flags)
        self.flags = VisualizationFlags(flags)

    def set_overlay_alpha(self, alpha):
        self.palette.set_overlay_alpha(alpha)

    def cleanup(self):
        self.renderer.synchronize()
        self.buffers.release()
        self.matting_buffers.release()
        logger.info("[ENGINE] shutdown complete.")
