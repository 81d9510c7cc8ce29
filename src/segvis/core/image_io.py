# segvis - image_io.py
# Image file <-> buffer helpers (OpenCV)
# (C) 2025 MUSE Corp. All rights reserved.

import os

import cv2
import numpy as np

from segvis.graphics.formats import PixelFormat
from segvis.utils.logger import get_logger

logger = get_logger("segvis.image_io")


def load_image(path, fmt=PixelFormat.RGB8, xp=np):
    """
    Read an image file into an RGB/RGBA buffer of the given format.
    Returns None when the file is missing or unreadable.
    """
    fmt = PixelFormat.from_str(fmt)
    if fmt.channels not in (3, 4):
        raise ValueError(f"cannot load into format {fmt}")

    if not os.path.exists(path):
        logger.error(f"image file not found: {path}")
        return None

    frame_bgr = cv2.imread(path, cv2.IMREAD_UNCHANGED)
    if frame_bgr is None:
        logger.error(f"failed to decode image: {path}")
        return None

    if frame_bgr.ndim == 2:
        frame_bgr = cv2.cvtColor(frame_bgr, cv2.COLOR_GRAY2BGR)
    if frame_bgr.dtype != np.uint8:
        frame_bgr = cv2.normalize(frame_bgr, None, 0, 255, cv2.NORM_MINMAX).astype(np.uint8)

    has_alpha = frame_bgr.shape[2] == 4
    if fmt.channels == 4:
        code = cv2.COLOR_BGRA2RGBA if has_alpha else cv2.COLOR_BGR2RGBA
    else:
        code = cv2.COLOR_BGRA2RGB if has_alpha else cv2.COLOR_BGR2RGB
    frame = cv2.cvtColor(frame_bgr, code)

    frame = np.ascontiguousarray(frame.astype(fmt.dtype))
    return xp.asarray(frame)


def save_image(path, image):
    """Write an RGB/RGBA buffer (host or device) to an image file."""
    if hasattr(image, 'get'):
        image = image.get()
    image = np.asarray(image)

    if image.dtype != np.uint8:
        image = np.clip(image, 0, 255).astype(np.uint8)

    if image.ndim == 3 and image.shape[2] == 4:
        image = cv2.cvtColor(image, cv2.COLOR_RGBA2BGRA)
    elif image.ndim == 3 and image.shape[2] == 3:
        image = cv2.cvtColor(image, cv2.COLOR_RGB2BGR)

    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)

    if not cv2.imwrite(path, image):
        logger.error(f"failed to write image: {path}")
        return False
    logger.debug(f"saved image to: {path}")
    return True
