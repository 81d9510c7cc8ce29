# segvis - host_kernels.py
# CPU(numpy) 커널 구현
# (C) 2025 MUSE Corp. All rights reserved.

"""
Host implementations of the CUDA kernels, used when CuPy is unavailable.

Every routine follows the matching kernel in graphics/kernels/ operation
for operation in float32, so both backends produce the same pixels.
The overlay kernel is specialized per (dtype, channels, linear, mask_only)
by make_segment_overlay(); the returned function has no per-call branch
on filter or mode.
"""

import numpy as np

_F0 = np.float32(0.0)
_F1 = np.float32(1.0)
_F255 = np.float32(255.0)
_HALF = np.float32(0.5)


def _pixel_centers(count, extent):
    """(x / count) * extent in float32, plus the normalized x / count."""
    p = np.arange(count, dtype=np.float32) / np.float32(count)
    return p, p * np.float32(extent)


def _lookup(colors, scores, ys, xs):
    """Class colors for the cells (ys[:, None], xs[None, :]) -> (h, w, 4)."""
    ids = scores[ys[:, None], xs[None, :]]
    return np.take(colors, ids, axis=0, mode='clip')


def _sample_point(colors, scores, width, height, scores_width, scores_height):
    px, cx = _pixel_centers(width, scores_width)
    py, cy = _pixel_centers(height, scores_height)

    x1 = cx.astype(np.int32)
    y1 = cy.astype(np.int32)

    return px, py, _lookup(colors, scores, y1, x1)


def _sample_linear(colors, scores, width, height, scores_width, scores_height):
    px, cx = _pixel_centers(width, scores_width)
    py, cy = _pixel_centers(height, scores_height)

    # 픽셀 중심 기준 (-0.5), 음수는 0으로 클램프
    bx = np.maximum(_F0, cx - _HALF)
    by = np.maximum(_F0, cy - _HALF)

    x1 = bx.astype(np.int32)
    y1 = by.astype(np.int32)
    x2 = np.minimum(x1 + 1, scores_width - 1)
    y2 = np.minimum(y1 + 1, scores_height - 1)

    fx = (bx - x1.astype(np.float32))[None, :, None]
    fy = (by - y1.astype(np.float32))[:, None, None]

    c11 = _lookup(colors, scores, y1, x1)
    c21 = _lookup(colors, scores, y1, x2)
    c12 = _lookup(colors, scores, y2, x1)
    c22 = _lookup(colors, scores, y2, x2)

    # lerp 형태: 네 이웃이 같은 색이면 정확히 그 색
    top = c11 + (c21 - c11) * fx
    bottom = c12 + (c22 - c12) * fx
    return px, py, top + (bottom - top) * fy


def _image_view(buf, width, height, channels):
    """(height, width, channels) view over the first width*height pixels of buf."""
    return buf.reshape(-1)[:width * height * channels].reshape(height, width, channels)


def make_segment_overlay(dtype, channels, linear, mask_only):
    """Build the host segment_overlay<dtype, channels, linear, mask_only> routine."""
    sample = _sample_linear if linear else _sample_point
    dtype = np.dtype(dtype)

    def segment_overlay(input_image, in_width, in_height, output, width, height,
                        class_colors, scores, scores_width, scores_height):
        colors = class_colors.reshape(-1, 4)
        grid = scores.reshape(-1)[:scores_width * scores_height].reshape(scores_height, scores_width)

        px, py, color = sample(colors, grid, width, height, scores_width, scores_height)
        rgb = color[..., :3]

        if not mask_only:
            x_in = (px * np.float32(in_width)).astype(np.int32)
            y_in = (py * np.float32(in_height)).astype(np.int32)
            src = _image_view(input_image, in_width, in_height, channels)
            pixels = src[y_in[:, None], x_in[None, :], :3].astype(np.float32)

            aa = (color[..., 3] / _F255)[..., None]
            ab = _F1 - aa
            # 블렌딩 결과는 클램프하지 않음
            rgb = aa * rgb + ab * pixels

        dst = _image_view(output, width, height, channels)
        dst[..., :3] = rgb.astype(dtype)
        if channels == 4:
            dst[..., 3] = 255

    segment_overlay.__name__ = 'segment_overlay_{}{}_{}_{}'.format(
        'f' if dtype == np.float32 else 'u', channels,
        'linear' if linear else 'point',
        'mask' if mask_only else 'overlay')
    return segment_overlay


def _quantize(values):
    return np.clip(np.rint(values), _F0, _F255).astype(np.uint8)


def tensor_to_rgb(src, dst, width, height):
    n = width * height
    planes = src.reshape(-1)[:3 * n].reshape(3, height, width)
    out = _image_view(dst, width, height, 3)
    out[...] = _quantize(planes * _F255).transpose(1, 2, 0)


def composite_matte(src, alpha, dst, width, height, bg_r, bg_g, bg_b):
    n = width * height
    planes = src.reshape(-1)[:3 * n].reshape(3, height, width)
    a = alpha.reshape(-1)[:n].reshape(height, width)
    ia = _F1 - a
    bg = np.array([bg_r, bg_g, bg_b], dtype=np.float32)[:, None, None]

    values = planes * _F255 * a + ia * bg
    out = _image_view(dst, width, height, 3)
    out[...] = _quantize(values).transpose(1, 2, 0)


def matte_to_mask(alpha, dst, width, height):
    n = width * height
    a = alpha.reshape(-1)[:n].reshape(height, width)
    out = _image_view(dst, width, height, 3)
    out[...] = _quantize(a * _F255)[..., None]


def make_blit(channels):
    def blit(src, src_width, src_height, dst, dst_width, dst_height, offset_x, offset_y):
        x0 = max(offset_x, 0)
        y0 = max(offset_y, 0)
        x1 = min(offset_x + src_width, dst_width)
        y1 = min(offset_y + src_height, dst_height)
        if x0 >= x1 or y0 >= y1:
            return
        s = _image_view(src, src_width, src_height, channels)
        d = _image_view(dst, dst_width, dst_height, channels)
        d[y0:y1, x0:x1] = s[y0 - offset_y:y1 - offset_y, x0 - offset_x:x1 - offset_x]

    blit.__name__ = f'blit_{channels}'
    return blit
