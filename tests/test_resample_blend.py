import numpy as np
import pytest

from segvis.graphics.formats import FilterMode, PixelFormat, Status, SUPPORTED_FORMATS


def nearest_cell(x, y, width, height, scores_width, scores_height):
    px = np.float32(x) / np.float32(width)
    py = np.float32(y) / np.float32(height)
    return int(py * np.float32(scores_height)), int(px * np.float32(scores_width))


def random_case(seed=0, scores_shape=(5, 7), num_classes=6):
    rng = np.random.default_rng(seed)
    scores = rng.integers(0, num_classes, size=scores_shape, dtype=np.uint8)
    colors = rng.integers(0, 256, size=(num_classes, 4)).astype(np.float32)
    return scores, colors


class TestScenarios:
    def test_point_mask_quadrants(self, renderer, red_green_colors, checker_scores):
        out = np.zeros((4, 4, 3), dtype=np.uint8)
        status = renderer.resample_and_blend(
            None, 0, 0, out, 4, 4, PixelFormat.RGB8,
            red_green_colors, checker_scores, (2, 2), FilterMode.POINT, True)
        renderer.synchronize()

        assert status == Status.SUCCESS
        red = np.array([255, 0, 0], dtype=np.uint8)
        green = np.array([0, 255, 0], dtype=np.uint8)
        assert (out[:2, :2] == red).all()
        assert (out[:2, 2:] == green).all()
        assert (out[2:, :2] == green).all()
        assert (out[2:, 2:] == red).all()

    def test_linear_cell_centers_exact(self, renderer, red_green_colors, checker_scores):
        out = np.zeros((4, 4, 3), dtype=np.uint8)
        status = renderer.resample_and_blend(
            None, 0, 0, out, 4, 4, PixelFormat.RGB8,
            red_green_colors, checker_scores, (2, 2), FilterMode.LINEAR, True)

        assert status == Status.SUCCESS
        for (y, x), cls in {(1, 1): 0, (1, 3): 1, (3, 1): 1, (3, 3): 0}.items():
            assert tuple(out[y, x]) == tuple(red_green_colors[cls, :3].astype(np.uint8))

    def test_linear_blends_between_cells(self, renderer, red_green_colors, checker_scores):
        out = np.zeros((4, 4, 3), dtype=np.float32)
        renderer.resample_and_blend(
            None, 0, 0, out, 4, 4, PixelFormat.RGB32F,
            red_green_colors, checker_scores, (2, 2), FilterMode.LINEAR, True)

        # x=2, y=1: halfway between cell (0,0)=red and (0,1)=green
        np.testing.assert_allclose(out[1, 2], [127.5, 127.5, 0.0], atol=1e-4)

    def test_unsupported_format_leaves_output_untouched(self, renderer, red_green_colors, checker_scores):
        out = np.full((4, 4, 3), 7, dtype=np.uint8)
        status = renderer.resample_and_blend(
            None, 0, 0, out, 4, 4, "bgr8",
            red_green_colors, checker_scores, (2, 2), FilterMode.POINT, True)

        assert status == Status.INVALID_ARGUMENT
        assert (out == 7).all()

    def test_unsupported_format_message_lists_formats(self, renderer, red_green_colors, checker_scores, caplog):
        out = np.zeros((4, 4), dtype=np.uint8)
        renderer.resample_and_blend(
            None, 0, 0, out, 4, 4, PixelFormat.GRAY8,
            red_green_colors, checker_scores, (2, 2), FilterMode.POINT, True)

        assert "rgb8, rgba8, rgb32f, rgba32f" in caplog.text


class TestPointMode:
    def test_mask_equals_nearest_class_color(self, renderer):
        scores, colors = random_case()
        width, height = 13, 11
        out = np.zeros((height, width, 4), dtype=np.uint8)

        status = renderer.resample_and_blend(
            None, 0, 0, out, width, height, PixelFormat.RGBA8,
            colors, scores, (7, 5), FilterMode.POINT, True)
        assert status

        for y in range(height):
            for x in range(width):
                cy, cx = nearest_cell(x, y, width, height, 7, 5)
                expected = colors[scores[cy, cx]].astype(np.uint8)
                assert tuple(out[y, x, :3]) == tuple(expected[:3])
                assert out[y, x, 3] == 255

    def test_overlay_blends_nearest_input_pixel(self, renderer):
        scores, colors = random_case(seed=3)
        rng = np.random.default_rng(4)
        in_w, in_h = 9, 6
        image = rng.uniform(0, 255, size=(in_h, in_w, 3)).astype(np.float32)
        width, height = 12, 8
        out = np.zeros((height, width, 3), dtype=np.float32)

        status = renderer.resample_and_blend(
            image, in_w, in_h, out, width, height, PixelFormat.RGB32F,
            colors, scores, (7, 5), FilterMode.POINT, False)
        assert status

        for y in range(height):
            for x in range(width):
                cy, cx = nearest_cell(x, y, width, height, 7, 5)
                iy, ix = nearest_cell(x, y, width, height, in_w, in_h)
                color = colors[scores[cy, cx]].astype(np.float64)
                alpha = color[3] / 255.0
                expected = alpha * color[:3] + (1.0 - alpha) * image[iy, ix].astype(np.float64)
                np.testing.assert_allclose(out[y, x], expected, rtol=1e-5, atol=1e-3)

    def test_overlay_rgba_alpha_forced_opaque(self, renderer, red_green_colors, checker_scores):
        image = np.zeros((4, 4, 4), dtype=np.float32)
        out = np.zeros((4, 4, 4), dtype=np.float32)
        status = renderer.resample_and_blend(
            image, 4, 4, out, 4, 4, PixelFormat.RGBA32F,
            red_green_colors, checker_scores, (2, 2), FilterMode.POINT, False)

        assert status
        assert (out[..., 3] == 255.0).all()

    def test_overlay_is_not_clamped(self, renderer, checker_scores):
        # alpha above 255 extrapolates past the color; float output keeps it
        colors = np.array([[200, 0, 0, 510], [0, 0, 0, 0]], dtype=np.float32)
        image = np.full((2, 2, 3), 100, dtype=np.float32)
        out = np.zeros((2, 2, 3), dtype=np.float32)
        renderer.resample_and_blend(
            image, 2, 2, out, 2, 2, PixelFormat.RGB32F,
            colors, checker_scores, (2, 2), FilterMode.POINT, False)

        np.testing.assert_allclose(out[0, 0], [300.0, -100.0, -100.0])

    def test_zero_alpha_class_keeps_input(self, renderer, checker_scores):
        colors = np.array([[255, 255, 255, 0], [255, 255, 255, 0]], dtype=np.float32)
        image = np.arange(4 * 4 * 3, dtype=np.uint8).reshape(4, 4, 3)
        out = np.zeros_like(image)
        renderer.resample_and_blend(
            image, 4, 4, out, 4, 4, PixelFormat.RGB8,
            colors, checker_scores, (2, 2), FilterMode.POINT, False)

        np.testing.assert_array_equal(out, image)


class TestLinearMode:
    def test_constant_region_matches_point(self, renderer):
        scores = np.full((3, 4), 2, dtype=np.uint8)
        colors = np.array([[0, 0, 0, 255], [1, 2, 3, 255], [13, 201, 77, 128]], dtype=np.float32)

        results = {}
        for mode in (FilterMode.POINT, FilterMode.LINEAR):
            out = np.zeros((10, 17, 3), dtype=np.uint8)
            assert renderer.resample_and_blend(
                None, 0, 0, out, 17, 10, PixelFormat.RGB8,
                colors, scores, (4, 3), mode, True)
            results[mode] = out

        np.testing.assert_array_equal(results[FilterMode.POINT], results[FilterMode.LINEAR])
        assert (results[FilterMode.LINEAR] == [13, 201, 77]).all()

    def test_single_cell_grid_clamps(self, renderer):
        scores = np.zeros((1, 1), dtype=np.uint8)
        colors = np.array([[40, 80, 120, 255]], dtype=np.float32)
        out = np.zeros((3, 5, 4), dtype=np.float32)

        status = renderer.resample_and_blend(
            None, 0, 0, out, 5, 3, PixelFormat.RGBA32F,
            colors, scores, (1, 1), FilterMode.LINEAR, True)

        assert status
        assert (out == [40, 80, 120, 255]).all()

    def test_last_column_uses_last_cell(self, renderer):
        scores = np.array([[0, 1, 2]], dtype=np.uint8)
        colors = np.array([[0, 0, 0, 255], [100, 0, 0, 255], [200, 0, 0, 255]], dtype=np.float32)
        out = np.zeros((1, 12, 3), dtype=np.float32)

        renderer.resample_and_blend(
            None, 0, 0, out, 12, 1, PixelFormat.RGB32F,
            colors, scores, (3, 1), FilterMode.LINEAR, True)

        # x=11 -> 2.25 after the -0.5 shift: high neighbor clamps to column 2
        assert out[0, 11, 0] == 200.0
        # x=0 -> clamped to 0, exactly the first cell
        assert out[0, 0, 0] == 0.0
        # x=6 -> exactly the center of column 1
        assert out[0, 6, 0] == 100.0
        # x=4 -> halfway between columns 0 and 1
        assert out[0, 4, 0] == pytest.approx(50.0, abs=1e-3)

    def test_filter_mode_accepts_strings(self, renderer, red_green_colors, checker_scores):
        a = np.zeros((4, 4, 3), dtype=np.uint8)
        b = np.zeros((4, 4, 3), dtype=np.uint8)
        renderer.resample_and_blend(None, 0, 0, a, 4, 4, "rgb8", red_green_colors, checker_scores,
                                    (2, 2), "linear", True)
        renderer.resample_and_blend(None, 0, 0, b, 4, 4, PixelFormat.RGB8, red_green_colors, checker_scores,
                                    (2, 2), FilterMode.LINEAR, True)
        np.testing.assert_array_equal(a, b)


class TestValidation:
    def test_null_output(self, renderer, red_green_colors, checker_scores):
        status = renderer.resample_and_blend(
            None, 0, 0, None, 4, 4, PixelFormat.RGB8,
            red_green_colors, checker_scores, (2, 2), FilterMode.POINT, True)
        assert status == Status.INVALID_POINTER

    def test_null_input_in_overlay_mode(self, renderer, red_green_colors, checker_scores):
        out = np.zeros((4, 4, 3), dtype=np.uint8)
        status = renderer.resample_and_blend(
            None, 4, 4, out, 4, 4, PixelFormat.RGB8,
            red_green_colors, checker_scores, (2, 2), FilterMode.POINT, False)
        assert status == Status.INVALID_POINTER

    def test_null_scores_and_colors(self, renderer, red_green_colors, checker_scores):
        out = np.zeros((4, 4, 3), dtype=np.uint8)
        assert renderer.resample_and_blend(
            None, 0, 0, out, 4, 4, PixelFormat.RGB8,
            None, checker_scores, (2, 2), FilterMode.POINT, True) == Status.INVALID_POINTER
        assert renderer.resample_and_blend(
            None, 0, 0, out, 4, 4, PixelFormat.RGB8,
            red_green_colors, None, (2, 2), FilterMode.POINT, True) == Status.INVALID_POINTER

    @pytest.mark.parametrize("width,height", [(0, 4), (4, 0), (0, 0)])
    def test_zero_output_dims(self, renderer, red_green_colors, checker_scores, width, height):
        out = np.zeros((4, 4, 3), dtype=np.uint8)
        status = renderer.resample_and_blend(
            None, 0, 0, out, width, height, PixelFormat.RGB8,
            red_green_colors, checker_scores, (2, 2), FilterMode.POINT, True)
        assert status == Status.INVALID_ARGUMENT

    def test_zero_scores_dim(self, renderer, red_green_colors, checker_scores):
        out = np.zeros((4, 4, 3), dtype=np.uint8)
        status = renderer.resample_and_blend(
            None, 0, 0, out, 4, 4, PixelFormat.RGB8,
            red_green_colors, checker_scores, (0, 2), FilterMode.POINT, True)
        assert status == Status.INVALID_ARGUMENT

    def test_dtype_mismatch(self, renderer, red_green_colors, checker_scores):
        out = np.zeros((4, 4, 3), dtype=np.float32)
        status = renderer.resample_and_blend(
            None, 0, 0, out, 4, 4, PixelFormat.RGB8,
            red_green_colors, checker_scores, (2, 2), FilterMode.POINT, True)
        assert status == Status.INVALID_ARGUMENT

    def test_output_too_small(self, renderer, red_green_colors, checker_scores):
        out = np.zeros((4, 4, 3), dtype=np.uint8)
        status = renderer.resample_and_blend(
            None, 0, 0, out, 8, 8, PixelFormat.RGB8,
            red_green_colors, checker_scores, (2, 2), FilterMode.POINT, True)
        assert status == Status.INVALID_ARGUMENT
        assert (out == 0).all()

    @pytest.mark.parametrize("fmt,channels", [(PixelFormat.RGB8, 4), (PixelFormat.RGBA8, 3),
                                              (PixelFormat.RGB32F, 4), (PixelFormat.RGBA32F, 3)])
    def test_output_channel_mismatch(self, renderer, red_green_colors, checker_scores, fmt, channels):
        out = np.zeros((4, 4, channels), dtype=fmt.dtype)
        status = renderer.resample_and_blend(
            None, 0, 0, out, 4, 4, fmt,
            red_green_colors, checker_scores, (2, 2), FilterMode.POINT, True)
        assert status == Status.INVALID_ARGUMENT
        assert (out == 0).all()

    def test_input_channel_mismatch(self, renderer, red_green_colors, checker_scores):
        image = np.zeros((4, 4, 4), dtype=np.uint8)
        out = np.zeros((4, 4, 3), dtype=np.uint8)
        status = renderer.resample_and_blend(
            image, 4, 4, out, 4, 4, PixelFormat.RGB8,
            red_green_colors, checker_scores, (2, 2), FilterMode.POINT, False)
        assert status == Status.INVALID_ARGUMENT
        assert (out == 0).all()

    def test_scores_dim_defaults_to_grid_shape(self, renderer, red_green_colors, checker_scores):
        a = np.zeros((4, 4, 3), dtype=np.uint8)
        b = np.zeros((4, 4, 3), dtype=np.uint8)
        renderer.resample_and_blend(None, 0, 0, a, 4, 4, PixelFormat.RGB8,
                                    red_green_colors, checker_scores, filter_mode=FilterMode.POINT, mask_only=True)
        renderer.resample_and_blend(None, 0, 0, b, 4, 4, PixelFormat.RGB8,
                                    red_green_colors, checker_scores, (2, 2), FilterMode.POINT, True)
        np.testing.assert_array_equal(a, b)


@pytest.mark.parametrize("fmt", SUPPORTED_FORMATS)
@pytest.mark.parametrize("filter_mode", [FilterMode.POINT, FilterMode.LINEAR])
@pytest.mark.parametrize("mask_only", [False, True])
def test_every_variant_is_deterministic(renderer, fmt, filter_mode, mask_only):
    scores, colors = random_case(seed=7, scores_shape=(6, 9))
    rng = np.random.default_rng(8)
    image = rng.integers(0, 256, size=(15, 20, fmt.channels)).astype(fmt.dtype)

    outputs = []
    for _ in range(2):
        out = np.zeros((21, 33, fmt.channels), dtype=fmt.dtype)
        status = renderer.resample_and_blend(
            image, 20, 15, out, 33, 21, fmt,
            colors, scores, (9, 6), filter_mode, mask_only)
        renderer.synchronize()
        assert status == Status.SUCCESS
        outputs.append(out)

    assert outputs[0].tobytes() == outputs[1].tobytes()
    if fmt.channels == 4:
        assert (outputs[0][..., 3] == 255).all()
