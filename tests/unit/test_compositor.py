"""Tests for surface sizing, fit modes and frame compositing."""

import numpy as np
import pytest
from PIL import Image

from ink_reveal.core.blob_mask import BlobMaskRenderer
from ink_reveal.core.compositor import (
    DrawRect,
    FitMode,
    FrameCompositor,
    LayerStack,
    Surface,
    compute_draw_rect,
    compute_layer_rect,
    place_image,
    to_rgba_image,
)
from ink_reveal.core.patterns import BlobDescriptor
from ink_reveal.errors import SurfaceUnavailable


def solid(width, height, color):
    image = np.zeros((height, width, 3), dtype=np.uint8)
    image[...] = color
    return image


class TestComputeDrawRect:
    """Test fit mode geometry."""

    def test_cover_wide_image(self):
        rect = compute_draw_rect(100, 100, 200, 100, FitMode.COVER)
        assert rect == DrawRect(-50.0, 0.0, 200.0, 100.0)

    def test_cover_tall_image(self):
        rect = compute_draw_rect(100, 100, 100, 200, "cover")
        assert rect == DrawRect(0.0, -50.0, 100.0, 200.0)

    def test_contain_wide_image(self):
        rect = compute_draw_rect(100, 100, 200, 100, FitMode.CONTAIN)
        assert rect == DrawRect(0.0, 25.0, 100.0, 50.0)

    def test_contain_tall_image(self):
        rect = compute_draw_rect(100, 100, 100, 200, "contain")
        assert rect == DrawRect(25.0, 0.0, 50.0, 100.0)

    @pytest.mark.parametrize("mode", [FitMode.FILL, FitMode.NONE, FitMode.SCALE_DOWN])
    def test_other_modes_stretch(self, mode):
        rect = compute_draw_rect(120, 80, 30, 90, mode)
        assert rect == DrawRect(0.0, 0.0, 120.0, 80.0)

    def test_invalid_sizes(self):
        with pytest.raises(ValueError, match="surface size"):
            compute_draw_rect(0, 10, 10, 10)
        with pytest.raises(ValueError, match="image size"):
            compute_draw_rect(10, 10, 10, -1)

    def test_scaled_rect(self):
        assert DrawRect(1, 2, 3, 4).scaled(2) == DrawRect(2, 4, 6, 8)


class TestComputeLayerRect:
    """Test object-fit placement of the unmasked layers."""

    def test_none_keeps_natural_size_centred(self):
        rect = compute_layer_rect(100, 100, 40, 160, FitMode.NONE)
        assert rect == DrawRect(30.0, -30.0, 40.0, 160.0)

    def test_scale_down_small_image_keeps_natural_size(self):
        rect = compute_layer_rect(100, 100, 20, 10, "scale-down")
        assert rect == DrawRect(40.0, 45.0, 20.0, 10.0)

    def test_scale_down_large_image_contains(self):
        rect = compute_layer_rect(100, 100, 200, 100, FitMode.SCALE_DOWN)
        assert rect == compute_draw_rect(100, 100, 200, 100, FitMode.CONTAIN)

    @pytest.mark.parametrize("mode", [FitMode.COVER, FitMode.CONTAIN, FitMode.FILL])
    def test_other_modes_match_canvas(self, mode):
        assert compute_layer_rect(120, 80, 30, 90, mode) == compute_draw_rect(120, 80, 30, 90, mode)

    def test_invalid_sizes(self):
        with pytest.raises(ValueError, match="image size"):
            compute_layer_rect(10, 10, 0, 10, FitMode.NONE)


class TestImageHelpers:
    """Test image normalization and placement."""

    def test_to_rgba_from_rgb_array(self):
        image = to_rgba_image(solid(4, 3, (10, 20, 30)))
        assert image.mode == "RGBA"
        assert image.size == (4, 3)

    def test_to_rgba_rejects_float_array(self):
        with pytest.raises(ValueError, match="uint8"):
            to_rgba_image(np.zeros((4, 4, 3), dtype=float))

    def test_place_image_transparent_outside(self):
        image = to_rgba_image(solid(10, 10, (255, 0, 0)))
        placed = place_image(image, DrawRect(0, 25, 100, 50), (100, 100))
        assert placed.shape == (100, 100, 4)
        assert placed[0, 50, 3] == 0
        assert tuple(placed[50, 50]) == (255, 0, 0, 255)


class TestSurface:
    """Test surface sizing and backing buffers."""

    def test_unsized_surface_not_ready(self):
        assert not Surface().is_ready

    def test_resize_reallocates_only_on_change(self):
        surface = Surface()
        assert surface.resize(40, 30) is True
        assert surface.pixels.shape == (30, 40, 4)
        assert surface.resize(40, 30) is False

    def test_high_dpi_backing(self):
        surface = Surface(50, 20, device_pixel_ratio=2.0)
        assert surface.backing_size == (100, 40)
        assert surface.mask.shape == (40, 100)

    def test_zero_size_raises(self):
        with pytest.raises(SurfaceUnavailable):
            Surface().resize(0, 10)

    def test_invalid_pixel_ratio(self):
        with pytest.raises(ValueError, match="pixel ratio"):
            Surface(device_pixel_ratio=0)

    def test_clear(self):
        surface = Surface(4, 4)
        surface.pixels[...] = 255
        surface.mask[...] = True
        surface.clear()
        assert not surface.pixels.any()
        assert not surface.mask.any()


class TestFrameCompositor:
    """Test masked drawing."""

    def setup_method(self):
        self.renderer = BlobMaskRenderer(easing="linear")
        self.blobs = [BlobDescriptor(x=0.5, y=0.5, base_size=0.2, seed=1.0, delay=0.0)]

    def test_draws_image_inside_mask_only(self):
        compositor = FrameCompositor(self.renderer, source=solid(20, 20, (255, 0, 0)))
        surface = Surface(20, 20)

        mask = compositor.draw_frame(surface, self.blobs, 1.0)

        assert mask[10, 10]
        assert tuple(surface.pixels[10, 10]) == (255, 0, 0, 255)
        assert not mask[0, 0]
        assert tuple(surface.pixels[0, 0]) == (0, 0, 0, 0)

    def test_nothing_drawn_at_zero_progress(self):
        compositor = FrameCompositor(self.renderer, source=solid(20, 20, (0, 255, 0)))
        surface = Surface(20, 20)
        compositor.draw_frame(surface, self.blobs, 0.0)
        assert not surface.pixels.any()

    def test_unsized_surface(self):
        compositor = FrameCompositor(self.renderer, source=solid(20, 20, (0, 255, 0)))
        with pytest.raises(SurfaceUnavailable):
            compositor.draw_frame(Surface(), self.blobs, 0.5)

    def test_missing_source(self):
        compositor = FrameCompositor(self.renderer)
        assert not compositor.has_source
        with pytest.raises(SurfaceUnavailable, match="source"):
            compositor.draw_frame(Surface(10, 10), self.blobs, 0.5)

    def test_fitted_image_cached_per_size(self):
        compositor = FrameCompositor(self.renderer, source=solid(30, 10, (1, 2, 3)))
        surface = Surface(20, 20)
        first = compositor.fitted_image(surface)
        assert compositor.fitted_image(surface) is first

        surface.resize(10, 10)
        assert compositor.fitted_image(surface) is not first

    def test_fit_mode_change_invalidates_cache(self):
        compositor = FrameCompositor(self.renderer, source=solid(30, 10, (1, 2, 3)))
        surface = Surface(20, 20)
        first = compositor.fitted_image(surface)
        compositor.set_fit_mode("contain")
        assert compositor.fitted_image(surface) is not first

    def test_high_dpi_draw(self):
        compositor = FrameCompositor(self.renderer, source=solid(20, 20, (255, 0, 0)))
        surface = Surface(20, 20, device_pixel_ratio=2.0)
        mask = compositor.draw_frame(surface, self.blobs, 1.0)
        assert mask.shape == (40, 40)
        assert mask[20, 20]


class TestLayerStack:
    """Test flattening of the visible layers."""

    def setup_method(self):
        self.surface = Surface(20, 20)

    def test_background_only(self):
        stack = LayerStack(solid(20, 20, (255, 0, 0)))
        frame = stack.compose(self.surface, 0.0)
        assert isinstance(frame, Image.Image)
        assert frame.mode == "RGB"
        assert frame.getpixel((5, 5)) == (229, 231, 235)

    def test_full_overlay_shows_final_image(self):
        stack = LayerStack(solid(20, 20, (255, 0, 0)))
        frame = stack.compose(self.surface, 1.0)
        assert frame.getpixel((5, 5)) == (255, 0, 0)

    def test_half_overlay_blends(self):
        stack = LayerStack(solid(20, 20, (255, 255, 255)), background_color="#000000")
        frame = stack.compose(self.surface, 0.5)
        assert frame.getpixel((10, 10)) == (128, 128, 128)

    def test_placeholder_layer(self):
        stack = LayerStack(
            solid(20, 20, (255, 0, 0)),
            placeholder=solid(8, 8, (0, 0, 255)),
            placeholder_blur=2.0,
        )
        frame = stack.compose(self.surface, 0.0)
        assert frame.getpixel((10, 10)) == (0, 0, 255)

        hidden = stack.compose(self.surface, 0.0, placeholder_visible=False)
        assert hidden.getpixel((10, 10)) == (229, 231, 235)

    def test_canvas_layer_over_placeholder(self):
        stack = LayerStack(solid(20, 20, (255, 0, 0)), placeholder=solid(8, 8, (0, 0, 255)))
        self.surface.pixels[10, 10] = (0, 255, 0, 255)
        frame = stack.compose(self.surface, 0.0)
        assert frame.getpixel((10, 10)) == (0, 255, 0)

        hidden = stack.compose(self.surface, 0.0, canvas_visible=False)
        assert hidden.getpixel((10, 10)) != (0, 255, 0)

    def test_unsized_surface(self):
        stack = LayerStack(solid(20, 20, (255, 0, 0)))
        with pytest.raises(SurfaceUnavailable):
            stack.compose(Surface(), 1.0)

    def test_invalid_background(self):
        with pytest.raises(ValueError, match="hex color"):
            LayerStack(solid(4, 4, (0, 0, 0)), background_color="purple")

    def test_negative_blur(self):
        with pytest.raises(ValueError, match="blur"):
            LayerStack(solid(4, 4, (0, 0, 0)), placeholder_blur=-1)

    def test_fit_none_overlay_keeps_natural_size(self):
        surface = Surface(40, 40)
        stack = LayerStack(
            solid(40, 10, (255, 255, 255)), fit_mode="none", background_color="#000000"
        )
        frame = stack.compose(surface, 1.0)
        assert frame.getpixel((20, 15)) == (255, 255, 255)
        assert frame.getpixel((20, 24)) == (255, 255, 255)
        assert frame.getpixel((20, 0)) == (0, 0, 0)
        assert frame.getpixel((20, 39)) == (0, 0, 0)

        stretched = LayerStack(
            solid(40, 10, (255, 255, 255)), fit_mode="fill", background_color="#000000"
        ).compose(surface, 1.0)
        assert stretched.getpixel((20, 0)) == (255, 255, 255)

    def test_fit_scale_down_overlay(self):
        surface = Surface(40, 40)
        large = LayerStack(
            solid(80, 20, (255, 255, 255)), fit_mode="scale-down", background_color="#000000"
        ).compose(surface, 1.0)
        assert large.getpixel((0, 20)) == (255, 255, 255)
        assert large.getpixel((20, 5)) == (0, 0, 0)

        small = LayerStack(
            solid(10, 10, (255, 255, 255)), fit_mode="scale-down", background_color="#000000"
        ).compose(surface, 1.0)
        assert small.getpixel((20, 20)) == (255, 255, 255)
        assert small.getpixel((5, 20)) == (0, 0, 0)
        assert small.getpixel((35, 20)) == (0, 0, 0)

    def test_fit_none_placeholder_follows_final_image(self):
        surface = Surface(40, 40)
        stack = LayerStack(
            solid(10, 10, (255, 0, 0)),
            placeholder=solid(4, 4, (0, 0, 255)),
            fit_mode="none",
            placeholder_blur=0.0,
        )
        frame = stack.compose(surface, 0.0)
        assert frame.getpixel((20, 20)) == (0, 0, 255)
        assert frame.getpixel((2, 2)) == (229, 231, 235)
