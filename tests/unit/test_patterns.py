"""Tests for blob layout generation."""

import math

import numpy as np
import pytest

from ink_reveal.core.patterns import (
    CORNER_ANCHORS,
    CORNER_JITTER,
    COVERAGE_BLOBS,
    BlobDescriptor,
    CustomBlob,
    PatternGenerator,
    RevealPattern,
    coerce_custom_blobs,
    generate_blobs,
)


def make_generator(seed=42):
    return PatternGenerator(np.random.default_rng(seed))


class TestBlobDescriptor:
    """Test blob descriptor validation."""

    def test_valid_blob(self):
        blob = BlobDescriptor(x=0.5, y=0.25, base_size=0.2, seed=12.5, delay=0.1)
        assert blob.to_dict() == {
            "x": 0.5, "y": 0.25, "base_size": 0.2, "seed": 12.5, "delay": 0.1,
        }

    @pytest.mark.parametrize("kwargs", [
        dict(x=-0.1, y=0.5, base_size=0.2, seed=1.0, delay=0.0),
        dict(x=0.5, y=1.1, base_size=0.2, seed=1.0, delay=0.0),
        dict(x=0.5, y=0.5, base_size=0.0, seed=1.0, delay=0.0),
        dict(x=0.5, y=0.5, base_size=math.inf, seed=1.0, delay=0.0),
        dict(x=0.5, y=0.5, base_size=0.2, seed=math.nan, delay=0.0),
        dict(x=0.5, y=0.5, base_size=0.2, seed=1.0, delay=-0.1),
    ])
    def test_invalid_blob(self, kwargs):
        with pytest.raises(ValueError):
            BlobDescriptor(**kwargs)

    def test_immutable(self):
        blob = BlobDescriptor(x=0.5, y=0.5, base_size=0.2, seed=1.0, delay=0.0)
        with pytest.raises(AttributeError):
            blob.x = 0.1


class TestCustomBlob:
    """Test custom blob parsing."""

    def test_from_dict_optional_fields(self):
        blob = CustomBlob.from_dict({"x": 0.2, "y": 0.3})
        assert blob == CustomBlob(0.2, 0.3)
        assert blob.to_dict() == {"x": 0.2, "y": 0.3}

    def test_from_dict_full(self):
        blob = CustomBlob.from_dict({"x": 0.2, "y": 0.3, "size": 0.4, "delay": 0.05})
        assert blob.size == 0.4
        assert blob.delay == 0.05

    def test_missing_coordinate(self):
        with pytest.raises(ValueError, match="missing coordinate"):
            CustomBlob.from_dict({"x": 0.2})


class TestPatternGenerator:
    """Test each reveal pattern."""

    def test_random_adds_coverage_blobs(self):
        blobs = make_generator().generate(14, "random", 0.12, 0.30, 0.15)
        assert len(blobs) == 14 + len(COVERAGE_BLOBS) + 1

        for blob in blobs[:14]:
            assert 0.1 <= blob.x <= 0.9
            assert 0.1 <= blob.y <= 0.9
            assert 0.12 <= blob.base_size <= 0.30
            assert 0.0 <= blob.delay <= 0.15

        centre = blobs[-1]
        assert (centre.x, centre.y) == (0.5, 0.5)
        assert centre.delay == 0.0
        assert centre.base_size == pytest.approx(0.30 * 1.1)

        for blob, (x, y, fraction, delay) in zip(blobs[14:18], COVERAGE_BLOBS):
            assert (blob.x, blob.y) == (x, y)
            assert blob.delay == delay
            assert blob.base_size == pytest.approx(0.12 + 0.18 * fraction)

    def test_corners_eight_blobs(self):
        blobs = make_generator().generate(8, RevealPattern.CORNERS, 0.12, 0.30, 0.15)
        assert len(blobs) == 8

        for index, (ax, ay) in enumerate(CORNER_ANCHORS):
            for blob in blobs[index * 2:index * 2 + 2]:
                assert abs(blob.x - ax) <= CORNER_JITTER + 1e-9
                assert abs(blob.y - ay) <= CORNER_JITTER + 1e-9
                assert blob.delay >= index * 0.05

    def test_corners_floor_division(self):
        blobs = make_generator().generate(10, "corners", 0.12, 0.30, 0.15)
        assert len(blobs) == 8

    def test_corners_small_count_never_empty(self):
        blobs = make_generator().generate(2, "corners", 0.12, 0.30, 0.15)
        assert len(blobs) == 4

    def test_center_ring_and_core(self):
        blobs = make_generator().generate(6, "center", 0.1, 0.2, 0.15)
        assert len(blobs) == 7
        core = blobs[-1]
        assert (core.x, core.y, core.delay) == (0.5, 0.5, 0.0)
        assert core.base_size == pytest.approx(0.24)
        for blob in blobs[:-1]:
            distance = math.hypot(blob.x - 0.5, blob.y - 0.5)
            assert 0.1 - 1e-9 <= distance <= 0.5 + 1e-9
            assert blob.delay == pytest.approx(distance * 0.15 * 2)

    def test_spiral_delays_increase(self):
        blobs = make_generator().generate(12, "spiral", 0.1, 0.2, 0.3)
        assert len(blobs) == 12
        delays = [blob.delay for blob in blobs]
        assert delays == sorted(delays)
        assert delays[0] == 0.0
        assert math.hypot(blobs[0].x - 0.5, blobs[0].y - 0.5) == pytest.approx(0.1)

    def test_wave_sweeps_left_to_right(self):
        blobs = make_generator().generate(10, "wave", 0.1, 0.2, 0.2)
        xs = [blob.x for blob in blobs]
        assert xs == sorted(xs)
        assert xs[0] == pytest.approx(0.1)
        for blob in blobs:
            assert blob.delay == pytest.approx(blob.x * 0.2)

    def test_explosion_bounds(self):
        blobs = make_generator().generate(30, "explosion", 0.1, 0.2, 0.2)
        assert len(blobs) == 30
        for blob in blobs:
            assert 0.1 <= blob.base_size <= 0.1 + 0.1 * 1.3 + 1e-9
            assert 0.0 <= blob.delay <= 0.1

    @pytest.mark.parametrize("pattern", list(RevealPattern))
    def test_positions_in_frame(self, pattern):
        blobs = make_generator(7).generate(20, pattern, 0.1, 0.3, 0.15)
        assert blobs
        for blob in blobs:
            assert 0.0 <= blob.x <= 1.0
            assert 0.0 <= blob.y <= 1.0
            assert 0.0 <= blob.seed < 1000.0

    def test_seeded_generation_is_deterministic(self):
        first = make_generator(3).generate(14, "random", 0.12, 0.3, 0.15)
        second = make_generator(3).generate(14, "random", 0.12, 0.3, 0.15)
        assert first == second

    def test_invalid_parameters(self):
        generator = make_generator()
        with pytest.raises(ValueError, match="Blob count"):
            generator.generate(0, "random", 0.1, 0.2, 0.1)
        with pytest.raises(ValueError, match="size bounds"):
            generator.generate(5, "random", 0.3, 0.2, 0.1)
        with pytest.raises(ValueError):
            generator.generate(5, "zigzag", 0.1, 0.2, 0.1)


class TestCustomLayouts:
    """Test caller-supplied blob lists."""

    def test_custom_overrides_pattern(self):
        custom = [CustomBlob(0.2, 0.2), CustomBlob(0.8, 0.8, size=0.5, delay=0.3)]
        blobs = make_generator().generate(14, "random", 0.1, 0.2, 0.4, custom)

        assert len(blobs) == 2
        assert (blobs[0].x, blobs[0].y) == (0.2, 0.2)
        assert 0.1 <= blobs[0].base_size <= 0.2
        assert blobs[0].delay == 0.0
        assert blobs[1].base_size == 0.5
        assert blobs[1].delay == 0.3

    def test_default_delay_is_index_fraction(self):
        custom = [CustomBlob(0.5, 0.5) for _ in range(4)]
        blobs = make_generator().generate(1, "random", 0.1, 0.2, 0.4, custom)
        assert [blob.delay for blob in blobs] == pytest.approx([0.0, 0.1, 0.2, 0.3])

    def test_out_of_frame_custom_rejected(self):
        with pytest.raises(ValueError, match="out of frame"):
            make_generator().generate(1, "random", 0.1, 0.2, 0.1, [CustomBlob(1.5, 0.5)])

    def test_generate_blobs_wrapper(self):
        blobs = generate_blobs(5, "spiral", 0.1, 0.2, 0.1, rng=np.random.default_rng(0))
        assert len(blobs) == 5

    def test_dict_custom_blobs_accepted(self):
        blobs = generate_blobs(
            1,
            "random",
            0.1,
            0.2,
            0.1,
            [{"x": 0.2, "y": 0.3}, {"x": 0.6, "y": 0.7, "size": 0.5, "delay": 0.05}],
            rng=np.random.default_rng(0),
        )
        assert len(blobs) == 2
        assert (blobs[0].x, blobs[0].y) == (0.2, 0.3)
        assert 0.1 <= blobs[0].base_size <= 0.2
        assert blobs[1].base_size == 0.5
        assert blobs[1].delay == 0.05

    def test_mixed_custom_blobs_through_generator(self):
        custom = [CustomBlob(0.5, 0.5), {"x": 0.1, "y": 0.9}]
        blobs = make_generator().generate(3, "wave", 0.1, 0.2, 0.4, custom)
        assert [(blob.x, blob.y) for blob in blobs] == [(0.5, 0.5), (0.1, 0.9)]

    def test_unsupported_custom_blob_rejected(self):
        with pytest.raises(ValueError, match="CustomBlob or dict"):
            generate_blobs(1, "random", 0.1, 0.2, 0.1, [(0.2, 0.3)])
        with pytest.raises(ValueError, match="missing coordinate"):
            coerce_custom_blobs([{"x": 0.2}])
