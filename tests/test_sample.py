"""Unit tests for surface samples.

Tests cover:
- Miss and hit sample constructors
- Packing a sample for host read-back
- The normal/position pairing enforced by SurfaceSample
"""

import numpy as np
import pytest
import taichi as ti


class TestSampleConstructors:
    """Tests for make_miss_sample and make_hit_sample."""

    def test_miss_sample_has_no_surface(self):
        """Test that a miss carries only the distance."""
        from spheretrace.core.sample import (
            NO_MATERIAL,
            PACKED_SAMPLE_SIZE,
            SurfaceSample,
            make_miss_sample,
            pack_sample,
        )

        out = np.zeros(PACKED_SAMPLE_SIZE, dtype=np.float32)

        @ti.kernel
        def test_kernel(buf: ti.types.ndarray(dtype=ti.f32, ndim=1)):
            pack_sample(make_miss_sample(3.5), buf)

        test_kernel(out)
        sample = SurfaceSample.from_packed(out)
        assert not sample.is_hit
        assert sample.normal is None
        assert sample.position is None
        assert sample.uv is None
        assert sample.material == NO_MATERIAL
        assert abs(sample.dist_to_surface - 3.5) < 1e-6

    def test_hit_sample_round_trip(self):
        """Test that a hit keeps position, normal, uv and material."""
        from spheretrace.core.ray import vec2, vec3
        from spheretrace.core.sample import PACKED_SAMPLE_SIZE, SurfaceSample, make_hit_sample, pack_sample

        out = np.zeros(PACKED_SAMPLE_SIZE, dtype=np.float32)

        @ti.kernel
        def test_kernel(buf: ti.types.ndarray(dtype=ti.f32, ndim=1)):
            sample = make_hit_sample(-0.0005, vec3(1.0, 2.0, 3.0), vec3(0.0, 1.0, 0.0), 7)
            sample.dist_travelled = 12.0
            sample.has_uv = 1
            sample.uv = vec2(0.25, 0.75)
            pack_sample(sample, buf)

        test_kernel(out)
        sample = SurfaceSample.from_packed(out)
        assert sample.is_hit
        np.testing.assert_allclose(sample.position, [1.0, 2.0, 3.0], atol=1e-6)
        np.testing.assert_allclose(sample.normal, [0.0, 1.0, 0.0], atol=1e-6)
        np.testing.assert_allclose(sample.uv, [0.25, 0.75], atol=1e-6)
        assert sample.material == 7
        assert abs(sample.dist_travelled - 12.0) < 1e-6
        assert abs(sample.dist_to_surface + 0.0005) < 1e-7


class TestSurfaceSample:
    """Tests for host-side sample validation."""

    def test_normal_without_position_rejected(self):
        """Test that a normal alone is rejected."""
        from spheretrace.core.sample import SurfaceSample

        with pytest.raises(ValueError, match="both present or both absent"):
            SurfaceSample(0.0, 0.0, normal=np.array([0.0, 1.0, 0.0]))

    def test_position_without_normal_rejected(self):
        """Test that a position alone is rejected."""
        from spheretrace.core.sample import SurfaceSample

        with pytest.raises(ValueError, match="both present or both absent"):
            SurfaceSample(0.0, 0.0, position=np.zeros(3))

    def test_uv_without_hit_rejected(self):
        """Test that a UV requires a surface hit."""
        from spheretrace.core.sample import SurfaceSample

        with pytest.raises(ValueError, match="uv requires"):
            SurfaceSample(0.0, 1.0, uv=np.zeros(2))

    def test_complete_hit_accepted(self):
        """Test that a sample with normal and position is a hit."""
        from spheretrace.core.sample import SurfaceSample

        sample = SurfaceSample(1.0, 0.0, normal=np.array([0.0, 0.0, -1.0]), position=np.zeros(3))
        assert sample.is_hit
