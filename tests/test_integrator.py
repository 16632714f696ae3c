"""Unit tests for the sphere-marching integrator.

Tests cover:
- Tracer configuration validation
- Hits: position, normal, shading and power absorption
- Misses: escape, background and step budget
- Reflection between parallel planes until the power runs out
- Non-finite rays
- Full-frame tracing, single pixels and determinism
"""

import numpy as np
import pytest


class TestTracerConfig:
    """Tests for TracerConfig validation."""

    def test_defaults(self):
        """Test the default tracing parameters."""
        from spheretrace.core.integrator import MAX_DISTANCE, MAX_STEPS, POWER_THRESHOLD, TracerConfig

        config = TracerConfig()
        assert config.max_steps == MAX_STEPS
        assert config.max_distance == MAX_DISTANCE
        assert config.power_threshold == POWER_THRESHOLD
        assert config.background == (0.0, 0.0, 0.0)

    @pytest.mark.parametrize(
        "kwargs, match",
        [
            ({"max_steps": 0}, "max_steps"),
            ({"max_distance": -1.0}, "max_distance"),
            ({"power_threshold": 0.0}, "power_threshold"),
            ({"background": (0.0, -0.5, 0.0)}, "background"),
        ],
    )
    def test_invalid_values(self, kwargs, match):
        """Test that out-of-range parameters are rejected."""
        from spheretrace.core.integrator import TracerConfig

        with pytest.raises(ValueError, match=match):
            TracerConfig(**kwargs)


class TestMarchHit:
    """Tests for rays that hit a surface."""

    def test_first_hit_on_sphere(self, ball_scene):
        """Test position and normal of the first hit."""
        from spheretrace.core.integrator import march

        result = march(ball_scene, (0.0, 0.0, 0.0), (0.0, 0.0, 1.0))

        assert result.first_hit.is_hit
        np.testing.assert_allclose(result.first_hit.position, [0.0, 0.0, 5.0], atol=2e-3)
        np.testing.assert_allclose(result.first_hit.normal, [0.0, 0.0, -1.0], atol=1e-3)
        assert abs(result.first_hit.dist_travelled - 5.0) < 2e-3

    def test_opaque_hit_shading(self, ball_scene):
        """Test that a fully absorbing normal material ends the ray."""
        from spheretrace.core.integrator import march

        result = march(ball_scene, (0.0, 0.0, 0.0), (0.0, 0.0, 1.0))

        assert result.bounces == 1
        assert result.power == 0.0
        assert not result.escaped
        # (n + 1) / 2 times ambient light only
        np.testing.assert_allclose(result.color, [0.05, 0.05, 0.0], atol=1e-3)

    @pytest.mark.parametrize("target", [(3.0, 0.0, 10.0), (0.0, 4.5, 10.0), (-2.0, -2.0, 10.0)])
    def test_off_axis_rays_hit(self, ball_scene, target):
        """Test that rays toward points inside the sphere hit it."""
        from spheretrace.core.integrator import march

        result = march(ball_scene, (0.0, 0.0, 0.0), target)

        assert result.first_hit.is_hit
        assert abs(np.linalg.norm(result.first_hit.position - np.array([0.0, 0.0, 10.0])) - 5.0) < 2e-3

    def test_hit_material_is_reported(self, ball_scene):
        """Test that the first hit carries the primitive's material."""
        from spheretrace.core.integrator import march

        result = march(ball_scene, (0.0, 0.0, 0.0), (0.0, 0.0, 1.0))
        assert result.first_hit.material == int(ball_scene.default_material[None])


class TestMarchMiss:
    """Tests for rays that hit nothing."""

    def test_escape_picks_up_background(self, ball_scene):
        """Test that an escaping ray returns the background color."""
        from spheretrace.core.integrator import TracerConfig, march

        config = TracerConfig(background=(0.2, 0.3, 0.4))
        result = march(ball_scene, (0.0, 0.0, 0.0), (0.0, 0.0, -1.0), config)

        assert result.escaped
        assert result.bounces == 0
        assert not result.first_hit.is_hit
        assert result.power == 1.0
        assert result.travelled >= 1000.0
        np.testing.assert_allclose(result.color, [0.2, 0.3, 0.4], atol=1e-6)

    def test_step_budget(self, ball_scene):
        """Test that marching stops after max_steps without escaping."""
        from spheretrace.core.integrator import TracerConfig, march

        result = march(ball_scene, (0.0, 0.0, 0.0), (0.0, 0.0, -1.0), TracerConfig(max_steps=3))

        assert result.steps == 3
        assert not result.escaped
        assert result.travelled < 1000.0

    def test_empty_scene_escapes_in_one_step(self):
        """Test that an empty scene gives one huge step."""
        from spheretrace.core.integrator import march
        from spheretrace.scene.primitives import PrimitiveScene

        result = march(PrimitiveScene(), (0.0, 0.0, 0.0), (0.0, 0.0, 1.0))
        assert result.escaped
        assert result.steps == 1


class TestReflection:
    """Tests for bouncing between surfaces."""

    def test_parallel_planes_absorb_power(self):
        """Test that a ray between two half-absorbing mirrors stops on power."""
        from spheretrace.core.integrator import TracerConfig, march
        from spheretrace.scene.primitives import PrimitiveScene

        scene = PrimitiveScene()
        mirror = scene.materials.add_solid((1.0, 1.0, 1.0), attenuation=0.5)
        scene.add_plane((0.0, -1.0, 0.0), -1.0, material=mirror)
        scene.add_plane((0.0, 1.0, 0.0), -1.0, material=mirror)

        result = march(scene, (0.0, 0.0, 0.0), (0.0, 1.0, 0.0), TracerConfig(max_steps=1000))

        # 0.5 ** 16 is still above the threshold, 0.5 ** 17 is not
        assert result.bounces == 17
        assert result.power < 1e-5
        assert abs(result.power - 0.5**17) < 1e-8
        assert result.steps < 1000
        assert not result.escaped

    def test_reflection_accumulates_color(self):
        """Test that each bounce adds color weighted by the power left."""
        from spheretrace.core.integrator import TracerConfig, march
        from spheretrace.scene.primitives import PrimitiveScene

        scene = PrimitiveScene(ambient=(1.0, 1.0, 1.0))
        mirror = scene.materials.add_solid((1.0, 0.0, 0.0), attenuation=0.5)
        scene.add_plane((0.0, -1.0, 0.0), -1.0, material=mirror)
        scene.add_plane((0.0, 1.0, 0.0), -1.0, material=mirror)

        result = march(scene, (0.0, 0.0, 0.0), (0.0, 1.0, 0.0), TracerConfig(max_steps=1000))

        # Geometric series 1 + 1/2 + 1/4 + ... over 17 bounces
        assert abs(result.color[0] - (2.0 - 0.5**16)) < 1e-3
        assert result.color[1] == 0.0


class TestNonFiniteRays:
    """Tests for rays that cannot be marched."""

    def test_nan_origin_fails(self, ball_scene):
        """Test that a NaN origin trips the kernel assertion."""
        from spheretrace.core.integrator import march

        with pytest.raises(AssertionError):
            march(ball_scene, (float("nan"), 0.0, 0.0), (0.0, 0.0, 1.0))


class TestTrace:
    """Tests for full-frame and single-pixel tracing."""

    def test_box_frame(self):
        """Test that every pixel of the box scene sees the front face."""
        from spheretrace.core.integrator import trace
        from spheretrace.scene.demo import create_box_scene

        scene, camera = create_box_scene(rows=32, cols=32)
        framebuffer = trace(camera, scene)
        pixels = framebuffer.to_numpy()

        assert pixels.shape == (32, 32, 3)
        assert np.all(pixels[..., 0] > 0)
        assert np.all(np.abs(pixels[..., 0].astype(int) - pixels[..., 1].astype(int)) <= 1)
        assert np.all(pixels[..., 2] <= 1)

    def test_trace_pixel_matches_frame(self):
        """Test that a single pixel matches the frame within rounding."""
        from spheretrace.core.integrator import trace, trace_pixel
        from spheretrace.scene.demo import create_box_scene

        scene, camera = create_box_scene(rows=16, cols=16)
        pixels = trace(camera, scene).to_numpy()

        for row, col in [(0, 0), (8, 8), (15, 3)]:
            color = trace_pixel(camera, scene, row, col)
            expected = pixels[row, col].astype(float)
            actual = np.clip(np.array(color) * 255.0, 0.0, 255.0)
            assert np.all(np.abs(actual - expected) <= 1.0)

    def test_trace_pixel_out_of_range(self):
        """Test that a pixel outside the sensor raises IndexError."""
        from spheretrace.core.integrator import trace_pixel
        from spheretrace.scene.demo import create_box_scene

        scene, camera = create_box_scene(rows=4, cols=4)
        with pytest.raises(IndexError):
            trace_pixel(camera, scene, 4, 0)
        with pytest.raises(IndexError):
            trace_pixel(camera, scene, 0, -1)

    def test_trace_is_deterministic(self):
        """Test that tracing the same scene twice gives identical frames."""
        from spheretrace.core.integrator import trace
        from spheretrace.scene.demo import create_box_scene

        scene, camera = create_box_scene(rows=16, cols=16)
        first = trace(camera, scene).to_numpy()
        second = trace(camera, scene).to_numpy()
        np.testing.assert_array_equal(first, second)
