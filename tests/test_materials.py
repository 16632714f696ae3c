"""Unit tests for the material library.

Tests cover:
- Adding materials and parameter validation
- Capacity overflow
- Evaluation of normal, solid and checker materials
- NO_MATERIAL and invalid ids
"""

import numpy as np
import pytest
import taichi as ti


def _evaluate(library, material_id, position=(0.0, 0.0, 0.0), normal=(0.0, 1.0, 0.0), uv=None):
    """Evaluate a material for a hit sample built from the arguments."""
    from spheretrace.core.ray import vec2, vec3
    from spheretrace.core.sample import make_hit_sample

    out = np.zeros(4, dtype=np.float32)
    has_uv = 0 if uv is None else 1
    u, v = (0.0, 0.0) if uv is None else uv

    @ti.kernel
    def eval_kernel(buf: ti.types.ndarray(dtype=ti.f32, ndim=1)):
        sample = make_hit_sample(
            0.0,
            vec3(position[0], position[1], position[2]),
            vec3(normal[0], normal[1], normal[2]),
            material_id,
        )
        sample.has_uv = has_uv
        sample.uv = vec2(u, v)
        response = library.evaluate(material_id, sample)
        for i in ti.static(range(4)):
            buf[i] = response[i]

    eval_kernel(out)
    return out


class TestMaterialLibrary:
    """Tests for adding materials."""

    def test_ids_are_sequential(self):
        """Test that each added material gets the next id."""
        from spheretrace.materials.library import MaterialLibrary

        library = MaterialLibrary()
        assert library.add_normal() == 0
        assert library.add_solid((1.0, 0.0, 0.0)) == 1
        assert library.add_checker((1.0, 1.0, 1.0), (0.0, 0.0, 0.0)) == 2
        assert len(library) == 3

    def test_attenuation_out_of_range(self):
        """Test that attenuation outside [0, 1] is rejected."""
        from spheretrace.materials.library import MaterialLibrary

        library = MaterialLibrary()
        with pytest.raises(ValueError, match="Attenuation"):
            library.add_solid((1.0, 1.0, 1.0), attenuation=1.5)
        with pytest.raises(ValueError, match="Attenuation"):
            library.add_normal(attenuation=-0.1)

    def test_checker_scale_must_be_positive(self):
        """Test that a zero checker scale is rejected."""
        from spheretrace.materials.library import MaterialLibrary

        library = MaterialLibrary()
        with pytest.raises(ValueError, match="scale"):
            library.add_checker((1.0, 1.0, 1.0), (0.0, 0.0, 0.0), scale=0.0)

    def test_capacity_overflow(self):
        """Test that exceeding the capacity raises RuntimeError."""
        from spheretrace.materials.library import MaterialLibrary

        library = MaterialLibrary(capacity=2)
        library.add_normal()
        library.add_normal()
        with pytest.raises(RuntimeError, match="Maximum number of materials"):
            library.add_normal()

    def test_clear(self):
        """Test that clearing resets the count."""
        from spheretrace.materials.library import MaterialLibrary

        library = MaterialLibrary()
        library.add_normal()
        library.clear()
        assert len(library) == 0
        assert library.add_solid((0.5, 0.5, 0.5)) == 0


class TestMaterialEvaluation:
    """Tests for evaluating materials at samples."""

    def test_normal_material_remaps_normal(self):
        """Test that the color is (n + 1) / 2 and attenuation is kept."""
        from spheretrace.materials.library import MaterialLibrary

        library = MaterialLibrary()
        mid = library.add_normal(attenuation=0.8)
        response = _evaluate(library, mid, normal=(0.0, 1.0, 0.0))
        np.testing.assert_allclose(response, [0.5, 1.0, 0.5, 0.8], atol=1e-6)

    def test_solid_material_clamps_color(self):
        """Test that solid colors are clamped to [0, 1]."""
        from spheretrace.materials.library import MaterialLibrary

        library = MaterialLibrary()
        mid = library.add_solid((2.0, -1.0, 0.5), attenuation=0.3)
        response = _evaluate(library, mid)
        np.testing.assert_allclose(response, [1.0, 0.0, 0.5, 0.3], atol=1e-6)

    def test_checker_world_coordinates(self):
        """Test that without a UV the checker alternates over world x/z."""
        from spheretrace.materials.library import MaterialLibrary

        library = MaterialLibrary()
        mid = library.add_checker((1.0, 1.0, 1.0), (0.0, 0.0, 0.0), scale=1.0)

        even = _evaluate(library, mid, position=(0.5, 0.0, 0.5))
        odd = _evaluate(library, mid, position=(1.5, 0.0, 0.5))
        negative = _evaluate(library, mid, position=(-0.5, 0.0, 0.5))

        np.testing.assert_allclose(even[:3], [1.0, 1.0, 1.0], atol=1e-6)
        np.testing.assert_allclose(odd[:3], [0.0, 0.0, 0.0], atol=1e-6)
        np.testing.assert_allclose(negative[:3], [0.0, 0.0, 0.0], atol=1e-6)

    def test_checker_prefers_uv(self):
        """Test that a UV overrides the world coordinates."""
        from spheretrace.materials.library import MaterialLibrary

        library = MaterialLibrary()
        mid = library.add_checker((1.0, 0.0, 0.0), (0.0, 0.0, 1.0), scale=0.5)

        # World x/z would give an odd cell, the UV an even one
        response = _evaluate(library, mid, position=(0.75, 0.0, 0.25), uv=(1.25, 0.25))
        np.testing.assert_allclose(response[:3], [1.0, 0.0, 0.0], atol=1e-6)

    def test_invalid_ids_evaluate_to_zero(self):
        """Test that NO_MATERIAL and unknown ids contribute nothing."""
        from spheretrace.core.sample import NO_MATERIAL
        from spheretrace.materials.library import MaterialLibrary

        library = MaterialLibrary()
        library.add_solid((1.0, 1.0, 1.0))

        np.testing.assert_allclose(_evaluate(library, NO_MATERIAL), [0.0, 0.0, 0.0, 0.0])
        np.testing.assert_allclose(_evaluate(library, 5), [0.0, 0.0, 0.0, 0.0])
