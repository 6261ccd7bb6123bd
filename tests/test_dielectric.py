"""Unit tests for dielectric (glass) material.

Tests cover:
- Refraction ratio selection by face
- Total internal reflection
- Fresnel reflection probability
- Attenuation is always white and rays always scatter
- Material registry and IOR validation
"""

import numpy as np
import pytest
import taichi as ti


class TestRefractionRatio:
    """Tests for the face-dependent refraction ratio."""

    def test_front_and_back_face(self):
        """Test entering uses 1/ior and leaving uses ior."""
        from glint.materials.dielectric import _refraction_ratio

        front = ti.field(dtype=ti.f32, shape=())
        back = ti.field(dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            front[None] = _refraction_ratio(1.5, 1)
            back[None] = _refraction_ratio(1.5, 0)

        test_kernel()
        assert abs(front[None] - 1.0 / 1.5) < 1e-6
        assert abs(back[None] - 1.5) < 1e-6


class TestDielectricScatter:
    """Tests for scatter_dielectric."""

    def test_total_internal_reflection_from_inside(self):
        """Test a steep ray leaving glass always reflects."""
        from glint.core.ray import normalize, vec3
        from glint.materials.dielectric import scatter_dielectric

        n = 1000
        directions = ti.Vector.field(3, dtype=ti.f32, shape=n)

        @ti.kernel
        def test_kernel():
            incident = normalize(vec3(0.9, -0.1, 0.0))
            normal = vec3(0.0, 1.0, 0.0)
            for i in range(n):
                d, a, s = scatter_dielectric(1.5, incident, normal, 0)
                directions[i] = d

        test_kernel()
        dirs = directions.to_numpy()
        # Every sample is the mirror reflection, back above the surface
        assert np.all(dirs[:, 1] > 0.0)
        np.testing.assert_allclose(dirs[:, 0], 0.9 / np.hypot(0.9, 0.1), atol=1e-5)

    def test_normal_incidence_mostly_refracts(self):
        """Test the reflected fraction at normal incidence matches Schlick's r0."""
        from glint.core.ray import vec3
        from glint.materials.dielectric import scatter_dielectric

        n = 20000
        directions = ti.Vector.field(3, dtype=ti.f32, shape=n)
        attenuations = ti.Vector.field(3, dtype=ti.f32, shape=n)
        scattered = ti.field(dtype=ti.i32, shape=n)

        @ti.kernel
        def test_kernel():
            incident = vec3(0.0, -1.0, 0.0)
            normal = vec3(0.0, 1.0, 0.0)
            for i in range(n):
                d, a, s = scatter_dielectric(1.5, incident, normal, 1)
                directions[i] = d
                attenuations[i] = a
                scattered[i] = s

        test_kernel()
        dirs = directions.to_numpy()
        reflected_fraction = float(np.mean(dirs[:, 1] > 0.0))

        assert abs(reflected_fraction - 0.04) < 0.01
        assert np.all(scattered.to_numpy() == 1)
        np.testing.assert_allclose(attenuations.to_numpy(), 1.0, atol=1e-6)
        np.testing.assert_allclose(np.linalg.norm(dirs, axis=1), 1.0, atol=1e-4)

    def test_refracted_ray_bends_toward_normal(self):
        """Test an oblique ray entering glass bends toward the normal."""
        from glint.core.ray import normalize, vec3
        from glint.materials.dielectric import scatter_dielectric

        n = 2000
        directions = ti.Vector.field(3, dtype=ti.f32, shape=n)

        @ti.kernel
        def test_kernel():
            incident = normalize(vec3(1.0, -1.0, 0.0))
            for i in range(n):
                d, a, s = scatter_dielectric(1.5, incident, vec3(0.0, 1.0, 0.0), 1)
                directions[i] = d

        test_kernel()
        dirs = directions.to_numpy()
        refracted = dirs[dirs[:, 1] < 0.0]
        assert len(refracted) > n // 2
        expected_sin = np.sin(np.pi / 4.0) / 1.5
        np.testing.assert_allclose(refracted[:, 0], expected_sin, atol=1e-4)


class TestDielectricRegistry:
    """Tests for the dielectric material registry."""

    def test_add_and_read_back(self):
        """Test registered IORs are readable from a kernel."""
        from glint.materials.dielectric import (
            add_dielectric_material,
            get_dielectric_ior,
            get_dielectric_material_count,
        )

        add_dielectric_material(1.33)
        idx = add_dielectric_material(2.4)
        assert idx == 1
        assert get_dielectric_material_count() == 2

        result = ti.field(dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            result[None] = get_dielectric_ior(1)

        test_kernel()
        assert abs(result[None] - 2.4) < 1e-6

    def test_ior_below_one_rejected(self):
        """Test IOR below 1 is rejected."""
        from glint.materials.dielectric import add_dielectric_material

        with pytest.raises(ValueError, match="less than 1.0"):
            add_dielectric_material(0.9)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
