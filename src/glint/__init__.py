"""Progressive path tracer built on Taichi.

Renders scenes of spheres with Lambertian, metal and dielectric materials,
accumulating samples pass by pass while viewers watch the image converge.

Subpackages:
    core: Ray utilities, configuration, integrator, accumulation and render sessions
    geometry: Sphere primitive and intersection
    materials: Lambertian, metal and dielectric scattering
    scene: Scene registries, material dispatch and preset scenes
    camera: Thin-lens camera with ray generation
    preview: Snapshot publishing, Matplotlib/GGUI viewers and PNG export
"""

__version__ = "0.1.0"
