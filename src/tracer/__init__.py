"""Taichi-based Monte-Carlo ray tracer for sphere scenes.

This package renders scenes of spheres with diffuse, metallic and glass
materials by tracing camera rays through the scene and averaging many
jittered samples per pixel.

Subpackages:
    core: Rays, vector utilities, random sampling, the color integrator
        and the progressive render loop
    geometry: Hit records and the sphere primitive
    materials: Lambertian, metal and dielectric scattering
    scene: Sphere storage, the scene manager and demo scenes
    camera: Thin-lens camera with depth of field
    preview: Image export (PPM, PNG) and Matplotlib preview

Taichi must be initialized (see ``src.tracer.runtime.init_taichi``) before
importing modules that allocate fields.
"""

__version__ = "0.1.0"
