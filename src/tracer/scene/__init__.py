"""Scene module for scene storage and construction.

Components:
    intersection: Sphere arena in Taichi fields and closest-hit queries
    manager: Unified scene manager coordinating spheres and materials
    demo_scenes: Ready-made scenes paired with cameras

Scene data is organized for parallel access from render kernels:
    - Structure-of-Arrays layout for sphere data
    - A material ID table mapping unified IDs to per-type registries
"""

from .demo_scenes import (
    DEMO_SCENES,
    create_random_scene,
    create_showcase_scene,
    create_two_sphere_scene,
)
from .intersection import (
    MAX_SPHERES,
    add_sphere,
    clear_scene,
    get_sphere_count,
    intersect_scene,
)
from .manager import (
    MAX_MATERIALS,
    MaterialInfo,
    MaterialType,
    SceneConfig,
    SceneManager,
    SphereInfo,
    clear_all,
    get_material_type,
    get_material_type_index,
)

__all__ = [
    # Intersection module
    "add_sphere",
    "clear_scene",
    "get_sphere_count",
    "intersect_scene",
    "MAX_SPHERES",
    # Manager module
    "SceneManager",
    "MaterialType",
    "MaterialInfo",
    "SphereInfo",
    "SceneConfig",
    "MAX_MATERIALS",
    "clear_all",
    "get_material_type",
    "get_material_type_index",
    # Demo scenes
    "create_two_sphere_scene",
    "create_showcase_scene",
    "create_random_scene",
    "DEMO_SCENES",
]
