"""Scene manager: spheres, materials and scene files.

Materials of every kind share one ID space. Each ID maps to a material kind
(``MaterialType``) and to a slot in that kind's own parameter registry, so a
render kernel can look up the kind of a hit surface and dispatch to its
scatter function. Any number of spheres may use the same ID.

All arguments are checked when the scene is built. Once a scene exists, a
render never fails on bad data.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu, default_fp=ti.f64)
    >>> from src.tracer.scene.manager import SceneManager
    >>> scene = SceneManager()
    >>> gray = scene.add_lambertian_material((0.5, 0.5, 0.5))
    >>> scene.add_sphere((0.0, 0.0, -1.0), 0.5, gray)
    >>> scene.add_sphere((0.0, -100.5, -1.0), 100.0, gray)
    >>> scene.save_json("two_spheres.json")
"""

import json
import logging
import math
from dataclasses import dataclass, field
from enum import IntEnum
from pathlib import Path
from typing import Any

import taichi as ti

from src.tracer.camera.thin_lens import ThinLensCamera
from src.tracer.core.ray import to_vec3_array
from src.tracer.errors import ConfigurationError
from src.tracer.materials.dielectric import (
    MAX_DIELECTRIC_MATERIALS,
    add_dielectric_material,
    clear_dielectric_materials,
    validate_ior,
)
from src.tracer.materials.lambertian import (
    MAX_LAMBERTIAN_MATERIALS,
    add_lambertian_material,
    clear_lambertian_materials,
    validate_albedo,
)
from src.tracer.materials.metal import (
    MAX_METAL_MATERIALS,
    add_metal_material,
    clear_metal_materials,
    validate_fuzz,
)
from src.tracer.scene.intersection import (
    MAX_SPHERES,
    add_sphere,
    clear_scene,
    get_sphere_count,
)

logger = logging.getLogger(__name__)


class MaterialType(IntEnum):
    """Kinds of material a material ID can refer to."""

    LAMBERTIAN = 0
    METAL = 1
    DIELECTRIC = 2


MAX_MATERIALS = 1024

# Material ID table: kind and registry slot per ID
material_types = ti.field(dtype=ti.i32, shape=MAX_MATERIALS)
material_type_indices = ti.field(dtype=ti.i32, shape=MAX_MATERIALS)
num_materials = ti.field(dtype=ti.i32, shape=())


def clear_all() -> None:
    """Empty the sphere arena, the material registries and the ID table."""
    clear_scene()
    clear_lambertian_materials()
    clear_metal_materials()
    clear_dielectric_materials()
    num_materials[None] = 0


@ti.func
def get_material_type(material_id: ti.i32) -> ti.i32:
    """Look up the MaterialType of a material ID, or -1 if it is unknown."""
    kind = -1
    if 0 <= material_id < num_materials[None]:
        kind = material_types[material_id]
    return kind


@ti.func
def get_material_type_index(material_id: ti.i32) -> ti.i32:
    """Look up the registry slot of a material ID, or -1 if it is unknown.

    The slot indexes the registry of the material's own kind, for example
    ``metal_fuzzes[slot]`` for a metal.
    """
    slot = -1
    if 0 <= material_id < num_materials[None]:
        slot = material_type_indices[material_id]
    return slot


def _check_sphere_shape(center, radius) -> tuple[tuple[float, float, float], float]:
    """Validate a sphere's center and radius.

    Raises:
        ConfigurationError: If the center is not three finite numbers or the
            radius is zero, non-finite or not a number.
    """
    cx, cy, cz = (float(c) for c in to_vec3_array(center, "center"))
    try:
        radius = float(radius)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Sphere radius must be a number, got {radius!r}") from e
    if not math.isfinite(radius) or radius == 0.0:
        raise ConfigurationError(f"Sphere radius = {radius} must be finite and non-zero")
    return (cx, cy, cz), radius


@dataclass
class MaterialInfo:
    """Python-side record of a registered material.

    Attributes:
        material_id: The shared material ID.
        material_type: The kind of material.
        type_index: Slot in the registry of that kind.
        params: Validated parameters, as written to scene files.
    """

    material_id: int
    material_type: MaterialType
    type_index: int
    params: dict[str, Any]


@dataclass
class SphereInfo:
    """Python-side record of a sphere.

    Attributes:
        sphere_index: Slot in the sphere arena.
        center: Center point (x, y, z).
        radius: Radius, negative for a hollow shell.
        material_id: The material ID shading the sphere.
    """

    sphere_index: int
    center: tuple[float, float, float]
    radius: float
    material_id: int


@dataclass
class SceneConfig:
    """Plain-data form of a scene, as stored in scene files.

    ``spheres[k]["material_id"]`` is a position in ``materials``.
    """

    materials: list[dict[str, Any]] = field(default_factory=list)
    spheres: list[dict[str, Any]] = field(default_factory=list)


class SceneManager:
    """Builds the active scene and keeps a Python-side record of it.

    The scene itself lives in module-level Taichi fields, so there is only
    ever one active scene. Constructing a SceneManager empties it.

    Attributes:
        materials: MaterialInfo per material ID, in ID order.
        spheres: SphereInfo per sphere, in arena order.

    Example:
        >>> scene = SceneManager()
        >>> ground = scene.add_lambertian_material((0.8, 0.8, 0.0))
        >>> gold = scene.add_metal_material((0.8, 0.6, 0.2), fuzz=0.3)
        >>> glass = scene.add_dielectric_material(1.5)
        >>> scene.add_sphere((0, -100.5, -1), 100, ground)
        >>> scene.add_sphere((1, 0, -1), 0.5, gold)
        >>> scene.add_sphere((-1, 0, -1), 0.5, glass)
        >>> scene.add_sphere((-1, 0, -1), -0.45, glass)
    """

    def __init__(self) -> None:
        self.materials: list[MaterialInfo] = []
        self.spheres: list[SphereInfo] = []
        clear_all()

    def clear(self) -> None:
        """Remove every sphere and material."""
        clear_all()
        self.materials.clear()
        self.spheres.clear()
        logger.debug("Scene cleared")

    # =========================================================================
    # Materials
    # =========================================================================

    def _next_material_id(self) -> int:
        material_id = int(num_materials[None])
        if material_id >= MAX_MATERIALS:
            raise RuntimeError(f"Scene already holds the maximum of {MAX_MATERIALS} materials")
        return material_id

    def _register_material(
        self, material_type: MaterialType, type_index: int, params: dict[str, Any]
    ) -> int:
        material_id = self._next_material_id()
        material_types[material_id] = int(material_type)
        material_type_indices[material_id] = type_index
        num_materials[None] = material_id + 1

        self.materials.append(MaterialInfo(material_id, material_type, type_index, params))
        return material_id

    def add_lambertian_material(self, albedo: tuple[float, float, float]) -> int:
        """Register a diffuse material.

        Args:
            albedo: Reflectance (R, G, B), each component in [0, 1].

        Returns:
            The new material ID.

        Raises:
            ConfigurationError: If the albedo is malformed or out of range.
            RuntimeError: If the scene or the registry is full.
        """
        albedo = validate_albedo(albedo)
        self._next_material_id()
        type_index = add_lambertian_material(albedo)
        return self._register_material(MaterialType.LAMBERTIAN, type_index, {"albedo": albedo})

    def add_metal_material(self, albedo: tuple[float, float, float], fuzz: float = 0.0) -> int:
        """Register a metal.

        Args:
            albedo: Reflectance (R, G, B), each component in [0, 1].
            fuzz: Blur of the reflection. 0 is a perfect mirror; values
                above 1 are clamped to 1.

        Returns:
            The new material ID.

        Raises:
            ConfigurationError: If the albedo is invalid or fuzz is negative.
            RuntimeError: If the scene or the registry is full.
        """
        albedo = validate_albedo(albedo)
        fuzz = validate_fuzz(fuzz)
        self._next_material_id()
        type_index = add_metal_material(albedo, fuzz)
        return self._register_material(
            MaterialType.METAL, type_index, {"albedo": albedo, "fuzz": fuzz}
        )

    def add_dielectric_material(self, ior: float = 1.5) -> int:
        """Register a clear refractive material such as glass (1.5) or water (1.33).

        Raises:
            ConfigurationError: If ior is not a finite positive number.
            RuntimeError: If the scene or the registry is full.
        """
        ior = validate_ior(ior)
        self._next_material_id()
        type_index = add_dielectric_material(ior)
        return self._register_material(MaterialType.DIELECTRIC, type_index, {"ior": ior})

    def get_material_count(self) -> int:
        """Number of registered materials."""
        return int(num_materials[None])

    def get_material_info(self, material_id: int) -> MaterialInfo | None:
        if 0 <= material_id < len(self.materials):
            return self.materials[material_id]
        return None

    def get_material_type_python(self, material_id: int) -> MaterialType | None:
        """MaterialType of an ID, from Python. Kernels use ``get_material_type``."""
        info = self.get_material_info(material_id)
        return None if info is None else info.material_type

    # =========================================================================
    # Spheres
    # =========================================================================

    def add_sphere(
        self,
        center: tuple[float, float, float],
        radius: float,
        material_id: int,
    ) -> int:
        """Add a sphere shaded by an existing material.

        Args:
            center: Center point (x, y, z).
            radius: Non-zero radius. A negative radius flips the normals,
                which turns the sphere into a hollow shell.
            material_id: ID returned by one of the ``add_*_material`` methods.

        Returns:
            The sphere's slot in the arena.

        Raises:
            ConfigurationError: If the center, radius or material ID is invalid.
            RuntimeError: If the arena is full.
        """
        center, radius = _check_sphere_shape(center, radius)
        if not isinstance(material_id, int) or not 0 <= material_id < self.get_material_count():
            raise ConfigurationError(f"Unknown material_id {material_id!r}")

        sphere_index = add_sphere(center, radius, material_id)
        self.spheres.append(SphereInfo(sphere_index, center, radius, material_id))
        return sphere_index

    def add_lambertian_sphere(self, center, radius: float, albedo) -> tuple[int, int]:
        """Add a sphere with its own diffuse material.

        Returns:
            Tuple of (sphere_index, material_id).
        """
        material_id = self.add_lambertian_material(albedo)
        return self.add_sphere(center, radius, material_id), material_id

    def add_metal_sphere(self, center, radius: float, albedo, fuzz: float = 0.0) -> tuple[int, int]:
        """Add a sphere with its own metal material.

        Returns:
            Tuple of (sphere_index, material_id).
        """
        material_id = self.add_metal_material(albedo, fuzz)
        return self.add_sphere(center, radius, material_id), material_id

    def add_dielectric_sphere(self, center, radius: float, ior: float = 1.5) -> tuple[int, int]:
        """Add a sphere with its own dielectric material.

        Returns:
            Tuple of (sphere_index, material_id).
        """
        material_id = self.add_dielectric_material(ior)
        return self.add_sphere(center, radius, material_id), material_id

    def get_sphere_count(self) -> int:
        """Number of spheres in the arena."""
        return get_sphere_count()

    # =========================================================================
    # Scene Files
    # =========================================================================

    def to_config(self) -> SceneConfig:
        """Snapshot the scene as plain data."""
        materials = []
        for info in self.materials:
            entry: dict[str, Any] = {"type": info.material_type.name.lower()}
            entry.update(
                (key, list(value) if isinstance(value, tuple) else value)
                for key, value in info.params.items()
            )
            materials.append(entry)

        spheres = [
            {"center": list(s.center), "radius": s.radius, "material_id": s.material_id}
            for s in self.spheres
        ]
        return SceneConfig(materials=materials, spheres=spheres)

    @staticmethod
    def _check_material_entry(entry: Any) -> tuple[MaterialType, dict[str, Any]]:
        if not isinstance(entry, dict):
            raise ConfigurationError(f"Material entry must be an object, got {entry!r}")
        kind = str(entry.get("type", "")).lower()
        if kind == "lambertian":
            return MaterialType.LAMBERTIAN, {
                "albedo": validate_albedo(entry.get("albedo", (0.5, 0.5, 0.5)))
            }
        if kind == "metal":
            return MaterialType.METAL, {
                "albedo": validate_albedo(entry.get("albedo", (0.8, 0.8, 0.8))),
                "fuzz": validate_fuzz(entry.get("fuzz", 0.0)),
            }
        if kind == "dielectric":
            return MaterialType.DIELECTRIC, {"ior": validate_ior(entry.get("ior", 1.5))}
        raise ConfigurationError(f"Unknown material type {kind!r}")

    @staticmethod
    def _check_sphere_entry(entry: Any, material_count: int) -> dict[str, Any]:
        if not isinstance(entry, dict):
            raise ConfigurationError(f"Sphere entry must be an object, got {entry!r}")
        if "center" not in entry or "radius" not in entry:
            raise ConfigurationError(f"Sphere entry {entry!r} needs 'center' and 'radius'")
        center, radius = _check_sphere_shape(entry["center"], entry["radius"])
        material_id = entry.get("material_id", 0)
        if not isinstance(material_id, int) or not 0 <= material_id < material_count:
            raise ConfigurationError(f"Sphere entry {entry!r} has unknown material_id")
        return {"center": center, "radius": radius, "material_id": material_id}

    def from_config(self, config: SceneConfig) -> None:
        """Replace the scene with the one described by ``config``.

        The whole config is checked before the current scene is touched, so
        an invalid config leaves the scene as it was.

        Raises:
            ConfigurationError: If any material or sphere entry is invalid, or
                the scene does not fit in the arenas.
        """
        if not isinstance(config.materials, list) or not isinstance(config.spheres, list):
            raise ConfigurationError("Scene 'materials' and 'spheres' must be lists")

        materials = [self._check_material_entry(entry) for entry in config.materials]
        spheres = [self._check_sphere_entry(entry, len(materials)) for entry in config.spheres]

        limits = {
            MaterialType.LAMBERTIAN: MAX_LAMBERTIAN_MATERIALS,
            MaterialType.METAL: MAX_METAL_MATERIALS,
            MaterialType.DIELECTRIC: MAX_DIELECTRIC_MATERIALS,
        }
        for material_type, limit in limits.items():
            count = sum(1 for kind, _ in materials if kind == material_type)
            if count > limit:
                raise ConfigurationError(
                    f"Scene has {count} {material_type.name.lower()} materials, limit is {limit}"
                )
        if len(materials) > MAX_MATERIALS:
            raise ConfigurationError(
                f"Scene has {len(materials)} materials, limit is {MAX_MATERIALS}"
            )
        if len(spheres) > MAX_SPHERES:
            raise ConfigurationError(f"Scene has {len(spheres)} spheres, limit is {MAX_SPHERES}")

        self.clear()
        for material_type, params in materials:
            if material_type == MaterialType.LAMBERTIAN:
                self.add_lambertian_material(**params)
            elif material_type == MaterialType.METAL:
                self.add_metal_material(**params)
            else:
                self.add_dielectric_material(**params)
        for sphere in spheres:
            self.add_sphere(**sphere)

        logger.debug(
            "Built scene with %d materials and %d spheres", len(self.materials), len(self.spheres)
        )

    def to_dict(self) -> dict[str, Any]:
        """Scene as a JSON-ready dictionary with 'materials' and 'spheres'."""
        config = self.to_config()
        return {"materials": config.materials, "spheres": config.spheres}

    def from_dict(self, data: dict[str, Any]) -> None:
        """Replace the scene with one read from a dictionary.

        Raises:
            ConfigurationError: If the data does not describe a valid scene.
        """
        if not isinstance(data, dict):
            raise ConfigurationError(f"Scene data must be an object, got {type(data).__name__}")
        self.from_config(SceneConfig(data.get("materials", []), data.get("spheres", [])))

    def save_json(self, path: str | Path, camera: ThinLensCamera | None = None) -> None:
        """Write the scene, and a camera if given, to a JSON file."""
        data = self.to_dict()
        if camera is not None:
            data["camera"] = camera.to_dict()

        path = Path(path)
        path.write_text(json.dumps(data, indent=2))
        logger.info("Saved scene to %s", path)

    def load_json(self, path: str | Path) -> ThinLensCamera | None:
        """Replace the scene with one read from a JSON file.

        Args:
            path: A file written by ``save_json``.

        Returns:
            The camera stored in the file, or None if it has none.

        Raises:
            ConfigurationError: If the file is not valid JSON or the scene or
                camera in it is invalid.
            OSError: If the file cannot be read.
        """
        path = Path(path)
        try:
            data = json.loads(path.read_text())
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ConfigurationError(f"{path} is not valid JSON: {e}") from e

        camera = data.get("camera") if isinstance(data, dict) else None
        if camera is not None:
            camera = ThinLensCamera.from_dict(camera)

        self.from_dict(data)
        logger.info("Loaded %d spheres from %s", len(self.spheres), path)
        return camera

    @staticmethod
    def get_max_spheres() -> int:
        """Capacity of the sphere arena."""
        return MAX_SPHERES

    @staticmethod
    def get_max_materials() -> int:
        """Capacity of the material ID table."""
        return MAX_MATERIALS
