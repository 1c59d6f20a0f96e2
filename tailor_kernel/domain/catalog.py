"""
GarmentCatalog -- garment routing and measurement tables.

Responsibility:
    Holds the shop's garment catalogue: which garments exist, which skip
    cutting and stitching, which stitching queue takes which garment, and
    the measurement fields the billing form asks for per garment.

Architecture position:
    Kernel > Domain -- pure value object.  Built from YAML by
    ``tailor_config`` and passed into the engines; engines fall back to
    ``DEFAULT_CATALOG`` when none is given.

Invariants enforced:
    - Garment names are compared after trimming and case-folding, so
      ``" blouse"`` and ``"Blouse"`` route identically.
    - ``stitching_queues`` order is precedence for orders that mix
      garments of several queues.
"""

from __future__ import annotations

from dataclasses import dataclass

from tailor_kernel.domain.order import Department


def normalize_garment(name: str | None) -> str:
    """Canonical comparison key for a garment name."""
    return (name or "").strip().casefold()


@dataclass(frozen=True)
class StitchingQueueRule:
    """One stitching department and the garments it takes."""

    department: Department
    garment_types: tuple[str, ...]

    def accepts(self, garment_type: str | None) -> bool:
        key = normalize_garment(garment_type)
        return any(normalize_garment(g) == key for g in self.garment_types)


@dataclass(frozen=True)
class GarmentCatalog:
    """Garment catalogue consumed by the workflow and billing engines."""

    garment_types: tuple[str, ...]
    direct_to_finishing: tuple[str, ...] = ()
    stitching_queues: tuple[StitchingQueueRule, ...] = ()
    measurement_fields: tuple[tuple[str, tuple[str, ...]], ...] = ()

    def is_known(self, garment_type: str | None) -> bool:
        key = normalize_garment(garment_type)
        return bool(key) and any(normalize_garment(g) == key for g in self.garment_types)

    def skips_stitching(self, garment_type: str | None) -> bool:
        key = normalize_garment(garment_type)
        return bool(key) and any(
            normalize_garment(g) == key for g in self.direct_to_finishing
        )

    def stitching_queue_for(self, garment_type: str | None) -> Department | None:
        for rule in self.stitching_queues:
            if rule.accepts(garment_type):
                return rule.department
        return None

    def measurement_fields_for(self, garment_type: str | None) -> tuple[str, ...]:
        key = normalize_garment(garment_type)
        for name, fields in self.measurement_fields:
            if normalize_garment(name) == key:
                return fields
        return ()

    def canonical_name(self, garment_type: str | None) -> str | None:
        """The catalogue spelling of a garment name, or None if unknown."""
        key = normalize_garment(garment_type)
        for g in self.garment_types:
            if normalize_garment(g) == key:
                return g
        return None


DEFAULT_CATALOG = GarmentCatalog(
    garment_types=(
        "Kurti", "Pant", "Blouse", "Salwar", "Chudi", "Jacket", "Saree", "Other",
    ),
    direct_to_finishing=("Saree",),
    stitching_queues=(
        StitchingQueueRule(Department.BLOUSE_STITCHING, ("Blouse",)),
        StitchingQueueRule(
            Department.DRESS_STITCHING,
            ("Kurti", "Jacket", "Pant", "Salwar", "Chudi", "Other"),
        ),
    ),
    measurement_fields=(
        ("Kurti", (
            "Length", "Shoulder", "Sleeve", "Chest", "Waist", "Hips",
            "Front Neck", "Back Neck",
        )),
        ("Pant", ("Length", "Waist", "Hips", "Thigh", "Knee", "Bottom")),
        ("Blouse", (
            "Length", "Shoulder", "Sleeve", "Chest", "Waist",
            "Front Neck", "Back Neck",
        )),
        ("Salwar", ("Length", "Bottom")),
        ("Chudi", ("Length", "Waist", "Hips", "Thigh", "Knee", "Bottom")),
        ("Jacket", ("Length", "Shoulder", "Chest", "Waist", "Hips")),
        ("Other", ("Custom Measurements",)),
    ),
)
