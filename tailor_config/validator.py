"""
Configuration Validator (``tailor_config.validator``).

Responsibility
--------------
Validates a raw shop configuration document before it is parsed, so that
every problem is reported at once instead of failing on the first.

Invariants enforced
-------------------
* Stitching queues name known departments, list only catalogue garments,
  and no garment belongs to two queues.
* Direct-to-finishing garments are catalogue garments that appear in no
  stitching queue.
* Measurement tables only describe catalogue garments.
* Poll interval and write attempts are positive.
* The notification channel is one of ``log``, ``sms``, ``whatsapp``.

Failure modes
-------------
* ``ConfigValidationError`` listing every error.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from tailor_config.schema import NOTIFICATION_CHANNELS
from tailor_kernel.domain.catalog import normalize_garment
from tailor_kernel.domain.order import Department, OrderStatus


class ConfigValidationError(ValueError):
    """Configuration document failed validation."""

    def __init__(self, errors: list[str]):
        self.errors = tuple(errors)
        super().__init__(
            "Configuration validation failed:\n"
            + "\n".join(f"  - {e}" for e in self.errors)
        )


@dataclass
class ConfigValidationResult:
    """
    Result of configuration validation.

    ``is_valid`` is True only when ``errors`` is empty.
    """

    errors: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)

    def raise_if_invalid(self) -> None:
        if not self.is_valid:
            raise ConfigValidationError(self.errors)


def _names(value: Any) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, list):
        return [str(value)]
    return [str(v) for v in value]


def validate_shop_data(data: dict[str, Any]) -> ConfigValidationResult:
    """Validate a raw configuration document (as loaded from YAML)."""
    result = ConfigValidationResult()

    if not str((data.get("shop") or {}).get("name", "")).strip():
        result.add_error("shop.name is required")

    garments = data.get("garments") or {}
    catalogue = _names(garments.get("catalogue"))
    known = {normalize_garment(g) for g in catalogue}
    if not catalogue:
        result.add_error("garments.catalogue must list at least one garment")

    queue_of: dict[str, str] = {}
    for index, queue in enumerate(garments.get("stitching_queues") or []):
        department = str(queue.get("department", ""))
        try:
            dept = Department(department)
        except ValueError:
            result.add_error(f"stitching_queues[{index}]: unknown department {department!r}")
            continue
        if dept.stage is not OrderStatus.STITCHING:
            result.add_error(
                f"stitching_queues[{index}]: {department!r} is not a stitching department"
            )
        for garment in _names(queue.get("garments")):
            key = normalize_garment(garment)
            if key not in known:
                result.add_error(
                    f"stitching_queues[{index}]: garment {garment!r} is not in the catalogue"
                )
            if key in queue_of and queue_of[key] != department:
                result.add_error(
                    f"garment {garment!r} is in both {queue_of[key]!r} and {department!r}"
                )
            queue_of.setdefault(key, department)

    direct: set[str] = set()
    for garment in _names(garments.get("direct_to_finishing")):
        key = normalize_garment(garment)
        direct.add(key)
        if key not in known:
            result.add_error(f"direct_to_finishing: garment {garment!r} is not in the catalogue")
        if key in queue_of:
            result.add_error(
                f"direct_to_finishing: garment {garment!r} is also in stitching queue "
                f"{queue_of[key]!r}"
            )

    for garment in catalogue:
        key = normalize_garment(garment)
        if key not in queue_of and key not in direct:
            result.add_error(
                f"garments: {garment!r} is in no stitching queue and not direct_to_finishing"
            )

    for garment in (garments.get("measurements") or {}):
        if normalize_garment(str(garment)) not in known:
            result.add_error(f"measurements: garment {garment!r} is not in the catalogue")

    workflow = data.get("workflow") or {}
    if float(workflow.get("poll_interval_seconds", 2)) <= 0:
        result.add_error("workflow.poll_interval_seconds must be positive")
    if int(workflow.get("max_write_attempts", 3)) < 1:
        result.add_error("workflow.max_write_attempts must be at least 1")

    channel = (data.get("notification") or {}).get("channel", "log")
    if channel not in NOTIFICATION_CHANNELS:
        result.add_error(
            f"notification.channel {channel!r} must be one of {', '.join(NOTIFICATION_CHANNELS)}"
        )

    return result
