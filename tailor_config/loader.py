"""
Configuration Loader (``tailor_config.loader``).

Responsibility
--------------
Loads a shop configuration YAML file and parses it into the frozen
``tailor_config.schema`` dataclasses.  Runtime callers use
``tailor_config.get_active_config()`` instead of calling this directly.

Invariants enforced
-------------------
* Every parsed object is a frozen dataclass from ``schema.py``.
* Notification credentials come from the environment variables the file
  names, never from the file itself.
* ``compute_checksum`` is deterministic for identical documents.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
"""

from __future__ import annotations

import hashlib
import json
import os
from pathlib import Path
from typing import Any, Mapping

import yaml

from tailor_config.schema import (
    NotificationConfig,
    ShopConfig,
    StorageConfig,
    WorkflowConfig,
)
from tailor_kernel.domain.catalog import GarmentCatalog, StitchingQueueRule
from tailor_kernel.domain.order import Department


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def _strings(value: Any) -> tuple[str, ...]:
    return tuple(str(v) for v in (value or ()))


def parse_catalog(data: dict[str, Any]) -> GarmentCatalog:
    """Parse the ``garments`` section into a GarmentCatalog."""
    return GarmentCatalog(
        garment_types=_strings(data.get("catalogue")),
        direct_to_finishing=_strings(data.get("direct_to_finishing")),
        stitching_queues=tuple(
            StitchingQueueRule(
                department=Department(queue["department"]),
                garment_types=_strings(queue.get("garments")),
            )
            for queue in data.get("stitching_queues") or ()
        ),
        measurement_fields=tuple(
            (str(garment), _strings(fields))
            for garment, fields in (data.get("measurements") or {}).items()
        ),
    )


def parse_notification(
    data: dict[str, Any],
    environ: Mapping[str, str],
) -> NotificationConfig:
    sid_env = data.get("account_sid_env", "TWILIO_ACCOUNT_SID")
    token_env = data.get("auth_token_env", "TWILIO_AUTH_TOKEN")
    return NotificationConfig(
        channel=data.get("channel", "log"),
        template=data.get("template") or None,
        from_number=str(data.get("from_number") or ""),
        default_country_code=str(data.get("default_country_code") or ""),
        account_sid_env=sid_env,
        auth_token_env=token_env,
        account_sid=environ.get(sid_env),
        auth_token=environ.get(token_env),
    )


def parse_shop_config(
    data: dict[str, Any],
    environ: Mapping[str, str] | None = None,
) -> ShopConfig:
    """
    Parse a validated configuration document into a ShopConfig.

    Args:
        data: The YAML document.
        environ: Environment used to resolve credentials; defaults to
            ``os.environ``.

    Raises:
        KeyError: if required keys are missing.
    """
    environ = os.environ if environ is None else environ
    shop = data["shop"]
    storage = data.get("storage") or {}
    workflow = data.get("workflow") or {}

    return ShopConfig(
        shop_name=shop["name"],
        bill_prefix=shop.get("bill_prefix", "ST"),
        catalog=parse_catalog(data["garments"]),
        storage=StorageConfig(
            collection_key=storage.get("collection_key", "tailorOrders"),
            database_url=storage.get("database_url") or None,
        ),
        workflow=WorkflowConfig(
            poll_interval_seconds=float(workflow.get("poll_interval_seconds", 2)),
            max_write_attempts=int(workflow.get("max_write_attempts", 3)),
        ),
        notification=parse_notification(data.get("notification") or {}, environ),
        checksum=compute_checksum(data),
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
