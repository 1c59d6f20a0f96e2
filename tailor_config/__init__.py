"""
tailor_config -- single public entrypoint for shop configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  No other component reads configuration files
    or environment variables directly.

Architecture position:
    Configuration -- YAML-driven, validated before parsing.  Sits above
    ``tailor_kernel`` (it builds the kernel's ``GarmentCatalog``) and below
    ``tailor_services``.  The kernel and engines MUST NEVER import from
    ``tailor_config``.

Failure modes:
    - ``FileNotFoundError`` -- configuration file missing.
    - ``ConfigValidationError`` -- the document failed validation; every
      problem is listed.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``tailor_config_loaded`` log entry with the shop name, source path and
    document checksum.
"""

from __future__ import annotations

from pathlib import Path
from typing import Mapping

from tailor_config.loader import load_yaml_file, parse_shop_config
from tailor_config.schema import (
    NotificationConfig,
    ShopConfig,
    StorageConfig,
    WorkflowConfig,
)
from tailor_config.validator import ConfigValidationError, validate_shop_data
from tailor_kernel.logging_config import get_logger

_logger = get_logger("config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"


def get_active_config(
    config_path: Path | str | None = None,
    environ: Mapping[str, str] | None = None,
) -> ShopConfig:
    """The ONLY public configuration entrypoint.

    Args:
        config_path: YAML file to load; defaults to ``sets/default.yaml``.
        environ: Environment for credential lookup; defaults to ``os.environ``.

    Raises:
        FileNotFoundError: If the file does not exist.
        ConfigValidationError: If the document fails validation.
    """
    path = Path(config_path) if config_path is not None else DEFAULT_CONFIG_PATH
    data = load_yaml_file(path)

    validate_shop_data(data).raise_if_invalid()
    config = parse_shop_config(data, environ)

    _logger.info(
        "tailor_config_loaded",
        extra={
            "shop_name": config.shop_name,
            "config_path": str(path),
            "checksum": config.checksum,
            "garment_count": len(config.catalog.garment_types),
            "stitching_queue_count": len(config.catalog.stitching_queues),
            "storage_backend": "sql" if config.storage.database_url else "memory",
            "notification_channel": config.notification.channel,
        },
    )
    return config


__all__ = [
    "get_active_config",
    "ShopConfig",
    "StorageConfig",
    "WorkflowConfig",
    "NotificationConfig",
    "ConfigValidationError",
    "DEFAULT_CONFIG_PATH",
]
