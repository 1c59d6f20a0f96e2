"""
Configuration Schema (``tailor_config.schema``).

Responsibility
--------------
Frozen dataclasses describing a shop configuration: identity, storage,
polling and write-retry settings, customer notification, and the garment
catalogue that drives routing.

Architecture position
---------------------
**Config layer** -- pure data definitions.  Imports only the kernel's
``GarmentCatalog`` so that engines receive the catalogue unchanged.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from tailor_kernel.domain.catalog import DEFAULT_CATALOG, GarmentCatalog

NOTIFICATION_CHANNELS = ("log", "sms", "whatsapp")


@dataclass(frozen=True)
class StorageConfig:
    """Where the order collection lives.  ``database_url=None`` means in memory."""

    collection_key: str = "tailorOrders"
    database_url: str | None = None


@dataclass(frozen=True)
class WorkflowConfig:
    poll_interval_seconds: float = 2.0
    max_write_attempts: int = 3


@dataclass(frozen=True)
class NotificationConfig:
    """
    Customer notification settings.

    Credentials are never stored in YAML: the file names the environment
    variables and the loader resolves them into ``account_sid`` and
    ``auth_token``.
    """

    channel: str = "log"
    template: str | None = None
    from_number: str = ""
    default_country_code: str = ""
    account_sid_env: str = "TWILIO_ACCOUNT_SID"
    auth_token_env: str = "TWILIO_AUTH_TOKEN"
    account_sid: str | None = field(default=None, repr=False)
    auth_token: str | None = field(default=None, repr=False)


@dataclass(frozen=True)
class ShopConfig:
    """Complete runtime configuration for one shop."""

    shop_name: str
    bill_prefix: str = "ST"
    catalog: GarmentCatalog = DEFAULT_CATALOG
    storage: StorageConfig = field(default_factory=StorageConfig)
    workflow: WorkflowConfig = field(default_factory=WorkflowConfig)
    notification: NotificationConfig = field(default_factory=NotificationConfig)
    checksum: str = ""
