"""
Station wiring from a ShopConfig.

Builds the store, notifier and services a station needs from the active
configuration, so callers never construct collaborators by hand.

Usage:
    config = get_active_config()
    store = build_store(config)
    coordinator = build_coordinator(config, store)
"""

from __future__ import annotations

from typing import Callable

from sqlalchemy.orm import sessionmaker

from tailor_config.schema import ShopConfig
from tailor_kernel.db.engine import build_engine, create_tables
from tailor_kernel.domain.clock import Clock
from tailor_kernel.domain.order import Department, Order
from tailor_kernel.logging_config import get_logger
from tailor_kernel.storage.base import OrderStore
from tailor_kernel.storage.memory import InMemoryOrderStore
from tailor_kernel.storage.sql import SqlOrderStore
from tailor_services.billing_service import BillingService
from tailor_services.claim_coordinator import ClaimCoordinator
from tailor_services.notifier import (
    DEFAULT_COMPLETION_TEMPLATE,
    LoggingNotifier,
    Notifier,
    TwilioNotifier,
)
from tailor_services.queue_poller import QueuePoller

logger = get_logger("services.bootstrap")


def build_store(config: ShopConfig, clock: Clock | None = None) -> OrderStore:
    """In-memory store, or a SQL store when a database URL is configured."""
    storage = config.storage
    if not storage.database_url:
        return InMemoryOrderStore(collection_key=storage.collection_key)

    engine = build_engine(storage.database_url)
    create_tables(engine)
    logger.info(
        "order_store_ready",
        extra={"backend": engine.dialect.name, "collection_key": storage.collection_key},
    )
    return SqlOrderStore(
        sessionmaker(bind=engine, expire_on_commit=False),
        collection_key=storage.collection_key,
        clock=clock,
    )


def build_notifier(config: ShopConfig) -> Notifier:
    settings = config.notification
    template = settings.template or DEFAULT_COMPLETION_TEMPLATE
    if settings.channel == "log":
        return LoggingNotifier(template=template)
    return TwilioNotifier(
        from_number=settings.from_number,
        account_sid=settings.account_sid,
        auth_token=settings.auth_token,
        channel=settings.channel,
        template=template,
        default_country_code=settings.default_country_code,
    )


def build_coordinator(
    config: ShopConfig,
    store: OrderStore,
    notifier: Notifier | None = None,
    clock: Clock | None = None,
) -> ClaimCoordinator:
    return ClaimCoordinator(
        store,
        notifier=notifier or build_notifier(config),
        clock=clock,
        catalog=config.catalog,
        max_attempts=config.workflow.max_write_attempts,
    )


def build_billing_service(
    config: ShopConfig,
    store: OrderStore,
    clock: Clock | None = None,
) -> BillingService:
    return BillingService(
        store,
        clock=clock,
        catalog=config.catalog,
        bill_prefix=config.bill_prefix,
        max_attempts=config.workflow.max_write_attempts,
    )


def build_poller(
    config: ShopConfig,
    store: OrderStore,
    department: Department | str,
    on_update: Callable[[tuple[Order, ...]], None],
) -> QueuePoller:
    return QueuePoller(
        store,
        department,
        on_update,
        poll_interval_seconds=config.workflow.poll_interval_seconds,
        catalog=config.catalog,
    )
