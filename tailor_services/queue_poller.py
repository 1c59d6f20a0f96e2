"""
QueuePoller -- Background refresh of one department's work queue.

Contract:
    Every ``poll_interval_seconds`` reads the order collection, filters it
    through ``list_queue`` for the station's department and hands the
    result to ``on_update``.  Stations see other stations' claims and
    completions within one interval.

Architecture: tailor_services.  Uses tailor_engines.work_queue for the
    pure filter and the kernel OrderStore for reads.  Never writes.

Invariants enforced:
    - ``tick()`` is public so tests can drive the poller synchronously.
    - After ``stop()`` returns, no result is delivered, even from a tick
      that was already reading when stop was called.
    - A failing tick is logged and the loop keeps polling.
    - Orders in production that belong to no queue are logged once per
      order id as ``unrouted_order`` while it stays unrouted.
"""

from __future__ import annotations

import threading
from typing import Callable, Iterable

from tailor_engines.work_queue import find_unrouted, list_queue, sort_orders
from tailor_kernel.domain.catalog import GarmentCatalog
from tailor_kernel.domain.order import Department, Order
from tailor_kernel.logging_config import get_logger
from tailor_kernel.storage.base import OrderStore

logger = get_logger("services.queue_poller")

DEFAULT_POLL_INTERVAL_SECONDS = 2.0


class QueuePoller:
    """Polls the store and delivers a department's queue to a callback.

    Non-goals:
        - NOT push-based sync; stations converge within one interval.
    """

    def __init__(
        self,
        store: OrderStore,
        department: Department | str,
        on_update: Callable[[tuple[Order, ...]], None],
        poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS,
        catalog: GarmentCatalog | None = None,
    ):
        if poll_interval_seconds <= 0:
            raise ValueError(f"poll_interval_seconds must be positive, got {poll_interval_seconds}")
        self._store = store
        self._department = Department(department)
        self._on_update = on_update
        self._interval = poll_interval_seconds
        self._catalog = catalog
        self._search: str | None = None
        self._sort_key: str | None = None
        self._sort_dir = "asc"
        self._garment_filter: tuple[str, ...] | None = None
        self._warned_unrouted: set[str] = set()
        self._stop_event = threading.Event()
        self._deliver_lock = threading.RLock()
        self._thread: threading.Thread | None = None

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    @property
    def department(self) -> Department:
        return self._department

    def set_query(
        self,
        search: str | None = None,
        sort_key: str | None = None,
        sort_dir: str = "asc",
        garment_filter: Iterable[str] | None = None,
    ) -> None:
        """Change the station's search and sort; takes effect next tick.

        Raises InvalidSortKeyError immediately for a bad key or direction.
        """
        sort_orders((), sort_key, sort_dir)
        self._search = search
        self._sort_key = sort_key
        self._sort_dir = sort_dir
        self._garment_filter = tuple(garment_filter) if garment_filter else None

    def tick(self) -> tuple[Order, ...] | None:
        """Poll once (public for testing).

        Returns the delivered queue, or None when the read failed or the
        poller was stopped before delivery.
        """
        try:
            orders = self._store.load_orders()
            self._warn_unrouted(orders)
            visible = list_queue(
                orders,
                self._department,
                search=self._search,
                sort_key=self._sort_key,
                sort_dir=self._sort_dir,
                garment_filter=self._garment_filter,
                catalog=self._catalog,
            )
        except Exception:
            logger.exception("queue_poll_failed", extra={"department": self._department.value})
            return None

        with self._deliver_lock:
            if self._stop_event.is_set():
                logger.debug("queue_poll_discarded", extra={"department": self._department.value})
                return None
            try:
                self._on_update(visible)
            except Exception:
                logger.exception(
                    "queue_delivery_failed", extra={"department": self._department.value}
                )
                return None
        return visible

    def start(self) -> None:
        """Start polling in a background thread."""
        if self._thread is not None and self._thread.is_alive():
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run_loop,
            name=f"queue-poller-{self._department.value}",
            daemon=True,
        )
        self._thread.start()
        logger.info(
            "queue_poller_started",
            extra={"department": self._department.value, "poll_interval": self._interval},
        )

    def stop(self, timeout: float = 5.0) -> None:
        """Stop polling; no result is delivered once this returns.

        Args:
            timeout: Max seconds to wait for the thread to finish.
        """
        with self._deliver_lock:
            self._stop_event.set()
        if (
            self._thread is not None
            and self._thread.is_alive()
            and self._thread is not threading.current_thread()
        ):
            self._thread.join(timeout=timeout)
        logger.info("queue_poller_stopped", extra={"department": self._department.value})

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    # -------------------------------------------------------------------------
    # Internal
    # -------------------------------------------------------------------------

    def _run_loop(self) -> None:
        while not self._stop_event.is_set():
            self.tick()
            self._stop_event.wait(timeout=self._interval)

    def _warn_unrouted(self, orders: tuple[Order, ...]) -> None:
        unrouted = find_unrouted(orders, self._catalog)
        # forget ids that were fixed or deleted
        self._warned_unrouted &= {order.id for order in unrouted}
        for order in unrouted:
            if order.id in self._warned_unrouted:
                continue
            self._warned_unrouted.add(order.id)
            logger.warning(
                "unrouted_order",
                extra={
                    "order_id": order.id,
                    "bill_no": order.bill_no,
                    "status": order.status,
                    "garment_types": [item.garment_type for item in order.items],
                },
            )
