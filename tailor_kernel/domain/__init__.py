"""
Pure domain layer.

Value objects for orders, departments and the garment catalogue, plus
the injectable clock.  NO dependencies on SQLAlchemy, the database or
any I/O.  All domain objects are immutable.
"""

from tailor_kernel.domain.catalog import (
    DEFAULT_CATALOG,
    GarmentCatalog,
    StitchingQueueRule,
    normalize_garment,
)
from tailor_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from tailor_kernel.domain.order import (
    STATUS_SEQUENCE,
    TERMINAL_STATUSES,
    Actor,
    Assignment,
    Customer,
    CustomerRef,
    Department,
    Item,
    Order,
    OrderStatus,
    parse_status,
)

__all__ = [
    # Order model
    "OrderStatus",
    "STATUS_SEQUENCE",
    "TERMINAL_STATUSES",
    "parse_status",
    "Department",
    "Item",
    "CustomerRef",
    "Assignment",
    "Order",
    "Actor",
    "Customer",
    # Catalogue
    "GarmentCatalog",
    "StitchingQueueRule",
    "DEFAULT_CATALOG",
    "normalize_garment",
    # Clock
    "Clock",
    "SystemClock",
    "DeterministicClock",
]
