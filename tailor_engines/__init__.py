"""
Module: tailor_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure rule
    engines.  This is the canonical import surface for tailor_services.

Architecture position:
    Engines -- pure rule layer, zero I/O.
    May only import tailor_kernel domain types and exceptions.
    MUST NOT import tailor_services or tailor_config.

Invariants enforced:
    - Purity: engines NEVER call ``datetime.now()``; callers pass
      timestamps in.
    - Decimal-only arithmetic for money.
    - Determinism: identical inputs always produce identical outputs.

Usage:
    from tailor_engines.workflow import next_status, department_queue_of
    from tailor_engines.work_queue import list_queue
    from tailor_engines.billing import compute_totals
"""

from tailor_engines.billing import (
    BillTotals,
    compute_totals,
    customers_from_orders,
    generate_bill_no,
    measurement_fields_for,
    validate_for_billing,
    validate_for_production,
)
from tailor_engines.work_queue import (
    SORT_KEYS,
    find_unrouted,
    list_pending,
    list_queue,
)
from tailor_engines.workflow import (
    RuleCheck,
    RuleOutcome,
    StageProgress,
    check_claim,
    check_complete,
    check_release,
    department_queue_of,
    next_status,
    require_next_status,
    route_department,
    stage_path,
    stage_progress,
)

__all__ = [
    # Workflow
    "route_department",
    "next_status",
    "require_next_status",
    "department_queue_of",
    "stage_path",
    "stage_progress",
    "StageProgress",
    "check_claim",
    "check_complete",
    "check_release",
    "RuleCheck",
    "RuleOutcome",
    # Work queue
    "list_queue",
    "list_pending",
    "find_unrouted",
    "SORT_KEYS",
    # Billing
    "BillTotals",
    "compute_totals",
    "validate_for_billing",
    "validate_for_production",
    "measurement_fields_for",
    "generate_bill_no",
    "customers_from_orders",
]
