"""
Typed Exception Hierarchy for the Tailor Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Every station (cutting table, stitching bench, ironing counter) reacts to
errors differently: a claim conflict refreshes the queue, a validation
failure goes back to the billing counter, a terminal-state error is a bug
upstream.  Callers must be able to catch by type, never by parsing messages:

  1. Every error has a TYPED exception class.
  2. Every exception has a CODE class attribute (machine-readable).
  3. Exceptions carry structured DATA as attributes.

Example:
    try:
        coordinator.claim(order_id, actor)
    except ClaimConflictError as e:
        show_toast(f"Order {e.order_id} already taken by {e.held_by_name}")
        queue.refresh()

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    TailorKernelError (base)
    |
    +-- OrderError
    |   +-- OrderNotFoundError
    |   +-- OrderValidationError
    |
    +-- WorkflowError
    |   +-- TerminalStateError
    |   +-- InvalidStatusError
    |   +-- InvalidTransitionError
    |
    +-- ConflictError
    |   +-- ClaimConflictError
    |   +-- NotInQueueError
    |   +-- NotAssignedError
    |   +-- StaleCollectionError
    |
    +-- NotificationError
    |   +-- NotificationFailedError
    |
    +-- QueueError
    |   +-- InvalidSortKeyError
    |
    +-- StorageError
        +-- UnsupportedSchemaVersionError
        +-- CorruptCollectionError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category      | Code                        | When Raised
--------------|-----------------------------|-------------------------------------
Order         | ORDER_NOT_FOUND             | Order id not in the collection
              | ORDER_VALIDATION_FAILED     | Missing customer name / garment type
--------------|-----------------------------|-------------------------------------
Workflow      | TERMINAL_STATE              | Advancing a completed order
              | INVALID_STATUS              | Status string outside the pipeline
              | INVALID_TRANSITION          | Action not valid from this status
--------------|-----------------------------|-------------------------------------
Conflict      | CLAIM_CONFLICT              | Order already claimed by another actor
              | NOT_IN_QUEUE                | Order is not in the actor's queue
              | NOT_ASSIGNED                | Actor does not hold the order
              | STALE_COLLECTION            | Collection changed since it was read
--------------|-----------------------------|-------------------------------------
Notification  | NOTIFICATION_FAILED         | SMS/WhatsApp gateway rejected a send
--------------|-----------------------------|-------------------------------------
Queue         | INVALID_SORT_KEY            | Unknown sort column or direction
--------------|-----------------------------|-------------------------------------
Storage       | UNSUPPORTED_SCHEMA_VERSION  | Stored blob written by a newer release
              | CORRUPT_COLLECTION          | Stored blob cannot be decoded

===============================================================================
HANDLING PATTERNS
===============================================================================

1. ConflictError subclasses mean "your view is stale": refresh and let the
   worker retry.  They are never retried automatically, except for
   StaleCollectionError which the coordinator retries from a fresh read.

2. TerminalStateError is a programming error upstream (a completed order
   should never offer a "done" button).  It is raised before any write.

3. NotificationFailedError never propagates out of the coordinator: the
   completion policy is best effort.
"""


class TailorKernelError(Exception):
    """
    Base exception for all tailor kernel errors.

    All subclasses must have a ``code`` class attribute for machine-readable
    error identification.
    """

    code: str = "TAILOR_KERNEL_ERROR"


# Order-related exceptions


class OrderError(TailorKernelError):
    """Base exception for order record errors."""

    code: str = "ORDER_ERROR"


class OrderNotFoundError(OrderError):
    """Order with given id is not in the stored collection."""

    code: str = "ORDER_NOT_FOUND"

    def __init__(self, order_id: str):
        self.order_id = order_id
        super().__init__(f"Order not found: {order_id}")


class OrderValidationError(OrderError):
    """
    Order fails the minimum fields required for billing or a transition.

    ``problems`` is a tuple of ``(field, message)`` pairs so the billing
    form can highlight each offending field.
    """

    code: str = "ORDER_VALIDATION_FAILED"

    def __init__(self, order_id: str | None, problems: list[tuple[str, str]]):
        self.order_id = order_id
        self.problems = tuple(problems)
        details = "; ".join(f"{field}: {msg}" for field, msg in self.problems)
        super().__init__(
            f"Order {order_id or '<new>'} failed validation: {details}"
        )


# Workflow-related exceptions


class WorkflowError(TailorKernelError):
    """Base exception for pipeline progression errors."""

    code: str = "WORKFLOW_ERROR"


class TerminalStateError(WorkflowError):
    """Order is already completed; no further transition exists."""

    code: str = "TERMINAL_STATE"

    def __init__(self, order_id: str | None, status: str):
        self.order_id = order_id
        self.status = status
        super().__init__(
            f"Order {order_id} is in terminal status '{status}' "
            "and cannot advance"
        )


class InvalidStatusError(WorkflowError):
    """Status value is not one of the pipeline stages."""

    code: str = "INVALID_STATUS"

    def __init__(self, status: str):
        self.status = status
        super().__init__(f"Unknown order status: {status!r}")


class InvalidTransitionError(WorkflowError):
    """The requested action is not valid from the order's current status."""

    code: str = "INVALID_TRANSITION"

    def __init__(self, order_id: str, status: str, action: str):
        self.order_id = order_id
        self.status = status
        self.action = action
        super().__init__(
            f"Cannot {action} order {order_id} while it is '{status}'"
        )


# Conflict exceptions (stale views, competing stations)


class ConflictError(TailorKernelError):
    """Base exception for conflicts between stations sharing the collection."""

    code: str = "CONFLICT"


class ClaimConflictError(ConflictError):
    """Order is already claimed by a different actor."""

    code: str = "CLAIM_CONFLICT"

    def __init__(self, order_id: str, held_by_id: str, held_by_name: str):
        self.order_id = order_id
        self.held_by_id = held_by_id
        self.held_by_name = held_by_name
        super().__init__(
            f"Order {order_id} already taken by {held_by_name} ({held_by_id})"
        )


class NotInQueueError(ConflictError):
    """Order does not currently belong to the actor's department queue."""

    code: str = "NOT_IN_QUEUE"

    def __init__(self, order_id: str, department: str, actual_queue: str | None):
        self.order_id = order_id
        self.department = department
        self.actual_queue = actual_queue
        super().__init__(
            f"Order {order_id} is not in the {department} queue "
            f"(currently: {actual_queue or 'no queue'})"
        )


class NotAssignedError(ConflictError):
    """Actor tried to complete or release an order they do not hold."""

    code: str = "NOT_ASSIGNED"

    def __init__(self, order_id: str, actor_id: str, held_by_id: str | None):
        self.order_id = order_id
        self.actor_id = actor_id
        self.held_by_id = held_by_id
        holder = held_by_id or "nobody"
        super().__init__(
            f"Order {order_id} is held by {holder}, not by {actor_id}"
        )


class StaleCollectionError(ConflictError):
    """The stored collection changed since it was read (optimistic lock)."""

    code: str = "STALE_COLLECTION"

    def __init__(self, collection_key: str, expected_revision: int, actual_revision: int | None):
        self.collection_key = collection_key
        self.expected_revision = expected_revision
        self.actual_revision = actual_revision
        super().__init__(
            f"Collection '{collection_key}' was modified by another writer: "
            f"expected revision {expected_revision}, found {actual_revision}"
        )


# Notification exceptions


class NotificationError(TailorKernelError):
    """Base exception for customer notification errors."""

    code: str = "NOTIFICATION_ERROR"


class NotificationFailedError(NotificationError):
    """The message gateway rejected or failed to deliver a notification."""

    code: str = "NOTIFICATION_FAILED"

    def __init__(self, order_id: str, channel: str, reason: str):
        self.order_id = order_id
        self.channel = channel
        self.reason = reason
        super().__init__(
            f"Failed to notify customer for order {order_id} via {channel}: {reason}"
        )


# Queue exceptions


class QueueError(TailorKernelError):
    """Base exception for work queue query errors."""

    code: str = "QUEUE_ERROR"


class InvalidSortKeyError(QueueError):
    """Sort column or direction is not supported."""

    code: str = "INVALID_SORT_KEY"

    def __init__(self, sort_key: str, allowed: tuple[str, ...]):
        self.sort_key = sort_key
        self.allowed = allowed
        super().__init__(
            f"Cannot sort by {sort_key!r}; expected one of: {', '.join(allowed)}"
        )


# Storage exceptions


class StorageError(TailorKernelError):
    """Base exception for order collection storage errors."""

    code: str = "STORAGE_ERROR"


class UnsupportedSchemaVersionError(StorageError):
    """Stored collection was written with a newer schema version."""

    code: str = "UNSUPPORTED_SCHEMA_VERSION"

    def __init__(self, schema_version: int, supported: int):
        self.schema_version = schema_version
        self.supported = supported
        super().__init__(
            f"Unsupported collection schema version {schema_version} "
            f"(this release reads up to {supported})"
        )


class CorruptCollectionError(StorageError):
    """Stored collection could not be decoded into orders."""

    code: str = "CORRUPT_COLLECTION"

    def __init__(self, reason: str, record_index: int | None = None):
        self.reason = reason
        self.record_index = record_index
        where = f" (record {record_index})" if record_index is not None else ""
        super().__init__(f"Corrupt order collection{where}: {reason}")
