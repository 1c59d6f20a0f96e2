"""
tailor_services -- Package init and public API.

Responsibility:
    Stateful services that compose the pure engines (tailor_engines/)
    with the order store, the clock and message transports.  This is the
    **only** layer that writes orders, reads wall-clock time, or sends
    customer messages.

Architecture position:
    Services -- imperative shell over engines + kernel.

    Dependency direction:
        tailor_services/ -> tailor_engines/  (allowed)
        tailor_services/ -> tailor_kernel/   (allowed)
        tailor_engines/  -> tailor_services/ (FORBIDDEN)
        tailor_kernel/   -> tailor_services/ (FORBIDDEN)
"""

from tailor_services.billing_service import BillingService
from tailor_services.claim_coordinator import ClaimCoordinator, CompletionResult
from tailor_services.notifier import (
    DEFAULT_COMPLETION_TEMPLATE,
    LoggingNotifier,
    NotificationResult,
    Notifier,
    TwilioNotifier,
    render_completion_message,
)
from tailor_services.queue_poller import QueuePoller

__all__ = [
    "BillingService",
    "ClaimCoordinator",
    "CompletionResult",
    "Notifier",
    "NotificationResult",
    "LoggingNotifier",
    "TwilioNotifier",
    "render_completion_message",
    "DEFAULT_COMPLETION_TEMPLATE",
    "QueuePoller",
]
