"""
tailor_services.notifier -- Customer completion notifications.

Responsibility:
    Tell the customer their order is ready once it reaches ``completed``.
    The coordinator calls ``notify_customer`` exactly once per terminal
    transition, after the transition is stored.

Architecture position:
    Services layer.  Transport adapters (Twilio SMS / WhatsApp) live here;
    the kernel never sends messages.

Failure modes:
    - TwilioNotifier raises NotificationFailedError on transport errors.
      The coordinator treats notification as best effort: it logs the
      failure and never rolls back the status change.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from twilio.base.exceptions import TwilioException
from twilio.rest import Client

from tailor_kernel.domain.order import Order
from tailor_kernel.exceptions import NotificationFailedError
from tailor_kernel.logging_config import get_logger

logger = get_logger("services.notifier")

DEFAULT_COMPLETION_TEMPLATE = (
    "Dear {customer_name}, your order #{bill_no} is now completed and ready "
    "for pickup. Please collect it at your convenience. Thank you!"
)


@dataclass(frozen=True)
class NotificationResult:
    """Outcome of one notification attempt."""

    success: bool
    channel: str
    detail: str = ""


def render_completion_message(order: Order, template: str = DEFAULT_COMPLETION_TEMPLATE) -> str:
    """Fill the completion template from the order.

    Placeholders: ``{customer_name}``, ``{bill_no}``, ``{mobile}``,
    ``{balance}``.
    """
    return template.format(
        customer_name=order.customer.name,
        bill_no=order.bill_no,
        mobile=order.customer.mobile,
        balance=order.balance,
    )


class Notifier(ABC):
    """Sends the "ready for pickup" message for a completed order."""

    channel: str = "unknown"

    @abstractmethod
    def notify_customer(self, order: Order) -> NotificationResult:
        ...


class LoggingNotifier(Notifier):
    """Writes the rendered message to the log instead of sending it."""

    channel = "log"

    def __init__(self, template: str = DEFAULT_COMPLETION_TEMPLATE):
        self._template = template

    def notify_customer(self, order: Order) -> NotificationResult:
        message = render_completion_message(order, self._template)
        logger.info(
            "customer_message_logged",
            extra={
                "order_id": order.id,
                "bill_no": order.bill_no,
                "mobile": order.customer.mobile,
                "body": message,
            },
        )
        return NotificationResult(success=True, channel=self.channel, detail=message)


class TwilioNotifier(Notifier):
    """
    SMS or WhatsApp delivery through the Twilio REST API.

    ``client`` may be injected (tests pass a fake with ``messages.create``);
    otherwise one is built from the account credentials.
    """

    def __init__(
        self,
        from_number: str,
        account_sid: str | None = None,
        auth_token: str | None = None,
        channel: str = "sms",
        template: str = DEFAULT_COMPLETION_TEMPLATE,
        default_country_code: str = "",
        client: Client | None = None,
    ):
        if channel not in ("sms", "whatsapp"):
            raise ValueError(f"Unsupported notification channel: {channel!r}")
        if client is None:
            if not (account_sid and auth_token):
                raise ValueError("Twilio account_sid and auth_token are required")
            client = Client(account_sid, auth_token)
        self._client = client
        self._from_number = from_number
        self._template = template
        self._default_country_code = default_country_code
        self.channel = channel

    def _address(self, number: str) -> str:
        number = number.strip()
        if self._default_country_code and not number.startswith("+"):
            number = f"{self._default_country_code}{number}"
        if self.channel == "whatsapp" and not number.startswith("whatsapp:"):
            return f"whatsapp:{number}"
        return number

    def notify_customer(self, order: Order) -> NotificationResult:
        if not order.customer.mobile.strip():
            return NotificationResult(
                success=False, channel=self.channel, detail="order has no mobile number"
            )
        body = render_completion_message(order, self._template)
        try:
            message = self._client.messages.create(
                from_=self._address(self._from_number),
                to=self._address(order.customer.mobile),
                body=body,
            )
        except TwilioException as exc:
            raise NotificationFailedError(order.id, self.channel, str(exc)) from exc

        sid = getattr(message, "sid", "") or ""
        logger.info(
            "customer_message_sent",
            extra={"order_id": order.id, "channel": self.channel, "message_sid": sid},
        )
        return NotificationResult(success=True, channel=self.channel, detail=sid)
