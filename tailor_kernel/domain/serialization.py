"""
Order collection serialization.

The whole order collection is stored as one JSON document::

    {"schema_version": 1, "orders": [ {...}, ... ]}

Records use the billing counter's field names (``billNo``,
``customerName``, ``clothType``, ``tailorId`` ...).  Money is written as
strings and timestamps as ISO-8601.  ``totalAmount`` and ``balance`` are
written for readers of the raw blob but re-derived from items on load.

A bare JSON list is the legacy unversioned blob (schema version 0); it is
read and upgraded in place: numeric money, string ids, and a stale
``tailorName`` left behind after ``tailorId`` was cleared.
"""

from __future__ import annotations

import json
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Sequence

from tailor_kernel.domain.order import (
    Assignment,
    CustomerRef,
    Item,
    Order,
    OrderStatus,
    parse_status,
)
from tailor_kernel.exceptions import (
    CorruptCollectionError,
    InvalidStatusError,
    UnsupportedSchemaVersionError,
)

SCHEMA_VERSION = 1


def _json_serializer(obj: Any) -> Any:
    if isinstance(obj, Decimal):
        return str(obj)
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


# ---------------------------------------------------------------------------
# Encoding
# ---------------------------------------------------------------------------


def item_to_record(item: Item) -> dict[str, Any]:
    return {
        "clothType": item.garment_type,
        "qty": item.qty,
        "rate": item.rate,
        "description": item.description,
        "measurements": item.measurements_dict(),
    }


def order_to_record(order: Order) -> dict[str, Any]:
    record: dict[str, Any] = {
        "id": order.id,
        "billNo": order.bill_no,
        "customerName": order.customer.name,
        "mobile": order.customer.mobile,
        "items": [item_to_record(item) for item in order.items],
        "previousBalance": order.previous_balance,
        "advance": order.advance,
        "totalAmount": order.total_amount,
        "balance": order.balance,
        "billDate": order.bill_date,
        "deliveryDate": order.delivery_date,
        "instructions": order.instructions,
        "status": order.status.value,
        "completedAt": order.completed_at,
    }
    if order.assignment is not None:
        record["tailorId"] = order.assignment.actor_id
        record["tailorName"] = order.assignment.actor_name
        record["acceptedAt"] = order.assignment.claimed_at
    return record


def dump_collection(orders: Sequence[Order]) -> str:
    """Serialize the collection into the versioned JSON document."""
    document = {
        "schema_version": SCHEMA_VERSION,
        "orders": [order_to_record(order) for order in orders],
    }
    return json.dumps(document, default=_json_serializer, ensure_ascii=False)


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def _money(value: Any, field: str) -> Decimal:
    if value is None or value == "":
        return Decimal("0")
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"{field} is not a number: {value!r}") from None


def _qty(value: Any) -> int:
    if value is None or value == "":
        return 0
    try:
        return int(Decimal(str(value)))
    except InvalidOperation:
        raise ValueError(f"qty is not a number: {value!r}") from None


def _date(value: Any, field: str) -> date | None:
    if not value:
        return None
    try:
        # Legacy blobs carry full ISO timestamps where a date is expected.
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        raise ValueError(f"{field} is not an ISO date: {value!r}") from None


def _datetime(value: Any, field: str) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(str(value))
    except ValueError:
        raise ValueError(f"{field} is not an ISO timestamp: {value!r}") from None


def item_from_record(record: dict[str, Any]) -> Item:
    measurements = record.get("measurements") or {}
    if not isinstance(measurements, dict):
        raise ValueError("measurements must be an object")
    return Item(
        garment_type=_text(record.get("clothType")),
        qty=_qty(record.get("qty")),
        rate=_money(record.get("rate"), "rate"),
        description=_text(record.get("description")),
        measurements={str(k): _text(v) for k, v in measurements.items()},
    )


def order_from_record(record: dict[str, Any]) -> Order:
    """Decode one stored record.  Raises ValueError/KeyError on bad input."""
    if not isinstance(record, dict):
        raise ValueError("order record must be an object")
    order_id = record.get("id") or record.get("billNo")
    if not order_id:
        raise ValueError("order record has neither id nor billNo")
    items = record.get("items") or []
    if not isinstance(items, list):
        raise ValueError("items must be a list")

    status = parse_status(record.get("status") or OrderStatus.PENDING.value)
    assignment = None
    tailor_id = record.get("tailorId")
    if tailor_id not in (None, "") and status is not OrderStatus.COMPLETED:
        assignment = Assignment(
            actor_id=str(tailor_id),
            actor_name=_text(record.get("tailorName")),
            claimed_at=_datetime(record.get("acceptedAt"), "acceptedAt"),
        )

    return Order(
        id=str(order_id),
        bill_no=_text(record.get("billNo")),
        customer=CustomerRef(
            name=_text(record.get("customerName")),
            mobile=_text(record.get("mobile")),
        ),
        items=tuple(item_from_record(i) for i in items),
        previous_balance=_money(record.get("previousBalance"), "previousBalance"),
        advance=_money(record.get("advance"), "advance"),
        bill_date=_date(record.get("billDate") or record.get("date"), "billDate"),
        delivery_date=_date(record.get("deliveryDate"), "deliveryDate"),
        instructions=_text(record.get("instructions")),
        status=status,
        assignment=assignment,
        completed_at=_datetime(record.get("completedAt"), "completedAt"),
    )


def load_collection(payload: str | bytes | None) -> tuple[Order, ...]:
    """Decode a stored collection document.

    Raises:
        UnsupportedSchemaVersionError: Document written by a newer release.
        CorruptCollectionError: Payload is not JSON or a record is malformed.
    """
    if payload is None or payload == "" or payload == b"":
        return ()
    try:
        document = json.loads(payload)
    except ValueError as exc:
        raise CorruptCollectionError(f"invalid JSON: {exc}") from exc

    if isinstance(document, list):
        records = document
    elif isinstance(document, dict):
        version = document.get("schema_version")
        if not isinstance(version, int):
            raise CorruptCollectionError("missing schema_version")
        if version > SCHEMA_VERSION:
            raise UnsupportedSchemaVersionError(version, SCHEMA_VERSION)
        records = document.get("orders")
        if not isinstance(records, list):
            raise CorruptCollectionError("orders must be a list")
    else:
        raise CorruptCollectionError("document must be a list or an object")

    orders = []
    for index, record in enumerate(records):
        try:
            orders.append(order_from_record(record))
        except InvalidStatusError as exc:
            raise CorruptCollectionError(str(exc), record_index=index) from exc
        except (ValueError, KeyError, TypeError) as exc:
            raise CorruptCollectionError(str(exc), record_index=index) from exc
    return tuple(orders)
