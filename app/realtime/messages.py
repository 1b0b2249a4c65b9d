"""Change events as they leave the feed, and the typed messages they decode to."""
from datetime import datetime
from typing import Any, Dict, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from models import utcnow


class ChangeEvent(BaseModel):
    """A committed row change, shaped like a database change-feed payload."""

    model_config = ConfigDict(frozen=True)

    table: str
    type: Literal["INSERT", "UPDATE"]
    new: Dict[str, Any]
    committed_at: datetime = Field(default_factory=utcnow)


class OrderInserted(BaseModel):
    model_config = ConfigDict(frozen=True)

    order_id: str
    row: Dict[str, Any]


class OrderUpdated(BaseModel):
    model_config = ConfigDict(frozen=True)

    order_id: str
    changes: Dict[str, Any]


OrderMessage = Union[OrderInserted, OrderUpdated]


class UndecodableEvent(ValueError):
    pass


def decode_order_event(event: ChangeEvent) -> OrderMessage:
    if event.table != "order":
        raise UndecodableEvent(f"not an order event: {event.table}")
    order_id = event.new.get("id")
    if not order_id:
        raise UndecodableEvent("order event without an id")
    if event.type == "INSERT":
        return OrderInserted(order_id=order_id, row=dict(event.new))
    return OrderUpdated(order_id=order_id, changes=dict(event.new))


__all__ = [
    "ChangeEvent",
    "OrderInserted",
    "OrderUpdated",
    "OrderMessage",
    "UndecodableEvent",
    "decode_order_event",
]
