"""Typed decoding of verified Stripe payment events.

Stripe delivers a generic envelope ({"id", "type", "created", "data":
{"object": {...}}}). The reconciler only acts on PaymentIntent outcomes, so
the envelope is flattened and validated into a tagged union keyed on
``type`` before dispatch. Unknown types decode to UnhandledEvent; a known
type with an unexpected shape raises EventDecodeError so the caller can
acknowledge it without touching any order.
"""

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from .enums import PaymentEventType


class EventDecodeError(ValueError):
    """Raised when a known event type does not have the expected shape."""

    def __init__(self, event_id: str | None, event_type: str | None, reason: str) -> None:
        super().__init__(f"Cannot decode event {event_id} ({event_type}): {reason}")
        self.event_id = event_id
        self.event_type = event_type
        self.reason = reason


class _BaseEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Stripe event ID (evt_xxx)")
    created: int | None = Field(
        default=None, description="Event creation time (epoch seconds)"
    )


class PaymentSucceededEvent(_BaseEvent):
    """payment_intent.succeeded"""

    type: Literal["payment_intent.succeeded"]
    payment_reference: str = Field(..., min_length=1)


class PaymentFailedEvent(_BaseEvent):
    """payment_intent.payment_failed"""

    type: Literal["payment_intent.payment_failed"]
    payment_reference: str = Field(..., min_length=1)
    failure_reason: str | None = None


class UnhandledEvent(_BaseEvent):
    """Any event type the reconciler intentionally ignores."""

    type: str


PaymentEvent = Annotated[
    Union[PaymentSucceededEvent, PaymentFailedEvent],
    Field(discriminator="type"),
]

_payment_event_adapter: TypeAdapter[PaymentSucceededEvent | PaymentFailedEvent] = TypeAdapter(
    PaymentEvent
)

_HANDLED_TYPES = {member.value for member in PaymentEventType}


def _flatten(event: dict[str, Any]) -> dict[str, Any]:
    data = event.get("data") or {}
    obj = data.get("object") if isinstance(data, dict) else None
    if not isinstance(obj, dict):
        obj = {}

    flat: dict[str, Any] = {
        "id": event.get("id"),
        "type": event.get("type"),
        "created": event.get("created"),
        "payment_reference": obj.get("id"),
    }

    last_error = obj.get("last_payment_error")
    if isinstance(last_error, dict):
        flat["failure_reason"] = last_error.get("message") or last_error.get("code")
    return flat


def parse_payment_event(
    event: dict[str, Any],
) -> PaymentSucceededEvent | PaymentFailedEvent | UnhandledEvent:
    """Decode a verified Stripe event into a typed payment event.

    Args:
        event: Event dictionary as returned by signature verification.

    Returns:
        PaymentSucceededEvent, PaymentFailedEvent, or UnhandledEvent for any
        other type.

    Raises:
        EventDecodeError: If the event has no usable id/type, or a handled
            type is missing its PaymentIntent reference.
    """
    event_id = event.get("id")
    event_type = event.get("type")

    if not isinstance(event_type, str) or not event_type:
        raise EventDecodeError(event_id, None, "missing event type")

    if event_type not in _HANDLED_TYPES:
        try:
            return UnhandledEvent(id=event_id, type=event_type, created=event.get("created"))
        except ValidationError as e:
            raise EventDecodeError(event_id, event_type, str(e)) from e

    try:
        return _payment_event_adapter.validate_python(_flatten(event))
    except ValidationError as e:
        raise EventDecodeError(event_id, event_type, str(e)) from e
