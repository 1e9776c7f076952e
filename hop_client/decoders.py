"""Lift raw JSON payloads into the typed snapshot models.

Tolerance rules (defaults for absent optional fields, [] for empty stats,
comma-separated tags) live on the models themselves; this module only turns
pydantic's validation failures into MalformedResponse.
"""
from typing import Any, TypeVar

from pydantic import ValidationError

from hop_client.errors import MalformedResponse
from hop_client.models import Snapshot

M = TypeVar("M", bound=Snapshot)


def _field_path(loc: tuple) -> str | None:
    parts = []
    for part in loc:
        if isinstance(part, int):
            parts.append(f"[{part}]")
        elif parts:
            parts.append(f".{part}")
        else:
            parts.append(str(part))
    return "".join(parts) or None


def _malformed(model: type[Snapshot], exc: ValidationError, prefix: str = "") -> MalformedResponse:
    first = exc.errors()[0]
    field = _field_path(first["loc"])
    if prefix:
        field = f"{prefix}.{field}" if field else prefix
    return MalformedResponse(model.__name__, field=field, detail=first["msg"])


def decode(model: type[M], payload: Any) -> M:
    """Decode a single JSON object into `model`.

    Raises:
        MalformedResponse: naming the entity and the first offending field
    """
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise _malformed(model, exc) from exc


def decode_list(model: type[M], payload: Any) -> list[M]:
    """Decode a JSON array, preserving the broker's order.

    One malformed element fails the whole list so a snapshot never silently
    omits entries.
    """
    if not isinstance(payload, list):
        raise MalformedResponse(model.__name__, detail=f"expected a JSON array, got {type(payload).__name__}")

    items = []
    for index, element in enumerate(payload):
        try:
            items.append(model.model_validate(element))
        except ValidationError as exc:
            raise _malformed(model, exc, prefix=f"[{index}]") from exc
    return items
