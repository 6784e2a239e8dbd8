from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

DEFAULT_STATUS = "pending"
# Statuses offered by the admin page. Stored statuses are not limited to these.
ORDER_STATUSES: tuple[str, ...] = ("pending", "in_progress", "completed", "cancelled")
AUTO_MATCH_LABEL = "系统自动匹配"

_ENVELOPE_FIELDS = ("id", "timestamp", "status", "recommended_provider")
_CALLER_FIELDS = ("current_level", "target_level", "service_type")

# Field names (both spellings) that only the store may set.
ENVELOPE_KEYS: frozenset[str] = frozenset(
    {"id", "timestamp", "status", "recommended_provider", "recommendedProvider"}
)


def _sent_fields(model: BaseModel) -> dict[str, Any]:
    """Known caller fields that were actually provided, then the extras, camelCase keys."""
    fields = {
        to_camel(name): getattr(model, name)
        for name in _CALLER_FIELDS
        if name in model.model_fields_set
    }
    fields.update(model.model_extra or {})
    return fields


class OrderRequest(BaseModel):
    """
    Caller payload for a new order. Unknown fields are kept in ``model_extra``.

    The known fields are stored as sent; a non-string rank simply never
    matches the hierarchy.
    """

    model_config = ConfigDict(extra="allow", alias_generator=to_camel, populate_by_name=True)

    current_level: Any = None
    target_level: Any = None
    service_type: Any = None

    def sent_fields(self) -> dict[str, Any]:
        return _sent_fields(self)


class Order(BaseModel):
    """A persisted order: the generated envelope plus the caller's fields."""

    model_config = ConfigDict(extra="allow", alias_generator=to_camel, populate_by_name=True)

    id: str = Field(..., min_length=1)
    timestamp: int
    status: str = Field(default=DEFAULT_STATUS, min_length=1)
    recommended_provider: str = AUTO_MATCH_LABEL
    current_level: Any = None
    target_level: Any = None
    service_type: Any = None

    def to_record(self) -> dict[str, Any]:
        # Envelope always written; caller fields only if the caller sent them
        record = self.model_dump(by_alias=True, include=set(_ENVELOPE_FIELDS))
        record.update(_sent_fields(self))
        return record


class StatusUpdate(BaseModel):
    status: str | None = None
