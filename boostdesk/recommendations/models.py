from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class Provider(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    level: str = Field(..., description="Provider's own rank, used only by the fallback")
    type: str = Field(default="", description="Role tag, informational")
    skilled_ranks: tuple[str, ...] = Field(..., min_length=1)
    price_factor: float = Field(..., gt=0)
