from __future__ import annotations

import json
import logging
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping

from pydantic import ValidationError as SchemaError

from ..errors import RecommendationError
from .models import Provider

logger = logging.getLogger(__name__)

RANK_LEVELS: Mapping[str, int] = MappingProxyType({
    "青铜": 1,
    "白银": 2,
    "黄金": 3,
    "铂金": 4,
    "钻石": 5,
    "大师": 6,
    "不朽": 7,
})

_DEFAULT_ROSTER_DATA: list[dict[str, Any]] = [
    {
        "id": "player1",
        "name": "闪电侠",
        "level": "不朽",
        "type": "突击型",
        "skilledRanks": ["铂金", "钻石", "大师", "不朽"],
        "priceFactor": 1.2,
    },
    {
        "id": "player2",
        "name": "鹰眼",
        "level": "大师",
        "type": "狙击型",
        "skilledRanks": ["黄金", "铂金", "钻石", "大师"],
        "priceFactor": 1.0,
    },
    {
        "id": "player3",
        "name": "堡垒",
        "level": "大师",
        "type": "防御型",
        "skilledRanks": ["白银", "黄金", "铂金", "钻石"],
        "priceFactor": 0.9,
    },
    {
        "id": "player4",
        "name": "神医",
        "level": "钻石",
        "type": "辅助型",
        "skilledRanks": ["青铜", "白银", "黄金", "铂金"],
        "priceFactor": 0.8,
    },
]

_roster: tuple[Provider, ...] | None = None
_roster_path: Path | None = None


def build_roster(
    entries: list[dict[str, Any]],
    hierarchy: Mapping[str, int] = RANK_LEVELS,
) -> tuple[Provider, ...]:
    """Validate raw roster entries and freeze them in their original order."""
    if not entries:
        raise RecommendationError("provider roster is empty")

    try:
        providers = tuple(Provider.model_validate(e) for e in entries)
    except SchemaError as exc:
        raise RecommendationError(f"invalid provider entry: {exc}") from exc

    seen: set[str] = set()
    for p in providers:
        if p.id in seen:
            raise RecommendationError(f"duplicate provider id {p.id!r}")
        seen.add(p.id)
        unknown = [r for r in (p.level, *p.skilled_ranks) if r not in hierarchy]
        if unknown:
            raise RecommendationError(
                f"provider {p.id!r} references unknown ranks: {', '.join(unknown)}"
            )
    return providers


def load_roster(path: Path | None = None) -> tuple[Provider, ...]:
    """Load the roster from a JSON list at ``path``, or the built-in one."""
    if path is None:
        return build_roster(_DEFAULT_ROSTER_DATA)

    try:
        with open(path, "r", encoding="utf-8") as f:
            entries = json.load(f)
    except (OSError, json.JSONDecodeError) as exc:
        raise RecommendationError(f"cannot load roster from {path}: {exc}") from exc

    if not isinstance(entries, list):
        raise RecommendationError(f"roster file {path} must contain a JSON list")
    roster = build_roster(entries)
    logger.info("Loaded %d providers from %s", len(roster), path)
    return roster


def get_roster(path: Path | None = None) -> tuple[Provider, ...]:
    """
    Return the process-wide roster, loading it from ``path`` on first call.

    Later calls must pass the same path; asking for a different roster once
    one is loaded raises ``RecommendationError``.
    """
    global _roster, _roster_path
    if _roster is None:
        _roster = load_roster(path)
        _roster_path = path
    elif path != _roster_path:
        raise RecommendationError(
            f"roster already loaded from {_roster_path or 'built-in data'}, cannot load {path}"
        )
    return _roster
