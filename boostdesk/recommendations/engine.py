from __future__ import annotations

import logging
from typing import Any, Mapping, Sequence

from ..config import DEFAULT_APP_CONFIG
from ..errors import RecommendationError
from ..orders.models import OrderRequest
from .models import Provider
from .roster import RANK_LEVELS, get_roster

logger = logging.getLogger(__name__)


def skill_range(provider: Provider, hierarchy: Mapping[str, int] = RANK_LEVELS) -> tuple[int, int]:
    """Return the (lowest, highest) hierarchy level the provider is skilled at."""
    levels = [hierarchy[r] for r in provider.skilled_ranks]
    return min(levels), max(levels)


def _rank_level(rank: Any, hierarchy: Mapping[str, int]) -> int | None:
    # Ranks are caller-supplied and unvalidated; anything but a known name is None
    return hierarchy.get(rank) if isinstance(rank, str) else None


def is_suitable(
    provider: Provider,
    current: int,
    target: int,
    hierarchy: Mapping[str, int] = RANK_LEVELS,
) -> bool:
    # Floor checked against the current rank, ceiling against the target rank.
    # Intermediate ranks are not required to be covered.
    min_skill, max_skill = skill_range(provider, hierarchy)
    return current >= min_skill and target <= max_skill


def recommend(
    order: OrderRequest,
    roster: Sequence[Provider] | None = None,
    hierarchy: Mapping[str, int] = RANK_LEVELS,
) -> Provider:
    """
    Pick one provider for the order.

    The cheapest suitable provider wins; ties go to roster order. When no
    provider is suitable, the provider with the highest personal rank is
    returned regardless of the requested ranks.

    A current or target rank missing from the hierarchy makes every provider
    unsuitable, so such orders always get the fallback.
    """
    providers = list(get_roster(DEFAULT_APP_CONFIG.roster_path) if roster is None else roster)
    if not providers:
        raise RecommendationError("provider roster is empty")

    current = _rank_level(order.current_level, hierarchy)
    target = _rank_level(order.target_level, hierarchy)

    if current is None or target is None:
        logger.warning(
            "Unknown rank in order (current=%r, target=%r); using fallback provider",
            order.current_level,
            order.target_level,
        )
        suitable: list[Provider] = []
    else:
        suitable = [p for p in providers if is_suitable(p, current, target, hierarchy)]

    if suitable:
        # min() keeps the first of equal keys, i.e. roster order.
        return min(suitable, key=lambda p: p.price_factor)

    return max(providers, key=lambda p: hierarchy[p.level])
