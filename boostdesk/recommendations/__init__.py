"""
Provider recommendation engine.

Responsibilities:
- Hold the rank hierarchy and the provider roster as read-only data.
- Match an order's current/target rank against each provider's skill range.
- Pick the cheapest suitable provider, or the highest-ranked one as fallback.
"""
