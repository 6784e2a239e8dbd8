"""
Order intake and provider matching service.

Responsibilities:
- Accept rank-boost orders and recommend a provider from the roster.
- Persist one JSON record per order.
- Expose admin endpoints to list orders and update their status.
"""
