from __future__ import annotations


class OrderDeskError(Exception):
    """Base class for every error surfaced to the request boundary."""


class ValidationError(OrderDeskError):
    """A request is missing a required field or has a malformed one."""


class NotFoundError(OrderDeskError):
    """No order record matches the requested id."""


class PersistenceError(OrderDeskError):
    """Writing an order record to storage failed."""


class ReadError(OrderDeskError):
    """The order directory or one of its records could not be read."""


class RecommendationError(OrderDeskError):
    """The provider roster is empty or inconsistent with the rank hierarchy."""
