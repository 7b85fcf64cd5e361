# grocery/errors.py
"""Error taxonomy shared by the ordering services and the HTTP layer.

Services raise these; ``grocery.main`` turns them into ``{"error": ...}``
responses using each class's ``status_code``.
"""
from __future__ import annotations


class GroceryError(Exception):
    status_code = 500
    default_message = "Something went wrong"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(GroceryError):
    """Bad or missing input (empty cart, incomplete address, bad quantity, bad status)."""

    status_code = 400
    default_message = "Invalid request"


class AuthenticationError(GroceryError):
    status_code = 401
    default_message = "Not authenticated"


class AuthorizationError(GroceryError):
    """Wrong role, or not the owner of the resource."""

    status_code = 403
    default_message = "Not allowed"


class NotFoundError(GroceryError):
    status_code = 404
    default_message = "Not found"


class ConflictError(GroceryError):
    """The row changed underneath us (e.g. two cashiers acting on one order)."""

    status_code = 409
    default_message = "Conflict"


class InternalError(GroceryError):
    # Message is user-facing; details belong in the server log only.
    status_code = 500
    default_message = "Something went wrong, please try again"
