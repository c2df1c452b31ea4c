# storefront/storage/errors.py
from __future__ import annotations


class RejectedError(ValueError):
    """A business rule refused the operation. Nothing was changed."""


class MissingFieldError(RejectedError):
    def __init__(self, field: str, message: str) -> None:
        super().__init__(message)
        self.field = field


class PersistenceError(RuntimeError):
    """The store could not write its state to disk."""
