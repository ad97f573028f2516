"""
Repository Error Taxonomy.

Every repository method raises one of these (or lets a driver error
propagate untouched).  The service layer maps them onto status codes:

=====================  ====
``InvalidInputError``  400
``NotFoundError``      404
``ConflictError``      409
anything else          500
=====================  ====
"""

from __future__ import annotations

from typing import Optional

__all__ = [
    "ConflictError",
    "InvalidInputError",
    "NotFoundError",
    "RepositoryError",
]


class RepositoryError(Exception):
    """Base class for the uniform data-layer errors."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        self.message: str = message
        super().__init__(self.message)


class InvalidInputError(RepositoryError):
    """Malformed or out-of-range input, reported before any I/O."""

    status_code = 400

    def __init__(self, field: str, reason: str) -> None:
        self.field: str = field
        self.reason: str = reason
        super().__init__(f"invalid {field}: {reason}")


class NotFoundError(RepositoryError):
    """Zero rows matched on a get, update or delete."""

    status_code = 404

    def __init__(self, entity: str, identifier: Optional[object] = None) -> None:
        self.entity: str = entity
        self.identifier: Optional[object] = identifier
        if identifier is None:
            message = f"{entity} not found"
        else:
            message = f"{entity} with id {identifier} not found"
        super().__init__(message)


class ConflictError(RepositoryError):
    """A unique constraint (or a dependent row) rejected the write.

    The default message reads ``"<entity> already exists: <detail>"``;
    pass *message* for conflicts that are not duplicates.
    """

    status_code = 409

    def __init__(self, entity: str, detail: str, message: Optional[str] = None) -> None:
        self.entity: str = entity
        self.detail: str = detail
        super().__init__(message or f"{entity} already exists: {detail}")
