"""Clients for external administrative services."""

from interfaces.schemas_admin import (
    AdminConnectError,
    ConflictError,
    NotAuthorizedError,
    NotFoundError,
    PreconditionFailedError,
    SchemaAdminClient,
    SchemaAdminError,
    ServerSideError,
)

__all__ = [
    "AdminConnectError",
    "ConflictError",
    "NotAuthorizedError",
    "NotFoundError",
    "PreconditionFailedError",
    "SchemaAdminClient",
    "SchemaAdminError",
    "ServerSideError",
]
