"""HTTP client for the topic schema admin endpoints.

The client wraps the ``/admin/v2/schemas`` REST resource (and its legacy
cluster-qualified ``/admin/schemas`` counterpart). It performs no retries:
every failure is raised as a :class:`SchemaAdminError` subclass carrying the
HTTP status and the server supplied reason.
"""

from __future__ import annotations

import json
from typing import Any, Callable, Mapping
from urllib.parse import quote

import httpx

from core.config.admin_settings import AdminSettings
from core.messaging.schema_payload import (
    PostSchemaPayload,
    SchemaInfo,
    SchemaInfoWithVersion,
)
from core.messaging.topic_name import TopicName
from core.utils.logging import get_logger

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

_logger = get_logger(__name__)


class SchemaAdminError(RuntimeError):
    """Raised when the admin service rejects a request."""

    def __init__(self, message: str, *, status_code: int | None = None, payload: Mapping[str, Any] | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.payload = dict(payload or {})


class NotAuthorizedError(SchemaAdminError):
    """401/403 responses."""


class NotFoundError(SchemaAdminError):
    """404 responses."""


class ConflictError(SchemaAdminError):
    """409 responses, e.g. an incompatible schema."""


class PreconditionFailedError(SchemaAdminError):
    """412 responses."""


class ServerSideError(SchemaAdminError):
    """5xx responses."""


class AdminConnectError(SchemaAdminError):
    """The admin service could not be reached."""


_STATUS_ERRORS: dict[int, type[SchemaAdminError]] = {
    401: NotAuthorizedError,
    403: NotAuthorizedError,
    404: NotFoundError,
    409: ConflictError,
    412: PreconditionFailedError,
}


def _safe_json(response: httpx.Response) -> Mapping[str, Any]:
    try:
        body = response.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return {"raw": response.text}
    return body if isinstance(body, Mapping) else {"raw": body}


def _error_for(response: httpx.Response) -> SchemaAdminError:
    payload = _safe_json(response)
    reason = payload.get("reason") or payload.get("message") or payload.get("raw")
    message = str(reason) if reason else f"{response.status_code} {response.reason_phrase}".strip()
    status = response.status_code
    error_cls = _STATUS_ERRORS.get(status)
    if error_cls is None:
        error_cls = ServerSideError if status >= 500 else SchemaAdminError
    return error_cls(message, status_code=status, payload=payload)


def _schema_info_from(topic: TopicName, body: Mapping[str, Any]) -> SchemaInfo:
    return SchemaInfo(
        name=topic.local_name,
        type=str(body.get("type", "NONE")),
        schema=body.get("data") or "",
        properties=body.get("properties") or {},
        timestamp=body.get("timestamp"),
    )


class SchemaAdminClient:
    """Thin wrapper around the schema admin HTTP API."""

    def __init__(
        self,
        settings: AdminSettings,
        *,
        session_factory: Callable[..., httpx.Client] | None = None,
    ) -> None:
        self._settings = settings
        headers = {"Accept": "application/json"}
        if settings.auth_token is not None:
            headers["Authorization"] = f"Bearer {settings.auth_token.get_secret_value()}"
        factory = session_factory or httpx.Client
        self._session = factory(
            base_url=settings.web_service_url,
            timeout=settings.request_timeout,
            verify=settings.verify,
            headers=headers,
        )

    def __enter__(self) -> "SchemaAdminClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        self._session.close()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def get_schema_info_with_version(self, topic: TopicName) -> SchemaInfoWithVersion:
        """Return the latest schema of ``topic`` together with its version."""

        body = self._request("GET", self._schema_path(topic))
        return SchemaInfoWithVersion(
            version=int(body.get("version", 0)),
            schema_info=_schema_info_from(topic, body),
        )

    def get_schema_info(self, topic: TopicName, version: int) -> SchemaInfo:
        """Return the schema of ``topic`` registered as ``version``."""

        body = self._request("GET", f"{self._schema_path(topic)}/{int(version)}")
        return _schema_info_from(topic, body)

    def delete_schema(self, topic: TopicName, *, force: bool = False) -> None:
        params = {"force": "true"} if force else None
        self._request("DELETE", self._schema_path(topic), params=params)

    def create_schema(self, topic: TopicName, payload: PostSchemaPayload) -> None:
        self._request("POST", self._schema_path(topic), json=payload.to_request())

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    @staticmethod
    def _schema_path(topic: TopicName) -> str:
        local = quote(topic.local_name, safe="")
        if topic.is_v2:
            return f"admin/v2/schemas/{topic.tenant}/{topic.namespace}/{local}/schema"
        return f"admin/schemas/{topic.tenant}/{topic.cluster}/{topic.namespace}/{local}/schema"

    def _request(self, method: str, path: str, **kwargs: Any) -> Mapping[str, Any]:
        _logger.debug("Admin request", method=method, path=path)
        try:
            response = self._session.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            raise AdminConnectError(
                f"Failed to reach admin service at {self._settings.web_service_url}: {exc}"
            ) from exc
        _logger.debug("Admin response", method=method, path=path, status=response.status_code)
        if response.status_code >= 400:
            raise _error_for(response)
        if not response.content:
            return {}
        return _safe_json(response)
