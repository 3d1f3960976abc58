"""Connection settings for the schema admin REST endpoints."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Mapping

from dotenv import dotenv_values
from pydantic import Field, PositiveFloat, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

__all__ = ["AdminSettings", "ClientConfError", "DEFAULT_WEB_SERVICE_URL"]

DEFAULT_WEB_SERVICE_URL = "http://localhost:8080/"

_TRUE_VALUES = {"1", "true", "yes", "on"}


class ClientConfError(ValueError):
    """Raised when a ``client.conf`` file cannot be interpreted."""


class AdminSettings(BaseSettings):
    """Runtime configuration for the schema admin client.

    Values resolve in priority order: explicit keyword arguments (CLI options),
    then ``PULSAR_*`` environment variables, then defaults.
    :meth:`from_client_conf` layers a ``client.conf`` file beneath explicit
    arguments.
    """

    web_service_url: str = Field(
        DEFAULT_WEB_SERVICE_URL,
        description="Base URL of the admin REST service.",
    )
    auth_token: SecretStr | None = Field(
        default=None,
        description="Bearer token sent with every admin request.",
    )
    tls_allow_insecure_connection: bool = Field(
        False,
        description="Skip TLS certificate verification for https endpoints.",
    )
    tls_trust_certs_file_path: Path | None = Field(
        default=None,
        description="CA bundle used to verify the admin service certificate.",
    )
    request_timeout: PositiveFloat = Field(
        30.0,
        description="Per-request timeout, in seconds, for admin calls.",
    )

    model_config = SettingsConfigDict(env_prefix="PULSAR_", extra="ignore")

    @field_validator("web_service_url")
    @classmethod
    def _validate_url(cls, value: str) -> str:
        value = value.strip()
        if not value.startswith(("http://", "https://")):
            raise ValueError("web_service_url must start with http:// or https://")
        return value.rstrip("/") + "/"

    @property
    def verify(self) -> bool | str:
        """TLS verification argument understood by httpx."""

        if self.tls_allow_insecure_connection:
            return False
        if self.tls_trust_certs_file_path is not None:
            return str(self.tls_trust_certs_file_path)
        return True

    @classmethod
    def from_client_conf(cls, path: str | Path | None = None, **overrides: Any) -> "AdminSettings":
        """Build settings from a ``client.conf`` file plus explicit overrides.

        ``None`` overrides are ignored so unset CLI options fall through to
        the file, the environment or the defaults.
        """

        values: Dict[str, Any] = {}
        if path is not None:
            values.update(_read_client_conf(Path(path)))
        values.update({key: value for key, value in overrides.items() if value is not None})
        return cls(**values)


def _read_client_conf(path: Path) -> Dict[str, Any]:
    if not path.is_file():
        raise ClientConfError(f"Client configuration file not found: {path}")
    raw: Mapping[str, str | None] = dotenv_values(path)
    values: Dict[str, Any] = {}

    url = raw.get("webServiceUrl")
    if url:
        values["web_service_url"] = url

    insecure = raw.get("tlsAllowInsecureConnection")
    if insecure:
        values["tls_allow_insecure_connection"] = insecure.strip().lower() in _TRUE_VALUES

    trust = raw.get("tlsTrustCertsFilePath")
    if trust:
        values["tls_trust_certs_file_path"] = Path(trust)

    auth_plugin = (raw.get("authPlugin") or "").strip()
    auth_params = (raw.get("authParams") or "").strip()
    if auth_params:
        if auth_plugin and not auth_plugin.endswith("AuthenticationToken"):
            raise ClientConfError(
                f"Unsupported authPlugin '{auth_plugin}' in {path}; only token authentication is supported"
            )
        values["auth_token"] = _resolve_token(auth_params, path)
    return values


def _resolve_token(auth_params: str, conf_path: Path) -> str:
    if auth_params.startswith("token:"):
        return auth_params[len("token:"):]
    if auth_params.startswith("file://"):
        token_path = Path(auth_params[len("file://"):])
        try:
            return token_path.read_text(encoding="utf-8").strip()
        except OSError as exc:
            raise ClientConfError(
                f"Unable to read token file {token_path} referenced by {conf_path}: {exc}"
            ) from exc
    return auth_params
