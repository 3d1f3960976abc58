"""Command-line operations about topic schemas: get, delete, upload, extract."""

from __future__ import annotations

import json
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Dict, Iterator, Sequence, Tuple

import click
from pydantic import ValidationError

from core.config.admin_settings import AdminSettings, ClientConfError
from core.messaging.bundle_loader import BundleLoadError, load_class
from core.messaging.schema_extractor import (
    SchemaExtractionError,
    derive_avro_schema,
    derive_json_schema,
)
from core.messaging.schema_payload import (
    PostSchemaPayload,
    SchemaPayloadError,
    SchemaType,
    load_payload_file,
)
from core.messaging.topic_name import InvalidTopicNameError, TopicName, validate_topic_name
from core.utils.logging import configure_logging, get_logger
from interfaces.schemas_admin import SchemaAdminClient, SchemaAdminError

_logger = get_logger(__name__)

EXTRACTORS: Dict[str, Tuple[SchemaType, Callable[[type], str]]] = {
    "avro": (SchemaType.AVRO, derive_avro_schema),
    "json": (SchemaType.JSON, derive_json_schema),
}


class CLIError(click.ClickException):
    """Base class for typed CLI failures with deterministic exit codes."""

    exit_code = 1


class AdminError(CLIError):
    exit_code = 1


class ArgumentError(CLIError):
    exit_code = 2


class ResourceError(CLIError):
    exit_code = 3


@contextmanager
def _translate_errors() -> Iterator[None]:
    try:
        yield
    except (InvalidTopicNameError, ClientConfError, ValidationError) as exc:
        raise ArgumentError(str(exc)) from exc
    except (BundleLoadError, SchemaExtractionError, SchemaPayloadError, OSError) as exc:
        raise ResourceError(str(exc)) from exc
    except SchemaAdminError as exc:
        raise AdminError(str(exc)) from exc


@contextmanager
def _command(name: str, params: Sequence[str]) -> Iterator[TopicName]:
    with _translate_errors():
        topic = validate_topic_name(params)
        with _logger.operation(f"schemas.{name}", topic=str(topic)):
            yield topic


def _get_admin(ctx: click.Context) -> SchemaAdminClient:
    obj = ctx.ensure_object(dict)
    admin = obj.get("admin")
    if admin is None:
        settings = AdminSettings.from_client_conf(obj.get("conf"), **obj.get("overrides", {}))
        admin = SchemaAdminClient(settings)
        ctx.find_root().call_on_close(admin.close)
        obj["admin"] = admin
    return admin


def _topic_argument(func: Callable) -> Callable:
    return click.argument("params", nargs=-1, required=True, metavar="TOPIC")(func)


@click.group(name="schemas")
@click.option("--admin-url", help="Admin service URL, e.g. http://localhost:8080.")
@click.option("--auth-token", help="Bearer token used to authenticate admin calls.")
@click.option(
    "--conf",
    type=click.Path(dir_okay=False, path_type=Path),
    help="client.conf file providing webServiceUrl, authParams and TLS settings.",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False),
    default="WARNING",
    show_default=True,
    help="Verbosity of diagnostics written to stderr.",
)
@click.option("--log-json/--no-log-json", default=True, help="Emit diagnostics as JSON lines.")
@click.pass_context
def schemas(
    ctx: click.Context,
    admin_url: str | None,
    auth_token: str | None,
    conf: Path | None,
    log_level: str,
    log_json: bool,
) -> None:
    """Operations about schemas."""

    configure_logging(log_level, use_json=log_json)
    obj = ctx.ensure_object(dict)
    obj.setdefault("conf", conf)
    obj.setdefault("overrides", {"web_service_url": admin_url, "auth_token": auth_token})


@schemas.command("get")
@_topic_argument
@click.option("--version", type=click.IntRange(min=0), default=None, help="Schema version; defaults to the latest.")
@click.pass_context
def get_schema(ctx: click.Context, params: Tuple[str, ...], version: int | None) -> None:
    """Get the schema for a topic."""

    with _command("get", params) as topic:
        admin = _get_admin(ctx)
        if version is None:
            result = admin.get_schema_info_with_version(topic)
        else:
            result = admin.get_schema_info(topic, version)
    click.echo(json.dumps(result.to_display(), indent=2))


@schemas.command("delete")
@_topic_argument
@click.option("--force", is_flag=True, help="Delete even if the topic has active producers or consumers.")
@click.pass_context
def delete_schema(ctx: click.Context, params: Tuple[str, ...], force: bool) -> None:
    """Delete the latest schema for a topic."""

    with _command("delete", params) as topic:
        _get_admin(ctx).delete_schema(topic, force=force)


@schemas.command("upload")
@_topic_argument
@click.option(
    "-f",
    "--filename",
    "schema_file",
    required=True,
    type=click.Path(path_type=Path),
    help="JSON file with the schema payload ({\"type\": ..., \"schema\": ..., \"properties\": ...}).",
)
@click.pass_context
def upload_schema(ctx: click.Context, params: Tuple[str, ...], schema_file: Path) -> None:
    """Update the schema for a topic."""

    with _command("upload", params) as topic:
        payload = load_payload_file(schema_file)
        _get_admin(ctx).create_schema(topic, payload)


@schemas.command("extract")
@_topic_argument
@click.option(
    "-j",
    "--jar",
    "bundle",
    required=True,
    type=click.Path(path_type=Path),
    help="Bundle holding the class: a .py file, a directory or a zip archive.",
)
@click.option("-t", "--type", "schema_type", required=True, help="Schema type: avro or json.")
@click.option("-c", "--classname", "class_name", required=True, help="Fully qualified name of the class.")
@click.pass_context
def extract_schema(
    ctx: click.Context,
    params: Tuple[str, ...],
    bundle: Path,
    schema_type: str,
    class_name: str,
) -> None:
    """Provide the schema via a topic, derived from a class in a bundle."""

    with _command("extract", params) as topic:
        selected = EXTRACTORS.get(schema_type.strip().lower())
        if selected is None:
            raise ArgumentError(f"Unknown schema type specified as type: '{schema_type}'")
        type_tag, derive = selected
        with load_class(bundle, class_name) as cls:
            definition = derive(cls)
        payload = PostSchemaPayload(type=type_tag, schema=definition)
        _get_admin(ctx).create_schema(topic, payload)


if __name__ == "__main__":
    schemas()
