from __future__ import annotations

import json
import textwrap
from pathlib import Path
from typing import Any

import pytest
from click.testing import CliRunner

from cli import schemas_cli
from cli.schemas_cli import schemas
from core.messaging.schema_payload import (
    PostSchemaPayload,
    SchemaInfo,
    SchemaInfoWithVersion,
    SchemaType,
)
from core.messaging.topic_name import TopicName
from interfaces.schemas_admin import ConflictError, NotFoundError

AVRO_DEFINITION = json.dumps(
    {"type": "record", "name": "Tick", "fields": [{"name": "price", "type": "double"}]}
)

BUNDLE_SOURCE = textwrap.dedent(
    """
    from __future__ import annotations

    from dataclasses import dataclass
    from typing import List, Optional


    @dataclass
    class Foo:
        identifier: str
        amount: float
        labels: List[str]
        comment: Optional[str] = None
    """
)


class RecordingAdmin:
    """In-memory stand-in for the schema admin client."""

    def __init__(self, error: Exception | None = None) -> None:
        self.calls: list[tuple[Any, ...]] = []
        self.error = error

    def _record(self, *call: Any) -> None:
        self.calls.append(call)
        if self.error is not None:
            raise self.error

    def get_schema_info_with_version(self, topic: TopicName) -> SchemaInfoWithVersion:
        self._record("get_schema_info_with_version", str(topic))
        return SchemaInfoWithVersion(
            version=5,
            schema_info=SchemaInfo(name=topic.local_name, type="AVRO", schema=AVRO_DEFINITION),
        )

    def get_schema_info(self, topic: TopicName, version: int) -> SchemaInfo:
        self._record("get_schema_info", str(topic), version)
        return SchemaInfo(name=topic.local_name, type="AVRO", schema=AVRO_DEFINITION)

    def delete_schema(self, topic: TopicName, *, force: bool = False) -> None:
        self._record("delete_schema", str(topic), force)

    def create_schema(self, topic: TopicName, payload: PostSchemaPayload) -> None:
        self._record("create_schema", str(topic), payload)

    def close(self) -> None:
        pass


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def admin() -> RecordingAdmin:
    return RecordingAdmin()


@pytest.fixture
def bundle(tmp_path: Path) -> Path:
    path = tmp_path / "bundle_models.py"
    path.write_text(BUNDLE_SOURCE, encoding="utf-8")
    return path


def _invoke(runner: CliRunner, admin: RecordingAdmin, *args: str):
    return runner.invoke(schemas, list(args), obj={"admin": admin})


def test_get_without_version_fetches_latest_with_version(runner: CliRunner, admin: RecordingAdmin) -> None:
    result = _invoke(runner, admin, "get", "persistent://p/n/t")

    assert result.exit_code == 0, result.output
    assert admin.calls == [("get_schema_info_with_version", "persistent://p/n/t")]
    printed = json.loads(result.stdout)
    assert printed["version"] == 5
    assert printed["schemaInfo"]["name"] == "t"
    assert printed["schemaInfo"]["schema"]["name"] == "Tick"


def test_get_with_version_fetches_exact_version(runner: CliRunner, admin: RecordingAdmin) -> None:
    result = _invoke(runner, admin, "get", "persistent://p/n/t", "--version", "3")

    assert result.exit_code == 0, result.output
    assert admin.calls == [("get_schema_info", "persistent://p/n/t", 3)]
    assert json.loads(result.stdout)["type"] == "AVRO"


def test_get_normalises_short_topic_names(runner: CliRunner, admin: RecordingAdmin) -> None:
    result = _invoke(runner, admin, "get", "orders")

    assert result.exit_code == 0, result.output
    assert admin.calls == [("get_schema_info_with_version", "persistent://public/default/orders")]


def test_get_rejects_negative_versions(runner: CliRunner, admin: RecordingAdmin) -> None:
    result = _invoke(runner, admin, "get", "persistent://p/n/t", "--version", "-1")

    assert result.exit_code == 2
    assert admin.calls == []


@pytest.mark.parametrize(
    "args",
    [
        ("get", "kafka://p/n/t"),
        ("get", "persistent://p/n/t", "persistent://p/n/u"),
        ("delete", "a/b"),
    ],
)
def test_malformed_topics_fail_without_remote_calls(
    runner: CliRunner, admin: RecordingAdmin, args: tuple[str, ...]
) -> None:
    result = _invoke(runner, admin, *args)

    assert result.exit_code == 2
    assert admin.calls == []


def test_delete_issues_exactly_one_call_and_prints_nothing(runner: CliRunner, admin: RecordingAdmin) -> None:
    result = _invoke(runner, admin, "delete", "persistent://p/n/t")

    assert result.exit_code == 0, result.output
    assert admin.calls == [("delete_schema", "persistent://p/n/t", False)]
    assert result.stdout == ""


def test_delete_force_flag(runner: CliRunner, admin: RecordingAdmin) -> None:
    result = _invoke(runner, admin, "delete", "persistent://p/n/t", "--force")

    assert result.exit_code == 0, result.output
    assert admin.calls == [("delete_schema", "persistent://p/n/t", True)]


def test_upload_submits_parsed_payload(runner: CliRunner, admin: RecordingAdmin, tmp_path: Path) -> None:
    payload_file = tmp_path / "schema.json"
    payload_file.write_text(
        json.dumps({"type": "AVRO", "schema": AVRO_DEFINITION, "properties": {"team": "risk"}}),
        encoding="utf-8",
    )

    result = _invoke(runner, admin, "upload", "persistent://p/n/t", "-f", str(payload_file))

    assert result.exit_code == 0, result.output
    [(call, topic, payload)] = admin.calls
    assert (call, topic) == ("create_schema", "persistent://p/n/t")
    assert payload.type is SchemaType.AVRO
    assert payload.schema_ == AVRO_DEFINITION
    assert payload.properties == {"team": "risk"}


def test_upload_missing_file_fails_before_remote_call(
    runner: CliRunner, admin: RecordingAdmin, tmp_path: Path
) -> None:
    result = _invoke(runner, admin, "upload", "persistent://p/n/t", "--filename", str(tmp_path / "nope.json"))

    assert result.exit_code == 3
    assert "not found" in result.output
    assert admin.calls == []


def test_upload_unparseable_file_fails(runner: CliRunner, admin: RecordingAdmin, tmp_path: Path) -> None:
    payload_file = tmp_path / "schema.json"
    payload_file.write_text('{"schema": 1}', encoding="utf-8")

    result = _invoke(runner, admin, "upload", "persistent://p/n/t", "-f", str(payload_file))

    assert result.exit_code == 3
    assert "Invalid schema payload" in result.output
    assert admin.calls == []


def test_upload_non_utf8_file_fails_before_remote_call(
    runner: CliRunner, admin: RecordingAdmin, tmp_path: Path
) -> None:
    payload_file = tmp_path / "schema.json"
    payload_file.write_bytes(b'{"type": "AVRO", "schema": "\xff\xfe"}')

    result = _invoke(runner, admin, "upload", "persistent://p/n/t", "-f", str(payload_file))

    assert result.exit_code == 3
    assert "not valid UTF-8" in result.output
    assert admin.calls == []


def test_upload_requires_filename(runner: CliRunner, admin: RecordingAdmin) -> None:
    result = _invoke(runner, admin, "upload", "persistent://p/n/t")

    assert result.exit_code == 2
    assert admin.calls == []


@pytest.mark.parametrize(
    "type_tag, expected",
    [
        ("avro", SchemaType.AVRO),
        ("AVRO", SchemaType.AVRO),
        ("Avro", SchemaType.AVRO),
        ("json", SchemaType.JSON),
        ("JSON", SchemaType.JSON),
        ("jSoN", SchemaType.JSON),
    ],
)
def test_extract_selects_branch_case_insensitively(
    runner: CliRunner, admin: RecordingAdmin, bundle: Path, type_tag: str, expected: SchemaType
) -> None:
    result = _invoke(
        runner, admin, "extract", "persistent://p/n/t", "-j", str(bundle), "-t", type_tag, "-c", "bundle_models.Foo"
    )

    assert result.exit_code == 0, result.output
    [(call, topic, payload)] = admin.calls
    assert (call, topic) == ("create_schema", "persistent://p/n/t")
    assert payload.type is expected
    definition = json.loads(payload.schema_)
    assert definition["name"] == "Foo"
    assert [field["name"] for field in definition["fields"]] == ["identifier", "amount", "labels", "comment"]


def test_extract_long_option_names(runner: CliRunner, admin: RecordingAdmin, bundle: Path) -> None:
    result = _invoke(
        runner,
        admin,
        "extract",
        "persistent://p/n/t",
        "--jar",
        str(bundle),
        "--type",
        "avro",
        "--classname",
        "bundle_models.Foo",
    )

    assert result.exit_code == 0, result.output
    assert admin.calls[0][2].type is SchemaType.AVRO


@pytest.mark.parametrize("type_tag", ["xml", "protobuf", "", "avro2"])
def test_extract_unknown_type_fails_fast(runner: CliRunner, admin: RecordingAdmin, tmp_path: Path, type_tag: str) -> None:
    missing_bundle = tmp_path / "bundle.jar"

    result = _invoke(
        runner, admin, "extract", "persistent://p/n/t", "-j", str(missing_bundle), "-t", type_tag, "-c", "com.example.Foo"
    )

    assert result.exit_code == 2
    assert "Unknown schema type" in result.output
    assert admin.calls == []


def test_extract_missing_bundle_fails_before_remote_call(
    runner: CliRunner, admin: RecordingAdmin, tmp_path: Path
) -> None:
    result = _invoke(
        runner, admin, "extract", "persistent://p/n/t", "-j", str(tmp_path / "bundle.jar"), "-t", "avro", "-c", "com.example.Foo"
    )

    assert result.exit_code == 3
    assert "Bundle not found" in result.output
    assert admin.calls == []


def test_extract_missing_class_fails_before_remote_call(
    runner: CliRunner, admin: RecordingAdmin, bundle: Path
) -> None:
    result = _invoke(
        runner, admin, "extract", "persistent://p/n/t", "-j", str(bundle), "-t", "json", "-c", "bundle_models.Bar"
    )

    assert result.exit_code == 3
    assert "not found" in result.output
    assert admin.calls == []


def test_extract_unresolvable_annotations_fail_before_remote_call(
    runner: CliRunner, admin: RecordingAdmin, tmp_path: Path
) -> None:
    source = tmp_path / "dangling_models.py"
    source.write_text(
        "from pydantic import BaseModel\n\n\nclass Foo(BaseModel):\n    other: \"Missing\"\n",
        encoding="utf-8",
    )

    result = _invoke(
        runner, admin, "extract", "persistent://p/n/t", "-j", str(source), "-t", "avro", "-c", "dangling_models.Foo"
    )

    assert result.exit_code == 3
    assert "Unable to resolve type hints" in result.output
    assert admin.calls == []


@pytest.mark.parametrize(
    "args",
    [
        ("get", "persistent://p/n/t"),
        ("delete", "persistent://p/n/t"),
    ],
)
def test_remote_errors_surface_with_original_message(runner: CliRunner, args: tuple[str, ...]) -> None:
    admin = RecordingAdmin(error=NotFoundError("Topic not found", status_code=404))

    result = _invoke(runner, admin, *args)

    assert result.exit_code == 1
    assert "Topic not found" in result.output
    assert len(admin.calls) == 1


def test_upload_rejected_schema_surfaces_conflict(runner: CliRunner, tmp_path: Path) -> None:
    admin = RecordingAdmin(error=ConflictError("Incompatible schema", status_code=409))
    payload_file = tmp_path / "schema.json"
    payload_file.write_text(json.dumps({"type": "AVRO", "schema": AVRO_DEFINITION}), encoding="utf-8")

    result = _invoke(runner, admin, "upload", "persistent://p/n/t", "-f", str(payload_file))

    assert result.exit_code == 1
    assert "Incompatible schema" in result.output


def test_global_options_configure_the_admin_client(
    runner: CliRunner, monkeypatch: pytest.MonkeyPatch
) -> None:
    created: dict[str, Any] = {}

    class _Client(RecordingAdmin):
        def __init__(self, settings: Any) -> None:
            super().__init__()
            created["settings"] = settings
            created["client"] = self

        def close(self) -> None:
            created["closed"] = True

    monkeypatch.delenv("PULSAR_WEB_SERVICE_URL", raising=False)
    monkeypatch.setattr(schemas_cli, "SchemaAdminClient", _Client)

    result = runner.invoke(
        schemas,
        ["--admin-url", "http://broker.test:8080", "--auth-token", "tok", "delete", "persistent://p/n/t"],
    )

    assert result.exit_code == 0, result.output
    settings = created["settings"]
    assert settings.web_service_url == "http://broker.test:8080/"
    assert settings.auth_token.get_secret_value() == "tok"
    assert created["client"].calls == [("delete_schema", "persistent://p/n/t", False)]
    assert created["closed"] is True


def test_invalid_admin_url_is_an_argument_error(runner: CliRunner) -> None:
    result = runner.invoke(schemas, ["--admin-url", "ftp://broker", "delete", "persistent://p/n/t"])

    assert result.exit_code == 2
