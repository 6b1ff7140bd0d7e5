"""Tests for awkgen.client.commands, the runtime behind generated handlers.

Covers:
- read_json with inline text and ``@file``
- --set / --set-json body assembly, dotted keys, merge order
- Body key validation and the required-body check
- Query option filtering
- Client resolution from the context object
- run(): envelope printing and exit codes
- Factory-built clients closed when the invocation ends
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest
import typer
from typer.testing import CliRunner

from awkgen.client.api_client import ResponseEnvelope
from awkgen.client.commands import (
    body_from_options,
    build_body,
    merge_pairs,
    option_pairs,
    query_from_options,
    read_json,
    resolve_client,
    run,
    validate_body_keys,
)
from awkgen.exceptions import ConfigError, ConnectionError_, InvalidUsageError


# ------------------------------------------------------------------ #
# Values
# ------------------------------------------------------------------ #


class TestReadJson:
    def test_inline(self):
        assert read_json('{"a": [1, 2]}') == {"a": [1, 2]}

    def test_from_file(self, tmp_path: Path):
        path = tmp_path / "body.json"
        path.write_text('{"name": "x"}', encoding="utf-8")
        assert read_json(f"@{path}") == {"name": "x"}

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(InvalidUsageError, match="Cannot read --body file"):
            read_json(f"@{tmp_path / 'nope.json'}")

    def test_invalid(self):
        with pytest.raises(InvalidUsageError, match="Invalid JSON for --body"):
            read_json("{oops")


class TestPairs:
    def test_merge_pairs_skips_none_and_blank(self):
        assert merge_pairs(["a=1", " "], None, ["b=2"]) == ["a=1", "b=2"]

    def test_option_pairs(self):
        set_pairs, set_json_pairs = option_pairs(
            {"name": "Ada", "tags": ["x", "y"], "empty": [], "skip": None}
        )
        assert set_pairs == ["name=Ada"]
        assert set_json_pairs == ['tags=["x", "y"]']


class TestBuildBody:
    def test_nothing_given(self):
        assert build_body(None) is None
        assert build_body("  ") is None

    def test_raw_only(self):
        assert build_body("[1, 2]") == [1, 2]

    def test_set_values_are_strings(self):
        assert build_body(None, ["count=5", "name=a=b"]) == {"count": "5", "name": "a=b"}

    def test_dotted_keys_nest(self):
        body = build_body('{"owner": {"id": 1}}', ["owner.name=Ada", "meta.tags.first=x"])
        assert body == {"owner": {"id": 1, "name": "Ada"}, "meta": {"tags": {"first": "x"}}}

    def test_set_json_after_set(self):
        body = build_body(None, ["a=1"], ["a=2", "b=[true]"])
        assert body == {"a": 2, "b": [True]}

    def test_set_json_from_file(self, tmp_path: Path):
        path = tmp_path / "v.json"
        path.write_text('{"deep": null}', encoding="utf-8")
        assert build_body(None, (), [f"x=@{path}"]) == {"x": {"deep": None}}

    def test_set_json_invalid(self):
        with pytest.raises(InvalidUsageError, match="--set-json a"):
            build_body(None, (), ["a={bad"])

    def test_malformed_pair(self):
        with pytest.raises(InvalidUsageError, match="Use KEY=VALUE"):
            build_body(None, ["novalue"])
        with pytest.raises(InvalidUsageError, match="Use KEY=VALUE"):
            build_body(None, ["=x"])

    @pytest.mark.parametrize("pair", [".=x", "..=x", " . =x"])
    def test_key_without_parts(self, pair):
        with pytest.raises(InvalidUsageError, match="Use KEY=VALUE"):
            build_body(None, [pair])
        with pytest.raises(InvalidUsageError, match="Use KEY=VALUE"):
            build_body(None, (), [pair])

    def test_pairs_need_object_body(self):
        with pytest.raises(InvalidUsageError, match="JSON object"):
            build_body("[1]", ["a=1"])


class TestValidation:
    def test_known_keys_case_insensitive(self):
        validate_body_keys(["FIRSTNAME=x", "owner.name=y"], ["firstName", "owner"])

    def test_unknown_key_lists_allowed_sorted(self):
        with pytest.raises(InvalidUsageError) as exc_info:
            validate_body_keys(["foo.bar=1"], ["tagNames", "email", "firstName"])
        assert str(exc_info.value) == "Unknown body field 'foo'. Allowed: email, firstName, tagNames."

    def test_body_from_options_merges_everything(self):
        body = body_from_options(
            '{"lastName": "L"}',
            ["email=e@x"],
            None,
            {"firstName": "F", "tagNames": ["t"]},
            allowed=("firstName", "lastName", "email", "tagNames"),
        )
        assert body == {"lastName": "L", "email": "e@x", "firstName": "F", "tagNames": ["t"]}

    def test_raw_body_keys_not_validated(self):
        body = body_from_options('{"anything": 1}', None, None, {}, allowed=("name",))
        assert body == {"anything": 1}

    def test_required(self):
        with pytest.raises(InvalidUsageError, match="Body is required."):
            body_from_options(None, None, None, {"name": None}, required=True)

    def test_no_allowed_disables_check(self):
        assert body_from_options(None, ["x=1"], None, {}) == {"x": "1"}


def test_query_from_options():
    values = {"a": None, "b": "", "c": [], "d": "x", "e": ["1"], "f": 0}
    assert query_from_options(values) == {"d": "x", "e": ["1"], "f": 0}


# ------------------------------------------------------------------ #
# Execution
# ------------------------------------------------------------------ #


class FakeClient:
    def __init__(self, envelope=None, error=None):
        self.envelope = envelope or ResponseEnvelope(status_code=200, trace_id="t", response=[1])
        self.error = error
        self.closed = False

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.closed = True

    def fetch(self):
        if self.error:
            raise self.error
        return self.envelope


def _app(call):
    app = typer.Typer()

    @app.command()
    def go(ctx: typer.Context) -> None:
        run(ctx, call)

    return app


class TestResolveClient:
    def test_client_from_obj(self):
        client = FakeClient()
        ctx = typer.Context(typer.main.get_command(_app(lambda c: c.fetch())), obj={"client": client})
        assert resolve_client(ctx) is client

    def test_factory_called_once(self):
        calls = []

        def factory():
            calls.append(1)
            return FakeClient()

        ctx = typer.Context(typer.main.get_command(_app(lambda c: c.fetch())), obj={"client_factory": factory})
        first = resolve_client(ctx)
        assert resolve_client(ctx) is first
        assert calls == [1]

    def test_missing(self):
        ctx = typer.Context(typer.main.get_command(_app(lambda c: c.fetch())), obj={})
        with pytest.raises(ConfigError, match="No API client"):
            resolve_client(ctx)


class TestRun:
    def test_success_prints_envelope(self):
        result = CliRunner().invoke(_app(lambda c: c.fetch()), [], obj={"client": FakeClient()})
        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout) == {"statusCode": 200, "traceId": "t", "response": [1]}

    def test_non_2xx_exits_1(self):
        client = FakeClient(ResponseEnvelope(status_code=409, response={"code": "conflict"}))
        result = CliRunner().invoke(_app(lambda c: c.fetch()), [], obj={"client": client})
        assert result.exit_code == 1
        assert json.loads(result.stdout)["statusCode"] == 409

    def test_usage_error_exits_2(self):
        client = FakeClient(error=InvalidUsageError("Missing <userId>."))
        result = CliRunner().invoke(_app(lambda c: c.fetch()), [], obj={"client": client})
        assert result.exit_code == 2
        assert json.loads(result.stdout) == {
            "statusCode": 0,
            "traceId": None,
            "response": {"error": "Missing <userId>."},
        }

    def test_connection_error_exits_6(self):
        client = FakeClient(error=ConnectionError_("Request to x failed"))
        result = CliRunner().invoke(_app(lambda c: c.fetch()), [], obj={"client": client})
        assert result.exit_code == 6

    def test_no_client_configured(self):
        result = CliRunner().invoke(_app(lambda c: c.fetch()), [])
        assert result.exit_code == 1
        assert "No API client" in json.loads(result.stdout)["response"]["error"]

    def test_bad_set_key_is_usage_error(self):
        result = CliRunner().invoke(
            _app(lambda c: build_body(None, [".=x"])), [], obj={"client": FakeClient()}
        )
        assert result.exit_code == 2
        assert "Use KEY=VALUE" in json.loads(result.stdout)["response"]["error"]


class TestClientLifecycle:
    def test_factory_client_closed_after_run(self):
        client = FakeClient()
        result = CliRunner().invoke(
            _app(lambda c: c.fetch()), [], obj={"client_factory": lambda: client}
        )
        assert result.exit_code == 0, result.output
        assert client.closed

    def test_factory_client_closed_on_error(self):
        client = FakeClient(error=InvalidUsageError("Missing <userId>."))
        result = CliRunner().invoke(
            _app(lambda c: c.fetch()), [], obj={"client_factory": lambda: client}
        )
        assert result.exit_code == 2
        assert client.closed

    def test_supplied_client_left_open(self):
        client = FakeClient()
        CliRunner().invoke(_app(lambda c: c.fetch()), [], obj={"client": client})
        assert not client.closed
