"""Tests for awkgen.parser.loader.

Covers:
- Loading JSON and YAML files, with and without a telling extension
- stdin input via ``-``
- URL loading through httpx (patched)
- Error cases: missing file, empty file, invalid content, non-mapping
- validate_openapi_version for 3.0 / 3.1, Swagger 2.0, and missing field
"""

from __future__ import annotations

import io
import json
from pathlib import Path

import httpx
import pytest

from awkgen.exceptions import SpecParseError
from awkgen.exit_codes import EXIT_SPEC_PARSE_ERROR
from awkgen.parser.loader import load_spec, parse_document, validate_openapi_version


class TestLoadFile:
    def test_json_file(self, tmp_path: Path):
        path = tmp_path / "spec.json"
        path.write_text(json.dumps({"openapi": "3.0.0", "paths": {}}))
        assert load_spec(str(path))["openapi"] == "3.0.0"

    def test_yaml_file(self, tmp_path: Path):
        path = tmp_path / "spec.yaml"
        path.write_text("openapi: 3.1.0\npaths: {}\n")
        assert load_spec(str(path))["openapi"] == "3.1.0"

    def test_yaml_without_extension(self, tmp_path: Path):
        path = tmp_path / "spec"
        path.write_text("openapi: 3.0.3\ninfo:\n  title: T\n")
        assert load_spec(str(path))["info"]["title"] == "T"

    def test_sample_fixture(self, sample_raw):
        assert "/users" in sample_raw["paths"]

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(SpecParseError, match="not found"):
            load_spec(str(tmp_path / "nope.json"))

    def test_empty_file(self, tmp_path: Path):
        path = tmp_path / "empty.json"
        path.write_text("   \n")
        with pytest.raises(SpecParseError, match="empty"):
            load_spec(str(path))

    def test_invalid_json_with_json_extension(self, tmp_path: Path):
        path = tmp_path / "bad.json"
        path.write_text("{not json")
        with pytest.raises(SpecParseError, match="Invalid JSON") as exc_info:
            load_spec(str(path))
        assert exc_info.value.exit_code == EXIT_SPEC_PARSE_ERROR


class TestLoadOther:
    def test_stdin(self, monkeypatch):
        monkeypatch.setattr("sys.stdin", io.StringIO('{"openapi": "3.0.0"}'))
        assert load_spec("-") == {"openapi": "3.0.0"}

    def test_stdin_empty(self, monkeypatch):
        monkeypatch.setattr("sys.stdin", io.StringIO(""))
        with pytest.raises(SpecParseError, match="stdin"):
            load_spec("-")

    def test_url(self, monkeypatch):
        def fake_get(url, **kwargs):
            request = httpx.Request("GET", url)
            return httpx.Response(
                200,
                text="openapi: 3.0.0\n",
                headers={"content-type": "application/yaml"},
                request=request,
            )

        monkeypatch.setattr("awkgen.parser.loader.httpx.get", fake_get)
        assert load_spec("https://example.com/openapi.yaml") == {"openapi": "3.0.0"}

    def test_url_http_error(self, monkeypatch):
        def fake_get(url, **kwargs):
            return httpx.Response(404, request=httpx.Request("GET", url))

        monkeypatch.setattr("awkgen.parser.loader.httpx.get", fake_get)
        with pytest.raises(SpecParseError, match="HTTP 404"):
            load_spec("https://example.com/openapi.json")

    def test_url_network_error(self, monkeypatch):
        def fake_get(url, **kwargs):
            raise httpx.ConnectError("refused", request=httpx.Request("GET", url))

        monkeypatch.setattr("awkgen.parser.loader.httpx.get", fake_get)
        with pytest.raises(SpecParseError, match="Failed to fetch"):
            load_spec("https://example.com/openapi.json")


class TestParseDocument:
    def test_json_preferred(self):
        assert parse_document('{"a": 1}') == {"a": 1}

    def test_yaml_fallback(self):
        assert parse_document("a: 1\n") == {"a": 1}

    def test_yaml_hint_skips_json(self):
        assert parse_document("a: [1, 2]", hint="yaml") == {"a": [1, 2]}

    def test_non_mapping_rejected(self):
        with pytest.raises(SpecParseError, match="got list"):
            parse_document("[1, 2]")

    def test_empty_yaml_rejected(self):
        with pytest.raises(SpecParseError, match="empty document"):
            parse_document("", hint="yaml")

    def test_unparseable(self):
        with pytest.raises(SpecParseError, match="JSON or YAML"):
            parse_document("a: [1, 2\n")


class TestVersion:
    @pytest.mark.parametrize("version", ["3.0.0", "3.0.3", "3.1.0"])
    def test_openapi_3(self, version):
        assert validate_openapi_version({"openapi": version}) == version

    def test_swagger_rejected(self):
        with pytest.raises(SpecParseError, match="Swagger 2.0"):
            validate_openapi_version({"swagger": "2.0"})

    def test_missing_field(self):
        with pytest.raises(SpecParseError, match="Missing 'openapi'"):
            validate_openapi_version({"info": {}})

    def test_other_major(self):
        with pytest.raises(SpecParseError, match="Unsupported"):
            validate_openapi_version({"openapi": "4.0.0"})
