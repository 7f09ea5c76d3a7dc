"""Tests for the FastAPI conversion service.

WHY: The HTTP surface has to expose the same conversions as the
library, with conversion errors mapped to stable status codes.

HOW: FastAPI TestClient, synchronous and in-process. The engine
dependency is overridden where a test needs a restricted capability
set; overrides are cleared after every test.

RULES:
- No network access; uploads are in-memory files
- Each test is independent
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from payload_converter import __version__
from payload_converter.core.capabilities import Capabilities
from payload_converter.engine import ConversionEngine
from payload_converter.server.app import app, get_conversion_engine

from tests.conftest import payload


@pytest.fixture(autouse=True)
def _reset_overrides():
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def blocks_only_client():
    app.dependency_overrides[get_conversion_engine] = lambda: ConversionEngine(
        Capabilities(deferred_object=False, push_stream=False, pull_stream=False)
    )
    return TestClient(app)


def _upload(client, data: bytes, **form):
    return client.post(
        "/conversions",
        files={"file": ("payload.bin", data, "application/octet-stream")},
        data=form,
    )


# ---------------------------------------------------------------------------
# Health and kinds
# ---------------------------------------------------------------------------


class TestHealthAndKinds:
    def test_health(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok", "version": __version__}

    def test_kinds(self, client):
        resp = client.get("/kinds")
        assert resp.status_code == 200
        kinds = {item["key"]: item for item in resp.json()["kinds"]}
        assert len(kinds) == 11
        assert kinds["base64"]["representation"] == "encoded_text"
        assert kinds["pull"]["representation"] == "pull_stream"
        assert kinds["hex"]["name"] == "Hex"

    def test_kinds_follow_capabilities(self, blocks_only_client):
        keys = [item["key"] for item in blocks_only_client.get("/kinds").json()["kinds"]]
        assert "deferred" not in keys
        assert "push" not in keys
        assert "bytes" in keys


# ---------------------------------------------------------------------------
# POST /conversions
# ---------------------------------------------------------------------------


class TestUploadConversions:
    def test_to_base64(self, client):
        resp = _upload(client, b"ab", to="base64")
        assert resp.status_code == 200
        assert resp.json() == {"kind": "base64", "value": "YWI="}

    def test_to_bytes_is_octet_stream(self, client):
        data = payload(1000)
        resp = _upload(client, data, to="bytes", chunk_size="96")
        assert resp.status_code == 200
        assert resp.headers["content-type"] == "application/octet-stream"
        assert resp.headers["x-payload-kind"] == "bytes"
        assert resp.content == data

    def test_to_stream_kind_returns_bytes(self, client):
        resp = _upload(client, b"hello", to="pull")
        assert resp.status_code == 200
        assert resp.headers["x-payload-kind"] == "pull"
        assert resp.content == b"hello"

    def test_encoded_upload(self, client):
        resp = _upload(client, b"YWI=\n", to="hex", encoding="base64")
        assert resp.json() == {"kind": "hex", "value": "6162"}

    def test_byte_range(self, client):
        data = payload(300)
        resp = _upload(client, data, to="hex", start="10", length="4")
        assert resp.json()["value"] == data[10:14].hex()

    def test_output_charset(self, client):
        resp = _upload(client, "日本".encode("euc_jp"), to="text", output_charset="eucjp")
        assert resp.json()["value"] == "日本"

    def test_unknown_kind(self, client):
        resp = _upload(client, b"ab", to="pdf")
        assert resp.status_code == 400
        assert "pdf" in resp.json()["detail"]

    def test_non_utf8_encoded_upload(self, client):
        resp = _upload(client, b"\xff\xfe", to="bytes", encoding="hex")
        assert resp.status_code == 422

    def test_disabled_stream_source(self, blocks_only_client):
        # Uploads are read as pull streams
        resp = _upload(blocks_only_client, b"ab", to="base64")
        assert resp.status_code == 415

    def test_disabled_target(self, blocks_only_client):
        resp = _upload(blocks_only_client, b"ab", to="push")
        assert resp.status_code == 400


# ---------------------------------------------------------------------------
# POST /conversions/text
# ---------------------------------------------------------------------------


class TestTextConversions:
    def test_text_to_base64(self, client):
        resp = client.post("/conversions/text", json={"value": "ab", "to": "base64"})
        assert resp.status_code == 200
        assert resp.json() == {"kind": "base64", "value": "YWI="}

    def test_base64_to_hex(self, client):
        resp = client.post(
            "/conversions/text", json={"value": "YWI=", "encoding": "base64", "to": "hex"}
        )
        assert resp.json()["value"] == "6162"

    def test_to_deferred_returns_bytes(self, client):
        resp = client.post(
            "/conversions/text", json={"value": "00ff", "encoding": "hex", "to": "deferred"}
        )
        assert resp.status_code == 200
        assert resp.content == b"\x00\xff"
        assert resp.headers["content-length"] == "2"

    def test_to_data_url(self, client):
        resp = client.post("/conversions/text", json={"value": "ab", "to": "data_url"})
        assert resp.json() == {
            "kind": "data_url",
            "value": "data:application/octet-stream;base64,YWI=",
        }

    def test_data_url_input(self, client):
        resp = client.post(
            "/conversions/text",
            json={"value": "data:text/plain,a%20b", "encoding": "data_url", "to": "hex"},
        )
        assert resp.json()["value"] == "612062"

    def test_malformed_hex(self, client):
        resp = client.post(
            "/conversions/text", json={"value": "abc", "encoding": "hex", "to": "bytes"}
        )
        assert resp.status_code == 422
        assert "odd" in resp.json()["detail"]

    def test_bad_chunk_size(self, client):
        resp = client.post(
            "/conversions/text", json={"value": "ab", "to": "hex", "chunk_size": -6}
        )
        assert resp.status_code == 400

    def test_unknown_encoding_is_rejected(self, client):
        resp = client.post(
            "/conversions/text", json={"value": "ab", "encoding": "rot13", "to": "hex"}
        )
        assert resp.status_code == 422
