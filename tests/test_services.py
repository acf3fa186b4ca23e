import io
import zipfile

import httpx
import pytest
import requests
from fastapi.testclient import TestClient

from emadocs import codegen, lexer, orchestrator
from emadocs import parser as parser_svc


class FakeResponse:
    def __init__(self, payload):
        self.payload = payload
    def raise_for_status(self):
        pass
    def json(self):
        return self.payload


@pytest.fixture
def in_process_codegen(monkeypatch):
    def post(url, json, timeout):
        assert url == f"{parser_svc.CODEGEN_URL}/codegen"
        return FakeResponse(codegen.codegen_api(codegen.CodegenReq(**json)).model_dump())

    monkeypatch.setattr(parser_svc.requests, "post", post)


class ServiceTransport(httpx.AsyncBaseTransport):
    """Routes gateway calls to the lexer and parser apps in-process."""

    def __init__(self):
        self.lexer = httpx.ASGITransport(app=lexer.app)
        self.parser = httpx.ASGITransport(app=parser_svc.app)

    async def handle_async_request(self, request):
        if request.url.host == "lexer-svc":
            return await self.lexer.handle_async_request(request)
        return await self.parser.handle_async_request(request)


@pytest.mark.parametrize("app", [lexer.app, parser_svc.app, codegen.app, orchestrator.app])
def test_healthz(app):
    assert TestClient(app).get("/healthz").json() == {"ok": True}


def test_lex_endpoint():
    body = TestClient(lexer.app).post("/lex", json={"source": 'page "x'}).json()
    assert body["ok"] is True
    types = [t["type"] for t in body["data"]["tokens"]]
    assert types == ["KW_PAGE", "WHITESPACE", "STRING", "EOF"]
    assert body["data"]["warnings"][0]["code"] == "W_LEX_UNTERMINATED_STRING"


def test_parse_endpoint():
    tokens = [t.model_dump(mode="json") for t in lexer.tokenize("junk component Foo<T> { }")]
    body = TestClient(parser_svc.app).post("/parse", json={"tokens": tokens}).json()
    assert body["ok"] is True
    assert body["data"]["ast"]["body"] == [{
        "type": "Component", "name": "Foo", "type_params": ["T"], "props": [], "events": [],
        "state": [], "methods": [], "render": None,
    }]
    assert [w["code"] for w in body["data"]["warnings"]] == ["W_PARSE_SKIPPED"]


def test_parser_compile_forwards_to_codegen(in_process_codegen):
    tokens = [t.model_dump(mode="json") for t in lexer.tokenize("component Foo { }")]
    body = TestClient(parser_svc.app).post("/compile", json={"tokens": tokens}).json()
    assert body["ok"] is True
    assert ".ema-foo" in body["data"]["style"]
    assert body["data"]["warnings"] == []


def test_parser_compile_reports_unreachable_codegen(monkeypatch):
    def post(url, json, timeout):
        raise requests.ConnectionError("connection refused")

    monkeypatch.setattr(parser_svc.requests, "post", post)
    body = TestClient(parser_svc.app).post("/compile", json={"tokens": []}).json()
    assert body["ok"] is False
    assert body["code"] == "E_FORWARD_CODEGEN"


def test_codegen_endpoint_round_trips_tree():
    ast = {"type": "Program", "body": [{"type": "Hook", "name": "data"}]}
    body = TestClient(codegen.app).post("/codegen", json={"ast": ast}).json()
    assert body["ok"] is True
    assert body["data"]["script"] == "function useData() {\n  // Hook implementation\n}\n"


def test_codegen_rejects_unknown_node_kind():
    ast = {"type": "Program", "body": [{"type": "Widget"}]}
    body = TestClient(codegen.app).post("/codegen", json={"ast": ast}).json()
    assert body["ok"] is False
    assert body["phase"] == "codegen" and body["code"] == "E_CODEGEN_TREE"


def test_gateway_compile():
    body = TestClient(orchestrator.app).post("/compile", json={"source": "component Foo { }"}).json()
    assert body["ok"] is True
    assert body["data"]["success"] is True
    assert "customElements.define('ema-foo', EmaFoo);" in body["data"]["script"]


def test_gateway_compile_reports_internal_failure(monkeypatch):
    def boom(self):
        raise RuntimeError("bad state")

    monkeypatch.setattr(parser_svc.Parser, "parse", boom)
    body = TestClient(orchestrator.app).post("/compile", json={"source": "page A { }"}).json()
    assert body == {"ok": False, "phase": "compile", "line": None, "col": None,
                    "code": "E_COMPILE", "msg": "Internal compiler error: bad state"}


def test_gateway_download_zip():
    resp = TestClient(orchestrator.app).post("/download", json={"source": 'page P title="T" { }'})
    assert resp.headers["content-type"] == "application/zip"
    archive = zipfile.ZipFile(io.BytesIO(resp.content))
    assert sorted(archive.namelist()) == ["index.html", "script.js", "styles.css"]
    assert "<title>T</title>" in archive.read("index.html").decode()


def test_gateway_remote_matches_in_process(monkeypatch, in_process_codegen):
    monkeypatch.setattr(orchestrator, "_client", lambda: httpx.AsyncClient(transport=ServiceTransport()))
    source = 'import a, b from "mod"\ncomponent Foo { }\nstate { }'
    remote = TestClient(orchestrator.app).post("/compile/remote", json={"source": source}).json()
    local = orchestrator.compile(source)
    assert remote["ok"] is True
    data = remote["data"]
    assert (data["markup"], data["style"], data["script"]) == (local.markup, local.style, local.script)
    assert data["warnings"] == local.warnings


def test_gateway_remote_reports_unreachable_lexer(monkeypatch):
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    monkeypatch.setattr(orchestrator, "_client", lambda: httpx.AsyncClient(transport=httpx.MockTransport(refuse)))
    body = TestClient(orchestrator.app).post("/compile/remote", json={"source": "page A { }"}).json()
    assert body["ok"] is False
    assert body["code"] == "E_FORWARD_LEX"
