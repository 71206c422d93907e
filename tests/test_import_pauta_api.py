# tests/test_import_pauta_api.py
"""
Testes do handler HTTP POST /api/pautas/import.
"""
import json
import os
from unittest.mock import patch

import azure.functions as func

from cgim.api.import_pauta import handle_import_pauta
from cgim.pauta.extraction_client import FallbackOnlyClient

HTML = (
    "<h2>Pleitos Novos no CAT</h2>"
    "<table><tr><th>NCM</th><th>Produto</th></tr>"
    "<tr><td>1234.56.78</td><td>Widget A</td></tr>"
    "<tr><td>bad</td><td>Widget B</td></tr></table>"
)


def _request(body, content_type="text/html", params=None, headers=None):
    if isinstance(body, (dict, list)):
        body = json.dumps(body)
        content_type = "application/json"
    if isinstance(body, str):
        body = body.encode("utf-8")
    all_headers = {"Content-Type": content_type}
    all_headers.update(headers or {})
    return func.HttpRequest(
        method="POST",
        url="/api/pautas/import",
        body=body,
        headers=all_headers,
        params=params or {},
    )


def _json(resp):
    return json.loads(resp.get_body().decode("utf-8"))


def _fallback_only(settings=None):
    return FallbackOnlyClient(settings)


class TestImportPautaOk:
    @patch("cgim.api.import_pauta.build_client", side_effect=_fallback_only)
    def test_html_cru(self, _mock_client):
        with patch.dict(os.environ, {}, clear=True):
            resp = handle_import_pauta(_request(HTML, params={"file_name": "pauta.html"}))

        assert resp.status_code == 200
        data = _json(resp)
        assert data["total"] == 1
        assert data["pleitos"][0]["ncm"] == "1234.56.78"
        assert data["pleitos"][0]["sessaoAnalise"] == "Pleitos Novos no CAT"
        assert data["pleitos"][0]["pautaIdentifier"] == "Pauta: pauta.html"
        assert data["chunks"][0]["source"] == "fallback"

    @patch("cgim.api.import_pauta.build_client", side_effect=_fallback_only)
    def test_corpo_json(self, _mock_client):
        body = {"html": HTML, "file_name": "p.html", "max_chunk_chars": 5000, "timeout_seconds": 30}
        with patch.dict(os.environ, {}, clear=True):
            resp = handle_import_pauta(_request(body))

        assert resp.status_code == 200
        data = _json(resp)
        assert data["pleitos"][0]["pautaIdentifier"] == "Pauta: p.html"
        assert data["cancelled"] is False

    @patch("cgim.api.import_pauta.build_client", side_effect=_fallback_only)
    def test_sem_pleitos_retorna_mensagem(self, _mock_client):
        with patch.dict(os.environ, {}, clear=True):
            resp = handle_import_pauta(_request("<h2>Pleitos Novos no CAT</h2><p>nada</p>"))

        assert resp.status_code == 200
        data = _json(resp)
        assert data["total"] == 0
        assert data["message"].startswith("Nenhum pleito encontrado")

    @patch("cgim.api.import_pauta.build_client", side_effect=_fallback_only)
    def test_request_id_ecoado(self, _mock_client):
        with patch.dict(os.environ, {}, clear=True):
            resp = handle_import_pauta(_request(HTML, headers={"X-Request-ID": "req-123"}))
        assert resp.headers.get("X-Request-ID") == "req-123"


class TestImportPautaErros:
    def test_corpo_vazio(self):
        resp = handle_import_pauta(_request(b""))
        assert resp.status_code == 400

    def test_json_invalido(self):
        resp = handle_import_pauta(_request("{html: ", content_type="application/json"))
        assert resp.status_code == 400
        assert "JSON" in _json(resp)["error"]

    def test_json_sem_html(self):
        resp = handle_import_pauta(_request({"file_name": "p.html"}))
        assert resp.status_code == 400
        assert "html" in _json(resp)["error"]

    def test_max_chunk_chars_invalido(self):
        resp = handle_import_pauta(_request({"html": HTML, "max_chunk_chars": -5}))
        assert resp.status_code == 400
        assert "max_chunk_chars" in _json(resp)["error"]

    def test_sem_credencial_503(self):
        with patch.dict(os.environ, {"PAUTA_LLM_PROVIDER": "gemini"}, clear=True):
            resp = handle_import_pauta(_request(HTML))
        assert resp.status_code == 503
        data = _json(resp)
        assert "GEMINI_API_KEY" in data["error"]
        assert data["request_id"]

    @patch("cgim.api.import_pauta.PautaImportPipeline.run", side_effect=RuntimeError("boom interno"))
    def test_erro_inesperado_500_sem_detalhes(self, _mock_run):
        with patch.dict(os.environ, {"GEMINI_API_KEY": "k"}, clear=True):
            resp = handle_import_pauta(_request(HTML, headers={"X-Request-ID": "req-500"}))
        assert resp.status_code == 500
        data = _json(resp)
        assert data["request_id"] == "req-500"
        assert "boom" not in resp.get_body().decode("utf-8")
