# cgim/security/validation.py
"""
Validacao do corpo de POST /api/pautas/import.

Aceita:
  - HTML cru (text/html ou qualquer corpo que nao comece com '{')
  - JSON {"html", "file_name", "max_chunk_chars", "timeout_seconds"}
file_name tambem pode vir por query string.
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

import azure.functions as func

# Pautas grandes passam de 5 MB de HTML
MAX_BODY_BYTES = 20 * 1024 * 1024
MAX_FILE_NAME_CHARS = 255


@dataclass
class ImportRequest:
    html: str
    file_name: Optional[str] = None
    max_chunk_chars: Optional[int] = None
    timeout_seconds: Optional[float] = None


def _bad_request(message: str, status_code: int = 400) -> func.HttpResponse:
    return func.HttpResponse(
        json.dumps({"error": message}, ensure_ascii=False),
        status_code=status_code,
        mimetype="application/json",
    )


def _positive_number(data: Dict[str, Any], key: str, cast):
    raw = data.get(key)
    if raw is None or raw == "":
        return None
    if isinstance(raw, bool):
        raise ValueError(f"{key} deve ser numero positivo")
    try:
        value = cast(raw)
    except (TypeError, ValueError):
        raise ValueError(f"{key} deve ser numero positivo")
    if value <= 0:
        raise ValueError(f"{key} deve ser numero positivo")
    return value


def read_import_body(
    req: func.HttpRequest, max_bytes: int = MAX_BODY_BYTES
) -> Tuple[Optional[ImportRequest], Optional[func.HttpResponse]]:
    """
    Extrai e valida a requisicao de importacao.
    Retorna (ImportRequest, None) em sucesso, ou (None, error_response) em falha.
    """
    body = req.get_body() or b""
    if len(body) > max_bytes:
        return None, _bad_request(f"Corpo muito grande (max {max_bytes // (1024 * 1024)} MB)", 413)
    if not body.strip():
        return None, _bad_request("Corpo da requisição vazio: envie o HTML da pauta")

    text = body.decode("utf-8", errors="replace")
    content_type = (req.headers.get("Content-Type") or "").lower()

    data: Dict[str, Any] = {}
    if "json" in content_type or text.lstrip().startswith("{"):
        try:
            data = json.loads(text)
        except json.JSONDecodeError:
            return None, _bad_request("JSON inválido no corpo da requisição")
        if not isinstance(data, dict):
            return None, _bad_request("JSON deve ser um objeto")
        html = data.get("html")
        if not isinstance(html, str) or not html.strip():
            return None, _bad_request("Campo 'html' obrigatório")
    else:
        html = text

    file_name = data.get("file_name") or req.params.get("file_name")
    if file_name is not None:
        file_name = str(file_name).strip()[:MAX_FILE_NAME_CHARS] or None

    try:
        max_chunk_chars = _positive_number(data, "max_chunk_chars", int)
        timeout_seconds = _positive_number(data, "timeout_seconds", float)
    except ValueError as e:
        return None, _bad_request(str(e))

    return ImportRequest(
        html=html,
        file_name=file_name,
        max_chunk_chars=max_chunk_chars,
        timeout_seconds=timeout_seconds,
    ), None
