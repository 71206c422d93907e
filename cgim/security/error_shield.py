# cgim/security/error_shield.py
"""
Decorator que captura excecoes nao tratadas dos handlers HTTP.
Traceback completo vai para o log (com request_id), NUNCA para a resposta.
"""
from __future__ import annotations

import functools
import json
import logging
import traceback
import uuid
from typing import Any, Dict, Optional

import azure.functions as func

logger = logging.getLogger("cgim.security")

REQUEST_ID_HEADER = "X-Request-ID"


def json_response(
    payload: Dict[str, Any],
    status_code: int = 200,
    request_id: Optional[str] = None,
) -> func.HttpResponse:
    headers = {REQUEST_ID_HEADER: request_id} if request_id else None
    return func.HttpResponse(
        json.dumps(payload, ensure_ascii=False, default=str),
        status_code=status_code,
        mimetype="application/json",
        headers=headers,
    )


def request_id_for(req: func.HttpRequest) -> str:
    return req.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())


def safe_handler(fn):
    """
    Decorator para HTTP handlers.
    - Excecao nao tratada -> 500 JSON generico com request_id
    - Traceback logado com request_id para correlacao
    """

    @functools.wraps(fn)
    def wrapper(req: func.HttpRequest, *args, **kwargs) -> func.HttpResponse:
        request_id = request_id_for(req)
        try:
            return fn(req, *args, **kwargs)
        except Exception:
            logger.error(
                "[UNHANDLED] request_id=%s endpoint=%s error:\n%s",
                request_id,
                fn.__name__,
                traceback.format_exc(),
            )
            return json_response(
                {
                    "error": "Erro interno ao importar pauta",
                    "request_id": request_id,
                    "hint": "Use o request_id para suporte.",
                },
                status_code=500,
                request_id=request_id,
            )

    return wrapper
