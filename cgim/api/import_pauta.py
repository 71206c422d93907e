# cgim/api/import_pauta.py
"""
Handler HTTP: POST /api/pautas/import

Recebe o HTML da pauta (cru ou em JSON), roda o pipeline e devolve
ImportResult.to_dict():

    {"total": N, "message": ..., "cancelled": false,
     "pleitos": [...], "chunks": [...]}

Erros:
  400/413 corpo vazio, invalido ou grande demais
  503     provider LLM sem credencial (ConfigurationError)
  500     qualquer outra falha (safe_handler, com request_id)
"""
import logging
import time

import azure.functions as func

from cgim.pauta.config import PautaSettings
from cgim.pauta.errors import ConfigurationError
from cgim.pauta.extraction_client import build_client
from cgim.pauta.pipeline import PautaImportPipeline
from cgim.security.error_shield import json_response, request_id_for, safe_handler
from cgim.security.validation import read_import_body

logger = logging.getLogger(__name__)


@safe_handler
def handle_import_pauta(req: func.HttpRequest) -> func.HttpResponse:
    request_id = request_id_for(req)
    payload, error = read_import_body(req)
    if error is not None:
        return error

    settings = PautaSettings.from_env()
    pipeline = PautaImportPipeline(
        build_client(settings),
        max_chunk_chars=payload.max_chunk_chars or settings.max_chunk_chars,
    )

    start = time.time()
    try:
        result = pipeline.run(
            payload.html,
            file_name=payload.file_name,
            timeout_seconds=payload.timeout_seconds,
        )
    except ConfigurationError as e:
        logger.error("import_pauta request_id=%s: configuracao invalida: %s", request_id, e)
        return json_response(
            {"error": str(e), "request_id": request_id},
            status_code=503,
            request_id=request_id,
        )

    logger.info(
        "import_pauta request_id=%s file=%s: %d pleitos em %.1fs",
        request_id, payload.file_name or "-", len(result.records), time.time() - start,
    )
    return json_response(result.to_dict(), request_id=request_id)
