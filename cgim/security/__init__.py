# cgim/security/__init__.py
"""
Protecao dos endpoints HTTP: error shield e validacao do corpo da requisicao.
"""
from cgim.security.error_shield import json_response, safe_handler
from cgim.security.validation import ImportRequest, read_import_body

__all__ = [
    "json_response",
    "safe_handler",
    "ImportRequest",
    "read_import_body",
]
