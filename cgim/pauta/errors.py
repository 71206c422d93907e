# cgim/pauta/errors.py
"""
Excecoes do pipeline de pautas.

ConfigurationError: fatal, aborta a importacao antes de qualquer chunk.
ExtractionError: falha de um chunk no servico LLM. Fica restrita ao
cliente de extracao, que a converte em Failed(reason) na fronteira.
"""
from __future__ import annotations

from cgim.pauta.models import FailureReason


class PautaError(Exception):
    """Base de erros do pipeline de pautas."""


class ConfigurationError(PautaError):
    """Credencial/configuracao do servico de extracao ausente ou invalida."""


class ExtractionError(PautaError):
    def __init__(self, reason: FailureReason, detail: str = ""):
        super().__init__(f"{reason.value}: {detail}" if detail else reason.value)
        self.reason = reason
        self.detail = detail
