# cgim/pauta/config.py
"""
Configuracao do pipeline de pautas (fail-closed).

Lida do ambiente a cada chamada de PautaSettings.from_env(), para que
testes e hot-reload de env vars funcionem sem reimportar o modulo.

PAUTA_LLM_PROVIDER=gemini (default) | openai
Sem a API key do provider ativo a importacao aborta com ConfigurationError
antes de processar qualquer trecho.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional, Tuple

logger = logging.getLogger(__name__)

SUPPORTED_PROVIDERS = ("gemini", "openai")

# ─── Defaults ──────────────────────────────────────────────────────
DEFAULT_PROVIDER = "gemini"
DEFAULT_GEMINI_MODEL = "gemini-2.5-flash"
DEFAULT_OPENAI_MODEL = "gpt-4.1-mini"
DEFAULT_TEMPERATURE = 0.0
DEFAULT_MAX_OUTPUT_TOKENS = 8192
DEFAULT_TIMEOUT_SECONDS = 120
DEFAULT_MAX_CHUNK_CHARS = 50000


def _env_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name, "")
    try:
        return float(raw) if raw else default
    except ValueError:
        logger.warning("%s invalido (%r), usando %s", name, raw, default)
        return default


def _env_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name, "")
    try:
        return int(raw) if raw else default
    except ValueError:
        logger.warning("%s invalido (%r), usando %s", name, raw, default)
        return default


@dataclass(frozen=True)
class PautaSettings:
    provider: str = DEFAULT_PROVIDER
    gemini_api_key: str = ""
    gemini_model: str = DEFAULT_GEMINI_MODEL
    openai_api_key: str = ""
    openai_model: str = DEFAULT_OPENAI_MODEL
    temperature: float = DEFAULT_TEMPERATURE
    max_output_tokens: int = DEFAULT_MAX_OUTPUT_TOKENS
    timeout_seconds: int = DEFAULT_TIMEOUT_SECONDS
    max_chunk_chars: int = DEFAULT_MAX_CHUNK_CHARS

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "PautaSettings":
        env = os.environ if env is None else env
        return cls(
            provider=env.get("PAUTA_LLM_PROVIDER", DEFAULT_PROVIDER).strip().lower(),
            # API_KEY: nome legado da chave Gemini
            gemini_api_key=env.get("GEMINI_API_KEY", "") or env.get("API_KEY", ""),
            gemini_model=env.get("GEMINI_MODEL", DEFAULT_GEMINI_MODEL),
            openai_api_key=env.get("OPENAI_API_KEY", ""),
            openai_model=env.get("OPENAI_MODEL", DEFAULT_OPENAI_MODEL),
            temperature=_env_float(env, "PAUTA_LLM_TEMPERATURE", DEFAULT_TEMPERATURE),
            max_output_tokens=_env_int(env, "PAUTA_LLM_MAX_OUTPUT_TOKENS", DEFAULT_MAX_OUTPUT_TOKENS),
            timeout_seconds=_env_int(env, "LLM_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS),
            max_chunk_chars=_env_int(env, "PAUTA_MAX_CHUNK_CHARS", DEFAULT_MAX_CHUNK_CHARS),
        )

    @property
    def active_model(self) -> str:
        if self.provider == "openai":
            return self.openai_model
        return self.gemini_model

    @property
    def active_api_key(self) -> str:
        if self.provider == "openai":
            return self.openai_api_key
        return self.gemini_api_key

    def validate(self) -> Tuple[bool, str]:
        """
        Valida configuracao obrigatoria do provider ativo.
        Returns: (ok: bool, error_message: str)
        """
        if self.provider not in SUPPORTED_PROVIDERS:
            msg = f"PAUTA_LLM_PROVIDER inválido: '{self.provider}' (aceitos: {', '.join(SUPPORTED_PROVIDERS)})"
            logger.error(msg)
            return False, msg

        if not self.active_api_key:
            key_name = "OPENAI_API_KEY" if self.provider == "openai" else "GEMINI_API_KEY"
            msg = f"{key_name} não configurada: importação de pauta abortada"
            logger.error(msg)
            return False, msg

        if self.max_chunk_chars <= 0:
            msg = f"PAUTA_MAX_CHUNK_CHARS deve ser positivo (recebido {self.max_chunk_chars})"
            logger.error(msg)
            return False, msg

        logger.info("pauta config: provider=%s model=%s", self.provider, self.active_model)
        return True, ""
