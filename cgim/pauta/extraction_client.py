# cgim/pauta/extraction_client.py
"""
Cliente de extracao de pleitos via LLM.

Providers suportados:
- gemini: Google Gemini (generativelanguage.googleapis.com, REST via requests)
- openai: OpenAI chat completions (SDK oficial)

Cada chamada recebe um DocumentChunk + sessao ja classificada e devolve
RawReply(text) ou Failed(reason). Falhas de transporte, bloqueio de
seguranca, geracao truncada e resposta vazia NAO sao re-tentadas aqui:
o pipeline segue para o parser de tabelas (fallback).

Credencial ausente e a unica falha fatal: ensure_configured() levanta
ConfigurationError antes de qualquer chunk ser processado.
"""
from __future__ import annotations

import json
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from dataclasses import dataclass
from typing import Optional, Union

import requests

from cgim.pauta.config import PautaSettings
from cgim.pauta.errors import ConfigurationError, ExtractionError
from cgim.pauta.models import (
    DEFAULT_STATUS,
    NCM_NAO_IDENTIFICADO,
    OPTIONAL_TEXT_FIELDS,
    PRODUTO_NAO_IDENTIFICADO,
    DocumentChunk,
    Failed,
    FailureReason,
    SessaoAnalise,
    TipoPleito,
)

logger = logging.getLogger(__name__)

GEMINI_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"

# finishReason do Gemini que indicam bloqueio pelo filtro de seguranca
_GEMINI_BLOCK_REASONS = {"SAFETY", "RECITATION", "BLOCKLIST", "PROHIBITED_CONTENT", "SPII", "IMAGE_SAFETY"}

OPENAI_ENVELOPE_KEY = "pleitos"

# intervalo de verificacao do cancelamento durante a chamada
CANCEL_POLL_SECONDS = 0.05


@dataclass(frozen=True)
class RawReply:
    """Texto bruto devolvido pelo servico para um chunk."""
    text: str
    provider: str
    elapsed_ms: int = 0


ClientReply = Union[RawReply, Failed]


# ─── Prompt ──────────────────────────────────────────────────────────

def build_extraction_prompt(
    chunk: DocumentChunk,
    sessao: SessaoAnalise,
    file_name: Optional[str] = None,
    envelope_key: Optional[str] = None,
) -> str:
    """Monta o prompt unico de extracao para um trecho HTML."""
    tipos = "', '".join(t.value for t in TipoPleito)
    campos_opcionais = "\n".join(
        f"- {key} (string, opcional. Cabeçalho '{header}')"
        for key, header in OPTIONAL_TEXT_FIELDS.items()
    )
    if envelope_key:
        formato = (
            f'A saída DEVE SER EXCLUSIVAMENTE um objeto JSON no formato {{"{envelope_key}": [ ... ]}}, '
            f'onde a lista contém um objeto por pleito. Sem pleitos neste trecho: {{"{envelope_key}": []}}.'
        )
    else:
        formato = (
            "A saída DEVE SER EXCLUSIVAMENTE um array JSON de objetos, um por pleito. "
            "Sem pleitos neste trecho: []."
        )

    return f"""Você analisa documentos HTML da "Pauta do Comitê de Alterações Tarifárias (CAT)" do Brasil.
Este é UM TRECHO de um documento maior (arquivo: {file_name or 'desconhecido'}), da seção '{chunk.section_title}'.

Tarefa: ler as tabelas (<table>) deste trecho e extrair CADA pleito listado (em geral, uma linha <tr> por pleito).
Use os cabeçalhos da tabela (<th> ou primeira linha) para mapear as colunas.
{formato}
Decodifique entidades HTML (&amp;, &nbsp;, &#231; ...) nos valores. Copie os valores exatamente como aparecem nas células.

Todo objeto DEVE ter "sessaoAnalise": "{sessao.value}" (valor fixo, copie literalmente).

Campos de cada objeto:
- ncm (string, formato XXXX.XX.XX. Cabeçalho 'NCM'. Se ausente: "{NCM_NAO_IDENTIFICADO}")
- produto (string. Cabeçalho 'Produto' ou 'Descrição'. Se ausente: "{PRODUTO_NAO_IDENTIFICADO}")
- pleiteante (string, opcional. Cabeçalho 'Pleiteante', 'Requerente', 'Solicitante')
- tipoPleito (string, um de: '{tipos}')
- status (string, padrão '{DEFAULT_STATUS.value}')
- prazo (string, data YYYY-MM-DD, da coluna 'Prazo Reunião' quando existir)
- aliquotaAplicadaPleitoZero (boolean, true se a alíquota aplicada indicar "(Pleito a 0%)")
{campos_opcionais}

Trecho HTML:
---
{chunk.content}
---
"""


# ─── Clientes ────────────────────────────────────────────────────────

class ExtractionClient:
    """Base: monta o prompt, chama _generate() e converte falhas em Failed."""

    provider = "base"

    def __init__(self, settings: PautaSettings):
        self.settings = settings
        self._auth_failed = False

    def ensure_configured(self) -> None:
        ok, msg = self.settings.validate()
        if not ok:
            raise ConfigurationError(msg)

    def _effective_timeout(self, timeout: Optional[float]) -> float:
        configured = float(self.settings.timeout_seconds)
        if timeout is None:
            return configured
        return max(0.1, min(configured, timeout))

    def build_prompt(self, chunk: DocumentChunk, sessao: SessaoAnalise, file_name: Optional[str] = None) -> str:
        return build_extraction_prompt(chunk, sessao, file_name)

    def extract(
        self,
        chunk: DocumentChunk,
        sessao: SessaoAnalise,
        file_name: Optional[str] = None,
        timeout: Optional[float] = None,
        cancel_event=None,
    ) -> ClientReply:
        """
        Extrai candidatos de um chunk.

        Com cancel_event ou timeout, a chamada roda em uma thread auxiliar e e
        abandonada assim que o evento dispara ou o prazo acaba.

        Returns:
            RawReply com o texto gerado, ou Failed(reason) para o fallback
        """
        if self._auth_failed:
            return Failed(FailureReason.TRANSPORT, "credencial rejeitada pelo servico em chamada anterior")

        prompt = self.build_prompt(chunk, sessao, file_name)
        effective_timeout = self._effective_timeout(timeout)
        start = time.time()
        try:
            if cancel_event is None and timeout is None:
                text = self._generate(prompt, effective_timeout)
            else:
                text = self._generate_interruptible(prompt, effective_timeout, cancel_event)
        except ExtractionError as e:
            elapsed = int((time.time() - start) * 1000)
            logger.warning(
                "chunk %d ('%s'): %s falhou em %dms: %s",
                chunk.order, chunk.section_title, self.provider, elapsed, e,
            )
            return Failed(e.reason, e.detail)
        except Exception as e:
            logger.exception(
                "chunk %d ('%s'): erro inesperado no cliente %s",
                chunk.order, chunk.section_title, self.provider,
            )
            return Failed(FailureReason.INVALID_RESPONSE, f"erro inesperado: {type(e).__name__}")

        elapsed = int((time.time() - start) * 1000)
        if not text or not text.strip():
            logger.warning("chunk %d ('%s'): resposta vazia de %s", chunk.order, chunk.section_title, self.provider)
            return Failed(FailureReason.EMPTY, "resposta sem texto")

        logger.info(
            "chunk %d ('%s'): %s respondeu %d chars em %dms",
            chunk.order, chunk.section_title, self.provider, len(text), elapsed,
        )
        return RawReply(text=text, provider=self.provider, elapsed_ms=elapsed)

    def _generate_interruptible(self, prompt: str, timeout: float, cancel_event) -> str:
        """Roda _generate em thread auxiliar; cancelamento/prazo abandonam a chamada."""
        executor = ThreadPoolExecutor(max_workers=1)
        future = executor.submit(self._generate, prompt, timeout)
        deadline = time.monotonic() + timeout
        try:
            while True:
                try:
                    return future.result(timeout=CANCEL_POLL_SECONDS)
                except FutureTimeout:
                    pass
                if cancel_event is not None and cancel_event.is_set():
                    self._abort()
                    raise ExtractionError(FailureReason.TRANSPORT, "cancelada pelo chamador")
                if time.monotonic() >= deadline:
                    self._abort()
                    raise ExtractionError(FailureReason.TRANSPORT, f"timeout ({timeout:.0f}s)")
        finally:
            executor.shutdown(wait=False)

    def _abort(self) -> None:
        """Fecha o transporte da chamada em andamento (quando o provider permite)."""
        return None

    def _generate(self, prompt: str, timeout: float) -> str:
        raise NotImplementedError


class GeminiExtractionClient(ExtractionClient):
    provider = "gemini"

    def __init__(self, settings: PautaSettings, session: Optional[requests.Session] = None):
        super().__init__(settings)
        self._http = session or requests

    def _abort(self) -> None:
        close = getattr(self._http, "close", None)
        if callable(close):
            close()

    def _generate(self, prompt: str, timeout: float) -> str:
        url = GEMINI_URL.format(model=self.settings.gemini_model)
        try:
            resp = self._http.post(
                url,
                headers={
                    "Content-Type": "application/json",
                    "x-goog-api-key": self.settings.gemini_api_key,
                },
                json={
                    "contents": [{"parts": [{"text": prompt}]}],
                    "generationConfig": {
                        "temperature": self.settings.temperature,
                        "maxOutputTokens": self.settings.max_output_tokens,
                        "responseMimeType": "application/json",
                    },
                },
                timeout=timeout,
            )
            resp.raise_for_status()
        except requests.exceptions.Timeout:
            raise ExtractionError(FailureReason.TRANSPORT, f"timeout ({timeout:.0f}s)")
        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            if status in (401, 403):
                self._auth_failed = True
            raise ExtractionError(FailureReason.TRANSPORT, f"HTTP {status if status is not None else '?'}")
        except requests.exceptions.RequestException as e:
            # a mensagem do requests pode conter a URL; so o tipo vai para o detalhe
            raise ExtractionError(FailureReason.TRANSPORT, type(e).__name__)

        try:
            data = resp.json()
        except ValueError:
            raise ExtractionError(FailureReason.TRANSPORT, "corpo da resposta nao e JSON")

        return self._text_from_response(data)

    @staticmethod
    def _text_from_response(data) -> str:
        if not isinstance(data, dict):
            raise ExtractionError(FailureReason.INVALID_RESPONSE, "corpo da resposta nao e um objeto JSON")

        feedback = data.get("promptFeedback") or {}
        if isinstance(feedback, dict) and feedback.get("blockReason"):
            detail = feedback.get("blockReasonMessage") or ""
            raise ExtractionError(FailureReason.BLOCKED, f"{feedback['blockReason']} {detail}".strip())

        candidates = data.get("candidates") or []
        if not isinstance(candidates, list) or not candidates:
            raise ExtractionError(FailureReason.EMPTY, "nenhum candidato na resposta")

        candidate = candidates[0]
        if not isinstance(candidate, dict):
            raise ExtractionError(FailureReason.INVALID_RESPONSE, "candidato fora do formato esperado")
        finish = candidate.get("finishReason") or "STOP"
        if finish in _GEMINI_BLOCK_REASONS:
            raise ExtractionError(FailureReason.BLOCKED, f"finishReason={finish}")
        if finish != "STOP":
            raise ExtractionError(FailureReason.TRUNCATED, f"finishReason={finish}")

        content = candidate.get("content") or {}
        parts = content.get("parts") if isinstance(content, dict) else None
        if not isinstance(parts, list):
            parts = []
        texts = []
        for part in parts:
            if not isinstance(part, dict) or "text" not in part:
                continue
            if not isinstance(part["text"], str):
                raise ExtractionError(FailureReason.INVALID_RESPONSE, "parte da resposta com texto nao-string")
            texts.append(part["text"])
        return "".join(texts)


class OpenAIExtractionClient(ExtractionClient):
    """OpenAI em modo json_object: o prompt pede {"pleitos": [...]}, o cliente devolve o array."""

    provider = "openai"

    def __init__(self, settings: PautaSettings, sdk_client=None):
        super().__init__(settings)
        self._sdk = sdk_client
        if self._sdk is None and settings.openai_api_key:
            from openai import OpenAI
            self._sdk = OpenAI(api_key=settings.openai_api_key, max_retries=0)

    def build_prompt(self, chunk: DocumentChunk, sessao: SessaoAnalise, file_name: Optional[str] = None) -> str:
        return build_extraction_prompt(chunk, sessao, file_name, envelope_key=OPENAI_ENVELOPE_KEY)

    def _generate(self, prompt: str, timeout: float) -> str:
        import openai

        if self._sdk is None:
            raise ExtractionError(FailureReason.TRANSPORT, "cliente OpenAI nao inicializado")

        try:
            completion = self._sdk.with_options(timeout=timeout).chat.completions.create(
                model=self.settings.openai_model,
                temperature=self.settings.temperature,
                max_tokens=self.settings.max_output_tokens,
                response_format={"type": "json_object"},
                messages=[{"role": "user", "content": prompt}],
            )
        except (openai.AuthenticationError, openai.PermissionDeniedError) as e:
            self._auth_failed = True
            raise ExtractionError(FailureReason.TRANSPORT, type(e).__name__)
        except openai.OpenAIError as e:
            raise ExtractionError(FailureReason.TRANSPORT, type(e).__name__)

        if not completion.choices:
            raise ExtractionError(FailureReason.EMPTY, "nenhuma choice na resposta")

        choice = completion.choices[0]
        if choice.finish_reason == "content_filter" or getattr(choice.message, "refusal", None):
            raise ExtractionError(FailureReason.BLOCKED, f"finish_reason={choice.finish_reason}")
        if choice.finish_reason == "length":
            raise ExtractionError(FailureReason.TRUNCATED, "finish_reason=length")

        return unwrap_envelope(choice.message.content or "")


def unwrap_envelope(content: str, key: str = OPENAI_ENVELOPE_KEY) -> str:
    """{"pleitos": [...]} -> texto do array. Qualquer outra forma volta intacta para o parser."""
    try:
        data = json.loads(content)
    except json.JSONDecodeError:
        return content
    if isinstance(data, dict) and isinstance(data.get(key), list):
        return json.dumps(data[key], ensure_ascii=False)
    return content


class FallbackOnlyClient(ExtractionClient):
    """Nunca chama servico externo: todo chunk vai direto para o parser de tabelas."""

    provider = "fallback_only"

    def __init__(self, settings: Optional[PautaSettings] = None):
        super().__init__(settings or PautaSettings())

    def ensure_configured(self) -> None:
        return None

    def extract(self, chunk, sessao, file_name=None, timeout=None, cancel_event=None) -> ClientReply:
        return Failed(FailureReason.TRANSPORT, "servico de extracao desativado")


def build_client(settings: Optional[PautaSettings] = None) -> ExtractionClient:
    """Instancia o cliente do provider configurado (sem validar credencial)."""
    settings = settings or PautaSettings.from_env()
    if settings.provider == "openai":
        return OpenAIExtractionClient(settings)
    return GeminiExtractionClient(settings)
