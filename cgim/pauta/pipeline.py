# cgim/pauta/pipeline.py
"""
Pipeline de importacao de pauta: HTML -> pleitos estruturados.

Orquestra (um chunk por vez, em ordem de documento):
  0. ensure_configured(): credencial ausente aborta ANTES de segmentar
  1. Segmenta por cabecalho + tamanho maximo
  2. Classifica a sessao do chunk
  3. Extrai via LLM -> RawReply | Failed
  4. Valida a resposta; resposta inutilizavel vira Failed(INVALID_RESPONSE)
  5. Failed -> parser de tabelas (fallback)
  6. Anexa ao montador (ordemOriginal / pautaIdentifier)

Falha em um chunk nunca derruba o documento. Prazo/cancelamento:
a chamada em andamento e abandonada (sem fallback para aquele chunk),
os chunks restantes sao pulados e os pleitos ja montados sao devolvidos.
"""
from __future__ import annotations

import logging
import time
from typing import List, Optional

from cgim.pauta.assembler import PautaAssembler
from cgim.pauta.classifier import classify_chunk
from cgim.pauta.config import DEFAULT_MAX_CHUNK_CHARS, PautaSettings
from cgim.pauta.extraction_client import ClientReply, ExtractionClient, build_client
from cgim.pauta.fallback_parser import parse_tables
from cgim.pauta.models import (
    ChunkOutcome,
    ChunkReport,
    ChunkState,
    DocumentChunk,
    Extracted,
    Failed,
    FailureReason,
    ImportResult,
    PetitionRecord,
    SessaoAnalise,
)
from cgim.pauta.response_parser import parse_llm_response
from cgim.pauta.segmenter import segment_html

logger = logging.getLogger(__name__)

MSG_NENHUM_PLEITO = (
    "Nenhum pleito encontrado na pauta. "
    "Verifique se o documento contém tabelas com a coluna NCM."
)


def resolve_outcome(reply: ClientReply, sessao: SessaoAnalise) -> ChunkOutcome:
    """RawReply -> Extracted(records) | Failed(INVALID_RESPONSE); Failed passa direto."""
    if isinstance(reply, Failed):
        return reply
    records = parse_llm_response(reply.text, sessao)
    if records is None:
        return Failed(FailureReason.INVALID_RESPONSE, "resposta nao e um array JSON")
    return Extracted(records)


class PautaImportPipeline:
    """
    Pipeline de uma importacao. O cliente de extracao e injetado
    (substituivel por dublê em testes).
    """

    def __init__(self, client: ExtractionClient, max_chunk_chars: Optional[int] = None):
        self.client = client
        if max_chunk_chars is None:
            settings = getattr(client, "settings", None)
            max_chunk_chars = getattr(settings, "max_chunk_chars", None) or DEFAULT_MAX_CHUNK_CHARS
        self.max_chunk_chars = max_chunk_chars

    def run(
        self,
        html: str,
        file_name: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        cancel_event=None,
    ) -> ImportResult:
        """
        Importa uma pauta.

        Args:
            html: HTML bruto da pauta
            file_name: rotulo da pauta de origem (vira pautaIdentifier)
            timeout_seconds: prazo total da importacao (None = sem prazo)
            cancel_event: objeto com is_set() (ex.: threading.Event)

        Returns:
            ImportResult com os pleitos em ordem de documento

        Raises:
            ConfigurationError: credencial ausente/invalida (nada e processado)
        """
        self.client.ensure_configured()

        deadline = time.monotonic() + timeout_seconds if timeout_seconds is not None else None
        chunks = segment_html(html or "", self.max_chunk_chars)
        assembler = PautaAssembler(file_name)
        reports = [ChunkReport(order=c.order, section_title=c.section_title) for c in chunks]
        cancelled = False

        logger.info(
            "import pauta '%s': %d chars, %d chunks, provider=%s",
            file_name or "-", len(html or ""), len(chunks), self.client.provider,
        )

        for chunk, report in zip(chunks, reports):
            if self._should_stop(deadline, cancel_event):
                cancelled = True
                break
            remaining = deadline - time.monotonic() if deadline is not None else None
            if not self._process_chunk(chunk, report, assembler, file_name, remaining, deadline, cancel_event):
                cancelled = True
                break

        if cancelled:
            for report in reports:
                if report.state == ChunkState.SEGMENTED:
                    report.state = ChunkState.SKIPPED

        records = assembler.records
        result = ImportResult(records=records, chunks=reports, cancelled=cancelled)

        if cancelled:
            done = sum(1 for r in reports if r.state == ChunkState.MERGED)
            result.message = (
                f"Importação interrompida: {done} de {len(chunks)} trechos processados, "
                f"{len(records)} pleitos parciais."
            )
            logger.warning("import pauta '%s': %s", file_name or "-", result.message)
        elif not records and html and html.strip():
            result.message = MSG_NENHUM_PLEITO
            logger.info("import pauta '%s': nenhum pleito encontrado", file_name or "-")

        logger.info(
            "import pauta '%s': %d pleitos (llm=%d chunks, fallback=%d chunks)",
            file_name or "-", len(records),
            sum(1 for r in reports if r.source == "llm"),
            sum(1 for r in reports if r.source == "fallback"),
        )
        return result

    @staticmethod
    def _should_stop(deadline: Optional[float], cancel_event) -> bool:
        if cancel_event is not None and cancel_event.is_set():
            logger.warning("import pauta: cancelada pelo chamador")
            return True
        if deadline is not None and time.monotonic() >= deadline:
            logger.warning("import pauta: prazo esgotado")
            return True
        return False

    def _process_chunk(
        self,
        chunk: DocumentChunk,
        report: ChunkReport,
        assembler: PautaAssembler,
        file_name: Optional[str],
        timeout: Optional[float],
        deadline: Optional[float] = None,
        cancel_event=None,
    ) -> bool:
        """Processa um chunk. Retorna False se o prazo acabou ou houve cancelamento."""
        sessao = classify_chunk(chunk)
        report.sessao_analise = sessao
        report.state = ChunkState.CLASSIFIED

        report.state = ChunkState.EXTRACTING
        reply = self.client.extract(
            chunk, sessao, file_name=file_name, timeout=timeout, cancel_event=cancel_event,
        )
        outcome = resolve_outcome(reply, sessao)

        if isinstance(outcome, Failed) and self._should_stop(deadline, cancel_event):
            # chamada interrompida: o fallback deste chunk nao roda
            report.state = ChunkState.SKIPPED
            report.failure_reason = outcome.reason
            report.failure_detail = outcome.detail
            return False

        records: List[PetitionRecord]
        if isinstance(outcome, Extracted):
            report.state = ChunkState.EXTRACTED
            report.source = "llm"
            records = outcome.records
        else:
            report.state = ChunkState.EXTRACTION_FAILED
            report.failure_reason = outcome.reason
            report.failure_detail = outcome.detail
            logger.warning(
                "chunk %d ('%s'): extracao falhou (%s), usando parser de tabelas",
                chunk.order, chunk.section_title, outcome.reason.value,
            )
            records = parse_tables(chunk.content, sessao)
            report.state = ChunkState.FALLBACK_EXTRACTED
            report.source = "fallback"

        report.records = assembler.add(records)
        report.state = ChunkState.MERGED
        logger.info(
            "chunk %d ('%s') [%s]: %d pleitos via %s",
            chunk.order, chunk.section_title, sessao.name, report.records, report.source,
        )
        return not self._should_stop(deadline, cancel_event)


def import_pauta_html(
    html: str,
    file_name: Optional[str] = None,
    settings: Optional[PautaSettings] = None,
    timeout_seconds: Optional[float] = None,
) -> ImportResult:
    """Atalho: cliente do provider configurado no ambiente + pipeline padrao."""
    settings = settings or PautaSettings.from_env()
    pipeline = PautaImportPipeline(build_client(settings), settings.max_chunk_chars)
    return pipeline.run(html, file_name=file_name, timeout_seconds=timeout_seconds)
