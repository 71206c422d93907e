# cgim/pauta/models.py
"""
Data models e enums para o pipeline de importacao de pautas do CAT.

Dataclasses puras, sem dependencia de servico externo:
  - enums fechados (sessao de analise, tipo de pleito, status)
  - PetitionRecord (pleito extraido) e seu schema de saida camelCase
  - DocumentChunk (trecho HTML interno ao pipeline)
  - Extracted / Failed (resultado por chunk)
  - ChunkReport / ImportResult (saida para o chamador)
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

SCHEMA_VERSION = "1"

NCM_NAO_IDENTIFICADO = "NCM_NAO_IDENTIFICADO"
PRODUTO_NAO_IDENTIFICADO = "PRODUTO_NAO_IDENTIFICADO"


# =============================================================================
# ENUMS
# =============================================================================

class SessaoAnalise(str, Enum):
    """Fila/comite em que o pleito e analisado (definida pela secao da pauta)."""
    ANALISE_CCM = "Pleitos em análise na CCM"
    PENDENTES_CCM_BR = "Pleitos Pendentes na CCM: Pleitos do Brasil"
    PENDENTES_CCM_MERCOSUL = "Pleitos Pendentes na CCM: Pleitos dos demais Estados Partes do Mercosul"
    PENDENTES_CAT = "Pleitos Pendentes no CAT"
    NOVOS_CAT = "Pleitos Novos no CAT"
    PENDENTES_MERCOSUL_CAT = "Pleitos dos demais Estados Partes do Mercosul no CAT: Pendentes"
    NOVOS_MERCOSUL_CAT = "Pleitos dos demais Estados Partes do Mercosul no CAT: Novos"
    LETEC_GERAL = "LETEC: Geral/Pendentes"
    LETEC_NOVOS = "LETEC: Pleitos Novos"
    CMC_2715_PENDENTES = "CMC 27/15: Pendentes"
    CMC_2715_NOVOS = "CMC 27/15: Novos"
    LEBIT_BK_PENDENTES = "LEBIT/BK: Pendentes"
    LEBIT_BK_NOVOS = "LEBIT/BK: Novos"
    CT1_PENDENTES = "CT-1: Pendentes"
    CT1_NOVOS = "CT-1: Novos"


DEFAULT_SESSAO = SessaoAnalise.NOVOS_CAT


class TipoPleito(str, Enum):
    INCLUSAO = "Inclusão"
    EXCLUSAO = "Exclusão"
    REDUCAO = "Redução"
    ELEVACAO = "Elevação"
    AUMENTO = "Aumento"
    REMANEJAMENTO = "Remanejamento"
    RENOVACAO = "Renovação"
    OUTRO = "Outro"


DEFAULT_TIPO_PLEITO = TipoPleito.OUTRO


class StatusPleito(str, Enum):
    PENDENTE = "Pendente"
    DEFERIDO = "Deferido"
    INDEFERIDO = "Indeferido"
    ANALISE = "Em Análise"
    ARQUIVADO = "Arquivado"


DEFAULT_STATUS = StatusPleito.PENDENTE


class FailureReason(str, Enum):
    """Motivo de falha do caminho LLM para um chunk (sempre recuperavel via fallback)."""
    TRANSPORT = "TRANSPORT"                 # erro de rede/HTTP
    BLOCKED = "BLOCKED"                     # bloqueado pelo filtro de seguranca do servico
    TRUNCATED = "TRUNCATED"                 # geracao interrompida (ex: limite de tokens)
    EMPTY = "EMPTY"                         # resposta sem texto
    INVALID_RESPONSE = "INVALID_RESPONSE"   # nao-JSON ou JSON que nao e array


class ChunkState(str, Enum):
    SEGMENTED = "SEGMENTED"
    CLASSIFIED = "CLASSIFIED"
    EXTRACTING = "EXTRACTING"
    EXTRACTED = "EXTRACTED"
    EXTRACTION_FAILED = "EXTRACTION_FAILED"
    FALLBACK_EXTRACTED = "FALLBACK_EXTRACTED"
    MERGED = "MERGED"
    SKIPPED = "SKIPPED"                     # nao processado (timeout/cancelamento)


# =============================================================================
# SCHEMA DO PLEITO
# =============================================================================

# Campos opcionais textuais: chave camelCase (wire) -> descricao do cabecalho na pauta.
# Transportados opacamente; so participam da validacao por presenca/ausencia.
OPTIONAL_TEXT_FIELDS: Dict[str, str] = {
    "processoSEIPublico": "Processo SEI / SEI Publico",
    "processoSEIRestrito": "SEI Restrito",
    "reducaoII": "Reducao do II (%)",
    "quotaValor": "Quota",
    "quotaUnidade": "Unidade da quota",
    "paisPendente": "Pais pendente",
    "prazoResposta": "Prazo para resposta",
    "situacaoEspecifica": "Situacao",
    "paisEstadoParte": "Pais (secoes Mercosul)",
    "exTarifario": "Ex-tarifario",
    "aliquotaAplicada": "Aliquota Aplicada",
    "quotaInfoAdicional": "Informacao adicional de quota",
    "quotaPrazo": "Prazo da quota",
    "terminoVigenciaMedida": "Termino de Vigencia da medida em vigor",
    "aliquotaPretendida": "Aliquota Pretendida",
    "aliquotaIIVigente": "Aliquota II Vigente (CMC 27/15)",
    "aliquotaIIPleiteada": "Aliquota II Pleiteada (CMC 27/15)",
    "descricaoAlternativa": "Descricao (CMC 27/15)",
    "tipoPleitoDetalhado": "Pleito (LEBIT/BK, CT-1)",
    "tec": "TEC",
    "alteracaoTarifaria": "Alteracao tarifaria (CT-1)",
    "notaTecnica": "Notas Tecnicas",
    "posicaoCAT": "Posicao CAT",
}


@dataclass
class PetitionRecord:
    """Um pleito extraido da pauta.

    Criado por um dos caminhos de extracao, normalizado pelo validador e
    carimbado (ordem_original, pauta_identifier) pelo assembler.
    """
    ncm: str
    produto: str
    sessao_analise: SessaoAnalise
    tipo_pleito: TipoPleito = DEFAULT_TIPO_PLEITO
    status: StatusPleito = DEFAULT_STATUS
    prazo: str = ""                         # ISO yyyy-mm-dd
    pleiteante: Optional[str] = None
    aliquota_aplicada_pleito_zero: bool = False
    detalhes: Dict[str, str] = field(default_factory=dict)   # OPTIONAL_TEXT_FIELDS presentes
    ordem_original: Optional[int] = None
    pauta_identifier: Optional[str] = None

    @property
    def ncm_identificado(self) -> bool:
        return self.ncm != NCM_NAO_IDENTIFICADO

    @property
    def produto_identificado(self) -> bool:
        return self.produto != PRODUTO_NAO_IDENTIFICADO

    def to_dict(self) -> Dict[str, Any]:
        """Serializa no schema camelCase consumido pela persistencia."""
        data: Dict[str, Any] = {
            "schemaVersion": SCHEMA_VERSION,
            "ncm": self.ncm,
            "produto": self.produto,
            "tipoPleito": self.tipo_pleito.value,
            "sessaoAnalise": self.sessao_analise.value,
            "status": self.status.value,
            "prazo": self.prazo,
            "aliquotaAplicadaPleitoZero": self.aliquota_aplicada_pleito_zero,
            "ordemOriginal": self.ordem_original,
            "pautaIdentifier": self.pauta_identifier,
        }
        if self.pleiteante:
            data["pleiteante"] = self.pleiteante
        for key in OPTIONAL_TEXT_FIELDS:
            value = self.detalhes.get(key)
            if value:
                data[key] = value
        return data


# =============================================================================
# PIPELINE INTERNO
# =============================================================================

@dataclass(frozen=True)
class DocumentChunk:
    """Trecho HTML delimitado por cabecalho e tamanho maximo."""
    section_title: str
    content: str
    order: int                              # posicao no documento (0-based)
    heading_path: tuple = ()                # textos h1/h2/h3 envolventes, do mais externo ao mais interno
    part: Optional[int] = None              # indice 1-based quando o segmento foi quebrado por tamanho


@dataclass(frozen=True)
class Extracted:
    records: List[PetitionRecord]


@dataclass(frozen=True)
class Failed:
    reason: FailureReason
    detail: str = ""


ChunkOutcome = Union[Extracted, Failed]


@dataclass
class ChunkReport:
    """Resumo do processamento de um chunk (para log/diagnostico do chamador)."""
    order: int
    section_title: str
    sessao_analise: Optional[SessaoAnalise] = None
    state: ChunkState = ChunkState.SEGMENTED
    failure_reason: Optional[FailureReason] = None
    failure_detail: str = ""
    records: int = 0
    source: Optional[str] = None            # "llm" | "fallback" | None (pulado)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "order": self.order,
            "sectionTitle": self.section_title,
            "sessaoAnalise": self.sessao_analise.value if self.sessao_analise else None,
            "state": self.state.value,
            "failureReason": self.failure_reason.value if self.failure_reason else None,
            "failureDetail": self.failure_detail or None,
            "records": self.records,
            "source": self.source,
        }


@dataclass
class ImportResult:
    """Resultado de uma importacao de pauta."""
    records: List[PetitionRecord] = field(default_factory=list)
    message: Optional[str] = None
    chunks: List[ChunkReport] = field(default_factory=list)
    cancelled: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": len(self.records),
            "message": self.message,
            "cancelled": self.cancelled,
            "pleitos": [r.to_dict() for r in self.records],
            "chunks": [c.to_dict() for c in self.chunks],
        }
