# cgim/pauta/response_parser.py
"""
Parser e validador da resposta do LLM para um chunk.

Fluxo:
1. Remove cerca Markdown (```json ... ```) se houver
2. json.loads; resposta so e utilizavel se for um array
3. Cada elemento vira PetitionRecord normalizado:
   - ncm: so digitos; 8 digitos -> XXXX.XX.XX, senao NCM_NAO_IDENTIFICADO
   - produto: >= 2 chars apos strip, senao PRODUTO_NAO_IDENTIFICADO
   - ambos sentinela -> descartado (ruido, nao erro)
   - enums fora do schema -> default
   - sessaoAnalise SEMPRE a do chunk
4. Chaves fora do schema sao descartadas

REGRA DE OURO: valor default e melhor do que valor inventado.
"""
from __future__ import annotations

import html
import json
import logging
import re
import unicodedata
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from cgim.pauta.models import (
    DEFAULT_STATUS,
    DEFAULT_TIPO_PLEITO,
    NCM_NAO_IDENTIFICADO,
    OPTIONAL_TEXT_FIELDS,
    PRODUTO_NAO_IDENTIFICADO,
    PetitionRecord,
    SessaoAnalise,
    StatusPleito,
    TipoPleito,
)

logger = logging.getLogger(__name__)

MIN_PRODUTO_CHARS = 2

RE_FENCE_OPEN = re.compile(r"^```[a-zA-Z]*\s*\n?")
RE_FENCE_CLOSE = re.compile(r"\n?\s*```$")
RE_NON_DIGIT = re.compile(r"\D")
RE_WS = re.compile(r"\s+")

# "0%", "0 %", "0,00%", "(Pleito a 0%)" -- mas nao "10%" nem "2,0%"
RE_ALIQUOTA_ZERO = re.compile(r"(?<![\d.,])0(?:[.,]0+)?\s*%")


# ==============================================================================
# NORMALIZACAO DE CAMPOS
# ==============================================================================

def strip_code_fence(text: str) -> str:
    if not text:
        return ""
    text = text.strip()
    text = RE_FENCE_OPEN.sub("", text)
    text = RE_FENCE_CLOSE.sub("", text)
    return text.strip()


def clean_text(value: Any) -> Optional[str]:
    """Valor opcional -> string limpa (entidades decodificadas, espacos colapsados) ou None."""
    if value is None or isinstance(value, (dict, list)):
        return None
    if isinstance(value, bool):
        return "Sim" if value else "Não"
    text = html.unescape(str(value)).replace("\u00a0", " ")
    text = RE_WS.sub(" ", text).strip()
    return text or None


def normalize_ncm(value: Any) -> str:
    """'1234-56-78' -> '1234.56.78'; qualquer coisa sem exatamente 8 digitos -> sentinela."""
    if value is None:
        return NCM_NAO_IDENTIFICADO
    digits = RE_NON_DIGIT.sub("", str(value))
    if len(digits) != 8:
        return NCM_NAO_IDENTIFICADO
    return f"{digits[:4]}.{digits[4:6]}.{digits[6:]}"


def normalize_produto(value: Any) -> str:
    text = clean_text(value)
    if not text or len(text) < MIN_PRODUTO_CHARS:
        return PRODUTO_NAO_IDENTIFICADO
    return text


def _enum_key(value: str) -> str:
    """Normaliza string para lookup: sem acento, maiusculas, '_' no lugar de espaco/hifen."""
    v = unicodedata.normalize("NFKD", value)
    v = "".join(c for c in v if not unicodedata.combining(c))
    v = v.strip().upper()
    v = re.sub(r"[\s\-/]+", "_", v)
    while "__" in v:
        v = v.replace("__", "_")
    return v.strip("_")


_TIPO_PLEITO_MAPPINGS = {
    "INCLUSAO": TipoPleito.INCLUSAO,
    "EXCLUSAO": TipoPleito.EXCLUSAO,
    "RETIRADA": TipoPleito.EXCLUSAO,
    "REDUCAO": TipoPleito.REDUCAO,
    "ELEVACAO": TipoPleito.ELEVACAO,
    "MAJORACAO": TipoPleito.ELEVACAO,
    "AUMENTO": TipoPleito.AUMENTO,
    "REMANEJAMENTO": TipoPleito.REMANEJAMENTO,
    "RENOVACAO": TipoPleito.RENOVACAO,
    "PRORROGACAO": TipoPleito.RENOVACAO,
    "OUTRO": TipoPleito.OUTRO,
    "OUTROS": TipoPleito.OUTRO,
}

_STATUS_MAPPINGS = {
    "PENDENTE": StatusPleito.PENDENTE,
    "DEFERIDO": StatusPleito.DEFERIDO,
    "APROVADO": StatusPleito.DEFERIDO,
    "INDEFERIDO": StatusPleito.INDEFERIDO,
    "REJEITADO": StatusPleito.INDEFERIDO,
    "EM_ANALISE": StatusPleito.ANALISE,
    "ANALISE": StatusPleito.ANALISE,
    "ARQUIVADO": StatusPleito.ARQUIVADO,
}


def clamp_tipo_pleito(value: Any) -> TipoPleito:
    """Ausente -> DEFAULT_TIPO_PLEITO; 'Redução tarifária' -> REDUCAO; desconhecido -> OUTRO."""
    text = clean_text(value)
    if not text:
        return DEFAULT_TIPO_PLEITO
    key = _enum_key(text)
    if key in _TIPO_PLEITO_MAPPINGS:
        return _TIPO_PLEITO_MAPPINGS[key]
    for prefix, tipo in _TIPO_PLEITO_MAPPINGS.items():
        if key.startswith(prefix + "_"):
            return tipo
    return TipoPleito.OUTRO


def clamp_status(value: Any) -> StatusPleito:
    text = clean_text(value)
    if not text:
        return DEFAULT_STATUS
    return _STATUS_MAPPINGS.get(_enum_key(text), DEFAULT_STATUS)


def normalize_prazo(value: Any, today: Optional[date] = None) -> str:
    """Data ISO yyyy-mm-dd. Aceita yyyy-mm-dd, dd/mm/yyyy e datetime ISO; senao data de hoje."""
    text = clean_text(value)
    if text:
        for fmt, size in (("%Y-%m-%d", 10), ("%d/%m/%Y", 10)):
            try:
                return datetime.strptime(text[:size], fmt).date().isoformat()
            except ValueError:
                continue
    return (today or date.today()).isoformat()


def infer_pleito_zero(flag: Any, aliquota_aplicada: Optional[str]) -> bool:
    if isinstance(flag, bool):
        return flag
    if isinstance(flag, str) and flag.strip().lower() in ("true", "false"):
        return flag.strip().lower() == "true"
    return bool(aliquota_aplicada and RE_ALIQUOTA_ZERO.search(aliquota_aplicada))


# ==============================================================================
# CONSTRUCAO DO REGISTRO
# ==============================================================================

def build_record(
    item: Dict[str, Any],
    sessao: SessaoAnalise,
    today: Optional[date] = None,
) -> Optional[PetitionRecord]:
    """
    Constroi PetitionRecord normalizado a partir de um candidato nao confiavel.

    Returns:
        PetitionRecord, ou None quando ncm e produto sao ambos sentinela
    """
    ncm = normalize_ncm(item.get("ncm"))
    produto = normalize_produto(item.get("produto"))
    if produto == PRODUTO_NAO_IDENTIFICADO:
        # CMC 27/15 usa "Descrição" em vez de "Produto"
        produto = normalize_produto(item.get("descricaoAlternativa"))

    if ncm == NCM_NAO_IDENTIFICADO and produto == PRODUTO_NAO_IDENTIFICADO:
        return None

    detalhes: Dict[str, str] = {}
    for key in OPTIONAL_TEXT_FIELDS:
        value = clean_text(item.get(key))
        if value:
            detalhes[key] = value

    return PetitionRecord(
        ncm=ncm,
        produto=produto,
        sessao_analise=sessao,
        tipo_pleito=clamp_tipo_pleito(item.get("tipoPleito")),
        status=clamp_status(item.get("status")),
        prazo=normalize_prazo(item.get("prazo"), today),
        pleiteante=clean_text(item.get("pleiteante")),
        aliquota_aplicada_pleito_zero=infer_pleito_zero(
            item.get("aliquotaAplicadaPleitoZero"), detalhes.get("aliquotaAplicada"),
        ),
        detalhes=detalhes,
    )


def parse_llm_response(
    text: str,
    sessao: SessaoAnalise,
    today: Optional[date] = None,
) -> Optional[List[PetitionRecord]]:
    """
    Converte texto bruto do LLM em pleitos validados.

    Args:
        text: resposta bruta do servico para um chunk
        sessao: sessao classificada do chunk (autoritativa)

    Returns:
        lista de PetitionRecord (pode ser vazia), ou None se a resposta for inutilizavel
    """
    payload = strip_code_fence(text)
    if not payload:
        logger.warning("parse_llm_response: resposta vazia apos remover cerca markdown")
        return None

    try:
        data = json.loads(payload)
    except json.JSONDecodeError as e:
        snippet = payload if len(payload) <= 400 else f"{payload[:200]} ... {payload[-200:]}"
        logger.warning("parse_llm_response: JSON invalido (%s): %s", e, snippet)
        return None

    if not isinstance(data, list):
        logger.warning("parse_llm_response: JSON nao e array (%s)", type(data).__name__)
        return None

    records: List[PetitionRecord] = []
    dropped = 0
    overridden = 0
    for item in data:
        if not isinstance(item, dict):
            dropped += 1
            continue
        record = build_record(item, sessao, today)
        if record is None:
            dropped += 1
            continue
        proposed = item.get("sessaoAnalise")
        if proposed and proposed != sessao.value:
            overridden += 1
        records.append(record)

    if dropped:
        logger.info("parse_llm_response: %d de %d candidatos descartados como ruido", dropped, len(data))
    if overridden:
        logger.info("parse_llm_response: sessaoAnalise sobrescrita em %d pleitos -> '%s'", overridden, sessao.value)
    return records
