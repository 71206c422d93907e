# cgim/pauta/classifier.py
"""
Classificador de secao da pauta -> SessaoAnalise.

Match exato ou pelo prefixo mais longo contra uma tabela fixa de frases
de cabecalho conhecidas (normalizadas: minusculas, sem acento, espacos
colapsados). Cabecalho nao reconhecido -> DEFAULT_SESSAO (Pleitos Novos no CAT).

A classificacao e feita uma vez por chunk e vale para todos os pleitos
extraidos dele, sobrescrevendo qualquer valor proposto pelo extrator.
"""
from __future__ import annotations

import logging
import re
import unicodedata
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from cgim.pauta.models import DEFAULT_SESSAO, DocumentChunk, SessaoAnalise

logger = logging.getLogger(__name__)

# Sufixo adicionado pelo segmentador em partes de secoes grandes
RE_PART_SUFFIX = re.compile(r"\s*\(parte \d+\)\s*$", re.IGNORECASE)


def normalize_heading(text: str) -> str:
    """Minusculas, sem acentos, espacos colapsados, sem sufixo '(Parte N)'."""
    if not text:
        return ""
    text = unicodedata.normalize("NFKD", text)
    text = "".join(c for c in text if not unicodedata.combining(c))
    text = re.sub(r"\s+", " ", text).strip().lower()
    text = RE_PART_SUFFIX.sub("", text)
    # "CMC 27/15 : Novos" / "CMC 27/15 - Novos" -> "cmc 27/15: novos"
    text = re.sub(r"\s*[:–—]\s*|\s+-\s+", ": ", text)
    return text.strip()


# Frase de cabecalho -> sessao. Os proprios valores do enum entram automaticamente.
# Ordem nao importa: vence o prefixo mais longo.
_HEADING_ALIASES: Dict[str, SessaoAnalise] = {
    "pleitos em analise na ccm": SessaoAnalise.ANALISE_CCM,
    "pleitos pendentes na ccm": SessaoAnalise.PENDENTES_CCM_BR,
    "pleitos pendentes na ccm: pleitos do brasil": SessaoAnalise.PENDENTES_CCM_BR,
    "pleitos pendentes na ccm: pleitos dos demais estados partes": SessaoAnalise.PENDENTES_CCM_MERCOSUL,
    "pleitos pendentes no cat": SessaoAnalise.PENDENTES_CAT,
    "pleitos novos no cat": SessaoAnalise.NOVOS_CAT,
    "pleitos dos demais estados partes do mercosul no cat": SessaoAnalise.PENDENTES_MERCOSUL_CAT,
    "pleitos dos demais estados partes do mercosul no cat: pendentes": SessaoAnalise.PENDENTES_MERCOSUL_CAT,
    "pleitos dos demais estados partes do mercosul no cat: novos": SessaoAnalise.NOVOS_MERCOSUL_CAT,
    "letec": SessaoAnalise.LETEC_GERAL,
    "letec: geral": SessaoAnalise.LETEC_GERAL,
    "letec: pendentes": SessaoAnalise.LETEC_GERAL,
    "letec: pleitos pendentes": SessaoAnalise.LETEC_GERAL,
    "letec: novos": SessaoAnalise.LETEC_NOVOS,
    "letec: pleitos novos": SessaoAnalise.LETEC_NOVOS,
    "cmc 27/15": SessaoAnalise.CMC_2715_PENDENTES,
    "cmc 27/15: pendentes": SessaoAnalise.CMC_2715_PENDENTES,
    "cmc 27/15: novos": SessaoAnalise.CMC_2715_NOVOS,
    "lebit/bk": SessaoAnalise.LEBIT_BK_PENDENTES,
    "lebit/bk: pendentes": SessaoAnalise.LEBIT_BK_PENDENTES,
    "lebit/bk: novos": SessaoAnalise.LEBIT_BK_NOVOS,
    "ct-1": SessaoAnalise.CT1_PENDENTES,
    "ct-1: pendentes": SessaoAnalise.CT1_PENDENTES,
    "ct-1: novos": SessaoAnalise.CT1_NOVOS,
}


def _build_table() -> List[Tuple[str, SessaoAnalise]]:
    table: Dict[str, SessaoAnalise] = {}
    for sessao in SessaoAnalise:
        table[normalize_heading(sessao.value)] = sessao
    for phrase, sessao in _HEADING_ALIASES.items():
        table[normalize_heading(phrase)] = sessao
    # Mais longas primeiro: o primeiro prefixo que casar e o mais longo
    return sorted(table.items(), key=lambda kv: len(kv[0]), reverse=True)


HEADING_TABLE: List[Tuple[str, SessaoAnalise]] = _build_table()


def _match(normalized: str) -> Optional[Tuple[str, SessaoAnalise]]:
    if not normalized:
        return None
    for phrase, sessao in HEADING_TABLE:
        if normalized == phrase or normalized.startswith(phrase):
            return phrase, sessao
    return None


def _candidates(title: str, heading_path: Sequence[str]) -> Iterable[str]:
    """Titulo mais interno, depois sufixos do caminho de cabecalhos ('pai: filho')."""
    yield title
    path = [p for p in heading_path if p]
    for start in range(len(path) - 1, -1, -1):
        yield ": ".join(path[start:])


def classify_heading(title: str, heading_path: Sequence[str] = ()) -> SessaoAnalise:
    """
    Mapeia texto de cabecalho para SessaoAnalise.

    Args:
        title: texto do cabecalho (ja sem tags)
        heading_path: cabecalhos envolventes, do mais externo ao mais interno

    Returns:
        SessaoAnalise do prefixo mais longo que casar, ou DEFAULT_SESSAO
    """
    best: Optional[Tuple[str, SessaoAnalise]] = None
    for candidate in _candidates(title, heading_path):
        found = _match(normalize_heading(candidate))
        if found and (best is None or len(found[0]) > len(best[0])):
            best = found

    if best is None:
        logger.debug("classify_heading: sem match para '%s', usando %s", title[:80], DEFAULT_SESSAO.name)
        return DEFAULT_SESSAO
    return best[1]


def classify_chunk(chunk: DocumentChunk) -> SessaoAnalise:
    return classify_heading(chunk.section_title, chunk.heading_path)
