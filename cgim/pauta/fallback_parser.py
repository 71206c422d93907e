# cgim/pauta/fallback_parser.py
"""
Parser deterministico de tabelas da pauta (sem LLM).

Usado quando o caminho LLM falha para um chunk. Orientado a precisao:
  - tabela so e lida se algum cabecalho da primeira linha contem "ncm"
  - coluna -> campo por palavra-chave no cabecalho
  - linha so vira pleito se o NCM casar ^\\d{4}\\.\\d{2}\\.\\d{2}$
    (linhas invalidas sao descartadas, nunca viram sentinela)
"""
from __future__ import annotations

import logging
import re
import unicodedata
from datetime import date
from typing import Dict, List, Optional, Tuple

from cgim.pauta.models import PetitionRecord, SessaoAnalise
from cgim.pauta.response_parser import build_record

logger = logging.getLogger(__name__)

RE_NCM_STRICT = re.compile(r"^\d{4}\.\d{2}\.\d{2}$")

MIN_CELLS_PER_ROW = 2

# (palavras-chave, campo). Ordem importa: a primeira regra que casar define o campo.
# As quatro primeiras sao as colunas principais; as demais preenchem campos opcionais.
_HEADER_RULES: List[Tuple[Tuple[str, ...], str]] = [
    (("ncm",), "ncm"),
    (("produto", "descr"), "produto"),
    (("pleiteante", "requerente", "solicitante"), "pleiteante"),
    (("tipo",), "tipoPleito"),
    (("sei restrito", "restrito"), "processoSEIRestrito"),
    (("sei",), "processoSEIPublico"),
    (("ex-tarif", "ex tarif"), "exTarifario"),
    (("aliquota aplicada",), "aliquotaAplicada"),
    (("aliquota pretendida", "aliquota solicitada"), "aliquotaPretendida"),
    (("aliquota ii vigente",), "aliquotaIIVigente"),
    (("aliquota ii pleiteada",), "aliquotaIIPleiteada"),
    (("aliquota",), "aliquotaAplicada"),
    (("reducao",), "reducaoII"),
    (("pais pendente",), "paisPendente"),
    (("pais",), "paisEstadoParte"),
    (("unidade",), "quotaUnidade"),
    (("quota",), "quotaValor"),
    (("termino", "vigencia"), "terminoVigenciaMedida"),
    (("prazo para resposta",), "prazoResposta"),
    (("prazo",), "prazo"),
    (("situacao",), "situacaoEspecifica"),
    (("nota",), "notaTecnica"),
    (("posicao",), "posicaoCAT"),
    (("alteracao tarifaria",), "alteracaoTarifaria"),
    (("tec",), "tec"),
    (("pleito",), "tipoPleitoDetalhado"),
]

# palavras-chave que casam em qualquer posicao do cabecalho
_ANYWHERE_KEYWORDS = {"ncm"}


def _fold(text: str) -> str:
    text = unicodedata.normalize("NFKD", text or "")
    text = "".join(c for c in text if not unicodedata.combining(c))
    return re.sub(r"\s+", " ", text).strip().lower()


def _cell_text(cell) -> str:
    return re.sub(r"\s+", " ", cell.get_text(" ", strip=True).replace("\u00a0", " ")).strip()


def _has_keyword(header: str, keyword: str) -> bool:
    """
    Palavra-chave no inicio de uma palavra ("quota" nao casa em "aliquota").
    "ncm" casa em qualquer posicao ("CódigoNCM").
    """
    if keyword in _ANYWHERE_KEYWORDS:
        return keyword in header
    return re.search(r"\b" + re.escape(keyword), header) is not None


def map_header_columns(headers: List[str]) -> Dict[int, str]:
    """Indice da coluna -> campo. Cada campo fica com a primeira coluna que casar."""
    mapping: Dict[int, str] = {}
    used = set()
    for idx, header in enumerate(headers):
        h = _fold(header)
        if not h:
            continue
        for keywords, field_name in _HEADER_RULES:
            if field_name in used:
                continue
            if any(_has_keyword(h, k) for k in keywords):
                mapping[idx] = field_name
                used.add(field_name)
                break
    return mapping


def _own_rows(table) -> list:
    """Linhas <tr> da tabela, ignorando as de tabelas aninhadas."""
    return [tr for tr in table.find_all("tr") if tr.find_parent("table") is table]


def parse_tables(
    html_fragment: str,
    sessao: SessaoAnalise,
    today: Optional[date] = None,
) -> List[PetitionRecord]:
    """
    Extrai pleitos das tabelas de um fragmento HTML.

    Args:
        html_fragment: conteudo HTML do chunk
        sessao: sessao classificada do chunk

    Returns:
        lista de PetitionRecord (NCM sempre no formato XXXX.XX.XX)
    """
    from bs4 import BeautifulSoup

    if not html_fragment or not html_fragment.strip():
        return []

    soup = BeautifulSoup(html_fragment, "html.parser")
    records: List[PetitionRecord] = []
    tables_read = 0
    dropped = 0

    for table in soup.find_all("table"):
        rows = _own_rows(table)
        if not rows:
            continue

        headers = [_cell_text(c) for c in rows[0].find_all(["th", "td"], recursive=False)]
        columns = map_header_columns(headers)
        if "ncm" not in columns.values():
            continue
        tables_read += 1

        for row in rows[1:]:
            cells = row.find_all(["td", "th"], recursive=False)
            if len(cells) < MIN_CELLS_PER_ROW:
                continue

            item = {
                field_name: _cell_text(cells[idx])
                for idx, field_name in columns.items()
                if idx < len(cells)
            }
            if not RE_NCM_STRICT.match(item.get("ncm", "")):
                dropped += 1
                continue

            record = build_record(item, sessao, today)
            if record is not None:
                records.append(record)

    logger.info(
        "parse_tables: %d tabelas com NCM, %d pleitos, %d linhas descartadas",
        tables_read, len(records), dropped,
    )
    return records
