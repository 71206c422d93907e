# cgim/pauta/segmenter.py
"""
Segmentador de HTML da pauta do CAT.

Granularidade: 1 segmento = 1 cabecalho (<h1>/<h2>/<h3>) + conteudo seguinte.
Conteudo antes do primeiro cabecalho vira um segmento proprio.
Segmentos maiores que max_chars: sub-divididos por fronteira estrutural.

Fronteiras de corte (em ordem de preferencia, sempre na metade final da janela):
  1. fim de </table>, </p> ou </div>
  2. quebra de linha ou espaco fora de tag
  3. inicio de uma tag que cruza o fim da janela
  4. corte seco em exatamente max_chars

O caminho de cabecalhos (h1 > h2 > h3) e propagado entre segmentos para que
o classificador enxergue "CMC 27/15" quando o segmento comeca em <h3>Novos</h3>.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from cgim.pauta.config import DEFAULT_MAX_CHUNK_CHARS
from cgim.pauta.models import DocumentChunk

logger = logging.getLogger(__name__)

DEFAULT_DOCUMENT_TITLE = "Documento Principal"
FALLBACK_DOCUMENT_TITLE = "Documento Completo (Fallback)"

# ── Regex patterns ───────────────────────────────────────────────────────────

# Abertura de <h1>, <h2>, <h3> (nao casa <header>, <hr>, <h4>...)
RE_HEADING_OPEN = re.compile(r"<h([1-3])(?=[\s>/])[^>]*>", re.IGNORECASE)

# Cabecalho completo no inicio do segmento
RE_HEADING_AT_START = re.compile(
    r"^\s*<h([1-3])(?=[\s>/])[^>]*>(.*?)</h\1\s*>",
    re.IGNORECASE | re.DOTALL,
)

RE_H1 = re.compile(r"<h1(?=[\s>/])[^>]*>(.*?)</h1\s*>", re.IGNORECASE | re.DOTALL)
RE_TITLE = re.compile(r"<title\b[^>]*>(.*?)</title\s*>", re.IGNORECASE | re.DOTALL)

# Qualquer tag (abertura, fechamento, comentario simples)
RE_TAG = re.compile(r"<[^>]*>")

# Fechamento de elemento de bloco
RE_BLOCK_CLOSE = re.compile(r"</(?:table|p|div)\s*>", re.IGNORECASE)

RE_WS = re.compile(r"\s+")


# ── Helpers ──────────────────────────────────────────────────────────────────

def _clean_heading_text(inner_html: str) -> str:
    """Texto do cabecalho: tags removidas, entidades decodificadas, espacos colapsados."""
    from bs4 import BeautifulSoup

    text = BeautifulSoup(inner_html, "html.parser").get_text(" ")
    return RE_WS.sub(" ", text.replace("\u00a0", " ")).strip()


def _leading_title(segment: str) -> str:
    """Titulo do segmento inicial: <h1>, senao <title>, senao rotulo generico."""
    for pattern in (RE_H1, RE_TITLE):
        m = pattern.search(segment)
        if m:
            title = _clean_heading_text(m.group(1))
            if title:
                return title
    return DEFAULT_DOCUMENT_TITLE


@dataclass
class _RawSegment:
    """Segmento bruto antes do corte por tamanho."""
    title: str
    content: str
    heading_path: Tuple[str, ...]


def _split_at_headings(html: str) -> List[_RawSegment]:
    """
    Divide o HTML em segmentos no inicio de cada <h1>/<h2>/<h3>.

    O cabecalho fica com o conteudo que o segue (lookahead).
    """
    starts = [m.start() for m in RE_HEADING_OPEN.finditer(html)]
    bounds = [0] + [s for s in starts if s > 0] + [len(html)]

    segments: List[_RawSegment] = []
    current: Dict[int, Optional[str]] = {1: None, 2: None, 3: None}

    for i in range(len(bounds) - 1):
        part = html[bounds[i]:bounds[i + 1]].strip()
        if not part:
            continue

        m = RE_HEADING_AT_START.match(part)
        if m:
            level = int(m.group(1))
            title = _clean_heading_text(m.group(2)) or f"Seção sem título ({len(segments) + 1})"
            current[level] = title
            for deeper in range(level + 1, 4):
                current[deeper] = None
        elif not segments:
            title = _leading_title(part)
        else:
            # Abertura de cabecalho sem fechamento: mantem o contexto anterior
            title = segments[-1].title

        path = tuple(t for t in (current[1], current[2], current[3]) if t)
        segments.append(_RawSegment(title=title, content=part, heading_path=path))

    return segments


# ── Boundary finder ──────────────────────────────────────────────────────────

def _tag_spans(text: str, limit: int) -> List[Tuple[int, int]]:
    """Spans (start, end) das tags que comecam antes de limit."""
    spans = []
    for m in RE_TAG.finditer(text):
        if m.start() >= limit:
            break
        spans.append((m.start(), m.end()))
    return spans


def _inside_tag(pos: int, spans: List[Tuple[int, int]]) -> bool:
    return any(start < pos < end for start, end in spans)


def find_cut_position(text: str, max_chars: int) -> int:
    """
    Posicao de corte para o prefixo de text com no maximo max_chars.

    Procura apenas na metade final da janela; nunca retorna 0.
    """
    if len(text) <= max_chars:
        return len(text)

    half = max_chars / 2
    window = text[:max_chars]

    # 1. Fechamento de bloco mais proximo do fim da janela
    best = -1
    for m in RE_BLOCK_CLOSE.finditer(window):
        if m.start() > half and m.end() <= max_chars:
            best = max(best, m.end())
    if best > 0:
        return best

    spans = _tag_spans(text, max_chars)

    # 2. Quebra de linha, depois espaco, fora de tag
    for sep in ("\n", " "):
        idx = window.rfind(sep)
        while idx > half:
            if not _inside_tag(idx, spans):
                return idx + 1
            idx = window.rfind(sep, 0, idx)

    # 3. Tag que cruza o fim da janela: corta antes do "<"
    for start, end in spans:
        if half < start < max_chars < end:
            return start

    # 4. Corte seco
    return max_chars


def split_by_length(content: str, max_chars: int) -> List[str]:
    """Sub-divide conteudo em pedacos de ate max_chars (aparados, sem vazios)."""
    if max_chars <= 0:
        raise ValueError(f"max_chars deve ser positivo (recebido {max_chars})")

    pieces: List[str] = []
    remaining = content
    while remaining:
        cut = find_cut_position(remaining, max_chars)
        piece = remaining[:cut].strip()
        if piece:
            pieces.append(piece)
        remaining = remaining[cut:]
    return pieces


# ── Public API ────────────────────────────────────────────────────────────────

def segment_html(html: str, max_chars: int = DEFAULT_MAX_CHUNK_CHARS) -> List[DocumentChunk]:
    """
    Segmenta HTML da pauta em DocumentChunks ordenados.

    Args:
        html: HTML bruto
        max_chars: tamanho maximo de cada chunk (len(content) <= max_chars)

    Returns:
        lista de DocumentChunk em ordem de documento
    """
    if not html or not html.strip():
        logger.info("segment_html: HTML vazio, 0 chunks")
        return []

    raw_segments = _split_at_headings(html)
    logger.info("segment_html: %d segmentos por cabecalho", len(raw_segments))

    chunks: List[DocumentChunk] = []
    for seg in raw_segments:
        if len(seg.content) <= max_chars:
            chunks.append(DocumentChunk(
                section_title=seg.title,
                content=seg.content,
                order=len(chunks),
                heading_path=seg.heading_path,
            ))
            continue

        pieces = split_by_length(seg.content, max_chars)
        logger.warning(
            "segment_html: segmento '%s' (%d chars) excede %d, dividido em %d partes",
            seg.title, len(seg.content), max_chars, len(pieces),
        )
        for part_idx, piece in enumerate(pieces, 1):
            chunks.append(DocumentChunk(
                section_title=f"{seg.title} (Parte {part_idx})",
                content=piece,
                order=len(chunks),
                heading_path=seg.heading_path,
                part=part_idx,
            ))

    if not chunks:
        # SegmentationAnomaly: entrada nao vazia sem nenhum segmento
        logger.warning(
            "segment_html: HTML nao vazio (%d chars) gerou 0 segmentos; aplicando corte por tamanho no documento inteiro",
            len(html),
        )
        for part_idx, piece in enumerate(split_by_length(html.strip(), max_chars), 1):
            chunks.append(DocumentChunk(
                section_title=f"{FALLBACK_DOCUMENT_TITLE} (Parte {part_idx})",
                content=piece,
                order=len(chunks),
                part=part_idx,
            ))

    logger.info("segment_html: %d chunks finais", len(chunks))
    return chunks
