"""
cgim.pauta - Importacao de pautas do CAT (HTML -> pleitos estruturados).

Etapas: segmentacao por cabecalho, classificacao da sessao, extracao via
LLM com parser de tabelas como fallback, validacao e montagem ordenada.

Uso típico:
    from cgim.pauta import PautaImportPipeline, PautaSettings, build_client

    settings = PautaSettings.from_env()
    pipeline = PautaImportPipeline(build_client(settings))
    result = pipeline.run(html, file_name="pauta_cat_2025_03.html")
    for pleito in result.records:
        print(pleito.ordem_original, pleito.ncm, pleito.produto)
"""
__version__ = "1.0.0"

from .models import (
    SessaoAnalise,
    TipoPleito,
    StatusPleito,
    FailureReason,
    ChunkState,
    PetitionRecord,
    DocumentChunk,
    Extracted,
    Failed,
    ChunkReport,
    ImportResult,
)
from .errors import PautaError, ConfigurationError, ExtractionError
from .config import PautaSettings
from .segmenter import segment_html
from .classifier import classify_heading, classify_chunk
from .extraction_client import (
    GeminiExtractionClient,
    OpenAIExtractionClient,
    FallbackOnlyClient,
    build_client,
)
from .response_parser import parse_llm_response, normalize_ncm
from .fallback_parser import parse_tables
from .assembler import PautaAssembler
from .pipeline import PautaImportPipeline, import_pauta_html
