#!/usr/bin/env python3
"""
Importa uma pauta HTML do CAT e imprime/salva os pleitos extraidos.

Uso:
    python scripts/import_pauta.py pauta.html                      # provider do ambiente
    python scripts/import_pauta.py pauta.html --output pleitos.json
    python scripts/import_pauta.py pauta.html --fallback-only      # sem LLM, so tabelas
    python scripts/import_pauta.py pauta.html --max-chunk-chars 20000 --timeout 600

Requer (exceto com --fallback-only):
    GEMINI_API_KEY, ou PAUTA_LLM_PROVIDER=openai + OPENAI_API_KEY
"""
from __future__ import annotations

import sys
import os
import json
import logging
import argparse
from datetime import datetime, timezone

# Adiciona raiz do projeto ao path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from cgim.pauta.config import PautaSettings
from cgim.pauta.errors import ConfigurationError
from cgim.pauta.extraction_client import FallbackOnlyClient, build_client
from cgim.pauta.pipeline import PautaImportPipeline


def main():
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    parser = argparse.ArgumentParser(description="Importa pauta HTML do CAT")
    parser.add_argument("path", help="Arquivo HTML da pauta")
    parser.add_argument("--output", type=str, default=None,
                        help="Path para salvar resultado JSON")
    parser.add_argument("--max-chunk-chars", type=int, default=None,
                        help="Tamanho maximo de cada trecho enviado ao LLM")
    parser.add_argument("--timeout", type=float, default=None,
                        help="Prazo total da importacao em segundos")
    parser.add_argument("--fallback-only", action="store_true",
                        help="Nao chama LLM: usa apenas o parser de tabelas")
    args = parser.parse_args()

    with open(args.path, "r", encoding="utf-8", errors="replace") as f:
        html = f.read()

    settings = PautaSettings.from_env()
    client = FallbackOnlyClient(settings) if args.fallback_only else build_client(settings)
    pipeline = PautaImportPipeline(client, max_chunk_chars=args.max_chunk_chars or settings.max_chunk_chars)

    try:
        result = pipeline.run(html, file_name=os.path.basename(args.path), timeout_seconds=args.timeout)
    except ConfigurationError as e:
        print(f"ERRO de configuracao: {e}", file=sys.stderr)
        return 2

    # Summary
    print(f"\n{'='*60}")
    print(f"Pauta: {os.path.basename(args.path)}")
    print(f"{'='*60}")
    print(f"  Trechos:     {len(result.chunks)}")
    print(f"  Via LLM:     {sum(1 for c in result.chunks if c.source == 'llm')}")
    print(f"  Via tabelas: {sum(1 for c in result.chunks if c.source == 'fallback')}")
    print(f"  Pleitos:     {len(result.records)}")
    if result.cancelled:
        print("  (importacao interrompida: resultado parcial)")
    if result.message:
        print(f"  {result.message}")

    for c in result.chunks:
        sessao = c.sessao_analise.name if c.sessao_analise else "-"
        print(f"  [{c.state.value}] #{c.order} {c.section_title[:60]} ({sessao}): {c.records} pleitos")

    if args.output:
        report = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "source": args.path,
            "provider": client.provider,
            **result.to_dict(),
        }
        with open(args.output, "w", encoding="utf-8") as f:
            json.dump(report, f, indent=2, ensure_ascii=False, default=str)
        print(f"\nResultado salvo em: {args.output}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
