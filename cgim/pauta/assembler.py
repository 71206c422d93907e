# cgim/pauta/assembler.py
"""
Montagem da saida: concatena pleitos por chunk, em ordem de documento.

- ordemOriginal: posicao 1-based na sequencia final (sem lacunas nem repeticoes)
- pautaIdentifier: rotulo da pauta de origem
- sem deduplicacao entre chunks
"""
from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from cgim.pauta.models import PetitionRecord

logger = logging.getLogger(__name__)

DEFAULT_PAUTA_IDENTIFIER = "Pauta Importada"


def pauta_identifier_for(file_name: Optional[str]) -> str:
    name = (file_name or "").strip()
    return f"Pauta: {name}" if name else DEFAULT_PAUTA_IDENTIFIER


class PautaAssembler:
    """Lista append-only + contador de sequencia. Dono unico: o loop do pipeline."""

    def __init__(self, file_name: Optional[str] = None):
        self.pauta_identifier = pauta_identifier_for(file_name)
        self._records: List[PetitionRecord] = []

    def add(self, records: Iterable[PetitionRecord]) -> int:
        """Anexa os pleitos de um chunk; retorna quantos foram anexados."""
        added = 0
        for record in records:
            record.ordem_original = len(self._records) + 1
            record.pauta_identifier = self.pauta_identifier
            self._records.append(record)
            added += 1
        return added

    @property
    def records(self) -> List[PetitionRecord]:
        return list(self._records)

    def __len__(self) -> int:
        return len(self._records)
