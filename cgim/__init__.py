"""
CGIM - Gestao de Pleitos Tarifarios

IMPORTANT: Este arquivo deve ser side-effect free.
NAO importar modulos pesados aqui.
Use imports explicitos nos arquivos que precisam:
  from cgim.pauta.pipeline import PautaImportPipeline
  from cgim.pauta.models import PetitionRecord
"""

__all__ = []
