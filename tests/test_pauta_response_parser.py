# tests/test_pauta_response_parser.py
"""
Testes unitarios para cgim.pauta.response_parser.
"""
from __future__ import annotations

import json
from datetime import date

import pytest

from cgim.pauta.models import (
    NCM_NAO_IDENTIFICADO,
    PRODUTO_NAO_IDENTIFICADO,
    SessaoAnalise,
    StatusPleito,
    TipoPleito,
)
from cgim.pauta.response_parser import (
    build_record,
    clamp_status,
    clamp_tipo_pleito,
    clean_text,
    infer_pleito_zero,
    normalize_ncm,
    normalize_prazo,
    normalize_produto,
    parse_llm_response,
    strip_code_fence,
)

HOJE = date(2025, 3, 10)


# ── Normalizacao de campos ───────────────────────────────────────────────────

class TestNormalizeNcm:
    def test_hifens(self):
        assert normalize_ncm("1234-56-78") == "1234.56.78"

    def test_curto_demais(self):
        assert normalize_ncm("123") == NCM_NAO_IDENTIFICADO

    def test_so_digitos(self):
        assert normalize_ncm("84295199") == "8429.51.99"

    def test_ja_canonico(self):
        assert normalize_ncm("8429.51.99") == "8429.51.99"

    def test_digitos_demais(self):
        assert normalize_ncm("8429.51.99.001") == NCM_NAO_IDENTIFICADO

    def test_numero_inteiro(self):
        assert normalize_ncm(84295199) == "8429.51.99"

    def test_none(self):
        assert normalize_ncm(None) == NCM_NAO_IDENTIFICADO


class TestNormalizeProduto:
    def test_valido(self):
        assert normalize_produto("  Escavadeira hidráulica ") == "Escavadeira hidráulica"

    def test_curto_demais(self):
        assert normalize_produto(" x ") == PRODUTO_NAO_IDENTIFICADO

    def test_ausente(self):
        assert normalize_produto(None) == PRODUTO_NAO_IDENTIFICADO

    def test_entidades_decodificadas(self):
        assert normalize_produto("Fios de a&ccedil;o&nbsp;inox") == "Fios de aço inox"


class TestCleanText:
    def test_colapsa_espacos(self):
        assert clean_text("  SEI   19971.1\n0001 ") == "SEI 19971.1 0001"

    def test_vazio_vira_none(self):
        assert clean_text("   ") is None

    def test_objeto_descartado(self):
        assert clean_text({"a": 1}) is None

    def test_numero(self):
        assert clean_text(12.5) == "12.5"


class TestEnums:
    def test_tipo_ausente_vira_default(self):
        assert clamp_tipo_pleito(None) == TipoPleito.OUTRO

    def test_tipo_com_acento(self):
        assert clamp_tipo_pleito("Redução") == TipoPleito.REDUCAO

    def test_tipo_sem_acento_e_caixa_alta(self):
        assert clamp_tipo_pleito("INCLUSAO") == TipoPleito.INCLUSAO

    def test_tipo_com_complemento(self):
        assert clamp_tipo_pleito("Redução tarifária") == TipoPleito.REDUCAO

    def test_tipo_desconhecido_vira_outro(self):
        assert clamp_tipo_pleito("Consulta pública") == TipoPleito.OUTRO

    def test_status_em_analise(self):
        assert clamp_status("Em análise") == StatusPleito.ANALISE

    def test_status_desconhecido_vira_pendente(self):
        assert clamp_status("Aguardando") == StatusPleito.PENDENTE


class TestPrazo:
    def test_iso(self):
        assert normalize_prazo("2025-04-01", HOJE) == "2025-04-01"

    def test_brasileiro(self):
        assert normalize_prazo("01/04/2025", HOJE) == "2025-04-01"

    def test_datetime_iso(self):
        assert normalize_prazo("2025-04-01T10:00:00Z", HOJE) == "2025-04-01"

    def test_invalido_vira_hoje(self):
        assert normalize_prazo("próxima reunião", HOJE) == "2025-03-10"

    def test_ausente_vira_hoje(self):
        assert normalize_prazo(None, HOJE) == "2025-03-10"


class TestPleitoZero:
    @pytest.mark.parametrize("aliquota", ["0%", "0 %", "0,00%", "14% (Pleito a 0%)"])
    def test_aliquota_zero(self, aliquota):
        assert infer_pleito_zero(None, aliquota) is True

    @pytest.mark.parametrize("aliquota", ["10%", "2,0%", "20 %", None])
    def test_aliquota_nao_zero(self, aliquota):
        assert infer_pleito_zero(None, aliquota) is False

    def test_flag_explicita_prevalece(self):
        assert infer_pleito_zero(False, "0%") is False
        assert infer_pleito_zero("true", "10%") is True


# ── build_record ─────────────────────────────────────────────────────────────

class TestBuildRecord:
    def test_defaults_preenchidos(self):
        record = build_record({"ncm": "8429.51.99", "produto": "Pá carregadeira"}, SessaoAnalise.PENDENTES_CAT, HOJE)
        assert record.tipo_pleito == TipoPleito.OUTRO
        assert record.status == StatusPleito.PENDENTE
        assert record.prazo == "2025-03-10"
        assert record.pleiteante is None
        assert record.aliquota_aplicada_pleito_zero is False
        assert record.detalhes == {}
        assert record.ordem_original is None

    def test_ambos_sentinela_descartado(self):
        assert build_record({"ncm": "abc", "produto": "x"}, SessaoAnalise.NOVOS_CAT, HOJE) is None

    def test_so_produto_mantido(self):
        record = build_record({"produto": "Widget"}, SessaoAnalise.NOVOS_CAT, HOJE)
        assert record.ncm == NCM_NAO_IDENTIFICADO
        assert record.produto == "Widget"

    def test_so_ncm_mantido(self):
        record = build_record({"ncm": "12345678"}, SessaoAnalise.NOVOS_CAT, HOJE)
        assert record.ncm == "1234.56.78"
        assert record.produto == PRODUTO_NAO_IDENTIFICADO

    def test_descricao_alternativa_cmc(self):
        item = {"ncm": "1234.56.78", "descricaoAlternativa": "Outros motores"}
        record = build_record(item, SessaoAnalise.CMC_2715_NOVOS, HOJE)
        assert record.produto == "Outros motores"
        assert record.detalhes["descricaoAlternativa"] == "Outros motores"

    def test_campos_fora_do_schema_descartados(self):
        item = {"ncm": "1234.56.78", "produto": "Widget", "exTarifario": "001", "campoInventado": "zzz"}
        record = build_record(item, SessaoAnalise.NOVOS_CAT, HOJE)
        assert record.detalhes == {"exTarifario": "001"}
        assert "campoInventado" not in record.to_dict()

    def test_pleito_zero_inferido_da_aliquota(self):
        item = {"ncm": "1234.56.78", "produto": "Widget", "aliquotaAplicada": "14% (Pleito a 0%)"}
        record = build_record(item, SessaoAnalise.NOVOS_CAT, HOJE)
        assert record.aliquota_aplicada_pleito_zero is True


# ── parse_llm_response ───────────────────────────────────────────────────────

class TestParseLlmResponse:
    def test_array_simples(self):
        text = json.dumps([{"ncm": "1234-56-78", "produto": "Widget A", "pleiteante": "ACME Ltda"}])
        records = parse_llm_response(text, SessaoAnalise.NOVOS_CAT, HOJE)
        assert len(records) == 1
        assert records[0].ncm == "1234.56.78"
        assert records[0].pleiteante == "ACME Ltda"

    def test_cerca_markdown(self):
        text = '```json\n[{"ncm": "12345678", "produto": "Widget"}]\n```'
        records = parse_llm_response(text, SessaoAnalise.NOVOS_CAT, HOJE)
        assert [r.ncm for r in records] == ["1234.56.78"]

    def test_sessao_do_chunk_sobrescreve_proposta(self):
        text = json.dumps([
            {"ncm": "1234.56.78", "produto": "Widget", "sessaoAnalise": SessaoAnalise.CT1_NOVOS.value},
            {"ncm": "8765.43.21", "produto": "Gadget", "sessaoAnalise": "inventada"},
        ])
        records = parse_llm_response(text, SessaoAnalise.LETEC_NOVOS, HOJE)
        assert [r.sessao_analise for r in records] == [SessaoAnalise.LETEC_NOVOS] * 2

    def test_array_vazio_e_resultado_valido(self):
        assert parse_llm_response("[]", SessaoAnalise.NOVOS_CAT, HOJE) == []

    def test_ruido_descartado_sem_erro(self):
        text = json.dumps([
            {"ncm": "n/a", "produto": ""},
            "texto solto",
            {"ncm": "1234.56.78", "produto": "Widget"},
        ])
        records = parse_llm_response(text, SessaoAnalise.NOVOS_CAT, HOJE)
        assert len(records) == 1

    def test_json_invalido(self):
        assert parse_llm_response("[{ncm: 1234}", SessaoAnalise.NOVOS_CAT, HOJE) is None

    def test_objeto_nao_e_array(self):
        assert parse_llm_response('{"pleitos": []}', SessaoAnalise.NOVOS_CAT, HOJE) is None

    def test_vazio(self):
        assert parse_llm_response("", SessaoAnalise.NOVOS_CAT, HOJE) is None
        assert parse_llm_response("```json\n```", SessaoAnalise.NOVOS_CAT, HOJE) is None


class TestStripCodeFence:
    def test_sem_cerca(self):
        assert strip_code_fence("  [1] ") == "[1]"

    def test_cerca_sem_linguagem(self):
        assert strip_code_fence("```\n[1]\n```") == "[1]"
