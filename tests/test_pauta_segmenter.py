# tests/test_pauta_segmenter.py
"""
Testes unitarios para cgim.pauta.segmenter.
"""
from __future__ import annotations

import pytest

from cgim.pauta.segmenter import (
    DEFAULT_DOCUMENT_TITLE,
    find_cut_position,
    segment_html,
    split_by_length,
)


# ── Entrada vazia / sem cabecalhos ───────────────────────────────────────────

class TestSemCabecalhos:
    def test_html_vazio(self):
        assert segment_html("", 100) == []

    def test_html_so_espacos(self):
        assert segment_html("   \n\t  ", 100) == []

    def test_um_chunk_igual_ao_input_aparado(self):
        html = "  \n<p>Pauta sem titulos</p><table><tr><td>x</td></tr></table>\n  "
        chunks = segment_html(html, 1000)
        assert len(chunks) == 1
        assert chunks[0].content == html.strip()
        assert chunks[0].section_title == DEFAULT_DOCUMENT_TITLE
        assert chunks[0].order == 0
        assert chunks[0].part is None

    def test_titulo_do_documento_vem_do_title(self):
        html = "<html><head><title>Pauta da 230ª Reunião</title></head><body><p>a</p></body></html>"
        chunks = segment_html(html, 1000)
        assert len(chunks) == 1
        assert chunks[0].section_title == "Pauta da 230ª Reunião"


# ── Divisao por cabecalho ────────────────────────────────────────────────────

class TestDivisaoPorCabecalho:
    HTML = (
        "<p>Introducao</p>"
        "<h2>Pleitos Novos no CAT</h2><table><tr><td>1</td></tr></table>"
        "<h2>LETEC: Pleitos Novos</h2><p>conteudo</p>"
    )

    def test_um_segmento_por_cabecalho_mais_o_inicial(self):
        chunks = segment_html(self.HTML, 1000)
        assert [c.section_title for c in chunks] == [
            DEFAULT_DOCUMENT_TITLE,
            "Pleitos Novos no CAT",
            "LETEC: Pleitos Novos",
        ]

    def test_cabecalho_fica_com_o_conteudo_seguinte(self):
        chunks = segment_html(self.HTML, 1000)
        assert chunks[0].content == "<p>Introducao</p>"
        assert chunks[1].content.startswith("<h2>Pleitos Novos no CAT</h2>")
        assert chunks[1].content.endswith("</table>")

    def test_ordem_sequencial(self):
        chunks = segment_html(self.HTML, 1000)
        assert [c.order for c in chunks] == [0, 1, 2]

    def test_nenhum_conteudo_perdido(self):
        chunks = segment_html(self.HTML, 1000)
        assert "".join(c.content for c in chunks) == self.HTML

    def test_titulo_sem_tags_e_espacos_colapsados(self):
        html = "<h2 class='x'>  Pleitos   <b>Pendentes</b>\n no CAT </h2><p>a</p>"
        chunks = segment_html(html, 1000)
        assert chunks[0].section_title == "Pleitos Pendentes no CAT"

    def test_titulo_com_entidade_html(self):
        html = "<h3>Pleitos em an&aacute;lise na CCM</h3><p>a</p>"
        chunks = segment_html(html, 1000)
        assert chunks[0].section_title == "Pleitos em análise na CCM"

    def test_nao_divide_em_header_nem_h4(self):
        html = "<header>topo</header><h4>Sub</h4><p>a</p>"
        chunks = segment_html(html, 1000)
        assert len(chunks) == 1

    def test_caminho_de_cabecalhos_propagado(self):
        html = (
            "<h2>CMC 27/15</h2><h3>Pendentes</h3><p>a</p>"
            "<h3>Novos</h3><p>b</p>"
            "<h2>CT-1</h2><p>c</p>"
        )
        chunks = segment_html(html, 1000)
        paths = [c.heading_path for c in chunks]
        assert paths == [
            ("CMC 27/15",),
            ("CMC 27/15", "Pendentes"),
            ("CMC 27/15", "Novos"),
            ("CT-1",),
        ]


# ── Corte por tamanho ────────────────────────────────────────────────────────

class TestCortePorTamanho:
    def test_corte_seco_em_exatamente_L(self):
        html = "a" * 25
        chunks = segment_html(html, 10)
        assert [len(c.content) for c in chunks] == [10, 10, 5]
        assert "".join(c.content for c in chunks) == html

    def test_corte_seco_reconstroi_input_aparado(self):
        html = "\n  " + "0123456789" * 7 + "  \n"
        chunks = segment_html(html, 16)
        assert chunks[0].content == html.strip()[:16]
        assert "".join(c.content for c in chunks) == html.strip()

    def test_todos_os_chunks_respeitam_L(self):
        linhas = "".join(
            f"<tr><td>{i:04d}.10.00</td><td>Produto numero {i}</td></tr>\n" for i in range(200)
        )
        html = f"<h2>Pleitos Novos no CAT</h2><table>{linhas}</table><p>fim</p>"
        chunks = segment_html(html, 500)
        assert len(chunks) > 1
        assert all(len(c.content) <= 500 for c in chunks)

    def test_partes_numeradas_no_titulo(self):
        html = "<h2>T</h2>" + "<p>" + "x" * 30 + "</p>" + "<p>" + "y" * 30 + "</p>"
        chunks = segment_html(html, 60)
        assert [c.section_title for c in chunks] == ["T (Parte 1)", "T (Parte 2)"]
        assert [c.part for c in chunks] == [1, 2]
        assert all(c.heading_path == ("T",) for c in chunks)

    def test_prefere_fechamento_de_bloco(self):
        html = "<h2>T</h2>" + "<p>" + "x" * 30 + "</p>" + "<p>" + "y" * 30 + "</p>"
        chunks = segment_html(html, 60)
        assert chunks[0].content.endswith("</p>")
        assert chunks[1].content == "<p>" + "y" * 30 + "</p>"

    def test_ordem_global_entre_segmentos(self):
        html = "<h2>A</h2>" + "a" * 30 + "<h2>B</h2><p>b</p>"
        chunks = segment_html(html, 20)
        assert [c.order for c in chunks] == list(range(len(chunks)))
        assert chunks[-1].section_title == "B"


class TestFindCutPosition:
    def test_texto_cabe_inteiro(self):
        assert find_cut_position("abc", 10) == 3

    def test_quebra_de_linha_na_metade_final(self):
        text = "a" * 7 + "\n" + "b" * 10
        assert find_cut_position(text, 10) == 8

    def test_ignora_separador_na_metade_inicial(self):
        text = "ab " + "c" * 20
        assert find_cut_position(text, 10) == 10

    def test_nunca_corta_espaco_dentro_de_tag(self):
        text = "x" * 40 + '<span class="a b c">' + "y" * 40
        cut = find_cut_position(text, 50)
        assert cut == 40
        assert text[cut] == "<"

    def test_fechamento_de_tabela(self):
        text = "<table><tr><td>1</td></tr></table>" + "z" * 40
        assert find_cut_position(text, 50) == len("<table><tr><td>1</td></tr></table>")


class TestSplitByLength:
    def test_max_chars_invalido(self):
        with pytest.raises(ValueError):
            split_by_length("abc", 0)

    def test_descarta_pedacos_vazios(self):
        pieces = split_by_length("a" * 9 + " " * 12 + "b", 10)
        assert all(p.strip() for p in pieces)
        assert "".join(pieces) == "a" * 9 + "b"
