"""Tests for model response parsing."""

import re

import pytest

from app.backend.services.records import ParseError, parse_decimal, parse_model_response
from app.backend.services.records.normalization import normalize_header
from app.backend.services.records.parser import (
    carry_forward_identity,
    coerce_row,
    coerce_value,
    cut_at_closing_fence,
    decode_json_records,
    detect_delimiter,
    flatten_record,
    normalize_headers,
    parse_delimited_table,
    split_rows,
    split_trailing_summary,
    strip_code_fences,
)


class TestStripCodeFences:
    """Tests for markdown fence removal."""

    def test_fence_with_language_tag(self):
        assert strip_code_fences('```json\n[{"a": 1}]\n```') == '[{"a": 1}]'

    def test_fence_without_language_tag(self):
        assert strip_code_fences("```\nnome;dia\nAna;1\n```") == "nome;dia\nAna;1"

    def test_csv_fence(self):
        assert strip_code_fences("```csv\nnome,dia\n```\n") == "nome,dia"

    def test_text_without_fences_is_trimmed(self):
        assert strip_code_fences("  nome;dia\nAna;1  ") == "nome;dia\nAna;1"

    def test_empty_input(self):
        assert strip_code_fences("") == ""
        assert strip_code_fences(None) == ""


class TestNormalizeHeader:
    """Tests for header token normalization."""

    def test_lowercase_and_underscores(self):
        assert normalize_header("Nome Completo") == "nome_completo"
        assert normalize_header("Horas   Extras") == "horas_extras"

    def test_accents_are_folded(self):
        assert normalize_header("  Saída (R$) ") == "saida_r"
        assert normalize_header("Número da Nota") == "numero_da_nota"

    def test_punctuation_is_removed(self):
        assert normalize_header("__Total--Horas__") == "totalhoras"
        assert normalize_header("Valor: Total!") == "valor_total"

    def test_only_valid_characters_remain(self):
        """Normalized names are lowercase ASCII, digits and single underscores."""
        tokens = ["Entrada 1", "SAÍDA_2", " _x_ ", "Dia/Mês", "Total (h)", "a__b", "Ça va?"]
        valid = re.compile(r"^[a-z0-9]+(_[a-z0-9]+)*$")
        for token in tokens:
            assert valid.match(normalize_header(token)), token

    def test_symbols_only_normalize_to_empty(self):
        assert normalize_header("$$$") == ""


class TestParseDecimal:
    """Tests for comma/dot tolerant number parsing."""

    def test_decimal_separators(self):
        assert parse_decimal("8,5") == 8.5
        assert parse_decimal("1.5") == 1.5

    def test_thousands_separators(self):
        assert parse_decimal("1.234,56") == 1234.56
        assert parse_decimal("1,234.56") == 1234.56

    def test_currency_prefix(self):
        assert parse_decimal("R$ 10,00") == 10.0

    def test_numbers_pass_through(self):
        assert parse_decimal(3) == 3.0
        assert parse_decimal(2.25) == 2.25

    def test_repeated_thousands_separators(self):
        assert parse_decimal("1,234,567") == 1234567.0
        assert parse_decimal("1.234.567") == 1234567.0

    def test_signed_numbers(self):
        assert parse_decimal("-8,5") == -8.5
        assert parse_decimal("+2") == 2.0

    def test_non_numbers_return_none(self):
        assert parse_decimal("08:00") is None
        assert parse_decimal("N/A") is None
        assert parse_decimal("") is None
        assert parse_decimal(None) is None
        assert parse_decimal(True) is None


class TestDelimitedTable:
    """Tests for the delimited text pipeline steps."""

    def test_detect_semicolon(self):
        assert detect_delimiter("a;b;c") == ";"

    def test_detect_comma(self):
        assert detect_delimiter("a,b,c") == ","

    def test_detect_picks_more_fields(self):
        assert detect_delimiter("Valor, Total;Dia;Nome") == ";"
        assert detect_delimiter("a;b,c,d") == ","

    def test_detect_tie_favors_comma(self):
        assert detect_delimiter("a;b,c") == ","
        assert detect_delimiter("nome") == ","

    def test_split_rows_honors_quotes(self):
        rows = split_rows(['nome,obs', '"Silva, Ana", "ok"'], ",")
        assert rows == [["nome", "obs"], ["Silva, Ana", "ok"]]

    def test_split_rows_skips_blank_and_fence_lines(self):
        rows = split_rows(["```csv", "a;b", "", "1;2", "```"], ";")
        assert rows == [["a", "b"], ["1", "2"]]

    def test_normalize_headers_fills_and_dedupes(self):
        assert normalize_headers(["Entrada", "Entrada", "???", "Nome"]) == [
            "entrada",
            "entrada_2",
            "coluna_3",
            "nome",
        ]

    def test_short_row_is_rejected(self):
        assert coerce_row(["a", "b", "c"], ["1", "2"]) is None

    def test_extra_cells_are_ignored(self):
        assert coerce_row(["a", "b"], ["1", "2", "3"]) == {"a": "1", "b": "2"}

    def test_short_rows_are_skipped_not_fatal(self):
        records = parse_delimited_table("a;b;c\n1;2;3\n4;5\n6;7;8")
        assert [r["a"] for r in records] == ["1", "6"]

    def test_empty_cells_become_not_available(self):
        records = parse_delimited_table("nome;setor\nAna;")
        assert records == [{"nome": "Ana", "setor": "N/A"}]

    def test_single_line_yields_nothing(self):
        assert parse_delimited_table("nome;dia") == []

    def test_unrecognizable_header_yields_nothing(self):
        assert parse_delimited_table("Segue o resultado:\nAna") == []

    def test_oversized_cell_raises_parse_error(self):
        """csv errors surface as ParseError so only this document fails."""
        with pytest.raises(ParseError):
            parse_delimited_table("nome;obs\nAna;" + "x" * 200_000)


class TestCoerceValue:
    """Tests for numeric coercion of marked fields."""

    def test_hours_field_is_parsed(self):
        assert coerce_value("total_horas_trabalhadas", "8,5") == 8.5
        assert coerce_value("horas_extras", "1.25") == 1.25

    def test_unparseable_hours_keep_original(self):
        assert coerce_value("total_horas_trabalhadas", "8h30") == "8h30"

    def test_unmarked_field_stays_text(self):
        assert coerce_value("matricula", "0042") == "0042"

    def test_missing_values(self):
        assert coerce_value("nome", None) == "N/A"
        assert coerce_value("nome", "   ") == "N/A"


class TestTrailingSummary:
    """Tests for the JSON summary following a table."""

    def test_summary_is_split_from_table(self):
        text = 'nome;dia\nAna;1\n{"resumo_executivo_mensal": "Mês regular"}'
        table, summary = split_trailing_summary(text)
        assert table.strip() == "nome;dia\nAna;1"
        assert summary == "Mês regular"

    def test_nested_braces(self):
        text = 'nome;dia\nAna;1\n{"resumo_executivo_mensal": {"faltas": 0}}'
        table, summary = split_trailing_summary(text)
        assert table.strip() == "nome;dia\nAna;1"
        assert summary == '{"faltas": 0}'

    def test_malformed_summary_is_not_fatal(self):
        text = "nome;dia\nAna;1\n{resumo: oops}"
        table, summary = split_trailing_summary(text)
        assert summary is None
        assert parse_delimited_table(table) == [{"nome": "Ana", "dia": "1"}]

    def test_braces_in_last_cell_are_kept(self):
        """A last cell ending in braces is table data, not a summary."""
        text = "nome;obs\nAna;ver anexo {ref}"
        assert split_trailing_summary(text) == (text, None)

        parsed = parse_model_response(text, "a.pdf")
        assert parsed.records[0]["obs"] == "ver anexo {ref}"
        assert parsed.summary is None

    def test_text_without_summary(self):
        table, summary = split_trailing_summary("nome;dia\nAna;1")
        assert table == "nome;dia\nAna;1"
        assert summary is None


class TestJsonRecords:
    """Tests for JSON model responses."""

    def test_summary_object_is_removed(self):
        records, summary = decode_json_records(
            '[{"nome":"Bob","total_horas_trabalhadas":8},{"resumo_executivo_mensal":"ok"}]'
        )
        assert records == [{"nome": "Bob", "total_horas_trabalhadas": 8}]
        assert summary == "ok"

    def test_single_object(self):
        records, summary = decode_json_records('{"Número Nota": "123", "Valor Total": "1.234,56"}')
        assert records == [{"numero_nota": "123", "valor_total": 1234.56}]
        assert summary is None

    def test_invalid_json_raises(self):
        with pytest.raises(ParseError):
            decode_json_records('[{"nome": }]')

    def test_scalar_json_raises(self):
        with pytest.raises(ParseError):
            decode_json_records("42")

    def test_nulls_become_not_available(self):
        records, _ = decode_json_records('[{"nome": "Ana", "setor": null}]')
        assert records[0]["setor"] == "N/A"

    def test_flatten_nested_structures(self):
        flat = flatten_record({
            "Emitente": {"Nome": "ACME"},
            "Itens": [{"Descricao": "A"}, {"Descricao": "B"}],
            "tags": ["x", "y"],
        })
        assert flat == {
            "emitente_nome": "ACME",
            "itens_descricao_1": "A",
            "itens_descricao_2": "B",
            "tags_1": "x",
            "tags_2": "y",
        }


class TestCarryForwardIdentity:
    """Tests for identity backfilling."""

    def test_missing_identity_uses_previous_row(self):
        rows = [{"nome": "Ana", "dia": 1}, {"nome": "N/A", "dia": 2}]
        resolved = carry_forward_identity(rows)
        assert resolved[1]["nome"] == "Ana"

    def test_absent_key_is_backfilled(self):
        rows = [{"nome": "Ana", "dia": 1}, {"dia": 2}]
        assert carry_forward_identity(rows)[1]["nome"] == "Ana"

    def test_leading_rows_get_sentinel(self):
        rows = [{"nome": "", "dia": 1}, {"nome": "Ana", "dia": 2}]
        resolved = carry_forward_identity(rows)
        assert [r["nome"] for r in resolved] == ["Desconhecido", "Ana"]

    def test_new_identity_resets_carry(self):
        rows = [{"nome": "Ana"}, {"nome": "N/A"}, {"nome": "Bia"}, {"nome": "N/A"}]
        assert [r["nome"] for r in carry_forward_identity(rows)] == ["Ana", "Ana", "Bia", "Bia"]

    def test_documents_without_identity_column_are_untouched(self):
        rows = [{"numero_nota": "1"}]
        assert carry_forward_identity(rows) == [{"numero_nota": "1"}]

    def test_input_is_not_mutated(self):
        rows = [{"nome": "Ana"}, {"nome": "N/A"}]
        carry_forward_identity(rows)
        assert rows[1]["nome"] == "N/A"


class TestParseModelResponse:
    """End-to-end parsing scenarios."""

    def test_timesheet_csv(self, timesheet_csv: str):
        parsed = parse_model_response(timesheet_csv, "ponto.pdf")
        assert parsed.source_format == "table"
        assert len(parsed.records) == 2
        assert parsed.records[1]["nome"] == "Ana"
        assert parsed.records[1]["entrada_1"] == "08:05"
        assert {r["arquivo_original"] for r in parsed.records} == {"ponto.pdf"}

    def test_fenced_json(self, fenced_json_response: str):
        parsed = parse_model_response(fenced_json_response, "bob.pdf")
        assert parsed.source_format == "json"
        assert len(parsed.records) == 1
        assert parsed.records[0]["nome"] == "Bob"
        assert parsed.records[0]["arquivo_original"] == "bob.pdf"
        assert parsed.summary == "ok"

    def test_comma_table_with_summary(self):
        text = (
            "```csv\n"
            "Nome,Total Horas Trabalhadas\n"
            "Ana,\"8,5\"\n"
            "```\n"
            '{"Resumo Executivo Mensal": "Sem ocorrências"}'
        )
        parsed = parse_model_response(text, "ana.png")
        assert parsed.records == [
            {"nome": "Ana", "total_horas_trabalhadas": 8.5, "arquivo_original": "ana.png"}
        ]
        assert parsed.summary == "Sem ocorrências"

    def test_empty_response_yields_no_records(self):
        parsed = parse_model_response("", "vazio.pdf")
        assert parsed.is_empty
        assert parsed.summary is None

    def test_fenced_json_followed_by_prose(self):
        text = '```json\n[{"nome": "Ana", "dia": "1"}]\n```\nEspero ter ajudado.'
        parsed = parse_model_response(text, "a.pdf")
        assert parsed.source_format == "json"
        assert parsed.records == [{"nome": "Ana", "dia": "1", "arquivo_original": "a.pdf"}]

    def test_cut_at_closing_fence(self):
        assert cut_at_closing_fence('[1]\n```\nObrigado!') == "[1]"
        assert cut_at_closing_fence("[1]") == "[1]"

    def test_fenced_invalid_json_raises(self):
        with pytest.raises(ParseError):
            parse_model_response("```json\n[{oops}]\n```", "x.pdf")
