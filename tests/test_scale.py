"""Tests for the digital scale importer."""

from datetime import datetime

from herdbook.importers.scale import (
    ScaleFormat,
    ScaleReading,
    convert_to_weight_entries,
    detect_scale_format,
    detect_separator,
    import_scale_file,
    match_readings_with_animals,
    parse_generic,
    parse_scale_content,
    parse_weight,
    scale_template,
    split_line,
)
from herdbook.models import WeighingType

NOW = datetime(2025, 1, 20, 9, 0)


class TestFieldParsing:
    """Tests for separators, quoting and weights."""

    def test_semicolon_wins_over_decimal_commas(self):
        assert detect_separator("V001;452,5;15/01/2025") == ";"
        assert detect_separator("V001,452.5,2025-01-15") == ","
        assert detect_separator("V001\t452.5") == "\t"

    def test_quoted_fields(self):
        assert split_line('"A, B";"diz ""oi""";3', ";") == ["A, B", 'diz "oi"', "3"]

    def test_separator_inside_quotes_and_padding(self):
        assert split_line('"V001;lote 2" ; 452,5 ;', ";") == ["V001;lote 2", "452,5", ""]

    def test_parse_weight(self):
        assert parse_weight("452,5") == 452.5
        assert parse_weight("320.0 kg") == 320.0
        assert parse_weight("-5") is None
        assert parse_weight("abc") is None

    def test_detect_format(self):
        assert detect_scale_format("TruTest_export.csv") == ScaleFormat.TRU_TEST
        assert detect_scale_format("gallagher.txt") == ScaleFormat.GALLAGHER
        assert detect_scale_format("pesagem.csv") == ScaleFormat.CSV
        assert detect_scale_format("pesagem.dat") == ScaleFormat.GENERIC


class TestGeneric:
    """Tests for free-layout files."""

    def test_header_bom_and_brazilian_numbers(self):
        content = "\ufeffBrinco;Peso;Data\r\nV001;452,5;15/01/2025\r\nT100;5;15/01/2025\r\n\r\nX999;25;15/01/2025\r\n"

        result = parse_generic(content, now=NOW)

        assert [(r.animal_tag, r.weight, r.timestamp) for r in result.readings] == [
            ("V001", 452.5, datetime(2025, 1, 15)),
            ("X999", 25.0, datetime(2025, 1, 15)),
        ]
        assert result.readings[1].warnings == ["Peso muito baixo (25 kg). Verifique se está correto."]
        assert [(s.line_number, s.content) for s in result.skipped_lines] == [(3, "T100;5;15/01/2025")]

    def test_fields_in_any_order_and_missing_date(self):
        result = parse_generic("380.0,abc-12\n", now=NOW)

        [reading] = result.readings
        assert reading.animal_tag == "ABC-12"
        assert reading.weight == 380.0
        assert reading.timestamp == NOW

    def test_missing_tag_is_flagged(self):
        [reading] = parse_generic("15/01/2025;410\n", now=NOW).readings
        assert reading.animal_tag is None
        assert "Brinco não identificado na leitura. Atribua manualmente." in reading.warnings

    def test_template_parses(self):
        result = parse_scale_content(scale_template(), "modelo.csv", now=NOW)
        assert result.format == ScaleFormat.CSV
        assert [r.animal_tag for r in result.readings] == ["ABC001", "ABC002", "ABC003"]


class TestTruTest:
    """Tests for positional Tru-Test exports."""

    def test_positional_fields_with_time(self, tmp_path):
        path = tmp_path / "trutest_2025-01-15.csv"
        path.write_text("ID,Weight,Date,Time\nV001,455.0,2025-01-15,08:30\nB201,abc,2025-01-15\nsozinho\n")

        result = import_scale_file(path, now=NOW)

        assert result.format == ScaleFormat.TRU_TEST
        [reading] = result.readings
        assert reading.animal_tag == "V001"
        assert reading.timestamp == datetime(2025, 1, 15, 8, 30)
        assert [s.reason for s in result.skipped_lines] == [
            'Peso inválido: "abc"',
            "Formato inválido: menos de 2 campos encontrados",
        ]


class TestMatching:
    """Tests for matching readings to animals and building weighings."""

    def test_match_by_tag_or_name(self, sample_herd):
        readings = [
            ScaleReading(id="1", timestamp=NOW, weight=455, animal_tag="v001"),
            ScaleReading(id="2", timestamp=NOW, weight=830, animal_tag="TROVÃO"),
            ScaleReading(id="3", timestamp=NOW, weight=300, animal_tag="Z1"),
        ]

        matched = match_readings_with_animals(readings, sample_herd)

        assert [(r.matched, r.animal_id) for r in matched] == [(True, "cow-1"), (True, "bull-1"), (False, None)]
        assert matched[2].warnings == ['Brinco "Z1" não encontrado no cadastro.']

        match_readings_with_animals(readings, sample_herd)
        assert len(matched[2].warnings) == 1

    def test_last_reading_wins_and_units_convert(self):
        readings = [
            ScaleReading(id="1", timestamp=datetime(2025, 1, 15, 8), weight=450, matched=True, animal_id="cow-1"),
            ScaleReading(
                id="2", timestamp=datetime(2025, 1, 15, 9), weight=30, unit="arroba", matched=True, animal_id="cow-1"
            ),
            ScaleReading(id="3", timestamp=NOW, weight=200, animal_tag="Z1"),
        ]

        entries = convert_to_weight_entries(readings, WeighingType.WEANING)

        assert list(entries) == ["cow-1"]
        entry = entries["cow-1"]
        assert entry.weight_kg == 450
        assert entry.type == WeighingType.WEANING
        assert entry.id == "weight-202501150900-cow-1"
