"""Unit tests for the results sheet parser."""

from __future__ import annotations

import pytest

from services.csv_parser import (
    ParseSettings,
    detect_column,
    find_header_row,
    map_columns,
    normalize_header,
    parse_csv,
    parse_rows,
    read_csv_rows,
)
from services.errors import FatalParseError, ValidationError

ALL = ["knockdowns", "distance", "speed", "woods"]


def settings(events=None, **totals):
    return ParseSettings.build(ALL if events is None else events, totals)


# ---------------------------------------------------------------------------
# Header detection
# ---------------------------------------------------------------------------

class TestHeaderDetection:
    def test_normalize_header_strips_punctuation(self):
        assert normalize_header(" Knock-Downs ") == "knockdowns"
        assert normalize_header("Full_Name") == "fullname"

    def test_aliases(self):
        assert detect_column("Athlete", "name")
        assert detect_column("KD", "knockdowns")
        assert detect_column("Woods Course", "woods")
        assert detect_column("E-mail", "email")
        assert not detect_column("Score", "name")

    def test_find_header_row_skips_title_rows(self):
        rows = [["Spring Open"], ["2024-03-15"], ["Name", "Speed"], ["Ann", "10"]]
        assert find_header_row(rows) == 2

    def test_find_header_row_only_scans_first_five(self):
        rows = [["x"]] * 5 + [["Name"]]
        assert find_header_row(rows) is None

    def test_map_columns_first_match_wins(self):
        columns = map_columns(["Name", "Speed", "SPD", "Competitor"])
        assert columns == {"name": 0, "speed": 1}


# ---------------------------------------------------------------------------
# Tokenizing
# ---------------------------------------------------------------------------

class TestReadCsvRows:
    def test_drops_bom_and_blank_rows(self):
        rows = read_csv_rows("\ufeffName,Speed\n\nAnn,10\n,\n")
        assert rows == [["Name", "Speed"], ["Ann", "10"]]

    def test_tab_delimiter(self):
        assert read_csv_rows("Name\tSpeed\nAnn\t10") == [["Name", "Speed"], ["Ann", "10"]]

    def test_tab_wins_over_commas_inside_names(self):
        rows = read_csv_rows("Name\tClub, City\nDoe, John\tAxe Club, Missoula\nRoe, Jane\tTimber, Helena\n")
        assert rows == [
            ["Name", "Club, City"],
            ["Doe, John", "Axe Club, Missoula"],
            ["Roe, Jane", "Timber, Helena"],
        ]

    def test_semicolon_delimiter(self):
        assert read_csv_rows("Name;Speed\nAnn;10") == [["Name", "Speed"], ["Ann", "10"]]

    def test_quoted_comma(self):
        assert read_csv_rows('Name,Speed\n"Smith, Ann",10') == [["Name", "Speed"], ["Smith, Ann", "10"]]

    def test_empty_text(self):
        assert read_csv_rows("  \n ") == []


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------

class TestParseCsv:
    def test_clean_sheet(self):
        text = "Name,Knockdowns,Distance,Speed,Woods\nAnn,100,90,80,70\nBen,50,60,70,80\n"
        result = parse_csv(text, settings())

        assert result.ok
        assert result.warnings == []
        assert result.competitors[0] == {
            "name": "Ann",
            "email": None,
            "knockdowns_earned": 100.0,
            "distance_earned": 90.0,
            "speed_earned": 80.0,
            "woods_earned": 70.0,
        }
        assert len(result.competitors) == 2

    def test_blank_cell_is_zero_with_one_warning(self):
        result = parse_csv("Name,Knockdowns,Distance,Speed,Woods\nAnn,100,,80,70\n", settings())

        assert result.competitors[0]["distance_earned"] == 0
        assert len(result.warnings) == 1
        warning = result.warnings[0]
        assert warning.row == 2
        assert warning.field == "distance"
        assert "Blank" in str(warning)

    def test_missing_active_column_warns_once(self):
        text = "Name,Knockdowns,Distance,Speed\nAnn,1,2,3\nBen,4,5,6\nCal,7,8,9\n"
        result = parse_csv(text, settings())

        assert all(c["woods_earned"] == 0 for c in result.competitors)
        woods_warnings = [w for w in result.warnings if w.field == "woods"]
        assert len(woods_warnings) == 1
        assert len(result.warnings) == 1

    def test_inactive_events_are_none_even_when_present(self):
        text = "Name,Knockdowns,Distance,Speed,Woods\nAnn,100,90,80,70\n"
        result = parse_csv(text, settings(["knockdowns", "speed"]))

        competitor = result.competitors[0]
        assert competitor["knockdowns_earned"] == 100
        assert competitor["speed_earned"] == 80
        assert competitor["distance_earned"] is None
        assert competitor["woods_earned"] is None
        assert result.warnings == []

    def test_title_rows_above_header_warn(self):
        text = "Spring Open\nField results\nName,Speed\nAnn,10\n"
        result = parse_csv(text, settings(["speed"]))

        assert [c["name"] for c in result.competitors] == ["Ann"]
        assert len(result.warnings) == 1
        assert "row 3" in str(result.warnings[0])
        assert "skipped 2" in str(result.warnings[0])

    def test_row_numbers_follow_header_offset(self):
        text = "Spring Open\nName,Speed\nAnn,\n"
        result = parse_csv(text, settings(["speed"]))
        blank = [w for w in result.warnings if w.field == "speed"][0]
        assert blank.row == 3

    def test_non_numeric_and_negative_values(self):
        text = "Name,Knockdowns,Distance\nAnn,abc,-5\nBen,nan,inf\n"
        result = parse_csv(text, settings(["knockdowns", "distance"]))

        for competitor in result.competitors:
            assert competitor["knockdowns_earned"] == 0
            assert competitor["distance_earned"] == 0
        messages = [str(w) for w in result.warnings]
        assert any("Non-numeric" in m and '"abc"' in m for m in messages)
        assert any("Negative" in m for m in messages)
        assert len(result.warnings) == 4

    def test_value_over_total_is_kept_with_warning(self):
        result = parse_csv("Name,Speed\nAnn,130\n", settings(["speed"], speed=120))

        assert result.competitors[0]["speed_earned"] == 130
        assert len(result.warnings) == 1
        assert "exceeds total points" in str(result.warnings[0])

    def test_decimal_and_exponent_values(self):
        result = parse_csv("Name,Speed\nAnn,.5\nBen,1e2\nCal,+7.25\n", settings(["speed"]))
        assert [c["speed_earned"] for c in result.competitors] == [0.5, 100.0, 7.25]
        assert result.warnings == []

    def test_empty_and_duplicate_names_are_skipped(self):
        text = "Name,Speed\nAnn,10\n,20\nann,30\nBen,40\n"
        result = parse_csv(text, settings(["speed"]))

        assert [c["name"] for c in result.competitors] == ["Ann", "Ben"]
        assert result.competitors[0]["speed_earned"] == 10
        messages = [str(w) for w in result.warnings]
        assert any("Empty name" in m for m in messages)
        assert any("Duplicate name" in m for m in messages)

    def test_email_column_is_normalized(self):
        result = parse_csv("Name,Email,Speed\nAnn, Ann@Example.COM ,10\nBen,,5\n", settings(["speed"]))
        assert result.competitors[0]["email"] == "ann@example.com"
        assert result.competitors[1]["email"] is None

    def test_overflowing_number_is_non_numeric(self):
        result = parse_csv("Name,Speed\nAnn,1e999\n", settings(["speed"]))

        assert result.ok
        assert result.competitors[0]["speed_earned"] == 0
        assert len(result.warnings) == 1
        assert "Non-numeric" in str(result.warnings[0])

    def test_duplicate_names_fold_non_ascii_case(self):
        result = parse_csv("Name,Speed\nÉmile Roy,10\némile roy,20\n", settings(["speed"]))
        assert [c["name"] for c in result.competitors] == ["Émile Roy"]

    def test_tab_separated_sheet(self):
        result = parse_csv("Athlete\tKD\nAnn\t12\n", settings(["knockdowns"]))
        assert result.competitors[0]["knockdowns_earned"] == 12

    def test_to_dict_renders_warning_text(self):
        result = parse_csv("Name,Speed\nAnn,\n", settings(["speed"]))
        payload = result.to_dict()
        assert payload["errors"] == []
        assert payload["warnings"] == [str(result.warnings[0])]


class TestFatalInput:
    def test_single_row_is_fatal(self):
        result = parse_csv("Name,Speed\n", settings(["speed"]))
        assert not result.ok
        assert result.competitors == []
        assert "no data rows" in result.errors[0]

    def test_missing_header_is_fatal(self):
        result = parse_csv("Person,Speed\nAnn,10\n", settings(["speed"]))
        assert not result.ok
        assert "header row" in result.errors[0]

    def test_only_blank_names_is_fatal(self):
        result = parse_csv("Name,Speed\n,10\n,20\n", settings(["speed"]))
        assert not result.ok
        assert "No valid competitor rows" in result.errors[0]

    def test_raise_for_errors(self):
        result = parse_csv("", settings(["speed"]))
        with pytest.raises(FatalParseError) as excinfo:
            result.raise_for_errors()
        assert excinfo.value.status_code == 422

    def test_parse_rows_accepts_pretokenized_rows(self):
        result = parse_rows([["Name", "Speed"], ["Ann", "10"]], settings(["speed"]))
        assert result.ok
        assert result.competitors[0]["speed_earned"] == 10


class TestParseSettings:
    def test_default_totals(self):
        built = settings(["speed"])
        assert built.active_events == frozenset({"speed"})
        assert built.total_points["woods"] == 120

    def test_no_events_rejected(self):
        with pytest.raises(ValidationError):
            ParseSettings.build([], {})

    def test_unknown_event_rejected(self):
        with pytest.raises(ValidationError):
            ParseSettings.build(["sprint"], {})

    @pytest.mark.parametrize("total", [0, -10, "abc"])
    def test_non_positive_total_rejected(self, total):
        with pytest.raises(ValidationError):
            ParseSettings.build(["speed"], {"speed": total})
