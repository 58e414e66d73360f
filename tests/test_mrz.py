"""
Test suite for the MRZ engine: canonicalization, OCR correction, check
digits, field extraction, result assembly and composition.

Every date-dependent test passes an explicit evaluation date.

Run: pytest tests/ -v
"""

from __future__ import annotations

from datetime import date

import pytest

from idcard_validator.assembler import decide_status, parse_mrz
from idcard_validator.canonicalizer import canonicalize_line, canonicalize_text
from idcard_validator.check_digit import char_value, compute_check_digit, verify
from idcard_validator.composer import compose_lines, compose_text
from idcard_validator.exceptions import MrzFormatError
from idcard_validator.fields import expand_yymmdd, extract_fields, split_names
from idcard_validator.models import (
    CheckDigitOutcome,
    ChecksumFailure,
    FormatMismatch,
    MrzOk,
    OutcomeStatus,
    ParsedIdentity,
)
from idcard_validator.ocr_corrections import correct_line, correct_lines, in_digit_window


# ─── Test Data ───────────────────────────────────────────────────────

TODAY = date(2024, 1, 1)

LINE1 = "IDTURYILMAZ<<AHMET<<<<<<<<<<<<"
LINE2 = "U103456782TUR9005156M2801016<<"
LINE3 = "10000000146<<<<<<<<<<<<<<<<<<<"
SAMPLE_LINES = [LINE1, LINE2, LINE3]
SAMPLE_MRZ = "\n".join(SAMPLE_LINES)

# Same card, photographed: lower case, unpadded, 'O' for '0' in three windows.
NOISY_MRZ = (
    "idturyilmaz<<ahmet\n"
    "U1O3456782TUR9OO5156M28O1016\n"
    "10000000146"
)


def _identity(**overrides) -> ParsedIdentity:
    kwargs = {
        "document_code": "I",
        "document_type": "D",
        "issuing_state": "TUR",
        "surname": "YILMAZ",
        "given_names": "AHMET",
        "document_number": "U10345678",
        "nationality": "TUR",
        "date_of_birth": "900515",
        "sex": "M",
        "date_of_expiry": "280101",
        "optional_data": "<<10000000146",
    }
    kwargs.update(overrides)
    return ParsedIdentity(**kwargs)


# ═══════════════════════════════════════════════════════════════════════
# LINE CANONICALIZER
# ═══════════════════════════════════════════════════════════════════════


class TestCanonicalizer:
    def test_short_line_is_padded_to_30(self):
        result = canonicalize_line("IDTUR")
        assert result == "IDTUR" + "<" * 25
        assert len(result) == 30

    def test_long_line_is_truncated_to_30(self):
        result = canonicalize_line("A" * 45)
        assert result == "A" * 30

    def test_lower_case_is_upper_cased(self):
        assert canonicalize_line("abc").startswith("ABC<")

    def test_whitespace_becomes_filler(self):
        assert canonicalize_line("AB CD\tE").startswith("AB<CD<E<")

    def test_disallowed_characters_are_stripped(self):
        assert canonicalize_line("A-B.C/1«2»").startswith("ABC12<")

    def test_country_letters_are_transliterated(self):
        assert canonicalize_line("ÇĞİÖŞÜ").startswith("CGIOSU<")

    def test_lower_case_country_letters_are_transliterated(self):
        assert canonicalize_line("çğöşü").startswith("CGOSU<")

    def test_empty_line_is_all_filler(self):
        assert canonicalize_line("") == "<" * 30

    def test_idempotent_on_canonical_lines(self):
        for line in SAMPLE_LINES:
            assert canonicalize_line(line) == line
            assert canonicalize_line(canonicalize_line(line)) == line

    def test_output_alphabet_is_restricted(self):
        result = canonicalize_line("héllo wörld! 123 ~~ ßtraße")
        assert len(result) == 30
        assert set(result) <= set("ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789<")

    def test_every_line_produces_a_canonical_line(self):
        lines = canonicalize_text("a\n\nb")
        assert len(lines) == 3
        assert lines[1] == "<" * 30

    def test_trailing_newline_adds_no_line(self):
        assert len(canonicalize_text(SAMPLE_MRZ + "\n")) == 3

    def test_crlf_line_breaks(self):
        assert canonicalize_text(SAMPLE_MRZ.replace("\n", "\r\n")) == SAMPLE_LINES
        assert canonicalize_text(SAMPLE_MRZ.replace("\n", "\r")) == SAMPLE_LINES

    def test_empty_text_has_no_lines(self):
        assert canonicalize_text("") == []

    @pytest.mark.parametrize("separator", ["\x1c", "\x1d", "\x1e", "\x0b", "\x0c", "\x85", " "])
    def test_barcode_separators_do_not_break_lines(self, separator):
        lines = canonicalize_text(f"10000000146{separator}15052010")
        assert lines == ["10000000146<15052010" + "<" * 10]

    def test_group_separator_in_multiline_text(self):
        assert len(canonicalize_text("A\x1dB\nC")) == 2


# ═══════════════════════════════════════════════════════════════════════
# OCR CORRECTOR
# ═══════════════════════════════════════════════════════════════════════


class TestOcrCorrector:
    def test_o_in_document_number_becomes_zero(self):
        line = "U1O3456782TUR9005156M2801016<<"
        corrected, subs = correct_line(line, 1)
        assert corrected == LINE2
        assert len(subs) == 1
        assert subs[0].line == 2
        assert subs[0].column == 3
        assert subs[0].original_char == "O"
        assert subs[0].corrected_char == "0"
        assert subs[0].reason == "digit expected"

    def test_full_confusion_map(self):
        line = "OILB<<<<<<<<<<<<<<<<<<<<<<<<<<"
        corrected, subs = correct_line(line, 1)
        assert corrected.startswith("0118")
        assert [(s.original_char, s.corrected_char) for s in subs] == [
            ("O", "0"), ("I", "1"), ("L", "1"), ("B", "8"),
        ]

    def test_other_lines_are_untouched(self):
        corrected, subs = correct_line(LINE1, 0)
        assert corrected == LINE1
        assert subs == []
        corrected, subs = correct_line("OOOOOOOOOOOOOOOOOOOOOOOOOOOOOO", 2)
        assert subs == []

    def test_nationality_and_sex_columns_are_untouched(self):
        line = "U103456782BOL9005156L2801016<<"
        corrected, subs = correct_line(line, 1)
        assert corrected == line
        assert subs == []

    def test_optional_data_columns_are_untouched(self):
        line = "U103456782TUR9005156M2801016OB"
        corrected, subs = correct_line(line, 1)
        assert corrected.endswith("OB")
        assert subs == []

    def test_digit_windows(self):
        inside = [1, 10, 14, 20, 22, 28]
        outside = [11, 12, 13, 21, 29, 30]
        assert all(in_digit_window(c) for c in inside)
        assert not any(in_digit_window(c) for c in outside)

    def test_correct_lines_reports_in_column_order(self):
        lines = canonicalize_text(NOISY_MRZ)
        corrected, subs = correct_lines(lines)
        assert corrected == SAMPLE_LINES
        assert [s.column for s in subs] == [3, 15, 16, 24]


# ═══════════════════════════════════════════════════════════════════════
# CHECK-DIGIT ENGINE
# ═══════════════════════════════════════════════════════════════════════


class TestCheckDigit:
    def test_char_values(self):
        assert char_value("0") == 0
        assert char_value("7") == 7
        assert char_value("A") == 10
        assert char_value("Z") == 35
        assert char_value("<") == 0

    def test_lower_case_is_not_in_alphabet(self):
        with pytest.raises(ValueError, match="not in the MRZ alphabet"):
            char_value("a")

    @pytest.mark.parametrize(
        "data, expected",
        [
            ("L898902C3", 6),  # ICAO 9303 specimen document number
            ("740812", 2),  # ICAO 9303 specimen date of birth
            ("120415", 9),  # ICAO 9303 specimen date of expiry
            ("U10345678", 2),
            ("900515", 6),
            ("280101", 6),
            ("<<<<<<", 0),
            ("", 0),
        ],
    )
    def test_known_vectors(self, data, expected):
        assert compute_check_digit(data) == expected

    def test_deterministic_and_in_range(self):
        for data in ("ABCDEFGHI", "Z" * 30, "123<<<XYZ", LINE2, LINE3):
            first = compute_check_digit(data)
            assert first == compute_check_digit(data)
            assert 0 <= first <= 9

    def test_verify_matching(self):
        outcome = verify("900515", "6")
        assert outcome == CheckDigitOutcome(found_digit="6", computed_digit="6", is_valid=True)

    def test_verify_mismatch(self):
        outcome = verify("900515", "7")
        assert outcome.is_valid is False
        assert outcome.computed_digit == "6"

    def test_filler_never_matches(self):
        assert verify("<<<<<<", "<").is_valid is False


# ═══════════════════════════════════════════════════════════════════════
# FIELD EXTRACTOR
# ═══════════════════════════════════════════════════════════════════════


class TestFieldExtractor:
    def test_year_window_nineteen_hundreds(self):
        assert expand_yymmdd("900515", TODAY) == "1990-05-15"

    def test_year_window_two_thousands(self):
        assert expand_yymmdd("280101", TODAY) == "2028-01-01"

    def test_year_window_boundary(self):
        # 2024: 24 + 5 = 29 is the last 20xx year
        assert expand_yymmdd("290101", TODAY) == "2029-01-01"
        assert expand_yymmdd("300101", TODAY) == "1930-01-01"

    def test_year_window_moves_with_evaluation_date(self):
        assert expand_yymmdd("300101", date(2026, 6, 1)) == "2030-01-01"

    def test_non_numeric_date_has_no_rendering(self):
        assert expand_yymmdd("9O0515", TODAY) is None
        assert expand_yymmdd("<<<<<<", TODAY) is None

    def test_split_names(self):
        assert split_names(LINE1) == ("YILMAZ", "AHMET")

    def test_multiple_given_names_keep_inner_filler(self):
        assert split_names("IDTURYILMAZ<<AHMET<CAN<<<<<<<<") == ("YILMAZ", "AHMET<CAN")

    def test_surname_only(self):
        assert split_names("IDTURYILMAZ<<<<<<<<<<<<<<<<<<<") == ("YILMAZ", None)

    def test_no_names(self):
        assert split_names("IDTUR" + "<" * 25) == (None, None)

    def test_fields(self):
        extracted = extract_fields(SAMPLE_LINES, TODAY)
        parsed = extracted.parsed
        assert parsed.document_code == "I"
        assert parsed.document_type == "D"
        assert parsed.issuing_state == "TUR"
        assert parsed.document_number == "U10345678"
        assert parsed.nationality == "TUR"
        assert parsed.date_of_birth == "900515"
        assert parsed.date_of_birth_full == "1990-05-15"
        assert parsed.sex == "M"
        assert parsed.date_of_expiry == "280101"
        assert parsed.date_of_expiry_full == "2028-01-01"
        assert parsed.optional_data == "<<10000000146"

    def test_check_inputs(self):
        extracted = extract_fields(SAMPLE_LINES, TODAY)
        assert extracted.check_inputs == {
            "document_number": ("U10345678", "2"),
            "date_of_birth": ("900515", "6"),
            "date_of_expiry": ("280101", "6"),
        }

    def test_document_number_filler_is_stripped(self):
        line2 = "U1034<<<<3TUR9005156M2801016<<"
        extracted = extract_fields([LINE1, line2], TODAY)
        assert extracted.parsed.document_number == "U1034"
        assert extracted.check_inputs["document_number"][0] == "U1034<<<<"

    def test_missing_third_line_is_synthesised(self):
        extracted = extract_fields([LINE1, LINE2], TODAY)
        assert extracted.parsed.optional_data == ""

    def test_single_line_raises(self):
        with pytest.raises(MrzFormatError) as exc_info:
            extract_fields([LINE1], TODAY)
        assert exc_info.value.code == "MRZ_FORMAT_MISMATCH"
        assert exc_info.value.details == {"line_count": 1}

    def test_strict_mode_adds_checks(self):
        extracted = extract_fields(SAMPLE_LINES, TODAY, strict=True)
        assert set(extracted.check_inputs) == {
            "document_number", "date_of_birth", "date_of_expiry",
            "optional_data", "composite",
        }
        data, found = extracted.check_inputs["optional_data"]
        assert len(data) == 30
        assert found == "<"


# ═══════════════════════════════════════════════════════════════════════
# RESULT ASSEMBLER
# ═══════════════════════════════════════════════════════════════════════


class TestParseMrz:
    def test_valid_mrz_is_ok(self):
        result = parse_mrz(SAMPLE_MRZ, TODAY)
        assert isinstance(result, MrzOk)
        assert result.status == OutcomeStatus.OK
        assert result.lines == SAMPLE_LINES
        assert result.substitutions == []
        assert set(result.checks) == {"document_number", "date_of_birth", "date_of_expiry"}
        assert all(c.is_valid for c in result.checks.values())

    def test_parsed_identity(self):
        result = parse_mrz(SAMPLE_MRZ, TODAY)
        assert result.parsed.surname == "YILMAZ"
        assert result.parsed.given_names == "AHMET"
        assert result.parsed.date_of_birth_full == "1990-05-15"

    def test_ocr_errors_are_corrected_before_checking(self):
        result = parse_mrz(NOISY_MRZ, TODAY)
        assert isinstance(result, MrzOk)
        assert result.lines == SAMPLE_LINES
        assert result.parsed.document_number == "U10345678"
        first = result.substitutions[0]
        assert (first.line, first.column) == (2, 3)
        assert (first.original_char, first.corrected_char) == ("O", "0")

    def test_bad_check_digit_is_checksum_failure(self):
        text = "\n".join([LINE1, "U103456782TUR9005157M2801016<<", LINE3])
        result = parse_mrz(text, TODAY)
        assert isinstance(result, ChecksumFailure)
        assert result.failed_checks == ["date_of_birth"]
        assert result.checks["date_of_birth"].found_digit == "7"
        assert result.checks["date_of_birth"].computed_digit == "6"

    def test_checksum_failure_still_carries_parsed_fields(self):
        text = "\n".join([LINE1, "U103456789TUR9005156M2801016<<", LINE3])
        result = parse_mrz(text, TODAY)
        assert result.status == OutcomeStatus.CHECKSUM_FAILURE
        assert result.parsed.surname == "YILMAZ"

    def test_single_line_is_format_mismatch(self):
        result = parse_mrz(LINE1, TODAY)
        assert isinstance(result, FormatMismatch)
        assert result.status == OutcomeStatus.FORMAT_MISMATCH
        assert result.checks == {}
        assert result.lines == [LINE1]
        assert not hasattr(result, "parsed")

    def test_barcode_with_group_separator_is_format_mismatch(self):
        result = parse_mrz("10000000146\x1d15052010", TODAY)
        assert isinstance(result, FormatMismatch)
        assert len(result.lines) == 1

    def test_empty_input_is_format_mismatch(self):
        result = parse_mrz("", TODAY)
        assert result.status == OutcomeStatus.FORMAT_MISMATCH
        assert result.lines == []

    def test_two_lines_are_enough(self):
        result = parse_mrz(f"{LINE1}\n{LINE2}", TODAY)
        assert result.status == OutcomeStatus.OK

    def test_strict_mode_rejects_missing_composite(self):
        result = parse_mrz(SAMPLE_MRZ, TODAY, strict=True)
        assert isinstance(result, ChecksumFailure)
        assert "composite" in result.failed_checks

    def test_result_is_immutable(self):
        result = parse_mrz(SAMPLE_MRZ, TODAY)
        with pytest.raises(Exception):
            result.status = OutcomeStatus.CHECKSUM_FAILURE  # type: ignore[misc]

    def test_defaults_to_today(self):
        assert parse_mrz(SAMPLE_MRZ).status == OutcomeStatus.OK


class TestDecideStatus:
    def _checks(self, **validity: bool) -> dict[str, CheckDigitOutcome]:
        return {
            name: CheckDigitOutcome(found_digit="0", computed_digit="0", is_valid=ok)
            for name, ok in validity.items()
        }

    def test_all_required_valid(self):
        checks = self._checks(document_number=True, date_of_birth=True, date_of_expiry=True)
        assert decide_status(checks) == OutcomeStatus.OK

    def test_one_required_invalid(self):
        checks = self._checks(document_number=True, date_of_birth=True, date_of_expiry=False)
        assert decide_status(checks) == OutcomeStatus.CHECKSUM_FAILURE

    def test_composite_only_counts_in_strict_mode(self):
        checks = self._checks(
            document_number=True, date_of_birth=True, date_of_expiry=True,
            optional_data=True, composite=False,
        )
        assert decide_status(checks) == OutcomeStatus.OK
        assert decide_status(checks, strict=True) == OutcomeStatus.CHECKSUM_FAILURE


# ═══════════════════════════════════════════════════════════════════════
# COMPOSER (ROUND TRIP)
# ═══════════════════════════════════════════════════════════════════════


class TestComposer:
    def test_composes_the_sample_card(self):
        assert compose_lines(_identity()) == SAMPLE_LINES

    def test_lines_are_canonical(self):
        for line in compose_lines(_identity(), strict=True):
            assert len(line) == 30
            assert canonicalize_line(line) == line

    @pytest.mark.parametrize(
        "overrides",
        [
            {},
            {"document_number": "X7Y8Z9", "given_names": None},
            {"surname": "MUSTERMANN", "given_names": "ERIKA", "nationality": "DEU",
             "issuing_state": "DEU", "sex": "F", "date_of_birth": "640812"},
            {"optional_data": "", "date_of_expiry": "341231"},
        ],
    )
    def test_round_trip_is_ok(self, overrides):
        identity = _identity(**overrides)
        result = parse_mrz(compose_text(identity), TODAY)
        assert result.status == OutcomeStatus.OK
        assert result.parsed.document_number == identity.document_number
        assert result.parsed.surname == identity.surname
        assert result.parsed.given_names == identity.given_names
        assert result.parsed.optional_data == identity.optional_data

    def test_strict_round_trip_is_ok(self):
        identity = _identity(optional_data="10000000146")
        result = parse_mrz(compose_text(identity, strict=True), TODAY, strict=True)
        assert isinstance(result, MrzOk)
        assert set(result.checks) == {
            "document_number", "date_of_birth", "date_of_expiry",
            "optional_data", "composite",
        }
        assert result.parsed.optional_data == "10000000146"

    def test_strict_mode_detects_optional_data_change(self):
        identity = _identity(optional_data="10000000146")
        lines = compose_lines(identity, strict=True)
        lines[2] = "2" + lines[2][1:]
        result = parse_mrz("\n".join(lines), TODAY, strict=True)
        assert result.status == OutcomeStatus.CHECKSUM_FAILURE
