"""
Tests for atelier.identifiers module.
"""
import pytest

from atelier.identifiers import (
    IdentifierCheck,
    format_unique_number,
    generate_client_number,
    generate_instrument_serial,
    instrument_prefix,
    next_identifier,
    validate_unique_number,
)


class TestInstrumentPrefix:
    """Tests for instrument_prefix function."""

    @pytest.mark.parametrize("instrument_type,expected", [
        ("Violin", "VI"),
        ("violin 4/4", "VI"),
        ("바이올린", "VI"),
        ("Viola", "VA"),
        ("비올라", "VA"),
        ("Cello", "CE"),
        ("첼로", "CE"),
        ("Double Bass", "DB"),
        ("베이스", "DB"),
        ("Violin Bow", "VI"),
        ("Bow", "BO"),
        ("활", "BO"),
    ])
    def test_known_types(self, instrument_type, expected):
        """Keywords match case-insensitively and by substring."""
        assert instrument_prefix(instrument_type) == expected

    def test_unknown_type_uses_default(self):
        """Unrecognized types get the generic prefix."""
        assert instrument_prefix("Harp") == "IN"

    def test_empty_type_uses_default(self):
        """Missing classification gets the generic prefix."""
        assert instrument_prefix(None) == "IN"
        assert instrument_prefix("") == "IN"


class TestNextIdentifier:
    """Tests for identifier sequencing."""

    def test_continues_sequence(self):
        """Next violin serial follows the highest violin serial."""
        assert generate_instrument_serial("Violin", ["VI001", "VI002", "BO005"]) == "VI003"

    def test_first_of_prefix(self):
        """Without matching serials the sequence starts at 001."""
        assert generate_instrument_serial("Violin", ["BO005", "CE010"]) == "VI001"

    def test_empty_existing(self):
        """No existing identifiers at all."""
        assert generate_instrument_serial("Cello") == "CE001"

    def test_widens_past_999(self):
        """Ordinals beyond three digits are not truncated."""
        existing = [f"VI{n:03d}" for n in range(1, 1000)]
        assert generate_instrument_serial("Violin", existing) == "VI1000"

    def test_uses_max_not_count(self):
        """Gaps in the sequence do not get reused."""
        assert next_identifier("VI", ["VI001", "VI007"]) == "VI008"

    def test_ignores_blank_entries(self):
        """None and empty strings in the existing list are skipped."""
        assert next_identifier("VI", [None, "", "VI004"]) == "VI005"

    def test_case_insensitive_prefix(self):
        """Lower-case stored serials still count."""
        assert next_identifier("vi", ["vi009"]) == "VI010"

    def test_client_numbers(self):
        """Client numbers use the CL prefix."""
        assert generate_client_number(["CL001", "CL002"]) == "CL003"
        assert generate_client_number() == "CL001"


class TestValidateUniqueNumber:
    """Tests for validate_unique_number function."""

    def test_blank_is_valid(self):
        """The identifier field is optional."""
        assert validate_unique_number("", ["VI001"]) == IdentifierCheck(valid=True)
        assert validate_unique_number(None).valid is True
        assert validate_unique_number("   ").valid is True

    def test_duplicate_case_insensitive(self):
        """Lower-case candidate collides with an upper-case existing one."""
        result = validate_unique_number("vi003", ["VI003"])
        assert result.valid is False
        assert "already in use" in result.error

    def test_own_identifier_is_not_a_duplicate(self):
        """Editing a record may keep its current identifier."""
        result = validate_unique_number("vi003", ["VI003"], current="VI003")
        assert result.valid is True

    def test_disallowed_character(self):
        """Only letters and digits are accepted."""
        result = validate_unique_number("AB#1", [])
        assert result.valid is False
        assert "letters and digits" in result.error

    def test_too_long(self):
        """More than 20 characters is rejected."""
        assert validate_unique_number("A" * 21, []).valid is False
        assert validate_unique_number("A" * 20, []).valid is True

    def test_valid_new_identifier(self):
        """Well-formed, unused identifier passes."""
        assert validate_unique_number("VI004", ["VI001", "VI003"]).valid is True

    def test_to_dict_omits_empty_error(self):
        """Serialized check only carries an error when invalid."""
        assert IdentifierCheck(valid=True).to_dict() == {"valid": True}
        assert IdentifierCheck(valid=False, error="x").to_dict() == {"valid": False, "error": "x"}


class TestFormatUniqueNumber:
    """Tests for format_unique_number function."""

    def test_normalizes(self):
        assert format_unique_number("  vi003 ") == "VI003"

    def test_none(self):
        assert format_unique_number(None) == ""
