"""
Tests for Phone Utilities
=========================
Provider formatting, normalization and national validation.
"""

import pytest


class TestProviderFormat:
    """Tests for format_phone_for_provider."""

    def test_french_national_number(self):
        """Should drop the trunk zero and prepend the calling code."""
        from otp_guard.phone import format_phone_for_provider

        assert format_phone_for_provider("06 12 34 56 78", "33") == "+33612345678"

    def test_already_international(self):
        """Should keep a number that already starts with +."""
        from otp_guard.phone import format_phone_for_provider

        assert format_phone_for_provider("+33 6-12-34-56-78", "33") == "+33612345678"

    def test_calling_code_with_plus(self):
        """Should accept a calling code written with +."""
        from otp_guard.phone import format_phone_for_provider

        assert format_phone_for_provider("(201) 555-0123", "+1") == "+12015550123"


class TestInternationalValidation:
    """Tests for validate_international_number and validate_e164."""

    @pytest.mark.parametrize("phone,expected", [
        ("+33612345678", (True, None)),
        ("0612345678", (False, "Number must start with +")),
        ("+3361234", (False, "Number too short")),
        ("+1234567890123456", (False, "Number too long")),
    ])
    def test_validate_international(self, phone, expected):
        """Should check the leading + and the digit count."""
        from otp_guard.phone import validate_international_number

        assert validate_international_number(phone) == expected

    def test_validate_e164(self):
        """Should validate E.164 format."""
        from otp_guard.phone import validate_e164

        assert validate_e164("+14155551234") is True
        assert validate_e164("+1") is False
        assert validate_e164("4155551234") is False


class TestPhoneKey:
    """Tests for normalize_phone_key and mask_phone."""

    def test_normalize(self):
        """Should strip separators and keep the leading +."""
        from otp_guard.phone import normalize_phone_key

        assert normalize_phone_key(" +33 (6) 12-34.56.78 ") == "+33612345678"
        assert normalize_phone_key("06 12 34 56 78") == "0612345678"

    def test_normalize_with_calling_code(self):
        """Should expand national numbers and leave international ones alone."""
        from otp_guard.phone import normalize_phone_key

        assert normalize_phone_key("06 12 34 56 78", "33") == "+33612345678"
        assert normalize_phone_key("+44 7400 123456", "33") == "+447400123456"
        assert normalize_phone_key("", "33") == ""

    def test_mask(self):
        """Should hide the end of the number."""
        from otp_guard.phone import mask_phone

        masked = mask_phone("+33612345678")

        assert masked == "+33612****"
        assert "345678" not in masked


class TestNationalValidation:
    """Tests for the per-country patterns."""

    def test_valid_french(self):
        """Should accept and format a French mobile."""
        from otp_guard.phone import validate_national_number

        result = validate_national_number("06 12 34 56 78", "FR")

        assert result.is_valid is True
        assert result.formatted_number == "+33612345678"
        assert result.clean_number == "612345678"

    def test_too_short(self):
        """Should report the expected length."""
        from otp_guard.phone import validate_national_number

        result = validate_national_number("201555", "US")

        assert result.is_valid is False
        assert "too short" in result.error

    def test_wrong_format(self):
        """Should show an example for a mismatched number."""
        from otp_guard.phone import validate_national_number

        result = validate_national_number("0512345678", "FR")

        assert result.is_valid is False
        assert "6 12 34 56 78" in result.error

    def test_unknown_country(self):
        """Should refuse countries without a pattern."""
        from otp_guard.phone import validate_national_number

        assert validate_national_number("612345678", "ZZ").is_valid is False

    def test_display_format(self):
        """Should group digits the local way."""
        from otp_guard.phone import format_phone_for_display

        assert format_phone_for_display("0612345678", "FR") == "6 12 34 56 78"
        assert format_phone_for_display("2015550123", "US") == "(201) 555-0123"
        assert format_phone_for_display("412345678", "AU") == "4123 4567 8"
