#!/usr/bin/env python3
"""
Currency Lookup Tests

Tests currency resolution from explicit codes, locale names and phone
numbers, plus the supported-currency whitelist.
"""

import pytest
import sys
import os

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from donations.currency_handler import (
    CurrencyLookup,
    SUPPORTED_CURRENCY_CODES,
    get_default_locale,
    is_supported_currency,
    normalize_phone,
    parse_locale_region,
)


@pytest.fixture
def lookup():
    return CurrencyLookup()


class TestCurrencyForCode:
    """Tests for explicit currency codes"""

    @pytest.mark.parametrize("code,expected", [
        ("EUR", "EUR"),
        ("eur", "EUR"),
        (" jpy ", "JPY"),
        ("KWD", "KWD"),
    ])
    def test_known_codes(self, lookup, code, expected):
        assert lookup.currency_for_code(code) == expected

    @pytest.mark.parametrize("code", [None, "", "EU", "EURO", "XYZ", "12A"])
    def test_unknown_codes(self, lookup, code):
        assert lookup.currency_for_code(code) is None


class TestCurrencyForLocale:
    """Tests for locale based lookup"""

    @pytest.mark.parametrize("locale_name,expected", [
        ("en_US.UTF-8", "USD"),
        ("de_DE@euro", "EUR"),
        ("pt-BR", "BRL"),
        ("ja_JP", "JPY"),
        ("en_GB", "GBP"),
    ])
    def test_locales_with_region(self, lookup, locale_name, expected):
        assert lookup.currency_for_locale(locale_name) == expected

    @pytest.mark.parametrize("locale_name", [None, "", "en", "C", "zz_ZZ"])
    def test_locales_without_currency(self, lookup, locale_name):
        assert lookup.currency_for_locale(locale_name) is None

    def test_script_subtag_skipped(self):
        assert parse_locale_region("zh-Hant-TW") == "TW"

    def test_empty_region_table_is_used(self):
        lookup = CurrencyLookup(region_currencies={})

        assert lookup.currency_for_locale("de_DE") is None

    def test_empty_calling_code_tables_are_used(self):
        lookup = CurrencyLookup(calling_code_regions={}, shared_code_prefix_regions={})

        assert lookup.currency_for_e164("+447700900123") is None
        assert lookup.currency_for_e164("+14165550123") is None

    def test_custom_region_table(self):
        lookup = CurrencyLookup(region_currencies={"XK": "EUR"})

        assert lookup.currency_for_locale("sq_XK") == "EUR"


class TestCurrencyForPhoneNumber:
    """Tests for E.164 based lookup"""

    @pytest.mark.parametrize("number,expected", [
        ("+447700900123", "GBP"),
        ("+4915112345678", "EUR"),
        ("+12025550123", "USD"),
        ("+353851234567", "EUR"),
        ("+81 90-1234-5678", "JPY"),
        ("0046701234567", "SEK"),
    ])
    def test_numbers(self, lookup, number, expected):
        assert lookup.currency_for_e164(number) == expected

    @pytest.mark.parametrize("number,expected", [
        ("+14165550123", "CAD"),
        ("+16045550123", "CAD"),
        ("+18765550123", "JMD"),
        ("+17875550123", "USD"),
        ("+77012345678", "KZT"),
        ("+74951234567", "RUB"),
    ])
    def test_shared_calling_codes(self, lookup, number, expected):
        """+1 and +7 resolve to the region of the national prefix"""
        assert lookup.currency_for_e164(number) == expected

    @pytest.mark.parametrize("number", [None, "", "07700900123", "+0123456789", "+99912345678"])
    def test_unresolvable_numbers(self, lookup, number):
        assert lookup.currency_for_e164(number) is None


class TestNormalizePhone:

    def test_strips_formatting(self):
        assert normalize_phone("+1 (202) 555-0123") == "+12025550123"

    def test_international_prefix(self):
        assert normalize_phone("00447700900123") == "+447700900123"

    def test_too_short(self):
        assert normalize_phone("+4412") is None


class TestSupportedCurrencies:
    """Tests for the payment processor whitelist"""

    def test_common_currencies_supported(self):
        for code in ("USD", "EUR", "GBP", "JPY", "BRL", "INR"):
            assert code in SUPPORTED_CURRENCY_CODES

    def test_unsupported_currencies(self):
        for code in ("KWD", "BHD", "OMR"):
            assert code not in SUPPORTED_CURRENCY_CODES

    def test_is_supported_currency(self):
        assert is_supported_currency("eur") is True
        assert is_supported_currency("KWD") is False
        assert is_supported_currency(None) is False

    def test_custom_whitelist(self):
        assert is_supported_currency("EUR", supported={"GBP"}) is False


class TestDefaultLocale:

    def test_environment_order(self, monkeypatch):
        monkeypatch.setenv("LC_ALL", "sv_SE.UTF-8")
        monkeypatch.setenv("LANG", "en_US.UTF-8")

        assert get_default_locale() == "sv_SE.UTF-8"

    def test_posix_locale_ignored(self, monkeypatch):
        monkeypatch.setenv("LC_ALL", "C")
        monkeypatch.delenv("LC_MESSAGES", raising=False)
        monkeypatch.setenv("LANG", "fr_FR.UTF-8")

        assert get_default_locale() == "fr_FR.UTF-8"
