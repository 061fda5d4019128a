"""
Currency Detection for Donations

Resolves ISO-4217 currency codes from the three hints the app has about a
user:
- An explicitly chosen currency code
- The device locale (its region decides the currency)
- The registered phone number (its calling code decides the region)

The payment processor only accepts a fixed set of currencies, listed in
SUPPORTED_CURRENCY_CODES. Anything outside that set falls back to USD.
"""

import locale
import logging
import os
import re
from typing import Dict, Iterable, Optional

logger = logging.getLogger(__name__)


DEFAULT_CURRENCY_CODE = "USD"


# ============================================================================
# SUPPORTED CURRENCIES
# ============================================================================

# Currencies accepted by the payment processor (Stripe)
SUPPORTED_CURRENCY_CODES = frozenset({
    "USD", "AED", "AFN", "ALL", "AMD", "ANG", "AOA", "ARS", "AUD", "AWG",
    "AZN", "BAM", "BBD", "BDT", "BGN", "BIF", "BMD", "BND", "BOB", "BRL",
    "BSD", "BWP", "BZD", "CAD", "CDF", "CHF", "CLP", "CNY", "COP", "CRC",
    "CVE", "CZK", "DJF", "DKK", "DOP", "DZD", "EGP", "ETB", "EUR", "FJD",
    "FKP", "GBP", "GEL", "GIP", "GMD", "GNF", "GTQ", "GYD", "HKD", "HNL",
    "HRK", "HTG", "HUF", "IDR", "ILS", "INR", "ISK", "JMD", "JPY", "KES",
    "KGS", "KHR", "KMF", "KRW", "KYD", "KZT", "LAK", "LBP", "LKR", "LRD",
    "LSL", "MAD", "MDL", "MGA", "MKD", "MMK", "MNT", "MOP", "MRO", "MUR",
    "MVR", "MWK", "MXN", "MYR", "MZN", "NAD", "NGN", "NIO", "NOK", "NPR",
    "NZD", "PAB", "PEN", "PGK", "PHP", "PKR", "PLN", "PYG", "QAR", "RON",
    "RSD", "RUB", "RWF", "SAR", "SBD", "SCR", "SEK", "SGD", "SHP", "SLL",
    "SOS", "SRD", "STD", "SZL", "THB", "TJS", "TOP", "TRY", "TTD", "TWD",
    "TZS", "UAH", "UGX", "UYU", "UZS", "VND", "VUV", "WST", "XAF", "XCD",
    "XOF", "XPF", "YER", "ZAR", "ZMW",
})

# Known ISO-4217 codes that are not in the supported set
_UNSUPPORTED_ISO_CODES = frozenset({
    "BHD", "BTN", "BYN", "CUC", "CUP", "ERN", "GHS", "IQD", "IRR", "JOD",
    "KPW", "KWD", "LYD", "MRU", "OMR", "SDG", "SLE", "SSP", "STN", "SVC",
    "SYP", "TMT", "TND", "VES", "ZWL", "XDR", "XAU", "XAG",
})

ISO_4217_CODES = SUPPORTED_CURRENCY_CODES | _UNSUPPORTED_ISO_CODES


# ============================================================================
# REGION TABLES
# ============================================================================

# ISO-3166 region -> currency
REGION_CURRENCIES: Dict[str, str] = {
    "AE": "AED", "AR": "ARS", "AT": "EUR", "AU": "AUD", "BB": "BBD",
    "BD": "BDT", "BE": "EUR", "BG": "BGN", "BH": "BHD", "BM": "BMD",
    "BO": "BOB", "BR": "BRL", "BS": "BSD", "BY": "BYN", "CA": "CAD",
    "CH": "CHF", "CL": "CLP", "CN": "CNY", "CO": "COP", "CR": "CRC",
    "CU": "CUP", "CY": "EUR", "CZ": "CZK", "DE": "EUR", "DK": "DKK",
    "DO": "DOP", "DZ": "DZD", "EC": "USD", "EE": "EUR", "EG": "EGP",
    "ES": "EUR", "ET": "ETB", "FI": "EUR", "FR": "EUR", "GB": "GBP",
    "GE": "GEL", "GH": "GHS", "GR": "EUR", "GT": "GTQ", "HK": "HKD",
    "HN": "HNL", "HR": "EUR", "HU": "HUF", "ID": "IDR", "IE": "EUR",
    "IL": "ILS", "IN": "INR", "IQ": "IQD", "IR": "IRR", "IS": "ISK",
    "IT": "EUR", "JM": "JMD", "JO": "JOD", "JP": "JPY", "KE": "KES",
    "KR": "KRW", "KW": "KWD", "KZ": "KZT", "LB": "LBP", "LK": "LKR",
    "LT": "EUR", "LU": "EUR", "LV": "EUR", "MA": "MAD", "MT": "EUR",
    "MX": "MXN", "MY": "MYR", "NG": "NGN", "NL": "EUR", "NO": "NOK",
    "NP": "NPR", "NZ": "NZD", "OM": "OMR", "PA": "PAB", "PE": "PEN",
    "PH": "PHP", "PK": "PKR", "PL": "PLN", "PR": "USD", "PT": "EUR",
    "PY": "PYG", "QA": "QAR", "RO": "RON", "RS": "RSD", "RU": "RUB",
    "SA": "SAR", "SE": "SEK", "SG": "SGD", "SI": "EUR", "SK": "EUR",
    "SV": "USD", "SY": "SYP", "TH": "THB", "TN": "TND", "TR": "TRY",
    "TT": "TTD", "TW": "TWD", "TZ": "TZS", "UA": "UAH", "UG": "UGX",
    "US": "USD", "UY": "UYU", "UZ": "UZS", "VE": "VES", "VN": "VND",
    "ZA": "ZAR", "ZM": "ZMW",
}

# Regions inside shared calling codes, keyed by calling code plus the
# leading digits of the national number. Checked before CALLING_CODE_REGIONS.
SHARED_CODE_PREFIX_REGIONS: Dict[str, str] = {
    # +1 area codes outside the US
    **{f"1{area}": "CA" for area in (
        "204", "226", "236", "249", "250", "263", "289", "306", "343",
        "354", "365", "367", "368", "382", "387", "403", "416", "418",
        "428", "431", "437", "438", "450", "460", "468", "474", "506",
        "514", "519", "548", "579", "581", "584", "587", "604", "613",
        "639", "647", "672", "683", "705", "709", "742", "753", "778",
        "780", "782", "807", "819", "825", "867", "873", "879", "902",
        "905",
    )},
    "1242": "BS", "1246": "BB", "1441": "BM", "1658": "JM", "1787": "PR",
    "1868": "TT", "1876": "JM", "1939": "PR",
    # +7 6xx and 7xx are Kazakhstan
    "76": "KZ", "77": "KZ",
}

# International calling code -> ISO-3166 region.
# Shared codes (+1, +7) map to their main region unless a longer prefix in
# SHARED_CODE_PREFIX_REGIONS matches.
CALLING_CODE_REGIONS: Dict[str, str] = {
    "1": "US", "7": "RU", "20": "EG", "27": "ZA", "30": "GR", "31": "NL",
    "32": "BE", "33": "FR", "34": "ES", "36": "HU", "39": "IT", "40": "RO",
    "41": "CH", "43": "AT", "44": "GB", "45": "DK", "46": "SE", "47": "NO",
    "48": "PL", "49": "DE", "51": "PE", "52": "MX", "53": "CU", "54": "AR",
    "55": "BR", "56": "CL", "57": "CO", "58": "VE", "60": "MY", "61": "AU",
    "62": "ID", "63": "PH", "64": "NZ", "65": "SG", "66": "TH", "81": "JP",
    "82": "KR", "84": "VN", "86": "CN", "90": "TR", "91": "IN", "92": "PK",
    "94": "LK", "98": "IR", "212": "MA", "213": "DZ", "216": "TN",
    "233": "GH", "234": "NG", "251": "ET", "254": "KE", "255": "TZ",
    "256": "UG", "260": "ZM", "351": "PT", "352": "LU", "353": "IE",
    "354": "IS", "356": "MT", "357": "CY", "358": "FI", "359": "BG",
    "370": "LT", "371": "LV", "372": "EE", "375": "BY", "380": "UA",
    "381": "RS", "385": "HR", "386": "SI", "420": "CZ", "421": "SK",
    "502": "GT", "503": "SV", "504": "HN", "506": "CR", "507": "PA",
    "591": "BO", "593": "EC", "595": "PY", "598": "UY", "852": "HK",
    "880": "BD", "886": "TW", "961": "LB", "962": "JO", "963": "SY",
    "964": "IQ", "965": "KW", "966": "SA", "968": "OM", "971": "AE",
    "972": "IL", "973": "BH", "974": "QA", "977": "NP", "995": "GE",
    "998": "UZ",
}

_CURRENCY_CODE_PATTERN = re.compile(r"^[A-Z]{3}$")
_E164_PATTERN = re.compile(r"^\+[1-9]\d{6,14}$")


# ============================================================================
# LOOKUPS
# ============================================================================

class CurrencyLookup:
    """
    Maps currency hints to ISO-4217 codes.

    Every lookup returns None when the hint does not name a currency; none of
    them raise for bad input.
    """

    def __init__(
        self,
        region_currencies: Optional[Dict[str, str]] = None,
        calling_code_regions: Optional[Dict[str, str]] = None,
        shared_code_prefix_regions: Optional[Dict[str, str]] = None,
    ):
        self._region_currencies = (
            REGION_CURRENCIES if region_currencies is None else region_currencies
        )
        self._calling_code_regions = (
            CALLING_CODE_REGIONS if calling_code_regions is None else calling_code_regions
        )
        self._shared_code_prefix_regions = (
            SHARED_CODE_PREFIX_REGIONS if shared_code_prefix_regions is None
            else shared_code_prefix_regions
        )

    def currency_for_code(self, currency_code: Optional[str]) -> Optional[str]:
        """Validate an explicit currency code"""
        if not currency_code:
            return None
        code = currency_code.strip().upper()
        if not _CURRENCY_CODE_PATTERN.match(code) or code not in ISO_4217_CODES:
            logger.debug(f"Unknown currency code: {currency_code!r}")
            return None
        return code

    def currency_for_region(self, region: Optional[str]) -> Optional[str]:
        """Get the currency used in an ISO-3166 region"""
        if not region:
            return None
        return self._region_currencies.get(region.upper())

    def currency_for_locale(self, locale_name: Optional[str]) -> Optional[str]:
        """
        Get the currency for a locale name.

        Accepts POSIX names ("en_US.UTF-8", "de_DE@euro") and BCP-47 tags
        ("pt-BR"). A locale without a region has no currency.
        """
        region = parse_locale_region(locale_name)
        return self.currency_for_region(region)

    def currency_for_e164(self, phone_number: Optional[str]) -> Optional[str]:
        """Get the currency for the region of an E.164 phone number"""
        normalized = normalize_phone(phone_number)
        if normalized is None:
            return None

        digits = normalized[1:]
        for length in (4, 3, 2):
            region = self._shared_code_prefix_regions.get(digits[:length])
            if region:
                return self.currency_for_region(region)

        # Calling codes are one to three digits long
        for length in (3, 2, 1):
            region = self._calling_code_regions.get(digits[:length])
            if region:
                return self.currency_for_region(region)

        logger.debug(f"No region for calling code of {normalized[:4]}...")
        return None


def parse_locale_region(locale_name: Optional[str]) -> Optional[str]:
    """Extract the region part of a locale name, if it has one"""
    if not locale_name:
        return None

    # Strip encoding and modifier: en_US.UTF-8@euro -> en_US
    base = locale_name.split(".", 1)[0].split("@", 1)[0]
    parts = re.split(r"[_-]", base)

    for part in parts[1:]:
        if len(part) == 2 and part.isalpha():
            return part.upper()
    return None


def normalize_phone(phone_number: Optional[str]) -> Optional[str]:
    """Normalize a phone number to E.164, or None if it is not one"""
    if not phone_number:
        return None

    # Remove all non-digit characters except +
    normalized = re.sub(r"[^\d+]", "", phone_number)
    if normalized.startswith("00"):
        normalized = "+" + normalized[2:]

    if not _E164_PATTERN.match(normalized):
        return None
    return normalized


def get_default_locale() -> Optional[str]:
    """Get the process locale name, in the order the C library checks them"""
    for variable in ("LC_ALL", "LC_MESSAGES", "LANG"):
        value = os.environ.get(variable)
        if value and value not in ("C", "POSIX"):
            return value

    try:
        language_code, _encoding = locale.getlocale()
    except ValueError:
        return None
    return language_code


def is_supported_currency(
    currency_code: Optional[str],
    supported: Optional[Iterable[str]] = None,
) -> bool:
    """Check a currency code against the payment processor's list"""
    if not currency_code:
        return False
    supported_codes = SUPPORTED_CURRENCY_CODES if supported is None else supported
    return currency_code.upper() in supported_codes
