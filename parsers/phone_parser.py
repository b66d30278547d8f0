"""
Phone number parser.

Parses spreadsheet phone cells against the dialing rules of an explicitly
given country. The platform stores the national number and the country
separately, so the dial code and any national trunk prefix are stripped.
"""

import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

import structlog

from parsers.country_codes import normalize_country_code

logger = structlog.get_logger(__name__)

_SEPARATORS = re.compile(r"[\s\-\(\)\. /]")


@dataclass(frozen=True)
class DialingRule:
    """Dialing rules for one country."""
    country_code: str
    country_name: str
    dial_code: str
    min_length: int
    max_length: int
    example: str
    trunk_prefix: Optional[str] = None


DIALING_RULES: dict[str, DialingRule] = {
    rule.country_code: rule for rule in (
        DialingRule("DK", "Denmark", "45", 8, 8, "12345678"),
        DialingRule("NO", "Norway", "47", 8, 8, "40055171"),
        DialingRule("SE", "Sweden", "46", 7, 9, "701234567", "0"),
        DialingRule("FI", "Finland", "358", 5, 10, "401234567", "0"),
        DialingRule("IS", "Iceland", "354", 7, 7, "6111234"),
        DialingRule("FO", "Faroe Islands", "298", 6, 6, "211234"),
        DialingRule("GB", "United Kingdom", "44", 9, 10, "7400123456", "0"),
        DialingRule("IE", "Ireland", "353", 7, 9, "851234567", "0"),
        DialingRule("DE", "Germany", "49", 6, 11, "15123456789", "0"),
        DialingRule("FR", "France", "33", 9, 9, "612345678", "0"),
        DialingRule("IT", "Italy", "39", 6, 11, "3123456789"),
        DialingRule("ES", "Spain", "34", 9, 9, "612345678"),
        DialingRule("PT", "Portugal", "351", 9, 9, "912345678"),
        DialingRule("NL", "Netherlands", "31", 9, 9, "612345678", "0"),
        DialingRule("BE", "Belgium", "32", 8, 9, "470123456", "0"),
        DialingRule("LU", "Luxembourg", "352", 6, 11, "628123456"),
        DialingRule("CH", "Switzerland", "41", 9, 9, "781234567", "0"),
        DialingRule("AT", "Austria", "43", 4, 13, "6641234567", "0"),
        DialingRule("PL", "Poland", "48", 9, 9, "512345678"),
        DialingRule("EE", "Estonia", "372", 7, 8, "51234567"),
        DialingRule("LV", "Latvia", "371", 8, 8, "21234567"),
        DialingRule("LT", "Lithuania", "370", 8, 8, "61234567"),
        DialingRule("US", "United States", "1", 10, 10, "2015550123"),
        DialingRule("CA", "Canada", "1", 10, 10, "5062345678"),
        DialingRule("MX", "Mexico", "52", 10, 10, "2221234567"),
        DialingRule("BR", "Brazil", "55", 10, 11, "11961234567", "0"),
        DialingRule("AU", "Australia", "61", 9, 9, "412345678", "0"),
        DialingRule("NZ", "New Zealand", "64", 8, 10, "211234567", "0"),
        DialingRule("JP", "Japan", "81", 9, 10, "9012345678", "0"),
        DialingRule("KR", "South Korea", "82", 8, 10, "1020000000", "0"),
        DialingRule("CN", "China", "86", 10, 11, "13123456789", "0"),
        DialingRule("IN", "India", "91", 10, 10, "8123456789", "0"),
        DialingRule("SG", "Singapore", "65", 8, 8, "81234567"),
        DialingRule("VN", "Vietnam", "84", 9, 10, "912345678", "0"),
        DialingRule("PH", "Philippines", "63", 10, 10, "9051234567", "0"),
        DialingRule("ZA", "South Africa", "27", 9, 9, "711234567", "0"),
    )
}

# E.164 bounds for ISO countries without a dedicated rule
GENERIC_MIN_LENGTH = 4
GENERIC_MAX_LENGTH = 14


@dataclass
class PhoneParseResult:
    """Outcome of parsing one phone cell."""
    is_valid: bool
    original_input: str
    phone_number: Optional[str] = None
    country_code: Optional[str] = None
    dial_code: Optional[str] = None
    error: Optional[str] = None

    @property
    def formatted(self) -> str:
        """Display form: +45 12345678."""
        if not self.is_valid or not self.phone_number:
            return self.original_input
        if not self.dial_code:
            return self.phone_number
        return f"+{self.dial_code} {self.phone_number}"


def example_phone_number(country_code: str) -> str:
    """Display example for error messages, e.g. '+47 40055171'."""
    rule = DIALING_RULES.get(country_code.upper())
    if rule is None:
        return "+XX XXXXXXXX"
    return f"+{rule.dial_code} {rule.example}"


def _cell_to_text(value: Any) -> Optional[str]:
    """Turn a spreadsheet cell into phone text, undoing Excel number formatting."""
    if value is None:
        return None
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if value != value:  # NaN
            return None
        return str(int(value)) if value.is_integer() else str(value)

    text = str(value).strip()
    if "e+" in text.lower():
        # Scientific notation from Excel (e.g. "4.74005517E+9")
        try:
            return str(int(Decimal(text)))
        except (InvalidOperation, ValueError):
            return text
    if re.fullmatch(r"\d+\.0", text):
        return text[:-2]
    return text


def parse_phone(value: Any, country_code: Optional[str]) -> PhoneParseResult:
    """
    Parse a phone cell for the given country.

    Accepts "+45 12 34 56 78", "004512345678", "4512345678" and
    "12345678" for DK; "07400 123456" for GB (trunk 0 stripped).

    Args:
        value: Raw cell value (text or number)
        country_code: ISO alpha-2 code of the number's country

    Returns:
        PhoneParseResult; never raises
    """
    text = _cell_to_text(value)
    original = "" if text is None else text

    if not text:
        return PhoneParseResult(False, original, error="Phone number is required")

    country = normalize_country_code(country_code)
    if country is None:
        if country_code is None or str(country_code).strip() == "":
            message = "Country code is required when a phone number is provided"
        else:
            message = f'"{country_code}" is not a valid ISO country code'
        return PhoneParseResult(False, original, error=message)

    if "e+" in text.lower():
        return PhoneParseResult(
            False, original, country_code=country,
            error=(
                f"Excel scientific notation detected ({text}). Format the phone "
                "column as Text in Excel to keep every digit."
            ),
        )

    cleaned = _SEPARATORS.sub("", text)
    international = False
    if cleaned.startswith("+"):
        cleaned = cleaned[1:]
        international = True
    elif cleaned.startswith("00"):
        cleaned = cleaned[2:]
        international = True

    if not cleaned.isdigit():
        return PhoneParseResult(
            False, original, country_code=country,
            error="Phone number may only contain digits, spaces, dashes, parentheses and a leading +",
        )

    rule = DIALING_RULES.get(country)
    if rule is None:
        return _parse_generic(cleaned, original, country)

    national = cleaned
    if international:
        if not cleaned.startswith(rule.dial_code):
            return PhoneParseResult(
                False, original, country_code=country, dial_code=rule.dial_code,
                error=(
                    f"International prefix does not match {rule.country_name} "
                    f"(+{rule.dial_code}). Expected format: {example_phone_number(country)}"
                ),
            )
        national = cleaned[len(rule.dial_code):]
    elif len(cleaned) > rule.max_length and cleaned.startswith(rule.dial_code):
        # Dial code typed without + or 00
        national = cleaned[len(rule.dial_code):]

    if rule.trunk_prefix and national.startswith(rule.trunk_prefix):
        national = national[len(rule.trunk_prefix):]

    if len(national) < rule.min_length:
        return PhoneParseResult(
            False, original, country_code=country, dial_code=rule.dial_code,
            error=(
                f"Phone number too short for {rule.country_name}. "
                f"Expected format: {example_phone_number(country)}"
            ),
        )
    if len(national) > rule.max_length:
        return PhoneParseResult(
            False, original, country_code=country, dial_code=rule.dial_code,
            error=(
                f"Phone number too long for {rule.country_name}. "
                f"Expected format: {example_phone_number(country)}"
            ),
        )

    return PhoneParseResult(
        True, original,
        phone_number=national,
        country_code=country,
        dial_code=rule.dial_code,
    )


def _parse_generic(cleaned: str, original: str, country: str) -> PhoneParseResult:
    """Length-only check for ISO countries without dialing rules."""
    logger.debug("phone_generic_rules", country=country)
    if not GENERIC_MIN_LENGTH <= len(cleaned) <= GENERIC_MAX_LENGTH:
        return PhoneParseResult(
            False, original, country_code=country,
            error=(
                f"Phone number must have {GENERIC_MIN_LENGTH}-{GENERIC_MAX_LENGTH} digits"
            ),
        )
    return PhoneParseResult(True, original, phone_number=cleaned, country_code=country)
