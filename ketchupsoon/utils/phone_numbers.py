"""Phone number parsing and formatting for contacts and event attendees."""

import re
from dataclasses import dataclass
from typing import Optional

_NON_DIGIT = re.compile(r"[^0-9]")


@dataclass(frozen=True)
class PhoneNumberParts:
    country_code: str
    area_code: str
    middle: str
    last: str

    @property
    def formatted(self) -> str:
        if self.country_code == "1":
            return f"({self.area_code}) {self.middle}-{self.last}"
        return f"+{self.country_code} {self.area_code} {self.middle} {self.last}"

    @property
    def standardized(self) -> str:
        return f"{self.country_code}{self.area_code}{self.middle}{self.last}"


def parse_phone_number(raw: Optional[str]) -> Optional[PhoneNumberParts]:
    """Split a phone number into country code and a 3-3-4 national number.

    Numbers with a leading '+' carry a 1-3 digit country code in front of a
    10 digit national number. Without '+', 10 digits (or 11 starting with 1)
    are read as US numbers. Anything else is rejected.
    """
    if not raw:
        return None
    text = raw.strip()
    digits = _NON_DIGIT.sub("", text)

    if text.startswith("+"):
        if not 11 <= len(digits) <= 13:
            return None
        country_code, national = digits[:-10], digits[-10:]
    elif len(digits) == 10:
        country_code, national = "1", digits
    elif len(digits) == 11 and digits.startswith("1"):
        country_code, national = "1", digits[1:]
    else:
        return None

    return PhoneNumberParts(
        country_code=country_code,
        area_code=national[:3],
        middle=national[3:6],
        last=national[6:],
    )


def standardize_phone_number(raw: Optional[str]) -> Optional[str]:
    """Digits-only form with country code, or the stripped input when it cannot be parsed."""
    parts = parse_phone_number(raw)
    if parts:
        return parts.standardized
    return raw.strip() if raw and raw.strip() else None
