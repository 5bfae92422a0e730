"""
Zulu Time Parsing
=================

Turns typed or imported "HHmm" strings into RawClockTime values.

Two entry paths:
- Strict (parse_zulu_time): the commit-time check. Exactly four digits
  once the "z" suffix and any "(+1)"/"(-1)" annotation are removed.
- Interactive (parse_interactive): the as-you-type path. Accepts partial
  input of one to three digits so a field can show a time while the pilot
  is still typing ("7" -> 07:00, "73" is out of range, "730" -> 07:30).
"""

import re
from typing import Optional

from models.data_models import RawClockTime

_ANNOTATION = re.compile(r"\(\s*[+-]1\s*\)")


class ZuluTimeError(ValueError):
    """Raised when a zulu time string cannot be parsed"""

    def __init__(self, raw: str, message: str):
        super().__init__(message)
        self.raw = raw


class InvalidTimeFormat(ZuluTimeError):
    """Not four ASCII digits after cleanup"""


class InvalidTimeValue(ZuluTimeError):
    """Four digits, but hour or minute out of range"""


def clean_zulu_string(raw: str) -> str:
    """Strip day annotations, the zulu suffix and surrounding whitespace"""
    cleaned = _ANNOTATION.sub("", raw or "").strip()
    if cleaned[-1:] in ("z", "Z"):
        cleaned = cleaned[:-1]
    return cleaned.strip()


def parse_zulu_time(raw: str) -> RawClockTime:
    """
    Parse a committed time entry such as "1230", "1230z" or "0024z (+1)".

    Raises:
        InvalidTimeFormat: wrong length or non-digit characters
        InvalidTimeValue: hour above 23 or minute above 59
    """
    cleaned = clean_zulu_string(raw)

    # str.isdigit() accepts non-ASCII digits, so check the range explicitly
    if len(cleaned) != 4 or not all("0" <= ch <= "9" for ch in cleaned):
        raise InvalidTimeFormat(raw, f"Time must be 4 digits HHmm, got '{raw}'")

    hour = int(cleaned[:2])
    minute = int(cleaned[2:])
    if hour > 23 or minute > 59:
        raise InvalidTimeValue(raw, f"Time out of range 0000-2359: '{raw}'")

    return RawClockTime(hour=hour, minute=minute)


def try_parse_zulu_time(raw: str) -> Optional[RawClockTime]:
    try:
        return parse_zulu_time(raw)
    except ZuluTimeError:
        return None


def is_valid_zulu_time(raw: str) -> bool:
    return try_parse_zulu_time(raw) is not None


def sanitize_keystrokes(raw: str) -> str:
    """Keep ASCII digits only, at most four of them"""
    return "".join(ch for ch in (raw or "") if "0" <= ch <= "9")[:4]


def parse_interactive(raw: str) -> Optional[RawClockTime]:
    """
    Lenient parse for a field that is still being typed.

    4 digits -> HHmm, 3 digits -> HMM, 1-2 digits -> hour only, empty -> 0000.
    Returns None when the digits so far form an impossible time; the field
    should then be shown as invalid rather than rejected outright.
    """
    digits = sanitize_keystrokes(clean_zulu_string(raw))

    if len(digits) == 4:
        hour, minute = int(digits[:2]), int(digits[2:])
    elif len(digits) == 3:
        hour, minute = int(digits[:1]), int(digits[1:])
    elif digits:
        hour, minute = int(digits), 0
    else:
        hour, minute = 0, 0

    if hour > 23 or minute > 59:
        return None
    return RawClockTime(hour=hour, minute=minute)
