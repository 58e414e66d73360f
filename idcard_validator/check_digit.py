"""
ICAO 9303 check-digit engine.

Character values: '0'-'9' → 0-9, 'A'-'Z' → 10-35, '<' → 0.
Weights 7, 3, 1 repeat positionally; the check digit is the weighted sum mod 10.
"""

from __future__ import annotations

from .models import CheckDigitOutcome

WEIGHTS: tuple[int, int, int] = (7, 3, 1)


def char_value(char: str) -> int:
    """Numeric value of one MRZ character."""
    if "0" <= char <= "9":
        return ord(char) - ord("0")
    if "A" <= char <= "Z":
        return ord(char) - ord("A") + 10
    if char == "<":
        return 0
    raise ValueError(f"Character {char!r} is not in the MRZ alphabet")


def compute_check_digit(data: str) -> int:
    """Weighted 7-3-1 check digit of ``data``, always in 0..9."""
    total = sum(
        char_value(char) * WEIGHTS[index % len(WEIGHTS)]
        for index, char in enumerate(data)
    )
    return total % 10


def verify(data: str, found: str) -> CheckDigitOutcome:
    """Compare the embedded check character against the computed digit.

    The comparison is textual: a filler or letter in the check position
    never matches.
    """
    computed = str(compute_check_digit(data))
    return CheckDigitOutcome(
        found_digit=found,
        computed_digit=computed,
        is_valid=found == computed,
    )
