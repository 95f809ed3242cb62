"""
Phone Matching

Pure predicates for deciding whether an inbound sender phone refers to a
stored lead phone. Predicates are tried in order; the first lead for which
any predicate holds wins.
"""

import re
from collections.abc import Callable, Iterable
from typing import Any, TypeVar

SUFFIX_DIGITS = 10

_NON_DIGITS = re.compile(r"\D")

T = TypeVar("T")


def digits_only(phone: str | None) -> str:
    """Strip everything but digits."""
    return _NON_DIGITS.sub("", phone or "")


def exact_match(incoming: str, stored: str) -> bool:
    return incoming == stored


def plus_prefix_match(incoming: str, stored: str) -> bool:
    """One side is the other with a leading '+'."""
    return incoming == f"+{stored}" or stored == f"+{incoming}"


def digits_match(incoming: str, stored: str) -> bool:
    a, b = digits_only(incoming), digits_only(stored)
    return bool(a) and a == b


def suffix_match(incoming: str, stored: str) -> bool:
    """
    Last ten digits of one number end the other, in either direction.

    Empty digit strings never match, otherwise "" would be a suffix of
    every stored phone.
    """
    a, b = digits_only(incoming), digits_only(stored)
    if not a or not b:
        return False
    return a.endswith(b[-SUFFIX_DIGITS:]) or b.endswith(a[-SUFFIX_DIGITS:])


PhonePredicate = Callable[[str, str], bool]

MATCH_LADDER: tuple[PhonePredicate, ...] = (
    exact_match,
    plus_prefix_match,
    digits_match,
    suffix_match,
)


def phones_match(incoming: str | None, stored: str | None) -> bool:
    """True if any rung of the ladder matches the two phones."""
    if not incoming or not stored:
        return False
    return any(predicate(incoming, stored) for predicate in MATCH_LADDER)


def find_matching_lead(
    phone: str,
    leads: Iterable[T],
    get_phone: Callable[[Any], str | None] = lambda lead: lead.phone,
) -> T | None:
    """First lead, in iteration order, whose phone matches."""
    for lead in leads:
        if phones_match(phone, get_phone(lead)):
            return lead
    return None
