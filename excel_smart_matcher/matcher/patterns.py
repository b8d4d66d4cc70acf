"""
Structural value patterns for key column profiling.

excel_smart_matcher/matcher/patterns.py

Patterns are compiled once into an immutable PatternLibrary. A library is
safe to share between profilers and threads; pass a custom one to the
profiler instead of patching module state.
"""

import re


# Pure digit identifiers
# Matches: "1001", "000123"
digit_id_rgx = re.compile(r'^\d+$')

# Letters and digits with no separators, at least one digit
# Matches: "E001", "SKU42", "ab12cd"
alphanumeric_id_rgx = re.compile(r'^(?=.*\d)[A-Za-z0-9]+$')

# Mainland China mobile numbers: 1, then 3-9, then 9 more digits
# Matches: "13812345678", "19900001111"
phone_rgx = re.compile(r'^1[3-9]\d{9}$')

# Simple email addresses
# Matches: "a.b@example.com", "user+tag@mail.example.org"
email_rgx = re.compile(r'^[\w.+-]+@[\w-]+(\.[\w-]+)+$')

# ISO dates
# Matches: "2024-01-31"
iso_date_rgx = re.compile(r'^\d{4}-\d{2}-\d{2}$')


DIGIT_ID = 'digit_id'
ALPHANUMERIC_ID = 'alphanumeric_id'
PHONE = 'phone'
EMAIL = 'email'
ISO_DATE = 'iso_date'


class PatternLibrary:
    """Ordered, read-only set of named patterns. First match wins."""

    __slots__ = ('_patterns',)

    def __init__(self, patterns):
        """
        Args:
            patterns: Sequence of (name, pattern) pairs; pattern may be text or compiled
        """
        compiled = []
        seen = set()
        for name, pattern in patterns:
            if name in seen:
                raise ValueError(f"Duplicate pattern name: {name}")
            seen.add(name)
            compiled.append((name, pattern if isinstance(pattern, re.Pattern) else re.compile(pattern)))
        object.__setattr__(self, '_patterns', tuple(compiled))

    def __setattr__(self, name, value):
        raise AttributeError("PatternLibrary is immutable")

    @property
    def names(self) -> tuple:
        return tuple(name for name, _ in self._patterns)

    def classify(self, text: str):
        """Name of the first pattern matching text, or None."""
        for name, pattern in self._patterns:
            if pattern.match(text):
                return name
        return None

    def __len__(self) -> int:
        return len(self._patterns)


DEFAULT_PATTERNS = PatternLibrary([
    (DIGIT_ID, digit_id_rgx),
    (ALPHANUMERIC_ID, alphanumeric_id_rgx),
    (PHONE, phone_rgx),
    (EMAIL, email_rgx),
    (ISO_DATE, iso_date_rgx),
])


# End of file #
