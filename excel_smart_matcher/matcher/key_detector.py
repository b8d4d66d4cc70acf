"""
Key column detection for smart matching.

excel_smart_matcher/matcher/key_detector.py

Ranks the columns of a table by how likely each one is to be a unique join
key. The base score weighs uniqueness highest, then completeness, type
homogeneity and ID-like patterns; headers that look like key names
(ID, No, Code, 编号 ...) earn a small bonus on top.
"""

import re
import logging

from typing import Optional
from dataclasses import dataclass

from excel_smart_matcher.core.table import Table, CellKind
from excel_smart_matcher.config.settings_loader import MatchSettings, DEFAULT_SETTINGS
from excel_smart_matcher.matcher.errors import NoDataRows
from excel_smart_matcher.matcher.normalize import is_numeric_cell
from excel_smart_matcher.matcher.patterns import PatternLibrary, DEFAULT_PATTERNS
from excel_smart_matcher.matcher.profiler import ColumnProfile, ColumnProfiler


logger = logging.getLogger(__name__)

# Splits header text into words, including camelCase and ALLCAPS runs
# Matches: "Customer_ID" -> Customer, ID; "EmployeeNo" -> Employee, No
header_token_rgx = re.compile(r'[A-Z]+(?![a-z])|[A-Z]?[a-z]+|\d+')


@dataclass(frozen=True)
class KeyColumnCandidate:
    """One column proposed as a join key, with its score and the reasons for it."""

    column_index: int
    header_name: Optional[str]
    score: float
    rationale: str
    profile: ColumnProfile

    @property
    def display_name(self) -> str:
        return self.profile.display_name


def detect_header(table: Table, settings: MatchSettings = DEFAULT_SETTINGS) -> bool:
    """
    Decide whether row 0 of a table is a header row.

    An explicit Table.has_header wins. Otherwise the table has a header when,
    for at least one column, row 0 is non-numeric text and row 1 is numeric,
    or row 0 is one of the known key header words.
    """
    if table.has_header is not None:
        return table.has_header

    if table.row_count == 0:
        return False

    key_words = set(settings.header_key_words)
    first_row = table.rows[0]
    second_row = table.rows[1] if table.row_count > 1 else None

    for col, first in enumerate(first_row):
        if first.kind is not CellKind.TEXT or is_numeric_cell(first):
            continue

        if str(first.value).strip().casefold() in key_words:
            return True

        if second_row is not None and is_numeric_cell(second_row[col]):
            return True

    return False


def header_keyword_bonus(header_name: Optional[str], settings: MatchSettings = DEFAULT_SETTINGS) -> float:
    """
    Bonus for key-like header names.

    Whole header is a keyword: header_exact_bonus. A keyword is one of the
    header's words (or, for CJK keywords, a substring): header_partial_bonus.
    """
    if not header_name:
        return 0.0

    folded = header_name.strip().casefold()
    keywords = settings.header_bonus_keywords

    if folded in keywords:
        return settings.header_exact_bonus

    tokens = {token.casefold() for token in header_token_rgx.findall(header_name)}
    for keyword in keywords:
        if keyword.isascii():
            if keyword in tokens:
                return settings.header_partial_bonus
        elif keyword in folded:
            return settings.header_partial_bonus

    return 0.0


class KeyColumnDetector:
    """Ranks table columns as join key candidates."""

    def __init__(self, settings: MatchSettings = DEFAULT_SETTINGS,
                 patterns: PatternLibrary = DEFAULT_PATTERNS):
        self.settings = settings
        self.profiler = ColumnProfiler(settings, patterns)

    def base_score(self, profile: ColumnProfile) -> float:
        s = self.settings
        return (s.uniqueness_weight * profile.uniqueness_ratio
                + s.completeness_weight * profile.completeness
                + s.type_homogeneity_weight * profile.type_homogeneity
                + s.pattern_weight * profile.pattern_ratio)

    def score_profile(self, profile: ColumnProfile) -> KeyColumnCandidate:
        """Turn a profile into a scored candidate."""
        bonus = header_keyword_bonus(profile.header_name, self.settings)
        score = min(1.0, self.base_score(profile) + bonus)

        return KeyColumnCandidate(
            column_index=profile.column_index,
            header_name=profile.header_name,
            score=score,
            rationale=self._build_rationale(profile, bonus),
            profile=profile,
        )

    def detect(self, table: Table, has_header: Optional[bool] = None) -> list:
        """
        Rank every column of a table as a key candidate.

        Args:
            table: Target table
            has_header: Header flag; None applies detect_header()

        Returns:
            KeyColumnCandidates sorted by score (desc), then column index (asc)

        Raises:
            NoDataRows: If the table has no data rows or no columns
        """
        if has_header is None:
            has_header = detect_header(table, self.settings)

        if table.column_count == 0 or table.data_row_count(has_header) == 0:
            raise NoDataRows(f"Table '{table.name}' has no data rows to analyze")

        candidates = [
            self.score_profile(profile)
            for profile in self.profiler.profile_table(table, has_header)
        ]
        candidates.sort(key=lambda c: (-c.score, c.column_index))

        top = candidates[0]
        logger.debug(
            f"Key candidates for '{table.name}': "
            + ", ".join(f"{c.display_name}={c.score:.3f}" for c in candidates)
        )
        logger.info(f"Top key candidate for '{table.name}': '{top.display_name}' "
                    f"(score {top.score:.3f}, {top.rationale})")
        return candidates

    def select_key(self, candidates: list) -> Optional[KeyColumnCandidate]:
        """
        First ranked candidate that is a viable key.

        Returns:
            The candidate, or None when no column clears both the minimum
            uniqueness and the minimum score
        """
        for candidate in candidates:
            if (candidate.profile.uniqueness_ratio >= self.settings.min_key_uniqueness
                    and candidate.score >= self.settings.min_key_score):
                return candidate
        return None

    @staticmethod
    def _build_rationale(profile: ColumnProfile, bonus: float) -> str:
        reasons = []

        if profile.uniqueness_ratio > 0.8:
            reasons.append("high uniqueness")
        if profile.completeness > 0.9:
            reasons.append("few blanks")
        if profile.type_homogeneity > 0.8:
            reasons.append("consistent type")
        if profile.pattern_ratio > 0.5:
            reasons.append("ID-like values")
        if bonus > 0:
            reasons.append("key-like header")

        return ", ".join(reasons) if reasons else "weak key signals"


# End of file #
