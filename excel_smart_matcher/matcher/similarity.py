"""
Column similarity scoring.

excel_smart_matcher/matcher/similarity.py

Scores how likely a candidate column holds the same entity as the target
key column. Three signals are combined:
- header name similarity (equality, containment, Levenshtein distance)
- dominant value type over a bounded sample
- overlap of sampled key values (weighted highest)
"""

import logging

from typing import Optional

from rapidfuzz.distance import Levenshtein

from excel_smart_matcher.config.settings_loader import MatchSettings, DEFAULT_SETTINGS
from excel_smart_matcher.matcher.profiler import ColumnProfile


logger = logging.getLogger(__name__)


def name_similarity(name1: Optional[str], name2: Optional[str],
                    containment_score: float = DEFAULT_SETTINGS.name_containment_score) -> float:
    """
    Similarity of two header names in [0, 1].

    Equal (case-folded) names score 1.0, containment scores containment_score,
    anything else 1 - distance / longer length. Empty names score 0.
    """
    if not name1 or not name2:
        return 0.0

    a = name1.strip().casefold()
    b = name2.strip().casefold()
    if not a or not b:
        return 0.0

    if a == b:
        return 1.0

    if a in b or b in a:
        return containment_score

    return 1.0 - Levenshtein.distance(a, b) / max(len(a), len(b))


def type_similarity(target: ColumnProfile, candidate: ColumnProfile) -> float:
    """1.0 for the same dominant type, else the overlap of the type ratios."""
    if target.sample_size == 0 or candidate.sample_size == 0:
        return 0.0

    if target.dominant_type == candidate.dominant_type:
        return 1.0

    target_numeric = target.sample_numeric_count / target.sample_size
    candidate_numeric = candidate.sample_numeric_count / candidate.sample_size
    return (min(target_numeric, candidate_numeric)
            + min(1.0 - target_numeric, 1.0 - candidate_numeric))


def value_overlap(target: ColumnProfile, candidate: ColumnProfile,
                  target_sample: int = DEFAULT_SETTINGS.target_value_sample) -> float:
    """Share of the target's first sampled keys found in the candidate's sample."""
    sampled = target.value_sample[:target_sample]
    if not sampled:
        return 0.0

    candidate_values = set(candidate.value_sample)
    found = sum(1 for value in sampled if value in candidate_values)
    return found / len(sampled)


class ColumnSimilarityScorer:
    """Combines name, type and value evidence into one match score."""

    def __init__(self, settings: MatchSettings = DEFAULT_SETTINGS):
        self.settings = settings

    def score(self, target: ColumnProfile, candidate: ColumnProfile,
              target_name: Optional[str] = None, candidate_name: Optional[str] = None) -> float:
        """
        Match score in [0, 1] between a target key column and a candidate column.

        Args:
            target: Profile of the target key column
            candidate: Profile of the candidate column
            target_name: Name override for the target (defaults to its header)
            candidate_name: Name override for the candidate (defaults to its header)

        Returns:
            Weighted composite score

        Names only contribute when both sides have one. A column with no
        header and no name override scores 0 on the name component, so a
        headerless column scores 0.7 against itself with the default weights.
        """
        s = self.settings

        if target_name is None:
            target_name = target.header_name
        if candidate_name is None:
            candidate_name = candidate.header_name

        name_sim = name_similarity(target_name, candidate_name, s.name_containment_score)
        type_sim = type_similarity(target, candidate)
        overlap = value_overlap(target, candidate, s.target_value_sample)

        score = s.name_weight * name_sim + s.type_weight * type_sim + s.value_overlap_weight * overlap
        score = min(1.0, max(0.0, score))

        logger.debug(
            f"Similarity '{target_name}' vs '{candidate_name}': name {name_sim:.2f}, "
            f"type {type_sim:.2f}, overlap {overlap:.2f} -> {score:.3f}"
        )
        return score


# End of file #
