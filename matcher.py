"""
Tiered fuzzy matching of industry labels onto the emission factor table.
"""
import re
import logging
from typing import Iterable, List, Optional, Tuple
from rapidfuzz.distance import Levenshtein

import config
from schema import EmissionFactor

logger = logging.getLogger(__name__)

STRICT_TITLE = 'strict_title'
NAICS_CODE = 'naics_code'
LENIENT_TITLE = 'lenient_title'

NAICS_CODE_PATTERN = re.compile(r'[0-9]{6}')

def normalize_label(text) -> str:
    """Lower-case, trim and collapse internal whitespace."""
    if not isinstance(text, str):
        return ''
    return ' '.join(text.lower().split())

def title_distance(a: str, b: str) -> float:
    """Normalized edit distance in [0, 1] between two normalized labels; 0 is identical."""
    return Levenshtein.normalized_distance(a, b)

class EmissionFactorMatcher:
    """
    Maps a possibly imprecise industry label onto the single best emission factor row.

    Tiers are tried in order and the first that finds a row wins:
    strict title search, exact 6-digit NAICS code, lenient title search.
    Returns None when every tier fails.
    """

    def __init__(self, factors: Iterable[EmissionFactor],
                 strict_threshold: float = config.STRICT_MATCH_THRESHOLD,
                 lenient_threshold: float = config.LENIENT_MATCH_THRESHOLD):
        if strict_threshold > lenient_threshold:
            raise ValueError("strict_threshold must not exceed lenient_threshold")
        self.logger = logging.getLogger(self.__class__.__name__)
        self.factors: Tuple[EmissionFactor, ...] = tuple(factors or ())
        self.strict_threshold = strict_threshold
        self.lenient_threshold = lenient_threshold

        # Title index, built once per table
        self._titles: List[str] = [normalize_label(f.naics_title) for f in self.factors]

    def match(self, query: str) -> Optional[EmissionFactor]:
        factor, _ = self.match_with_tier(query)
        return factor

    def match_with_tier(self, query: str) -> Tuple[Optional[EmissionFactor], Optional[str]]:
        """
        Match a label and report which tier produced the row.

        Args:
            query: Industry label from the classifier, or a 6-digit NAICS code

        Returns:
            Tuple of (factor or None, tier name or None)
        """
        factor = self.search_titles(query, self.strict_threshold)
        if factor is not None:
            return factor, STRICT_TITLE

        factor = self.lookup_code(query)
        if factor is not None:
            return factor, NAICS_CODE

        factor = self.search_titles(query, self.lenient_threshold)
        if factor is not None:
            self.logger.debug(f"Lenient match for '{query}': {factor.naics_title}")
            return factor, LENIENT_TITLE

        self.logger.debug(f"No emission factor found for '{query}'")
        return None, None

    def search_titles(self, query: str, threshold: float) -> Optional[EmissionFactor]:
        """Best title within `threshold`; ties go to the earliest row."""
        normalized = normalize_label(query)
        if not normalized:
            return None

        best_index = -1
        best_score = threshold
        for index, title in enumerate(self._titles):
            score = title_distance(normalized, title)
            # strictly better only, so the first of equal scores is kept
            if score < best_score or (best_index < 0 and score <= best_score):
                best_index = index
                best_score = score
                if score == 0.0:
                    break

        return self.factors[best_index] if best_index >= 0 else None

    def lookup_code(self, query: str) -> Optional[EmissionFactor]:
        """Exact NAICS code lookup for queries that are exactly six digits."""
        if not isinstance(query, str):
            return None
        candidate = query.strip()
        if not NAICS_CODE_PATTERN.fullmatch(candidate):
            return None

        code = int(candidate)
        for factor in self.factors:
            if factor.naics_code == code:
                return factor
        return None

def find_closest_emission_factor(classification: str, emission_factors: Iterable[EmissionFactor]) -> Optional[EmissionFactor]:
    """One-off match without keeping the title index around."""
    return EmissionFactorMatcher(emission_factors).match(classification)
