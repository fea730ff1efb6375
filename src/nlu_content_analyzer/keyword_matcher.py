"""
Keyword status matching.

Classifies how well a target keyword is represented in the keywords of an
analysis result: exact, partial, relevant or missing.
"""

import logging
from typing import Optional

from .models import AnalysisResult, KeywordItem, KeywordStatus

logger = logging.getLogger(__name__)


def is_exact_keyword_match(text: str, target_keyword: str) -> bool:
    """Check if a result keyword equals the target, ignoring case and padding."""
    if not text or not target_keyword:
        return False
    return text.lower().strip() == target_keyword.lower().strip()


def is_partial_keyword_match(text: str, target_keyword: str) -> bool:
    """Check if a result keyword contains the target without being equal to it."""
    if not text or not target_keyword:
        return False
    text_lower = text.lower().strip()
    keyword_lower = target_keyword.lower().strip()
    return keyword_lower in text_lower and text_lower != keyword_lower


def is_keyword_in_top_positions(
    target_keyword: str,
    keywords: list[KeywordItem],
    top_n: int = 3,
) -> bool:
    """Check if the target appears inside any of the first top_n keywords."""
    if not keywords or not target_keyword:
        return False
    target_lower = target_keyword.lower()
    return any(target_lower in k.text.lower() for k in keywords[:top_n])


def match_status(
    keyword: str,
    result: Optional[AnalysisResult],
    top_n: int = 10,
) -> KeywordStatus:
    """
    Classify a target keyword against an analysis result.

    The first rule that matches wins:
    1. EXACT: a result keyword equals the target (case-folded, trimmed).
    2. PARTIAL: a result keyword contains the target, or the target
       contains a result keyword.
    3. RELEVANT: the target is a substring of one of the top_n keywords.
    4. MISSING: otherwise, or if keyword/result is empty.

    Args:
        keyword: Target keyword.
        result: Analysis result to search.
        top_n: Number of leading keywords checked for relevance.

    Returns:
        KeywordStatus for the keyword.
    """
    if not keyword or result is None or not result.keywords:
        return KeywordStatus.MISSING

    keywords = result.keywords

    if any(is_exact_keyword_match(k.text, keyword) for k in keywords):
        return KeywordStatus.EXACT

    if any(is_partial_keyword_match(k.text, keyword) for k in keywords):
        return KeywordStatus.PARTIAL

    keyword_lower = keyword.lower().strip()
    for k in keywords:
        text_lower = k.text.lower().strip()
        if text_lower and (keyword_lower in text_lower or text_lower in keyword_lower):
            logger.debug(f"Substring match for keyword '{keyword}' via '{k.text}'")
            return KeywordStatus.PARTIAL

    if is_keyword_in_top_positions(keyword, keywords, top_n):
        return KeywordStatus.RELEVANT

    return KeywordStatus.MISSING


def keyword_statuses(
    keywords: list[str],
    result: Optional[AnalysisResult],
) -> dict[str, KeywordStatus]:
    """Get the status of every target keyword, in input order."""
    return {kw: match_status(kw, result) for kw in keywords}


def keywords_to_optimize(keywords: list[str], result: Optional[AnalysisResult]) -> list[str]:
    """Get target keywords that are missing from the result."""
    return [kw for kw in keywords if match_status(kw, result) == KeywordStatus.MISSING]


def keywords_with_partial_match(keywords: list[str], result: Optional[AnalysisResult]) -> list[str]:
    """Get target keywords that only partially match the result."""
    return [kw for kw in keywords if match_status(kw, result) == KeywordStatus.PARTIAL]
