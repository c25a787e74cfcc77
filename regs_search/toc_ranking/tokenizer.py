"""
Query tokenizer for TOC keyword matching.

Tokenization pipeline:
1. Lowercase conversion
2. Trim surrounding whitespace
3. Split on whitespace
4. Drop single-character tokens
5. Filter stopwords (articles, prepositions, WH-words)

No stemming: keyword signals are substring tests against section numbers,
titles and full paths, so tokens must stay as the user typed them
("zones" still matches "Classification of zones").
"""

from typing import List

# Low-information words dropped from voice and text queries
STOPWORDS = frozenset([
    'the', 'and', 'for', 'with', 'from',
    'what', 'how', 'where', 'when', 'is',
    'a', 'an', 'to', 'in', 'on', 'at', 'of', 'or',
    'between',
])


def normalize_query(query: str) -> str:
    """
    Lowercase and trim a raw query.

    Args:
        query: Raw query text (voice transcript or typed)

    Returns:
        Normalized query, empty string for None/whitespace input

    Examples:
        >>> normalize_query("  Bath Zone CLEARANCE ")
        'bath zone clearance'
    """
    if not query:
        return ""
    return query.lower().strip()


def extract_keywords(query: str) -> List[str]:
    """
    Extract match keywords from a query.

    Args:
        query: Raw query text (normalization applied here)

    Returns:
        Keywords in query order (duplicates preserved)

    Examples:
        >>> extract_keywords("What is the bath zone clearance?")
        ['bath', 'zone', 'clearance?']

        >>> extract_keywords("6.2.4.2")
        ['6.2.4.2']

        >>> extract_keywords("   ")
        []
    """
    normalized = normalize_query(query)
    if not normalized:
        return []

    return [
        token for token in normalized.split()
        if len(token) > 1 and token not in STOPWORDS
    ]
