"""Heuristic query-intent classification.

Distinguishes questions about a document as a whole ("summarize this",
"what does this file contain") from pinpoint questions. General questions
get a wider retrieval window. A single matching template is enough to
classify a question as general.
"""

import re
from enum import Enum


class QueryIntent(str, Enum):
    """Retrieval breadth for a question."""

    SPECIFIC = "specific"
    GENERAL = "general"


_DOC = r"(this|that|the|these|those|my) (document|file|text|pdf|paper|report)s?"

GENERAL_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"\b(summarize|summarise|summary|summaries)\b",
        r"\b(tl;?dr|gist)\b",
        rf"\bwhat (does|do|did) {_DOC} (contain|say|include|discuss|cover|describe)\b",
        rf"\bwhat (is|are) {_DOC} (about|on)\b",
        r"\bwhat (is|are) (in|inside|the content of|the contents of)\b",
        rf"\b(tell me|describe|explain) (what|about) {_DOC}\b",
        rf"\b(overview|contents?) (of|about) {_DOC}\b",
        rf"\b(main|key) (points|topics|themes|ideas|takeaways)\b",
    )
)


def classify_question(question: str) -> QueryIntent:
    """Classify a question as general (whole-document) or specific.

    Args:
        question: The user's question.

    Returns:
        QueryIntent.GENERAL if any general pattern matches, else SPECIFIC.
    """
    normalized = question.strip().lower()
    if any(pattern.search(normalized) for pattern in GENERAL_PATTERNS):
        return QueryIntent.GENERAL
    return QueryIntent.SPECIFIC
