"""Lexical similarity between notes.

Jaccard overlap of lower-cased whitespace tokens, with short tokens
dropped as a stop-word proxy. Pure and symmetric.
"""

from collections.abc import Iterable
from functools import lru_cache

from mindvault.config import settings


def jaccard_similarity(a: Iterable[str], b: Iterable[str]) -> float:
    """Compute |A ∩ B| / |A ∪ B| for two token collections.

    Returns 0.0 when both are empty.
    """
    set_a = a if isinstance(a, (set, frozenset)) else set(a)
    set_b = b if isinstance(b, (set, frozenset)) else set(b)

    union = len(set_a | set_b)
    if union == 0:
        return 0.0
    return len(set_a & set_b) / union


class SimilarityScorer:
    """Scores relatedness of two texts in [0, 1]."""

    def __init__(self, min_token_length: int | None = None) -> None:
        self.min_token_length = (
            min_token_length
            if min_token_length is not None
            else settings.similarity_min_token_length
        )
        self._tokenize_cached = lru_cache(maxsize=4096)(self._tokenize)

    def _tokenize(self, text: str) -> frozenset[str]:
        return frozenset(
            token
            for token in text.lower().split()
            if len(token) > self.min_token_length
        )

    def tokenize(self, text: str | None) -> frozenset[str]:
        """Split text into the set of qualifying tokens."""
        if not text:
            return frozenset()
        return self._tokenize_cached(text)

    def score(self, text_a: str | None, text_b: str | None) -> float:
        """Jaccard index of the two texts' token sets."""
        return jaccard_similarity(self.tokenize(text_a), self.tokenize(text_b))

    def score_tokens(self, tokens_a: frozenset[str], tokens_b: frozenset[str]) -> float:
        """Score pre-tokenized texts (avoids re-tokenizing inside pair loops)."""
        return jaccard_similarity(tokens_a, tokens_b)
