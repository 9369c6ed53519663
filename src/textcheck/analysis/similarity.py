"""Pluggable similarity scoring.

The pipeline asks a ``SimilarityScorer`` for a score in [0, 100] between the
text being analyzed and the text of each previously analyzed file.

NOTE: the only scorer shipped here, ``RandomPlaceholderScorer``, is a stub.
It ignores both texts and draws a uniform random integer. Its results are
non-deterministic and carry no information about content similarity. A real
algorithm (e.g. shingling + Jaccard) can be dropped in by implementing the
protocol; the pipeline does not need to change.
"""

from __future__ import annotations

import random
from typing import Protocol

EXACT_NAME_SCORE = 100.0


class SimilarityScorer(Protocol):
    """Protocol for text similarity strategies.

    A scorer may set ``uses_content = False`` to declare it never reads the
    texts; the pipeline then skips fetching prior file contents.
    """

    def score(self, text_a: str, text_b: str) -> float:
        """Return a similarity score between 0 and 100 (inclusive)."""
        ...


class RandomPlaceholderScorer:
    """Placeholder scorer: uniform random integer in ``[0, max_score]``.

    Args:
        max_score: Inclusive upper bound of the draw.
        rng: Optional random source, for reproducible runs.
    """

    uses_content = False

    def __init__(self, max_score: int = 60, rng: random.Random | None = None) -> None:
        if not 0 <= max_score <= 100:
            raise ValueError(f"max_score must be within [0, 100], got {max_score}")
        self._max_score = max_score
        self._rng = rng or random.Random()

    def score(self, text_a: str, text_b: str) -> float:
        return float(self._rng.randint(0, self._max_score))


def names_match(name_a: str, name_b: str) -> bool:
    """Case-insensitive file name equality."""
    return name_a.casefold() == name_b.casefold()
