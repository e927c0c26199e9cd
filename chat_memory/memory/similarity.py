"""
Cosine similarity and ranking for semantic memory search.
"""

import math
from typing import Iterable, List, Sequence

from .types import MemoryEntry, MemorySearchResult


def cosine_similarity(vec1: Sequence[float], vec2: Sequence[float]) -> float:
    """
    Calculate cosine similarity between two vectors.

    Vectors of different lengths (e.g. produced by different embedding
    models) are unrelated and score 0.0, as does any vector with zero norm.

    Returns:
        Similarity between -1 and 1
    """
    if len(vec1) != len(vec2):
        return 0.0

    dot = sum(a * b for a, b in zip(vec1, vec2))
    mag1 = math.sqrt(sum(a * a for a in vec1))
    mag2 = math.sqrt(sum(b * b for b in vec2))

    if mag1 == 0 or mag2 == 0:
        return 0.0

    return dot / (mag1 * mag2)


def rank(
    candidates: Iterable[MemoryEntry],
    query_vector: Sequence[float],
    threshold: float,
    limit: int,
) -> List[MemorySearchResult]:
    """
    Rank entries by similarity to a query vector.

    Entries without an embedding are skipped and results below ``threshold``
    are dropped. Ordering is descending by similarity; ``list.sort`` is
    stable, so equal scores keep their original relative order.

    Args:
        candidates: Entries to score
        query_vector: Embedding of the query text
        threshold: Inclusive lower bound on similarity
        limit: Maximum number of results

    Returns:
        Ranked search results
    """
    if limit <= 0:
        return []

    results = []
    for entry in candidates:
        if not entry.embedding:
            continue
        similarity = cosine_similarity(query_vector, entry.embedding)
        if similarity >= threshold:
            results.append(MemorySearchResult(entry=entry, similarity=similarity))

    results.sort(key=lambda r: r.similarity, reverse=True)
    return results[:limit]
