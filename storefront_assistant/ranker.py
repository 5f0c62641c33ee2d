"""
Vector ranking with lexical adjustments, and candidate merging.

Scores are dot products of pre-normalized embeddings (cosine similarity) plus
additive bonuses:

- keyword boost when a query word (> 3 chars) appears inside the product title
- version boost/penalty when the query names a product line version (v2, ii, iii)

Ties keep index order (stable sort).
"""
import re
from dataclasses import dataclass
from typing import Dict, List, Sequence

import numpy as np

from .logger import get_logger
from .models import FaqRecord, ProductRecord, Scored

logger = get_logger("ranker")


@dataclass(frozen=True)
class RankingPolicy:
    keyword_boost: float = 0.3
    keyword_min_length: int = 4
    version_match_boost: float = 0.4
    version_mismatch_penalty: float = -0.3
    version_pattern: str = r"\b(v\d+|ii|iii)\b"


DEFAULT_POLICY = RankingPolicy()


def cosine_scores(query_vector: Sequence[float], vectors: List[Sequence[float]]) -> np.ndarray:
    if not vectors:
        return np.zeros(0)
    matrix = np.asarray(vectors, dtype=np.float64)
    return matrix @ np.asarray(query_vector, dtype=np.float64)


def version_tokens(query: str, policy: RankingPolicy = DEFAULT_POLICY) -> List[str]:
    return [m.group(1) for m in re.finditer(policy.version_pattern, query.lower())]


def lexical_adjustment(query: str, title: str, policy: RankingPolicy = DEFAULT_POLICY) -> float:
    q = query.lower()
    t = title.lower()
    bonus = 0.0

    keywords = [w for w in q.split() if len(w) >= policy.keyword_min_length]
    if any(w in t for w in keywords):
        bonus += policy.keyword_boost

    versions = version_tokens(q, policy)
    if versions:
        if any(re.search(rf"\b{re.escape(v)}\b", t) for v in versions):
            bonus += policy.version_match_boost
        else:
            bonus += policy.version_mismatch_penalty
    return bonus


def _with_embeddings(items: list, dimension: int) -> list:
    usable = [i for i in items if i.embedding is not None and len(i.embedding) == dimension]
    if len(usable) < len(items):
        logger.warning(f"⚠️ {len(items) - len(usable)} items skipped (missing or mismatched embedding)")
    return usable


def rank_products(
    query_vector: Sequence[float],
    query: str,
    products: List[ProductRecord],
    top_k: int = 8,
    policy: RankingPolicy = DEFAULT_POLICY,
) -> List[Scored]:
    usable = _with_embeddings(products, len(query_vector))
    base = cosine_scores(query_vector, [p.embedding for p in usable])
    scored = [
        Scored(item=p, score=float(s) + lexical_adjustment(query, p.title, policy))
        for p, s in zip(usable, base)
    ]
    scored.sort(key=lambda x: x.score, reverse=True)
    return scored[:top_k]


def rank_faqs(query_vector: Sequence[float], faqs: List[FaqRecord], top_k: int = 2) -> List[Scored]:
    usable = _with_embeddings(faqs, len(query_vector))
    base = cosine_scores(query_vector, [f.embedding for f in usable])
    scored = [Scored(item=f, score=float(s)) for f, s in zip(usable, base)]
    scored.sort(key=lambda x: x.score, reverse=True)
    return scored[:top_k]


def merge_candidates(
    visible: List[ProductRecord],
    ranked: List[ProductRecord],
    cap: int = 10,
) -> List[ProductRecord]:
    """
    Items on screen go first and are never evicted; search hits fill the
    remaining room up to `cap`.
    """
    merged: Dict[str, ProductRecord] = {}
    for p in visible:
        merged.setdefault(str(p.id), p)
    for p in ranked:
        if len(merged) >= cap:
            break
        merged.setdefault(str(p.id), p)
    return list(merged.values())
