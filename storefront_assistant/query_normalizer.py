"""
Query normalization for the semantic search.

Shoppers write "chamarra roja xxl"; the catalog says "Chaqueta ... Red ... 2XL".
The normalizer lowercases the query and appends the related vocabulary so the
query embedding lands closer to the catalog text. The result only feeds an
embedding, so repeated tokens are harmless and are not removed.
"""
import re
from typing import Dict, List, Optional

from .concepts import COLOR_CONCEPTS, PRODUCT_CONCEPTS, SIZE_TOKENS

_VOWEL_END = re.compile(r"[aeiouáéíóú]$", re.IGNORECASE)


def includes_word(padded_query: str, word: str) -> bool:
    """Whole-word containment on a space padded, lowercased query."""
    return f" {word.lower()} " in padded_query


def color_variants(base: str) -> List[str]:
    """
    Gender and number forms of a Spanish color adjective.

    Example:
        >>> color_variants("rojo")
        ['rojo', 'roja', 'rojos', 'rojas']
        >>> color_variants("gris")
        ['gris', 'grises']
    """
    variants = [base]
    if base.endswith("o"):
        variants.append(base[:-1] + "a")
        variants.append(base + "s")
        variants.append(base[:-1] + "as")
    elif base.endswith("z"):
        variants.append(base[:-1] + "ces")
    elif _VOWEL_END.search(base):
        variants.append(base + "s")
    else:
        variants.append(base + "es")
    return variants


def normalize_sizes(text: str, size_tokens: Optional[Dict[str, str]] = None) -> str:
    """Rewrite shopper size spellings (xxl, xxxl...) to catalog values (2xl, 3xl...)."""
    size_tokens = SIZE_TOKENS if size_tokens is None else size_tokens
    for token, replacement in sorted(size_tokens.items(), key=lambda x: -len(x[0])):
        text = re.sub(rf"\b{re.escape(token)}\b", replacement, text, flags=re.IGNORECASE)
    return text


class QueryNormalizer:
    """Expands queries with product, color and size vocabulary tables."""

    def __init__(
        self,
        product_concepts: Optional[Dict[str, List[str]]] = None,
        color_concepts: Optional[Dict[str, List[str]]] = None,
        size_tokens: Optional[Dict[str, str]] = None,
    ):
        self.product_concepts = PRODUCT_CONCEPTS if product_concepts is None else product_concepts
        self.color_concepts = COLOR_CONCEPTS if color_concepts is None else color_concepts
        self.size_tokens = SIZE_TOKENS if size_tokens is None else size_tokens
        self._color_forms = {
            canonical: color_variants(canonical) for canonical in self.color_concepts
        }

    def normalize(self, query: str) -> str:
        q = f" {normalize_sizes(query.lower(), self.size_tokens)} "

        # Product concepts work in both directions
        for canonical, matches in self.product_concepts.items():
            if any(includes_word(q, m) for m in matches):
                q += f"{canonical} "
            if includes_word(q, canonical):
                q += " ".join(matches) + " "

        for canonical, matches in self.color_concepts.items():
            if any(includes_word(q, v) for v in self._color_forms[canonical]):
                q += " ".join(matches) + " "

        return q


_default_normalizer = QueryNormalizer()


def normalize_query(query: str) -> str:
    """Normalize with the built-in vocabulary tables."""
    return _default_normalizer.normalize(query)
