"""Fuzzy name resolution against the live catalog.

Scores are rule based; the first rule that applies wins:

    exact match ......................... 100
    candidate contains the query ........  80
    query contains the candidate ........  70
    every query token found in candidate .  60
    a query token (3+ chars) partly found   40
    otherwise ...........................   0
"""

import dataclasses
import re
import unicodedata
from collections.abc import Iterable, Sequence
from typing import Literal

Source = Literal["product", "ingredient"]

EXACT = 100
CANDIDATE_CONTAINS_QUERY = 80
QUERY_CONTAINS_CANDIDATE = 70
ALL_TOKENS = 60
PARTIAL_TOKEN = 40
NO_MATCH = 0

_MIN_PARTIAL_TOKEN = 3
_WHITESPACE = re.compile(r"\s+")


@dataclasses.dataclass(frozen=True)
class CatalogItem:
    """Something a customer can put in the cart: a product or a sellable ingredient."""

    id: int
    name: str
    price: float
    source: Source
    active: bool = True
    category: str | None = None
    stock: float | None = None

    @property
    def is_product(self) -> bool:
        return self.source == "product"

    def to_dict(self) -> dict:
        return dataclasses.asdict(self)


@dataclasses.dataclass(frozen=True)
class Match:
    item: CatalogItem
    score: int


def normalize(text: str) -> str:
    """Lowercase, no accents, no hyphens or periods, single spaces."""
    decomposed = unicodedata.normalize("NFD", text.lower())
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    stripped = stripped.replace("-", "").replace(".", "")
    return _WHITESPACE.sub(" ", stripped).strip()


def _tokens_overlap(a: str, b: str) -> bool:
    return a in b or b in a


def _partial(token: str, candidate_token: str) -> bool:
    return len(token) >= _MIN_PARTIAL_TOKEN and _tokens_overlap(token, candidate_token)


def match_score(query: str, candidate: str) -> int:
    q = normalize(query)
    c = normalize(candidate)
    if not q or not c:
        return NO_MATCH
    if q == c:
        return EXACT
    if q in c:
        return CANDIDATE_CONTAINS_QUERY
    if c in q:
        return QUERY_CONTAINS_CANDIDATE

    q_tokens = q.split(" ")
    c_tokens = c.split(" ")
    if all(any(_tokens_overlap(t, ct) for ct in c_tokens) for t in q_tokens):
        return ALL_TOKENS
    if any(_partial(t, ct) for t in q_tokens for ct in c_tokens):
        return PARTIAL_TOKEN
    return NO_MATCH


def rank(query: str, items: Iterable[CatalogItem]) -> list[Match]:
    """All candidates scored and ordered products first, then by score.

    The sort is stable, so catalog order breaks the remaining ties.
    """
    scored = [Match(item, match_score(query, item.name)) for item in items]
    return sorted(scored, key=lambda m: (not m.item.is_product, -m.score))


def resolve(query: str, items: Iterable[CatalogItem]) -> Match | None:
    """Best match for ``query``, or None when nothing scores above zero."""
    ranked = [m for m in rank(query, items) if m.score > NO_MATCH]
    return ranked[0] if ranked else None


def find_by_name(rows: Sequence[dict], query: str, key: str = "name") -> dict | None:
    """First row whose name contains the query or is contained in it."""
    q = normalize(query)
    if not q:
        return None
    for row in rows:
        name = normalize(str(row.get(key) or ""))
        if name and (q in name or name in q):
            return row
    return None
