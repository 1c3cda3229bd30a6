"""Inline cart markers in the ordering agent's replies.

    [ADD_TO_CART:<product>:<qty>:<additions>:<removals>:<notes>]
    [CONFIRM_ORDER]

Additions and removals are comma separated and may be empty. Notes run to
the closing bracket and may contain colons.
"""

import dataclasses
import re

from src.utils.logger import get_logger

logger = get_logger(__name__)

ADD_TO_CART_RE = re.compile(
    r"\[ADD_TO_CART:([^:\]]*?):(-?\d+):([^:\]]*?):([^:\]]*?):([^\]]*)\]",
    re.IGNORECASE,
)
CONFIRM_ORDER_RE = re.compile(r"\[CONFIRM_ORDER\]", re.IGNORECASE)
# A closed cart marker that did not parse; an unclosed one loses only its opener
MALFORMED_CART_MARKER_RE = re.compile(r"\[ADD_TO_CART\b[^\[\]\n]*\]", re.IGNORECASE)
UNCLOSED_CART_OPENER_RE = re.compile(r"\[ADD_TO_CART\b:?", re.IGNORECASE)
SPEAKER_PREFIX_RE = re.compile(r"^\s*Mar[ií]a:\s*", re.IGNORECASE)


@dataclasses.dataclass(frozen=True)
class CartAction:
    product_name: str
    quantity: int
    additions: tuple[str, ...] | None = None
    removals: tuple[str, ...] | None = None
    notes: str | None = None


@dataclasses.dataclass(frozen=True)
class ParsedResponse:
    actions: list[CartAction]
    confirm_order: bool
    display_text: str


def _split_list(field: str) -> tuple[str, ...] | None:
    items = tuple(part.strip() for part in field.split(",") if part.strip())
    return items or None


def parse_actions(text: str) -> list[CartAction]:
    """Well-formed ADD_TO_CART markers, in order of appearance."""
    actions = []
    for match in ADD_TO_CART_RE.finditer(text):
        name, qty, additions, removals, notes = match.groups()
        name = name.strip()
        quantity = int(qty)
        if not name:
            logger.warning("Dropping cart marker without product name: %s", match.group(0))
            continue
        if quantity <= 0:
            logger.warning("Dropping cart marker with quantity %d: %s", quantity, match.group(0))
            continue
        actions.append(
            CartAction(
                product_name=name,
                quantity=quantity,
                additions=_split_list(additions),
                removals=_split_list(removals),
                notes=notes.strip() or None,
            )
        )
    return actions


def should_confirm(text: str) -> bool:
    return CONFIRM_ORDER_RE.search(text) is not None


def strip_markers(text: str) -> str:
    """Removes every marker span and a leading speaker tag."""
    cleaned = ADD_TO_CART_RE.sub("", text)
    leftovers = MALFORMED_CART_MARKER_RE.findall(cleaned)
    if leftovers:
        logger.warning("Malformed cart markers ignored: %s", leftovers)
        cleaned = MALFORMED_CART_MARKER_RE.sub("", cleaned)
    if UNCLOSED_CART_OPENER_RE.search(cleaned):
        logger.warning("Unclosed cart marker ignored: %r", cleaned)
        cleaned = UNCLOSED_CART_OPENER_RE.sub("", cleaned)
    cleaned = CONFIRM_ORDER_RE.sub("", cleaned).strip()
    return SPEAKER_PREFIX_RE.sub("", cleaned).strip()


def parse_response(text: str) -> ParsedResponse:
    return ParsedResponse(
        actions=parse_actions(text),
        confirm_order=should_confirm(text),
        display_text=strip_markers(text),
    )
