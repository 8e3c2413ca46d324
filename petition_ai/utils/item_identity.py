"""Deterministic identity tokens for extracted evidence items.

A token is ``<category prefix>_<first 8 hex chars of sha256>`` over the
item's key fields joined with ``|``. Identical key fields always produce
the same token, which is what the assembler deduplicates on.
"""

import hashlib
from typing import Any, Dict, Iterable, Mapping, MutableMapping

CATEGORY_PREFIXES: Dict[str, str] = {
    "publications": "pub",
    "awards": "awd",
    "patents": "pat",
    "memberships": "mem",
    "media_coverage": "med",
    "judging_activities": "jdg",
    "speaking_engagements": "spk",
    "grants": "grt",
    "leadership_roles": "ldr",
    "compensation": "cmp",
    "exhibitions": "exh",
    "commercial_success": "com",
    "original_contributions": "org",
}

KEY_FIELDS: Dict[str, list[str]] = {
    "publications": ["title", "venue", "year"],
    "awards": ["name", "issuer", "year"],
    "patents": ["title", "number"],
    "memberships": ["organization", "role"],
    "media_coverage": ["outlet", "title"],
    "judging_activities": ["type", "organization", "venue"],
    "speaking_engagements": ["event", "year"],
    "grants": ["title", "funder"],
    "leadership_roles": ["title", "organization"],
    "compensation": ["amount", "context"],
    "exhibitions": ["venue", "title"],
    "commercial_success": ["description"],
    "original_contributions": ["description"],
}

EVIDENCE_CATEGORIES: tuple[str, ...] = tuple(CATEGORY_PREFIXES)

DEFAULT_PREFIX = "itm"
HASH_LENGTH = 8


def _field_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        # 2021.0 and 2021 describe the same year
        return str(int(value))
    return str(value)


def generate_item_id(category: str, item: Mapping[str, Any]) -> str:
    """Return the identity token for ``item`` in ``category``.

    Unknown categories get the ``itm`` prefix and hash no key fields.
    """
    prefix = CATEGORY_PREFIXES.get(category, DEFAULT_PREFIX)
    fields = KEY_FIELDS.get(category, [])
    key = "|".join(_field_text(item.get(f)) for f in fields)
    digest = hashlib.sha256(key.encode("utf-8")).hexdigest()[:HASH_LENGTH]
    return f"{prefix}_{digest}"


def assign_missing_ids(category: str, items: Iterable[MutableMapping[str, Any]]) -> bool:
    """Give every item without an ``id`` its token, in place.

    Returns:
        True if at least one item was changed
    """
    changed = False
    for item in items:
        if not item.get("id"):
            item["id"] = generate_item_id(category, item)
            changed = True
    return changed


def ensure_item_ids(extraction: MutableMapping[str, Any]) -> bool:
    """Assign missing ids across every evidence collection of an extraction dict."""
    changed = False
    for category in EVIDENCE_CATEGORIES:
        items = extraction.get(category) or []
        if assign_missing_ids(category, items):
            changed = True
    return changed
