from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass, field

from ..models.schema import SchemaDefinition, SchemaVariant, get_schema

"""Header reconciliation: raw row-1 header text -> canonical field key.

Tiers (first match wins per header):

1. normalized header (lowercase, trimmed) equals a display header or a key
2. cleaned header (non ``[a-z0-9_]`` chars -> ``_``, runs collapsed, edges
   stripped) equals a key
3. keyword heuristics, in the order published by the schema

Tiers 1-2 are resolved for every header before any heuristic runs, and a key
claimed once is never reassigned: the leftmost header wins. Unmatched headers
are dropped, so their columns are ignored on parse and disappear on the next
write.
"""

__all__ = [
    "HeaderMapping",
    "normalize_header",
    "clean_header",
    "reconcile_headers",
    "detect_variant",
]

logger = logging.getLogger(__name__)

_NON_KEY_CHARS = re.compile(r"[^a-z0-9_]")
_UNDERSCORE_RUNS = re.compile(r"_+")


@dataclass(frozen=True)
class HeaderMapping:
    mapping: dict[str, str] = field(default_factory=dict)  # raw header -> key
    unmatched: list[str] = field(default_factory=list)
    tiers: dict[str, int] = field(default_factory=dict)  # raw header -> tier used

    def key_for(self, header: str) -> str | None:
        return self.mapping.get(header)


def normalize_header(header: object) -> str:
    if header is None:
        return ""
    return str(header).lower().strip()


def clean_header(header: object) -> str:
    cleaned = _NON_KEY_CHARS.sub("_", normalize_header(header))
    return _UNDERSCORE_RUNS.sub("_", cleaned).strip("_")


def _exact_match(normalized: str, cleaned: str, schema: SchemaDefinition) -> tuple[str, int] | None:
    for column in schema.columns:
        if normalized == column.header.lower() or normalized == column.key:
            return column.key, 1
    for column in schema.columns:
        if cleaned == column.key:
            return column.key, 2
    return None


def reconcile_headers(headers: Sequence[object], schema: SchemaDefinition) -> HeaderMapping:
    """Map raw headers onto the canonical keys of ``schema``.

    Blank headers are skipped silently; other unmatched headers are reported in
    ``HeaderMapping.unmatched``.
    """
    mapping: dict[str, str] = {}
    tiers: dict[str, int] = {}
    claimed: set[str] = set()
    pending: list[str] = []

    # mapping is keyed by header text, so a repeated header resolves once (left-most)
    raw_headers = list(dict.fromkeys(str(h) for h in headers if normalize_header(h)))

    for raw in raw_headers:
        hit = _exact_match(normalize_header(raw), clean_header(raw), schema)
        if hit is None or hit[0] in claimed:
            pending.append(raw)
            continue
        key, tier = hit
        mapping[raw] = key
        tiers[raw] = tier
        claimed.add(key)

    unmatched: list[str] = []
    for raw in pending:
        normalized = normalize_header(raw)
        for rule in schema.heuristics:
            if rule.key in claimed:
                continue
            if rule.matches(normalized):
                mapping[raw] = rule.key
                tiers[raw] = 3
                claimed.add(rule.key)
                break
        else:
            unmatched.append(raw)

    if unmatched:
        logger.debug("unmatched headers dropped: %s", unmatched)
    return HeaderMapping(mapping=mapping, unmatched=unmatched, tiers=tiers)


def detect_variant(headers: Sequence[object]) -> SchemaVariant:
    """Pick the variant whose tier 1-2 matches cover more headers (ties -> v2)."""
    scores: dict[SchemaVariant, int] = {}
    for variant in (SchemaVariant.V2, SchemaVariant.LEGACY):
        mapping = reconcile_headers(headers, get_schema(variant))
        scores[variant] = sum(1 for tier in mapping.tiers.values() if tier < 3)
    if scores[SchemaVariant.LEGACY] > scores[SchemaVariant.V2]:
        return SchemaVariant.LEGACY
    return SchemaVariant.V2
