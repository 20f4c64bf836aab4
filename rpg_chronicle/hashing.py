"""Upstream fingerprints.

A fingerprint identifies the exact set of upstream texts a summary was built
from. Inputs are sorted by (entity_id, version) and passed through a canonical
encoding before hashing, so iteration order and incidental formatting never
register as a change.
"""

from __future__ import annotations

import hashlib
import json
from collections.abc import Iterable

from rpg_chronicle.models import UpstreamItem

# Canonical encodings always start with "[", so no real set can hash to this.
EMPTY_FINGERPRINT = hashlib.sha256(b"empty").hexdigest()


def canonical_encoding(items: Iterable[UpstreamItem]) -> bytes:
    """Stable byte encoding of an upstream set: `[[entity_id, text], ...]`."""
    ordered = sorted(items, key=lambda item: (item.entity_id, item.version))
    payload = [[item.entity_id, item.text] for item in ordered]
    return json.dumps(payload, ensure_ascii=False, separators=(",", ":")).encode("utf-8")


def fingerprint(items: Iterable[UpstreamItem]) -> str:
    items = list(items)
    if not items:
        return EMPTY_FINGERPRINT
    return hashlib.sha256(canonical_encoding(items)).hexdigest()
