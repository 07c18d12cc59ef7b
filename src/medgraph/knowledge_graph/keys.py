from __future__ import annotations

import re

_WS = re.compile(r"\s+")

NODE_PREFIX = "node"
EDGE_PREFIX = "edge"
SEPARATOR = "_"


def normalize_label(value: str) -> str:
    """Normalize a label or endpoint reference for stable matching.

    Case-insensitive, surrounding whitespace dropped, inner whitespace runs
    collapsed into a single ``_``: ``"Heart  Disease "`` -> ``"heart_disease"``.
    """
    return _WS.sub(SEPARATOR, value.strip()).lower()


def node_id(entity_type: str, label: str) -> str:
    """Stable node key derived from ``(type, label)``."""
    return f"{NODE_PREFIX}{SEPARATOR}{normalize_label(entity_type)}{SEPARATOR}{normalize_label(label)}"


def edge_id(source: str, rel_type: str, target: str) -> str:
    """Stable edge key derived from ``(source, type, target)``."""
    return SEPARATOR.join(
        (EDGE_PREFIX, normalize_label(source), normalize_label(rel_type), normalize_label(target))
    )
