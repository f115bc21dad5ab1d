"""Static word tables used by the query normalizer.

Both tables ship with defaults and can be replaced per deployment by
pointing ``TYPO_CORRECTIONS_PATH`` / ``SYNONYMS_PATH`` at a JSON file.
"""

import json
import logging
from pathlib import Path
from types import MappingProxyType
from typing import Mapping

logger = logging.getLogger(__name__)

DEFAULT_TYPO_CORRECTIONS: Mapping[str, str] = MappingProxyType(
    {
        # garments
        "tshirt": "t-shirt",
        "tee shirt": "t-shirt",
        "jens": "jeans",
        "shose": "shoes",
        "sheos": "shoes",
        "snekers": "sneakers",
        "trowsers": "trousers",
        "jaket": "jacket",
        "sweeter": "sweater",
        "hoddie": "hoodie",
        "necklase": "necklace",
        "braclet": "bracelet",
        # colors
        "blak": "black",
        "whte": "white",
        "gery": "grey",
        "purpel": "purple",
        "yelow": "yellow",
        "oragne": "orange",
        # brands
        "addidas": "adidas",
        "nikee": "nike",
        "samsnug": "samsung",
        "iphon": "iphone",
    }
)

DEFAULT_SYNONYMS: Mapping[str, tuple[str, ...]] = MappingProxyType(
    {
        "shirt": ("top", "blouse", "tee"),
        "pants": ("trousers", "jeans"),
        "shoes": ("footwear", "sneakers"),
    }
)


def _read_json_object(path: Path) -> dict:
    raw = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(raw, dict):
        raise ValueError(f"Word table {path} must contain a JSON object")
    return raw


def load_typo_corrections(path: Path | None = None) -> dict[str, str]:
    """Load the typo table, lower-casing keys and values.

    Args:
        path: Optional JSON override; the built-in table is used when None

    Returns:
        Ordered mapping of misspelling to canonical form
    """
    source = DEFAULT_TYPO_CORRECTIONS if path is None else _read_json_object(path)
    table = {str(bad).lower(): str(good).lower() for bad, good in source.items() if bad}
    if path is not None:
        logger.info(f"Loaded {len(table)} typo corrections from {path}")
    return table


def load_synonyms(path: Path | None = None) -> dict[str, tuple[str, ...]]:
    """Load the synonym table (declared, not applied to queries yet)."""
    source = DEFAULT_SYNONYMS if path is None else _read_json_object(path)
    table: dict[str, tuple[str, ...]] = {}
    for word, alternatives in source.items():
        if isinstance(alternatives, str):
            alternatives = [alternatives]
        table[str(word).lower()] = tuple(str(alt).lower() for alt in alternatives)
    if path is not None:
        logger.info(f"Loaded {len(table)} synonym entries from {path}")
    return table
