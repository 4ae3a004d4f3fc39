"""
Attribute parsing and catalog-wide attribute domains.

Items declare their facets in front matter under ``filter_attributes``,
either as ``"Name: Value"`` strings or as ``{name, value}`` mappings:

    filter_attributes:
      - "Pet Friendly: Yes"
      - name: Type
        value: Cottage

Both forms are parsed into slug tokens (``pet-friendly: yes``) with
``python-slugify``. The same slug function is used by the domain, the
display lookup and the matcher, so tokens always compare equal.
"""

import logging
import re
from collections.abc import Mapping
from typing import Any, Dict, Iterable, List, NamedTuple, Optional

from slugify import slugify

log = logging.getLogger("mkdocs.plugins.faceted_nav")

ATTRIBUTES_KEY = "filter_attributes"


class Attribute(NamedTuple):
    key: str
    value: str
    key_label: str
    value_label: str


SLUG_REPLACEMENTS = [["&", " and "]]

CAMEL_UPPER_RUN = re.compile(r"([A-Z]+)([A-Z][a-z\d]+)")
CAMEL_LOWER_UPPER = re.compile(r"([a-z\d]+)([A-Z]+)")


def decamelize(text: str) -> str:
    """Split camel case into words: ``PetFriendly`` -> ``Pet Friendly``."""
    text = CAMEL_UPPER_RUN.sub(r"\1 \2", text)
    return CAMEL_LOWER_UPPER.sub(r"\1 \2", text)


def normalize_token(text: str) -> str:
    """Slugify a key or value: trimmed, lower-cased, ASCII, hyphen separated.

    ``&`` reads as ``and`` and camel case is split, so ``Rock & Roll``
    gives ``rock-and-roll`` and ``PetFriendly`` gives ``pet-friendly``.
    """
    return slugify(decamelize(text.strip()), replacements=SLUG_REPLACEMENTS)


def item_meta(item: Any) -> Mapping:
    """Return the metadata mapping of an item.

    Items are either plain front matter mappings or objects exposing a
    ``meta`` mapping, such as an MkDocs ``Page``.
    """
    if isinstance(item, Mapping):
        return item
    meta = getattr(item, "meta", None)
    return meta if isinstance(meta, Mapping) else {}


def raw_attributes(item: Any) -> List[Any]:
    declarations = item_meta(item).get(ATTRIBUTES_KEY)
    if not isinstance(declarations, list):
        return []
    return declarations


def parse_declaration(declaration: Any) -> Optional[Attribute]:
    """Parse one raw declaration into an Attribute, or None if unusable."""
    if isinstance(declaration, str):
        name, sep, value = declaration.partition(":")
        if not sep:
            return None
    elif isinstance(declaration, Mapping):
        name = declaration.get("name")
        value = declaration.get("value")
    else:
        return None

    # Scalars (YAML numbers, booleans) are stringified, nested values dropped
    if name is None or value is None:
        return None
    if isinstance(name, (Mapping, list)) or isinstance(value, (Mapping, list)):
        return None
    name, value = str(name).strip(), str(value).strip()

    key, token = normalize_token(name), normalize_token(value)
    if not key or not token:
        return None
    return Attribute(key, token, name, value)


def parse_attributes(declarations: Iterable[Any]) -> List[Attribute]:
    parsed = []
    for declaration in declarations:
        attribute = parse_declaration(declaration)
        if attribute is None:
            log.debug(f"[faceted_nav] skipping malformed attribute {declaration!r}")
            continue
        parsed.append(attribute)
    return parsed


def normalize_attributes(declarations: Iterable[Any]) -> Dict[str, str]:
    """
    Turn one item's raw declarations into a ``{key: value}`` token mapping.

    Malformed entries are skipped. When a key is declared twice the later
    declaration wins.
    """
    return {attr.key: attr.value for attr in parse_attributes(declarations)}


def item_attributes(item: Any) -> Dict[str, str]:
    return normalize_attributes(raw_attributes(item))


def build_domain(items: Iterable[Any]) -> Dict[str, Dict[str, Any]]:
    """
    Aggregate attributes across a catalog.

    Returns ``{"attributes": domain, "displayLookup": lookup}`` where
    ``domain`` maps each key (sorted) to its sorted distinct values and
    ``lookup`` maps every key or value token to the first original text
    seen for it.
    """
    values_by_key: Dict[str, set] = {}
    display_lookup: Dict[str, str] = {}

    for item in items:
        parsed = parse_attributes(raw_attributes(item))
        # Later duplicates of a key replace earlier ones, as in item_attributes
        effective = {attr.key: attr for attr in parsed}
        for attr in parsed:
            display_lookup.setdefault(attr.key, attr.key_label)
            display_lookup.setdefault(attr.value, attr.value_label)
        for attr in effective.values():
            values_by_key.setdefault(attr.key, set()).add(attr.value)

    domain = {key: sorted(values_by_key[key]) for key in sorted(values_by_key)}
    log.debug(
        f"[faceted_nav] domain has {len(domain)} keys, "
        f"{sum(len(v) for v in domain.values())} values"
    )
    return {"attributes": domain, "displayLookup": display_lookup}


def display_label(token: str, display_lookup: Mapping) -> str:
    return display_lookup.get(token, token)
