import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence

from plugins.faceted_nav.attributes import (
    build_domain,
    display_label,
    item_attributes,
    item_meta,
)
from plugins.faceted_nav.paths import encode_path

log = logging.getLogger("mkdocs.plugins.faceted_nav")


def _attributes_match(attrs: Mapping[str, str], filter_set: Mapping[str, str]) -> bool:
    return all(attrs.get(key) == value for key, value in filter_set.items())


def matches(item: Any, filter_set: Optional[Mapping[str, str]]) -> bool:
    """Return True if the item carries every ``key: value`` of the filter set.

    Comparison is exact on slug tokens. An empty filter set matches all
    items, including items without attributes.
    """
    if not filter_set:
        return True
    return _attributes_match(item_attributes(item), filter_set)


def sort_key(item: Any):
    """Listing order: explicit ``order`` first (ascending), then title."""
    meta = item_meta(item)
    order = meta.get("order")
    has_order = isinstance(order, (int, float)) and not isinstance(order, bool)
    title = str(meta.get("title") or getattr(item, "title", "") or "")
    return (0 if has_order else 1, order if has_order else 0, title.lower())


def sort_items(items: Sequence[Any]) -> List[Any]:
    return sorted(items, key=sort_key)


def filter_items(items: Optional[Sequence[Any]], filter_set: Optional[Mapping[str, str]]) -> List[Any]:
    """Items matching ``filter_set``, in listing order."""
    if not items:
        return []
    return sort_items([item for item in items if matches(item, filter_set)])


def describe(filter_set: Mapping[str, str], display_lookup: Mapping[str, str]) -> List[Dict[str, str]]:
    """
    Human-readable labels for a filter set, in canonical key order.

        {"type": "cottage"} -> [{"key": "Type", "value": "Cottage"}]
    """
    return [
        {
            "key": display_label(key, display_lookup),
            "value": display_label(filter_set[key], display_lookup),
        }
        for key in sorted(filter_set)
    ]


def list_combinations(items: Sequence[Any], domain_data: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
    """
    Enumerate every attribute combination that matches at least one item.

    Keys are visited depth-first in sorted order and each branch only adds
    keys after the last one it used, so every key subset is reached once.
    A combination matching nothing is not expanded: adding constraints can
    only shrink the match set.

    Each node is ``{filters, path, count, items, description}``.
    """
    if domain_data is None:
        domain_data = build_domain(items)
    domain = domain_data["attributes"]
    display_lookup = domain_data["displayLookup"]
    keys = list(domain)
    if not keys:
        return []

    # Parse each item once; the matcher then compares plain dicts
    corpus = [(item, item_attributes(item)) for item in items]
    nodes: List[Dict[str, Any]] = []
    seen = set()

    def expand(filter_set: Dict[str, str], candidates: list, start: int) -> None:
        for i in range(start, len(keys)):
            key = keys[i]
            for value in domain[key]:
                extended = {**filter_set, key: value}
                path = encode_path(extended)
                if path in seen:
                    continue
                # Supersets only ever match a subset of the parent's items
                matched = [
                    (item, attrs)
                    for item, attrs in candidates
                    if attrs.get(key) == value
                ]
                if not matched:
                    continue
                seen.add(path)
                nodes.append(
                    {
                        "filters": extended,
                        "path": path,
                        "count": len(matched),
                        "items": [item for item, _ in matched],
                        "description": describe(extended, display_lookup),
                    }
                )
                expand(extended, matched, i + 1)

    expand({}, corpus, 0)
    log.debug(f"[faceted_nav] {len(nodes)} combinations over {len(keys)} keys")
    return nodes
