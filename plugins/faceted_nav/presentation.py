import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional

from plugins.faceted_nav.attributes import display_label
from plugins.faceted_nav.paths import encode_path, listing_url, search_url

log = logging.getLogger("mkdocs.plugins.faceted_nav")


def _valid_path_set(valid_paths: Iterable[Any]) -> set:
    """Accept plain path strings or page/node dicts carrying a ``path``."""
    paths = set()
    for entry in valid_paths or []:
        if isinstance(entry, Mapping):
            paths.add(entry.get("path", ""))
        else:
            paths.add(entry)
    return paths


def build_ui_data(
    domain_data: Dict[str, Any],
    current_filters: Optional[Mapping[str, str]],
    valid_paths: Iterable[Any],
    base_url: str,
) -> Dict[str, Any]:
    """
    Build the navigation data a template needs to render facet filters.

    Args:
        domain_data: ``{"attributes": ..., "displayLookup": ...}`` from build_domain.
        current_filters: The filter set of the page being rendered, or None.
        valid_paths: Paths that have at least one matching item.
        base_url: Catalog root URL, e.g. ``/products``.

    Returns:
        ``{"hasFilters": False}`` for an empty domain, otherwise a dict with
        ``hasFilters``, ``hasActiveFilters``, ``activeFilters``,
        ``clearAllUrl`` and ``groups``. Options that would lead to an empty
        listing are left out, as are groups left without options.
    """
    attributes = domain_data.get("attributes") or {}
    display = domain_data.get("displayLookup") or {}

    if not attributes:
        return {"hasFilters": False}

    valid = _valid_path_set(valid_paths)
    filters = dict(current_filters or {})

    active_filters = []
    for key, value in filters.items():
        remaining = {k: v for k, v in filters.items() if k != key}
        active_filters.append(
            {
                "key": display_label(key, display),
                "value": display_label(value, display),
                "removeUrl": listing_url(base_url, remaining),
            }
        )

    groups = []
    for name, values in attributes.items():
        current_value = filters.get(name)
        options = []
        for value in values:
            is_active = current_value == value
            path = encode_path({**filters, name: value})
            if not is_active and path not in valid:
                continue
            options.append(
                {
                    "value": display_label(value, display),
                    "url": search_url(base_url, path),
                    "active": is_active,
                }
            )
        if not options:
            continue
        groups.append(
            {"name": name, "label": display_label(name, display), "options": options}
        )

    return {
        "hasFilters": len(groups) > 0,
        "hasActiveFilters": len(filters) > 0,
        "activeFilters": active_filters,
        "clearAllUrl": listing_url(base_url),
        "groups": groups,
    }


def build_redirects(
    domain_keys: Iterable[str],
    combinations: Iterable[Mapping[str, Any]],
    base_url: str,
) -> List[Dict[str, str]]:
    """
    Redirect dangling facet paths to the nearest real listing.

    A URL ending in a key with no value, such as
    ``/products/search/size/small/colour/``, is sent to the listing it
    extends (``/products/search/size/small/#content``). Bare keys directly
    under ``/search/`` go to the unfiltered search listing.
    """
    keys = list(domain_keys)
    if not keys:
        return []

    search_root = f"{base_url}/search"
    redirects: Dict[str, str] = {}

    for key in keys:
        redirects.setdefault(f"{search_root}/{key}/", search_url(base_url))

    for combo in combinations:
        filters = combo["filters"]
        path = combo["path"]
        for key in keys:
            if key in filters:
                continue
            redirects.setdefault(f"{search_root}/{path}/{key}/", search_url(base_url, path))

    log.debug(f"[faceted_nav] {len(redirects)} redirects under {search_root}")
    return [{"from": source, "to": target} for source, target in redirects.items()]
