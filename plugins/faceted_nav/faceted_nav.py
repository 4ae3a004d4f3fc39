import logging
from typing import Any, Dict, List, Optional, Sequence

from plugins.faceted_nav.attributes import build_domain, item_meta, normalize_token
from plugins.faceted_nav.combinations import list_combinations, sort_items
from plugins.faceted_nav.paths import normalize_base_url
from plugins.faceted_nav.presentation import build_redirects, build_ui_data

log = logging.getLogger("mkdocs.plugins.faceted_nav")


class FacetedCatalog:
    """
    The faceted index of one catalog, e.g. every page tagged ``product``.

    All results are computed from the item list given at construction and
    cached on first access; build a new catalog to pick up changed items.
    """

    def __init__(self, items: Sequence[Any], base_url: str, name: str = ""):
        self.items = list(items)
        self.base_url = normalize_base_url(base_url)
        self.name = name or self.base_url
        self._domain_data: Optional[Dict[str, Any]] = None
        self._combinations: Optional[List[Dict[str, Any]]] = None
        self._pages: Optional[List[Dict[str, Any]]] = None
        self._redirects: Optional[List[Dict[str, str]]] = None

    @property
    def domain_data(self) -> Dict[str, Any]:
        if self._domain_data is None:
            self._domain_data = build_domain(self.items)
        return self._domain_data

    @property
    def combinations(self) -> List[Dict[str, Any]]:
        if self._combinations is None:
            self._combinations = list_combinations(self.items, self.domain_data)
        return self._combinations

    @property
    def pages(self) -> List[Dict[str, Any]]:
        """Combination nodes with listing-ordered items and their filter UI."""
        if self._pages is None:
            valid_paths = {combo["path"] for combo in self.combinations}
            self._pages = [
                {
                    **combo,
                    "filters": dict(combo["filters"]),
                    "description": [dict(part) for part in combo["description"]],
                    "items": sort_items(combo["items"]),
                    "url": f"{self.base_url}/search/{combo['path']}/",
                    "filterUI": build_ui_data(
                        self.domain_data, combo["filters"], valid_paths, self.base_url
                    ),
                }
                for combo in self.combinations
            ]
        return self._pages

    @property
    def redirects(self) -> List[Dict[str, str]]:
        if self._redirects is None:
            self._redirects = build_redirects(
                self.domain_data["attributes"].keys(), self.combinations, self.base_url
            )
        return self._redirects

    def listing_ui(self) -> Dict[str, Any]:
        """Filter UI for the unfiltered catalog listing."""
        return build_ui_data(self.domain_data, None, self.combinations, self.base_url)

    def to_context(self) -> Dict[str, Any]:
        """Template-friendly view of the whole catalog."""
        return {
            "name": self.name,
            "baseUrl": self.base_url,
            "items": sort_items(self.items),
            "filterData": self.domain_data,
            "pages": self.pages,
            "filterUI": self.listing_ui(),
            "redirects": self.redirects,
        }


def item_categories(item: Any) -> List[str]:
    """Slugified ``categories`` of an item; a single string counts as one."""
    raw = item_meta(item).get("categories")
    if raw is None:
        return []
    if isinstance(raw, (str, int, float)):
        raw = [raw]
    if not isinstance(raw, list):
        return []
    slugs = []
    for category in raw:
        slug = normalize_token(str(category))
        if slug and slug not in slugs:
            slugs.append(slug)
    return slugs


def build_category_catalogs(items: Sequence[Any], url_prefix: str = "/categories") -> Dict[str, FacetedCatalog]:
    """
    One independent catalog per category, at ``{url_prefix}/{category}``.

    Categories are listed in order of first appearance.
    """
    prefix = normalize_base_url(url_prefix)
    grouped: Dict[str, List[Any]] = {}
    for item in items:
        for slug in item_categories(item):
            grouped.setdefault(slug, []).append(item)

    catalogs = {
        slug: FacetedCatalog(members, f"{prefix}/{slug}", name=slug)
        for slug, members in grouped.items()
    }
    log.debug(f"[faceted_nav] built {len(catalogs)} category scopes under {prefix}")
    return catalogs
