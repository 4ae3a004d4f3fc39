import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from mkdocs.config import config_options as c
from mkdocs.exceptions import PluginError
from mkdocs.plugins import BasePlugin

from plugins.faceted_nav.faceted_nav import FacetedCatalog, build_category_catalogs
from plugins.faceted_nav.paths import normalize_base_url

# Configure Logger
log = logging.getLogger("mkdocs.plugins.faceted_nav")

FM_PATTERN = re.compile(r"^---\s*\n(.*?)\n---\s*\n?", re.DOTALL)


class FacetedNavPlugin(BasePlugin):
    """
    Builds static faceted navigation for tagged pages.

    Example mkdocs.yml:

        plugins:
          - faceted_nav:
              catalogs:
                products:
                  tag: product
                  base_url: /products
                  categories: true

    Every documentation page whose front matter ``tags`` contains a
    catalog's tag becomes an item of that catalog. The catalogs are exposed
    to templates as ``faceted_nav``, and redirects for incomplete facet
    paths are written to ``site_dir/<redirects_file>`` after the build.
    """

    config_scheme = (
        ("catalogs", c.Type(dict, default={})),
        ("categories_url", c.Type(str, default="/categories")),
        ("redirects_file", c.Type(str, default="_redirects")),
        ("write_redirects", c.Type(bool, default=True)),
    )

    def __init__(self):
        super().__init__()
        self.catalog_settings: Dict[str, Dict[str, Any]] = {}
        self.catalogs: Dict[str, FacetedCatalog] = {}
        self.category_catalogs: Dict[str, Dict[str, FacetedCatalog]] = {}
        self._context = None

    # ------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------
    def on_config(self, config, **kwargs):
        self.catalog_settings = self.load_catalog_settings(
            self.config["catalogs"], self.config["categories_url"]
        )
        return config

    @staticmethod
    def load_catalog_settings(
        raw: Dict[str, Any], categories_url: str = "/categories"
    ) -> Dict[str, Dict[str, Any]]:
        """
        Validate catalog options.

        Category scopes of a catalog live under
        ``{categories_url}{base_url}/<category>`` unless the catalog sets its
        own ``categories_url``. Two catalogs may not share a base URL or a
        category prefix, since their pages and redirects would collide.
        """
        categories_root = normalize_base_url(categories_url)
        settings = {}
        roots: Dict[str, str] = {}
        for name, options in (raw or {}).items():
            options = options or {}
            if not isinstance(options, dict):
                raise PluginError(f"[faceted_nav] catalog '{name}' must be a mapping")
            tag = options.get("tag")
            if not tag:
                raise PluginError(f"[faceted_nav] catalog '{name}' is missing 'tag'")
            base_url = normalize_base_url(options.get("base_url") or name)
            entry = {
                "tag": str(tag),
                "base_url": base_url,
                "categories": bool(options.get("categories", False)),
                "categories_url": normalize_base_url(
                    options.get("categories_url") or f"{categories_root}{base_url}"
                ),
            }

            claimed = [base_url]
            if entry["categories"]:
                claimed.append(entry["categories_url"])
            for url in claimed:
                if url in roots:
                    raise PluginError(
                        f"[faceted_nav] catalogs '{roots[url]}' and '{name}' "
                        f"both publish under '{url or '/'}'"
                    )
                roots[url] = name
            settings[name] = entry
        return settings

    # ------------------------------------------------------------
    # Collect items and build catalogs
    # ------------------------------------------------------------
    def on_files(self, files, config):
        pages = []
        for file in files.documentation_pages():
            text = self.read_source(file)
            if text is None:
                continue
            front_matter = self.parse_front_matter(text, file.src_path)
            pages.append(
                {
                    **front_matter,
                    "title": front_matter.get("title") or Path(file.src_path).stem,
                    "url": file.url,
                    "src_path": file.src_path,
                }
            )
        self.build_catalogs(pages)
        return files

    def build_catalogs(self, pages: List[Dict[str, Any]]) -> None:
        self.catalogs = {}
        self.category_catalogs = {}
        self._context = None
        for name, settings in self.catalog_settings.items():
            items = [page for page in pages if settings["tag"] in self.page_tags(page)]
            catalog = FacetedCatalog(items, settings["base_url"], name=name)
            self.catalogs[name] = catalog
            log.info(
                f"[faceted_nav] catalog '{name}': {len(items)} items, "
                f"{len(catalog.combinations)} combinations"
            )
            if settings["categories"]:
                self.category_catalogs[name] = build_category_catalogs(
                    items, settings["categories_url"]
                )

    @staticmethod
    def read_source(file) -> Optional[str]:
        """
        Return the Markdown source of a page.

        Pages generated by other plugins have no file on disk
        (``abs_src_path`` is None); their in-memory content is used, and
        pages without any content are skipped.
        """
        if file.abs_src_path is None:
            try:
                return file.content_string
            except Exception as e:
                log.debug(f"[faceted_nav] skipping generated page {file.src_path}: {e}")
                return None
        path = Path(file.abs_src_path)
        try:
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            log.warning(f"[faceted_nav] could not read {path}: {e}")
            return None

    @staticmethod
    def parse_front_matter(text: str, src_path: str = "") -> Dict[str, Any]:
        m = FM_PATTERN.match(text or "")
        if not m:
            return {}
        try:
            fm = yaml.safe_load(m.group(1)) or {}
        except yaml.YAMLError as e:
            log.warning(f"[faceted_nav] invalid front matter in {src_path}: {e}")
            return {}
        return fm if isinstance(fm, dict) else {}

    @staticmethod
    def page_tags(page: Dict[str, Any]) -> List[str]:
        tags = page.get("tags")
        if isinstance(tags, str):
            return [t.strip() for t in tags.split(",") if t.strip()]
        if isinstance(tags, list):
            return [str(t).strip() for t in tags]
        return []

    # ------------------------------------------------------------
    # Template context
    # ------------------------------------------------------------
    def template_context(self) -> Dict[str, Any]:
        if self._context is None:
            self._context = {}
            for name, catalog in self.catalogs.items():
                entry = catalog.to_context()
                entry["categories"] = {
                    slug: scoped.to_context()
                    for slug, scoped in self.category_catalogs.get(name, {}).items()
                }
                self._context[name] = entry
        return self._context

    def on_page_context(self, context, page, config, nav):
        context["faceted_nav"] = self.template_context()
        catalog_name = page.meta.get("facet_catalog")
        if catalog_name:
            catalog = self.catalogs.get(catalog_name)
            if catalog is None:
                log.warning(
                    f"[faceted_nav] {page.file.src_path} refers to unknown catalog '{catalog_name}'"
                )
            else:
                context["filter_ui"] = catalog.listing_ui()
        return context

    # ------------------------------------------------------------
    # Redirects
    # ------------------------------------------------------------
    def all_redirects(self) -> List[Dict[str, str]]:
        redirects = []
        for name, catalog in self.catalogs.items():
            redirects.extend(catalog.redirects)
            for scoped in self.category_catalogs.get(name, {}).values():
                redirects.extend(scoped.redirects)
        return redirects

    def on_post_build(self, config):
        if not self.config["write_redirects"]:
            return
        redirects = self.all_redirects()
        if not redirects:
            log.debug("[faceted_nav] no redirects to write")
            return

        target = Path(config["site_dir"]) / self.config["redirects_file"]
        lines = [f"{r['from']} {r['to']} 301" for r in redirects]
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text("\n".join(lines) + "\n", encoding="utf-8")
            log.info(f"[faceted_nav] wrote {len(lines)} redirects to {target}")
        except OSError as e:
            log.error(f"[faceted_nav] failed to write redirects to {target}: {e}")
