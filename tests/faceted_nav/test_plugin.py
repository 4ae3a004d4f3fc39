import logging
from types import SimpleNamespace

import pytest
from mkdocs.exceptions import PluginError
from mkdocs.structure.files import File, Files

from plugins.faceted_nav.plugin import FacetedNavPlugin

PAGES = {
    "index.md": "# Home\n",
    "rose.md": (
        "---\n"
        "title: Rose Cottage\n"
        "tags: [property]\n"
        "categories: [Coast]\n"
        "filter_attributes:\n"
        "  - name: Type\n"
        "    value: Cottage\n"
        "  - name: Pet Friendly\n"
        "    value: 'Yes'\n"
        "---\n"
        "Body\n"
    ),
    "sea.md": (
        "---\n"
        "title: Sea View\n"
        "tags: property\n"
        "filter_attributes:\n"
        "  - 'Type: Apartment'\n"
        "---\n"
    ),
    "broken.md": "---\ntitle: [unclosed\ntags: property\n---\n",
}


@pytest.fixture
def docs(tmp_path):
    docs_dir = tmp_path / "docs"
    docs_dir.mkdir()
    for name, text in PAGES.items():
        (docs_dir / name).write_text(text, encoding="utf-8")
    site_dir = tmp_path / "site"
    files = Files(
        [File(name, str(docs_dir), str(site_dir), use_directory_urls=True) for name in PAGES]
    )
    return SimpleNamespace(docs_dir=docs_dir, site_dir=site_dir, files=files)


def make_plugin(**options):
    plugin = FacetedNavPlugin()
    options.setdefault(
        "catalogs", {"properties": {"tag": "property", "categories": True}}
    )
    errors, warnings = plugin.load_config(options)
    assert errors == []
    plugin.on_config({})
    return plugin


class TestFacetedNavPlugin:
    def test_catalog_settings(self):
        plugin = make_plugin(catalogs={"products": {"tag": "product", "base_url": "shop/"}})
        assert plugin.catalog_settings == {
            "products": {
                "tag": "product",
                "base_url": "/shop",
                "categories": False,
                "categories_url": "/categories/shop",
            }
        }

    def test_missing_tag_is_rejected(self):
        with pytest.raises(PluginError):
            FacetedNavPlugin.load_catalog_settings({"products": {"base_url": "/shop"}})

    def test_on_files_builds_catalogs(self, docs, caplog):
        caplog.set_level(logging.WARNING)
        plugin = make_plugin()

        assert plugin.on_files(docs.files, {}) is docs.files

        catalog = plugin.catalogs["properties"]
        assert catalog.base_url == "/properties"
        assert sorted(i["title"] for i in catalog.items) == ["Rose Cottage", "Sea View"]
        assert [c["path"] for c in catalog.combinations] == [
            "pet-friendly/yes",
            "pet-friendly/yes/type/cottage",
            "type/apartment",
            "type/cottage",
        ]
        assert catalog.items[0]["url"] in ("rose/", "sea/")
        assert "invalid front matter" in caplog.text
        assert list(plugin.category_catalogs["properties"]) == ["coast"]

    def test_page_context(self, docs):
        plugin = make_plugin()
        plugin.on_files(docs.files, {})

        page = SimpleNamespace(
            meta={"facet_catalog": "properties"}, file=SimpleNamespace(src_path="index.md")
        )
        context = plugin.on_page_context({}, page, {}, None)
        assert context["faceted_nav"]["properties"]["baseUrl"] == "/properties"
        assert "coast" in context["faceted_nav"]["properties"]["categories"]
        assert context["filter_ui"]["hasFilters"] is True

    def test_unknown_catalog_warns(self, docs, caplog):
        plugin = make_plugin()
        plugin.on_files(docs.files, {})
        page = SimpleNamespace(meta={"facet_catalog": "cars"}, file=SimpleNamespace(src_path="cars.md"))

        context = plugin.on_page_context({}, page, {}, None)

        assert "filter_ui" not in context
        assert "unknown catalog 'cars'" in caplog.text

    def test_post_build_writes_redirects(self, docs):
        plugin = make_plugin()
        plugin.on_files(docs.files, {})

        plugin.on_post_build({"site_dir": str(docs.site_dir)})

        lines = (docs.site_dir / "_redirects").read_text(encoding="utf-8").splitlines()
        assert "/properties/search/type/ /properties/search/#content 301" in lines
        assert (
            "/properties/search/type/apartment/pet-friendly/ "
            "/properties/search/type/apartment/#content 301"
        ) in lines
        assert any(line.startswith("/categories/properties/coast/search/") for line in lines)

    def test_post_build_disabled(self, docs):
        plugin = make_plugin(write_redirects=False)
        plugin.on_files(docs.files, {})
        plugin.on_post_build({"site_dir": str(docs.site_dir)})
        assert not (docs.site_dir / "_redirects").exists()

    def test_generated_page_without_source_is_skipped(self, docs):
        """A page with no file on disk and no content does not break the build."""
        generated = File("gen.md", None, str(docs.site_dir), use_directory_urls=True)
        files = Files(list(docs.files) + [generated])
        plugin = make_plugin()

        plugin.on_files(files, {})

        titles = sorted(i["title"] for i in plugin.catalogs["properties"].items)
        assert titles == ["Rose Cottage", "Sea View"]

    def test_generated_page_content_is_used(self):
        generated = SimpleNamespace(
            abs_src_path=None,
            src_path="villa.md",
            url="villa/",
            content_string="---\ntags: [property]\nfilter_attributes: ['Type: Villa']\n---\n",
        )
        files = SimpleNamespace(documentation_pages=lambda: [generated])
        plugin = make_plugin()

        plugin.on_files(files, {})

        catalog = plugin.catalogs["properties"]
        assert [c["path"] for c in catalog.combinations] == ["type/villa"]
        assert catalog.items[0]["title"] == "villa"

    def test_category_scopes_are_separate_per_catalog(self):
        plugin = make_plugin(
            catalogs={
                "products": {"tag": "product", "categories": True},
                "properties": {"tag": "property", "categories": True},
            }
        )
        plugin.build_catalogs(
            [
                {"title": "Kite", "tags": ["product"], "categories": ["Coast"],
                 "filter_attributes": ["Size: Large"]},
                {"title": "Cabin", "tags": ["property"], "categories": ["Coast"],
                 "filter_attributes": ["Size: Large"]},
            ]
        )

        products = plugin.category_catalogs["products"]["coast"]
        properties = plugin.category_catalogs["properties"]["coast"]
        assert products.base_url == "/categories/products/coast"
        assert properties.base_url == "/categories/properties/coast"
        sources = [r["from"] for r in plugin.all_redirects()]
        assert len(sources) == len(set(sources))

    @pytest.mark.parametrize(
        "catalogs",
        [
            {
                "products": {"tag": "product", "categories": True, "categories_url": "/c"},
                "properties": {"tag": "property", "categories": True, "categories_url": "/c"},
            },
            {
                "products": {"tag": "product", "base_url": "/shop"},
                "gifts": {"tag": "gift", "base_url": "shop/"},
            },
        ],
    )
    def test_clashing_urls_are_rejected(self, catalogs):
        with pytest.raises(PluginError):
            FacetedNavPlugin.load_catalog_settings(catalogs)
