"""RestCommerceAdaptor tests: static JSON catalog documents behind a mock transport.

Invariants:
    - documents are read once, during init, in a fixed order
    - product id lookups keep the requested order, None marking unknown ids
    - keyword and category listings honor page_num / page_size and report the total
    - the category tree holds only categories without a parent
"""

import httpx
import pytest

from commerce_adaptor.adapters.implementations import RestCommerceAdaptor
from commerce_adaptor.core.exceptions import TransportError, ValidationException
from commerce_adaptor.domain.models import GetCommerceObjectArgs, GetProductsArgs

BASE = "https://catalog.test"

CATEGORIES = [
    {
        "id": "c1",
        "name": "Shoes",
        "slug": "shoes",
        "children": [{"id": "c1a", "name": "Boots", "slug": "boots", "parent": {"id": "c1"}}],
    },
    {"id": "c1a", "name": "Boots", "slug": "boots", "parent": {"id": "c1"}},
    {"id": "c2", "name": "Clearance", "slug": "clearance", "showInMenu": False},
]

PRODUCTS = [
    {
        "id": "p1",
        "name": "Trail Boot",
        "slug": "trail-boot",
        "categories": [{"id": "c1a"}],
        "variants": [{"id": "p1-v1", "sku": "TB-42", "listPrice": "120.00", "salePrice": "99.00"}],
    },
    {"id": "p2", "name": "Running Shoe", "categories": [{"id": "c1"}]},
    {"id": "p3", "name": "Boot Polish", "categories": [{"id": "c1a"}, {"id": "c2"}]},
]

GROUPS = [{"id": "retail", "name": "Retail"}, {"id": "b2b", "name": "Wholesale"}]

TRANSLATIONS = {"de-DE": {"add_to_cart": "In den Warenkorb"}}

CONFIG = {
    "vendor": "rest",
    "product_url": f"{BASE}/products.json",
    "category_url": f"{BASE}/categories.json",
    "customer_group_url": f"{BASE}/groups.json",
    "translations_url": f"{BASE}/translations.json",
}


@pytest.fixture
def catalog_router(make_router, json_response):
    return make_router({
        "/products.json": json_response(PRODUCTS),
        "/categories.json": json_response(CATEGORIES),
        "/groups.json": json_response(GROUPS),
        "/translations.json": json_response(TRANSLATIONS),
    })


@pytest.fixture
async def adaptor(catalog_router):
    adaptor = RestCommerceAdaptor(CONFIG, transport=httpx.MockTransport(catalog_router))
    await adaptor.init()
    return adaptor


# -- loading -------------------------------------------------------------------


@pytest.mark.asyncio
async def test_init_reads_every_document_once(adaptor, catalog_router):
    assert [r.url.path for r in catalog_router.requests] == [
        "/categories.json",
        "/products.json",
        "/groups.json",
        "/translations.json",
    ]

    await adaptor.get_products(GetProductsArgs(product_ids="p1"))
    await adaptor.get_customer_groups()

    assert len(catalog_router.requests) == 4


@pytest.mark.asyncio
async def test_category_tree_holds_roots_only(adaptor):
    assert [c.id for c in adaptor.category_tree] == ["c1", "c2"]


@pytest.mark.asyncio
async def test_empty_url_reads_as_empty_document(catalog_router):
    config = {**CONFIG, "customer_group_url": "", "translations_url": ""}
    adaptor = RestCommerceAdaptor(config, transport=httpx.MockTransport(catalog_router))

    await adaptor.init()

    assert await adaptor.get_customer_groups() == []
    assert adaptor.translations == {}
    assert len(catalog_router.requests) == 2


@pytest.mark.asyncio
async def test_document_fetch_failure(make_router, json_response):
    router = make_router({
        "/categories.json": json_response(CATEGORIES),
        "/products.json": httpx.Response(500),
    })
    adaptor = RestCommerceAdaptor(CONFIG, transport=httpx.MockTransport(router))

    with pytest.raises(TransportError) as exc_info:
        await adaptor.init()

    assert exc_info.value.status == 500
    assert exc_info.value.url == CONFIG["product_url"]


# -- products ------------------------------------------------------------------


@pytest.mark.asyncio
async def test_get_product_by_id(adaptor):
    product = await adaptor.get_product(GetCommerceObjectArgs(id="p1"))

    assert product.name == "Trail Boot"
    assert product.has_variants()
    assert product.variants[0].list_price == "120.00"
    assert product.variants[0].is_on_sale()


@pytest.mark.asyncio
async def test_get_unknown_product(adaptor):
    assert await adaptor.get_product(GetCommerceObjectArgs(id="nope")) is None


@pytest.mark.asyncio
async def test_get_product_requires_id(adaptor):
    with pytest.raises(ValidationException):
        await adaptor.get_product(GetCommerceObjectArgs(slug="trail-boot"))


@pytest.mark.asyncio
async def test_get_products_by_ids_keeps_order(adaptor):
    products = await adaptor.get_products(GetProductsArgs(product_ids="p3,missing,p1"))

    assert products[0].id == "p3"
    assert products[1] is None
    assert products[2].id == "p1"


@pytest.mark.asyncio
async def test_get_products_with_empty_ids(adaptor):
    assert await adaptor.get_products(GetProductsArgs(product_ids="")) == []


@pytest.mark.asyncio
async def test_keyword_search(adaptor):
    args = GetProductsArgs(keyword="BOOT")

    products = await adaptor.get_products(args)

    assert [p.id for p in products] == ["p1", "p3"]
    assert args.total == 2


@pytest.mark.asyncio
async def test_keyword_search_paged(adaptor):
    args = GetProductsArgs(keyword="boot", page_num=1, page_size=1)

    products = await adaptor.get_products(args)

    assert [p.id for p in products] == ["p3"]
    assert args.total == 2


@pytest.mark.asyncio
async def test_products_by_category(adaptor):
    products = await adaptor.get_products(GetProductsArgs(category={"id": "c1a"}))

    assert [p.id for p in products] == ["p1", "p3"]


@pytest.mark.asyncio
async def test_products_without_selector(adaptor):
    with pytest.raises(ValidationException) as exc_info:
        await adaptor.get_products(GetProductsArgs())

    assert exc_info.value.code == "invalid_product_args"
    assert "get_products" in exc_info.value.detail


# -- categories and the rest ---------------------------------------------------


@pytest.mark.asyncio
async def test_get_category_by_slug_includes_products(adaptor):
    category = await adaptor.get_category(GetCommerceObjectArgs(slug="boots"))

    assert category.id == "c1a"
    assert [p.id for p in category.products] == ["p1", "p3"]


@pytest.mark.asyncio
async def test_get_unknown_category(adaptor):
    assert await adaptor.get_category(GetCommerceObjectArgs(id="c404")) is None


@pytest.mark.asyncio
async def test_mega_menu_skips_hidden_roots(adaptor):
    menu = await adaptor.get_mega_menu()

    assert [c.id for c in menu] == ["c1"]
    assert [c.id for c in menu[0].children] == ["c1a"]


@pytest.mark.asyncio
async def test_customer_groups(adaptor):
    groups = await adaptor.get_customer_groups()

    assert [(g.id, g.name) for g in groups] == [("retail", "Retail"), ("b2b", "Wholesale")]


@pytest.mark.asyncio
async def test_translate(adaptor):
    assert adaptor.translate("add_to_cart", "de-DE") == "In den Warenkorb"
    assert adaptor.translate("add_to_cart", "fr-FR") == "add_to_cart"
    assert adaptor.translate("add_to_cart", None) == "add_to_cart"


def test_capabilities():
    capabilities = RestCommerceAdaptor(CONFIG).get_capabilities()

    assert capabilities["vendor"] == "rest"
    assert capabilities["config_schema"] == sorted(RestCommerceAdaptor.CONFIG_SCHEMA)
