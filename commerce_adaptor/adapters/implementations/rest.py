from typing import Any, ClassVar, Dict, FrozenSet, List, Mapping, Optional

import httpx

from commerce_adaptor.adapters.interfaces import CommerceAdaptor, get_products_arg_error
from commerce_adaptor.adapters.pagination import get_list_page, paginate_args
from commerce_adaptor.core.config import get_settings
from commerce_adaptor.core.exceptions import TransportError
from commerce_adaptor.core.logging import get_logger
from commerce_adaptor.domain.models import CommonArgs, CustomerGroup, GetProductsArgs, Product
from commerce_adaptor.domain.models.product import Category

logger = get_logger(__name__)

PLATFORM_REST = "rest"


class RestCommerceAdaptor(CommerceAdaptor):
    """
    Adaptor for catalogs published as static JSON documents.

    Products, categories, customer groups and translations are each read
    once from their URL during ``init``; an empty URL reads as an empty
    document. Documents are expected in the normalized shape already.
    """

    VENDOR: ClassVar[Optional[str]] = PLATFORM_REST
    CONFIG_SCHEMA: ClassVar[FrozenSet[str]] = frozenset({
        "product_url",
        "category_url",
        "customer_group_url",
        "translations_url",
    })

    def __init__(self, config: Mapping[str, Any], transport: Optional[httpx.AsyncBaseTransport] = None):
        super().__init__(config)
        self.transport = transport
        self.products: List[Product] = []
        self.categories: List[Category] = []
        self.customer_groups: List[CustomerGroup] = []
        self.translations: Dict[str, Dict[str, str]] = {}

    async def fetch_json(self, client: httpx.AsyncClient, url: Optional[str], default: Any) -> Any:
        """
        Fetch a JSON document, or ``default`` when no URL is configured.

        Raises:
            TransportError: If the document cannot be fetched or decoded
        """
        if not url:
            return default

        try:
            response = await client.get(url)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            raise TransportError(
                f"Error while getting URL [ {url} ]: {e.response.status_code} {e.response.reason_phrase}",
                status=e.response.status_code,
                url=url,
                original_exception=e
            ) from e
        except httpx.RequestError as e:
            raise TransportError(
                f"Error while getting URL [ {url} ]: {str(e)}", url=url, original_exception=e
            ) from e
        except ValueError as e:
            raise TransportError(
                f"Invalid JSON from URL [ {url} ]", url=url, original_exception=e
            ) from e

    async def cache_category_tree(self) -> None:
        timeout = get_settings().DEFAULT_TIMEOUT
        async with httpx.AsyncClient(transport=self.transport, timeout=timeout) as client:
            categories = await self.fetch_json(client, self.config.get("category_url"), [])
            products = await self.fetch_json(client, self.config.get("product_url"), [])
            groups = await self.fetch_json(client, self.config.get("customer_group_url"), [])
            self.translations = await self.fetch_json(client, self.config.get("translations_url"), {})

        self.categories = [Category.model_validate(category) for category in categories]
        self.products = [Product.model_validate(product) for product in products]
        self.customer_groups = [CustomerGroup.model_validate(group) for group in groups]
        self.category_tree = [category for category in self.categories if category.parent is None]

        logger.info(
            f"Loaded {len(self.products)} products and {len(self.categories)} categories "
            f"from {self.config.get('product_url')}"
        )

    async def get_raw_products(self, args: GetProductsArgs, method: str = "get_raw_products") -> List[Optional[Product]]:
        await self.ensure_category_tree()

        if args.product_ids == "":
            return []

        if args.product_ids:
            by_id = {product.id: product for product in self.products}
            return [by_id.get(product_id) for product_id in args.product_ids.split(",")]

        if args.keyword:
            keyword = args.keyword.lower()
            matched = [
                product for product in self.products
                if keyword in product.name.lower() or keyword in product.id.lower()
            ]
            return await paginate_args(get_list_page(matched), args)

        if args.category:
            matched = [product for product in self.products if product.in_category(args.category.id)]
            return await paginate_args(get_list_page(matched), args)

        raise get_products_arg_error(method)

    async def get_customer_groups(self, args: Optional[CommonArgs] = None) -> List[CustomerGroup]:
        await self.ensure_category_tree()
        return list(self.customer_groups)

    def translate(self, key: str, locale: Optional[str]) -> str:
        """Look up ``key`` in the translations document, falling back to the key itself."""
        if not locale:
            return key
        return self.translations.get(locale, {}).get(key, key)
