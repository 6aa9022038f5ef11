from abc import ABC, abstractmethod
from typing import Any, ClassVar, Dict, FrozenSet, List, Mapping, Optional

from commerce_adaptor.core.exceptions import ValidationException
from commerce_adaptor.core.logging import get_logger
from commerce_adaptor.domain.models import (
    Category,
    CommonArgs,
    CustomerGroup,
    GetCommerceObjectArgs,
    GetProductsArgs,
    Product,
)

logger = get_logger(__name__)


def get_products_arg_error(method: str) -> ValidationException:
    """Error for a product listing call that names no selector."""
    return ValidationException(
        detail=f"{method}: one of product_ids, keyword or category must be provided",
        code="invalid_product_args",
        field="product_ids"
    )


class CommerceAdaptor(ABC):
    """
    Abstract base interface for commerce back-end adaptors.

    An adaptor is bound to one configuration and returns vendor data in the
    normalized Product / Category / CustomerGroup shape. Instances are built
    through ``create`` so that ``init`` (which usually talks to the vendor)
    has run before the instance is handed out.

    Class attributes:
        VENDOR: Unique vendor tag, or None for adaptors resolved only by
            configuration shape
        CONFIG_SCHEMA: Configuration fields the adaptor requires
    """

    VENDOR: ClassVar[Optional[str]] = None
    CONFIG_SCHEMA: ClassVar[FrozenSet[str]] = frozenset()

    def __init__(self, config: Mapping[str, Any]):
        self.config: Dict[str, Any] = dict(config)
        self.category_tree: Optional[List[Category]] = None

    @classmethod
    async def create(cls, config: Mapping[str, Any]) -> "CommerceAdaptor":
        """Build and initialize an adaptor for ``config``."""
        adaptor = cls(config)
        await adaptor.init()
        return adaptor

    async def init(self) -> None:
        """
        Prepare the adaptor for use.

        The default warms the category tree; adaptors that need a bootstrap
        call (endpoint discovery, authentication) extend this.
        """
        await self.ensure_category_tree()

    async def ensure_category_tree(self) -> List[Category]:
        if self.category_tree is None:
            await self.cache_category_tree()
            logger.debug(f"Cached category tree for vendor {self.VENDOR}")
        return self.category_tree or []

    @abstractmethod
    async def cache_category_tree(self) -> None:
        """Fetch the vendor's category tree and store it on ``category_tree``."""

    async def find_category(self, args: GetCommerceObjectArgs) -> Optional[Category]:
        """Find a category anywhere in the cached tree by id or slug."""
        for root in await self.ensure_category_tree():
            for category in root.walk():
                if (args.id and category.id == args.id) or (args.slug and category.slug == args.slug):
                    return category
        return None

    async def get_product(self, args: GetCommerceObjectArgs) -> Optional[Product]:
        """
        Gets a single product by id or slug.

        Returns:
            The product, or None if the vendor has no such product
        """
        if args.id:
            products = await self.get_products(GetProductsArgs(product_ids=args.id))
            return products[0] if products else None
        raise ValidationException(detail="get_product: id must be provided", field="id")

    async def get_products(self, args: GetProductsArgs) -> List[Product]:
        """
        Gets products by comma separated ids, keyword or category.

        Raises:
            ValidationException: If no selector is given
        """
        return await self.get_raw_products(args, method="get_products")

    @abstractmethod
    async def get_raw_products(self, args: GetProductsArgs, method: str = "get_raw_products") -> List[Any]:
        """Gets products as the vendor returns them, before normalization."""

    async def get_category(self, args: GetCommerceObjectArgs) -> Optional[Category]:
        """Gets a category by id or slug, with its products populated."""
        category = await self.find_category(args)
        if category is None:
            return None

        products = await self.get_products(
            GetProductsArgs(category=category.model_dump(include={"id", "name", "slug"}))
        )
        return category.model_copy(update={"products": products})

    async def get_mega_menu(self, args: Optional[CommonArgs] = None) -> List[Category]:
        """Gets the root categories flagged for the navigation menu."""
        return [category for category in await self.ensure_category_tree() if category.show_in_menu]

    async def get_customer_groups(self, args: Optional[CommonArgs] = None) -> List[CustomerGroup]:
        """Gets customer groups. Vendors without the concept return an empty list."""
        return []

    async def aclose(self) -> None:
        """Release network resources held by the adaptor."""

    def get_capabilities(self) -> Dict[str, Any]:
        """
        Returns the capabilities supported by this adaptor.

        Returns:
            Dict[str, Any]: vendor tag and required configuration fields
        """
        return {
            "vendor": self.VENDOR,
            "config_schema": sorted(self.CONFIG_SCHEMA),
        }
