from __future__ import annotations

from typing import Any, Dict, Iterator, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CommerceModel(BaseModel):
    """Base for the normalized commerce shapes; accepts camelCase or snake_case keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Image(CommerceModel):
    """Product image reference."""

    url: Optional[str] = None
    thumb: Optional[str] = None


class Variant(CommerceModel):
    """Domain model for a purchasable product variant."""

    id: str
    sku: Optional[str] = None
    list_price: Optional[str] = None
    sale_price: Optional[str] = None
    images: List[Image] = Field(default_factory=list)
    attributes: Dict[str, Any] = Field(default_factory=dict)

    def is_on_sale(self) -> bool:
        """Determines if the variant has a sale price distinct from its list price."""
        return bool(self.sale_price) and self.sale_price != self.list_price


class CategoryRef(CommerceModel):
    """Lightweight category reference carried on products and arguments."""

    id: str
    name: Optional[str] = None
    slug: Optional[str] = None


class Product(CommerceModel):
    """Domain model for product data."""

    id: str
    name: str = ""
    slug: Optional[str] = None
    short_description: Optional[str] = None
    long_description: Optional[str] = None
    categories: List[CategoryRef] = Field(default_factory=list)
    variants: List[Variant] = Field(default_factory=list)

    def has_variants(self) -> bool:
        """Checks if product has variants."""
        return len(self.variants) > 0

    def in_category(self, category_id: str) -> bool:
        return any(category.id == category_id for category in self.categories)


class Category(CommerceModel):
    """Domain model for a category node of a vendor's category tree."""

    id: str
    name: str = ""
    slug: Optional[str] = None
    parent: Optional[CategoryRef] = None
    children: List[Category] = Field(default_factory=list)
    products: List[Product] = Field(default_factory=list)
    show_in_menu: bool = True

    def walk(self) -> Iterator[Category]:
        """Yields this category followed by all of its descendants, depth first."""
        yield self
        for child in self.children:
            yield from child.walk()


class CustomerGroup(CommerceModel):
    """Domain model for a vendor customer group (segment / price list)."""

    id: str
    name: str = ""


Category.model_rebuild()
