"""
Domain models package for the Commerce Adaptor.

These are the vendor-neutral shapes every adaptor normalizes its back-end
responses into, plus the argument models adaptors accept.
"""

from commerce_adaptor.domain.models.args import (
    CommonArgs,
    GetCommerceObjectArgs,
    GetProductsArgs,
    PaginationArgs,
)
from commerce_adaptor.domain.models.product import (
    Category,
    CategoryRef,
    CustomerGroup,
    Image,
    Product,
    Variant,
)

__all__ = [
    "Category",
    "CategoryRef",
    "CommonArgs",
    "CustomerGroup",
    "GetCommerceObjectArgs",
    "GetProductsArgs",
    "Image",
    "PaginationArgs",
    "Product",
    "Variant",
]
