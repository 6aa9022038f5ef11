from typing import Optional

from pydantic import Field

from commerce_adaptor.domain.models.product import CategoryRef, CommerceModel


class CommonArgs(CommerceModel):
    """Locale and pricing context passed to every adaptor call."""

    locale: Optional[str] = None
    language: Optional[str] = None
    country: Optional[str] = None
    currency: Optional[str] = None
    segment: Optional[str] = None


class PaginationArgs(CommerceModel):
    """
    Requested page of a listing.

    ``page_size`` unset means "everything". ``total`` is written back by the
    pagination helpers once the vendor has reported it.
    """

    page_num: int = Field(default=0, ge=0)
    page_size: Optional[int] = None
    total: Optional[int] = None


class GetCommerceObjectArgs(CommonArgs):
    """Lookup of a single product or category by id or slug."""

    id: Optional[str] = None
    slug: Optional[str] = None


class GetProductsArgs(CommonArgs, PaginationArgs):
    """
    Product listing arguments.

    Exactly one of ``product_ids`` (comma separated), ``keyword`` or
    ``category`` selects the listing.
    """

    product_ids: Optional[str] = None
    keyword: Optional[str] = None
    category: Optional[CategoryRef] = None
