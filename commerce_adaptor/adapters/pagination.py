"""
Pagination engine shared by all adaptors.

Adaptors supply a reader that fetches one page from their vendor, either
offset based ``(page, page_size) -> OffsetPage`` or cursor based
``(cursor, page_size) -> CursorPage``. The collectors here turn a reader
into a full result set or a window of consecutive pages. Pages are always
requested one after another and concatenated in page order.

Readers are trusted: a page holding more than ``page_size`` items is not
corrected.
"""
from typing import (
    Any,
    Awaitable,
    Callable,
    Generic,
    List,
    Mapping,
    Optional,
    Sequence,
    TypeVar,
    Union,
)

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from commerce_adaptor.core.config import get_settings
from commerce_adaptor.core.exceptions import InvalidPageSizeError, ValidationException
from commerce_adaptor.core.logging import get_logger
from commerce_adaptor.domain.models import PaginationArgs

logger = get_logger(__name__)

T = TypeVar("T")


class OffsetPage(BaseModel, Generic[T]):
    """One page read by offset: its items and the listing's total."""
    data: List[T] = Field(default_factory=list)
    total: int


class CursorPage(BaseModel, Generic[T]):
    """One page (or a run of pages) read by cursor."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    data: List[T] = Field(default_factory=list)
    has_next: bool = False
    next_cursor: Optional[str] = None


class PageCollection(BaseModel, Generic[T]):
    """Items collected across offset pages and the total reported by the last page."""
    result: List[T] = Field(default_factory=list)
    total: Optional[int] = None


OffsetReader = Callable[[int, int], Awaitable[Union[OffsetPage, Mapping[str, Any]]]]
CursorReader = Callable[[Optional[str], int], Awaitable[Union[CursorPage, Mapping[str, Any]]]]
PropAccessor = Union[str, Callable[[Any], Any]]


def check_page_size(page_size: Any) -> None:
    """
    Reject page sizes that are not positive integers.

    Raises:
        InvalidPageSizeError: If page_size is zero, negative or not an int
    """
    if isinstance(page_size, bool) or not isinstance(page_size, int) or page_size <= 0:
        raise InvalidPageSizeError(page_size)


def _check_page_count(page_count: Any) -> None:
    if isinstance(page_count, bool) or not isinstance(page_count, int) or page_count < 1:
        raise ValidationException(
            detail=f"Page count must be at least 1, got {page_count!r}",
            field="page_count"
        )


def _as_offset_page(page: Union[OffsetPage, Mapping[str, Any]]) -> OffsetPage:
    if isinstance(page, OffsetPage):
        return page
    return OffsetPage.model_validate(page)


def _as_cursor_page(page: Union[CursorPage, Mapping[str, Any]]) -> CursorPage:
    if isinstance(page, CursorPage):
        return page
    return CursorPage.model_validate(page)


async def collect_all(reader: OffsetReader, page_size: int) -> PageCollection:
    """
    Read every page of an offset listing.

    Starts at page 0 and stops as soon as the collected items reach the
    reported total, so the last partial page is the last request. A zero
    total costs exactly one call.

    Args:
        reader: Offset page reader
        page_size: Items requested per page

    Returns:
        PageCollection with all items in page order and the total

    Raises:
        InvalidPageSizeError: If page_size is not positive
    """
    check_page_size(page_size)

    result: List[Any] = []
    page = 0
    while True:
        current = _as_offset_page(await reader(page, page_size))
        result.extend(current.data)
        total = current.total

        if len(result) >= total:
            break
        if not current.data:
            logger.warning(
                f"Page {page} was empty with {len(result)} of {total} items collected, stopping"
            )
            break
        page += 1

    return PageCollection(result=result, total=total)


async def collect_window(
    reader: OffsetReader,
    page_size: int,
    start_page: int,
    page_count: int
) -> PageCollection:
    """
    Read ``page_count`` consecutive offset pages beginning at ``start_page``.

    Returns:
        PageCollection with the pages' items in order and the total
        reported by the last page read

    Raises:
        InvalidPageSizeError: If page_size is not positive
        ValidationException: If start_page is negative or page_count below 1
    """
    check_page_size(page_size)
    _check_page_count(page_count)
    if start_page < 0:
        raise ValidationException(detail="Start page must not be negative", field="start_page")

    result: List[Any] = []
    total = None
    for page in range(start_page, start_page + page_count):
        current = _as_offset_page(await reader(page, page_size))
        result.extend(current.data)
        total = current.total

    return PageCollection(result=result, total=total)


async def collect_all_cursor(reader: CursorReader, page_size: int) -> CursorPage:
    """
    Follow a cursor listing from the beginning until a page reports no next page.

    The cursor is opaque; it is handed back to the reader untouched.

    Returns:
        CursorPage holding every item with ``has_next`` False

    Raises:
        InvalidPageSizeError: If page_size is not positive
    """
    check_page_size(page_size)

    data: List[Any] = []
    cursor: Optional[str] = None
    while True:
        current = _as_cursor_page(await reader(cursor, page_size))
        data.extend(current.data)

        if not current.has_next:
            break
        if current.next_cursor is None:
            logger.warning("Cursor page reported a next page without a cursor, stopping")
            break
        cursor = current.next_cursor

    return CursorPage(data=data, has_next=False)


async def collect_window_cursor(
    reader: CursorReader,
    page_size: int,
    start_cursor: Optional[str] = None,
    page_count: int = 1
) -> CursorPage:
    """
    Read up to ``page_count`` cursor pages starting at ``start_cursor``.

    A None start cursor means the beginning of the listing. Reading stops
    early when a page reports no next page.

    Returns:
        CursorPage with the concatenated items and the last page's
        ``has_next`` and ``next_cursor``

    Raises:
        InvalidPageSizeError: If page_size is not positive
        ValidationException: If page_count is below 1
    """
    check_page_size(page_size)
    _check_page_count(page_count)

    data: List[Any] = []
    cursor = start_cursor
    has_next = False
    next_cursor = None
    for _ in range(page_count):
        current = _as_cursor_page(await reader(cursor, page_size))
        data.extend(current.data)
        has_next, next_cursor = current.has_next, current.next_cursor

        if not has_next or next_cursor is None:
            break
        cursor = next_cursor

    return CursorPage(data=data, has_next=has_next, next_cursor=next_cursor if has_next else None)


def get_list_page(items: Sequence[T]) -> OffsetReader:
    """Offset reader over an in-memory sequence."""
    async def read(page: int, page_size: int) -> OffsetPage:
        start = page * page_size
        return OffsetPage(data=list(items[start:start + page_size]), total=len(items))

    return read


def _accessor(prop: PropAccessor) -> Callable[[Any], Any]:
    if callable(prop):
        return prop

    path = prop.split(".")

    def read(obj: Any) -> Any:
        for key in path:
            if obj is None:
                return None
            obj = obj.get(key) if isinstance(obj, Mapping) else getattr(obj, key, None)
        return obj

    return read


def get_page_by_query(
    offset_key: str,
    count_key: str,
    total_prop: PropAccessor,
    results_prop: PropAccessor
) -> Callable[..., OffsetReader]:
    """
    Build offset readers for vendor endpoints paged through query parameters.

    The returned binder takes ``(client, url, params=None)`` where client
    has an async ``get(url, params=...)`` (for example OAuthRestClient).
    Each read sets ``offset_key`` to ``page * page_size`` and ``count_key``
    to ``page_size`` on top of ``params``.

    Args:
        offset_key: Query parameter carrying the item offset
        count_key: Query parameter carrying the page size
        total_prop: Dotted path or callable giving the total from a response
        results_prop: Dotted path or callable giving the items from a response
    """
    total_of = _accessor(total_prop)
    results_of = _accessor(results_prop)

    def bind(client: Any, url: str, params: Optional[Mapping[str, Any]] = None) -> OffsetReader:
        async def read(page: int, page_size: int) -> OffsetPage:
            query = dict(params or {})
            query[offset_key] = page * page_size
            query[count_key] = page_size

            body = await client.get(url, params=query)
            if body is None:
                # Suppressed 404
                return OffsetPage(data=[], total=0)
            return OffsetPage(
                data=list(results_of(body) or []),
                total=int(total_of(body) or 0)
            )

        return read

    return bind


async def paginate_args(
    reader: OffsetReader,
    args: PaginationArgs,
    vendor_page_size: Optional[int] = None
) -> List[Any]:
    """
    Serve "page N of size S" from a vendor that pages by a different size.

    Without ``args.page_size`` every item is returned. Otherwise only the
    vendor pages overlapping the requested window are read and the window
    is sliced out of them. The listing total is written back to
    ``args.total``.

    Args:
        reader: Offset reader over the vendor listing
        args: Requested page; ``total`` is updated in place
        vendor_page_size: Page size the vendor is read with, defaults to the
            requested page size (or the configured default when reading all)
    """
    if args.page_size is None:
        collected = await collect_all(reader, vendor_page_size or get_settings().DEFAULT_PAGE_SIZE)
        args.total = collected.total
        return collected.result

    check_page_size(args.page_size)
    vendor_page_size = vendor_page_size or args.page_size
    check_page_size(vendor_page_size)

    start_item = args.page_num * args.page_size
    end_item = start_item + args.page_size
    start_page = start_item // vendor_page_size
    last_page = (end_item - 1) // vendor_page_size

    collected = await collect_window(reader, vendor_page_size, start_page, last_page - start_page + 1)
    args.total = collected.total

    offset = start_item - start_page * vendor_page_size
    return collected.result[offset:offset + args.page_size]
