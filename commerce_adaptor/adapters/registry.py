import asyncio
import hashlib
import json
from collections import OrderedDict
from typing import Any, Dict, List, Mapping, Optional, Type, Union

from commerce_adaptor.adapters.descriptor import AdaptorDescriptor
from commerce_adaptor.core.config import get_settings
from commerce_adaptor.core.exceptions import (
    AmbiguousConfigError,
    DuplicateVendorError,
    MissingConfigFieldsError,
    VendorNotFoundError,
)
from commerce_adaptor.core.logging import get_logger, set_vendor

logger = get_logger(__name__)


def content_hash(config: Mapping[str, Any]) -> str:
    """
    Digest of a configuration's keys and values, independent of key order.

    The key-value pairs are JSON encoded in sorted-key order and hashed with
    SHA-256, so equal values under different keys never collide.
    """
    encoded = json.dumps(
        [[key, config[key]] for key in sorted(config)], sort_keys=True, default=str
    )
    return hashlib.sha256(encoded.encode("utf-8")).hexdigest()


class AdaptorRegistry:
    """
    Registry of adaptor types and of the live adaptors built from them.

    Descriptors are append-only. Resolving a configuration picks one
    descriptor (by vendor tag or by configuration shape) and returns the
    adaptor cached under the configuration's content hash, constructing it
    once. Construction is single-flight: the pending construction is stored
    before the first caller yields, and concurrent callers await it.

    The instance cache is unbounded unless ``max_entries`` is set; a
    process resolving many distinct configurations should set it.
    """

    def __init__(self, max_entries: Optional[int] = None):
        """
        Initialize an empty adaptor registry.

        Args:
            max_entries: Bound on cached adaptors, defaults to
                ADAPTOR_CACHE_MAX_ENTRIES (None = unbounded)
        """
        self._descriptors: List[AdaptorDescriptor] = []
        self._instances: "OrderedDict[str, asyncio.Future]" = OrderedDict()
        self.max_entries = max_entries if max_entries is not None else get_settings().ADAPTOR_CACHE_MAX_ENTRIES
        logger.debug("Initialized AdaptorRegistry")

    def register(self, descriptor: Union[AdaptorDescriptor, Type]) -> AdaptorDescriptor:
        """
        Register an adaptor type.

        Args:
            descriptor: An AdaptorDescriptor, or an adaptor class with
                VENDOR, CONFIG_SCHEMA and an async create(config)

        Returns:
            The registered descriptor

        Raises:
            DuplicateVendorError: If the vendor tag is already registered
            ValueError: If descriptor is neither a descriptor nor an adaptor class
        """
        if isinstance(descriptor, type):
            descriptor = AdaptorDescriptor.for_class(descriptor)
        if not isinstance(descriptor, AdaptorDescriptor):
            raise ValueError("Adaptor must be an AdaptorDescriptor or an adaptor class")

        if descriptor.vendor is not None and self.get(descriptor.vendor) is not None:
            raise DuplicateVendorError(descriptor.vendor)

        self._descriptors.append(descriptor)
        logger.info(f"Registered adaptor: {descriptor.name}")
        return descriptor

    def get(self, vendor: str) -> Optional[AdaptorDescriptor]:
        """
        Retrieve a descriptor by vendor tag.

        Returns:
            The descriptor if found, None otherwise
        """
        return next((d for d in self._descriptors if d.vendor == vendor), None)

    def list(self) -> List[str]:
        """
        List the names of all registered adaptors.

        Returns:
            List of registered adaptor names, in registration order
        """
        return [d.name for d in self._descriptors]

    def is_registered(self, vendor: str) -> bool:
        return self.get(vendor) is not None

    @property
    def descriptors(self) -> List[AdaptorDescriptor]:
        return list(self._descriptors)

    def cached_count(self) -> int:
        """Number of cache entries, pending constructions included."""
        return len(self._instances)

    def find_descriptor(
        self,
        config: Mapping[str, Any],
        type_filter: Optional[str] = None
    ) -> AdaptorDescriptor:
        """
        Pick the descriptor that serves ``config``.

        With a ``vendor`` field the descriptor carrying that tag is used and
        its required fields are checked. Without one, exactly one descriptor
        whose required fields are all present must exist.

        Args:
            config: Adaptor configuration
            type_filter: Only consider descriptors of this adaptor type

        Raises:
            VendorNotFoundError: If no descriptor carries the vendor tag
            MissingConfigFieldsError: If the vendor's required fields are absent
            AmbiguousConfigError: If zero or several descriptors match the shape
        """
        candidates = [
            d for d in self._descriptors
            if type_filter is None or d.adaptor_type == type_filter
        ]

        vendor = config.get("vendor")
        if vendor:
            descriptor = next((d for d in candidates if d.vendor == vendor), None)
            if descriptor is None:
                raise VendorNotFoundError(vendor)
            missing = descriptor.missing_fields(config)
            if missing:
                raise MissingConfigFieldsError(missing, vendor=vendor)
            return descriptor

        matches = [d for d in candidates if d.matches(config.keys())]
        if len(matches) != 1:
            raise AmbiguousConfigError(len(matches), [d.name for d in matches])
        return matches[0]

    async def resolve(self, config: Mapping[str, Any], type_filter: Optional[str] = None) -> Any:
        """
        Return the adaptor for ``config``, constructing it on first use.

        Args:
            config: Adaptor configuration
            type_filter: Only consider descriptors of this adaptor type

        Returns:
            The cached adaptor instance; equal configurations always get the
            same instance

        Raises:
            VendorNotFoundError, MissingConfigFieldsError, AmbiguousConfigError:
                If the configuration does not identify exactly one adaptor
            ConstructionError: If building the adaptor fails; the failure is
                not cached
        """
        descriptor = self.find_descriptor(config, type_filter)
        key = content_hash(config)

        future = self._instances.get(key)
        if future is None:
            future = asyncio.ensure_future(self._construct(key, descriptor, dict(config)))
            self._instances[key] = future
            logger.info(f"Using adaptor {descriptor.name} for configuration {key[:12]}")
            await self._enforce_bound()
        else:
            self._instances.move_to_end(key)

        return await asyncio.shield(future)

    async def _construct(self, key: str, descriptor: AdaptorDescriptor, config: Dict[str, Any]) -> Any:
        # Runs in its own task, so the vendor tag stays scoped to this construction
        set_vendor(descriptor.vendor)
        try:
            return await descriptor.construct(config)
        except BaseException:
            # Drop the failed entry so the next resolve retries
            if self._instances.get(key) is asyncio.current_task():
                del self._instances[key]
            raise

    async def _enforce_bound(self) -> None:
        if self.max_entries is None:
            return

        # Unlink every victim before the first await; concurrent resolves share the cache
        evicted = []
        for key, future in list(self._instances.items()):
            if len(self._instances) <= self.max_entries:
                break
            if not future.done() or future.cancelled() or future.exception() is not None:
                continue
            self._instances.pop(key, None)
            evicted.append((key, future.result()))

        for key, instance in evicted:
            logger.warning(f"Adaptor cache full ({self.max_entries}), evicting {key[:12]}")
            await self._close_instance(instance)

    async def _close_instance(self, instance: Any) -> None:
        close = getattr(instance, "aclose", None)
        if close is None:
            return
        try:
            await close()
        except Exception as e:
            logger.error(f"Error closing adaptor {type(instance).__name__}: {str(e)}")

    async def aclose(self) -> None:
        """Close every cached adaptor and empty the cache."""
        instances, self._instances = self._instances, OrderedDict()
        for future in instances.values():
            if not future.done():
                future.cancel()
            elif not future.cancelled() and future.exception() is None:
                await self._close_instance(future.result())

    def clear(self) -> None:
        """
        Clear all registered adaptors and cached instances.
        Primarily used for testing purposes.
        """
        self._descriptors.clear()
        self._instances.clear()
        logger.debug("Cleared all registered adaptors")
