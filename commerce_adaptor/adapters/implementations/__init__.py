"""
Adaptor implementations package for commerce back-end integrations.
Concrete adaptors live here, one module per vendor.
"""
from typing import Optional

from commerce_adaptor.adapters.implementations.rest import PLATFORM_REST, RestCommerceAdaptor
from commerce_adaptor.adapters.registry import AdaptorRegistry

# Vendor tag to implementation class
ADAPTOR_IMPLEMENTATIONS = {
    PLATFORM_REST: RestCommerceAdaptor,
}


def create_default_registry(max_entries: Optional[int] = None) -> AdaptorRegistry:
    """
    Build a registry with every built-in adaptor registered.

    Create one at process start and pass it to whatever resolves adaptors.
    """
    registry = AdaptorRegistry(max_entries=max_entries)
    for adaptor_class in ADAPTOR_IMPLEMENTATIONS.values():
        registry.register(adaptor_class)
    return registry


__all__ = [
    "ADAPTOR_IMPLEMENTATIONS",
    "PLATFORM_REST",
    "RestCommerceAdaptor",
    "create_default_registry",
]
