"""
Adaptor interfaces package.

Defines the contract every commerce back-end adaptor implements and the
shared base for OAuth-protected vendors.
"""

from commerce_adaptor.adapters.interfaces.client_credentials import ClientCredentialsAdaptor
from commerce_adaptor.adapters.interfaces.commerce import CommerceAdaptor, get_products_arg_error

__all__ = [
    "ClientCredentialsAdaptor",
    "CommerceAdaptor",
    "get_products_arg_error",
]
