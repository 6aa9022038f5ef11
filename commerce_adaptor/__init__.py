"""
Commerce Adaptor - Integration layer for commerce back-end APIs.

This package normalizes catalog, category and customer group APIs from
many commerce vendors into one shared shape. It provides the adaptor
registry, the pagination engine and the authenticated REST client that
every vendor adaptor is built on.
"""

__version__ = "0.1.0"
