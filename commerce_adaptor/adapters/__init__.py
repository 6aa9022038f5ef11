"""
Adapters package for the Commerce Adaptor.

This package contains the components every vendor adaptor depends on:
- Abstract interfaces that define the contract for adaptors
- The descriptor and registry that resolve and cache adaptor instances
- The pagination engine that assembles multi-page vendor listings
- Concrete implementations for specific vendors
"""

from . import interfaces
from .descriptor import AdaptorDescriptor
from .registry import AdaptorRegistry, content_hash

__all__ = [
    'interfaces',
    'AdaptorDescriptor',
    'AdaptorRegistry',
    'content_hash',
]
