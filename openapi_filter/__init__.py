"""
OpenAPI Filter - Reduce large OpenAPI specifications to a self-consistent subset.

This package provides both CLI and SDK interfaces for keeping only the operations
that match a set of tags and/or a path pattern, together with every component
those operations transitively reference.
"""

from .core import (
    OpenAPIFilter,
    OpenAPIFilterError,
    FilterOptions,
    filter_spec,
)
from .resolver import ComponentResolver, COMPONENT_TYPES

__version__ = "1.0.0"
__author__ = "OpenAPI Filter Contributors"

__all__ = [
    'OpenAPIFilter',
    'OpenAPIFilterError',
    'FilterOptions',
    'filter_spec',
    'ComponentResolver',
    'COMPONENT_TYPES',
    '__version__',
]
