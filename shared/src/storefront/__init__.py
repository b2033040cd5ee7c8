"""Storefront backend shared domain package."""

__version__ = "0.1.0"
