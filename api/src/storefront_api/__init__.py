"""Storefront REST API (FastAPI) package."""
