"""Storefront core: catalog, cart pricing, variant selection and checkout."""

__version__ = "0.1.0"
