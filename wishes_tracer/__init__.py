"""Price tracking for e-commerce product pages."""

__version__ = "0.1.0"
