"""Catalogo - catalog taxonomy, level classification and bulk CSV import."""

__version__ = "0.1.0"
