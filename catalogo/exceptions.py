"""Exception hierarchy for Catalogo.

Row-level import failures are never raised; they are collected into
ImportResult. These exceptions cover failures of a whole operation.
"""

from __future__ import annotations


class CatalogError(Exception):
    """Base class for all Catalogo errors."""


class ConfigurationError(CatalogError):
    """Configuration file or environment is invalid or missing."""


class StoreConfigurationError(ConfigurationError):
    """Store credentials are missing or still set to placeholders."""


class CatalogStoreError(CatalogError):
    """The catalog store failed a facade-level operation (search, export)."""


class CsvFormatError(CatalogError):
    """CSV input is structurally unreadable as a whole."""
