"""
Custom exceptions module.
"""

from exceptions.errors import (
    # Base exceptions
    AppError,
    NotFoundError,
    ValidationError,
    ConflictError,
    ExternalServiceError,
    DatabaseError,

    # Providers
    ProviderFetchError,
    ProviderAuthError,
    ProviderSessionInvalidError,
    SpreadsheetParseError,

    # Sync / merge
    CatalogMergeError,
    MergeInProgressError,
    NoProviderDataError,
    CronSecretError,

    # Catalog
    CatalogProductNotFoundError,
)

__all__ = [
    # Base
    "AppError",
    "NotFoundError",
    "ValidationError",
    "ConflictError",
    "ExternalServiceError",
    "DatabaseError",

    # Providers
    "ProviderFetchError",
    "ProviderAuthError",
    "ProviderSessionInvalidError",
    "SpreadsheetParseError",

    # Sync / merge
    "CatalogMergeError",
    "MergeInProgressError",
    "NoProviderDataError",
    "CronSecretError",

    # Catalog
    "CatalogProductNotFoundError",
]
