"""
Manual overrides sourced from Google Drive (images) and Google Sheets (variants).
"""

from .google import (
    GoogleAuthError,
    GoogleTokenProvider,
    build_token_provider,
    DRIVE_READONLY_SCOPE,
    SHEETS_READONLY_SCOPE,
)
from .images import DriveImageOverrideResolver, ImageOverride
from .variants import SheetsVariantOverrideResolver, VariantOverride, parse_rows

__all__ = [
    "GoogleAuthError",
    "GoogleTokenProvider",
    "build_token_provider",
    "DRIVE_READONLY_SCOPE",
    "SHEETS_READONLY_SCOPE",
    "DriveImageOverrideResolver",
    "ImageOverride",
    "SheetsVariantOverrideResolver",
    "VariantOverride",
    "parse_rows",
]
