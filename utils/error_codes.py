"""
Centralized Error Code Registry

Single source of truth for the error codes raised by the cookie domain
rewrite middleware and its configuration loader.

Usage:
    from utils.error_codes import ErrorCode, ConfigurationError

    raise ConfigurationError(
        'no replacements configured',
        error_code=ErrorCode.CFG_NO_REPLACEMENTS,
    )
"""


class ErrorCode:
    """
    Centralized error code constants.

    Naming Convention:
        - Format: CATEGORY_DESCRIPTION = 'PREFIX###'
        - Categories: CFG (configuration)
        - Numbers: Sequential within category
    """

    # ========================================================================
    # Configuration Errors (CFG001-CFG999)
    # ========================================================================
    CFG_NO_REPLACEMENTS = 'CFG001'  # Replacement list is empty
    CFG_INVALID_PATTERN = 'CFG002'  # Match domain pattern failed to compile
    CFG_INVALID_FILE = 'CFG003'  # Config file unreadable or malformed
    CFG_UNSUPPORTED_FORMAT = 'CFG004'  # Config file extension not yaml/yml/json
    CFG_INVALID_REPLACEMENT = 'CFG005'  # Replacement domain not encodable as a header value


class ConfigurationError(ValueError):
    """Raised when the middleware cannot be built from the given configuration."""

    def __init__(self, message: str, error_code: str, source: str | None = None):
        self.message = message
        self.error_code = error_code
        self.source = source
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.source:
            return f'{self.error_code}: {self.message} ({self.source})'
        return f'{self.error_code}: {self.message}'
