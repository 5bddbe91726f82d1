"""
ai_context_mcp.errors

Exception hierarchy shared by the security boundary, scanner, loader and server.

Security violations and root configuration failures always propagate to the caller.
Access failures are absorbed by the scanner (entry skipped) and surfaced by the loader.
"""

from __future__ import annotations

from collections.abc import Sequence


class AiContextError(Exception):
    """Base class for every error raised by ai_context_mcp."""


class RootConfigurationError(AiContextError):
    """The configured root is missing, not a directory, or not configured at all."""


class ConfigurationError(RootConfigurationError):
    """Required configuration (e.g. AI_CONTEXT_ROOT) is absent or invalid."""


class SecurityError(AiContextError):
    """A requested path was rejected by the security boundary."""


class DangerousPathError(SecurityError):
    """The raw path string matched the lexical denylist."""


class BoundaryViolationError(SecurityError):
    """The normalized path resolves outside the root."""


class SymlinkEscapeError(SecurityError):
    """The path is lexically inside the root but its real path is not."""


class ResourceAccessError(AiContextError):
    """A validated file or directory could not be read."""


class ResourceNotFoundError(AiContextError, LookupError):
    """
    function_purpose: Signal a loader key miss while naming what is available.

    The message lists at most `max_listed` keys; the full list stays on `available`.
    """

    def __init__(
        self,
        kind_label: str,
        key: str,
        available: Sequence[str],
        max_listed: int = 50,
    ) -> None:
        self.kind_label = kind_label
        self.key = key
        self.available = sorted(available)

        if not self.available:
            message = (
                f"{kind_label} '{key}' not found. "
                f"No {kind_label.lower()}s are loaded."
            )
        else:
            shown = self.available[:max_listed]
            listing = ", ".join(shown)
            hidden = len(self.available) - len(shown)
            if hidden > 0:
                listing += f" (and {hidden} more)"
            message = f"{kind_label} '{key}' not found. Available: {listing}"
        super().__init__(message)
