"""
ai_context_mcp.security

Path containment for every filesystem touch made by the server.

`SecurityBoundary` is the only sanctioned way to turn a caller-supplied path into an
absolute path, read a file, or list a directory. Validation is three-staged:

1. Lexical denylist on the raw, unresolved string (traversal segments, home shorthand,
   shell expansion, percent/hex escapes, NUL bytes).
2. Logical containment of the normalized path joined to the root.
3. Real-path containment when the target exists, so symlinks cannot leave the root.

Error messages never show absolute locations outside the root (see `sanitize`).
"""

from __future__ import annotations

import logging
import os
import re
import stat
from pathlib import Path

from ai_context_mcp.errors import (
    AiContextError,
    BoundaryViolationError,
    DangerousPathError,
    ResourceAccessError,
    RootConfigurationError,
    SymlinkEscapeError,
)

logger = logging.getLogger(__name__)

SANITIZED_PLACEHOLDER = "[sanitized]"

_DANGEROUS_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"\.\."),  # parent directory traversal
    re.compile(r"^~"),  # home directory shorthand
    re.compile(r"\$\{.*\}", re.DOTALL),  # variable expansion
    re.compile(r"\$\(.*\)", re.DOTALL),  # command substitution
    re.compile(r"%[0-9a-fA-F]{2}"),  # percent-encoded octets
    re.compile(r"\\x[0-9a-fA-F]{2}"),  # backslash-hex escapes
    re.compile(r"\x00"),  # NUL bytes
)

PathInput = str | os.PathLike[str]


def contains_dangerous_patterns(raw: str) -> bool:
    """Return True if the raw path string matches any denylisted lexical pattern."""
    return any(pattern.search(raw) for pattern in _DANGEROUS_PATTERNS)


class SecurityBoundary:
    """
    function_purpose: Confine all file access to a single canonical root directory.

    The root is validated once at construction; a missing root or a non-directory
    root raises RootConfigurationError and the caller must refuse to start.
    """

    __slots__ = ("_root",)

    def __init__(self, root: PathInput) -> None:
        resolved = Path(root).resolve()
        if not resolved.exists():
            raise RootConfigurationError(f"Root path does not exist: {os.fspath(root)}")
        if not resolved.is_dir():
            raise RootConfigurationError(
                f"Root path is not a directory: {os.fspath(root)}"
            )
        self._root = resolved

    @property
    def root(self) -> Path:
        return self._root

    def __repr__(self) -> str:
        return f"SecurityBoundary(root={str(self._root)!r})"

    # --- validation ---
    def _is_within_root(self, candidate: str) -> bool:
        root = str(self._root)
        try:
            return os.path.commonpath([root, candidate]) == root
        except ValueError:
            # Different drives or mixed absolute/relative paths.
            return False

    def validate(self, requested: PathInput) -> Path:
        """
        function_purpose: Turn a requested path into a boundary-confined absolute path.

        Raises:
        - DangerousPathError       raw string matched the lexical denylist
        - BoundaryViolationError   normalized path is outside the root
        - SymlinkEscapeError       target exists but its real path is outside the root

        Nonexistent targets return the normalized logical path.
        """
        raw = os.fspath(requested)
        if contains_dangerous_patterns(raw):
            raise DangerousPathError(
                f"Path contains dangerous patterns: {self.sanitize(raw)}"
            )

        normalized = os.path.normpath(os.path.join(str(self._root), raw))
        if not self._is_within_root(normalized):
            raise BoundaryViolationError("Access denied - path outside boundary")

        if not os.path.exists(normalized):
            return Path(normalized)

        real = os.path.realpath(normalized)
        if not self._is_within_root(real):
            raise SymlinkEscapeError("Symbolic link points outside boundary")
        return Path(real)

    # --- predicates (never raise) ---
    @staticmethod
    def _regular_file_readable(path: Path) -> bool:
        st = os.stat(path)
        return stat.S_ISREG(st.st_mode) and os.access(path, os.R_OK)

    @staticmethod
    def _directory_listable(path: Path) -> bool:
        st = os.stat(path)
        return stat.S_ISDIR(st.st_mode) and os.access(path, os.R_OK | os.X_OK)

    def is_file_readable(self, path: PathInput) -> bool:
        try:
            return self._regular_file_readable(self.validate(path))
        except (AiContextError, OSError, ValueError):
            return False

    def is_directory_accessible(self, path: PathInput) -> bool:
        try:
            return self._directory_listable(self.validate(path))
        except (AiContextError, OSError, ValueError):
            return False

    # --- safe I/O ---
    def safe_read_file(self, path: PathInput) -> str:
        """
        function_purpose: Validate then read a UTF-8 text file inside the root.

        Security errors propagate unchanged; unreadable targets raise ResourceAccessError.
        """
        validated = self.validate(path)
        try:
            readable = self._regular_file_readable(validated)
        except (OSError, ValueError):
            readable = False
        if not readable:
            raise ResourceAccessError(f"Cannot read file: {self.sanitize(path)}")

        try:
            # newline="" keeps CRLF intact so loads return the file's exact text.
            with open(validated, encoding="utf-8", newline="") as f:
                return f.read()
        except (OSError, UnicodeDecodeError) as exc:
            raise ResourceAccessError(
                f"Cannot read file: {self.sanitize(path)} ({type(exc).__name__})"
            ) from exc

    def safe_list_directory(self, path: PathInput) -> list[str]:
        """Validate then list a directory inside the root; names are sorted."""
        validated = self.validate(path)
        try:
            accessible = self._directory_listable(validated)
        except (OSError, ValueError):
            accessible = False
        if not accessible:
            raise ResourceAccessError(
                f"Cannot access directory: {self.sanitize(path)}"
            )

        try:
            return sorted(os.listdir(validated))
        except OSError as exc:
            raise ResourceAccessError(
                f"Cannot access directory: {self.sanitize(path)} ({type(exc).__name__})"
            ) from exc

    # --- path rendering ---
    def relative(self, path: PathInput) -> str:
        """Root-relative POSIX form of a path already known to be inside the root."""
        return Path(path).relative_to(self._root).as_posix()

    def sanitize(self, path: PathInput) -> str:
        """
        function_purpose: Render a path for error messages without leaking structure.

        Paths inside the root are shown root-relative; anything else becomes a placeholder.
        """
        try:
            raw = os.fspath(path)
            if "\x00" in raw:
                return SANITIZED_PLACEHOLDER
            candidate = os.path.normpath(os.path.join(str(self._root), raw))
        except (TypeError, ValueError):
            return SANITIZED_PLACEHOLDER

        if not self._is_within_root(candidate):
            return SANITIZED_PLACEHOLDER
        return Path(candidate).relative_to(self._root).as_posix()
