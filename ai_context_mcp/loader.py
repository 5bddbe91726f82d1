"""
ai_context_mcp.loader

On-demand content loading for scanned resources.

Content is re-read through the security boundary on every call, so edits made after the
scan are visible and a file removed after the scan surfaces as ResourceAccessError.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from ai_context_mcp.errors import AiContextError, ResourceNotFoundError
from ai_context_mcp.models import ResourceKind, ResourceSet
from ai_context_mcp.security import SecurityBoundary

logger = logging.getLogger(__name__)

MAX_LISTED_KEYS = 50
RESOURCE_SEPARATOR = "\n\n---\n\n"


class ResourceLoader:
    def __init__(self, boundary: SecurityBoundary, resources: ResourceSet) -> None:
        self._boundary = boundary
        self._resources = resources

    def load(self, kind: ResourceKind, key: str) -> str:
        """
        function_purpose: Return the current raw content of one resource.

        Raises ResourceNotFoundError for unknown keys (message lists known keys, capped),
        ResourceAccessError if the backing file is no longer readable, and SecurityError
        if the stored path no longer validates.
        """
        resources = self._resources.for_kind(kind)
        meta = resources.get(key)
        if meta is None:
            raise ResourceNotFoundError(
                kind.label, key, list(resources), max_listed=MAX_LISTED_KEYS
            )

        rel_path = self._boundary.relative(meta.path)
        logger.debug("Loading %s '%s' from %s", kind.value, key, rel_path)
        return self._boundary.safe_read_file(rel_path)

    def load_many(self, specs: Iterable[str]) -> str:
        """
        function_purpose: Load several "<kind>:<key>" specs into one markdown document.

        A failing spec becomes an error section; the other specs still load.
        """
        sections: list[str] = []
        for spec in specs:
            kind_text, sep, key = spec.partition(":")
            try:
                kind = ResourceKind.parse(kind_text) if sep else None
            except ValueError:
                kind = None
            if kind is None:
                sections.append(f"## Unknown resource type: {spec}")
                continue

            try:
                content = self.load(kind, key)
            except AiContextError as exc:
                logger.warning("Failed loading %s: %s", spec, exc)
                sections.append(f"## Error loading {spec}: {exc}")
                continue
            sections.append(f"## {kind.label}: {key}\n\n{content}")

        return RESOURCE_SEPARATOR.join(sections)
