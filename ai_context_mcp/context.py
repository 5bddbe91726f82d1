"""
ai_context_mcp.context

Composition of boundary, scanner and loader behind one object handed to the server.

The boundary is built once and injected; `rescan()` publishes a new immutable
ResourceSet together with a loader bound to it.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from ai_context_mcp.loader import ResourceLoader
from ai_context_mcp.models import ResourceKind, ResourceSet
from ai_context_mcp.scanner import ResourceScanner
from ai_context_mcp.security import PathInput, SecurityBoundary

logger = logging.getLogger(__name__)


class AiContext:
    def __init__(
        self,
        boundary: SecurityBoundary,
        enabled_kinds: Iterable[ResourceKind] = tuple(ResourceKind),
    ) -> None:
        self.boundary = boundary
        self.enabled_kinds: frozenset[ResourceKind] = frozenset(enabled_kinds)
        self._scanner = ResourceScanner(boundary)
        self._resources = ResourceSet()
        self._loader = ResourceLoader(boundary, self._resources)

    @classmethod
    def initialize(
        cls,
        root: PathInput,
        enabled_kinds: Iterable[ResourceKind] = tuple(ResourceKind),
    ) -> AiContext:
        """
        function_purpose: Validate the root, then perform the initial full scan.

        Raises RootConfigurationError if the root is missing or not a directory.
        """
        context = cls(SecurityBoundary(root), enabled_kinds)
        context.rescan()
        return context

    @property
    def resources(self) -> ResourceSet:
        return self._resources

    def rescan(self) -> ResourceSet:
        logger.info("Scanning for resources under %s", self.boundary.root)
        resources = self._scanner.scan_all(self.enabled_kinds)
        self._resources, self._loader = resources, ResourceLoader(self.boundary, resources)
        logger.info(
            "Found %d agents, %d guidelines, %d frameworks",
            len(resources.agents),
            len(resources.guidelines),
            len(resources.frameworks),
        )
        return resources

    scan_all = rescan

    def load(self, kind: ResourceKind, key: str) -> str:
        return self._loader.load(kind, key)

    def load_many(self, specs: Iterable[str]) -> str:
        return self._loader.load_many(specs)

    def describe(self) -> dict[str, list[dict[str, Any]]]:
        """Listing projection of all three maps with 100-character description previews."""
        resources = self._resources
        return {
            kind.directory: [meta.summary() for meta in resources.for_kind(kind).values()]
            for kind in ResourceKind
        }
