"""
ai_context_mcp.scanner

Walks the three resource subtrees under the root and builds name -> ResourceMetadata maps.

All filesystem access goes through the injected SecurityBoundary and all descriptions come
from extract_metadata. Paths handled here are root-relative POSIX strings.

Walk order is sorted by entry name at every level, so on a key collision the entry whose
path sorts later replaces the earlier one (last write wins, deterministically).
Unreadable files, inaccessible directories and extraction failures skip the entry; a
missing kind root yields an empty map.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Iterator, Sequence

from ai_context_mcp.errors import AiContextError
from ai_context_mcp.metadata import MetadataSource, extract_metadata
from ai_context_mcp.models import (
    DEFAULT_CATEGORY,
    ENTRY_FILE_NAMES,
    MARKDOWN_EXTENSION,
    ResourceKind,
    ResourceMetadata,
    ResourceSet,
)
from ai_context_mcp.security import SecurityBoundary

logger = logging.getLogger(__name__)


def _join(parent: str, name: str) -> str:
    return name if parent in ("", ".") else f"{parent}/{name}"


def _strip_extension(name: str) -> str:
    return name[: -len(MARKDOWN_EXTENSION)]


def _is_markdown(name: str) -> bool:
    return name.lower().endswith(MARKDOWN_EXTENSION)


class ResourceScanner:
    """
    function_purpose: Discover agents, guidelines and frameworks beneath the boundary root.

    Every scan is a full fresh walk; nothing is cached between calls.
    """

    def __init__(self, boundary: SecurityBoundary) -> None:
        self._boundary = boundary
        self._strategies: dict[ResourceKind, Callable[[], dict[str, ResourceMetadata]]] = {
            ResourceKind.AGENT: lambda: self.scan_flat(ResourceKind.AGENT.directory),
            ResourceKind.GUIDELINE: lambda: self.scan_categorized(
                ResourceKind.GUIDELINE.directory
            ),
            ResourceKind.FRAMEWORK: lambda: self.scan_named_entry(
                ResourceKind.FRAMEWORK.directory
            ),
        }

    # --- walking ---
    def _list(self, rel_dir: str) -> list[str]:
        if not self._boundary.is_directory_accessible(rel_dir):
            return []
        try:
            return self._boundary.safe_list_directory(rel_dir)
        except AiContextError as exc:
            logger.warning("Skipping directory %s: %s", rel_dir, exc)
            return []

    def _iter_markdown_files(self, kind_dir: str) -> Iterator[str]:
        """Depth-first, name-sorted walk yielding readable markdown files (root-relative)."""
        visited: set[str] = set()

        def walk(rel_dir: str) -> Iterator[str]:
            try:
                real_dir = str(self._boundary.validate(rel_dir))
            except AiContextError:
                return
            if real_dir in visited:
                logger.warning("Skipping directory loop at %s", rel_dir)
                return
            visited.add(real_dir)

            for name in self._list(rel_dir):
                rel = _join(rel_dir, name)
                if self._boundary.is_directory_accessible(rel):
                    yield from walk(rel)
                elif _is_markdown(name) and self._boundary.is_file_readable(rel):
                    yield rel

        yield from walk(kind_dir.strip("/"))

    def _read_entry(
        self,
        rel_path: str,
        name: str,
        kind: ResourceKind,
        category: str | None = None,
    ) -> ResourceMetadata | None:
        try:
            path = self._boundary.validate(rel_path)
            text = self._boundary.safe_read_file(rel_path)
            extracted = extract_metadata(text)
        except Exception as exc:
            logger.warning("Skipping %s %s (%s): %s", kind.value, name, rel_path, exc)
            return None

        if extracted.source is MetadataSource.DERIVED:
            logger.warning("Using paragraph extraction for %s %s", kind.value, name)

        return ResourceMetadata(
            name=name,
            path=path,
            description=extracted.content,
            metadata_source=extracted.source,
            category=category,
        )

    @staticmethod
    def _insert(
        result: dict[str, ResourceMetadata], kind: ResourceKind, meta: ResourceMetadata
    ) -> None:
        previous = result.get(meta.name)
        if previous is not None:
            logger.warning(
                "Duplicate %s name '%s': %s replaces %s",
                kind.value,
                meta.name,
                meta.path.name,
                previous.path.name,
            )
        result[meta.name] = meta

    # --- per-kind strategies ---
    def scan_flat(
        self, kind_dir: str, kind: ResourceKind = ResourceKind.AGENT
    ) -> dict[str, ResourceMetadata]:
        """Recursive walk keyed by file stem (nesting is ignored for the key)."""
        result: dict[str, ResourceMetadata] = {}
        for rel in self._iter_markdown_files(kind_dir):
            name = _strip_extension(rel.rsplit("/", 1)[-1])
            meta = self._read_entry(rel, name, kind)
            if meta is not None:
                self._insert(result, kind, meta)
        return result

    def scan_categorized(
        self, kind_dir: str, kind: ResourceKind = ResourceKind.GUIDELINE
    ) -> dict[str, ResourceMetadata]:
        """Recursive walk keyed by slash-joined path under kind_dir; category is the first segment."""
        base = kind_dir.strip("/")
        prefix = "" if base in ("", ".") else base + "/"
        result: dict[str, ResourceMetadata] = {}
        for rel in self._iter_markdown_files(base):
            key = _strip_extension(rel[len(prefix) :])
            parts = key.split("/")
            category = parts[0] if len(parts) > 1 else DEFAULT_CATEGORY
            meta = self._read_entry(rel, key, kind, category=category)
            if meta is not None:
                self._insert(result, kind, meta)
        return result

    def scan_named_entry(
        self,
        kind_dir: str,
        entry_names: Sequence[str] = ENTRY_FILE_NAMES,
        kind: ResourceKind = ResourceKind.FRAMEWORK,
    ) -> dict[str, ResourceMetadata]:
        """One level deep: each subdirectory with an entry file becomes a resource named after it."""
        base = kind_dir.strip("/")
        result: dict[str, ResourceMetadata] = {}
        for name in self._list(base):
            rel_dir = _join(base, name)
            if not self._boundary.is_directory_accessible(rel_dir):
                continue
            for entry_name in entry_names:
                candidate = _join(rel_dir, entry_name)
                if not self._boundary.is_file_readable(candidate):
                    continue
                meta = self._read_entry(candidate, name, kind)
                if meta is not None:
                    self._insert(result, kind, meta)
                break
            else:
                logger.debug("No entry file in %s; skipped", rel_dir)
        return result

    # --- dispatch ---
    def scan(self, kind: ResourceKind) -> dict[str, ResourceMetadata]:
        return self._strategies[kind]()

    def scan_all(
        self, kinds: Iterable[ResourceKind] = tuple(ResourceKind)
    ) -> ResourceSet:
        """Scan the enabled kinds; disabled kinds come back as empty maps."""
        enabled = set(kinds)
        maps = {
            kind: (self.scan(kind) if kind in enabled else {}) for kind in ResourceKind
        }
        return ResourceSet.from_maps(
            agents=maps[ResourceKind.AGENT],
            guidelines=maps[ResourceKind.GUIDELINE],
            frameworks=maps[ResourceKind.FRAMEWORK],
        )
