"""Resource kinds, per-file metadata, and the folder convention constants."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any

from ai_context_mcp.metadata import MetadataSource

MARKDOWN_EXTENSION = ".md"
ENTRY_FILE_NAMES: tuple[str, ...] = (
    f"README{MARKDOWN_EXTENSION}",
    f"readme{MARKDOWN_EXTENSION}",
    f"Readme{MARKDOWN_EXTENSION}",
)
DEFAULT_CATEGORY = "general"
DESCRIPTION_PREVIEW_CHARS = 100


class ResourceKind(str, Enum):
    AGENT = "agent"
    GUIDELINE = "guideline"
    FRAMEWORK = "framework"

    @property
    def directory(self) -> str:
        return f"{self.value}s"

    @property
    def label(self) -> str:
        return self.value.capitalize()

    @classmethod
    def parse(cls, value: str) -> ResourceKind:
        """Accept 'agent' or the plural directory form 'agents' (case-insensitive)."""
        text = (value or "").strip().lower()
        for kind in cls:
            if text in (kind.value, kind.directory):
                return kind
        raise ValueError(f"unknown resource kind: {value!r}")


@dataclass(frozen=True)
class ResourceMetadata:
    name: str
    path: Path
    description: str
    metadata_source: MetadataSource
    category: str | None = None

    def preview(self, limit: int = DESCRIPTION_PREVIEW_CHARS) -> str:
        return self.description[:limit] + "..."

    def summary(self) -> dict[str, Any]:
        """Listing projection: guidelines are keyed by 'path' and carry a category."""
        if self.category is not None:
            return {
                "path": self.name,
                "category": self.category,
                "metadata": self.preview(),
                "source": self.metadata_source.value,
            }
        return {
            "name": self.name,
            "metadata": self.preview(),
            "source": self.metadata_source.value,
        }


ResourceMap = Mapping[str, ResourceMetadata]


def _frozen(items: Mapping[str, ResourceMetadata] | None = None) -> ResourceMap:
    return MappingProxyType(dict(items or {}))


@dataclass(frozen=True)
class ResourceSet:
    """One immutable snapshot of all three kind maps, produced by a single full scan."""

    agents: ResourceMap = field(default_factory=_frozen)
    guidelines: ResourceMap = field(default_factory=_frozen)
    frameworks: ResourceMap = field(default_factory=_frozen)

    @classmethod
    def from_maps(
        cls,
        agents: Mapping[str, ResourceMetadata] | None = None,
        guidelines: Mapping[str, ResourceMetadata] | None = None,
        frameworks: Mapping[str, ResourceMetadata] | None = None,
    ) -> ResourceSet:
        return cls(_frozen(agents), _frozen(guidelines), _frozen(frameworks))

    def for_kind(self, kind: ResourceKind) -> ResourceMap:
        if kind is ResourceKind.AGENT:
            return self.agents
        if kind is ResourceKind.GUIDELINE:
            return self.guidelines
        return self.frameworks

    def counts(self) -> dict[str, int]:
        return {kind.directory: len(self.for_kind(kind)) for kind in ResourceKind}
