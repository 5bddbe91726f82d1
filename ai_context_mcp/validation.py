"""
ai_context_mcp.validation

Metadata validation report for every markdown file under the root.

Files are bucketed as valid (explicit metadata), warnings (derived paragraph, or a
frontmatter block that is not a YAML mapping) or errors (unreadable).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

import yaml

from ai_context_mcp.errors import AiContextError
from ai_context_mcp.metadata import MetadataSource, extract_metadata
from ai_context_mcp.models import MARKDOWN_EXTENSION
from ai_context_mcp.security import SecurityBoundary

logger = logging.getLogger(__name__)

PREVIEW_CHARS = 50
DERIVED_WARNING = (
    "Using first paragraph - consider adding YAML frontmatter or an HTML metadata comment"
)


@dataclass
class ValidationReport:
    valid: list[dict[str, str]] = field(default_factory=list)
    warnings: list[dict[str, str]] = field(default_factory=list)
    errors: list[dict[str, str]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict[str, Any]:
        return {
            "valid": self.valid,
            "warnings": self.warnings,
            "errors": self.errors,
            "ok": self.ok,
        }

    def to_markdown(self) -> str:
        lines = [f"# Metadata Validation\n\nValid files: {len(self.valid)}\n"]
        for v in self.valid:
            lines.append(f"- `{v['file']}` ({v['source']}): {v['description']}\n")
        if self.warnings:
            lines.append(f"\n## Warnings: {len(self.warnings)}\n\n")
            for w in self.warnings:
                lines.append(f"- `{w['file']}`: {w['message']}\n")
        if self.errors:
            lines.append(f"\n## Errors: {len(self.errors)}\n\n")
            for e in self.errors:
                lines.append(f"- `{e['file']}`: {e['error']}\n")
        return "".join(lines)


def _frontmatter_problem(block: str) -> str | None:
    """Return a warning message if a structured block is not a YAML mapping."""
    try:
        data = yaml.safe_load(block) if block else {}
    except yaml.YAMLError as exc:
        problem = getattr(exc, "problem", None) or type(exc).__name__
        return f"Frontmatter is not valid YAML ({problem}); passed through as raw text"
    if data is not None and not isinstance(data, dict):
        return "Frontmatter does not parse to a mapping; passed through as raw text"
    return None


def validate_tree(boundary: SecurityBoundary, start: str = "") -> ValidationReport:
    """
    function_purpose: Walk every markdown file beneath start and report its metadata status.

    Directory access errors are recorded as errors rather than raised.
    """
    report = ValidationReport()
    visited: set[str] = set()

    def scan(rel_dir: str) -> None:
        try:
            real_dir = str(boundary.validate(rel_dir or "."))
            if real_dir in visited:
                return
            visited.add(real_dir)
            names = boundary.safe_list_directory(rel_dir or ".")
        except AiContextError as exc:
            report.errors.append(
                {"file": rel_dir or ".", "error": f"Cannot read directory: {exc}"}
            )
            return

        for name in names:
            rel = f"{rel_dir}/{name}" if rel_dir else name
            if boundary.is_directory_accessible(rel):
                scan(rel)
                continue
            if not name.lower().endswith(MARKDOWN_EXTENSION):
                continue

            try:
                extracted = extract_metadata(boundary.safe_read_file(rel))
            except AiContextError as exc:
                report.errors.append({"file": rel, "error": str(exc)})
                continue

            if extracted.source is MetadataSource.DERIVED:
                report.warnings.append({"file": rel, "message": DERIVED_WARNING})
                continue

            if extracted.source is MetadataSource.STRUCTURED:
                problem = _frontmatter_problem(extracted.content)
                if problem:
                    report.warnings.append({"file": rel, "message": problem})

            report.valid.append(
                {
                    "file": rel,
                    "source": extracted.source.value,
                    "description": extracted.content[:PREVIEW_CHARS] + "...",
                }
            )

    scan(start.strip("/"))
    logger.info(
        "Validation finished: %d valid, %d warnings, %d errors",
        len(report.valid),
        len(report.warnings),
        len(report.errors),
    )
    return report
