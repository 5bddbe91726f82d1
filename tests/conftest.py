from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

from ai_context_mcp.security import SecurityBoundary

Writer = Callable[[str, str], Path]


@pytest.fixture
def root(tmp_path: Path) -> Path:
    """An empty .ai-context root inside the pytest tmp_path."""
    path = tmp_path / "ai-context"
    path.mkdir()
    return path.resolve()


@pytest.fixture
def write(root: Path) -> Writer:
    """Write a UTF-8 file at a root-relative path, creating parents."""

    def _write(rel_path: str, content: str) -> Path:
        path = root / rel_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def boundary(root: Path) -> SecurityBoundary:
    return SecurityBoundary(root)


@pytest.fixture
def sample_tree(write: Writer, root: Path) -> Path:
    """A small tree with one resource per kind plus noise files."""
    write("agents/planner.md", "---\ndescription: x\n---\n# Planner\n\nPlans work.\n")
    write(
        "agents/review/code-reviewer.md",
        "# Code Reviewer\n\n<!-- metadata\nReviews pull requests\n-->\n\nBody.\n",
    )
    write("agents/notes.txt", "not markdown\n")
    write("guidelines/dev/api.md", "# API\n\nUse REST.\n\nMore detail.\n")
    write("guidelines/style.md", "---\nscope: all\n---\nWrite clearly.\n")
    write("frameworks/memory/README.md", "# Memory\n\nStructured memory framework.\n")
    write("frameworks/empty/notes.md", "no entry file here\n")
    return root
