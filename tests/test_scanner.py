from __future__ import annotations

import logging
from pathlib import Path

import pytest

from ai_context_mcp.metadata import MetadataSource
from ai_context_mcp.models import ResourceKind
from ai_context_mcp.scanner import ResourceScanner
from ai_context_mcp.security import SecurityBoundary


def _scanner(root: Path) -> ResourceScanner:
    return ResourceScanner(SecurityBoundary(root))


def _case_sensitive(directory: Path) -> bool:
    probe = directory / "CaseProbe"
    probe.write_text("", encoding="utf-8")
    try:
        return not (directory / "caseprobe").exists()
    finally:
        probe.unlink()


def test_scan_flat_structured_agent(root: Path, write) -> None:
    write("agents/planner.md", "---\ndescription: x\n---\n# Planner")
    agents = _scanner(root).scan_flat("agents")

    assert list(agents) == ["planner"]
    planner = agents["planner"]
    assert planner.name == "planner"
    assert planner.description == "description: x"
    assert planner.metadata_source is MetadataSource.STRUCTURED
    assert planner.path == root / "agents" / "planner.md"
    assert planner.category is None


def test_scan_flat_recurses_and_filters_markdown(sample_tree: Path, write) -> None:
    write("agents/deep/er/UPPER.MD", "Upper case extension.")
    agents = _scanner(sample_tree).scan_flat("agents")

    assert set(agents) == {"planner", "code-reviewer", "UPPER"}
    reviewer = agents["code-reviewer"]
    assert reviewer.metadata_source is MetadataSource.INLINE_COMMENT
    assert reviewer.description == "Reviews pull requests"


def test_scan_categorized_derived_guideline(root: Path, write) -> None:
    write("guidelines/dev/api.md", "Use REST.\n\nDetails follow.\n")
    guidelines = _scanner(root).scan_categorized("guidelines")

    assert list(guidelines) == ["dev/api"]
    api = guidelines["dev/api"]
    assert api.category == "dev"
    assert api.description == "Use REST."
    assert api.metadata_source is MetadataSource.DERIVED


def test_scan_categorized_nesting_and_default_category(sample_tree: Path, write) -> None:
    write("guidelines/testing/e2e/playwright.md", "# PW\n\nEnd to end.\n")
    guidelines = _scanner(sample_tree).scan_categorized("guidelines")

    assert guidelines["style"].category == "general"
    assert guidelines["testing/e2e/playwright"].category == "testing"
    assert guidelines["dev/api"].category == "dev"


def test_scan_named_entry_uses_entry_file(sample_tree: Path) -> None:
    frameworks = _scanner(sample_tree).scan_named_entry("frameworks")

    assert list(frameworks) == ["memory"]
    memory = frameworks["memory"]
    assert memory.description == "Structured memory framework."
    assert memory.path.name == "README.md"


def test_scan_named_entry_accepts_lowercase_variants(root: Path, write) -> None:
    write("frameworks/alpha/readme.md", "alpha readme")
    write("frameworks/beta/Readme.md", "beta readme")
    write("frameworks/loose.md", "files at the kind root are ignored")
    frameworks = _scanner(root).scan_named_entry("frameworks")

    assert set(frameworks) == {"alpha", "beta"}
    assert frameworks["alpha"].description == "alpha readme"
    assert frameworks["beta"].description == "beta readme"


def test_scan_named_entry_priority_order(root: Path, write) -> None:
    fw = root / "frameworks" / "both"
    fw.mkdir(parents=True)
    if not _case_sensitive(fw):
        pytest.skip("case-insensitive filesystem")
    write("frameworks/both/readme.md", "lowercase")
    write("frameworks/both/README.md", "uppercase")
    write("frameworks/both/Readme.md", "capitalized")

    frameworks = _scanner(root).scan_named_entry("frameworks")
    assert frameworks["both"].description == "uppercase"

    frameworks = _scanner(root).scan_named_entry(
        "frameworks", entry_names=("Readme.md", "README.md")
    )
    assert frameworks["both"].description == "capitalized"


@pytest.mark.parametrize("kind", list(ResourceKind))
def test_missing_kind_root_yields_empty_map(root: Path, kind: ResourceKind) -> None:
    assert _scanner(root).scan(kind) == {}


def test_kind_root_that_is_a_file_yields_empty_map(root: Path, write) -> None:
    write("agents", "not a directory")
    assert _scanner(root).scan_flat("agents") == {}


def test_scan_is_idempotent(sample_tree: Path) -> None:
    scanner = _scanner(sample_tree)
    first = scanner.scan_all()
    second = scanner.scan_all()
    assert dict(first.agents) == dict(second.agents)
    assert dict(first.guidelines) == dict(second.guidelines)
    assert dict(first.frameworks) == dict(second.frameworks)


def test_collision_last_write_wins_in_sorted_order(
    root: Path, write, caplog: pytest.LogCaptureFixture
) -> None:
    write("agents/a/dup.md", "from a")
    write("agents/b/dup.md", "from b")

    with caplog.at_level(logging.WARNING, logger="ai_context_mcp.scanner"):
        agents = _scanner(root).scan_flat("agents")

    assert agents["dup"].description == "from b"
    assert agents["dup"].path == root / "agents" / "b" / "dup.md"
    assert "Duplicate agent name 'dup'" in caplog.text


def test_derived_extraction_is_logged(
    root: Path, write, caplog: pytest.LogCaptureFixture
) -> None:
    write("agents/plain.md", "# Plain\n\nNo markers here.\n")
    write("agents/marked.md", "---\nx: y\n---\n")

    with caplog.at_level(logging.WARNING, logger="ai_context_mcp.scanner"):
        _scanner(root).scan_flat("agents")

    assert "Using paragraph extraction for agent plain" in caplog.text
    assert "marked" not in caplog.text


def test_unreadable_file_is_skipped(root: Path, write) -> None:
    write("agents/good.md", "Good agent.")
    (root / "agents" / "binary.md").write_bytes(b"\xff\xfe\x00garbage")

    agents = _scanner(root).scan_flat("agents")
    assert set(agents) == {"good"}


def test_escaping_symlink_is_skipped(root: Path, write, tmp_path: Path) -> None:
    write("agents/good.md", "Good agent.")
    secret = tmp_path / "secret.md"
    secret.write_text("leaked", encoding="utf-8")
    try:
        (root / "agents" / "evil.md").symlink_to(secret)
    except (OSError, NotImplementedError):
        pytest.skip("symlinks not supported")

    agents = _scanner(root).scan_flat("agents")
    assert set(agents) == {"good"}


def test_directory_loop_is_walked_once(root: Path, write) -> None:
    write("agents/one.md", "One.")
    try:
        (root / "agents" / "loop").symlink_to(root / "agents", target_is_directory=True)
    except (OSError, NotImplementedError):
        pytest.skip("symlinks not supported")

    agents = _scanner(root).scan_flat("agents")
    assert set(agents) == {"one"}


def test_scan_all_respects_enabled_kinds(sample_tree: Path) -> None:
    resources = _scanner(sample_tree).scan_all([ResourceKind.AGENT])
    assert len(resources.agents) == 2
    assert len(resources.guidelines) == 0
    assert len(resources.frameworks) == 0


def test_scan_all_maps_are_immutable(sample_tree: Path) -> None:
    resources = _scanner(sample_tree).scan_all()
    assert resources.counts() == {"agents": 2, "guidelines": 2, "frameworks": 1}
    with pytest.raises(TypeError):
        resources.agents["new"] = resources.agents["planner"]  # type: ignore[index]
