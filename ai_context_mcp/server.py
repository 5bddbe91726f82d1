"""
ai_context_mcp.server

FastMCP stdio server exposing an .ai-context folder (agents, guidelines, frameworks)
as dynamically generated MCP tools.

Server-level documentation:
- Purpose: Let MCP-aware clients load project-specific agents, guidelines and frameworks
  on demand without knowing the folder layout in advance.
- Why use it:
  * One load_* tool per discovered resource, described by the resource's own metadata
  * list_all_resources for discovery, load_multiple_resources for batch loading
  * Content is re-read from disk on every call
- Transport: STDIO by default (ideal for clients that spawn the server process)
- Safety: Every path is confined to AI_CONTEXT_ROOT (traversal, encoded sequences,
  NUL bytes and escaping symlinks are rejected)
- Logging: stderr + rotating file logs (stdout carries the protocol)

Environment: see ai_context_mcp.config (AI_CONTEXT_ROOT is required).

Usage:
- As a script:
  python -m ai_context_mcp            # starts stdio server
  python -m ai_context_mcp --help     # CLI for inspection without starting server

- As a module within MCP client config (stdio):
  command: ai-context-mcp
  env: {"AI_CONTEXT_ROOT": "/abs/path/.ai-context"}
"""

from __future__ import annotations

import json
import logging
import re
import sys
from collections.abc import Callable
from dataclasses import dataclass
from logging.handlers import RotatingFileHandler
from pathlib import Path

from fastmcp import FastMCP
from fastmcp.prompts.prompt import Message, PromptMessage

from ai_context_mcp.config import ServerConfig, load_config, resolve_log_file
from ai_context_mcp.context import AiContext
from ai_context_mcp.errors import AiContextError, RootConfigurationError
from ai_context_mcp.models import ResourceKind, ResourceMetadata, ResourceSet
from ai_context_mcp.security import SecurityBoundary
from ai_context_mcp.validation import validate_tree

SERVER_NAME = "ai-context-mcp"
LOGGER_NAME = "ai_context_mcp"

AGENT_TOOL_PREFIX = "load_"
GUIDELINE_TOOL_PREFIX = "load_guideline_"
FRAMEWORK_TOOL_PREFIX = "load_framework_"
LIST_ALL_RESOURCES = "list_all_resources"
LOAD_MULTIPLE_RESOURCES = "load_multiple_resources"
INSTRUCTIONS_URI = "instructions://system"
USAGE_PROMPT_NAME = "how-to-use-ai-context"

SYSTEM_INSTRUCTIONS = """
# AI Context MCP Server - Usage Instructions

## Overview
This MCP server provides dynamic access to project-specific AI agents, guidelines, and
frameworks from the .ai-context folder.

## Discovery-First Approach

### Step 1: Discover Available Resources
- Use 'list_all_resources' to see all agents, guidelines, and frameworks
- Review tool descriptions to understand each agent's purpose
- Never assume specific agents exist

### Step 2: Match Needs to Available Tools
Each load_* tool description is the resource's own metadata: expertise, use cases,
and capabilities.

### Step 3: Load Strategically
- Single agent: when one agent's description matches the task
- Multiple resources: use 'load_multiple_resources' when the task spans domains
- Sequential loading: start with the most relevant, add others as needed

## Best Practices

DO:
- Check what's available before making assumptions
- Explain your selection reasoning to users
- Combine complementary agents when beneficial

DON'T:
- Assume specific agents exist in any project
- Keep more than 3-4 agents loaded simultaneously
- Guess agent purposes - use the metadata provided

## Tool Naming Convention
- load_[name] - Loads a specific agent
- load_guideline_[name] - Loads a development guideline
- load_framework_[name] - Loads an architectural framework
- list_all_resources - Lists everything available
- load_multiple_resources - Loads multiple resources at once

Every project has different agents. Always discover what's available and match
descriptions to needs rather than assuming specific agents exist.
"""

LOAD_MULTIPLE_DESCRIPTION = """Load multiple resources (agents, guidelines, or frameworks) simultaneously for complex tasks.

Specify resources with prefixes:
- agent: for agents (e.g., "agent:planner")
- guideline: for guidelines (e.g., "guideline:development/api-design")
- framework: for frameworks (e.g., "framework:structured-memory")

Example: ["agent:planner", "agent:codebase", "guideline:testing/unit-testing"]"""

_GUIDELINE_SUFFIX_RES = (
    re.compile(r"_guidelines?$"),
    re.compile(r"[_-]guideline?s?$"),
)


# --- Logging setup ---
def configure_logging(log_file: Path | None = None) -> logging.Logger:
    """
    function_purpose: Configure package-wide logging to stderr and a rotating file.

    - Creates the log directory if needed; keeps stderr only when the file cannot be opened.
    - Console output goes to stderr; stdout is reserved for the stdio protocol.
    - Returns the configured package logger for reuse.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.INFO)
    if logger.handlers:
        return logger

    log_file = log_file or resolve_log_file()

    formatter = logging.Formatter(
        "%(asctime)s %(levelname)s %(name)s [%(threadName)s]: %(message)s"
    )

    # Console handler (stderr)
    sh = logging.StreamHandler(sys.stderr)
    sh.setLevel(logging.INFO)
    sh.setFormatter(formatter)
    logger.addHandler(sh)

    # Rotating file handler (5 files, 5MB each); stderr logging survives an unwritable path
    try:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        fh = RotatingFileHandler(log_file, maxBytes=5 * 1024 * 1024, backupCount=5)
    except OSError as exc:
        logger.warning("File logging disabled, cannot open %s: %s", str(log_file), exc)
        return logger
    fh.setLevel(logging.INFO)
    fh.setFormatter(formatter)
    logger.addHandler(fh)

    logger.info("Logging initialized. File: %s", str(log_file))
    return logger


logger = logging.getLogger(__name__)


# --- Tool naming ---
def agent_tool_name(name: str) -> str:
    return f"{AGENT_TOOL_PREFIX}{name.replace('-', '_')}"


def framework_tool_name(name: str) -> str:
    return f"{FRAMEWORK_TOOL_PREFIX}{name.replace('-', '_')}"


def guideline_tool_name(key: str) -> str:
    """
    function_purpose: Shorten a guideline key into a tool name.

    "testing/e2e/playwright_agent_guidelines" -> "load_guideline_playwright_agent".
    Names longer than 20 characters take their parent folder as context, capped at 30.
    """
    parts = key.split("/")
    last = parts[-1]
    for suffix_re in _GUIDELINE_SUFFIX_RES:
        last = suffix_re.sub("", last)

    short = last
    if len(last) > 20 and len(parts) > 1:
        short = f"{parts[-2]}_{last}"[:30]

    return GUIDELINE_TOOL_PREFIX + re.sub(r"[/\-]", "_", short)


def tool_description(kind: ResourceKind, meta: ResourceMetadata) -> str:
    if kind is ResourceKind.GUIDELINE:
        return f"Category: {meta.category}\nFull Path: {meta.name}\n\n{meta.description}"
    return meta.description or f"Load the {kind.value} '{meta.name}'"


@dataclass(frozen=True)
class ToolBinding:
    tool_name: str
    kind: ResourceKind
    key: str
    description: str


_TOOL_NAMERS: dict[ResourceKind, Callable[[str], str]] = {
    ResourceKind.AGENT: agent_tool_name,
    ResourceKind.GUIDELINE: guideline_tool_name,
    ResourceKind.FRAMEWORK: framework_tool_name,
}


def build_tool_bindings(resources: ResourceSet) -> dict[str, ToolBinding]:
    """
    function_purpose: Map every generated tool name to the resource it loads.

    Tool names must be unique across kinds and static tools; on a clash the first
    binding is kept and the later one is logged and skipped.
    """
    bindings: dict[str, ToolBinding] = {}
    reserved = {LIST_ALL_RESOURCES, LOAD_MULTIPLE_RESOURCES}
    for kind in ResourceKind:
        for key, meta in resources.for_kind(kind).items():
            tool_name = _TOOL_NAMERS[kind](key)
            if tool_name in reserved or tool_name in bindings:
                logger.warning(
                    "Tool name '%s' for %s '%s' already in use; skipped",
                    tool_name,
                    kind.value,
                    key,
                )
                continue
            bindings[tool_name] = ToolBinding(
                tool_name, kind, key, tool_description(kind, meta)
            )
    return bindings


def format_error(exc: Exception) -> str:
    return f"Error: {exc}"


# --- FastMCP server and tools ---
def build_server(context: AiContext) -> FastMCP:
    """
    function_purpose: Create the FastMCP server for one scanned AiContext.

    Registers one load_* tool per resource, the two static tools, the instructions
    resource and the usage prompt. Tool failures are returned as 'Error: ...' text.
    """
    mcp = FastMCP(SERVER_NAME, instructions=SYSTEM_INSTRUCTIONS)

    bindings = build_tool_bindings(context.resources)
    for binding in bindings.values():
        _register_load_tool(mcp, context, binding)

    @mcp.tool(
        name=LIST_ALL_RESOURCES,
        description=(
            "Lists all available agents, guidelines, and frameworks in the system "
            "with their metadata"
        ),
    )
    def list_all_resources() -> str:
        return json.dumps(context.describe(), indent=2, ensure_ascii=False)

    @mcp.tool(name=LOAD_MULTIPLE_RESOURCES, description=LOAD_MULTIPLE_DESCRIPTION)
    def load_multiple_resources(resources: list[str]) -> str:
        try:
            return context.load_many(resources)
        except Exception as exc:
            logger.exception("load_multiple_resources failed")
            return format_error(exc)

    @mcp.resource(
        INSTRUCTIONS_URI,
        name="System Instructions",
        description=(
            "The discovery-first instructions that guide AI assistants on how to "
            "use this MCP server"
        ),
        mime_type="text/plain",
    )
    def system_instructions() -> str:
        return SYSTEM_INSTRUCTIONS

    @mcp.prompt(
        name=USAGE_PROMPT_NAME,
        description=(
            "Learn how to use the AI Context MCP server with a discovery-first approach"
        ),
    )
    def how_to_use_ai_context() -> list[PromptMessage]:
        return [
            Message(
                "How should I use the AI Context MCP server to work with agents, "
                "guidelines, and frameworks?",
                role="user",
            ),
            Message(SYSTEM_INSTRUCTIONS, role="assistant"),
        ]

    logger.info(
        "Generated %d tools, 1 resource, and 1 prompt", len(bindings) + 2
    )
    return mcp


def _register_load_tool(mcp: FastMCP, context: AiContext, binding: ToolBinding) -> None:
    def load_resource() -> str:
        try:
            return context.load(binding.kind, binding.key)
        except AiContextError as exc:
            logger.warning("%s failed: %s", binding.tool_name, exc)
            return format_error(exc)

    mcp.tool(name=binding.tool_name, description=binding.description)(load_resource)


# --- Entry points ---
def _log_sample_tools(bindings: dict[str, ToolBinding]) -> None:
    sample: list[str] = []
    for kind in ResourceKind:
        sample.extend([b.tool_name for b in bindings.values() if b.kind is kind][:3])
    if sample:
        logger.info("Sample of registered tools: %s", ", ".join(sample))
    if len(bindings) > len(sample):
        logger.info("... and %d more tools", len(bindings) - len(sample))


def run(config: ServerConfig) -> None:
    """
    function_purpose: Entry point to start the MCP stdio server.

    - Validates the root and scans resources (fatal on a bad root)
    - Builds the FastMCP server
    - Runs the stdio transport
    """
    logger.info("Using AI_CONTEXT_ROOT: %s", str(config.root))
    logger.info(
        "Resource loading: agents=enabled guidelines=%s frameworks=%s",
        "enabled" if config.load_guidelines else "disabled",
        "enabled" if config.load_frameworks else "disabled",
    )
    context = AiContext.initialize(config.root, config.enabled_kinds)
    mcp = build_server(context)
    _log_sample_tools(build_tool_bindings(context.resources))
    logger.info("Server ready")
    mcp.run()  # stdio transport by default


def cli_main(argv: list[str] | None = None) -> int:
    """
    function_purpose: CLI for inspecting an .ai-context folder or starting the MCP server.

    Usage:
      python -m ai_context_mcp --list [--guidelines] [--frameworks]
      python -m ai_context_mcp --load KIND NAME
      python -m ai_context_mcp --validate
      python -m ai_context_mcp [--serve]
    """
    import argparse

    parser = argparse.ArgumentParser(
        prog="ai-context-mcp",
        description="Inspect an .ai-context folder or start the stdio MCP server.",
    )
    parser.add_argument(
        "--root", metavar="PATH", help="AI context root (overrides AI_CONTEXT_ROOT)"
    )
    parser.add_argument(
        "--list", action="store_true", help="List all discovered resources and exit"
    )
    parser.add_argument(
        "--load",
        nargs=2,
        metavar=("KIND", "NAME"),
        help="Print the raw content of resource NAME of KIND (agent/guideline/framework)",
    )
    parser.add_argument(
        "--validate",
        action="store_true",
        help="Report metadata extraction status for every markdown file and exit",
    )
    parser.add_argument(
        "--guidelines", action="store_true", help="Enable guideline scanning"
    )
    parser.add_argument(
        "--frameworks", action="store_true", help="Enable framework scanning"
    )
    parser.add_argument(
        "--serve",
        action="store_true",
        help="Start MCP stdio server (default when no flags used)",
    )

    args = parser.parse_args(argv)

    try:
        config = load_config(root_override=args.root)
    except RootConfigurationError as exc:
        configure_logging()
        logger.error("Failed to start: %s", exc)
        return 1

    if args.guidelines or args.frameworks:
        config = ServerConfig(
            root=config.root,
            load_guidelines=config.load_guidelines or args.guidelines,
            load_frameworks=config.load_frameworks or args.frameworks,
            log_file=config.log_file,
        )
    configure_logging(config.log_file)

    try:
        if args.validate:
            logger.info("Validating metadata under %s", str(config.root))
            report = validate_tree(SecurityBoundary(config.root))
            print(json.dumps(report.to_dict(), indent=2, ensure_ascii=False))
            return 0 if report.ok else 1

        if args.list or args.load:
            # Explicit --load of a disabled kind still needs that kind scanned.
            kinds = set(config.enabled_kinds)
            if args.load:
                kinds.add(ResourceKind.parse(args.load[0]))
            context = AiContext.initialize(config.root, kinds)

            if args.list:
                print(json.dumps(context.describe(), indent=2, ensure_ascii=False))
                return 0

            kind_text, name = args.load
            sys.stdout.write(context.load(ResourceKind.parse(kind_text), name))
            return 0

        run(config)
    except (AiContextError, ValueError) as exc:
        logger.error("%s", exc)
        return 1
    return 0


def main() -> None:
    sys.exit(cli_main())


if __name__ == "__main__":
    main()
