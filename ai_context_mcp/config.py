"""
ai_context_mcp.config

Environment configuration for the server.

Environment:
- AI_CONTEXT_ROOT:             absolute path to the .ai-context folder (required)
- AI_CONTEXT_LOAD_GUIDELINES:  'true' to expose guidelines (default: false)
- AI_CONTEXT_LOAD_FRAMEWORKS:  'true' to expose frameworks (default: false)
- LOG_FILE:                    rotating log file path (default: <cwd>/logs/ai_context_mcp.log)
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from ai_context_mcp.errors import ConfigurationError
from ai_context_mcp.models import ResourceKind

ROOT_ENV = "AI_CONTEXT_ROOT"
LOAD_GUIDELINES_ENV = "AI_CONTEXT_LOAD_GUIDELINES"
LOAD_FRAMEWORKS_ENV = "AI_CONTEXT_LOAD_FRAMEWORKS"
LOG_FILE_ENV = "LOG_FILE"
DEFAULT_LOG_FILE = Path("logs") / "ai_context_mcp.log"

_EXAMPLE_CLIENT_CONFIG = """{
  "mcpServers": {
    "ai-context": {
      "command": "ai-context-mcp",
      "env": {
        "AI_CONTEXT_ROOT": "/absolute/path/to/your/project/.ai-context"
      }
    }
  }
}"""


def _env_flag(environ: Mapping[str, str], name: str) -> bool:
    return environ.get(name, "").strip().lower() == "true"


@dataclass(frozen=True)
class ServerConfig:
    root: Path
    load_guidelines: bool = False
    load_frameworks: bool = False
    log_file: Path = DEFAULT_LOG_FILE

    @property
    def enabled_kinds(self) -> tuple[ResourceKind, ...]:
        """Agents are always enabled; guidelines and frameworks are opt-in."""
        kinds = [ResourceKind.AGENT]
        if self.load_guidelines:
            kinds.append(ResourceKind.GUIDELINE)
        if self.load_frameworks:
            kinds.append(ResourceKind.FRAMEWORK)
        return tuple(kinds)


def resolve_log_file(environ: Mapping[str, str] | None = None) -> Path:
    env = os.environ if environ is None else environ
    log_file_env = env.get(LOG_FILE_ENV)
    return Path(log_file_env) if log_file_env else DEFAULT_LOG_FILE.resolve()


def load_config(
    environ: Mapping[str, str] | None = None, root_override: str | None = None
) -> ServerConfig:
    """
    function_purpose: Build ServerConfig from the environment.

    root_override (e.g. from --root) takes precedence over AI_CONTEXT_ROOT.
    Raises ConfigurationError when no root is configured or it does not exist; the
    SecurityBoundary performs the authoritative directory check afterwards.
    """
    env = os.environ if environ is None else environ
    root_value = root_override or env.get(ROOT_ENV, "").strip()
    if not root_value:
        raise ConfigurationError(
            f"{ROOT_ENV} environment variable is required.\n\n"
            f"Please set {ROOT_ENV} to the absolute path of your .ai-context folder.\n"
            f"Example MCP client configuration:\n{_EXAMPLE_CLIENT_CONFIG}"
        )

    root = Path(root_value).expanduser().resolve()
    if not root.exists():
        raise ConfigurationError(
            f"{ROOT_ENV} was set to '{root_value}' but path does not exist.\n"
            "Please check the path and ensure the .ai-context folder exists."
        )

    return ServerConfig(
        root=root,
        load_guidelines=_env_flag(env, LOAD_GUIDELINES_ENV),
        load_frameworks=_env_flag(env, LOAD_FRAMEWORKS_ENV),
        log_file=resolve_log_file(env),
    )
