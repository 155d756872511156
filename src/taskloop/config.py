"""Configuration for the task loop."""

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def _env_or_default(name: str, default: Optional[str]) -> Optional[str]:
    """
    Get environment variable value or default, treating empty string as unset.

    Compose files and CI often pass variables like DEFAULT_MODEL="", which
    should behave the same as not setting them.
    """
    value = os.getenv(name, None)
    if value is None or value == "":
        return default
    return value


def _env_flag(name: str, default: str = "false") -> bool:
    return (_env_or_default(name, default) or default).lower() == "true"


# Project root
PROJECT_ROOT = Path(_env_or_default("PROJECT_ROOT", ".")).resolve()

# State Configuration
STATE_DIR = _env_or_default("STATE_DIR", ".taskloop")
TASKS_FILE = _env_or_default("TASKS_FILE", "tasks.json")
HOOKS_FILE = _env_or_default("HOOKS_FILE", str(Path(STATE_DIR) / "hooks.yaml"))

# Logging Configuration
LOG_DIR = _env_or_default("LOG_DIR", str(Path(STATE_DIR) / "logs"))
LOG_LEVEL = _env_or_default("LOG_LEVEL", "INFO")
LOG_FSYNC = _env_flag("LOG_FSYNC")

# Agent Configuration
DEFAULT_AGENT = _env_or_default("DEFAULT_AGENT", "")
DEFAULT_MODEL = _env_or_default("DEFAULT_MODEL", "")  # "" = use the agent's default

# Hook Configuration
HOOK_TIMEOUT_SECONDS = int(_env_or_default("HOOK_TIMEOUT_SECONDS", "600"))

# Dashboard Configuration
DASHBOARD_REFRESH_SECONDS = float(_env_or_default("DASHBOARD_REFRESH_SECONDS", "2.0"))


def resolve_path(value: str, base: Optional[Path] = None) -> Path:
    """Resolve value against base (default PROJECT_ROOT) unless it is absolute."""
    path = Path(value)
    if path.is_absolute():
        return path
    return (base or PROJECT_ROOT) / path


def tasks_path(project_root: Optional[Path] = None) -> Path:
    """Path of the task store file."""
    root = project_root or PROJECT_ROOT
    return resolve_path(TASKS_FILE, resolve_path(STATE_DIR, root))


def hooks_path(project_root: Optional[Path] = None) -> Path:
    return resolve_path(HOOKS_FILE, project_root or PROJECT_ROOT)


def log_dir(project_root: Optional[Path] = None) -> Path:
    return resolve_path(LOG_DIR, project_root or PROJECT_ROOT)
