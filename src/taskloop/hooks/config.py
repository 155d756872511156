"""Hook configuration loaded from YAML."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, Any, List, Optional, Union

import yaml

from ..core.exceptions import ConfigError


class HookType(str, Enum):
    """How a hook is executed."""
    SHELL = "shell"
    AGENT = "agent"

    @classmethod
    def resolve(cls, value: Optional[str], field_name: str = "type") -> "HookType":
        """Parse a hook type; empty means shell."""
        if not value:
            return cls.SHELL
        try:
            return cls(str(value))
        except ValueError:
            raise ConfigError(field_name, f"unknown hook type {value!r} (expected shell or agent)")


class FailureMode(str, Enum):
    """What the control loop should do when a hook fails."""
    SKIP_TASK = "skip_task"
    WARN_CONTINUE = "warn_continue"
    ABORT_LOOP = "abort_loop"
    ASK_AGENT = "ask_agent"

    @classmethod
    def resolve(cls, value: Optional[str], field_name: str = "on_failure") -> "FailureMode":
        """Parse a failure mode; empty means warn_continue."""
        if not value:
            return cls.WARN_CONTINUE
        try:
            return cls(str(value))
        except ValueError:
            allowed = ", ".join(m.value for m in cls)
            raise ConfigError(field_name, f"unknown failure mode {value!r} (expected one of: {allowed})")


@dataclass
class HookDefinition:
    """A single configured hook."""
    type: HookType = HookType.SHELL
    command: str = ""
    model: str = ""
    agent: str = ""
    on_failure: FailureMode = FailureMode.WARN_CONTINUE

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        data = {
            "type": self.type.value,
            "command": self.command,
            "on_failure": self.on_failure.value,
        }
        if self.model:
            data["model"] = self.model
        if self.agent:
            data["agent"] = self.agent
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any], field_path: str = "hook") -> "HookDefinition":
        """
        Create HookDefinition from dictionary.

        Raises:
            ConfigError: If the entry is not a mapping or names an unknown type/mode
        """
        if not isinstance(data, dict):
            raise ConfigError(field_path, f"expected a mapping, got {type(data).__name__}")
        return cls(
            type=HookType.resolve(data.get("type"), f"{field_path}.type"),
            command=str(data.get("command") or ""),
            model=str(data.get("model") or ""),
            agent=str(data.get("agent") or ""),
            on_failure=FailureMode.resolve(data.get("on_failure"), f"{field_path}.on_failure"),
        )


@dataclass
class HooksConfig:
    """Pre-task and post-task hook definitions."""
    pre_task: List[HookDefinition] = field(default_factory=list)
    post_task: List[HookDefinition] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not self.pre_task and not self.post_task

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hooks": {
                "pre_task": [h.to_dict() for h in self.pre_task],
                "post_task": [h.to_dict() for h in self.post_task],
            }
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "HooksConfig":
        """
        Build from a parsed document of the form {"hooks": {"pre_task": [...], "post_task": [...]}}.

        Raises:
            ConfigError: On malformed structure or invalid entries
        """
        if not data:
            return cls()
        if not isinstance(data, dict):
            raise ConfigError("hooks", "configuration root must be a mapping")

        hooks = data.get("hooks") or {}
        if not isinstance(hooks, dict):
            raise ConfigError("hooks", "expected a mapping with pre_task/post_task lists")

        config = cls()
        for phase in ("pre_task", "post_task"):
            entries = hooks.get(phase) or []
            if not isinstance(entries, list):
                raise ConfigError(f"hooks.{phase}", "expected a list of hook definitions")
            definitions = [
                HookDefinition.from_dict(entry, f"hooks.{phase}[{i}]")
                for i, entry in enumerate(entries)
            ]
            setattr(config, phase, definitions)
        return config


def load_hooks_config(path: Union[str, Path]) -> HooksConfig:
    """
    Load hook definitions from a YAML file.
    A missing file yields an empty configuration.

    Raises:
        ConfigError: If the file is not valid YAML or has invalid entries
    """
    config_path = Path(path)
    if not config_path.exists():
        return HooksConfig()

    with open(config_path, 'r', encoding='utf-8') as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(str(config_path), f"invalid YAML: {e}")

    return HooksConfig.from_dict(data)
