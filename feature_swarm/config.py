"""
Configuration loading and validation for Feature Swarm.

This module handles:
- Loading config.yaml from the project root
- Environment variable resolution (${VAR} syntax)
- Per-agent model overrides merged over role defaults
- Range validation for lifecycle thresholds
- Caching of the loaded configuration
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Optional

import yaml

from feature_swarm.models import AgentRole


class ConfigError(Exception):
    """Raised when configuration is invalid or cannot be loaded."""
    pass


@dataclass
class AgentModelConfig:
    """Per-role model settings."""
    model: str = ""                            # Empty means the provider default
    max_turns: int = 15                        # Maximum conversation turns
    temperature: float = 0.3                   # Sampling temperature
    max_tokens: int = 2048                     # Response token budget

    def to_dict(self) -> dict[str, Any]:
        return {
            "model": self.model,
            "max_turns": self.max_turns,
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }


def default_agent_config() -> dict[str, AgentModelConfig]:
    """Return a fresh copy of the default per-role settings."""
    defaults = {
        AgentRole.PM: AgentModelConfig(max_turns=15, temperature=0.3),
        AgentRole.ARCHITECT: AgentModelConfig(max_turns=20, temperature=0.3),
        AgentRole.BEST_PRACTICES: AgentModelConfig(max_turns=10, temperature=0.5, max_tokens=1024),
        AgentRole.TDD_DEVELOPER: AgentModelConfig(max_turns=30, temperature=0.2),
        AgentRole.QA: AgentModelConfig(max_turns=20, temperature=0.2, max_tokens=1024),
        AgentRole.EXTERNAL_REVIEWER: AgentModelConfig(
            max_turns=15, temperature=0.4, max_tokens=1024
        ),
        AgentRole.SECURITY_AUDITOR: AgentModelConfig(
            max_turns=10, temperature=0.2, max_tokens=1024
        ),
        AgentRole.INTEGRATOR: AgentModelConfig(max_turns=20, temperature=0.2, max_tokens=1024),
    }
    return {role.value: settings for role, settings in defaults.items()}


@dataclass
class LifecycleConfig:
    """Thresholds and limits for a swarm run."""
    min_score: int = 85                        # Review / global score threshold (0-100)
    max_iterations: int = 10                   # Implement-loop bound per feature
    no_questions: bool = False                 # Skip clarification questions
    max_questions: int = 3                     # Clarification question budget


@dataclass
class ClaudeConfig:
    """Claude Code CLI configuration for the default provider."""
    binary: str = "claude"                     # Path to claude binary
    model: str = ""                            # Model override (empty = CLI default)
    timeout_seconds: int = 300                 # Command timeout in seconds


@dataclass
class SwarmConfig:
    """
    Main configuration for Feature Swarm.

    This is the top-level config loaded from config.yaml.
    """
    # Paths
    repo_root: str = "."
    swarm_dir: str = ".swarm"
    output_dir: str = "swarm-output"

    # Nested configurations
    lifecycle: LifecycleConfig = field(default_factory=LifecycleConfig)
    claude: ClaudeConfig = field(default_factory=ClaudeConfig)
    agents: dict[str, AgentModelConfig] = field(default_factory=default_agent_config)

    def __post_init__(self) -> None:
        """Convert paths to absolute paths based on repo_root."""
        self.repo_root = str(Path(self.repo_root).absolute())

    @property
    def swarm_path(self) -> Path:
        """Absolute path to .swarm directory."""
        return Path(self.repo_root) / self.swarm_dir

    @property
    def logs_path(self) -> Path:
        """Absolute path to logs directory."""
        return self.swarm_path / "logs"

    @property
    def board_path(self) -> Path:
        return self.swarm_path / "task-board.json"

    @property
    def events_path(self) -> Path:
        return self.swarm_path / "events.jsonl"

    @property
    def knowledge_path(self) -> Path:
        return self.swarm_path / "knowledge.jsonl"

    @property
    def output_path(self) -> Path:
        """Absolute path to the output artifacts directory."""
        output = Path(self.output_dir)
        if output.is_absolute():
            return output
        return Path(self.repo_root) / output


# Module-level cache for the loaded configuration
_config_cache: Optional[SwarmConfig] = None


def _resolve_env_vars(value: Any) -> Any:
    """
    Resolve environment variables in a value.

    Supports ${VAR} syntax for environment variable substitution.
    Returns the original value if it's not a string.
    """
    if isinstance(value, str):
        pattern = re.compile(r'\$\{([A-Za-z_][A-Za-z0-9_]*)\}')

        def replace_var(match: re.Match) -> str:
            var_name = match.group(1)
            env_value = os.environ.get(var_name)
            if env_value is None:
                raise ConfigError(f"Environment variable ${{{var_name}}} is not set")
            return env_value

        return pattern.sub(replace_var, value)

    if isinstance(value, dict):
        return {k: _resolve_env_vars(v) for k, v in value.items()}

    if isinstance(value, list):
        return [_resolve_env_vars(item) for item in value]

    return value


def _parse_lifecycle_config(data: dict[str, Any]) -> LifecycleConfig:
    """Parse and validate lifecycle configuration."""
    config = LifecycleConfig(
        min_score=data.get("min_score", 85),
        max_iterations=data.get("max_iterations", 10),
        no_questions=data.get("no_questions", False),
        max_questions=data.get("max_questions", 3),
    )
    validate_lifecycle(config.min_score, config.max_iterations)
    if config.max_questions < 0:
        raise ConfigError("lifecycle.max_questions must be >= 0")
    return config


def _parse_claude_config(data: dict[str, Any]) -> ClaudeConfig:
    """Parse Claude configuration from dict."""
    return ClaudeConfig(
        binary=data.get("binary", "claude"),
        model=data.get("model", ""),
        timeout_seconds=data.get("timeout_seconds", 300),
    )


def _parse_agents_config(data: dict[str, Any]) -> dict[str, AgentModelConfig]:
    """Merge per-role overrides over the defaults."""
    merged = default_agent_config()
    for role, overrides in data.items():
        if role not in merged:
            raise ConfigError(f"Unknown agent role in config: {role}")
        if not isinstance(overrides, dict):
            raise ConfigError(f"agents.{role} must be a mapping")
        base = merged[role]
        merged[role] = replace(
            base,
            model=overrides.get("model", base.model),
            max_turns=overrides.get("max_turns", base.max_turns),
            temperature=overrides.get("temperature", base.temperature),
            max_tokens=overrides.get("max_tokens", base.max_tokens),
        )
    return merged


def validate_lifecycle(min_score: int, max_iterations: int) -> None:
    """
    Validate run thresholds.

    Raises:
        ConfigError: If min_score is outside 0..100 or max_iterations < 1.
    """
    if not 0 <= min_score <= 100:
        raise ConfigError(f"min_score must be between 0 and 100, got {min_score}")
    if max_iterations < 1:
        raise ConfigError(f"max_iterations must be a positive number, got {max_iterations}")


def load_config(config_path: Optional[str] = None) -> SwarmConfig:
    """
    Load configuration from config.yaml.

    Args:
        config_path: Optional path to config file. If not provided,
                     looks for config.yaml in current directory.

    Returns:
        SwarmConfig: Loaded and validated configuration.

    Raises:
        ConfigError: If config is invalid or cannot be loaded.
    """
    if config_path is None:
        config_path = "config.yaml"

    path = Path(config_path)
    if not path.exists():
        raise ConfigError(f"Configuration file not found: {config_path}")

    try:
        with open(path, "r") as f:
            raw_data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in config file: {e}")

    if not raw_data:
        raise ConfigError("Configuration file is empty")

    data = _resolve_env_vars(raw_data)

    return SwarmConfig(
        repo_root=data.get("repo_root", str(path.parent)),
        swarm_dir=data.get("swarm_dir", ".swarm"),
        output_dir=data.get("output_dir", "swarm-output"),
        lifecycle=_parse_lifecycle_config(data.get("lifecycle", {})),
        claude=_parse_claude_config(data.get("claude", {})),
        agents=_parse_agents_config(data.get("agents", {})),
    )


def default_config(repo_root: str = ".") -> SwarmConfig:
    """Build a config with all defaults, for running without config.yaml."""
    return SwarmConfig(repo_root=repo_root)


def get_config(config_path: Optional[str] = None, force_reload: bool = False) -> SwarmConfig:
    """
    Get the cached configuration, loading it if necessary.

    Args:
        config_path: Optional path to config file.
        force_reload: If True, reload configuration even if cached.

    Raises:
        ConfigError: If config is invalid or cannot be loaded.
    """
    global _config_cache

    if _config_cache is None or force_reload:
        _config_cache = load_config(config_path)

    return _config_cache


def clear_config_cache() -> None:
    """Clear the configuration cache. Useful for testing."""
    global _config_cache
    _config_cache = None
