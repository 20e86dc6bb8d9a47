"""
Configuration management and validation for the agent runtime.

Provides YAML configuration loading, environment variable overrides and
validation for providers, sessions, spawning, cost limits, roles and
governance.
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from agent_runtime.lib.errors import ConfigurationError
from agent_runtime.models.cost import CostLimits
from agent_runtime.models.governance import GovernanceSchema
from agent_runtime.models.spawn import SpawnPolicy


logger = logging.getLogger(__name__)

DEFAULT_GOVERNANCE_PATH = Path(__file__).parent / "default_governance.yaml"

DEFAULT_MAX_TOKENS = 4096

DEFAULT_PROVIDER_SETTINGS: Dict[str, Dict[str, Any]] = {
    "anthropic": {
        "model": "claude-sonnet-4-20250514",
        "api_key_env": "ANTHROPIC_API_KEY",
        "base_url": "https://api.anthropic.com",
    },
    "openai": {
        "model": "gpt-4o",
        "api_key_env": "OPENAI_API_KEY",
        "base_url": "https://api.openai.com",
    },
    "gemini": {
        "model": "gemini-2.0-flash",
        "api_key_env": "GEMINI_API_KEY",
        "base_url": "https://generativelanguage.googleapis.com",
    },
    "ollama": {
        "model": "llama2",
        "api_key_env": None,
        "base_url": "http://localhost:11434",
    },
}


class ObservabilityConfig(BaseModel):
    """Configuration for observability settings."""
    service_name: str = "agent-runtime"
    service_version: str = "0.1.0"
    environment: str = "development"
    exporter: str = Field(default="otlp", pattern="^(otlp|console|none)$")
    otlp_endpoint: str = "http://localhost:4317"
    trace_sampling_ratio: float = Field(default=1.0, ge=0.0, le=1.0)
    export_timeout: int = Field(default=30, gt=0)
    max_export_batch_size: int = Field(default=512, gt=0)
    resource_attributes: Dict[str, str] = Field(default_factory=dict)
    auto_instrument: bool = True


class LoggingConfig(BaseModel):
    """Configuration for logging settings."""
    level: str = Field(default="INFO", pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")
    format: str = Field(default="structured", pattern="^(structured|simple)$")
    directory: str = "~/.agent-runtime/logs"
    max_file_size: int = Field(default=10 * 1024 * 1024, gt=0)  # 10MB
    backup_count: int = Field(default=5, ge=1)
    include_trace: bool = True
    environment: str = "development"

    @field_validator("level", mode="before")
    def normalize_level(cls, v):
        return v.upper() if isinstance(v, str) else v


class ProviderSettings(BaseModel):
    """Connection and generation settings for one model backend."""
    model: str
    api_key_env: Optional[str] = None
    base_url: str
    max_tokens: int = Field(default=DEFAULT_MAX_TOKENS, gt=0)
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    timeout_seconds: float = Field(default=120.0, gt=0)

    @field_validator("base_url")
    def strip_trailing_slash(cls, v):
        return v.rstrip("/")


class ProvidersConfig(BaseModel):
    """Provider selection plus per-vendor settings."""
    default: str = "anthropic"
    vendors: Dict[str, ProviderSettings] = Field(default_factory=dict, validate_default=True)

    @field_validator("vendors", mode="before")
    def merge_vendor_defaults(cls, v):
        """Fill each known vendor from built-in defaults, overlaying configured keys."""
        merged: Dict[str, Any] = {name: dict(values) for name, values in DEFAULT_PROVIDER_SETTINGS.items()}
        for name, values in (v or {}).items():
            if isinstance(values, BaseModel):
                values = values.model_dump()
            merged.setdefault(name, {}).update(values or {})
        return merged

    @field_validator("default")
    def normalize_default(cls, v):
        return v.strip().lower()

    def settings_for(self, name: str) -> ProviderSettings:
        """Get settings for a vendor, falling back to built-in defaults."""
        key = name.strip().lower()
        if key in self.vendors:
            return self.vendors[key]
        if key in DEFAULT_PROVIDER_SETTINGS:
            return ProviderSettings(**DEFAULT_PROVIDER_SETTINGS[key])
        raise ConfigurationError(f"Unknown provider: {name}")


class SessionConfig(BaseModel):
    """Configuration for session persistence, relative to the workspace root."""
    storage_directory: str = ".agent-runtime/sessions"
    audit_directory: str = ".agent-runtime/metrics"
    cleanup_after_days: int = Field(default=30, ge=1)


class RoleConfig(BaseModel):
    """Tool permissions for one role."""
    tool_ids: List[str] = Field(default_factory=list)
    name: Optional[str] = None
    description: Optional[str] = None


class RuntimeConfig(BaseModel):
    """Main agent runtime configuration."""
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    providers: ProvidersConfig = Field(default_factory=ProvidersConfig)
    session: SessionConfig = Field(default_factory=SessionConfig)
    spawn: SpawnPolicy = Field(default_factory=SpawnPolicy)
    cost: CostLimits = Field(default_factory=CostLimits)
    roles: Dict[str, RoleConfig] = Field(default_factory=dict)
    governance: GovernanceSchema = Field(default_factory=GovernanceSchema)

    workspace_root: str = "."
    debug: bool = False
    config_file_path: Optional[str] = None

    def sessions_path(self) -> Path:
        return Path(self.workspace_root) / self.session.storage_directory

    def audit_path(self) -> Path:
        return Path(self.workspace_root) / self.session.audit_directory


def load_governance_schema(path: Path = DEFAULT_GOVERNANCE_PATH) -> GovernanceSchema:
    """Load a governance schema document from YAML."""
    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
        return GovernanceSchema(**data)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in governance file {path}: {e}") from e
    except ValidationError as e:
        raise ConfigurationError(f"Governance schema validation failed for {path}: {e}") from e
    except OSError as e:
        raise ConfigurationError(f"Cannot read governance file {path}: {e}") from e


class ConfigurationManager:
    """Manages agent runtime configuration loading and validation."""

    ENV_MAPPINGS = {
        "AGENT_RUNTIME_PROVIDER": ["providers", "default"],
        "AGENT_RUNTIME_LOG_LEVEL": ["logging", "level"],
        "AGENT_RUNTIME_MAX_NESTING_DEPTH": ["spawn", "max_nesting_depth"],
        "AGENT_RUNTIME_MAX_TOKENS": ["cost", "max_tokens"],
        "AGENT_RUNTIME_MAX_COST": ["cost", "max_cost"],
        "AGENT_RUNTIME_WORKSPACE": ["workspace_root"],
        "AGENT_RUNTIME_DEBUG": ["debug"],
        "OLLAMA_HOST": ["providers", "vendors", "ollama", "base_url"],
        "OLLAMA_MODEL": ["providers", "vendors", "ollama", "model"],
        "OTEL_EXPORTER_OTLP_ENDPOINT": ["observability", "otlp_endpoint"],
    }

    def __init__(self, config_path: Optional[str] = None):
        self.config_path = config_path or self._get_default_config_path()
        self.config: Optional[RuntimeConfig] = None

    def _get_default_config_path(self) -> Optional[str]:
        """Get the default configuration file path, if one exists."""
        if "AGENT_RUNTIME_CONFIG_PATH" in os.environ:
            return os.environ["AGENT_RUNTIME_CONFIG_PATH"]

        candidates = [
            "./agent-runtime.yaml",
            "./config/agent-runtime.yaml",
            "~/.agent-runtime/config.yaml"
        ]

        for candidate in candidates:
            path = Path(candidate).expanduser()
            if path.exists():
                return str(path)

        return None

    def load_config(self, config_path: Optional[str] = None) -> RuntimeConfig:
        """Load and validate configuration from file and environment."""
        if config_path:
            self.config_path = config_path

        config_data: Dict[str, Any] = {}
        config_file: Optional[Path] = None

        if self.config_path:
            config_file = Path(self.config_path).expanduser()
            if not config_file.exists():
                raise ConfigurationError(f"Configuration file not found: {config_file}")
            try:
                with open(config_file, "r") as f:
                    config_data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigurationError(f"Invalid YAML in config file {config_file}: {e}") from e
            except OSError as e:
                raise ConfigurationError(f"Error reading configuration {config_file}: {e}") from e

        if not isinstance(config_data, dict):
            raise ConfigurationError(f"Configuration root must be a mapping: {config_file}")

        config_data = self._merge_environment_config(config_data)

        if "governance" not in config_data:
            config_data["governance"] = load_governance_schema().model_dump()

        try:
            self.config = RuntimeConfig(**config_data)
        except ValidationError as e:
            raise ConfigurationError(f"Configuration validation failed: {e}") from e

        self.config.config_file_path = str(config_file) if config_file else None
        logger.info(f"Configuration loaded from {self.config.config_file_path or 'defaults'}")
        return self.config

    def _merge_environment_config(self, config_data: Dict[str, Any]) -> Dict[str, Any]:
        """Merge configuration with environment variables."""
        for env_var, config_path in self.ENV_MAPPINGS.items():
            if env_var not in os.environ:
                continue

            value: Any = os.environ[env_var]

            if env_var in ("AGENT_RUNTIME_MAX_NESTING_DEPTH", "AGENT_RUNTIME_MAX_TOKENS"):
                try:
                    value = int(value)
                except ValueError as e:
                    raise ConfigurationError(f"{env_var} must be an integer, got {value!r}") from e
            elif env_var == "AGENT_RUNTIME_MAX_COST":
                try:
                    value = float(value)
                except ValueError as e:
                    raise ConfigurationError(f"{env_var} must be a number, got {value!r}") from e
            elif env_var == "AGENT_RUNTIME_DEBUG":
                value = value.lower() in ("true", "1", "yes")

            current = config_data
            for key in config_path[:-1]:
                current = current.setdefault(key, {})
            current[config_path[-1]] = value

        return config_data

    def get_config(self) -> RuntimeConfig:
        """Get the loaded configuration."""
        if self.config is None:
            raise ConfigurationError("Configuration not loaded. Call load_config() first.")
        return self.config

    def get_provider_settings(self, name: Optional[str] = None) -> ProviderSettings:
        """Get settings for a provider, defaulting to the selected one."""
        config = self.get_config()
        return config.providers.settings_for(name or config.providers.default)

    def validate_config(self) -> List[str]:
        """Validate the current configuration and return any warnings."""
        warnings = []
        config = self.get_config()

        if config.debug and config.observability.environment == "production":
            warnings.append("Debug mode enabled in production environment")

        if config.providers.default not in config.providers.vendors:
            warnings.append(f"Default provider has no settings: {config.providers.default}")

        for role_id, role in config.roles.items():
            if "write_file" in role.tool_ids and config.governance.rules_for(role_id) is None:
                warnings.append(f"Role {role_id} can write files but has no governance rules; all writes will be denied")

        for role_id in config.spawn.privileged_roles:
            if config.roles and role_id not in config.roles:
                warnings.append(f"Privileged spawn role {role_id} is not a configured role")

        return warnings

    def write_default_config(self, path: Path) -> None:
        """Write a starter configuration file."""
        path.parent.mkdir(parents=True, exist_ok=True)

        default_config = {
            "providers": {"default": "anthropic"},
            "logging": {"level": "INFO", "directory": "~/.agent-runtime/logs"},
            "observability": {"exporter": "none"},
            "session": SessionConfig().model_dump(),
            "spawn": SpawnPolicy().model_dump(),
            "roles": {
                "impl": {"tool_ids": ["read_file", "write_file", "list_files", "search_files", "spawn_agent"]},
                "control": {"tool_ids": ["read_file", "write_file", "list_files", "search_files", "spawn_agent"]},
                "review": {"tool_ids": ["read_file", "list_files", "search_files"]},
            },
        }

        with open(path, "w") as f:
            yaml.dump(default_config, f, default_flow_style=False, indent=2)
