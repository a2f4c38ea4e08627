"""Configuration management for taskpilot."""

import os
from pathlib import Path

import yaml
from dotenv import dotenv_values
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Paths
DEFAULT_CONFIG_PATH = Path("~/.taskpilot/config.yaml").expanduser()
LOCAL_CONFIG_FILENAME = "config.yaml"
ENV_FILENAME = ".env"


class ModelConfig(BaseModel):
    """Model configuration."""

    provider: str = "openai"
    model: str = "gpt-4o"
    temperature: float = 0.7
    max_tokens: int = 4096
    api_key: str = ""
    base_url: str = ""


class ContextConfig(BaseModel):
    """Context window budget used for usage reporting."""

    max_tokens: int = 128000


class AgentConfig(BaseModel):
    """Agent loop configuration."""

    max_iterations: int = 20
    system_prompt: str = ""


class ShellToolConfig(BaseModel):
    """Shell tool configuration."""

    max_output_chars: int = 10000


class ReadToolConfig(BaseModel):
    """Read tool configuration."""

    max_bytes: int = 1_000_000


class ToolsConfig(BaseModel):
    """Tools configuration."""

    enabled: list[str] = [
        "list_files",
        "read_file",
        "create_file",
        "edit_file",
        "run_bash",
    ]
    require_confirmation: list[str] = ["run_bash"]
    timeout_seconds: float | None = None
    shell: ShellToolConfig = Field(default_factory=ShellToolConfig)
    read: ReadToolConfig = Field(default_factory=ReadToolConfig)


class UIConfig(BaseModel):
    """Operator console configuration."""

    quit_tokens: list[str] = ["quit", "exit"]
    reset_tokens: list[str] = ["reset"]
    show_usage: bool = True


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "WARNING"
    format: str = "console"


class Config(BaseSettings):
    """Main configuration for taskpilot."""

    model: ModelConfig = Field(default_factory=ModelConfig)
    context: ContextConfig = Field(default_factory=ContextConfig)
    agent: AgentConfig = Field(default_factory=AgentConfig)
    tools: ToolsConfig = Field(default_factory=ToolsConfig)
    ui: UIConfig = Field(default_factory=UIConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = SettingsConfigDict(
        env_prefix="TASKPILOT_",
        env_file=ENV_FILENAME,
        env_nested_delimiter="__",
        extra="ignore",
    )

    @classmethod
    def resolve_default_config_path(cls) -> Path:
        """Resolve default config path with local-first precedence."""
        local_path = Path.cwd() / LOCAL_CONFIG_FILENAME
        if local_path.exists():
            return local_path
        return DEFAULT_CONFIG_PATH

    @classmethod
    def from_yaml(cls, path: Path | str | None = None) -> "Config":
        """Load configuration from YAML file."""
        config_path = Path(path).expanduser() if path else cls.resolve_default_config_path()

        if not config_path.exists():
            config = cls()
        else:
            with open(config_path, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
            config = cls(**data)

        config.fill_api_key_from_env()
        return config

    def fill_api_key_from_env(self) -> None:
        """Use the provider's conventional key variable when model.api_key is empty.

        The process environment wins over a `.env` file in the working directory.
        """
        if self.model.api_key:
            return
        from taskpilot.llm import api_key_env_var

        env_var = api_key_env_var(self.model.provider)
        if env_var is None:
            return
        value = os.environ.get(env_var) or dotenv_values(ENV_FILENAME).get(env_var)
        if value:
            self.model.api_key = value

    @classmethod
    def load(cls) -> "Config":
        """Load configuration; environment variables are applied by BaseSettings."""
        return cls.from_yaml()

    def save(self, path: Path | str | None = None) -> None:
        """Save configuration to YAML file."""
        config_path = Path(path) if path else DEFAULT_CONFIG_PATH
        config_path.parent.mkdir(parents=True, exist_ok=True)

        data = self.model_dump(exclude_none=True)

        with open(config_path, "w", encoding="utf-8") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)


# Global config instance
_config: Config | None = None


def get_config() -> Config:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = Config.load()
    return _config


def set_config(config: Config) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config
