"""Pydantic configuration models for beesync."""

import os
import subprocess
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from sync.errors import CredentialError

VALID_LLM_PROVIDERS = {"auto", "claude", "openai"}

DEFAULT_CLEAN_VIEW_PROMPT = (
    "Here are the browser window titles I had open for a while yesterday:\n\n"
    "{{titles}}\n\n"
    "Did I spend time on distracting content (social media, news feeds, "
    "entertainment video)? Answer with exactly 'no' if everything looks work "
    "related. Otherwise answer 'yes' on the first line and name the most "
    "distracting title on the second line."
)


class KeyRef(BaseModel):
    """A secret read from an environment variable or a shell command.

    YAML forms: ``{env: NAME}``, ``{cmd: "pass show x"}`` or the ``"${NAME}"``
    shorthand.
    """

    env: Optional[str] = None
    cmd: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def parse_shorthand(cls, data):
        if isinstance(data, str):
            if data.startswith("${") and data.endswith("}"):
                return {"env": data[2:-1]}
            raise ValueError(f"Key must be {{env: ...}}, {{cmd: ...}} or '${{VAR}}', got {data!r}")
        return data

    @model_validator(mode="after")
    def exactly_one_source(self):
        if bool(self.env) == bool(self.cmd):
            raise ValueError("Key needs exactly one of 'env' or 'cmd'")
        return self

    def resolve(self) -> str:
        """Return the secret value.

        Raises:
            CredentialError: variable unset, command failed or produced nothing.
        """
        if self.env:
            value = os.getenv(self.env)
            if not value:
                raise CredentialError(f"Environment variable '{self.env}' not found")
            return value

        try:
            result = subprocess.run(
                ["sh", "-c", self.cmd], capture_output=True, text=True, timeout=30
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            raise CredentialError(f"Failed to execute command '{self.cmd}': {e}") from e
        if result.returncode != 0:
            raise CredentialError(f"Command '{self.cmd}' failed: {result.stderr.strip()}")
        value = result.stdout.strip()
        if not value:
            raise CredentialError(f"Command '{self.cmd}' produced no output")
        return value


class BeeminderConfig(BaseModel):
    """Target goal-tracker account."""

    username: str = ""
    key: KeyRef = Field(default_factory=lambda: KeyRef(env="BEEMINDER_API_KEY"))
    base_url: str = "https://www.beeminder.com/api/v1"


class LLMConfig(BaseModel):
    """LLM provider used as the text classifier."""

    provider: str = "auto"
    model: Optional[str] = None  # None = provider default
    api_key: Optional[KeyRef] = None
    max_tokens: int = 300

    @field_validator("provider")
    @classmethod
    def validate_provider(cls, v: str) -> str:
        if v not in VALID_LLM_PROVIDERS:
            raise ValueError(f"Invalid LLM provider: {v}. Must be one of {VALID_LLM_PROVIDERS}")
        return v


class RetryConfig(BaseModel):
    """Retry/backoff configuration."""

    max_attempts: int = 3
    min_wait: float = 2.0
    max_wait: float = 10.0
    llm_max_wait: float = 30.0

    @field_validator("max_attempts")
    @classmethod
    def validate_attempts(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"max_attempts must be >= 1, got {v}")
        return v


VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    json_mode: bool = False

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        v_upper = v.upper()
        if v_upper not in VALID_LOG_LEVELS:
            raise ValueError(f"Invalid log level: {v}. Must be one of {VALID_LOG_LEVELS}")
        return v_upper


class CategorySyncConfig(BaseModel):
    """Completed Amazing Marvin tasks of one category."""

    uri: KeyRef
    username: KeyRef
    password: KeyRef
    database_name: KeyRef
    category: str
    goal_name: str
    lookback_days: int = 14


class CleanTubeConfig(BaseModel):
    """Videos watched, aggregated from browser window titles."""

    activity_watch_base_url: str = "http://localhost:5600"
    window_bucket: str
    goal_name: str
    lookback_days: int = 1
    min_video_duration_seconds: float = 60.0
    max_datapoints: int = 100
    title_separator: str = " - YouTube —"


class CleanViewConfig(BaseModel):
    """Daily classifier judgment of browser window titles."""

    activity_watch_base_url: str = "http://localhost:5600"
    window_bucket: str
    goal_name: str
    lookback_days: int = 3
    min_window_duration_seconds: float = 30.0
    browser_keywords: list[str] = Field(default_factory=lambda: ["firefox", "brave", "chromium"])
    prompt_template: str = DEFAULT_CLEAN_VIEW_PROMPT
    history_limit: int = 50

    @field_validator("prompt_template")
    @classmethod
    def validate_template(cls, v: str) -> str:
        if "{{titles}}" not in v:
            raise ValueError("prompt_template must contain the {{titles}} placeholder")
        return v


class FatebookConfig(BaseModel):
    """Forecasting questions created on Fatebook."""

    key: KeyRef
    goal_name: str = "fatebook"
    base_url: str = "https://fatebook.io/api"


class FocusmateConfig(BaseModel):
    """Completed Focusmate sessions."""

    key: KeyRef
    goal_name: str
    auto_tags: list[str] = Field(default_factory=list)


class GitHubConfig(BaseModel):
    """Commits authored by a GitHub user."""

    key: Optional[KeyRef] = None
    goal_name: str
    username: str


class SyncConfig(BaseModel):
    """Main configuration model. A job runs only when its section is present."""

    beeminder: BeeminderConfig = Field(default_factory=BeeminderConfig)
    llm: LLMConfig = Field(default_factory=LLMConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    focusmate: Optional[FocusmateConfig] = None
    fatebook: Optional[FatebookConfig] = None
    clean_tube: Optional[CleanTubeConfig] = None
    clean_view: Optional[CleanViewConfig] = None
    github: Optional[GitHubConfig] = None
    category: Optional[CategorySyncConfig] = None

    @classmethod
    def from_dict(cls, data: dict) -> "SyncConfig":
        return cls.model_validate(data)
