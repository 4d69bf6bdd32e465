"""Configuration management using Pydantic BaseSettings.

Process-wide settings that rarely change between runs (API endpoint,
timeouts, worker count, logging). Values come from ``PATCHFLEET_*``
environment variables or a ``.env`` file. Per-invocation values (token,
organization, diff path, commit message) live in ``RunConfig``.
"""
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Config(BaseSettings):
    """Main configuration class."""

    # GitHub API
    api_url: str = Field("https://api.github.com", description="GitHub REST API base URL")
    request_timeout: float = Field(5.0, ge=1.0, le=60.0, description="Per-call timeout in seconds")
    search_limit: int = Field(30, ge=1, le=100, description="Default repository search page size")

    # Fleet execution
    max_workers: int = Field(1, ge=1, le=16, description="Repositories patched in parallel (1 = sequential)")

    # Pull requests
    pr_body: str = Field("Automated by patchfleet", description="Provenance marker used as pull request body")
    draft_pull_requests: bool = Field(False, description="Open pull requests as drafts")

    # Audit trail (empty string disables it)
    audit_path: str = Field(".patchfleet/audit.jsonl", description="JSONL audit log of repository outcomes")

    # Logging Configuration
    log_level: str = Field("INFO", description="Logging level")
    log_format: str = Field("%(asctime)s - %(name)s - %(levelname)s - %(message)s", description="Log format")

    model_config = SettingsConfigDict(
        env_prefix="PATCHFLEET_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator('api_url')
    @classmethod
    def validate_api_url(cls, v):
        if not v.startswith(("http://", "https://")):
            raise ValueError('api_url must start with http:// or https://')
        return v.rstrip("/")

    @field_validator('log_level')
    @classmethod
    def validate_level(cls, v):
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f'Invalid log level: {v}. Valid options: {valid_levels}')
        return v.upper()

    def validate_configuration(self) -> List[str]:
        """Validate the complete configuration and return any issues."""
        issues = []

        if not self.pr_body.strip():
            issues.append("PATCHFLEET_PR_BODY must not be empty; pull requests need a provenance marker")

        if self.api_url.startswith("http://"):
            issues.append("PATCHFLEET_API_URL uses plain HTTP; the token would be sent unencrypted")

        return issues

    def log_configuration(self) -> None:
        """Log the current configuration (sanitized)."""
        from patchfleet.utils.logger import log_info

        log_info("Configuration loaded",
                 api_url=self.api_url,
                 request_timeout=self.request_timeout,
                 search_limit=self.search_limit,
                 max_workers=self.max_workers,
                 draft_pull_requests=self.draft_pull_requests,
                 audit_path=self.audit_path or None,
                 log_level=self.log_level)


# Global configuration instance (lazy loading)
_config = None


def get_config() -> Config:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = Config()
    return _config


def reload_config() -> Config:
    """Reload configuration from environment variables."""
    global _config
    _config = Config()
    return _config
