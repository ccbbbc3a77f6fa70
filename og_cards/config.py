"""Configuration management for social card generation."""

import os
from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field


def _split_csv(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Logging level")
    format: str = Field(default="json", description="Log format (json or text)")
    log_dir: Path = Field(default=Path("logs"), description="Directory for log files")
    max_bytes: int = Field(default=10_485_760, description="Max size of log file in bytes")
    backup_count: int = Field(default=5, description="Number of backup log files to keep")

    def __init__(self, **data: Any) -> None:
        """Initialize with environment variable overrides."""
        data["level"] = os.environ.get("LOG_LEVEL", data.get("level", "INFO"))
        data["format"] = os.environ.get("LOG_FORMAT", data.get("format", "json"))
        if log_dir := os.environ.get("LOG_DIR"):
            data["log_dir"] = Path(log_dir)
        if max_bytes := os.environ.get("LOG_MAX_BYTES"):
            data["max_bytes"] = int(max_bytes)
        if backup_count := os.environ.get("LOG_BACKUP_COUNT"):
            data["backup_count"] = int(backup_count)
        super().__init__(**data)


class CaptureConfig(BaseModel):
    """Screenshot capture configuration."""

    viewport_width: int = Field(default=1200, description="Viewport width in CSS pixels")
    viewport_height: int = Field(default=630, description="Viewport height in CSS pixels")
    device_scale_factor: float = Field(default=2.0, description="Device pixel ratio")
    template_route: str = Field(default="/og/template", description="Template page path")
    output_dir: Path = Field(default=Path("public/og"), description="Directory for PNG files")
    only: list[str] = Field(
        default_factory=list, description="Allow-list of identifiers to render"
    )
    fail_fast: bool = Field(
        default=True, description="Cancel remaining captures on the first failure"
    )
    navigation_timeout: float = Field(
        default=30.0, description="Timeout for page navigation in seconds"
    )

    def __init__(self, **data: Any) -> None:
        """Initialize with environment variable overrides."""
        if only := os.environ.get("OG_ONLY"):
            data["only"] = _split_csv(only)
        if output_dir := os.environ.get("OG_OUTPUT_DIR"):
            data["output_dir"] = Path(output_dir)
        if device_scale := os.environ.get("OG_DEVICE_SCALE"):
            data["device_scale_factor"] = float(device_scale)
        if fail_fast := os.environ.get("OG_FAIL_FAST"):
            data["fail_fast"] = fail_fast.lower() in ("true", "1", "yes")
        super().__init__(**data)

    @property
    def viewport(self) -> dict[str, int]:
        """Viewport in the shape Playwright expects."""
        return {"width": self.viewport_width, "height": self.viewport_height}


class ServerConfig(BaseModel):
    """Template server discovery and launch configuration."""

    base_url: str | None = Field(
        default=None, description="Explicit base URL; disables discovery and launch"
    )
    default_dev_base_url: str | None = Field(
        default=None, description="Preferred dev server tried before the fallbacks"
    )
    fallback_base_urls: list[str] = Field(
        default_factory=lambda: ["http://127.0.0.1:3000", "http://localhost:3000"],
        description="Conventional dev server locations to probe",
    )
    host: str = Field(default="127.0.0.1", description="Host for the ephemeral server")
    port: int = Field(default=4311, description="Port for the ephemeral server")
    command: list[str] = Field(
        default_factory=lambda: [
            "bunx", "next", "dev", "--hostname", "{host}", "--port", "{port}",
        ],
        description="Command used to start the ephemeral server",
    )
    working_dir: Path = Field(default=Path("."), description="Working directory for the server")
    cache_dir: Path = Field(default=Path(".next-og"), description="Isolated build cache")
    probe_timeout: float = Field(default=1.0, description="Per-candidate discovery timeout")
    ready_timeout: float = Field(default=45.0, description="Readiness timeout in seconds")
    poll_interval: float = Field(default=0.5, description="Readiness poll interval in seconds")
    request_timeout: float = Field(
        default=5.0, description="Timeout for each readiness request in seconds"
    )
    shutdown_timeout: float = Field(
        default=10.0, description="Grace period before killing the server"
    )

    def __init__(self, **data: Any) -> None:
        """Initialize with environment variable overrides."""
        if base_url := os.environ.get("OG_BASE_URL", "").strip():
            data["base_url"] = base_url
        if dev_url := os.environ.get("NEXT_DEFAULT_DEV_BASE_URL", "").strip():
            data["default_dev_base_url"] = dev_url
        if port := os.environ.get("OG_SERVER_PORT"):
            data["port"] = int(port)
        if ready_timeout := os.environ.get("OG_READY_TIMEOUT"):
            data["ready_timeout"] = float(ready_timeout)
        super().__init__(**data)

    @property
    def explicit_base_url(self) -> str | None:
        """Configured base URL without a trailing slash."""
        if not self.base_url:
            return None
        return self.base_url.strip().rstrip("/")

    @property
    def discovery_candidates(self) -> list[str]:
        """Candidate base URLs in preference order."""
        candidates = [self.default_dev_base_url, *self.fallback_base_urls]
        return [candidate.rstrip("/") for candidate in candidates if candidate]

    @property
    def ephemeral_base_url(self) -> str:
        return f"http://{self.host}:{self.port}"

    def render_command(self) -> list[str]:
        """Server command with host and port substituted."""
        return [part.format(host=self.host, port=self.port) for part in self.command]


class DocsConfig(BaseModel):
    """Configuration for the documentation spec provider."""

    docs_dir: Path = Field(default=Path("docs"), description="Directory of .md/.mdx files")
    include_drafts: bool = Field(default=True, description="Whether draft docs get cards")
    home_title: str = Field(default="Effect Solutions", description="Title of the home card")
    home_subtitle: str = Field(
        default="Best practices for building Effect TypeScript applications",
        description="Subtitle of the home card",
    )
    default_subtitle: str = Field(
        default="Best practices for applying Effect in production.",
        description="Subtitle for docs without a description",
    )

    def __init__(self, **data: Any) -> None:
        """Initialize with environment variable overrides."""
        if docs_dir := os.environ.get("OG_DOCS_DIR"):
            data["docs_dir"] = Path(docs_dir)
        if os.environ.get("NODE_ENV") == "production":
            data["include_drafts"] = False
        super().__init__(**data)


class Settings(BaseModel):
    """Main application settings."""

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    capture: CaptureConfig = Field(default_factory=CaptureConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    docs: DocsConfig = Field(default_factory=DocsConfig)

    def __init__(self, **data: Any) -> None:
        """Initialize settings, optionally loading from .env file."""
        if env_file := os.environ.get("ENV_FILE"):
            self._load_env_file(Path(env_file))
        super().__init__(**data)

    def _load_env_file(self, env_file: Path) -> None:
        """Load environment variables from .env file."""
        if not env_file.exists():
            return

        with open(env_file) as f:
            for line in f:
                line = line.strip()
                if line and not line.startswith("#") and "=" in line:
                    key, value = line.split("=", 1)
                    os.environ[key.strip()] = value.strip()


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the singleton settings instance."""
    return Settings()
