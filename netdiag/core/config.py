"""
Configuration management.
"""

from pathlib import Path
from datetime import datetime
from typing import Any, Dict
import json

import yaml
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, field_validator


_INT_KEYS = (
    "timeout_ms",
    "max_concurrency",
    "trace_timeout_ms",
    "max_hops",
    "retry_per_hop",
    "ping_count",
    "ping_timeout_ms",
    "payload_size",
    "url_timeout_ms",
    "url_max_concurrency",
)


def load_config_file() -> dict[str, Any]:
    """
    Load optional config from ~/.netdiag.yaml, overridden by ./.netdiag.yaml.
    Returns only the keys that were present and valid so callers can use
    their own defaults for the rest.
    """
    result: dict[str, Any] = {}
    candidates = [
        Path.home() / ".netdiag.yaml",
        Path.cwd() / ".netdiag.yaml",
    ]
    raw: dict[str, Any] = {}
    for path in candidates:
        if not path.exists():
            continue
        try:
            with open(path, "r", encoding="utf-8") as f:
                loaded = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.warning(f"Ignoring unreadable config file {path}: {e}")
            continue
        if isinstance(loaded, dict):
            raw.update(loaded)
    if not raw:
        return result

    if "output_dir" in raw:
        result["output_dir"] = Path(raw["output_dir"]).expanduser().resolve()
    if "verbose" in raw:
        result["verbose"] = bool(raw["verbose"])
    if "validate_certificate" in raw:
        result["validate_certificate"] = bool(raw["validate_certificate"])
    for key in _INT_KEYS:
        if key in raw:
            try:
                result[key] = int(raw[key])
            except (TypeError, ValueError):
                pass
    services = raw.get("services")
    if isinstance(services, dict):
        parsed: Dict[int, str] = {}
        for port, name in services.items():
            try:
                parsed[int(port)] = str(name)
            except (TypeError, ValueError):
                continue
        result["services"] = parsed
    return result


class AppConfig(BaseModel):
    """Application configuration and diagnostic defaults."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    output_dir: Path = Field(default=Path("output"))
    verbose: bool = False

    # Port scanning
    timeout_ms: int = Field(default=500, ge=1)
    max_concurrency: int = Field(default=50, ge=1)

    # Hop discovery
    trace_timeout_ms: int = Field(default=3000, ge=1)
    max_hops: int = Field(default=30, ge=1, le=255)
    retry_per_hop: int = Field(default=3, ge=1)

    # Latency sampling
    ping_count: int = Field(default=4, ge=0)
    ping_timeout_ms: int = Field(default=1000, ge=1)
    payload_size: int = Field(default=32, ge=0, le=65500)

    # URL checks
    url_timeout_ms: int = Field(default=5000, ge=1)
    url_max_concurrency: int = Field(default=10, ge=1)
    validate_certificate: bool = True

    # Extra port -> service name entries registered on top of the built-in table
    services: Dict[int, str] = Field(default_factory=dict)

    @field_validator('output_dir', mode='before')
    @classmethod
    def validate_output_dir(cls, v):
        """Validate and convert output_dir to Path."""
        if v is None:
            return Path("output")
        if isinstance(v, str):
            return Path(v)
        if isinstance(v, Path):
            return v
        return Path("output")

    def model_post_init(self, __context):
        """Ensure output directory exists and is resolved to absolute path."""
        self.output_dir = self.output_dir.resolve()
        self.output_dir.mkdir(parents=True, exist_ok=True)

    def create_run_dir(self, run_name: str) -> Path:
        """Create a timestamped directory for one diagnostic run."""
        timestamp = datetime.now().strftime("%Y-%m-%d_%H%M%S")
        run_dir = self.output_dir / f"{timestamp}_{run_name}"
        run_dir.mkdir(parents=True, exist_ok=True)
        return run_dir

    def save_metadata(self, run_dir: Path, metadata: dict):
        """Save run metadata to JSON file."""
        metadata_file = run_dir / "metadata.json"

        metadata["timestamp"] = datetime.now().isoformat()

        with open(metadata_file, "w") as f:
            json.dump(metadata, f, indent=2, default=str)
