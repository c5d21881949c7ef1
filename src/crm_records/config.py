"""Store settings from environment variables and an optional YAML file."""

import os
from pathlib import Path
from typing import Mapping, Optional

import yaml
from pydantic import BaseModel, Field

# Environment variable -> settings field
ENV_VARS = {
    "CRM_RECORDS_STORE": "store",
    "SALESFORCE_INSTANCE_URL": "instance_url",
    "SALESFORCE_ACCESS_TOKEN": "access_token",
    "SALESFORCE_API_VERSION": "api_version",
    "SALESFORCE_TIMEOUT": "timeout",
}


class StoreSettings(BaseModel):
    """Which record store to use and how to reach it."""

    store: str = Field(default="memory", description="memory | salesforce")
    instance_url: Optional[str] = None
    access_token: Optional[str] = None
    api_version: str = "v59.0"
    timeout: float = 30.0

    @classmethod
    def from_yaml(cls, path: str | Path) -> "StoreSettings":
        """Load settings from YAML. Salesforce keys may sit under `salesforce:` or at top level."""
        return cls.model_validate(_read_yaml(path))


def _read_yaml(path: str | Path) -> dict:
    data = yaml.safe_load(Path(path).read_text()) or {}
    flat = {k: v for k, v in data.items() if k != "salesforce"}
    nested = data.get("salesforce") or {}
    for key in ("instance_url", "access_token", "api_version", "timeout"):
        if key in nested:
            flat.setdefault(key, nested[key])
    return flat


def load_settings(
    path: Optional[str | Path] = None,
    env: Optional[Mapping[str, str]] = None,
) -> StoreSettings:
    """YAML file (if given) overlaid with environment variables; env wins."""
    env = os.environ if env is None else env
    data: dict = _read_yaml(path) if path is not None else {}
    for var, field in ENV_VARS.items():
        value = env.get(var)
        if value:
            data[field] = value
    return StoreSettings.model_validate(data)
