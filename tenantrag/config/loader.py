"""YAML configuration loader with environment variable overrides.

Configuration is layered, later layers winning:

    1. ``config/config.yaml``  -- static defaults and the tenant roster
    2. ``.env`` file           -- local developer overrides
    3. Environment variables   -- deploy-time values

:func:`load_config` reads the YAML first, then deep-merges the
Settings-derived values on top.  :func:`load_tenants` turns the
``tenants:`` section into :class:`TenantInfo` models.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import structlog
import yaml
from pydantic import ValidationError

from tenantrag.config.settings import Settings
from tenantrag.models.tenant import TenantInfo, TenantQuotas
from tenantrag.utils.errors import ConfigurationError

logger = structlog.get_logger(logger_name=__name__)


def load_config(path: str = "config/config.yaml", settings: Settings | None = None) -> dict:
    """Load YAML config and merge with environment-based Settings.

    Environment variables (via Settings) override YAML values where keys overlap.

    Args:
        path: Path to the YAML configuration file.
        settings: Settings to merge; a fresh ``Settings()`` when omitted.

    Returns:
        Fully resolved configuration dictionary.

    Raises:
        ConfigurationError: If the file exists but is not a YAML mapping.
    """
    config_path = Path(path)
    if config_path.exists():
        with open(config_path, encoding="utf-8") as f:
            try:
                yaml_config = yaml.safe_load(f) or {}
            except yaml.YAMLError as exc:
                raise ConfigurationError(message=f"Invalid YAML in {path}: {exc}") from exc
        if not isinstance(yaml_config, dict):
            raise ConfigurationError(message=f"{path} must contain a mapping at the top level")
    else:
        logger.debug("config_file_missing", path=path)
        yaml_config = {}

    settings = settings or Settings()
    env_overrides = {
        "app": {
            "env": settings.app_env,
        },
        "openai": {
            "api_key": settings.openai_api_key,
            "base_url": settings.openai_base_url,
            "available_providers": settings.get_available_providers(),
        },
        "vector_store": {
            "provider": settings.vector_store,
            "persist_dir": settings.chromadb_persist_dir,
            "collection": settings.chromadb_collection,
        },
        "logging": {
            "level": settings.log_level,
        },
    }

    _deep_merge(yaml_config, env_overrides)
    return yaml_config


def load_tenants(config: dict[str, Any]) -> list[TenantInfo]:
    """Build :class:`TenantInfo` models from the ``tenants:`` config section.

    Each entry needs an ``id``; ``name`` defaults to the id and ``quotas``
    may set any of ``max_documents``, ``max_storage_bytes``,
    ``max_requests_per_day`` and ``max_tokens_per_request``.

    Raises:
        ConfigurationError: If an entry is malformed or its id is invalid.
    """
    entries = config.get("tenants") or []
    if not isinstance(entries, list):
        raise ConfigurationError(message="'tenants' must be a list")

    tenants: list[TenantInfo] = []
    for entry in entries:
        if not isinstance(entry, dict) or "id" not in entry:
            raise ConfigurationError(message=f"Tenant entry needs an 'id': {entry!r}")
        quotas_raw = entry.get("quotas")
        try:
            quotas = TenantQuotas(**quotas_raw) if isinstance(quotas_raw, dict) else None
        except ValidationError as exc:
            raise ConfigurationError(
                message=f"Invalid quotas for tenant '{entry['id']}': {exc}"
            ) from exc
        tenants.append(
            TenantInfo(
                tenant_id=str(entry["id"]),
                name=str(entry.get("name") or entry["id"]),
                quotas=quotas,
            )
        )
    logger.debug("tenants_loaded", count=len(tenants))
    return tenants


def _deep_merge(base: dict, overrides: dict) -> None:
    """Recursively merge overrides into base dict, mutating base in place."""
    for key, value in overrides.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
