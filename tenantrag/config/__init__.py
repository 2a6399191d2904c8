"""Configuration module: exports Settings and the YAML loaders."""

from tenantrag.config.loader import load_config, load_tenants
from tenantrag.config.settings import Settings

__all__ = ["Settings", "load_config", "load_tenants"]
