"""Tenant identifier validation.

Tenant ids end up inside vector-store filters and log lines, so they are
restricted to a conservative alphabet: ASCII letters, digits, ``_`` and
``-``, between 1 and 100 characters.
"""

from __future__ import annotations

import re

from tenantrag.utils.errors import ConfigurationError

_TENANT_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,100}$")


def is_valid_tenant_id(tenant_id: str | None) -> bool:
    """Return ``True`` if *tenant_id* matches the allowed format."""
    if not tenant_id:
        return False
    return _TENANT_ID_PATTERN.fullmatch(tenant_id) is not None


def validate_tenant_id(tenant_id: str | None) -> str:
    """Return *tenant_id* unchanged, or raise if it is malformed.

    Raises
    ------
    ConfigurationError
        If the id is empty, too long, or contains disallowed characters.
    """
    if not is_valid_tenant_id(tenant_id):
        raise ConfigurationError(
            message=(
                f"Invalid tenant id {tenant_id!r}: must be 1-100 characters "
                "of letters, digits, '_' or '-'"
            )
        )
    return tenant_id  # type: ignore[return-value]
