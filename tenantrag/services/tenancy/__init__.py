"""Tenant registry and quota enforcement."""
