"""Tenant Sync - incremental, per-tenant data-source synchronization."""

__version__ = "0.1.0"
