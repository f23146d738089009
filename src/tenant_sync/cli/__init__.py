"""Command-line interface for Tenant Sync."""
