"""Adapters that connect the core to PocketBase and local storage."""
