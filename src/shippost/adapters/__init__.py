"""Adapters for external services and storage."""
