"""HTTP API."""

from shippost.api.app import create_app

__all__ = ["create_app"]
