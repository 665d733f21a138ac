"""ShipPost: turn shipped commits into reviewed build-in-public posts."""

__version__ = "0.1.0"
