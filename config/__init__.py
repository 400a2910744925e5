"""Configuration package for the interview portal services."""
from .settings import Settings, settings

__all__ = ["Settings", "settings"]
