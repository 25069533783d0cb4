"""Configuration package for the charge system."""
from .settings import get_settings, Settings

__all__ = ["Settings", "get_settings"]
