"""Configuration module -- exports the pydantic-settings Settings class."""

from machine_rag.config.settings import Settings

__all__ = ["Settings"]
