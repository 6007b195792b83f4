"""Configuration loading and schema."""

from endless_novel.config.loader import load_config
from endless_novel.config.schema import AppConfig, AppConfigRoot

__all__ = ["AppConfig", "AppConfigRoot", "load_config"]
