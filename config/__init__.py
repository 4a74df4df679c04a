"""Configuration module for the verified seller scraper"""

from pathlib import Path

CONFIG_DIR = Path(__file__).parent
DEFAULT_CONFIG_PATH = CONFIG_DIR / "sellers.yaml"

__all__ = ['CONFIG_DIR', 'DEFAULT_CONFIG_PATH']
