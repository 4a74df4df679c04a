"""Seller fetch mode registry"""

import importlib
from typing import Dict, List

# Registry of available fetch modes
SCRAPER_REGISTRY: Dict[str, str] = {
    'api': 'src.scrapers.diy_api',
    'browser': 'src.scrapers.diy_browser',
}


def get_available_modes() -> List[str]:
    """Get list of all registered fetch mode names"""
    return list(SCRAPER_REGISTRY.keys())


def get_scraper_module(mode: str):
    """Dynamically import and return the module implementing a fetch mode"""
    if mode not in SCRAPER_REGISTRY:
        raise ValueError(f"Unknown mode: {mode}. Available: {get_available_modes()}")
    return importlib.import_module(SCRAPER_REGISTRY[mode])


__all__ = ['SCRAPER_REGISTRY', 'get_available_modes', 'get_scraper_module']
