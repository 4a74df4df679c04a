"""Run configuration: YAML file, CLI overrides and validation.

Resolution order (later wins): built-in defaults, config/sellers.yaml,
command line flags. The result is a plain nested dict:

    {
        'scraper': {'mode', 'from_id', 'to_id', 'delay', 'concurrency',
                    'max_retries', 'retry_delay', 'timeout',
                    'flush_interval', 'output_dir'},
        'api': {'base_url', 'token_env'},
        'browser': {'headed', 'render_wait', 'debug_dir'},
    }
"""

import copy
import logging
import os
from typing import Any, Dict, List, Optional

import yaml

from config import DEFAULT_CONFIG_PATH, diy_config
from src.shared.backoff import RetryPolicy
from src.shared.constants import BATCH, HTTP, LEDGER, RETRY
from src.shared.errors import ConfigError

__all__ = [
    'DEFAULT_CONFIG',
    'VALID_MODES',
    'apply_cli_overrides',
    'build_retry_policy',
    'load_config',
    'output_paths',
    'validate_config',
]


VALID_MODES = ('api', 'browser')

DEFAULT_CONFIG: Dict[str, Dict[str, Any]] = {
    'scraper': {
        'mode': 'browser',
        'from_id': BATCH.FROM_ID,
        'to_id': BATCH.TO_ID,
        'delay': BATCH.DELAY,
        'concurrency': BATCH.CONCURRENCY,
        'max_retries': RETRY.MAX_ATTEMPTS,
        'retry_delay': RETRY.BASE_DELAY,
        'timeout': HTTP.TIMEOUT,
        'flush_interval': LEDGER.FLUSH_INTERVAL,
        'output_dir': 'results',
    },
    'api': {
        'base_url': diy_config.API_URL,
        'token_env': diy_config.API_TOKEN_ENV,
    },
    'browser': {
        'headed': False,
        'render_wait': HTTP.RENDER_WAIT,
        'debug_dir': None,
    },
}


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge override into a copy of base."""
    result = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = _merge(result[key], value)
        else:
            result[key] = value
    return result


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """Load sellers.yaml merged over the built-in defaults.

    Args:
        config_path: Explicit config file. When None, config/sellers.yaml is
            used if present and defaults otherwise.

    Raises:
        ConfigError: If an explicit file is missing, or any file is not
            valid YAML or not a mapping
    """
    path = config_path or str(DEFAULT_CONFIG_PATH)
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
    except FileNotFoundError:
        if config_path:
            raise ConfigError(f"Configuration file not found: {config_path}")
        logging.debug(f"No config file at {path}, using defaults")
        return copy.deepcopy(DEFAULT_CONFIG)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML syntax in config file: {e}") from e
    except OSError as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e

    # Empty YAML files load as None
    data = data or {}
    if not isinstance(data, dict):
        raise ConfigError("Configuration must be a dictionary")

    return _merge(DEFAULT_CONFIG, data)


def apply_cli_overrides(config: Dict[str, Any], args: Any) -> Dict[str, Any]:
    """Return a copy of config with command line values applied.

    Only flags the user actually passed (not None) override the file.
    ``args.delay`` is in milliseconds.
    """
    result = copy.deepcopy(config)
    scraper = result.setdefault('scraper', {})
    browser = result.setdefault('browser', {})

    overrides = {
        'from_id': getattr(args, 'from_id', None),
        'to_id': getattr(args, 'to_id', None),
        'concurrency': getattr(args, 'concurrency', None),
        'mode': getattr(args, 'mode', None),
        'max_retries': getattr(args, 'max_retries', None),
        'output_dir': getattr(args, 'output_dir', None),
    }
    for key, value in overrides.items():
        if value is not None:
            scraper[key] = value

    delay_ms = getattr(args, 'delay', None)
    if delay_ms is not None:
        scraper['delay'] = delay_ms / 1000.0

    if getattr(args, 'headed', False):
        browser['headed'] = True

    return result


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_config(config: Dict[str, Any]) -> List[str]:
    """Check a resolved configuration.

    Returns:
        List of validation errors (empty if config is valid)
    """
    errors: List[str] = []

    scraper = config.get('scraper')
    if not isinstance(scraper, dict):
        return ["'scraper' section must be a dictionary"]

    mode = scraper.get('mode')
    if mode not in VALID_MODES:
        errors.append(f"Invalid mode '{mode}'. Must be one of: {', '.join(VALID_MODES)}")

    from_id = scraper.get('from_id')
    to_id = scraper.get('to_id')
    for name, value in (('from_id', from_id), ('to_id', to_id)):
        if not _is_int(value) or value < 1:
            errors.append(f"'{name}' must be a positive integer")
    if _is_int(from_id) and _is_int(to_id) and from_id > to_id:
        errors.append(f"'from_id' ({from_id}) cannot be greater than 'to_id' ({to_id})")

    for name in ('delay', 'retry_delay'):
        value = scraper.get(name)
        if not _is_number(value) or value < 0:
            errors.append(f"'{name}' must be a non-negative number")

    timeout = scraper.get('timeout')
    if not _is_number(timeout) or timeout <= 0:
        errors.append("'timeout' must be a positive number")

    concurrency = scraper.get('concurrency')
    if not _is_int(concurrency) or not 1 <= concurrency <= BATCH.MAX_CONCURRENCY:
        errors.append(f"'concurrency' must be an integer between 1 and {BATCH.MAX_CONCURRENCY}")

    max_retries = scraper.get('max_retries')
    if not _is_int(max_retries) or not RETRY.MIN_ATTEMPTS <= max_retries <= RETRY.MAX_ALLOWED_ATTEMPTS:
        errors.append(
            f"'max_retries' must be an integer between {RETRY.MIN_ATTEMPTS} and {RETRY.MAX_ALLOWED_ATTEMPTS}"
        )

    flush_interval = scraper.get('flush_interval')
    if not _is_int(flush_interval) or flush_interval < 1:
        errors.append("'flush_interval' must be a positive integer")

    output_dir = scraper.get('output_dir')
    if not isinstance(output_dir, str) or not output_dir.strip():
        errors.append("'output_dir' must be a non-empty path")

    api = config.get('api', {})
    if not isinstance(api, dict):
        errors.append("'api' section must be a dictionary")
    else:
        base_url = api.get('base_url')
        if not isinstance(base_url, str) or not base_url.startswith(('http://', 'https://')):
            errors.append("'api.base_url' must be a valid HTTP/HTTPS URL")
        elif '{seller_id}' not in base_url:
            errors.append("'api.base_url' must contain a {seller_id} placeholder")
        token_env = api.get('token_env')
        if not isinstance(token_env, str) or not token_env:
            errors.append("'api.token_env' must name an environment variable")

    browser = config.get('browser', {})
    if not isinstance(browser, dict):
        errors.append("'browser' section must be a dictionary")
    else:
        render_wait = browser.get('render_wait')
        if not _is_number(render_wait) or render_wait < 0:
            errors.append("'browser.render_wait' must be a non-negative number")
        if not isinstance(browser.get('headed', False), bool):
            errors.append("'browser.headed' must be true or false")

    return errors


def build_retry_policy(config: Dict[str, Any]) -> RetryPolicy:
    scraper = config['scraper']
    return RetryPolicy(
        max_attempts=scraper['max_retries'],
        base_delay=scraper['retry_delay'],
    )


def output_paths(config: Dict[str, Any]) -> Dict[str, str]:
    """Result, progress and debug locations under the output directory."""
    output_dir = config['scraper']['output_dir']
    return {
        'results': os.path.join(output_dir, 'sellers.csv'),
        'progress': os.path.join(output_dir, 'progress.json'),
        'debug': config.get('browser', {}).get('debug_dir') or os.path.join(output_dir, 'debug'),
    }
