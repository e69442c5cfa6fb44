"""
Model cost table — per-model USD rates per 1M tokens.

Single source of truth for the model gateway and the interaction ledger so
the cost billed to the agency and the cost shown in the client portal never
drift. YAML file with in-memory cache and hardcoded fallback if the file is
missing.
"""
import logging
import os

import yaml

logger = logging.getLogger('pipeline.cost')


_cost_config = None


def _default_config():
    """Hardcoded fallback if YAML is missing."""
    return {
        'version': 'default',
        'rates': {
            'gpt-4o':      {'input': 2.50, 'output': 10.00},
            'gpt-4o-mini': {'input': 0.15, 'output': 0.60},
        },
        # Unknown model ids are billed at the economy rate
        'default': {'input': 0.15, 'output': 0.60},
    }


def load_cost_config() -> dict:
    """Load cost config from YAML, with in-memory cache and hardcoded fallback."""
    global _cost_config
    if _cost_config is not None:
        return _cost_config

    config_path = os.path.join(os.path.dirname(__file__), 'cost_config.yaml')
    try:
        with open(config_path, 'r') as f:
            _cost_config = yaml.safe_load(f)
        logger.info("Config loaded from YAML (version=%s)", _cost_config.get('version', '?'))
    except Exception as e:
        logger.warning("YAML config not found (%s), using defaults", e)
        _cost_config = _default_config()

    return _cost_config


def get_rates(model: str) -> dict:
    """Return {'input': rate, 'output': rate} for a model id, falling back to the default rate."""
    cfg = load_cost_config()
    rates = cfg.get('rates', {}).get(model)
    if rates is None:
        rates = cfg.get('default') or _default_config()['default']
    return rates


def calculate_cost(model: str, input_tokens: int, output_tokens: int) -> float:
    """USD cost of one call. Never raises on an unknown model."""
    rates = get_rates(model or '')
    input_cost = ((input_tokens or 0) / 1_000_000) * rates.get('input', 0.0)
    output_cost = ((output_tokens or 0) / 1_000_000) * rates.get('output', 0.0)
    return input_cost + output_cost


def reset_cache():
    """Reset the in-memory cache (useful for testing)."""
    global _cost_config
    _cost_config = None
