"""Tests for app.pipeline.cost_config — model rate table."""
import pytest
from unittest.mock import patch

from app.pipeline.cost_config import calculate_cost, get_rates, load_cost_config, reset_cache


@pytest.fixture(autouse=True)
def _fresh_cache():
    reset_cache()
    yield
    reset_cache()


class TestCalculateCost:

    def test_quality_model_rates(self):
        # 1000 in @ $2.50/1M + 500 out @ $10/1M
        assert calculate_cost('gpt-4o', 1000, 500) == pytest.approx(0.0075)

    def test_economy_model_rates(self):
        assert calculate_cost('gpt-4o-mini', 1_000_000, 1_000_000) == pytest.approx(0.75)

    def test_unknown_model_uses_default_rate(self):
        assert calculate_cost('some-future-model', 1_000_000, 0) == pytest.approx(0.15)

    def test_none_model_and_tokens_do_not_raise(self):
        assert calculate_cost(None, None, None) == 0


class TestLoadCostConfig:

    def test_loads_yaml(self):
        cfg = load_cost_config()
        assert cfg['rates']['gpt-4o']['input'] == 2.50
        assert get_rates('gpt-4o-mini') == {'input': 0.15, 'output': 0.60}

    def test_is_cached(self):
        assert load_cost_config() is load_cost_config()

    def test_falls_back_when_yaml_missing(self):
        with patch('builtins.open', side_effect=FileNotFoundError('cost_config.yaml')):
            cfg = load_cost_config()
        assert cfg['version'] == 'default'
        assert calculate_cost('gpt-4o', 1000, 500) == pytest.approx(0.0075)
