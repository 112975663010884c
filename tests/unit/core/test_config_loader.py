import unittest
import os
import yaml
from unittest.mock import patch, mock_open

from pydantic import ValidationError

from core.config_loader import (
    load_config,
    AppConfig,
    FallbackWeights,
    InvalidationMode,
    LlmConfig,
)


class TestConfigLoader(unittest.TestCase):

    def setUp(self):
        self.sample_config = {
            "llm": {
                "provider": "openrouter",
                "timeout_ms": 5000,
                "max_retries": 1
            },
            "cache": {
                "redis_url": "redis://cache:6379/2",
                "ttl_seconds": 600,
                "invalidation_mode": "targeted"
            },
            "matching": {
                "fallback_weights": {"skill": 0.6, "interest": 0.2, "experience": 0.2},
                "max_workers": 4
            },
            "entities": {"path": "fixtures/entities.yaml"}
        }
        self.config_yaml = yaml.dump(self.sample_config)

    def _load(self, content, env=None):
        with patch("builtins.open", mock_open(read_data=content)):
            with patch("os.path.exists", return_value=True):
                with patch.dict(os.environ, env or {}, clear=True):
                    return load_config("dummy_path.yaml")

    def test_load_config_default(self):
        config = self._load(self.config_yaml)

        self.assertIsInstance(config, AppConfig)
        self.assertEqual(config.llm.provider, "openrouter")
        self.assertEqual(config.llm.timeout_ms, 5000)
        self.assertEqual(config.cache.redis_url, "redis://cache:6379/2")
        self.assertEqual(config.cache.ttl_seconds, 600)
        self.assertEqual(config.cache.invalidation_mode, InvalidationMode.TARGETED)
        self.assertEqual(config.matching.fallback_weights.skill, 0.6)
        self.assertEqual(config.matching.max_workers, 4)
        self.assertEqual(config.entities.path, "fixtures/entities.yaml")

    def test_empty_file_uses_defaults(self):
        config = self._load("")

        self.assertEqual(config.llm.provider, "deepseek")
        self.assertEqual(config.llm.timeout_ms, 3000)
        self.assertEqual(config.llm.max_retries, 2)
        self.assertEqual(config.llm.temperature, 0.3)
        self.assertEqual(config.cache.ttl_seconds, 3600)
        self.assertEqual(config.cache.invalidation_mode, InvalidationMode.BLANKET)
        self.assertTrue(config.matching.single_flight)
        self.assertIsNone(config.matching.score_budget_ms)

    def test_missing_file_uses_defaults(self):
        with patch("os.path.exists", return_value=False):
            with patch.dict(os.environ, {}, clear=True):
                config = load_config("nowhere.yaml")

        self.assertEqual(config, AppConfig())

    def test_env_var_override_llm(self):
        env = {
            "LLM_PROVIDER": "custom",
            "LLM_API_KEY": "sk-env",
            "LLM_BASE_URL": "http://gateway:8080/v1",
            "LLM_MODEL": "qwen2.5",
            "LLM_TIMEOUT": "1500",
        }
        config = self._load(self.config_yaml, env)

        self.assertEqual(config.llm.provider, "custom")
        self.assertEqual(config.llm.api_key, "sk-env")
        self.assertEqual(config.llm.base_url, "http://gateway:8080/v1")
        self.assertEqual(config.llm.model, "qwen2.5")
        self.assertEqual(config.llm.timeout_ms, 1500)
        # untouched keys survive
        self.assertEqual(config.llm.max_retries, 1)

    def test_env_var_override_cache(self):
        env = {"REDIS_URL": "redis://env-redis:6379/0", "MATCH_CACHE_TTL": "120"}
        config = self._load(self.config_yaml, env)

        self.assertEqual(config.cache.redis_url, "redis://env-redis:6379/0")
        self.assertEqual(config.cache.ttl_seconds, 120)

    def test_env_override_creates_missing_section(self):
        config = self._load(yaml.dump({"entities": {"path": "x.yaml"}}), {"LLM_API_KEY": "k"})

        self.assertEqual(config.llm.api_key, "k")
        self.assertEqual(config.llm.provider, "deepseek")

    def test_max_retries_is_bounded(self):
        with self.assertRaises(ValidationError):
            LlmConfig(max_retries=3)

    def test_timeout_must_be_positive(self):
        with self.assertRaises(ValidationError):
            LlmConfig(timeout_ms=0)


class TestFallbackWeights(unittest.TestCase):

    def test_default_weights(self):
        weights = FallbackWeights()
        self.assertEqual((weights.skill, weights.interest, weights.experience), (0.5, 0.3, 0.2))

    def test_weights_must_sum_to_one(self):
        with self.assertRaises(ValidationError) as ctx:
            FallbackWeights(skill=0.5, interest=0.5, experience=0.5)
        self.assertIn("must sum to 1.0", str(ctx.exception))

    def test_float_rounding_is_tolerated(self):
        weights = FallbackWeights(skill=0.1, interest=0.2, experience=0.7)
        self.assertAlmostEqual(weights.skill + weights.interest + weights.experience, 1.0)


if __name__ == '__main__':
    unittest.main()
