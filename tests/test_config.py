"""
Tests for configuration
=======================

Environment-backed defaults, programmatic overrides and policy band loading.
"""

import logging

import pytest

from portfolio_performance_engine import config


class TestConfigure:
    """Tests for configure()."""

    def test_unknown_key_raises(self):
        with pytest.raises(KeyError):
            config.configure(NOT_A_SETTING=1)

    def test_override_applies(self, monkeypatch):
        monkeypatch.setattr(config, "RISK_FREE_RATE_MONTHLY", config.RISK_FREE_RATE_MONTHLY)
        config.configure(RISK_FREE_RATE_MONTHLY=0.01)
        assert config.RISK_FREE_RATE_MONTHLY == 0.01

    def test_env_helpers_fall_back_on_garbage(self, monkeypatch):
        monkeypatch.setenv("PERF_TEST_INT", "abc")
        monkeypatch.setenv("PERF_TEST_FLOAT", "1.5")
        assert config._env_int("PERF_TEST_INT", 7) == 7
        assert config._env_float("PERF_TEST_FLOAT", 0.0) == 1.5


class TestPolicyBands:
    """Tests for load_policy_bands()."""

    def test_packaged_yaml_has_default_bands(self):
        bands = config.load_policy_bands()
        assert bands["Pós Fixado"] == {"minimum": 20, "maximum": 40, "ideal": 30}
        assert set(bands) == {
            "Pós Fixado - Liquidez", "Pós Fixado", "Inflação", "Pré Fixado",
            "Multimercado", "Ações", "Imobiliário", "Exterior",
        }

    def test_missing_file_falls_back(self, tmp_path, caplog):
        with caplog.at_level(logging.WARNING, logger="portfolio_performance_engine"):
            bands = config.load_policy_bands(tmp_path / "missing.yaml")
        assert bands["Exterior"]["ideal"] == 10
        assert "using hardcoded" in caplog.text

    def test_custom_file(self, tmp_path):
        path = tmp_path / "bands.yaml"
        path.write_text("policy_bands:\n  Ações:\n    minimum: 0\n    maximum: 50\n", encoding="utf-8")
        assert config.load_policy_bands(path) == {"Ações": {"minimum": 0, "maximum": 50}}

    def test_file_without_section_falls_back(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("other: 1\n", encoding="utf-8")
        assert "Ações" in config.load_policy_bands(path)
