# -*- coding: utf-8 -*-
"""
测试解析器配置 ResolverSettings
包含环境变量解析、多环境配置、文件加载和日志初始化
"""

import json
import logging

import pytest
from pydantic import ValidationError

from plugboard.config import ENV_VAR_PATTERN, ResolverSettings, configure_logging
from plugboard.config.settings import deep_merge
from plugboard.exceptions import ConfigurationError


@pytest.fixture
def plugboard_logger():
    """保存并恢复 plugboard 日志器状态"""
    logger = logging.getLogger("plugboard")
    level, handlers = logger.level, list(logger.handlers)
    logger.handlers.clear()
    yield logger
    logger.handlers[:] = handlers
    logger.setLevel(level)


class TestDefaults:
    """测试默认值与基本验证"""

    def test_defaults(self):
        """测试默认配置"""
        settings = ResolverSettings()
        assert settings.service_version_fallback is True
        assert settings.skip_unknown_service_types is True
        assert settings.max_rejection_ratio is None
        assert settings.log_level == "INFO"

    def test_extra_fields_forbidden(self):
        """测试禁止额外字段"""
        with pytest.raises(ValidationError):
            ResolverSettings(unknown_option=True)

    @pytest.mark.parametrize("ratio", [-0.1, 1.5])
    def test_ratio_bounds(self, ratio):
        with pytest.raises(ValidationError):
            ResolverSettings(max_rejection_ratio=ratio)

    def test_unknown_log_level(self):
        with pytest.raises(ValidationError, match="日志级别"):
            ResolverSettings(log_level="LOUD")

    def test_log_level_is_case_insensitive(self):
        assert ResolverSettings(log_level="debug").log_level == "debug"

    def test_validate_assignment(self):
        """测试赋值时验证"""
        settings = ResolverSettings()
        with pytest.raises(ValidationError):
            settings.max_rejection_ratio = 2


class TestEnvVars:
    """测试环境变量解析"""

    def test_pattern(self):
        assert ENV_VAR_PATTERN.match("${PLUGBOARD_LOG}").group(1) == "PLUGBOARD_LOG"
        assert ENV_VAR_PATTERN.match("$PLUGBOARD_LOG") is None

    def test_env_var_is_resolved(self, monkeypatch):
        monkeypatch.setenv("PLUGBOARD_LOG_LEVEL", "WARNING")
        settings = ResolverSettings(log_level="${PLUGBOARD_LOG_LEVEL}")
        assert settings.log_level == "WARNING"

    def test_env_var_is_coerced(self, monkeypatch):
        monkeypatch.setenv("PLUGBOARD_MAX_RATIO", "0.3")
        settings = ResolverSettings(max_rejection_ratio="${PLUGBOARD_MAX_RATIO}")
        assert settings.max_rejection_ratio == pytest.approx(0.3)

    def test_missing_env_var(self, monkeypatch):
        monkeypatch.delenv("PLUGBOARD_NOT_SET", raising=False)
        with pytest.raises(ValidationError, match="PLUGBOARD_NOT_SET"):
            ResolverSettings(log_level="${PLUGBOARD_NOT_SET}")


class TestLoadFromDict:
    """测试多环境配置加载"""

    CONFIG = {
        "default": {"log_level": "INFO", "max_rejection_ratio": 0.5},
        "production": {"log_level": "WARNING", "max_rejection_ratio": 0.1},
        "test": {"skip_unknown_service_types": False},
    }

    def test_explicit_env(self):
        settings = ResolverSettings.load_from_dict(self.CONFIG, env="production")
        assert settings.log_level == "WARNING"
        assert settings.max_rejection_ratio == 0.1

    def test_env_from_app_env(self, monkeypatch):
        monkeypatch.setenv("APP_ENV", "test")
        settings = ResolverSettings.load_from_dict(self.CONFIG)
        assert settings.skip_unknown_service_types is False
        assert settings.max_rejection_ratio == 0.5

    def test_unknown_env_uses_default(self, monkeypatch):
        monkeypatch.delenv("APP_ENV", raising=False)
        settings = ResolverSettings.load_from_dict(self.CONFIG)
        assert settings.log_level == "INFO"

    def test_flat_config(self):
        settings = ResolverSettings.load_from_dict({"service_version_fallback": False})
        assert settings.service_version_fallback is False

    def test_invalid_config(self):
        with pytest.raises(ConfigurationError):
            ResolverSettings.load_from_dict({"default": {"bogus": 1}})

    def test_deep_merge(self):
        base = {"a": {"x": 1, "y": 2}, "b": 1}
        merged = deep_merge(base, {"a": {"y": 3}, "c": 4})
        assert merged == {"a": {"x": 1, "y": 3}, "b": 1, "c": 4}
        assert base == {"a": {"x": 1, "y": 2}, "b": 1}


class TestLoadFromFile:
    """测试配置文件加载"""

    def test_yaml_file(self, tmp_path):
        path = tmp_path / "plugboard.yaml"
        path.write_text(
            "default:\n  log_level: DEBUG\nproduction:\n  max_rejection_ratio: 0.2\n",
            encoding="utf-8",
        )
        settings = ResolverSettings.load_from_file(path, env="production")
        assert settings.log_level == "DEBUG"
        assert settings.max_rejection_ratio == 0.2

    def test_json_file(self, tmp_path):
        path = tmp_path / "plugboard.json"
        path.write_text(json.dumps({"skip_unknown_service_types": False}), encoding="utf-8")
        assert ResolverSettings.load_from_file(path).skip_unknown_service_types is False

    def test_empty_yaml_file(self, tmp_path):
        path = tmp_path / "empty.yml"
        path.write_text("", encoding="utf-8")
        assert ResolverSettings.load_from_file(path) == ResolverSettings()

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="不存在"):
            ResolverSettings.load_from_file(tmp_path / "missing.yaml")

    def test_unsupported_format(self, tmp_path):
        path = tmp_path / "plugboard.toml"
        path.write_text("log_level = 'INFO'", encoding="utf-8")
        with pytest.raises(ConfigurationError, match="不支持"):
            ResolverSettings.load_from_file(path)

    def test_malformed_yaml(self, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("default: [unclosed", encoding="utf-8")
        with pytest.raises(ConfigurationError):
            ResolverSettings.load_from_file(path)

    def test_non_mapping_top_level(self, tmp_path):
        path = tmp_path / "list.json"
        path.write_text("[1, 2]", encoding="utf-8")
        with pytest.raises(ConfigurationError, match="映射"):
            ResolverSettings.load_from_file(path)


class TestConfigureLogging:
    """测试日志初始化"""

    def test_applies_level_and_handler(self, plugboard_logger):
        logger = configure_logging(ResolverSettings(log_level="debug"))

        assert logger is plugboard_logger
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 1

    def test_handler_added_once(self, plugboard_logger):
        configure_logging()
        configure_logging()
        assert len(plugboard_logger.handlers) == 1
