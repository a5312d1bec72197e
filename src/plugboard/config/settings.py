# -*- coding: utf-8 -*-
"""
plugboard 解析器配置模块
提供基于 Pydantic 的配置验证机制，支持环境变量解析和多环境配置
"""

import copy
import json
import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, Optional, Type, TypeVar, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from ..exceptions import ConfigurationError

T = TypeVar("T", bound="ResolverSettings")

# 环境变量匹配模式: ${VAR_NAME}
ENV_VAR_PATTERN = re.compile(r"\${([A-Za-z0-9_]+)}")

DEFAULT_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def deep_merge(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    """
    深度合并两个字典，overrides 中的值会覆盖 base 中的值
    """
    result = copy.deepcopy(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and key in result and isinstance(result[key], dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result


class ResolverSettings(BaseModel):
    """
    解析器配置

    1. **严格模式验证**：禁止额外字段，防止配置错误
    2. **环境变量解析**：自动解析 "${VAR_NAME}" 格式的环境变量
    3. **多环境配置**：根据 APP_ENV 环境变量加载不同环境的配置
    """

    service_version_fallback: bool = Field(
        default=True, description="服务未声明版本时使用插件的 apiVersion"
    )
    skip_unknown_service_types: bool = Field(
        default=True, description="跳过未知类型的服务，False 时视为无效定义"
    )
    max_rejection_ratio: Optional[float] = Field(
        default=None, ge=0.0, le=1.0, description="宿主可容忍的最大拒绝比例"
    )
    log_level: str = Field(default="INFO", description="日志级别")
    log_format: str = Field(default=DEFAULT_LOG_FORMAT, description="日志格式")

    @model_validator(mode="before")
    @classmethod
    def _resolve_env_vars(cls, data: Any) -> Any:
        """
        在其他验证执行前递归解析 ${VAR_NAME} 环境变量

        Raises:
            ValueError: 当环境变量未设置时抛出
        """
        if not isinstance(data, dict):
            return data

        def _resolve(value: Any) -> Any:
            if isinstance(value, str):
                match = ENV_VAR_PATTERN.match(value)
                if not match:
                    return value
                env_var_name = match.group(1)
                env_var_value = os.getenv(env_var_name)
                if env_var_value is None:
                    raise ValueError(f"环境变量 '{env_var_name}' 未设置")
                return env_var_value
            elif isinstance(value, dict):
                return {k: _resolve(v) for k, v in value.items()}
            elif isinstance(value, list):
                return [_resolve(v) for v in value]
            return value

        return _resolve(data)

    @model_validator(mode="after")
    def _check_log_level(self):
        if logging.getLevelName(self.log_level.upper()) == f"Level {self.log_level.upper()}":
            raise ValueError(f"未知的日志级别: {self.log_level}")
        return self

    @classmethod
    def load_from_dict(
        cls: Type[T],
        config_data: Dict[str, Any],
        env: Optional[str] = None,
    ) -> T:
        """
        从字典加载配置，支持环境特定的配置覆盖

        配置结构示例：
        {
            "default": {"log_level": "INFO"},
            "production": {"max_rejection_ratio": 0.2}
        }

        没有 "default" 段时整个字典视为基础配置。

        Args:
            config_data: 配置字典
            env: 目标环境，为 None 时使用 os.getenv("APP_ENV", "development")

        Returns:
            配置模型实例

        Raises:
            ConfigurationError: 配置验证失败
        """
        if env is None:
            env = os.getenv("APP_ENV", "development")

        if "default" in config_data:
            base_config = config_data.get("default") or {}
            env_config = config_data.get(env) or {}
        else:
            base_config = config_data
            env_config = {}

        merged_config = deep_merge(base_config, env_config)

        try:
            return cls(**merged_config)
        except ValidationError as e:
            raise ConfigurationError(f"解析器配置验证失败: {e}") from e

    @classmethod
    def load_from_file(
        cls: Type[T], config_path: Union[str, Path], env: Optional[str] = None
    ) -> T:
        """
        从 YAML 或 JSON 文件加载配置

        Raises:
            ConfigurationError: 文件不存在、格式不支持或内容无效
        """
        config_path = Path(config_path)
        if not config_path.exists():
            raise ConfigurationError(f"配置文件不存在: {config_path}")

        suffix = config_path.suffix.lower()
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                if suffix in (".yaml", ".yml"):
                    data = yaml.safe_load(f)
                elif suffix == ".json":
                    data = json.load(f)
                else:
                    raise ConfigurationError(f"不支持的配置文件格式: {config_path.suffix}")
        except (yaml.YAMLError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"加载配置文件失败 {config_path}: {e}") from e

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigurationError(f"配置文件顶层必须是映射: {config_path}")

        return cls.load_from_dict(data, env=env)

    # Pydantic v2 配置
    model_config = ConfigDict(
        extra="forbid", validate_assignment=True  # 禁止额外字段  # 赋值时验证
    )


def configure_logging(settings: Optional[ResolverSettings] = None) -> logging.Logger:
    """
    按配置初始化 plugboard 日志器

    Returns:
        "plugboard" 根日志器
    """
    settings = settings or ResolverSettings()
    logger = logging.getLogger("plugboard")
    logger.setLevel(settings.log_level.upper())
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(settings.log_format))
        logger.addHandler(handler)
    return logger
