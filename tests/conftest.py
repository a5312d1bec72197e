# -*- coding: utf-8 -*-
"""
全局测试配置
提供插件定义工厂和共享 fixture
"""

import logging
from unittest.mock import MagicMock

import pytest

from plugboard.config import ResolverSettings
from plugboard.context import PluginConfiguration, ResolutionContext
from plugboard.dependency.registry import PluginRegistry


def build_definition(
    identifier,
    exposes=(),
    imports=(),
    plugin_type="application",
    plugin_version="1.0.0",
    api_version="1.0.0",
    **extra,
):
    """
    构建原始插件定义

    Args:
        identifier: 插件标识
        exposes: [(服务名称, 版本)] 或完整的服务定义映射
        imports: [(来源插件, 来源服务, 版本范围)] 或 [(来源插件, 来源服务, 版本范围, 本地名称)]
        plugin_type: 插件类型
    """
    data_services = []
    for service in exposes:
        if isinstance(service, dict):
            data_services.append(service)
        else:
            name, version = service
            data_services.append({"type": "service", "name": name, "version": version})
    for request in imports:
        source_plugin, source_name, version_range = request[:3]
        entry = {
            "type": "import",
            "sourcePlugin": source_plugin,
            "sourceName": source_name,
            "versionRange": version_range,
        }
        if len(request) > 3:
            entry["localName"] = request[3]
        data_services.append(entry)

    definition = {
        "identifier": identifier,
        "pluginVersion": plugin_version,
        "apiVersion": api_version,
        "pluginType": plugin_type,
        "location": "/opt/plugins/" + identifier,
        "dataServices": data_services,
    }
    definition.update(extra)
    return definition


@pytest.fixture
def make_definition():
    """插件定义工厂"""
    return build_definition


@pytest.fixture
def test_logger():
    """测试专用日志器"""
    return logging.getLogger("plugboard.tests")


@pytest.fixture
def mock_auth_manager():
    """模拟认证管理器，默认所有认证插件都已请求"""
    auth_manager = MagicMock()
    auth_manager.auth_plugin_requested.return_value = True
    return auth_manager


@pytest.fixture
def context(test_logger, mock_auth_manager):
    """解析上下文"""
    return ResolutionContext(logger=test_logger, auth_manager=mock_auth_manager)


@pytest.fixture
def settings():
    """默认解析器配置"""
    return ResolverSettings()


@pytest.fixture
def registry(context, settings):
    """插件注册表"""
    return PluginRegistry(context=context, settings=settings)


@pytest.fixture
def remote_configuration():
    """带 remote.json 的插件配置"""
    return PluginConfiguration({"remote.json": {"host": "zos.example.com", "port": 8544}})
