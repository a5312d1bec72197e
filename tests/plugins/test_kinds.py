# -*- coding: utf-8 -*-
"""
插件类型分派表测试
"""

import logging
from unittest.mock import MagicMock

import pytest

from plugboard.context import PluginConfiguration, ResolutionContext
from plugboard.dependency.manifest import RawPluginDefinition
from plugboard.dependency.registry import PluginRegistry
from plugboard.exceptions import InvalidDefinitionError, PluginInitializationError
from plugboard.plugins import kinds
from plugboard.plugins.kinds import KIND_BEHAVIOURS, PluginKind


def _raw(data):
    return RawPluginDefinition.from_mapping(data)


class TestPluginKind:
    """测试插件类型枚举"""

    @pytest.mark.parametrize(
        "plugin_type,kind",
        [
            ("library", PluginKind.LIBRARY),
            ("application", PluginKind.APPLICATION),
            ("windowManager", PluginKind.WINDOW_MANAGER),
            ("bootstrap", PluginKind.BOOTSTRAP),
            ("desktop", PluginKind.DESKTOP),
            ("nodeAuthentication", PluginKind.NODE_AUTHENTICATION),
            ("proxyConnector", PluginKind.PROXY_CONNECTOR),
        ],
    )
    def test_from_type(self, plugin_type, kind):
        assert PluginKind.from_type(plugin_type) is kind

    def test_unknown_type(self):
        with pytest.raises(InvalidDefinitionError, match="widget"):
            PluginKind.from_type("widget")

    def test_every_kind_has_behaviour(self):
        assert set(KIND_BEHAVIOURS) == set(PluginKind)
        for kind, behaviour in KIND_BEHAVIOURS.items():
            assert behaviour.kind is kind


class TestCommonValidation:
    """测试通用验证"""

    def test_blank_api_version(self, context, make_definition):
        definition = _raw(make_definition("p", api_version="  "))
        with pytest.raises(InvalidDefinitionError, match="apiVersion"):
            kinds.prepare_and_validate(definition, PluginConfiguration(), context)

    def test_missing_api_version_is_allowed(self, context, make_definition):
        data = make_definition("p")
        del data["apiVersion"]
        kind, attributes = kinds.prepare_and_validate(_raw(data), PluginConfiguration(), context)
        assert kind is PluginKind.APPLICATION
        assert attributes == {}

    def test_blank_plugin_version(self, context, make_definition):
        definition = _raw(make_definition("p", plugin_version=" "))
        with pytest.raises(InvalidDefinitionError, match="pluginVersion"):
            kinds.prepare_and_validate(definition, PluginConfiguration(), context)


class TestNodeAuthentication:
    """测试认证插件"""

    @pytest.fixture
    def auth_definition(self, make_definition):
        return make_definition(
            "org.test.auth",
            plugin_type="nodeAuthentication",
            filename="auth.js",
            authenticationCategory="saf",
        )

    def test_requested_plugin_is_valid(self, context, mock_auth_manager, auth_definition):
        kind, attributes = kinds.prepare_and_validate(
            _raw(auth_definition), PluginConfiguration(), context
        )

        assert kind is PluginKind.NODE_AUTHENTICATION
        assert attributes == {"filename": "auth.js", "authentication_category": "saf"}
        mock_auth_manager.auth_plugin_requested.assert_called_once_with("org.test.auth", "saf")

    @pytest.mark.parametrize("missing", ["filename", "authenticationCategory"])
    def test_requires_filename_and_category(self, context, auth_definition, missing):
        del auth_definition[missing]
        with pytest.raises(InvalidDefinitionError):
            kinds.prepare_and_validate(_raw(auth_definition), PluginConfiguration(), context)

    def test_not_requested_is_rejected(self, context, mock_auth_manager, auth_definition, caplog):
        mock_auth_manager.auth_plugin_requested.return_value = False
        with caplog.at_level(logging.WARNING):
            with pytest.raises(InvalidDefinitionError, match="未被请求"):
                kinds.prepare_and_validate(_raw(auth_definition), PluginConfiguration(), context)
        assert "dataserviceAuthentication" in caplog.text

    def test_no_auth_manager_is_rejected(self, test_logger, auth_definition):
        context = ResolutionContext(logger=test_logger)
        with pytest.raises(InvalidDefinitionError):
            kinds.prepare_and_validate(_raw(auth_definition), PluginConfiguration(), context)

    def test_initialize_registers_handle(self, mock_auth_manager, test_logger, auth_definition):
        handle = object()
        code_loader = MagicMock(return_value=handle)
        context = ResolutionContext(
            logger=test_logger, auth_manager=mock_auth_manager, code_loader=code_loader
        )
        node = PluginRegistry(context).build_node(auth_definition)

        assert kinds.initialize(node, context) is handle
        code_loader.assert_called_once_with(node, None)
        mock_auth_manager.register_authenticator.assert_called_once_with(node, handle)

    def test_initialize_without_code_loader(self, context, auth_definition):
        node = PluginRegistry(context).build_node(auth_definition)
        with pytest.raises(PluginInitializationError):
            kinds.initialize(node, context)

    def test_export_def_includes_auth_fields(self, context, auth_definition):
        node = PluginRegistry(context).build_node(auth_definition)
        exported = node.export_def()

        assert exported["filename"] == "auth.js"
        assert exported["authenticationCategory"] == "saf"
        assert exported["pluginType"] == "nodeAuthentication"


class TestProxyConnector:
    """测试代理连接器"""

    def test_host_and_port_from_remote_config(self, context, make_definition, remote_configuration):
        definition = _raw(make_definition("org.test.proxy", plugin_type="proxyConnector"))
        kind, attributes = kinds.prepare_and_validate(definition, remote_configuration, context)

        assert kind is PluginKind.PROXY_CONNECTOR
        assert attributes["host"] == "zos.example.com"
        assert attributes["port"] == 8544

    def test_own_host_and_port_win(self, context, make_definition, remote_configuration):
        definition = _raw(
            make_definition("org.test.proxy", plugin_type="proxyConnector", host="local", port=1234)
        )
        _, attributes = kinds.prepare_and_validate(definition, remote_configuration, context)

        assert attributes["host"] == "local"
        assert attributes["port"] == 1234

    def test_port_only_from_remote_config(self, context, make_definition):
        definition = _raw(make_definition("org.test.proxy", plugin_type="proxyConnector", host="local"))
        configuration = PluginConfiguration({"remote.json": {"port": 9000}})
        _, attributes = kinds.prepare_and_validate(definition, configuration, context)

        assert attributes["host"] == "local"
        assert attributes["port"] == 9000

    def test_remote_config_must_be_mapping(self, context, make_definition):
        definition = _raw(make_definition("org.test.proxy", plugin_type="proxyConnector"))
        configuration = PluginConfiguration({"remote.json": ["zos.example.com", 8544]})
        with pytest.raises(InvalidDefinitionError, match="remote.json"):
            kinds.prepare_and_validate(definition, configuration, context)

    def test_missing_host_and_port(self, context, make_definition):
        definition = _raw(make_definition("org.test.proxy", plugin_type="proxyConnector"))
        with pytest.raises(InvalidDefinitionError, match="host"):
            kinds.prepare_and_validate(definition, PluginConfiguration(), context)

    def test_requires_auth_requested(self, context, mock_auth_manager, make_definition, remote_configuration):
        mock_auth_manager.auth_plugin_requested.return_value = False
        definition = _raw(make_definition("org.test.proxy", plugin_type="proxyConnector"))
        with pytest.raises(InvalidDefinitionError):
            kinds.prepare_and_validate(definition, remote_configuration, context)


class TestInitialize:
    """测试初始化行为"""

    def test_library_warns_when_location_missing(self, registry, context, make_definition, caplog):
        node = registry.build_node(
            make_definition("org.test.lib", plugin_type="library", location="/no/such/dir")
        )
        with caplog.at_level(logging.WARNING):
            assert kinds.initialize(node, context) is None
        assert "/no/such/dir" in caplog.text

    def test_library_with_existing_location(self, registry, context, make_definition, tmp_path, caplog):
        node = registry.build_node(
            make_definition("org.test.lib", plugin_type="library", location=str(tmp_path))
        )
        with caplog.at_level(logging.INFO):
            kinds.initialize(node, context)
        assert "提供库数据" in caplog.text

    @pytest.mark.parametrize("plugin_type", ["application", "desktop", "bootstrap", "windowManager"])
    def test_other_kinds_log_no_behaviour(self, registry, context, make_definition, plugin_type, caplog):
        node = registry.build_node(make_definition("org.test.p", plugin_type=plugin_type))
        with caplog.at_level(logging.WARNING):
            assert kinds.initialize(node, context) is None
        assert plugin_type in caplog.text

    def test_invalid_node_cannot_initialize(self, registry, context, make_definition):
        node = registry.build_node(make_definition("org.test.p", plugin_type="unknown"))
        with pytest.raises(PluginInitializationError):
            kinds.initialize(node, context)
