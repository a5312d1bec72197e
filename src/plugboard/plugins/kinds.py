# -*- coding: utf-8 -*-
"""
插件类型

每种插件类型对应分派表中的一项，提供 prepare / validate / initialize 三个行为：

- prepare: 从定义与插件配置中提取类型相关字段（例如代理连接器的 host/port）
- validate: 本地验证，失败时抛出 InvalidDefinitionError
- initialize: 插件被接受后由宿主按顺序调用，返回可选的实现句柄
"""

import os
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional

from ..context import PluginConfiguration, ResolutionContext
from ..dependency.manifest import RawPluginDefinition
from ..exceptions import InvalidDefinitionError, PluginInitializationError


class PluginKind(str, Enum):
    """插件类型"""

    LIBRARY = "library"
    APPLICATION = "application"
    WINDOW_MANAGER = "windowManager"
    BOOTSTRAP = "bootstrap"
    DESKTOP = "desktop"
    NODE_AUTHENTICATION = "nodeAuthentication"
    PROXY_CONNECTOR = "proxyConnector"

    @classmethod
    def from_type(cls, plugin_type: str) -> "PluginKind":
        """
        按 pluginType 查找插件类型

        Raises:
            InvalidDefinitionError: 未知的插件类型
        """
        try:
            return cls(plugin_type)
        except ValueError:
            raise InvalidDefinitionError(f"未知的插件类型: {plugin_type}") from None


Attributes = Dict[str, Any]


@dataclass(frozen=True)
class KindBehaviour:
    """分派表中的一项"""

    kind: PluginKind
    prepare: Callable[[RawPluginDefinition, PluginConfiguration], Attributes]
    validate: Callable[[RawPluginDefinition, Mapping[str, Any], ResolutionContext], None]
    initialize: Callable[[Any, ResolutionContext], Any]


# region 通用行为


def _prepare_common(definition: RawPluginDefinition, configuration: PluginConfiguration) -> Attributes:
    return {}


def _validate_common(
    definition: RawPluginDefinition, attributes: Mapping[str, Any], context: ResolutionContext
) -> None:
    for field_name, value in (
        ("identifier", definition.identifier),
        ("pluginVersion", definition.declared_version),
        ("pluginType", definition.plugin_type),
    ):
        if not isinstance(value, str) or not value.strip():
            raise InvalidDefinitionError(f"{definition.identifier}: {field_name} 必须是非空字符串")
    if definition.api_version is not None and not definition.api_version.strip():
        raise InvalidDefinitionError(f"{definition.identifier}: apiVersion 必须是非空字符串")


def _check_auth_requested(
    definition: RawPluginDefinition, category: Optional[str], context: ResolutionContext
) -> None:
    auth_manager = context.auth_manager
    if auth_manager is None or not auth_manager.auth_plugin_requested(definition.identifier, category):
        context.logger.warning(
            f"{definition.identifier}: 发现未在服务器配置 dataserviceAuthentication 中请求的认证插件，跳过加载"
        )
        raise InvalidDefinitionError(f"{definition.identifier}: 认证插件未被请求")


def _initialize_default(node, context: ResolutionContext) -> None:
    context.logger.warning(f'{node.identifier}: "{node.kind.value}" 类型插件没有特定的初始化行为')
    return None


# endregion


# region library


def _initialize_library(node, context: ResolutionContext) -> None:
    if not node.location or not os.path.exists(node.location):
        context.logger.warning(f"{node.identifier}: 库路径 {node.location} 不存在")
        return None
    context.logger.info(f"插件 {node.identifier} 将从目录 {node.location} 提供库数据")
    return None


# endregion


# region nodeAuthentication


def _prepare_node_authentication(
    definition: RawPluginDefinition, configuration: PluginConfiguration
) -> Attributes:
    return {
        "filename": definition.filename,
        "authentication_category": definition.authentication_category,
    }


def _validate_node_authentication(
    definition: RawPluginDefinition, attributes: Mapping[str, Any], context: ResolutionContext
) -> None:
    _validate_common(definition, attributes, context)
    if not attributes.get("filename") or not attributes.get("authentication_category"):
        raise InvalidDefinitionError(
            f"{definition.identifier}: 认证插件需要 filename 与 authenticationCategory"
        )
    _check_auth_requested(definition, attributes["authentication_category"], context)


def _initialize_node_authentication(node, context: ResolutionContext) -> Any:
    """通过代码加载器获取认证处理模块并注册到认证管理器"""
    if context.code_loader is None:
        raise PluginInitializationError(f"{node.identifier}: 没有可用的代码加载器")
    if context.auth_manager is None:
        raise PluginInitializationError(f"{node.identifier}: 没有可用的认证管理器")

    filepath = os.path.join(node.location or "", "lib", node.attributes["filename"])
    context.logger.info(f"认证插件 {node.identifier}: 加载认证处理模块 {filepath}")
    handle = context.code_loader(node, None)
    context.auth_manager.register_authenticator(node, handle)
    return handle


# endregion


# region proxyConnector


def _prepare_proxy_connector(
    definition: RawPluginDefinition, configuration: PluginConfiguration
) -> Attributes:
    host, port = definition.host, definition.port
    remote_config = configuration.get_mapping(["remote.json"]) if configuration else None
    if remote_config:
        if not host:
            host = remote_config.get("host")
        if not port:
            port = remote_config.get("port")
    return {
        "host": host,
        "port": port,
        "authentication_category": definition.authentication_category,
    }


def _validate_proxy_connector(
    definition: RawPluginDefinition, attributes: Mapping[str, Any], context: ResolutionContext
) -> None:
    _validate_common(definition, attributes, context)
    if not attributes.get("host") or not attributes.get("port"):
        raise InvalidDefinitionError(f"{definition.identifier}: 代理连接器需要 host 与 port")
    _check_auth_requested(definition, attributes.get("authentication_category"), context)


# endregion


KIND_BEHAVIOURS: Mapping[PluginKind, KindBehaviour] = {
    PluginKind.LIBRARY: KindBehaviour(
        PluginKind.LIBRARY, _prepare_common, _validate_common, _initialize_library
    ),
    PluginKind.APPLICATION: KindBehaviour(
        PluginKind.APPLICATION, _prepare_common, _validate_common, _initialize_default
    ),
    PluginKind.WINDOW_MANAGER: KindBehaviour(
        PluginKind.WINDOW_MANAGER, _prepare_common, _validate_common, _initialize_default
    ),
    PluginKind.BOOTSTRAP: KindBehaviour(
        PluginKind.BOOTSTRAP, _prepare_common, _validate_common, _initialize_default
    ),
    PluginKind.DESKTOP: KindBehaviour(
        PluginKind.DESKTOP, _prepare_common, _validate_common, _initialize_default
    ),
    PluginKind.NODE_AUTHENTICATION: KindBehaviour(
        PluginKind.NODE_AUTHENTICATION,
        _prepare_node_authentication,
        _validate_node_authentication,
        _initialize_node_authentication,
    ),
    PluginKind.PROXY_CONNECTOR: KindBehaviour(
        PluginKind.PROXY_CONNECTOR,
        _prepare_proxy_connector,
        _validate_proxy_connector,
        _initialize_default,
    ),
}


def prepare_and_validate(
    definition: RawPluginDefinition,
    configuration: PluginConfiguration,
    context: ResolutionContext,
) -> tuple:
    """
    确定插件类型并执行类型相关的准备与验证

    Returns:
        (PluginKind, 类型相关字段)

    Raises:
        InvalidDefinitionError: 未知类型或验证失败
    """
    kind = PluginKind.from_type(definition.plugin_type)
    behaviour = KIND_BEHAVIOURS[kind]
    attributes = behaviour.prepare(definition, configuration)
    behaviour.validate(definition, attributes, context)
    return kind, attributes


def initialize(node, context: ResolutionContext) -> Any:
    """
    初始化已接受的插件

    Returns:
        代码加载器返回的实现句柄，没有时为 None

    Raises:
        PluginInitializationError: 初始化失败
    """
    if node.kind is None:
        raise PluginInitializationError(f"{node.identifier}: 插件类型未知，无法初始化")
    return KIND_BEHAVIOURS[node.kind].initialize(node, context)
