# -*- coding: utf-8 -*-
"""
解析上下文

每次解析调用显式传入的上下文对象，取代进程级的全局日志器与单例状态。
上下文携带宿主希望使用的日志汇、认证管理器、配置提供者和代码加载器。
"""

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Dict, Mapping, Optional, Protocol, Sequence

from .exceptions import InvalidDefinitionError


class AuthManager(Protocol):
    """认证管理器接口（由宿主实现）"""

    def auth_plugin_requested(self, plugin_id: str, category: Optional[str]) -> bool:
        ...

    def register_authenticator(self, node: Any, handle: Any) -> None:
        ...


class PluginConfiguration:
    """
    单个插件的已合并配置

    核心不解释配置内容，只原样随节点传递；唯一例外是代理连接器与外部服务
    读取 remote.json 中的 host/port 作为默认值。
    """

    def __init__(self, contents: Optional[Mapping[str, Any]] = None):
        self._contents: Dict[str, Any] = dict(contents or {})

    def get_contents(self, path: Sequence[str]) -> Optional[Any]:
        """
        按路径获取配置内容

        Args:
            path: 路径片段，例如 ["remote.json"]

        Returns:
            对应内容，不存在时返回 None
        """
        current: Any = self._contents
        for part in path:
            if not isinstance(current, Mapping) or part not in current:
                return None
            current = current[part]
        return current

    def get_mapping(self, path: Sequence[str]) -> Optional[Mapping[str, Any]]:
        """
        按路径获取映射内容

        Raises:
            InvalidDefinitionError: 内容存在但不是映射
        """
        contents = self.get_contents(path)
        if contents is None:
            return None
        if not isinstance(contents, Mapping):
            raise InvalidDefinitionError(
                f"配置 {'/'.join(path)} 必须是映射，实际为 {type(contents).__name__}"
            )
        return contents

    def as_dict(self) -> Mapping[str, Any]:
        """只读视图"""
        return MappingProxyType(self._contents)

    def __eq__(self, other):
        if not isinstance(other, PluginConfiguration):
            return NotImplemented
        return self._contents == other._contents

    def __repr__(self):
        return f"PluginConfiguration({self._contents!r})"


# 配置提供者: identifier -> PluginConfiguration
ConfigurationProvider = Callable[[str], Optional[PluginConfiguration]]

# 代码加载器: (node, service 或 None) -> ImplementationHandle
CodeLoader = Callable[..., Any]


@dataclass
class ResolutionContext:
    """
    解析上下文

    Attributes:
        logger: 报告日志汇
        auth_manager: 认证管理器，可选
        configuration_provider: 按插件标识返回配置的回调，可选
        code_loader: 为已接受插件加载实现代码的回调，可选
    """

    logger: logging.Logger = field(
        default_factory=lambda: logging.getLogger("plugboard")
    )
    auth_manager: Optional[AuthManager] = None
    configuration_provider: Optional[ConfigurationProvider] = None
    code_loader: Optional[CodeLoader] = None

    def get_plugin_configuration(self, identifier: str) -> PluginConfiguration:
        """获取插件配置，没有提供者或提供者返回 None 时返回空配置"""
        if self.configuration_provider is None:
            return PluginConfiguration()
        configuration = self.configuration_provider(identifier)
        if configuration is None:
            return PluginConfiguration()
        if isinstance(configuration, PluginConfiguration):
            return configuration
        return PluginConfiguration(configuration)
