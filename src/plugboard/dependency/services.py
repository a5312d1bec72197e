# -*- coding: utf-8 -*-
"""
服务注册表

按逻辑名称分组单个插件暴露的服务并跟踪每组的最高版本，
同时按声明顺序保存插件的导入请求。
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple

from ..context import PluginConfiguration
from ..exceptions import InvalidDefinitionError, InvalidVersionError, InvalidVersionRangeError
from . import version as versions
from .manifest import RawPluginDefinition
from .version import Version, VersionRange


class ServiceKind(str, Enum):
    """服务类型"""

    SERVICE = "service"
    IMPORT = "import"
    NODE_SERVICE = "nodeService"
    ROUTER = "router"
    EXTERNAL = "external"


EXPOSED_KINDS = frozenset(
    {ServiceKind.SERVICE, ServiceKind.NODE_SERVICE, ServiceKind.ROUTER, ServiceKind.EXTERNAL}
)


@dataclass(frozen=True)
class ServiceDescriptor:
    """
    服务描述

    Attributes:
        name: 服务名称（导入请求为本地名称）
        version: 服务版本，导入请求可能为 None
        kind: 服务类型
        owning_plugin_id: 所属插件标识
        source_plugin_id: 导入来源插件（仅导入请求）
        source_name: 导入来源服务名称（仅导入请求）
        version_range: 导入版本范围（仅导入请求）
        local_name: 导入后的本地名称（仅导入请求）
        host: 外部服务主机
        port: 外部服务端口
        attributes: 原始服务定义的只读副本
    """

    name: str
    version: Optional[Version]
    kind: ServiceKind
    owning_plugin_id: str
    source_plugin_id: Optional[str] = None
    source_name: Optional[str] = None
    version_range: Optional[VersionRange] = None
    local_name: Optional[str] = None
    host: Optional[str] = None
    port: Optional[Any] = None
    attributes: Mapping[str, Any] = field(
        default_factory=lambda: MappingProxyType({}), compare=False, hash=False, repr=False
    )

    @property
    def is_import(self) -> bool:
        return self.kind is ServiceKind.IMPORT

    @property
    def version_range_text(self) -> Optional[str]:
        """范围的原始表达式"""
        if self.version_range is None:
            return None
        return str(self.version_range)


@dataclass(frozen=True)
class ServiceGroup:
    """
    同一逻辑名称下的所有服务版本

    highest_version 始终是 versions 中最大的键；加入新版本返回新的分组。
    """

    logical_name: str
    highest_version: Optional[Version] = None
    versions: Mapping[Version, ServiceDescriptor] = field(
        default_factory=lambda: MappingProxyType({})
    )

    def with_service(self, descriptor: ServiceDescriptor) -> "ServiceGroup":
        """返回加入 descriptor 之后的新分组，相同版本以后加入的为准"""
        updated = dict(self.versions)
        updated[descriptor.version] = descriptor
        highest = self.highest_version
        if highest is None or descriptor.version > highest:
            highest = descriptor.version
        return ServiceGroup(self.logical_name, highest, MappingProxyType(updated))

    def select(self, version_range) -> Optional[ServiceDescriptor]:
        """返回满足范围的最高版本服务，没有时返回 None"""
        best = versions.max_satisfying(self.versions.keys(), version_range)
        if best is None:
            return None
        return self.versions[best]

    def __len__(self) -> int:
        return len(self.versions)


def _first(definition: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        value = definition.get(key)
        if value is not None:
            return value
    return None


class ServiceRegistry:
    """
    单个插件的服务注册表

    负责暴露服务的分组与导入请求的收集，不关心导入目标是否存在，
    导入解析由依赖图在全部插件的范围内完成。
    """

    def __init__(self, plugin_id: str):
        self.plugin_id = plugin_id
        self._groups: Dict[str, ServiceGroup] = {}
        self._imports: List[ServiceDescriptor] = []

    def add_exposed(self, descriptor: ServiceDescriptor) -> ServiceGroup:
        """
        加入暴露服务

        Returns:
            更新后的分组
        """
        if descriptor.kind not in EXPOSED_KINDS:
            raise ValueError(f"{descriptor.name}: {descriptor.kind.value} 不是暴露服务类型")
        group = self._groups.get(descriptor.name) or ServiceGroup(descriptor.name)
        group = group.with_service(descriptor)
        self._groups[descriptor.name] = group
        return group

    def add_import_request(self, descriptor: ServiceDescriptor) -> None:
        """按声明顺序追加导入请求"""
        if not descriptor.is_import:
            raise ValueError(f"{descriptor.name}: 不是导入请求")
        self._imports.append(descriptor)

    @property
    def exposed_groups(self) -> Mapping[str, ServiceGroup]:
        return MappingProxyType(dict(self._groups))

    @property
    def import_requests(self) -> Tuple[ServiceDescriptor, ...]:
        return tuple(self._imports)

    def get_group(self, name: str) -> Optional[ServiceGroup]:
        return self._groups.get(name)

    def has_service(self, name: str) -> bool:
        return name in self._groups

    @classmethod
    def from_definition(
        cls,
        definition: RawPluginDefinition,
        configuration: Optional[PluginConfiguration] = None,
        settings=None,
        logger: Optional[logging.Logger] = None,
    ) -> "ServiceRegistry":
        """
        从插件定义构建服务注册表

        Args:
            definition: 已验证的插件定义
            configuration: 插件配置，外部服务从中读取 remote.json 默认值
            settings: ResolverSettings，为 None 时使用默认值
            logger: 日志器

        Raises:
            InvalidVersionError: 暴露服务的版本不合法
            InvalidVersionRangeError: 导入请求的版本范围不合法
            InvalidDefinitionError: 服务定义缺少必需字段，导入的本地名称重复，或 remote.json 不是映射
        """
        logger = logger or logging.getLogger(__name__)
        fallback = True if settings is None else settings.service_version_fallback
        skip_unknown = True if settings is None else settings.skip_unknown_service_types
        plugin_id = definition.identifier
        registry = cls(plugin_id)

        for service_def in definition.exposed_services:
            service_type = service_def.get("type") or ServiceKind.SERVICE.value
            try:
                kind = ServiceKind(service_type)
            except ValueError:
                kind = None
            if kind is None or kind is ServiceKind.IMPORT:
                if not skip_unknown:
                    raise InvalidDefinitionError(
                        f"{plugin_id}: 服务 '{service_def.get('name')}' 的类型 '{service_type}' 无效"
                    )
                logger.warning(f"{plugin_id}: 无效的服务类型 '{service_type}'，跳过服务 '{service_def.get('name')}'")
                continue

            descriptor = _make_exposed(service_def, kind, definition, configuration, fallback, logger)
            registry.add_exposed(descriptor)
            logger.info(f"{plugin_id}: 发现{_KIND_LABELS[kind]} '{descriptor.name}' ({descriptor.version})")

        for import_def in definition.import_requests:
            descriptor = _make_import(import_def, definition, fallback)
            if any(r.local_name == descriptor.local_name for r in registry.import_requests):
                raise InvalidDefinitionError(
                    f"{plugin_id}: 导入的本地名称 '{descriptor.local_name}' 重复"
                )
            registry.add_import_request(descriptor)
            logger.info(
                f"{plugin_id}: 从 {descriptor.source_plugin_id} 导入服务 "
                f"'{descriptor.source_name}' 作为 '{descriptor.local_name}'"
            )

        return registry


_KIND_LABELS = {
    ServiceKind.SERVICE: "代理服务",
    ServiceKind.ROUTER: "路由",
    ServiceKind.NODE_SERVICE: "旧式节点服务",
    ServiceKind.EXTERNAL: "外部服务",
}


def _make_exposed(
    service_def: Mapping[str, Any],
    kind: ServiceKind,
    definition: RawPluginDefinition,
    configuration: Optional[PluginConfiguration],
    fallback: bool,
    logger: logging.Logger,
) -> ServiceDescriptor:
    plugin_id = definition.identifier
    name = service_def.get("name")
    if not isinstance(name, str) or not name:
        raise InvalidDefinitionError(f"{plugin_id}: 服务缺少名称")

    version_text = service_def.get("version")
    if version_text is None and fallback and definition.api_version is not None:
        logger.warning(
            f"服务 {plugin_id}::{name} 未声明版本，使用插件的 API 版本 {definition.api_version}"
        )
        version_text = definition.api_version
    try:
        service_version = versions.parse(version_text)
    except InvalidVersionError as e:
        raise InvalidVersionError(f"{name}: 无效的版本 \"{version_text}\"") from e

    host = port = None
    if kind is ServiceKind.EXTERNAL:
        host = service_def.get("host") or definition.host
        port = service_def.get("port") or definition.port
        remote_config = configuration.get_mapping(["remote.json"]) if configuration else None
        if remote_config:
            host = host or remote_config.get("host")
            port = port or remote_config.get("port")

    return ServiceDescriptor(
        name=name,
        version=service_version,
        kind=kind,
        owning_plugin_id=plugin_id,
        host=host,
        port=port,
        attributes=MappingProxyType(dict(service_def)),
    )


def _make_import(
    import_def: Mapping[str, Any], definition: RawPluginDefinition, fallback: bool
) -> ServiceDescriptor:
    plugin_id = definition.identifier
    source_plugin = _first(import_def, "sourcePlugin", "sourcePluginId", "source_plugin_id")
    source_name = _first(import_def, "sourceName", "source_name")
    if not isinstance(source_plugin, str) or not source_plugin:
        raise InvalidDefinitionError(f"{plugin_id}: 导入请求缺少来源插件")
    if not isinstance(source_name, str) or not source_name:
        raise InvalidDefinitionError(f"{plugin_id}: 导入请求缺少来源服务名称")
    local_name = _first(import_def, "localName", "local_name") or source_name

    range_text = _first(import_def, "versionRange", "version_range")
    try:
        version_range = versions.parse_range(range_text)
    except InvalidVersionRangeError as e:
        raise InvalidVersionRangeError(f"{local_name}: 无效的版本范围 \"{range_text}\"") from e

    version_text = import_def.get("version")
    if version_text is None and fallback:
        version_text = definition.api_version
    import_version = versions.parse(version_text) if versions.is_valid(version_text) else None

    return ServiceDescriptor(
        name=local_name,
        version=import_version,
        kind=ServiceKind.IMPORT,
        owning_plugin_id=plugin_id,
        source_plugin_id=source_plugin,
        source_name=source_name,
        version_range=version_range,
        local_name=local_name,
        attributes=MappingProxyType(dict(import_def)),
    )
