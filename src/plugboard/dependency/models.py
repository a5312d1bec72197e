# -*- coding: utf-8 -*-
"""
依赖解析数据模型

插件节点、拒绝原因与解析结果。返回给宿主的对象全部不可变，
依赖图通过 dataclasses.replace 生成新节点而不是修改原节点。
"""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple

from ..plugins.kinds import PluginKind
from .manifest import RawPluginDefinition
from .services import ServiceDescriptor, ServiceGroup
from .version import Version


class PluginStatus(str, Enum):
    """插件解析状态"""

    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class RejectionKind(str, Enum):
    """拒绝原因类别"""

    INVALID_DEFINITION = "InvalidDefinition"
    DUPLICATE_IDENTIFIER = "DuplicateIdentifier"
    UNRESOLVED_IMPORT = "UnresolvedImport"
    DEPENDS_ON_REJECTED_PLUGIN = "DependsOnRejectedPlugin"
    CYCLIC_DEPENDENCY = "CyclicDependency"


@dataclass(frozen=True)
class RejectionReason:
    """
    拒绝原因

    Attributes:
        kind: 原因类别
        message: 可读描述
        source_name: 未解析的导入服务名称（UnresolvedImport）
        source_plugin_id: 未解析的导入来源插件（UnresolvedImport）
        version_range: 未解析的导入版本范围（UnresolvedImport）
        plugin_id: 被拒绝的上游插件（DependsOnRejectedPlugin）
        cycle: 循环中的插件标识（CyclicDependency）
    """

    kind: RejectionKind
    message: str = ""
    source_name: Optional[str] = None
    source_plugin_id: Optional[str] = None
    version_range: Optional[str] = None
    plugin_id: Optional[str] = None
    cycle: Tuple[str, ...] = ()

    @classmethod
    def invalid_definition(cls, message: str) -> "RejectionReason":
        return cls(RejectionKind.INVALID_DEFINITION, message)

    @classmethod
    def duplicate_identifier(cls, identifier: str) -> "RejectionReason":
        return cls(RejectionKind.DUPLICATE_IDENTIFIER, f"插件标识 {identifier} 重复")

    @classmethod
    def unresolved_import(cls, request: ServiceDescriptor, detail: str = "") -> "RejectionReason":
        message = (
            f"无法从 {request.source_plugin_id} 导入服务 '{request.source_name}' "
            f"({request.version_range_text})"
        )
        if detail:
            message = f"{message}: {detail}"
        return cls(
            RejectionKind.UNRESOLVED_IMPORT,
            message,
            source_name=request.source_name,
            source_plugin_id=request.source_plugin_id,
            version_range=request.version_range_text,
        )

    @classmethod
    def depends_on_rejected(cls, plugin_id: str) -> "RejectionReason":
        return cls(
            RejectionKind.DEPENDS_ON_REJECTED_PLUGIN,
            f"依赖的插件 {plugin_id} 已被拒绝",
            plugin_id=plugin_id,
        )

    @classmethod
    def cyclic_dependency(cls, members) -> "RejectionReason":
        members = tuple(members)
        return cls(
            RejectionKind.CYCLIC_DEPENDENCY,
            f"检测到循环依赖: {' -> '.join(members)}",
            cycle=members,
        )

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.message}" if self.message else self.kind.value


@dataclass(frozen=True)
class ResolvedImport:
    """一个导入请求最终绑定到的具体服务版本"""

    local_name: str
    provider_plugin_id: str
    service_name: str
    version: Version
    descriptor: ServiceDescriptor = field(compare=False, repr=False)


def _frozen(mapping: Optional[Mapping] = None) -> Mapping:
    return MappingProxyType(dict(mapping or {}))


@dataclass(frozen=True)
class PluginNode:
    """
    插件节点

    每个插件定义对应一个节点。status、rejection 与 resolved_imports
    只由依赖图在解析结束时写入（生成新的节点实例）。

    Attributes:
        identifier: 插件标识
        declared_version: 插件声明的版本
        api_version: 插件 API 版本
        kind: 插件类型，定义无效时可能为 None
        exposed_groups: 服务名称 -> 服务分组
        import_requests: 导入请求，按声明顺序
        status: 解析状态
        rejection: 拒绝原因
        location: 插件目录
        configuration: 插件配置，核心不解释其内容
        definition: 已验证的原始定义
        attributes: 类型相关字段（host、port、filename、authentication_category）
        resolved_imports: 本地名称 -> 已解析的导入
        definition_error: 本地验证失败的描述
    """

    identifier: str
    declared_version: Optional[str] = None
    api_version: Optional[str] = None
    kind: Optional[PluginKind] = None
    exposed_groups: Mapping[str, ServiceGroup] = field(default_factory=_frozen)
    import_requests: Tuple[ServiceDescriptor, ...] = ()
    status: PluginStatus = PluginStatus.PENDING
    rejection: Optional[RejectionReason] = None
    location: Optional[str] = None
    configuration: Any = field(default=None, compare=False, repr=False)
    definition: Optional[RawPluginDefinition] = field(default=None, compare=False, repr=False)
    attributes: Mapping[str, Any] = field(default_factory=_frozen, repr=False)
    resolved_imports: Mapping[str, ResolvedImport] = field(default_factory=_frozen, repr=False)
    definition_error: Optional[str] = None

    def __hash__(self):
        return hash((self.identifier, self.status))

    @property
    def is_valid(self) -> bool:
        """本地验证是否通过"""
        return self.definition_error is None

    @property
    def is_accepted(self) -> bool:
        return self.status is PluginStatus.ACCEPTED

    @property
    def is_rejected(self) -> bool:
        return self.status is PluginStatus.REJECTED

    def get_group(self, name: str) -> Optional[ServiceGroup]:
        return self.exposed_groups.get(name)

    def find_service(self, name: str, version_range="*") -> Optional[ServiceDescriptor]:
        """返回本插件在 name 下满足范围的最高版本服务"""
        group = self.exposed_groups.get(name)
        if group is None:
            return None
        return group.select(version_range)

    def provider_ids(self) -> Tuple[str, ...]:
        """导入请求引用的来源插件，按声明顺序去重"""
        seen: Dict[str, None] = {}
        for request in self.import_requests:
            seen.setdefault(request.source_plugin_id, None)
        return tuple(seen)

    def export_def(self) -> Dict[str, Any]:
        """导出公开的定义视图"""
        exported = self.definition.export_def() if self.definition else {"identifier": self.identifier}
        if self.kind is PluginKind.NODE_AUTHENTICATION:
            exported["filename"] = self.attributes.get("filename")
            exported["authenticationCategory"] = self.attributes.get("authentication_category")
        return exported

    def __str__(self) -> str:
        return f"[Plugin {self.identifier}]"


@dataclass(frozen=True)
class Rejection:
    """被拒绝的插件及其唯一的终止原因"""

    plugin_id: str
    reason: RejectionReason
    node: Optional[PluginNode] = field(default=None, compare=False, repr=False)

    @property
    def kind(self) -> RejectionKind:
        return self.reason.kind


@dataclass(frozen=True)
class ResolutionResult:
    """
    一次解析的结果

    accepted 按依赖顺序排列，rejected 按输入顺序排列，
    二者恰好划分输入集合。
    """

    accepted: Tuple[PluginNode, ...] = ()
    rejected: Tuple[Rejection, ...] = ()

    @property
    def accepted_ids(self) -> Tuple[str, ...]:
        return tuple(node.identifier for node in self.accepted)

    @property
    def rejected_ids(self) -> Tuple[str, ...]:
        return tuple(rejection.plugin_id for rejection in self.rejected)

    def get_rejection(self, plugin_id: str) -> Optional[Rejection]:
        """返回插件的第一条拒绝记录"""
        for rejection in self.rejected:
            if rejection.plugin_id == plugin_id:
                return rejection
        return None

    def __len__(self) -> int:
        return len(self.accepted) + len(self.rejected)
