# -*- coding: utf-8 -*-
"""
插件注册表

面向宿主的编排层：验证原始定义、构建服务注册表、交给依赖图解析，
并保存已接受的插件集合作为后续动态添加的基线。
"""

import os
import threading
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from ..config import ResolverSettings
from ..context import ResolutionContext
from ..exceptions import (
    AlreadyRegisteredError,
    CyclicDependencyError,
    InvalidDefinitionError,
    InvalidVersionError,
    InvalidVersionRangeError,
    UnresolvedImportError,
)
from ..plugins import kinds as plugin_kinds
from .graph import DependencyGraph
from .manifest import RawPluginDefinition
from .models import PluginNode, RejectionKind, ResolutionResult
from .services import ServiceRegistry

DefinitionLike = Union[RawPluginDefinition, Mapping[str, Any]]


class PluginRegistry:
    """
    插件注册表

    持有已接受的插件集合。整批解析与动态添加互斥，由内部锁串行化。
    """

    def __init__(
        self,
        context: Optional[ResolutionContext] = None,
        settings: Optional[ResolverSettings] = None,
    ):
        """
        初始化插件注册表

        Args:
            context: 解析上下文
            settings: 解析器配置
        """
        self.context = context or ResolutionContext()
        self.settings = settings or ResolverSettings()
        self._logger = self.context.logger
        self._lock = threading.RLock()

        self._accepted: List[PluginNode] = []
        self._by_id: Dict[str, PluginNode] = {}

        # 统计
        self._batch_count = 0
        self._incremental_count = 0
        self._rejected_count = 0

    @property
    def accepted(self) -> Tuple[PluginNode, ...]:
        """已接受的插件，按接受顺序"""
        with self._lock:
            return tuple(self._accepted)

    def get_plugin(self, identifier: str) -> Optional[PluginNode]:
        with self._lock:
            return self._by_id.get(identifier)

    def has_plugin(self, identifier: str) -> bool:
        with self._lock:
            return identifier in self._by_id

    def build_node(self, definition: DefinitionLike, index: int = 0) -> PluginNode:
        """
        由原始定义构建插件节点

        任何本地验证失败都不会抛出，而是返回带 definition_error 的节点，
        交给依赖图以 InvalidDefinition 拒绝。

        Args:
            definition: 原始定义（映射或 RawPluginDefinition）
            index: 定义在批中的位置，用于无法读取标识时生成占位标识

        Returns:
            插件节点
        """
        identifier = _identifier_of(definition, index)
        try:
            raw = RawPluginDefinition.from_mapping(definition)
            try:
                configuration = self.context.get_plugin_configuration(raw.identifier)
            except Exception as e:
                raise InvalidDefinitionError(f"读取插件配置失败: {e}") from e
            kind, attributes = plugin_kinds.prepare_and_validate(raw, configuration, self.context)
            services = ServiceRegistry.from_definition(
                raw, configuration, self.settings, self._logger
            )
        except (InvalidDefinitionError, InvalidVersionError, InvalidVersionRangeError) as e:
            self._logger.warning(f"插件定义无效 {identifier}: {e}")
            declared_version = None
            if isinstance(definition, Mapping):
                declared_version = definition.get("pluginVersion")
            return PluginNode(
                identifier=identifier,
                declared_version=declared_version if isinstance(declared_version, str) else None,
                definition_error=str(e),
            )

        return PluginNode(
            identifier=raw.identifier,
            declared_version=raw.declared_version,
            api_version=raw.api_version,
            kind=kind,
            exposed_groups=services.exposed_groups,
            import_requests=services.import_requests,
            location=raw.location or os.getcwd(),
            configuration=configuration,
            definition=raw,
            attributes=MappingProxyType(attributes),
        )

    def resolve_batch(self, definitions: Iterable[DefinitionLike]) -> ResolutionResult:
        """
        整批解析

        以当前已接受集合为基线构建新的依赖图，解析后把接受的插件加入集合。

        Args:
            definitions: 原始定义序列

        Returns:
            解析结果
        """
        with self._lock:
            definitions = list(definitions)
            self._logger.info(f"开始整批解析 {len(definitions)} 个插件定义")

            graph = DependencyGraph(self._accepted, self.context)
            for index, definition in enumerate(definitions):
                graph.add_plugin(self.build_node(definition, index))
            result = graph.process_imports()

            for node in result.accepted:
                self._register(node)
            self._batch_count += 1
            self._rejected_count += len(result.rejected)
            return result

    def resolve_incremental(
        self,
        definition: DefinitionLike,
        existing_accepted: Optional[Iterable[PluginNode]] = None,
    ) -> PluginNode:
        """
        解析单个动态添加的插件

        导入只针对 existing_accepted 解析，已接受的插件不会被重新验证或重新排序。
        失败时不修改任何已有状态。

        Args:
            definition: 原始定义
            existing_accepted: 已接受的插件，为 None 时使用注册表自身的集合

        Returns:
            已接受的插件节点

        Raises:
            AlreadyRegisteredError: 标识已存在
            InvalidDefinitionError: 定义无效
            UnresolvedImportError: 导入无法解析
            CyclicDependencyError: 插件导入自身
        """
        with self._lock:
            baseline = list(self._accepted if existing_accepted is None else existing_accepted)
            identifier = _identifier_of(definition, 0)
            if any(node.identifier == identifier for node in baseline):
                raise AlreadyRegisteredError(f"插件 {identifier} 已注册", plugin_id=identifier)

            node = self.build_node(definition)
            graph = DependencyGraph(baseline, self.context)
            graph.add_plugin(node)
            result = graph.process_imports()

            if result.accepted:
                self._logger.info(f"插件 {node.identifier} 动态解析成功")
                return result.accepted[0]

            rejection = result.rejected[0]
            raise _rejection_error(rejection.kind)(
                f"插件 {rejection.plugin_id} 解析失败: {rejection.reason.message}",
                plugin_id=rejection.plugin_id,
                reason=rejection.reason,
            )

    def add_plugin(self, definition: DefinitionLike) -> PluginNode:
        """
        动态添加插件

        针对注册表自身的已接受集合解析，成功后追加到集合末尾。

        Raises:
            同 resolve_incremental
        """
        with self._lock:
            return self.register(self.resolve_incremental(definition))

    def register(self, node: PluginNode) -> PluginNode:
        """
        登记已由 resolve_incremental 接受的插件节点

        不会重新构建或验证定义，只在锁内再次检查标识。

        Raises:
            AlreadyRegisteredError: 标识已存在
            ValueError: 节点未被接受
        """
        with self._lock:
            if not node.is_accepted:
                raise ValueError(f"插件 {node.identifier} 未被接受，不能登记")
            if node.identifier in self._by_id:
                raise AlreadyRegisteredError(f"插件 {node.identifier} 已注册", plugin_id=node.identifier)
            self._register(node)
            self._incremental_count += 1
            return node

    def clear(self) -> None:
        """清空已接受集合"""
        with self._lock:
            self._accepted.clear()
            self._by_id.clear()
            self._logger.info("插件注册表已清空")

    def get_statistics(self) -> Dict[str, int]:
        """获取统计信息"""
        with self._lock:
            return {
                "accepted": len(self._accepted),
                "batches": self._batch_count,
                "incremental_additions": self._incremental_count,
                "rejected": self._rejected_count,
            }

    def _register(self, node: PluginNode) -> None:
        self._accepted.append(node)
        self._by_id[node.identifier] = node
        self._logger.info(f"插件 {node.identifier} v{node.declared_version} 已接受")

    def __len__(self) -> int:
        return len(self._accepted)

    def __contains__(self, identifier: str) -> bool:
        return self.has_plugin(identifier)


def _identifier_of(definition: DefinitionLike, index: int) -> str:
    """尽量读取定义的标识，读取不到时返回占位标识"""
    if isinstance(definition, RawPluginDefinition):
        return definition.identifier
    if isinstance(definition, Mapping):
        identifier = definition.get("identifier")
        if isinstance(identifier, str) and identifier:
            return identifier
    return f"<invalid definition #{index}>"


def _rejection_error(kind: RejectionKind):
    if kind is RejectionKind.DUPLICATE_IDENTIFIER:
        return AlreadyRegisteredError
    if kind is RejectionKind.CYCLIC_DEPENDENCY:
        return CyclicDependencyError
    if kind is RejectionKind.INVALID_DEFINITION:
        return InvalidDefinitionError
    return UnresolvedImportError

