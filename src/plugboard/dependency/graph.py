# -*- coding: utf-8 -*-
"""
依赖图

累积一批插件节点及其导入边，完成导入满足性检查、级联拒绝、循环检测与拓扑排序。
单个插件的失败只影响它自己（以及依赖它的插件），不会中断整批解析。
"""

from dataclasses import replace
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Set

import networkx as nx

from ..context import ResolutionContext
from .models import (
    PluginNode,
    PluginStatus,
    Rejection,
    RejectionReason,
    ResolutionResult,
    ResolvedImport,
)
from .services import ServiceDescriptor


class DependencyGraph:
    """
    插件依赖图

    baseline 是之前已接受的插件，只作为不可变的服务提供者参与解析，
    不会被重新验证、拒绝或重新排序。
    """

    def __init__(
        self,
        baseline: Iterable[PluginNode] = (),
        context: Optional[ResolutionContext] = None,
    ):
        """
        初始化依赖图

        Args:
            baseline: 已接受的插件节点
            context: 解析上下文
        """
        self.context = context or ResolutionContext()
        self._logger = self.context.logger
        self.dependency_graph = nx.DiGraph()

        self._baseline: Dict[str, PluginNode] = {}
        for node in baseline:
            self._baseline.setdefault(node.identifier, node)

        # 按输入顺序保存全部节点，包括重复标识
        self._entries: List[PluginNode] = []
        # 标识 -> 首次出现的输入下标
        self._index: Dict[str, int] = {}
        self._duplicates: Set[int] = set()

        # 最近一次解析的结果缓存
        self._reasons: Dict[str, RejectionReason] = {}
        self._result: Optional[ResolutionResult] = None

    def add_plugin(self, node: PluginNode) -> None:
        """
        加入插件节点

        重复的标识（批内重复或与 baseline 冲突）被记录，在输出时以
        DuplicateIdentifier 拒绝，不会覆盖先出现的节点。
        """
        position = len(self._entries)
        self._entries.append(node)
        self._result = None

        if node.identifier in self._index or node.identifier in self._baseline:
            self._duplicates.add(position)
            self._logger.warning(f"插件标识重复: {node.identifier}")
            return

        self._index[node.identifier] = position

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, plugin_id: str) -> bool:
        return plugin_id in self._index or plugin_id in self._baseline

    def resolve_import(self, request: ServiceDescriptor) -> Optional[ServiceDescriptor]:
        """
        按当前状态解析单个导入请求

        Returns:
            来源插件在 source_name 下满足范围的最高版本服务，无法解析时为 None
        """
        if request.source_plugin_id in self._reasons:
            return None
        provider = self._lookup_provider(request.source_plugin_id)
        if provider is None:
            return None
        return provider.find_service(request.source_name, request.version_range)

    def unresolved_predecessors(self, plugin_id: str) -> List[str]:
        """
        返回插件仍在等待的来源插件

        已接受的 baseline 插件已经就绪，不在此列；返回批内来源插件或不存在的插件，
        按导入声明顺序去重。

        Raises:
            KeyError: 插件不在本批中
        """
        if plugin_id not in self._index:
            raise KeyError(plugin_id)
        node = self._entries[self._index[plugin_id]]
        return [
            provider_id
            for provider_id in node.provider_ids()
            if provider_id not in self._baseline
        ]

    def process_imports(self) -> ResolutionResult:
        """
        解析整批插件

        幂等：同一个依赖图上重复调用返回相同的结果。

        Returns:
            接受的插件（依赖顺序）与拒绝的插件（输入顺序）
        """
        if self._result is not None:
            return self._result

        self._logger.info(f"开始解析插件依赖: {len(self._entries)} 个插件")
        reasons: Dict[str, RejectionReason] = {}

        # 1. 本地验证
        for plugin_id, position in self._index.items():
            node = self._entries[position]
            if not node.is_valid:
                reasons[plugin_id] = RejectionReason.invalid_definition(node.definition_error)

        # 2. 导入解析与级联拒绝
        self._cascade(reasons)

        # 3. 检查循环依赖，之后再级联一次
        self._build_dependency_graph(reasons)
        for members in self._find_cycles():
            reason = RejectionReason.cyclic_dependency(members)
            self._logger.debug(f"检测到循环依赖: {members}")
            for plugin_id in members:
                reasons[plugin_id] = reason
        self._cascade(reasons)

        # 4. 拓扑排序
        self._build_dependency_graph(reasons)
        load_order = list(
            nx.lexicographical_topological_sort(self.dependency_graph, key=self._index.__getitem__)
        )

        self._reasons = reasons
        self._result = ResolutionResult(
            accepted=tuple(self._accept(plugin_id) for plugin_id in load_order),
            rejected=tuple(self._collect_rejections(reasons)),
        )
        self._logger.info(
            f"依赖解析完成: 接受 {len(self._result.accepted)} 个, 拒绝 {len(self._result.rejected)} 个"
        )
        return self._result

    def get_statistics(self) -> Dict[str, int]:
        """获取统计信息"""
        return {
            "plugins": len(self._entries),
            "baseline": len(self._baseline),
            "duplicates": len(self._duplicates),
            "rejected": len(self._result.rejected) if self._result else 0,
            "graph_nodes": self.dependency_graph.number_of_nodes(),
            "graph_edges": self.dependency_graph.number_of_edges(),
        }

    def _lookup_provider(self, plugin_id: str) -> Optional[PluginNode]:
        position = self._index.get(plugin_id)
        if position is not None:
            return self._entries[position]
        return self._baseline.get(plugin_id)

    def _check_imports(self, node: PluginNode, rejected: Set[str]) -> Optional[RejectionReason]:
        """按声明顺序检查导入，第一个失败的导入决定拒绝原因"""
        for request in node.import_requests:
            if request.source_plugin_id in rejected:
                return RejectionReason.depends_on_rejected(request.source_plugin_id)
            provider = self._lookup_provider(request.source_plugin_id)
            if provider is None:
                return RejectionReason.unresolved_import(request, "来源插件不存在")
            if provider.get_group(request.source_name) is None:
                return RejectionReason.unresolved_import(request, "来源插件没有暴露该服务")
            if provider.find_service(request.source_name, request.version_range) is None:
                return RejectionReason.unresolved_import(request, "没有满足范围的版本")
        return None

    def _cascade(self, reasons: Dict[str, RejectionReason]) -> None:
        """
        重复导入检查直到没有新的拒绝

        每一轮都基于轮次开始时的状态快照，结果与节点的检查顺序无关。
        """
        while True:
            rejected = set(reasons)
            newly_rejected = {}
            for plugin_id, position in self._index.items():
                if plugin_id in rejected:
                    continue
                reason = self._check_imports(self._entries[position], rejected)
                if reason is not None:
                    newly_rejected[plugin_id] = reason
            if not newly_rejected:
                return
            for plugin_id, reason in newly_rejected.items():
                self._logger.debug(f"拒绝插件 {plugin_id}: {reason}")
            reasons.update(newly_rejected)

    def _build_dependency_graph(self, reasons: Mapping[str, RejectionReason]) -> None:
        """构建存活插件之间的依赖图，边从来源插件指向导入方"""
        self.dependency_graph.clear()

        for plugin_id in self._index:
            if plugin_id not in reasons:
                self.dependency_graph.add_node(plugin_id)

        for plugin_id in list(self.dependency_graph.nodes):
            node = self._entries[self._index[plugin_id]]
            for provider_id in node.provider_ids():
                if provider_id in self.dependency_graph:
                    self.dependency_graph.add_edge(provider_id, plugin_id)

    def _find_cycles(self) -> List[List[str]]:
        """返回所有循环，每个循环的成员按输入顺序排列"""
        cycles = []
        for component in nx.strongly_connected_components(self.dependency_graph):
            if len(component) == 1:
                (member,) = component
                if not self.dependency_graph.has_edge(member, member):
                    continue
            cycles.append(sorted(component, key=self._index.__getitem__))
        cycles.sort(key=lambda members: self._index[members[0]])
        return cycles

    def _accept(self, plugin_id: str) -> PluginNode:
        node = self._entries[self._index[plugin_id]]
        resolved = {}
        for request in node.import_requests:
            provider = self._lookup_provider(request.source_plugin_id)
            descriptor = provider.find_service(request.source_name, request.version_range)
            resolved[request.local_name] = ResolvedImport(
                local_name=request.local_name,
                provider_plugin_id=request.source_plugin_id,
                service_name=request.source_name,
                version=descriptor.version,
                descriptor=descriptor,
            )
        return replace(
            node,
            status=PluginStatus.ACCEPTED,
            rejection=None,
            resolved_imports=MappingProxyType(resolved),
        )

    def _collect_rejections(self, reasons: Mapping[str, RejectionReason]) -> Iterable[Rejection]:
        for position, node in enumerate(self._entries):
            if position in self._duplicates:
                reason = RejectionReason.duplicate_identifier(node.identifier)
            elif node.identifier in reasons:
                reason = reasons[node.identifier]
            else:
                continue
            rejected_node = replace(node, status=PluginStatus.REJECTED, rejection=reason)
            yield Rejection(node.identifier, reason, rejected_node)
