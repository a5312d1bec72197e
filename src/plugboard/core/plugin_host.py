# -*- coding: utf-8 -*-
"""
插件宿主

宿主初始化循环与通知边界：整批解析后按依赖顺序初始化已接受的插件，
先通知监听者插件总数，再按最终顺序逐个通知每个插件。
"""

import threading
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol, Tuple

from ..config import ResolverSettings
from ..context import ResolutionContext
from ..dependency.models import PluginNode, Rejection
from ..dependency.registry import DefinitionLike, PluginRegistry
from ..exceptions import BatchRejectionError, PluginInitializationError
from ..plugins import kinds as plugin_kinds


class PluginListener(Protocol):
    """宿主监听者，两个回调均为可选"""

    def on_plugin_amount(self, count: int) -> None:
        ...

    def on_plugin_added(self, node: PluginNode) -> None:
        ...


@dataclass(frozen=True)
class HostReport:
    """
    一批插件的安装报告

    Attributes:
        total: 输入定义数量
        loaded: 初始化成功的插件，按依赖顺序
        rejected: 解析阶段被拒绝的插件
        failed: 初始化失败的插件标识 -> 错误描述
        handles: 插件标识 -> 实现句柄
    """

    total: int
    loaded: Tuple[PluginNode, ...] = ()
    rejected: Tuple[Rejection, ...] = ()
    failed: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    handles: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}), repr=False)

    @property
    def loaded_count(self) -> int:
        return len(self.loaded)

    @property
    def rejection_ratio(self) -> float:
        if self.total == 0:
            return 0.0
        return len(self.rejected) / self.total


class PluginHost:
    """
    插件宿主

    解析交给 PluginRegistry，宿主只负责初始化与通知。
    """

    def __init__(
        self,
        registry: Optional[PluginRegistry] = None,
        context: Optional[ResolutionContext] = None,
        settings: Optional[ResolverSettings] = None,
    ):
        """
        初始化插件宿主

        Args:
            registry: 插件注册表，为 None 时按 context/settings 创建
            context: 解析上下文
            settings: 解析器配置
        """
        if registry is None:
            registry = PluginRegistry(context=context, settings=settings)
        self.registry = registry
        self.context = registry.context if context is None else context
        self.settings = registry.settings if settings is None else settings
        self._logger = self.context.logger
        self._lock = threading.RLock()

        self._plugins: List[PluginNode] = []
        self._handles: Dict[str, Any] = {}
        self._listeners: List[PluginListener] = []

    @property
    def plugins(self) -> Tuple[PluginNode, ...]:
        """已初始化的插件"""
        return tuple(self._plugins)

    def get_handle(self, identifier: str) -> Any:
        """返回插件的实现句柄，没有时为 None"""
        return self._handles.get(identifier)

    def subscribe(self, listener: PluginListener) -> None:
        with self._lock:
            if listener not in self._listeners:
                self._listeners.append(listener)

    def unsubscribe(self, listener: PluginListener) -> bool:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)
                return True
            return False

    def install_plugins(self, definitions: Iterable[DefinitionLike]) -> HostReport:
        """
        安装一批插件

        Args:
            definitions: 原始定义序列

        Returns:
            安装报告

        Raises:
            BatchRejectionError: 拒绝比例超过 max_rejection_ratio（通知完成之后）
        """
        with self._lock:
            definitions = list(definitions)
            result = self.registry.resolve_batch(definitions)

            for rejection in result.rejected:
                self._logger.warning(f"无法初始化插件 {rejection.plugin_id}: {rejection.reason}")

            loaded: List[PluginNode] = []
            failed: Dict[str, str] = {}
            handles: Dict[str, Any] = {}
            for node in result.accepted:
                try:
                    handle = self._initialize(node)
                except PluginInitializationError as e:
                    self._logger.error(f"加载插件失败 {node.identifier}: {e}")
                    failed[node.identifier] = str(e)
                    continue
                handles[node.identifier] = handle
                loaded.append(node)
                self._logger.info(f"插件 {node.identifier} (路径 {node.location}) 已加载")

            self._logger.info(f"插件批处理完成，加载了 {len(loaded)} / {len(definitions)} 个插件")
            self._plugins.extend(loaded)
            self._handles.update(handles)

            report = HostReport(
                total=len(definitions),
                loaded=tuple(loaded),
                rejected=result.rejected,
                failed=MappingProxyType(failed),
                handles=MappingProxyType(handles),
            )

            self._notify("on_plugin_amount", len(loaded))
            for node in loaded:
                self._notify("on_plugin_added", node)

            ratio = self.settings.max_rejection_ratio
            if ratio is not None and report.rejection_ratio > ratio:
                raise BatchRejectionError(
                    f"拒绝比例 {report.rejection_ratio:.2f} 超过阈值 {ratio:.2f}",
                    rejected_count=len(report.rejected),
                    total_count=report.total,
                )
            return report

    def add_dynamic_plugin(self, definition: DefinitionLike) -> PluginNode:
        """
        动态添加单个插件

        初始化失败时插件不会进入注册表。

        Raises:
            AlreadyRegisteredError, InvalidDefinitionError, UnresolvedImportError,
            CyclicDependencyError: 解析失败
            PluginInitializationError: 初始化失败
        """
        with self._lock:
            node = self.registry.resolve_incremental(definition)
            self._logger.info(f"添加动态插件 {node.identifier}")
            handle = self._initialize(node)
            node = self.registry.register(node)

            self._plugins.append(node)
            self._handles[node.identifier] = handle
            self._notify("on_plugin_added", node)
            return node

    def _initialize(self, node: PluginNode) -> Any:
        try:
            return plugin_kinds.initialize(node, self.context)
        except PluginInitializationError:
            raise
        except Exception as e:
            raise PluginInitializationError(f"{node.identifier}: {e}") from e

    def _notify(self, callback_name: str, payload: Any) -> None:
        for listener in list(self._listeners):
            callback = getattr(listener, callback_name, None)
            if callback is None:
                continue
            try:
                callback(payload)
            except Exception as e:
                self._logger.error(f"监听者 {callback_name} 处理失败: {e}")
