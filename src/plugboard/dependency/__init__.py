# -*- coding: utf-8 -*-
"""
插件依赖解析

提供版本匹配、服务注册表、依赖图与插件注册表。
"""

from .manifest import RawPluginDefinition
from .models import (
    PluginNode,
    PluginStatus,
    Rejection,
    RejectionKind,
    RejectionReason,
    ResolutionResult,
    ResolvedImport,
)
from .services import ServiceDescriptor, ServiceGroup, ServiceKind, ServiceRegistry
from .graph import DependencyGraph
from .registry import PluginRegistry

__all__ = [
    "RawPluginDefinition",
    "PluginNode",
    "PluginStatus",
    "Rejection",
    "RejectionKind",
    "RejectionReason",
    "ResolutionResult",
    "ResolvedImport",
    "ServiceDescriptor",
    "ServiceGroup",
    "ServiceKind",
    "ServiceRegistry",
    "DependencyGraph",
    "PluginRegistry",
]
