# -*- coding: utf-8 -*-
"""
plugboard: 插件依赖与版本解析引擎
"""

__author__ = "plugboard"
__version__ = "1.0.0"

# 依赖解析（必须先于 plugins 导入）
from .dependency import (
    DependencyGraph,
    PluginNode,
    PluginRegistry,
    PluginStatus,
    RawPluginDefinition,
    Rejection,
    RejectionKind,
    RejectionReason,
    ResolutionResult,
    ResolvedImport,
    ServiceDescriptor,
    ServiceGroup,
    ServiceKind,
    ServiceRegistry,
)
from .plugins import PluginKind

# 宿主
from .config import ResolverSettings, configure_logging
from .context import PluginConfiguration, ResolutionContext
from .core import HostReport, PluginHost

# 异常
from .exceptions import (
    AlreadyRegisteredError,
    BatchRejectionError,
    ConfigurationError,
    CyclicDependencyError,
    InvalidDefinitionError,
    InvalidVersionError,
    InvalidVersionRangeError,
    PlugboardError,
    PluginError,
    PluginInitializationError,
    ResolutionError,
    UnresolvedImportError,
)

__all__ = [
    # 依赖解析
    "DependencyGraph",
    "PluginNode",
    "PluginRegistry",
    "PluginStatus",
    "RawPluginDefinition",
    "Rejection",
    "RejectionKind",
    "RejectionReason",
    "ResolutionResult",
    "ResolvedImport",
    "ServiceDescriptor",
    "ServiceGroup",
    "ServiceKind",
    "ServiceRegistry",
    "PluginKind",
    # 宿主
    "ResolverSettings",
    "configure_logging",
    "PluginConfiguration",
    "ResolutionContext",
    "HostReport",
    "PluginHost",
    # 异常
    "PlugboardError",
    "PluginError",
    "InvalidVersionError",
    "InvalidVersionRangeError",
    "InvalidDefinitionError",
    "ResolutionError",
    "AlreadyRegisteredError",
    "UnresolvedImportError",
    "CyclicDependencyError",
    "PluginInitializationError",
    "BatchRejectionError",
    "ConfigurationError",
]
