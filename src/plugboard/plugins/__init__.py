# -*- coding: utf-8 -*-
"""
插件类型与分派表
"""

from .kinds import KIND_BEHAVIOURS, KindBehaviour, PluginKind

__all__ = ["PluginKind", "KindBehaviour", "KIND_BEHAVIOURS"]
