# -*- coding: utf-8 -*-
"""
plugboard 配置
"""

from .settings import ENV_VAR_PATTERN, ResolverSettings, configure_logging

__all__ = [
    "ENV_VAR_PATTERN",
    "ResolverSettings",
    "configure_logging",
]
