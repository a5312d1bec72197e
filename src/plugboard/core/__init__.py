# -*- coding: utf-8 -*-
"""
plugboard 宿主
"""

from .plugin_host import HostReport, PluginHost, PluginListener

__all__ = ["HostReport", "PluginHost", "PluginListener"]
