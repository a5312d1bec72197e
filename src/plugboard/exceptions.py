# -*- coding: utf-8 -*-
"""
plugboard 核心异常
"""


class PlugboardError(Exception):
    """所有 plugboard 自定义异常的基类。"""

    pass


# region 版本异常


class InvalidVersionError(PlugboardError, ValueError):
    """当版本号不是合法的语义化版本时引发。"""

    pass


class InvalidVersionRangeError(PlugboardError, ValueError):
    """当版本范围表达式无法解析时引发。"""

    pass


# endregion

# region 插件异常


class PluginError(PlugboardError):
    """与插件相关的错误的基类。"""

    pass


class InvalidDefinitionError(PluginError, ValueError):
    """当插件定义缺少必需字段或字段格式错误时引发。"""

    def __init__(self, message: str, plugin_id: str = None, reason=None):
        super().__init__(message)
        self.plugin_id = plugin_id
        self.reason = reason


class ResolutionError(PluginError):
    """单个插件的依赖解析失败。

    Attributes:
        plugin_id: 解析失败的插件标识
        reason: 拒绝原因（RejectionReason），可能为 None
    """

    def __init__(self, message: str, plugin_id: str = None, reason=None):
        super().__init__(message)
        self.plugin_id = plugin_id
        self.reason = reason


class AlreadyRegisteredError(ResolutionError):
    """当动态添加的插件标识已存在于已接受集合中时引发。"""

    pass


class UnresolvedImportError(ResolutionError):
    """当插件的导入请求无法在已接受插件中找到匹配服务时引发。"""

    pass


class CyclicDependencyError(ResolutionError):
    """当插件导入形成循环时引发。"""

    pass


class PluginInitializationError(PluginError):
    """当已接受的插件初始化失败时引发。"""

    pass


class BatchRejectionError(PluginError):
    """当一批插件中被拒绝的比例超过宿主设定的阈值时引发。"""

    def __init__(self, message: str, rejected_count: int = 0, total_count: int = 0):
        super().__init__(message)
        self.rejected_count = rejected_count
        self.total_count = total_count


# endregion

# region 配置异常


class ConfigurationError(PlugboardError, ValueError):
    """当解析器配置无效时引发。"""

    pass


# endregion
