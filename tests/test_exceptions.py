# -*- coding: utf-8 -*-
"""
测试自定义异常
"""

import pytest

from plugboard.exceptions import (
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


class TestExceptionHierarchy:
    """测试异常继承关系"""

    @pytest.mark.parametrize(
        "exc_class",
        [
            InvalidVersionError,
            InvalidVersionRangeError,
            PluginError,
            InvalidDefinitionError,
            ResolutionError,
            PluginInitializationError,
            BatchRejectionError,
            ConfigurationError,
        ],
    )
    def test_base_class(self, exc_class):
        """所有异常都继承自 PlugboardError"""
        assert issubclass(exc_class, PlugboardError)

    @pytest.mark.parametrize(
        "exc_class",
        [AlreadyRegisteredError, UnresolvedImportError, CyclicDependencyError],
    )
    def test_resolution_errors(self, exc_class):
        assert issubclass(exc_class, ResolutionError)
        assert issubclass(exc_class, PluginError)

    @pytest.mark.parametrize(
        "exc_class",
        [InvalidVersionError, InvalidVersionRangeError, InvalidDefinitionError, ConfigurationError],
    )
    def test_value_errors(self, exc_class):
        """输入类错误同时也是 ValueError"""
        with pytest.raises(ValueError):
            raise exc_class("bad input")


class TestExceptionAttributes:
    """测试异常属性"""

    def test_resolution_error_attributes(self):
        exc = UnresolvedImportError("无法解析", plugin_id="org.test.app", reason="detail")
        assert str(exc) == "无法解析"
        assert exc.plugin_id == "org.test.app"
        assert exc.reason == "detail"

    def test_resolution_error_defaults(self):
        exc = CyclicDependencyError("循环")
        assert exc.plugin_id is None
        assert exc.reason is None

    def test_invalid_definition_attributes(self):
        exc = InvalidDefinitionError("缺少 pluginType", plugin_id="org.test.bad")
        assert exc.plugin_id == "org.test.bad"
        assert exc.reason is None

    def test_batch_rejection_counts(self):
        exc = BatchRejectionError("拒绝过多", rejected_count=3, total_count=4)
        assert str(exc) == "拒绝过多"
        assert exc.rejected_count == 3
        assert exc.total_count == 4
