# -*- coding: utf-8 -*-
"""
版本匹配器

语义化版本解析、范围匹配与最高版本选择。范围语法与 npm 一致
（^、~、x 通配、连字符范围、|| 并集），由 semantic_version.NpmSpec 实现。
本模块只包含纯函数，不持有任何状态。
"""

import re
from typing import Iterable, Optional, Union

import semantic_version

from ..exceptions import InvalidVersionError, InvalidVersionRangeError

Version = semantic_version.Version
VersionRange = semantic_version.NpmSpec

VersionLike = Union[str, Version]
RangeLike = Union[str, VersionRange]

# 运算符与版本号之间的空白: ">= 1.0.0" -> ">=1.0.0"
_OPERATOR_GAP = re.compile(r"(<=|>=|<|>|=|\^|~)\s+(?=[0-9vxX*])")


def parse(version_text: VersionLike) -> Version:
    """
    解析语义化版本

    与 npm semver.valid 一样容忍前导的 "v" 或 "="。

    Args:
        version_text: 版本字符串或已解析的版本

    Returns:
        Version 对象

    Raises:
        InvalidVersionError: 版本字符串不合法
    """
    if isinstance(version_text, Version):
        return version_text
    if not isinstance(version_text, str):
        raise InvalidVersionError(f"无效的版本号: {version_text!r}")

    text = version_text.strip()
    if text[:1] in ("v", "V", "="):
        text = text[1:]

    try:
        return Version(text)
    except ValueError as e:
        raise InvalidVersionError(f"无效的版本号: {version_text!r}") from e


def parse_range(range_text: RangeLike) -> VersionRange:
    """
    解析版本范围表达式

    空字符串等价于 "*"。

    Args:
        range_text: 范围字符串或已解析的范围

    Returns:
        VersionRange 对象

    Raises:
        InvalidVersionRangeError: 范围表达式不合法
    """
    if isinstance(range_text, VersionRange):
        return range_text
    if not isinstance(range_text, str):
        raise InvalidVersionRangeError(f"无效的版本范围: {range_text!r}")

    text = " ".join(range_text.split())
    text = _OPERATOR_GAP.sub(r"\1", text)
    if not text:
        text = "*"

    try:
        return VersionRange(text)
    except ValueError as e:
        raise InvalidVersionRangeError(f"无效的版本范围: {range_text!r}") from e


def is_valid(version_text) -> bool:
    """检查版本字符串是否合法"""
    try:
        parse(version_text)
    except InvalidVersionError:
        return False
    return True


def is_valid_range(range_text) -> bool:
    """检查版本范围是否合法"""
    try:
        parse_range(range_text)
    except InvalidVersionRangeError:
        return False
    return True


def satisfies(version: VersionLike, version_range: RangeLike) -> bool:
    """判断版本是否满足范围"""
    return parse_range(version_range).match(parse(version))


def max_satisfying(
    versions: Iterable[VersionLike], version_range: RangeLike
) -> Optional[Version]:
    """
    返回集合中满足范围的最高版本

    Args:
        versions: 候选版本集合
        version_range: 版本范围

    Returns:
        最高的满足版本，没有任何版本满足时返回 None
    """
    spec = parse_range(version_range)
    return spec.select(parse(v) for v in versions)


def max_version(versions: Iterable[VersionLike]) -> Optional[Version]:
    """返回集合中的最高版本，集合为空时返回 None"""
    parsed = [parse(v) for v in versions]
    return max(parsed) if parsed else None
