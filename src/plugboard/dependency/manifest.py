# -*- coding: utf-8 -*-
"""
插件定义模型

定义插件的元数据、暴露的服务与导入请求。字段同时接受定义文件中的驼峰命名
（pluginVersion、apiVersion、pluginType、dataServices ...）与蛇形命名。
"""

from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, model_validator

from ..exceptions import InvalidDefinitionError

IMPORT_SERVICE_TYPE = "import"


class RawPluginDefinition(BaseModel):
    """
    原始插件定义

    由定义来源（文件或配置加载器）解析后交给核心，核心不读取文件。
    """

    # 基本信息
    identifier: str = Field(..., min_length=1, description="插件唯一标识")
    declared_version: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("pluginVersion", "declaredVersion", "declared_version"),
        description="插件版本",
    )
    api_version: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("apiVersion", "api_version"),
        description="插件 API 版本，服务未声明版本时作为回退",
    )
    plugin_type: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("pluginType", "plugin_type"),
        description="插件类型",
    )
    location: Optional[str] = Field(default=None, description="插件所在目录")

    # 服务
    exposed_services: List[Dict[str, Any]] = Field(
        default_factory=list,
        validation_alias=AliasChoices("exposedServices", "exposed_services"),
        description="暴露的服务定义",
    )
    import_requests: List[Dict[str, Any]] = Field(
        default_factory=list,
        validation_alias=AliasChoices("importRequests", "import_requests"),
        description="导入请求定义（按声明顺序）",
    )

    # 类型相关字段
    host: Optional[str] = Field(default=None, description="代理连接器/外部服务主机")
    port: Optional[Union[int, str]] = Field(default=None, description="代理连接器/外部服务端口")
    filename: Optional[str] = Field(default=None, description="认证处理模块文件名")
    authentication_category: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("authenticationCategory", "authentication_category"),
        description="认证类别",
    )
    web_content: Optional[Dict[str, Any]] = Field(
        default=None, validation_alias=AliasChoices("webContent", "web_content")
    )
    configuration_data: Optional[Dict[str, Any]] = Field(
        default=None, validation_alias=AliasChoices("configurationData", "configuration_data")
    )

    model_config = ConfigDict(populate_by_name=True, extra="allow", frozen=True)

    @model_validator(mode="before")
    @classmethod
    def _split_data_services(cls, data: Any) -> Any:
        """把 dataServices 列表按 type 拆分为暴露服务与导入请求"""
        if not isinstance(data, Mapping) or "dataServices" not in data:
            return data

        data = dict(data)
        data_services = data.pop("dataServices")
        if data_services is None:
            return data
        if not isinstance(data_services, list):
            raise ValueError("dataServices 必须是列表")

        exposed = list(data.get("exposedServices") or data.get("exposed_services") or [])
        imports = list(data.get("importRequests") or data.get("import_requests") or [])
        for service in data_services:
            if isinstance(service, Mapping) and service.get("type") == IMPORT_SERVICE_TYPE:
                imports.append(service)
            else:
                exposed.append(service)

        for key in ("exposedServices", "exposed_services", "importRequests", "import_requests"):
            data.pop(key, None)
        data["exposed_services"] = exposed
        data["import_requests"] = imports
        return data

    @classmethod
    def from_mapping(cls, data: Union["RawPluginDefinition", Mapping[str, Any]]) -> "RawPluginDefinition":
        """
        从映射构建插件定义

        Raises:
            InvalidDefinitionError: 缺少必需字段或字段格式错误
        """
        if isinstance(data, cls):
            return data
        if not isinstance(data, Mapping):
            raise InvalidDefinitionError(f"插件定义必须是映射，实际为 {type(data).__name__}")
        try:
            return cls.model_validate(dict(data))
        except ValidationError as e:
            errors = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or '<root>'}: {err['msg']}"
                for err in e.errors()
            )
            raise InvalidDefinitionError(f"插件定义无效: {errors}") from e

    def extra_field(self, name: str, default: Any = None) -> Any:
        """获取定义中未建模的附加字段"""
        return (self.model_extra or {}).get(name, default)

    def export_def(self) -> Dict[str, Any]:
        """导出公开的定义视图（驼峰命名）"""
        return {
            "identifier": self.identifier,
            "pluginVersion": self.declared_version,
            "apiVersion": self.api_version,
            "pluginType": self.plugin_type,
            "webContent": self.web_content,
            "configurationData": self.configuration_data,
            "dataServices": [dict(s) for s in self.exposed_services]
            + [dict(s) for s in self.import_requests],
        }

    def __str__(self) -> str:
        return f"[Plugin {self.identifier}]"
