"""
Lightning 元数据客户端异常定义

层级:
- LightningError
  - AuthenticationError: 无法获取有效会话
  - ToolingAPIError: Tooling API 返回的错误（原样透传）
  - BundleDeleteError: 删除 bundle 失败（带上下文前缀）
  - BundleItemsError: 获取 bundle 条目失败（带上下文前缀）
  - BundleItemNotFoundError: 本地文件无法在索引中找到对应记录
  - MissingRemoteIdError: 本地文件尚无远端 Id
  - InvalidIdentifierError: 非法的 Salesforce Id
"""

from typing import List, Optional


class LightningError(Exception):
    """所有 Lightning 客户端错误的基类"""

    pass


class AuthenticationError(LightningError):
    """获取 access token / instance url 失败"""

    pass


class ToolingAPIError(LightningError):
    """Tooling API 调用失败"""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        error_code: Optional[str] = None,
        errors: Optional[List] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.errors = errors or []
        super().__init__(message)


class BundleDeleteError(LightningError):
    """删除 AuraDefinitionBundle 失败"""

    pass


class BundleItemsError(LightningError):
    """获取 bundle 条目失败"""

    pass


class BundleItemNotFoundError(LightningError):
    """本地文件在 Lightning 索引中没有匹配项"""

    def __init__(self, folder_name: str, definition_type: str):
        self.folder_name = folder_name
        self.definition_type = definition_type
        super().__init__(
            f"No AuraDefinition found for bundle '{folder_name}' "
            f"with DefType {definition_type}"
        )


class MissingRemoteIdError(LightningError):
    """本地文件还没有缓存的远端 Id，无法更新或删除"""

    pass


class InvalidIdentifierError(LightningError, ValueError):
    """不是合法的 Salesforce 记录 Id"""

    pass
