"""
Salesforce Tooling API 层 - 原子能力封装

使用示例:
    from src.providers.lightning.api import ToolingAPI

    tooling_api = ToolingAPI()
    records = await tooling_api.query("SELECT Id FROM AuraDefinitionBundle")
"""

from .tooling import ToolingAPI

__all__ = [
    "ToolingAPI",
]
