"""
LightningService 测试共享 Fixtures
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from src.schemas.lightning import AuraDefinitionRecord

BUNDLE_ID = "0Ab000000000001AAA"


def make_record(
    record_id: str,
    bundle_name: str = "MyBundle",
    def_type: str = "COMPONENT",
    def_format: str = "XML",
    source=None,
) -> dict:
    """构造一条 Tooling API 查询返回的 AuraDefinition 记录"""
    record = {
        "attributes": {"type": "AuraDefinition"},
        "Id": record_id,
        "AuraDefinitionBundleId": BUNDLE_ID,
        "AuraDefinitionBundle": {"DeveloperName": bundle_name},
        "DefType": def_type,
        "Format": def_format,
    }
    if source is not None:
        record["Source"] = source
    return record


@pytest.fixture
def tooling_api():
    """模拟 ToolingAPI（客户端未配置 API 版本）"""
    api = AsyncMock()
    api.api_version = None
    return api


@pytest.fixture
def org_index():
    return [
        AuraDefinitionRecord.model_validate(make_record("0Ad000000000001AAA")),
        AuraDefinitionRecord.model_validate(
            make_record("0Ad000000000002AAA", def_type="CONTROLLER", def_format="JS")
        ),
        AuraDefinitionRecord.model_validate(
            make_record("0Ad000000000003AAA", bundle_name="OtherBundle")
        ),
    ]


@pytest.fixture
def index_provider(org_index):
    """模拟索引提供者"""
    provider = MagicMock()
    provider.get_index = AsyncMock(return_value=org_index)
    return provider
