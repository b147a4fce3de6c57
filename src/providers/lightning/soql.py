"""
SOQL 构造工具

所有拼接进查询语句的值都经过这里：字符串字面量转义，Id 列表逐个校验。
Id 来自本地文件与索引的关联结果，不能直接信任。
"""

import re
from typing import Iterable, List, Sequence

from src.core.exceptions import InvalidIdentifierError

# Salesforce 记录 Id: 15 位（区分大小写）或 18 位（带校验后缀）字母数字
_SFDC_ID_PATTERN = re.compile(r"^[a-zA-Z0-9]{15}(?:[a-zA-Z0-9]{3})?$")

AURA_DEFINITION_FIELDS = (
    "Id",
    "AuraDefinitionBundleId",
    "AuraDefinitionBundle.DeveloperName",
    "DefType",
    "Format",
)


def validate_id(value: str) -> str:
    """校验单个 Salesforce Id，非法时抛出 InvalidIdentifierError"""
    if not isinstance(value, str) or not _SFDC_ID_PATTERN.match(value):
        raise InvalidIdentifierError(f"Invalid Salesforce id: {value!r}")
    return value


def quote_literal(value: str) -> str:
    """将字符串转为 SOQL 单引号字面量"""
    escaped = value.replace("\\", "\\\\").replace("'", "\\'")
    return f"'{escaped}'"


def id_list(ids: Iterable[str]) -> str:
    """
    生成 IN 子句使用的 Id 列表，如 'a','b'

    Raises:
        InvalidIdentifierError: 任意 Id 非法，或列表为空
    """
    checked: List[str] = [validate_id(i) for i in ids]
    if not checked:
        raise InvalidIdentifierError("Id list must not be empty")
    return ",".join(quote_literal(i) for i in checked)


def select(fields: Sequence[str], sobject: str, where: str = "") -> str:
    query = f"SELECT {', '.join(fields)} FROM {sobject}"
    if where:
        query = f"{query} WHERE {where}"
    return query


def aura_definitions_query(include_source: bool = False, where: str = "") -> str:
    fields = list(AURA_DEFINITION_FIELDS)
    if include_source:
        fields.append("Source")
    return select(fields, "AuraDefinition", where)
