"""
ToolingAPI - 原子能力层
负责 Salesforce Tooling REST API 的原子接口封装

对应接口:
- 查询: GET /tooling/query/?q=...
- 创建: POST /tooling/sobjects/:type/
- 删除: DELETE /tooling/sobjects/:type/:id
- 批量更新: PATCH /tooling/composite/sobjects
- 批量删除: DELETE /tooling/composite/sobjects?ids=...

sObject Collections 从 v42.0 起提供，更低版本的批量操作逐条发送
PATCH / DELETE /tooling/sobjects/:type/:id。
"""

import logging
from typing import Dict, List, Optional

import httpx

from src.core.exceptions import ToolingAPIError
from src.core.tooling_client import ToolingClient, get_tooling_client
from src.providers.lightning.soql import validate_id
from src.schemas.lightning import QueryResult, SaveResult

logger = logging.getLogger(__name__)

COLLECTIONS_MIN_VERSION = 42.0


def _raise_for_error(resp: httpx.Response, action: str) -> None:
    """
    将 Salesforce 错误响应转换为 ToolingAPIError

    错误响应格式: [{"message": "...", "errorCode": "..."}]
    """
    if resp.status_code < 400:
        return

    try:
        body = resp.json()
    except ValueError:
        body = None

    errors = body if isinstance(body, list) else [body] if isinstance(body, dict) else []
    first = errors[0] if errors and isinstance(errors[0], dict) else {}
    message = first.get("message") or resp.text[:200] or f"HTTP {resp.status_code}"
    error_code = first.get("errorCode")

    logger.error(
        "%s failed: status=%d, errorCode=%s, message=%s",
        action,
        resp.status_code,
        error_code,
        message,
    )
    raise ToolingAPIError(
        message, status_code=resp.status_code, error_code=error_code, errors=errors
    )


def _check_save_results(results: List[SaveResult], action: str) -> List[SaveResult]:
    failed = [r for r in results if not r.success]
    if failed:
        message = "; ".join(
            err.message for r in failed for err in r.errors
        ) or "Unknown error"
        logger.error("%s failed for %d record(s): %s", action, len(failed), message)
        raise ToolingAPIError(
            message,
            error_code=failed[0].errors[0].statusCode if failed[0].errors else None,
            errors=[r.model_dump() for r in failed],
        )
    return results


class ToolingAPI:
    """
    Tooling API 封装 (Base API Layer)

    职责: 一个方法对应一次远端调用（查询分页除外）
    """

    def __init__(self, client: Optional[ToolingClient] = None):
        self.client = client or get_tooling_client()

    @property
    def api_version(self) -> Optional[str]:
        return self.client.api_version

    def _supports_collections(self) -> bool:
        return float(self.client.rest_api_version) >= COLLECTIONS_MIN_VERSION

    async def query(self, soql: str) -> List[Dict]:
        """
        执行 SOQL 查询并返回全部记录

        服务端分页时沿 nextRecordsUrl 继续获取，直到 done=true。

        Args:
            soql: 已完成转义的 SOQL 语句

        Returns:
            记录列表

        Raises:
            ToolingAPIError: 查询失败
        """
        logger.debug("Running tooling query: %s", soql)

        resp = await self.client.get("query/", params={"q": soql})
        _raise_for_error(resp, "Tooling query")
        result = QueryResult.model_validate(resp.json())
        records = list(result.records)

        while not result.done and result.nextRecordsUrl:
            logger.debug("Fetching next query batch: %s", result.nextRecordsUrl)
            resp = await self.client.get(result.nextRecordsUrl)
            _raise_for_error(resp, "Tooling query")
            result = QueryResult.model_validate(resp.json())
            records.extend(result.records)

        logger.info("Tooling query returned %d records", len(records))
        return records

    async def create(self, sobject: str, record: Dict) -> SaveResult:
        """
        创建单条记录

        Args:
            sobject: 对象类型，如 AuraDefinitionBundle
            record: 字段值

        Returns:
            SaveResult (包含新记录 id)

        Raises:
            ToolingAPIError: 创建失败
        """
        logger.debug("Creating %s: %s", sobject, record)

        resp = await self.client.post(f"sobjects/{sobject}/", json=record)
        _raise_for_error(resp, f"Create {sobject}")
        result = SaveResult.model_validate(resp.json())
        _check_save_results([result], f"Create {sobject}")

        logger.info("Created %s: id=%s", sobject, result.id)
        return result

    async def delete(self, sobject: str, record_id: str) -> SaveResult:
        """
        删除单条记录

        Raises:
            ToolingAPIError: 删除失败
        """
        validate_id(record_id)
        logger.debug("Deleting %s: id=%s", sobject, record_id)

        resp = await self.client.delete(f"sobjects/{sobject}/{record_id}")
        _raise_for_error(resp, f"Delete {sobject}")

        logger.info("Deleted %s: id=%s", sobject, record_id)
        return SaveResult(id=record_id, success=True)

    async def update_many(self, sobject: str, records: List[Dict]) -> List[SaveResult]:
        """
        批量更新记录（allOrNone，任一失败则整批失败）

        API 版本低于 v42.0 时逐条更新，遇到第一条失败即抛出。

        Args:
            sobject: 对象类型
            records: 每项必须包含 Id

        Returns:
            每条记录的 SaveResult，顺序与输入一致

        Raises:
            ToolingAPIError: 更新失败
        """
        for record in records:
            validate_id(record.get("Id"))
        logger.debug("Updating %d %s records", len(records), sobject)

        if not self._supports_collections():
            return await self._update_each(sobject, records)

        payload = {
            "allOrNone": True,
            "records": [{"attributes": {"type": sobject}, **r} for r in records],
        }

        resp = await self.client.patch("composite/sobjects", json=payload)
        _raise_for_error(resp, f"Update {sobject}")
        results = [SaveResult.model_validate(r) for r in resp.json()]
        _check_save_results(results, f"Update {sobject}")

        logger.info("Updated %d %s records", len(results), sobject)
        return results

    async def delete_many(self, sobject: str, ids: List[str]) -> List[SaveResult]:
        """
        批量删除记录（allOrNone，任一失败则整批失败）

        API 版本低于 v42.0 时逐条删除。

        Raises:
            ToolingAPIError: 删除失败
        """
        for record_id in ids:
            validate_id(record_id)
        logger.debug("Deleting %d %s records: %s", len(ids), sobject, ids)

        if not self._supports_collections():
            return await self._delete_each(sobject, ids)

        resp = await self.client.delete(
            "composite/sobjects", params={"ids": ",".join(ids), "allOrNone": "true"}
        )
        _raise_for_error(resp, f"Delete {sobject}")
        results = [SaveResult.model_validate(r) for r in resp.json()]
        _check_save_results(results, f"Delete {sobject}")

        logger.info("Deleted %d %s records", len(results), sobject)
        return results

    async def _update_each(self, sobject: str, records: List[Dict]) -> List[SaveResult]:
        results = []
        for record in records:
            fields = {k: v for k, v in record.items() if k != "Id"}
            resp = await self.client.patch(f"sobjects/{sobject}/{record['Id']}", json=fields)
            _raise_for_error(resp, f"Update {sobject}")
            results.append(SaveResult(id=record["Id"], success=True))

        logger.info("Updated %d %s records one by one", len(results), sobject)
        return results

    async def _delete_each(self, sobject: str, ids: List[str]) -> List[SaveResult]:
        results = []
        for record_id in ids:
            resp = await self.client.delete(f"sobjects/{sobject}/{record_id}")
            _raise_for_error(resp, f"Delete {sobject}")
            results.append(SaveResult(id=record_id, success=True))

        logger.info("Deleted %d %s records one by one", len(results), sobject)
        return results
