"""
FilePath: /lightning_tooling/src/mcp_server.py
Description:
    MCP Server - Lightning bundle 元数据工具接口

    提供给 LLM 调用的工具集，用于管理 org 中的 Lightning (Aura) bundle。

    工具列表:
    - list_bundle_items: 列出 org 内全部 AuraDefinition
    - get_bundle: 获取某个 bundle 下的定义
    - create_bundle: 创建 bundle（可同时创建默认定义）
    - create_bundle_item: 在 bundle 下创建一个默认定义
    - update_bundle_item: 用新源码覆盖某个定义
    - delete_bundle: 删除 bundle
"""

import json
import logging
import re
import sys
from pathlib import Path
from typing import List, Optional

import httpx
from mcp.server.fastmcp import FastMCP

from src.core.config import settings
from src.core.exceptions import LightningError
from src.providers.lightning import LightningService
from src.schemas.lightning import BundleFile, DefType


def _mask_sensitive_in_error(error_msg: str) -> str:
    """
    对错误信息中的敏感数据进行脱敏

    替换 session id / access token 以及 token=xxx 形式的值。

    Args:
        error_msg: 原始错误信息

    Returns:
        脱敏后的错误信息
    """
    # Salesforce session id 形如 00D...!AQ...
    error_msg = re.sub(r"00D[a-zA-Z0-9]{12,15}![^\s,;\"']+", "***", error_msg)
    error_msg = re.sub(
        r"(?i)(token|secret|password|authorization)[=:\s]+[^\s,;\"']+",
        r"\1=***",
        error_msg,
    )
    return error_msg


def _error_response(
    operation: str,
    error_msg: str,
    error_code: Optional[str] = None,
    details: Optional[dict] = None,
) -> str:
    """
    生成统一的错误响应 JSON

    Args:
        operation: 操作名称，如 "创建 bundle"
        error_msg: 错误信息（会自动脱敏）
        error_code: 错误码（可选），如 "ERR_HTTP"、"ERR_LIGHTNING"
        details: 附加信息（可选），如已创建的 bundle_id

    Returns:
        JSON 格式的错误响应字符串
    """
    safe_msg = _mask_sensitive_in_error(error_msg)
    response = {
        "success": False,
        "error": {
            "message": f"{operation}失败: {safe_msg}",
        },
    }
    if error_code:
        response["error"]["code"] = error_code
    if details:
        response["error"]["details"] = details
    return json.dumps(response, ensure_ascii=False, indent=2)


def _success_response(data, message: Optional[str] = None) -> str:
    """生成统一的成功响应 JSON"""
    response = {
        "success": True,
        "data": data,
    }
    if message:
        response["message"] = message
    return json.dumps(response, ensure_ascii=False, indent=2)


# 在模块级别配置日志，stdout 是 MCP 的通信通道，只能写 stderr 或文件
if not logging.root.handlers:
    log_dir = Path("log")
    if log_dir.exists() and log_dir.is_dir():
        logging.basicConfig(
            level=settings.get_log_level(),
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            filename=str(log_dir / "agent.log"),
            filemode="a",
            encoding="utf-8",
        )
    else:
        logging.basicConfig(
            level=settings.get_log_level(),
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            stream=sys.stderr,
        )

logger = logging.getLogger(__name__)

# Initialize FastMCP server
mcp = FastMCP("Lightning")

_service: Optional[LightningService] = None


def _get_service() -> LightningService:
    global _service
    if _service is None:
        _service = LightningService()
    return _service


def _parse_def_type(value: str) -> DefType:
    try:
        return DefType(value.strip().upper())
    except ValueError:
        allowed = ", ".join(t.value for t in DefType)
        raise ValueError(f"无效的定义类型 '{value}'，可用类型: {allowed}") from None


def _handle_error(operation: str, e: Exception, details: Optional[dict] = None) -> str:
    if isinstance(e, LightningError):
        logger.error("%s failed: %s", operation, e)
        return _error_response(operation, str(e), "ERR_LIGHTNING", details)
    if isinstance(e, httpx.HTTPError):
        logger.error("%s failed (HTTP): %s", operation, e, exc_info=True)
        return _error_response(operation, str(e), "ERR_HTTP", details)
    if isinstance(e, ValueError):
        return _error_response(operation, str(e), "ERR_VALIDATION", details)
    logger.critical("Unexpected error in %s: %s", operation, e, exc_info=True)
    return _error_response(operation, "系统内部错误", details=details)


@mcp.tool()
async def list_bundle_items() -> str:
    """
    列出 org 内全部 Lightning 定义（不含源码）。

    Returns:
        JSON，data 为 [{Id, AuraDefinitionBundleId, bundle, DefType, Format}]
    """
    try:
        records = await _get_service().list_all()
        return _success_response(
            [
                {
                    "Id": r.Id,
                    "AuraDefinitionBundleId": r.AuraDefinitionBundleId,
                    "bundle": r.bundle_name,
                    "DefType": r.DefType,
                    "Format": r.Format,
                }
                for r in records
            ]
        )
    except Exception as e:
        return _handle_error("获取定义列表", e)


@mcp.tool()
async def get_bundle(bundle_id: str) -> str:
    """
    获取某个 bundle 下的全部定义（不含源码）。

    Args:
        bundle_id: AuraDefinitionBundle 的 Id
    """
    try:
        records = await _get_service().get_bundle(bundle_id)
        return _success_response(
            [r.model_dump(exclude={"Source"}) for r in records]
        )
    except Exception as e:
        return _handle_error("获取 bundle", e)


@mcp.tool()
async def create_bundle(
    developer_name: str,
    description: str = "",
    def_types: Optional[List[str]] = None,
) -> str:
    """
    创建 Lightning bundle，并按顺序创建默认定义。

    Args:
        developer_name: bundle API 名称，如 "MyComponent"
        description: 描述
        def_types: 需要同时创建的定义类型，如 ["COMPONENT", "CONTROLLER"]

    Returns:
        JSON，data 包含 bundle_id 和每个定义的 Id。
        bundle 已创建但后续定义失败时，error.details 带回 bundle_id 和已创建的定义，
        bundle 不会自动回滚。

    Examples:
        create_bundle(developer_name="MyComponent", def_types=["COMPONENT", "STYLE"])
    """
    bundle_id = None
    items = {}
    try:
        types = [_parse_def_type(t) for t in def_types or []]
        service = _get_service()
        bundle = await service.create_bundle(developer_name, description)
        bundle_id = bundle.id
        # bundle 创建成功后才能创建定义
        for def_type in types:
            result = await service.create_definition(bundle.id, def_type)
            items[def_type.value] = result.id
        logger.info(
            "Created bundle %s (%s) with %d definitions",
            developer_name,
            bundle.id,
            len(items),
        )
        return _success_response({"bundle_id": bundle.id, "items": items})
    except Exception as e:
        details = {"bundle_id": bundle_id, "items": items} if bundle_id else None
        return _handle_error("创建 bundle", e, details)


@mcp.tool()
async def create_bundle_item(bundle_id: str, def_type: str) -> str:
    """
    在已有 bundle 下创建一个使用默认模板的定义。

    Args:
        bundle_id: AuraDefinitionBundle 的 Id
        def_type: 定义类型，如 COMPONENT、CONTROLLER、HELPER、STYLE
    """
    try:
        result = await _get_service().create_definition(
            bundle_id, _parse_def_type(def_type)
        )
        return _success_response({"id": result.id})
    except Exception as e:
        return _handle_error("创建定义", e)


@mcp.tool()
async def update_bundle_item(bundle_name: str, def_type: str, source: str) -> str:
    """
    用新源码覆盖 bundle 中的某个定义。

    Args:
        bundle_name: bundle 的 DeveloperName
        def_type: 定义类型
        source: 新源码
    """
    try:
        service = _get_service()
        local_file = BundleFile(
            folder_name=bundle_name,
            definition_type=_parse_def_type(def_type),
            body=source,
        )
        # 通过索引解析远端 Id
        await service.get_bundle_items([local_file])
        results = await service.update([local_file])
        return _success_response({"id": results[0].id})
    except Exception as e:
        return _handle_error("更新定义", e)


@mcp.tool()
async def delete_bundle(bundle_id: str) -> str:
    """
    删除 Lightning bundle 及其全部定义。

    Args:
        bundle_id: AuraDefinitionBundle 的 Id
    """
    try:
        await _get_service().delete_bundle(bundle_id)
        return _success_response({"id": bundle_id}, message="bundle 已删除")
    except Exception as e:
        return _handle_error("删除 bundle", e)


def main():
    """MCP Server 入口点"""
    logger.info("Starting MCP Server (Lightning Tooling)")
    logger.info("Log level: %s", settings.LOG_LEVEL)
    try:
        mcp.run()
    except KeyboardInterrupt:
        logger.info("MCP Server stopped by user")
    except Exception as e:
        logger.critical("MCP Server crashed: %s", e, exc_info=True)
        raise


if __name__ == "__main__":
    main()
