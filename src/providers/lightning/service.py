"""
LightningService - Lightning (Aura) bundle 元数据 CRUD

负责把 bundle 级操作翻译为 Tooling API 调用:
- AuraDefinitionBundle: bundle 本身，只创建和删除
- AuraDefinition: bundle 内的各类定义（组件、控制器、样式 ...）

每个操作都是一次独立的远端调用，本层不做重试、不保存状态。
并发调用之间没有顺序保证，例如必须等 create_bundle 返回 id 之后再创建条目。

使用示例:
    service = LightningService()

    bundle = await service.create_bundle("MyBundle", "My first bundle")
    await service.create_component(bundle.id)

    files = [BundleFile(folder_name="MyBundle", definition_type=DefType.COMPONENT, remote_id="0Ad...", body="...")]
    await service.update(files)
    await service.delete_bundle(bundle.id)
"""

import logging
from typing import List, Optional, Protocol, Sequence

import httpx

from src.core.config import settings
from src.core.exceptions import (
    BundleDeleteError,
    BundleItemNotFoundError,
    BundleItemsError,
    LightningError,
    MissingRemoteIdError,
)
from src.providers.lightning.api import ToolingAPI
from src.providers.lightning.index import LightningIndex
from src.providers.lightning.soql import (
    aura_definitions_query,
    id_list,
    quote_literal,
    validate_id,
)
from src.providers.lightning.templates import get_template
from src.schemas.lightning import (
    AuraDefinitionRecord,
    DefType,
    LocalFile,
    SaveResult,
)

logger = logging.getLogger(__name__)

BUNDLE_SOBJECT = "AuraDefinitionBundle"
DEFINITION_SOBJECT = "AuraDefinition"


class IndexProvider(Protocol):
    async def get_index(self) -> List[AuraDefinitionRecord]: ...


def _type_name(def_type) -> str:
    return getattr(def_type, "value", def_type)


def find_in_index(
    index: Sequence[AuraDefinitionRecord], local_file: LocalFile
) -> AuraDefinitionRecord:
    """
    在索引中查找本地文件对应的 AuraDefinition

    匹配条件: bundle DeveloperName == folder_name 且 DefType == definition_type

    Raises:
        BundleItemNotFoundError: 没有匹配项
    """
    for record in index:
        if (
            record.bundle_name == local_file.folder_name
            and record.DefType == local_file.definition_type
        ):
            return record
    raise BundleItemNotFoundError(
        local_file.folder_name, _type_name(local_file.definition_type)
    )


def _require_remote_id(local_file: LocalFile) -> str:
    remote_id = local_file.get_cached_remote_id()
    if not remote_id:
        raise MissingRemoteIdError(
            f"{local_file.folder_name}/{_type_name(local_file.definition_type)} "
            "has no cached remote id"
        )
    return remote_id


class LightningService:
    """
    Lightning bundle 元数据客户端

    设计原则:
    - 基于 ToolingAPI 原子接口，不直接发 HTTP 请求
    - 所有方法均为 async，成功返回结果，失败抛出 LightningError 子类
    - 远端错误原样透传；delete_bundle / get_bundle_items 附加上下文前缀
    """

    def __init__(
        self,
        tooling_api: Optional[ToolingAPI] = None,
        index: Optional[IndexProvider] = None,
    ):
        self.tooling_api = tooling_api or ToolingAPI()
        self.index = index or LightningIndex(self)

    def _invalidate_index(self) -> None:
        # 新建或删除定义后索引已过期
        invalidate = getattr(self.index, "invalidate", None)
        if callable(invalidate):
            invalidate()

    @property
    def api_version(self) -> str:
        """新建 bundle 使用的 API 版本，客户端未配置时使用默认版本"""
        return self.tooling_api.api_version or settings.SFDC_DEFAULT_API_VERSION

    async def list_all(self) -> List[AuraDefinitionRecord]:
        """
        查询整个 org 的 AuraDefinition（不含 Source）

        Returns:
            AuraDefinition 记录列表
        """
        records = await self.tooling_api.query(aura_definitions_query())
        logger.info("Retrieved %d Lightning definitions", len(records))
        return [AuraDefinitionRecord.model_validate(r) for r in records]

    async def create_bundle(self, developer_name: str, description: str) -> SaveResult:
        """
        创建 AuraDefinitionBundle

        Args:
            developer_name: bundle API 名称，同时作为 MasterLabel
            description: 描述

        Returns:
            SaveResult，id 为新 bundle 的 Id
        """
        logger.debug("Creating lightning bundle: %s", developer_name)
        result = await self.tooling_api.create(
            BUNDLE_SOBJECT,
            {
                "Description": description,
                "DeveloperName": developer_name,
                "MasterLabel": developer_name,
                "ApiVersion": self.api_version,
            },
        )
        logger.debug("Lightning bundle creation result: %s", result)
        return result

    async def delete_bundle(self, bundle_id: str) -> SaveResult:
        """
        删除 AuraDefinitionBundle

        Raises:
            BundleDeleteError: 删除失败，消息为 "Could not delete AuraBundle: <原因>"
        """
        try:
            result = await self.tooling_api.delete(BUNDLE_SOBJECT, bundle_id)
        except (LightningError, httpx.HTTPError) as e:
            raise BundleDeleteError(f"Could not delete AuraBundle: {e}") from e
        self._invalidate_index()
        return result

    async def delete_items(self, files: Sequence[LocalFile]) -> List[SaveResult]:
        """
        按缓存的远端 Id 批量删除 AuraDefinition

        空列表不发请求，直接返回 []。

        Raises:
            MissingRemoteIdError: 有文件尚无远端 Id
        """
        delete_ids = [_require_remote_id(f) for f in files]
        if not delete_ids:
            logger.debug("No lightning items to delete")
            return []
        results = await self.tooling_api.delete_many(DEFINITION_SOBJECT, delete_ids)
        self._invalidate_index()
        return results

    async def get_bundle(self, bundle_id: str) -> List[AuraDefinitionRecord]:
        """
        查询某个 bundle 下的所有 AuraDefinition（不含 Source）
        """
        soql = aura_definitions_query(
            where=f"AuraDefinitionBundleId = {quote_literal(validate_id(bundle_id))}"
        )
        records = await self.tooling_api.query(soql)
        return [AuraDefinitionRecord.model_validate(r) for r in records]

    async def get_bundle_items(
        self, files: Sequence[LocalFile]
    ) -> Optional[List[AuraDefinitionRecord]]:
        """
        获取本地文件对应的 AuraDefinition 完整记录（含 Source）

        流程:
        1. 获取 org 范围的 Lightning 索引
        2. 按 folder_name + definition_type 将每个文件关联到远端 Id
        3. 按 Id 集合查询完整记录

        Args:
            files: 本地 Lightning 文件

        Returns:
            记录列表；files 为空时返回 None 且不访问远端

        Raises:
            BundleItemNotFoundError: 任一文件在索引中没有匹配项（整批失败）。
                索引在 TTL 内被缓存，未命中也可能是缓存过期所致，
                此时索引会被清除，下一次调用重新查询
            BundleItemsError: 索引或查询失败，消息为 "Could not get bundle items: <原因>"
        """
        if not files:
            return None

        logger.debug("attempting to get index")
        try:
            index = await self.index.get_index()
        except (LightningError, httpx.HTTPError) as e:
            raise BundleItemsError(f"Could not get bundle items: {e}") from e
        logger.debug("got lightning index with %d entries", len(index))

        item_ids: List[str] = []
        for local_file in files:
            logger.debug(
                "resolving %s/%s",
                local_file.folder_name,
                _type_name(local_file.definition_type),
            )
            try:
                record = find_in_index(index, local_file)
            except BundleItemNotFoundError:
                # 缓存的索引可能早于其他客户端新建的定义
                self._invalidate_index()
                raise
            if hasattr(local_file, "set_cached_remote_id"):
                local_file.set_cached_remote_id(record.Id)
            item_ids.append(record.Id)

        # 去重并保持顺序
        item_ids = list(dict.fromkeys(item_ids))
        logger.debug("getting lightning components: %s", item_ids)
        try:
            records = await self.tooling_api.query(
                aura_definitions_query(
                    include_source=True, where=f"Id IN ({id_list(item_ids)})"
                )
            )
        except (LightningError, httpx.HTTPError) as e:
            raise BundleItemsError(f"Could not get bundle items: {e}") from e
        return [AuraDefinitionRecord.model_validate(r) for r in records]

    async def update(self, files: Sequence[LocalFile]) -> List[SaveResult]:
        """
        用本地内容批量更新 AuraDefinition 的 Source

        每个文件对应一条 {Source, Id}，顺序与输入一致。空列表不发请求。

        Raises:
            MissingRemoteIdError: 有文件尚无远端 Id
        """
        update_payload = [
            {"Source": f.get_body_sync(), "Id": _require_remote_id(f)} for f in files
        ]
        if not update_payload:
            logger.debug("No lightning items to update")
            return []
        logger.debug("updating %d lightning components", len(update_payload))
        return await self.tooling_api.update_many(DEFINITION_SOBJECT, update_payload)

    async def create_definition(self, bundle_id: str, def_type: DefType) -> SaveResult:
        """
        在 bundle 下创建一条使用默认模板的 AuraDefinition
        """
        def_type = DefType(def_type)
        template = get_template(def_type)
        logger.debug("Creating %s definition in bundle %s", def_type.value, bundle_id)
        result = await self.tooling_api.create(
            DEFINITION_SOBJECT,
            {
                "AuraDefinitionBundleId": bundle_id,
                "DefType": def_type.value,
                "Format": template.format.value,
                "Source": template.source,
            },
        )
        self._invalidate_index()
        return result

    async def create_component(self, bundle_id: str) -> SaveResult:
        return await self.create_definition(bundle_id, DefType.COMPONENT)

    async def create_application(self, bundle_id: str) -> SaveResult:
        return await self.create_definition(bundle_id, DefType.APPLICATION)

    async def create_interface(self, bundle_id: str) -> SaveResult:
        return await self.create_definition(bundle_id, DefType.INTERFACE)

    async def create_documentation(self, bundle_id: str) -> SaveResult:
        return await self.create_definition(bundle_id, DefType.DOCUMENTATION)

    async def create_controller(self, bundle_id: str) -> SaveResult:
        return await self.create_definition(bundle_id, DefType.CONTROLLER)

    async def create_renderer(self, bundle_id: str) -> SaveResult:
        return await self.create_definition(bundle_id, DefType.RENDERER)

    async def create_helper(self, bundle_id: str) -> SaveResult:
        return await self.create_definition(bundle_id, DefType.HELPER)

    async def create_style(self, bundle_id: str) -> SaveResult:
        return await self.create_definition(bundle_id, DefType.STYLE)

    async def create_design(self, bundle_id: str) -> SaveResult:
        return await self.create_definition(bundle_id, DefType.DESIGN)

    async def create_svg(self, bundle_id: str) -> SaveResult:
        return await self.create_definition(bundle_id, DefType.SVG)

    async def create_event(self, bundle_id: str) -> SaveResult:
        return await self.create_definition(bundle_id, DefType.EVENT)
