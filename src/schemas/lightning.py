from enum import Enum
from pathlib import Path
from typing import List, Optional, Protocol, runtime_checkable

from pydantic import BaseModel, Field


class DefType(str, Enum):
    COMPONENT = "COMPONENT"
    APPLICATION = "APPLICATION"
    INTERFACE = "INTERFACE"
    DOCUMENTATION = "DOCUMENTATION"
    CONTROLLER = "CONTROLLER"
    RENDERER = "RENDERER"
    HELPER = "HELPER"
    STYLE = "STYLE"
    DESIGN = "DESIGN"
    SVG = "SVG"
    EVENT = "EVENT"


class DefFormat(str, Enum):
    XML = "XML"
    JS = "JS"
    CSS = "CSS"
    SVG = "SVG"


class BundleRef(BaseModel):
    DeveloperName: str

    model_config = {"extra": "ignore"}


class AuraDefinitionRecord(BaseModel):
    Id: str
    AuraDefinitionBundleId: str
    AuraDefinitionBundle: Optional[BundleRef] = None
    DefType: str
    Format: str
    # 只有显式查询 Source 时才有值
    Source: Optional[str] = None

    # Allow extra fields (e.g. "attributes") for forward compatibility
    model_config = {"extra": "ignore"}

    @property
    def bundle_name(self) -> Optional[str]:
        return self.AuraDefinitionBundle.DeveloperName if self.AuraDefinitionBundle else None


class SaveError(BaseModel):
    message: str = ""
    statusCode: Optional[str] = None
    fields: List[str] = Field(default_factory=list)

    model_config = {"extra": "ignore"}


class SaveResult(BaseModel):
    id: Optional[str] = None
    success: bool = True
    errors: List[SaveError] = Field(default_factory=list)

    model_config = {"extra": "ignore"}


class QueryResult(BaseModel):
    totalSize: int = 0
    done: bool = True
    records: List[dict] = Field(default_factory=list)
    nextRecordsUrl: Optional[str] = None

    model_config = {"extra": "ignore"}


@runtime_checkable
class LocalFile(Protocol):
    """本地 Lightning 文件需要提供的能力"""

    @property
    def folder_name(self) -> str: ...

    @property
    def definition_type(self) -> str: ...

    def get_cached_remote_id(self) -> Optional[str]: ...

    def get_body_sync(self) -> str: ...


class BundleFile(BaseModel):
    """
    LocalFile 的简单实现

    body 优先；未设置 body 时从 path 读取。
    remote_id 在首次创建或通过索引查找成功后写入。
    """

    folder_name: str
    definition_type: DefType
    remote_id: Optional[str] = None
    body: Optional[str] = None
    path: Optional[Path] = None

    def get_cached_remote_id(self) -> Optional[str]:
        return self.remote_id

    def set_cached_remote_id(self, remote_id: str) -> None:
        self.remote_id = remote_id

    def get_body_sync(self) -> str:
        if self.body is not None:
            return self.body
        if self.path is None:
            raise ValueError(f"BundleFile {self.folder_name}/{self.definition_type.value} has no body or path")
        return self.path.read_text(encoding="utf-8")
