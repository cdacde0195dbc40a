"""跟踪文件模型。

描述一个用户提交的图像在整个生命周期中的状态。记录是不可变的值对象，
状态变化通过返回新记录完成，由 FileIntake 的表按 id 保存。
"""

import mimetypes
import uuid
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from ..utils.cleanup_helpers import PreviewHandle
from .constants import ImageFormats, StageProgress


class FileStatus(str, Enum):
    """文件状态"""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETE = "complete"
    ERROR = "error"

    @property
    def is_finished(self) -> bool:
        return self in (FileStatus.COMPLETE, FileStatus.ERROR)


class InvalidTransitionError(ValueError):
    """非法的状态转换"""


class RawFile(BaseModel):
    """提交到 FileIntake 的原始文件"""

    model_config = ConfigDict(frozen=True)

    name: str = Field(description="文件名")
    size: int = Field(ge=0, description="文件大小（字节）")
    mime_type: str = Field("", description="媒体类型")
    data: bytes = Field(repr=False, description="文件内容")

    @classmethod
    def from_bytes(cls, name: str, data: bytes, mime_type: str | None = None) -> "RawFile":
        if mime_type is None:
            mime_type = (
                ImageFormats.mime_for_extension(Path(name).suffix)
                or mimetypes.guess_type(name)[0]
                or ""
            )
        return cls(name=name, size=len(data), mime_type=mime_type, data=data)

    @classmethod
    def from_path(cls, path: str | Path) -> "RawFile":
        """从磁盘读取文件，按扩展名推断媒体类型"""
        path = Path(path)
        return cls.from_bytes(path.name, path.read_bytes())


class TrackedFile(BaseModel):
    """被跟踪的文件记录"""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    id: str = Field(default_factory=lambda: uuid.uuid4().hex, description="唯一标识")
    name: str
    size: int
    mime_type: str
    preview_handle: PreviewHandle = Field(exclude=True, repr=False)

    status: FileStatus = FileStatus.PENDING
    progress: int = Field(0, ge=0, le=100)

    output_bytes: bytes | None = Field(None, repr=False)
    output_name: str | None = None
    output_dimensions: tuple[int, int] | None = None

    error_kind: str | None = None
    error_reason: str | None = None

    @property
    def output_size(self) -> int:
        return len(self.output_bytes) if self.output_bytes is not None else 0

    def begin_run(self) -> "TrackedFile":
        """新一轮运行开始：进入 processing，进度归零并清除上一轮输出"""
        if self.status is FileStatus.PROCESSING:
            raise InvalidTransitionError(f"{self.name} 已在处理中")
        return self.model_copy(
            update={
                "status": FileStatus.PROCESSING,
                "progress": 0,
                "output_bytes": None,
                "output_name": None,
                "output_dimensions": None,
                "error_kind": None,
                "error_reason": None,
            }
        )

    def advance(self, progress: int) -> "TrackedFile":
        """处理中进度只增不减"""
        self._require(FileStatus.PROCESSING)
        progress = max(0, min(100, progress))
        if progress <= self.progress:
            return self
        return self.model_copy(update={"progress": progress})

    def complete(
        self, output_bytes: bytes, output_name: str, dimensions: tuple[int, int]
    ) -> "TrackedFile":
        self._require(FileStatus.PROCESSING)
        return self.model_copy(
            update={
                "status": FileStatus.COMPLETE,
                "progress": StageProgress.ENCODED,
                "output_bytes": output_bytes,
                "output_name": output_name,
                "output_dimensions": dimensions,
            }
        )

    def fail(self, kind: str, reason: str) -> "TrackedFile":
        self._require(FileStatus.PROCESSING)
        return self.model_copy(
            update={
                "status": FileStatus.ERROR,
                "progress": 100,
                "error_kind": kind,
                "error_reason": reason,
            }
        )

    def _require(self, status: FileStatus) -> None:
        if self.status is not status:
            raise InvalidTransitionError(
                f"{self.name} 当前状态为 {self.status.value}，期望 {status.value}"
            )
