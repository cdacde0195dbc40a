"""转换结果模型。

定义接收、单文件转换、批量进度与批量结果的数据结构。
"""

from enum import Enum

from humanize import naturalsize
from pydantic import BaseModel, ConfigDict, Field

from .constants import OutputFormat
from .tracked_file import FileStatus, TrackedFile


class RejectionCode(str, Enum):
    """接收拒绝原因代码"""

    INVALID_TYPE = "file-invalid-type"
    TOO_LARGE = "file-too-large"


class IntakeRejection(BaseModel):
    """被拒绝的提交文件，不会进入跟踪集合"""

    model_config = ConfigDict(frozen=True)

    filename: str
    code: RejectionCode
    reason: str

    def as_pair(self) -> tuple[str, str]:
        return self.filename, self.reason


class IntakeResult(BaseModel):
    """一次提交的接收结果"""

    accepted: list[TrackedFile] = Field(default_factory=list)
    rejected: list[IntakeRejection] = Field(default_factory=list)

    @property
    def has_rejections(self) -> bool:
        return bool(self.rejected)


class EncodedImage(BaseModel):
    """单文件转换输出"""

    model_config = ConfigDict(frozen=True)

    data: bytes = Field(repr=False, description="编码后的字节")
    output_name: str = Field(description="输出文件名")
    format: OutputFormat = Field(description="输出格式")
    width: int = Field(gt=0)
    height: int = Field(gt=0)
    source_width: int = Field(gt=0)
    source_height: int = Field(gt=0)

    @property
    def dimensions(self) -> tuple[int, int]:
        return self.width, self.height

    @property
    def was_resized(self) -> bool:
        return (self.width, self.height) != (self.source_width, self.source_height)

    @property
    def size(self) -> int:
        return len(self.data)

    def get_size_human(self) -> str:
        return naturalsize(self.size, binary=True)


class BatchProgressEvent(BaseModel):
    """每个文件处理结束后发出的进度事件"""

    model_config = ConfigDict(frozen=True)

    index: int = Field(ge=0, description="文件在本次运行中的序号")
    file: TrackedFile = Field(description="文件的最新状态")
    completed_files: int = Field(ge=0)
    total_files: int = Field(ge=0)
    overall_progress: int = Field(ge=0, le=100)

    @property
    def is_last(self) -> bool:
        return self.completed_files == self.total_files


class BatchResult(BaseModel):
    """批量转换结果

    按文件分别报告成功与失败，不会合并为单一的通过/失败结论。
    """

    files: list[TrackedFile] = Field(description="本次运行涉及的所有文件（按提交顺序）")
    total_files: int = Field(ge=0)
    cancelled: bool = Field(False, description="是否被取消")

    def get_successful_items(self) -> list[TrackedFile]:
        return [f for f in self.files if f.status is FileStatus.COMPLETE]

    def get_failed_items(self) -> list[TrackedFile]:
        return [f for f in self.files if f.status is FileStatus.ERROR]

    def get_pending_items(self) -> list[TrackedFile]:
        return [f for f in self.files if f.status is FileStatus.PENDING]

    def get_success_count(self) -> int:
        return len(self.get_successful_items())

    def get_failure_count(self) -> int:
        return len(self.get_failed_items())

    def get_total_size_saved(self) -> int:
        """实际节省的字节数（仅统计成功的文件）"""
        return sum(max(0, f.size - f.output_size) for f in self.get_successful_items())

    def deliverables(self) -> list[tuple[bytes, str]]:
        """所有成功文件的 (字节, 输出文件名)"""
        return [
            (f.output_bytes, f.output_name)
            for f in self.get_successful_items()
            if f.output_bytes is not None and f.output_name is not None
        ]

    def get_summary(self) -> str:
        """批量处理摘要"""
        succeeded = self.get_success_count()
        failed = self.get_failure_count()
        saved = naturalsize(self.get_total_size_saved(), binary=True)
        summary = (
            f"成功 {succeeded}/{self.total_files} 个文件，失败 {failed} 个，总节省 {saved}"
        )
        if self.cancelled:
            summary += "（已取消）"
        return summary
