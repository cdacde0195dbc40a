"""文件接收模块。

验证并规范化提交的原始文件，维护按 id 索引的跟踪表，并负责预览句柄的生命周期：
每个分配的句柄通过 remove、clear 或拆除恰好回收一次。
"""

from collections.abc import Iterable
from pathlib import Path

from ..config import get_config
from ..exceptions import BatchInProgressError, ValidationError
from ..models.constants import ImageFormats
from ..models.results import IntakeRejection, IntakeResult, RejectionCode
from ..models.tracked_file import RawFile, TrackedFile
from ..utils.cleanup_helpers import PreviewRegistry, get_preview_registry
from ..utils.logging_helpers import get_logger
from ..utils.message_formatter import MessageFormatter


logger = get_logger()


class FileIntake:
    """文件接收与跟踪表

    表中保存不可变的 TrackedFile 记录，插入顺序即提交顺序。
    """

    def __init__(
        self,
        max_file_size: int | None = None,
        registry: PreviewRegistry | None = None,
    ):
        """初始化文件接收器

        Args:
            max_file_size: 单文件大小上限（字节），默认取全局配置
            registry: 预览句柄登记表，默认使用进程级登记表
        """
        self.max_file_size = (
            max_file_size
            if max_file_size is not None
            else get_config().intake.max_file_size_bytes
        )
        self.registry = registry or get_preview_registry()
        self._files: dict[str, TrackedFile] = {}
        self._reserved: set[str] = set()
        self._closed = False

    # ------------------------------------------------------------------
    # 提交与移除
    # ------------------------------------------------------------------

    def submit(self, raw_files: Iterable[RawFile]) -> IntakeResult:
        """接收一批候选文件

        类型不符或超过大小上限的文件被拒绝，不会进入跟踪表。

        Returns:
            IntakeResult: 接收和拒绝的文件
        """
        self._ensure_open()
        result = IntakeResult()

        for raw in raw_files:
            rejection = self._validate(raw)
            if rejection is not None:
                logger.info(f"拒绝文件 {rejection.filename}: {rejection.reason}")
                result.rejected.append(rejection)
                continue

            handle = self.registry.allocate(raw.data, raw.mime_type)
            tracked = TrackedFile(
                name=raw.name,
                size=raw.size,
                mime_type=raw.mime_type,
                preview_handle=handle,
            )
            self._files[tracked.id] = tracked
            result.accepted.append(tracked)

        logger.debug(
            f"接收 {len(result.accepted)} 个文件，拒绝 {len(result.rejected)} 个"
        )
        return result

    def remove(self, file_id: str) -> None:
        """移除文件并回收其预览句柄，未知 id 时不做任何事"""
        tracked = self._files.pop(file_id, None)
        if tracked is None:
            return
        tracked.preview_handle.revoke()
        logger.debug(f"移除文件: {tracked.name}")

    def clear(self) -> None:
        """移除全部文件，回收每个预览句柄"""
        while self._files:
            _, tracked = self._files.popitem()
            tracked.preview_handle.revoke()

    def close(self) -> None:
        """拆除：回收所有句柄，之后不再接收文件"""
        if self._closed:
            return
        count = len(self._files)
        self.clear()
        self._closed = True
        if count:
            logger.debug(f"拆除时回收了 {count} 个预览句柄")

    def __enter__(self) -> "FileIntake":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        del exc_type, exc_val, exc_tb
        self.close()

    # ------------------------------------------------------------------
    # 查询与更新
    # ------------------------------------------------------------------

    @property
    def files(self) -> list[TrackedFile]:
        """按提交顺序返回当前记录"""
        return list(self._files.values())

    @property
    def closed(self) -> bool:
        return self._closed

    def get(self, file_id: str) -> TrackedFile | None:
        return self._files.get(file_id)

    def update(self, record: TrackedFile) -> bool:
        """保存新的记录值；文件已被移除时忽略并返回 False"""
        if record.id not in self._files:
            return False
        self._files[record.id] = record
        return True

    def __len__(self) -> int:
        return len(self._files)

    def __contains__(self, file_id: object) -> bool:
        return file_id in self._files

    # ------------------------------------------------------------------
    # 运行占用
    # ------------------------------------------------------------------

    def reserve(self, file_ids: Iterable[str]) -> None:
        """为一次批量运行占用文件，与运行中的批次重叠时抛出异常"""
        ids = set(file_ids)
        busy = ids & self._reserved
        if busy:
            names = ", ".join(
                self._files[i].name if i in self._files else i for i in sorted(busy)
            )
            raise BatchInProgressError(f"以下文件已有运行中的批量任务: {names}")
        self._reserved |= ids

    def release(self, file_ids: Iterable[str]) -> None:
        self._reserved -= set(file_ids)

    def is_reserved(self, file_id: str) -> bool:
        return file_id in self._reserved

    # ------------------------------------------------------------------
    # 验证
    # ------------------------------------------------------------------

    def _validate(self, raw: RawFile) -> IntakeRejection | None:
        """先检查类型，再检查大小"""
        if not self._is_accepted_type(raw):
            return IntakeRejection(
                filename=raw.name,
                code=RejectionCode.INVALID_TYPE,
                reason=MessageFormatter.invalid_type(
                    raw.mime_type, sorted(ImageFormats.accepted_extensions())
                ),
            )

        size = max(raw.size, len(raw.data))
        if size > self.max_file_size:
            return IntakeRejection(
                filename=raw.name,
                code=RejectionCode.TOO_LARGE,
                reason=MessageFormatter.file_too_large(size, self.max_file_size),
            )

        return None

    @staticmethod
    def _is_accepted_type(raw: RawFile) -> bool:
        mime_type = raw.mime_type.strip().lower()
        if mime_type in ImageFormats.GENERIC_MIME_TYPES:
            extension = Path(raw.name).suffix.lower()
            return extension in ImageFormats.accepted_extensions()
        return mime_type in ImageFormats.ACCEPTED_MIME_TYPES

    def _ensure_open(self) -> None:
        if self._closed:
            raise ValidationError("文件接收器已关闭")
