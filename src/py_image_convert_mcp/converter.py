"""批量图像转换器接口。

组合文件接收、工作设置和批量运行的简洁用户接口。
"""

import asyncio
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from .config import get_config
from .engine.runner import BatchRun, BatchRunner, ProgressListener
from .exceptions import BatchInProgressError, ValidationError
from .core.intake import FileIntake
from .core.transformer import ImageTransformer
from .models.results import BatchResult, IntakeResult
from .models.settings import ConversionSettings
from .models.tracked_file import RawFile, TrackedFile
from .utils.cleanup_helpers import PreviewRegistry
from .utils.file_helpers import expand_input_paths
from .utils.logging_helpers import get_logger
from .utils.message_formatter import MessageFormatter


logger = get_logger()


class ImageConverter:
    """批量图像转换器

    持有跟踪文件和一份可修改的工作设置；每次运行开始时捕获设置快照。
    必须调用 close()（或使用 with 语句）以回收所有预览句柄。
    """

    def __init__(
        self,
        settings: ConversionSettings | None = None,
        max_file_size: int | None = None,
        registry: PreviewRegistry | None = None,
        transformer: ImageTransformer | None = None,
    ):
        """初始化转换器

        Args:
            settings: 初始工作设置，默认取全局配置
            max_file_size: 单文件大小上限（字节）
            registry: 预览句柄登记表
            transformer: 单图像转换器
        """
        self.intake = FileIntake(max_file_size=max_file_size, registry=registry)
        self.runner = BatchRunner(self.intake, transformer)
        self._settings = settings or self._default_settings()
        self._active_run: BatchRun | None = None

        logger.debug("初始化图像转换器")

    @staticmethod
    def _default_settings() -> ConversionSettings:
        return build_settings(**get_config().conversion.as_settings_dict())

    # ------------------------------------------------------------------
    # 设置
    # ------------------------------------------------------------------

    @property
    def settings(self) -> ConversionSettings:
        """当前工作设置"""
        return self._settings

    def update_settings(self, **changes: Any) -> ConversionSettings:
        """修改工作设置，不影响正在进行的运行

        Raises:
            ValidationError: 设置无效时
        """
        self._settings = build_settings(**{**self._settings.model_dump(), **changes})
        return self._settings

    # ------------------------------------------------------------------
    # 文件
    # ------------------------------------------------------------------

    @property
    def files(self) -> list[TrackedFile]:
        return self.intake.files

    def add_files(self, raw_files: Iterable[RawFile]) -> IntakeResult:
        """提交原始文件"""
        return self.intake.submit(raw_files)

    def add_paths(self, paths: Iterable[str | Path], recursive: bool = True) -> IntakeResult:
        """从磁盘读取文件或目录并提交

        读取失败的文件记录日志后跳过。
        """
        raw_files: list[RawFile] = []
        for path in expand_input_paths(paths, recursive=recursive):
            try:
                raw_files.append(RawFile.from_path(path))
            except OSError as e:
                logger.warning(MessageFormatter.operation_failed("读取文件", path, e))
        return self.intake.submit(raw_files)

    def remove(self, file_id: str) -> None:
        self.intake.remove(file_id)

    def clear(self) -> None:
        self.intake.clear()

    # ------------------------------------------------------------------
    # 转换
    # ------------------------------------------------------------------

    @property
    def is_converting(self) -> bool:
        run = self._active_run
        return run is not None and run.started and not run.finished

    def start(self, files: Iterable[TrackedFile] | None = None) -> BatchRun:
        """以当前工作设置的快照创建一次运行

        上一次创建但从未迭代的运行视为被丢弃，会先被取消。
        """
        if self.is_converting:
            raise BatchInProgressError("已有运行中的批量转换")
        if self._active_run is not None:
            self._active_run.cancel()
        self._active_run = self.runner.run(files, self._settings)
        return self._active_run

    async def convert(
        self,
        files: Iterable[TrackedFile] | None = None,
        on_progress: ProgressListener | None = None,
    ) -> BatchResult:
        """转换文件并返回按文件区分成功与失败的结果

        Args:
            files: 要转换的文件，默认全部
            on_progress: 每个文件结束后的进度回调

        Returns:
            BatchResult: 批量结果

        Examples:
            >>> with ImageConverter() as converter:
            ...     converter.add_paths(["photos/"])
            ...     result = asyncio.run(converter.convert())
            ...     print(result.get_summary())
        """
        run = self.start(files)
        try:
            result = await run.collect(on_progress)
        finally:
            if self._active_run is run:
                self._active_run = None
        logger.info(result.get_summary())
        return result

    def convert_sync(
        self,
        files: Iterable[TrackedFile] | None = None,
        on_progress: ProgressListener | None = None,
    ) -> BatchResult:
        """同步版本的 convert，用于没有事件循环的调用方"""
        return asyncio.run(self.convert(files, on_progress))

    def cancel(self) -> None:
        """取消当前运行（当前文件完成后生效）"""
        if self._active_run is not None:
            self._active_run.cancel()
            self._active_run = None

    # ------------------------------------------------------------------
    # 生命周期
    # ------------------------------------------------------------------

    def close(self) -> None:
        """拆除：取消运行并回收所有预览句柄"""
        self.cancel()
        self.intake.close()

    def __enter__(self) -> "ImageConverter":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        del exc_type, exc_val, exc_tb
        self.close()


def build_settings(**kwargs: Any) -> ConversionSettings:
    """构建转换设置，将 pydantic 验证错误转换为 ValidationError"""
    try:
        return ConversionSettings(**kwargs)
    except PydanticValidationError as e:
        messages = []
        for err in e.errors():
            field = ".".join(str(loc) for loc in err["loc"])
            messages.append(f"{field}: {err['msg']}" if field else err["msg"])
        raise ValidationError("; ".join(messages)) from e
