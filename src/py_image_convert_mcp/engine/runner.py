"""批量运行器模块。

按提交顺序逐个转换文件，更新单文件与整体进度，隔离单文件失败。
运行在单个事件循环中，只在文件之间让出控制权。
"""

import asyncio
from collections.abc import AsyncGenerator, AsyncIterator, Callable, Iterable, Mapping
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from ..core.intake import FileIntake
from ..core.transformer import ImageTransformer
from ..exceptions import (
    BatchInProgressError,
    ErrorHandler,
    ResourceExhaustedError,
    ValidationError,
)
from ..models.results import BatchProgressEvent, BatchResult
from ..models.settings import ConversionSettings
from ..models.tracked_file import TrackedFile
from ..utils.logging_helpers import get_logger
from ..utils.message_formatter import MessageFormatter


logger = get_logger()

ProgressListener = Callable[[BatchProgressEvent], Any]


class BatchRun:
    """一次批量运行

    异步可迭代，每个文件处理结束后产出一个 BatchProgressEvent。
    只能迭代一次；调用 cancel() 或 aclose() 即可取消，已开始的文件会完成。
    提前 break 的调用方应使用 ``async with run:`` 或 ``await run.aclose()``，
    这样文件占用会立即释放，而不是等事件循环回收迭代器。
    """

    def __init__(
        self,
        intake: FileIntake,
        transformer: ImageTransformer,
        file_ids: list[str],
        settings: ConversionSettings,
    ):
        self.settings = settings
        self._intake = intake
        self._transformer = transformer
        self._file_ids = file_ids
        self._snapshots: dict[str, TrackedFile] = {}
        self._file_progress: dict[str, int] = dict.fromkeys(file_ids, 0)
        self._completed = 0
        self._iterator: AsyncGenerator[BatchProgressEvent, None] | None = None
        self._holding = False
        self._started = False
        self._finished = False
        self._cancelled = False

    # ------------------------------------------------------------------
    # 聚合状态
    # ------------------------------------------------------------------

    @property
    def total_files(self) -> int:
        return len(self._file_ids)

    @property
    def completed_files(self) -> int:
        return self._completed

    @property
    def overall_progress(self) -> int:
        """单文件进度的平均值（0-100）"""
        if not self._file_ids:
            return 100 if self._finished else 0
        return round(sum(self._file_progress.values()) / len(self._file_ids))

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def finished(self) -> bool:
        return self._finished

    @property
    def started(self) -> bool:
        return self._started

    def cancel(self) -> None:
        """请求取消：不再开始下一个文件，并立即释放文件占用

        转换在文件之间才让出控制权，调用时不会有文件正在处理。
        未开始迭代的运行直接结束。
        """
        if self._finished:
            return
        logger.info("收到取消请求，不再开始新的文件")
        self._cancelled = True
        self._finish()

    def _finish(self) -> None:
        """标记结束并释放占用，可重复调用"""
        self._finished = True
        if self._holding:
            self._holding = False
            self._intake.release(self._file_ids)

    # ------------------------------------------------------------------
    # 迭代
    # ------------------------------------------------------------------

    def __aiter__(self) -> AsyncIterator[BatchProgressEvent]:
        if self._started:
            raise RuntimeError("BatchRun 只能迭代一次")
        self._started = True
        self._iterator = self._iterate()
        return self._iterator

    async def aclose(self) -> None:
        """关闭运行：剩余文件不再开始，文件占用立即释放"""
        self.cancel()
        # 另一个任务正在推进迭代器时，由它在下一个文件前自行停止
        if self._iterator is not None and not self._iterator.ag_running:
            await self._iterator.aclose()

    async def __aenter__(self) -> "BatchRun":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        del exc_type, exc_val, exc_tb
        await self.aclose()

    async def _iterate(self) -> AsyncGenerator[BatchProgressEvent, None]:
        if self._finished:
            return
        try:
            self._intake.reserve(self._file_ids)
        except BatchInProgressError:
            self._finish()
            raise
        self._holding = True
        total = self.total_files
        logger.info(
            f"开始批量转换 {total} 个文件 -> {self.settings.format.value} "
            f"(质量 {self.settings.effective_quality or '无损'}, "
            f"最大 {self.settings.max_width}x"
            f"{self.settings.max_height or '∞'})"
        )
        try:
            for index, file_id in enumerate(self._file_ids):
                if self._cancelled:
                    logger.info(f"批量转换已取消，剩余 {total - index} 个文件未开始")
                    break

                record = self._intake.get(file_id)
                if record is None:
                    # 轮到之前已被移除
                    logger.debug(f"跳过已移除的文件: {file_id}")
                    self._file_progress[file_id] = 100
                    self._completed += 1
                    continue

                finished = self._process(record)
                self._completed += 1
                logger.info(
                    MessageFormatter.progress(
                        index + 1, total, finished.name, finished.status.value
                    )
                )

                yield BatchProgressEvent(
                    index=index,
                    file=finished,
                    completed_files=self._completed,
                    total_files=total,
                    overall_progress=round(100 * (index + 1) / total),
                )
                # 文件之间让出事件循环
                await asyncio.sleep(0)
        finally:
            self._finish()

    def _process(self, record: TrackedFile) -> TrackedFile:
        """处理单个文件，失败记录在文件上而不向外抛出"""
        current = record.begin_run()
        self._store(current)

        def on_progress(value: int) -> None:
            nonlocal current
            current = current.advance(value)
            self._store(current)

        try:
            encoded = self._transformer.transform(current, self.settings, on_progress)
        except MemoryError as e:
            current = current.fail(ResourceExhaustedError.__name__, "资源分配失败")
            self._store(current)
            raise ResourceExhaustedError(
                f"资源分配失败，批量运行中止: {record.name}", record.name
            ) from e
        except Exception as e:
            kind, reason = ErrorHandler.describe(e, record.name)
            current = current.fail(kind, reason)
        else:
            current = current.complete(
                encoded.data, encoded.output_name, encoded.dimensions
            )

        self._store(current)
        return current

    def _store(self, record: TrackedFile) -> None:
        self._snapshots[record.id] = record
        self._file_progress[record.id] = record.progress
        self._intake.update(record)

    # ------------------------------------------------------------------
    # 结果
    # ------------------------------------------------------------------

    async def collect(self, listener: ProgressListener | None = None) -> BatchResult:
        """运行到结束并返回批量结果

        Args:
            listener: 每个进度事件的回调，可以是普通函数或协程函数
        """
        async with self:
            async for event in self:
                if listener is not None:
                    outcome = listener(event)
                    if asyncio.iscoroutine(outcome):
                        await outcome
        return self.result()

    def result(self) -> BatchResult:
        """当前结果快照：已访问文件用运行中的记录，未访问的用接收表中的记录"""
        files = []
        for file_id in self._file_ids:
            record = self._snapshots.get(file_id) or self._intake.get(file_id)
            if record is not None:
                files.append(record)
        return BatchResult(
            files=files, total_files=self.total_files, cancelled=self._cancelled
        )


class BatchRunner:
    """批量运行器

    顺序执行：同一次运行中任何时刻最多只有一个文件在转换。
    """

    def __init__(self, intake: FileIntake, transformer: ImageTransformer | None = None):
        self.intake = intake
        self.transformer = transformer or ImageTransformer()

    def run(
        self,
        files: Iterable[TrackedFile] | None,
        settings: ConversionSettings | Mapping[str, Any],
    ) -> BatchRun:
        """创建一次批量运行

        Args:
            files: 要转换的文件，None 表示接收表中的全部文件；按提交顺序处理
            settings: 设置快照，本次运行期间不会改变

        Returns:
            BatchRun: 异步可迭代的运行对象
        """
        snapshot = self._snapshot_settings(settings)

        order = {file_id: i for i, file_id in enumerate(f.id for f in self.intake.files)}
        if files is None:
            wanted = list(order)
        else:
            wanted = []
            for f in files:
                if f.id not in order:
                    logger.warning(f"文件不在接收表中，忽略: {f.name}")
                elif f.id not in wanted:
                    wanted.append(f.id)
            wanted.sort(key=order.__getitem__)

        return BatchRun(self.intake, self.transformer, wanted, snapshot)

    @staticmethod
    def _snapshot_settings(
        settings: ConversionSettings | Mapping[str, Any],
    ) -> ConversionSettings:
        if isinstance(settings, ConversionSettings):
            return settings
        try:
            return ConversionSettings.model_validate(dict(settings))
        except PydanticValidationError as e:
            raise ValidationError(f"转换设置无效: {e}") from e
