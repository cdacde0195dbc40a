"""批量处理引擎模块。

按提交顺序逐个转换文件并报告进度。
"""

from .runner import BatchRun, BatchRunner, ProgressListener


__all__ = [
    "BatchRun",
    "BatchRunner",
    "ProgressListener",
]
