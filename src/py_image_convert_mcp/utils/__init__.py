"""工具模块包。

提供纯工具函数，不包含业务逻辑。依赖模型或异常的工具模块
（cleanup_helpers、file_helpers、naming_helpers）需直接从子模块导入。
"""

from .logging_helpers import configure_logging, get_logger
from .message_formatter import (
    MessageFormatter,
    format_file_error,
)


__all__ = [
    "MessageFormatter",
    "configure_logging",
    "format_file_error",
    "get_logger",
]
