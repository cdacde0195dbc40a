"""图像转换异常处理模块。

定义统一的异常类和错误处理机制，包含阶段异常转换装饰器。
"""

from collections.abc import Callable
from functools import wraps
from typing import TypeVar

from PIL.Image import DecompressionBombError, UnidentifiedImageError

from .utils.logging_helpers import get_logger
from .utils.message_formatter import MessageFormatter


logger = get_logger()
T = TypeVar("T")


class ConversionError(Exception):
    """转换相关错误基类"""

    def __init__(self, message: str, file_name: str | None = None):
        super().__init__(message)
        self.message = message
        self.file_name = file_name


class ValidationError(ConversionError):
    """参数验证错误"""

    pass


class TransformError(ConversionError):
    """单文件转换错误基类，只影响出错的文件"""

    kind = "TransformError"


class DecodeError(TransformError):
    """源图像无法解码（损坏或不支持）"""

    kind = "DecodeError"


class EncodeError(TransformError):
    """编码器无法生成目标格式"""

    kind = "EncodeError"


class PreviewHandleError(ConversionError):
    """预览句柄使用错误（已回收或重复回收）"""

    pass


class BatchInProgressError(ConversionError):
    """同一批文件上已有运行中的批量任务"""

    pass


class ResourceExhaustedError(ConversionError):
    """资源分配失败，整个批量运行不可恢复"""

    pass


def translate_errors(error_class: type[TransformError], stage: str):
    """将 Pillow/系统异常转换为阶段对应的转换错误

    Args:
        error_class: 目标异常类型（DecodeError 或 EncodeError）
        stage: 阶段名称，用于日志记录
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(*args, **kwargs) -> T:
            try:
                return func(*args, **kwargs)
            except (TransformError, MemoryError):
                raise
            except UnidentifiedImageError as e:
                logger.debug(f"{stage} - 无法识别图像格式: {e}")
                raise error_class(f"无法识别的图像格式: {e}") from e
            except DecompressionBombError as e:
                logger.debug(f"{stage} - 图像过大: {e}")
                raise error_class(f"图像像素过多，拒绝处理: {e}") from e
            except PreviewHandleError as e:
                raise error_class(f"预览句柄不可用: {e}") from e
            except (OSError, ValueError, KeyError, TypeError, SyntaxError) as e:
                # Pillow 对截断或损坏的数据会抛出 SyntaxError
                logger.debug(f"{stage} - 处理失败: {e}")
                raise error_class(f"{stage}失败: {e}") from e

        return wrapper

    return decorator


class ErrorHandler:
    """统一错误处理器

    将单文件失败转换为可记录在文件上的 (类型, 原因) 并写日志。
    """

    @staticmethod
    def _log_error(
        operation: str, target: str, error: Exception, level: str = "error"
    ) -> None:
        """标准化的错误日志记录"""
        log_msg = MessageFormatter.format_error(operation, target, error)
        getattr(logger, level, logger.error)(log_msg)

    @staticmethod
    def describe(error: Exception, file_name: str, operation: str = "图像转换") -> tuple[str, str]:
        """描述单文件失败

        Returns:
            tuple: (错误类型, 面向用户的错误原因)
        """
        match error:
            case TransformError() as te:
                ErrorHandler._log_error(operation, file_name, te, "warning")
                return te.kind, te.message
            case ValidationError() as ve:
                ErrorHandler._log_error("参数验证", file_name, ve, "warning")
                return "ValidationError", f"参数验证失败: {ve.message}"
            case _:
                ErrorHandler._log_error(operation, file_name, error, "error")
                return type(error).__name__, f"{operation}: {error}"
