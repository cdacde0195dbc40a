"""消息格式化工具模块。

提供统一的错误消息、拒绝原因、进度消息格式化功能。
"""

from pathlib import Path
from typing import Any

from humanize import naturalsize


class MessageFormatter:
    """统一的消息格式化器"""

    @staticmethod
    def file_not_found(file_path: str | Path) -> str:
        """文件不存在错误消息"""
        return f"文件不存在: {file_path}"

    @staticmethod
    def path_not_directory(path: str | Path) -> str:
        """路径不是目录错误消息"""
        return f"路径不是目录: {path}"

    @staticmethod
    def permission_error(path: str | Path, operation: str = "访问") -> str:
        """权限错误消息"""
        return f"权限错误，无法{operation}: {path}"

    @staticmethod
    def operation_failed(
        operation: str, target: str | Path, error: Exception | None = None
    ) -> str:
        """操作失败消息"""
        msg = f"{operation}失败: {target}"
        if error:
            msg += f" - {error}"
        return msg

    @staticmethod
    def validation_error(field: str, value: Any, reason: str | None = None) -> str:
        """参数验证错误消息"""
        msg = f"参数验证失败 - {field}: {value}"
        if reason:
            msg += f" ({reason})"
        return msg

    @staticmethod
    def format_error(operation: str, target: str | Path, error: Exception) -> str:
        """格式化通用错误消息"""
        return f"{operation}失败 [{target}]: {error}"

    @staticmethod
    def file_too_large(size: int, limit: int) -> str:
        """文件超过大小上限"""
        return (
            f"文件过大: {naturalsize(size, binary=True)}，"
            f"上限为 {naturalsize(limit, binary=True)}"
        )

    @staticmethod
    def invalid_type(mime_type: str, accepted: list[str]) -> str:
        """文件类型不被接受"""
        shown = mime_type or "未知类型"
        return f"不支持的文件类型: {shown}，仅接受 {', '.join(accepted)}"

    @staticmethod
    def progress(index: int, total: int, name: str, status: str) -> str:
        """批量进度消息"""
        return f"[{index}/{total}] {name}: {status}"


def format_file_error(operation: str, file_path: str | Path, error: Exception) -> str:
    """格式化文件操作错误消息"""
    return MessageFormatter.format_error(operation, file_path, error)

