"""文件命名工具模块。

提供统一的输出文件命名和路径生成功能。
"""

import itertools
from pathlib import Path

from ..models.constants import OutputFormat


class FileNamingStrategy:
    """文件命名策略类"""

    DEFAULT_STEM = "image"

    @staticmethod
    def generate_output_name(original_name: str, target_format: OutputFormat) -> str:
        """生成输出文件名

        取原文件名第一个 "." 之前的部分，拼接目标格式扩展名。
        例如 "photo.JPG" -> "photo.webp"，"archive.tar.png" -> "archive.jpeg"。

        Args:
            original_name: 原始文件名（可带路径）
            target_format: 目标格式

        Returns:
            str: 生成的文件名（不含路径）
        """
        base_name = Path(original_name).name.split(".")[0]
        if not base_name:
            base_name = FileNamingStrategy.DEFAULT_STEM
        return f"{base_name}.{target_format.extension}"


class PathResolver:
    """路径解析器"""

    @staticmethod
    def ensure_unique_path(path: Path, taken: set[Path] | None = None) -> Path:
        """确保路径唯一，如果文件已存在则添加数字后缀

        Args:
            path: 原始路径
            taken: 本次已分配但可能尚未写入的路径

        Returns:
            Path: 唯一的路径
        """
        taken = taken or set()
        if not path.exists() and path not in taken:
            return path

        base = path.stem
        suffix = path.suffix
        parent = path.parent

        for counter in itertools.count(1):
            new_path = parent / f"{base}_{counter}{suffix}"
            if not new_path.exists() and new_path not in taken:
                return new_path

        return path  # pragma: no cover
