"""文件工具函数模块。

提供从磁盘收集待转换图像的实用函数。
"""

from collections.abc import Iterable, Iterator
from pathlib import Path

from ..models.constants import ImageFormats
from .logging_helpers import get_logger
from .message_formatter import MessageFormatter


logger = get_logger()


def find_image_files(
    directory: str | Path,
    recursive: bool = True,
    exclude_dirs: list[str] | None = None,
) -> Iterator[Path]:
    """查找目录中可接受的图像文件（按路径排序）。

    Args:
        directory: 搜索目录
        recursive: 是否递归搜索子目录
        exclude_dirs: 要排除的目录名列表

    Yields:
        Path: 图像文件路径
    """
    directory = Path(directory)
    exclude_dirs = exclude_dirs or []

    if not directory.exists():
        logger.warning(MessageFormatter.file_not_found(directory))
        return

    if not directory.is_dir():
        logger.warning(MessageFormatter.path_not_directory(directory))
        return

    pattern = "**/*" if recursive else "*"
    supported_extensions = ImageFormats.accepted_extensions()

    try:
        candidates = sorted(directory.glob(pattern))
    except PermissionError:
        logger.error(MessageFormatter.permission_error(directory, "访问目录"))
        return

    for file_path in candidates:
        if (
            file_path.is_file()
            and file_path.suffix.lower() in supported_extensions
            and not any(exclude_dir in file_path.parts for exclude_dir in exclude_dirs)
        ):
            yield file_path


def expand_input_paths(paths: Iterable[str | Path], recursive: bool = True) -> list[Path]:
    """展开输入路径：文件原样保留（交给接收阶段验证类型），目录展开为图像文件

    Args:
        paths: 文件或目录路径
        recursive: 目录是否递归

    Returns:
        list[Path]: 去重后保持顺序的文件列表
    """
    seen: set[Path] = set()
    files: list[Path] = []

    for raw in paths:
        path = Path(raw)
        if path.is_dir():
            found = list(find_image_files(path, recursive=recursive))
        elif path.is_file():
            found = [path]
        else:
            logger.warning(MessageFormatter.file_not_found(path))
            found = []

        for file_path in found:
            resolved = file_path.resolve()
            if resolved not in seen:
                seen.add(resolved)
                files.append(file_path)

    return files
