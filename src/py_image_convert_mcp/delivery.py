"""结果交付模块。

接收 (字节, 输出文件名) 对。批量结果中只有成功转换的文件会产生这样的对。
"""

from collections.abc import Sequence
from pathlib import Path
from typing import Protocol

from .utils.logging_helpers import get_logger
from .utils.message_formatter import format_file_error
from .utils.naming_helpers import PathResolver


logger = get_logger()


class ResultDelivery(Protocol):
    """结果交付接口"""

    def deliver(self, outputs: Sequence[tuple[bytes, str]]) -> list[Path]: ...


class DirectoryDelivery:
    """把每个输出写成目录中的独立文件"""

    def __init__(self, output_dir: str | Path, overwrite: bool = False):
        """
        Args:
            output_dir: 输出目录，不存在时自动创建
            overwrite: 是否覆盖同名文件，否则追加数字后缀
        """
        self.output_dir = Path(output_dir)
        self.overwrite = overwrite

    def deliver(self, outputs: Sequence[tuple[bytes, str]]) -> list[Path]:
        """写出所有文件

        Returns:
            list[Path]: 写出的文件路径，顺序与输入一致
        """
        self.output_dir.mkdir(parents=True, exist_ok=True)
        written: list[Path] = []
        taken: set[Path] = set()

        for data, name in outputs:
            # 只取文件名部分，避免写到目录之外
            target = self.output_dir / Path(name).name
            if not self.overwrite:
                target = PathResolver.ensure_unique_path(target, taken)
            taken.add(target)

            try:
                target.write_bytes(data)
            except OSError as e:
                logger.error(format_file_error("写出文件", target, e))
                raise
            written.append(target)
            logger.debug(f"已写出: {target}")

        return written
