"""核心模块包。

文件接收、格式预处理和单图像转换。
"""

from .formats import FormatProcessor, get_save_parameters
from .intake import FileIntake
from .transformer import ImageTransformer, compute_target_size


__all__ = [
    "FileIntake",
    "FormatProcessor",
    "ImageTransformer",
    "compute_target_size",
    "get_save_parameters",
]
