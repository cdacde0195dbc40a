"""Python 图像批量转换库。

基于 Pillow 的浏览器式批量图像格式转换与尺寸限制。
"""

__version__ = "0.1.0"
__author__ = "crper"
__description__ = "批量图像格式转换与尺寸限制，基于 Pillow"

# 核心功能导出
from .converter import ImageConverter, build_settings
from .delivery import DirectoryDelivery
from .models.results import BatchResult, IntakeResult
from .models.settings import ConversionSettings
from .models.tracked_file import FileStatus, RawFile, TrackedFile


__all__ = [
    "BatchResult",
    "ConversionSettings",
    "DirectoryDelivery",
    "FileStatus",
    "ImageConverter",
    "IntakeResult",
    "RawFile",
    "TrackedFile",
    "build_settings",
    "get_version",
]


def get_version() -> str:
    """获取版本号。"""
    return __version__
