"""数据模型包。

定义图片转换相关的数据结构和模型。
"""

from .constants import (
    ImageFormats,
    OutputFormat,
    QualityDefaults,
    StageProgress,
    ValidationLimits,
    get_format_alias,
    supports_transparency,
)
from .results import (
    BatchProgressEvent,
    BatchResult,
    EncodedImage,
    IntakeRejection,
    IntakeResult,
    RejectionCode,
)
from .settings import ConversionSettings
from .tracked_file import FileStatus, InvalidTransitionError, RawFile, TrackedFile


__all__ = [
    "BatchProgressEvent",
    "BatchResult",
    "ConversionSettings",
    "EncodedImage",
    "FileStatus",
    "ImageFormats",
    "IntakeRejection",
    "IntakeResult",
    "InvalidTransitionError",
    "OutputFormat",
    "QualityDefaults",
    "RawFile",
    "RejectionCode",
    "StageProgress",
    "TrackedFile",
    "ValidationLimits",
    "get_format_alias",
    "supports_transparency",
]
