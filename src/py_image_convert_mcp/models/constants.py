"""图像格式相关常量定义。

集中管理可接受的输入类型、可输出的目标格式以及大小限制。
"""

from enum import Enum
from typing import Final


class OutputFormat(str, Enum):
    """目标输出格式"""

    JPEG = "jpeg"
    PNG = "png"
    WEBP = "webp"

    @property
    def pil_format(self) -> str:
        """Pillow 使用的格式名称"""
        return ImageFormats.PIL_NAMES[self.value]

    @property
    def extension(self) -> str:
        """输出文件扩展名（不含点）"""
        return self.value

    @property
    def mime_type(self) -> str:
        return f"image/{self.value}"

    @property
    def is_lossless(self) -> bool:
        """无损格式会忽略质量参数"""
        return self.pil_format in ImageFormats.LOSSLESS_FORMATS


class ImageFormats:
    """输入输出格式映射"""

    # 用户友好的别名
    ALIASES: Final[dict[str, str]] = {
        "jpg": "jpeg",
    }

    PIL_NAMES: Final[dict[str, str]] = {
        "jpeg": "JPEG",
        "png": "PNG",
        "webp": "WEBP",
    }

    # 可接受的输入类型
    ACCEPTED_MIME_TYPES: Final[dict[str, tuple[str, ...]]] = {
        "image/png": (".png",),
        "image/jpeg": (".jpg", ".jpeg"),
        "image/gif": (".gif",),
        "image/webp": (".webp",),
    }

    # 浏览器/系统在无法识别类型时给出的通用类型
    GENERIC_MIME_TYPES: Final[set[str]] = {"", "application/octet-stream"}

    LOSSLESS_FORMATS: Final[set[str]] = {"PNG"}
    TRANSPARENCY_FORMATS: Final[set[str]] = {"PNG", "WEBP"}

    @classmethod
    def accepted_extensions(cls) -> set[str]:
        return {ext for exts in cls.ACCEPTED_MIME_TYPES.values() for ext in exts}

    @classmethod
    def mime_for_extension(cls, extension: str) -> str | None:
        """根据扩展名推断 MIME 类型"""
        extension = extension.lower()
        for mime_type, exts in cls.ACCEPTED_MIME_TYPES.items():
            if extension in exts:
                return mime_type
        return None


class QualityDefaults:
    """质量相关默认值"""

    DEFAULT: Final[int] = 85
    MIN_QUALITY: Final[int] = 1
    MAX_QUALITY: Final[int] = 100


class ValidationLimits:
    """验证相关限制"""

    # 尺寸上限
    MAX_DIMENSION: Final[int] = 50000


class StageProgress:
    """单文件处理阶段对应的进度值"""

    DECODED: Final[int] = 40
    RESIZED: Final[int] = 70
    ENCODED: Final[int] = 100


def get_format_alias(format_str: str) -> str:
    """获取格式的标准名称"""
    format_lower = format_str.strip().lower()
    return ImageFormats.ALIASES.get(format_lower, format_lower)


def supports_transparency(format_str: str) -> bool:
    """检查格式是否支持透明度"""
    return OutputFormat(get_format_alias(format_str)).pil_format in (
        ImageFormats.TRANSPARENCY_FORMATS
    )
