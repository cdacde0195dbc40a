"""统一配置管理模块。

提供应用程序的全局配置管理，包括默认值、环境变量支持等。
"""

import os
from dataclasses import dataclass


@dataclass(frozen=True)
class IntakeDefaults:
    """文件接收相关的默认配置"""

    # 单文件大小上限
    MAX_FILE_SIZE_MB: float = 25.0

    @property
    def max_file_size_bytes(self) -> int:
        return int(self.MAX_FILE_SIZE_MB * 1024 * 1024)


@dataclass(frozen=True)
class ConversionDefaults:
    """转换设置的默认值"""

    FORMAT: str = "webp"
    QUALITY: int = 85
    MAX_WIDTH: int = 1920
    MAX_HEIGHT: int | None = None  # 默认只限制宽度
    PRESERVE_METADATA: bool = False

    def as_settings_dict(self) -> dict[str, object]:
        return {
            "format": self.FORMAT,
            "quality": self.QUALITY,
            "max_width": self.MAX_WIDTH,
            "max_height": self.MAX_HEIGHT,
            "preserve_metadata": self.PRESERVE_METADATA,
        }


@dataclass(frozen=True)
class LoggingDefaults:
    """日志相关的默认配置"""

    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class AppConfig:
    """应用程序配置管理器

    支持环境变量覆盖默认配置
    """

    def __init__(self):
        self.intake = IntakeDefaults()
        self.conversion = ConversionDefaults()
        self.logging = LoggingDefaults()

        self._load_from_env()

    def _load_from_env(self):
        """从环境变量加载配置"""
        if max_size := os.getenv("IMGCONV_MAX_FILE_SIZE_MB"):
            object.__setattr__(self.intake, "MAX_FILE_SIZE_MB", float(max_size))

        if fmt := os.getenv("IMGCONV_FORMAT"):
            object.__setattr__(self.conversion, "FORMAT", fmt.lower())

        if quality := os.getenv("IMGCONV_QUALITY"):
            object.__setattr__(self.conversion, "QUALITY", int(quality))

        if max_width := os.getenv("IMGCONV_MAX_WIDTH"):
            object.__setattr__(self.conversion, "MAX_WIDTH", int(max_width))

        if max_height := os.getenv("IMGCONV_MAX_HEIGHT"):
            object.__setattr__(self.conversion, "MAX_HEIGHT", int(max_height))

        if preserve := os.getenv("IMGCONV_PRESERVE_METADATA"):
            object.__setattr__(
                self.conversion,
                "PRESERVE_METADATA",
                preserve.lower() in ("true", "1", "yes"),
            )

        if log_level := os.getenv("IMGCONV_LOG_LEVEL"):
            object.__setattr__(self.logging, "LOG_LEVEL", log_level.upper())


# 全局配置实例
config = AppConfig()


def get_config() -> AppConfig:
    """获取全局配置实例"""
    return config


def reset_config():
    """重置配置（主要用于测试）"""
    global config
    config = AppConfig()
