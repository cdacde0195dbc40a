"""转换配置模型。

定义一次批量转换使用的输出设置快照。
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .constants import OutputFormat, QualityDefaults, ValidationLimits, get_format_alias


class ConversionSettings(BaseModel):
    """转换设置快照

    不可变对象：批量运行开始时捕获一次，之后对工作设置的修改不会影响正在进行的运行。
    """

    model_config = ConfigDict(frozen=True)

    format: OutputFormat = Field(OutputFormat.WEBP, description="目标格式")
    quality: int = Field(
        QualityDefaults.DEFAULT,
        ge=QualityDefaults.MIN_QUALITY,
        le=QualityDefaults.MAX_QUALITY,
        description="有损编码质量 1-100",
    )
    max_width: int = Field(
        1920, gt=0, le=ValidationLimits.MAX_DIMENSION, description="最大宽度"
    )
    max_height: int | None = Field(
        None,
        gt=0,
        le=ValidationLimits.MAX_DIMENSION,
        description="最大高度，None 表示不限制高度",
    )
    preserve_metadata: bool = Field(False, description="保留 EXIF/ICC 元数据")

    @field_validator("format", mode="before")
    @classmethod
    def normalize_format(cls, v: object) -> object:
        if isinstance(v, str) and not isinstance(v, OutputFormat):
            return get_format_alias(v)
        return v

    @property
    def effective_quality(self) -> int | None:
        """编码器实际使用的质量值，无损格式返回 None"""
        if self.format.is_lossless:
            return None
        return self.quality

    def with_changes(self, **changes: object) -> "ConversionSettings":
        """返回应用修改后的新设置（重新验证）"""
        return ConversionSettings.model_validate({**self.model_dump(), **changes})
