"""单图像转换引擎模块。

解码 → 计算目标尺寸 → 重采样 → 编码。所有临时图像在任何路径上都会被关闭。
"""

import io
from collections.abc import Callable
from contextlib import ExitStack

from PIL import Image, ImageOps

from ..exceptions import DecodeError, EncodeError, translate_errors
from ..models.constants import StageProgress
from ..models.results import EncodedImage
from ..models.settings import ConversionSettings
from ..models.tracked_file import TrackedFile
from ..utils.logging_helpers import get_logger
from ..utils.naming_helpers import FileNamingStrategy
from .formats import FormatProcessor, get_save_parameters


logger = get_logger()

ProgressCallback = Callable[[int], None]


def compute_target_size(
    width: int, height: int, max_width: int, max_height: int | None = None
) -> tuple[int, int]:
    """计算保持宽高比的目标尺寸

    在边界内时尺寸不变；超出时按最小缩放比缩小，永不放大。

    Args:
        width: 原始宽度
        height: 原始高度
        max_width: 最大宽度
        max_height: 最大高度，None 表示只限制宽度

    Returns:
        tuple: (新宽度, 新高度)
    """
    if width <= 0 or height <= 0:
        raise ValueError(f"无效的图像尺寸: {width}x{height}")

    fits_width = width <= max_width
    fits_height = max_height is None or height <= max_height
    if fits_width and fits_height:
        return width, height

    scale = max_width / width
    if max_height is not None:
        scale = min(scale, max_height / height)
    scale = min(scale, 1.0)

    new_width = max(1, min(max_width, round(width * scale)))
    new_height = max(1, round(height * scale))
    if max_height is not None:
        new_height = min(max_height, new_height)

    return new_width, new_height


class ImageTransformer:
    """单图像转换器

    无状态，可在多次运行间复用。
    """

    def __init__(self, format_processor: FormatProcessor | None = None):
        self.format_processor = format_processor or FormatProcessor()

    def transform(
        self,
        file: TrackedFile,
        settings: ConversionSettings,
        on_progress: ProgressCallback | None = None,
    ) -> EncodedImage:
        """转换单个文件

        Args:
            file: 被跟踪的文件，通过其预览句柄读取数据
            settings: 本次运行的设置快照
            on_progress: 阶段进度回调（解码、缩放、编码完成时调用）

        Returns:
            EncodedImage: 编码结果

        Raises:
            DecodeError: 源图像无法解码
            EncodeError: 缩放失败或编码器拒绝生成目标格式
        """
        report = on_progress or (lambda _progress: None)

        with ExitStack() as surfaces:
            source = self._decode(file)
            surfaces.callback(source.close)
            source_size = source.size
            report(StageProgress.DECODED)

            target_size = compute_target_size(
                source.width, source.height, settings.max_width, settings.max_height
            )
            surface = self._rasterize(source, target_size)
            if surface is not source:
                surfaces.callback(surface.close)
            report(StageProgress.RESIZED)

            data = self._encode(surface, settings)
            report(StageProgress.ENCODED)

        encoded = EncodedImage(
            data=data,
            output_name=FileNamingStrategy.generate_output_name(file.name, settings.format),
            format=settings.format,
            width=target_size[0],
            height=target_size[1],
            source_width=source_size[0],
            source_height=source_size[1],
        )
        logger.debug(
            f"{file.name}: {source_size[0]}x{source_size[1]} -> "
            f"{encoded.width}x{encoded.height} {encoded.output_name} "
            f"({encoded.get_size_human()})"
        )
        return encoded

    @translate_errors(DecodeError, "解码")
    def _decode(self, file: TrackedFile) -> Image.Image:
        """解码为像素数据，应用 EXIF 方向，动画取第一帧"""
        stream = file.preview_handle.open()
        with Image.open(stream) as opened:
            opened.seek(0)
            opened.load()
            # 返回脱离源数据流的新图像
            oriented = ImageOps.exif_transpose(opened)
        if oriented.width <= 0 or oriented.height <= 0:
            oriented.close()
            raise DecodeError(f"无效的图像尺寸: {oriented.size}", file.name)
        return oriented

    @translate_errors(EncodeError, "缩放")
    def _rasterize(self, source: Image.Image, size: tuple[int, int]) -> Image.Image:
        """单次整幅重采样到目标尺寸，不裁剪不留边"""
        if source.size == size:
            return source
        return source.resize(size, Image.Resampling.LANCZOS)

    @translate_errors(EncodeError, "编码")
    def _encode(self, surface: Image.Image, settings: ConversionSettings) -> bytes:
        prepared = self.format_processor.prepare_for_format(surface, settings.format)
        try:
            exif, icc_profile = self._extract_metadata(surface, settings)
            params = get_save_parameters(settings, exif, icc_profile)
            buffer = io.BytesIO()
            prepared.save(buffer, **params)
            data = buffer.getvalue()
        finally:
            if prepared is not surface:
                prepared.close()

        if not data:
            raise EncodeError(f"编码器未生成 {settings.format.value} 数据")
        return data

    def _extract_metadata(
        self, surface: Image.Image, settings: ConversionSettings
    ) -> tuple[bytes | None, bytes | None]:
        """需要保留元数据时提取 EXIF 和 ICC"""
        if not settings.preserve_metadata:
            return None, None

        exif = surface.getexif()
        exif_bytes = exif.tobytes() if len(exif) else None
        return exif_bytes, surface.info.get("icc_profile")
