"""格式处理器模块。

为目标格式准备色彩模式，并生成各格式的编码参数。
"""

from typing import Any

from PIL import Image

from ..models.constants import OutputFormat
from ..models.settings import ConversionSettings


class FormatProcessor:
    """格式处理器"""

    def __init__(self, background: tuple[int, int, int] = (255, 255, 255)) -> None:
        """初始化格式处理器

        Args:
            background: 不支持透明度的格式合成透明像素时使用的背景色
        """
        self.background = background

    def prepare_for_format(
        self, img: Image.Image, target_format: OutputFormat
    ) -> Image.Image:
        """为目标格式准备图片

        Returns:
            Image.Image: 处理后的图片对象，可能就是传入的对象
        """
        match target_format:
            case OutputFormat.JPEG:
                return self._prepare_for_jpeg(img)
            case OutputFormat.PNG:
                return self._prepare_for_png(img)
            case OutputFormat.WEBP:
                return self._prepare_for_webp(img)
            case _:
                return img

    def _prepare_for_jpeg(self, img: Image.Image) -> Image.Image:
        """JPEG不支持透明度，透明像素合成到背景色上"""
        if img.mode == "P" and "transparency" not in img.info:
            return img.convert("RGB")

        if img.mode in ("RGBA", "LA", "PA", "P"):
            return self._flatten(img)

        if img.mode != "RGB":
            # CMYK、灰度、二值以及16位模式
            return img.convert("RGB")

        return img

    def _flatten(self, img: Image.Image) -> Image.Image:
        """合成到背景色上，中间生成的 RGBA 图像和 alpha 通道都会关闭"""
        rgba = img if img.mode == "RGBA" else img.convert("RGBA")
        try:
            flattened = Image.new("RGB", rgba.size, self.background)
            alpha = rgba.getchannel("A")
            try:
                flattened.paste(rgba, mask=alpha)
            finally:
                alpha.close()
        finally:
            if rgba is not img:
                rgba.close()
        return flattened

    def _prepare_for_png(self, img: Image.Image) -> Image.Image:
        """PNG支持大多数模式，仅转换编码器不接受的模式"""
        if img.mode == "P":
            if "transparency" in img.info:
                return img.convert("RGBA")
            return img.convert("RGB")

        if img.mode in ("CMYK", "YCbCr", "LAB", "HSV"):
            return img.convert("RGB")

        if img.mode == "PA":
            return img.convert("RGBA")

        return img

    def _prepare_for_webp(self, img: Image.Image) -> Image.Image:
        """WebP只支持RGB和RGBA"""
        if img.mode in ("RGB", "RGBA"):
            return img

        has_alpha = img.mode in ("LA", "PA") or (
            img.mode == "P" and "transparency" in img.info
        )
        return img.convert("RGBA" if has_alpha else "RGB")


def get_save_parameters(
    settings: ConversionSettings,
    exif: bytes | None = None,
    icc_profile: bytes | None = None,
) -> dict[str, Any]:
    """获取编码参数

    Args:
        settings: 转换设置快照
        exif: 需要保留的 EXIF 数据（仅在 preserve_metadata 时传入）
        icc_profile: 需要保留的 ICC 配置文件

    Returns:
        dict: 传给 Image.save 的参数（含 format）
    """
    target = settings.format
    params: dict[str, Any] = {"format": target.pil_format}

    match target:
        case OutputFormat.JPEG:
            params.update(get_jpeg_params(settings.quality))
        case OutputFormat.PNG:
            params.update(get_png_params())
        case OutputFormat.WEBP:
            params.update(get_webp_params(settings.quality))

    if settings.preserve_metadata:
        if exif:
            params["exif"] = exif
        if icc_profile:
            params["icc_profile"] = icc_profile

    return params


def get_jpeg_params(quality: int) -> dict[str, Any]:
    """获取JPEG编码参数

    quality 直接对应 1-100 的质量系数；低于 85 时使用 4:2:0 色度子采样。
    """
    return {
        "quality": quality,
        "optimize": True,
        "progressive": False,
        "subsampling": 2 if quality < 85 else 1,
    }


def get_png_params() -> dict[str, Any]:
    """获取PNG编码参数，PNG为无损格式，质量参数被忽略"""
    return {
        "optimize": True,
    }


def get_webp_params(quality: int) -> dict[str, Any]:
    """获取WebP编码参数

    - quality 控制有损编码质量
    - method: 0=快速，6=最慢但最佳压缩
    - alpha_quality 高质量时保持透明通道无损
    """
    return {
        "quality": quality,
        "method": 4,
        "alpha_quality": 100 if quality >= 85 else quality,
    }
