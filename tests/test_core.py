"""核心功能测试。

测试尺寸计算、格式处理、单图像转换和命名规则。
"""

import io

import pytest
from PIL import Image

from py_image_convert_mcp.core.formats import FormatProcessor, get_save_parameters
from py_image_convert_mcp.core.intake import FileIntake
from py_image_convert_mcp.core.transformer import ImageTransformer, compute_target_size
from py_image_convert_mcp.exceptions import DecodeError, EncodeError
from py_image_convert_mcp.models.constants import OutputFormat, StageProgress
from py_image_convert_mcp.models.settings import ConversionSettings
from py_image_convert_mcp.models.tracked_file import RawFile
from py_image_convert_mcp.utils.naming_helpers import FileNamingStrategy, PathResolver
from tests.conftest import make_corrupt, make_image_bytes, make_raw


def _track(intake: FileIntake, raw: RawFile):
    result = intake.submit([raw])
    assert not result.rejected
    return result.accepted[0]


class TestComputeTargetSize:
    """目标尺寸计算测试"""

    def test_within_bounds_unchanged(self):
        assert compute_target_size(800, 600, 1920) == (800, 600)
        assert compute_target_size(800, 600, 800, 600) == (800, 600)

    def test_width_only_bound(self):
        """未设置最大高度时只按宽度缩放"""
        assert compute_target_size(1600, 1200, 800) == (800, 600)
        assert compute_target_size(1000, 5000, 800) == (800, 4000)

    def test_both_bounds_use_smaller_scale(self):
        assert compute_target_size(1000, 3000, 800, 1000) == (333, 1000)
        assert compute_target_size(4000, 1000, 800, 600) == (800, 200)

    def test_never_upscales(self):
        assert compute_target_size(10, 10, 1920, 1080) == (10, 10)

    def test_extreme_aspect_keeps_one_pixel(self):
        assert compute_target_size(10000, 1, 100) == (100, 1)

    def test_result_always_within_bounds(self):
        """缩放后的尺寸永远不超过边界"""
        for width, height in [(1921, 1081), (3333, 7), (7, 3333), (2000, 2000)]:
            new_width, new_height = compute_target_size(width, height, 1920, 1080)
            assert 1 <= new_width <= 1920
            assert 1 <= new_height <= 1080

    def test_invalid_dimensions(self):
        with pytest.raises(ValueError):
            compute_target_size(0, 100, 800)


class TestFormatProcessor:
    """格式处理器测试"""

    @pytest.fixture
    def processor(self):
        return FormatProcessor()

    def test_prepare_for_jpeg_flattens_alpha(self, processor):
        """JPEG 没有透明通道，透明像素合成到白色背景"""
        img = Image.new("RGBA", (10, 10), (0, 0, 0, 0))
        prepared = processor.prepare_for_format(img, OutputFormat.JPEG)

        assert prepared.mode == "RGB"
        assert prepared.getpixel((0, 0)) == (255, 255, 255)

    def test_prepare_for_jpeg_palette_transparency(self, processor, monkeypatch):
        """带透明色的调色板图像合成到白色背景，中间图像全部关闭"""
        img = Image.new("P", (10, 10), 0)
        img.putpalette([0, 0, 0, 255, 0, 0] + [0] * 762)
        img.paste(1, (5, 0, 10, 10))
        img.info["transparency"] = 0

        closed: list[str] = []
        original_close = Image.Image.close

        def tracking_close(self):
            closed.append(self.mode)
            original_close(self)

        monkeypatch.setattr(Image.Image, "close", tracking_close)
        prepared = processor.prepare_for_format(img, OutputFormat.JPEG)

        assert prepared.mode == "RGB"
        assert prepared.getpixel((0, 0)) == (255, 255, 255)
        assert prepared.getpixel((9, 9)) == (255, 0, 0)
        assert "RGBA" in closed
        assert "L" in closed
        assert img.mode == "P"

    def test_prepare_for_png_keeps_alpha(self, processor):
        img = Image.new("RGBA", (10, 10), (0, 0, 0, 0))
        prepared = processor.prepare_for_format(img, OutputFormat.PNG)

        assert prepared.mode == "RGBA"

    def test_prepare_for_webp(self, processor):
        gray = Image.new("L", (10, 10))
        assert processor.prepare_for_format(gray, OutputFormat.WEBP).mode == "RGB"

        rgba = Image.new("RGBA", (10, 10))
        assert processor.prepare_for_format(rgba, OutputFormat.WEBP) is rgba

    def test_save_parameters(self):
        jpeg = get_save_parameters(ConversionSettings(format="jpg", quality=70))
        assert jpeg["format"] == "JPEG"
        assert jpeg["quality"] == 70

        png = get_save_parameters(ConversionSettings(format="png", quality=10))
        assert png["format"] == "PNG"
        assert "quality" not in png

        webp = get_save_parameters(ConversionSettings(format="webp", quality=50))
        assert webp["quality"] == 50
        assert webp["alpha_quality"] == 50

    def test_metadata_only_when_preserved(self):
        settings = ConversionSettings(format="jpeg")
        params = get_save_parameters(settings, exif=b"exif", icc_profile=b"icc")
        assert "exif" not in params
        assert "icc_profile" not in params

        kept = get_save_parameters(
            settings.with_changes(preserve_metadata=True), exif=b"exif", icc_profile=b"icc"
        )
        assert kept["exif"] == b"exif"
        assert kept["icc_profile"] == b"icc"


class TestImageTransformer:
    """单图像转换测试"""

    @pytest.fixture
    def transformer(self):
        return ImageTransformer()

    def test_resize_and_convert_to_webp(self, transformer, intake):
        """1600x1200 的 JPEG 限制在 800x600 内，输出 800x600 的 WebP"""
        tracked = _track(intake, make_raw("photo.JPG", (1600, 1200)))
        settings = ConversionSettings(
            format="webp", quality=80, max_width=800, max_height=600
        )

        result = transformer.transform(tracked, settings)

        assert result.output_name == "photo.webp"
        assert result.dimensions == (800, 600)
        assert result.was_resized
        with Image.open(io.BytesIO(result.data)) as img:
            assert img.format == "WEBP"
            assert img.size == (800, 600)

    def test_small_image_not_resized(self, transformer, intake):
        tracked = _track(intake, make_raw("small.png", (800, 600)))
        settings = ConversionSettings(format="jpeg", max_width=1920)

        result = transformer.transform(tracked, settings)

        assert result.dimensions == (800, 600)
        assert not result.was_resized
        assert result.output_name == "small.jpeg"

    def test_reports_stage_progress(self, transformer, intake):
        tracked = _track(intake, make_raw("a.png"))
        reported: list[int] = []

        transformer.transform(tracked, ConversionSettings(), reported.append)

        assert reported == [
            StageProgress.DECODED,
            StageProgress.RESIZED,
            StageProgress.ENCODED,
        ]

    def test_corrupt_input_raises_decode_error(self, transformer, intake):
        tracked = _track(intake, make_corrupt())

        with pytest.raises(DecodeError) as exc_info:
            transformer.transform(tracked, ConversionSettings())

        assert exc_info.value.kind == "DecodeError"

    def test_revoked_handle_raises_decode_error(self, transformer, intake):
        tracked = _track(intake, make_raw("gone.png"))
        intake.remove(tracked.id)

        with pytest.raises(DecodeError):
            transformer.transform(tracked, ConversionSettings())

    def test_resize_failure_raises_encode_error(self, transformer, intake, monkeypatch):
        """重采样中的 Pillow 异常归入 EncodeError"""
        tracked = _track(intake, make_raw("wide.png", (400, 200)))

        def failing_resize(self, *args, **kwargs):
            raise OSError("broken resampler")

        monkeypatch.setattr(Image.Image, "resize", failing_resize)

        with pytest.raises(EncodeError) as exc_info:
            transformer.transform(tracked, ConversionSettings(max_width=100))

        assert exc_info.value.kind == "EncodeError"
        assert "缩放" in str(exc_info.value)

    def test_png_ignores_quality(self, transformer, intake):
        """PNG 是无损格式，质量参数不影响输出"""
        tracked = _track(intake, make_raw("a.jpg", (200, 150)))

        low = transformer.transform(tracked, ConversionSettings(format="png", quality=10))
        high = transformer.transform(tracked, ConversionSettings(format="png", quality=95))

        assert low.data == high.data

    def test_jpeg_output_flattens_transparency(self, transformer, intake):
        data = make_image_bytes((40, 40), "PNG", mode="RGBA", color=(0, 0, 0, 0))
        tracked = _track(intake, RawFile.from_bytes("logo.png", data))

        result = transformer.transform(
            tracked, ConversionSettings(format="jpeg", quality=95)
        )

        with Image.open(io.BytesIO(result.data)) as img:
            assert img.mode == "RGB"
            assert all(channel >= 245 for channel in img.getpixel((0, 0)))

    def test_gif_uses_first_frame(self, transformer, intake):
        tracked = _track(intake, make_raw("anim.gif", (60, 30), mode="P", color=1))

        result = transformer.transform(tracked, ConversionSettings(format="png"))

        assert result.dimensions == (60, 30)
        assert result.output_name == "anim.png"

    def test_exif_orientation_applied(self, transformer, intake):
        """按 EXIF 方向旋转后再计算尺寸"""
        exif = Image.Exif()
        exif[0x0112] = 6  # 顺时针旋转 90 度
        data = make_image_bytes((100, 50), "JPEG", exif=exif.tobytes())
        tracked = _track(intake, RawFile.from_bytes("rotated.jpg", data))

        result = transformer.transform(tracked, ConversionSettings(format="png"))

        assert result.dimensions == (50, 100)

    def test_preserve_metadata(self, transformer, intake):
        exif = Image.Exif()
        exif[0x010F] = "TestCam"
        data = make_image_bytes((100, 50), "JPEG", exif=exif.tobytes())
        tracked = _track(intake, RawFile.from_bytes("camera.jpg", data))

        stripped = transformer.transform(tracked, ConversionSettings(format="jpeg"))
        kept = transformer.transform(
            tracked, ConversionSettings(format="jpeg", preserve_metadata=True)
        )

        with Image.open(io.BytesIO(stripped.data)) as img:
            assert 0x010F not in img.getexif()
        with Image.open(io.BytesIO(kept.data)) as img:
            assert img.getexif().get(0x010F) == "TestCam"

    def test_transform_is_repeatable(self, transformer, intake):
        """同一文件同一设置重复转换，输出尺寸一致"""
        tracked = _track(intake, make_raw("same.png", (3000, 2000)))
        settings = ConversionSettings(max_width=1000)

        first = transformer.transform(tracked, settings)
        second = transformer.transform(tracked, settings)

        assert first.dimensions == second.dimensions == (1000, 667)


class TestNaming:
    """输出命名测试"""

    def test_generate_output_name(self):
        assert (
            FileNamingStrategy.generate_output_name("photo.JPG", OutputFormat.WEBP)
            == "photo.webp"
        )
        assert (
            FileNamingStrategy.generate_output_name("archive.tar.png", OutputFormat.JPEG)
            == "archive.jpeg"
        )
        assert (
            FileNamingStrategy.generate_output_name("dir/name.png", OutputFormat.PNG)
            == "name.png"
        )

    def test_hidden_file_gets_default_stem(self):
        assert (
            FileNamingStrategy.generate_output_name(".png", OutputFormat.WEBP)
            == "image.webp"
        )

    def test_ensure_unique_path(self, temp_dir):
        target = temp_dir / "photo.webp"
        assert PathResolver.ensure_unique_path(target) == target

        target.write_bytes(b"x")
        assert PathResolver.ensure_unique_path(target) == temp_dir / "photo_1.webp"
        assert (
            PathResolver.ensure_unique_path(target, {temp_dir / "photo_1.webp"})
            == temp_dir / "photo_2.webp"
        )
