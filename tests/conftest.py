"""测试配置文件。

提供测试所需的fixtures和内存图片构造函数。
"""

import io
import tempfile
from pathlib import Path

import pytest
from PIL import Image, ImageDraw

from py_image_convert_mcp.core.intake import FileIntake
from py_image_convert_mcp.models.tracked_file import RawFile
from py_image_convert_mcp.utils.cleanup_helpers import PreviewRegistry


def make_image_bytes(
    size: tuple[int, int] = (120, 80),
    fmt: str = "PNG",
    mode: str = "RGB",
    color: tuple[int, ...] | str = "white",
    **save_kwargs,
) -> bytes:
    """生成带少量图形的测试图片字节"""
    img = Image.new(mode, size, color=color)
    if mode in ("RGB", "RGBA"):
        draw = ImageDraw.Draw(img)
        w, h = size
        fill = (200, 40, 40, 255) if mode == "RGBA" else (200, 40, 40)
        draw.rectangle([w // 4, h // 4, w // 2, h // 2], fill=fill)
    buffer = io.BytesIO()
    img.save(buffer, fmt, **save_kwargs)
    return buffer.getvalue()


def make_raw(name: str, size: tuple[int, int] = (120, 80), **kwargs) -> RawFile:
    """按文件扩展名生成对应格式的原始文件"""
    fmt = {
        ".jpg": "JPEG",
        ".jpeg": "JPEG",
        ".png": "PNG",
        ".gif": "GIF",
        ".webp": "WEBP",
    }[Path(name).suffix.lower()]
    return RawFile.from_bytes(name, make_image_bytes(size, fmt, **kwargs))


def make_corrupt(name: str = "broken.png") -> RawFile:
    """类型可接受但内容无法解码的文件"""
    return RawFile.from_bytes(name, b"\x89PNG\r\n\x1a\n not really a png")


@pytest.fixture
def temp_dir():
    """临时目录fixture"""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


@pytest.fixture
def registry() -> PreviewRegistry:
    """独立的预览句柄登记表，避免测试之间互相影响"""
    return PreviewRegistry()


@pytest.fixture
def intake(registry: PreviewRegistry):
    """使用独立登记表的文件接收器"""
    with FileIntake(registry=registry) as file_intake:
        yield file_intake


@pytest.fixture
def image_dir(temp_dir: Path) -> Path:
    """包含若干图片和一个非图片文件的目录"""
    source = temp_dir / "source"
    (source / "nested").mkdir(parents=True)
    (source / "a.png").write_bytes(make_image_bytes((300, 200), "PNG"))
    (source / "b.jpg").write_bytes(make_image_bytes((2400, 1200), "JPEG"))
    (source / "nested" / "c.webp").write_bytes(make_image_bytes((64, 64), "WEBP"))
    (source / "notes.txt").write_text("not an image")
    return source
