#!/usr/bin/env python3
"""图像批量转换演示脚本。

展示 py_image_convert_mcp 库的核心功能，包括：
- 提交文件并查看被拒绝的文件
- 带进度回调的批量转换
- 单个文件失败不影响其他文件
- 运行开始后修改设置
- 把结果写出到目录
"""

import asyncio
import io
from pathlib import Path

from PIL import Image, ImageDraw

from py_image_convert_mcp import (
    BatchResult,
    DirectoryDelivery,
    ImageConverter,
    RawFile,
)
from py_image_convert_mcp.mcp_server import convert_paths
from py_image_convert_mcp.models.results import BatchProgressEvent


def get_output_dir(subdir: str = "") -> Path:
    """获取输出目录 - 使用项目的 tmp 目录"""
    project_root = Path(__file__).parent.parent
    output_dir = project_root / "tmp" / "examples"
    if subdir:
        output_dir = output_dir / subdir
    output_dir.mkdir(parents=True, exist_ok=True)
    return output_dir


def create_sample(name: str, size: tuple[int, int], fmt: str) -> RawFile:
    """生成一张带渐变条纹的示例图片"""
    mode = "RGBA" if fmt == "PNG" else "RGB"
    img = Image.new(mode, size, color=(255, 255, 255, 0) if mode == "RGBA" else "white")
    draw = ImageDraw.Draw(img)
    for i in range(0, size[0], 40):
        shade = (i * 255 // max(size[0], 1), 120, 200)
        draw.rectangle([i, 0, i + 20, size[1]], fill=shade)

    buffer = io.BytesIO()
    img.save(buffer, fmt)
    return RawFile.from_bytes(name, buffer.getvalue())


def print_result(result: BatchResult) -> None:
    for f in result.files:
        match f.status.value:
            case "complete":
                w, h = f.output_dimensions or (0, 0)
                print(f"  ✅ {f.name} -> {f.output_name} ({w}x{h}, {f.output_size} 字节)")
            case "error":
                print(f"  ❌ {f.name}: {f.error_reason}")
            case _:
                print(f"  ⏸️ {f.name}: {f.status.value}")
    print(f"  📊 {result.get_summary()}")


def demo_batch_conversion():
    """批量转换演示"""
    print("=== 批量转换演示 ===")

    with ImageConverter() as converter:
        intake = converter.add_files(
            [
                create_sample("photo.JPG", (3200, 2400), "JPEG"),
                RawFile.from_bytes("broken.png", b"\x89PNG\r\n\x1a\nbroken"),
                create_sample("logo.png", (640, 640), "PNG"),
                RawFile(name="notes.txt", size=5, mime_type="text/plain", data=b"hello"),
            ]
        )
        for rejection in intake.rejected:
            print(f"  🚫 {rejection.filename}: {rejection.reason}")

        def on_progress(event: BatchProgressEvent) -> None:
            print(
                f"  [{event.completed_files}/{event.total_files}] "
                f"{event.file.name} -> {event.file.status.value} ({event.overall_progress}%)"
            )

        result = converter.convert_sync(on_progress=on_progress)
        print_result(result)

        written = DirectoryDelivery(get_output_dir("batch")).deliver(result.deliverables())
        print(f"  📁 写出 {len(written)} 个文件到 {get_output_dir('batch')}")


def demo_settings_snapshot():
    """运行开始后修改设置不影响当前运行"""
    print("\n=== 设置快照演示 ===")

    with ImageConverter() as converter:
        converter.update_settings(format="jpeg", quality=70, max_width=800)
        converter.add_files([create_sample("banner.png", (2000, 500), "PNG")])

        run = converter.start()
        converter.update_settings(format="png")
        result = asyncio.run(run.collect())

        print(f"  当前工作设置: {converter.settings.format.value}")
        print_result(result)


def demo_mcp_tool():
    """直接调用 MCP 工具使用的转换函数"""
    print("\n=== MCP 工具演示 ===")

    source_dir = get_output_dir("mcp_source")
    sample = create_sample("scan.jpg", (2500, 3500), "JPEG")
    (source_dir / sample.name).write_bytes(sample.data)

    response = asyncio.run(
        convert_paths(
            str(source_dir),
            str(get_output_dir("mcp_output")),
            format="webp",
            max_width=1200,
            max_height=1200,
            overwrite=True,
        )
    )
    print(f"  {response.get('summary', response.get('error'))}")
    for path in response.get("written", []):
        print(f"  📄 {path}")


def main():
    """主函数"""
    print("🖼️  图像批量转换演示")
    print("=" * 50)

    try:
        demo_batch_conversion()
        demo_settings_snapshot()
        demo_mcp_tool()

        print("\n✅ 所有演示完成！")

    except Exception as e:
        print(f"\n❌ 演示过程中出现错误: {e}")
        raise


if __name__ == "__main__":
    main()
