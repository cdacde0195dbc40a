"""图像批量转换 MCP 服务器。

把本地图像文件或目录转换为 JPEG、PNG 或 WebP，并写出到输出目录。
"""

from pathlib import Path
from typing import Any

from fastmcp import FastMCP

from .config import get_config
from .converter import ImageConverter, build_settings
from .delivery import DirectoryDelivery
from .exceptions import ConversionError, ValidationError
from .models.constants import (
    ImageFormats,
    OutputFormat,
    QualityDefaults,
    ValidationLimits,
    supports_transparency,
)
from .models.results import BatchResult, IntakeResult
from .utils.logging_helpers import configure_logging, get_logger
from .utils.message_formatter import MessageFormatter


# MCP 服务器响应类型定义
MCPConversionResponse = dict[str, Any]
MCPOptionsResponse = dict[str, Any]


class MCPResponseBuilder:
    """MCP 服务器响应构建器，专门用于构建符合 MCP 协议的响应格式。"""

    @staticmethod
    def error(
        message: str,
        error_type: str = "general",
        details: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """构建错误结果。

        Args:
            message: 错误消息
            error_type: 错误类型
            details: 额外的错误详情

        Returns:
            dict: 标准化的错误响应
        """
        result = {
            "success": False,
            "error": message,
            "error_type": error_type,
        }

        if details:
            result["details"] = details

        return result

    @staticmethod
    def validation_error(message: str, field: str | None = None) -> dict[str, Any]:
        details = {"field": field} if field else None
        return MCPResponseBuilder.error(
            message=message,
            error_type="validation",
            details=details,
        )

    @staticmethod
    def file_error(message: str, file_path: str | None = None) -> dict[str, Any]:
        details = {"file_path": file_path} if file_path else None
        return MCPResponseBuilder.error(
            message=message,
            error_type="file",
            details=details,
        )

    @staticmethod
    def processing_error(message: str, operation: str | None = None) -> dict[str, Any]:
        details = {"operation": operation} if operation else None
        return MCPResponseBuilder.error(
            message=message,
            error_type="processing",
            details=details,
        )

    @staticmethod
    def rejections(intake: IntakeResult) -> list[dict[str, str]]:
        """接收阶段被拒绝的文件"""
        return [
            {"name": r.filename, "code": r.code.value, "reason": r.reason}
            for r in intake.rejected
        ]

    @staticmethod
    def conversion_result(
        intake: IntakeResult, result: BatchResult, written: list[Path]
    ) -> dict[str, Any]:
        """构建批量转换结果：逐文件报告状态，拒绝的文件单独列出"""
        return {
            "success": result.get_failure_count() == 0 and not intake.has_rejections,
            "summary": result.get_summary(),
            "total_files": result.total_files,
            "successful_files": result.get_success_count(),
            "failed_files": result.get_failure_count(),
            "total_size_saved": result.get_total_size_saved(),
            "files": [
                {
                    "name": f.name,
                    "status": f.status.value,
                    "original_size": f.size,
                    "output_name": f.output_name,
                    "output_size": f.output_size if f.output_bytes is not None else None,
                    "output_dimensions": list(f.output_dimensions)
                    if f.output_dimensions
                    else None,
                    "error": f.error_reason,
                }
                for f in result.files
            ],
            "rejected": MCPResponseBuilder.rejections(intake),
            "written": [str(p) for p in written],
        }


logger = get_logger()

# 创建MCP应用
mcp = FastMCP("图像批量转换服务")


async def convert_paths(
    input_path: list[str] | str,
    output_dir: str,
    format: str = "webp",
    quality: int = QualityDefaults.DEFAULT,
    max_width: int = 1920,
    max_height: int | None = None,
    preserve_metadata: bool = False,
    recursive: bool = True,
    overwrite: bool = False,
) -> MCPConversionResponse:
    """转换磁盘上的图像并写出结果，返回 MCP 响应字典"""
    paths = [input_path] if isinstance(input_path, str) else list(input_path)
    if not paths:
        return MCPResponseBuilder.validation_error(
            MessageFormatter.validation_error("input_path", input_path, "至少需要一个路径"),
            "input_path",
        )

    missing = [p for p in paths if not Path(p).exists()]
    if missing:
        return MCPResponseBuilder.file_error(
            MessageFormatter.file_not_found(missing[0]), missing[0]
        )

    try:
        settings = build_settings(
            format=format,
            quality=quality,
            max_width=max_width,
            max_height=max_height,
            preserve_metadata=preserve_metadata,
        )
    except ValidationError as e:
        return MCPResponseBuilder.validation_error(str(e))

    try:
        with ImageConverter(settings) as converter:
            intake = converter.add_paths(paths, recursive=recursive)
            if not intake.accepted:
                response = MCPResponseBuilder.file_error("没有可转换的图像文件")
                response["rejected"] = MCPResponseBuilder.rejections(intake)
                return response

            result = await converter.convert()
            written = DirectoryDelivery(output_dir, overwrite=overwrite).deliver(
                result.deliverables()
            )
            return MCPResponseBuilder.conversion_result(intake, result, written)

    except ConversionError as e:
        target = e.file_name or output_dir
        logger.error(MessageFormatter.operation_failed("批量转换", target, e))
        return MCPResponseBuilder.processing_error(str(e), "批量转换")
    except OSError as e:
        return MCPResponseBuilder.file_error(
            MessageFormatter.operation_failed("写出结果", output_dir, e), output_dir
        )


# ============================================================================
# 核心工具
# ============================================================================


@mcp.tool()
async def convert_images(
    input_path: list[str] | str,
    output_dir: str,
    format: str = "webp",
    quality: int = QualityDefaults.DEFAULT,
    max_width: int = 1920,
    max_height: int | None = None,
    preserve_metadata: bool = False,
    recursive: bool = True,
    overwrite: bool = False,
) -> MCPConversionResponse:
    """批量转换图像格式并限制尺寸

    逐个处理文件：单个文件失败不会影响其他文件，结果中逐文件报告状态。
    超过大小上限或类型不支持的文件会在接收阶段被拒绝并单独列出。

    Args:
        input_path: 输入路径，可以是单个文件、目录或路径列表
        output_dir: 输出目录
        format: 目标格式 jpeg / png / webp（jpg 视为 jpeg）
        quality: 有损编码质量 1-100，PNG 忽略此参数
        max_width: 最大宽度（像素），只缩小不放大
        max_height: 最大高度（像素），默认不限制
        preserve_metadata: 是否保留 EXIF/ICC 元数据
        recursive: 目录是否递归子目录
        overwrite: 是否覆盖输出目录中的同名文件

    Returns:
        dict: 逐文件状态、拒绝列表、写出的路径和摘要

    使用场景:
        convert_images("photos/", "out/")
        convert_images(["a.png", "b.jpg"], "out/", format="jpeg", quality=70)
        convert_images("banner.png", "out/", max_width=800, max_height=600)
    """
    return await convert_paths(
        input_path,
        output_dir,
        format=format,
        quality=quality,
        max_width=max_width,
        max_height=max_height,
        preserve_metadata=preserve_metadata,
        recursive=recursive,
        overwrite=overwrite,
    )


def describe_options() -> MCPOptionsResponse:
    """可用的格式、默认值和限制"""
    defaults = get_config().conversion
    return {
        "success": True,
        "formats": [
            {
                "name": fmt.value,
                "extension": f".{fmt.extension}",
                "lossless": fmt.is_lossless,
                "transparency": supports_transparency(fmt.value),
            }
            for fmt in OutputFormat
        ],
        "accepted_inputs": sorted(ImageFormats.accepted_extensions()),
        "defaults": defaults.as_settings_dict(),
        "limits": {
            "quality": [QualityDefaults.MIN_QUALITY, QualityDefaults.MAX_QUALITY],
            "max_dimension": ValidationLimits.MAX_DIMENSION,
            "max_file_size": get_config().intake.max_file_size_bytes,
        },
    }


@mcp.tool()
def get_conversion_options() -> MCPOptionsResponse:
    """获取支持的输出格式、默认设置和各项限制。"""
    return describe_options()


# ============================================================================
# 应用入口
# ============================================================================


def main() -> None:
    """启动 MCP 服务器"""
    logging_config = get_config().logging
    configure_logging(logging_config.LOG_LEVEL, logging_config.LOG_FORMAT)
    logger.info("启动图像批量转换 MCP 服务器")
    mcp.run()


if __name__ == "__main__":
    main()
