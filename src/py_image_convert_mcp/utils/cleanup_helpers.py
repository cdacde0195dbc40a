"""资源清理工具模块。

提供预览句柄的分配与回收管理。预览句柄是可撤销的短期引用，
在文件进入跟踪集合时分配，并且必须恰好回收一次。
"""

import io
import uuid
from typing import Any

from ..exceptions import PreviewHandleError
from .logging_helpers import get_logger


logger = get_logger()


class PreviewHandle:
    """预览句柄

    持有提交文件的原始字节，可打开为可解码的只读流。回收后不能再使用。
    """

    __slots__ = ("_data", "_registry", "mime_type", "token")

    def __init__(self, registry: "PreviewRegistry", data: bytes, mime_type: str):
        self.token = f"preview:{uuid.uuid4().hex}"
        self.mime_type = mime_type
        self._data: bytes | None = data
        self._registry = registry

    @property
    def revoked(self) -> bool:
        return self._data is None

    @property
    def size(self) -> int:
        return len(self._data) if self._data is not None else 0

    def open(self) -> io.BytesIO:
        """打开句柄数据用于解码"""
        if self._data is None:
            raise PreviewHandleError(f"预览句柄已回收: {self.token}")
        return io.BytesIO(self._data)

    def revoke(self) -> None:
        """回收句柄，重复回收视为缺陷"""
        self._registry.revoke(self)

    def __repr__(self) -> str:
        state = "revoked" if self.revoked else "active"
        return f"<PreviewHandle {self.token} {state}>"


class PreviewRegistry:
    """预览句柄登记表

    记录所有已分配但尚未回收的句柄，便于在拆除时检测泄漏。
    """

    def __init__(self) -> None:
        self._active: dict[str, PreviewHandle] = {}
        self.allocated_count = 0
        self.revoked_count = 0

    def allocate(self, data: bytes, mime_type: str = "") -> PreviewHandle:
        """分配新的预览句柄"""
        handle = PreviewHandle(self, data, mime_type)
        self._active[handle.token] = handle
        self.allocated_count += 1
        logger.debug(f"分配预览句柄: {handle.token}")
        return handle

    def revoke(self, handle: PreviewHandle) -> None:
        """回收句柄"""
        if self._active.pop(handle.token, None) is None:
            raise PreviewHandleError(f"预览句柄重复回收或不属于此登记表: {handle.token}")
        handle._data = None
        self.revoked_count += 1
        logger.debug(f"已回收预览句柄: {handle.token}")

    @property
    def active_count(self) -> int:
        return len(self._active)

    def is_active(self, handle: PreviewHandle) -> bool:
        return handle.token in self._active

    def revoke_all(self) -> int:
        """回收所有仍然存活的句柄，返回回收数量"""
        handles = list(self._active.values())
        for handle in handles:
            self.revoke(handle)
        return len(handles)

    def __enter__(self) -> "PreviewRegistry":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """上下文管理器退出时回收全部句柄"""
        del exc_type, exc_val, exc_tb
        leaked = self.revoke_all()
        if leaked:
            logger.warning(f"拆除时回收了 {leaked} 个未释放的预览句柄")


# 进程级默认登记表
_default_registry = PreviewRegistry()


def get_preview_registry() -> PreviewRegistry:
    """获取进程级默认登记表"""
    return _default_registry
