"""统一 API 响应封装（健康检查、数据源列表、错误响应）"""

from typing import Any, Optional

from pydantic import BaseModel

from volume_service.errors import VolumeServiceError


class ApiResponse(BaseModel):
    """
    标准响应封装

    行情查询成功时直接返回排行数据本身，只有出错时才使用本封装，
    调用方据此区分“暂时无数据”与“合法的空结果”。
    """
    success: bool = True
    data: Optional[Any] = None
    message: str = ""
    error: Optional[str] = None
    source: Optional[str] = None

    @classmethod
    def ok(cls, data: Any = None, message: str = "success") -> "ApiResponse":
        return cls(success=True, data=data, message=message)

    @classmethod
    def from_error(cls, exc: VolumeServiceError) -> "ApiResponse":
        return cls(
            success=False,
            error=exc.__class__.__name__,
            message=exc.message,
            source=exc.source_id,
        )
