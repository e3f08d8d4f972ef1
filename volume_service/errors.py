"""服务异常定义"""

from typing import Optional


class VolumeServiceError(Exception):
    """所有服务异常的基类"""

    def __init__(self, message: str, source_id: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.source_id = source_id

    def __str__(self) -> str:
        if self.source_id:
            return f"[{self.source_id}] {self.message}"
        return self.message


class UpstreamError(VolumeServiceError):
    """上游请求在重试耗尽后仍失败，或返回了无法解析的数据结构"""

    def __init__(
        self,
        source_id: str,
        message: str,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message, source_id)
        self.cause = cause


class NoDataAvailable(VolumeServiceError):
    """数据源尚未产生过任何成功结果"""

    def __init__(self, source_id: str):
        super().__init__("数据尚未就绪，请稍后重试", source_id)


class UnknownSource(VolumeServiceError):
    def __init__(self, source_id: str):
        super().__init__(f"未知数据源: {source_id}", source_id)


class AuxiliaryDataDegraded(VolumeServiceError):
    """
    辅助数据（交易对白名单 / 代币列表 / 换算汇率）获取失败后的降级记录

    只记录在适配器上并通过健康检查展示，不向调用方抛出。
    """

    def __init__(
        self,
        source_id: str,
        what: str,
        cause: Optional[BaseException] = None,
    ):
        detail = f"{what} 获取失败，已降级" if cause is None else f"{what} 获取失败，已降级: {cause}"
        super().__init__(detail, source_id)
        self.what = what
        self.cause = cause
