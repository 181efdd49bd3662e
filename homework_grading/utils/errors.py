"""错误类型定义

每种错误的 str() 即为返回给调用方的提示文本。
"""

from typing import Optional


class HomeworkGradingError(Exception):
    """作业批改错误基类"""

    pass


class ArgumentValidationError(HomeworkGradingError):
    """工具参数验证错误"""

    pass


class InvalidBase64ImageError(HomeworkGradingError):
    """Base64 图片格式错误"""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"图片格式不正确：{reason}")


class ImageDownloadError(HomeworkGradingError):
    """图片下载返回非 2xx 状态"""

    def __init__(self, status_code: int, status_text: str = ""):
        self.status_code = status_code
        self.status_text = status_text
        super().__init__(f"图片下载失败: {status_code} {status_text}".rstrip())


class ImageDownloadTimeoutError(HomeworkGradingError):
    """图片下载超时"""

    def __init__(self) -> None:
        super().__init__("图片下载超时，请检查网络连接或稍后重试")


class ImageUnreachableError(HomeworkGradingError):
    """图片 URL 无法访问（网络层错误，未拿到 HTTP 状态）"""

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(f"图片URL无法访问: {detail}，请检查网络连接和URL有效性")


class UnsupportedContentTypeError(HomeworkGradingError):
    """URL 返回的内容不是图片"""

    def __init__(self, content_type: str):
        self.content_type = content_type
        super().__init__(f"URL返回的内容不是图片格式: {content_type}")


class ImageTooLargeError(HomeworkGradingError):
    """图片超过大小限制"""

    def __init__(self, size_bytes: int):
        self.size_bytes = size_bytes
        size_mb = size_bytes / (1024 * 1024)
        super().__init__(f"图片文件过大（{size_mb:.2f}MB），请使用小于10MB的图片")


class MissingApiKeyError(HomeworkGradingError):
    """未配置模型 API 密钥"""

    def __init__(self) -> None:
        super().__init__("MODELSCOPE_API_KEY 环境变量未设置，无法初始化模型服务")


class ModelCallError(HomeworkGradingError):
    """模型调用失败"""

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(f"模型调用失败: {detail}")


class ResponseParseError(HomeworkGradingError):
    """模型返回内容解析失败"""

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(f"解析失败: {detail}")


class ResponseShapeError(ResponseParseError):
    """模型返回的 JSON 结构不符合约定"""

    pass


class GradingFailedError(HomeworkGradingError):
    """批改流程失败，包装下游错误"""

    def __init__(self, detail: str, cause: Optional[BaseException] = None):
        self.detail = detail
        self.cause = cause
        super().__init__(f"批改失败: {detail}")
