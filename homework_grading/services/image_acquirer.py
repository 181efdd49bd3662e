"""作业图片获取

把 Base64 或 URL 两种输入统一为 data URI 形式的规范图片。
URL 下载使用长期复用的 httpx.AsyncClient。
"""

from __future__ import annotations

import asyncio
import base64
import logging
from typing import Dict, Optional
from urllib.parse import urlsplit

import httpx

from homework_grading.utils.errors import (
    ImageDownloadError,
    ImageDownloadTimeoutError,
    ImageTooLargeError,
    ImageUnreachableError,
    InvalidBase64ImageError,
    UnsupportedContentTypeError,
)
from homework_grading.utils.image import (
    DEFAULT_MEDIA_TYPE,
    build_data_uri,
    to_data_uri,
    validate_base64_image,
)

logger = logging.getLogger(__name__)


DOWNLOAD_TIMEOUT_SECONDS = 60.0
MAX_DOWNLOAD_BYTES = 10 * 1024 * 1024

SUPPORTED_CONTENT_TYPES = (
    "image/jpeg",
    "image/jpg",
    "image/png",
    "image/gif",
    "image/webp",
    "image/bmp",
    "image/x-icon",
    "image/svg+xml",
)
IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".gif", ".webp", ".bmp")
# 这些图床即使 Content-Type 不对也放行
CDN_HOST_MARKERS = ("cdn", "sohu", "aliyun", "qcloud")

BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


def _origin(url: str) -> str:
    parts = urlsplit(url)
    return f"{parts.scheme}://{parts.netloc}"


def looks_like_image_url(url: str) -> bool:
    """URL 路径以常见图片后缀结尾"""
    path = urlsplit(url).path.lower()
    return path.endswith(IMAGE_EXTENSIONS)


def is_cdn_host(url: str) -> bool:
    """主机名包含已知图床关键字"""
    host = (urlsplit(url).hostname or "").lower()
    return any(marker in host for marker in CDN_HOST_MARKERS)


def _media_type(content_type: str) -> str:
    return content_type.split(";", 1)[0].strip().lower()


class ImageAcquirer:
    """作业图片获取器"""

    def __init__(
        self,
        timeout: float = DOWNLOAD_TIMEOUT_SECONDS,
        max_bytes: int = MAX_DOWNLOAD_BYTES,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.timeout = timeout
        self.max_bytes = max_bytes
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                follow_redirects=True,
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    @staticmethod
    def _build_headers(url: str) -> Dict[str, str]:
        return {
            "User-Agent": BROWSER_USER_AGENT,
            "Accept": "image/*,*/*;q=0.8",
            "Accept-Language": "zh-CN,zh;q=0.9,en;q=0.8",
            "Referer": _origin(url),
            "Cache-Control": "no-cache",
        }

    def from_base64(self, image_data: str) -> str:
        """验证 Base64 输入并返回规范 data URI"""
        is_valid, detail = validate_base64_image(image_data)
        if not is_valid:
            raise InvalidBase64ImageError(detail)
        return to_data_uri(image_data, detail)

    async def from_url(self, image_url: str) -> str:
        """
        下载图片并转换为 data URI

        Args:
            image_url: 图片地址，自动跟随重定向

        Returns:
            data:<content-type>;base64,<payload>

        Raises:
            ImageDownloadTimeoutError: 超过 60 秒未完成
            ImageDownloadError: 非 2xx 响应
            UnsupportedContentTypeError: 内容不是图片且 URL 不满足放行规则
            ImageTooLargeError: 超过 10MB
            ImageUnreachableError: 网络层错误
        """
        logger.info(f"正在下载图片: {image_url}")
        try:
            response = await asyncio.wait_for(
                self._fetch(image_url), timeout=self.timeout
            )
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            logger.error(f"图片下载超时: {image_url}")
            raise ImageDownloadTimeoutError() from e
        except httpx.HTTPError as e:
            raise ImageUnreachableError(str(e) or type(e).__name__) from e

        if not response.is_success:
            raise ImageDownloadError(response.status_code, response.reason_phrase)

        content_type = response.headers.get("content-type") or DEFAULT_MEDIA_TYPE
        logger.info(f"检测到的Content-Type: {content_type}")

        if not any(t in content_type.lower() for t in SUPPORTED_CONTENT_TYPES):
            if is_cdn_host(image_url) or looks_like_image_url(image_url):
                logger.warning(
                    f"Content-Type检查警告: {content_type}，但URL格式像图片，将继续处理"
                )
            else:
                raise UnsupportedContentTypeError(content_type)

        body = response.content
        if len(body) > self.max_bytes:
            raise ImageTooLargeError(len(body))

        media_type = _media_type(content_type) or DEFAULT_MEDIA_TYPE
        logger.info(
            f"图片下载成功，大小: {len(body) / (1024 * 1024):.2f}MB，格式: {media_type}"
        )
        return build_data_uri(media_type, base64.b64encode(body).decode("ascii"))

    async def _fetch(self, image_url: str) -> httpx.Response:
        client = self._get_client()
        return await client.get(image_url, headers=self._build_headers(image_url))
