"""ModelScope vision model client for OpenAI-compatible chat completions."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

import httpx

from homework_grading.config.settings import ModelConfig, get_config
from homework_grading.models.grading import Question
from homework_grading.services.prompts import GRADING_SYSTEM_PROMPT, build_grading_prompt
from homework_grading.utils.errors import MissingApiKeyError, ModelCallError
from homework_grading.utils.image import strip_data_uri_prefix

logger = logging.getLogger(__name__)


# 图片统一以 JPEG 信封发送，与源图格式无关
IMAGE_ENVELOPE_MEDIA_TYPE = "image/jpeg"

CONNECTION_TEST_PROMPT = 'Hello, this is a test message. Please respond with "OK".'


@dataclass
class LLMMessage:
    """LLM message."""

    role: str
    content: Union[str, List[Dict[str, Any]]]


@dataclass
class LLMResponse:
    """LLM response."""

    content: str
    model: str
    usage: Optional[Dict[str, int]] = None
    finish_reason: Optional[str] = None


class ModelClient:
    """Chat-completions client for the grading vision model."""

    def __init__(
        self,
        config: Optional[ModelConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.config = config or get_config().model
        if not self.config.has_api_key:
            logger.warning("模型服务初始化失败：缺少API密钥")
            raise MissingApiKeyError()
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self.config.http_timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    def _build_headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.config.api_key}",
            "Content-Type": "application/json",
        }

    @staticmethod
    async def _safe_read_response_text(response: Optional[httpx.Response]) -> str:
        if response is None:
            return "<no response>"
        try:
            body = await response.aread()
            return body.decode("utf-8", errors="replace")
        except (httpx.HTTPError, RuntimeError):
            return "<unreadable response>"

    @staticmethod
    def _extract_content(message: Dict[str, Any]) -> str:
        content = message.get("content")
        if isinstance(content, list):
            return "".join(
                part.get("text", "") for part in content if isinstance(part, dict)
            )
        return content or ""

    @staticmethod
    def create_image_content(image_data: str) -> Dict[str, Any]:
        payload = strip_data_uri_prefix(image_data)
        return {
            "type": "image_url",
            "image_url": {"url": f"data:{IMAGE_ENVELOPE_MEDIA_TYPE};base64,{payload}"},
        }

    @staticmethod
    def create_text_content(text: str) -> Dict[str, Any]:
        return {"type": "text", "text": text}

    def build_grading_messages(
        self,
        image_data: str,
        subject: str,
        student_name: str,
        questions: Optional[List[Question]] = None,
    ) -> List[LLMMessage]:
        prompt = build_grading_prompt(subject, student_name, questions)
        return [
            LLMMessage(role="system", content=GRADING_SYSTEM_PROMPT),
            LLMMessage(
                role="user",
                content=[
                    self.create_text_content(prompt),
                    self.create_image_content(image_data),
                ],
            ),
        ]

    async def invoke(
        self,
        *,
        messages: List[LLMMessage],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        **kwargs: Any,
    ) -> LLMResponse:
        client = await self._get_client()
        payload = {
            "model": self.config.model,
            "messages": [{"role": m.role, "content": m.content} for m in messages],
            "max_tokens": self.config.max_tokens if max_tokens is None else max_tokens,
            "temperature": self.config.temperature if temperature is None else temperature,
            "stream": False,
            **kwargs,
        }

        logger.debug(
            "[LLM] invoke model=%s messages=%s", self.config.model, len(messages)
        )

        try:
            response = await client.post(
                f"{self.config.base_url}/chat/completions",
                headers=self._build_headers(),
                json=payload,
            )
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as exc:
            text = await self._safe_read_response_text(exc.response)
            status_code = exc.response.status_code
            logger.error("[LLM] HTTP error %s: %s", status_code, text)
            raise ModelCallError(f"{status_code} {text}") from exc
        except httpx.HTTPError as exc:
            logger.error("[LLM] invoke failed: %s", exc)
            raise ModelCallError(str(exc) or type(exc).__name__) from exc
        except ValueError as exc:
            logger.error("[LLM] invalid JSON body: %s", exc)
            raise ModelCallError(f"响应不是有效的JSON: {exc}") from exc

        if not isinstance(data, dict):
            raise ModelCallError("响应格式不正确")
        choices = data.get("choices") or [{}]
        choice = choices[0] if isinstance(choices, list) and isinstance(choices[0], dict) else {}
        message = choice.get("message")
        content = self._extract_content(message if isinstance(message, dict) else {})
        usage = data.get("usage")

        logger.debug("[LLM] response chars=%s tokens=%s", len(content), usage)
        return LLMResponse(
            content=content,
            model=self.config.model,
            usage=usage or None,
            finish_reason=choice.get("finish_reason"),
        )

    async def grade_homework(
        self,
        image_data: str,
        subject: str,
        student_name: str,
        questions: Optional[List[Question]] = None,
    ) -> str:
        """发送作业图片和批改提示词，返回模型原始文本"""
        logger.info(f"开始批改{student_name}的{subject}作业")
        response = await self.invoke(
            messages=self.build_grading_messages(image_data, subject, student_name, questions)
        )
        if response.usage:
            logger.info(f"模型调用完成，token 用量: {response.usage.get('total_tokens')}")
        if response.finish_reason == "length":
            logger.warning("模型输出达到 max_tokens 上限，结果可能被截断")
        if not response.content:
            raise ModelCallError("模型返回内容为空")
        logger.debug(f"模型返回内容: {response.content}")
        return response.content

    async def test_connection(self) -> bool:
        """发送简单文本请求检测连通性，不抛异常"""
        try:
            response = await self.invoke(
                messages=[LLMMessage(role="user", content=CONNECTION_TEST_PROMPT)],
                temperature=0,
                max_tokens=10,
            )
            return bool(response.content)
        except Exception as exc:
            logger.error(f"模型连接测试失败: {exc}")
            return False
