"""测试共用 fixture"""

import json
from typing import Any, Callable, Dict, List, Optional
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from homework_grading.config.settings import AppConfig, ModelConfig
from homework_grading.services.llm_client import ModelClient


# 1x1 PNG
SAMPLE_PNG_DATA_URI = (
    "data:image/png;base64,"
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAQAAAC1HAwCAAAAC0lEQVR42mNkYAAAAAYAAjCB0C8AAAAASUVORK5CYII="
)

SINGLE_CORRECT_RESULT = {
    "questionId": "q1",
    "questionContent": "1+1=?",
    "studentAnswer": "2",
    "isCorrect": True,
    "correctAnswer": "2",
    "explanation": "加法",
    "score": 5,
    "maxScore": 5,
    "feedback": "好",
}


@pytest.fixture
def sample_png_data_uri() -> str:
    return SAMPLE_PNG_DATA_URI


@pytest.fixture
def app_config() -> AppConfig:
    """带 API 密钥的配置"""
    return AppConfig(model=ModelConfig(api_key="test-key"))


@pytest.fixture
def config_without_key() -> AppConfig:
    return AppConfig()


@pytest.fixture
def model_reply() -> Callable[[List[Dict[str, Any]]], str]:
    """把结果列表包装成模型回复文本"""

    def _build(results: List[Dict[str, Any]]) -> str:
        return json.dumps({"results": results}, ensure_ascii=False)

    return _build


@pytest.fixture
def single_result_reply(model_reply) -> str:
    return model_reply([SINGLE_CORRECT_RESULT])


@pytest.fixture
def chat_completion_transport() -> Callable[..., httpx.MockTransport]:
    """
    构造模拟 chat/completions 接口的 MockTransport

    传入 requests 列表时记录每个请求。
    """

    def _build(content: str, status_code: int = 200, requests: Optional[List[httpx.Request]] = None) -> httpx.MockTransport:
        def handler(request: httpx.Request) -> httpx.Response:
            if requests is not None:
                requests.append(request)
            if status_code != 200:
                return httpx.Response(status_code, text="upstream error")
            return httpx.Response(
                200,
                json={
                    "id": "chatcmpl-test",
                    "choices": [
                        {
                            "index": 0,
                            "message": {"role": "assistant", "content": content},
                            "finish_reason": "stop",
                        }
                    ],
                    "usage": {"prompt_tokens": 10, "completion_tokens": 20, "total_tokens": 30},
                },
            )

        return httpx.MockTransport(handler)

    return _build


@pytest.fixture
def fake_model_client(single_result_reply) -> MagicMock:
    """返回固定批改结果的模型客户端"""
    client = MagicMock(spec=ModelClient)
    client.grade_homework = AsyncMock(return_value=single_result_reply)
    client.test_connection = AsyncMock(return_value=True)
    client.close = AsyncMock()
    return client
