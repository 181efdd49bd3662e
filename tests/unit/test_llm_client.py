"""
模型客户端单元测试

chat/completions 接口通过 httpx.MockTransport 模拟。
"""

import json
import logging

import httpx
import pytest

from homework_grading.config.settings import ModelConfig
from homework_grading.services.llm_client import LLMMessage, ModelClient
from homework_grading.utils.errors import MissingApiKeyError, ModelCallError


@pytest.fixture
def model_config() -> ModelConfig:
    return ModelConfig(api_key="test-key")


class TestModelClientInit:
    def test_missing_api_key_raises(self):
        with pytest.raises(MissingApiKeyError) as exc_info:
            ModelClient(ModelConfig())
        assert "MODELSCOPE_API_KEY 环境变量未设置" in str(exc_info.value)

    def test_uses_global_config(self, monkeypatch):
        monkeypatch.setenv("MODELSCOPE_API_KEY", "from-env")
        assert ModelClient().config.api_key == "from-env"


class TestGradeHomework:
    """批改请求测试"""

    @pytest.mark.asyncio
    async def test_request_payload(self, model_config, chat_completion_transport, sample_png_data_uri):
        requests = []
        client = ModelClient(model_config, transport=chat_completion_transport("{}", requests=requests))

        content = await client.grade_homework(sample_png_data_uri, "数学", "张三")
        await client.close()

        assert content == "{}"
        request = requests[0]
        assert str(request.url) == "https://api-inference.modelscope.cn/v1/chat/completions"
        assert request.headers["Authorization"] == "Bearer test-key"

        body = json.loads(request.content)
        assert body["model"] == "Qwen/Qwen3-VL-235B-A22B-Instruct"
        assert body["max_tokens"] == 4096
        assert body["temperature"] == 0.3
        assert body["stream"] is False

        system, user = body["messages"]
        assert system["role"] == "system"
        assert "作业批改老师" in system["content"]
        assert user["role"] == "user"
        text_part, image_part = user["content"]
        assert text_part["type"] == "text"
        assert "请批改张三同学的数学作业" in text_part["text"]
        assert image_part["type"] == "image_url"

    @pytest.mark.asyncio
    async def test_image_always_sent_as_jpeg(self, model_config, chat_completion_transport, sample_png_data_uri):
        """PNG 输入也以 image/jpeg 信封发送，Base64 内容不变"""
        requests = []
        client = ModelClient(model_config, transport=chat_completion_transport("ok", requests=requests))

        await client.grade_homework(sample_png_data_uri, "数学", "张三")

        body = json.loads(requests[0].content)
        url = body["messages"][1]["content"][1]["image_url"]["url"]
        payload = sample_png_data_uri.split(",", 1)[1]
        assert url == f"data:image/jpeg;base64,{payload}"

    @pytest.mark.asyncio
    async def test_http_error_wrapped(self, model_config, chat_completion_transport, sample_png_data_uri):
        client = ModelClient(model_config, transport=chat_completion_transport("", status_code=500))

        with pytest.raises(ModelCallError) as exc_info:
            await client.grade_homework(sample_png_data_uri, "数学", "张三")

        assert str(exc_info.value) == "模型调用失败: 500 upstream error"

    @pytest.mark.asyncio
    async def test_network_error_wrapped(self, model_config, sample_png_data_uri):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = ModelClient(model_config, transport=httpx.MockTransport(handler))

        with pytest.raises(ModelCallError) as exc_info:
            await client.grade_homework(sample_png_data_uri, "数学", "张三")
        assert "connection refused" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_invalid_json_body(self, model_config, sample_png_data_uri):
        def handler(request):
            return httpx.Response(200, text="<html>gateway</html>")

        client = ModelClient(model_config, transport=httpx.MockTransport(handler))

        with pytest.raises(ModelCallError):
            await client.grade_homework(sample_png_data_uri, "数学", "张三")

    @pytest.mark.asyncio
    async def test_empty_content_raises(self, model_config, chat_completion_transport, sample_png_data_uri):
        client = ModelClient(model_config, transport=chat_completion_transport(""))

        with pytest.raises(ModelCallError) as exc_info:
            await client.grade_homework(sample_png_data_uri, "数学", "张三")
        assert str(exc_info.value) == "模型调用失败: 模型返回内容为空"

    @pytest.mark.asyncio
    async def test_missing_choices_treated_as_empty(self, model_config, sample_png_data_uri):
        def handler(request):
            return httpx.Response(200, json={"choices": []})

        client = ModelClient(model_config, transport=httpx.MockTransport(handler))

        with pytest.raises(ModelCallError, match="模型返回内容为空"):
            await client.grade_homework(sample_png_data_uri, "数学", "张三")

    @pytest.mark.asyncio
    async def test_usage_logged(self, model_config, chat_completion_transport, sample_png_data_uri, caplog):
        client = ModelClient(model_config, transport=chat_completion_transport("{}"))

        with caplog.at_level(logging.INFO):
            await client.grade_homework(sample_png_data_uri, "数学", "张三")

        assert "token 用量: 30" in caplog.text
        assert "结果可能被截断" not in caplog.text

    @pytest.mark.asyncio
    async def test_truncated_output_warns(self, model_config, sample_png_data_uri, caplog):
        """finish_reason 为 length 时给出截断警告，仍返回内容"""

        def handler(request):
            return httpx.Response(
                200,
                json={"choices": [{"message": {"content": "{\"results\": ["}, "finish_reason": "length"}]},
            )

        client = ModelClient(model_config, transport=httpx.MockTransport(handler))

        content = await client.grade_homework(sample_png_data_uri, "数学", "张三")

        assert content == "{\"results\": ["
        assert "结果可能被截断" in caplog.text


class TestInvoke:
    @pytest.mark.asyncio
    async def test_content_parts_joined(self, model_config):
        def handler(request):
            return httpx.Response(
                200,
                json={
                    "choices": [
                        {
                            "message": {
                                "content": [
                                    {"type": "text", "text": '{"results":'},
                                    {"type": "text", "text": "[]}"},
                                ]
                            },
                            "finish_reason": "stop",
                        }
                    ]
                },
            )

        client = ModelClient(model_config, transport=httpx.MockTransport(handler))
        response = await client.invoke(messages=[LLMMessage(role="user", content="hi")])

        assert response.content == '{"results":[]}'
        assert response.finish_reason == "stop"
        assert response.model == model_config.model

    @pytest.mark.asyncio
    async def test_usage_reported(self, model_config, chat_completion_transport):
        client = ModelClient(model_config, transport=chat_completion_transport("OK"))
        response = await client.invoke(messages=[LLMMessage(role="user", content="hi")])
        assert response.usage["total_tokens"] == 30


class TestConnection:
    @pytest.mark.asyncio
    async def test_connection_success(self, model_config, chat_completion_transport):
        requests = []
        client = ModelClient(model_config, transport=chat_completion_transport("OK", requests=requests))

        assert await client.test_connection() is True

        body = json.loads(requests[0].content)
        assert body["max_tokens"] == 10
        assert body["temperature"] == 0
        assert body["messages"] == [
            {"role": "user", "content": 'Hello, this is a test message. Please respond with "OK".'}
        ]

    @pytest.mark.asyncio
    async def test_connection_failure_returns_false(self, model_config, chat_completion_transport):
        client = ModelClient(model_config, transport=chat_completion_transport("", status_code=503))
        assert await client.test_connection() is False
