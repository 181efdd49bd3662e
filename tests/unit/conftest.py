"""单元测试 fixture"""

import pytest

from homework_grading.config import settings


@pytest.fixture(autouse=True)
def isolate_config(monkeypatch):
    """每个测试使用干净的环境变量和全局配置"""
    for key in ("MODELSCOPE_API_KEY", "MCP_SERVER_NAME", "MCP_SERVER_VERSION", "LOG_LEVEL", "LLM_HTTP_TIMEOUT"):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setattr(settings, "_app_config", None)
