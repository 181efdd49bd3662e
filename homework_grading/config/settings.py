"""服务配置模块

统一管理 MCP 服务、模型与日志配置，全部从环境变量加载。
配置在进程启动时构造一次，之后只读。
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Optional


logger = logging.getLogger(__name__)


MODELSCOPE_BASE_URL = "https://api-inference.modelscope.cn/v1"
MODELSCOPE_VISION_MODEL = "Qwen/Qwen3-VL-235B-A22B-Instruct"


@dataclass(frozen=True)
class ServerConfig:
    """MCP 服务配置"""

    name: str = "homework-grading-mcp"
    version: str = "1.0.0"


@dataclass(frozen=True)
class ModelConfig:
    """视觉模型配置"""

    api_key: str = ""
    base_url: str = MODELSCOPE_BASE_URL
    model: str = MODELSCOPE_VISION_MODEL
    max_tokens: int = 4096
    temperature: float = 0.3
    # 传输层超时，模型调用本身不设额外超时
    http_timeout: float = 300.0

    @property
    def has_api_key(self) -> bool:
        return bool(self.api_key)


@dataclass(frozen=True)
class LogConfig:
    """日志配置"""

    level: str = "info"

    def to_logging_level(self) -> int:
        """将 LOG_LEVEL 取值映射为 logging 级别，未知取值回退到 INFO"""
        aliases = {"warn": "WARNING"}
        name = self.level.strip().lower()
        name = aliases.get(name, name.upper())
        value = getattr(logging, name, None)
        return value if isinstance(value, int) else logging.INFO


@dataclass(frozen=True)
class AppConfig:
    """应用配置"""

    server: ServerConfig = field(default_factory=ServerConfig)
    model: ModelConfig = field(default_factory=ModelConfig)
    log: LogConfig = field(default_factory=LogConfig)

    @classmethod
    def from_env(cls) -> "AppConfig":
        """从环境变量加载配置"""
        return cls(
            server=ServerConfig(
                name=os.getenv("MCP_SERVER_NAME") or "homework-grading-mcp",
                version=os.getenv("MCP_SERVER_VERSION") or "1.0.0",
            ),
            model=ModelConfig(
                api_key=os.getenv("MODELSCOPE_API_KEY", ""),
                http_timeout=_read_float_env("LLM_HTTP_TIMEOUT", 300.0),
            ),
            log=LogConfig(level=os.getenv("LOG_LEVEL") or "info"),
        )

    def validate(self) -> None:
        """检查配置完整性，缺少密钥时只记录警告，不阻止启动"""
        if not self.model.has_api_key:
            logger.warning("MODELSCOPE_API_KEY 环境变量未设置，模型功能将不可用")
            logger.info("请在环境变量中设置 MODELSCOPE_API_KEY 以启用作业批改功能")


def _read_float_env(key: str, default: float) -> float:
    raw = os.getenv(key)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


# 全局配置
_app_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """获取全局配置"""
    global _app_config
    if _app_config is None:
        _app_config = AppConfig.from_env()
    return _app_config


def set_config(config: AppConfig) -> None:
    """设置全局配置"""
    global _app_config
    _app_config = config
