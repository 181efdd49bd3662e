"""配置模块"""

from homework_grading.config.settings import (
    MODELSCOPE_BASE_URL,
    MODELSCOPE_VISION_MODEL,
    AppConfig,
    LogConfig,
    ModelConfig,
    ServerConfig,
    get_config,
    set_config,
)

__all__ = [
    "MODELSCOPE_BASE_URL",
    "MODELSCOPE_VISION_MODEL",
    "AppConfig",
    "LogConfig",
    "ModelConfig",
    "ServerConfig",
    "get_config",
    "set_config",
]
