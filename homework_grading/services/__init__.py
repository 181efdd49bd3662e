"""服务模块"""

from homework_grading.services.grading_service import (
    GradingService,
    build_grading_response,
    calculate_grade,
    calculate_percentage,
    generate_overall_feedback,
)
from homework_grading.services.image_acquirer import ImageAcquirer
from homework_grading.services.llm_client import LLMMessage, LLMResponse, ModelClient
from homework_grading.services.response_parser import extract_json_block, parse_model_response

__all__ = [
    "GradingService",
    "build_grading_response",
    "calculate_grade",
    "calculate_percentage",
    "generate_overall_feedback",
    "ImageAcquirer",
    "LLMMessage",
    "LLMResponse",
    "ModelClient",
    "extract_json_block",
    "parse_model_response",
]
