"""grade_homework 工具

定义工具描述、参数校验（imageData / imageUrl 二选一）以及结果文本格式化。
"""

import logging
from typing import Any, Dict, List, Optional, Union

import mcp.types as types
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from homework_grading.models.enums import ImageInputType
from homework_grading.models.grading import (
    DEFAULT_STUDENT_NAME,
    DEFAULT_SUBJECT,
    GradeHomeworkRequest,
    HomeworkGradingResponse,
    Question,
)
from homework_grading.services.grading_service import GradingService
from homework_grading.services.response_parser import format_number
from homework_grading.utils.errors import ArgumentValidationError
from homework_grading.utils.image import classify_input


logger = logging.getLogger(__name__)


GRADE_HOMEWORK_TOOL_NAME = "grade_homework"
FAILURE_PREFIX = "❌ 作业批改失败："

_QUESTION_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "id": {"type": "string", "description": "题目ID"},
        "type": {
            "type": "string",
            "enum": ["choice", "fill", "essay", "calculation"],
            "description": "题目类型",
        },
        "content": {"type": "string", "description": "题目内容"},
        "standardAnswer": {"type": "string", "description": "标准答案"},
        "points": {"type": "integer", "description": "分值"},
    },
    "required": ["id", "type", "content"],
}

GRADE_HOMEWORK_TOOL = types.Tool(
    name=GRADE_HOMEWORK_TOOL_NAME,
    description="📝 智能批改学生作业图片，支持Base64和URL两种方式，自动识别题目并给出评分和解析",
    inputSchema={
        "type": "object",
        "properties": {
            "imageData": {
                "type": "string",
                "description": "Base64编码的作业图片（data:image/...;base64,... 或纯Base64）",
            },
            "imageUrl": {
                "type": "string",
                "format": "uri",
                "description": "作业图片的URL地址",
            },
            "subject": {"type": "string", "description": "作业科目（可选，默认自动识别）"},
            "studentName": {"type": "string", "description": "学生姓名（可选）"},
            "questions": {
                "type": "array",
                "items": _QUESTION_SCHEMA,
                "description": "题目信息（可选），提供后作为批改参考",
            },
        },
        "oneOf": [{"required": ["imageData"]}, {"required": ["imageUrl"]}],
    },
)


class _ToolArgumentsBase(BaseModel):
    """两种图片输入共用的可选参数"""

    model_config = ConfigDict(populate_by_name=True)

    subject: Optional[str] = Field(None, description="作业科目")
    student_name: Optional[str] = Field(None, alias="studentName", description="学生姓名")
    questions: Optional[List[Question]] = Field(None, description="题目信息")

    def _common_fields(self) -> Dict[str, Any]:
        return {
            "subject": _blank_to_default(self.subject, DEFAULT_SUBJECT),
            "student_name": _blank_to_default(self.student_name, DEFAULT_STUDENT_NAME),
            "questions": self.questions or None,
        }


class Base64ImageArguments(_ToolArgumentsBase):
    """Base64 图片参数"""

    image_data: str = Field(..., alias="imageData", description="Base64 图片")

    @field_validator("image_data")
    @classmethod
    def _check_image_data(cls, value: str) -> str:
        if not value:
            raise ValueError("图片数据不能为空")
        return value

    def to_request(self) -> GradeHomeworkRequest:
        return GradeHomeworkRequest(image_data=self.image_data, **self._common_fields())


class UrlImageArguments(_ToolArgumentsBase):
    """图片 URL 参数"""

    image_url: str = Field(..., alias="imageUrl", description="图片 URL")

    @field_validator("image_url")
    @classmethod
    def _check_image_url(cls, value: str) -> str:
        if classify_input(value) != ImageInputType.URL:
            raise ValueError("请输入有效的图片URL地址")
        return value

    def to_request(self) -> GradeHomeworkRequest:
        return GradeHomeworkRequest(image_url=self.image_url, **self._common_fields())


ToolArguments = Union[Base64ImageArguments, UrlImageArguments]


def _blank_to_default(value: Optional[str], default: str) -> str:
    if value is None or not value.strip():
        return default
    return value


def _first_error_message(error: ValidationError) -> str:
    """取第一条校验错误；自定义校验器的错误直接返回其原始消息"""
    detail = error.errors()[0]
    raised = (detail.get("ctx") or {}).get("error")
    if raised is not None:
        return str(raised)
    location = ".".join(str(part) for part in detail.get("loc", ()))
    return f"{location}: {detail['msg']}" if location else detail["msg"]


def parse_tool_arguments(arguments: Optional[Dict[str, Any]]) -> GradeHomeworkRequest:
    """
    校验工具参数并转换为统一的批改请求

    imageData 与 imageUrl 必须且只能提供一个；缺省的 subject / studentName
    使用默认值（空白字符串视为缺省）。

    Raises:
        ArgumentValidationError: 参数不合法
    """
    arguments = arguments or {}
    has_image_data = arguments.get("imageData") is not None
    has_image_url = arguments.get("imageUrl") is not None

    if has_image_data and has_image_url:
        raise ArgumentValidationError("imageData 和 imageUrl 只能提供其中一个")
    if not has_image_data and not has_image_url:
        raise ArgumentValidationError("必须提供图片数据（imageData或imageUrl）")

    model = Base64ImageArguments if has_image_data else UrlImageArguments
    try:
        parsed: ToolArguments = model.model_validate(arguments)
    except ValidationError as e:
        raise ArgumentValidationError(_first_error_message(e)) from e
    return parsed.to_request()


def format_grading_report(response: HomeworkGradingResponse) -> str:
    """将批改结果格式化为返回给调用方的文本"""
    question_blocks = "\n\n".join(
        f"题号：{index}\n"
        f"题目：{result.question_content}\n"
        f"答案：{result.student_answer} （{'正确' if result.is_correct else '错误'}）\n"
        f"题目解析：{result.explanation}"
        for index, result in enumerate(response.results, start=1)
    )

    return (
        "✅ 作业批改完成！\n\n"
        "📊 批改结果：\n"
        f"• 总分：{format_number(response.total_score)}/{format_number(response.max_total_score)}\n"
        f"• 等级：{response.grade.value}\n\n"
        "📝 题目详情：\n"
        f"{question_blocks}\n\n"
        "💭 总体评价：\n"
        f"{response.overall_feedback}"
    )


def text_result(text: str, is_error: bool = False) -> types.CallToolResult:
    """构造只包含一个文本块的工具结果"""
    return types.CallToolResult(
        content=[types.TextContent(type="text", text=text)],
        isError=is_error,
    )


class ToolHandler:
    """工具调用处理器"""

    def __init__(self, grading_service: GradingService) -> None:
        self.grading_service = grading_service

    async def handle_grade_homework(
        self, arguments: Optional[Dict[str, Any]]
    ) -> types.CallToolResult:
        """处理 grade_homework 调用，成功与失败都返回单个文本块"""
        try:
            request = parse_tool_arguments(arguments)
            source = "Base64" if request.image_data else "URL"
            logger.info(f"收到作业批改请求: {request.student_name} / {request.subject} ({source})")

            response = await self.grading_service.grade_homework(request)
            return text_result(format_grading_report(response))
        except Exception as e:
            logger.error(f"作业批改失败: {e}")
            return text_result(f"{FAILURE_PREFIX}{e}", is_error=True)
