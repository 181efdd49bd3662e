"""MCP 工具模块"""

from homework_grading.tools.grading_tools import (
    GRADE_HOMEWORK_TOOL,
    GRADE_HOMEWORK_TOOL_NAME,
    Base64ImageArguments,
    ToolHandler,
    UrlImageArguments,
    format_grading_report,
    parse_tool_arguments,
    text_result,
)

__all__ = [
    "GRADE_HOMEWORK_TOOL",
    "GRADE_HOMEWORK_TOOL_NAME",
    "Base64ImageArguments",
    "ToolHandler",
    "UrlImageArguments",
    "format_grading_report",
    "parse_tool_arguments",
    "text_result",
]
