"""模型返回结果解析

模型回复是自由文本，按不可信输入处理：
先截取第一个 "{" 到最后一个 "}" 之间的内容解析 JSON，
再把 results 中的每一项按默认值规则转换为 GradingResult。
"""

import json
import logging
import math
from typing import Any, Dict, List, Optional

from homework_grading.models.grading import GradingResult
from homework_grading.utils.errors import ResponseParseError, ResponseShapeError


logger = logging.getLogger(__name__)


DEFAULT_MAX_SCORE = 5.0


def extract_json_block(text: str) -> str:
    """截取文本中第一个 "{" 到最后一个 "}" 之间的内容"""
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end < start:
        raise ResponseParseError("无法从模型返回内容中提取JSON")
    return text[start : end + 1]


def _is_truthy(value: Any) -> bool:
    if isinstance(value, float) and math.isnan(value):
        return False
    if isinstance(value, (list, dict)):
        return True
    return bool(value)


def _to_number(value: Any) -> Optional[float]:
    """宽松的数值转换，无法转换或非有限值时返回 None"""
    if value is None:
        return 0.0
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return 0.0
        try:
            number = float(text)
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def format_number(value: float) -> str:
    """整数值去掉小数部分：5.0 -> "5"，7.5 -> "7.5" """
    if float(value).is_integer():
        return str(int(value))
    return str(value)


def _to_text(value: Any, default: str = "") -> str:
    if not _is_truthy(value):
        return default
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true"
    if isinstance(value, (int, float)):
        return format_number(value)
    return json.dumps(value, ensure_ascii=False)


def coerce_result(raw: Any, index: int) -> GradingResult:
    """
    将单条原始结果转换为 GradingResult

    Args:
        raw: results 数组中的原始元素，非对象时按空对象处理
        index: 该元素的 0 基序号

    Returns:
        GradingResult，缺失字段按默认值补齐；score 不小于 0 且不超过 maxScore
    """
    item: Dict[str, Any] = raw if isinstance(raw, dict) else {}
    number = index + 1

    max_score = _to_number(item.get("maxScore"))
    if not max_score or max_score < 0:
        max_score = DEFAULT_MAX_SCORE

    score = _to_number(item.get("score")) or 0.0
    score = min(max(score, 0.0), max_score)

    content_source = item.get("questionContent")
    if not _is_truthy(content_source):
        content_source = item.get("question")

    return GradingResult(
        question_id=_to_text(item.get("questionId"), f"question_{number}"),
        question_content=_to_text(content_source, f"第{number}题"),
        is_correct=_is_truthy(item.get("isCorrect")),
        student_answer=_to_text(item.get("studentAnswer")),
        correct_answer=_to_text(item.get("correctAnswer")),
        explanation=_to_text(item.get("explanation")),
        score=score,
        max_score=max_score,
        feedback=_to_text(item.get("feedback")),
    )


def parse_model_response(content: str) -> List[GradingResult]:
    """
    解析模型返回的 JSON 结果

    Raises:
        ResponseParseError: 找不到 JSON 或 JSON 无法解析
        ResponseShapeError: 缺少 results 数组
    """
    json_text = extract_json_block(content)
    try:
        parsed = json.loads(json_text)
    except json.JSONDecodeError as e:
        logger.error(f"解析模型返回结果失败: {e}")
        raise ResponseParseError(f"JSON解析错误: {e}") from e

    if not isinstance(parsed, dict) or not isinstance(parsed.get("results"), list):
        raise ResponseShapeError("JSON格式不正确，缺少results字段")

    return [coerce_result(raw, i) for i, raw in enumerate(parsed["results"])]
