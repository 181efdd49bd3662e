"""作业批改服务

串联整个批改流程：
参数校验 → 图片获取 → 压缩检查 → 模型批改 → 结果解析 → 汇总评分。
任何一步失败都会包装为 GradingFailedError 抛出。
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import List, Optional

from homework_grading.config.settings import AppConfig, get_config
from homework_grading.models.enums import LetterGrade
from homework_grading.models.grading import (
    GradeHomeworkRequest,
    GradingResult,
    HomeworkGradingResponse,
    HomeworkSubmission,
)
from homework_grading.services.image_acquirer import ImageAcquirer
from homework_grading.services.llm_client import ModelClient
from homework_grading.services.response_parser import format_number, parse_model_response
from homework_grading.utils.errors import ArgumentValidationError, GradingFailedError
from homework_grading.utils.image import compress_image_data, get_image_format


logger = logging.getLogger(__name__)


# (最低百分比, 等级, 评语开头)，按阈值从高到低排列
GRADE_BANDS = (
    (90, LetterGrade.A, "优秀！作业完成得非常出色，继续保持！"),
    (80, LetterGrade.B, "良好！整体表现不错，还有提升空间。"),
    (70, LetterGrade.C, "中等！需要更加努力，注意细节。"),
    (60, LetterGrade.D, "及格！需要加强学习，多做练习。"),
)
FAILING_FEEDBACK = "需要改进！建议重新学习相关知识，寻求帮助。"

MAX_REVIEW_ITEMS = 3


def calculate_percentage(total_score: float, max_score: float) -> float:
    """得分率（百分制），满分为 0 时返回 0"""
    if max_score <= 0:
        return 0.0
    return total_score * 100 / max_score


def calculate_grade(total_score: float, max_score: float) -> LetterGrade:
    """
    根据得分率计算等级

    >= 90 为 A，>= 80 为 B，>= 70 为 C，>= 60 为 D，其余为 F。
    """
    percentage = calculate_percentage(total_score, max_score)
    for threshold, grade, _ in GRADE_BANDS:
        if percentage >= threshold:
            return grade
    return LetterGrade.F


def _feedback_header(percentage: float) -> str:
    for threshold, _, header in GRADE_BANDS:
        if percentage >= threshold:
            return header
    return FAILING_FEEDBACK


def generate_overall_feedback(
    results: List[GradingResult],
    total_score: float,
    max_score: float,
) -> str:
    """
    生成总体评价

    评语开头按得分率分档；之后列出总分、得分率、正确与错误题数。
    有错题时追加最多 3 条需要复习的知识点（取错题解析，保持原顺序）。
    """
    percentage = calculate_percentage(total_score, max_score)
    question_count = len(results)
    correct_count = sum(1 for result in results if result.is_correct)

    feedback = _feedback_header(percentage)
    feedback += "\n\n详细情况：\n"
    feedback += f"- 总得分：{format_number(total_score)}/{format_number(max_score)} ({percentage:.1f}%)\n"
    feedback += f"- 正确题数：{correct_count}/{question_count}\n"
    feedback += f"- 错误题数：{question_count - correct_count}/{question_count}\n"

    if correct_count < question_count:
        incorrect = [result for result in results if not result.is_correct]
        feedback += "\n建议重点复习以下知识点：\n"
        for index, result in enumerate(incorrect[:MAX_REVIEW_ITEMS], start=1):
            feedback += f"{index}. {result.explanation}\n"

    return feedback


def build_grading_response(
    submission_id: str,
    results: List[GradingResult],
) -> HomeworkGradingResponse:
    """汇总各题结果，计算总分、等级和总体评价"""
    total_score = sum(result.score for result in results)
    max_total_score = sum(result.max_score for result in results)

    return HomeworkGradingResponse(
        submission_id=submission_id,
        total_score=total_score,
        max_total_score=max_total_score,
        grade=calculate_grade(total_score, max_total_score),
        results=results,
        overall_feedback=generate_overall_feedback(results, total_score, max_total_score),
        graded_at=_utc_now_iso(),
    )


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class GradingService:
    """作业批改服务"""

    def __init__(
        self,
        acquirer: Optional[ImageAcquirer] = None,
        model_client: Optional[ModelClient] = None,
        config: Optional[AppConfig] = None,
    ) -> None:
        self.config = config or get_config()
        self.acquirer = acquirer or ImageAcquirer()
        self._model_client = model_client

    def get_model_client(self) -> ModelClient:
        """获取模型客户端，首次使用时创建；缺少密钥时每次都抛出 MissingApiKeyError"""
        if self._model_client is None:
            self._model_client = ModelClient(self.config.model)
        return self._model_client

    @staticmethod
    def validate_input(request: GradeHomeworkRequest) -> None:
        if not request.student_name or not request.student_name.strip():
            raise ArgumentValidationError("学生姓名不能为空")
        if not request.subject or not request.subject.strip():
            raise ArgumentValidationError("作业科目不能为空")
        if not request.image_data and not request.image_url:
            raise ArgumentValidationError("必须提供图片数据（imageData或imageUrl）")

    async def _acquire_image(self, request: GradeHomeworkRequest) -> str:
        if request.image_data:
            return self.acquirer.from_base64(request.image_data)
        return await self.acquirer.from_url(request.image_url)

    async def grade_homework(self, request: GradeHomeworkRequest) -> HomeworkGradingResponse:
        """
        批改一份作业

        Args:
            request: 已通过工具层校验的批改请求

        Returns:
            HomeworkGradingResponse

        Raises:
            GradingFailedError: 任一环节失败，消息为 "批改失败: <原始错误>"
        """
        try:
            self.validate_input(request)
            model_client = self.get_model_client()

            image_data = await self._acquire_image(request)
            image_data = compress_image_data(image_data)

            submission = HomeworkSubmission(
                id=str(uuid.uuid4()),
                student_name=request.student_name,
                subject=request.subject,
                image_data=image_data,
                questions=request.questions,
                submitted_at=_utc_now_iso(),
            )
            logger.info(
                f"开始批改作业: {submission.id} ({submission.student_name} / {submission.subject}，"
                f"图片格式 {get_image_format(submission.image_data)})"
            )

            content = await model_client.grade_homework(
                submission.image_data,
                submission.subject,
                submission.student_name,
                submission.questions,
            )
            results = parse_model_response(content)
            logger.info(f"模型返回 {len(results)} 道题的批改结果")

            response = build_grading_response(submission.id, results)
            logger.info(
                f"作业批改完成: {submission.id}，"
                f"得分 {format_number(response.total_score)}/{format_number(response.max_total_score)}，"
                f"等级 {response.grade.value}"
            )
            return response

        except Exception as e:
            logger.error(f"作业批改失败: {e}")
            raise GradingFailedError(str(e), cause=e) from e

    async def batch_grade_homework(
        self, requests: List[GradeHomeworkRequest]
    ) -> List[HomeworkGradingResponse]:
        """
        依次批改多份作业

        失败的作业记录日志后跳过，返回成功结果（保持输入顺序）。
        """
        responses: List[HomeworkGradingResponse] = []
        total = len(requests)

        for index, request in enumerate(requests, start=1):
            try:
                responses.append(await self.grade_homework(request))
                logger.info(f"第 {index}/{total} 份作业批改完成")
            except GradingFailedError as e:
                logger.error(f"第 {index}/{total} 份作业批改失败: {e}")

        if len(responses) < total:
            logger.warning(f"批量批改完成，成功 {len(responses)}/{total} 份")
        return responses

    async def close(self) -> None:
        await self.acquirer.close()
        if self._model_client is not None:
            await self._model_client.close()
