"""批改相关数据模型

Python 侧字段使用 snake_case，别名保留对外的 camelCase 字段名
（imageData、questionId、maxScore 等）。
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from homework_grading.models.enums import LetterGrade, QuestionType


DEFAULT_SUBJECT = "自动识别"
DEFAULT_STUDENT_NAME = "学生"


class Question(BaseModel):
    """题目信息（可选，作为给模型的提示）"""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., description="题目 ID")
    type: QuestionType = Field(..., description="题目类型")
    content: str = Field(..., description="题目内容")
    standard_answer: Optional[str] = Field(
        None, alias="standardAnswer", description="标准答案"
    )
    points: int = Field(5, description="分值")


class HomeworkSubmission(BaseModel):
    """作业提交记录，只在一次工具调用内存在"""

    id: str = Field(..., description="提交 ID (UUID v4)")
    student_name: str = Field(..., description="学生姓名")
    subject: str = Field(..., description="作业科目")
    image_data: str = Field(..., description="规范化后的图片 data URI")
    questions: Optional[List[Question]] = Field(None, description="题目信息")
    submitted_at: str = Field(..., description="提交时间 (ISO-8601)")


class GradingResult(BaseModel):
    """单题批改结果"""

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
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
        },
    )

    question_id: str = Field(..., alias="questionId", description="题目编号")
    question_content: str = Field(..., alias="questionContent", description="识别出的题目内容")
    is_correct: bool = Field(..., alias="isCorrect", description="是否正确")
    student_answer: str = Field("", alias="studentAnswer", description="学生答案")
    correct_answer: str = Field("", alias="correctAnswer", description="正确答案")
    explanation: str = Field("", description="解析")
    score: float = Field(0, description="得分", ge=0)
    max_score: float = Field(5, alias="maxScore", description="满分", ge=0)
    feedback: str = Field("", description="反馈意见")


class HomeworkGradingResponse(BaseModel):
    """整份作业批改结果"""

    model_config = ConfigDict(populate_by_name=True)

    submission_id: str = Field(..., alias="submissionId", description="提交 ID")
    total_score: float = Field(..., alias="totalScore", description="总分", ge=0)
    max_total_score: float = Field(..., alias="maxTotalScore", description="满分", ge=0)
    grade: LetterGrade = Field(..., description="等级")
    results: List[GradingResult] = Field(default_factory=list, description="各题批改结果")
    overall_feedback: str = Field(..., alias="overallFeedback", description="总体评价")
    graded_at: str = Field(..., alias="gradedAt", description="批改时间 (ISO-8601)")

    @model_validator(mode="after")
    def _check_totals(self) -> "HomeworkGradingResponse":
        if self.total_score > self.max_total_score:
            raise ValueError("总分不能超过满分")
        return self


class GradeHomeworkRequest(BaseModel):
    """批改请求

    imageData 与 imageUrl 只应提供其一，由工具层保证。
    """

    model_config = ConfigDict(populate_by_name=True)

    image_data: Optional[str] = Field(None, alias="imageData", description="Base64 图片")
    image_url: Optional[str] = Field(None, alias="imageUrl", description="图片 URL")
    subject: str = Field(DEFAULT_SUBJECT, description="作业科目")
    student_name: str = Field(DEFAULT_STUDENT_NAME, alias="studentName", description="学生姓名")
    questions: Optional[List[Question]] = Field(None, description="题目信息")
