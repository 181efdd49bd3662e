"""数据模型包"""

from .enums import ImageInputType, LetterGrade, QuestionType
from .grading import (
    DEFAULT_STUDENT_NAME,
    DEFAULT_SUBJECT,
    GradeHomeworkRequest,
    GradingResult,
    HomeworkGradingResponse,
    HomeworkSubmission,
    Question,
)

__all__ = [
    "ImageInputType",
    "LetterGrade",
    "QuestionType",
    "DEFAULT_STUDENT_NAME",
    "DEFAULT_SUBJECT",
    "GradeHomeworkRequest",
    "GradingResult",
    "HomeworkGradingResponse",
    "HomeworkSubmission",
    "Question",
]
