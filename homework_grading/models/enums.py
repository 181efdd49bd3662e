"""枚举类型定义"""

from enum import Enum


class QuestionType(str, Enum):
    """题目类型"""

    CHOICE = "choice"  # 选择题
    FILL = "fill"  # 填空题
    ESSAY = "essay"  # 作文/简答题
    CALCULATION = "calculation"  # 计算题


class LetterGrade(str, Enum):
    """等级

    按得分率划分：[90,100] A，[80,90) B，[70,80) C，[60,70) D，[0,60) F
    """

    A = "A"
    B = "B"
    C = "C"
    D = "D"
    F = "F"


class ImageInputType(str, Enum):
    """图片输入方式"""

    URL = "url"
    BASE64 = "base64"
    UNKNOWN = "unknown"
