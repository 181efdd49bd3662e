"""批改提示词

系统提示词固定；用户提示词包含学生、科目、可选题目信息以及必须遵循的 JSON 模板。
"""

from typing import List, Optional

from homework_grading.models.grading import Question


GRADING_SYSTEM_PROMPT = """你是一个专业的作业批改老师。请仔细查看学生提交的作业图片，逐题批改并给出详细的评分和反馈。

要求：
1. 准确识别图片中的题目和学生答案
2. 逐题判断答案正确与否
3. 为每道题提供简洁明了的解析说明
4. 给出具体的得分和满分
5. 提供建设性的反馈意见
6. 输出格式必须为JSON格式

评分标准：
- 完全正确：满分
- 部分正确：给部分分数
- 完全错误：0分
- 步骤正确但答案错误：给步骤分"""


GRADING_PROMPT_HEADER = """请批改{student_name}同学的{subject}作业。

请严格按照以下要求输出：
1. 每道题都要包含：题号、题目内容、学生答案、是否正确、详细解析
2. 题目内容必须准确识别图片中的具体题目文本，不能简化为"第1题"等占位符
3. 解析要简洁明了，说明解题思路和关键步骤
4. 按照指定的JSON格式返回结果

"""


GRADING_RESULT_TEMPLATE = """请按照以下JSON格式返回批改结果：
{
  "results": [
    {
      "questionId": "题目编号",
      "questionContent": "题目具体内容（从图片中准确识别，不能简化为"第1题"等）",
      "studentAnswer": "学生答案",
      "isCorrect": true/false,
      "correctAnswer": "正确答案",
      "explanation": "详细解析说明",
      "score": 得分,
      "maxScore": 满分,
      "feedback": "具体反馈意见"
    }
  ]
}

重要提醒：questionContent字段必须包含图片中识别的具体题目文本，不能使用"第1题"、"第2题"等占位符。"""


def format_question_block(questions: List[Question]) -> str:
    """
    格式化题目信息块

    每题输出序号、题目内容、可选的标准答案以及分值。
    """
    lines = ["题目信息："]
    for index, question in enumerate(questions, start=1):
        lines.append(f"{index}. {question.content}")
        if question.standard_answer:
            lines.append(f"标准答案：{question.standard_answer}")
        lines.append(f"分值：{question.points}分")
        lines.append("")
    return "\n".join(lines) + "\n"


def build_grading_prompt(
    subject: str,
    student_name: str,
    questions: Optional[List[Question]] = None,
) -> str:
    """构建用户提示词的文本部分"""
    prompt = GRADING_PROMPT_HEADER.format(student_name=student_name, subject=subject)
    if questions:
        prompt += format_question_block(questions)
    prompt += GRADING_RESULT_TEMPLATE
    return prompt
