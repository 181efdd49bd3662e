"""
作业批改 MCP 服务

接收作业图片（Base64 或 URL），调用视觉大模型逐题批改，
汇总得分、等级与总体评价。
"""

__version__ = "1.0.0"
