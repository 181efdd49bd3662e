"""MCP 服务主入口

通过 stdio 提供 grade_homework 工具。stdout 只用于协议帧，日志全部写到 stderr。
"""

import asyncio
import logging
import os
import signal
import sys
from typing import Any, Dict, List, Optional

import mcp.types as types
from dotenv import load_dotenv
from mcp.server.lowlevel import Server
from mcp.server.stdio import stdio_server

from homework_grading.config.settings import AppConfig, set_config
from homework_grading.services.grading_service import GradingService
from homework_grading.tools.grading_tools import (
    GRADE_HOMEWORK_TOOL,
    GRADE_HOMEWORK_TOOL_NAME,
    ToolHandler,
    text_result,
)


logger = logging.getLogger(__name__)


LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: int = logging.INFO) -> None:
    """配置日志输出到 stderr"""
    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        stream=sys.stderr,
        force=True,
    )

    # 禁用噪音日志
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


class HomeworkGradingMCPServer:
    """作业批改 MCP 服务器"""

    def __init__(
        self,
        config: AppConfig,
        grading_service: Optional[GradingService] = None,
    ) -> None:
        self.config = config
        self.grading_service = grading_service or GradingService(config=config)
        self.tool_handler = ToolHandler(self.grading_service)
        self.server = Server(config.server.name, version=config.server.version)
        self._register_handlers()

    def _register_handlers(self) -> None:
        @self.server.list_tools()
        async def list_tools() -> List[types.Tool]:
            return [GRADE_HOMEWORK_TOOL]

        # 参数由 ToolHandler 自行校验，以便返回中文错误信息
        @self.server.call_tool(validate_input=False)
        async def call_tool(
            name: str, arguments: Optional[Dict[str, Any]]
        ) -> types.CallToolResult:
            return await self.dispatch(name, arguments)

    async def dispatch(
        self, name: str, arguments: Optional[Dict[str, Any]]
    ) -> types.CallToolResult:
        """按工具名分发调用"""
        logger.info(f"收到工具调用: {name}")
        if name == GRADE_HOMEWORK_TOOL_NAME:
            return await self.tool_handler.handle_grade_homework(arguments)

        logger.warning(f"未知的工具: {name}")
        return text_result(f"❌ 工具调用失败：未知的工具: {name}", is_error=True)

    async def probe_model(self) -> bool:
        """启动时检测模型连通性，结果只记录日志"""
        if not self.config.model.has_api_key:
            return False
        try:
            client = self.grading_service.get_model_client()
        except Exception as e:
            logger.warning(f"模型客户端初始化失败: {e}")
            return False

        ok = await client.test_connection()
        if ok:
            logger.info("模型连接测试成功")
        else:
            logger.warning("模型连接测试失败，服务将继续运行")
        return ok

    async def run(self) -> None:
        """在 stdio 上运行协议循环，直到输入流关闭"""
        async with stdio_server() as (read_stream, write_stream):
            logger.info(
                f"作业批改MCP服务器已启动: {self.config.server.name} v{self.config.server.version}"
            )
            await self.server.run(
                read_stream,
                write_stream,
                self.server.create_initialization_options(),
            )

    async def serve(self) -> None:
        """运行服务器，收到 SIGINT / SIGTERM 时有序退出"""
        loop = asyncio.get_running_loop()
        stop_event = asyncio.Event()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, stop_event.set)
            except NotImplementedError:
                logger.debug(f"当前平台不支持信号处理: {sig.name}")

        server_task = asyncio.create_task(self.run())
        stop_task = asyncio.create_task(stop_event.wait())
        probe_task = asyncio.create_task(self.probe_model())

        try:
            done, _ = await asyncio.wait(
                {server_task, stop_task}, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            probe_task.cancel()
            await asyncio.gather(probe_task, return_exceptions=True)
            await self.shutdown()

        if stop_task in done:
            logger.info("收到退出信号，服务器已关闭")
            logging.shutdown()
            # stdin 读取线程无法被取消，清理完成后直接退出
            os._exit(0)

        stop_task.cancel()
        # 协议循环异常结束时向上抛出
        server_task.result()

    async def shutdown(self) -> None:
        await self.grading_service.close()
        logger.info("作业批改MCP服务器已关闭")


def main() -> int:
    """命令行入口，返回进程退出码"""
    load_dotenv()
    config = AppConfig.from_env()
    set_config(config)
    configure_logging(config.log.to_logging_level())
    config.validate()

    try:
        asyncio.run(HomeworkGradingMCPServer(config).serve())
    except KeyboardInterrupt:
        logger.info("服务器已停止")
    except Exception:
        logger.exception("服务器运行失败")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
