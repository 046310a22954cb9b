# src/review_relay/presentation/cli/commands/relay.py
import asyncio

import structlog
import typer
from rich.console import Console

from review_relay.containers import ApplicationContainer
from review_relay_core.exceptions import SubscriptionLostError

console = Console()
logger = structlog.get_logger(__name__)

app = typer.Typer(help="运行通知中继 Worker。", no_args_is_help=True)


@app.command("run")
def run_relay(ctx: typer.Context):
    """
    启动通知中继：订阅终态提交记录，并把审核结果推送给提交者。
    按 Ctrl+C 或发送 SIGTERM 优雅关闭。
    """
    container: ApplicationContainer = ctx.obj
    config = container.pydantic_config()
    worker = container.workers.relay_worker()

    if config.store == "memory":
        console.print(
            "[bold yellow]警告: 正在使用内存文档库，只能观察到本进程内的变更。[/bold yellow]"
        )

    shutdown_event = asyncio.Event()
    try:
        console.print("[cyan]🚀 正在启动通知中继 Worker...[/cyan]")
        asyncio.run(worker.run_loop(shutdown_event))
    except KeyboardInterrupt:
        logger.warning("收到键盘中断信号，正在关闭...")
        shutdown_event.set()
    except SubscriptionLostError as e:
        logger.error("订阅无法恢复，Worker 退出。", error=str(e))
        raise typer.Exit(1)
    except Exception as e:
        logger.error("Worker 进程意外终止。", error=e, exc_info=True)
        raise typer.Exit(1)

    console.print("[bold green]✅ 通知中继 Worker 已关闭。[/bold green]")
