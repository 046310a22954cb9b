# src/review_relay/presentation/cli/main.py
import os

import typer
from rich.console import Console
from rich.traceback import install as install_rich_tracebacks

from review_relay.bootstrap import create_app_config, create_container

from .commands import relay, submission

install_rich_tracebacks(show_locals=False, word_wrap=True)

app = typer.Typer(
    name="review-relay",
    help="📨 Review Relay 命令行管理工具。",
    add_completion=False,
    no_args_is_help=True,
)

app.add_typer(relay.app, name="relay")
app.add_typer(submission.app, name="submission")

console = Console()


@app.callback()
def main(ctx: typer.Context):
    """
    主回调函数，负责创建 DI 容器并管理其生命周期。
    """
    try:
        env_mode = "test" if os.getenv("RELAY_ENV", "prod").lower() == "test" else "prod"
        config = create_app_config(env_mode=env_mode)
        container = create_container(config, service_name="review-relay-cli")

        # 将容器附加到上下文，供所有子命令使用
        ctx.obj = container

        def shutdown_resources():
            container.shutdown_resources()

        ctx.call_on_close(shutdown_resources)

    except Exception as e:
        console.print(
            f"[bold red]❌ 启动失败：无法加载配置或初始化容器: {e}[/bold red]"
        )
        raise typer.Exit(code=1) from e


if __name__ == "__main__":
    app()
