# src/review_relay/presentation/cli/commands/submission.py
"""
提交记录相关命令：提交、审核、查看、删除。
"""

import asyncio

import typer
from rich.console import Console
from rich.table import Table

from review_relay.containers import ApplicationContainer
from review_relay_core.exceptions import RelayError, SubmissionNotFoundError
from review_relay_core.types import Submission, SubmissionStatus

console = Console()

app = typer.Typer(help="管理待审核的提交记录。", no_args_is_help=True)


def _render(submission: Submission) -> Table:
    table = Table(title=f"提交记录 {submission.id}", show_header=False)
    table.add_column(style="dim", justify="right")
    table.add_column()
    table.add_row("内容", submission.content)
    table.add_row("提交者", submission.submitted_by)
    table.add_row("状态", submission.status)
    table.add_row("提交时间", str(submission.submitted_at or "-"))
    table.add_row("通知时间", str(submission.notified_at or "-"))
    return table


@app.command("submit")
def submit(
    ctx: typer.Context,
    content: str = typer.Argument(..., help="要提交审核的内容（Gmail 地址）。"),
    user: str = typer.Option(..., "--user", "-u", help="提交者的聊天用户 ID。"),
):
    """提交一条内容进入审核队列。"""
    container: ApplicationContainer = ctx.obj
    service = container.services.intake_service()
    try:
        submission = asyncio.run(service.submit(content, user))
    except RelayError as e:
        console.print(f"[bold red]❌ 提交失败: {e}[/bold red]")
        raise typer.Exit(1)
    console.print(service.acknowledgement(submission))
    console.print(f"[dim]ID: {submission.id}[/dim]")


@app.command("review")
def review(
    ctx: typer.Context,
    submission_id: str = typer.Argument(..., help="提交记录 ID。"),
    approve: bool | None = typer.Option(
        None, "--approve/--reject", help="通过或拒绝该提交。", show_default=False
    ),
):
    """以版主身份审核一条提交记录。"""
    if approve is None:
        console.print("[bold red]错误: 必须指定 --approve 或 --reject。[/bold red]")
        raise typer.Exit(1)

    container: ApplicationContainer = ctx.obj
    service = container.services.review_service()
    status = SubmissionStatus.APPROVED if approve else SubmissionStatus.REJECTED
    try:
        submission = asyncio.run(service.review(submission_id, status))
    except RelayError as e:
        console.print(f"[bold red]❌ 审核失败: {e}[/bold red]")
        raise typer.Exit(1)
    console.print(f"[green]✅ 提交记录 {submission.id} 已标记为 {submission.status}。[/green]")


@app.command("show")
def show(
    ctx: typer.Context,
    submission_id: str = typer.Argument(..., help="提交记录 ID。"),
):
    """查看一条提交记录。"""
    container: ApplicationContainer = ctx.obj
    store = container.infrastructure.submission_store()
    submission = asyncio.run(store.get(submission_id))
    if submission is None:
        console.print(f"[bold red]❌ 提交记录不存在: {submission_id}[/bold red]")
        raise typer.Exit(1)
    console.print(_render(submission))


@app.command("delete")
def delete(
    ctx: typer.Context,
    submission_id: str = typer.Argument(..., help="提交记录 ID。"),
):
    """删除一条提交记录。已审核的记录删除后不会再触发任何通知。"""
    container: ApplicationContainer = ctx.obj
    store = container.infrastructure.submission_store()
    try:
        asyncio.run(store.delete(submission_id))
    except SubmissionNotFoundError:
        console.print(f"[bold red]❌ 提交记录不存在: {submission_id}[/bold red]")
        raise typer.Exit(1)
    console.print(f"[green]🗑️ 提交记录 {submission_id} 已删除。[/green]")
