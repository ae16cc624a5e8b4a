"""Assistant CLI commands."""

import click
from rich.console import Console
from rich.markdown import Markdown

from assistant import ConversationHistory, TurnStatus
from cli.utils import get_components

console = Console()

_EXIT_WORDS = {"exit", "quit", ":q"}


def _print_event(event: dict):
    if event["type"] == "tool_start":
        console.print(f"[dim]→ {event['tool']}[/]")
    elif event["type"] == "tool_done" and event.get("is_error"):
        console.print(f"[dim red]✗ {event['tool']} failed[/]")


@click.command()
@click.argument("question")
@click.option("--show-tools", is_flag=True, help="Print each tool call as it runs")
def ask(question: str, show_tools: bool):
    """Ask the assistant to do something."""
    c = get_components()

    with console.status("Thinking..."):
        result = c["assistant"].run(question, event_callback=_print_event if show_tools else None)
    console.print()
    console.print(Markdown(result.answer))
    if result.status != TurnStatus.ANSWERED:
        raise SystemExit(1)


@click.command()
@click.option("--show-tools", is_flag=True, help="Print each tool call as it runs")
def chat(show_tools: bool):
    """Interactive conversation. Type 'exit' to leave, '/clear' to forget history."""
    c = get_components()
    orchestrator = c["assistant"]
    history = ConversationHistory()
    name = c["config"].assistant.name

    console.print(f"[bold]{name}[/] [dim](exit to quit)[/]")
    while True:
        try:
            message = console.input("[cyan]you>[/] ").strip()
        except (EOFError, KeyboardInterrupt):
            console.print()
            break
        if not message:
            continue
        if message.lower() in _EXIT_WORDS:
            break
        if message == "/clear":
            history.clear()
            console.print("[dim]History cleared.[/]")
            continue

        with console.status("Thinking..."):
            result = orchestrator.run(
                message, history=list(history.messages), event_callback=_print_event if show_tools else None
            )
        console.print(f"[bold green]{name}>[/]")
        console.print(Markdown(result.answer))
        history.add_exchange(message, result.answer)
