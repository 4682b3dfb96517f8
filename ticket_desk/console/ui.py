"""
UI rendering for the agent console using Rich.
"""
from typing import List, Optional, Sequence

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ticket_desk.models import Message, SenderRole, Ticket, display_time, parse_timestamp

console = Console()

_SENDER_STYLES = {
    SenderRole.SUPPORT: "bold green",
    SenderRole.USER: "bold cyan",
    SenderRole.SYSTEM: "bold red",
}


def _local_datetime(value: str) -> str:
    dt = parse_timestamp(value)
    if dt is None:
        return value or "N/A"
    return dt.astimezone().strftime("%Y-%m-%d %H:%M:%S")


def print_header():
    header = Text()
    header.append("Ticket Desk", style="bold cyan")
    header.append(" waiting on customer", style="dim")
    console.print(Panel(header, border_style="cyan"))


def ticket_table(tickets: Sequence[Ticket]) -> Table:
    table = Table(title="Tickets Waiting for Customer Response", header_style="bold")
    table.add_column("#", style="dim", justify="right")
    table.add_column("Ticket ID", style="cyan")
    table.add_column("Issue")
    table.add_column("Status")
    table.add_column("User Message")
    table.add_column("Created At")
    table.add_column("Updated At")
    table.add_column("User")
    table.add_column("Mobile Number")

    for row, ticket in enumerate(tickets, start=1):
        table.add_row(
            str(row),
            ticket.ticket_id,
            ticket.issue,
            ticket.status,
            ticket.user_message or "No message provided",
            _local_datetime(ticket.created_at),
            _local_datetime(ticket.updated_at),
            ticket.user_name or "N/A",
            ticket.mobile_number or "N/A",
        )
    return table


def print_tickets(tickets: Sequence[Ticket]):
    if not tickets:
        console.print("[dim]No tickets are currently waiting for customer response.[/dim]")
        return
    console.print(ticket_table(tickets))


def format_message(message: Message) -> Text:
    line = Text()
    line.append(f"{message.sender}:", style=_SENDER_STYLES.get(message.sender, "bold"))
    line.append(" ")
    line.append(message.text)
    if message.time:
        line.append(f"  {display_time(message.time)}", style="dim")
    return line


def print_chat_panel(ticket_id: str, messages: List[Message], minimized: bool, connected: bool):
    title = f"Support Chat - Ticket {ticket_id}"
    subtitle = "[green]connected[/green]" if connected else "[yellow]offline[/yellow]"
    if minimized:
        console.print(Panel(Text("(minimized, /min to expand)", style="dim"), title=title, subtitle=subtitle))
        return

    body = Text()
    for i, message in enumerate(messages):
        if i:
            body.append("\n")
        body.append_text(format_message(message))
    console.print(Panel(body, title=title, subtitle=subtitle, border_style="green"))


def print_message(ticket_id: str, message: Message):
    console.print(Text(f"[{ticket_id}] ", style="dim") + format_message(message))


def print_notice(text: str):
    console.print(f"\n[yellow]! {escape(text)}[/yellow]")


def print_error(text: str):
    console.print(f"\n[red]Error: {escape(text)}[/red]")


def print_help_hint(selected: Optional[str] = None):
    console.print("\n[dim]/open <ticketId|row>  open a chat    /close  close the chat[/dim]")
    console.print("[dim]/min  collapse or expand the chat    /rejoin  reconnect the chat[/dim]")
    console.print("[dim]/tickets  show the list    /refresh  fetch tickets again    /back  exit[/dim]")
    if selected:
        console.print(f"[dim]Anything else is sent to the customer on ticket {selected}.[/dim]\n")
