"""
Ticket Desk console - interactive agent console for tickets waiting on the customer.

Usage:
    python run_console.py [--api URL] [--ws URL] [--debug]
"""
import argparse
import asyncio
import logging
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from prompt_toolkit import PromptSession
from prompt_toolkit.history import FileHistory
from prompt_toolkit.patch_stdout import patch_stdout

from ticket_desk import config
from ticket_desk.channel import ChannelConnection, ChannelError, ChannelSession
from ticket_desk.console import ui
from ticket_desk.coordinator import SessionCoordinator
from ticket_desk.directory import TicketDirectoryClient
from ticket_desk.models import Message, Ticket
from ticket_desk.storage import JsonFileTranscriptCache

logger = logging.getLogger("ticket_desk.console")


class TicketDeskConsole:
    """Main console application."""

    def __init__(self, directory: TicketDirectoryClient, connection: ChannelConnection, coordinator: SessionCoordinator):
        self.directory = directory
        self.connection = connection
        self.coordinator = coordinator
        self.tickets: List[Ticket] = []

        self.coordinator.on_notice = ui.print_notice
        self.coordinator.on_message = self._handle_message

        self.prompt_session: Optional[PromptSession] = None

    async def run(self):
        ui.print_header()
        try:
            try:
                await self.connection.connect()
            except ChannelError as e:
                # The ticket list is still useful without live chat.
                logger.warning("starting without live chat: %s", e)
                ui.print_notice(f"Live chat unavailable: {e}")

            await self.refresh()
            ui.print_help_hint()
            await self._loop()
        finally:
            await self.coordinator.deselect_ticket()
            await self.connection.disconnect()
            await self.directory.close()

    async def refresh(self):
        self.tickets = await self.directory.list_waiting_tickets()
        ui.print_tickets(self.tickets)

    async def _loop(self):
        # Keep inbound chat lines from tearing through the prompt.
        with patch_stdout():
            while True:
                try:
                    line = await self._prompt_async(self._prompt_text())
                except (EOFError, KeyboardInterrupt):
                    break
                if not await self.handle_line(line):
                    break

    async def handle_line(self, line: str) -> bool:
        """Run one line of input. Returns False when the agent asked to leave."""
        text = (line or "").strip()
        if not text:
            return True

        if not text.startswith("/"):
            if self.coordinator.ticket is None:
                ui.print_notice("Open a ticket first: /open <ticketId>")
                return True
            await self.coordinator.send_outbound(text)
            return True

        command, _, arg = text.partition(" ")
        command = command.lower()
        arg = arg.strip()

        if command in ("/back", "/quit", "/exit"):
            return False
        if command == "/open":
            await self._open(arg)
        elif command == "/close":
            await self.coordinator.deselect_ticket()
        elif command == "/min":
            self.coordinator.toggle_minimized()
            self._show_chat()
        elif command == "/rejoin":
            await self._rejoin()
        elif command == "/tickets":
            ui.print_tickets(self.tickets)
        elif command == "/refresh":
            await self.refresh()
        elif command == "/help":
            ui.print_help_hint(self.coordinator.active_ticket_id)
        else:
            ui.print_error(f"unknown command {command}")
        return True

    def find_ticket(self, ref: str) -> Optional[Ticket]:
        """Look a ticket up by id, or by its 1-based row in the table."""
        for ticket in self.tickets:
            if ticket.ticket_id == ref:
                return ticket
        if ref.isdigit():
            row = int(ref)
            if 1 <= row <= len(self.tickets):
                return self.tickets[row - 1]
        return None

    async def _rejoin(self):
        if self.coordinator.ticket is None:
            ui.print_notice("No ticket is open.")
            return
        if not self.connection.connected:
            try:
                await self.connection.connect()
            except ChannelError as e:
                ui.print_notice(f"Still offline: {e}")
                return
        if await self.coordinator.rejoin():
            self._show_chat()

    async def _open(self, ref: str):
        if not ref:
            ui.print_error("usage: /open <ticketId|row>")
            return
        ticket = self.find_ticket(ref)
        if ticket is None:
            ui.print_error(f"no waiting ticket {ref}")
            return
        await self.coordinator.select_ticket(ticket)
        self._show_chat()

    def _show_chat(self):
        ticket_id = self.coordinator.active_ticket_id
        if ticket_id is None:
            return
        ui.print_chat_panel(
            ticket_id,
            self.coordinator.transcript,
            self.coordinator.minimized,
            self.coordinator.connected,
        )

    def _handle_message(self, ticket_id: str, message: Message):
        if not self.coordinator.minimized:
            ui.print_message(ticket_id, message)

    def _prompt_text(self) -> str:
        ticket_id = self.coordinator.active_ticket_id
        return f"\n[{ticket_id}]> " if ticket_id else "\n> "

    async def _prompt_async(self, message: str) -> str:
        if self.prompt_session is None:
            history_file = Path(config.console_history_file()).expanduser()
            self.prompt_session = PromptSession(history=FileHistory(str(history_file)))
        return await self.prompt_session.prompt_async(message)


def build_console(api_url: str, ws_url: str) -> TicketDeskConsole:
    directory = TicketDirectoryClient(base_url=api_url, timeout_s=config.directory_timeout_s())
    connection = ChannelConnection(ws_url)
    coordinator = SessionCoordinator(
        ChannelSession(connection),
        JsonFileTranscriptCache(config.transcripts_dir()),
        persist_inbound=config.persist_inbound(),
    )
    return TicketDeskConsole(directory, connection, coordinator)


def main():
    """Console entry point."""
    load_dotenv()

    parser = argparse.ArgumentParser(description="Ticket Desk agent console")
    parser.add_argument("--api", default=None, help="Ticket directory base URL")
    parser.add_argument("--ws", default=None, help="WebSocket URL of the chat channel")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    app = build_console(args.api or config.directory_base_url(), args.ws or config.channel_url())
    try:
        asyncio.run(app.run())
    except KeyboardInterrupt:
        ui.console.print("\n\n[dim]Goodbye![/dim]")


if __name__ == "__main__":
    main()
