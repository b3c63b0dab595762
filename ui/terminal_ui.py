"""
Terminal UI

Rich-based chat interface for the interpreter:
- Header and session info
- Markdown response panels
- Tables for bugs, teams and people in action results
- Suggestion chips and error panels

Author: AI System
Version: 2.0
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from rich import box
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.prompt import Prompt
from rich.syntax import Syntax
from rich.table import Table
from rich.text import Text

PRIORITY_STYLES = {
    'critical': 'bold red',
    'high': 'red',
    'medium': 'yellow',
    'low': 'green',
}

STATUS_STYLES = {
    'open': 'cyan',
    'in-progress': 'yellow',
    'resolved': 'green',
    'closed': 'dim',
}


class TerminalUI:
    """Chat interface over a rich Console"""

    def __init__(self, verbose: bool = False, console: Optional[Console] = None):
        self.console = console or Console()
        self.verbose = verbose
        self.session_start = datetime.now()
        self.message_count = 0

    def clear_screen(self):
        self.console.clear()

    def print_header(self, user: Dict[str, Any]):
        """Print header on startup"""
        self.clear_screen()

        header_text = Text()
        header_text.append("BUG TRACKER ASSISTANT\n", style="bold white")
        header_text.append("Ask in plain English: create, find and assign bugs, manage teams", style="cyan")
        self.console.print(Panel(header_text, border_style="bold cyan", box=box.DOUBLE, padding=(1, 4)))

        info_panel = Panel(
            f"[cyan]Signed in as:[/cyan] [white]{user.get('name', user.get('id'))}[/white]\n"
            f"[cyan]Started:[/cyan] [white]{self.session_start.strftime('%I:%M %p')}[/white]\n"
            f"[cyan]Type 'exit' to quit[/cyan]",
            border_style="dim",
            box=box.ROUNDED,
            padding=(0, 2)
        )
        self.console.print(info_panel)
        self.console.print()

    def get_input(self) -> str:
        return Prompt.ask("[bold cyan]┃[/bold cyan] [bold white]You[/bold white]", console=self.console)

    def print_response(self, envelope: Dict[str, Any]):
        """Render a response envelope (as produced by ResponseEnvelope.to_dict())"""
        self.message_count += 1
        result = envelope.get('action_result') or {}
        success = envelope.get('success', False)

        subtitle = f"[dim]{envelope['intent']} · {envelope['confidence']:.2f} · {envelope['sentiment']}[/dim]"
        self.console.print(Panel(
            Markdown(envelope.get('text') or envelope.get('message') or ''),
            border_style="dim cyan" if success else "yellow",
            box=box.ROUNDED,
            padding=(1, 2),
            title="[dim]Assistant[/dim]",
            title_align="left",
            subtitle=subtitle if self.verbose else None,
            subtitle_align="right"
        ))

        self.print_data(result.get('data') or {})
        self.print_suggestions(envelope.get('suggestions') or [])

        if self.verbose and envelope.get('entities'):
            self.console.print(f"[dim]entities: {envelope['entities']}[/dim]")
        self.console.print()

    def print_data(self, data: Dict[str, Any]):
        bugs = data.get('bugs') or data.get('assigned_bugs')
        if bugs:
            self.console.print(self.bug_table(bugs))
        if isinstance(data.get('bug'), dict):
            self.console.print(self.bug_table([data['bug']]))
        if data.get('teams') and isinstance(data['teams'][0], dict) and 'id' in data['teams'][0]:
            self.console.print(self.team_table(data['teams']))
        if data.get('users'):
            self.console.print(self.user_table(data['users']))
        for sub in data.get('sub_results') or []:
            self.console.print(f"[bold cyan]›[/bold cyan] [white]{sub['text']}[/white] [dim]({sub['intent']})[/dim]")
            self.print_data((sub.get('action_result') or {}).get('data') or {})

    def bug_table(self, bugs: List[Dict[str, Any]]) -> Table:
        table = Table(show_header=True, header_style="bold cyan", border_style="dim", box=box.ROUNDED)
        table.add_column("#", style="white", justify="right")
        table.add_column("Title", style="white")
        table.add_column("Status")
        table.add_column("Priority")
        table.add_column("Assignees", style="dim")

        for bug in bugs:
            status = bug.get('status', '')
            priority = bug.get('priority', '')
            table.add_row(
                str(bug.get('id', '')),
                bug.get('title', ''),
                f"[{STATUS_STYLES.get(status, 'white')}]{status}[/]",
                f"[{PRIORITY_STYLES.get(priority, 'white')}]{priority}[/]",
                ", ".join(bug.get('assignees') or []) or "unassigned"
            )
        return table

    def team_table(self, teams: List[Dict[str, Any]]) -> Table:
        table = Table(show_header=True, header_style="bold cyan", border_style="dim", box=box.ROUNDED)
        table.add_column("Team", style="white")
        table.add_column("Members", justify="right")
        for team in teams:
            table.add_row(team.get('name', ''), str(team.get('member_count', len(team.get('members', [])))))
        return table

    def user_table(self, users: List[Dict[str, Any]]) -> Table:
        table = Table(show_header=True, header_style="bold cyan", border_style="dim", box=box.ROUNDED)
        table.add_column("Name", style="white")
        table.add_column("Email", style="dim")
        table.add_column("Role")
        for user in users:
            table.add_row(user.get('name', ''), user.get('email', ''), user.get('team_role', user.get('role', '')))
        return table

    def print_suggestions(self, suggestions: List[str]):
        if not suggestions:
            return
        chips = Text()
        chips.append("Try: ", style="dim")
        for index, suggestion in enumerate(suggestions[:4]):
            if index:
                chips.append("  ·  ", style="dim")
            chips.append(suggestion, style="italic #8B8BFF")
        self.console.print(chips)

    def print_error(self, error: str, traceback_str: Optional[str] = None):
        """Print formatted error"""
        self.console.print(Panel(
            f"[bold red]Error[/bold red]\n\n{error}",
            border_style="red",
            box=box.HEAVY,
            padding=(1, 2)
        ))
        if traceback_str and self.verbose:
            self.console.print(Syntax(traceback_str, "python", theme="monokai", line_numbers=False))

    def print_goodbye(self):
        goodbye_text = Text()
        goodbye_text.append("┃ ", style="bold cyan")
        goodbye_text.append("Goodbye! ", style="bold white")
        goodbye_text.append(f"{self.message_count} message(s) this session.", style="dim")
        self.console.print()
        self.console.print(goodbye_text)
        self.console.print()
