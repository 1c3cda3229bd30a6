from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from src.config import ADMIN_AGENT_NAME, ORDERING_AGENT_NAME


class RichChatDisplay:
    def __init__(self, console: Console | None = None):
        self.console = console or Console()

    def clear(self):
        self.console.clear()

    # -------------------------
    # Display Methods
    # -------------------------
    def display_user(self, text: str):
        self.console.print(Panel(text, title="TÚ", style="bold blue"))

    def display_system(self, text: str):
        self.console.print(Panel(text, title="SISTEMA", style="bold yellow"))

    def display_ordering_turn(self, turn):
        """María's reply, followed by the cart lines it produced."""
        self.console.print(Panel(turn.display_text or "", title=ORDERING_AGENT_NAME.upper(), style="bold green"))

        if turn.lines:
            table = Table(title="Carrito", show_lines=False)
            table.add_column("Producto")
            table.add_column("Cant.", justify="right")
            table.add_column("Precio", justify="right")
            table.add_column("Detalles")
            for line in turn.lines:
                custom = line.customizations() or {}
                details = "; ".join(
                    f"{key}: {', '.join(value) if isinstance(value, list) else value}"
                    for key, value in custom.items()
                )
                table.add_row(line.item.name, str(line.quantity), f"${line.item.price:.2f}", details)
            self.console.print(table)

        for name in turn.unresolved:
            self.console.print(f"[red]No encontré «{name}» en el menú.[/]")
        if turn.confirm_order:
            self.console.print("[bold magenta]Orden confirmada por el cliente.[/]")

    def display_admin_reply(self, reply):
        style = "bold yellow" if reply.mock else "bold green"
        self.console.print(Panel(reply.message, title=ADMIN_AGENT_NAME.upper(), style=style))
        for action in reply.actions:
            self.display_tool_result(action)

    def display_tool_result(self, result):
        mark = "[green]✓[/]" if result.success else "[red]✗[/]"
        self.console.print(f"  {mark} [magenta]{result.type}[/]: {result.description}")
