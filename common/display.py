"""Display and notice utilities."""

from rich.console import Console
from rich.markup import escape

console = Console(highlight=False)

NOTICE_STYLES = {
    "info": "cyan",
    "ok": "green",
    "warn": "yellow",
    "error": "red",
}


def notice(message: str, level: str = "info") -> None:
    """Show a short user-facing notice.

    Notices never carry raw exception payloads; those only go to the
    redacted audit log.
    """
    style = NOTICE_STYLES.get(level, NOTICE_STYLES["info"])
    console.print(f"[{style}]{escape(message)}[/{style}]")


def show_settings(values: dict) -> None:
    """Print settings as aligned key/value lines."""
    width = max((len(k) for k in values), default=0)
    for key, value in values.items():
        shown = escape(str(value)) if value != "" else "[dim](empty)[/dim]"
        console.print(f"  {key.ljust(width)}  {shown}")
