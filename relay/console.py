"""
Terminal collaborators used by handlers: colors, help text, listings and prompts.

Everything here is a thin wrapper around rich. Handlers call these functions
with their own settings (colorful, fancy, stderr); nothing in this module
looks up a “current” handler.

Palette
- COLORS maps the classic ANSI color names onto rich styles. Hosts may add or
  override entries with a __styles__ mapping in __main__ (same mechanism as
  the fault renderer).
"""
import inspect
from collections.abc import Mapping

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

COLORS = {
    "normal": "",
    "black": "black",
    "red": "red",
    "green": "green",
    "brown": "yellow",
    "blue": "blue",
    "cyan": "cyan",
    "light-red": "bold bright_red",
    "light-green": "bold bright_green",
    "yellow": "bold yellow",
    "light-blue": "bold bright_blue",
    "magenta": "bold magenta",
    "light-cyan": "bold bright_cyan",
    "white": "bold white",
    "bold": "bold",
    "underscore": "underline",
    "reverse": "reverse",
    "dim": "dim",
}

AFFIRMATIVES = frozenset({"1", "yes", "y", "ok"})


def _console(*, stderr=False, colorful=True):
    # Built per call so redirected sys.stdout/sys.stderr are honored.
    return Console(stderr=stderr, no_color=not colorful, highlight=False)


def style(color, /):
    """
    Resolve a color name (see COLORS) or a raw rich style string.
    """
    palette = COLORS | getattr(__import__("__main__"), "__styles__", {})
    return palette.get(color, color) if color else ""


def colorize(text, color="normal", /, *, colorful=True):
    """
    Return text as a rich Text in the given color; plain when colorful is False.
    """
    if isinstance(text, Text):
        return text if colorful else Text(text.plain)
    return Text(str(text), style(color) if colorful else "")


def normalize_help(text, /):
    """
    Strip the common leading indentation and surrounding blank lines of a help string.

    The first line is ignored when measuring indentation, so docstring-style
    text ("Summary.\\n\\n    usage: ...") is normalized as well.
    """
    return inspect.cleandoc(text or "")


def render_help(text, /, *, title=None, colorful=True, fancy=False, stderr=False):
    """
    Print a help string. Rendered in a panel titled with the handler name when fancy.
    """
    console = _console(stderr=stderr, colorful=colorful)
    body = Text(normalize_help(text))
    if fancy:
        console.print(Panel(body, title=title, title_align="left"))
    else:
        console.print(body)


def echo(message, /, *, newline=True, color="normal", colorful=True, stderr=False):
    """
    Print one message as-is (no markup interpretation), optionally without newline.
    """
    console = _console(stderr=stderr, colorful=colorful)
    console.print(colorize(message, color, colorful=colorful), end="\n" if newline else "")


def render_table(rows, /, headers=(), *, colorful=True, stderr=False):
    """
    Print rows as a column-aligned table; headers are optional.
    """
    rows = [tuple(row) for row in rows]
    headers = tuple(headers)
    table = Table(show_header=bool(headers), header_style="bold" if colorful else "", box=None, pad_edge=False)
    width = max((len(row) for row in rows), default=len(headers))
    for index in range(max(width, len(headers))):
        table.add_column(str(headers[index]) if index < len(headers) else "")
    for row in rows:
        table.add_row(*map(str, row))
    _console(stderr=stderr, colorful=colorful).print(table)


def render_list(items, /, *, colorful=True, stderr=False):
    """
    Print a key/value listing with the keys padded to the widest one.
    """
    if not isinstance(items, Mapping):
        raise TypeError("render_list() argument must be a mapping")
    grid = Table.grid(padding=(0, 2))
    grid.add_column(style="bold" if colorful else "")
    grid.add_column()
    for key, value in items.items():
        grid.add_row(str(key), str(value))
    _console(stderr=stderr, colorful=colorful).print(grid)


def read_input(prompt="", /):
    """
    Read one line from standard input, trimmed.

    A non-empty prompt is trimmed and written to standard output followed by a
    single space before reading. End of input reads as an empty line.
    """
    prompt = prompt.strip()
    try:
        return _console().input(Text(prompt + " ") if prompt else "").strip()
    except EOFError:
        return ""


def is_affirmative(answer, /):
    """
    True only for the exact answers 1, yes, y and ok (case-sensitive).
    """
    return answer in AFFIRMATIVES


__all__ = (
    "COLORS",
    "AFFIRMATIVES",
    "style",
    "colorize",
    "normalize_help",
    "render_help",
    "echo",
    "render_table",
    "render_list",
    "read_input",
    "is_affirmative",
)
