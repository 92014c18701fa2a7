"""
Relay faults (terminal conditions) and rendering.

Scope
- FaultCode: canonical, stable numeric identifiers for every terminal condition
  a handler can reach (help display, failed assertions, missing ancestry, bail).
- CommandException: base type that carries a message + options and knows how to
  render itself (rich), how to fire itself (__trigger__) and how to copy itself
  with extra options (__replace__).
- trigger(): central entry point to surface any fault.

Two modes
- shell mode (options["shell"] is True): the fault is printed on stderr and the
  process exits with the fault's status. This is the one-shot CLI behavior:
  report and stop.
- embedded mode (shell is False): the fault is raised so a long-running host
  can catch it without dying. Help-type faults are raised after help has been
  rendered, so the host only has to decide what to do next.

Unresolved command words are NOT faults: they fall back to the handler's
default action.

Integration
- Handlers call self.trigger(fault) which merges their runtime options
  (handler, shell, colorful, fancy) and renders help first when appropriate.
- Host applications may define __codes__ (FaultCode -> label) and __styles__
  (palette overrides) in __main__.
"""
import sys
from collections import defaultdict
from enum import IntEnum
from types import MappingProxyType

from rich.console import Console, Group
from rich.panel import Panel
from rich.text import Text

from .utils import Unset, coalesce


class FaultCode(IntEnum):
    """
    canonical fault codes used across relay (stable identifiers).

    grouping (by high-level domain)
    - help (1000x)
      • HELP_SHOWN
    - arguments (1110x)
      • MISSING_ARGUMENTS, UNEXPECTED_ARGUMENTS, MISSING_ARGUMENT,
        MISSING_FLAG, MISSING_OPTION
    - ancestry (1120x)
      • NO_PARENT
    - delegated (1130x)
      • BAIL
    """
    # --- help (10xxx) ---
    HELP_SHOWN           = 10001

    # --- argument assertions (111xx) ---
    MISSING_ARGUMENTS    = 11101
    UNEXPECTED_ARGUMENTS = 11102
    MISSING_ARGUMENT     = 11103
    MISSING_FLAG         = 11104
    MISSING_OPTION       = 11105

    # --- ancestry (112xx) ---
    NO_PARENT            = 11201

    # --- delegated by the handler itself (113xx) ---
    BAIL                 = 11301

    def normalize(self):
        """
        return a host-normalized string for this code.

        the host application can provide a __codes__ mapping in __main__
        to override numeric ids with friendlier labels. when no mapping
        is present, the numeric value is returned as a string.
        """
        return str(getattr(__import__("__main__"), "__codes__", {}).get(self, self.value))


class CommandException(Exception):
    """
    Base class of every terminal condition.

    Class attributes
    - code: FaultCode identifying the condition.
    - status: process exit status used in shell mode.
    - helpful: when True, the handler renders its help before the fault fires.
    - label: prefix of the rendered line ("ERROR" → "ERROR: <message>").

    Options (read-only mapping, merged by trigger/__replace__)
    - handler, shell, colorful, fancy, label, hint, and any context the
      reporter wants to carry (argument, flag, option, kind, ...).
    """
    code = Unset
    status = 1
    helpful = False
    label = "ERROR"

    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        super().__init__(coalesce(message, ""))
        self.message = message
        self.options = MappingProxyType(options)

    def __rich__(self):
        main = __import__("__main__")

        styles = defaultdict(str, {
            "label": "bold red",
            "message": "",
            "hint-arrow": "green dim",
            "hint": "italic green",
            "panel-title": "bold red",
            "panel-border": "red",
        } | getattr(main, "__styles__", {}))

        colorful = self.options.get("colorful", True)

        def styler(style):
            return styles[style] if colorful else ""

        label = self.options.get("label", self.label)
        line = Text.assemble(
            (f"{label}: ", styler("label")),
            (str(coalesce(self.message, "")), styler("message")),
        )

        renders = [line]
        if hint := self.options.get("hint"):
            renders.append(Text.assemble((" → ", styler("hint-arrow")), (str(hint), styler("hint"))))

        if self.options.get("fancy"):
            handler = self.options.get("handler")
            prog = getattr(main, "__prog__", type(handler).__name__ if handler is not None else "relay")
            title = f"[ {prog} — {self.code.normalize() if self.code else label} ]"
            return Panel(
                Group(*renders),
                title=Text(title, styler("panel-title")),
                title_align="left",
                border_style=styler("panel-border") or "none",
            )

        return Group(*renders)

    def __trigger__(self) -> None:
        if not self.options.get("shell"):
            raise self from None
        if self.message is not Unset:
            console = Console(stderr=True)
            # Leading blank line keeps the error apart from regular output.
            console.print()
            console.print(self)
        sys.exit(self.status)

    def __replace__(self, *unused, **overrides):
        assert not unused, "unused arguments are not allowed"
        return type(self)(self.message, **{**self.options, **overrides})


class HelpShown(CommandException):
    """Help was rendered instead of running a command."""
    code = FaultCode.HELP_SHOWN
    status = 0
    helpful = True


class MissingArgumentsError(CommandException):
    code = FaultCode.MISSING_ARGUMENTS
    helpful = True


class UnexpectedArgumentsError(CommandException):
    code = FaultCode.UNEXPECTED_ARGUMENTS
    helpful = True


class MissingArgumentError(CommandException):
    code = FaultCode.MISSING_ARGUMENT
    helpful = True


class MissingFlagError(CommandException):
    code = FaultCode.MISSING_FLAG
    helpful = True


class MissingOptionError(CommandException):
    code = FaultCode.MISSING_OPTION
    helpful = True


class NoParentError(CommandException):
    code = FaultCode.NO_PARENT


class BailError(CommandException):
    code = FaultCode.BAIL


def trigger(fault, /, **options):
    """
    surface a fault with the given runtime options.

    contract
    - fault must provide __trigger__ and __replace__ methods (see CommandException).
    - options are merged into a copy of the fault via __replace__(**options) before triggering.
    - in shell mode the copy is printed and the process exits; otherwise it is raised.
    """
    if (
        not hasattr(fault, "__trigger__") or
        not callable(fault.__trigger__) or
        not hasattr(fault, "__replace__") or
        not callable(fault.__replace__)
    ):
        raise TypeError("trigger() argument must have a __trigger__ and __replace__ methods")
    fault.__replace__(**options).__trigger__()


__all__ = (
    "FaultCode",
    "CommandException",
    "HelpShown",
    "MissingArgumentsError",
    "UnexpectedArgumentsError",
    "MissingArgumentError",
    "MissingFlagError",
    "MissingOptionError",
    "NoParentError",
    "BailError",
    "trigger",
)
