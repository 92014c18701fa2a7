r"""
Relay argument tokenizer.

Overview
- parse(prompt): split a raw token stream into three semantic containers:
  • flags: presence-only switches (-v, --verbose, --dry-run)
  • options: named values joined with '=' (--env=prod, -n="my name")
  • arguments: every other token, in the order it was encountered
- ParsedArguments: the immutable result, replaced (never mutated) by handlers
  that shift positionals or re-dispatch.

Grammar (checked in this order for every token)
1. option: --?<name>=<value> where <name> starts with a letter and continues with
   letters/hyphens, and <value> is non-empty. One layer of matching surrounding
   quotes ("..." or '...') is stripped from the value. Names are lower-cased and
   the last occurrence of a name wins.
2. flag: --?<name> or --?<name>= (an empty right-hand side is a flag, not an
   option). Names are lower-cased; duplicates are idempotent.
3. positional: anything else ('-', '--', '-5', 'service-a', ...).

Space-separated option values ('--env prod') are NOT part of the grammar: that is
a flag 'env' followed by the positional 'prod'. The legacy form can be enabled
per call with spaced=True, in which case a bare flag immediately followed by a
positional consumes it as its value.

Quick example:
    >>> parsed = parse(["deploy", "--env=prod", "-v", "service-a"])
    >>> sorted(parsed.flags), dict(parsed.options), parsed.arguments
    (['v'], {'env': 'prod'}, ('deploy', 'service-a'))
"""
import re
import shlex
import sys
from collections.abc import Iterable

from .utils import *

_OPTION = re.compile(r"--?(?P<name>[a-z][a-z-]*)=(?P<value>.+)", re.IGNORECASE | re.DOTALL)
_FLAG = re.compile(r"--?(?P<name>[a-z][a-z-]*)=?", re.IGNORECASE)
_QUOTED = re.compile(r"(?P<quote>[\"'])(?P<value>.*)(?P=quote)", re.DOTALL)


class ParsedArguments:
    """
    Immutable result of tokenizing one invocation level.

    Fields
    - flags: frozenset[str] of lower-cased flag names.
    - options: read-only mapping of lower-cased option name -> value.
    - arguments: tuple[str, ...] of positionals in encountered order.

    Instances compare by value, so parsing the same tokens twice yields equal
    results. Use shift() and replace() to derive new instances.
    """

    __slots__ = ("_flags", "_options", "_arguments")

    def __init__(self, flags=(), options=(), arguments=()):
        flags, options, arguments = frozenset(flags), dict(options), tuple(arguments)
        for name in flags:
            if not isinstance(name, str):
                raise TypeError("ParsedArguments() flags must be strings")
        for name, value in options.items():
            if not isinstance(name, str) or not isinstance(value, str):
                raise TypeError("ParsedArguments() options must map strings to strings")
        for argument in arguments:
            if not isinstance(argument, str):
                raise TypeError("ParsedArguments() arguments must be strings")
        self._flags = flags
        self._options = freeze(options)
        self._arguments = arguments

    @property
    def flags(self):
        return self._flags

    @property
    def options(self):
        return self._options

    @property
    def arguments(self):
        return self._arguments

    def shift(self):
        """
        Return a copy without the first positional (the consumed command word).
        """
        return type(self)(self._flags, self._options, self._arguments[1:])

    def replace(self, *, flags=Unset, options=Unset, arguments=Unset):
        """
        Return a copy with the given fields replaced; Unset fields are kept.
        """
        return type(self)(
            coalesce(flags, self._flags),
            coalesce(options, self._options),
            coalesce(arguments, self._arguments),
        )

    def __eq__(self, other):
        if not isinstance(other, ParsedArguments):
            return NotImplemented
        return (
            self._flags == other._flags and
            dict(self._options) == dict(other._options) and
            self._arguments == other._arguments
        )

    def __hash__(self):
        return hash((self._flags, frozenset(self._options.items()), self._arguments))

    def __rich_repr__(self):
        yield "flags", sorted(self._flags)
        yield "options", dict(self._options)
        yield "arguments", list(self._arguments)

    def __repr__(self):
        return "parsed-arguments(flags=%r, options=%r, arguments=%r)" % (
            sorted(self._flags),
            dict(self._options),
            list(self._arguments),
        )


def unquote(value, /):
    """
    Strip one layer of matching quotes surrounding an option value.

    The same quote character must open and close the value; anything else
    (a lone quote, mismatched quotes, a quote in the middle) is left untouched.
    """
    if match := _QUOTED.fullmatch(value):
        return match["value"]
    return value


def tokens(prompt=Unset, /):
    """
    Normalize a prompt into a list of raw tokens.

    - Unset: read tokens from sys.argv[1:].
    - str: shell-like string; split via shlex.split.
    - Iterable[str]: pre-tokenized sequence; items are kept as-is, like sys.argv.

    Raises
    - TypeError: when prompt is not Unset/str/Iterable[str], or when an iterable
      contains a non-string element.
    """
    if prompt is Unset:
        return sys.argv[1:]
    elif isinstance(prompt, str):
        return shlex.split(prompt)
    elif isinstance(prompt, Iterable):
        result = []
        for item in prompt:
            if not isinstance(item, str):
                raise TypeError("parse() argument must be a string or an iterable of strings")
            result.append(item)
        return result
    raise TypeError("parse() argument must be a string or an iterable of strings")


def parse(prompt=Unset, /, *, spaced=False):
    """
    Tokenize a prompt into ParsedArguments.

    Parameters
    - prompt: Unset | str | Iterable[str] (see tokens()).
    - spaced: bool (keyword-only)
      accept the legacy '--name value' form: a bare flag followed by a positional
      becomes an option. '=' forms are unaffected.

    Returns
    - ParsedArguments

    Notes
    - Pure and re-entrant: nothing but the given tokens (or sys.argv when Unset)
      is consulted, and no state is kept between calls.
    """
    flags = set()
    options = {}
    arguments = []

    stream = tokens(prompt)
    index = 0
    while index < len(stream):
        token = stream[index]
        index += 1

        if match := _OPTION.fullmatch(token):
            # Option first: a valid option is never reconsidered as a flag.
            options[match["name"].lower()] = unquote(match["value"])
            continue

        if match := _FLAG.fullmatch(token):
            name = match["name"].lower()
            if (
                spaced and
                not token.endswith("=") and
                index < len(stream) and
                not _OPTION.fullmatch(stream[index]) and
                not _FLAG.fullmatch(stream[index])
            ):
                options[name] = unquote(stream[index])
                index += 1
                continue
            flags.add(name)
            continue

        arguments.append(token)

    return ParsedArguments(flags, options, arguments)


__all__ = (
    "ParsedArguments",
    "parse",
    "tokens",
    "unquote",
)
