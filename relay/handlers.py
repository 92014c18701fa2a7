"""
Relay handler layer: resolve a parsed command line into a chain of handlers and run it.

What this module provides
- Handler: base class of every command. One instance is created per resolution
  level; it owns its ParsedArguments and the call structure (the handlers
  visited before it, root first).
- hook(kind, *names) / route(*words): explicit registration of hook and
  command methods (the naming convention below registers them implicitly).
- invoke(handler, prompt): build the root handler and run it.

Resolution (Handler.resolve_and_run)
1. initialize() runs (override it for setup work).
2. Hooks fire: flag_<name>() for every flag, option_<name>(value) for every
   option and argument_<word>() for every positional the handler knows about.
3. The command word (first positional), if any, is resolved:
   • "<namespace>.<Word>" registered as a handler type → a child handler is built
     with the word shifted off, the same flags/options, and this handler
     appended to the call structure; its result is returned;
   • run_<word> (or a method registered with @route) → the word is shifted off
     and the method runs;
   • otherwise run() (the default action, which shows help) runs.
   Before a local or default method runs, a --help flag shows help and ends the
   run, and the remaining positionals are bound to the method's parameters.

Registry
- Handler classes register themselves when they are defined. A class nested in
  another handler class is reached through its outer class:

      class App(Handler):
          class Deploy(Handler):      # "app deploy ..."
              def run_prod(self): ... # "app deploy prod"

  A class defined elsewhere can be attached with class keywords:

      class Deploy(Handler, parent=App, command="ship"):  # "app ship ..."

Terminal conditions go through Handler.trigger(), see relay.faults for the
shell (print and exit) versus embedded (raise) behavior.
"""
import enum
import inspect
import logging
from collections.abc import Iterable, Mapping
from inspect import Parameter
from types import MappingProxyType

from . import console
from .arguments import ParsedArguments, parse
from .faults import *
from .utils import *

logger = logging.getLogger(__name__)

# Method-name prefixes that register hooks and routes without a decorator.
_CONVENTIONS = {
    "flag": "flag_",
    "option": "option_",
    "argument": "argument_",
    "route": "run_",
}

# identifier -> handler type, filled at class creation.
_handlers = {}


class State(enum.Enum):
    """
    Lifecycle of a handler instance; no state is ever revisited.
    """
    CREATED = "created"
    INITIALIZING = "initializing"
    HOOK_DISPATCH = "hook-dispatch"
    DELEGATED = "delegated"
    LOCAL_METHOD = "local-method"
    DEFAULT = "default"
    HELP_SHOWN = "help-shown"
    TERMINAL = "terminal"


def _segment(word):
    # Command words are matched case-insensitively: "DEPLOY" and "deploy" both select "Deploy".
    return word.lower().capitalize()


def _register(cls, identifier):
    """
    Register cls (and, recursively, the handler classes nested in it) under identifier.

    Redefinitions of the same class (same module and qualified name) replace the
    previous entry; a different class claiming a taken identifier is an error.
    """
    previous = _handlers.get(identifier)
    if previous is not None and previous is not cls and (
        previous.__module__ != cls.__module__ or previous.__qualname__ != cls.__qualname__
    ):
        raise ValueError(f"handler identifier {identifier!r} is already in use by {previous.__qualname__}")

    # Drop the provisional key a nested class received before its outer class existed.
    old = cls.__dict__.get("__identifier__")
    if old is not None and old != identifier and _handlers.get(old) is cls:
        del _handlers[old]

    cls.__identifier__ = identifier
    _handlers[identifier] = cls

    for name, object in cls.__dict__.items():
        if (
            isinstance(object, HandlerType) and
            object.__qualname__ == f"{cls.__qualname__}.{name}" and
            not object.__dict__.get("__attached__", False)
        ):
            _register(object, f"{identifier}.{_segment(object.__command__)}")


class HandlerType(type):
    """
    Metaclass that registers handler classes and compiles their hook tables.

    Class keywords
    - parent: handler class under whose namespace this class is registered.
    - command: command word selecting this class (defaults to the class name).

    Compiled attributes
    - __identifier__: registry key, also the default namespace of instances.
    - __command__: the command word this class answers to.
    - __hooktable__: read-only mapping (kind, name) -> method name, where kind is
      "flag", "option", "argument" or "route". Inherited entries are kept and may
      be overridden by subclasses.
    """

    def __new__(cls, name, bases, namespace, parent=Unset, command=Unset, **options):
        self = super().__new__(cls, name, bases, namespace, **options)

        abstract = not any(isinstance(base, HandlerType) for base in bases)

        table = {}
        for ancestor in reversed(self.__mro__[1:]):
            table.update(getattr(ancestor, "__hooktable__", {}))

        # The base class only provides the machinery; its own methods are never hooks.
        for attribute, object in () if abstract else namespace.items():
            if attribute.startswith("_") or not callable(object):
                continue
            for kind, prefix in _CONVENTIONS.items():
                if attribute.startswith(prefix) and len(attribute) > len(prefix):
                    table[kind, methodize(attribute[len(prefix):])] = attribute
            for kind, names in getattr(object, "__relay__", ()):
                for word in names:
                    table[kind, methodize(word)] = attribute

        self.__hooktable__ = MappingProxyType(table)

        if parent is not Unset and not isinstance(parent, HandlerType):
            raise TypeError(f"handler {name!r} 'parent' must be a handler class")
        if command is not Unset and (not isinstance(command, str) or not command.strip()):
            raise ValueError(f"handler {name!r} 'command' must be a non-empty string")

        self.__command__ = coalesce(command, name).strip()
        self.__attached__ = parent is not Unset

        # The base class itself is not a command.
        if abstract:
            self.__identifier__ = f"{self.__module__}.{self.__qualname__}"
            return self

        if parent is not Unset:
            _register(self, f"{parent.__identifier__}.{_segment(self.__command__)}")
        else:
            prefix, _, _ = self.__qualname__.rpartition(".")
            _register(self, ".".join(filter(None, (self.__module__, prefix, _segment(self.__command__)))))

        return self


def hook(kind, /, *names):
    """
    Register the decorated method as a hook or a route.

    Parameters
    - kind: "flag" | "option" | "argument" | "route"
    - names: flag/option names, argument values or command words.

    Example
        class App(Handler):
            @hook("flag", "v", "verbose")
            def chatty(self): ...

            @hook("route", "ls", "list")
            def listing(self, *paths): ...
    """
    if kind not in _CONVENTIONS:
        raise ValueError(f"hook() kind must be one of {', '.join(_CONVENTIONS)}")
    if not names:
        raise TypeError("hook() requires at least one name")
    for name in names:
        if not isinstance(name, str) or not name:
            raise TypeError("hook() names must be non-empty strings")

    @rename("hook")
    def decorator(method):
        if not callable(method):
            raise TypeError("@hook() must be applied to a callable")
        method.__relay__ = (*getattr(method, "__relay__", ()), (kind, names))
        return method
    return decorator


def route(*words):
    """
    Shortcut for hook("route", *words).
    """
    return hook("route", *words)


class Handler(metaclass=HandlerType):
    """
    Base class of every command.

    Configuration (class attributes, inherited by subclasses)
    - help: help text; defaults to the class docstring, else "Invalid input".
    - require_arguments: show help and fail when no positional was given.
    - spaced_options: accept the legacy '--name value' option form when parsing.
    - shell: print and exit on terminal conditions (False: raise them instead).
    - colorful: colorize output (the 'no-colors' flag turns it off per run).
    - fancy: render help and faults inside panels.

    Instances are single-use: resolve_and_run() may be called once.
    """
    help = Unset
    require_arguments = False
    spaced_options = False
    shell = True
    colorful = True
    fancy = False

    def __init__(
            self,
            arguments=Unset,
            /,
            namespace=Unset,
            call_structure=(),
            *,
            shell=Unset,
            colorful=Unset,
            fancy=Unset
    ):
        if not isinstance(arguments, ParsedArguments):
            arguments = parse(arguments, spaced=self.spaced_options)
        call_structure = tuple(call_structure)
        for ancestor in call_structure:
            if not isinstance(ancestor, Handler):
                raise TypeError(f"{type(self).__name__} 'call_structure' must only contain handlers")
        namespace = coalesce(namespace, type(self).__identifier__)
        if not isinstance(namespace, str) or not namespace:
            raise ValueError(f"{type(self).__name__} 'namespace' must be a non-empty string")

        self._parsed = arguments
        self._namespace = namespace
        self._call_structure = call_structure
        self._state = State.CREATED
        self._outcome = Unset
        self.shell = bool(coalesce(shell, type(self).shell))
        self.colorful = bool(coalesce(colorful, type(self).colorful))
        self.fancy = bool(coalesce(fancy, type(self).fancy))

    def __repr__(self):
        return "%s(namespace=%r, arguments=%r, flags=%r, options=%r, depth=%d)" % (
            type(self).__name__,
            self._namespace,
            list(self.arguments),
            sorted(self.flags),
            dict(self.options),
            len(self._call_structure),
        )

    # ── Overridable ───────────────────────────────────────────────────────────

    def initialize(self):
        """
        Setup work run before hooks and resolution; override in handlers.
        """

    def run(self):
        """
        Default action when no nested handler or command method matched.
        """
        self.show_help()

    # ── State ─────────────────────────────────────────────────────────────────

    @property
    def parsed(self):
        return self._parsed

    @property
    def arguments(self):
        return self._parsed.arguments

    @property
    def flags(self):
        return self._parsed.flags

    @property
    def options(self):
        return self._parsed.options

    @property
    def namespace(self):
        return self._namespace

    @property
    def call_structure(self):
        return self._call_structure

    @property
    def state(self):
        return self._state

    @property
    def outcome(self):
        """
        The branch taken by resolve_and_run (DELEGATED, LOCAL_METHOD, DEFAULT or HELP_SHOWN).
        """
        return coalesce(self._outcome)

    def set_arguments(self, arguments, /):
        if isinstance(arguments, str) or not isinstance(arguments, Iterable):
            raise TypeError("set_arguments() argument must be an iterable of strings")
        self._parsed = self._parsed.replace(arguments=tuple(arguments))

    def set_flags(self, flags, /):
        if isinstance(flags, str) or not isinstance(flags, Iterable):
            raise TypeError("set_flags() argument must be an iterable of strings")
        self._parsed = self._parsed.replace(flags=frozenset(flags))

    def set_options(self, options, /):
        if not isinstance(options, Mapping):
            raise TypeError("set_options() argument must be a mapping")
        self._parsed = self._parsed.replace(options=options)

    def has_flag(self, flag, /):
        return flag in self.flags

    def has_option(self, option, /):
        return option in self.options

    def get_option(self, option, default=None, /):
        return self.options.get(option, default)

    def has_argument(self, argument, /):
        return argument in self.arguments

    def get_argument_at(self, index, default=None, /):
        try:
            return self.arguments[index]
        except IndexError:
            return default

    # ── Resolution ────────────────────────────────────────────────────────────

    def resolve_and_run(self):
        """
        Resolve this level and run exactly one of: child handler, local method, default.

        Returns
        - whatever the executed method (or the child's resolution) returned.

        Raises
        - RuntimeError when called more than once on the same instance.
        - CommandException subclasses in embedded mode (shell=False).
        """
        if self._state is not State.CREATED:
            raise RuntimeError(f"{type(self).__name__} handler was already resolved")
        try:
            self._state = State.INITIALIZING
            self.initialize()
            self._state = State.HOOK_DISPATCH
            self._dispatch_hooks()
            return self._resolve()
        finally:
            self._state = State.TERMINAL

    def _dispatch_hooks(self):
        table = type(self).__hooktable__
        for flag in sorted(self.flags):
            if (attribute := table.get(("flag", methodize(flag)))) is not None:
                logger.debug("%s: flag hook %s", type(self).__name__, attribute)
                getattr(self, attribute)()
        for option, value in sorted(self.options.items()):
            if (attribute := table.get(("option", methodize(option)))) is not None:
                logger.debug("%s: option hook %s", type(self).__name__, attribute)
                method = getattr(self, attribute)
                # A hook without a positional parameter reads the value through get_option().
                if _takes_positional(method):
                    method(value)
                else:
                    method()
        for argument in self.arguments:
            if (attribute := table.get(("argument", methodize(argument)))) is not None:
                logger.debug("%s: argument hook %s", type(self).__name__, attribute)
                getattr(self, attribute)()

    def _resolve(self):
        if self.require_arguments and not self.arguments and not self.has_flag("help"):
            self._outcome = State.HELP_SHOWN
            return self.trigger(MissingArgumentsError("%s requires arguments" % self._name()))

        if (command := self.get_argument_at(0)) is not None:
            if (child := _handlers.get(f"{self._namespace}.{_segment(command)}")) is not None:
                self._outcome = State.DELEGATED
                logger.debug("%s: delegating %r to %s", type(self).__name__, command, child.__name__)
                return child(
                    self._parsed.shift(),
                    call_structure=self._call_structure + (self,),
                    shell=self.shell,
                    colorful=self.colorful,
                    fancy=self.fancy,
                ).resolve_and_run()

            if (attribute := type(self).__hooktable__.get(("route", methodize(command)))) is not None:
                logger.debug("%s: running %s", type(self).__name__, attribute)
                self._parsed = self._parsed.shift()
                return self._execute(getattr(self, attribute), State.LOCAL_METHOD)

        logger.debug("%s: running default action", type(self).__name__)
        return self._execute(self.run, State.DEFAULT)

    def _execute(self, method, outcome):
        if self.has_flag("help"):
            self._outcome = State.HELP_SHOWN
            return self.trigger(HelpShown())

        self._outcome = outcome
        signature = inspect.signature(method)
        if not signature.parameters:
            return method()

        try:
            bound = signature.bind(*self.arguments)
        except TypeError:
            limit = sum(
                parameter.kind in (Parameter.POSITIONAL_ONLY, Parameter.POSITIONAL_OR_KEYWORD)
                for parameter in signature.parameters.values()
            )
            if not any(parameter.kind is Parameter.VAR_POSITIONAL for parameter in signature.parameters.values()) \
                    and len(self.arguments) > limit:
                return self.trigger(UnexpectedArgumentsError(
                    "%s takes at most %d argument(s) but %d were given" % (self._name(), limit, len(self.arguments)),
                    arguments=self.arguments,
                ))
            return self.trigger(MissingArgumentsError(
                "%s is missing required argument(s)" % self._name(),
                arguments=self.arguments,
            ))
        return method(*bound.args, **bound.kwargs)

    def manual_run(self, prompt, /, merge=True, flags=True, options=True, *, root=Unset):
        """
        Dispatch a fresh command line from inside a running handler.

        Parameters
        - prompt: str | Iterable[str] | ParsedArguments, tokenized like the process arguments.
        - merge: append this handler's remaining positionals after the prompt's.
        - flags: True to add this handler's flags, an iterable of names to add
          instead, False to add none. Flags parsed from the prompt are always kept.
        - options: True to inherit this handler's options, a mapping to inherit
          instead, False for none. Options parsed from the prompt win.
        - root: handler type to start from; defaults to the type of the root of
          the call structure (this handler's type when it is the root).

        Returns
        - the result of the new resolution, which runs to completion before returning.
        """
        parsed = prompt if isinstance(prompt, ParsedArguments) else parse(prompt, spaced=self.spaced_options)

        if flags is True:
            flags = self.flags
        elif not flags:
            flags = ()
        elif isinstance(flags, str):
            flags = (flags,)

        if options is True:
            options = self.options
        elif not options:
            options = {}
        elif not isinstance(options, Mapping):
            raise TypeError("manual_run() 'options' must be a bool or a mapping")

        root = coalesce(root, type(self._call_structure[0]) if self._call_structure else type(self))
        if not isinstance(root, HandlerType):
            raise TypeError("manual_run() 'root' must be a handler class")

        arguments = ParsedArguments(
            parsed.flags | frozenset(flags),
            {**options, **parsed.options},
            parsed.arguments + (self.arguments if merge else ()),
        )
        logger.debug("%s: manual run of %s with %r", type(self).__name__, root.__name__, arguments)
        return root(
            arguments,
            root.__identifier__,
            self._call_structure + (self,),
            shell=self.shell,
            colorful=self.colorful,
            fancy=self.fancy,
        ).resolve_and_run()

    def get_parent(self, kind=Unset, /):
        """
        Return the closest handler before this one in the call structure.

        Parameters
        - kind: Unset | type | str
          • Unset: the immediate predecessor.
          • a handler type: the nearest ancestor that is an instance of it.
          • a string: the nearest ancestor whose class name, qualified name or
            registry identifier equals it.

        A missing parent is fatal (NoParentError).
        """
        if not self._call_structure:
            return self.trigger(NoParentError("%s has no parent handler" % self._name()))
        parent = self._call_structure[-1]
        if kind is Unset or _matches(parent, kind):
            return parent
        return parent.get_parent(kind)

    # ── Faults ────────────────────────────────────────────────────────────────

    def trigger(self, fault, /, **options):
        """
        Fire a fault with this handler's runtime options (help is rendered first when the fault asks for it).
        """
        if not isinstance(fault, CommandException):
            raise TypeError("trigger() argument must be a command exception")
        fault = fault.__replace__(**{
            "handler": self,
            "shell": self.shell,
            "colorful": self._colorful(),
            "fancy": self.fancy,
        } | options)
        if fault.helpful:
            self.show_help(stderr=fault.status != 0)
        logger.debug("%s: %s (%s)", type(self).__name__, type(fault).__name__, fault.code)
        trigger(fault)

    def assert_num_arguments(self, count, /):
        if len(self.arguments) < count:
            self.trigger(MissingArgumentsError(
                "expected at least %d argument(s) but %d were given" % (count, len(self.arguments)),
                expected=count,
            ))

    def assert_has_argument(self, argument, /):
        if not self.has_argument(argument):
            self.trigger(MissingArgumentError("missing argument %r" % argument, argument=argument))

    def assert_has_flag(self, flag, /):
        if not self.has_flag(flag):
            self.trigger(MissingFlagError("missing flag %r" % flag, flag=flag))

    def assert_has_option(self, option, /):
        if not self.has_option(option):
            self.trigger(MissingOptionError("missing option %r" % option, option=option))

    def bail(self, message, /, *, label="ERROR"):
        """
        Report an error and stop (exit in shell mode, raise BailError otherwise).
        """
        self.trigger(BailError(message), label=label)

    # ── Output ────────────────────────────────────────────────────────────────

    def _name(self):
        return self._namespace.rpartition(".")[2].lower()

    def _colorful(self):
        return self.colorful and not self.has_flag("no-colors")

    def show_help(self, exit=False, *, stderr=False):
        """
        Print this handler's help text; with exit=True end the run (HelpShown).
        """
        if exit:
            self._outcome = State.HELP_SHOWN
            return self.trigger(HelpShown())
        text = coalesce(type(self).help, type(self).__doc__ or "Invalid input")
        console.render_help(
            text,
            title=self._name(),
            colorful=self._colorful(),
            fancy=self.fancy,
            stderr=stderr,
        )

    def color_text(self, text, color="normal", /):
        return console.colorize(text, color, colorful=self._colorful())

    def print_info(self, message, /, newline=True):
        console.echo(message, newline=newline, colorful=self._colorful())

    def print_debug(self, message, /, newline=True):
        logger.debug("%s", message)
        console.echo(message, newline=newline, color="dim", colorful=self._colorful())

    def print_table(self, rows, /, headers=()):
        console.render_table(rows, headers, colorful=self._colorful())

    def print_list(self, items, /):
        console.render_list(items, colorful=self._colorful())

    def get_input(self, prompt="", /):
        return console.read_input(prompt)

    def confirm(self, question, /):
        return console.is_affirmative(self.get_input(question))


def _takes_positional(method):
    return any(
        parameter.kind in (Parameter.POSITIONAL_ONLY, Parameter.POSITIONAL_OR_KEYWORD, Parameter.VAR_POSITIONAL)
        for parameter in inspect.signature(method).parameters.values()
    )


def _matches(handler, kind):
    if isinstance(kind, type):
        return isinstance(handler, kind)
    if isinstance(kind, str):
        cls = type(handler)
        return kind in (cls.__name__, cls.__qualname__, cls.__identifier__)
    raise TypeError("get_parent() argument must be a handler type or a string")


def lookup(identifier, /):
    """
    Return the handler type registered under identifier, or None.
    """
    return _handlers.get(identifier)


def invoke(handler, prompt=Unset, /, **options):
    """
    Run a handler type (or an already constructed handler) on a prompt.

    Parameters
    - handler: Handler subclass, or a Handler instance (prompt must then be Unset).
    - prompt:
      • Unset: read sys.argv[1:].
      • str: split with shlex.split.
      • Iterable[str]: use items as tokens.
    - options: shell, colorful, fancy overrides for this run.

    Returns
    - the value returned by the command that ran.
    """
    if isinstance(handler, Handler):
        if prompt is not Unset or options:
            raise TypeError("invoke() takes no prompt or options for an already constructed handler")
        return handler.resolve_and_run()
    if isinstance(handler, HandlerType) and handler is not Handler:
        return handler(prompt, **options).resolve_and_run()
    raise TypeError("invoke() first argument must be a handler class or instance")


__all__ = (
    "State",
    "Handler",
    "hook",
    "route",
    "lookup",
    "invoke",
)
