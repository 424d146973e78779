"""
Commandeer faults (errors surfaced by resolution, binding and running) and rendering.

Scope
- ExitCode: canonical exit statuses produced by a dispatch.
- CommandException: base type carrying a message + options, knowing its exit code
  and how to render itself on an error stream.
- One subclass per failure kind, from resolving a command name to running it.
- console(): a rich console bound to a given text stream.

Rendering rules
- Every diagnostic line starts with '*** ' so users (and scripts) can grep for it.
- Terse mode renders the message only; verbose mode appends the full traceback of
  the underlying failure (the exception's __cause__, or the fault itself).
- Verbosity never changes which exit status is returned.

Integration
- ParamString raises ArgumentNotFoundError; the dispatcher converts it into
  MissingArgumentError or skip-logic and never lets it escape.
- The dispatcher catches every fault at its boundary and calls report().
"""
from enum import IntEnum
from types import MappingProxyType

from rich.console import Console
from rich.traceback import Traceback

from .utils import Unset


class ExitCode(IntEnum):
    """
    exit statuses of a dispatch (stable identifiers).

    - OK: the command ran; its own return value is used instead when it gives one.
    - UNRESOLVED: the command name could not be turned into a runnable command,
      or the runner was called without one.
    - BINDING: an argument was missing or an operation refused its value.
    - SOFTWARE: the command's run() raised (EX_SOFTWARE according to sysexits.h).
    """
    OK         = 0
    UNRESOLVED = 1
    BINDING    = 2
    SOFTWARE   = 70


def console(stream, /):
    """
    return a rich console writing to `stream`.

    the console never wraps soft lines, never highlights and never interprets markup,
    so what is written is exactly what the message says. styles are only emitted
    when the stream itself is a terminal.
    """
    isatty = getattr(stream, "isatty", None)
    return Console(
        file=stream,
        force_terminal=bool(isatty and isatty()),
        highlight=False,
        markup=False,
        emoji=False,
        soft_wrap=True,
    )


class CommandException(Exception):
    """
    base fault: a message plus read-only options.

    subclasses set `code` (the exit status reported by the dispatcher) and may
    override `headline` to shape the first line.
    """
    code = ExitCode.UNRESOLVED

    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        super().__init__(message if message is not Unset else "")
        self.message = message
        self.options = MappingProxyType(options)

    def __str__(self):
        return self.message if self.message is not Unset else type(self).__name__

    @property
    def headline(self):
        return str(self)

    def render(self, stream, /, *, verbose=False):
        """
        write this fault to `stream`: '*** <headline>' and, in verbose mode, the traceback.
        """
        output = console(stream)
        output.print("*** " + self.headline)
        if verbose:
            failure = self.__cause__ or self
            output.print(Traceback.from_exception(type(failure), failure, failure.__traceback__))


class CommandNotFoundError(CommandException, LookupError):
    code = ExitCode.UNRESOLVED


class NotRunnableError(CommandException, TypeError):
    code = ExitCode.UNRESOLVED


class ArgumentNotFoundError(CommandException, LookupError):
    code = ExitCode.BINDING


class MissingArgumentError(CommandException):
    code = ExitCode.BINDING

    @property
    def headline(self):
        return "Argument %s does not exist!" % self.options["selector"]


class OperationFailureError(CommandException):
    code = ExitCode.BINDING

    @property
    def headline(self):
        kind = "arguments" if self.options.get("batch", False) else "argument"
        return "Error for %s %s: %s" % (kind, self.options["selector"], self.message)


class RunFailureError(CommandException):
    """
    the command's main action raised; always rendered in full.
    """
    code = ExitCode.SOFTWARE

    def render(self, stream, /, *, verbose=True):
        failure = self.__cause__ or self
        output = console(stream)
        output.print("*** %s: %s" % (type(failure).__name__, self.message))
        output.print(Traceback.from_exception(type(failure), failure, failure.__traceback__))


def report(fault, stream, /, *, verbose=False):
    """
    render a fault on `stream` and return its exit status.

    contract
    - fault must be a CommandException; anything else is a programming error.
    """
    if not isinstance(fault, CommandException):
        raise TypeError("report() argument must be a command exception")
    fault.render(stream, verbose=verbose)
    return int(fault.code)


__all__ = (
    "ExitCode",
    "CommandException",
    "CommandNotFoundError",
    "NotRunnableError",
    "ArgumentNotFoundError",
    "MissingArgumentError",
    "OperationFailureError",
    "RunFailureError",
    "console",
    "report",
)
