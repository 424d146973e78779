"""
Commandeer runners: bind parameters onto a command and run it.

What this module provides
- Dispatcher: the binder/dispatcher. Given a command (or a name to resolve), a
  ParamString and a Config, it
  1. resolves the command (exit 1 on failure),
  2. renders usage and stops when --help or -? was given (exit 0),
  3. instantiates the command and wires its streams,
  4. invokes every bound method in declaration order (exit 2 on the first
     missing argument or failing method; later bindings are not attempted),
  5. runs the command; its return value is the exit status,
  6. turns anything run() raises into exit 70 with a full report.
- CmdRunner: the `xp cmd` front end; consumes runner-level options placed before
  the command name, then hands the rest to a Dispatcher.
- main(): console entry point.

Runner options (before the command name)
- -c <path>: add a configuration source (repeatable; ./etc or . when none).
- -v: verbose diagnostics (tracebacks for argument and resolution errors).
- -?: show the runner's usage.
- -l: list the commands of every registered namespace and of the global module.

Diagnostics
- all dispatcher messages go to the error stream and start with '*** '.
"""
import inspect
import logging
import os.path
import sys
from collections import defaultdict
from inspect import Parameter

from rich.console import Group
from rich.text import Text

from .arguments import Arg, Args
from .commands import Commands
from .config import Config
from .faults import *
from .params import ParamString
from .utils import *

logger = logging.getLogger(__name__)


def _takes_argument(callable, /, *, skip=0):
    """
    Whether `callable` accepts one positional argument (after `skip` leading ones).
    """
    try:
        parameters = list(inspect.signature(callable).parameters.values())[skip:]
    except (TypeError, ValueError):
        return False
    return any(
        parameter.kind in (Parameter.POSITIONAL_ONLY, Parameter.POSITIONAL_OR_KEYWORD, Parameter.VAR_POSITIONAL)
        for parameter in parameters
    )


def _prog():
    return getattr(__import__("__main__"), "__prog__", "xp cmd")


class Dispatcher:
    """
    Binder/dispatcher for a single command invocation at a time.

    Parameters
    - input, out, err: text streams wired into every command instance
      (sys.stdin, sys.stdout and sys.stderr at call time when Unset).
    - commands: Commands resolver used by run_command() (one over the process-wide
      registry when Unset).
    - verbose: render tracebacks along with messages.
    """

    def __init__(self, input=Unset, out=Unset, err=Unset, /, *, commands=Unset, verbose=False):
        self.input = coalesce(input, sys.stdin)
        self.out = coalesce(out, sys.stdout)
        self.err = coalesce(err, sys.stderr)
        self.commands = coalesce(commands, Commands())
        self.verbose = bool(verbose)

    def run_command(self, name, params, config=Unset, /):
        """
        Resolve `name` and dispatch it with `params`; return the exit status.
        """
        try:
            command = self.commands.resolve(name)
        except CommandException as e:
            return report(e, self.err, verbose=self.verbose)
        return self.dispatch(command, params, config)

    def dispatch(self, command, params, config=Unset, /):
        """
        Bind `params` onto a resolved command and run it; return the exit status.
        """
        if not isinstance(params, ParamString):
            raise TypeError("dispatch() second argument must be a param string")

        if params.exists("help", "?"):
            self.command_usage(command)
            return int(ExitCode.OK)

        config = coalesce(config, Config())
        try:
            instance = self._instantiate(command, config)
        except Exception as e:
            return self._failed(RunFailureError(str(e), command=command), e)

        instance.input = self.input
        instance.out = self.out
        instance.err = self.err

        for name, binding in command.__bindings__.items():
            try:
                arguments = binding.resolve(params)
            except MissingArgumentError as e:
                return report(e, self.err, verbose=self.verbose)

            if arguments is None:
                logger.debug("skipping %s: %s not given", name, binding.label)
                continue

            logger.debug("binding %s to %s", binding.label, name)
            try:
                binding(instance, *arguments)
            except Exception as e:
                return self._failed(OperationFailureError(
                    str(e) or type(e).__name__,
                    selector=binding.label,
                    batch=isinstance(binding, Args),
                    method=name,
                ), e)

        try:
            result = instance.run()
            return int(ExitCode.OK) if result is None else int(result)
        except Exception as e:
            return self._failed(RunFailureError(str(e), command=command), e)

    def _failed(self, fault, cause, /):
        fault.__cause__ = cause
        return report(fault, self.err, verbose=self.verbose)

    @staticmethod
    def _instantiate(command, config):
        """
        new_instance(config) when defined, else the constructor; the config is only
        passed to callables accepting an argument.
        """
        if inspect.getattr_static(command, "new_instance", Unset) is not Unset:
            factory = command.new_instance
            logger.debug("creating %s via new_instance()", command.__qualname__)
            return factory(config) if _takes_argument(factory) else factory()
        if command.__init__ is not object.__init__ and _takes_argument(command.__init__, skip=1):
            return command(config)
        return command()

    def command_usage(self, command, /):
        """
        Render the usage of a command to the error stream.

        Sections
        - title: first line of the class docstring (the display name when undocumented),
          followed by the rest of the docstring.
        - usage: '$ <prog> <name> <positional>... [--optional] --required'.
        - details: one entry per @arg binding with the method docstring; named
          bindings also show their short alias.

        Customization
        - Define a mapping named __styles__ in __main__ to override palette entries;
          a __prog__ string there replaces 'xp cmd'.
        """
        output = console(self.err)
        colorful = output.is_terminal
        styles = defaultdict(str, {
            "title": "bold #FF4D94",
            "description": "italic #A3A3A3",
            "usage-label": "bold #00E6FF",
            "program-name": "bold #FFFFFF",
            "positional": "bold #FFD600",
            "option-name": "bold #00E6FF",
            "argument-description": "#9CA3AF",
            "alias": "italic #22C55E",
        } | getattr(__import__("__main__"), "__styles__", {}))

        def styler(style):
            return styles[style] if colorful else ""

        name = self.commands.display_name(command)
        doc = inspect.cleandoc(command.__doc__ or "")
        title, _, description = doc.partition("\n")

        renders = [Text(title.strip(" #") or name, styler("title"))]
        if description.strip():
            renders.append(Text(description.strip(), styler("description")))

        positionals = {}
        named = {}
        details = []
        for method, binding in command.__bindings__.items():
            if not isinstance(binding, Arg):
                continue
            descr = inspect.cleandoc(binding.method.__doc__ or "")
            if binding.position is not None:
                positionals[binding.position] = derive_name(method)
                details.append((Text(binding.label, styler("positional")), descr, None))
            else:
                named[binding.name] = binding.optional or binding.flag
                details.append((
                    Text("--" + binding.name, styler("option-name")),
                    descr,
                    binding.short or binding.name[0],
                ))

        usage = Text()
        usage.append("Usage", styler("usage-label")).append(": ")
        usage.append("$ %s %s" % (_prog(), name), styler("program-name"))
        for position in sorted(positionals):
            usage.append(" ").append("<%s>" % positionals[position], styler("positional"))
        for option, optional in named.items():
            usage.append(" ").append("[--%s]" % option if optional else "--%s" % option, styler("option-name"))
        renders.append(usage)

        if details:
            section = Text("Arguments:")
            for label, descr, alias in details:
                section.append("\n* ").append(label)
                if alias:
                    section.append(" (also: -%s)" % alias, styler("alias"))
                if descr:
                    section.append("\n  ").append(descr.replace("\n", "\n  "), styler("argument-description"))
            renders.append(section)

        output.print(Group(*renders))


class CmdRunner:
    """
    `xp cmd` front end.

    Parameters
    - input, out, err: text streams (process streams at call time when Unset).
    - commands: Commands resolver holding the registered namespaces.
    """
    DEFAULT_CONFIG_PATH = "etc"

    def __init__(self, input=Unset, out=Unset, err=Unset, /, *, commands=Unset):
        self.input = coalesce(input, sys.stdin)
        self.out = coalesce(out, sys.stdout)
        self.err = coalesce(err, sys.stderr)
        self.commands = coalesce(commands, Commands())
        self.verbose = False

    def self_usage(self):
        console(self.err).print(Text.assemble(
            "Runs commands: ",
            ("`%s <command> [options]`" % _prog(), "bold"),
            "\n\nOptions before the command name:",
            "\n  -c <path>  add a configuration source (default: ./etc, else .)",
            "\n  -v         verbose diagnostics",
            "\n  -l         list named commands",
            "\n  -?         show this help",
            "\n\nPass --help or -? after the command name to see its usage.",
        ))

    def list_commands(self):
        """
        Render the commands every registered namespace provides, then the global ones.
        """
        output = console(self.err)
        sections = [Text("Named commands", "bold")]

        def listing(commands):
            if not commands:
                return "  (no commands)"
            return "\n".join("  $ %s %s" % (_prog(), self.commands.display_name(command)) for command in commands)

        for namespace in self.commands.all_namespaces():
            sections.append(Text("* In namespace %s\n%s" % (namespace, listing(self.commands.commands_in(namespace)))))
        if self.commands.globals is not Unset:
            sections.append(Text("* In global namespace\n%s" % listing(self.commands.commands_in())))

        output.print(Group(*sections))

    def run(self, params, config=Unset, /):
        """
        Consume runner options, then dispatch the named command; return the exit status.
        """
        if not isinstance(params, ParamString):
            raise TypeError("run() first argument must be a param string")

        tokens = params.list
        if not tokens:
            self.self_usage()
            return int(ExitCode.UNRESOLVED)

        config = coalesce(config, Config())
        offset = 0
        while offset < len(tokens):
            match tokens[offset]:
                case "-c" if offset + 1 < len(tokens):
                    try:
                        config.append(tokens[offset + 1])
                    except (TypeError, ValueError) as e:
                        console(self.err).print("*** %s" % e)
                        return int(ExitCode.UNRESOLVED)
                    offset += 2
                case "-v":
                    self.verbose = True
                    offset += 1
                case "-?":
                    self.self_usage()
                    return int(ExitCode.UNRESOLVED)
                case "-l":
                    self.list_commands()
                    return int(ExitCode.UNRESOLVED)
                case _:
                    break

        if offset >= len(tokens):
            console(self.err).print("*** Missing command name")
            return int(ExitCode.UNRESOLVED)

        if config.is_empty():
            config.append(self.DEFAULT_CONFIG_PATH if os.path.isdir(self.DEFAULT_CONFIG_PATH) else ".")

        dispatcher = Dispatcher(self.input, self.out, self.err, commands=self.commands, verbose=self.verbose)
        return dispatcher.run_command(tokens[offset], ParamString(tokens[offset + 1:]), config)


def main(argv=Unset, /, *, namespaces=Unset, globals=Unset):
    """
    Console entry point: run `xp cmd`-style arguments and return the exit status.

    Parameters
    - namespaces: registry or names searched for short command names (the
      process-wide registry when Unset).
    - globals: name of a module playing the global namespace; bare names are
      looked up as top-level modules when Unset.
    """
    tokens = sys.argv[1:] if argv is Unset else list(argv)
    return CmdRunner(commands=Commands(namespaces, globals=globals)).run(ParamString(tokens))


__all__ = (
    "Dispatcher",
    "CmdRunner",
    "main",
)
