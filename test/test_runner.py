"""
Dispatcher and front end tests (binding, exit statuses, diagnostics, usage).

Scope
- Validate optional/required single bindings, flags and batch bindings.
- Validate fail-fast reporting: missing arguments and failing operations exit 2,
  a failing run() exits 70, resolution failures exit 1.
- Validate instantiation (factory, constructor with config) and stream wiring.
- Validate the help short-circuit and the CmdRunner runner-level options.

Conventions
- Test method names follow CamelCase per project convention.
- Every dispatch writes to io.StringIO streams; diagnostics are asserted on the
  error stream, command output on the output stream.
"""

import io
import unittest
from unittest import TestCase

from commandeer import (
    CmdRunner,
    Command,
    Commands,
    Config,
    Dispatcher,
    ParamString,
    arg,
    args,
    registry,
)


class Greet(Command):
    """
    Greets someone

    Writes a greeting to the output stream.
    """

    def __init__(self):
        self.name = None
        self.shout = False

    @arg
    def set_name(self, name="unknown"):
        """Whom to greet"""
        self.name = name

    @arg
    def set_shout(self):
        self.shout = True

    def run(self):
        greeting = "hello %s" % self.name
        self.out.write(greeting.upper() if self.shout else greeting)


class Connect(Command):
    calls = []

    @arg(position=0)
    def set_database(self, database):
        """Database name"""
        self.calls.append(("database", database))

    @arg(name="host", short="H")
    def set_host(self, host):
        if host == "bad":
            raise ValueError("unknown host %s" % host)
        self.calls.append(("host", host))

    @arg
    def set_port(self, port="5432"):
        self.calls.append(("port", port))

    def run(self):
        self.calls.append(("run",))


class Copy(Command):
    def __init__(self):
        self.files = None

    @args(select="[0..1]")
    def set_files(self, files):
        if "missing" in files:
            raise OSError("no such file")
        self.files = files

    def run(self):
        self.out.write(",".join(self.files))


class Choker(Command):
    def __init__(self):
        self.choke = False

    @arg
    def set_choke(self):
        self.choke = True

    def run(self):
        self.out.write("true" if self.choke else "false")


class Fails(Command):
    def run(self):
        raise ValueError("boom")


class Answer(Command):
    def __init__(self):
        self.answer = 0

    @arg
    def set_answer(self, answer):
        self.answer = int(answer)

    def run(self):
        return self.answer


class Configured(Command):
    seen = []

    def __init__(self, config):
        self.seen.append(config)

    def run(self):
        return 0


class Factory(Command):
    seen = []

    @classmethod
    def new_instance(cls, config):
        cls.seen.append(config)
        return cls()

    def run(self):
        return 0


class Unbuildable(Command):
    @classmethod
    def new_instance(cls, config):
        raise RuntimeError("no database")

    def run(self):
        return 0


class Echo(Command):
    def run(self):
        self.out.write(self.input.read())
        self.err.write("done")


class DispatcherTestCase(TestCase):
    def setUp(self):
        self.input = io.StringIO("from input")
        self.out = io.StringIO()
        self.err = io.StringIO()

    def dispatch(self, command, tokens, config=None, *, verbose=False):
        dispatcher = Dispatcher(self.input, self.out, self.err, verbose=verbose)
        if config is None:
            return dispatcher.dispatch(command, ParamString(tokens))
        return dispatcher.dispatch(command, ParamString(tokens), config)


class TestBinding(DispatcherTestCase):
    """Single, flag and batch bindings."""

    def setUp(self):
        super().setUp()
        Connect.calls.clear()

    def testOptionalValueUsesDefaultWhenAbsent(self):
        self.assertEqual(self.dispatch(Greet, []), 0)
        self.assertEqual(self.out.getvalue(), "hello unknown")

    def testNamedValueByAlias(self):
        self.assertEqual(self.dispatch(Greet, ["-n", "world", "-s"]), 0)
        self.assertEqual(self.out.getvalue(), "HELLO WORLD")

    def testNamedValueByLongName(self):
        self.assertEqual(self.dispatch(Greet, ["--name=Timm"]), 0)
        self.assertEqual(self.out.getvalue(), "hello Timm")

    def testBindingsRunInDeclarationOrder(self):
        self.assertEqual(self.dispatch(Connect, ["-p", "1", "--host=db", "prod"]), 0)
        self.assertEqual(Connect.calls, [("database", "prod"), ("host", "db"), ("port", "1"), ("run",)])

    def testMissingPositionalStopsWithExitTwo(self):
        self.assertEqual(self.dispatch(Connect, ["--host=db"]), 2)
        self.assertIn("*** Argument #1 does not exist!", self.err.getvalue())
        self.assertEqual(Connect.calls, [])

    def testMissingNamedStopsWithExitTwo(self):
        self.assertEqual(self.dispatch(Connect, ["prod", "-h", "db"]), 2)
        self.assertIn("*** Argument host does not exist!", self.err.getvalue())
        self.assertEqual(Connect.calls, [("database", "prod")])

    def testFailingOperationStopsLaterBindings(self):
        self.assertEqual(self.dispatch(Connect, ["prod", "-H", "bad", "-p", "1"]), 2)
        self.assertIn("*** Error for argument host: unknown host bad", self.err.getvalue())
        self.assertEqual(Connect.calls, [("database", "prod")])

    def testFailingOperationTracebackInVerboseMode(self):
        self.assertEqual(self.dispatch(Connect, ["prod", "-H", "bad"], verbose=True), 2)
        self.assertIn("Traceback", self.err.getvalue())

    def testTerseModeHasNoTraceback(self):
        self.dispatch(Connect, ["prod", "-H", "bad"])
        self.assertNotIn("Traceback", self.err.getvalue())

    def testBatchReceivesSelection(self):
        self.assertEqual(self.dispatch(Copy, ["a", "b", "-v", "c"]), 0)
        self.assertEqual(self.out.getvalue(), "a,b")

    def testBatchOutOfRangeIsMissingArgument(self):
        self.assertEqual(self.dispatch(Copy, ["a"]), 2)
        self.assertIn("*** Argument #2 does not exist!", self.err.getvalue())

    def testFailingBatchNamesExpression(self):
        self.assertEqual(self.dispatch(Copy, ["a", "missing"]), 2)
        self.assertIn("*** Error for arguments [0..1]: no such file", self.err.getvalue())

    def testFlagIsSkippedWhenAbsent(self):
        self.assertEqual(self.dispatch(Choker, ["x"]), 0)
        self.assertEqual(self.out.getvalue(), "false")


class TestRunning(DispatcherTestCase):
    """Instantiation, streams, run() results and failures."""

    def setUp(self):
        super().setUp()
        Configured.seen.clear()
        Factory.seen.clear()

    def testRunResultIsExitStatus(self):
        self.assertEqual(self.dispatch(Answer, ["--answer=12"]), 12)

    def testRunFailureExitsSeventy(self):
        self.assertEqual(self.dispatch(Fails, []), 70)
        self.assertIn("*** ValueError: boom", self.err.getvalue())
        self.assertIn("Traceback", self.err.getvalue())

    def testStreamsAreWired(self):
        self.assertEqual(self.dispatch(Echo, []), 0)
        self.assertEqual(self.out.getvalue(), "from input")
        self.assertEqual(self.err.getvalue(), "done")

    def testConstructorReceivesConfig(self):
        config = Config(".")
        self.assertEqual(self.dispatch(Configured, [], config), 0)
        self.assertEqual(Configured.seen, [config])

    def testFactoryReceivesConfig(self):
        config = Config(".")
        self.assertEqual(self.dispatch(Factory, [], config), 0)
        self.assertEqual(Factory.seen, [config])

    def testMainDispatchesGivenTokens(self):
        self.assertEqual(Answer.main(["-a", 12]), 12)

    def testFailingFactoryExitsSeventy(self):
        self.assertEqual(self.dispatch(Unbuildable, []), 70)
        self.assertIn("*** RuntimeError: no database", self.err.getvalue())


class TestHelp(DispatcherTestCase):
    """Help short-circuit and usage rendering."""

    def setUp(self):
        super().setUp()
        Connect.calls.clear()
        Configured.seen.clear()

    def testQuestionMarkShowsUsage(self):
        self.assertEqual(self.dispatch(Connect, ["-?"]), 0)
        usage = self.err.getvalue()
        self.assertIn("Usage: $ xp cmd", usage)
        self.assertIn("<database> --host [--port]", usage)
        self.assertIn("--host (also: -H)", usage)
        self.assertIn("Database name", usage)
        self.assertEqual(Connect.calls, [])

    def testLongHelpShowsTitle(self):
        self.assertEqual(self.dispatch(Greet, ["prod", "--help"]), 0)
        self.assertIn("Greets someone", self.err.getvalue())
        self.assertIn("Whom to greet", self.err.getvalue())
        self.assertEqual(self.out.getvalue(), "")

    def testHelpNeverInstantiates(self):
        self.assertEqual(self.dispatch(Configured, ["-?"], Config(".")), 0)
        self.assertEqual(Configured.seen, [])


class TestCmdRunner(TestCase):
    """Runner-level options and resolution."""

    def setUp(self):
        self.out = io.StringIO()
        self.err = io.StringIO()
        self.runner = CmdRunner(io.StringIO(), self.out, self.err, commands=Commands(globals=__name__))
        Factory.seen.clear()

    def run_tokens(self, *tokens):
        return self.runner.run(ParamString(tokens))

    def testConfigFlagIsConsumedBeforeCommandName(self):
        self.assertEqual(self.run_tokens("-c", "etc", "Choker", "-c"), 0)
        self.assertEqual(self.out.getvalue(), "true")

    def testCommandOptionsFollowTheName(self):
        self.assertEqual(self.run_tokens("Choker"), 0)
        self.assertEqual(self.out.getvalue(), "false")

    def testConfigSourcesArePassed(self):
        self.assertEqual(self.run_tokens("-c", "one", "-c", "two", "Factory"), 0)
        config, = Factory.seen
        self.assertEqual([source.location for source in config.sources()], ["one", "two"])

    def testDefaultConfigSource(self):
        self.assertEqual(self.run_tokens("Factory"), 0)
        config, = Factory.seen
        self.assertFalse(config.is_empty())

    def testNoArgumentsShowsUsage(self):
        self.assertEqual(self.run_tokens(), 1)
        self.assertIn("xp cmd <command>", self.err.getvalue())

    def testMissingCommandName(self):
        self.assertEqual(self.run_tokens("-c", "etc", "-v"), 1)
        self.assertIn("*** Missing command name", self.err.getvalue())

    def testUnknownCommandExitsOne(self):
        self.assertEqual(self.run_tokens("Nope"), 1)
        self.assertIn('*** Command "Nope" could not be found', self.err.getvalue())

    def testNonCommandExitsOne(self):
        self.assertEqual(self.run_tokens("DispatcherTestCase"), 1)
        self.assertIn("is not a command", self.err.getvalue())

    def testListingShowsGlobalCommands(self):
        self.assertEqual(self.run_tokens("-l"), 1)
        listing = self.err.getvalue()
        self.assertIn("In global namespace", listing)
        self.assertIn("$ xp cmd Choker", listing)

    def testSelfUsage(self):
        self.assertEqual(self.run_tokens("-?"), 1)
        self.assertIn("-c <path>", self.err.getvalue())

    def testRunFailureThroughRunner(self):
        self.assertEqual(self.run_tokens("Fails"), 70)

    def testBlankConfigSourceIsReported(self):
        self.assertEqual(self.run_tokens("-c", " ", "Choker"), 1)
        self.assertIn("*** configuration source cannot be empty", self.err.getvalue())
        self.assertEqual(self.out.getvalue(), "")

    def testDefaultRegistryIsSearched(self):
        runner = CmdRunner(io.StringIO(), self.out, self.err)
        self.assertEqual(runner.run(ParamString(["Choker"])), 1)
        self.assertIn('*** Command "Choker" could not be found', self.err.getvalue())

        registry.register(__name__)
        self.addCleanup(registry.remove, __name__)
        self.assertEqual(runner.run(ParamString(["Choker", "-c"])), 0)
        self.assertEqual(self.out.getvalue(), "true")


if __name__ == "__main__":
    unittest.main()
