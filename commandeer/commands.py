"""
Commandeer command layer: the Command base class and command name resolution.

What this module provides
- Command: base class for runnable commands. Subclasses implement run() and
  declare bindings with @arg/@args on their methods; the CommandType metaclass
  collects those into an ordered, read-only binding table (__bindings__) when the
  class is created, so dispatching never has to search the class at run time.

- Namespaces: ordered registry of module/package names searched for short
  command names. Insertion order is search priority.

- Commands: resolves a command name typed by a user into a Command subclass,
  and shortens display names for commands living in a registered namespace.

Resolution order (first match wins)
1. the name is an existing file → load that module, take the class named after
   the file stem ("query.py" → "query" or "Query").
2. the name contains '.' → import the module part, take the attribute.
3. each registered namespace, in order, provides the name: as an attribute of the
   namespace module, or as a class defined in its submodule of the same name
   ("batch-import" → <ns>.BatchImport, or <ns>.batch_import.BatchImport).
4. the global namespace provides it: a top-level module of the same name
   ("disk-usage" → disk_usage.DiskUsage), or the attribute of the module given
   as `globals`.
Anything found that is not a concrete Command subclass is rejected with
NotRunnableError, whichever step found it.

Quick example
    >>> commands = Commands(Namespaces("app.commands"))
    >>> commands.resolve("batch-import")
    <class 'app.commands.batch_import.BatchImport'>
    >>> commands.display_name(_)
    'BatchImport'
"""
import importlib
import importlib.util
import inspect
import logging
import os.path
import pkgutil
import re
import sys
from abc import ABCMeta, abstractmethod
from collections.abc import Iterable
from types import MappingProxyType, ModuleType

from .faults import CommandNotFoundError, NotRunnableError
from .params import ParamString
from .utils import *

logger = logging.getLogger(__name__)


class CommandType(ABCMeta):
    """
    Metaclass collecting binding declarations into an ordered table.

    Responsibilities
    - Walk the MRO from the most basic class down, so base-class bindings come
      first and an overriding method keeps the position of the one it overrides.
    - An override without a declaration removes the inherited binding.
    - Publish the result as a read-only mapping: method name → Arg | Args.
    - Derive __typename__ from the class name for messages.
    """

    def __new__(cls, name, bases, namespace, **options):
        self = super().__new__(
            cls,
            name,
            bases,
            namespace | {"__typename__": re.sub(r"(?<!^)(?=[A-Z])", r"-", name).lower()},
            **options
        )

        bindings = {}
        for klass in reversed(self.__mro__):
            for attribute, object in vars(klass).items():
                if (binding := getattr(object, "__binding__", None)) is not None:
                    bindings[attribute] = binding
                elif attribute in bindings:
                    del bindings[attribute]
        self.__bindings__ = MappingProxyType(bindings)

        return self


class Command(metaclass=CommandType):
    """
    Base class for all commands.

    Lifecycle (one dispatch)
    - created through new_instance(config) when the subclass defines it, else through
      the constructor (with the config when it accepts an argument).
    - streams wired: input, out and err are text streams supplied by the runner.
    - bindings invoked in declaration order, then run() is called; its return value
      becomes the exit status (None means 0).
    """
    input = None
    out = None
    err = None

    @abstractmethod
    def run(self):
        """
        Main action; return an exit status or None.
        """

    @classmethod
    def main(cls, args=Unset, /):
        """
        Dispatch this command directly, bypassing name resolution.

        Parameters
        - args: Unset (use sys.argv[1:]) or an iterable of tokens; non-strings are
          converted with str().

        Returns
        - int: the exit status of the dispatch.
        """
        tokens = sys.argv[1:] if args is Unset else [str(token) for token in args]
        # the runner imports this module; resolve it lazily
        runner = importlib.import_module(".runner", __package__)
        return runner.Dispatcher().dispatch(cls, ParamString(tokens))


class Namespaces:
    """
    Ordered registry of namespaces (dotted module names) searched for commands.

    Notes
    - duplicates may be registered; remove() drops the first registration only.
    - no locking: register namespaces at start-up, before dispatching.
    """

    def __init__(self, *namespaces):
        self._namespaces = []
        for namespace in namespaces:
            self.register(namespace)

    @staticmethod
    def _normalize(namespace):
        if isinstance(namespace, ModuleType):
            namespace = namespace.__name__
        if not isinstance(namespace, str):
            raise TypeError("namespace must be a string or a module")
        if not re.fullmatch(r"(?!\d)\w+(\.(?!\d)\w+)*", namespace := namespace.strip()):
            raise ValueError("namespace must be a dotted module name, got %r" % namespace)
        return namespace

    def register(self, namespace, /):
        self._namespaces.append(namespace := self._normalize(namespace))
        logger.debug("registered namespace %s", namespace)

    def remove(self, namespace, /):
        try:
            self._namespaces.remove(namespace := self._normalize(namespace))
        except ValueError:
            raise ValueError("namespace %r is not registered" % namespace) from None
        logger.debug("removed namespace %s", namespace)

    def clear(self):
        self._namespaces.clear()

    def all(self):
        return tuple(self._namespaces)

    def __iter__(self):
        return iter(tuple(self._namespaces))

    def __contains__(self, namespace):
        return namespace in self._namespaces

    def __len__(self):
        return len(self._namespaces)

    def __repr__(self):
        return "namespaces(%s)" % ", ".join(map(repr, self._namespaces))


def _qualified(object):
    if isinstance(object, type | ModuleType) or inspect.isroutine(object):
        module = getattr(object, "__module__", None)
        qualname = getattr(object, "__qualname__", object.__name__)
        return qualname if module in (None, "builtins") else f"{module}.{qualname}"
    return type(object).__name__


def _import(module, /):
    """
    import a module; Unset when the module (or a parent package) does not exist.

    any other failure while executing the module is surfaced as CommandNotFoundError
    chained to the original exception.
    """
    try:
        return importlib.import_module(module)
    except ModuleNotFoundError as e:
        if e.name is not None and (module == e.name or module.startswith(e.name + ".")):
            return Unset
        raise CommandNotFoundError("Module %r could not be loaded: %s" % (module, e), name=module) from e
    except Exception as e:
        raise CommandNotFoundError("Module %r could not be loaded: %s" % (module, e), name=module) from e


class Commands:
    """
    Command name resolver.

    Parameters
    - namespaces: Namespaces | Iterable[str] | Unset
      registry consulted for short names (the process-wide `registry` when Unset).
    - globals: str | Unset
      name of a module playing the global namespace; when Unset, bare names are
      looked up as top-level modules defining a class of the same name.
    """

    def __init__(self, namespaces=Unset, /, *, globals=Unset):
        if namespaces is Unset:
            namespaces = registry
        elif not isinstance(namespaces, Namespaces):
            if isinstance(namespaces, str) or not isinstance(namespaces, Iterable):
                raise TypeError("Commands() argument must be a namespace registry or an iterable of names")
            namespaces = Namespaces(*namespaces)
        if not isinstance(globals, str | Unset):
            raise TypeError("Commands() 'globals' must be a module name")
        self._namespaces = namespaces
        self._globals = globals

    @property
    def namespaces(self):
        return self._namespaces

    @property
    def globals(self):
        return self._globals

    def register_namespace(self, namespace, /):
        self._namespaces.register(namespace)

    def remove_namespace(self, namespace, /):
        self._namespaces.remove(namespace)

    def all_namespaces(self):
        return self._namespaces.all()

    def resolve(self, name, /):
        """
        Turn a command name into a runnable Command subclass.

        Raises
        - CommandNotFoundError when every resolution path is exhausted.
        - NotRunnableError when what was found is not a concrete Command subclass.
        """
        if not isinstance(name, str):
            raise TypeError("resolve() argument must be a string")

        if os.path.isfile(name):
            found = self._load_file(name)
        elif "." in name:
            found = self._load_qualified(name)
        else:
            found = self._load_named(name)

        if found is Unset:
            raise CommandNotFoundError('Command "%s" could not be found' % name, name=name)
        if not (isinstance(found, type) and issubclass(found, Command)) or inspect.isabstract(found):
            raise NotRunnableError("%s is not a command" % _qualified(found), name=name, found=found)

        logger.debug("resolved %r to %s", name, _qualified(found))
        return found

    def _load_file(self, path):
        path = os.path.abspath(path)
        stem = os.path.splitext(os.path.basename(path))[0]

        for module in list(sys.modules.values()):
            if getattr(module, "__file__", None) == path:
                break
        else:
            spec = importlib.util.spec_from_file_location(stem, path)
            if spec is None or spec.loader is None:
                raise CommandNotFoundError('Command "%s" could not be loaded from this file' % path, name=path)
            module = importlib.util.module_from_spec(spec)
            try:
                spec.loader.exec_module(module)
            except Exception as e:
                raise CommandNotFoundError('Command "%s" could not be loaded: %s' % (path, e), name=path) from e

        logger.debug("loaded %s from %s", module.__name__, path)
        return self._lookup(module, stem)

    def _load_qualified(self, name):
        module, _, attribute = name.rpartition(".")
        if not module or not attribute:
            return Unset
        if (loaded := _import(module)) is Unset:
            return Unset
        return getattr(loaded, attribute, Unset)

    def _load_named(self, name):
        for namespace in self._namespaces:
            if (found := self._provided(namespace, name)) is not Unset:
                logger.debug("namespace %s provides %r", namespace, name)
                return found
        if self._globals is not Unset:
            if (module := _import(self._globals)) is Unset:
                return Unset
            return self._lookup(module, name)
        if not re.fullmatch(r"(?!\d)\w+", module := snakeify(name)):
            return Unset
        if (loaded := _import(module)) is Unset:
            return Unset
        return getattr(loaded, camelize(name), Unset)

    @staticmethod
    def _lookup(module, name):
        for candidate in dict.fromkeys((name, camelize(name))):
            if (found := getattr(module, candidate, Unset)) is not Unset:
                return found
        return Unset

    def _provided(self, namespace, name):
        if (module := _import(namespace)) is Unset:
            logger.warning("namespace %s cannot be imported", namespace)
            return Unset
        if (found := self._lookup(module, name)) is not Unset:
            return found
        if not hasattr(module, "__path__") or not re.fullmatch(r"(?!\d)\w+", submodule := snakeify(name)):
            return Unset
        if (module := _import(namespace + "." + submodule)) is Unset:
            return Unset
        return self._lookup(module, name)

    def display_name(self, command, /):
        """
        Name to show in help and listings.

        The local class name when the command lives in a registered namespace (or in
        that namespace's submodule of the same name) or in the global namespace,
        otherwise the fully qualified name.
        """
        if not isinstance(command, type):
            raise TypeError("display_name() argument must be a class")
        module = command.__module__
        if module == self._globals or module in self._namespaces:
            return command.__qualname__
        parent, _, leaf = module.rpartition(".")
        if leaf == snakeify(command.__name__) and (parent in self._namespaces or not parent and self._globals is Unset):
            return command.__qualname__
        return f"{module}.{command.__qualname__}"

    def commands_in(self, namespace=Unset, /):
        """
        List the runnable commands a namespace provides (the global module when Unset).

        Without a global module, the global namespace lists nothing: top-level
        modules are only imported on demand by resolve().

        Packages are searched one level deep: commands defined in the package itself
        and in its direct submodules. Submodules failing to import are skipped.
        """
        if namespace is Unset:
            if self._globals is Unset:
                return []
            namespace = self._globals
        else:
            namespace = Namespaces._normalize(namespace)
        if (module := _import(namespace)) is Unset:
            return []

        modules = [module]
        if hasattr(module, "__path__"):
            for metadata in pkgutil.iter_modules(module.__path__, namespace + "."):
                try:
                    loaded = _import(metadata.name)
                except CommandNotFoundError as e:
                    logger.warning("skipping %s: %s", metadata.name, e)
                    continue
                if loaded is not Unset:
                    modules.append(loaded)

        found = {}
        for module in modules:
            for object in vars(module).values():
                if (
                    isinstance(object, type) and
                    issubclass(object, Command) and
                    not inspect.isabstract(object) and
                    object.__module__ == module.__name__
                ):
                    found[object] = None
        return sorted(found, key=lambda command: command.__name__)


registry = Namespaces()
"""
Process-wide namespace registry used by every Commands() created without one.

Register namespaces at start-up, before dispatching; tests pass fresh registries.
"""


__all__ = (
    "Command",
    "Namespaces",
    "Commands",
    "registry",
)
