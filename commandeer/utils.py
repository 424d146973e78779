"""
Commandeer utilities (internal helpers, carefully exposed)

Scope
- Small building blocks shared by the parameter, binding and resolver layers.

Overview
- UnsetType / Unset
  • Singleton sentinel to represent “value not provided” without conflating with None.
  • Falsey (bool(Unset) is False), printable as "Unset", and non-subclassable.

- coalesce(value, default=None)
  • Replace Unset with a concrete default, but preserve legitimate falsey values like None/0/"".

- rename(callable, name) / @rename("name")
  • Assign stable __name__/__qualname__ to generated wrappers for clean tracebacks.

- mirror("attr")
  • Read-only property factory exposing a private backing field (self._attr).

- camelize(name) / snakeify(name)
  • Translate command names as typed on the command line ("batch-import") into the
    class ("BatchImport") and module ("batch_import") spellings used by resolvers.

- derive_name(method)
  • Command line name of a binding that declares neither position nor name.

Quick examples
    >>> coalesce(Unset, "fallback")
    'fallback'
    >>> camelize("batch-import")
    'BatchImport'
    >>> derive_name("set_dry_run")
    'dry-run'
"""
import builtins
import functools
import re
from typing import final


@final
class UnsetType:
    """
    Internal sentinel type representing a value that was not provided.

    Used where None is a legitimate value (a bare flag has the value None), but
    the API still needs to tell “not provided” apart from “provided as None”.
    """

    def __or__(self, other, /):
        try:
            return other | type(self)
        except TypeError:
            return NotImplemented

    def __ror__(self, other, /):
        try:
            return other | type(self)
        except TypeError:
            return NotImplemented

    @functools.cache
    def __new__(cls):
        return super().__new__(cls)

    def __bool__(self):
        return False

    def __repr__(self):
        return "Unset"

    def __init_subclass__(cls, **options):
        raise TypeError("type 'UnsetType' is not an acceptable base type")


def coalesce(object, default=None, /):
    """
    Resolve the Unset sentinel to a concrete default.

    Falsey values like None, 0 or "" are preserved as-is; only Unset is replaced.

    Examples
    - coalesce("name", "fallback") -> "name"
    - coalesce(Unset, "fallback")  -> "fallback"
    - coalesce(None, "fallback")   -> None
    """
    return object if object is not Unset else default


def rename(*parameters):
    """
    Set a stable __name__/__qualname__ on a callable, or return a decorator
    that will do so later.

    - Function form: rename(callable, name) -> callable
    - Decorator form: rename(name) -> (decorator)
    """
    match len(parameters):
        case 2:
            callable, name = parameters
            if not builtins.callable(callable):
                raise TypeError("rename() first argument must be callable")
            if not isinstance(name, str):
                raise TypeError("rename() second argument must be a string")
            try:
                callable.__qualname__ = name
                callable.__name__ = name
            except (AttributeError, TypeError):
                raise TypeError("rename() first argument must be a updatable callable") from None
            return callable
        case 1:
            name, = parameters
            if not isinstance(name, str):
                raise TypeError("@rename() argument must be a string")

            def wrapper(callable):
                if not builtins.callable(callable):
                    raise TypeError("@rename() must be applied to a callable")
                return rename(callable, name)

            return rename(wrapper, "rename")
        case _:
            raise TypeError("rename takes 1 to 2 arguments but %d were given" % len(parameters))


def mirror(name, /):
    """
    Define a read-only property that mirrors a private backing attribute.

    The generated property reads "_{name}" on the instance; tuples and other
    immutable values are handed out unchanged, lists are copied into tuples.
    """
    if not isinstance(name, str):
        raise TypeError("mirror() argument must be a string")

    @rename(name)
    def getter(self):
        value = getattr(self, "_" + name)
        return tuple(value) if isinstance(value, list) else value

    return property(getter)


@functools.cache
def camelize(name, /):
    """
    Turn a command line spelling into a class name.

    Every segment separated by '-' or '_' gets its first letter upper-cased; the
    rest of the segment is kept (so "BatchImport" stays "BatchImport").

    Examples
    - camelize("batch-import") -> "BatchImport"
    - camelize("batch_import") -> "BatchImport"
    - camelize("Query")        -> "Query"
    """
    if not isinstance(name, str):
        raise TypeError("camelize() argument must be a string")
    return "".join(segment[:1].upper() + segment[1:] for segment in re.split(r"[-_]", name))


@functools.cache
def snakeify(name, /):
    """
    Turn a command line spelling or class name into a module name.

    Examples
    - snakeify("batch-import") -> "batch_import"
    - snakeify("BatchImport")  -> "batch_import"
    """
    if not isinstance(name, str):
        raise TypeError("snakeify() argument must be a string")
    return re.sub(r"(?<=[a-z0-9])(?=[A-Z])", "_", name).replace("-", "_").lower()


@functools.cache
def derive_name(method, /):
    """
    command line name for a binding that declares neither position nor name.

    rules
    - a leading "set" or "use" prefix (and an underscore right after it) is dropped,
      but only when something is left afterwards.
    - the remainder is lower-cased; underscores become hyphens.

    examples
    - derive_name("setName")     -> "name"
    - derive_name("set_verbose") -> "verbose"
    - derive_name("use_dry_run") -> "dry-run"
    - derive_name("settings")    -> "tings"   # prefixes are not word-aware
    """
    if not isinstance(method, str):
        raise TypeError("derive_name() argument must be a string")
    stripped = re.sub(r"^(set|use)_?", "", method)
    return (stripped or method).lower().replace("_", "-")


Unset = UnsetType()
"""
Internal sentinel for “not provided”.

Distinct from None: ParamString.value() returns None for a bare flag, and uses
Unset as the default for its ``default`` parameter so that ``default=None`` is a
legitimate fallback.
"""


__all__ = (
    "coalesce",
    "rename",
    "mirror",
    "camelize",
    "snakeify",
    "derive_name",
    "UnsetType",
    "Unset",
)
