r"""
Commandeer binding declarations, selection expressions and decorators.

Overview
- Declarations
  • Arg: binds one parameter to a command method, by position, by explicit name
    (optionally with a short alias), or by a name derived from the method itself.
  • Args: binds an ordered list of positional values to a command method, chosen by
    a selection expression (or all of them).
  • Selection: parsed selection expression, evaluated against a ParamString.

- Decorators
  • @arg / @arg(position=0) / @arg(name="pass", short="p")
  • @args / @args(select="0, [2..4]")
  Both attach the declaration to the function (as __binding__) and return the
  function unchanged, so decorated methods stay ordinary methods. The Command
  metaclass collects them, in declaration order, into the class binding table.

Selection expressions
- comma-separated terms, the comma optionally followed by one space (', ' or ',').
- a term is one of:
  • N       → the positional value at index N.
  • [A..B]  → positional values A through B inclusive; a missing A means 0, a
              missing B means the last positional index.
  • *       → all positional values (same as [0..]).
- terms are evaluated left to right and concatenated; overlaps repeat values.
- [A..B] with A > B selects nothing.
- an index past the last positional is never clamped: evaluation fails with
  MissingArgumentError naming that position.
- anything else (negative numbers, stray text) is rejected with ValueError when
  the expression is parsed, i.e. when the decorator is applied.

Optionality
- An Arg method taking no value parameter is a pure flag: called with no arguments
  when the parameter is present, skipped otherwise.
- An Arg method whose value parameter has a default is optional: called with no
  arguments (so the default applies) when the parameter is absent.

Quick example:
    >>> class Greet(Command):
    ...     @arg(position=0)
    ...     def set_whom(self, whom): ...
    ...     @arg
    ...     def set_verbose(self): ...
    ...     @args(select="[1..]")
    ...     def set_rest(self, rest): ...
"""
import functools
import inspect
import operator
import re
from inspect import Parameter

from .faults import ArgumentNotFoundError, MissingArgumentError
from .utils import *

_TERM = re.compile(r"(?P<index>\d+)|\[(?P<begin>\d*)\.\.(?P<end>\d*)\]|(?P<all>\*)")


class ArgumentType(type):
    """
    Metaclass giving declarations readable, introspectable shapes.

    - __typename__ is derived from the class name (camel-case split with hyphens).
    - Every name in __introspectable__ becomes a read-only property over "_<name>".
    - __repr__/__rich_repr__ list the introspectable fields.
    """
    __introspectable__ = ()

    def __new__(cls, name, bases, namespace, **options):
        self = super().__new__(
            cls,
            name,
            bases,
            namespace | {
                "__typename__": re.sub(r"(?<!^)(?=[A-Z])", r"-", name).lower(),
            } | {
                name: mirror(name) for name in namespace.get("__introspectable__", ())
            },
        )

        @rename("__repr__")
        def __repr__(self):
            return f"{type(self).__typename__}({', '.join(map(functools.partial(operator.mod, '%s=%r'), self.__rich_repr__()))})"
        self.__repr__ = __repr__

        @rename("__rich_repr__")
        def __rich_repr__(self):
            for name in type(self).__introspectable__:
                yield name, getattr(self, name)
        self.__rich_repr__ = __rich_repr__

        return self


class Selection(metaclass=ArgumentType):
    """
    Parsed selection expression.

    Terms are stored as (begin, end) pairs where end is None for "up to the last
    positional". The expression text is kept for diagnostics (str(selection)).
    """
    __introspectable__ = ("text", "terms")

    def __init__(self, text, /):
        if not isinstance(text, str):
            raise TypeError(f"{type(self).__typename__} expression must be a string")
        if not (text := text.strip()):
            raise ValueError(f"{type(self).__typename__} expression cannot be empty")

        terms = []
        for term in re.split(r", ?", text):
            if not (match := _TERM.fullmatch(term)):
                raise ValueError(f"{type(self).__typename__} term {term!r} in {text!r} is malformed")
            if match["index"] is not None:
                terms.append((int(match["index"]), int(match["index"])))
            elif match["all"] is not None:
                terms.append((0, None))
            else:
                terms.append((int(match["begin"] or 0), int(match["end"]) if match["end"] else None))

        self._text = text
        self._terms = tuple(terms)

    def evaluate(self, params, /):
        """
        Return the selected positional values, in term order.

        Raises
        - ArgumentNotFoundError for the first index past the last positional.
        """
        values = []
        for begin, end in self._terms:
            end = params.count - 1 if end is None else end
            for index in range(begin, end + 1):
                values.append(params.value(index))
        return values

    def __str__(self):
        return self._text


def _value_parameters(cls, method):
    """
    Return the parameters a binding may pass values to (everything after self).
    """
    if not inspect.isfunction(method):
        raise TypeError(f"@{cls.__typename__} must be applied to a plain function")
    try:
        parameters = list(inspect.signature(method).parameters.values())
    except ValueError:
        raise TypeError(f"@{cls.__typename__} must be applied to an inspectable function") from None
    if not parameters or parameters[0].kind not in (Parameter.POSITIONAL_ONLY, Parameter.POSITIONAL_OR_KEYWORD):
        raise TypeError(f"@{cls.__typename__} must be applied to a method taking self")
    return [
        parameter for parameter in parameters[1:]
        if parameter.kind in (Parameter.POSITIONAL_ONLY, Parameter.POSITIONAL_OR_KEYWORD, Parameter.VAR_POSITIONAL)
    ]


def _check_extras(cls, method, parameters):
    for parameter in parameters[1:]:
        if parameter.kind is not Parameter.VAR_POSITIONAL and parameter.default is Parameter.empty:
            raise TypeError(f"@{cls.__typename__} method {method.__name__!r} must take at most one value")


class Arg(metaclass=ArgumentType):
    """
    Single-value binding declaration.

    Selector
    - position (int >= 0) when given; the user-facing label is "#<position + 1>".
    - otherwise name (explicit, or derived from the method name) with the short
      alias `short` (defaults to the first letter of the name at lookup time).

    Kinds
    - flag: the method takes no value; presence alone triggers the call.
    - optional: the method's value parameter has a default.
    """
    __introspectable__ = (
        "method",
        "position",
        "name",
        "short",
        "flag",
        "optional",
    )

    def __init__(self, method, /, *, position=Unset, name=Unset, short=Unset):
        cls = type(self)
        if position is not Unset:
            if isinstance(position, bool) or not isinstance(position, int):
                raise TypeError(f"{cls.__typename__} 'position' must be an integer")
            if position < 0:
                raise ValueError(f"{cls.__typename__} 'position' must be a non-negative integer")
            if name is not Unset or short is not Unset:
                raise TypeError(f"{cls.__typename__} 'position' cannot be combined with 'name' or 'short'")

        for field, value in (("name", name), ("short", short)):
            if not isinstance(value, str | Unset):
                raise TypeError(f"{cls.__typename__} {field!r} must be a string")
            if isinstance(value, str) and (not value.strip() or value.startswith("-")):
                raise ValueError(f"{cls.__typename__} {field!r} must be a non-empty name without dashes")

        parameters = _value_parameters(cls, method)
        _check_extras(cls, method, parameters)

        self._method = method
        self._position = coalesce(position)
        self._name = coalesce(name, derive_name(method.__name__) if position is Unset else None)
        self._short = coalesce(short)
        self._flag = not parameters
        self._optional = bool(parameters) and (
            parameters[0].kind is Parameter.VAR_POSITIONAL or parameters[0].default is not Parameter.empty
        )

    @property
    def selector(self):
        return self._position if self._position is not None else self._name

    @property
    def label(self):
        return "#%d" % (self._position + 1) if self._position is not None else self._name

    def resolve(self, params, /):
        """
        Return the call arguments for this binding, or None to skip the call.

        Raises
        - MissingArgumentError when a required value is absent.
        """
        present = params.exists(self.selector, self._short)
        if self._flag:
            return () if present else None
        if not present:
            if self._optional:
                return ()
            raise MissingArgumentError(selector=self.label, binding=self)
        return (params.value(self.selector, self._short),)

    def __call__(self, instance, /, *arguments):
        return self._method(instance, *arguments)


class Args(metaclass=ArgumentType):
    """
    Batch binding declaration: the method receives one list of positional values.
    """
    __introspectable__ = (
        "method",
        "select",
    )

    def __init__(self, method, /, *, select=Unset):
        cls = type(self)
        if not isinstance(select, str | Selection | Unset):
            raise TypeError(f"{cls.__typename__} 'select' must be a string")
        if isinstance(select, str):
            select = Selection(select)

        parameters = _value_parameters(cls, method)
        if not parameters:
            raise TypeError(f"@{cls.__typename__} method {method.__name__!r} must take the selected values")
        _check_extras(cls, method, parameters)

        self._method = method
        self._select = coalesce(select)

    @property
    def label(self):
        return str(self._select) if self._select is not None else "*"

    def resolve(self, params, /):
        """
        Return the call arguments: a single list with the selected values.

        Raises
        - MissingArgumentError when the selection reaches past the last positional.
        """
        if self._select is None:
            return (list(params.positionals),)
        try:
            return (self._select.evaluate(params),)
        except ArgumentNotFoundError as e:
            raise MissingArgumentError(selector="#%d" % (e.options["selector"] + 1), binding=self) from None

    def __call__(self, instance, /, *arguments):
        return self._method(instance, *arguments)


def _declare(kind, source, options):
    @rename(kind.__typename__)
    def wrapper(method, /):
        if not callable(method):
            raise TypeError(f"@{kind.__typename__}() must be applied to a callable")
        if hasattr(method, "__binding__"):
            raise TypeError(f"@{kind.__typename__}() cannot be combined with another binding")
        method.__binding__ = kind(method, **options)
        return method

    return wrapper(source) if source is not Unset else wrapper


def arg(source=Unset, /, *, position=Unset, name=Unset, short=Unset):
    """
    Declare a single-value binding on a command method.

    Usage
    - @arg                        → named after the method ("set_verbose" → "verbose", "-v")
    - @arg(position=0)            → first positional value, reported as "#1"
    - @arg(name="pass", short="p") → "--pass=..." or "-p ..."

    Returns
    - the method itself (direct form) or a decorator (parametrized form).
    """
    options = {"position": position, "name": name, "short": short}
    return _declare(Arg, source, {key: value for key, value in options.items() if value is not Unset})


def args(source=Unset, /, *, select=Unset):
    """
    Declare a batch binding on a command method.

    Usage
    - @args                      → all positional values
    - @args(select="[0..2], 1")  → values selected by the expression

    Returns
    - the method itself (direct form) or a decorator (parametrized form).
    """
    return _declare(Args, source, {} if select is Unset else {"select": select})


__all__ = (
    "Arg",
    "Args",
    "Selection",
    "arg",
    "args",
)

del ArgumentType
