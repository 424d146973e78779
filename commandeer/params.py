r"""
Commandeer parameter strings: an addressable, immutable view over argv-like tokens.

What this module provides
- ParamString: parses a token list once and answers existence and value lookups
  by position (int) or by name/alias (str).

Token grammar (scanned left to right)
- '--name=value' → named entry 'name' carrying 'value' (text after the first '=',
  whitespace kept verbatim, may be empty).
- '--name'       → named entry 'name', bare flag (value None).
- '-x'           → short entry keyed by the text after the dash ('c', 'cp', '?').
                   the next token is consumed as its value only when it exists and
                   does not itself begin with '-'; otherwise it is a bare flag.
- anything else  → positional entry, indexed among positional tokens only
                   (a lone '-' and a lone '--' are positional as well).

Lookup rules
- first occurrence governs: later duplicates never shadow earlier entries.
- named lookups try the long name first, then the alias; the alias defaults to the
  first character of the name ('level' also answers to '-l').

Quick example
    >>> params = ParamString(["-v", "--level=3", "input.txt"])
    >>> params.exists("verbose"), params.value("level"), params.value(0)
    (True, '3', 'input.txt')
"""
import logging
import re
import shlex
from collections.abc import Iterable

from .faults import ArgumentNotFoundError
from .utils import Unset

logger = logging.getLogger(__name__)

_LONG = re.compile(r"--(?P<name>[^=]+)(=(?P<value>.*))?", re.DOTALL)


class ParamString:
    """
    Parsed parameter set over an immutable token list.

    Attributes
    - list: tuple[str, ...], the raw tokens as given.
    - count: int, the number of positional entries.
    - positionals: tuple[str, ...], positional values in order.

    Notes
    - Instances are never mutated after construction; a caller that needs a subset
      of the tokens (a runner dropping its own flags) wraps a fresh ParamString.
    """
    __slots__ = ("_list", "_positionals", "_long", "_short")

    def __init__(self, tokens=(), /):
        if isinstance(tokens, str) or not isinstance(tokens, Iterable):
            raise TypeError("ParamString() argument must be an iterable of strings")
        tokens = tuple(tokens)
        for token in tokens:
            if not isinstance(token, str):
                raise TypeError("ParamString() argument must be an iterable of strings")

        self._list = tokens
        self._positionals = []
        self._long = {}
        self._short = {}

        index = 0
        while index < len(tokens):
            token = tokens[index]
            index += 1
            if token.startswith("--") and (match := _LONG.fullmatch(token)):
                self._long.setdefault(match["name"], match["value"])
            elif token.startswith("-") and len(token) > 1 and not token.startswith("--"):
                value = None
                if index < len(tokens) and not tokens[index].startswith("-"):
                    value = tokens[index]
                    index += 1
                self._short.setdefault(token[1:], value)
            else:
                self._positionals.append(token)

        self._positionals = tuple(self._positionals)
        logger.debug("parsed %d tokens: %d positional, %d long, %d short",
                     len(tokens), len(self._positionals), len(self._long), len(self._short))

    @classmethod
    def from_string(cls, line, /):
        """
        Build a ParamString from a single line of input, split shell-style.

        Quoted segments stay together: 'cmd --realm="That is a realm"' yields the
        value 'That is a realm' for 'realm'.
        """
        if not isinstance(line, str):
            raise TypeError("from_string() argument must be a string")
        return cls(shlex.split(line))

    @property
    def list(self):
        return self._list

    @property
    def positionals(self):
        return self._positionals

    @property
    def count(self):
        return len(self._positionals)

    def _find(self, selector, alias):
        """
        Return (found, value) for a selector; the value is None for bare flags.
        """
        if isinstance(selector, bool) or not isinstance(selector, int | str):
            raise TypeError("parameter selector must be an integer or a string")

        if isinstance(selector, int):
            if 0 <= selector < len(self._positionals):
                return True, self._positionals[selector]
            return False, None

        if not selector:
            raise ValueError("parameter name cannot be empty")
        if alias is None:
            alias = selector[0]
        elif not isinstance(alias, str):
            raise TypeError("parameter alias must be a string")

        if selector in self._long:
            return True, self._long[selector]
        if alias in self._short:
            return True, self._short[alias]
        return False, None

    def exists(self, selector, alias=None, /):
        """
        Tell whether a positional index or a name (or its alias) was given.
        """
        return self._find(selector, alias)[0]

    def value(self, selector, alias=None, /, default=Unset):
        """
        Return the text associated with a parameter.

        Returns
        - the value, or None for a bare flag.
        - default when the parameter is absent and a default was supplied (None included).

        Raises
        - ArgumentNotFoundError when the parameter is absent and no default was supplied.
        """
        found, value = self._find(selector, alias)
        if found:
            return value
        if default is not Unset:
            return default
        if isinstance(selector, int):
            raise ArgumentNotFoundError(
                "Argument #%d does not exist" % (selector + 1),
                selector=selector,
            )
        raise ArgumentNotFoundError(
            "Argument %r does not exist" % selector,
            selector=selector,
            alias=alias,
        )

    def __len__(self):
        return len(self._list)

    def __iter__(self):
        return iter(self._list)

    def __eq__(self, other):
        if not isinstance(other, ParamString):
            return NotImplemented
        return self._list == other._list

    def __hash__(self):
        return hash(self._list)

    def __repr__(self):
        return "param-string(%s)" % ", ".join(map(repr, self._list))


__all__ = (
    "ParamString",
)
