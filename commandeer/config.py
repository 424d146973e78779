"""
Configuration sources handed to commands.

A Config is an ordered list of sources (directories, or resource names searched
by the host application). The runner fills it from '-c <path>' options and falls
back to ./etc (or the current directory) when none were given. Commandeer never
reads the sources itself: the Config is passed as-is to a command's
new_instance(config) factory or constructor.
"""
import os.path


class Source:
    """
    one configuration source: a directory on disk, or a named resource.
    """
    __slots__ = ("_location", "_directory")

    def __init__(self, location, /):
        if not isinstance(location, str):
            raise TypeError("configuration source must be a string")
        if not (location := location.strip()):
            raise ValueError("configuration source cannot be empty")
        self._location = location
        self._directory = os.path.isdir(location)

    @property
    def location(self):
        return self._location

    @property
    def directory(self):
        return self._directory

    def __eq__(self, other):
        if not isinstance(other, Source):
            return NotImplemented
        return (self._location, self._directory) == (other._location, other._directory)

    def __hash__(self):
        return hash((self._location, self._directory))

    def __repr__(self):
        return "%s(%r)" % ("directory" if self._directory else "resource", self._location)


class Config:
    """
    Ordered configuration sources.

    Example
    - Config("etc/default", "etc/prod").sources() → (directory('etc/default'), ...)
    """

    def __init__(self, *sources):
        self._sources = []
        for source in sources:
            self.append(source)

    def append(self, source, /):
        self._sources.append(source if isinstance(source, Source) else Source(source))

    def is_empty(self):
        return not self._sources

    def sources(self):
        return tuple(self._sources)

    def __repr__(self):
        return "config(%s)" % ", ".join(map(repr, self._sources))


__all__ = (
    "Source",
    "Config",
)
