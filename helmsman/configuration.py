"""
Layered value sources: environment snapshot, configuration mapping, merger.

A configuration is an already-parsed mapping (JSON/TOML/YAML are the caller's
business) with two recognized sections:

    {
        "globalOptions": {"verbose": true},
        "commands": {
            "deploy": {"port": 9000, "tags": ["a", "b"]},
            "deploy remote": {"host": "example.org"},
        },
        "profiles": {
            "staging": {"commands": {"deploy": {"port": 9100}}},
            "ci": {"inherits": "staging", "globalOptions": {"verbose": false}},
        },
    }

Keys are matched ignoring case, hyphens and underscores (maxRetries,
max_retries and max-retries are the same key). Command sections are found by
path, either nested ({"deploy": {"remote": {...}}}) or joined with spaces or
dots ("deploy remote", "deploy.remote").

Values
- str/int/float/bool scalars are stringified (bool as "true"/"false");
- lists/tuples of scalars are joined with commas (collection syntax);
- anything else is malformed: logged and ignored for that key.
"""
import logging
import os
from collections.abc import Mapping
from enum import Enum

from .faults import ConfigurationError, FaultCode
from .utils import *

logger = logging.getLogger(__name__)


class Source(Enum):
    """
    Layer a bound value came from, in precedence order.
    """
    CLI = "cli"
    ENV = "env"
    CONFIG = "config"
    DEFAULT = "default"


class Environment(Mapping):
    """
    Read-only snapshot of environment variables (os.environ by default).
    """

    def __init__(self, environ=Unset, /):
        environ = coalesce(environ, os.environ)
        if not isinstance(environ, Mapping):
            raise TypeError("environment must be a mapping")
        self._data = {str(key): str(value) for key, value in environ.items()}

    def lookup(self, name, /):
        """
        Return the variable's value, or None when it is absent or empty.
        """
        if name is None:
            return None
        value = self._data.get(name)
        return value if value else None

    def __getitem__(self, key):
        return self._data[key]

    def __iter__(self):
        return iter(self._data)

    def __len__(self):
        return len(self._data)

    def __repr__(self):
        return f"environment({len(self._data)} variables)"


def _fold(key):
    return key.replace("-", "").replace("_", "").casefold()


def _find(mapping, key, /):
    """
    Case/separator-insensitive lookup; returns Unset when absent.
    """
    if not isinstance(mapping, Mapping):
        return Unset
    folded = _fold(key)
    for name, value in mapping.items():
        if isinstance(name, str) and _fold(name) == folded:
            return value
    return Unset


def merge(*mappings):
    """
    Deep-merge mappings into a new dict; later mappings win.

    Nested mappings present on both sides are merged recursively (keys matched
    ignoring case); any other value replaces the earlier one.
    """
    result = {}
    for mapping in mappings:
        if mapping is None:
            continue
        if not isinstance(mapping, Mapping):
            raise TypeError("merge() arguments must be mappings")
        for key, value in mapping.items():
            existing = next((name for name in result if str(name).casefold() == str(key).casefold()), key)
            current = result.pop(existing, Unset)
            if isinstance(current, Mapping) and isinstance(value, Mapping):
                result[existing] = merge(current, value)
            else:
                result[existing] = merge(value) if isinstance(value, Mapping) else value
    return result


def stringify(value, /):
    """
    Render a configuration value in command-line syntax.

    Raises ValueError for values that have no command-line form.
    """
    match value:
        case bool():
            return "true" if value else "false"
        case str():
            return value
        case int() | float():
            return str(value)
        case list() | tuple():
            return ",".join(stringify(item) for item in value if not isinstance(item, list | tuple | Mapping))
    raise ValueError(f"configuration value {value!r} has no command-line form")


class ConfigurationSource:
    """
    Parsed configuration with an optional active profile.

    Parameters
    - mapping: the parsed configuration (Unset or None means empty).
    - profile: name of the profile to overlay on the base configuration.

    A parsed configuration that is not a mapping (a top-level list, say) is
    logged and treated as empty.

    Raises
    - ConfigurationError: unknown profile, or a cycle in 'inherits' chains.
    """

    def __init__(self, mapping=Unset, /, profile=Unset):
        mapping = coalesce(mapping, None) or {}
        if not isinstance(mapping, Mapping):
            logger.warning("ignoring configuration that is not a mapping: %r", type(mapping).__name__)
            mapping = {}

        base = {key: value for key, value in mapping.items() if _fold(str(key)) != "profiles"}
        if profile is not Unset and profile is not None:
            base = merge(base, *self._chain(_find(mapping, "profiles"), profile))
            logger.debug("configuration profile %r applied", profile)

        self._data = base
        self._profile = coalesce(profile)

    @staticmethod
    def _chain(profiles, name):
        """
        Overlays for a profile, root ancestor first.
        """
        chain, visited = [], []
        while name is not None:
            if name.casefold() in visited:
                raise ConfigurationError(
                    "profile %r inherits from itself (%s)" % (name, " -> ".join((*visited, name.casefold()))),
                    title="invalid profile",
                    code=FaultCode.INVALID_PROFILE,
                )
            overlay = _find(profiles, name)
            if not isinstance(overlay, Mapping):
                raise ConfigurationError(
                    "unknown configuration profile %r" % name,
                    title="invalid profile",
                    code=FaultCode.INVALID_PROFILE,
                )
            visited.append(name.casefold())
            chain.append({key: value for key, value in overlay.items() if _fold(str(key)) != "inherits"})
            name = coalesce(_find(overlay, "inherits"), None)
            if name is not None and not isinstance(name, str):
                raise ConfigurationError(
                    "profile 'inherits' must name another profile",
                    title="invalid profile",
                    code=FaultCode.INVALID_PROFILE,
                )
        return reversed(chain)

    @property
    def profile(self):
        return self._profile

    @property
    def data(self):
        return merge(self._data)

    def section(self, path, /):
        """
        Return the command section for a path of command names ({} when absent).
        """
        commands = _find(self._data, "commands")
        if not isinstance(commands, Mapping) or not path:
            return {}
        for separator in (" ", "."):
            if isinstance(section := _find(commands, separator.join(path)), Mapping):
                return section
        section = commands
        for name in path:
            section = _find(section, name)
            if not isinstance(section, Mapping):
                return {}
        return section

    def globals(self):
        """
        Return the globalOptions section ({} when absent).
        """
        section = _find(self._data, "globalOptions")
        return section if isinstance(section, Mapping) else {}

    def lookup(self, section, name, /):
        """
        Return the stringified value of name in a section, or None.
        """
        value = _find(section, name)
        if value is Unset or value is None or isinstance(value, Mapping):
            return None
        try:
            return stringify(value)
        except ValueError:
            logger.warning("ignoring malformed configuration value for %r: %r", name, value)
            return None

    def __repr__(self):
        return f"configuration-source(profile={self._profile!r})"


class Layers:
    """
    Per-dispatch value resolution below the command line.

    resolve(spec) walks environment > configuration > default and returns
    (raw, Source); raw is Unset when no layer supplies a value. Raw values from
    the environment and configuration are strings, defaults are returned as
    declared.

    Parameters
    - environment: Environment snapshot.
    - configuration: ConfigurationSource.
    - section: mapping to look names up in (a command section, or globalOptions).
    - prefix: optional environment prefix for specs without an explicit env.
    """

    def __init__(self, environment, configuration, section, /, prefix=None):
        self._environment = environment
        self._configuration = configuration
        self._section = section
        self._prefix = prefix

    def variable(self, spec, /):
        """
        Environment variable name for spec (explicit, or derived from the prefix).
        """
        if spec.env:
            return spec.env
        if self._prefix and spec.kind != "argument":
            return (self._prefix + spec.name).upper().replace("-", "_")
        return None

    def resolve(self, spec, /):
        if (raw := self._environment.lookup(self.variable(spec))) is not None:
            logger.debug("%s resolved from environment variable %s", spec.display, self.variable(spec))
            return raw, Source.ENV
        if (raw := self._configuration.lookup(self._section, spec.name)) is not None:
            logger.debug("%s resolved from configuration", spec.display)
            return raw, Source.CONFIG
        if spec.default is not Unset:
            return spec.default, Source.DEFAULT
        return Unset, None


__all__ = (
    "Source",
    "Environment",
    "ConfigurationSource",
    "Layers",
    "merge",
    "stringify",
)
