"""
Registry Configuration

Process-wide knobs for a NamespaceRegistry. Components keep a reference
to the config object (never a copy), so every value is read at call time
and may be changed while the registry is in use.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Callable, Mapping, Optional
import os


ENV_PREFIX = "NSREGISTRY_"

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off"})


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be a boolean flag, got {raw!r}")


@dataclass
class RegistryConfig:
    """
    Configuration for a namespace registry.

    FIELDS:
    =======
    separator       Segment separator inside identifiers (single character)
    base_uri        Prefix for remote code units; must end with "/"
    auto_include    Default for `use`: load missing targets automatically
    strict          `use` raises MissingBindingError instead of skipping
    script_suffix   Extension appended to mapped URIs
    timeout_seconds Transport timeout for a single request
    user_agent      User-Agent sent by network transports
    uri_mapper      Optional identifier -> URI policy replacing the default
    """
    separator: str = "."
    base_uri: str = "./"
    auto_include: bool = True
    strict: bool = False
    script_suffix: str = ".py"
    timeout_seconds: float = 30.0
    user_agent: str = "nsregistry/1.0"
    uri_mapper: Optional[Callable[[str], str]] = None

    def __post_init__(self):
        self.validate()

    def validate(self):
        """Reject values the registry cannot work with."""
        if len(self.separator) != 1:
            raise ValueError(
                f"separator must be a single character, got {self.separator!r}"
            )
        if self.separator == "*":
            raise ValueError("separator cannot be the wildcard character")
        if self.timeout_seconds <= 0:
            raise ValueError(
                f"timeout_seconds must be positive, got {self.timeout_seconds}"
            )

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        prefix: str = ENV_PREFIX
    ) -> 'RegistryConfig':
        """
        Build a config from environment variables.

        Recognized: {prefix}BASE_URI, {prefix}SEPARATOR, {prefix}AUTO_INCLUDE,
        {prefix}STRICT, {prefix}SCRIPT_SUFFIX, {prefix}TIMEOUT.
        Unset variables keep the dataclass defaults.
        """
        env = os.environ if environ is None else environ
        kwargs = {}

        if f"{prefix}BASE_URI" in env:
            kwargs['base_uri'] = env[f"{prefix}BASE_URI"]
        if f"{prefix}SEPARATOR" in env:
            kwargs['separator'] = env[f"{prefix}SEPARATOR"]
        if f"{prefix}SCRIPT_SUFFIX" in env:
            kwargs['script_suffix'] = env[f"{prefix}SCRIPT_SUFFIX"]
        if f"{prefix}AUTO_INCLUDE" in env:
            kwargs['auto_include'] = _parse_bool(
                f"{prefix}AUTO_INCLUDE", env[f"{prefix}AUTO_INCLUDE"]
            )
        if f"{prefix}STRICT" in env:
            kwargs['strict'] = _parse_bool(f"{prefix}STRICT", env[f"{prefix}STRICT"])
        if f"{prefix}TIMEOUT" in env:
            kwargs['timeout_seconds'] = float(env[f"{prefix}TIMEOUT"])

        return cls(**kwargs)
