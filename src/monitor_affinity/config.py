"""Rule configuration: affinity tokens, TOML config files, CLI flags."""

from __future__ import annotations

import logging
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable

from .models import Affinity, AffinityTerm, CommandTemplate, Polarity

log = logging.getLogger(__name__)

NEGATION_PREFIX = "not-"

_ALIASES = {
    "non-primary": Affinity.NONPRIMARY,
}

_RULE_KEYS = {"name", "cmd", "args", "affinities", "allow_multiple", "env"}


class ConfigError(ValueError):
    """Raised for malformed rules, affinity tokens or config files."""


@dataclass(frozen=True)
class Rule:
    """A command to launch on the monitors picked by an affinity list."""

    name: str
    terms: tuple[AffinityTerm, ...]
    template: CommandTemplate


def _parse_affinity(token: str) -> Affinity:
    if token in _ALIASES:
        return _ALIASES[token]
    try:
        return Affinity(token)
    except ValueError:
        choices = ", ".join(a.value for a in Affinity)
        raise ConfigError(f"unknown affinity {token!r} (expected one of: {choices})") from None


def parse_term(token: str) -> AffinityTerm:
    """Parse ``largest`` or ``not-largest`` style tokens."""
    if not isinstance(token, str):
        raise ConfigError(f"affinity must be a string, got {token!r}")
    text = token.strip().lower()
    if text.startswith(NEGATION_PREFIX):
        inner = text[len(NEGATION_PREFIX):]
        if not inner:
            raise ConfigError(f"missing criterion after 'not-' in {token!r}")
        if inner.startswith(NEGATION_PREFIX):
            raise ConfigError(f"double negation is not supported: {token!r}")
        return AffinityTerm(_parse_affinity(inner), Polarity.EXCLUSIVE)
    return AffinityTerm(_parse_affinity(text))


def parse_terms(tokens: Iterable[str]) -> tuple[AffinityTerm, ...]:
    """Parse an ordered affinity list; it must not be empty."""
    if isinstance(tokens, str):
        raise ConfigError("affinities must be a list of strings")
    terms = tuple(parse_term(t) for t in tokens)
    if not terms:
        raise ConfigError("at least one affinity is required")
    return terms


def rule_from_args(
    cmd: str,
    affinities: Iterable[str],
    *,
    args: Iterable[str] | None = None,
    env: str | None = None,
    allow_multiple: bool = False,
    name: str | None = None,
) -> Rule:
    """Build a validated rule from already-typed values."""
    if not cmd:
        raise ConfigError("command must not be empty")
    if env is not None and (not env or "=" in env):
        raise ConfigError(f"invalid environment variable name {env!r}")
    template = CommandTemplate(
        program=cmd,
        args=tuple(args or ()),
        env_var=env,
        allow_multiple=allow_multiple,
    )
    return Rule(name=name or cmd, terms=parse_terms(affinities), template=template)


def _expect(value: Any, kind: type | tuple[type, ...], what: str) -> Any:
    if not isinstance(value, kind):
        raise ConfigError(f"{what} has the wrong type: {value!r}")
    return value


def rule_from_dict(data: dict[str, Any], index: int = 0) -> Rule:
    """Build a rule from one ``[[config]]`` table."""
    where = f"config[{index}]"
    _expect(data, dict, where)
    unknown = set(data) - _RULE_KEYS
    if unknown:
        raise ConfigError(f"{where}: unknown key(s): {', '.join(sorted(unknown))}")
    if "cmd" not in data:
        raise ConfigError(f"{where}: missing 'cmd'")
    if "affinities" not in data:
        raise ConfigError(f"{where}: missing 'affinities'")

    args = _expect(data.get("args", []), list, f"{where}.args")
    for a in args:
        _expect(a, str, f"{where}.args item")

    try:
        return rule_from_args(
            _expect(data["cmd"], str, f"{where}.cmd"),
            _expect(data["affinities"], list, f"{where}.affinities"),
            args=args,
            env=_expect(data.get("env"), (str, type(None)), f"{where}.env"),
            allow_multiple=_expect(data.get("allow_multiple", False), bool, f"{where}.allow_multiple"),
            name=_expect(data.get("name"), (str, type(None)), f"{where}.name"),
        )
    except ConfigError as e:
        if str(e).startswith(where):
            raise
        raise ConfigError(f"{where}: {e}") from None


def load_config_file(path: Path) -> list[Rule]:
    """Read a TOML file holding one ``[[config]]`` table per rule."""
    log.debug("Loading config file %s", path)
    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except OSError as e:
        raise ConfigError(f"cannot read {path}: {e.strerror or e}") from e
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"{path}: {e}") from e

    tables = data.get("config")
    if not isinstance(tables, list) or not tables:
        raise ConfigError(f"{path}: expected at least one [[config]] table")
    extra = set(data) - {"config"}
    if extra:
        raise ConfigError(f"{path}: unknown top-level key(s): {', '.join(sorted(extra))}")

    rules = [rule_from_dict(t, i) for i, t in enumerate(tables)]
    log.debug("Loaded %d rule(s) from %s", len(rules), path)
    return rules
