"""Comparison configuration for BeanDiff engine."""

from __future__ import annotations

import importlib
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Optional

import yaml

from .exceptions import ConfigurationError
from .jsonpath_utils import IgnoredPaths
from .registry import Decoder, Encoder, TypeRegistry
from .skip import Predicate, SkipPredicateSet, instances_of

logger = logging.getLogger(__name__)

_KNOWN_KEYS = frozenset({
    'ignore_paths',
    'skip_circular_reference_check',
    'type_adapters',
    'fail_fast',
    'max_divergences',
})


@dataclass(frozen=True)
class ConfigSnapshot:
    """Read-only view of a configuration, taken once per comparison."""
    registry: TypeRegistry = field(default_factory=lambda: TypeRegistry(frozen=True))
    skip_predicates: SkipPredicateSet = field(
        default_factory=lambda: SkipPredicateSet(frozen=True)
    )
    ignored_paths: IgnoredPaths = field(default_factory=lambda: IgnoredPaths(frozen=True))
    fail_fast: bool = False
    max_divergences: Optional[int] = None


EMPTY_SNAPSHOT = ConfigSnapshot()


@dataclass
class ComparisonConfig:
    """
    Caller-owned configuration for comparisons.

    Build it before comparing; every comparison works on a snapshot, so
    changes made afterwards never affect a comparison already running.

    Usage:
        config = (ComparisonConfig()
                  .add_type_adapter(Clock, lambda c: "clock")
                  .skip_circular_reference_check(instances_of(Clock))
                  .ignoring("$..updated_at"))
    """
    fail_fast: bool = False
    max_divergences: Optional[int] = None
    registry: TypeRegistry = field(default_factory=TypeRegistry)
    skip_predicates: SkipPredicateSet = field(default_factory=SkipPredicateSet)
    ignored_paths: IgnoredPaths = field(default_factory=IgnoredPaths)

    def add_type_adapter(
        self,
        type_: type,
        encoder: Encoder,
        decoder: Optional[Decoder] = None
    ) -> ComparisonConfig:
        """Replace default traversal of type_ (and its subclasses) by encoder."""
        self.registry.register(type_, encoder, decoder)
        return self

    def skip_circular_reference_check(self, predicate: Predicate) -> ComparisonConfig:
        """Exempt values matching predicate from circular reference tracking."""
        self.skip_predicates.add_skip(predicate)
        return self

    def ignoring(self, *paths: str) -> ComparisonConfig:
        """Leave values matched by the JSONPath expressions out of the comparison."""
        self.ignored_paths.add(*paths)
        return self

    def snapshot(self) -> ConfigSnapshot:
        """Take an immutable snapshot of the current configuration."""
        limit = self.max_divergences
        if limit is not None and (not isinstance(limit, int) or limit < 1):
            raise ConfigurationError(
                "max_divergences must be a positive integer",
                {"max_divergences": self.max_divergences}
            )
        return ConfigSnapshot(
            registry=self.registry.frozen(),
            skip_predicates=self.skip_predicates.frozen(),
            ignored_paths=self.ignored_paths.frozen(),
            fail_fast=self.fail_fast,
            max_divergences=self.max_divergences,
        )

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> ComparisonConfig:
        """
        Build a configuration from plain data.

        Supported keys:
            ignore_paths: list of JSONPath expressions
            skip_circular_reference_check: list of dotted class names
            type_adapters: mapping of dotted class name to a dotted encoder
                name, or to {encoder: ..., decoder: ...}
            fail_fast: bool
            max_divergences: positive int

        Raises:
            ConfigurationError: on unknown keys, bad values or unimportable names
        """
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigurationError(
                "Configuration must be a mapping",
                {"type": type(data).__name__}
            )

        unknown = sorted(set(data) - _KNOWN_KEYS)
        if unknown:
            raise ConfigurationError(
                f"Unknown configuration keys: {', '.join(map(str, unknown))}",
                {"keys": unknown}
            )

        config = cls(
            fail_fast=bool(data.get('fail_fast', False)),
            max_divergences=data.get('max_divergences'),
        )

        for path in _as_list(data, 'ignore_paths'):
            config.ignoring(path)

        for name in _as_list(data, 'skip_circular_reference_check'):
            klass = _import_object(name)
            if not isinstance(klass, type):
                raise ConfigurationError(f"'{name}' is not a class", {"name": name})
            config.skip_circular_reference_check(instances_of(klass))

        adapters = data.get('type_adapters') or {}
        if not isinstance(adapters, dict):
            raise ConfigurationError("type_adapters must be a mapping")
        for type_name, adapter in adapters.items():
            klass = _import_object(type_name)
            if isinstance(adapter, dict):
                encoder = _import_object(adapter.get('encoder'))
                decoder = _import_object(adapter['decoder']) if adapter.get('decoder') else None
            else:
                encoder = _import_object(adapter)
                decoder = None
            config.add_type_adapter(klass, encoder, decoder)

        logger.debug(
            "Loaded configuration: %d type adapter(s), %d skip predicate(s), "
            "%d ignored path(s)",
            len(config.registry), len(config.skip_predicates), len(config.ignored_paths)
        )
        return config

    @classmethod
    def from_yaml(cls, path: str | Path) -> ComparisonConfig:
        """Load a configuration from a YAML (or JSON) file."""
        config_path = Path(path)
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_path, 'r') as f:
            content = f.read()

        # JSON is valid YAML
        try:
            data = yaml.safe_load(content)
        except yaml.YAMLError as e:
            raise ConfigurationError(
                f"Failed to parse configuration file: {e}",
                {"path": str(config_path)}
            ) from e

        return cls.from_dict(data)


def _as_list(data: dict, key: str) -> list:
    value = data.get(key) or []
    if isinstance(value, str):
        return [value]
    if not isinstance(value, list):
        raise ConfigurationError(f"{key} must be a list", {"type": type(value).__name__})
    return value


def _import_object(dotted_name: Any) -> Callable:
    """Import 'package.module.Name' (nested attributes allowed)."""
    if not isinstance(dotted_name, str) or '.' not in dotted_name:
        raise ConfigurationError(
            f"Expected a dotted name, got {dotted_name!r}",
            {"name": dotted_name}
        )

    parts = dotted_name.split('.')
    # Longest importable module prefix, then attribute access
    for split in range(len(parts) - 1, 0, -1):
        module_name = '.'.join(parts[:split])
        try:
            obj = importlib.import_module(module_name)
        except ImportError:
            continue
        try:
            for attr in parts[split:]:
                obj = getattr(obj, attr)
        except AttributeError as e:
            raise ConfigurationError(
                f"Cannot resolve '{dotted_name}': {e}",
                {"name": dotted_name}
            ) from e
        return obj

    raise ConfigurationError(f"Cannot import '{dotted_name}'", {"name": dotted_name})
