"""Type override registry for BeanDiff engine."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Optional

from .exceptions import ConfigurationError, TypeOverrideError
from .utils import qualified_name


Encoder = Callable[[Any], Any]
Decoder = Callable[[Any], Any]


@dataclass(frozen=True)
class TypeOverride:
    """A caller supplied encoder/decoder pair for one type."""
    type: type
    encoder: Encoder
    decoder: Optional[Decoder] = None

    @property
    def type_name(self) -> str:
        return qualified_name(self.type)


class TypeRegistry:
    """
    Maps runtime types to optional overrides.

    Lookup walks the MRO of the value's type, so an exact registration wins
    over one made for a supertype.
    """

    def __init__(
        self,
        overrides: Optional[dict[type, TypeOverride]] = None,
        frozen: bool = False
    ):
        self._overrides: dict[type, TypeOverride] = dict(overrides or {})
        self._frozen = frozen
        self._lookup_cache: dict[type, Optional[TypeOverride]] = {}

    def register(
        self,
        type_: type,
        encoder: Encoder,
        decoder: Optional[Decoder] = None
    ) -> TypeOverride:
        """
        Associate a type with an override.

        Args:
            type_: The class to override
            encoder: Callable turning an instance into plain comparable data
            decoder: Optional callable turning that data back into an instance

        Returns:
            The registered TypeOverride
        """
        if self._frozen:
            raise ConfigurationError("Type registry is frozen")
        if not isinstance(type_, type):
            raise ConfigurationError(
                "Type adapters can only be registered for classes",
                {"type": type(type_).__name__}
            )
        if not callable(encoder):
            raise ConfigurationError(
                f"Encoder for '{qualified_name(type_)}' is not callable"
            )
        if decoder is not None and not callable(decoder):
            raise ConfigurationError(
                f"Decoder for '{qualified_name(type_)}' is not callable"
            )

        override = TypeOverride(type_, encoder, decoder)
        self._overrides[type_] = override
        self._lookup_cache.clear()
        return override

    def lookup(self, type_: type) -> Optional[TypeOverride]:
        """Find the most specific override for a type, if any."""
        if not self._overrides:
            return None

        try:
            return self._lookup_cache[type_]
        except KeyError:
            pass

        found = None
        for klass in type_.__mro__:
            if klass in self._overrides:
                found = self._overrides[klass]
                break

        self._lookup_cache[type_] = found
        return found

    def decode(self, type_: type, data: Any) -> Any:
        """Rebuild an instance of type_ from encoded data."""
        override = self.lookup(type_)
        if override is None or override.decoder is None:
            raise TypeOverrideError(qualified_name(type_), "no decoder registered")
        try:
            return override.decoder(data)
        except Exception as e:
            raise TypeOverrideError(override.type_name, str(e)) from e

    def frozen(self) -> TypeRegistry:
        """Get a read-only copy of this registry."""
        return TypeRegistry(self._overrides, frozen=True)

    @property
    def is_frozen(self) -> bool:
        return self._frozen

    def __contains__(self, type_: type) -> bool:
        return type_ in self._overrides

    def __len__(self) -> int:
        return len(self._overrides)
