"""Command dispatcher — registry lookup, arity check, conversion, invocation.

INVARIANT: :meth:`Dispatcher.execute` never raises. Every expected
failure becomes an error response of its own kind; anything else is
logged and reported as an internal error without its exception text.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from viamail.domain.errors import (
    INTERNAL_DETAIL,
    CommandError,
    CommandFailure,
    ErrorKind,
    ValidationError,
)
from viamail.domain.params import ParamSpec, arity_bounds
from viamail.domain.protocol import CommandResponse

if TYPE_CHECKING:
    from viamail.domain.protocol import CommandRequest, Principal

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Invocation:
    """Converted arguments of one call plus the principal making it."""

    principal: Principal
    args: Mapping[str, Any]

    def __getitem__(self, name: str) -> Any:
        return self.args[name]

    def get(self, name: str, default: Any = None) -> Any:
        return self.args.get(name, default)


@dataclass(frozen=True)
class HandlerDescriptor:
    """Immutable registry entry for one command.

    Attributes:
        command_name: Upper-case command token.
        params: Positional parameter specs; required ones come first.
        entry_point: Calls into the back office and returns a result.
        render: Turns that result into reply text.
        summary: One-line description shown by ``HELP``.
        min_arity: Number of required parameters (derived).
        max_arity: Total number of parameters (derived).
    """

    command_name: str
    params: tuple[ParamSpec, ...]
    entry_point: Callable[[Invocation], Any]
    render: Callable[[Any], str]
    summary: str = ""
    min_arity: int = field(init=False)
    max_arity: int = field(init=False)

    def __post_init__(self) -> None:
        seen_optional = False
        for spec in self.params:
            if not spec.required:
                seen_optional = True
            elif seen_optional:
                raise ValueError(
                    f"{self.command_name}: required parameter '{spec.name}' after optional ones"
                )
        low, high = arity_bounds(self.params)
        object.__setattr__(self, "min_arity", low)
        object.__setattr__(self, "max_arity", high)

    @property
    def usage(self) -> str:
        if not self.params:
            return self.command_name
        names = ", ".join(p.name if p.required else f"{p.name}?" for p in self.params)
        return f"{self.command_name}[{names}]"


def build_registry(descriptors: Iterable[HandlerDescriptor]) -> Mapping[str, HandlerDescriptor]:
    """Freeze *descriptors* into a read-only name-keyed mapping."""
    registry: dict[str, HandlerDescriptor] = {}
    for descriptor in descriptors:
        if descriptor.command_name in registry:
            raise ValueError(f"Duplicate handler for {descriptor.command_name}")
        registry[descriptor.command_name] = descriptor
    return MappingProxyType(registry)


def _expected(descriptor: HandlerDescriptor) -> str:
    if descriptor.min_arity == descriptor.max_arity:
        return str(descriptor.min_arity)
    return f"entre {descriptor.min_arity} y {descriptor.max_arity}"


class Dispatcher:
    """Stateless executor over a read-only handler registry."""

    def __init__(self, registry: Mapping[str, HandlerDescriptor]) -> None:
        self._registry = registry

    @property
    def registry(self) -> Mapping[str, HandlerDescriptor]:
        return self._registry

    def bind(self, descriptor: HandlerDescriptor, parameters: tuple[str, ...]) -> dict[str, Any]:
        """Check arity and convert *parameters* positionally.

        Raises:
            ValidationError: wrong parameter count, or a token that does
                not convert (the error names the parameter).
        """
        received = len(parameters)
        if not descriptor.min_arity <= received <= descriptor.max_arity:
            raise ValidationError(
                f"Número de parámetros incorrecto para {descriptor.command_name}. "
                f"Esperados: {_expected(descriptor)}, Recibidos: {received}. "
                f"Uso: {descriptor.usage}"
            )
        args: dict[str, Any] = {spec.name: None for spec in descriptor.params}
        for spec, token in zip(descriptor.params, parameters, strict=False):
            try:
                args[spec.name] = spec.convert(token)
            except ValueError as exc:
                raise ValidationError(str(exc), field=spec.name) from None
        return args

    def execute(self, request: CommandRequest, principal: Principal) -> CommandResponse:
        name = request.command_name
        try:
            descriptor = self._registry.get(name)
            if descriptor is None:
                raise CommandError(f"Comando no implementado: {name}")
            args = self.bind(descriptor, request.parameters)
            result = descriptor.entry_point(Invocation(principal=principal, args=args))
            payload = descriptor.render(result)
        except CommandFailure as exc:
            logger.info("%s failed (%s): %s", name, exc.kind, exc.full_detail)
            return CommandResponse.failure(name, exc)
        except Exception:
            logger.exception("Unexpected error executing %s", name)
            return CommandResponse.error(name, ErrorKind.INTERNAL, INTERNAL_DETAIL)
        logger.debug("%s executed for %s", name, principal.address)
        return CommandResponse.success(name, payload)
