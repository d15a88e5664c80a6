"""Authorizer — sender resolution and tier check.

A request is authorized only when its command is known to the permission
table and the resolved principal's tier meets the command's required
tier. Sender resolution depends on the configured policy:

* ``strict``: an address missing from the user registry is rejected.
* ``permissive``: it becomes a PUBLIC anonymous principal (never stored).
"""

from __future__ import annotations

import logging
from enum import StrEnum
from typing import TYPE_CHECKING, Protocol

from viamail.domain.errors import AuthorizationError
from viamail.domain.protocol import Principal
from viamail.domain.types import Tier

if TYPE_CHECKING:
    from viamail.domain.permissions import PermissionTable
    from viamail.domain.protocol import CommandRequest

logger = logging.getLogger(__name__)

ANONYMOUS_NAME = "Anónimo"


class SenderPolicy(StrEnum):
    STRICT = "strict"
    PERMISSIVE = "permissive"


class UserRegistry(Protocol):
    def find_active_by_email(self, address: str) -> Principal | None: ...


class Authorizer:
    """Resolve the sender of a request and check its access tier."""

    def __init__(
        self,
        table: PermissionTable,
        registry: UserRegistry,
        policy: SenderPolicy | str = SenderPolicy.STRICT,
    ) -> None:
        self._table = table
        self._registry = registry
        self._policy = SenderPolicy(policy)

    @property
    def table(self) -> PermissionTable:
        return self._table

    def resolve(self, address: str) -> Principal:
        """Map *address* to a principal according to the sender policy."""
        principal = self._registry.find_active_by_email(address)
        if principal is not None:
            return principal
        if self._policy is SenderPolicy.PERMISSIVE:
            logger.debug("Unregistered sender %s treated as anonymous", address)
            return Principal(
                address=address,
                tier=Tier.PUBLIC,
                display_name=ANONYMOUS_NAME,
                anonymous=True,
            )
        raise AuthorizationError(f"Remitente no registrado o inactivo: {address or '(vacío)'}")

    def authorize(self, request: CommandRequest) -> Principal:
        """Return the principal allowed to run *request*.

        Raises:
            AuthorizationError: unknown command, unregistered sender under
                the strict policy, or insufficient tier.
        """
        rule = self._table.rule_for(request.command_name)
        if rule is None:
            raise AuthorizationError(f"Comando desconocido: {request.command_name}")
        principal = self.resolve(request.sender_address)
        if principal.tier < rule.required_tier:
            raise AuthorizationError(
                f"El comando {request.command_name} requiere nivel "
                f"{rule.required_tier.label}; su nivel es {principal.tier.label}"
            )
        return principal
