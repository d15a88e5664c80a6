"""Static permission table: command name -> minimum access tier.

Built once at import time and never mutated. Commands absent from the
table are unknown to the system.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from types import MappingProxyType

from pydantic import BaseModel, Field

from viamail.domain.types import Tier


class PermissionRule(BaseModel):
    model_config = {"frozen": True}

    command_name: str = Field(pattern=r"^[A-Z]+$")
    required_tier: Tier


_ADMIN_COMMANDS = (
    "INSUSU", "UPDUSU", "DELUSU",
    "INSVEH", "UPDVEH", "DELVEH",
    "INSRUT", "UPDRUT", "DELRUT",
    "INSVIA", "UPDVIA", "DELVIA",
)  # fmt: skip

_OPERATOR_COMMANDS = (
    "INSBOL", "LISBOL", "GETBOL",
    "INSENC", "LISENC", "GETENC",
    "LISVEN", "GETVEN",
    "INSPAG", "LISPAG", "GETPAG",
)  # fmt: skip

_PUBLIC_COMMANDS = (
    "HELP",
    "LISUSU", "GETUSU",
    "LISVEH", "GETVEH",
    "LISRUT", "GETRUT",
    "LISVIA", "GETVIA",
)  # fmt: skip


class PermissionTable:
    """Read-only mapping from command name to :class:`PermissionRule`.

    ``HELP`` is always present and always PUBLIC, whatever the input.
    """

    def __init__(self, rules: Iterable[PermissionRule]) -> None:
        table = {rule.command_name: rule for rule in rules}
        table["HELP"] = PermissionRule(command_name="HELP", required_tier=Tier.PUBLIC)
        self._rules: Mapping[str, PermissionRule] = MappingProxyType(table)

    @classmethod
    def from_tiers(cls, tiers: Mapping[str, Tier]) -> PermissionTable:
        return cls(PermissionRule(command_name=n, required_tier=t) for n, t in tiers.items())

    def rule_for(self, command_name: str) -> PermissionRule | None:
        return self._rules.get(command_name)

    def allowed_for(self, tier: Tier) -> list[str]:
        """Command names whose required tier *tier* meets, in table order."""
        return [name for name, rule in self._rules.items() if tier >= rule.required_tier]

    def __contains__(self, command_name: object) -> bool:
        return command_name in self._rules

    def __iter__(self) -> Iterator[PermissionRule]:
        return iter(self._rules.values())

    def __len__(self) -> int:
        return len(self._rules)


def _default_tiers() -> dict[str, Tier]:
    tiers: dict[str, Tier] = {}
    tiers.update(dict.fromkeys(_ADMIN_COMMANDS, Tier.ADMIN))
    tiers.update(dict.fromkeys(_OPERATOR_COMMANDS, Tier.OPERATOR))
    tiers.update(dict.fromkeys(_PUBLIC_COMMANDS, Tier.PUBLIC))
    return tiers


DEFAULT_PERMISSIONS = PermissionTable.from_tiers(_default_tiers())
