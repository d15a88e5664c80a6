"""Tests for tiers, roles and validators."""

from __future__ import annotations

import pytest

from viamail.domain.types import Role, Tier, tier_for_role
from viamail.domain.validators import (
    is_blank,
    is_valid_ci,
    is_valid_email,
    is_valid_phone,
    is_valid_plate,
    normalize_plate,
)


class TestTier:
    def test_ordering(self) -> None:
        assert Tier.PUBLIC < Tier.OPERATOR < Tier.ADMIN

    def test_labels(self) -> None:
        assert Tier.PUBLIC.label == "Público"
        assert Tier.ADMIN.label == "Administrador"

    @pytest.mark.parametrize(
        ("role", "tier"),
        [
            (Role.ADMIN, Tier.ADMIN),
            (Role.SECRETARIA, Tier.OPERATOR),
            (Role.CONDUCTOR, Tier.PUBLIC),
            (Role.CLIENTE, Tier.PUBLIC),
        ],
    )
    def test_role_mapping(self, role: Role, tier: Tier) -> None:
        assert tier_for_role(role.value) is tier

    def test_unknown_role_is_public(self) -> None:
        assert tier_for_role("Gerente") is Tier.PUBLIC


class TestValidators:
    def test_ci(self) -> None:
        assert is_valid_ci("1234567")
        assert not is_valid_ci("1234")
        assert not is_valid_ci("12345a")
        assert not is_valid_ci(None)

    def test_phone(self) -> None:
        assert is_valid_phone("70012345")
        assert not is_valid_phone("+591 700")

    def test_email(self) -> None:
        assert is_valid_email("ana.rojas@example.com")
        assert not is_valid_email("ana@example")
        assert not is_valid_email("")

    def test_plate(self) -> None:
        assert normalize_plate(" abc-123 ") == "ABC-123"
        assert is_valid_plate("abc-123")
        assert not is_valid_plate("A B")

    def test_blank(self) -> None:
        assert is_blank(None)
        assert is_blank("  ")
        assert not is_blank("x")
