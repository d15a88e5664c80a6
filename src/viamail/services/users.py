"""UserService — back-office users and the sender registry.

Users are soft-deleted: ``deleted_at`` is set and the row disappears from
every lookup, including sender resolution.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import func, insert, select, update

from viamail.domain.errors import ConflictError, NotFoundError, ValidationError
from viamail.domain.params import EntityRef
from viamail.domain.protocol import Principal
from viamail.domain.types import Role, tier_for_role
from viamail.domain.validators import is_blank, is_valid_ci, is_valid_email, is_valid_phone
from viamail.infrastructure.database.schema import users
from viamail.services.base import BaseService

logger = logging.getLogger(__name__)

LABEL = "Usuario"

_ROLE_VALUES = ", ".join(r.value for r in Role)


def _active() -> Any:
    return users.c.deleted_at.is_(None)


class UserService(BaseService):
    """Create, query, update and soft-delete users."""

    def create(
        self,
        ci: str,
        nombre: str,
        apellido: str,
        rol: str,
        telefono: str | None = None,
        correo: str | None = None,
    ) -> dict[str, Any]:
        ci = ci.strip()
        if not is_valid_ci(ci):
            raise ValidationError("CI inválido. Debe contener entre 5 y 15 dígitos", field="ci")
        if is_blank(nombre):
            raise ValidationError("El nombre es requerido", field="nombre")
        if is_blank(apellido):
            raise ValidationError("El apellido es requerido", field="apellido")
        role = _parse_role(rol)
        telefono = (telefono or "").strip() or None
        if telefono is not None and not is_valid_phone(telefono):
            raise ValidationError(
                "Teléfono inválido. Debe contener entre 5 y 15 dígitos", field="telefono"
            )
        correo = (correo or "").strip() or None
        if correo is not None and not is_valid_email(correo):
            raise ValidationError("Email inválido", field="correo")

        with self._store.transaction() as conn:
            if conn.execute(select(users.c.id).where(users.c.ci == ci)).first() is not None:
                raise ConflictError(f"Ya existe un usuario con el CI: {ci}", field="ci")
            if correo is not None and self._email_owner(conn, correo) is not None:
                raise ConflictError(f"Ya existe un usuario con el email: {correo}", field="correo")
            result = conn.execute(
                insert(users).values(
                    ci=ci,
                    nombre=nombre.strip(),
                    apellido=apellido.strip(),
                    rol=role.value,
                    telefono=telefono,
                    correo=correo,
                    created_at=self._now(),
                )
            )
            user_id = result.inserted_primary_key[0]
            row = self._require_active(conn, user_id)
        logger.info("Created user %s (%s)", user_id, role.value)
        return row

    def list_all(self, rol: str | None = None) -> list[dict[str, Any]]:
        stmt = select(users).where(_active())
        if rol is not None:
            stmt = stmt.where(users.c.rol == _parse_role(rol).value)
        with self._store.read() as conn:
            return self._rows(conn, stmt.order_by(users.c.id))

    def get(self, ref: EntityRef) -> dict[str, Any]:
        """Look up an active user by numeric id or by CI."""
        with self._store.read() as conn:
            if ref.id is not None:
                return self._require_active(conn, ref.id)
            row = conn.execute(select(users).where(users.c.ci == ref.key, _active())).first()
        if row is None:
            raise NotFoundError(f"Usuario con CI {ref.key} no encontrado")
        return dict(row._mapping)

    def update(
        self,
        user_id: int,
        nombre: str | None = None,
        apellido: str | None = None,
        telefono: str | None = None,
        correo: str | None = None,
    ) -> dict[str, Any]:
        """Update the non-blank fields; blank or missing fields keep their value."""
        values: dict[str, Any] = {}
        nombre, apellido = (nombre or "").strip(), (apellido or "").strip()
        telefono, correo = (telefono or "").strip(), (correo or "").strip()
        if nombre:
            values["nombre"] = nombre
        if apellido:
            values["apellido"] = apellido
        if telefono:
            if not is_valid_phone(telefono):
                raise ValidationError("Teléfono inválido", field="telefono")
            values["telefono"] = telefono
        if correo:
            if not is_valid_email(correo):
                raise ValidationError("Email inválido", field="correo")
            values["correo"] = correo

        with self._store.transaction() as conn:
            self._require_active(conn, user_id)
            if "correo" in values:
                owner = self._email_owner(conn, values["correo"])
                if owner is not None and owner != user_id:
                    raise ConflictError("Ya existe otro usuario con ese email", field="correo")
            if values:
                conn.execute(update(users).where(users.c.id == user_id).values(**values))
            return self._require_active(conn, user_id)

    def delete(self, user_id: int) -> dict[str, Any]:
        with self._store.transaction() as conn:
            row = self._require_active(conn, user_id)
            conn.execute(
                update(users).where(users.c.id == user_id).values(deleted_at=self._now())
            )
        logger.info("Soft-deleted user %s", user_id)
        return row

    def find_active_by_email(self, address: str) -> Principal | None:
        """Resolve *address* (case-insensitive) to a :class:`Principal`."""
        if is_blank(address):
            return None
        stmt = select(users).where(
            func.lower(users.c.correo) == address.strip().lower(), _active()
        )
        with self._store.read() as conn:
            row = conn.execute(stmt).first()
        if row is None:
            return None
        return Principal(
            address=row.correo,
            tier=tier_for_role(row.rol),
            display_name=f"{row.nombre} {row.apellido}",
        )

    # ------------------------------------------------------------------
    # Shared lookups (used by the other services inside their transactions)
    # ------------------------------------------------------------------

    @staticmethod
    def _require_active(conn: Any, user_id: int, label: str = LABEL) -> dict[str, Any]:
        row = conn.execute(select(users).where(users.c.id == user_id, _active())).first()
        if row is None:
            raise NotFoundError.entity(label, user_id)
        return dict(row._mapping)

    @staticmethod
    def _email_owner(conn: Any, correo: str) -> int | None:
        stmt = select(users.c.id).where(func.lower(users.c.correo) == correo.lower())
        return conn.execute(stmt).scalar()


def require_active_user(conn: Any, user_id: int, label: str = LABEL) -> dict[str, Any]:
    """Fetch an active user row or raise NotFoundError labelled *label*."""
    return UserService._require_active(conn, user_id, label)


def _parse_role(rol: str) -> Role:
    try:
        return Role(str(rol).strip().capitalize())
    except ValueError:
        raise ValidationError(
            f"Rol inválido. Valores permitidos: {_ROLE_VALUES}", field="rol"
        ) from None
