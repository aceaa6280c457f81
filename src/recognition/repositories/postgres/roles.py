"""PostgreSQL family role repository."""

from __future__ import annotations

from sqlalchemy import select

from recognition.core.types import FamilyRole
from recognition.db.engine import DatabaseManager
from recognition.db.models import RoleRow


class PostgresRoleRepository:
    """Postgres-backed family role lookup."""

    def __init__(self, db: DatabaseManager) -> None:
        self._db = db

    async def add(self, role: FamilyRole) -> FamilyRole:
        async with self._db.session() as db:
            existing = await db.get(RoleRow, role.id)
            if existing:
                existing.name = role.name
            else:
                db.add(RoleRow(id=role.id, name=role.name))
            await db.commit()
        return role

    async def get(self, role_id: str) -> FamilyRole | None:
        async with self._db.session() as db:
            row = await db.get(RoleRow, role_id)
            if row is None:
                return None
            return FamilyRole(id=row.id, name=row.name)

    async def exists(self, role_id: str) -> bool:
        return await self.get(role_id) is not None

    async def list_all(self) -> list[FamilyRole]:
        async with self._db.session() as db:
            result = await db.execute(select(RoleRow).order_by(RoleRow.name))
            return [FamilyRole(id=r.id, name=r.name) for r in result.scalars().all()]
