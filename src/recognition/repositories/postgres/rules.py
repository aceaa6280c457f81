"""PostgreSQL recognition rule repository."""

from __future__ import annotations

from sqlalchemy import func, select

from recognition.core.types import RecognitionRule, TreeRule
from recognition.db.engine import DatabaseManager
from recognition.db.models import RecognitionRuleRow
from recognition.rules.store import to_tree_rules


class PostgresRuleRepository:
    """Postgres-backed rule storage.

    Active rules are served in creation order, which is the order
    classifiers try them in.
    """

    def __init__(self, db: DatabaseManager) -> None:
        self._db = db

    async def get_all(self) -> list[RecognitionRule]:
        async with self._db.session() as db:
            result = await db.execute(
                select(RecognitionRuleRow).order_by(
                    RecognitionRuleRow.created_at, RecognitionRuleRow.id
                )
            )
            return [self._row_to_rule(r) for r in result.scalars().all()]

    async def get_by_id(self, rule_id: str) -> RecognitionRule | None:
        async with self._db.session() as db:
            row = await db.get(RecognitionRuleRow, rule_id)
            if row is None:
                return None
            return self._row_to_rule(row)

    async def get_by_role_id(self, role_id: str) -> RecognitionRule | None:
        async with self._db.session() as db:
            result = await db.execute(
                select(RecognitionRuleRow).where(RecognitionRuleRow.role_id == role_id)
            )
            row = result.scalars().first()
            return self._row_to_rule(row) if row else None

    async def add(self, rule: RecognitionRule) -> RecognitionRule:
        async with self._db.session() as db:
            db.add(
                RecognitionRuleRow(
                    id=rule.id,
                    role_id=rule.role_id,
                    root_node=rule.root_node,
                    formula=rule.formula,
                    created_at=rule.created_at,
                    updated_at=rule.updated_at,
                )
            )
            await db.commit()
        return await self.get_by_id(rule.id) or rule

    async def update(self, rule: RecognitionRule) -> RecognitionRule:
        async with self._db.session() as db:
            row = await db.get(RecognitionRuleRow, rule.id)
            if row is None:
                raise KeyError(rule.id)
            row.role_id = rule.role_id
            row.root_node = rule.root_node
            row.formula = rule.formula
            row.updated_at = rule.updated_at
            await db.commit()
        return await self.get_by_id(rule.id) or rule

    async def delete(self, rule_id: str) -> bool:
        async with self._db.session() as db:
            row = await db.get(RecognitionRuleRow, rule_id)
            if row is None:
                return False
            await db.delete(row)
            await db.commit()
            return True

    async def exists(self, rule_id: str) -> bool:
        async with self._db.session() as db:
            result = await db.execute(
                select(func.count())
                .select_from(RecognitionRuleRow)
                .where(RecognitionRuleRow.id == rule_id)
            )
            return result.scalar_one() > 0

    async def list_active_rules(self) -> list[RecognitionRule]:
        return await self.get_all()

    async def list_active_rules_tree(self) -> list[TreeRule]:
        return to_tree_rules(await self.get_all())

    async def async_count(self) -> int:
        async with self._db.session() as db:
            result = await db.execute(select(func.count()).select_from(RecognitionRuleRow))
            return result.scalar_one()

    @staticmethod
    def _row_to_rule(row: RecognitionRuleRow) -> RecognitionRule:
        return RecognitionRule(
            id=row.id,
            role_id=row.role_id,
            role_name=row.role.name if row.role is not None else None,
            root_node=row.root_node,
            formula=row.formula,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )
