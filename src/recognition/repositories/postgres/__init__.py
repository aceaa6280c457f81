"""SQL-backed implementations of the repository protocols."""

from recognition.repositories.postgres.roles import PostgresRoleRepository
from recognition.repositories.postgres.rules import PostgresRuleRepository

__all__ = ["PostgresRoleRepository", "PostgresRuleRepository"]
