"""
Database Service - project scoped database lookup.
"""

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from vcsflow.core.exceptions import DatabaseLookupError
from vcsflow.core.models import Database


class DatabaseService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_by_name(self, project_id: int, name: str) -> list[Database]:
        """
        List the project's databases with the given name, across all
        environments. Instance and environment are loaded with each row.
        """
        try:
            result = await self.db.execute(
                select(Database)
                .where(Database.project_id == project_id, Database.name == name)
                .order_by(Database.id)
            )
        except SQLAlchemyError as e:
            raise DatabaseLookupError(str(e)) from e
        return list(result.scalars().unique().all())
