"""
Database Resolver
=================

Maps a migration descriptor onto the project's concrete databases.

Three repository layouts are supported:
1. Same database name in every environment, one directory per environment
   (``prod/v1__orders.sql``). The path carries {{ENV_NAME}}.
2. Same database name in every environment, one shared file. A new file
   produces one stage per environment.
3. Distinct database names per environment. The name alone is enough.

Two databases with the same name in the same environment cannot be told
apart; such files are dropped silently rather than risk a pipeline against
the wrong target.
"""

from collections import defaultdict
from dataclasses import dataclass
from typing import Union

import structlog

from vcsflow.core.exceptions import DatabaseLookupError
from vcsflow.core.migration.classifier import Ignored, MigrationInfo
from vcsflow.core.models import Database
from vcsflow.core.store import DatabaseService

logger = structlog.get_logger()


@dataclass(frozen=True)
class DatabaseTarget:
    """One database a migration will run against."""
    database_id: int
    instance_id: int
    environment_id: int
    environment_name: str
    environment_order: int

    @classmethod
    def from_database(cls, database: Database) -> "DatabaseTarget":
        environment = database.instance.environment
        return cls(
            database_id=database.id,
            instance_id=database.instance_id,
            environment_id=environment.id,
            environment_name=environment.name,
            environment_order=environment.order,
        )


class DatabaseResolver:
    def __init__(self, database_service: DatabaseService):
        self.database_service = database_service

    async def resolve(
        self,
        project_id: int,
        migration_info: MigrationInfo,
        file_path: str,
    ) -> Union[list[DatabaseTarget], Ignored]:
        """
        Resolve the targets of a migration, one database per environment.

        Targets are ordered by environment order, then environment id.
        """
        try:
            database_list = await self.database_service.find_by_name(
                project_id, migration_info.database
            )
        except DatabaseLookupError as e:
            logger.warning("database_lookup_failed", file=file_path, error=e.message)
            return Ignored.recorded(
                f"failed to find database matching database {migration_info.database!r} "
                f"referenced by the committed file"
            )
        if not database_list:
            return Ignored.recorded(
                f"project ID {project_id} does not own database "
                f"{migration_info.database!r} referenced by the committed file"
            )

        # Environment names compare case-insensitively
        if migration_info.environment:
            wanted = migration_info.environment.casefold()
            database_list = [
                database
                for database in database_list
                if database.instance.environment.name.casefold() == wanted
            ]
            if not database_list:
                return Ignored.recorded(
                    f"project does not contain committed file database "
                    f"{migration_info.database!r} for environment {migration_info.environment!r}"
                )

        databases_by_environment: dict[int, list[Database]] = defaultdict(list)
        for database in database_list:
            databases_by_environment[database.instance.environment_id].append(database)

        ambiguous = [
            environment_id
            for environment_id, databases in databases_by_environment.items()
            if len(databases) > 1
        ]
        if ambiguous:
            for environment_id in ambiguous:
                logger.warning(
                    "ambiguous_database_for_environment",
                    project_id=project_id,
                    file=file_path,
                    database=migration_info.database,
                    environment_id=environment_id,
                )
            return Ignored.silent(
                f"multiple databases named {migration_info.database!r} in one environment"
            )

        targets = [
            DatabaseTarget.from_database(databases[0])
            for databases in databases_by_environment.values()
        ]
        targets.sort(key=lambda t: (t.environment_order, t.environment_id))
        return targets
