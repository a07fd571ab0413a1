"""
Migration File Classifier
=========================

Decides, per committed file, whether it is a migration and extracts its
descriptor from the path.

Files outside the repository base directory, and schema dumps written back
to the repository, are ignored silently. Files under the base directory that
do not parse as a migration are ignored with a recorded warning.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

import structlog

from vcsflow.core.exceptions import MigrationParseError
from vcsflow.core.migration.template import (
    DB_NAME,
    DESCRIPTION,
    ENV_NAME,
    MIGRATION_PLACEHOLDERS,
    SCHEMA_PLACEHOLDERS,
    TYPE,
    VERSION,
    PathTemplate,
    join_base_directory,
)
from vcsflow.core.models import MigrationType

logger = structlog.get_logger()


class IgnoreKind(str, Enum):
    """How an ignored file is reported."""
    SILENT = "silent"       # Logged only
    RECORDED = "recorded"   # Logged and written as a WARN project activity


@dataclass(frozen=True)
class Ignored:
    """Outcome of a step that drops the committed file."""
    kind: IgnoreKind
    reason: str

    @classmethod
    def silent(cls, reason: str) -> "Ignored":
        return cls(IgnoreKind.SILENT, reason)

    @classmethod
    def recorded(cls, reason: str) -> "Ignored":
        return cls(IgnoreKind.RECORDED, reason)


@dataclass(frozen=True)
class MigrationInfo:
    """Descriptor parsed from a migration file path."""
    database: str
    environment: str
    version: str
    type: MigrationType
    description: str


def parse_migration_info(file_path: str, template: PathTemplate) -> MigrationInfo:
    """
    Parse a migration file path against a compiled file path template.

    Rules:
    - {{VERSION}} and {{DB_NAME}} must be present
    - {{TYPE}} must be "migrate" or "baseline" (migrate if absent)
    - An empty {{DESCRIPTION}} becomes "Create <db> migration|baseline";
      otherwise underscores turn into spaces and the first letter is
      upper-cased

    Raises:
        MigrationParseError: If the path does not satisfy the template
    """
    values = template.match(file_path)
    if values is None:
        raise MigrationParseError(
            f"file path {file_path!r} does not match file path template {template.template!r}"
        )

    migration_type = MigrationType.MIGRATE
    raw_type = values.get(TYPE)
    if raw_type is not None:
        if raw_type == "baseline":
            migration_type = MigrationType.BASELINE
        elif raw_type != "migrate":
            raise MigrationParseError(
                f"file path {file_path!r} contains invalid migration type {raw_type!r}, "
                f"must be 'baseline' or 'migrate'"
            )

    version = values.get(VERSION) or ""
    if not version:
        raise MigrationParseError(
            f"file path {file_path!r} does not contain {{{{{VERSION}}}}}, "
            f"configured file path template {template.template!r}"
        )
    database = values.get(DB_NAME) or ""
    if not database:
        raise MigrationParseError(
            f"file path {file_path!r} does not contain {{{{{DB_NAME}}}}}, "
            f"configured file path template {template.template!r}"
        )

    description = values.get(DESCRIPTION) or ""
    if not description:
        if migration_type == MigrationType.BASELINE:
            description = f"Create {database} baseline"
        else:
            description = f"Create {database} migration"
    else:
        description = description.replace("_", " ")
        description = description[:1].upper() + description[1:]

    return MigrationInfo(
        database=database,
        environment=values.get(ENV_NAME) or "",
        version=version,
        type=migration_type,
        description=description,
    )


class MigrationFileClassifier:
    """
    Classifies committed files of one repository.

    Templates are compiled once on construction.
    """

    def __init__(
        self,
        base_directory: str,
        file_path_template: str,
        schema_path_template: Optional[str] = None,
    ):
        self.base_directory = base_directory
        self.file_template = PathTemplate.compile(
            join_base_directory(base_directory, file_path_template),
            MIGRATION_PLACEHOLDERS,
        )
        self.schema_template = (
            PathTemplate.compile(schema_path_template, SCHEMA_PLACEHOLDERS)
            if schema_path_template
            else None
        )

    def classify(self, file_path: str) -> Union[MigrationInfo, Ignored]:
        """Return the migration descriptor of ``file_path`` or why it is ignored."""
        if not file_path.startswith(self.base_directory):
            logger.debug(
                "committed_file_outside_base_directory",
                file=file_path,
                base_directory=self.base_directory,
            )
            return Ignored.silent("not under base directory")

        if self.schema_template is not None and self.schema_template.matches(file_path):
            logger.debug("committed_file_is_schema_dump", file=file_path)
            return Ignored.silent("generated schema file")

        try:
            return parse_migration_info(file_path, self.file_template)
        except MigrationParseError as e:
            return Ignored.recorded(e.message)
