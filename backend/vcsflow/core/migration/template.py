"""
Path Templates
==============

Repository path templates such as ``db/{{ENV_NAME}}/{{DB_NAME}}__v{{VERSION}}.sql``
compiled into anchored regular expressions. Literal segments match
themselves; each placeholder becomes a named group over a permissive
character class.
"""

import re
from dataclasses import dataclass, field
from typing import Optional

# Placeholder names allowed in templates
ENV_NAME = "ENV_NAME"
DB_NAME = "DB_NAME"
VERSION = "VERSION"
TYPE = "TYPE"
DESCRIPTION = "DESCRIPTION"

MIGRATION_PLACEHOLDERS = (ENV_NAME, DB_NAME, VERSION, TYPE, DESCRIPTION)
SCHEMA_PLACEHOLDERS = (ENV_NAME, DB_NAME)

PLACEHOLDER_CHARS = r"[a-zA-Z0-9+\-=/_#?!$. ]+"

_PLACEHOLDER_RE = re.compile(r"\{\{([A-Z_]+)\}\}")


@dataclass(frozen=True)
class PathTemplate:
    """
    A compiled path template.

    Build once per repository configuration with PathTemplate.compile and
    reuse it for every committed file.
    """

    template: str
    pattern: re.Pattern = field(repr=False, compare=False)

    @classmethod
    def compile(cls, template: str, placeholders: tuple[str, ...]) -> "PathTemplate":
        """
        Compile a template.

        Placeholders not listed in ``placeholders`` are kept as literal text.
        """
        parts = []
        seen = set()
        position = 0
        for match in _PLACEHOLDER_RE.finditer(template):
            parts.append(re.escape(template[position:match.start()]))
            name = match.group(1)
            if name in seen:
                # Repeated placeholders must capture the same value
                parts.append(f"(?P={name})")
            elif name in placeholders:
                seen.add(name)
                parts.append(f"(?P<{name}>{PLACEHOLDER_CHARS})")
            else:
                parts.append(re.escape(match.group(0)))
            position = match.end()
        parts.append(re.escape(template[position:]))
        return cls(template=template, pattern=re.compile("".join(parts)))

    def match(self, path: str) -> Optional[dict[str, str]]:
        """Return placeholder values if ``path`` matches the whole template."""
        m = self.pattern.fullmatch(path)
        if m is None:
            return None
        return m.groupdict()

    def matches(self, path: str) -> bool:
        return self.pattern.fullmatch(path) is not None


def join_base_directory(base_directory: str, file_path_template: str) -> str:
    """
    Prefix a file path template with the repository base directory.

    Templates that already start with the base directory are returned
    unchanged.
    """
    if not base_directory:
        return file_path_template
    base = base_directory.rstrip("/")
    if file_path_template == base or file_path_template.startswith(base + "/"):
        return file_path_template
    return f"{base}/{file_path_template.lstrip('/')}"
