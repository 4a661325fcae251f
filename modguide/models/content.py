"""Knowledge-base content model.

Defines the `ContentType` discriminator and the four frozen dataclasses that
make up the closed `ContentUnit` union (guide articles, penalty rules,
commands and procedures), plus the `ContentEnvelope` that exposes the fields
every variant shares to search and chunking code.
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union


class ContentType(str, Enum):
    """Discriminator for the ContentUnit union."""
    GUIDE = "guide"
    PENALTY = "penalty"
    COMMAND = "command"
    PROCEDURE = "procedure"


HREF_PREFIXES = {
    ContentType.GUIDE: "/guide",
    ContentType.PENALTY: "/penalties",
    ContentType.COMMAND: "/commands",
    ContentType.PROCEDURE: "/procedures",
}


def _str_list(value: Any) -> Tuple[str, ...]:
    if not value:
        return ()
    return tuple(str(v) for v in value)


@dataclass(frozen=True)
class GuideArticle:
    """A section of the moderator guide ("Yetkili Kılavuzu")."""
    id: str
    title: str
    slug: str
    category: str
    content: str
    keywords: Tuple[str, ...] = ()
    related_articles: Tuple[str, ...] = ()
    order: int = 0
    subcategory: Optional[str] = None
    type: ContentType = field(default=ContentType.GUIDE, init=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GuideArticle":
        return cls(
            id=str(data["id"]),
            title=data.get("title", ""),
            slug=data.get("slug", ""),
            category=data.get("category", "kilavuz"),
            content=data.get("content", ""),
            keywords=_str_list(data.get("keywords")),
            related_articles=_str_list(data.get("relatedArticles")),
            order=int(data.get("order") or 0),
            subcategory=data.get("subcategory"),
        )


@dataclass(frozen=True)
class PenaltyRule:
    """A penalty definition, e.g. ADK-001 with a duration of "7 gün"."""
    id: str
    code: str
    name: str
    category: str
    duration: str
    description: str
    conditions: Tuple[str, ...] = ()
    alternatives: Tuple[str, ...] = ()
    examples: Tuple[str, ...] = ()
    keywords: Tuple[str, ...] = ()
    order: int = 0
    type: ContentType = field(default=ContentType.PENALTY, init=False)

    @property
    def title(self) -> str:
        return f"{self.code} - {self.name}"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PenaltyRule":
        return cls(
            id=str(data["id"]),
            code=data.get("code", ""),
            name=data.get("name", ""),
            category=data.get("category", "yazili"),
            duration=data.get("duration", ""),
            description=data.get("description", ""),
            conditions=_str_list(data.get("conditions")),
            alternatives=_str_list(data.get("alternatives")),
            examples=_str_list(data.get("examples")),
            keywords=_str_list(data.get("keywords")),
            order=int(data.get("order") or 0),
        )


@dataclass(frozen=True)
class CommandDefinition:
    """A bot command moderators use, e.g. "/mute"."""
    id: str
    command: str
    description: str
    usage: str = ""
    permissions: Tuple[str, ...] = ()
    examples: Tuple[str, ...] = ()
    keywords: Tuple[str, ...] = ()
    category: str = "komut"
    order: int = 0
    type: ContentType = field(default=ContentType.COMMAND, init=False)

    @property
    def title(self) -> str:
        return self.command

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CommandDefinition":
        return cls(
            id=str(data["id"]),
            command=data.get("command", ""),
            description=data.get("description", ""),
            usage=data.get("usage", ""),
            permissions=_str_list(data.get("permissions")),
            examples=_str_list(data.get("examples")),
            keywords=_str_list(data.get("keywords")),
            category=data.get("category") or "komut",
            order=int(data.get("order") or 0),
        )


@dataclass(frozen=True)
class ProcedureDefinition:
    """A step-by-step moderation procedure."""
    id: str
    title: str
    slug: str
    description: str
    steps: str
    required_permissions: Tuple[str, ...] = ()
    related_commands: Tuple[str, ...] = ()
    related_penalties: Tuple[str, ...] = ()
    keywords: Tuple[str, ...] = ()
    category: str = "prosedur"
    order: int = 0
    type: ContentType = field(default=ContentType.PROCEDURE, init=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProcedureDefinition":
        return cls(
            id=str(data["id"]),
            title=data.get("title", ""),
            slug=data.get("slug", ""),
            description=data.get("description", ""),
            steps=data.get("steps", ""),
            required_permissions=_str_list(data.get("requiredPermissions")),
            related_commands=_str_list(data.get("relatedCommands")),
            related_penalties=_str_list(data.get("relatedPenalties")),
            keywords=_str_list(data.get("keywords")),
            category=data.get("category") or "prosedur",
            order=int(data.get("order") or 0),
        )


ContentUnit = Union[GuideArticle, PenaltyRule, CommandDefinition, ProcedureDefinition]


@dataclass(frozen=True)
class PenaltyTemplate:
    """A pre-written ban/mute/warn message moderators copy into Discord."""
    id: str
    name: str
    category: str
    message: str
    editable_by: Tuple[str, ...] = ()
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PenaltyTemplate":
        return cls(
            id=str(data["id"]),
            name=data.get("name", ""),
            category=data.get("category", ""),
            message=data.get("message", ""),
            editable_by=_str_list(data.get("editableBy")),
            created_at=_parse_datetime(data.get("createdAt")),
            updated_at=_parse_datetime(data.get("updatedAt")),
        )


def _parse_datetime(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    # fromisoformat does not accept a trailing "Z" before Python 3.11
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


@dataclass(frozen=True)
class ContentEnvelope:
    """Fields every ContentUnit variant exposes to search and chunking.

    Attributes:
        id: Stable unit identifier.
        type: ContentType discriminator of the wrapped unit.
        title: Display title (penalties render as "CODE - name").
        category: The unit's own category.
        body: Searchable body text.
        keywords: Search keywords.
        href: Page the unit is shown on.
    """
    id: str
    type: ContentType
    title: str
    category: str
    body: str
    keywords: Tuple[str, ...]
    href: str


def envelope(unit: ContentUnit) -> ContentEnvelope:
    """Build the shared envelope for any ContentUnit variant."""
    if unit.type is ContentType.GUIDE:
        body = unit.content
    elif unit.type is ContentType.PENALTY:
        body = " ".join([unit.code, unit.duration, unit.description, *unit.conditions, *unit.examples])
    elif unit.type is ContentType.COMMAND:
        body = " ".join([unit.description, unit.usage, *unit.examples])
    elif unit.type is ContentType.PROCEDURE:
        body = f"{unit.description} {unit.steps}"
    else:
        raise TypeError(f"Unknown content unit: {unit!r}")

    return ContentEnvelope(
        id=unit.id,
        type=unit.type,
        title=unit.title,
        category=unit.category,
        body=body,
        keywords=tuple(unit.keywords),
        href=f"{HREF_PREFIXES[unit.type]}/{unit.id}",
    )
