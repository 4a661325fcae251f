"""
Content loader for the moderator knowledge base.

Reads the JSON index files of the content store (guide, penalties, commands,
procedures, templates) into frozen content dataclasses and caches them per
type. The cache is only invalidated by an explicit clear_cache() call, which
the admin tooling issues after editing content on disk.
"""

import json
import logging
import os
from typing import Any, Callable, Dict, List, Optional

from .. import config
from ..errors import ContentStoreError
from ..utils.text import normalize
from ..models.content import (
    CommandDefinition,
    ContentUnit,
    GuideArticle,
    PenaltyRule,
    PenaltyTemplate,
    ProcedureDefinition,
)

logger = logging.getLogger(__name__)

# Index file locations relative to the content directory
GUIDE_INDEX = os.path.join("guide", "index.json")
PENALTY_INDEX = os.path.join("penalties", "index.json")
COMMAND_INDEX = os.path.join("commands", "index.json")
PROCEDURE_INDEX = os.path.join("procedures", "index.json")
TEMPLATE_INDEX = os.path.join("templates", "index.json")


class ContentLoader:
    """Lazily loads and caches knowledge-base content from a directory.

    Args:
        content_dir: Directory holding the index files.
                     Defaults to config.CONTENT_DIR (the bundled corpus).
    """

    def __init__(self, content_dir: Optional[str] = None):
        self.content_dir = content_dir or config.CONTENT_DIR
        self._cache: Dict[str, List[Any]] = {}

    # ------------------------------------------------------------------
    # Raw file access
    # ------------------------------------------------------------------

    def _read_index(self, relative_path: str, list_key: str = "items") -> List[Dict[str, Any]]:
        path = os.path.join(self.content_dir, relative_path)
        if not os.path.exists(path):
            logger.warning(f"[CONTENT] Index file not found: {path}")
            return []

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.loads(f.read())
        except (OSError, json.JSONDecodeError) as e:
            raise ContentStoreError(f"Could not read content index {path}: {e}") from e

        items = data.get(list_key, []) if isinstance(data, dict) else []
        if not isinstance(items, list):
            raise ContentStoreError(f"'{list_key}' in {path} is not a list")
        return items

    def _load(self, key: str, relative_path: str, factory: Callable[[Dict[str, Any]], Any],
              list_key: str = "items", sort: bool = True) -> List[Any]:
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        try:
            units = [factory(item) for item in self._read_index(relative_path, list_key)]
        except (KeyError, TypeError, ValueError) as e:
            raise ContentStoreError(f"Malformed entry in {relative_path}: {e}") from e

        if sort:
            # sorted() is stable, so equal order values keep file order
            units = sorted(units, key=lambda u: u.order)

        self._cache[key] = units
        logger.info(f"[CONTENT] Loaded {len(units)} {key} from {relative_path}")
        return units

    def clear_cache(self) -> None:
        """Drop every cached collection; the next load re-reads the files."""
        self._cache = {}
        logger.info("[CONTENT] Content cache cleared")

    # ------------------------------------------------------------------
    # Collections
    # ------------------------------------------------------------------

    def load_guides(self) -> List[GuideArticle]:
        return self._load("guides", GUIDE_INDEX, GuideArticle.from_dict)

    def load_penalties(self) -> List[PenaltyRule]:
        return self._load("penalties", PENALTY_INDEX, PenaltyRule.from_dict)

    def load_penalties_by_category(self, category: Optional[str]) -> List[PenaltyRule]:
        if not category or not category.strip():
            return []
        wanted = normalize(category.strip())
        return [p for p in self.load_penalties() if normalize(p.category) == wanted]

    def load_commands(self) -> List[CommandDefinition]:
        return self._load("commands", COMMAND_INDEX, CommandDefinition.from_dict)

    def load_procedures(self) -> List[ProcedureDefinition]:
        return self._load("procedures", PROCEDURE_INDEX, ProcedureDefinition.from_dict)

    def load_templates(self) -> List[PenaltyTemplate]:
        return self._load("templates", TEMPLATE_INDEX, PenaltyTemplate.from_dict,
                          list_key="templates", sort=False)

    def load_all(self) -> List[ContentUnit]:
        """Every content unit, guides first, then penalties, commands and procedures."""
        return [
            *self.load_guides(),
            *self.load_penalties(),
            *self.load_commands(),
            *self.load_procedures(),
        ]

    # ------------------------------------------------------------------
    # Lookups (case-insensitive, None on miss)
    # ------------------------------------------------------------------

    @staticmethod
    def _find(items: List[Any], attribute: str, value: Optional[str]) -> Optional[Any]:
        if not value:
            return None
        wanted = normalize(value.strip())
        for item in items:
            if normalize(str(getattr(item, attribute, ""))) == wanted:
                return item
        return None

    def get_guide_by_id(self, guide_id: str) -> Optional[GuideArticle]:
        return self._find(self.load_guides(), "id", guide_id)

    def get_guide_by_slug(self, slug: str) -> Optional[GuideArticle]:
        return self._find(self.load_guides(), "slug", slug)

    def get_penalty_by_id(self, penalty_id: str) -> Optional[PenaltyRule]:
        return self._find(self.load_penalties(), "id", penalty_id)

    def get_penalty_by_code(self, code: str) -> Optional[PenaltyRule]:
        """Find a penalty by its code, e.g. "ADK-001" or "adk-001"."""
        return self._find(self.load_penalties(), "code", code)

    def get_command_by_id(self, command_id: str) -> Optional[CommandDefinition]:
        return self._find(self.load_commands(), "id", command_id)

    def get_command_by_name(self, command: str) -> Optional[CommandDefinition]:
        """Find a command by name, with or without the leading slash."""
        if not command or not command.strip():
            return None
        name = command.strip()
        if not name.startswith("/"):
            name = f"/{name}"
        return self._find(self.load_commands(), "command", name)

    def get_procedure_by_id(self, procedure_id: str) -> Optional[ProcedureDefinition]:
        return self._find(self.load_procedures(), "id", procedure_id)

    def get_procedure_by_slug(self, slug: str) -> Optional[ProcedureDefinition]:
        return self._find(self.load_procedures(), "slug", slug)

    def get_content_by_id(self, content_id: str) -> Optional[ContentUnit]:
        """Look an id up across guides, penalties, commands and procedures."""
        return self._find(self.load_all(), "id", content_id)

    def get_template_by_id(self, template_id: str) -> Optional[PenaltyTemplate]:
        return self._find(self.load_templates(), "id", template_id)

    def get_templates_by_category(self, category: Optional[str]) -> List[PenaltyTemplate]:
        if not category or not category.strip():
            return []
        wanted = normalize(category.strip())
        return [t for t in self.load_templates() if normalize(t.category) == wanted]

    def get_content_stats(self) -> Dict[str, int]:
        stats = {
            "guide_count": len(self.load_guides()),
            "penalty_count": len(self.load_penalties()),
            "command_count": len(self.load_commands()),
            "procedure_count": len(self.load_procedures()),
            "template_count": len(self.load_templates()),
        }
        stats["total_count"] = sum(stats.values())
        return stats
