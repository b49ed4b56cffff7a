"""Application configuration defaults."""

from __future__ import annotations

import sys
from dataclasses import dataclass
from pathlib import Path

from desksearch.embedding.encoder import DEFAULT_MODEL


def _get_default_db_path() -> Path:
    """Get the default index database path based on platform and execution context."""
    user_db = Path.home() / "Documents" / "DeskSearch" / "desksearch.db"

    if getattr(sys, "frozen", False):
        return user_db

    # When running from source, prefer local data/ if it exists
    local_db = Path("data/desksearch.db")
    if local_db.exists():
        return local_db

    return user_db


@dataclass(slots=True)
class AppConfig:
    db_path: Path | None = None
    number_of_search_results: int = 50
    show_similar_documents: bool = False
    suggestion_slop: int = 3
    suggestion_in_order: bool = True
    number_of_suggestions: int = 10
    model_name: str = DEFAULT_MODEL

    def __post_init__(self) -> None:
        if self.db_path is None:
            self.db_path = _get_default_db_path()

    def resolve_db_path(self, base_dir: Path | None = None) -> Path:
        if self.db_path is None:
            self.db_path = _get_default_db_path()
        if Path(self.db_path).is_absolute() or base_dir is None:
            return Path(self.db_path)
        return base_dir / self.db_path
