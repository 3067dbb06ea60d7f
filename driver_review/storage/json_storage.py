"""
JSON storage implementation.

Persists the whole rating database as a single JSON document, replaced
atomically on every save. Loading validates each record on its own and skips
the ones that do not fit; a file that cannot be read at all is moved aside and
treated as an empty database.
"""

import json
import os
import tempfile
import typing
from pathlib import Path
from typing import Any

from pydantic import TypeAdapter, ValidationError as PydanticValidationError
from typing_extensions import TypedDict, override

from ..interfaces import DatabaseState, MetadataRecord, RatingRecord, SearchRecord, Storage
from ..logging_config import get_logger

# Module-level logger
logger = get_logger("json_storage", category="storage")


class _RawState(TypedDict, total=False):
    """Collection shapes of the database file; entries are validated one by one."""
    ratings: dict[str, Any]
    myRatings: dict[str, Any]
    reviewerHistory: dict[str, Any]
    searchHistory: dict[str, Any]
    playerData: dict[str, Any]


_RAW_ADAPTER = TypeAdapter(_RawState)
_RATING_ADAPTER = TypeAdapter(RatingRecord)
_ENTRY_ADAPTERS: dict[str, TypeAdapter[Any]] = {
    "myRatings": _RATING_ADAPTER,
    "reviewerHistory": TypeAdapter(int),
    "searchHistory": TypeAdapter(SearchRecord),
    "playerData": TypeAdapter(MetadataRecord),
}


def _upgrade_legacy(data: dict[str, Any]) -> dict[str, Any]:
    """Collapse list-shaped given ratings to the newest entry per target."""
    given = data.get("myRatings")
    if not isinstance(given, dict):
        return data
    upgraded: dict[str, Any] = {}
    for target, entry in given.items():
        if isinstance(entry, list):
            records = [r for r in entry if isinstance(r, dict)]
            if not records:
                continue
            entry = max(records, key=lambda r: r.get("timestamp") or 0)
        upgraded[target] = entry
    return {**data, "myRatings": upgraded}


def _validate_entries(raw: _RawState) -> DatabaseState:
    """Keep every entry that validates; log and skip the rest."""
    state: dict[str, Any] = {}

    if "ratings" in raw:
        ratings: dict[str, list[Any]] = {}
        for recipient, records in raw["ratings"].items():
            if not isinstance(records, list):
                logger.warning(f"Skipping ratings for {recipient}: expected a list")
                continue
            kept = list[Any]()
            for i, record in enumerate(typing.cast(list[Any], records)):
                try:
                    kept.append(_RATING_ADAPTER.validate_python(record))
                except PydanticValidationError as e:
                    logger.warning(f"Skipping invalid rating {i} for {recipient}: {e.error_count()} validation errors")
            ratings[recipient] = kept
        state["ratings"] = ratings

    collections = typing.cast(dict[str, dict[str, Any]], raw)
    for collection, adapter in _ENTRY_ADAPTERS.items():
        if collection not in collections:
            continue
        entries: dict[str, Any] = {}
        for key, entry in collections[collection].items():
            try:
                entries[key] = adapter.validate_python(entry)
            except PydanticValidationError as e:
                logger.warning(f"Skipping invalid {collection} entry {key!r}: {e.error_count()} validation errors")
        state[collection] = entries

    return typing.cast(DatabaseState, state)


class JSONStorage(Storage):
    """
    JSON file storage implementation.

    The latest database is the only thing kept; every save rewrites it.
    """

    path: Path

    def __init__(self, path: Path | str):
        """
        Initialize JSON storage.

        Args:
            path: Path to the JSON database file
        """
        self.path = Path(path)

        # Ensure parent directory exists
        self.path.parent.mkdir(parents=True, exist_ok=True)

        logger.info(f"JSON storage initialized: path={self.path}")

    @override
    def load_state(self) -> DatabaseState | None:
        """Load the database from JSON."""
        if not self.path.exists():
            logger.debug("No database file exists")
            return None

        logger.info(f"Loading database from {self.path}")
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = typing.cast(dict[str, Any], json.load(f))  # pyright: ignore[reportExplicitAny]

            assert isinstance(data, dict), "database must be a JSON object"
            state = _validate_entries(_RAW_ADAPTER.validate_python(_upgrade_legacy(data)))

            logger.info(
                f"Loaded database: {len(state.get('ratings', {}))} recipients, {len(state.get('myRatings', {}))} given ratings"
            )
            return state

        except (json.JSONDecodeError, UnicodeDecodeError, AssertionError, PydanticValidationError) as e:
            logger.error(f"Failed to load database from {self.path}, starting empty: {e}")
            self._set_aside()
            return None

    def _set_aside(self) -> None:
        """Move an unreadable database out of the way so the next save cannot overwrite it."""
        backup = self.path.with_name(f"{self.path.name}.corrupt")
        os.replace(self.path, backup)
        logger.warning(f"Unreadable database kept as {backup}")

    @override
    def save_state(self, state: DatabaseState) -> None:
        """Write the database to a temporary file and atomically replace the old one."""
        logger.debug(f"Saving database to {self.path}")

        fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", dir=self.path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(state, f, indent=2, ensure_ascii=False)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

        logger.debug("Database saved successfully")

    def clear(self) -> None:
        """Delete the database file (for testing)."""
        if self.path.exists():
            self.path.unlink()
