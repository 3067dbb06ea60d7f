"""
Tests for JSONStorage.
"""

import json
import tempfile
from pathlib import Path

from driver_review.interfaces import DatabaseState
from driver_review.storage import JSONStorage


def sample_state() -> DatabaseState:
    return {
        "ratings": {
            "Me-Argus": [
                {"driver": "Me-Argus", "driverName": "", "reviewer": "Bo-Argus", "rating": 4, "comment": "ok", "timestamp": 100},
            ]
        },
        "myRatings": {
            "Bo-Argus": {"driver": "Bo-Argus", "driverName": "Bo", "reviewer": "Me-Argus", "rating": 5, "comment": "", "timestamp": 90},
        },
        "reviewerHistory": {"Bo-Argus": 100},
        "searchHistory": {
            "Cy-Kazzak": {"name": "Cy", "fullName": "Cy-Kazzak", "realm": "Kazzak", "lastSearched": 80},
        },
        "playerData": {
            "Bo-Argus": {"class_name": "EVOKER", "faction": None, "race": "Dracthyr", "level": 80, "last_updated": 70},
        },
    }


class TestJSONStorage:
    """Test JSON storage implementation."""

    def test_save_then_load_returns_same_state(self) -> None:
        """Test that a saved database loads back unchanged."""
        with tempfile.TemporaryDirectory() as temp_dir:
            # Arrange
            storage = JSONStorage(Path(temp_dir) / "db.json")
            state = sample_state()

            # Act
            storage.save_state(state)
            loaded = storage.load_state()

            # Assert
            assert loaded == state, "Loaded database should equal the saved one"

    def test_missing_file_loads_as_none(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            storage = JSONStorage(Path(temp_dir) / "nested" / "db.json")

            assert storage.load_state() is None
            assert (Path(temp_dir) / "nested").is_dir(), "Parent directory should be created"

    def test_save_replaces_previous_contents(self) -> None:
        """Test that only the latest state is kept and no temp files remain."""
        with tempfile.TemporaryDirectory() as temp_dir:
            # Arrange
            path = Path(temp_dir) / "db.json"
            storage = JSONStorage(path)
            storage.save_state(sample_state())

            # Act
            storage.save_state({"reviewerHistory": {"Cy-Argus": 5}})

            # Assert
            assert storage.load_state() == {"reviewerHistory": {"Cy-Argus": 5}}
            assert [p.name for p in Path(temp_dir).iterdir()] == ["db.json"], "Temp file should be renamed away"

    def test_corrupted_file_loads_as_none(self) -> None:
        """Test that unreadable or wrongly shaped files are treated as empty and kept aside."""
        with tempfile.TemporaryDirectory() as temp_dir:
            path = Path(temp_dir) / "db.json"
            backup = Path(temp_dir) / "db.json.corrupt"
            storage = JSONStorage(path)

            for content in ["{not json", "[1, 2, 3]", json.dumps({"ratings": ["oops"]})]:
                # Arrange
                _ = path.write_text(content, encoding="utf-8")

                # Act
                loaded = storage.load_state()

                # Assert
                assert loaded is None, f"Should reject {content!r}"
                assert not path.exists(), "Unreadable file should be moved out of the way"
                assert backup.read_text(encoding="utf-8") == content

    def test_save_after_corrupted_load_keeps_backup(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            path = Path(temp_dir) / "db.json"
            _ = path.write_text("{not json", encoding="utf-8")
            storage = JSONStorage(path)

            assert storage.load_state() is None
            storage.save_state(sample_state())

            assert (Path(temp_dir) / "db.json.corrupt").read_text(encoding="utf-8") == "{not json"
            assert storage.load_state() == sample_state()

    def test_invalid_records_are_skipped(self) -> None:
        """Test that one bad record is dropped without losing the rest of the database."""
        with tempfile.TemporaryDirectory() as temp_dir:
            # Arrange
            path = Path(temp_dir) / "db.json"
            state = sample_state()
            good_received = state["ratings"]["Me-Argus"][0]
            data = {
                **state,
                "ratings": {
                    "Me-Argus": [good_received, {"driver": "Me-Argus", "rating": 3, "timestamp": 150}],
                    "Zz-Argus": "oops",
                },
                "reviewerHistory": {"Bo-Argus": 100, "Cy-Argus": "yesterday"},
                "searchHistory": {**state["searchHistory"], "Dee-Argus": {"fullName": "Dee-Argus"}},
            }
            _ = path.write_text(json.dumps(data), encoding="utf-8")

            # Act
            loaded = JSONStorage(path).load_state()

            # Assert
            assert loaded is not None, "A few bad records must not discard the whole file"
            assert loaded["ratings"] == {"Me-Argus": [good_received]}, "Rating without a reviewer is skipped"
            assert loaded["myRatings"] == state["myRatings"]
            assert loaded["reviewerHistory"] == {"Bo-Argus": 100}
            assert list(loaded["searchHistory"]) == ["Cy-Kazzak"]
            assert loaded["playerData"] == state["playerData"]
            assert path.exists(), "A readable file stays in place"
            assert not (Path(temp_dir) / "db.json.corrupt").exists()

    def test_list_shaped_given_ratings_keep_newest(self) -> None:
        """Older databases kept a list per target; only the newest entry survives."""
        with tempfile.TemporaryDirectory() as temp_dir:
            # Arrange
            path = Path(temp_dir) / "db.json"
            legacy = {
                "myRatings": {
                    "Bo-Argus": [
                        {"driver": "Bo-Argus", "reviewer": "Me-Argus", "rating": 2, "timestamp": 100},
                        {"driver": "Bo-Argus", "reviewer": "Me-Argus", "rating": 5, "timestamp": 300},
                        {"driver": "Bo-Argus", "reviewer": "Me-Argus", "rating": 3, "timestamp": 200},
                    ],
                    "Cy-Argus": [],
                }
            }
            _ = path.write_text(json.dumps(legacy), encoding="utf-8")

            # Act
            loaded = JSONStorage(path).load_state()

            # Assert
            assert loaded is not None
            assert list(loaded["myRatings"]) == ["Bo-Argus"], "Empty legacy lists are dropped"
            assert loaded["myRatings"]["Bo-Argus"]["rating"] == 5

    def test_clear_removes_file(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            path = Path(temp_dir) / "db.json"
            storage = JSONStorage(path)
            storage.save_state(sample_state())

            storage.clear()

            assert not path.exists()
            assert storage.load_state() is None
