from __future__ import annotations

from datetime import datetime
from pathlib import Path

import pytest

from signalwatch.core.exceptions import StoreIOError
from signalwatch.core.services import ChannelRoster, RosterEntry
from signalwatch.core.services.roster import parse_class


class TickingClock:
    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        current = self.now
        self.now = current.replace(second=current.second + 1)
        return current


def _roster(path: Path, **kwargs: object) -> ChannelRoster:
    return ChannelRoster(path, clock=TickingClock(datetime(2025, 5, 24, 16, 0, 0)), **kwargs)  # type: ignore[arg-type]


def test_reads_ids_and_classes_in_file_order(tmp_path: Path) -> None:
    path = tmp_path / "favorites.txt"
    path.write_text(
        "# comment\n// also a comment\n2296908:1\n\n42\n77:11\n88:x\nbad id!\n42:3\n999 : 10\n",
        encoding="utf-8",
    )

    roster = _roster(path)

    assert roster.channel_ids() == ["2296908", "42", "77", "88", "999"]
    assert roster.favorite_class("2296908") == 1
    assert roster.favorite_class("42") is None
    assert roster.favorite_class("77") is None
    assert roster.favorite_class(" 999 ") == 10
    assert roster.favorite_class("404") is None
    assert "42" in roster
    assert 42 not in roster
    assert len(roster) == 5


def test_missing_file_is_empty(tmp_path: Path) -> None:
    roster = _roster(tmp_path / "favorites.txt")

    assert roster.entries() == []
    assert roster.backups() == []
    stats = roster.stats()
    assert not stats.exists
    assert stats.size_bytes == 0


def test_add_creates_file_with_header(tmp_path: Path) -> None:
    path = tmp_path / "config" / "favorites.txt"
    roster = _roster(path)

    assert roster.add("123", 2)
    assert roster.add(" 456 ")
    assert not roster.add("123", 5)

    lines = path.read_text(encoding="utf-8").splitlines()
    assert [line for line in lines if not line.startswith("#")] == ["123:2", "456"]
    assert _roster(path).entries() == [RosterEntry("123", 2), RosterEntry("456")]


def test_add_rejects_invalid_input(tmp_path: Path) -> None:
    roster = _roster(tmp_path / "favorites.txt")

    with pytest.raises(ValueError):
        roster.add("a:b")
    with pytest.raises(ValueError):
        roster.add("x" * 21)
    with pytest.raises(ValueError):
        roster.add("123", 0)
    assert not (tmp_path / "favorites.txt").exists()


def test_remove_keeps_comments_and_backs_up(tmp_path: Path) -> None:
    path = tmp_path / "favorites.txt"
    original = "# mine\n1:1\n2\n// note\n3:4\n"
    path.write_text(original, encoding="utf-8")
    roster = _roster(path)

    assert roster.remove("2")
    assert not roster.remove("2")

    assert path.read_text(encoding="utf-8") == "# mine\n1:1\n// note\n3:4\n"
    [backup] = roster.backups()
    assert backup.name == "favorites.txt.backup_20250524160000"
    assert backup.read_text(encoding="utf-8") == original
    assert roster.channel_ids() == ["1", "3"]


def test_backups_are_pruned(tmp_path: Path) -> None:
    path = tmp_path / "favorites.txt"
    path.write_text("1\n", encoding="utf-8")
    roster = _roster(path, backup_keep=2)

    for channel_id in ("2", "3", "4", "5"):
        roster.add(channel_id)

    assert [backup.name for backup in roster.backups()] == [
        "favorites.txt.backup_20250524160003",
        "favorites.txt.backup_20250524160002",
    ]
    stats = roster.stats()
    assert stats.channel_count == 5
    assert stats.classified_count == 0
    assert stats.backup_count == 2


def test_refresh_is_explicit(tmp_path: Path) -> None:
    path = tmp_path / "favorites.txt"
    path.write_text("1\n", encoding="utf-8")
    roster = _roster(path)

    path.write_text("1\n2:7\n", encoding="utf-8")

    assert "2" not in roster
    assert roster.refresh() == 2
    assert roster.favorite_class("2") == 7


def test_unwritable_location_raises_store_io_error(tmp_path: Path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("file", encoding="utf-8")
    roster = _roster(blocker / "favorites.txt")

    with pytest.raises(StoreIOError) as excinfo:
        roster.add("1")

    assert excinfo.value.channel_id == "channel-roster"


@pytest.mark.parametrize(("raw", "expected"), [("1", 1), (" 10 ", 10), ("0", None), ("11", None), ("two", None)])
def test_parse_class(raw: str, expected: int | None) -> None:
    assert parse_class(raw) == expected
