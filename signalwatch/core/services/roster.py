"""Monitored channel roster backed by a flat ``id`` / ``id:class`` file."""

from __future__ import annotations

import re
import shutil
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from signalwatch.core.exceptions import ErrorCode, StoreIOError
from signalwatch.core.logging import get_logger

DELIMITER = ":"
ROSTER_KEY = "channel-roster"
MIN_CLASS = 1
MAX_CLASS = 10
DEFAULT_BACKUP_KEEP = 5
_CHANNEL_ID = re.compile(r"^[A-Za-z0-9]{1,20}$")
_COMMENT_PREFIXES = ("#", "//")
_HEADER = (
    "# monitored signal channels",
    "# format: channel_id or channel_id:class (class 1-10)",
    "# lines starting with # or // are ignored",
    "#",
)

logger = get_logger(__name__)


def is_valid_channel_id(channel_id: str) -> bool:
    return bool(_CHANNEL_ID.match(channel_id))


def parse_class(raw: str) -> int | None:
    """Return the class in ``raw`` when it is an integer from 1 to 10."""

    try:
        value = int(raw.strip())
    except ValueError:
        return None
    return value if MIN_CLASS <= value <= MAX_CLASS else None


@dataclass(frozen=True, slots=True)
class RosterEntry:
    channel_id: str
    favorite_class: int | None = None

    def to_line(self) -> str:
        if self.favorite_class is None:
            return self.channel_id
        return f"{self.channel_id}{DELIMITER}{self.favorite_class}"


@dataclass(frozen=True, slots=True)
class RosterStats:
    """File and content figures for a roster."""

    path: Path
    exists: bool
    size_bytes: int
    channel_count: int
    classified_count: int
    backup_count: int


class ChannelRoster:
    """The channels being monitored, in file order, with an optional class each.

    Like :class:`ProviderDirectory` the file is read on construction and on
    :meth:`refresh`. :meth:`add` appends a line and :meth:`remove` rewrites
    the file without the channel's lines; both keep comments intact and take
    a timestamped backup of the previous file, pruned to ``backup_keep``.
    """

    def __init__(
        self,
        path: str | Path,
        *,
        backup_keep: int = DEFAULT_BACKUP_KEEP,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        if backup_keep < 0:
            raise ValueError("backup_keep must not be negative")
        self.path = Path(path)
        self.backup_keep = backup_keep
        self._clock = clock or datetime.now
        self._entries: dict[str, RosterEntry] = {}
        self.refresh()

    def refresh(self) -> int:
        """Reload the file and return the number of channels read."""

        entries: dict[str, RosterEntry] = {}
        if not self.path.exists():
            logger.info(f"Channel roster {self.path} not found; no channels are monitored")
        else:
            for number, raw in enumerate(self._read_lines(), start=1):
                entry = self._parse(raw, number)
                if entry is None:
                    continue
                if entry.channel_id in entries:
                    logger.warning(f"Duplicate channel {entry.channel_id} on line {number} ignored")
                    continue
                entries[entry.channel_id] = entry

        self._entries = entries
        classified = sum(1 for entry in entries.values() if entry.favorite_class is not None)
        logger.debug(f"Loaded {len(entries)} channels ({classified} classified) from {self.path}")
        return len(entries)

    def channel_ids(self) -> list[str]:
        return list(self._entries)

    def entries(self) -> list[RosterEntry]:
        return list(self._entries.values())

    def favorite_class(self, channel_id: str) -> int | None:
        entry = self._entries.get(channel_id.strip())
        return entry.favorite_class if entry else None

    def add(self, channel_id: str, favorite_class: int | None = None) -> bool:
        """Append ``channel_id``; returns False when it is already on the roster.

        Raises:
            ValueError: the id is not 1-20 letters or digits, or the class is outside 1-10.
            StoreIOError: the file could not be written.
        """

        entry = self._validated(channel_id, favorite_class)
        if entry.channel_id in self._entries:
            logger.bind(channel_id=entry.channel_id).info("Channel already on the roster")
            return False

        existing = self._read_lines() if self.path.exists() else list(_HEADER)
        self._write([*existing, entry.to_line()])
        self._entries[entry.channel_id] = entry
        logger.bind(channel_id=entry.channel_id).info(f"Channel added to roster as {entry.to_line()!r}")
        return True

    def remove(self, channel_id: str) -> bool:
        channel_id = channel_id.strip()
        if channel_id not in self._entries:
            return False

        kept = [line for line in self._read_lines() if _line_channel(line) != channel_id]
        self._write(kept)
        del self._entries[channel_id]
        logger.bind(channel_id=channel_id).info("Channel removed from roster")
        return True

    def backups(self) -> list[Path]:
        """Backup files of the roster, newest first."""

        if not self.path.parent.is_dir():
            return []
        prefix = f"{self.path.name}.backup_"
        return sorted(
            (entry for entry in self.path.parent.iterdir() if entry.name.startswith(prefix)),
            key=lambda entry: entry.name,
            reverse=True,
        )

    def stats(self) -> RosterStats:
        exists = self.path.is_file()
        return RosterStats(
            path=self.path,
            exists=exists,
            size_bytes=self.path.stat().st_size if exists else 0,
            channel_count=len(self._entries),
            classified_count=sum(1 for entry in self._entries.values() if entry.favorite_class is not None),
            backup_count=len(self.backups()),
        )

    def __contains__(self, channel_id: object) -> bool:
        return isinstance(channel_id, str) and channel_id.strip() in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def _parse(self, raw: str, number: int) -> RosterEntry | None:
        line = raw.strip()
        if not line or line.startswith(_COMMENT_PREFIXES):
            return None

        channel_id, separator, class_text = line.partition(DELIMITER)
        channel_id = channel_id.strip()
        favorite_class = None
        if separator and class_text.strip():
            favorite_class = parse_class(class_text)
            if favorite_class is None:
                logger.warning(f"Ignoring invalid class {class_text.strip()!r} on line {number} (must be 1-10)")

        if not is_valid_channel_id(channel_id):
            logger.warning(f"Skipping invalid channel id on line {number}: {channel_id!r}")
            return None
        return RosterEntry(channel_id, favorite_class)

    def _validated(self, channel_id: str, favorite_class: int | None) -> RosterEntry:
        channel_id = channel_id.strip()
        if not is_valid_channel_id(channel_id):
            raise ValueError(f"Invalid channel id {channel_id!r}")
        if favorite_class is not None and not MIN_CLASS <= favorite_class <= MAX_CLASS:
            raise ValueError(f"Class must be between {MIN_CLASS} and {MAX_CLASS}, got {favorite_class}")
        return RosterEntry(channel_id, favorite_class)

    def _read_lines(self) -> list[str]:
        try:
            with open(self.path, encoding="utf-8") as handle:
                return handle.read().splitlines()
        except OSError as exc:
            raise self._io_error("read", exc) from exc

    def _write(self, lines: list[str]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            if self.path.exists():
                backup = self.path.with_name(f"{self.path.name}.backup_{self._clock():%Y%m%d%H%M%S}")
                shutil.copy2(self.path, backup)
            self.path.write_text("\n".join(lines) + "\n", encoding="utf-8")
            for stale in self.backups()[self.backup_keep :]:
                stale.unlink()
        except OSError as exc:
            raise self._io_error("write", exc) from exc

    def _io_error(self, action: str, exc: OSError) -> StoreIOError:
        logger.bind(error_code=ErrorCode.STORE_IO.value).error(f"Could not {action} {self.path}: {exc}")
        return StoreIOError(f"Could not {action} channel roster: {exc}", ROSTER_KEY, str(self.path))


def _line_channel(line: str) -> str | None:
    stripped = line.strip()
    if not stripped or stripped.startswith(_COMMENT_PREFIXES):
        return None
    return stripped.partition(DELIMITER)[0].strip()


__all__ = [
    "ChannelRoster",
    "DEFAULT_BACKUP_KEEP",
    "RosterEntry",
    "RosterStats",
    "is_valid_channel_id",
    "parse_class",
]
