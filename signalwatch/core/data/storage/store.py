"""Append-only flat file store for channel ticks and currency rates."""

from __future__ import annotations

import os
import shutil
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from pathlib import Path

from signalwatch.core.data.storage.codec import (
    CURRENT_TICK_FIELDS,
    LEGACY_TICK_FIELDS,
    RecordCodec,
    format_amount,
)
from signalwatch.core.exceptions import (
    ErrorCode,
    MalformedRecordLine,
    SnapshotValidationError,
    StoreIOError,
)
from signalwatch.core.logging import get_logger
from signalwatch.core.models import UNKNOWN_LABEL, ChannelHistory, RateQuote, Snapshot

RATE_HEADER = "timestamp,symbol,price"
STORE_SUFFIX = ".txt"
BACKUP_TIMESTAMP_FORMAT = "%Y%m%d%H%M%S"

Clock = Callable[[], datetime]
LabelLookup = Callable[[str], str | None]
LineConverter = Callable[[RecordCodec, str], str | None]

logger = get_logger(__name__)


class MigrationOutcome(str, Enum):
    """Result of rewriting one store file."""

    CONVERTED = "CONVERTED"
    ALREADY_CURRENT = "ALREADY_CURRENT"
    FAILED = "FAILED"


class AppendOutcome(str, Enum):
    WRITTEN = "WRITTEN"
    SKIPPED_DUPLICATE = "SKIPPED_DUPLICATE"


@dataclass(frozen=True, slots=True)
class StoreFileInfo:
    """Line level description of a channel store file."""

    channel_id: str
    path: Path
    exists: bool
    size_bytes: int = 0
    total_lines: int = 0
    record_lines: int = 0
    legacy_lines: int = 0
    current_lines: int = 0
    comment_lines: int = 0
    blank_lines: int = 0
    malformed_lines: int = 0
    first_observed: datetime | None = None
    last_observed: datetime | None = None

    @property
    def needs_migration(self) -> bool:
        return self.legacy_lines > 0 or self.malformed_lines > 0


@dataclass(frozen=True, slots=True)
class RewriteResult:
    """What a migration or repair pass did to one file."""

    outcome: MigrationOutcome
    changed_lines: int = 0
    kept_verbatim: int = 0
    backup_path: Path | None = None


class RecordStore:
    """One append-only text file per channel (``tick/``) and per rate symbol (``rates/``).

    The store is the only writer of its files. Callers serialise access per
    channel; writing the header of a new file is not atomic across processes.
    """

    def __init__(
        self,
        base_dir: str | Path,
        *,
        tick_dir_name: str = "tick",
        rate_dir_name: str = "rates",
        default_currency: str = "USD",
        dedupe_window: timedelta | None = None,
        clock: Clock | None = None,
        label_lookup: LabelLookup | None = None,
    ) -> None:
        self.base_dir = Path(base_dir)
        self.tick_dir = self.base_dir / tick_dir_name
        self.rate_dir = self.base_dir / rate_dir_name
        self.default_currency = default_currency
        self.dedupe_window = dedupe_window
        self._clock = clock or datetime.now
        self._label_lookup = label_lookup

    # paths

    def path_for(self, channel_id: str) -> Path:
        return self.tick_dir / f"{channel_id.lower()}{STORE_SUFFIX}"

    def rate_path_for(self, symbol: str) -> Path:
        return self.rate_dir / f"{symbol.lower()}{STORE_SUFFIX}"

    def channel_ids(self) -> list[str]:
        """Channel ids with a tick file, sorted."""
        return _stems(self.tick_dir)

    def rate_symbols(self) -> list[str]:
        return [stem.upper() for stem in _stems(self.rate_dir)]

    def codec_for(self, channel_id: str) -> RecordCodec:
        label = UNKNOWN_LABEL
        if self._label_lookup is not None:
            label = self._label_lookup(channel_id) or UNKNOWN_LABEL
        return RecordCodec(channel_id, self.default_currency, label)

    # writes

    def append(self, channel_id: str, snapshot: Snapshot) -> AppendOutcome:
        """Validate and append ``snapshot`` to the channel file.

        Raises:
            SnapshotValidationError: the snapshot is invalid or belongs to another channel.
            StoreIOError: the file could not be written.
        """

        errors = snapshot.validation_errors()
        if snapshot.channel_id and snapshot.channel_id != channel_id:
            errors["channel_id"] = f"snapshot belongs to {snapshot.channel_id!r}, not {channel_id!r}"
        if errors:
            raise SnapshotValidationError(f"Refusing to store invalid snapshot for {channel_id}", errors)

        if self._is_duplicate(channel_id, snapshot):
            logger.bind(channel_id=channel_id).debug("Values unchanged within dedupe window; skipping append")
            return AppendOutcome.SKIPPED_DUPLICATE

        codec = self.codec_for(channel_id)
        self._append_line(channel_id, self.path_for(channel_id), codec.encode_line(snapshot), header=None)
        logger.bind(channel_id=channel_id).debug(
            f"Stored balance {format_amount(snapshot.balance)} floating {format_amount(snapshot.floating_profit)}"
        )
        return AppendOutcome.WRITTEN

    def append_rate(self, quote: RateQuote) -> AppendOutcome:
        errors = quote.validation_errors()
        if errors:
            raise SnapshotValidationError(f"Refusing to store invalid {quote.symbol or '?'} quote", errors)
        codec = RecordCodec(quote.symbol, self.default_currency)
        self._append_line(quote.symbol, self.rate_path_for(quote.symbol), codec.encode_rate(quote), header=RATE_HEADER)
        return AppendOutcome.WRITTEN

    # reads

    def read_all(self, channel_id: str) -> ChannelHistory:
        """Read every decodable snapshot of ``channel_id`` in file order."""

        codec = self.codec_for(channel_id)
        records: list[Snapshot] = []
        for record in self._read_records(channel_id, self.path_for(channel_id), codec):
            if isinstance(record, Snapshot):
                records.append(record)
            else:
                logger.bind(channel_id=channel_id).warning("Ignoring rate record found in tick store")
        return ChannelHistory(channel_id, records)

    def read_rates(self, symbol: str) -> list[RateQuote]:
        codec = RecordCodec(symbol.upper(), self.default_currency)
        return [
            record
            for record in self._read_records(symbol.upper(), self.rate_path_for(symbol), codec)
            if isinstance(record, RateQuote)
        ]

    def latest(self, channel_id: str) -> Snapshot | None:
        return self.read_all(channel_id).latest

    def describe(self, channel_id: str) -> StoreFileInfo:
        """Classify every line of the channel file."""

        path = self.path_for(channel_id)
        if not path.exists():
            return StoreFileInfo(channel_id=channel_id, path=path, exists=False)

        codec = self.codec_for(channel_id)
        counts = {"total": 0, "record": 0, "legacy": 0, "current": 0, "comment": 0, "blank": 0, "malformed": 0}
        first: datetime | None = None
        last: datetime | None = None
        try:
            size = path.stat().st_size
            with open(path, encoding="utf-8", errors="replace") as handle:
                for line in handle:
                    counts["total"] += 1
                    stripped = line.strip()
                    if not stripped:
                        counts["blank"] += 1
                        continue
                    if stripped.startswith("#") or stripped == RATE_HEADER:
                        counts["comment"] += 1
                        continue
                    try:
                        record = codec.parse_line(stripped)
                    except MalformedRecordLine:
                        counts["malformed"] += 1
                        continue
                    counts["record"] += 1
                    field_count = len(stripped.split(","))
                    if field_count == LEGACY_TICK_FIELDS and isinstance(record, Snapshot):
                        counts["legacy"] += 1
                    elif field_count == CURRENT_TICK_FIELDS:
                        counts["current"] += 1
                    first = first or record.observed_at
                    last = record.observed_at
        except OSError as exc:
            raise StoreIOError(f"Cannot describe store for {channel_id}: {exc}", channel_id, str(path)) from exc

        return StoreFileInfo(
            channel_id=channel_id,
            path=path,
            exists=True,
            size_bytes=size,
            total_lines=counts["total"],
            record_lines=counts["record"],
            legacy_lines=counts["legacy"],
            current_lines=counts["current"],
            comment_lines=counts["comment"],
            blank_lines=counts["blank"],
            malformed_lines=counts["malformed"],
            first_observed=first,
            last_observed=last,
        )

    # maintenance

    def migrate_file(self, channel_id: str) -> MigrationOutcome:
        """Rewrite the channel file in the current schema."""

        return self._rewrite(channel_id, self.path_for(channel_id), self.codec_for(channel_id), _migrate).outcome

    def migrate_rate_file(self, symbol: str) -> MigrationOutcome:
        codec = RecordCodec(symbol.upper(), self.default_currency)
        return self._rewrite(symbol.upper(), self.rate_path_for(symbol), codec, _migrate).outcome

    def migrate_all(self) -> dict[str, MigrationOutcome]:
        """Migrate every tick store, then every rate store.

        Tick stores are keyed by file stem, which is the lower-cased channel
        id the file was written under, so a channel appended as ``"AbC"`` is
        reported as ``"abc"``. Rate stores are keyed ``<rate dir>/<SYMBOL>``.
        A failing file is reported as ``FAILED`` and the remaining files are
        still processed.
        """

        outcomes: dict[str, MigrationOutcome] = {}
        for channel_id in self.channel_ids():
            outcomes[channel_id] = self.migrate_file(channel_id)
        for symbol in self.rate_symbols():
            outcomes[f"{self.rate_dir.name}/{symbol}"] = self.migrate_rate_file(symbol)

        converted = sum(1 for outcome in outcomes.values() if outcome is MigrationOutcome.CONVERTED)
        failed = sum(1 for outcome in outcomes.values() if outcome is MigrationOutcome.FAILED)
        logger.info(f"Migration finished: {len(outcomes)} files, {converted} converted, {failed} failed")
        return outcomes

    def repair_file(self, channel_id: str) -> RewriteResult:
        """Fix lines split by a locale decimal comma, leaving every other line untouched.

        Raises:
            StoreIOError: the file could not be read or rewritten.
        """

        path = self.path_for(channel_id)
        result = self._rewrite(channel_id, path, self.codec_for(channel_id), _repair)
        if result.outcome is MigrationOutcome.FAILED:
            raise StoreIOError(f"Repair of {channel_id} failed", channel_id, str(path))
        return result

    # internals

    def _is_duplicate(self, channel_id: str, snapshot: Snapshot) -> bool:
        if not self.dedupe_window:
            return False
        previous = self.latest(channel_id)
        if previous is None:
            return False
        unchanged = format_amount(previous.balance) == format_amount(snapshot.balance) and format_amount(
            previous.floating_profit
        ) == format_amount(snapshot.floating_profit)
        return unchanged and snapshot.observed_at - previous.observed_at < self.dedupe_window

    def _append_line(self, key: str, path: Path, line: str, header: str | None) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            size = path.stat().st_size if path.exists() else 0
            needs_newline = size > 0 and not _ends_with_newline(path)
            with open(path, "a", encoding="utf-8", newline="\n") as handle:
                if size == 0 and header:
                    handle.write(header + "\n")
                if needs_newline:
                    handle.write("\n")
                handle.write(line + "\n")
        except OSError as exc:
            logger.bind(channel_id=key, error_code=ErrorCode.STORE_IO.value).error(f"Append to {path} failed: {exc}")
            raise StoreIOError(f"Cannot append to store for {key}: {exc}", key, str(path)) from exc

    def _read_records(self, key: str, path: Path, codec: RecordCodec) -> Iterator[Snapshot | RateQuote]:
        if not path.exists():
            return
        try:
            with open(path, encoding="utf-8", errors="replace") as handle:
                for line in handle:
                    stripped = line.strip()
                    if not stripped or stripped.startswith("#") or stripped == RATE_HEADER:
                        continue
                    record = codec.decode_line(stripped)
                    if record is not None:
                        yield record
        except OSError as exc:
            logger.bind(channel_id=key, error_code=ErrorCode.STORE_IO.value).error(f"Reading {path} failed: {exc}")
            raise StoreIOError(f"Cannot read store for {key}: {exc}", key, str(path)) from exc

    def _rewrite(self, key: str, path: Path, codec: RecordCodec, convert: LineConverter) -> RewriteResult:
        log = logger.bind(channel_id=key)
        temp_path = path.with_name(path.name + ".tmp")
        try:
            original = path.read_bytes()
            lines = original.decode("utf-8").splitlines()
            output: list[str] = []
            changed = 0
            kept = 0
            for line in lines:
                stripped = line.strip()
                if not stripped or stripped.startswith("#") or stripped == RATE_HEADER:
                    output.append(line)
                    continue
                converted = convert(codec, stripped)
                if converted is None:
                    log.warning(f"Keeping unrecognised line verbatim: {stripped!r}")
                    output.append(line)
                    kept += 1
                    continue
                if converted != line:
                    changed += 1
                output.append(converted)

            rewritten = "".join(item + "\n" for item in output).encode("utf-8")
            if rewritten == original:
                log.debug(f"{path.name} already current")
                return RewriteResult(MigrationOutcome.ALREADY_CURRENT, 0, kept)

            backup_path = self._backup_path(path)
            shutil.copy2(path, backup_path)
            temp_path.write_bytes(rewritten)
            os.replace(temp_path, path)
        except (OSError, UnicodeDecodeError) as exc:
            log.bind(error_code=ErrorCode.STORE_IO.value).error(f"Rewriting {path} failed: {exc}")
            if temp_path.exists() and temp_path.is_file():
                temp_path.unlink()
            return RewriteResult(MigrationOutcome.FAILED)

        log.info(f"Rewrote {path.name}: {changed} lines changed, backup {backup_path.name}")
        return RewriteResult(MigrationOutcome.CONVERTED, changed, kept, backup_path)

    def _backup_path(self, path: Path) -> Path:
        stamp = self._clock().strftime(BACKUP_TIMESTAMP_FORMAT)
        candidate = path.with_name(f"{path.name}.backup_{stamp}")
        counter = 1
        while candidate.exists():
            candidate = path.with_name(f"{path.name}.backup_{stamp}_{counter}")
            counter += 1
        return candidate


def _migrate(codec: RecordCodec, line: str) -> str | None:
    return codec.migrate_line(line)


def _repair(codec: RecordCodec, line: str) -> str | None:
    try:
        codec.parse_line(line)
    except MalformedRecordLine:
        return codec.repair_line(line)
    return line


def _stems(directory: Path) -> list[str]:
    if not directory.is_dir():
        return []
    return sorted(entry.name[: -len(STORE_SUFFIX)] for entry in directory.iterdir() if entry.name.endswith(STORE_SUFFIX))


def _ends_with_newline(path: Path) -> bool:
    with open(path, "rb") as handle:
        handle.seek(-1, os.SEEK_END)
        return handle.read(1) == b"\n"


__all__ = [
    "AppendOutcome",
    "MigrationOutcome",
    "RATE_HEADER",
    "RecordStore",
    "RewriteResult",
    "StoreFileInfo",
]
