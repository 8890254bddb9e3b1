"""Synchronous refresh of channels: markup in, stored snapshot out."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum

from signalwatch.core.data.storage import AppendOutcome, RecordStore
from signalwatch.core.exceptions import SnapshotValidationError, StoreIOError
from signalwatch.core.extraction import ExtractionFailure, FieldExtractor
from signalwatch.core.logging import get_logger, log_context
from signalwatch.core.models import Snapshot
from signalwatch.core.services.providers import ProviderDirectory

logger = get_logger(__name__)


class RefreshStatus(str, Enum):
    STORED = "STORED"
    SKIPPED_DUPLICATE = "SKIPPED_DUPLICATE"
    EXTRACTION_FAILED = "EXTRACTION_FAILED"
    STORE_FAILED = "STORE_FAILED"


@dataclass(frozen=True, slots=True)
class RefreshResult:
    """Outcome of refreshing one channel."""

    channel_id: str
    status: RefreshStatus
    snapshot: Snapshot | None = None
    reason: str | None = None

    @property
    def ok(self) -> bool:
        return self.status in (RefreshStatus.STORED, RefreshStatus.SKIPPED_DUPLICATE)

    def status_text(self) -> str:
        """One line summary suitable for a status column."""

        if self.snapshot is not None and self.ok:
            return (
                f"{self.status.value}: {self.snapshot.balance:.2f} {self.snapshot.currency_code} "
                f"({self.snapshot.floating_profit:+.2f})"
            )
        if self.reason:
            return f"{self.status.value}: {self.reason}"
        return self.status.value


class ChannelRefresher:
    """Runs extraction and storage for channels, one independent step per channel.

    Failures are reported in the :class:`RefreshResult`; nothing channel scoped
    is raised.
    """

    def __init__(
        self,
        extractor: FieldExtractor,
        store: RecordStore,
        directory: ProviderDirectory | None = None,
    ) -> None:
        self.extractor = extractor
        self.store = store
        self.directory = directory

    def refresh(self, channel_id: str, markup: str) -> RefreshResult:
        with log_context(channel_id=channel_id):
            outcome = self.extractor.extract(markup, channel_id)
            if isinstance(outcome, ExtractionFailure):
                return RefreshResult(
                    channel_id,
                    RefreshStatus.EXTRACTION_FAILED,
                    reason=f"{outcome.reason.value}: {outcome.message}",
                )

            self._learn_label(outcome)

            try:
                appended = self.store.append(channel_id, outcome)
            except (StoreIOError, SnapshotValidationError) as exc:
                logger.bind(error_code=exc.error_code).error(f"Storing snapshot failed: {exc.message}")
                return RefreshResult(channel_id, RefreshStatus.STORE_FAILED, outcome, exc.message)

            if appended is AppendOutcome.SKIPPED_DUPLICATE:
                return RefreshResult(channel_id, RefreshStatus.SKIPPED_DUPLICATE, outcome)
            return RefreshResult(channel_id, RefreshStatus.STORED, outcome)

    def refresh_many(self, pages: Mapping[str, str]) -> dict[str, RefreshResult]:
        results = {channel_id: self.refresh(channel_id, markup) for channel_id, markup in pages.items()}
        failed = [channel_id for channel_id, result in results.items() if not result.ok]
        logger.info(f"Refreshed {len(results)} channels, {len(failed)} failed")
        return results

    def _learn_label(self, snapshot: Snapshot) -> None:
        if self.directory is None:
            return
        try:
            self.directory.set_label(snapshot.channel_id, snapshot.provider_label)
        except StoreIOError as exc:
            logger.warning(f"Provider label not persisted: {exc.message}")
        except ValueError as exc:
            logger.warning(f"Provider label not recorded: {exc}")
