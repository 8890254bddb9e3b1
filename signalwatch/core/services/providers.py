"""Channel id to provider label directory backed by a flat ``id:label`` file."""

from __future__ import annotations

import shutil
from collections.abc import Callable
from datetime import datetime
from pathlib import Path

from signalwatch.core.exceptions import ErrorCode, StoreIOError
from signalwatch.core.logging import get_logger
from signalwatch.core.models import UNKNOWN_LABEL

DELIMITER = ":"
DIRECTORY_KEY = "provider-directory"
_HEADER = (
    "# channel id to provider label",
    "# format: channel_id:provider_label",
    "#",
)

logger = get_logger(__name__)


class ProviderDirectory:
    """Explicitly refreshed lookup of provider labels.

    The file is read once on construction and again only when :meth:`refresh`
    is called; :meth:`set_label` and :meth:`remove` persist immediately.
    """

    def __init__(
        self,
        path: str | Path,
        *,
        unknown_label: str = UNKNOWN_LABEL,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.path = Path(path)
        self.unknown_label = unknown_label
        self._clock = clock or datetime.now
        self._labels: dict[str, str] = {}
        self.refresh()

    def refresh(self) -> int:
        """Reload the file and return the number of mappings read."""

        labels: dict[str, str] = {}
        if self.path.exists():
            try:
                with open(self.path, encoding="utf-8") as handle:
                    for number, raw in enumerate(handle, start=1):
                        line = raw.strip()
                        if not line or line.startswith("#"):
                            continue
                        channel_id, separator, label = line.partition(DELIMITER)
                        channel_id, label = channel_id.strip(), label.strip()
                        if not separator or not channel_id or not label:
                            logger.warning(f"Skipping malformed provider mapping on line {number}: {line!r}")
                            continue
                        labels[channel_id] = label
            except OSError as exc:
                raise self._io_error("read", exc) from exc

        self._labels = labels
        logger.debug(f"Loaded {len(labels)} provider labels from {self.path}")
        return len(labels)

    def lookup(self, channel_id: str) -> str | None:
        return self._labels.get(channel_id.strip())

    def label_for(self, channel_id: str) -> str:
        return self.lookup(channel_id) or self.unknown_label

    def mappings(self) -> dict[str, str]:
        return dict(sorted(self._labels.items()))

    def set_label(self, channel_id: str, label: str) -> bool:
        """Store ``label`` for ``channel_id``; returns True when the file changed."""

        channel_id = channel_id.strip()
        label = " ".join(label.split())
        if not channel_id or DELIMITER in channel_id:
            raise ValueError(f"Invalid channel id {channel_id!r}")
        if not label or label == self.unknown_label:
            return False
        if self._labels.get(channel_id) == label:
            return False

        self._labels[channel_id] = label
        self.save()
        logger.bind(channel_id=channel_id).info(f"Provider label set to {label!r}")
        return True

    def remove(self, channel_id: str) -> bool:
        if self._labels.pop(channel_id.strip(), None) is None:
            return False
        self.save()
        return True

    def save(self) -> None:
        """Write all mappings sorted by channel id."""

        lines = [*_HEADER, *(f"{key}{DELIMITER}{value}" for key, value in self.mappings().items())]
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        except OSError as exc:
            raise self._io_error("write", exc) from exc

    def backup(self) -> Path | None:
        """Copy the file next to itself with a timestamp suffix; None when there is no file."""

        if not self.path.exists():
            return None
        target = self.path.with_name(f"{self.path.name}.backup_{self._clock():%Y%m%d%H%M%S}")
        try:
            shutil.copy2(self.path, target)
        except OSError as exc:
            raise self._io_error("back up", exc) from exc
        logger.info(f"Provider directory backed up to {target}")
        return target

    def __contains__(self, channel_id: object) -> bool:
        return isinstance(channel_id, str) and channel_id.strip() in self._labels

    def __len__(self) -> int:
        return len(self._labels)

    def _io_error(self, action: str, exc: OSError) -> StoreIOError:
        logger.bind(error_code=ErrorCode.STORE_IO.value).error(f"Could not {action} {self.path}: {exc}")
        return StoreIOError(f"Could not {action} provider directory: {exc}", DIRECTORY_KEY, str(self.path))


__all__ = ["DELIMITER", "ProviderDirectory"]
