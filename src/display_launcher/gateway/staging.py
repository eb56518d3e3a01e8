"""Scratch storage for uploaded install artifacts.

Uploaded APKs are written here, handed to the platform's install flow and
removed again. Nothing is meant to outlive its install attempt: successful
dispatches schedule a short delayed delete, and a periodic sweep removes
anything older than the retention window that slipped through.
"""

import asyncio
import logging
import shutil
import time
from pathlib import Path
from typing import Awaitable, BinaryIO, Callable, Optional, Set

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

ARTIFACT_PREFIX = "uploaded_"


class StagingConfig(BaseModel):
    """Staging directory settings."""

    directory: Path = Field(
        default=Path("~/.cache/display-launcher/apk"),
        description="Directory uploaded artifacts are staged in",
    )
    retention_sec: float = Field(
        default=600.0,
        description="Age after which a staged artifact is swept",
        gt=0,
    )
    cleanup_delay_sec: float = Field(
        default=5.0,
        description="Delay before deleting an artifact after install dispatch",
        ge=0,
    )
    sweep_interval_sec: float = Field(
        default=60.0,
        description="Interval of the background sweep",
        gt=0,
    )


class ArtifactStager:
    """Writes, schedules removal of and sweeps staged artifacts."""

    def __init__(self, config: Optional[StagingConfig] = None) -> None:
        """Initialize stager.

        Args:
            config: Staging settings (defaults if omitted)
        """
        self.config = config or StagingConfig()
        self.directory = self.config.directory.expanduser()
        self._pending: Set[asyncio.Task] = set()

    def stage(self, stream: BinaryIO, suffix: str = ".apk") -> Path:
        """Write an upload stream to a new artifact file.

        Args:
            stream: Readable binary stream
            suffix: File extension

        Returns:
            Path of the staged artifact
        """
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self.directory / f"{ARTIFACT_PREFIX}{time.time_ns()}{suffix}"

        with open(path, "wb") as f:
            shutil.copyfileobj(stream, f)

        logger.info(f"Staged artifact {path.name} ({path.stat().st_size} bytes)")
        return path

    def stage_file(self, source: Path) -> Path:
        """Copy an existing file into the staging directory."""
        with open(source, "rb") as f:
            return self.stage(f, suffix=source.suffix or ".apk")

    def discard(self, path: Path) -> None:
        """Delete a staged artifact, ignoring errors."""
        try:
            path.unlink(missing_ok=True)
            logger.debug(f"Discarded artifact {path.name}")
        except OSError as e:
            logger.warning(f"Could not delete {path}: {e}")

    def schedule_discard(
        self,
        path: Path,
        delay: Optional[float] = None,
        on_discard: Optional[Callable[[Path], Awaitable[None]]] = None,
    ) -> asyncio.Task:
        """Delete an artifact after a delay on the running event loop.

        Args:
            path: Artifact to delete
            delay: Seconds to wait (cleanup delay from config if omitted)
            on_discard: Awaited with ``path`` after the local delete

        Returns:
            The pending deletion task
        """
        if delay is None:
            delay = self.config.cleanup_delay_sec

        async def _discard_later() -> None:
            await asyncio.sleep(delay)
            self.discard(path)
            if on_discard is not None:
                await on_discard(path)

        task = asyncio.create_task(_discard_later())
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def drain(self) -> None:
        """Wait for every scheduled discard to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def sweep(self, now: Optional[float] = None) -> int:
        """Remove artifacts older than the retention window.

        Files created or removed concurrently are tolerated.

        Args:
            now: Reference timestamp (current time if omitted)

        Returns:
            Number of artifacts removed
        """
        if now is None:
            now = time.time()
        cutoff = now - self.config.retention_sec
        removed = 0

        try:
            candidates = list(self.directory.glob("*.apk"))
        except OSError as e:
            logger.warning(f"Could not scan {self.directory}: {e}")
            return 0

        for path in candidates:
            try:
                if path.stat().st_mtime < cutoff:
                    path.unlink()
                    removed += 1
            except FileNotFoundError:
                continue
            except OSError as e:
                logger.warning(f"Could not sweep {path}: {e}")

        if removed:
            logger.info(f"Swept {removed} stale artifact(s) from {self.directory}")
        return removed
