"""
Copyright 2026 SNCOP File Storage Contributors

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at

    http://www.apache.org/licenses/LICENSE-2.0

Unless required by applicable law or agreed to in writing, software
distributed under the License is distributed on an "AS IS" BASIS,
WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
See the License for the specific language governing permissions and
limitations under the License.
"""

"""Cleanup of uploads stranded in the scratch ``temp`` directory."""

from datetime import datetime, timedelta
from pathlib import Path
import threading
from typing import Callable, List, Optional

from sncop_storage.core.catalog import CatalogStore
from sncop_storage.utils.logging import get_logger

logger = get_logger(__name__)


def sweep_orphaned_temp_files(
    temp_dir: Path,
    catalog: CatalogStore,
    max_age_minutes: int,
    now: Optional[datetime] = None,
) -> List[Path]:
    """
    Delete temp files older than ``max_age_minutes`` that no record refers to.

    Returns:
        Paths that were removed
    """
    if not temp_dir.is_dir():
        return []

    cutoff = (now or datetime.now()) - timedelta(minutes=max_age_minutes)
    removed: List[Path] = []

    for path in temp_dir.iterdir():
        try:
            if not path.is_file():
                continue
            if datetime.fromtimestamp(path.stat().st_mtime) > cutoff:
                continue
            if catalog.has_stored_file(path.name):
                continue
            path.unlink()
            removed.append(path)
        except OSError as e:
            logger.warning(f"Could not remove temp file {path}: {e}")

    if removed:
        logger.info(f"Removed {len(removed)} orphaned temp files from {temp_dir}")
    return removed


class TempSweeper:
    """Runs a sweep on a fixed interval from a daemon thread."""

    def __init__(self, sweep: Callable[[], List[Path]], interval_minutes: float):
        self.sweep = sweep
        self.interval_seconds = max(1.0, interval_minutes * 60)
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run, name="temp-sweeper", daemon=True
        )
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()

    def _run(self) -> None:
        while not self._stop.wait(self.interval_seconds):
            try:
                self.sweep()
            except Exception as e:
                logger.error(f"Temp sweep failed: {e}")
