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

"""
Startup repair between the Metadata Map and the Backup Document.

Runs once, before the service accepts requests:
- Restores Metadata Map entries for backup records that lack one
- Rebuilds the subject list from file records when it is empty
- Saves both files if anything changed
"""

from dataclasses import dataclass
from typing import Dict, Iterable, List

from sncop_storage.core.catalog import CatalogStore
from sncop_storage.core.models import ContentKind, Subject
from sncop_storage.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class ReconciliationReport:
    """What a reconciliation pass repaired."""

    metadata_entries_added: int = 0
    subjects_rebuilt: int = 0

    @property
    def changed(self) -> bool:
        return bool(self.metadata_entries_added or self.subjects_rebuilt)


class Reconciler:
    """Repairs drift between the two catalog files."""

    def __init__(
        self,
        catalog: CatalogStore,
        reserved_names: Iterable[str] = ("temp", "profile-pictures"),
    ):
        self.catalog = catalog
        self.reserved_names = {name.lower() for name in reserved_names}
        self.logger = get_logger(f"{__name__}.Reconciler")

    def run(self) -> ReconciliationReport:
        """Load, repair and (if needed) persist the catalog."""
        with self.catalog.lock:
            self.catalog.load()

            report = ReconciliationReport(
                metadata_entries_added=self._restore_metadata(),
                subjects_rebuilt=self._rebuild_subjects(),
            )

            if report.changed:
                self.catalog.save()
                self.logger.info(
                    f"Reconciled catalog: {report.metadata_entries_added} metadata entries "
                    f"restored, {report.subjects_rebuilt} subjects rebuilt"
                )
            else:
                self.logger.debug("Catalog already consistent")
            return report

    def _restore_metadata(self) -> int:
        added = 0
        for record in self.catalog.backup.all_records():
            if self.catalog.metadata_entry(record.metadata_key) is None:
                self.catalog.set_metadata_entry(record.metadata_key, record.metadata_entry())
                added += 1
        return added

    def _rebuild_subjects(self) -> int:
        backup = self.catalog.backup
        if backup.subjects or not backup.has_content():
            return 0

        units_by_subject: Dict[str, List[str]] = {}
        for kind in ContentKind:
            for record in backup.records(kind):
                if not record.subject or record.subject.lower() in self.reserved_names:
                    continue
                units = units_by_subject.setdefault(record.subject, [])
                if kind.requires_unit and record.unit and record.unit not in units:
                    units.append(record.unit)

        for name, units in units_by_subject.items():
            backup.subjects.append(Subject(name=name, units=units))

        self.logger.info(f"Reconstructed {len(units_by_subject)} subjects from backup data")
        return len(units_by_subject)
