"""Import a parsed GEDCOM document into the person/relationship store."""

from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from pathlib import Path
import itertools
import logging
import queue
import sqlite3
import threading

from .config import DirNameFormat, ImportConfig
from .database import (
    create_database,
    create_person,
    create_relationship,
    find_persons_by_external_id,
    generate_unique_directory_name,
)
from .document import GedcomDocument, ParsedFamily, ParsedIndividual, load_document
from .errors import DuplicateRelationship, SelfRelationship
from .models import Person, RelationshipCategory, generate_directory_name, slugify


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UnresolvedReference:
    """A family record pointing at an individual the document never defines."""

    family_xref: str
    role: str  # HUSB, WIFE or CHIL
    xref: str

    def __str__(self):
        return f"{self.family_xref} {self.role} -> {self.xref}"


@dataclass(frozen=True)
class ImportProgress:
    records_processed: int
    persons_created: int
    relationships_created: int
    duplicates_skipped: int
    unresolved_references: int


@dataclass
class ImportReport:
    records_processed: int = 0
    persons_created: int = 0
    # Individuals that were already in the store from an earlier import
    persons_matched: int = 0
    # Persons made up for references to undefined individuals (included in persons_created)
    placeholders_created: int = 0
    relationships_created: int = 0
    duplicates_skipped: int = 0
    rejected_relationships: int = 0
    unresolved: list[UnresolvedReference] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    cancelled: bool = False

    @property
    def unresolved_references(self) -> int:
        return len(self.unresolved)

    def snapshot(self) -> ImportProgress:
        return ImportProgress(
            records_processed=self.records_processed,
            persons_created=self.persons_created,
            relationships_created=self.relationships_created,
            duplicates_skipped=self.duplicates_skipped,
            unresolved_references=self.unresolved_references,
        )

    def summary(self) -> str:
        text = (
            f"{self.persons_created} persons, {self.relationships_created} relationships imported"
        )
        details = []
        if self.persons_matched:
            details.append(f"{self.persons_matched} already present")
        if self.duplicates_skipped:
            details.append(f"{self.duplicates_skipped} duplicates skipped")
        if self.unresolved:
            details.append(f"{self.unresolved_references} unresolved references")
        if details:
            text += f" ({', '.join(details)})"
        if self.cancelled:
            text += f", cancelled after {self.records_processed} records"
        return text


@dataclass
class ImportPreview:
    total_individuals: int = 0
    total_families: int = 0
    new_persons: int = 0
    existing_persons: int = 0
    estimated_relationships: int = 0
    sample_persons: list[str] = field(default_factory=list)


ProgressCallback = Callable[[ImportProgress], None]

SAMPLE_SIZE = 5


def find_stored_individual(
    conn: sqlite3.Connection, indi: ParsedIndividual, identity: str | None
) -> Person | None:
    """
    Person stored by an earlier import of the same individual.

    The xref must match under the document identity and so must the name:
    two unrelated files from the same program both start at @I1@.
    """
    for person in find_persons_by_external_id(conn, indi.xref, identity):
        if (person.given_name, person.surname) == (indi.given_name, indi.surname):
            return person
    return None


class Importer:
    """
    Maps a GedcomDocument onto the store.

    Persons are identified by document identity (HEAD SOUR, plus FILE when
    present), xref and name, so importing the same document again creates
    no new persons. The whole import runs in one transaction: a hard error
    rolls everything back. Cancelling stops between records and keeps what
    was already applied.
    """

    def __init__(
        self,
        conn: sqlite3.Connection,
        config: ImportConfig | None = None,
        progress: ProgressCallback | None = None,
        cancel_event: threading.Event | None = None,
    ):
        self.conn = conn
        self.config = config or ImportConfig()
        self.progress = progress
        self.cancel_event = cancel_event

    def import_document(self, document: GedcomDocument) -> ImportReport:
        run = _ImportRun(self, document)
        logger.info(
            "Importing %d individuals and %d families from %s",
            document.individual_count(),
            document.family_count(),
            document.source or "unknown source",
        )
        try:
            with self.conn:
                run.execute()
        except Exception:
            logger.error("Import failed after %d records, rolled back", run.report.records_processed)
            raise
        logger.info("Import finished: %s", run.report.summary())
        return run.report

    def preview(self, document: GedcomDocument) -> ImportPreview:
        """Count what an import would do without touching the store."""
        preview = ImportPreview(
            total_individuals=document.individual_count(),
            total_families=document.family_count(),
        )

        seen = set()
        for indi in document.individuals:
            if indi.xref in seen:
                continue
            seen.add(indi.xref)
            if find_stored_individual(self.conn, indi, document.identity) is not None:
                preview.existing_persons += 1
            else:
                preview.new_persons += 1
            if len(preview.sample_persons) < SAMPLE_SIZE:
                preview.sample_persons.append(indi.full_name())

        for fam in document.families:
            parent_count = len(fam.parents)
            child_count = len(set(fam.children))
            preview.estimated_relationships += parent_count * child_count
            if parent_count == 2:
                preview.estimated_relationships += 1
            if self.config.link_siblings:
                preview.estimated_relationships += child_count * (child_count - 1) // 2

        return preview


class _ImportRun:
    """State of one import: the xref -> person id map lives only as long as this run."""

    def __init__(self, importer: Importer, document: GedcomDocument):
        self.conn = importer.conn
        self.config = importer.config
        self.progress = importer.progress
        self.cancel_event = importer.cancel_event
        self.source = document.identity
        self.document = document
        self.report = ImportReport()
        self.id_map: dict[str, int] = {}

    def cancelled(self) -> bool:
        if self.cancel_event is not None and self.cancel_event.is_set():
            self.report.cancelled = True
            logger.info("Import cancelled after %d records", self.report.records_processed)
            return True
        return False

    def emit(self):
        if self.progress is not None:
            self.progress(self.report.snapshot())

    def execute(self):
        for problem in self.document.family_link_mismatches():
            self.warn(problem)

        for indi in self.document.individuals:
            if self.cancelled():
                return
            self.import_individual(indi)
            self.report.records_processed += 1
            self.emit()

        for fam in self.document.families:
            if self.cancelled():
                return
            self.import_family(fam)
            self.report.records_processed += 1
            self.emit()

    def warn(self, message: str):
        logger.warning(message)
        self.report.warnings.append(message)

    def import_individual(self, indi: ParsedIndividual):
        if indi.xref in self.id_map:
            self.warn(f"Individual {indi.xref} defined again on line {indi.line_number}, ignored")
            return

        existing = find_stored_individual(self.conn, indi, self.source)
        if existing is not None:
            self.id_map[indi.xref] = existing.id
            self.report.persons_matched += 1
            return
        if find_persons_by_external_id(self.conn, indi.xref, self.source):
            self.warn(
                f"Individual {indi.xref} ({indi.full_name()}) differs from the stored person "
                f"with that id, imported as a new person"
            )

        fmt = self.config.dir_name_format
        birth_date = indi.birth_date
        name_date = birth_date if self.config.include_birth_date or fmt is DirNameFormat.DATE_FIRST else None
        base_name = generate_directory_name(indi.given_name, indi.surname, name_date, fmt)

        person = Person(
            given_name=indi.given_name,
            surname=indi.surname,
            sex=indi.sex,
            birth_date=birth_date,
            birth_place=indi.birth.place if indi.birth else None,
            death_date=indi.death_date,
            death_place=indi.death.place if indi.death else None,
            directory_name=generate_unique_directory_name(self.conn, base_name),
            notes="\n\n".join(indi.notes) or None,
            external_id=indi.xref,
            external_source=self.source,
        )
        self.id_map[indi.xref] = create_person(self.conn, person)
        self.report.persons_created += 1

    def resolve(self, xref: str, fam: ParsedFamily, role: str) -> int:
        """Person id for an xref, creating a placeholder if the individual is undefined."""
        person_id = self.id_map.get(xref)
        if person_id is not None:
            return person_id

        reference = UnresolvedReference(fam.xref, role, xref)
        self.report.unresolved.append(reference)
        self.warn(f"Family {fam.xref} references undefined individual {xref} as {role}")

        stored = find_persons_by_external_id(self.conn, xref, self.source)
        if stored:
            person_id = stored[0].id
        else:
            placeholder = Person(
                directory_name=generate_unique_directory_name(
                    self.conn, f"unknown_{slugify(xref)}"
                ),
                external_id=xref,
                external_source=self.source,
            )
            person_id = create_person(self.conn, placeholder)
            self.report.persons_created += 1
            self.report.placeholders_created += 1

        self.id_map[xref] = person_id
        return person_id

    def link(self, person_a_id: int, person_b_id: int, category: RelationshipCategory, **kwargs):
        try:
            create_relationship(self.conn, person_a_id, person_b_id, category, **kwargs)
        except DuplicateRelationship:
            self.report.duplicates_skipped += 1
        except SelfRelationship as e:
            self.report.rejected_relationships += 1
            self.warn(f"Skipped {category.value} relationship: {e}")
        else:
            self.report.relationships_created += 1

    def import_family(self, fam: ParsedFamily):
        husband_id = self.resolve(fam.husband, fam, "HUSB") if fam.husband else None
        wife_id = self.resolve(fam.wife, fam, "WIFE") if fam.wife else None

        if husband_id is not None and wife_id is not None:
            marriage = fam.marriage
            self.link(
                husband_id,
                wife_id,
                RelationshipCategory.SPOUSE,
                marriage_date=marriage.date if marriage else None,
                marriage_place=marriage.place if marriage else None,
            )

        parent_ids = [p for p in (husband_id, wife_id) if p is not None]
        child_ids = list(dict.fromkeys(self.resolve(c, fam, "CHIL") for c in fam.children))

        for child_id in child_ids:
            for parent_id in parent_ids:
                self.link(parent_id, child_id, RelationshipCategory.PARENT_CHILD, parent_id=parent_id)

        if self.config.link_siblings:
            for a, b in itertools.combinations(child_ids, 2):
                self.link(a, b, RelationshipCategory.SIBLING)


def import_file(
    conn: sqlite3.Connection,
    path: Path | str,
    config: ImportConfig | None = None,
    progress: ProgressCallback | None = None,
    cancel_event: threading.Event | None = None,
) -> ImportReport:
    """
    Read, parse and import a GEDCOM file.

    The file is parsed completely before anything is written, so a
    MalformedRecord leaves the store untouched.
    """
    config = config or ImportConfig()
    document = load_document(path, config.default_encoding)
    return Importer(conn, config, progress, cancel_event).import_document(document)


@dataclass
class ImportFailed:
    """Final event of an ImportJob that stopped on an error."""

    error: Exception
    line_number: int | None = None

    @property
    def message(self) -> str:
        return str(self.error)


ImportEvent = ImportProgress | ImportReport | ImportFailed


class ImportJob:
    """
    Run an import on a worker thread.

    Progress snapshots are put on `events` as they happen; the last event is
    either the ImportReport or an ImportFailed. The job opens its own
    connection to `db_path`, since sqlite connections stay on their thread.
    """

    def __init__(self, db_path: Path | str, gedcom_path: Path | str, config: ImportConfig | None = None):
        self.db_path = db_path
        self.gedcom_path = gedcom_path
        self.config = config or ImportConfig()
        self.events: queue.Queue = queue.Queue()
        self.report: ImportReport | None = None
        self.failure: ImportFailed | None = None
        self._cancel = threading.Event()
        self._thread = threading.Thread(target=self._run, name="genlib-import", daemon=True)

    def start(self) -> "ImportJob":
        self._thread.start()
        return self

    def cancel(self):
        """Stop at the next record boundary; records already applied are kept."""
        self._cancel.set()

    def join(self, timeout: float | None = None):
        self._thread.join(timeout)

    def is_alive(self) -> bool:
        return self._thread.is_alive()

    def iter_events(self) -> Iterator[ImportEvent]:
        """Yield events until the final report or failure."""
        while True:
            event = self.events.get()
            yield event
            if isinstance(event, (ImportReport, ImportFailed)):
                return

    def _run(self):
        conn = None
        try:
            conn = create_database(self.db_path)
            report = import_file(
                conn, self.gedcom_path, self.config, progress=self.events.put, cancel_event=self._cancel
            )
        except Exception as e:
            # Forwarded to the consumer instead of dying with the thread
            logger.exception("Import of %s failed", self.gedcom_path)
            self.failure = ImportFailed(e, getattr(e, "line_number", None))
            self.events.put(self.failure)
        else:
            self.report = report
            self.events.put(report)
        finally:
            if conn is not None:
                conn.close()
