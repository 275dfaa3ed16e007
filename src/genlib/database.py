"""SQLite storage for persons and relationships.

Functions here never commit on their own; callers group mutations with
`with conn:` so a batch is applied or rolled back as a whole.
"""

from pathlib import Path
import itertools
import logging
import re
import sqlite3

from .dates import StructuredDate, interpret_date
from .errors import DuplicateRelationship, PersonNotFound, SelfRelationship
from .models import Person, Relationship, RelationshipCategory


logger = logging.getLogger(__name__)

_PERSON_COLUMNS = (
    "id, given_name, surname, sex, "
    "birth_date_string, birth_date, birth_qualifier, birth_place, "
    "death_date_string, death_date, death_qualifier, death_place, "
    "directory_name, profile_image_path, bookmarked, notes, external_source, external_id"
)

_RELATIONSHIP_COLUMNS = (
    "id, person_low_id, person_high_id, category, parent_side, "
    "marriage_date_string, marriage_place"
)


def create_database(db_path: Path | str) -> sqlite3.Connection:
    """Open (creating if needed) a database with person and relationship tables."""
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    cursor = conn.cursor()

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS person (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            given_name TEXT,
            surname TEXT,
            sex TEXT,
            birth_date_string TEXT,
            birth_date TEXT,
            birth_qualifier TEXT,
            birth_place TEXT,
            death_date_string TEXT,
            death_date TEXT,
            death_qualifier TEXT,
            death_place TEXT,
            directory_name TEXT NOT NULL UNIQUE,
            profile_image_path TEXT,
            bookmarked INTEGER NOT NULL DEFAULT 0,
            notes TEXT,
            external_source TEXT,
            external_id TEXT
        )
    """)

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS relationship (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            person_low_id INTEGER NOT NULL,
            person_high_id INTEGER NOT NULL,
            category TEXT NOT NULL,
            parent_side TEXT,
            marriage_date_string TEXT,
            marriage_place TEXT,
            CHECK (person_low_id < person_high_id),
            UNIQUE (person_low_id, person_high_id),
            FOREIGN KEY (person_low_id) REFERENCES person(id),
            FOREIGN KEY (person_high_id) REFERENCES person(id)
        )
    """)

    cursor.execute(
        "CREATE INDEX IF NOT EXISTS idx_relationship_high ON relationship(person_high_id)"
    )
    # Not unique: two documents may share a source and xrefs for different people
    cursor.execute(
        "CREATE INDEX IF NOT EXISTS idx_person_external ON person(external_source, external_id)"
    )

    conn.commit()
    return conn


def _cursor(conn: sqlite3.Connection) -> sqlite3.Cursor:
    cursor = conn.cursor()
    cursor.row_factory = sqlite3.Row
    return cursor


def _date_columns(date: StructuredDate | None) -> tuple[str | None, str | None, str | None]:
    """(raw text, ISO value, qualifier) for storing a date."""
    if date is None:
        return (None, None, None)
    return (str(date) or None, date.iso(), date.qualifier.value)


def _load_date(date_string: str | None) -> StructuredDate | None:
    return interpret_date(date_string) if date_string else None


def _row_to_person(row: sqlite3.Row) -> Person:
    return Person(
        id=row["id"],
        given_name=row["given_name"],
        surname=row["surname"],
        sex=row["sex"],
        birth_date=_load_date(row["birth_date_string"]),
        birth_place=row["birth_place"],
        death_date=_load_date(row["death_date_string"]),
        death_place=row["death_place"],
        directory_name=row["directory_name"],
        profile_image_path=row["profile_image_path"],
        bookmarked=bool(row["bookmarked"]),
        notes=row["notes"],
        external_id=row["external_id"],
        external_source=row["external_source"],
    )


def _row_to_relationship(row: sqlite3.Row) -> Relationship:
    return Relationship(
        person_low_id=row["person_low_id"],
        person_high_id=row["person_high_id"],
        category=RelationshipCategory(row["category"]),
        parent_side=row["parent_side"],
        id=row["id"],
        marriage_date=_load_date(row["marriage_date_string"]),
        marriage_place=row["marriage_place"],
    )


# Persons


def create_person(conn: sqlite3.Connection, person: Person) -> int:
    """
    Insert a person and return its new id (also set on `person.id`).

    The directory name must already be unique; see
    generate_unique_directory_name().
    """
    if not person.directory_name:
        raise ValueError("Person needs a directory_name before it can be stored")

    birth = _date_columns(person.birth_date)
    death = _date_columns(person.death_date)
    cursor = conn.cursor()
    cursor.execute(
        """
        INSERT INTO person
        (given_name, surname, sex,
         birth_date_string, birth_date, birth_qualifier, birth_place,
         death_date_string, death_date, death_qualifier, death_place,
         directory_name, profile_image_path, bookmarked, notes, external_source, external_id)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (
            person.given_name,
            person.surname,
            person.sex,
            *birth,
            person.birth_place,
            *death,
            person.death_place,
            person.directory_name,
            person.profile_image_path,
            int(person.bookmarked),
            person.notes,
            person.external_source,
            person.external_id,
        ),
    )
    person.id = cursor.lastrowid
    logger.debug("Created person %d (%s)", person.id, person.directory_name)
    return person.id


def get_person(conn: sqlite3.Connection, person_id: int) -> Person:
    cursor = _cursor(conn)
    cursor.execute(f"SELECT {_PERSON_COLUMNS} FROM person WHERE id = ?", (person_id,))
    row = cursor.fetchone()
    if row is None:
        raise PersonNotFound(person_id)
    return _row_to_person(row)


def person_exists(conn: sqlite3.Connection, person_id: int) -> bool:
    cursor = conn.cursor()
    cursor.execute("SELECT 1 FROM person WHERE id = ?", (person_id,))
    return cursor.fetchone() is not None


def find_person_by_directory(conn: sqlite3.Connection, directory_name: str) -> Person | None:
    cursor = _cursor(conn)
    cursor.execute(
        f"SELECT {_PERSON_COLUMNS} FROM person WHERE directory_name = ?", (directory_name,)
    )
    row = cursor.fetchone()
    return _row_to_person(row) if row is not None else None


def find_person_by_external_id(
    conn: sqlite3.Connection, external_id: str, external_source: str | None = None
) -> Person | None:
    """Find a previously imported person by GEDCOM xref and document source."""
    cursor = _cursor(conn)
    cursor.execute(
        f"SELECT {_PERSON_COLUMNS} FROM person "
        "WHERE external_id = ? AND external_source IS ? ORDER BY id LIMIT 1",
        (external_id, external_source),
    )
    row = cursor.fetchone()
    return _row_to_person(row) if row is not None else None


def find_persons_by_external_id(
    conn: sqlite3.Connection, external_id: str, external_source: str | None = None
) -> list[Person]:
    """Every person imported under this xref and document source, oldest first."""
    cursor = _cursor(conn)
    cursor.execute(
        f"SELECT {_PERSON_COLUMNS} FROM person "
        "WHERE external_id = ? AND external_source IS ? ORDER BY id",
        (external_id, external_source),
    )
    return [_row_to_person(row) for row in cursor.fetchall()]


def all_persons(conn: sqlite3.Connection) -> list[Person]:
    cursor = _cursor(conn)
    cursor.execute(f"SELECT {_PERSON_COLUMNS} FROM person ORDER BY id")
    return [_row_to_person(row) for row in cursor.fetchall()]


def count_persons(conn: sqlite3.Connection) -> int:
    return conn.execute("SELECT COUNT(*) FROM person").fetchone()[0]


def is_directory_name_unique(
    conn: sqlite3.Connection, directory_name: str, exclude_id: int | None = None
) -> bool:
    cursor = conn.cursor()
    cursor.execute(
        "SELECT COUNT(*) FROM person WHERE directory_name = ? AND id IS NOT ?",
        (directory_name, exclude_id),
    )
    return cursor.fetchone()[0] == 0


def generate_unique_directory_name(conn: sqlite3.Connection, base_name: str) -> str:
    """
    Return `base_name` if unused, else the first free `base_name_2`,
    `base_name_3`, ... with no upper bound on the suffix.
    """
    base_name = base_name or "unknown"
    pattern = re.sub(r"([\\%_])", r"\\\1", base_name) + r"\_%"
    cursor = conn.cursor()
    cursor.execute(
        "SELECT directory_name FROM person WHERE directory_name = ? OR directory_name LIKE ? ESCAPE '\\'",
        (base_name, pattern),
    )
    taken = {row[0] for row in cursor.fetchall()}
    if base_name not in taken:
        return base_name

    for i in itertools.count(2):
        candidate = f"{base_name}_{i}"
        if candidate not in taken:
            return candidate


def toggle_bookmark(conn: sqlite3.Connection, person_id: int) -> bool:
    """Flip a person's bookmark flag and return the new value."""
    cursor = conn.cursor()
    cursor.execute(
        "UPDATE person SET bookmarked = 1 - bookmarked WHERE id = ?", (person_id,)
    )
    if cursor.rowcount == 0:
        raise PersonNotFound(person_id)
    cursor.execute("SELECT bookmarked FROM person WHERE id = ?", (person_id,))
    return bool(cursor.fetchone()[0])


def set_profile_image(conn: sqlite3.Connection, person_id: int, image_path: str | None):
    cursor = conn.cursor()
    cursor.execute(
        "UPDATE person SET profile_image_path = ? WHERE id = ?", (image_path, person_id)
    )
    if cursor.rowcount == 0:
        raise PersonNotFound(person_id)


# Relationships


def find_relationship(
    conn: sqlite3.Connection, person_a_id: int, person_b_id: int
) -> Relationship | None:
    """The stored relationship for the unordered pair, if any."""
    low, high = sorted((person_a_id, person_b_id))
    cursor = _cursor(conn)
    cursor.execute(
        f"SELECT {_RELATIONSHIP_COLUMNS} FROM relationship "
        "WHERE person_low_id = ? AND person_high_id = ?",
        (low, high),
    )
    row = cursor.fetchone()
    return _row_to_relationship(row) if row is not None else None


def exists(conn: sqlite3.Connection, person_a_id: int, person_b_id: int) -> bool:
    """True if the unordered pair has a stored relationship of any category."""
    return find_relationship(conn, person_a_id, person_b_id) is not None


def create_relationship(
    conn: sqlite3.Connection,
    person_a_id: int,
    person_b_id: int,
    category: RelationshipCategory,
    parent_id: int | None = None,
    marriage_date: StructuredDate | None = None,
    marriage_place: str | None = None,
) -> int:
    """
    Store a relationship between two persons and return its id.

    The pair is stored in (low, high) order whichever way round it is given.
    For parent-child relationships `parent_id` names the parent.

    Raises:
        SelfRelationship: if both ids are the same person
        PersonNotFound: if either person is not stored
        DuplicateRelationship: if the pair already has a relationship of any category
    """
    if person_a_id == person_b_id:
        raise SelfRelationship(person_a_id)
    for person_id in (person_a_id, person_b_id):
        if not person_exists(conn, person_id):
            raise PersonNotFound(person_id)

    existing = find_relationship(conn, person_a_id, person_b_id)
    if existing is not None:
        raise DuplicateRelationship(person_a_id, person_b_id, existing.id)

    rel = Relationship.between(
        person_a_id,
        person_b_id,
        category,
        parent_id=parent_id,
        marriage_date=marriage_date,
        marriage_place=marriage_place,
    )
    marriage_date_string = _date_columns(marriage_date)[0]

    cursor = conn.cursor()
    cursor.execute(
        """
        INSERT INTO relationship
        (person_low_id, person_high_id, category, parent_side, marriage_date_string, marriage_place)
        VALUES (?, ?, ?, ?, ?, ?)
        """,
        (
            rel.person_low_id,
            rel.person_high_id,
            rel.category.value,
            rel.parent_side.value if rel.parent_side else None,
            marriage_date_string,
            marriage_place,
        ),
    )
    logger.debug(
        "Created %s relationship %d between %d and %d",
        rel.category.value, cursor.lastrowid, rel.person_low_id, rel.person_high_id,
    )
    return cursor.lastrowid


def get_relationship(conn: sqlite3.Connection, relationship_id: int) -> Relationship | None:
    cursor = _cursor(conn)
    cursor.execute(
        f"SELECT {_RELATIONSHIP_COLUMNS} FROM relationship WHERE id = ?", (relationship_id,)
    )
    row = cursor.fetchone()
    return _row_to_relationship(row) if row is not None else None


def relationships_of(conn: sqlite3.Connection, person_id: int) -> set[Relationship]:
    """All stored relationships involving a person."""
    cursor = _cursor(conn)
    cursor.execute(
        f"SELECT {_RELATIONSHIP_COLUMNS} FROM relationship "
        "WHERE person_low_id = ? OR person_high_id = ?",
        (person_id, person_id),
    )
    return {_row_to_relationship(row) for row in cursor.fetchall()}


def all_relationships(conn: sqlite3.Connection) -> list[Relationship]:
    cursor = _cursor(conn)
    cursor.execute(f"SELECT {_RELATIONSHIP_COLUMNS} FROM relationship ORDER BY id")
    return [_row_to_relationship(row) for row in cursor.fetchall()]


def count_relationships(conn: sqlite3.Connection) -> int:
    return conn.execute("SELECT COUNT(*) FROM relationship").fetchone()[0]
