"""Data classes for family tree entities."""

from dataclasses import dataclass, field
from enum import Enum
import re
import unicodedata

from .config import DirNameFormat
from .dates import StructuredDate
from .errors import SelfRelationship


class RelationshipCategory(str, Enum):
    PARENT_CHILD = "parent_child"
    SPOUSE = "spouse"
    SIBLING = "sibling"


class ParentSide(str, Enum):
    """Which stored id of a parent-child relationship is the parent."""

    LOW = "low"
    HIGH = "high"


class Kinship(str, Enum):
    """What the other person of a relationship is to a given person."""

    PARENT = "parent"
    CHILD = "child"
    SPOUSE = "spouse"
    SIBLING = "sibling"


@dataclass
class Person:
    id: int | None = None
    given_name: str | None = None
    surname: str | None = None
    sex: str | None = None
    birth_date: StructuredDate | None = None
    birth_place: str | None = None
    death_date: StructuredDate | None = None
    death_place: str | None = None
    directory_name: str = ""
    profile_image_path: str | None = None
    bookmarked: bool = False
    notes: str | None = None
    # Where an imported person came from: GEDCOM xref and document source
    external_id: str | None = None
    external_source: str | None = None

    def full_name(self) -> str:
        parts = [p for p in (self.given_name, self.surname) if p]
        return " ".join(parts) if parts else "Unknown"

    @property
    def is_alive(self) -> bool:
        return self.death_date is None


@dataclass(frozen=True)
class Relationship:
    """
    A stored relationship between two persons.

    The pair is always kept as (low, high) by person id. For parent-child
    relationships `parent_side` says which of the two is the parent, since
    the id order says nothing about generations.
    """

    person_low_id: int
    person_high_id: int
    category: RelationshipCategory
    parent_side: ParentSide | None = None
    id: int | None = None
    marriage_date: StructuredDate | None = field(default=None, compare=False)
    marriage_place: str | None = field(default=None, compare=False)

    def __post_init__(self):
        if self.person_low_id == self.person_high_id:
            raise SelfRelationship(self.person_low_id)
        if self.person_low_id > self.person_high_id:
            raise ValueError(
                f"person_low_id ({self.person_low_id}) must be less than "
                f"person_high_id ({self.person_high_id}); use Relationship.between()"
            )
        object.__setattr__(self, "category", RelationshipCategory(self.category))
        if self.category is RelationshipCategory.PARENT_CHILD:
            if self.parent_side is None:
                raise ValueError("parent-child relationships need a parent_side")
            object.__setattr__(self, "parent_side", ParentSide(self.parent_side))
        elif self.parent_side is not None:
            raise ValueError(f"{self.category.value} relationships have no parent_side")

    @classmethod
    def between(
        cls,
        person_a_id: int,
        person_b_id: int,
        category: RelationshipCategory,
        parent_id: int | None = None,
        **kwargs,
    ) -> "Relationship":
        """
        Build a relationship from two person ids in any order.

        `parent_id` names the parent for parent-child relationships and must
        be one of the two ids.
        """
        if person_a_id == person_b_id:
            raise SelfRelationship(person_a_id)
        category = RelationshipCategory(category)
        low, high = sorted((person_a_id, person_b_id))

        side = None
        if category is RelationshipCategory.PARENT_CHILD:
            if parent_id not in (low, high):
                raise ValueError(
                    f"parent_id must be {person_a_id} or {person_b_id}, got {parent_id}"
                )
            side = ParentSide.LOW if parent_id == low else ParentSide.HIGH
        elif parent_id is not None:
            raise ValueError(f"{category.value} relationships take no parent_id")

        return cls(low, high, category, side, **kwargs)

    @property
    def pair(self) -> tuple[int, int]:
        return (self.person_low_id, self.person_high_id)

    @property
    def parent_id(self) -> int | None:
        if self.parent_side is None:
            return None
        return self.person_low_id if self.parent_side is ParentSide.LOW else self.person_high_id

    @property
    def child_id(self) -> int | None:
        if self.parent_side is None:
            return None
        return self.person_high_id if self.parent_side is ParentSide.LOW else self.person_low_id

    def involves(self, person_id: int) -> bool:
        return person_id in self.pair

    def other(self, person_id: int) -> int:
        """The id on the other end of the relationship."""
        if person_id == self.person_low_id:
            return self.person_high_id
        if person_id == self.person_high_id:
            return self.person_low_id
        raise ValueError(f"Person {person_id} is not part of relationship {self.pair}")

    def role_of(self, person_id: int) -> Kinship:
        """What the other person is to `person_id`: parent, child, spouse or sibling."""
        self.other(person_id)
        if self.category is RelationshipCategory.SPOUSE:
            return Kinship.SPOUSE
        if self.category is RelationshipCategory.SIBLING:
            return Kinship.SIBLING
        return Kinship.CHILD if person_id == self.parent_id else Kinship.PARENT


_NON_ALNUM_RE = re.compile(r"[^a-z0-9]+")


def slugify(text: str) -> str:
    """Lowercase ASCII slug: accents stripped, other characters collapsed to '_'."""
    text = unicodedata.normalize("NFKD", text)
    text = "".join(c for c in text if not unicodedata.combining(c))
    return _NON_ALNUM_RE.sub("_", text.lower()).strip("_")


def generate_directory_name(
    given_name: str | None,
    surname: str | None,
    birth_date: StructuredDate | None = None,
    fmt: DirNameFormat = DirNameFormat.FIRSTNAME_FIRST,
) -> str:
    """
    Derive the base directory name for a person.

    firstname_first: "johan_andersson", surname_first: "andersson_johan",
    date_first: "1850_05_01_johan_andersson". With a birth date the date is
    appended for the first two formats. Uniqueness is the store's job.
    """
    fmt = DirNameFormat.parse(fmt)
    given = slugify(given_name or "")
    sur = slugify(surname or "")
    if fmt is DirNameFormat.SURNAME_FIRST:
        parts = [sur, given]
    else:
        parts = [given, sur]

    date_part = ""
    if birth_date is not None and not birth_date.is_unknown:
        date_part = birth_date.iso().replace("-", "_")

    if date_part:
        if fmt is DirNameFormat.DATE_FIRST:
            parts.insert(0, date_part)
        else:
            parts.append(date_part)

    name = "_".join(p for p in parts if p)
    return name or "unknown"
