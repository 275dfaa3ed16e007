"""Parsed GEDCOM document model: individuals and families, independent of storage."""

from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from ged4py.detail.name import split_name

from .dates import StructuredDate, interpret_date
from .errors import MalformedRecord
from .parsing import Record, parse_records, read_records


@dataclass
class ParsedEvent:
    """A BIRT/DEAT/MARR block: raw date text and place."""

    date_string: str | None = None
    place: str | None = None

    @property
    def date(self) -> StructuredDate | None:
        if self.date_string is None:
            return None
        return interpret_date(self.date_string)


@dataclass
class ParsedIndividual:
    xref: str
    given_name: str | None = None
    surname: str | None = None
    sex: str | None = None
    birth: ParsedEvent | None = None
    death: ParsedEvent | None = None
    notes: list[str] = field(default_factory=list)
    family_child: list[str] = field(default_factory=list)
    family_spouse: list[str] = field(default_factory=list)
    line_number: int = 0

    def full_name(self) -> str:
        parts = [p for p in (self.given_name, self.surname) if p]
        return " ".join(parts) if parts else "Unknown"

    @property
    def birth_date(self) -> StructuredDate | None:
        return self.birth.date if self.birth else None

    @property
    def death_date(self) -> StructuredDate | None:
        return self.death.date if self.death else None


@dataclass
class ParsedFamily:
    xref: str
    husband: str | None = None
    wife: str | None = None
    children: list[str] = field(default_factory=list)
    marriage: ParsedEvent | None = None
    line_number: int = 0

    @property
    def parents(self) -> list[str]:
        return [p for p in (self.husband, self.wife) if p]


@dataclass
class GedcomDocument:
    individuals: list[ParsedIndividual] = field(default_factory=list)
    families: list[ParsedFamily] = field(default_factory=list)
    source: str | None = None
    charset: str | None = None
    # HEAD FILE: the file name the exporting program wrote
    file_name: str | None = None

    @property
    def identity(self) -> str | None:
        """Key that scopes the document's xrefs: "SOUR" or "SOUR:FILE"."""
        if self.file_name:
            return f"{self.source or ''}:{self.file_name}"
        return self.source

    def find_individual(self, xref: str) -> ParsedIndividual | None:
        """First individual defined with this xref."""
        for indi in self.individuals:
            if indi.xref == xref:
                return indi
        return None

    def find_family(self, xref: str) -> ParsedFamily | None:
        for fam in self.families:
            if fam.xref == xref:
                return fam
        return None

    def individual_count(self) -> int:
        return len(self.individuals)

    def family_count(self) -> int:
        return len(self.families)

    def record_count(self) -> int:
        return len(self.individuals) + len(self.families)

    def family_link_mismatches(self) -> list[str]:
        """
        FAMC/FAMS pointers of individuals that the family records don't back up.

        An individual's FAMC must name a family listing them as CHIL, and
        FAMS one listing them as HUSB or WIFE.
        """
        families = {}
        for fam in self.families:
            families.setdefault(fam.xref, fam)

        problems = []
        for indi in self.individuals:
            for xref in indi.family_child:
                fam = families.get(xref)
                if fam is None:
                    problems.append(f"Individual {indi.xref} refers to undefined family {xref} (FAMC)")
                elif indi.xref not in fam.children:
                    problems.append(f"Individual {indi.xref} has FAMC {xref}, but {xref} does not list them as a child")
            for xref in indi.family_spouse:
                fam = families.get(xref)
                if fam is None:
                    problems.append(f"Individual {indi.xref} refers to undefined family {xref} (FAMS)")
                elif indi.xref not in fam.parents:
                    problems.append(f"Individual {indi.xref} has FAMS {xref}, but {xref} does not list them as a spouse")
        return problems


def parse_name(name: str) -> tuple[str | None, str | None]:
    """
    Split a GEDCOM NAME value ("Given /Surname/ Suffix") into given name and surname.

    "/Andersson/" gives (None, "Andersson"); "Johan" gives ("Johan", None).
    Anything after the closing slash is dropped.
    """
    given, surname, _ = split_name(name)
    return (given or None, surname or None)


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    return value.strip() or None


def extract_event(record: Record) -> ParsedEvent:
    """
    Read DATE and PLAC directly under an event record.
    Deeper DATE lines (e.g. SOUR > DATA > DATE) are not the event's date.
    """
    return ParsedEvent(
        date_string=_clean(record.sub_value("DATE")),
        place=_clean(record.sub_value("PLAC")),
    )


def read_individual(record: Record) -> ParsedIndividual:
    if not record.xref:
        raise MalformedRecord("INDI record without a cross-reference id", record.line_number)

    indi = ParsedIndividual(xref=record.xref, line_number=record.line_number)

    # Only the first NAME counts; later ones are usually aliases (TYPE aka)
    name_rec = record.sub_tag("NAME")
    if name_rec is not None:
        if name_rec.value:
            indi.given_name, indi.surname = parse_name(name_rec.value)
        indi.given_name = indi.given_name or _clean(name_rec.sub_value("GIVN"))
        indi.surname = indi.surname or _clean(name_rec.sub_value("SURN"))

    sex = _clean(record.sub_value("SEX"))
    indi.sex = sex.upper() if sex else None

    birth = record.sub_tag("BIRT")
    if birth is not None:
        indi.birth = extract_event(birth)
    death = record.sub_tag("DEAT")
    if death is not None:
        indi.death = extract_event(death)

    for child in record.children:
        if child.tag == "NOTE" and child.value:
            indi.notes.append(child.value)
        elif child.tag == "FAMC" and child.value:
            indi.family_child.append(child.value.strip())
        elif child.tag == "FAMS" and child.value:
            indi.family_spouse.append(child.value.strip())

    return indi


def read_family(record: Record) -> ParsedFamily:
    if not record.xref:
        raise MalformedRecord("FAM record without a cross-reference id", record.line_number)

    fam = ParsedFamily(xref=record.xref, line_number=record.line_number)
    fam.husband = _clean(record.sub_value("HUSB"))
    fam.wife = _clean(record.sub_value("WIFE"))
    fam.children = [c.value.strip() for c in record.sub_tags("CHIL") if c.value and c.value.strip()]

    marriage = record.sub_tag("MARR")
    if marriage is not None:
        fam.marriage = extract_event(marriage)

    return fam


def read_document(records: Iterable[Record]) -> GedcomDocument:
    """
    Build a GedcomDocument from level-0 records.

    Consumes the whole record stream, so a MalformedRecord anywhere in the
    input surfaces here, before anything is imported. Records other than
    HEAD, INDI and FAM are ignored.
    """
    document = GedcomDocument()

    for record in records:
        if record.tag == "HEAD":
            document.source = _clean(record.sub_value("SOUR"))
            document.charset = _clean(record.sub_value("CHAR"))
            document.file_name = _clean(record.sub_value("FILE"))
        elif record.tag == "INDI":
            document.individuals.append(read_individual(record))
        elif record.tag == "FAM":
            document.families.append(read_family(record))

    return document


def parse_document(text: str) -> GedcomDocument:
    """Parse GEDCOM text into a GedcomDocument."""
    return read_document(parse_records(text))


def load_document(path: Path | str, default_encoding: str = "utf-8") -> GedcomDocument:
    """Read and parse a GEDCOM file into a GedcomDocument."""
    return read_document(read_records(path, default_encoding))
