"""GEDCOM record parsing.

Turns GEDCOM text into a lazy sequence of level-0 records, each a tree of
Record nodes. Encoding detection and line tokenizing are ged4py's; the
parser knows nothing about persons or families, document.py reads the
records into the parsed document model.
"""

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from pathlib import Path
import bisect
import io
import logging
import re
import unicodedata

from ged4py.detail.io import check_bom
from ged4py.parser import CodecError, GedcomReader, IntegrityError, ParserError, guess_codec

from .errors import MalformedRecord


logger = logging.getLogger(__name__)

# Read first by GedcomReader's codec sniffing, so the re-encoded stream is
# taken as UTF-8 whatever the original header declares. Never part of a record.
_PRELUDE = b"1 CHAR UTF-8\n"

# ged4py reports positions as "... at line N: `text'"
_LOCATION_RE = re.compile(r"\s+at line (\d+)")


@dataclass
class Record:
    """One GEDCOM line together with its sub-records."""

    level: int
    tag: str
    value: str | None = None
    xref: str | None = None
    line_number: int = 0
    children: list["Record"] = field(default_factory=list)

    def sub_tag(self, tag: str) -> "Record | None":
        """First direct child with the given tag."""
        for child in self.children:
            if child.tag == tag:
                return child
        return None

    def sub_tags(self, tag: str) -> list["Record"]:
        return [child for child in self.children if child.tag == tag]

    def sub_value(self, tag: str) -> str | None:
        """Value of the first direct child with the given tag."""
        child = self.sub_tag(tag)
        return child.value if child is not None else None


def detect_encoding(raw: bytes, default_encoding: str = "utf-8") -> str:
    """
    Pick the codec for a GEDCOM file.

    ged4py reads the header CHAR declaration (ANSEL included, as its
    "gedcom" codec) and checks it against a byte-order mark. Without a
    usable declaration the BOM decides, and failing that `default_encoding`.
    """
    bom_codec = check_bom(io.BytesIO(raw))
    try:
        codec, _ = guess_codec(io.BytesIO(raw), errors="replace", require_char=True, warn=False)
    except CodecError as e:
        # No CHAR, an unknown one, or one contradicting the BOM
        logger.info("%s, decoding as %s", e, bom_codec or default_encoding)
        return bom_codec or default_encoding
    except OSError:
        # Header runs to the end of the input, or is not ASCII-compatible (UTF-16)
        return bom_codec or default_encoding
    return codec


def decode_gedcom(raw: bytes, default_encoding: str = "utf-8") -> str:
    """
    Decode GEDCOM bytes; undecodable bytes become replacement characters.

    The result is NFC-normalized, so ANSEL's combining diacritics come out
    as precomposed letters.
    """
    codec = detect_encoding(raw, default_encoding)
    text = raw.decode(codec, errors="replace")
    if text.startswith("\ufeff"):
        text = text[1:]
    return unicodedata.normalize("NFC", text)


class _Source:
    """Non-blank lines re-encoded as UTF-8 for GedcomReader, with their original line numbers."""

    def __init__(self, lines: Iterable[str]):
        chunks = [_PRELUDE]
        self.offsets: list[int] = []
        self.line_numbers: list[int] = []
        self.lines: list[str] = []
        position = len(_PRELUDE)
        for line_number, line in enumerate(lines, start=1):
            line = line.rstrip("\r\n")
            if line_number == 1:
                line = line.lstrip("\ufeff")
            if not line.strip():
                continue
            data = line.encode("utf-8") + b"\n"
            chunks.append(data)
            self.offsets.append(position)
            self.line_numbers.append(line_number)
            self.lines.append(line)
            position += len(data)
        self.data = b"".join(chunks)

    def locate(self, offset: int) -> tuple[int, str]:
        """Original line number and text of the line starting at `offset`."""
        index = bisect.bisect_right(self.offsets, offset) - 1
        return self.line_numbers[index], self.lines[index]

    def malformed(self, error: Exception) -> MalformedRecord:
        message = str(error)
        match = _LOCATION_RE.search(message)
        if match is None:
            return MalformedRecord(message, 0)
        # ged4py counts lines from the start of the stream, prelude included
        index = int(match.group(1)) - 2
        return MalformedRecord(message[: match.start()], self.line_numbers[index], self.lines[index])


def iter_records(lines: Iterable[str]) -> Iterator[Record]:
    """
    Lazily build level-0 records from GEDCOM lines.

    Each level-0 record is yielded once the next one starts (or the input
    ends). CONC/CONT lines are folded into their parent's value instead of
    becoming children; tags ged4py has no model for are kept as plain
    records. Blank lines are skipped. Raises MalformedRecord on the first
    syntax or nesting error.
    """
    source = _Source(lines)
    if not source.offsets:
        return

    root: Record | None = None
    # stack[n] is the most recent record at level n
    stack: list[Record] = []

    with GedcomReader(io.BytesIO(source.data), encoding="utf-8", errors="replace") as reader:
        glines = reader.GedcomLines(len(_PRELUDE))
        while True:
            try:
                gline = next(glines)
            except StopIteration:
                break
            except (ParserError, IntegrityError) as e:
                raise source.malformed(e) from e

            line_number, line = source.locate(gline.offset)
            value = gline.value.decode("utf-8", errors="replace") if gline.value else None
            record = Record(
                level=gline.level,
                tag=gline.tag.upper(),
                value=value,
                xref=gline.xref_id,
                line_number=line_number,
            )

            if record.level == 0:
                if root is not None:
                    yield root
                root = record
                stack = [record]
                continue

            if root is None:
                raise MalformedRecord("first record must start at level 0", line_number, line)
            if record.level > len(stack):
                raise MalformedRecord(
                    f"level {record.level} follows level {len(stack) - 1}", line_number, line
                )

            del stack[record.level:]
            parent = stack[-1]

            if record.tag in ("CONC", "CONT"):
                separator = "\n" if record.tag == "CONT" else ""
                parent.value = (parent.value or "") + separator + (record.value or "")
                continue

            parent.children.append(record)
            stack.append(record)

    if root is not None:
        yield root


def parse_records(text: str) -> Iterator[Record]:
    """Lazily parse GEDCOM text into level-0 records."""
    return iter_records(text.splitlines())


def read_records(path: Path | str, default_encoding: str = "utf-8") -> Iterator[Record]:
    """Read a GEDCOM file, honoring its declared encoding, and parse it lazily."""
    raw = Path(path).read_bytes()
    return parse_records(decode_gedcom(raw, default_encoding))
