"""Tests for GEDCOM record parsing and encoding detection."""

import codecs

import pytest

from genlib.errors import MalformedRecord
from genlib.parsing import decode_gedcom, detect_encoding, parse_records, read_records


def first_record(text):
    return next(parse_records(text))


# ============================================================================
# Single lines
# ============================================================================

class TestLines:
    """Tests for splitting lines into level, xref, tag and value."""

    def test_record_with_xref(self):
        record = first_record("0 @I1@ INDI\n")
        assert (record.level, record.xref, record.tag, record.value) == (0, "@I1@", "INDI", None)

    def test_value_keeps_inner_spaces(self):
        record = first_record("0 @I1@ INDI\n1 NAME Johan  /Andersson/\n").sub_tag("NAME")
        assert record.value == "Johan  /Andersson/"
        assert record.line_number == 2

    def test_tag_uppercased(self):
        assert first_record("0 @I1@ INDI\n1 birt\n").children[0].tag == "BIRT"

    @pytest.mark.parametrize("line", ["NAME John", "x 0 HEAD", "1", "@I1@ INDI"])
    def test_malformed(self, line):
        text = "0 HEAD\n" + "1 SOUR X\n" * 10 + line + "\n"
        with pytest.raises(MalformedRecord) as exc_info:
            list(parse_records(text))
        assert exc_info.value.line_number == 12
        assert exc_info.value.line == line
        assert "line 12" in str(exc_info.value)


# ============================================================================
# Record hierarchy
# ============================================================================

class TestRecordTree:
    """Tests for building level-0 records from lines."""

    def test_top_level_records(self, sample_gedcom):
        records = list(parse_records(sample_gedcom))
        tags = [r.tag for r in records]
        assert tags == ["HEAD", "INDI", "INDI", "INDI", "INDI", "INDI", "INDI", "FAM", "FAM", "TRLR"]

    def test_children_nest_by_level(self):
        records = list(parse_records("0 @I1@ INDI\n1 BIRT\n2 DATE 1850\n2 PLAC Lund\n1 SEX M\n"))
        indi = records[0]
        assert [c.tag for c in indi.children] == ["BIRT", "SEX"]
        birth = indi.sub_tag("BIRT")
        assert birth.sub_value("DATE") == "1850"
        assert birth.sub_value("PLAC") == "Lund"

    def test_unknown_tags_preserved(self):
        records = list(parse_records("0 @I1@ INDI\n1 _CUSTOM something\n2 _DEEP x\n"))
        custom = records[0].sub_tag("_CUSTOM")
        assert custom.value == "something"
        assert custom.sub_value("_DEEP") == "x"

    def test_conc_and_cont_folded(self):
        text = "0 @N1@ NOTE\n1 TEXT first\n2 CONC  part\n2 CONT second line\n"
        note = list(parse_records(text))[0].sub_tag("TEXT")
        assert note.value == "first part\nsecond line"
        assert note.children == []

    def test_cont_without_value_adds_empty_line(self):
        text = "0 @I1@ INDI\n1 NOTE a\n2 CONT\n2 CONT b\n"
        assert list(parse_records(text))[0].sub_value("NOTE") == "a\n\nb"

    def test_level_jump_is_malformed(self):
        text = "0 HEAD\n1 SOUR X\n3 VERS 1\n"
        with pytest.raises(MalformedRecord) as exc_info:
            list(parse_records(text))
        assert exc_info.value.line_number == 3

    def test_first_record_must_be_level_zero(self):
        with pytest.raises(MalformedRecord) as exc_info:
            list(parse_records("1 NAME John\n0 HEAD\n"))
        assert exc_info.value.line_number == 1

    def test_blank_lines_and_crlf(self):
        records = list(parse_records("0 HEAD\r\n\r\n1 SOUR X\r\n0 TRLR\r\n"))
        assert [r.tag for r in records] == ["HEAD", "TRLR"]
        assert records[0].sub_value("SOUR") == "X"

    def test_line_numbers_count_blank_lines(self):
        records = list(parse_records("0 HEAD\n\n0 @I1@ INDI\n"))
        assert records[1].line_number == 3

    def test_lazy_until_error(self):
        """Test that records before a malformed line are produced first."""
        records = parse_records("0 HEAD\n0 @I1@ INDI\n1 NAME A\nbroken\n")
        assert next(records).tag == "HEAD"
        with pytest.raises(MalformedRecord):
            list(records)

    def test_leading_bom_stripped(self):
        records = list(parse_records("\ufeff0 HEAD\n0 TRLR\n"))
        assert records[0].tag == "HEAD"


# ============================================================================
# Encodings
# ============================================================================

class TestEncoding:
    """Tests for picking the codec of a GEDCOM file."""

    def test_utf8_bom(self):
        raw = codecs.BOM_UTF8 + "0 HEAD\n1 CHAR UTF-8\n0 @I1@ INDI\n1 NAME Åsa\n".encode("utf-8")
        assert detect_encoding(raw) == "utf-8"
        assert decode_gedcom(raw).startswith("0 HEAD\n")

    def test_utf16_bom(self):
        raw = "0 HEAD\n1 CHAR UNICODE\n0 TRLR\n".encode("utf-16")
        assert detect_encoding(raw) in ("utf-16-le", "utf-16-be")
        assert decode_gedcom(raw).startswith("0 HEAD")

    @pytest.mark.parametrize(
        "charset, codec",
        [("UTF-8", "utf-8"), ("ANSI", "cp1252"), ("IBMPC", "cp437"), ("ASCII", "ascii"), ("LATIN1", "iso8859-1")],
    )
    def test_declared_charset(self, charset, codec):
        raw = f"0 HEAD\n1 SOUR X\n1 CHAR {charset}\n0 TRLR\n".encode("ascii")
        assert detect_encoding(raw) == codec

    def test_ansel_declared(self):
        assert detect_encoding(b"0 HEAD\n1 CHAR ANSEL\n0 TRLR\n") == "gedcom"

    def test_ansel_combining_accent(self):
        # ANSEL puts the combining acute (0xE2) before its base letter
        raw = b"0 HEAD\n1 CHAR ANSEL\n0 @I1@ INDI\n1 NAME Ren\xe2e /Dupont/\n0 TRLR\n"
        assert "1 NAME René /Dupont/" in decode_gedcom(raw)

    def test_undeclared_uses_default(self):
        assert detect_encoding(b"0 HEAD\n0 TRLR\n") == "utf-8"
        assert detect_encoding(b"0 HEAD\n0 TRLR\n", default_encoding="latin-1") == "latin-1"

    def test_unknown_charset_falls_back(self):
        assert detect_encoding(b"0 HEAD\n1 CHAR KLINGON\n0 TRLR\n") == "utf-8"

    def test_header_only_file(self):
        assert detect_encoding(b"0 HEAD\n1 SOUR X\n") == "utf-8"
        assert detect_encoding(b"") == "utf-8"

    def test_char_outside_header_ignored(self):
        raw = b"0 HEAD\n1 SOUR X\n0 @I1@ INDI\n1 CHAR ANSI\n"
        assert detect_encoding(raw) == "utf-8"

    def test_cp1252_file_decoded(self):
        raw = "0 HEAD\n1 CHAR ANSI\n0 @I1@ INDI\n1 NAME Åsa /Öberg/\n".encode("cp1252")
        assert "Åsa /Öberg/" in decode_gedcom(raw)

    def test_undecodable_bytes_replaced(self):
        raw = b"0 HEAD\n1 CHAR UTF-8\n0 @I1@ INDI\n1 NAME Bad \xff Byte\n"
        text = decode_gedcom(raw)
        assert "\ufffd" in text

    def test_read_records_from_file(self, tmp_path):
        path = tmp_path / "latin.ged"
        path.write_bytes("0 HEAD\n1 CHAR ANSI\n0 @I1@ INDI\n1 NAME José /Núñez/\n".encode("cp1252"))
        records = list(read_records(path))
        assert records[0].sub_value("CHAR") == "ANSI"
        assert records[1].sub_value("NAME") == "José /Núñez/"

    def test_read_records_ansel_file(self, tmp_path):
        path = tmp_path / "ansel.ged"
        path.write_bytes(b"0 HEAD\n1 CHAR ANSEL\n0 @I1@ INDI\n1 NAME Ren\xe2e /Dupont/\n0 TRLR\n")
        records = list(read_records(path))
        assert records[1].sub_value("NAME") == "René /Dupont/"
