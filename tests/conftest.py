"""Shared fixtures for the genlib test suite."""

import matplotlib

matplotlib.use("Agg")

import pytest

from genlib.database import create_database, create_person, generate_unique_directory_name
from genlib.dates import interpret_date
from genlib.models import Person, generate_directory_name


# Two families over three generations:
#   Johan (I1) + Maria (I2) -> Erik (I3), Anna (I4)
#   Erik (I3) + Karin (I5) -> Lars (I6)
SAMPLE_GEDCOM = """0 HEAD
1 SOUR TESTAPP
1 GEDC
2 VERS 5.5.1
1 CHAR UTF-8
0 @I1@ INDI
1 NAME Johan /Andersson/
1 SEX M
1 BIRT
2 DATE 12 MAR 1820
2 PLAC Uppsala
1 DEAT
2 DATE ABT 1890
1 FAMS @F1@
0 @I2@ INDI
1 NAME Maria /Larsdotter/
1 SEX F
1 BIRT
2 DATE 1825
1 FAMS @F1@
0 @I3@ INDI
1 NAME Erik /Andersson/
1 SEX M
1 BIRT
2 DATE BET 1850 AND 1855
1 FAMC @F1@
1 FAMS @F2@
1 NOTE Farmer in
2 CONC  Uppland
2 CONT Moved 1880
0 @I4@ INDI
1 NAME Anna /Andersson/
1 SEX F
1 BIRT
2 DATE 5 JUN 1852
1 FAMC @F1@
0 @I5@ INDI
1 NAME Karin /Persdotter/
1 SEX F
1 FAMS @F2@
0 @I6@ INDI
1 NAME Lars /Andersson/
1 SEX M
1 BIRT
2 DATE 1880
1 FAMC @F2@
0 @F1@ FAM
1 HUSB @I1@
1 WIFE @I2@
1 CHIL @I3@
1 CHIL @I4@
1 MARR
2 DATE 1848
2 PLAC Uppsala
0 @F2@ FAM
1 HUSB @I3@
1 WIFE @I5@
1 CHIL @I6@
0 TRLR
"""

SPOUSES_GEDCOM = """0 HEAD
1 SOUR TESTAPP
0 @I1@ INDI
1 NAME John /Smith/
1 SEX M
0 @I2@ INDI
1 NAME Jane /Doe/
1 SEX F
0 @F1@ FAM
1 HUSB @I1@
1 WIFE @I2@
0 TRLR
"""


@pytest.fixture
def conn():
    """Fresh in-memory database."""
    connection = create_database(":memory:")
    yield connection
    connection.close()


@pytest.fixture
def sample_gedcom():
    return SAMPLE_GEDCOM


@pytest.fixture
def spouses_gedcom():
    return SPOUSES_GEDCOM


@pytest.fixture
def sample_gedcom_path(tmp_path):
    """SAMPLE_GEDCOM written to a file."""
    path = tmp_path / "sample.ged"
    path.write_text(SAMPLE_GEDCOM, encoding="utf-8")
    return path


@pytest.fixture
def add_person(conn):
    """Factory storing a person and returning its id."""

    def _add(given_name=None, surname=None, sex=None, birth=None, death=None):
        person = Person(
            given_name=given_name,
            surname=surname,
            sex=sex,
            birth_date=interpret_date(birth) if birth else None,
            death_date=interpret_date(death) if death else None,
        )
        base_name = generate_directory_name(given_name, surname)
        person.directory_name = generate_unique_directory_name(conn, base_name)
        with conn:
            return create_person(conn, person)

    return _add
