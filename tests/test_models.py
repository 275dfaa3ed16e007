"""Tests for the person and relationship data classes."""

import pytest

from genlib.config import DirNameFormat
from genlib.dates import interpret_date
from genlib.errors import ConfigError, SelfRelationship
from genlib.models import (
    Kinship,
    ParentSide,
    Person,
    Relationship,
    RelationshipCategory,
    generate_directory_name,
    slugify,
)


class TestRelationship:
    """Tests for canonical ordering and the parent direction."""

    @pytest.mark.parametrize("a, b", [(3, 7), (7, 3)])
    def test_between_orders_pair(self, a, b):
        rel = Relationship.between(a, b, RelationshipCategory.SPOUSE)
        assert rel.pair == (3, 7)
        assert rel.parent_side is None

    def test_parent_side_independent_of_order(self):
        parent_high = Relationship.between(9, 2, RelationshipCategory.PARENT_CHILD, parent_id=9)
        assert parent_high.pair == (2, 9)
        assert parent_high.parent_side is ParentSide.HIGH
        assert (parent_high.parent_id, parent_high.child_id) == (9, 2)

        parent_low = Relationship.between(9, 2, RelationshipCategory.PARENT_CHILD, parent_id=2)
        assert parent_low.parent_side is ParentSide.LOW
        assert (parent_low.parent_id, parent_low.child_id) == (2, 9)

    def test_self_relationship(self):
        with pytest.raises(SelfRelationship):
            Relationship.between(4, 4, RelationshipCategory.SIBLING)

    def test_parent_id_required_and_checked(self):
        with pytest.raises(ValueError):
            Relationship.between(1, 2, RelationshipCategory.PARENT_CHILD)
        with pytest.raises(ValueError):
            Relationship.between(1, 2, RelationshipCategory.PARENT_CHILD, parent_id=5)
        with pytest.raises(ValueError):
            Relationship.between(1, 2, RelationshipCategory.SPOUSE, parent_id=1)

    def test_direct_construction_rejects_wrong_order(self):
        with pytest.raises(ValueError):
            Relationship(5, 2, RelationshipCategory.SPOUSE)

    def test_other_and_role_of(self):
        rel = Relationship.between(1, 2, RelationshipCategory.PARENT_CHILD, parent_id=1)
        assert rel.other(1) == 2
        assert rel.other(2) == 1
        assert rel.role_of(1) is Kinship.CHILD
        assert rel.role_of(2) is Kinship.PARENT
        assert Relationship.between(1, 2, "spouse").role_of(2) is Kinship.SPOUSE
        with pytest.raises(ValueError):
            rel.other(3)

    def test_hashable_and_equal_ignoring_marriage(self):
        a = Relationship.between(1, 2, RelationshipCategory.SPOUSE, id=10)
        b = Relationship.between(2, 1, RelationshipCategory.SPOUSE, id=10, marriage_place="Lund")
        assert a == b
        assert len({a, b}) == 1


class TestPerson:
    def test_full_name(self):
        assert Person(given_name="Anna", surname="Berg").full_name() == "Anna Berg"
        assert Person(surname="Berg").full_name() == "Berg"
        assert Person().full_name() == "Unknown"

    def test_is_alive(self):
        assert Person().is_alive
        assert not Person(death_date=interpret_date("1900")).is_alive


class TestDirectoryNames:
    """Tests for deriving directory names from names and dates."""

    def test_slugify(self):
        assert slugify("Åsa-Lena  Öberg") == "asa_lena_oberg"
        assert slugify("  --  ") == ""

    def test_firstname_first(self):
        assert generate_directory_name("Johan", "Andersson") == "johan_andersson"

    def test_surname_first(self):
        name = generate_directory_name("Johan", "Andersson", fmt=DirNameFormat.SURNAME_FIRST)
        assert name == "andersson_johan"

    def test_birth_date_appended(self):
        birth = interpret_date("12 MAR 1820")
        assert generate_directory_name("Johan", "Andersson", birth) == "johan_andersson_1820_03_12"

    def test_date_first(self):
        birth = interpret_date("MAR 1820")
        name = generate_directory_name("Johan", "Andersson", birth, fmt="date_first")
        assert name == "1820_03_johan_andersson"

    def test_unknown_date_ignored(self):
        assert generate_directory_name("Johan", None, interpret_date("spring")) == "johan"

    def test_empty_name(self):
        assert generate_directory_name(None, None) == "unknown"

    def test_bad_format(self):
        with pytest.raises(ConfigError):
            generate_directory_name("a", "b", fmt="middle_first")
