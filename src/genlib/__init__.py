"""GEDCOM import into a person/relationship graph, with family tree views."""

__version__ = "0.1.0"
