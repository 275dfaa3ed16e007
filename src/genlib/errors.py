"""Exception types raised by genlib."""


class GenlibError(Exception):
    """Base class for all genlib errors."""


class MalformedRecord(GenlibError):
    """A GEDCOM line could not be parsed into the record hierarchy."""

    def __init__(self, message: str, line_number: int, line: str | None = None):
        self.message = message
        self.line_number = line_number
        self.line = line
        super().__init__(f"line {line_number}: {message}")


class DuplicateRelationship(GenlibError):
    """The unordered person pair already has a stored relationship."""

    def __init__(self, person_a_id: int, person_b_id: int, existing_id: int | None = None):
        self.person_a_id = person_a_id
        self.person_b_id = person_b_id
        self.existing_id = existing_id
        super().__init__(
            f"Relationship between persons {person_a_id} and {person_b_id} already exists"
        )


class SelfRelationship(GenlibError, ValueError):
    """A relationship was requested between a person and themselves."""

    def __init__(self, person_id: int):
        self.person_id = person_id
        super().__init__(f"Person {person_id} cannot be related to themselves")


class PersonNotFound(GenlibError, LookupError):
    """No stored person has the requested id."""

    def __init__(self, person_id: int):
        self.person_id = person_id
        super().__init__(f"Person ID {person_id} not found")


class ConfigError(GenlibError, ValueError):
    """A configuration value is outside its allowed range."""
