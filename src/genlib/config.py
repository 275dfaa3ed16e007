"""Settings for importing and for building family trees."""

from dataclasses import dataclass
from enum import Enum

from .errors import ConfigError


MIN_GENERATIONS = 1
MAX_GENERATIONS = 5


class DirNameFormat(str, Enum):
    """Word order used when deriving a person's directory name."""

    FIRSTNAME_FIRST = "firstname_first"
    SURNAME_FIRST = "surname_first"
    DATE_FIRST = "date_first"

    @classmethod
    def parse(cls, value: "str | DirNameFormat") -> "DirNameFormat":
        try:
            return cls(value)
        except ValueError:
            choices = ", ".join(f.value for f in cls)
            raise ConfigError(f"Unknown directory name format {value!r} (expected one of {choices})")


@dataclass
class ImportConfig:
    dir_name_format: DirNameFormat = DirNameFormat.FIRSTNAME_FIRST
    # Append the birth date (when known) to generated directory names
    include_birth_date: bool = False
    # Also store sibling relationships between the children of each family record
    link_siblings: bool = False
    # Codec used when the file declares no encoding or one we can't decode
    default_encoding: str = "utf-8"

    def __post_init__(self):
        self.dir_name_format = DirNameFormat.parse(self.dir_name_format)


@dataclass
class TreeConfig:
    max_generations: int = 3
    node_width: float = 150.0
    node_height: float = 80.0
    h_spacing: float = 50.0
    v_spacing: float = 100.0

    def __post_init__(self):
        check_generations(self.max_generations)


def check_generations(max_generations: int) -> int:
    """Return max_generations, or raise ConfigError if it is outside 1-5."""
    if not MIN_GENERATIONS <= max_generations <= MAX_GENERATIONS:
        raise ConfigError(
            f"max_generations must be between {MIN_GENERATIONS} and {MAX_GENERATIONS}, "
            f"got {max_generations}"
        )
    return max_generations
