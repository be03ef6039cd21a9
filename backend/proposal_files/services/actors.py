"""Authenticated actor and the closed set of roles."""
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class Role(str, Enum):
    BDM = "bdm"
    ESTIMATOR = "estimator"
    COO = "coo"
    DIRECTOR = "director"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["Role"]:
        """Return the role for a raw string, or None when it is not one of ours."""
        if not value:
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


@dataclass(frozen=True)
class Actor:
    uid: str
    role: Role
    name: str = ""
