"""
Input models for poster assembly.
"""

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from pydantic import BaseModel

ImageSource = Union[str, Path, bytes]

TEAM_TOKEN = re.compile(r"Team: [^,]+")


class PersonInfo(BaseModel):
    """A member as seen by the poster engine."""
    name: str = ""
    designation: str = ""  # Free text, or "Wealth Manager" / "Health Insurance Advisor" / "Partner"
    phone: str = ""
    team_name: Optional[str] = None
    photo: Optional[Union[str, Path, bytes]] = None  # Local path or encoded bytes


@dataclass
class PosterRequest:
    """One compositing job."""
    template: ImageSource
    person: PersonInfo
    logo: ImageSource
    output_path: Optional[Union[str, Path]] = None


@dataclass(frozen=True)
class Designation:
    """Role label that gets normalized and branded."""
    text: str


@dataclass(frozen=True)
class Team:
    """Team label shown exactly as entered."""
    label: str


DisplayRole = Union[Designation, Team]


def resolve_display_role(person: PersonInfo) -> DisplayRole:
    """
    Decide what the second footer line shows.

    An explicit team name wins. Otherwise a designation holding one or more
    comma-joined "Team: X" tokens resolves to the last token.
    """
    team_name = (person.team_name or "").strip()
    if team_name:
        return Team(team_name)

    designation = person.designation or ""
    tokens = TEAM_TOKEN.findall(designation)
    if tokens:
        return Team(tokens[-1].strip())

    return Designation(designation)
