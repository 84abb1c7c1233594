"""
Canonical metadata records.

An Item is produced once per successfully fetched input and is immutable
afterwards. Identifiers are normalized (lower-case DOI, bare arXiv ID without
version, ISBN without separators) so that storage keys are stable.
"""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Dict, Mapping, Optional, Tuple
import re


class AttachmentKind(Enum):
    """Kinds of downloadable resources."""
    PDF = "pdf"
    HTML = "html"

    @property
    def extension(self) -> str:
        return self.value


@dataclass(frozen=True)
class Attachment:
    """A downloadable resource associated with an Item."""

    url: str
    kind: AttachmentKind

    def __str__(self):
        return f"{self.kind.value}: {self.url}"


@dataclass(frozen=True)
class Author:
    """A creator name, either split into family/given or kept literal."""

    family: Optional[str] = None
    given: Optional[str] = None
    literal: Optional[str] = None

    @classmethod
    def from_string(cls, name: str) -> "Author":
        """Parse "Family, Given" or "Given Family"; anything else stays literal."""
        name = " ".join(name.split())
        if not name:
            return cls(literal="")
        if "," in name:
            family, given = [part.strip() for part in name.split(",", 1)]
            return cls(family=family or None, given=given or None)
        parts = name.split(" ")
        if len(parts) == 1:
            return cls(family=parts[0])
        return cls(family=parts[-1], given=" ".join(parts[:-1]))

    def display(self) -> str:
        if self.literal:
            return self.literal
        if self.given and self.family:
            return f"{self.given} {self.family}"
        return self.family or self.given or ""

    def to_dict(self) -> Dict[str, str]:
        return {k: v for k, v in (("family", self.family), ("given", self.given),
                                  ("literal", self.literal)) if v}


# Preference order for Item.key
KEY_SCHEMES = ("doi", "arxiv", "isbn")


def sanitize_filename(identifier: str) -> str:
    """
    Convert an identifier to a safe file stem.

    Examples:
        >>> sanitize_filename('10.1007/s10623-024-01403-z')
        '10.1007_s10623-024-01403-z'

        >>> sanitize_filename('10.1234/abc:def/xyz')
        '10.1234_abc_def_xyz'
    """
    safe = identifier.replace('/', '_').replace(':', '_')
    return ''.join(c for c in safe if c.isalnum() or c in '._-')


@dataclass(frozen=True)
class Item:
    """Canonical bibliographic metadata."""

    title: Optional[str] = None
    authors: Tuple[Author, ...] = ()
    year: Optional[int] = None
    container: Optional[str] = None
    identifiers: Mapping[str, str] = field(default_factory=dict)
    attachments: Tuple[Attachment, ...] = ()
    entry_type: str = "misc"
    publisher: Optional[str] = None
    volume: Optional[str] = None
    issue: Optional[str] = None
    pages: Optional[str] = None
    language: Optional[str] = None
    abstract: Optional[str] = None
    source: Optional[str] = None

    def __post_init__(self):
        # Freeze mutable containers handed in by translators
        object.__setattr__(self, "identifiers", MappingProxyType(dict(self.identifiers)))
        object.__setattr__(self, "authors", tuple(self.authors))
        object.__setattr__(self, "attachments", tuple(self.attachments))

    @property
    def doi(self) -> Optional[str]:
        return self.identifiers.get("doi")

    @property
    def key(self) -> str:
        """Filesystem-safe identity used to name pulled attachments."""
        for scheme in KEY_SCHEMES:
            value = self.identifiers.get(scheme)
            if value:
                return sanitize_filename(value)
        if self.title:
            slug = re.sub(r'[^a-z0-9]+', '-', self.title.lower()).strip('-')
            if slug:
                return slug[:80]
        return "untitled"

    def summary(self) -> str:
        """One-line human readable description."""
        names = [a.display() for a in self.authors]
        if len(names) > 2:
            who = f"{names[0]} et al"
        else:
            who = " and ".join(names)
        parts = [self.title or "(untitled)"]
        if who:
            parts.append(who)
        if self.container:
            parts.append(self.container)
        if self.year:
            parts.append(str(self.year))
        return ". ".join(parts)

    def to_dict(self) -> Dict:
        data = {
            "title": self.title,
            "authors": [a.to_dict() for a in self.authors],
            "year": self.year,
            "container": self.container,
            "identifiers": dict(self.identifiers),
            "attachments": [{"url": a.url, "kind": a.kind.value} for a in self.attachments],
            "type": self.entry_type,
            "publisher": self.publisher,
            "volume": self.volume,
            "issue": self.issue,
            "pages": self.pages,
            "language": self.language,
            "abstract": self.abstract,
            "source": self.source,
        }
        return {k: v for k, v in data.items() if v not in (None, [], {})}


def parse_year(value: Optional[str]) -> Optional[int]:
    """Pull a four-digit year out of a date-ish string."""
    if value is None:
        return None
    match = re.search(r'\b(1[5-9]\d{2}|2\d{3})\b', str(value))
    return int(match.group(1)) if match else None
