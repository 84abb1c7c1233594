"""
Input identification.

Turns command-line arguments into Inputs. A bare identifier becomes one
Input; an existing bibliography file is expanded into one Input per entry.
A file that cannot be parsed becomes a single FILE Input, and an entry
without a DOI, arXiv ID, ISBN or URL becomes an UNIDENTIFIED Input carrying
its citation key. No translator claims either kind.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterable, List, Optional
import logging

from .bibliography import entry_identifier, load_bibliography
from .errors import BibliographyError

logger = logging.getLogger(__name__)


class InputKind(Enum):
    """Where an Input came from."""
    IDENTIFIER = "identifier"
    ENTRY = "entry"
    UNIDENTIFIED = "unidentified"
    FILE = "file"


@dataclass(frozen=True)
class Input:
    """A single thing to resolve.

    Identity is the original string. Two Inputs are distinct even when
    they resolve to the same upstream record.
    """

    value: str
    kind: InputKind = InputKind.IDENTIFIER
    origin: Optional[str] = None
    note: Optional[str] = None

    @property
    def label(self) -> str:
        """How the Input is shown in reports."""
        if self.origin and self.note is None:
            return f"{self.origin} ({self.value})"
        return self.origin or self.value

    def __str__(self):
        return self.label


def _looks_like_file(arg: str) -> Optional[Path]:
    path = Path(arg).expanduser()
    try:
        if path.is_file():
            return path
    except OSError:
        # Identifiers can be too long or contain characters the OS refuses
        return None
    return None


def expand_file(path: Path, arg: Optional[str] = None) -> List[Input]:
    """Expand a bibliography file into Inputs, one per entry."""
    arg = arg if arg is not None else str(path)
    try:
        entries = load_bibliography(path)
    except BibliographyError as e:
        logger.warning(f"Could not parse bibliography {arg}: {e}")
        return [Input(value=arg, kind=InputKind.FILE, note=str(e))]

    inputs = []
    for entry in entries:
        key = entry.get('ID', '?')
        origin = f"{path.name}:{key}"
        identifier = entry_identifier(entry)
        if identifier is None:
            logger.debug(f"{origin} has no DOI, arXiv ID, ISBN or URL")
            inputs.append(Input(value=key, kind=InputKind.UNIDENTIFIED, origin=origin,
                                note="entry has no DOI, arXiv ID, ISBN or URL"))
        else:
            inputs.append(Input(value=identifier, kind=InputKind.ENTRY, origin=origin))

    logger.info(f"Expanded {arg} into {len(inputs)} entries")
    return inputs


def resolve_argument(arg: str) -> List[Input]:
    """Normalize one CLI argument into one or more Inputs.

    Args:
        arg: Identifier (DOI, arXiv ID, ISBN, URL) or bibliography file path

    Returns:
        List of Inputs (a single one for identifiers)
    """
    path = _looks_like_file(arg)
    if path is not None:
        return expand_file(path, arg)
    return [Input(value=arg.strip(), kind=InputKind.IDENTIFIER)]


def resolve_arguments(args: Iterable[str]) -> List[Input]:
    """Resolve all CLI arguments, preserving their order."""
    inputs = []
    for arg in args:
        inputs.extend(resolve_argument(arg))
    return inputs
