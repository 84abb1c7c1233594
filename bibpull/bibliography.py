"""
Bibliography file parsing.

Reads BibTeX (via bibtexparser v1) and Hayagriva YAML (via PyYAML) into
plain entry dictionaries, and picks the identifier each entry should be
resolved from.
"""

from pathlib import Path
from typing import Dict, List, Optional
import logging

import bibtexparser
import yaml

from .errors import BibliographyError

logger = logging.getLogger(__name__)

BIBTEX_SUFFIXES = {'.bib', '.bibtex'}
HAYAGRIVA_SUFFIXES = {'.yml', '.yaml'}


def _bibtex_parser():
    """Build a BibTeX parser (pin to v1)."""
    if int(bibtexparser.__version__[0]) != 1:
        raise NotImplementedError(
            f"bibtexparser version {bibtexparser.__version__} is not supported. "
            "Please install bibtexparser v1: pip install 'bibtexparser>=1.2.0,<2.0'"
        )
    parser = bibtexparser.bparser.BibTexParser(common_strings=True)
    parser.ignore_nonstandard_types = False
    parser.homogenize_fields = False
    return parser


def parse_bibtex(text: str) -> List[Dict]:
    """Parse BibTeX source into entry dictionaries (keys lower-cased, plus ID/ENTRYTYPE).

    Raises:
        BibliographyError: If the text holds no entries
    """
    try:
        bib_db = bibtexparser.loads(text, _bibtex_parser())
    except Exception as e:
        raise BibliographyError(f"Invalid BibTeX: {e}") from e

    if not bib_db.entries:
        raise BibliographyError("No BibTeX entries found")

    return [{k.lower() if k not in ('ID', 'ENTRYTYPE') else k: v for k, v in entry.items()}
            for entry in bib_db.entries]


def parse_hayagriva(text: str) -> List[Dict]:
    """Parse Hayagriva YAML (a top-level mapping of key -> entry).

    Raises:
        BibliographyError: If the text is not a Hayagriva document
    """
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise BibliographyError(f"Invalid YAML: {e}") from e

    if not isinstance(data, dict) or not data:
        raise BibliographyError("Hayagriva file must be a non-empty mapping of entries")

    entries = []
    for key, body in data.items():
        if not isinstance(body, dict):
            raise BibliographyError(f"Entry '{key}' is not a mapping")
        entry = dict(body)
        entry['ID'] = str(key)
        entries.append(entry)
    return entries


def load_bibliography(path: Path) -> List[Dict]:
    """Load entries from a bibliography file, choosing the format by suffix.

    Files with an unknown suffix are tried as BibTeX first, then Hayagriva.

    Raises:
        BibliographyError: If the file cannot be read or parsed
    """
    path = Path(path)
    try:
        text = path.read_text(encoding='utf-8')
    except (OSError, UnicodeDecodeError) as e:
        raise BibliographyError(f"Cannot read {path}: {e}") from e

    suffix = path.suffix.lower()
    if suffix in BIBTEX_SUFFIXES:
        return parse_bibtex(text)
    if suffix in HAYAGRIVA_SUFFIXES:
        return parse_hayagriva(text)

    try:
        return parse_bibtex(text)
    except BibliographyError:
        logger.debug(f"{path} is not BibTeX, trying Hayagriva")
    return parse_hayagriva(text)


def _hayagriva_serials(entry: Dict) -> Dict:
    serials = entry.get('serial-number') or {}
    if isinstance(serials, dict):
        return {str(k).lower(): v for k, v in serials.items()}
    return {}


def _entry_url(entry: Dict) -> Optional[str]:
    url = entry.get('url')
    if isinstance(url, dict):
        url = url.get('value')
    return url


def entry_identifier(entry: Dict) -> Optional[str]:
    """Return the identifier an entry should be resolved from, or None.

    Preference: DOI, arXiv eprint, ISBN, URL. Works for both BibTeX and
    Hayagriva entries.
    """
    serials = _hayagriva_serials(entry)

    doi = entry.get('doi') or serials.get('doi')
    if doi:
        return str(doi).strip()

    eprint = entry.get('eprint')
    archive = str(entry.get('archiveprefix') or entry.get('eprinttype') or '').lower()
    if eprint and archive in ('arxiv', ''):
        return f"arXiv:{str(eprint).strip()}"
    if serials.get('arxiv'):
        return f"arXiv:{str(serials['arxiv']).strip()}"

    isbn = entry.get('isbn') or serials.get('isbn')
    if isbn:
        # Several ISBNs may be listed; the first is enough
        return str(isbn).replace(';', ',').split(',')[0].strip()

    url = _entry_url(entry)
    if url:
        return str(url).strip()

    return None
