"""
DOI translator.

Fetches BibTeX directly from DOI content negotiation (works for every
registration agency: Crossref, DataCite, mEDRA, ...) and normalizes it into
an Item.
"""

from typing import Dict, Optional, Tuple
from urllib.parse import quote
import logging
import re

from ..bibliography import parse_bibtex
from ..errors import BibliographyError, PermanentError
from ..inputs import Input
from ..item import Attachment, AttachmentKind, Author, Item, parse_year
from ..network import get
from .base import Translator

logger = logging.getLogger(__name__)

# Case-insensitive, based on Crossref guidance; found anywhere in the string
DOI_PATTERN = re.compile(r'\b(10\.\d{4,9})/([-._;()/:A-Z0-9]+)\b', re.IGNORECASE)

TEXT_PREFIXES = ('doi:', 'urn:doi:')
TRAILING_PUNCTUATION = '.,;:)]}"\''


def parse_doi(identifier: str) -> Optional[Tuple[str, str]]:
    """Find a DOI in an identifier string.

    Handles textual prefixes (doi:, urn:doi:), doi.org URLs, query strings,
    fragments and trailing punctuation from prose.

    Returns:
        (prefix, suffix) tuple, e.g. ("10.1000", "abc"), or None

    Examples:
        >>> parse_doi('doi: 10.1000/abc.')
        ('10.1000', 'abc')
        >>> parse_doi('https://doi.org/10.1007/s11192-024-05217-7?via=x')
        ('10.1007', 's11192-024-05217-7')
    """
    s = identifier.strip()

    lowered = s.lower()
    for prefix in TEXT_PREFIXES:
        if lowered.startswith(prefix):
            s = s[len(prefix):].lstrip()
            break

    for sep in ('?', '#'):
        if sep in s:
            s = s.split(sep, 1)[0]

    s = s.rstrip(TRAILING_PUNCTUATION)

    match = DOI_PATTERN.search(s)
    if not match:
        return None
    return match.group(1), match.group(2)


def normalize_doi(doi: str) -> str:
    """Lower-case bare DOI (DOIs are case-insensitive)."""
    parsed = parse_doi(doi)
    if parsed is None:
        return doi.strip().lower()
    return f"{parsed[0]}/{parsed[1]}".lower()


def doi_url(prefix: str, suffix: str) -> str:
    """Resolver URL with the suffix percent-encoded per path segment."""
    return f"https://doi.org/{prefix}/{quote(suffix, safe='/;:()')}"


def strip_braces(value: Optional[str]) -> Optional[str]:
    """Remove BibTeX grouping braces and collapse whitespace."""
    if value is None:
        return None
    value = re.sub(r'(?<!\\)[{}]', '', value)
    value = value.replace('\\{', '{').replace('\\}', '}').replace('\\&', '&')
    value = " ".join(value.split())
    return value or None


def split_bibtex_authors(value: Optional[str]):
    """Split a BibTeX name list ("A and B and C") into Authors."""
    if not value:
        return ()
    authors = []
    for name in re.split(r'\s+and\s+', value.strip()):
        name = name.strip()
        if not name:
            continue
        if name.startswith('{') and name.endswith('}') and ',' not in name:
            # {Institutional Author} stays literal
            authors.append(Author(literal=strip_braces(name)))
        else:
            authors.append(Author.from_string(strip_braces(name) or ''))
    return tuple(authors)


BIBTEX_TYPE_MAP = {
    'article': 'article',
    'inproceedings': 'inproceedings',
    'conference': 'inproceedings',
    'incollection': 'incollection',
    'inbook': 'incollection',
    'book': 'book',
    'phdthesis': 'thesis',
    'mastersthesis': 'thesis',
    'techreport': 'report',
}


def item_from_bibtex(entry: Dict, source: str) -> Item:
    """Convert a parsed BibTeX entry into an Item.

    Args:
        entry: Entry dictionary from bibtexparser (lower-case field names)
        source: Translator name recorded on the Item
    """
    identifiers = {}
    if entry.get('doi'):
        identifiers['doi'] = normalize_doi(entry['doi'])
    if entry.get('isbn'):
        identifiers['isbn'] = re.sub(r'[-\s]', '', entry['isbn'].split(',')[0])
    if entry.get('url'):
        identifiers['url'] = entry['url'].strip()

    attachments = []
    if identifiers.get('doi'):
        attachments.append(Attachment(f"https://doi.org/{identifiers['doi']}", AttachmentKind.HTML))
    url = identifiers.get('url')
    if url and url.lower().endswith('.pdf'):
        attachments.append(Attachment(url, AttachmentKind.PDF))

    container = entry.get('journal') or entry.get('booktitle') or entry.get('series')
    return Item(
        title=strip_braces(entry.get('title')),
        authors=split_bibtex_authors(entry.get('author')),
        year=parse_year(entry.get('year') or entry.get('date')),
        container=strip_braces(container),
        identifiers=identifiers,
        attachments=tuple(attachments),
        entry_type=BIBTEX_TYPE_MAP.get(entry.get('ENTRYTYPE', '').lower(), 'misc'),
        publisher=strip_braces(entry.get('publisher')),
        volume=entry.get('volume'),
        issue=entry.get('number'),
        pages=entry.get('pages', '').replace('--', '-') or None,
        language=entry.get('language'),
        abstract=strip_braces(entry.get('abstract')),
        source=source,
    )


class DOITranslator(Translator):
    """Fetch BibTeX from the DOI resolver via content negotiation."""

    name = "doi"
    base_url = "https://doi.org"

    def can_handle(self, input: Input) -> bool:
        return parse_doi(input.value) is not None

    def fetch(self, input: Input) -> Item:
        parsed = parse_doi(input.value)
        if parsed is None:
            raise PermanentError(f"Invalid DOI format: {input.value}")

        prefix, suffix = parsed
        doi = f"{prefix}/{suffix}"
        url = doi_url(prefix, suffix)
        logger.debug(f"Fetching BibTeX for {doi} from {url}")

        response = get(
            self.session, url, what=f"DOI {doi}", timeout=self.timeout,
            headers={'Accept': 'application/x-bibtex; charset=utf-8'},
        )
        response.encoding = response.encoding or 'utf-8'

        try:
            entries = parse_bibtex(response.text)
        except BibliographyError as e:
            raise PermanentError(f"Resolver returned no usable BibTeX for {doi}: {e}") from e

        entry = entries[0]
        entry.setdefault('doi', doi)
        return item_from_bibtex(entry, source=self.name)


__all__ = [
    'DOITranslator',
    'parse_doi',
    'normalize_doi',
    'item_from_bibtex',
]
