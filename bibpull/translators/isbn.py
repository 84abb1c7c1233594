"""
ISBN translator.

Looks books up in the Crossref works API by ISBN and normalizes the best
matching record into an Item.
"""

from typing import Dict, List, Optional
import html
import logging
import re

import requests

from ..errors import PermanentError
from ..inputs import Input
from ..item import Attachment, AttachmentKind, Author, Item
from ..network import get
from .base import Translator
from .doi import normalize_doi

logger = logging.getLogger(__name__)

CROSSREF_WORKS = "https://api.crossref.org/works"

# Crossref work type -> Item entry type
CROSSREF_TYPE_MAP = {
    'book': 'book',
    'monograph': 'book',
    'edited-book': 'book',
    'reference-book': 'book',
    'book-chapter': 'incollection',
    'journal-article': 'article',
    'proceedings-article': 'inproceedings',
    'dissertation': 'thesis',
    'report': 'report',
}

BOOK_TYPES = {'book', 'monograph', 'edited-book', 'reference-book'}


def _isbn10_valid(digits: str) -> bool:
    total = 0
    for i, ch in enumerate(digits):
        if ch in 'Xx':
            if i != 9:
                return False
            value = 10
        else:
            value = int(ch)
        total += (10 - i) * value
    return total % 11 == 0


def _isbn13_valid(digits: str) -> bool:
    total = sum(int(ch) * (1 if i % 2 == 0 else 3) for i, ch in enumerate(digits))
    return total % 10 == 0


def normalize_isbn(identifier: str) -> Optional[str]:
    """
    Return the bare ISBN-10/13 if the checksum is valid, else None.

    Examples:
        >>> normalize_isbn('ISBN 978-0-262-03384-8')
        '9780262033848'
        >>> normalize_isbn('0-262-03384-4')
        '0262033844'
    """
    s = identifier.strip()
    s = re.sub(r'^(urn:)?isbn(-1[03])?:?\s*', '', s, flags=re.IGNORECASE)
    s = re.sub(r'[-\s]', '', s)

    if re.fullmatch(r'(978|979)\d{10}', s):
        return s if _isbn13_valid(s) else None
    if re.fullmatch(r'\d{9}[\dXx]', s):
        return s.upper() if _isbn10_valid(s) else None
    return None


def _join(value) -> Optional[str]:
    if isinstance(value, list):
        value = ": ".join(v for v in value if v)
    return html.unescape(value) if value else None


def _crossref_authors(people: Optional[List[Dict]]):
    authors = []
    for person in people or ():
        family, given = person.get('family'), person.get('given')
        if family or given:
            authors.append(Author(family=family, given=given))
        elif person.get('name'):
            authors.append(Author(literal=person['name']))
    return tuple(authors)


def _crossref_year(work: Dict) -> Optional[int]:
    for key in ('published', 'published-print', 'published-online', 'issued'):
        parts = (work.get(key) or {}).get('date-parts') or [[]]
        if parts and parts[0] and parts[0][0]:
            return int(parts[0][0])
    return None


def item_from_crossref(work: Dict, isbn: str, source: str = "isbn") -> Item:
    """Convert a Crossref work record into an Item."""
    work_type = work.get('type', '')
    identifiers = {'isbn': isbn}
    if work.get('DOI'):
        identifiers['doi'] = normalize_doi(work['DOI'])
    if work.get('URL'):
        identifiers['url'] = work['URL']

    # One attachment per kind; similarity-checking copies are a last resort
    links = sorted(work.get('link') or (),
                   key=lambda link: link.get('intended-application') == 'similarity-checking')
    by_kind = {}
    for link in links:
        url = link.get('URL')
        content_type = (link.get('content-type') or '').lower()
        if not url:
            continue
        if 'pdf' in content_type:
            by_kind.setdefault(AttachmentKind.PDF, Attachment(url, AttachmentKind.PDF))
        elif 'html' in content_type:
            by_kind.setdefault(AttachmentKind.HTML, Attachment(url, AttachmentKind.HTML))
    attachments = [by_kind[kind] for kind in AttachmentKind if kind in by_kind]
    if not attachments and identifiers.get('doi'):
        attachments.append(Attachment(f"https://doi.org/{identifiers['doi']}", AttachmentKind.HTML))

    title = _join(work.get('title'))
    subtitle = _join(work.get('subtitle'))
    if title and subtitle:
        title = f"{title}: {subtitle}"

    container = None if work_type in BOOK_TYPES else _join(work.get('container-title'))

    return Item(
        title=title,
        authors=_crossref_authors(work.get('author') or work.get('editor')),
        year=_crossref_year(work),
        container=container,
        identifiers=identifiers,
        attachments=tuple(attachments),
        entry_type=CROSSREF_TYPE_MAP.get(work_type, 'misc'),
        publisher=work.get('publisher'),
        volume=work.get('volume'),
        issue=work.get('issue'),
        pages=work.get('page'),
        language=work.get('language'),
        source=source,
    )


def _pick_work(items: List[Dict], isbn: str) -> Optional[Dict]:
    """Prefer whole books listing the ISBN, then anything listing it."""
    def lists_isbn(work):
        listed = [re.sub(r'[-\s]', '', i) for i in work.get('ISBN') or ()]
        return isbn in listed

    listing = [w for w in items if lists_isbn(w)] or items
    for work in listing:
        if work.get('type') in BOOK_TYPES:
            return work
    return listing[0] if listing else None


class ISBNTranslator(Translator):
    """Look books up in Crossref by ISBN."""

    name = "isbn"

    def __init__(self, session: Optional[requests.Session] = None, timeout: float = 30,
                 mailto: str = ""):
        """
        Args:
            session: HTTP session to use
            timeout: Per-request timeout in seconds
            mailto: Contact address for Crossref's polite pool (optional)
        """
        super().__init__(session=session, timeout=timeout)
        self.mailto = mailto

    def can_handle(self, input: Input) -> bool:
        return normalize_isbn(input.value) is not None

    def fetch(self, input: Input) -> Item:
        isbn = normalize_isbn(input.value)
        if isbn is None:
            raise PermanentError(f"Invalid ISBN: {input.value}")

        params = {'filter': f'isbn:{isbn}', 'rows': '5'}
        if self.mailto:
            params['mailto'] = self.mailto

        response = get(self.session, CROSSREF_WORKS, what=f"ISBN {isbn}",
                       timeout=self.timeout, params=params)
        try:
            items = response.json().get('message', {}).get('items') or []
        except ValueError as e:
            raise PermanentError(f"Crossref returned invalid JSON for ISBN {isbn}") from e

        work = _pick_work(items, isbn)
        if work is None:
            raise PermanentError(f"ISBN {isbn} not found in Crossref")

        logger.debug(f"ISBN {isbn} matched Crossref {work.get('type')} {work.get('DOI')}")
        return item_from_crossref(work, isbn, source=self.name)


__all__ = [
    'ISBNTranslator',
    'normalize_isbn',
    'item_from_crossref',
]
