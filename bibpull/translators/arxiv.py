"""
arXiv translator.

Resolves arXiv identifiers through the export.arxiv.org Atom API.

ArXiv ID Formats:
    - New format: YYMM.NNNNN (e.g., 2301.12345)
    - Old format: archive/YYMMNNN (e.g., math.GT/0309136)
    - With version: 2301.12345v1 (version suffix is optional)

Accepted inputs:
    - "arXiv:2301.12345", "2301.12345v2", "hep-th/9901001"
    - https://arxiv.org/abs/2301.12345, https://arxiv.org/pdf/2301.12345v1.pdf
    - The same on export.arxiv.org and the legacy xxx.lanl.gov mirror

arXiv asks API clients to pause between requests, so every request goes
through a per-instance cooldown limiter.

See: https://info.arxiv.org/help/api/index.html
"""

from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlsplit
import logging
import re
import threading
import time
import xml.etree.ElementTree as ET

import requests

from ..errors import PermanentError, TransientError
from ..inputs import Input
from ..item import Attachment, AttachmentKind, Author, Item, parse_year
from ..network import get
from .base import Translator
from .doi import DOI_PATTERN, normalize_doi

logger = logging.getLogger(__name__)

API_URL = "https://export.arxiv.org/api/query"
ARXIV_HOSTS = ("arxiv.org", "export.arxiv.org", "xxx.lanl.gov")

NEW_STYLE = re.compile(r'^(?P<core>\d{4}\.\d{4,5})(?:v(?P<version>\d+))?$')
LEGACY = re.compile(r'^(?P<core>[A-Za-z-]+(?:\.[A-Za-z-]+)?/\d{7})(?:v(?P<version>\d+))?$')

NS = {
    'atom': 'http://www.w3.org/2005/Atom',
    'arxiv': 'http://arxiv.org/schemas/atom',
}


@dataclass(frozen=True)
class ArxivId:
    """A parsed arXiv identifier."""

    core: str
    version: Optional[str] = None

    @property
    def versioned(self) -> str:
        return f"{self.core}v{self.version}" if self.version else self.core


def _strip_url(value: str) -> Optional[str]:
    """Return the ID part of an arXiv abs/pdf URL, "" for other arXiv URLs, None for non-arXiv."""
    parts = urlsplit(value)
    host = (parts.hostname or '').lower()
    if not any(host == h or host.endswith('.' + h) for h in ARXIV_HOSTS):
        return None

    path = parts.path.lstrip('/')
    if path.startswith('abs/'):
        return path[len('abs/'):]
    if path.startswith('pdf/'):
        path = path[len('pdf/'):]
        return path[:-len('.pdf')] if path.endswith('.pdf') else path
    # list/, find/, search/ and the like are not papers
    return ""


def parse_arxiv_id(identifier: str) -> Optional[ArxivId]:
    """
    Parse an arXiv identifier or URL.

    Examples:
        >>> parse_arxiv_id('arXiv:1810.04805v2')
        ArxivId(core='1810.04805', version='2')
        >>> parse_arxiv_id('https://xxx.lanl.gov/abs/astro-ph/0603274v1').core
        'astro-ph/0603274'
    """
    s = identifier.strip()
    if s.lower().startswith('arxiv:'):
        s = s[len('arxiv:'):].lstrip()

    if s.lower().startswith(('http://', 'https://')):
        stripped = _strip_url(s)
        if not stripped:
            return None
        s = stripped

    s = s.strip('/')
    for pattern in (NEW_STYLE, LEGACY):
        match = pattern.match(s)
        if match:
            return ArxivId(core=match.group('core'), version=match.group('version'))
    return None


class CooldownLimiter:
    """Enforce a minimum interval between requests, thread-safe."""

    def __init__(self, cooldown: float, clock=time.monotonic, sleep=time.sleep):
        self.cooldown = cooldown
        self._clock = clock
        self._sleep = sleep
        self._last_request = None
        self._lock = threading.Lock()

    def wait(self) -> None:
        if self.cooldown <= 0:
            return

        with self._lock:
            now = self._clock()
            if self._last_request is not None:
                remaining = self.cooldown - (now - self._last_request)
                if remaining > 0:
                    logger.debug(f"arXiv rate limit: sleeping {remaining:.2f}s")
                    self._sleep(remaining)
            self._last_request = self._clock()


def _text(element, path: str) -> Optional[str]:
    found = element.find(path, NS)
    if found is None or found.text is None:
        return None
    text = " ".join(found.text.split())
    return text or None


def parse_atom_entry(xml_text: str, arxiv_id: ArxivId, source: str = "arxiv") -> Item:
    """Convert an Atom feed from the arXiv API into an Item.

    Raises:
        PermanentError: Malformed feed, or the feed has no entry for the ID
    """
    try:
        root = ET.fromstring(xml_text)
    except ET.ParseError as e:
        raise PermanentError(f"Malformed arXiv Atom response: {e}") from e

    entry = root.find('atom:entry', NS)
    # The API answers unknown IDs with an entry titled "Error"
    if entry is None or _text(entry, 'atom:title') in (None, 'Error'):
        raise PermanentError(f"arXiv has no record for {arxiv_id.versioned}")

    authors = tuple(
        Author.from_string(name)
        for name in (_text(a, 'atom:name') for a in entry.findall('atom:author', NS))
        if name
    )

    doi = _text(entry, 'arxiv:doi')
    if doi is None:
        for link in entry.findall('atom:link', NS):
            if link.get('rel') == 'related' and 'doi.org' in (link.get('href') or ''):
                match = DOI_PATTERN.search(link.get('href'))
                if match:
                    doi = f"{match.group(1)}/{match.group(2)}"
                    break

    identifiers = {
        'arxiv': arxiv_id.core,
        'doi': normalize_doi(doi) if doi else f"10.48550/arxiv.{arxiv_id.core}".lower(),
        'url': f"https://arxiv.org/abs/{arxiv_id.core}",
    }

    primary = entry.find('arxiv:primary_category', NS)
    journal_ref = _text(entry, 'arxiv:journal_ref')

    return Item(
        title=_text(entry, 'atom:title'),
        authors=authors,
        year=parse_year(_text(entry, 'atom:published')),
        container=journal_ref or (f"arXiv {primary.get('term')}" if primary is not None else "arXiv"),
        identifiers=identifiers,
        attachments=(
            Attachment(f"https://arxiv.org/pdf/{arxiv_id.versioned}", AttachmentKind.PDF),
            Attachment(f"https://arxiv.org/abs/{arxiv_id.versioned}", AttachmentKind.HTML),
        ),
        entry_type="article" if journal_ref else "preprint",
        publisher="arXiv",
        abstract=_text(entry, 'atom:summary'),
        source=source,
    )


class ArxivTranslator(Translator):
    """Fetch preprint metadata from the arXiv API."""

    name = "arxiv"

    def __init__(self, session: Optional[requests.Session] = None, timeout: float = 30,
                 cooldown: float = 3.0):
        """
        Args:
            session: HTTP session to use
            timeout: Per-request timeout in seconds
            cooldown: Minimum seconds between API requests (0 disables)
        """
        super().__init__(session=session, timeout=timeout)
        self.limiter = CooldownLimiter(cooldown)

    def can_handle(self, input: Input) -> bool:
        return parse_arxiv_id(input.value) is not None

    def fetch(self, input: Input) -> Item:
        arxiv_id = parse_arxiv_id(input.value)
        if arxiv_id is None:
            raise PermanentError(f"Invalid arXiv identifier: {input.value}")

        self.limiter.wait()
        response = get(
            self.session, API_URL, what=f"arXiv {arxiv_id.versioned}", timeout=self.timeout,
            params={'id_list': arxiv_id.versioned, 'max_results': '1'},
        )
        if not response.text.strip():
            raise TransientError(f"Empty arXiv API response for {arxiv_id.versioned}")

        return parse_atom_entry(response.text, arxiv_id, source=self.name)


__all__ = [
    'ArxivTranslator',
    'ArxivId',
    'CooldownLimiter',
    'parse_arxiv_id',
    'parse_atom_entry',
]
