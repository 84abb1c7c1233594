"""
Embedded-metadata translators.

Generic last-resort translator for http(s) pages that describe a work in
their markup, plus a USENIX presentation-page variant.

Sources, in order of preference:
    1. Highwire Press tags (<meta name="citation_*">)
    2. Dublin Core (<meta name="DC.*">)
    3. Open Graph (<meta property="og:*">)
    4. JSON-LD (<script type="application/ld+json">)
    5. The <title> element
"""

from dataclasses import replace
from typing import Dict, List, Optional
from urllib.parse import urljoin, urlsplit
import json
import logging
import re

from bs4 import BeautifulSoup

from ..errors import PermanentError
from ..inputs import Input
from ..item import Attachment, AttachmentKind, Author, Item, parse_year
from ..network import get
from .base import Translator
from .doi import parse_doi

logger = logging.getLogger(__name__)

USENIX_PATTERN = re.compile(r'^https://www\.usenix\.org/conference/.*/presentation([/?#].*)?$')

ARTICLE_TYPES = {'ScholarlyArticle', 'Article', 'CreativeWork', 'PresentationDigitalDocument',
                 'NewsArticle', 'BlogPosting', 'Report', 'Thesis', 'Book', 'Chapter'}


class PageMetadata:
    """Metadata signals collected from one HTML page."""

    def __init__(self, html_text: str, base_url: str):
        soup = BeautifulSoup(html_text, 'html.parser')

        base = soup.find('base', href=True)
        self.base_url = urljoin(base_url, base['href']) if base else base_url

        # name (lower-cased) -> list of values, in document order
        self.meta: Dict[str, List[str]] = {}
        for tag in soup.find_all('meta'):
            key = tag.get('name') or tag.get('property')
            content = tag.get('content')
            if not key or content is None:
                continue
            content = " ".join(content.split())
            if content:
                self.meta.setdefault(key.lower(), []).append(content)

        self.json_ld: List[Dict] = []
        for script in soup.find_all('script', attrs={'type': 'application/ld+json'}):
            try:
                data = json.loads(script.string or '')
            except ValueError:
                logger.debug(f"Skipping malformed JSON-LD block on {base_url}")
                continue
            self._collect_json_ld(data)

        title = soup.find('title')
        self.title_tag = " ".join(title.get_text().split()) if title else None

        canonical = soup.find('link', rel='canonical', href=True)
        self.canonical = urljoin(self.base_url, canonical['href']) if canonical else None

        html_tag = soup.find('html')
        self.lang = html_tag.get('lang') if html_tag else None

    def _collect_json_ld(self, data) -> None:
        if isinstance(data, list):
            for node in data:
                self._collect_json_ld(node)
        elif isinstance(data, dict):
            if '@graph' in data:
                self._collect_json_ld(data['@graph'])
            else:
                self.json_ld.append(data)

    def first(self, *names: str) -> Optional[str]:
        for name in names:
            values = self.meta.get(name.lower())
            if values:
                return values[0]
        return None

    def all(self, name: str) -> List[str]:
        return self.meta.get(name.lower(), [])

    def json_article(self) -> Optional[Dict]:
        """The first JSON-LD node that describes a work."""
        for node in self.json_ld:
            types = node.get('@type')
            types = types if isinstance(types, list) else [types]
            if any(t in ARTICLE_TYPES for t in types):
                return node
        return None

    def absolute(self, url: Optional[str]) -> Optional[str]:
        return urljoin(self.base_url, url) if url else None


def _json_names(value) -> List[str]:
    if value is None:
        return []
    if isinstance(value, (str, dict)):
        value = [value]
    names = []
    for person in value:
        if isinstance(person, str):
            names.append(person)
        elif isinstance(person, dict) and person.get('name'):
            names.append(person['name'])
    return names


def _split_names(value: str) -> List[str]:
    return [n.strip() for n in re.split(r';|\band\b', value) if n.strip()]


def _strip_site_suffix(title: str, site: Optional[str]) -> str:
    if site:
        for sep in (' | ', ' - ', ' :: '):
            suffix = f"{sep}{site}"
            if title.endswith(suffix):
                return title[:-len(suffix)].strip()
    return title


def _entry_type(page: PageMetadata) -> str:
    if page.first('citation_conference_title', 'citation_conference'):
        return 'inproceedings'
    if page.first('citation_dissertation_institution'):
        return 'thesis'
    if page.first('citation_technical_report_institution'):
        return 'report'
    if page.first('citation_journal_title'):
        return 'article'
    if page.first('citation_inbook_title'):
        return 'incollection'
    return 'misc'


def item_from_page(page: PageMetadata, url: str, source: str, prefer_json_ld: bool = False,
                   title_fallback: Optional[str] = None) -> Item:
    """Build an Item from collected page metadata.

    Args:
        title_fallback: Title used when the page has none (e.g. the URL itself)

    Raises:
        PermanentError: The page carries no usable title and no fallback was given
    """
    article = page.json_article() or {}
    site = page.first('og:site_name')

    meta_title = page.first('citation_title', 'dc.title', 'og:title')
    json_title = article.get('headline') or article.get('name')
    if prefer_json_ld:
        title = json_title or meta_title
    else:
        title = meta_title or json_title
    if not title and page.title_tag:
        title = _strip_site_suffix(page.title_tag, site)
    if not title:
        title = title_fallback
    if not title:
        raise PermanentError(f"No bibliographic metadata found on {url}")

    names = list(page.all('citation_author'))
    for value in page.all('citation_authors'):
        names.extend(_split_names(value))
    if not names:
        names = page.all('dc.creator')
    json_authors = _json_names(article.get('author'))
    if (prefer_json_ld and json_authors) or not names:
        names = json_authors

    date = (page.first('citation_publication_date', 'citation_cover_date', 'citation_date',
                       'citation_online_date', 'citation_year', 'dc.date',
                       'article:published_time')
            or article.get('datePublished'))

    container = page.first('citation_journal_title', 'citation_conference_title',
                           'citation_conference', 'citation_book_title', 'citation_inbook_title')

    identifiers = {}
    doi_value = page.first('citation_doi', 'dc.identifier', 'prism.doi')
    parsed = parse_doi(doi_value) if doi_value else None
    if parsed:
        identifiers['doi'] = f"{parsed[0]}/{parsed[1]}".lower()
    isbn = page.first('citation_isbn')
    if isbn:
        identifiers['isbn'] = re.sub(r'[-\s]', '', isbn)

    page_url = (page.absolute(page.first('citation_public_url', 'citation_abstract_html_url'))
                or page.canonical or page.absolute(page.first('og:url')) or url)
    identifiers['url'] = page_url

    attachments = []
    pdf_url = page.absolute(page.first('citation_pdf_url'))
    if pdf_url:
        attachments.append(Attachment(pdf_url, AttachmentKind.PDF))
    attachments.append(Attachment(page_url, AttachmentKind.HTML))

    first_page, last_page = page.first('citation_firstpage'), page.first('citation_lastpage')
    pages = f"{first_page}-{last_page}" if first_page and last_page else first_page

    return Item(
        title=title,
        authors=tuple(Author.from_string(n) for n in dict.fromkeys(names)),
        year=parse_year(date),
        container=container,
        identifiers=identifiers,
        attachments=tuple(attachments),
        entry_type=_entry_type(page),
        publisher=page.first('citation_publisher', 'dc.publisher') or site,
        volume=page.first('citation_volume'),
        issue=page.first('citation_issue'),
        pages=pages,
        language=page.first('citation_language', 'dc.language') or page.lang,
        abstract=page.first('citation_abstract', 'dc.description', 'og:description', 'description'),
        source=source,
    )


class EmbeddedTranslator(Translator):
    """Read embedded metadata from any http(s) page."""

    name = "embedded"
    prefer_json_ld = False
    url_as_title = False

    def can_handle(self, input: Input) -> bool:
        parts = urlsplit(input.value.strip())
        return parts.scheme in ('http', 'https') and bool(parts.netloc)

    def fetch(self, input: Input) -> Item:
        url = input.value.strip()
        response = get(self.session, url, what=url, timeout=self.timeout,
                       headers={'Accept': 'text/html,application/xhtml+xml;q=0.9,*/*;q=0.8'})

        content_type = response.headers.get('Content-Type', '')
        if content_type and 'html' not in content_type.lower():
            raise PermanentError(f"{url} is not an HTML page ({content_type})")

        final_url = response.url or url
        page = PageMetadata(response.text, final_url)
        return self.build_item(page, final_url)

    def build_item(self, page: PageMetadata, url: str) -> Item:
        return item_from_page(page, url, source=self.name, prefer_json_ld=self.prefer_json_ld,
                              title_fallback=url if self.url_as_title else None)


class UsenixTranslator(EmbeddedTranslator):
    """USENIX conference presentation pages.

    These pages carry both JSON-LD and Highwire tags; JSON-LD has the
    cleaner title and author list. A page without any title is still a
    presentation, so it is kept with its URL as the title.
    """

    name = "usenix"
    prefer_json_ld = True
    url_as_title = True

    def can_handle(self, input: Input) -> bool:
        return USENIX_PATTERN.match(input.value.strip()) is not None

    def build_item(self, page: PageMetadata, url: str) -> Item:
        item = super().build_item(page, url)
        conference = page.first('citation_conference_title', 'citation_conference')
        return replace(
            item,
            container=conference or item.container or "USENIX",
            entry_type="inproceedings",
            publisher="USENIX Association",
        )


__all__ = [
    'EmbeddedTranslator',
    'UsenixTranslator',
    'PageMetadata',
    'item_from_page',
]
