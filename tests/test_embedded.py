"""Tests for the embedded-metadata and USENIX translators."""

import pytest

from bibpull.errors import PermanentError
from bibpull.inputs import Input
from bibpull.item import AttachmentKind
from bibpull.translators.embedded import (
    EmbeddedTranslator,
    PageMetadata,
    UsenixTranslator,
    item_from_page,
)

from conftest import FakeResponse, FakeSession

HIGHWIRE_PAGE = """<!DOCTYPE html>
<html lang="en">
<head>
  <title>On Things | Journal of Examples</title>
  <meta name="citation_title" content="On   Things">
  <meta name="citation_author" content="Smith, Jane">
  <meta name="citation_author" content="Doe, John">
  <meta name="citation_journal_title" content="Journal of Examples">
  <meta name="citation_publication_date" content="2021/03/04">
  <meta name="citation_volume" content="7">
  <meta name="citation_firstpage" content="10">
  <meta name="citation_lastpage" content="20">
  <meta name="citation_doi" content="doi:10.1000/Things">
  <meta name="citation_pdf_url" content="/articles/things.pdf">
  <meta property="og:site_name" content="Journal of Examples">
  <link rel="canonical" href="https://journal.example.org/articles/things">
</head>
<body></body>
</html>"""

OPEN_GRAPH_PAGE = """<html><head>
  <title>A Blog Post - Example Blog</title>
  <meta property="og:title" content="A Blog Post">
  <meta property="og:site_name" content="Example Blog">
  <meta property="article:published_time" content="2019-05-01T10:00:00Z">
  <meta name="description" content="What this post is about.">
  <script type="application/ld+json">
    {"@context": "https://schema.org", "@type": "BlogPosting",
     "headline": "A Blog Post (JSON-LD)", "author": {"@type": "Person", "name": "Ada Lovelace"}}
  </script>
</head></html>"""

TITLE_ONLY_PAGE = "<html><head><title>Just a Page | Site</title><meta property='og:site_name' content='Site'></head></html>"

USENIX_URL = "https://www.usenix.org/conference/osdi24/presentation/smith"

USENIX_PAGE = """<html><head>
  <title>Fast Things | USENIX</title>
  <meta name="citation_title" content="Fast Things {Revisited}">
  <meta name="citation_author" content="Smith, Jane">
  <meta name="citation_conference_title" content="18th USENIX Symposium on Operating Systems Design and Implementation (OSDI 24)">
  <meta name="citation_publication_date" content="2024">
  <meta name="citation_pdf_url" content="https://www.usenix.org/system/files/osdi24-smith.pdf">
  <script type="application/ld+json">
    [{"@type": "ScholarlyArticle", "name": "Fast Things Revisited",
      "author": [{"name": "Jane Smith"}, {"name": "Wei Zhang"}]}]
  </script>
</head></html>"""


class TestPageMetadata:
    """Signal collection."""

    def test_meta_values_are_collected_in_order(self):
        page = PageMetadata(HIGHWIRE_PAGE, "https://journal.example.org/articles/things")

        assert page.all("citation_author") == ["Smith, Jane", "Doe, John"]
        assert page.first("CITATION_TITLE") == "On Things"
        assert page.canonical == "https://journal.example.org/articles/things"
        assert page.lang == "en"

    def test_json_ld_graph_and_bad_blocks(self):
        html = """<html><head>
          <script type="application/ld+json">{not json}</script>
          <script type="application/ld+json">
            {"@graph": [{"@type": "WebSite"}, {"@type": "ScholarlyArticle", "name": "X"}]}
          </script></head></html>"""
        page = PageMetadata(html, "https://example.org/")

        assert page.json_article() == {"@type": "ScholarlyArticle", "name": "X"}


class TestItemFromPage:
    """Metadata precedence."""

    def test_highwire(self):
        url = "https://journal.example.org/articles/things?utm=1"
        item = item_from_page(PageMetadata(HIGHWIRE_PAGE, url), url, source="embedded")

        assert item.title == "On Things"
        assert [a.family for a in item.authors] == ["Smith", "Doe"]
        assert item.year == 2021
        assert item.container == "Journal of Examples"
        assert item.entry_type == "article"
        assert item.pages == "10-20"
        assert item.doi == "10.1000/things"
        assert item.identifiers['url'] == "https://journal.example.org/articles/things"
        assert [(a.kind, a.url) for a in item.attachments] == [
            (AttachmentKind.PDF, "https://journal.example.org/articles/things.pdf"),
            (AttachmentKind.HTML, "https://journal.example.org/articles/things"),
        ]

    def test_open_graph_with_json_ld_authors(self):
        url = "https://blog.example.org/post"
        item = item_from_page(PageMetadata(OPEN_GRAPH_PAGE, url), url, source="embedded")

        assert item.title == "A Blog Post"
        assert [a.display() for a in item.authors] == ["Ada Lovelace"]
        assert item.year == 2019
        assert item.abstract == "What this post is about."
        assert item.publisher == "Example Blog"
        assert item.entry_type == "misc"

    def test_title_tag_fallback_strips_site_name(self):
        url = "https://example.org/page"
        item = item_from_page(PageMetadata(TITLE_ONLY_PAGE, url), url, source="embedded")

        assert item.title == "Just a Page"

    def test_no_title_is_permanent(self):
        url = "https://example.org/empty"
        with pytest.raises(PermanentError, match="No bibliographic metadata"):
            item_from_page(PageMetadata("<html></html>", url), url, source="embedded")


class TestEmbeddedTranslator:
    """Generic page translator."""

    @pytest.mark.parametrize("value, expected", [
        ("https://example.org/paper", True),
        ("http://example.org", True),
        ("ftp://example.org/file", False),
        ("example.org/paper", False),
        ("10.1000/abc", False),
    ])
    def test_can_handle(self, value, expected):
        assert EmbeddedTranslator(session=FakeSession()).can_handle(Input(value)) is expected

    def test_fetch(self):
        url = "https://journal.example.org/articles/things"
        session = FakeSession({url: FakeResponse(text=HIGHWIRE_PAGE, headers={'Content-Type': 'text/html'})})

        item = EmbeddedTranslator(session=session).fetch(Input(url))

        assert item.source == "embedded"
        assert item.title == "On Things"

    def test_non_html_is_permanent(self):
        url = "https://example.org/file.zip"
        session = FakeSession({url: FakeResponse(content=b"PK", headers={'Content-Type': 'application/zip'})})

        with pytest.raises(PermanentError, match="not an HTML page"):
            EmbeddedTranslator(session=session).fetch(Input(url))


class TestUsenixTranslator:
    """USENIX presentation pages."""

    @pytest.mark.parametrize("value, expected", [
        (USENIX_URL, True),
        (USENIX_URL + "?tab=slides", True),
        ("https://www.usenix.org/conference/osdi24", False),
        ("http://www.usenix.org/conference/osdi24/presentation/smith", False),
        ("https://example.org/conference/x/presentation/y", False),
    ])
    def test_can_handle(self, value, expected):
        assert UsenixTranslator(session=FakeSession()).can_handle(Input(value)) is expected

    def test_prefers_json_ld(self):
        session = FakeSession({USENIX_URL: FakeResponse(text=USENIX_PAGE)})

        item = UsenixTranslator(session=session).fetch(Input(USENIX_URL))

        assert item.title == "Fast Things Revisited"
        assert [a.display() for a in item.authors] == ["Jane Smith", "Wei Zhang"]
        assert item.container.startswith("18th USENIX Symposium")
        assert item.entry_type == "inproceedings"
        assert item.publisher == "USENIX Association"
        assert item.year == 2024
        assert item.source == "usenix"
        assert item.attachments[0].kind is AttachmentKind.PDF

    def test_untitled_presentation_uses_url_as_title(self):
        session = FakeSession({USENIX_URL: FakeResponse(text="<html><head></head></html>")})

        item = UsenixTranslator(session=session).fetch(Input(USENIX_URL))

        assert item.title == USENIX_URL
        assert item.identifiers['url'] == USENIX_URL
        assert item.container == "USENIX"

    def test_untitled_generic_page_is_permanent(self):
        session = FakeSession({USENIX_URL: FakeResponse(text="<html><head></head></html>")})

        with pytest.raises(PermanentError, match="No bibliographic metadata"):
            EmbeddedTranslator(session=session).fetch(Input(USENIX_URL))
