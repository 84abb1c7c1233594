"""Tests for argument resolution and bibliography parsing."""

from pathlib import Path

import pytest

from bibpull.bibliography import entry_identifier, load_bibliography, parse_bibtex, parse_hayagriva
from bibpull.errors import BibliographyError
from bibpull.inputs import Input, InputKind, resolve_argument, resolve_arguments

BIBTEX = """
@article{smith2020,
  title = {A Study},
  doi = {10.1000/abc}
}

@misc{vaswani2017,
  title = {Attention Is All You Need},
  eprint = {1706.03762},
  archivePrefix = {arXiv}
}

@book{cormen2009,
  title = {Introduction to Algorithms},
  isbn = {978-0-262-03384-8}
}

@misc{page2024,
  title = {A Page},
  url = {https://example.org/page}
}

@book{knuth84,
  title = {The TeXbook}
}
"""

HAYAGRIVA = """
bert:
  type: article
  title: BERT
  serial-number:
    arxiv: "1810.04805"
smith:
  type: article
  title: A Study
  serial-number:
    doi: 10.1000/abc
page:
  type: web
  title: A Page
  url:
    value: https://example.org/page
    date: 2024-01-01
nothing:
  type: book
  title: No Identifier
"""


@pytest.fixture
def bib_file(tmp_path: Path) -> Path:
    path = tmp_path / "refs.bib"
    path.write_text(BIBTEX, encoding="utf-8")
    return path


@pytest.fixture
def yaml_file(tmp_path: Path) -> Path:
    path = tmp_path / "refs.yml"
    path.write_text(HAYAGRIVA, encoding="utf-8")
    return path


class TestParseBibtex:
    """BibTeX parsing."""

    def test_entries_and_keys(self):
        entries = parse_bibtex(BIBTEX)

        assert [e['ID'] for e in entries] == ["smith2020", "vaswani2017", "cormen2009", "page2024", "knuth84"]
        assert entries[1]['archiveprefix'] == "arXiv"
        assert entries[0]['ENTRYTYPE'] == "article"

    def test_no_entries_raises(self):
        with pytest.raises(BibliographyError, match="No BibTeX entries"):
            parse_bibtex("just some text")


class TestParseHayagriva:
    """Hayagriva parsing."""

    def test_entries(self):
        entries = parse_hayagriva(HAYAGRIVA)
        assert [e['ID'] for e in entries] == ["bert", "smith", "page", "nothing"]

    @pytest.mark.parametrize("text", ["- a\n- b\n", "", "key: value\n", "a: [unclosed\n"])
    def test_not_hayagriva_raises(self, text):
        with pytest.raises(BibliographyError):
            parse_hayagriva(text)


class TestEntryIdentifier:
    """Which identifier an entry resolves from."""

    def test_bibtex_preference(self):
        ids = [entry_identifier(e) for e in parse_bibtex(BIBTEX)]
        assert ids == ["10.1000/abc", "arXiv:1706.03762", "978-0-262-03384-8",
                       "https://example.org/page", None]

    def test_hayagriva_preference(self):
        ids = [entry_identifier(e) for e in parse_hayagriva(HAYAGRIVA)]
        assert ids == ["arXiv:1810.04805", "10.1000/abc", "https://example.org/page", None]

    def test_doi_beats_eprint(self):
        assert entry_identifier({'doi': '10.1/x', 'eprint': '1706.03762'}) == "10.1/x"

    def test_non_arxiv_eprint_ignored(self):
        assert entry_identifier({'eprint': 'hdl:1234', 'eprinttype': 'hdl'}) is None


class TestLoadBibliography:
    """Format detection by suffix."""

    def test_unknown_suffix_falls_back_to_hayagriva(self, tmp_path: Path):
        path = tmp_path / "refs.txt"
        path.write_text(HAYAGRIVA, encoding="utf-8")
        assert len(load_bibliography(path)) == 4

    def test_unknown_suffix_tries_bibtex_first(self, tmp_path: Path):
        path = tmp_path / "refs.txt"
        path.write_text(BIBTEX, encoding="utf-8")
        assert len(load_bibliography(path)) == 5

    def test_unreadable_raises(self, tmp_path: Path):
        path = tmp_path / "binary.bib"
        path.write_bytes(b"\xff\xfe\x00garbage")
        with pytest.raises(BibliographyError):
            load_bibliography(path)


class TestResolveArgument:
    """CLI argument to Inputs."""

    def test_identifier(self):
        assert resolve_argument(" 10.1000/abc ") == [Input("10.1000/abc", InputKind.IDENTIFIER)]

    def test_missing_path_is_identifier(self, tmp_path: Path):
        missing = str(tmp_path / "missing.bib")
        assert resolve_argument(missing) == [Input(missing, InputKind.IDENTIFIER)]

    def test_bibtex_file_expands_in_order(self, bib_file: Path):
        inputs = resolve_argument(str(bib_file))

        assert [i.value for i in inputs] == ["10.1000/abc", "arXiv:1706.03762", "978-0-262-03384-8",
                                            "https://example.org/page", "knuth84"]
        assert [i.kind for i in inputs] == [InputKind.ENTRY] * 4 + [InputKind.UNIDENTIFIED]
        assert inputs[0].origin == "refs.bib:smith2020"
        assert inputs[0].label == "refs.bib:smith2020 (10.1000/abc)"
        assert inputs[4].note == "entry has no DOI, arXiv ID, ISBN or URL"
        assert inputs[4].label == "refs.bib:knuth84"

    def test_hayagriva_file(self, yaml_file: Path):
        inputs = resolve_argument(str(yaml_file))
        assert [i.value for i in inputs][:3] == ["arXiv:1810.04805", "10.1000/abc", "https://example.org/page"]

    def test_bad_file_is_single_file_input(self, tmp_path: Path):
        bad = tmp_path / "bad-file.bib"
        bad.write_text("this is not bibtex", encoding="utf-8")

        inputs = resolve_argument(str(bad))

        assert len(inputs) == 1
        assert inputs[0].kind is InputKind.FILE
        assert inputs[0].value == str(bad)
        assert "No BibTeX entries" in inputs[0].note

    def test_resolve_arguments_preserves_order(self, bib_file: Path):
        inputs = resolve_arguments(["2301.12345", str(bib_file), "10.1/z"])

        assert inputs[0].value == "2301.12345"
        assert inputs[-1].value == "10.1/z"
        assert len(inputs) == 7
