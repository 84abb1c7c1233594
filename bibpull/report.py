"""Render per-input results as text or JSON."""

from typing import Dict, List, Optional, Sequence
import json

from .pipeline import Fetched, FetchPipeline, Invalid
from .puller import Downloaded, DownloadPipeline


def _status(state) -> str:
    if isinstance(state, Invalid):
        return type(state.reason).__name__.lower()
    return type(state).__name__.lower()


def result_dict(fetch: FetchPipeline, downloads: Sequence[DownloadPipeline] = ()) -> Dict:
    """JSON-ready description of one input's outcome."""
    data = {
        'input': fetch.input.value,
        'status': _status(fetch.state),
        'attempts': fetch.attempts,
    }
    if fetch.input.origin:
        data['origin'] = fetch.input.origin
    if isinstance(fetch.state, Fetched):
        data['item'] = fetch.state.item.to_dict()
    else:
        data['error'] = _error_text(fetch)

    if downloads:
        data['attachments'] = []
        for d in downloads:
            entry = {'url': d.attachment.url, 'kind': d.attachment.kind.value, 'status': _status(d.state)}
            if isinstance(d.state, Downloaded):
                entry['path'] = str(d.state.path)
            else:
                entry['error'] = str(d.state)
            data['attachments'].append(entry)
    return data


def _error_text(fetch: FetchPipeline) -> Optional[str]:
    if not isinstance(fetch.state, Invalid):
        return None
    # Unparseable bibliography files carry the parser's message
    if fetch.input.note:
        return f"{fetch.state.reason}: {fetch.input.note}"
    return str(fetch.state.reason)


def group_downloads(fetches: Sequence[FetchPipeline],
                    downloads: Sequence[DownloadPipeline]) -> List[List[DownloadPipeline]]:
    """Attach each download to the fetch it came from, preserving order."""
    by_input: Dict[int, List[DownloadPipeline]] = {}
    for d in downloads:
        by_input.setdefault(id(d.input), []).append(d)
    return [by_input.get(id(f.input), []) for f in fetches]


def format_text(fetches: Sequence[FetchPipeline],
                downloads: Sequence[DownloadPipeline] = ()) -> str:
    """One line per input (plus one per attachment when pulling).

    Example:
        ✓ 10.1000/abc: Title. A. Author. Journal. 2020
        ✗ bad-file.bib: unrecognized input: No BibTeX entries found
    """
    lines = []
    for fetch, pulled in zip(fetches, group_downloads(fetches, downloads)):
        if isinstance(fetch.state, Fetched):
            lines.append(f"✓ {fetch.input.label}: {fetch.state.item.summary()}")
        else:
            lines.append(f"✗ {fetch.input.label}: {_error_text(fetch)}")
        for d in pulled:
            if isinstance(d.state, Downloaded):
                lines.append(f"    ✓ {d.attachment.kind.value}: {d.state.path}")
            else:
                lines.append(f"    ✗ {d.attachment.kind.value} {d.attachment.url}: {d.state}")
    return "\n".join(lines)


def format_json(fetches: Sequence[FetchPipeline],
                downloads: Sequence[DownloadPipeline] = ()) -> str:
    results = [
        result_dict(fetch, pulled)
        for fetch, pulled in zip(fetches, group_downloads(fetches, downloads))
    ]
    return json.dumps(results, indent=2, ensure_ascii=False)


def summary_line(fetches: Sequence[FetchPipeline], downloads: Sequence[DownloadPipeline] = ()) -> str:
    ok = sum(1 for f in fetches if f.succeeded)
    text = f"{ok}/{len(fetches)} fetched"
    if downloads:
        pulled = sum(1 for d in downloads if d.succeeded)
        text += f", {pulled}/{len(downloads)} attachments downloaded"
    return text
