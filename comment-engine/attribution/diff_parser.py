"""
Extraction of added lines from MediaWiki diff tables.

A line counts as added when its deleted side is an empty two-column cell.
`diff-empty` is not always present on that cell, so colspan="2" is the indicator.
Added headings (lines starting with "=") are skipped.
"""

from typing import List

from bs4 import BeautifulSoup


def _has_class(tag, name: str) -> bool:
    return name in (tag.get("class") or [])


def _is_added_row(cells) -> bool:
    if len(cells) < 3:
        return False
    deleted, marker, added = cells[0], cells[1], cells[2]
    return (
        _has_class(deleted, "diff-side-deleted")
        and deleted.get("colspan") == "2"
        and not deleted.get_text().strip()
        and _has_class(marker, "diff-marker")
        and _has_class(added, "diff-addedline")
    )


def extract_added_fragments(body: str) -> List[str]:
    """Returns the wikitext of every added non-heading line, in diff order."""
    if not body or not body.strip():
        return []

    # Compare bodies are bare <tr> rows
    soup = BeautifulSoup(f"<table>{body}</table>", "lxml")
    fragments = []
    for row in soup.find_all("tr"):
        cells = row.find_all("td", recursive=False)
        if not _is_added_row(cells):
            continue
        div = cells[2].find("div")
        if div is None:
            continue
        text = div.get_text()
        if not text or text.startswith("="):
            continue
        fragments.append(text)
    return fragments


def html_to_text(html: str) -> str:
    """Visible text of rendered HTML."""
    soup = BeautifulSoup(html, "lxml")
    for tag in soup(["script", "style"]):
        tag.decompose()
    return soup.get_text(" ", strip=True)
