from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Tuple


@dataclass(frozen=True)
class RenderedComment:
    """
    A comment as it appears in the rendered page, supplied by the page parser.
    `text` is the comment's visible text; in the classic representation it still
    ends with the signature, in the reformatted one (is_reformatted=True) the
    signature is rendered separately and is absent from `text`.
    `extra_signatures` lists co-signers as (author, timestamp) pairs in document order.
    """
    id: str
    author: str
    timestamp: Optional[str]
    date: Optional[datetime]
    text: str
    signature_text: str = ""
    section_headline: Optional[str] = None
    follows_heading: bool = False
    is_reformatted: bool = False
    change_note: str = ""
    is_own: bool = False
    extra_signatures: Tuple[Tuple[str, Optional[str]], ...] = ()


@dataclass(frozen=True)
class CommentFingerprint:
    """
    Identity signals of a rendered comment used to find it in source.
    Built on demand, never persisted. `preceding` is most-recent-first and holds
    shallow fingerprints (their own `preceding` is empty).
    """
    ordinal_index: int
    author: str
    timestamp_string: Optional[str]
    preceding: Tuple["CommentFingerprint", ...] = ()
    follows_heading: bool = False
    section_headline: Optional[str] = None
    text: str = ""
    date: Optional[datetime] = None
    signature_text: str = ""
    extra_signatures: Tuple[Tuple[str, Optional[str]], ...] = ()
    comment_id: Optional[str] = None
