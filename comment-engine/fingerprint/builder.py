import re
from typing import List, Sequence

from discussion.core import PRECEDING_LOOKBACK
from discussion.wikitext import normalize_whitespace
from fingerprint.models import CommentFingerprint, RenderedComment

# Punctuation between the comment text and its signature
SIGNATURE_PREFIX = re.compile(
    r'(?:\s[-–−—―]+\xa0?[A-Z][A-Za-z\-_]*)?'
    r'(?:\s+>+)?'
    r'(?:[·•\-‑–−—―─~⁓/→⇒\s\u200d\u200e\u200f\u2060]|&\w+;|&#\d+;)*'
    r'(?:\s+\()?$'
)


class FingerprintBuilder:
    """
    Builds comment fingerprints from the rendered comment list.
    Invariants:
    - Pure: no I/O, the input comments are never modified.
    - Bounded: at most PRECEDING_LOOKBACK predecessors, built shallow.
    """

    def __init__(self, lookback: int = PRECEDING_LOOKBACK):
        self._lookback = lookback

    def build(self, comment: RenderedComment, all_comments: Sequence[RenderedComment]) -> CommentFingerprint:
        index = self._index_of(comment, all_comments)

        preceding: List[CommentFingerprint] = []
        for offset in range(1, self._lookback + 1):
            if index - offset < 0:
                break
            preceding.append(self._shallow(all_comments[index - offset], index - offset))

        return self._shallow(comment, index, tuple(preceding))

    def _index_of(self, comment: RenderedComment, all_comments: Sequence[RenderedComment]) -> int:
        for i, other in enumerate(all_comments):
            if other is comment or other.id == comment.id:
                return i
        raise ValueError(f"Comment {comment.id!r} is not in the comment list")

    def _shallow(self, comment: RenderedComment, index: int, preceding=()) -> CommentFingerprint:
        return CommentFingerprint(
            ordinal_index=index,
            author=comment.author,
            timestamp_string=comment.timestamp or None,
            preceding=preceding,
            follows_heading=comment.follows_heading,
            section_headline=comment.section_headline,
            text=self.comparable_text(comment),
            date=comment.date,
            signature_text=comment.signature_text,
            extra_signatures=tuple(comment.extra_signatures),
            comment_id=comment.id,
        )

    @staticmethod
    def comparable_text(comment: RenderedComment) -> str:
        """
        Comment text without the change note and the signature, whitespace collapsed.
        """
        text = comment.text
        if comment.change_note:
            text = text.replace(comment.change_note, " ")

        if not comment.is_reformatted and comment.signature_text:
            stripped = text.rstrip()
            if stripped.endswith(comment.signature_text):
                text = stripped[:-len(comment.signature_text)]
            else:
                position = text.rfind(comment.signature_text)
                if position != -1:
                    text = text[:position]
            text = SIGNATURE_PREFIX.sub("", text)

        return normalize_whitespace(text)


def build_fingerprint(comment: RenderedComment, all_comments: Sequence[RenderedComment]) -> CommentFingerprint:
    return FingerprintBuilder().build(comment, all_comments)
