from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import List, Optional, Sequence, Union

from attribution.diff_parser import extract_added_fragments, html_to_text
from attribution.models import AttributionFailure, DiffMatch, RevisionDiff, RevisionRef
from discussion.core import (
    ATTRIBUTION_WINDOW_AFTER_MINUTES,
    ATTRIBUTION_WINDOW_BEFORE_MINUTES,
    setup_logger,
)
from discussion.errors import AttributionError, ParseFailure
from discussion.wikitext import remove_wiki_markup, word_overlap
from fingerprint.models import CommentFingerprint

logger = setup_logger("discussion.attribution")


class MarkupRenderer(ABC):
    """
    Renders wikitext to HTML.
    Implementers MUST raise ParseFailure when the markup cannot be rendered.
    """
    @abstractmethod
    def render(self, wikitext: str, title: Optional[str] = None) -> str:
        pass


class RevisionSource(ABC):
    """Supplies page revisions and their diffs against the previous revision."""

    @abstractmethod
    def get_revisions(self, title: str, user: str, start: datetime, end: datetime) -> List[RevisionRef]:
        """Revisions of `title` made by `user` between `start` and `end`, oldest first."""
        pass

    @abstractmethod
    def get_compare_body(self, title: str, revid: int) -> Optional[str]:
        """HTML diff body of `revid` against its parent, or None when unavailable."""
        pass


def _to_ms(delta: timedelta) -> int:
    return int(round(delta.total_seconds() * 1000))


class DiffMatcher:
    """
    Scores revisions by how well the text they added matches a comment.
    Invariants:
    - Attribution is never guessed: ties and empty inputs are AMBIGUOUS.
    - A renderer failure degrades the score, it does not abort the scan.
    """

    def __init__(self, renderer: Optional[MarkupRenderer] = None):
        self._renderer = renderer

    def attribute(
        self,
        fingerprint: CommentFingerprint,
        diffs: Sequence[RevisionDiff],
        title: Optional[str] = None,
    ) -> List[DiffMatch]:
        comment_text = f"{fingerprint.text} {fingerprint.signature_text}".strip()
        matches = []

        for diff in diffs:
            # Even empty diffs carry newlines
            if not diff.body:
                continue

            fragments = extract_added_fragments(diff.body)
            if not fragments:
                continue

            # Fragments come entity-decoded from the diff table
            part_texts = [remove_wiki_markup(fragment) for fragment in fragments]
            best_part_overlap = max(word_overlap(text, comment_text) for text in part_texts)
            overlap = max(word_overlap("\n".join(part_texts), comment_text), best_part_overlap)

            original_text = "\n".join(fragments)
            rendered = False
            if overlap < 1 and "{{" in original_text and self._renderer is not None:
                try:
                    plain = html_to_text(self._renderer.render(original_text, title))
                    overlap = word_overlap(plain, comment_text)
                    rendered = True
                except ParseFailure as e:
                    logger.warning(
                        f"Rendering added text of revision {diff.revision.revid} failed, keeping raw score: {e}",
                        extra={"context": "attribution"},
                    )

            matches.append(DiffMatch(
                revision=diff.revision,
                word_overlap=overlap,
                date_proximity_ms=self._date_proximity(fingerprint.date, diff.revision.timestamp),
                added_text="\n".join(part_texts),
                rendered=rendered,
            ))

        return matches

    @staticmethod
    def _date_proximity(comment_date: Optional[datetime], revision_time: datetime) -> int:
        if comment_date is None:
            return 0
        # Signatures have minute precision
        revision_minute = revision_time.replace(second=0, microsecond=0)
        return abs(_to_ms(comment_date - revision_minute))

    @staticmethod
    def rank(matches: Sequence[DiffMatch]) -> List[DiffMatch]:
        return sorted(matches, key=lambda m: (-m.word_overlap, m.date_proximity_ms))

    def pick_best(self, matches: Sequence[DiffMatch]) -> Union[RevisionRef, AttributionFailure]:
        ranked = self.rank(matches)
        if not ranked:
            return AttributionFailure.AMBIGUOUS
        if len(ranked) > 1 and (
            ranked[0].word_overlap == ranked[1].word_overlap
            and ranked[0].date_proximity_ms == ranked[1].date_proximity_ms
        ):
            return AttributionFailure.AMBIGUOUS
        return ranked[0].revision


class EditAttributor:
    """
    Finds the edit that added a comment: fetches the author's revisions around the
    comment date, scores their diffs and caches the winner on the tracked comment.
    """

    def __init__(self, revisions: RevisionSource, matcher: Optional[DiffMatcher] = None):
        self._revisions = revisions
        self._matcher = matcher or DiffMatcher()

    def find_adding_edit(self, comment, fingerprint: CommentFingerprint, title: str) -> Union[RevisionRef, AttributionFailure]:
        """
        `comment` is a TrackedComment; a found edit is recorded on it and reused.
        """
        if comment.adding_edit is not None:
            return comment.adding_edit

        if fingerprint.date is None:
            return AttributionFailure.AMBIGUOUS

        # Before: the comment may have been edited with its timestamp replaced.
        # After: the diff timestamp is occasionally newer than the signature.
        start = fingerprint.date - timedelta(minutes=ATTRIBUTION_WINDOW_BEFORE_MINUTES)
        end = fingerprint.date + timedelta(minutes=ATTRIBUTION_WINDOW_AFTER_MINUTES)
        revisions = self._revisions.get_revisions(title, fingerprint.author, start, end)

        diffs = []
        for revision in revisions:
            body = self._revisions.get_compare_body(title, revision.revid)
            # A missing body is a failed fetch, not an empty diff
            if body is None:
                logger.warning(
                    f"Diff of revision {revision.revid} unavailable, not attributing comment {fingerprint.comment_id}",
                    extra={"context": "attribution"},
                )
                return AttributionFailure.AMBIGUOUS
            diffs.append(RevisionDiff(revision=revision, body=body))

        result = self._matcher.pick_best(self._matcher.attribute(fingerprint, diffs, title))

        if result is AttributionFailure.AMBIGUOUS:
            logger.info(
                f"Couldn't attribute comment {fingerprint.comment_id} among {len(revisions)} revisions",
                extra={"context": "attribution"},
            )
            return result

        return comment.record_adding_edit(result)

    def require_adding_edit(self, comment, fingerprint: CommentFingerprint, title: str) -> RevisionRef:
        result = self.find_adding_edit(comment, fingerprint, title)
        if result is AttributionFailure.AMBIGUOUS:
            raise AttributionError(details={"comment": fingerprint.comment_id, "title": title})
        return result
