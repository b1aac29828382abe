import re
from typing import List, Optional, Sequence, Union

from discussion.core import MATCH_SCORE_THRESHOLD, setup_logger
from discussion.errors import LocateCommentError
from discussion.wikitext import normalize_code, remove_wiki_markup, word_overlap
from fingerprint.models import CommentFingerprint
from matching.models import LocateFailure, MatchCandidate, ScoreBreakdown
from signatures.extractor import SignatureExtractor
from signatures.models import SignatureCandidate, UNDATED

logger = setup_logger("discussion.matching")

_HEADING = re.compile(r'^(=+)(.*?)\1[ \t]*(?:\n|$)', re.MULTILINE)

# Weights of the score components
CERTAINTY_WEIGHT = 2
HEADLINE_WEIGHT = 1
POSITION_WEIGHT = 0.5
INDEX_WEIGHT = 0.0001

# The section has a headline but no heading precedes the candidate. Truthy, but
# low enough that it cannot push a weak candidate over the threshold on its own.
MISSING_HEADING_SCORE = -0.4999


def _timestamp_compatible(timestamp: Optional[str], raw_timestamp: str) -> bool:
    # The rendered timestamp may lack the timezone annotation present in markup
    if not timestamp:
        return not raw_timestamp
    return raw_timestamp == timestamp or raw_timestamp.startswith(timestamp)


def _same_headline(heading_code: str, headline: str) -> bool:
    return normalize_code(remove_wiki_markup(heading_code)).strip() == normalize_code(headline).strip()


class SourceMatcher:
    """
    Locates a fingerprinted comment in page source.
    Invariants:
    - Deterministic: same fingerprint + same source = same result.
    - Idempotent: the source is never modified.
    - Ties resolve to the first candidate in source order.
    """

    def __init__(self, extractor: Optional[SignatureExtractor] = None, threshold: float = MATCH_SCORE_THRESHOLD):
        self._extractor = extractor or SignatureExtractor()
        self._threshold = threshold

    def locate(self, fingerprint: CommentFingerprint, source: str) -> Union[MatchCandidate, LocateFailure]:
        """
        Returns the best candidate scoring above the threshold, or LocateFailure.NOT_FOUND.
        """
        signatures = self._extractor.extract(source)
        scored = self._score_all(fingerprint, source, signatures)
        accepted = [match for match in scored if match.score > self._threshold]

        if not accepted:
            logger.debug(
                f"No match for {fingerprint.author} @ {fingerprint.timestamp_string} "
                f"({len(scored)} candidates scored)",
                extra={"context": "matching"},
            )
            return LocateFailure.NOT_FOUND

        # sorted() is stable: equal scores keep source order
        best = sorted(accepted, key=lambda match: -match.score)[0]
        return self._attach_extra_signatures(fingerprint, best, signatures)

    def locate_or_raise(self, fingerprint: CommentFingerprint, source: str) -> MatchCandidate:
        result = self.locate(fingerprint, source)
        if result is LocateFailure.NOT_FOUND:
            raise LocateCommentError(details={
                "author": fingerprint.author,
                "timestamp": fingerprint.timestamp_string,
                "index": fingerprint.ordinal_index,
            })
        return result

    def score_candidates(self, fingerprint: CommentFingerprint, source: str) -> List[MatchCandidate]:
        """All author/timestamp-compatible candidates with their scores, in source order."""
        return self._score_all(fingerprint, source, self._extractor.extract(source))

    # === SCORING ===

    def _score_all(self, fingerprint, source, signatures) -> List[MatchCandidate]:
        survivors = [
            sig for sig in signatures
            if (sig.author == fingerprint.author or sig.author is UNDATED)
            and _timestamp_compatible(fingerprint.timestamp_string, sig.raw_timestamp)
        ]
        return [self._score(fingerprint, sig, len(survivors), signatures, source) for sig in survivors]

    def _score(
        self,
        fingerprint: CommentFingerprint,
        candidate: SignatureCandidate,
        survivor_count: int,
        signatures: Sequence[SignatureCandidate],
        source: str,
    ) -> MatchCandidate:
        code = source[candidate.comment_start_offset:candidate.signature_start_offset]
        span_start = candidate.comment_start_offset

        heading = None
        for heading in _HEADING.finditer(code):
            pass
        if heading:
            span_start += heading.end()
            code = code[heading.end():]

        overlap = word_overlap(fingerprint.text, remove_wiki_markup(code))
        position_match, previous_equal = self._compare_preceding(fingerprint, candidate, signatures)

        heading_agreement = 0.0
        section_agreement = 0.0
        if fingerprint.section_headline:
            nearest = self._nearest_heading(source, candidate.signature_start_offset)
            if nearest is None:
                section_agreement = MISSING_HEADING_SCORE
            elif _same_headline(nearest, fingerprint.section_headline):
                section_agreement = 1.0
            headline_match = bool(section_agreement)
        else:
            headline_match = (heading is not None) == fingerprint.follows_heading
            heading_agreement = 1.0 if headline_match else 0.0

        is_first = fingerprint.ordinal_index == 0
        certain = (
            survivor_count == 1
            or overlap > 0.5
            or (is_first and position_match and headline_match)
            # Many consecutive same-author same-minute comments prove nothing by position
            or (not is_first and position_match and not previous_equal)
        )

        breakdown = ScoreBreakdown(
            certainty=CERTAINTY_WEIGHT if certain else 0,
            text_overlap=overlap,
            heading_agreement=heading_agreement * HEADLINE_WEIGHT,
            section_agreement=section_agreement * HEADLINE_WEIGHT,
            position_agreement=POSITION_WEIGHT if position_match else 0,
            index_agreement=INDEX_WEIGHT if fingerprint.ordinal_index == candidate.ordinal else 0,
        )

        logger.debug(
            f"Candidate #{candidate.ordinal} at {candidate.signature_start_offset}: score={breakdown.total:.4f} "
            f"overlap={overlap:.3f} position={position_match} headline={headline_match}",
            extra={"context": "matching"},
        )

        return MatchCandidate(
            signature=candidate,
            score=breakdown.total,
            breakdown=breakdown,
            span_start=span_start,
            span_end=candidate.signature_end_offset,
            code=code,
            heading_code=heading.group(0) if heading else None,
        )

    def _compare_preceding(self, fingerprint, candidate, signatures):
        """
        Returns (position_match, previous_equal): whether the preceding fingerprints agree
        with the signatures right before the candidate, and whether those signatures all
        carry the candidate's own author and timestamp.
        """
        if not fingerprint.preceding:
            # No previous comment on the page: only the first signature is in position
            return candidate.ordinal == 0, False

        position_match = False
        previous_equal = None
        for i, previous in enumerate(fingerprint.preceding):
            index = candidate.ordinal - 1 - i
            if index < 0:
                break
            signature = signatures[index]

            position_match = (
                signature.author == previous.author
                and _timestamp_compatible(previous.timestamp_string, signature.raw_timestamp)
            )
            if previous_equal is not False:
                previous_equal = (
                    signature.raw_timestamp == candidate.raw_timestamp
                    and signature.author == candidate.author
                )
            if not position_match:
                break

        return position_match, bool(previous_equal)

    @staticmethod
    def _nearest_heading(source: str, before: int) -> Optional[str]:
        nearest = None
        for nearest in _HEADING.finditer(source, 0, before):
            pass
        return nearest.group(2) if nearest else None

    # === EXTRA SIGNATURES ===

    def _attach_extra_signatures(self, fingerprint, match: MatchCandidate, signatures) -> MatchCandidate:
        """
        Links co-signatures listed on the fingerprint to the signatures right after the
        match, in document order, and moves the span end to the last of them.
        """
        if not fingerprint.extra_signatures:
            return match

        linked = []
        index = match.signature.ordinal + 1
        for author, timestamp in fingerprint.extra_signatures:
            if index >= len(signatures):
                break
            signature = signatures[index]
            if signature.author != author or not _timestamp_compatible(timestamp, signature.raw_timestamp):
                break
            linked.append(signature)
            index += 1

        if not linked:
            return match

        return MatchCandidate(
            signature=match.signature,
            score=match.score,
            breakdown=match.breakdown,
            span_start=match.span_start,
            span_end=max(match.span_end, linked[-1].signature_end_offset),
            code=match.code,
            heading_code=match.heading_code,
            extra_signatures=tuple(linked),
        )
