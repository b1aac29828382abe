"""
Attributing comments to the revisions that added them.
"""

import unittest
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

from attribution.diff_parser import extract_added_fragments
from attribution.engine import DiffMatcher, EditAttributor, MarkupRenderer, RevisionSource
from attribution.models import AttributionFailure, RevisionDiff, RevisionRef
from discussion.errors import AttributionError, ParseFailure
from fingerprint.models import CommentFingerprint
from reconcile.models import TrackedComment

DATE = datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc)
SIGNATURE = "[[User:Alice|Alice]] ([[User talk:Alice|talk]]) 10:00, 1 January 2024 (UTC)"


def added_row(text):
    return (
        '<tr><td colspan="2" class="diff-empty diff-side-deleted"></td>'
        '<td class="diff-marker" data-marker="+"></td>'
        f'<td class="diff-addedline diff-side-added"><div>{text}</div></td></tr>'
    )


def context_row(text):
    return (
        f'<tr><td class="diff-marker"></td><td class="diff-context diff-side-deleted"><div>{text}</div></td>'
        f'<td class="diff-marker"></td><td class="diff-context diff-side-added"><div>{text}</div></td></tr>'
    )


def revision(revid, minute=0, second=30):
    return RevisionRef(revid=revid, timestamp=DATE.replace(minute=minute, second=second), user="Alice")


def alice_fingerprint(text="I support this proposal strongly."):
    return CommentFingerprint(
        ordinal_index=3,
        author="Alice",
        timestamp_string="10:00, 1 January 2024 (UTC)",
        text=text,
        date=DATE,
        signature_text="Alice (talk) 10:00, 1 January 2024 (UTC)",
        comment_id="c-alice",
    )


class TestDiffParser(unittest.TestCase):
    def test_only_added_lines(self):
        body = context_row("Earlier text.") + added_row("New line.") + added_row("== Heading ==")
        self.assertEqual(extract_added_fragments(body), ["New line."])

    def test_entities_decoded(self):
        self.assertEqual(extract_added_fragments(added_row("a &lt;b&gt; &amp; c")), ["a <b> & c"])

    def test_entities_decoded_once(self):
        matcher = DiffMatcher()
        match = matcher.attribute(alice_fingerprint(), [RevisionDiff(revision(101), added_row("x &amp;lt;b&amp;gt; y"))])[0]
        self.assertEqual(match.added_text, "x &lt;b&gt; y")

    def test_empty_body(self):
        self.assertEqual(extract_added_fragments(""), [])
        self.assertEqual(extract_added_fragments("\n"), [])


class TestDiffMatcher(unittest.TestCase):
    def setUp(self):
        self.matcher = DiffMatcher()

    def test_exact_diff_ranks_above_unrelated(self):
        diff_a = RevisionDiff(revision(101), added_row(f":I support this proposal strongly. {SIGNATURE}"))
        diff_b = RevisionDiff(revision(102), added_row(
            "Unrelated remark about sources. [[User:Alice|Alice]] 10:00, 1 January 2024 (UTC)"
        ))

        matches = self.matcher.attribute(alice_fingerprint(), [diff_b, diff_a])

        ranked = self.matcher.rank(matches)
        self.assertEqual(ranked[0].revision.revid, 101)
        self.assertEqual(ranked[0].word_overlap, 1.0)
        self.assertAlmostEqual(ranked[1].word_overlap, 0.25)
        self.assertEqual(self.matcher.pick_best(matches).revid, 101)

    def test_best_part_wins_when_edit_adds_several_comments(self):
        body = (
            added_row(f":I support this proposal strongly. {SIGNATURE}")
            + added_row("::Another comment about something else entirely, with many other words. [[User:Alice|Alice]]")
        )
        match = self.matcher.attribute(alice_fingerprint(), [RevisionDiff(revision(101), body)])[0]
        self.assertEqual(match.word_overlap, 1.0)

    def test_date_proximity_ignores_seconds(self):
        body = added_row(f"I support this proposal strongly. {SIGNATURE}")
        same_minute, later = self.matcher.attribute(alice_fingerprint(), [
            RevisionDiff(revision(101, minute=0, second=45), body),
            RevisionDiff(revision(102, minute=3, second=10), body),
        ])
        self.assertEqual(same_minute.date_proximity_ms, 0)
        self.assertEqual(later.date_proximity_ms, 3 * 60 * 1000)
        self.assertEqual(self.matcher.pick_best([later, same_minute]).revid, 101)

    def test_identical_matches_are_ambiguous(self):
        body = added_row(f"I support this proposal strongly. {SIGNATURE}")
        matches = self.matcher.attribute(alice_fingerprint(), [
            RevisionDiff(revision(101), body),
            RevisionDiff(revision(102), body),
        ])
        self.assertIs(self.matcher.pick_best(matches), AttributionFailure.AMBIGUOUS)

    def test_no_matches_is_ambiguous(self):
        self.assertIs(self.matcher.pick_best([]), AttributionFailure.AMBIGUOUS)

    def test_diffs_without_added_text_skipped(self):
        matches = self.matcher.attribute(alice_fingerprint(), [
            RevisionDiff(revision(101), None),
            RevisionDiff(revision(102), context_row("Only context.")),
            RevisionDiff(revision(103), added_row("== New section ==")),
        ])
        self.assertEqual(matches, [])


class TestRerendering(unittest.TestCase):
    def setUp(self):
        self.fingerprint = CommentFingerprint(
            ordinal_index=0,
            author="Alice",
            timestamp_string=None,
            text="Reply to Bob: yes agreed.",
            date=DATE,
        )
        self.body = added_row("{{reply to|Bob}} yes agreed.")

    def test_templates_rendered_when_overlap_low(self):
        renderer = MagicMock(spec=MarkupRenderer)
        renderer.render.return_value = "<div><p>Reply to Bob: yes agreed.</p></div>"

        match = DiffMatcher(renderer).attribute(self.fingerprint, [RevisionDiff(revision(101), self.body)])[0]

        renderer.render.assert_called_once()
        self.assertTrue(match.rendered)
        self.assertEqual(match.word_overlap, 1.0)

    def test_render_failure_keeps_raw_score(self):
        renderer = MagicMock(spec=MarkupRenderer)
        renderer.render.side_effect = ParseFailure()

        match = DiffMatcher(renderer).attribute(self.fingerprint, [RevisionDiff(revision(101), self.body)])[0]

        self.assertFalse(match.rendered)
        # Bob, yes, agreed shared; Reply, to missing
        self.assertAlmostEqual(match.word_overlap, 0.6)


class TestEditAttributor(unittest.TestCase):
    def setUp(self):
        self.source = MagicMock(spec=RevisionSource)
        self.bodies = {
            101: added_row(f"I support this proposal strongly. {SIGNATURE}"),
            102: added_row("Unrelated remark. [[User:Alice|Alice]]"),
        }
        self.source.get_revisions.return_value = [revision(101), revision(102)]
        self.source.get_compare_body.side_effect = lambda title, revid: self.bodies[revid]
        self.attributor = EditAttributor(self.source)

    def test_finds_and_caches_adding_edit(self):
        comment = TrackedComment(id="c-alice", date=DATE)

        first = self.attributor.find_adding_edit(comment, alice_fingerprint(), "Talk:Example")
        second = self.attributor.find_adding_edit(comment, alice_fingerprint(), "Talk:Example")

        self.assertEqual(first.revid, 101)
        self.assertIs(comment.adding_edit, first)
        self.assertIs(second, first)
        self.source.get_revisions.assert_called_once_with(
            "Talk:Example", "Alice", DATE - timedelta(minutes=10), DATE + timedelta(minutes=3)
        )

    def test_ambiguous_result_not_cached(self):
        self.bodies[102] = self.bodies[101]
        comment = TrackedComment(id="c-alice", date=DATE)

        with self.assertRaises(AttributionError):
            self.attributor.require_adding_edit(comment, alice_fingerprint(), "Talk:Example")
        self.assertIsNone(comment.adding_edit)

    def test_failed_diff_fetch_aborts_attribution(self):
        self.bodies[101] = None
        comment = TrackedComment(id="c-alice", date=DATE)

        result = self.attributor.find_adding_edit(comment, alice_fingerprint(), "Talk:Example")

        self.assertIs(result, AttributionFailure.AMBIGUOUS)
        self.assertIsNone(comment.adding_edit)

    def test_undated_comment_is_ambiguous(self):
        fp = CommentFingerprint(ordinal_index=0, author="Alice", timestamp_string=None, text="x")
        result = self.attributor.find_adding_edit(TrackedComment(id="c"), fp, "Talk:Example")
        self.assertIs(result, AttributionFailure.AMBIGUOUS)
        self.source.get_revisions.assert_not_called()


if __name__ == "__main__":
    unittest.main()
