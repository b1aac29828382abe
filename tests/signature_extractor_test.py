"""
Signature extraction from raw talk page source.
"""

import unittest
from datetime import datetime, timezone

from signatures.extractor import SignatureExtractor, extract_signatures
from signatures.models import SignatureConfig, UNDATED

TS_1000 = "10:00, 1 January 2024 (UTC)"
TS_1005 = "10:05, 1 January 2024 (UTC)"

THREAD = (
    "== Topic ==\n"
    f"Hello there. [[User:Alice|Alice]] ([[User talk:Alice|talk]]) {TS_1000}\n"
    f":Reply here. [[User:Bob|Bob]] {TS_1005}\n"
)


class TestRegularSignatures(unittest.TestCase):
    def setUp(self):
        self.extractor = SignatureExtractor()

    def test_thread_signatures_in_order(self):
        signatures = self.extractor.extract(THREAD)

        self.assertEqual([s.author for s in signatures], ["Alice", "Bob"])
        self.assertEqual([s.raw_timestamp for s in signatures], [TS_1000, TS_1005])
        self.assertEqual([s.ordinal for s in signatures], [0, 1])

    def test_dates_are_parsed_as_utc(self):
        first = self.extractor.extract(THREAD)[0]
        self.assertEqual(first.date, datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc))

    def test_signature_starts_at_first_author_link(self):
        first = self.extractor.extract(THREAD)[0]
        self.assertEqual(
            THREAD[first.signature_start_offset:first.signature_end_offset],
            f"[[User:Alice|Alice]] ([[User talk:Alice|talk]]) {TS_1000}",
        )
        self.assertEqual(first.dirty_signature, THREAD[first.signature_start_offset:first.signature_end_offset])

    def test_comment_boundaries(self):
        first, second = self.extractor.extract(THREAD)
        self.assertEqual(first.comment_start_offset, 0)
        self.assertEqual(first.line_start_offset, len("== Topic ==\n"))
        self.assertEqual(second.comment_start_offset, THREAD.index(":Reply"))
        self.assertEqual(first.next_comment_start_offset, second.comment_start_offset)

    def test_subpage_links_do_not_start_signature(self):
        source = f"See [[User:Alice/Sandbox|sandbox]]. [[User:Alice|Alice]] {TS_1000}"
        sig = self.extractor.extract(source)[0]
        self.assertTrue(source[sig.signature_start_offset:].startswith("[[User:Alice|Alice]]"))

    def test_contributions_link_names_author(self):
        source = f"Anonymous note. [[Special:Contributions/192.0.2.1|192.0.2.1]] {TS_1000}"
        sig = self.extractor.extract(source)[0]
        self.assertEqual(sig.author, "192.0.2.1")

    def test_user_names_are_normalized(self):
        source = f"Text. [[User:alice_smith|Alice]] {TS_1000}"
        self.assertEqual(self.extractor.extract(source)[0].author, "Alice smith")

    def test_iso_timestamp(self):
        source = "Hello. [[User:Alice|Alice]] 2024-01-01T10:00"
        sig = self.extractor.extract(source)[0]
        self.assertEqual(sig.raw_timestamp, "2024-01-01T10:00")
        self.assertEqual(sig.date, datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc))
        self.assertEqual(sig.signature_end_offset, len(source))

    def test_timestamp_without_author_is_dropped(self):
        source = f"Just a date {TS_1000}\nHi. [[User:Bob|Bob]] {TS_1005}\n"
        signatures = self.extractor.extract(source)
        self.assertEqual(len(signatures), 1)
        self.assertEqual(signatures[0].author, "Bob")
        self.assertEqual(signatures[0].ordinal, 0)
        self.assertEqual(signatures[0].comment_start_offset, source.index("Hi."))


class TestMaskedRegions(unittest.TestCase):
    def setUp(self):
        self.extractor = SignatureExtractor()

    def test_signatures_in_html_comments_ignored(self):
        source = f"<!-- Old. [[User:Eve|Eve]] {TS_1000} -->\nNew. [[User:Alice|Alice]] {TS_1005}"
        signatures = self.extractor.extract(source)
        self.assertEqual([s.author for s in signatures], ["Alice"])

    def test_signatures_in_quotes_ignored(self):
        source = (
            f"<blockquote>Quoted [[User:Eve|Eve]] {TS_1000}</blockquote> "
            f"Reply. [[User:Alice|Alice]] {TS_1005}"
        )
        signatures = self.extractor.extract(source)
        self.assertEqual([s.author for s in signatures], ["Alice"])

    def test_antipattern_lines_ignored(self):
        config = SignatureConfig(comment_antipatterns=(r"\{\{moved from",))
        source = (
            f"{{{{moved from|Old page}}}} [[User:Eve|Eve]] {TS_1000}\n"
            f"Comment. [[User:Alice|Alice]] {TS_1005}\n"
        )
        signatures = SignatureExtractor(config).extract(source)
        self.assertEqual([s.author for s in signatures], ["Alice"])


class TestUnsignedTemplates(unittest.TestCase):
    def setUp(self):
        self.extractor = SignatureExtractor()

    def test_unsigned_author_then_timestamp(self):
        source = f"Some text. {{{{unsigned|Carol|{TS_1000}}}}}\n"
        signatures = self.extractor.extract(source)
        self.assertEqual(len(signatures), 1)
        sig = signatures[0]
        self.assertEqual(sig.author, "Carol")
        self.assertEqual(sig.raw_timestamp, TS_1000)
        self.assertTrue(sig.is_unsigned_template)
        self.assertEqual(sig.signature_start_offset, source.index("{{unsigned"))

    def test_unsigned_timestamp_then_author(self):
        source = f"Some text. {{{{unsigned|{TS_1000}|Carol}}}}\n"
        sig = self.extractor.extract(source)[0]
        self.assertEqual(sig.author, "Carol")
        self.assertEqual(sig.raw_timestamp, TS_1000)

    def test_unsigned_without_timestamp(self):
        sig = self.extractor.extract("Some text. {{unsigned|Carol}}\n")[0]
        self.assertEqual(sig.author, "Carol")
        self.assertEqual(sig.raw_timestamp, "")
        self.assertIsNone(sig.date)

    def test_undated_template_gives_sentinel(self):
        sig = self.extractor.extract(f"Note. {{{{undated|{TS_1000}}}}}\n")[0]
        self.assertIs(sig.author, UNDATED)
        self.assertTrue(sig.is_undated)


class TestExtractionProperties(unittest.TestCase):
    SOURCES = [
        "",
        "No signatures at all.",
        THREAD,
        f"x\n\n\n[[User:A|A]] {TS_1000}\n\n[[User:B|B]] {TS_1005}",
        f"Unterminated [[User:Bob {TS_1000}",
        f"{{{{unsigned|Carol}}}} and [[User:Dan|Dan]] {TS_1005}",
    ]

    def test_offsets_within_bounds_and_ordered(self):
        extractor = SignatureExtractor()
        for source in self.SOURCES:
            signatures = extractor.extract(source)
            for sig in signatures:
                self.assertLessEqual(sig.line_start_offset, sig.signature_end_offset)
                self.assertLessEqual(sig.signature_end_offset, len(source))
            starts = [sig.signature_start_offset for sig in signatures]
            self.assertEqual(starts, sorted(starts))

    def test_deterministic(self):
        self.assertEqual(extract_signatures(THREAD), extract_signatures(THREAD))


if __name__ == "__main__":
    unittest.main()
