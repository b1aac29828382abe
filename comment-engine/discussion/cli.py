"""
Command-line entry point.

  signatures FILE                  list signatures found in a wikitext file
  locate FILE --author ... --text  find a comment's span in a wikitext file
  attribute --title ... --author   find the revision that added a comment
"""

import argparse
import json
import sys
from datetime import datetime, timezone

from attribution.engine import DiffMatcher, EditAttributor
from attribution.models import AttributionFailure
from attribution.revisions import MediaWikiClient
from discussion.core import API_URL, logger
from fingerprint.models import CommentFingerprint
from matching.engine import SourceMatcher
from matching.models import LocateFailure
from reconcile.models import TrackedComment
from signatures.extractor import SignatureExtractor
from signatures.models import UNDATED

EXIT_NO_RESULT = 3


def _read_source(path: str) -> str:
    if path == "-":
        return sys.stdin.read()
    with open(path, encoding="utf-8") as f:
        return f.read()


def _iso(value):
    return value.isoformat() if value else None


def cmd_signatures(args) -> int:
    extractor = SignatureExtractor()
    signatures = extractor.extract(_read_source(args.file))
    print(json.dumps([
        {
            "ordinal": sig.ordinal,
            "author": str(sig.author) if sig.author is UNDATED else sig.author,
            "timestamp": sig.raw_timestamp,
            "date": _iso(sig.date),
            "comment_start": sig.comment_start_offset,
            "signature_start": sig.signature_start_offset,
            "signature_end": sig.signature_end_offset,
        }
        for sig in signatures
    ], ensure_ascii=False, indent=2))
    return 0


def cmd_locate(args) -> int:
    fingerprint = CommentFingerprint(
        ordinal_index=args.index,
        author=args.author,
        timestamp_string=args.timestamp,
        follows_heading=args.follows_heading,
        section_headline=args.headline,
        text=args.text,
    )
    result = SourceMatcher().locate(fingerprint, _read_source(args.file))
    if result is LocateFailure.NOT_FOUND:
        logger.info(f"Comment by {args.author} not found", extra={"context": "cli"})
        print(json.dumps({"result": LocateFailure.NOT_FOUND.value}))
        return EXIT_NO_RESULT

    print(json.dumps({
        "span": [result.span_start, result.span_end],
        "score": result.score,
        "ordinal": result.signature.ordinal,
        "breakdown": {
            "certainty": result.breakdown.certainty,
            "text_overlap": result.breakdown.text_overlap,
            "heading_agreement": result.breakdown.heading_agreement,
            "section_agreement": result.breakdown.section_agreement,
            "position_agreement": result.breakdown.position_agreement,
            "index_agreement": result.breakdown.index_agreement,
        },
    }, indent=2))
    return 0


def cmd_attribute(args) -> int:
    date = datetime.strptime(args.date, "%Y-%m-%dT%H:%M").replace(tzinfo=timezone.utc)
    fingerprint = CommentFingerprint(
        ordinal_index=0,
        author=args.author,
        timestamp_string=None,
        text=args.text,
        date=date,
        signature_text=args.signature or "",
    )
    client = MediaWikiClient(api_url=args.api_url)
    attributor = EditAttributor(client, DiffMatcher(renderer=client))
    result = attributor.find_adding_edit(TrackedComment(id="cli", date=date), fingerprint, args.title)
    if result is AttributionFailure.AMBIGUOUS:
        print(json.dumps({"result": AttributionFailure.AMBIGUOUS.value}))
        return EXIT_NO_RESULT

    print(json.dumps({"revid": result.revid, "timestamp": _iso(result.timestamp), "user": result.user}))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Talk page comment identity tools")
    sub = parser.add_subparsers(dest="command", required=True)

    p_sig = sub.add_parser("signatures", help="List signatures in a wikitext file")
    p_sig.add_argument("file", help="Wikitext file, or - for stdin")
    p_sig.set_defaults(func=cmd_signatures)

    p_loc = sub.add_parser("locate", help="Locate a comment in a wikitext file")
    p_loc.add_argument("file", help="Wikitext file, or - for stdin")
    p_loc.add_argument("--author", required=True)
    p_loc.add_argument("--timestamp", default=None, help="Timestamp as rendered on the page")
    p_loc.add_argument("--text", required=True, help="Comment text without the signature")
    p_loc.add_argument("--headline", default=None, help="Headline of the comment's section")
    p_loc.add_argument("--index", type=int, default=0, help="Position of the comment on the page")
    p_loc.add_argument("--follows-heading", action="store_true")
    p_loc.set_defaults(func=cmd_locate)

    p_att = sub.add_parser("attribute", help="Find the revision that added a comment")
    p_att.add_argument("--title", required=True)
    p_att.add_argument("--author", required=True)
    p_att.add_argument("--date", required=True, help="Comment date in UTC, YYYY-MM-DDTHH:MM")
    p_att.add_argument("--text", required=True)
    p_att.add_argument("--signature", default=None)
    p_att.add_argument("--api-url", default=API_URL)
    p_att.set_defaults(func=cmd_attribute)

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
