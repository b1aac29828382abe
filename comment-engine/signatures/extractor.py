import re
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Union

from discussion.core import setup_logger
from discussion.errors import InvariantViolation
from discussion.wikitext import hide_html_comments, mask, normalize_user_name
from signatures.models import SignatureCandidate, SignatureConfig, UNDATED, UndatedSentinel

logger = setup_logger("discussion.signatures")

_TIMEZONE_IN_PARENS = re.compile(r'\(([A-Za-z]+)\)\s*$')


def _any_space(text: str) -> str:
    return r'[ _]*'.join(re.escape(part) for part in re.split(r'[ _]+', text))


class SignatureExtractor:
    """
    Scans raw page source for signatures.
    Invariants:
    - Pure: same source + same config = same candidates.
    - Total: constructs that do not fully match are skipped, never raised.
    - Offsets refer to the original source (masking preserves length).
    """

    def __init__(self, config: Optional[SignatureConfig] = None):
        self._config = config or SignatureConfig()
        self._compile()

    @property
    def config(self) -> SignatureConfig:
        return self._config

    def _compile(self):
        cfg = self._config

        self._timestamp_pattern = "|".join(f"(?:{fmt.pattern})" for fmt in cfg.timestamp_formats)
        self._timestamp_no_tz = re.compile(
            "|".join(f"(?:{fmt.pattern_no_timezone})" for fmt in cfg.timestamp_formats)
        )

        namespaces = "|".join(_any_space(ns) for ns in cfg.user_namespaces)
        contributions = r"[ _]*:[ _]*".join(_any_space(part) for part in cfg.contributions_page.split(":"))
        # Groups: 1 = user name, 2 = trailing slash (subpage link, not a signature)
        user_link = (
            r'\[\[[ _]*:?(?:\w*:){0,2}'
            rf'(?:(?:{namespaces})[ _]*:[ _]*|(?:{contributions})/[ _]*)'
            r'([^|\]/\n]+)(/)?'
        )
        self._author_link = re.compile(user_link, re.IGNORECASE)

        ts = self._timestamp_pattern
        self._timestamp_line = re.compile(
            rf'^((.*)({ts})(?:\}}\}}|</small>)?).*(?:\n*|$)',
            re.IGNORECASE | re.MULTILINE,
        )
        # Groups: 1 = line up to signature end, 2 = text before the link, 3 = dirty signature,
        # 4 = user name, 5 = slash, 6 = timestamp with closing markup, 7 = timestamp, 8 = newlines
        self._signature = re.compile(
            rf'^((.*)({user_link}.{{1,{cfg.signature_scan_limit}}}(({ts})(?:\}}\}}|</small>)?)).*)(\n*|$)',
            re.IGNORECASE,
        )

        self._unsigned = None
        templates = tuple(cfg.unsigned_templates) + tuple(cfg.undated_templates)
        if templates:
            names = "|".join(_any_space(name) for name in templates)
            # Groups: 1 = template, 2 = template name, 3 = first parameter, 4 = second parameter
            self._unsigned = re.compile(
                rf'(\{{\{{ *({names}) *\| *([^}}|]+?) *(?:\| *([^}}]+?) *)?\}}\}}).*\n?',
                re.IGNORECASE,
            )
        self._undated_names = {name.lower().replace('_', ' ') for name in cfg.undated_templates}

        self._quote = None
        if cfg.quote_tags:
            beginnings = "|".join(re.escape(pair[0]) for pair in cfg.quote_tags)
            endings = "|".join(re.escape(pair[1]) for pair in cfg.quote_tags)
            self._quote = re.compile(rf'({beginnings})(.*?)({endings})', re.IGNORECASE | re.DOTALL)

        self._antipatterns = None
        if cfg.comment_antipatterns:
            joined = "|".join(cfg.comment_antipatterns)
            self._antipatterns = re.compile(rf'^.*(?:{joined}).*$', re.MULTILINE)

    # === MASKING ===

    def _adjust(self, source: str) -> str:
        """Blanks HTML comments, quotes and antipattern lines without changing offsets."""
        code = hide_html_comments(source)
        if self._quote:
            for match in list(self._quote.finditer(code)):
                code = mask(code, match.start(2), match.end(2))
        if self._antipatterns:
            for match in list(self._antipatterns.finditer(code)):
                code = mask(code, match.start(), match.end())
        return code

    # === DATES ===

    def parse_timestamp(self, raw: str) -> Optional[datetime]:
        """Parses a raw timestamp into an aware UTC datetime. Returns None when unparseable."""
        if not raw:
            return None

        for fmt in self._config.timestamp_formats:
            match = re.match(fmt.pattern_no_timezone, raw, re.IGNORECASE)
            if not match:
                continue
            try:
                naive = datetime.strptime(match.group(0), fmt.strptime_format)
            except ValueError:
                continue

            offset = 0
            rest = raw[match.end():]
            tz_match = _TIMEZONE_IN_PARENS.search(rest)
            if tz_match:
                offset = self._config.timezone_offsets.get(tz_match.group(1).upper(), 0)
            elif rest.strip() in self._config.timezone_offsets:
                offset = self._config.timezone_offsets[rest.strip()]
            return (naive - timedelta(minutes=offset)).replace(tzinfo=timezone.utc)

        return None

    def _normalize_author(self, raw: str) -> Optional[str]:
        name = normalize_user_name(raw)
        return name or None

    # === EXTRACTION ===

    def _regular_signatures(self, source: str, code: str) -> List[dict]:
        limit = self._config.signature_scan_limit
        found = []

        for ts_match in self._timestamp_line.finditer(code):
            line = ts_match.group(0)
            line_start = ts_match.start()
            sig_match = self._signature.match(line)

            if sig_match:
                author = self._normalize_author(sig_match.group(4))
                raw_timestamp = sig_match.group(7)
                signature_start = line_start + len(sig_match.group(2))
                signature_end = line_start + len(sig_match.group(1))
                next_comment_start = line_start + len(sig_match.group(0))

                # The greedy prefix finds the last author link. Move back to the first link
                # to the same author within the comment ending.
                ending_start = max(
                    0,
                    len(sig_match.group(0)) - len(sig_match.group(6)) - len(sig_match.group(8)) - limit,
                )
                ending = sig_match.group(0)[ending_start:]
                for link in self._author_link.finditer(ending):
                    if link.group(2):
                        continue
                    if self._normalize_author(link.group(1)) == author:
                        signature_start = line_start + ending_start + link.start()
                        break
            else:
                # Timestamp without an author link: kept for comment boundaries, dropped later
                author = None
                raw_timestamp = ts_match.group(3)
                signature_start = line_start + len(ts_match.group(2))
                signature_end = line_start + len(ts_match.group(1))
                next_comment_start = ts_match.end()

            found.append({
                "author": author,
                "raw_timestamp": raw_timestamp,
                "line_start": line_start,
                "signature_start": signature_start,
                "signature_end": signature_end,
                "next_comment_start": next_comment_start,
                "dirty_signature": source[signature_start:signature_end],
                "is_unsigned_template": False,
            })

        return found

    def _unsigned_signatures(self, source: str, code: str) -> List[dict]:
        if not self._unsigned:
            return []

        found = []
        for match in self._unsigned.finditer(code):
            first, second = match.group(3), match.group(4)
            raw_timestamp = ""
            author: Union[str, UndatedSentinel, None]
            if first and self._timestamp_no_tz.search(first):
                raw_timestamp, author = first, second
            elif second and self._timestamp_no_tz.search(second):
                raw_timestamp, author = second, first
            else:
                author = first

            is_undated_template = match.group(2).lower().replace('_', ' ') in self._undated_names
            if is_undated_template or (raw_timestamp and not author):
                author = UNDATED
            elif author:
                author = self._normalize_author(author)

            line_start = code.rfind('\n', 0, match.start()) + 1
            found.append({
                "author": author,
                "raw_timestamp": raw_timestamp.strip(),
                "line_start": line_start,
                "signature_start": match.start(),
                "signature_end": match.start() + len(match.group(1)),
                "next_comment_start": match.end(),
                "dirty_signature": source[match.start():match.start() + len(match.group(1))],
                "is_unsigned_template": True,
            })

        return found

    def extract(self, source: str) -> List[SignatureCandidate]:
        """
        Returns every attributable signature in `source`, ordered by position.
        Each candidate's comment starts where the previous signature line ended
        (or at 0 for the first one).
        """
        code = self._adjust(source)
        found = self._regular_signatures(source, code) + self._unsigned_signatures(source, code)
        found.sort(key=lambda sig: sig["signature_start"])

        for i, sig in enumerate(found):
            sig["comment_start"] = 0 if i == 0 else found[i - 1]["next_comment_start"]

        candidates = []
        for sig in found:
            if not sig["author"]:
                continue

            if not (sig["line_start"] <= sig["signature_end"] <= len(source)):
                raise InvariantViolation(
                    "Signature offsets out of bounds",
                    details={"line_start": sig["line_start"], "signature_end": sig["signature_end"]},
                )

            candidates.append(SignatureCandidate(
                author=sig["author"],
                raw_timestamp=sig["raw_timestamp"] or "",
                date=self.parse_timestamp(sig["raw_timestamp"]),
                line_start_offset=sig["line_start"],
                comment_start_offset=sig["comment_start"],
                signature_start_offset=sig["signature_start"],
                signature_end_offset=sig["signature_end"],
                next_comment_start_offset=sig["next_comment_start"],
                dirty_signature=sig["dirty_signature"],
                ordinal=len(candidates),
                is_unsigned_template=sig["is_unsigned_template"],
            ))

        logger.debug(f"Extracted {len(candidates)} signatures from {len(source)} chars",
                     extra={"context": "signatures"})
        return candidates


def extract_signatures(source: str, config: Optional[SignatureConfig] = None) -> List[SignatureCandidate]:
    return SignatureExtractor(config).extract(source)
