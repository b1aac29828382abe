"""
Text utilities shared by the matchers: wiki markup stripping, entity
normalization, length-preserving masking and bag-of-words overlap.

None of these functions parse wikitext properly. They produce text for
comparison purposes only.
"""

import html
import re
from typing import List

# === MARKUP STRIPPING ===

_HTML_COMMENT = re.compile(r'<!--.*?-->', re.DOTALL)
_HTML_COMMENT_PARTS = re.compile(r'(<!--)(.*?)(-->)', re.DOTALL)
_WIKILINK = re.compile(r'\[\[:?(?:[^|\[\]<>\n]+\|)?(.+?)\]\]')
_TEMPLATE = re.compile(r'\{\{:?(?:[^|{}<>\n]+)(?:\|(.+?))?\}\}')
_EXTERNAL_LINK = re.compile(r'\[https?://[^\[\]<>"\n ]+ *([^\]]*)\]')
_BOLD = re.compile(r"'''(.+?)'''")
_ITALIC = re.compile(r"''(.+?)''")
_LINE_BREAK = re.compile(r'<br ?/?>')
_OPENING_TAG = re.compile(r'<\w+(?: [\w ]+?=[^<>]+?| ?/?)>')
_CLOSING_TAG = re.compile(r'</\w+ ?>')
_MULTIPLE_SPACES = re.compile(r' {2,}')
_WHITESPACE = re.compile(r'\s+')

# Letters only: no digits, no underscore
_WORD = re.compile(r'[^\W\d_]{2,}')

_CODE_ENTITIES = (
    ('&lt;', '<'),
    ('&gt;', '>'),
    ('&#91;', '['),
    ('&#93;', ']'),
    ('&#123;', '{'),
    ('&#124;', '|'),
    ('&#125;', '}'),
)


def remove_wiki_markup(code: str) -> str:
    """
    Strips comments, link targets, template names, bold/italic quotes and HTML tags,
    then collapses runs of spaces. The result looks odd (template arguments are kept
    without their names) but is good enough to compare against rendered text.
    """
    code = _HTML_COMMENT.sub('', code)
    code = _WIKILINK.sub(r'\1', code)
    code = _TEMPLATE.sub(lambda m: m.group(1) or '', code)
    code = _EXTERNAL_LINK.sub(r'\1', code)
    code = _BOLD.sub(r'\1', code)
    code = _ITALIC.sub(r'\1', code)
    code = _LINE_BREAK.sub(' ', code)
    code = _OPENING_TAG.sub('', code)
    code = _CLOSING_TAG.sub('', code)
    code = _MULTIPLE_SPACES.sub(' ', code)
    return code.strip()


def normalize_code(text: str) -> str:
    """Replaces the entities the wiki uses to escape markup and collapses whitespace."""
    for entity, char in _CODE_ENTITIES:
        text = text.replace(entity, char)
    return _WHITESPACE.sub(' ', text)


def normalize_whitespace(text: str) -> str:
    return _WHITESPACE.sub(' ', text).strip()


def decode_html_entities(text: str) -> str:
    return html.unescape(text)


def hide_html_comments(code: str) -> str:
    """Blanks the interior of every HTML comment, keeping the code length."""
    return _HTML_COMMENT_PARTS.sub(lambda m: m.group(1) + ' ' * len(m.group(2)) + m.group(3), code)


def mask(code: str, start: int, end: int, char: str = ' ') -> str:
    """Replaces code[start:end] with `char` repeated, keeping newlines so line offsets survive."""
    masked = ''.join('\n' if c == '\n' else char for c in code[start:end])
    return code[:start] + masked + code[end:]


def normalize_user_name(name: str) -> str:
    """
    Canonical user name form: entities decoded, underscores as spaces, surrounding
    whitespace trimmed, first letter uppercase.
    """
    name = decode_html_entities(name).replace('_', ' ').strip()
    name = _MULTIPLE_SPACES.sub(' ', name)
    if not name:
        return name
    return name[0].upper() + name[1:]


# === OVERLAP ===

def _unique_words(text: str, case_insensitive: bool) -> List[str]:
    if case_insensitive:
        text = text.lower()
    seen = []
    for word in _WORD.findall(text):
        if word not in seen:
            seen.append(word)
    return seen


def word_overlap(s1: str, s2: str, case_insensitive: bool = False) -> float:
    """
    Share of unique words (two letters or more) the strings have in common.

    The denominator is the word count of `s2` plus every word of `s1` missing
    from `s2`, so the result is 1 only when both strings use the same words.
    Returns 0 when either string has no words.
    """
    words1 = _unique_words(s1, case_insensitive)
    words2 = _unique_words(s2, case_insensitive)
    if not words1 or not words2:
        return 0.0

    lookup = set(words2)
    total = len(words2)
    overlap = 0
    for word in words1:
        if word in lookup:
            overlap += 1
        else:
            total += 1

    return overlap / total
