"""Text cleanup shared by every scraper: markup stripping, name keys, iCalendar quoting."""
import html
import re

# Line-level markup that should survive as whitespace rather than vanish.
_LINE_BREAK_RE = re.compile(r'<br\b[^<>]*>[ \t]*', re.IGNORECASE)
_PARAGRAPH_RE = re.compile(r'</?p\b[^<>]*>[ \t]*', re.IGNORECASE)
_BLOCK_RE = re.compile(r'</?(?:div|li|h[1-6])\b[^<>]*>[ \t]*', re.IGNORECASE)
# Tag-shaped only: a '<' not followed by a name, '/', '!' or '?' is literal text.
_TAG_RE = re.compile(r'<[A-Za-z/!?][^<>]*>')

# Punctuation that shows up mis-encoded, or typographic, in scraped pages.
PUNCTUATION_FIXES = (
    ('\u00e2\u20ac\u2122', "'"),    # UTF-8 read as cp1252
    ('\u00e2\u20ac\u02dc', "'"),
    ('\u00e2\u20ac\u0153', '"'),
    ('\u00e2\u20ac\u009d', '"'),
    ('\u00e2\u20ac\u201c', ' -- '),
    ('\u00e2\u20ac\u201d', ' -- '),
    ('\u00c2\u00a0', ' '),
    ('\u2010', '-'),
    ('\u2013', ' -- '),
    ('\u2014', ' -- '),
    ('\u2018', "'"),
    ('\u2019', "'"),
    ('\u201c', '"'),
    ('\u201d', '"'),
    ('\u2022', '*'),
    ('\u2026', '...'),
    ('\u2028', '\n'),
    ('\u2032', "'"),
    ('\u2033', '"'),
    ('\u02bb', "'"),
    ('\u02bc', "'"),
    ('\u00a0', ' '),
    ('\x1f', ''),
    ('\x0b', '\n\n'),
)

STOP_WORDS = ('a', 'an', 'and', 'in', 'of', 'on', 'for', 'the', 'with',
              'dj', 'los', 'le', 'les', 'la')
_STOP_WORD_RE = re.compile(r'\b(?:%s)\b' % '|'.join(STOP_WORDS))
_NON_ALNUM_RE = re.compile(r'[^a-z\d]')
_REPEAT_RE = re.compile(r'(.)\1+')

_ICAL_SPECIAL_RE = re.compile(r'(["\\,;])')
_ICAL_ESCAPE_RE = re.compile(r'\\(.)')
_ICAL_FOLD_RE = re.compile(r'\r?\n[ \t]')


def _normalize_once(text: str) -> str:
    text = _LINE_BREAK_RE.sub('\n', text)
    text = _PARAGRAPH_RE.sub('\n\n', text)
    text = _BLOCK_RE.sub('\n', text)
    text = _TAG_RE.sub('', text)
    text = html.unescape(text)

    for bad, good in PUNCTUATION_FIXES:
        text = text.replace(bad, good)

    text = text.replace('\r\n', '\n').replace('\r', '\n')
    text = text.replace('\t', ' ')
    text = re.sub(r' +', ' ', text)
    text = re.sub(r'^ +| +$', '', text, flags=re.MULTILINE)
    text = re.sub(r'\n{3,}', '\n\n', text)
    return text.strip()


def normalize(raw: str) -> str:
    """
    Strip HTML and reduce a scraped fragment to plain, tidy text.

    Break tags become newlines, other tags are dropped, entities are decoded
    and whitespace is collapsed (at most one blank line in a row). The pass
    is repeated until nothing changes, so double-escaped input such as
    ``&amp;lt;b&amp;gt;`` is fully cleaned and the function is idempotent.

    Args:
        raw: Text or HTML; None is treated as empty

    Returns:
        Cleaned text
    """
    if not raw:
        return ''

    text = raw
    while True:
        cleaned = _normalize_once(text)
        if cleaned == text:
            return cleaned
        text = cleaned


def simplify(name: str) -> str:
    """
    Reduce an artist name to a loose match key.

    Basically a soundex of the name: stop-words, punctuation and doubled
    letters do not matter, so "The Beatles" and "Beatles!" share a key.

    Args:
        name: Display name

    Returns:
        Match key; never empty for a non-empty name
    """
    text = name.lower()
    original = text

    previous = None
    while previous != text:
        previous = text
        text = _STOP_WORD_RE.sub('', text)

    text = _NON_ALNUM_RE.sub('', text)
    text = _REPEAT_RE.sub(r'\1', text)
    return text or original


def ical_quote(text: str) -> str:
    """
    Quote text for use as an iCalendar property value.

    Backslash, comma, semicolon and double quote are backslash-escaped.
    Newlines become a literal ``\\n`` followed by a folded continuation line.

    Args:
        text: Plain text

    Returns:
        Escaped, folded value
    """
    text = text.rstrip()
    text = _ICAL_SPECIAL_RE.sub(r'\\\1', text)
    text = text.replace('\r\n', '\n').replace('\r', '\n')
    text = re.sub(r'\n{3,}', '\n\n', text)
    return text.replace('\n', '\\n\n ')


def ical_unquote(value: str) -> str:
    """Unfold and unescape an iCalendar property value; inverse of ical_quote."""
    value = _ICAL_FOLD_RE.sub('', value)

    def _unescape(match):
        char = match.group(1)
        return '\n' if char in 'nN' else char

    return _ICAL_ESCAPE_RE.sub(_unescape, value)


def ical_datetime(moment) -> str:
    """Local date-time in iCalendar basic format, e.g. 20120315T200000."""
    return moment.strftime('%Y%m%dT%H%M%S')
