"""
matchers.py — Text Matcher Primitives
=====================================

Building blocks for the fraud pattern table. Every matcher runs over text
that already went through normalize_text() and returns the distinct cues it
found, in first-seen order. An empty list means "no match".

Available matchers:
    - KeywordMatcher   : whole-word/phrase containment from a keyword set
    - RegexMatcher     : a single compiled regular expression
    - RepeatedMatcher  : a regex that must occur at least N times
    - LengthMatcher    : text longer than a character threshold
    - AmountSpreadMatcher : quoted dollar amounts that disagree by a factor
    - AnyOf            : union of several matchers (at least one must hit)
    - AllOf            : co-occurrence (every sub-matcher must hit)

Linear-time matching:
    Keyword sets compile to a single alternation of escaped literals guarded
    by word lookarounds. Hand-written regexes avoid nested quantifiers, and
    any unbounded character class that a later token must follow is anchored
    with a lookbehind and given an upper bound, so a long run of word
    characters is tried from one start position only. Combined with the
    evaluation cap in the detector this keeps worst-case latency linear.
"""

import re
import unicodedata
from typing import Iterable, List

# Typographic quotes and apostrophes folded to ASCII
_QUOTE_MAP = str.maketrans({
    "‘": "'", "’": "'", "ʼ": "'", "′": "'",
    "“": '"', "”": '"',
})
_WHITESPACE = re.compile(r'\s+')


def normalize_text(text: str) -> str:
    """Fold case, accents, typographic quotes and whitespace runs.

    "Wéstern   UNION" and "western union" normalize to the same string, so
    the pattern table only has to list plain lowercase ASCII vocabulary.
    """
    decomposed = unicodedata.normalize("NFKD", text)
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return _WHITESPACE.sub(" ", stripped.translate(_QUOTE_MAP)).casefold().strip()


def _unique(items: Iterable[str]) -> List[str]:
    seen = set()
    ordered: List[str] = []
    for item in items:
        if item not in seen:
            seen.add(item)
            ordered.append(item)
    return ordered


class Matcher:
    """Base class: subclasses implement find()."""

    def find(self, text: str) -> List[str]:
        raise NotImplementedError

    def matches(self, text: str) -> bool:
        return bool(self.find(text))


class KeywordMatcher(Matcher):
    """Match any keyword or phrase from a fixed set as a whole word.

    "ups" matches "via ups" but not "groups". Longer phrases win over their
    prefixes at the same position ("no inspection needed" over "no inspection").
    """

    def __init__(self, *keywords: str) -> None:
        if not keywords:
            raise ValueError("KeywordMatcher needs at least one keyword")
        self.keywords = tuple(_unique(normalize_text(k) for k in keywords))
        alternation = "|".join(
            re.escape(k) for k in sorted(self.keywords, key=len, reverse=True)
        )
        self._regex = re.compile(r'(?<!\w)(?:' + alternation + r')(?!\w)')

    def find(self, text: str) -> List[str]:
        return _unique(m.group(0) for m in self._regex.finditer(text))

    def __repr__(self) -> str:
        return f"KeywordMatcher({len(self.keywords)} keywords)"


class RegexMatcher(Matcher):
    def __init__(self, pattern: str) -> None:
        self.pattern = pattern
        self._regex = re.compile(pattern, re.IGNORECASE)

    def find(self, text: str) -> List[str]:
        return _unique(m.group(0) for m in self._regex.finditer(text))

    def __repr__(self) -> str:
        return f"RegexMatcher({self.pattern!r})"


class RepeatedMatcher(Matcher):
    """Match when a regex occurs at least min_count times."""

    def __init__(self, pattern: str, min_count: int) -> None:
        if min_count < 1:
            raise ValueError("min_count must be at least 1")
        self.pattern = pattern
        self.min_count = min_count
        self._regex = re.compile(pattern, re.IGNORECASE)

    def find(self, text: str) -> List[str]:
        occurrences = [m.group(0) for m in self._regex.finditer(text)]
        if len(occurrences) < self.min_count:
            return []
        return _unique(occurrences)


class LengthMatcher(Matcher):
    """Match text strictly longer than min_length characters."""

    def __init__(self, min_length: int) -> None:
        self.min_length = min_length

    def find(self, text: str) -> List[str]:
        if len(text) > self.min_length:
            return [f"{len(text)} characters"]
        return []


class AmountSpreadMatcher(Matcher):
    """Match when the largest quoted dollar amount exceeds factor x the smallest.

    "$5,000 ... only $1,200 today" returns both amounts; a single amount or
    amounts within the factor return nothing.
    """

    _AMOUNT = re.compile(r'(?<![\w$])\$\s?(\d[\d,]{0,14})')

    def __init__(self, factor: float = 2.0) -> None:
        if factor <= 1:
            raise ValueError("factor must be greater than 1")
        self.factor = factor

    def find(self, text: str) -> List[str]:
        quoted: List[str] = []
        values: List[int] = []
        for m in self._AMOUNT.finditer(text):
            digits = m.group(1).replace(",", "")
            quoted.append(f"${m.group(1).rstrip(',')}")
            values.append(int(digits))
        if len(values) < 2 or max(values) <= min(values) * self.factor:
            return []
        return _unique(quoted)


class AnyOf(Matcher):
    def __init__(self, *matchers: Matcher) -> None:
        if not matchers:
            raise ValueError("AnyOf needs at least one matcher")
        self.matchers = matchers

    def find(self, text: str) -> List[str]:
        found: List[str] = []
        for matcher in self.matchers:
            found.extend(matcher.find(text))
        return _unique(found)


class AllOf(Matcher):
    """Co-occurrence: every sub-matcher must find something.

    Used where a single cue is too common in honest conversations, e.g. a
    shipping term alone versus a shipping term plus a courier fee.
    """

    def __init__(self, *matchers: Matcher) -> None:
        if len(matchers) < 2:
            raise ValueError("AllOf needs at least two matchers")
        self.matchers = matchers

    def find(self, text: str) -> List[str]:
        found: List[str] = []
        for matcher in self.matchers:
            cues = matcher.find(text)
            if not cues:
                return []
            found.extend(cues)
        return _unique(found)
