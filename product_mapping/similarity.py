#!/usr/bin/env python3
"""
Similarity measures used by the product matcher

All measures work on normalized text (upper case, A-Z 0-9 and single spaces)
and on keyword lists (normalized words longer than one character, minus
stopwords).
"""

import re
from typing import Iterable, List, Optional

from rapidfuzz.distance import Levenshtein

FREE_RE = re.compile(r'\+?\s*\d*\s*FREE')
QUOTES_RE = re.compile(r"['`\"*]")
NON_ALNUM_RE = re.compile(r'[^A-Z0-9\s]')

DEFAULT_STOPWORDS = {'THE', 'AND', 'FOR', 'WITH', 'TAB', 'TABS', 'CAP', 'CAPS', 'OF', 'MICR', 'MICRO'}


def normalize(text) -> str:
    """'Dolo-650 Tab (+2 free)' -> 'DOLO 650 TAB'"""
    t = str(text or '').upper()
    t = FREE_RE.sub('', t)
    t = QUOTES_RE.sub('', t)
    t = NON_ALNUM_RE.sub(' ', t)
    return ' '.join(t.split())


def keywords(text, stopwords: Optional[Iterable[str]] = None) -> List[str]:
    stop = DEFAULT_STOPWORDS if stopwords is None else set(stopwords)
    return [w for w in normalize(text).split() if len(w) > 1 and w not in stop]


def jaccard(words1: List[str], words2: List[str]) -> float:
    set1, set2 = set(words1), set(words2)
    if not set1 and not set2:
        return 1.0
    if not set1 or not set2:
        return 0.0
    return len(set1 & set2) / len(set1 | set2)


def word_overlap(words1: List[str], words2: List[str]) -> float:
    """Shared words counted on both sides over the total word count"""
    if not words1 or not words2:
        return 0.0
    common = [w for w in words1 if w in words2]
    return (len(common) * 2) / (len(words1) + len(words2))


def partial_word_match(words1: List[str], words2: List[str]) -> float:
    """
    Credit for every word pair: exact 1.0, containment 0.8 (both 4+ chars),
    shared prefix 0.6 (both 3+ chars, prefix of up to 4), over the longer list
    """
    matches = 0.0
    for w1 in words1:
        for w2 in words2:
            if w1 == w2:
                matches += 1
                continue
            if len(w1) >= 4 and len(w2) >= 4 and (w1 in w2 or w2 in w1):
                matches += 0.8
                continue
            if len(w1) >= 3 and len(w2) >= 3:
                n = min(len(w1), len(w2), 4)
                if w1[:n] == w2[:n]:
                    matches += 0.6
    total = max(len(words1), len(words2))
    return min(1.0, matches / total) if total else 0.0


def levenshtein_similarity(text1: str, text2: str) -> float:
    """1 - edit distance / longer length"""
    if not text1 and not text2:
        return 1.0
    return Levenshtein.normalized_similarity(text1, text2)


def keyword_counts(words1: List[str], words2: List[str]):
    """(exact, partial) counts of shared 4+ character keywords"""
    exact = partial = 0
    for w1 in words1:
        for w2 in words2:
            if w1 == w2 and len(w1) >= 4:
                exact += 1
                continue
            if len(w1) >= 4 and len(w2) >= 4 and (w1 in w2 or w2 in w1):
                partial += 1
    return exact, partial
