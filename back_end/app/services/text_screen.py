# app/services/text_screen.py
"""
Pre-submission lexical screener (Thai / English).

screen(text) is side-effect free; the caller decides whether to block, warn or allow.
1) blocklists (English always, Thai too when the text has Thai), each term tried three ways:
   a. word-boundary match on the raw text; Thai boundaries also include newmm
      word edges
   b. match on the normalized text (spacing / punctuation / zero-width stripped),
      mapped back to the original span and re-checked for boundaries there
   c. maximal same-script letter runs compared to the normalized term
2) no dictionary hit -> per-language classifier in a worker thread, under a timeout,
   failing open on any error
"""
from __future__ import annotations

import asyncio
import logging
import re
import unicodedata
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Dict, FrozenSet, List, Mapping, Optional, Sequence, Tuple

from pythainlp.corpus.common import thai_words
from pythainlp.tokenize import word_tokenize
from pythainlp.util import dict_trie

from app.core.config import settings
from app.core.errors import ClassifierUnavailable
from app.models.registry import ModelRegistry
from app.services.text_classifier import TextClassifier

logger = logging.getLogger(__name__)

LANG_TH = "th"
LANG_EN = "en"

BLOCKLIST: Dict[str, Tuple[str, ...]] = {
    LANG_TH: ("ควย", "เหี้ย", "สัส", "ไอ้เหี้ย", "ไอ้สัส", "มึง", "กู", "เย็ด", "หี", "จิ๋ม"),
    LANG_EN: ("fuck", "shit", "bitch", "ass", "dick", "pussy", "cunt", "bastard", "asshole"),
}

# ordinary words that contain a Thai term; added to the segmenter dictionary
# so newmm keeps them whole (Google, chest, army clerk)
THAI_SAFE_WORDS: Tuple[str, ...] = ("กูเกิล", "หีบ", "สัสดี")

# soft hyphen, mongolian vowel separator, zero-width / bidi marks, word joiner, BOM
_INVISIBLE = frozenset("\u00ad\u180e\u200b\u200c\u200d\u200e\u200f\u2060\u2061\u2062\u2063\u2064\ufeff")

_THAI_RE = re.compile(r"[\u0e00-\u0e7f]")

# Thai consonants, vowels and tone marks; excludes ฯ, ๆ, digits and symbols
_THAI_LETTER = r"\u0e01-\u0e2e\u0e30-\u0e3a\u0e40-\u0e45\u0e47-\u0e4e"
_LETTER_CLASS = {
    LANG_TH: rf"[{_THAI_LETTER}]",
    LANG_EN: r"[^\W\d_\u0e00-\u0e7f]",
}
_SEGMENT_RE = {
    LANG_TH: re.compile(r"[\u0e00-\u0e7f]+"),
    LANG_EN: re.compile(r"[^\W\d_\u0e00-\u0e7f]+"),
}
_THAI_LETTER_RE = re.compile(rf"[{_THAI_LETTER}]")


def detect_language(text: str) -> str:
    return LANG_TH if _THAI_RE.search(text) else LANG_EN


def _is_thai(ch: str) -> bool:
    return "\u0e00" <= ch <= "\u0e7f"


def _is_letter(ch: str, lang: str) -> bool:
    if lang == LANG_TH:
        return bool(_THAI_LETTER_RE.match(ch))
    return ch.isalpha() and not _is_thai(ch)


def _keeps(ch: str) -> bool:
    if ch in _INVISIBLE:
        return False
    if _is_thai(ch):
        return bool(_THAI_LETTER_RE.match(ch))
    # letters and combining marks; drops whitespace, punctuation, symbols, digits
    return unicodedata.category(ch)[0] in ("L", "M")


@dataclass(frozen=True)
class NormalizedText:
    text: str
    # positions[i] = index in the original text of text[i]
    positions: Tuple[int, ...]


def normalize_text(text: str) -> NormalizedText:
    chars: List[str] = []
    positions: List[int] = []
    for i, ch in enumerate(text):
        if not _keeps(ch):
            continue
        # Thai has no case; lower() may expand one char into several
        for c in (ch if _is_thai(ch) else ch.lower()):
            chars.append(c)
            positions.append(i)
    return NormalizedText("".join(chars), tuple(positions))


@lru_cache(maxsize=4)
def _thai_dictionary(extra_words: FrozenSet[str]):
    return dict_trie(dict_source=set(thai_words()) | set(extra_words))


def thai_word_cuts(text: str, extra_words: FrozenSet[str] = frozenset()) -> FrozenSet[int]:
    """
    Offsets in `text` where a Thai word may start or end:
    newmm token edges plus every edge next to a non-Thai-letter character.
    """
    cuts = {0, len(text)}
    pos = 0
    tokens = word_tokenize(
        text, custom_dict=_thai_dictionary(extra_words), engine="newmm", keep_whitespace=True
    )
    for token in tokens:
        pos += len(token)
        cuts.add(pos)
    for i in range(1, len(text)):
        if not _is_letter(text[i - 1], LANG_TH) or not _is_letter(text[i], LANG_TH):
            cuts.add(i)
    return frozenset(cuts)


def _boundary_aligned(
    text: str, first: int, last: int, lang: str, cuts: Optional[FrozenSet[int]] = None
) -> bool:
    if cuts is not None:
        return first in cuts and last + 1 in cuts
    if first > 0 and _is_letter(text[first - 1], lang):
        return False
    if last + 1 < len(text) and _is_letter(text[last + 1], lang):
        return False
    return True


@dataclass(frozen=True)
class _Term:
    raw: str
    normalized: str
    pattern: "re.Pattern[str]"


def _compile_term(raw: str, lang: str) -> _Term:
    letter = _LETTER_CLASS[lang]
    flags = re.IGNORECASE if lang == LANG_EN else 0
    pattern = re.compile(rf"(?<!{letter}){re.escape(raw)}(?!{letter})", flags)
    return _Term(raw=raw, normalized=normalize_text(raw).text, pattern=pattern)


def _raw_hit(text: str, term: _Term, lang: str, cuts: Optional[FrozenSet[int]]) -> bool:
    if cuts is None:
        return term.pattern.search(text) is not None
    start = text.find(term.raw)
    while start != -1:
        if _boundary_aligned(text, start, start + len(term.raw) - 1, lang, cuts):
            return True
        start = text.find(term.raw, start + 1)
    return False


def _normalized_hit(
    text: str, norm: NormalizedText, term: str, lang: str, cuts: Optional[FrozenSet[int]] = None
) -> bool:
    if not term:
        return False
    start = norm.text.find(term)
    while start != -1:
        first = norm.positions[start]
        last = norm.positions[start + len(term) - 1]
        if _boundary_aligned(text, first, last, lang, cuts):
            return True
        start = norm.text.find(term, start + 1)
    return False


def _segment_hit(text: str, term: str, lang: str) -> bool:
    if not term:
        return False
    for m in _SEGMENT_RE[lang].finditer(text):
        segment = m.group(0)
        if lang == LANG_TH:
            candidates = (segment, "".join(_THAI_LETTER_RE.findall(segment)))
        else:
            candidates = (segment.lower(),)
        for candidate in candidates:
            if len(candidate) == len(term) and candidate == term:
                return True
    return False


def severity_for(confidence: float) -> str:
    if confidence > 0.8:
        return "high"
    if confidence > 0.6:
        return "medium"
    return "low"


@dataclass
class ScreenVerdict:
    is_inappropriate: bool
    confidence: float
    severity: str  # "low" | "medium" | "high"
    matched_terms: List[str] = field(default_factory=list)


@dataclass
class ScreenerConfig:
    fail_open: bool = True
    classifier_timeout_sec: float = 3.0
    inappropriate_labels: Sequence[str] = ("INAPPROPRIATE", "toxic")
    # multi-label heads (toxic-bert) report "toxic" as top-1 for clean text too, with a tiny score
    inappropriate_min_score: float = 0.5

    @classmethod
    def from_settings(cls) -> "ScreenerConfig":
        return cls(
            fail_open=settings.SCREENER_FAIL_OPEN,
            classifier_timeout_sec=settings.SCREENER_CLASSIFIER_TIMEOUT_SEC,
            inappropriate_labels=tuple(settings.SCREENER_INAPPROPRIATE_LABELS),
            inappropriate_min_score=settings.SCREENER_INAPPROPRIATE_MIN_SCORE,
        )


class TextScreener:
    def __init__(
        self,
        cfg: Optional[ScreenerConfig] = None,
        classifiers: Optional[Mapping[str, TextClassifier]] = None,
        blocklist: Optional[Mapping[str, Sequence[str]]] = None,
    ):
        self.cfg = cfg or ScreenerConfig.from_settings()
        # None -> ModelRegistry
        self._classifiers = dict(classifiers) if classifiers is not None else None
        self._terms: Dict[str, List[_Term]] = {
            lang: [_compile_term(t, lang) for t in terms]
            for lang, terms in (blocklist or BLOCKLIST).items()
        }
        self._labels = {label.lower() for label in self.cfg.inappropriate_labels}
        # Thai terms also go into the segmenter dictionary so newmm cuts around them
        self._thai_extra = frozenset(t.raw for t in self._terms.get(LANG_TH, [])) | frozenset(THAI_SAFE_WORDS)

    def classifier_for(self, lang: str) -> TextClassifier:
        if self._classifiers is None:
            return ModelRegistry.get_classifier(lang)
        clf = self._classifiers.get(lang)
        if clf is None:
            raise ClassifierUnavailable(f"No classifier registered for '{lang}'")
        return clf

    def match_terms(self, text: str) -> List[str]:
        """
        Dictionary pass only. Returns every matched term, Thai list first, each
        list in blocklist order. Mixed Thai/English text is checked against both.
        """
        if not text:
            return []
        norm = normalize_text(text)
        langs = [LANG_TH, LANG_EN] if detect_language(text) == LANG_TH else [LANG_EN]

        found: List[str] = []
        for lang in langs:
            cuts = thai_word_cuts(text, self._thai_extra) if lang == LANG_TH else None
            for term in self._terms.get(lang, []):
                if (
                    _raw_hit(text, term, lang, cuts)
                    or _normalized_hit(text, norm, term.normalized, lang, cuts)
                    or _segment_hit(text, term.normalized, lang)
                ):
                    found.append(term.raw)
        return found

    async def _classify(self, lang: str, text: str) -> Tuple[str, float]:
        clf = self.classifier_for(lang)
        return await asyncio.wait_for(
            asyncio.to_thread(clf.classify, text),
            timeout=self.cfg.classifier_timeout_sec,
        )

    async def screen(self, text: str) -> ScreenVerdict:
        if not text or not text.strip():
            return ScreenVerdict(is_inappropriate=False, confidence=0.0, severity="low")

        found = self.match_terms(text)
        if found:
            return ScreenVerdict(
                is_inappropriate=True,
                confidence=1.0,
                severity="high" if len(set(found)) > 2 else "medium",
                matched_terms=found,
            )

        lang = detect_language(text)
        try:
            label, score = await self._classify(lang, text)
        except Exception as e:
            if not self.cfg.fail_open:
                if isinstance(e, ClassifierUnavailable):
                    raise
                raise ClassifierUnavailable(f"{type(e).__name__}: {e}") from e
            logger.warning("screener classifier failed (lang=%s), not flagging: %r", lang, e)
            return ScreenVerdict(is_inappropriate=False, confidence=0.0, severity="low")

        confidence = float(min(1.0, max(0.0, score)))
        flagged = label.lower() in self._labels and confidence >= self.cfg.inappropriate_min_score
        return ScreenVerdict(
            is_inappropriate=flagged,
            confidence=confidence,
            severity=severity_for(confidence),
        )
