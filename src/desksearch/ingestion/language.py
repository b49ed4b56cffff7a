"""Stop-word based language guess for extracted text."""

from __future__ import annotations

from collections import Counter

from desksearch.index.querysyntax import words
from desksearch.models import SupportedLanguage

_STOP_WORDS = {
    SupportedLanguage.en: {"the", "and", "of", "to", "is", "in", "that", "it", "with", "for", "this", "are"},
    SupportedLanguage.de: {"der", "die", "und", "das", "ist", "nicht", "mit", "ein", "eine", "auf", "ich", "sie"},
    SupportedLanguage.fr: {"le", "la", "les", "et", "est", "des", "une", "pour", "dans", "que", "pas", "sur"},
    SupportedLanguage.es: {"el", "los", "las", "y", "es", "una", "por", "para", "con", "que", "del", "como"},
    SupportedLanguage.it: {"il", "di", "che", "e", "non", "per", "una", "sono", "della", "con", "gli", "nel"},
    SupportedLanguage.pt: {"o", "os", "as", "e", "não", "uma", "para", "com", "que", "do", "da", "em"},
    SupportedLanguage.nl: {"de", "het", "een", "en", "van", "is", "niet", "op", "dat", "met", "voor", "zijn"},
}

# Number of leading words looked at
SAMPLE_SIZE = 2000
MIN_HITS = 3


def guess_language(text: str) -> SupportedLanguage:
    sample = Counter(words(text)[:SAMPLE_SIZE])
    best, best_hits = SupportedLanguage.unknown, 0
    for language, stop_words in _STOP_WORDS.items():
        hits = sum(sample[word] for word in stop_words)
        if hits > best_hits:
            best, best_hits = language, hits
    if best_hits < MIN_HITS:
        return SupportedLanguage.unknown
    return best
