from __future__ import annotations

import re
from typing import Optional, Pattern, Sequence, Tuple

DEFAULT_LANGUAGE = "en"

# Checked in order; the first match wins.
LANGUAGE_PATTERNS: Sequence[Tuple[str, Pattern[str]]] = (
    ("fr", re.compile(r"(bonjour|salut|merci|montre|produit|cherche|voudrais|pourrais)", re.IGNORECASE)),
    ("es", re.compile(r"(hola|gracias|producto|busco|quiero|puedo)", re.IGNORECASE)),
    ("de", re.compile(r"(hallo|danke|produkt|suche|möchte|kann)", re.IGNORECASE)),
    ("pt", re.compile(r"(olá|obrigado|produto|procuro|gostaria|posso)", re.IGNORECASE)),
    ("it", re.compile(r"(ciao|grazie|prodotto|cerco|vorrei|posso)", re.IGNORECASE)),
)


def normalize_locale(locale: Optional[str]) -> Optional[str]:
    """`"fr-CA"` -> `"fr"`; blank -> None."""
    primary = re.split(r"[-_]", str(locale or "").strip().lower(), maxsplit=1)[0]
    return primary or None


class LanguageDetector:
    """Keyword heuristics, not statistical language ID."""

    def __init__(self, patterns: Sequence[Tuple[str, Pattern[str]]] = LANGUAGE_PATTERNS, default: str = DEFAULT_LANGUAGE):
        self.patterns = patterns
        self.default = default

    def detect(self, message: str, locale_hint: Optional[str] = None) -> str:
        hinted = normalize_locale(locale_hint)
        if hinted:
            return hinted

        text = message or ""
        for language, pattern in self.patterns:
            if pattern.search(text):
                return language
        return self.default


language_detector = LanguageDetector()
