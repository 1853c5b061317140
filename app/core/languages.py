from __future__ import annotations

DEFAULT_LANGUAGE = "en"

LANGUAGE_NAMES = {
    "en": "English",
    "te": "Telugu",
    "hi": "Hindi",
    "ta": "Tamil",
    "kn": "Kannada",
    "ml": "Malayalam",
}

# Locale tags used by speech recognizers.
SPEECH_LOCALES = {
    "en": "en-US",
    "te": "te-IN",
    "hi": "hi-IN",
    "ta": "ta-IN",
    "kn": "kn-IN",
    "ml": "ml-IN",
}


def normalize_language(code: str | None) -> str:
    c = (code or "").strip().lower()
    if c in LANGUAGE_NAMES:
        return c
    # Accept full names too ("Hindi")
    for k, name in LANGUAGE_NAMES.items():
        if c == name.lower():
            return k
    return DEFAULT_LANGUAGE


def language_name(code: str | None) -> str:
    return LANGUAGE_NAMES[normalize_language(code)]


def speech_locale(code: str | None) -> str:
    return SPEECH_LOCALES[normalize_language(code)]
