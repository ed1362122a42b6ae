DEFAULT_LANGUAGE = "en"

LANGUAGE_NAMES = {
    "en": "English",
    "hi": "Hindi",
    "kn": "Kannada",
    "ta": "Tamil",
    "te": "Telugu",
    "bn": "Bengali",
    "ml": "Malayalam",
    "ur": "Urdu",
}

# Locale tags handed to the platform speech engines
SPEECH_LOCALES = {
    "en": "en-US",
    "hi": "hi-IN",
    "kn": "kn-IN",
    "ta": "ta-IN",
    "te": "te-IN",
    "bn": "bn-IN",
    "ml": "ml-IN",
    "ur": "ur-IN",
}


def language_name(code: str) -> str:
    return LANGUAGE_NAMES.get((code or "").lower(), LANGUAGE_NAMES[DEFAULT_LANGUAGE])


def speech_locale(code: str) -> str:
    return SPEECH_LOCALES.get((code or "").lower(), SPEECH_LOCALES[DEFAULT_LANGUAGE])
