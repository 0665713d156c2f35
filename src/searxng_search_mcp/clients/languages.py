import re

# Locales known to SearXNG (searx/sxng_locales.py)
LANGUAGE_CODES: frozenset[str] = frozenset(
    {
        # fmt: off
        "af", "ar", "be", "bg", "ca", "cs", "cy", "da", "de", "el", "en", "es", "et", "eu", "fa", "fi",
        "fr", "ga", "gd", "gl", "he", "hi", "hr", "hu", "id", "is", "it", "ja", "kn", "ko", "lt", "lv",
        "ml", "mr", "nb", "nl", "pl", "pt", "ro", "ru", "sk", "sl", "sq", "sv", "ta", "te", "th", "tr",
        "uk", "ur", "vi", "zh",
        "ar-sa", "bg-bg", "cs-cz", "da-dk", "de-at", "de-be", "de-ch", "de-de", "el-gr", "en-au", "en-ca",
        "en-gb", "en-ie", "en-in", "en-nz", "en-ph", "en-pk", "en-sg", "en-us", "en-za", "es-ar", "es-cl",
        "es-co", "es-es", "es-mx", "es-pe", "et-ee", "fi-fi", "fr-be", "fr-ca", "fr-ch", "fr-fr", "hu-hu",
        "id-id", "it-ch", "it-it", "ja-jp", "ko-kr", "nb-no", "nl-be", "nl-nl", "pl-pl", "pt-br", "pt-pt",
        "ro-ro", "ru-ru", "sv-se", "th-th", "tr-tr", "vi-vn", "zh-cn", "zh-hk", "zh-tw",
        # fmt: on
    }
)

LANGUAGE_CODE_PATTERN = re.compile(r"^[a-z]{2,3}(-[a-z]{2})?$")


def normalize_language(language: str | None) -> str | None:
    """Return the trimmed, lower-cased language code if SearXNG knows it, otherwise None."""

    if not language:
        return None

    cleaned = language.strip().lower()

    if not LANGUAGE_CODE_PATTERN.match(cleaned):
        return None

    return cleaned if cleaned in LANGUAGE_CODES else None
