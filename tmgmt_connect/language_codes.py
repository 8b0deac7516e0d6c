"""
Remote language code mappings and utilities.

Local languages are the lowercase codes jobs are created with ('en', 'pt-br').
Remote languages are the uppercase codes the LangConnector API understands
('EN', 'PT-BR'). The API accepts more target variants than source variants,
so source languages additionally collapse regional variants to the base code.

XTM Connect does not map remote languages; local codes are sent as they are.
"""

from typing import Dict, Optional

# Local language code -> LangConnector remote language code
DEFAULT_REMOTE_LANGUAGE_MAPPINGS = {
    'ar': 'AR',
    'bg': 'BG',
    'cs': 'CS',
    'da': 'DA',
    'de': 'DE',
    'el': 'EL',
    'en': 'EN',
    'es': 'ES',
    'et': 'ET',
    'fi': 'FI',
    'fr': 'FR',
    'hu': 'HU',
    'id': 'ID',
    'it': 'IT',
    'ja': 'JA',
    'ko': 'KO',
    'lt': 'LT',
    'lv': 'LV',
    'nb': 'NB',
    'nl': 'NL',
    'pl': 'PL',
    'pt-br': 'PT-BR',
    'pt-pt': 'PT-PT',
    'ro': 'RO',
    'ru': 'RU',
    'sk': 'SK',
    'sl': 'SL',
    'sv': 'SV',
    'tr': 'TR',
    'uk': 'UK',
    'zh': 'ZH',
}

# Remote languages supported by LangConnector
SUPPORTED_REMOTE_LANGUAGES = {
    'AR': 'Arabic',
    'BG': 'Bulgarian',
    'CS': 'Czech',
    'DA': 'Danish',
    'DE': 'German',
    'EL': 'Greek',
    'EN-GB': 'English (British)',
    'EN-US': 'English (American)',
    'EN': 'English',
    'ES': 'Spanish',
    'ET': 'Estonian',
    'FI': 'Finnish',
    'FR': 'French',
    'HU': 'Hungarian',
    'ID': 'Indonesian',
    'IT': 'Italian',
    'JA': 'Japanese',
    'KO': 'Korean',
    'LT': 'Lithuanian',
    'LV': 'Latvian',
    'NB': 'Norwegian (Bokmål)',
    'NL': 'Dutch',
    'PL': 'Polish',
    'PT-PT': 'Portuguese (excluding Brazilian Portuguese)',
    'PT-BR': 'Portuguese (Brazilian)',
    'PT': 'Portuguese (deprecated, select PT-PT or PT-BR instead)',
    'RO': 'Romanian',
    'RU': 'Russian',
    'SK': 'Slovak',
    'SL': 'Slovenian',
    'SV': 'Swedish',
    'TR': 'Turkish',
    'UK': 'Ukrainian',
    'ZH': 'Chinese (simplified)',
}

# Source languages the API only accepts in their base form
SOURCE_LANGUAGE_FIXES = {
    'EN-GB': 'EN',
    'EN-US': 'EN',
    'PT-BR': 'PT',
    'PT-PT': 'PT',
}


def map_remote_language(code: str, mappings: Optional[Dict[str, str]] = None) -> str:
    """
    Map a local language code to the remote vocabulary.

    Custom mappings (translator settings) win over the defaults; unmapped
    codes pass through unchanged.

    Examples:
        >>> map_remote_language('pt-br')
        'PT-BR'
        >>> map_remote_language('pt-br', {'pt-br': 'PT-PT'})
        'PT-PT'
        >>> map_remote_language('xx')
        'xx'
    """
    if mappings and code in mappings:
        return mappings[code]
    return DEFAULT_REMOTE_LANGUAGE_MAPPINGS.get(code, code)


def fix_source_language(code: str) -> str:
    """
    Collapse a remote source language to the variant the API accepts as source.

    Examples:
        >>> fix_source_language('EN-GB')
        'EN'
        >>> fix_source_language('PT-BR')
        'PT'
        >>> fix_source_language('FR')
        'FR'
    """
    return SOURCE_LANGUAGE_FIXES.get(code, code)


def get_supported_target_languages(source_language: str) -> Dict[str, str]:
    """
    Get the remote languages a source language can be translated into.

    There are no language pairs: any supported language translates into any
    other. An unsupported source language has no targets.
    """
    if source_language not in SUPPORTED_REMOTE_LANGUAGES:
        return {}
    return {
        code: name
        for code, name in SUPPORTED_REMOTE_LANGUAGES.items()
        if code != source_language
    }
