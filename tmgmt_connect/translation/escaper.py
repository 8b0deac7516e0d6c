"""
Escaping of non-translatable inline spans.

Before text is sent out, designated spans are wrapped in the translator's
sentinel tags (e.g. `<lang_connector translate="no">...</lang_connector>`)
so the remote service leaves them alone. Returned translations are
entity-decoded, URL-decoded and then stripped of the sentinels.
"""

import html
import re
from typing import Any, Dict, List
from urllib.parse import unquote

from tmgmt_connect.logger import get_logger

logger = get_logger(__name__)


def designate_spans(text: str, patterns: List[str]) -> Dict[int, Dict[str, str]]:
    """
    Find spans to keep untranslated by regex.

    Patterns are applied longest first; a match overlapping an already
    designated span is ignored.

    Returns:
        '#escape' mapping: {position: {"string": matched_text}}
    """
    if not text or not patterns:
        return {}

    spans: Dict[int, Dict[str, str]] = {}
    taken = []

    # Sort patterns by length (longest first) to handle overlapping patterns
    sorted_patterns = sorted(patterns, key=lambda p: len(p) if isinstance(p, str) else 0, reverse=True)

    for pattern in sorted_patterns:
        for match in re.finditer(pattern, text):
            start, end = match.span()
            if start == end:
                continue
            if any(start < t_end and t_start < end for t_start, t_end in taken):
                continue
            taken.append((start, end))
            spans[start] = {"string": match.group(0)}

    if spans:
        logger.debug(f"Designated {len(spans)} non-translatable spans in: {text[:50]}...")

    return spans


class Escaper:
    """Wraps and strips one translator's sentinel tags."""

    def __init__(self, escape_start: str, escape_end: str, patterns: List[str] = None):
        self.escape_start = escape_start
        self.escape_end = escape_end
        self.patterns = list(patterns or [])
        self._unescape_re = re.compile(
            re.escape(escape_start) + '(.+?)' + re.escape(escape_end),
            re.DOTALL,
        )

    def escaped_string(self, string: str) -> str:
        return f"{self.escape_start}{string}{self.escape_end}"

    def escape(self, text: str, escape: Dict[Any, Dict[str, str]] = None) -> str:
        """
        Wrap the designated spans of `text`.

        Args:
            text: Source text
            escape: {position: {"string": span}}; positions refer to `text`

        Returns:
            Text with every span wrapped in the sentinel tags
        """
        if not escape:
            return text

        # Right to left so earlier positions stay valid
        for position in sorted((int(p) for p in escape), reverse=True):
            info = escape.get(position, escape.get(str(position)))
            string = info["string"]
            text = text[:position] + self.escaped_string(string) + text[position + len(string):]

        return text

    def escape_item(self, data_item: Dict[str, Any]) -> str:
        """Text of a data item ready to be sent, honouring its '#escape' spans."""
        text = data_item['#text']
        escape = data_item.get('#escape')
        if not escape and self.patterns:
            escape = designate_spans(text, self.patterns)
        return self.escape(text, escape)

    def unescape(self, text: str) -> str:
        """Remove the sentinel tags, keeping what they wrapped."""
        return self._unescape_re.sub(r'\1', text)

    def decode_result(self, raw: str) -> str:
        """Turn a raw remote translation into final text: entities, then %xx, then sentinels."""
        return self.unescape(unquote(html.unescape(raw)))
