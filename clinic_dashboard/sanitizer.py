"""Strip emoji sequences that messaging clients render as replacement glyphs.

Compound emoji (ZWJ sequences, skin tones, gendered variants) show up as "?" boxes on
older phones, so outgoing text is flattened to widely supported single code points.
"""
import re
import unicodedata
from collections.abc import Mapping

_JOINERS = re.compile("[\u200d\ufe0f]")  # zero width joiner, variation selector-16
_SKIN_TONES = re.compile("[\U0001F3FB-\U0001F3FF]")
_GENDER_SIGNS = re.compile("[\u2640\u2642]")

_MAX_PASSES = 8

DEFAULT_SUBSTITUTIONS: dict[str, str] = {
    "\U0001F64B": "\U0001F44B",  # person raising hand -> waving hand
    "\u263a": "\U0001F642",  # white smiling face -> slightly smiling face
}


def _strip(text: str) -> str:
    text = unicodedata.normalize("NFKC", text)
    text = _JOINERS.sub("", text)
    text = _SKIN_TONES.sub("", text)
    return _GENDER_SIGNS.sub("", text)


class Sanitizer:
    """Deterministic, idempotent text cleaner with a configurable downgrade table."""

    def __init__(self, substitutions: Mapping[str, str] | None = None):
        table = dict(DEFAULT_SUBSTITUTIONS if substitutions is None else substitutions)
        for old, new in table.items():
            if not old:
                raise ValueError("substitution keys must be non-empty")
            if _strip(new) != new or unicodedata.normalize("NFKC", new) != new:
                raise ValueError(f"replacement for {old!r} is not sanitized: {new!r}")
            if any(key in new for key in table):
                raise ValueError(f"replacement for {old!r} re-introduces a substituted sequence")
        # longest first so overlapping keys resolve the same way every run
        self._table = sorted(table.items(), key=lambda kv: len(kv[0]), reverse=True)

    @property
    def substitutions(self) -> dict[str, str]:
        return dict(self._table)

    def sanitize(self, text: str) -> str:
        # a replacement can form a key with its neighbours, and removals can leave
        # base + combining mark adjacent; repeat until a pass changes nothing
        for _ in range(_MAX_PASSES):
            cleaned = self._pass(text)
            if cleaned == text:
                break
            text = cleaned
        return text

    def _pass(self, text: str) -> str:
        text = _strip(text)
        for old, new in self._table:
            text = text.replace(old, new)
        return unicodedata.normalize("NFKC", text)


_default = Sanitizer()


def sanitize(text: str) -> str:
    return _default.sanitize(text)
