"""Catalog-name candidate generation.

Some marketplaces (Steam) only answer for an exact market hash name such as
"StatTrak™ AWP | Asiimov (Field-Tested)". infer_candidates() expands a loose
free-text query into every exact name worth trying.
"""

from __future__ import annotations

import re
from typing import Dict, List, Optional, Sequence, Tuple

from skinsourcing.models import Wear

WEARS: Tuple[Wear, ...] = (
    "Factory New",
    "Minimal Wear",
    "Field-Tested",
    "Well-Worn",
    "Battle-Scarred",
)

STATTRAK_PREFIX = "StatTrak™ "
SOUVENIR_PREFIX = "Souvenir "

# Catalog spellings the generic casing rule gets wrong.
WORD_CASING: Dict[str, str] = {
    "printstream": "PrintStream",
    "neo-noir": "Neo-Noir",
    "tec-9": "Tec-9",
    "cz75-auto": "CZ75-Auto",
    "pp-bizon": "PP-Bizon",
    "sawed-off": "Sawed-Off",
}

_WEAR_WORDS = re.compile(r"\b(?:" + "|".join(re.escape(w) for w in WEARS) + r")\b", re.IGNORECASE)
_PARENTHESIZED = re.compile(r"\(([^)]+)\)")
_PIPE = re.compile(r"\s*\|\s*")
_WEAR_SUFFIX = re.compile(r"\((" + "|".join(re.escape(w) for w in WEARS) + r")\)", re.IGNORECASE)
_SHORT_WORD = re.compile(r"^[a-z]{1,3}$", re.IGNORECASE)
_CODE_WORD = re.compile(r"[0-9-]")


def normalize_text(text: str) -> str:
    return " ".join((text or "").lower().split())


def extract_wear(name: str) -> Optional[Wear]:
    """Return the wear tier embedded as "(<Wear>)" in a listing name."""
    match = _WEAR_SUFFIX.search(name or "")
    if not match:
        return None
    found = match.group(1).lower()
    for wear in WEARS:
        if wear.lower() == found:
            return wear
    return None


def _normalize_pipes(text: str) -> str:
    return _PIPE.sub(" | ", text)


def _strip_wear(query: str) -> str:
    cleaned = _PARENTHESIZED.sub("", query)
    cleaned = _WEAR_WORDS.sub("", cleaned)
    return " ".join(cleaned.split())


def _titleize_word(word: str) -> str:
    override = WORD_CASING.get(word.lower())
    if override:
        return override
    if _SHORT_WORD.match(word) or _CODE_WORD.search(word):
        return word.upper()
    lower = word.lower()
    return lower[:1].upper() + lower[1:]


def _base_names(query: str) -> List[str]:
    cleaned = _normalize_pipes(_strip_wear(query)).strip()
    words = [word for word in cleaned.split(" ") if word]
    if not words:
        return []

    titled = [_titleize_word(word) for word in words]
    joined = " ".join(titled)
    if "|" in joined:
        return [_normalize_pipes(joined)]

    bases = [joined]
    if len(titled) > 1:
        first, rest = titled[0], titled[1:]
        split = _normalize_pipes(f"{first} | {' '.join(rest)}")
        if split not in bases:
            bases.append(split)
    return bases


def _axis(pinned: Optional[bool], prefix: str) -> Sequence[str]:
    if pinned is True:
        return (prefix,)
    if pinned is False:
        return ("",)
    return ("", prefix)


def infer_candidates(
    query: str,
    wear: Optional[Wear] = None,
    stattrak: Optional[bool] = None,
    souvenir: Optional[bool] = None,
) -> List[str]:
    """
    Expand a free-text query into ordered, unique catalog names.

    Each of wear/stattrak/souvenir is pinned when given and expanded over all
    options when None. Order: base name, then souvenir, then StatTrak™, then
    wear (unsuffixed first). An empty list means there is nothing to look up.
    """
    bases = _base_names(query or "")
    if not bases:
        return []

    wear_options: Sequence[Optional[str]] = (wear,) if wear else (None, *WEARS)

    # With stattrak pinned on and souvenir open, the Souvenir StatTrak™ names
    # are skipped so every candidate starts with the StatTrak™ prefix.
    skip_souvenir_stattrak = stattrak is True and souvenir is None

    seen: Dict[str, None] = {}
    for base in bases:
        for souvenir_prefix in _axis(souvenir, SOUVENIR_PREFIX):
            for stattrak_prefix in _axis(stattrak, STATTRAK_PREFIX):
                if souvenir_prefix and stattrak_prefix and skip_souvenir_stattrak:
                    continue
                for wear_option in wear_options:
                    suffix = f" ({wear_option})" if wear_option else ""
                    candidate = f"{souvenir_prefix}{stattrak_prefix}{base}{suffix}".strip()
                    seen.setdefault(_normalize_pipes(candidate), None)
    return list(seen)
