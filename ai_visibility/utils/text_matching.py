"""Fuzzy business-name matching and false-claim detection.

Name matching lowercases, drops filler tokens ("and", "the", "of", "n",
"&") and punctuation, then tests containment in either direction, so
"Charcoal N Chill" and "Charcoal and Chill" both reduce to
"charcoal chill".  Short or generic names will match unrelated text; that
precision/recall tradeoff is kept as-is.
"""

import re

STOP_TOKENS: frozenset[str] = frozenset({"and", "the", "of", "n", "&"})

_TOKEN_RE = re.compile(r"[a-z0-9]+")
_PHONE_RE = re.compile(r"\(?\b\d{3}\)?[-.\s]\s*\d{3}[-.\s]\d{4}\b")
_TIME_RE = re.compile(r"\b\d{1,2}(?::\d{2})?\s*(?:am|pm)\b", re.IGNORECASE)
_ADDRESS_RE = re.compile(
    r"\b\d{1,5}\s+[A-Z][a-z]+(?:\s+[A-Z][a-z]+)*\s+"
    r"(?:St|Ave|Dr|Blvd|Rd|Way|Pkwy|Ln|Ct|Pl)\b"
)
_DOLLAR_RE = re.compile(r"\$\d+(?:\.\d{2})?")


def normalize(text: str) -> str:
    """Reduce *text* to space-joined alphanumeric tokens minus filler words.

    Examples:
        >>> normalize("Charcoal N Chill")
        'charcoal chill'
        >>> normalize("The Charcoal & Chill, LLC")
        'charcoal chill llc'
    """
    if not text:
        return ""
    lowered = text.lower().replace("&", " & ")
    tokens = [t for t in _TOKEN_RE.findall(lowered) if t not in STOP_TOKENS]
    return " ".join(tokens)


def names_match(business_name: str, candidate: str) -> bool:
    """True when either normalized name contains the other."""
    a = normalize(business_name)
    b = normalize(candidate)
    if not a or not b:
        return False
    return a in b or b in a


def mentions_business(business_name: str, candidates: list[str]) -> bool:
    return any(names_match(business_name, c) for c in candidates)


def _collapse(text: str) -> str:
    return re.sub(r"\s+", " ", text).strip().lower()


def extract_key_phrases(claim_text: str, limit: int = 4) -> list[str]:
    """Pull the distinctive wrong facts out of a false claim.

    Targets phone numbers, clock times, street addresses and dollar
    amounts.  When none are present, falls back to the first three words
    longer than four characters, joined.  Short tokens are skipped, so a
    claim opening with "Charcoal N Chill" yields "Charcoal Chill
    permanently" rather than the bare business name.
    """
    phrases: list[str] = []
    phrases.extend(m.group(0) for m in _PHONE_RE.finditer(claim_text))
    phrases.extend(m.group(0) for m in _TIME_RE.finditer(claim_text))
    phrases.extend(m.group(0) for m in _ADDRESS_RE.finditer(claim_text))
    phrases.extend(m.group(0) for m in _DOLLAR_RE.finditer(claim_text))

    if not phrases and len(claim_text) > 10:
        words = [w.strip(".,;:!?\"'()") for w in claim_text.split()]
        long_words = [w for w in words if len(w) > 4]
        if len(long_words) >= 2:
            phrases.append(" ".join(long_words[:3]))

    seen: set[str] = set()
    unique: list[str] = []
    for phrase in phrases:
        key = _collapse(phrase)
        if key and key not in seen:
            seen.add(key)
            unique.append(phrase)
    return unique[:limit]


def claim_persists(claim_text: str, response_text: str) -> bool:
    """True when *response_text* still carries the false *claim_text*."""
    if not response_text or not claim_text:
        return False

    norm_claim = normalize(claim_text)
    norm_response = normalize(response_text)
    if norm_claim and norm_claim in norm_response:
        return True

    response = _collapse(response_text)
    phrases = extract_key_phrases(claim_text)
    if phrases:
        return any(_collapse(p) in response for p in phrases)

    fragment = _collapse(claim_text[:30])
    return bool(fragment) and fragment in response
