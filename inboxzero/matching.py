"""
Text Matching - substring and fuzzy matching helpers for the scorer

All matching is case-insensitive. Role matching tolerates phrasing
variants ("Senior Backend Engineer" vs "backend engineer, senior");
skill matching tolerates punctuation and suffix variants ("Node.js" vs
"nodejs", "React" vs "ReactJS").
"""

import re
from typing import Iterable, List, Optional

# Prefix length for the skill fallback match. Short prefixes produce false
# positives ("reac" also matches "reach"); tune here rather than in callers.
SKILL_PREFIX_LENGTH = 4

# Role words this short ("sr", "of", "the") carry no signal
MIN_ROLE_WORD_LENGTH = 4

_PUNCTUATION = re.compile(r"[^\w\s]")


def normalize_text(text: str) -> str:
    """
    Lowercase, strip punctuation and collapse whitespace.

    Args:
        text: Raw text (e.g. "Node.js / React")

    Returns:
        Normalized text (e.g. "node js react")
    """
    if not text:
        return ""
    return " ".join(_PUNCTUATION.sub(" ", text.lower()).split())


def first_substring_match(text: str, phrases: Iterable[str]) -> Optional[str]:
    """
    Return the first phrase that occurs in ``text`` (already lowercased).

    Blank phrases never match.
    """
    for phrase in phrases:
        needle = phrase.strip().lower()
        if needle and needle in text:
            return phrase
    return None


def distinct_substring_matches(text: str, phrases: Iterable[str], limit: int) -> List[str]:
    """Return up to ``limit`` distinct phrases that occur in ``text``."""
    matches = []
    seen = set()
    for phrase in phrases:
        needle = phrase.strip().lower()
        if not needle or needle in seen:
            continue
        if needle in text:
            seen.add(needle)
            matches.append(phrase)
            if len(matches) >= limit:
                break
    return matches


def role_matches(text: str, role: str) -> bool:
    """
    Check whether a role appears in ``text``.

    Matches on the exact lowercased phrase, or fuzzily when every role word
    longer than three characters appears somewhere in the text.
    """
    needle = role.strip().lower()
    if not needle:
        return False
    if needle in text:
        return True

    words = [w for w in normalize_text(needle).split() if len(w) >= MIN_ROLE_WORD_LENGTH]
    if not words:
        return False
    normalized = normalize_text(text)
    return all(word in normalized for word in words)


def first_role_match(text: str, roles: Iterable[str]) -> Optional[str]:
    for role in roles:
        if role_matches(text, role):
            return role
    return None


def skill_matches(normalized_text: str, tokens: List[str], skill: str) -> bool:
    """
    Check whether a skill appears in already-normalized text.

    Args:
        normalized_text: Output of normalize_text() for the email
        tokens: ``normalized_text.split()``, precomputed by the caller
        skill: Skill as the user typed it

    Returns:
        True on a normalized substring match, or when some token starts
        with the skill's first SKILL_PREFIX_LENGTH characters
    """
    needle = normalize_text(skill)
    if not needle:
        return False
    if needle in normalized_text:
        return True

    compact = needle.replace(" ", "")
    if len(compact) < SKILL_PREFIX_LENGTH:
        return False
    prefix = compact[:SKILL_PREFIX_LENGTH]
    return any(token.startswith(prefix) for token in tokens)


def distinct_skill_matches(text: str, skills: Iterable[str], limit: int) -> List[str]:
    """
    Return up to ``limit`` distinct skills found in ``text``.

    Skills that normalize to the same string ("TypeScript", "typescript")
    count once.
    """
    normalized = normalize_text(text)
    tokens = normalized.split()
    matches = []
    seen = set()
    for skill in skills:
        key = normalize_text(skill)
        if not key or key in seen:
            continue
        if skill_matches(normalized, tokens, skill):
            seen.add(key)
            matches.append(skill)
            if len(matches) >= limit:
                break
    return matches
