"""Team name normalization for cross-source matching.

Handles common variations across providers:
- Nicknames: "Man Utd" → "Manchester United", "Spurs" → "Tottenham Hotspur"
- Suffix casing: "arsenal fc" → "arsenal FC", "leeds united" → "leeds United"
- Extra spaces: "Aston  Villa" → "Aston Villa"
- Accents (comparison only): "Atlético Madrid" → "atletico madrid"
"""
import re
import unicodedata
from typing import Dict, Optional

from rapidfuzz import fuzz

# Lowercased nickname → canonical name
TEAM_ALIASES: Dict[str, str] = {
    'man utd': 'Manchester United',
    'man united': 'Manchester United',
    'man city': 'Manchester City',
    'spurs': 'Tottenham Hotspur',
    'wolves': 'Wolverhampton Wanderers',
    'brighton': 'Brighton & Hove Albion',
    'west ham': 'West Ham United',
    'crystal palace': 'Crystal Palace FC',
}

# Tokens forced to a fixed spelling wherever they appear as whole words
_CANONICAL_TOKENS = ('FC', 'SC', 'CF', 'AFC', 'United', 'City', 'Rovers')
_TOKEN_PATTERNS = [(re.compile(rf'\b{token}\b', re.IGNORECASE), token) for token in _CANONICAL_TOKENS]

FUZZY_MATCH_THRESHOLD = 90


def canonical_team_name(name: str) -> str:
    """
    Canonical display form of a team name.

    Steps:
    1. Trim
    2. Alias table lookup (case-insensitive); a hit is returned as-is
    3. Fix casing of club suffixes (FC, SC, CF, AFC, United, City, Rovers)
    4. Collapse repeated spaces

    The result is a fixed point: canonical_team_name(canonical_team_name(x))
    equals canonical_team_name(x).

    Examples:
        >>> canonical_team_name("  man utd ")
        'Manchester United'
        >>> canonical_team_name("Leeds  united fc")
        'Leeds United FC'
    """
    if not name:
        return ""

    normalized = name.strip()

    alias = TEAM_ALIASES.get(normalized.lower())
    if alias:
        return alias

    for pattern, token in _TOKEN_PATTERNS:
        normalized = pattern.sub(token, normalized)

    return re.sub(r' {2,}', ' ', normalized).strip()


def _normalize_unicode(name: str) -> str:
    """Remove accents and diacritics ('é' → 'e')."""
    normalized = unicodedata.normalize('NFD', name)
    return ''.join(c for c in normalized if unicodedata.category(c) != 'Mn')


def normalize(name: str) -> str:
    """
    Comparison form of a team name: canonical, accent-free, lowercase,
    punctuation removed, single-spaced.

    Examples:
        >>> normalize("Atlético  Madrid")
        'atletico madrid'
        >>> normalize("Spurs")
        'tottenham hotspur'
    """
    if not name:
        return ""

    name = _normalize_unicode(canonical_team_name(name)).lower()
    name = re.sub(r'[^\w\s]', '', name)
    return ' '.join(name.split())


def team_key(name: str, sport: str, country: Optional[str] = None) -> str:
    """
    Natural key for a team: ``{alnum name}:{sport}[:{country}]``.

    Pure function of its inputs, so re-keying already-cleaned records gives
    the same key.

    Examples:
        >>> team_key("Man Utd", "football", "England")
        'manchesterunited:football:england'
    """
    compact = re.sub(r'[^a-z0-9]', '', canonical_team_name(name).lower())
    parts = [compact, str(getattr(sport, 'value', sport))]
    if country:
        parts.append(country.lower())
    return ':'.join(parts)


def are_names_equal(name1: str, name2: str, fuzzy: bool = False) -> bool:
    """
    Check if two team names refer to the same team.

    Args:
        name1: First name
        name2: Second name
        fuzzy: If True, fall back to a rapidfuzz WRatio comparison

    Returns:
        True if the names match after normalization
    """
    norm1 = normalize(name1)
    norm2 = normalize(name2)

    if norm1 == norm2:
        return True

    if fuzzy and norm1 and norm2:
        return fuzz.WRatio(norm1, norm2) >= FUZZY_MATCH_THRESHOLD

    return False
