"""
String similarity helpers used by the fuzzy matching stage.
"""

from typing import Optional


def edit_distance(a: str, b: str) -> int:
    """
    Levenshtein distance: minimum number of single-character
    inserts, deletes and substitutions turning `a` into `b`.
    """
    a = a or ""
    b = b or ""
    if a == b:
        return 0
    if len(a) < len(b):
        a, b = b, a
    if not b:
        return len(a)
    
    # Rolling row over the shorter string
    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, 1):
        current = [i]
        for j, cb in enumerate(b, 1):
            if ca == cb:
                current.append(previous[j - 1])
            else:
                current.append(min(
                    previous[j - 1] + 1,  # substitution
                    current[j - 1] + 1,   # insertion
                    previous[j] + 1       # deletion
                ))
        previous = current
    
    return previous[-1]


def similarity(a: Optional[str], b: Optional[str]) -> float:
    """Normalized similarity in [0, 1], higher is closer"""
    if not a or not b:
        return 0.0
    
    longer, shorter = (a, b) if len(a) >= len(b) else (b, a)
    if len(longer) == 0:
        return 1.0
    
    distance = edit_distance(longer, shorter)
    return (len(longer) - distance) / len(longer)
