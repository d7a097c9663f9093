"""
Edit-distance matching for keyword rules.
"""

import math

# Minimum length of either side for a fuzzy comparison to be meaningful
MIN_FUZZY_LENGTH = 3

# Allowed edits as a fraction of the shorter string's length
FUZZY_THRESHOLD_RATIO = 0.3


def levenshtein_distance(a: str, b: str) -> int:
    """
    Compute the Levenshtein edit distance between two strings.

    Operates on code points. Uses a single rolling row, so memory is
    O(min(len(a), len(b))).
    """
    if len(a) < len(b):
        a, b = b, a
    if not b:
        return len(a)

    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            if ca == cb:
                current.append(previous[j - 1])
            else:
                current.append(1 + min(
                    previous[j - 1],  # substitution
                    previous[j],      # deletion
                    current[j - 1],   # insertion
                ))
        previous = current

    return previous[-1]


def fuzzy_match(text: str, keyword: str) -> bool:
    """
    Check whether text is within the fuzzy threshold of keyword.

    Strings shorter than MIN_FUZZY_LENGTH never match.
    """
    if len(text) < MIN_FUZZY_LENGTH or len(keyword) < MIN_FUZZY_LENGTH:
        return False

    threshold = math.floor(FUZZY_THRESHOLD_RATIO * min(len(text), len(keyword)))
    return levenshtein_distance(text, keyword) <= threshold
