"""
Edit-distance matching used for “did you mean ...?” suggestions.

Scope
- levenshtein(): case-insensitive Levenshtein distance.
- threshold(): largest distance still worth suggesting for a given token.
- find_most_similar(): best single suggestion, or None.
- find_similar(): ranked list of suggestions.

Matching is never used to resolve input, only to explain a miss.
"""
import functools
import itertools


@functools.lru_cache(maxsize=1024)
def levenshtein(source, target, /):
    """
    Return the Levenshtein distance between two strings, ignoring case.

    Standard dynamic-programming recurrence, kept to two rows:
        d[i][j] = min(d[i-1][j] + 1, d[i][j-1] + 1, d[i-1][j-1] + cost)
    with d[0][j] = j and d[i][0] = i.

    Examples
    - levenshtein("kitten", "sitting") -> 3
    - levenshtein("Build", "build")    -> 0
    """
    if not isinstance(source, str) or not isinstance(target, str):
        raise TypeError("levenshtein() arguments must be strings")

    source, target = source.casefold(), target.casefold()
    if source == target:
        return 0
    if not source:
        return len(target)
    if not target:
        return len(source)

    previous = list(range(len(target) + 1))
    for row, char in enumerate(source, 1):
        current = [row]
        for column, other in enumerate(target, 1):
            current.append(min(
                previous[column] + 1,                        # deletion
                current[column - 1] + 1,                     # insertion
                previous[column - 1] + (char != other),      # substitution
            ))
        previous = current
    return previous[-1]


def threshold(text, /):
    """
    Return the maximum distance accepted for a suggestion on this token.

    Short tokens tolerate two edits; longer ones one more edit per four
    characters (e.g., 12 characters -> 3, 16 -> 4).
    """
    return max(2, len(text) // 4)


def _rank(input, candidates):
    limit = threshold(input)
    ranked = []
    for index, candidate in enumerate(candidates):
        if (distance := levenshtein(input, candidate)) <= limit:
            ranked.append((distance, index, candidate))
    ranked.sort()
    return ranked


def find_most_similar(input, candidates, /):
    """
    Return the closest candidate within threshold(input), or None.

    Ties are broken by first occurrence in candidates.

    Examples
    - find_most_similar("buld", ["build", "test", "deploy"]) -> "build"
    - find_most_similar("xyz", ["build", "test"])            -> None
    """
    if not isinstance(input, str):
        raise TypeError("find_most_similar() first argument must be a string")
    for _, _, candidate in _rank(input, candidates):
        return candidate
    return None


def find_similar(input, candidates, /, limit=3):
    """
    Return up to limit candidates within threshold(input), closest first
    (equal distances keep their original order).
    """
    if not isinstance(input, str):
        raise TypeError("find_similar() first argument must be a string")
    if not isinstance(limit, int) or limit < 0:
        raise ValueError("find_similar() 'limit' must be a non-negative integer")
    return [candidate for _, _, candidate in itertools.islice(_rank(input, candidates), limit)]


__all__ = (
    "levenshtein",
    "threshold",
    "find_most_similar",
    "find_similar",
)
