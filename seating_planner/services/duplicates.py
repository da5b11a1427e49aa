"""
Duplicate guest-name detection for imports
"""

from typing import Iterable, List, Set, Tuple

from seating_planner.schemas.summary import DuplicateKind, DuplicateWarning

SIMILARITY_THRESHOLD = 0.8


def levenshtein_distance(a: str, b: str) -> int:
    """Minimum number of single-character edits turning ``a`` into ``b``"""
    if len(a) < len(b):
        a, b = b, a
    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, start=1):
        current = [i]
        for j, char_b in enumerate(b, start=1):
            cost = 0 if char_a == char_b else 1
            current.append(min(previous[j] + 1, current[j - 1] + 1, previous[j - 1] + cost))
        previous = current
    return previous[-1]


def name_similarity(a: str, b: str) -> float:
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    return (longest - levenshtein_distance(a, b)) / longest


def find_duplicates(candidates: Iterable[str], existing_names: Iterable[str]) -> List[DuplicateWarning]:
    """
    Flag candidate names that look like guests already on the roster.

    Comparison is case-insensitive. An exact match is reported on its own;
    otherwise every existing name above the similarity threshold is reported
    as a near match. Each (candidate, kind, match) is reported once.
    """
    existing = [(name.strip().lower(), name.strip()) for name in existing_names if name.strip()]
    existing_lower = {lowered for lowered, _ in existing}

    warnings: List[DuplicateWarning] = []
    reported: Set[Tuple[str, DuplicateKind, str]] = set()

    def report(candidate: str, kind: DuplicateKind, match: str, similarity: float) -> None:
        key = (candidate.lower(), kind, match.lower())
        if key in reported:
            return
        reported.add(key)
        warnings.append(DuplicateWarning(name=candidate, kind=kind, match=match, similarity=similarity))

    for candidate in candidates:
        candidate = candidate.strip()
        lowered = candidate.lower()
        if not lowered:
            continue

        if lowered in existing_lower:
            match = next(name for low, name in existing if low == lowered)
            report(candidate, DuplicateKind.EXACT, match, 1.0)
            continue

        for low, name in existing:
            similarity = name_similarity(lowered, low)
            if similarity > SIMILARITY_THRESHOLD:
                report(candidate, DuplicateKind.NEAR, name, round(similarity, 4))
    return warnings
