from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Tuple


def rank_in_location(scored: Iterable[Tuple[int, Optional[int], Optional[float]]]) -> Dict[int, int]:
    """Map employee id → 1-based position within its location.

    `scored` yields (employee_id, location_id, effective_score). Employees without a location
    or without a score are left out. Ranks are ordinal: ties keep their input order and still
    get distinct consecutive ranks, so each location covers exactly 1..N.
    """
    by_location: Dict[int, List[Tuple[int, float]]] = defaultdict(list)
    for employee_id, location_id, score in scored:
        if location_id is None or score is None:
            continue
        by_location[location_id].append((employee_id, score))

    ranks = {}
    for entries in by_location.values():
        # sorted() is stable
        ordered = sorted(entries, key=lambda entry: entry[1], reverse=True)
        for position, (employee_id, _) in enumerate(ordered):
            ranks[employee_id] = position + 1
    return ranks
