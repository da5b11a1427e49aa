"""
Kitchen summary and print projections over a guest collection
"""

from itertools import groupby
from typing import Dict, Iterable, List, Optional

from seating_planner.schemas.guest import Guest
from seating_planner.schemas.layout import Table
from seating_planner.schemas.summary import (
    Aggregates,
    PlaceCardEntry,
    PlaceCardTable,
    TableBreakdown,
)


def _meal(guest: Guest) -> Optional[str]:
    meal = guest.meal_selection
    if meal is None:
        return None
    return getattr(meal, "value", meal)


class SummaryService:
    """Pure folds used by the kitchen summary, place cards and escort cards"""

    @staticmethod
    def compute_aggregates(
        guests: Iterable[Guest],
        tables: Optional[Iterable[Table]] = None,
    ) -> Aggregates:
        """
        Count meals and dietary restrictions overall and per table.

        Each guest contributes once to every restriction they list. When
        ``tables`` is given every table appears in the breakdown, and guests
        pointing at a table that is not listed are left out of it.
        """
        guests = list(guests)
        meal_counts: Dict[str, int] = {}
        dietary_counts: Dict[str, int] = {}
        per_table: Dict[int, TableBreakdown] = {}

        if tables is not None:
            for table in tables:
                per_table[table.number] = TableBreakdown(table_num=table.number, capacity=table.capacity)

        assigned = 0
        for guest in guests:
            meal = _meal(guest)
            restrictions = set(guest.dietary_restrictions)

            if meal:
                meal_counts[meal] = meal_counts.get(meal, 0) + 1
            for restriction in restrictions:
                dietary_counts[restriction] = dietary_counts.get(restriction, 0) + 1

            if guest.table_num is None:
                continue
            assigned += 1

            breakdown = per_table.get(guest.table_num)
            if breakdown is None:
                if tables is not None:
                    continue
                breakdown = per_table[guest.table_num] = TableBreakdown(table_num=guest.table_num)
            breakdown.guest_count += 1
            if meal:
                breakdown.meal_counts[meal] = breakdown.meal_counts.get(meal, 0) + 1
            breakdown.dietary = sorted(set(breakdown.dietary) | restrictions)

        return Aggregates(
            total_guests=len(guests),
            assigned_count=assigned,
            unassigned_count=len(guests) - assigned,
            meal_counts=dict(sorted(meal_counts.items())),
            dietary_counts=dict(sorted(dietary_counts.items())),
            per_table=dict(sorted(per_table.items())),
        )

    @staticmethod
    def escort_cards(guests: Iterable[Guest]) -> List[PlaceCardEntry]:
        """Seated guests in alphabetical order, for the escort card table"""
        seated = [g for g in guests if g.table_num is not None]
        seated.sort(key=lambda g: (g.name.lower(), g.table_num))
        return [
            PlaceCardEntry(name=g.name, table_num=g.table_num, meal_selection=_meal(g))
            for g in seated
        ]

    @staticmethod
    def place_cards(guests: Iterable[Guest]) -> List[PlaceCardTable]:
        """Seated guests grouped by table number, names sorted within a table"""
        seated = [g for g in guests if g.table_num is not None]
        seated.sort(key=lambda g: (g.table_num, g.name.lower()))
        return [
            PlaceCardTable(
                table_num=number,
                cards=[
                    PlaceCardEntry(name=g.name, table_num=number, meal_selection=_meal(g))
                    for g in members
                ],
            )
            for number, members in groupby(seated, key=lambda g: g.table_num)
        ]
