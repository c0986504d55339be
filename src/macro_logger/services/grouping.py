"""Grouping of log entries into meals."""

from macro_logger.domain.entries import (
    DEFAULT_MEAL_LABEL,
    LogEntry,
    MacroTotals,
    MealGroup,
)


def group_entries(entries: list[LogEntry]) -> list[MealGroup]:
    """Partition entries into meal groups in first-occurrence order.

    Entries without a group id each become their own group.
    """
    order: list[str] = []
    members: dict[str, list[LogEntry]] = {}
    for index, entry in enumerate(entries):
        key = entry.group_id or f"ungrouped-{index}"
        if key not in members:
            order.append(key)
            members[key] = []
        members[key].append(entry)

    groups: list[MealGroup] = []
    for key in order:
        items = members[key]
        first = items[0]
        totals = MacroTotals()
        for item in items:
            totals = totals.add(item)
        groups.append(
            MealGroup(
                group_id=key,
                meal_label=first.meal_label or DEFAULT_MEAL_LABEL,
                time=first.time,
                items=items,
                totals=totals,
            )
        )
    return groups
