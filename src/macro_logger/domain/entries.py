"""Domain models for logged food entries."""

from dataclasses import dataclass, field

DEFAULT_MEAL_LABEL = "Meal"


@dataclass(frozen=True)
class LogEntry:
    """One row of the food log.

    `sheet_row` is the 0-based position among data rows at read time. It is
    only valid until the next write or delete against the log.
    """

    date: str = ""
    time: str = ""
    description: str = ""
    calories: float = 0
    protein_g: float = 0
    carbs_g: float = 0
    fat_g: float = 0
    raw_input: str = ""
    group_id: str = ""
    meal_label: str = ""
    utc_offset: str = ""
    sheet_row: int = 0


@dataclass(frozen=True)
class MacroTotals:
    """Summed macros."""

    calories: float = 0
    protein_g: float = 0
    carbs_g: float = 0
    fat_g: float = 0

    def add(self, entry: LogEntry) -> "MacroTotals":
        """Return new totals including the entry's macros."""
        return MacroTotals(
            calories=self.calories + entry.calories,
            protein_g=self.protein_g + entry.protein_g,
            carbs_g=self.carbs_g + entry.carbs_g,
            fat_g=self.fat_g + entry.fat_g,
        )


@dataclass(frozen=True)
class MealGroup:
    """Entries sharing a group id, with subtotals."""

    group_id: str
    meal_label: str
    time: str
    items: list[LogEntry] = field(default_factory=list)
    totals: MacroTotals = field(default_factory=MacroTotals)


@dataclass(frozen=True)
class DailySummary:
    """Macro totals for a single local day."""

    date: str
    total_calories: float
    total_protein: float
    total_carbs: float
    total_fat: float
    entry_count: int


@dataclass(frozen=True)
class MacroTargets:
    """Daily goals shown beside the summary totals."""

    calories: float
    protein_g: float
    carbs_g: float
    fat_g: float
