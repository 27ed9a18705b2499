from dataclasses import dataclass
from enum import Enum


class GroupKind(str, Enum):
    fixed = "Fixed"
    flex = "Flex"
    allowances = "Allowances"
    other = "Other"


# Validation order for the required category groups.
REQUIRED_GROUPS = (
    GroupKind.fixed,
    GroupKind.flex,
    GroupKind.allowances,
    GroupKind.other,
)


class MonthRole(str, Enum):
    source = "source"
    target = "target"


@dataclass(frozen=True)
class ReconciliationSummary:
    source_month: str
    target_month: str
    target: int
    fixed: int
    flex: int
    allowances: int
    other: int
    dry_run: bool
    writes: int
