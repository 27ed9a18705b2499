from __future__ import annotations

import logging
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from config import Settings
from ledger import LedgerService
from models import REQUIRED_GROUPS, GroupKind, MonthRole, ReconciliationSummary
from periods import ReconciliationWindow, local_today, select_window
from schemas import BudgetMonth, Category, CategoryGroup

logger = logging.getLogger(__name__)


class ReconciliationError(Exception):
    pass


class MissingGroupError(ReconciliationError):
    def __init__(self, group: str, month_role: MonthRole, found: list[str]) -> None:
        self.group = group
        self.month_role = month_role
        self.found = found
        super().__init__(
            f'Category group "{group}" not found in {month_role.value} month. '
            f"Found: {', '.join(found)}"
        )


class EmptyOtherGroupError(ReconciliationError):
    def __init__(self) -> None:
        super().__init__("No categories found in the Other group")


def to_cents(amount: Decimal) -> int:
    return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def format_cents(cents: int) -> str:
    return f"{Decimal(cents) / 100:.2f}"


def _require_group(month: BudgetMonth, kind: GroupKind, role: MonthRole) -> CategoryGroup:
    group = month.find_group(kind.value)
    if group is None:
        raise MissingGroupError(kind.value, role, month.group_names)
    return group


class ReconciliationService:
    def __init__(self, ledger: LedgerService, settings: Settings) -> None:
        self.ledger = ledger
        self.settings = settings
        self._writes = 0

    def _set_budget(self, month: str, category: Category, amount: int) -> None:
        self._writes += 1
        if self.settings.dry_run:
            logger.info(
                f"dry_run: skip write month={month} category={category.name!r} "
                f"amount={format_cents(amount)}"
            )
            return
        self.ledger.set_budget_amount(month, category.id, amount)

    def _copy_group(
        self,
        kind: GroupKind,
        source: CategoryGroup,
        target: CategoryGroup,
        target_month: str,
    ) -> int:
        """Copy budgeted amounts verbatim for categories present in both months."""
        total = 0
        for source_cat in source.categories:
            target_cat = target.find_category(source_cat.id)
            if target_cat is None:
                continue

            new_budget = source_cat.budgeted
            total += new_budget

            if target_cat.budgeted != new_budget:
                logger.info(
                    f"{kind.value}: {source_cat.name!r} "
                    f"from={format_cents(target_cat.budgeted)} to={format_cents(new_budget)}"
                )
                self._set_budget(target_month, target_cat, new_budget)
            else:
                logger.info(
                    f"{kind.value}: {source_cat.name!r} unchanged at {format_cents(new_budget)}"
                )
        return total

    def _reconcile_flex(
        self,
        source: CategoryGroup,
        target: CategoryGroup,
        window: ReconciliationWindow,
    ) -> int:
        total = 0
        for source_cat in source.categories:
            if source_cat.carryover:
                new_budget = source_cat.budgeted
                logger.info(
                    f"Flex: {source_cat.name!r} has carryover, "
                    f"keeping budget at {format_cents(new_budget)}"
                )
            else:
                # Spent is negative in the ledger.
                new_budget = abs(source_cat.spent)
                if source_cat.budgeted != new_budget:
                    logger.info(
                        f"Flex ({window.source_month}): {source_cat.name!r} "
                        f"from={format_cents(source_cat.budgeted)} "
                        f"to={format_cents(new_budget)} spent={format_cents(source_cat.spent)}"
                    )
                    self._set_budget(window.source_month, source_cat, new_budget)

            total += new_budget

            target_cat = target.find_category(source_cat.id)
            if target_cat is None:
                logger.warning(
                    f"Flex category {source_cat.name!r} not found in target month "
                    f"{window.target_month}, skipping"
                )
                continue

            if target_cat.budgeted != new_budget:
                logger.info(
                    f"Flex ({window.target_month}): {source_cat.name!r} "
                    f"from={format_cents(target_cat.budgeted)} to={format_cents(new_budget)}"
                )
                self._set_budget(window.target_month, target_cat, new_budget)
            else:
                logger.info(f"Flex: {source_cat.name!r} unchanged at {format_cents(new_budget)}")
        return total

    def _other_destination(self, group: CategoryGroup) -> Category:
        preferred = self.settings.other_category
        if preferred:
            match = group.find_category_by_name(preferred)
            if match is not None:
                return match
            logger.warning(
                f"Configured Other category {preferred!r} not found in Other group, "
                "falling back to first category"
            )
        if not group.categories:
            raise EmptyOtherGroupError()
        return group.categories[0]

    def reconcile(self, today: Optional[date] = None) -> Optional[ReconciliationSummary]:
        settings = self.settings
        today = today or local_today(settings.timezone)
        window = select_window(today, settings.recon_start_day, settings.recon_end_day)
        if window is None:
            logger.info(
                f"reconcile_skipped: not in window day={today.day} "
                f"start_day={settings.recon_start_day} end_day={settings.recon_end_day}"
            )
            return None

        logger.info(
            f"reconcile_start: source={window.source_month} target={window.target_month} "
            f"dry_run={settings.dry_run}"
        )
        self._writes = 0

        self.ledger.synchronize()
        source_month = self.ledger.read_budget_month(window.source_month)
        target_month = self.ledger.read_budget_month(window.target_month)

        source_groups: dict[GroupKind, CategoryGroup] = {}
        target_groups: dict[GroupKind, CategoryGroup] = {}
        for kind in REQUIRED_GROUPS:
            source_groups[kind] = _require_group(source_month, kind, MonthRole.source)
            target_groups[kind] = _require_group(target_month, kind, MonthRole.target)

        target_amount = to_cents(settings.monthly_target)

        fixed_total = self._copy_group(
            GroupKind.fixed,
            source_groups[GroupKind.fixed],
            target_groups[GroupKind.fixed],
            window.target_month,
        )
        allowances_total = self._copy_group(
            GroupKind.allowances,
            source_groups[GroupKind.allowances],
            target_groups[GroupKind.allowances],
            window.target_month,
        )
        flex_total = self._reconcile_flex(
            source_groups[GroupKind.flex], target_groups[GroupKind.flex], window
        )

        other_budget = target_amount - fixed_total - flex_total - allowances_total
        if other_budget < 0:
            logger.warning(
                "Calculated Other budget is negative, spending exceeds target: "
                f"target={format_cents(target_amount)} fixed={format_cents(fixed_total)} "
                f"flex={format_cents(flex_total)} allowances={format_cents(allowances_total)} "
                f"other={format_cents(other_budget)}"
            )

        other_cat = self._other_destination(target_groups[GroupKind.other])
        if other_cat.budgeted != other_budget:
            logger.info(
                f"Other: {other_cat.name!r} "
                f"from={format_cents(other_cat.budgeted)} to={format_cents(other_budget)}"
            )
            self._set_budget(window.target_month, other_cat, other_budget)
        else:
            logger.info(f"Other: {other_cat.name!r} unchanged at {format_cents(other_budget)}")

        if not settings.dry_run:
            self.ledger.synchronize()

        summary = ReconciliationSummary(
            source_month=window.source_month,
            target_month=window.target_month,
            target=target_amount,
            fixed=fixed_total,
            flex=flex_total,
            allowances=allowances_total,
            other=other_budget,
            dry_run=settings.dry_run,
            writes=self._writes,
        )
        logger.info(
            f"reconcile_complete: target_month={summary.target_month} "
            f"target={format_cents(summary.target)} fixed={format_cents(summary.fixed)} "
            f"flex={format_cents(summary.flex)} allowances={format_cents(summary.allowances)} "
            f"other={format_cents(summary.other)} writes={summary.writes} "
            f"dry_run={summary.dry_run}"
        )
        return summary
