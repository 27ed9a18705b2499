from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Category(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    id: str = Field(..., min_length=1)
    name: str
    budgeted: int = 0
    spent: int = 0
    balance: int = 0
    carryover: bool = False

    @field_validator("budgeted", "spent", "balance", mode="before")
    @classmethod
    def _null_amount_is_zero(cls, value):
        return 0 if value is None else value

    @field_validator("carryover", mode="before")
    @classmethod
    def _null_carryover_is_false(cls, value):
        return False if value is None else value


class CategoryGroup(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    id: str
    name: str
    budgeted: int = 0
    spent: int = 0
    balance: int = 0
    categories: list[Category] = Field(default_factory=list)

    @field_validator("budgeted", "spent", "balance", mode="before")
    @classmethod
    def _null_amount_is_zero(cls, value):
        return 0 if value is None else value

    def find_category(self, category_id: str) -> Optional[Category]:
        for category in self.categories:
            if category.id == category_id:
                return category
        return None

    def find_category_by_name(self, name: str) -> Optional[Category]:
        wanted = name.lower()
        for category in self.categories:
            if category.name.lower() == wanted:
                return category
        return None


class BudgetMonth(BaseModel):
    """A snapshot of one ledger month as returned by the budget server."""

    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)

    month: str = Field(..., pattern=r"^\d{4}-(0[1-9]|1[0-2])$")
    category_groups: list[CategoryGroup] = Field(
        default_factory=list, alias="categoryGroups"
    )

    def find_group(self, name: str) -> Optional[CategoryGroup]:
        wanted = name.lower()
        for group in self.category_groups:
            if group.name.lower() == wanted:
                return group
        return None

    @property
    def group_names(self) -> list[str]:
        return [group.name for group in self.category_groups]
