from datetime import date

from cashlog.schemas.common import ApiModel, TxType


class ReportRowOut(ApiModel):
    key: str
    label: str
    income: float
    expense: float
    net: float
    type: TxType | None = None
    year: int | None = None
    month: int | None = None


class ItemRowOut(ApiModel):
    key: str
    label: str
    type: TxType
    quantity: int
    total_amount: float


class NamedTotalOut(ApiModel):
    name: str
    total: float
    quantity: int | None = None


class TypeSummaryOut(ApiModel):
    type: TxType
    total: float
    transaction_count: int
    categories: list[NamedTotalOut]
    related_parties: list[NamedTotalOut]
    items: list[NamedTotalOut]


class StatsOut(ApiModel):
    total_income: float
    total_expense: float
    balance: float
    transaction_count: int


class CategoryStatOut(ApiModel):
    category_id: str
    category: str
    total: float


class CategoryStatsOut(ApiModel):
    income: list[CategoryStatOut]
    expense: list[CategoryStatOut]


class DailyPointOut(ApiModel):
    date: date
    income: float
    expense: float


class ProfitLossOut(ApiModel):
    revenue: float
    cost_of_goods: float
    gross_profit: float
    operating_expense: float
    profit: float


class MonthHistoryOut(ApiModel):
    id: str
    year: int
    month: int
    total_income: float
    total_expense: float


class YearHistoryOut(ApiModel):
    id: str
    year: int
    total_income: float
    total_expense: float
    months: list[MonthHistoryOut] = []


class RebuildOut(ApiModel):
    months: int
