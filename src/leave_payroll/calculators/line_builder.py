"""Pro-rated payroll line builder."""

from __future__ import annotations

from decimal import ROUND_HALF_EVEN, Decimal

from leave_payroll.calculators.types import ComponentType, LineCandidate, StructureItem


class LineItemBuilder:
    """Builds pro-rated payroll lines from fixed monthly amounts.

    Rounding:
    - Pro-rata factor is applied at full precision
    - Each line is rounded half-to-even (banker's rounding) to 2 decimals before it is summed
    - Totals are re-rounded to 2 decimals
    """

    OUTPUT_PRECISION = Decimal("0.01")  # 2 decimal places for persistence

    @staticmethod
    def round_to_cents(amount: Decimal) -> Decimal:
        """Round amount to 2 decimal places (cents)."""
        return amount.quantize(LineItemBuilder.OUTPUT_PRECISION, rounding=ROUND_HALF_EVEN)

    @staticmethod
    def prorate(amount: Decimal, worked_days: Decimal, total_days: int) -> Decimal:
        """Scale a monthly amount by the worked fraction of the month."""
        if total_days <= 0:
            raise ValueError("total_days must be positive")
        return LineItemBuilder.round_to_cents(amount * worked_days / Decimal(total_days))

    @staticmethod
    def create_line(
        item: StructureItem, worked_days: Decimal, total_days: int
    ) -> LineCandidate:
        """Create a pro-rated line for one salary-structure item."""
        return LineCandidate(
            salary_component_id=item.salary_component_id,
            component_type=ComponentType(item.component_type),
            monthly_amount=item.amount,
            amount=LineItemBuilder.prorate(item.amount, worked_days, total_days),
        )
