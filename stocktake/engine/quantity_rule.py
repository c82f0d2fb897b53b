"""
Quantity Reconciliation Rule

Decides which of up to three blind counts becomes the accepted final
quantity of a quantity-tracked line:

1. either first count equals the frozen expectation -> keep the expectation
2. both first counts agree with each other          -> accept count 2
3. otherwise a third count is mandatory              -> accept count 3,
   or report the line as incomplete while it is missing

A third count, once recorded, takes precedence over rule 2. An audit count
(stage 4) overrides all of the above: the audited quantity becomes final and
is divergent only when it differs from the expectation.

The rule is pure and total; persistence lives in ``ReconciliationService``.
"""
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Union

from stocktake.core.exceptions import ValidationException

Number = Union[int, float, Decimal]

STAGE_USED_STOCK = "stock"
STAGE_USED_COUNT2 = "count2"
STAGE_USED_COUNT3 = "count3"
STAGE_USED_COUNT4 = "count4"


@dataclass(frozen=True)
class QuantityReconciliation:
    expected: Decimal
    final_quantity: Optional[Decimal]
    is_divergent: bool
    stage_used: Optional[str]
    divergence_quantity: Optional[Decimal]
    divergence_percent: Optional[Decimal]

    @property
    def is_incomplete(self) -> bool:
        return self.final_quantity is None


def parse_quantity(name: str, value: Optional[Number]) -> Optional[Decimal]:
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValidationException(f"{name} must be a number, got a boolean.")
    try:
        qty = Decimal(str(value))
    except ArithmeticError:
        raise ValidationException(f"{name} is not a valid quantity: {value!r}.")
    if not qty.is_finite():
        raise ValidationException(f"{name} is not a valid quantity: {value!r}.")
    if qty < 0:
        raise ValidationException(f"{name} cannot be negative (got {qty}).")
    return qty


def divergence_percent(final: Decimal, expected: Decimal) -> Optional[Decimal]:
    if expected == 0:
        return None
    pct = (final - expected) / expected * Decimal("100")
    return pct.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def _resolved(expected: Decimal, final: Decimal, divergent: bool, stage_used: str) -> QuantityReconciliation:
    return QuantityReconciliation(
        expected=expected,
        final_quantity=final,
        is_divergent=divergent,
        stage_used=stage_used,
        divergence_quantity=final - expected,
        divergence_percent=divergence_percent(final, expected),
    )


def reconcile_quantity(
    expected: Number,
    count1: Optional[Number],
    count2: Optional[Number],
    count3: Optional[Number] = None,
    count4: Optional[Number] = None,
) -> QuantityReconciliation:
    """Apply the three-count rule, then the audit override.

    ``None`` means the count is absent (not yet submitted, or skipped); an
    absent count never matches anything.
    """
    exp = parse_quantity("expected", expected)
    if exp is None:
        raise ValidationException("expected quantity is required.")
    c1 = parse_quantity("count1", count1)
    c2 = parse_quantity("count2", count2)
    c3 = parse_quantity("count3", count3)
    c4 = parse_quantity("count4", count4)

    if c4 is not None:
        return _resolved(exp, c4, c4 != exp, STAGE_USED_COUNT4)

    if (c1 is not None and c1 == exp) or (c2 is not None and c2 == exp):
        return _resolved(exp, exp, False, STAGE_USED_STOCK)

    # A recorded third count overrides agreement between the first two.
    if c3 is not None:
        return _resolved(exp, c3, True, STAGE_USED_COUNT3)

    if c1 is not None and c2 is not None and c1 == c2:
        return _resolved(exp, c2, True, STAGE_USED_COUNT2)

    return QuantityReconciliation(
        expected=exp,
        final_quantity=None,
        is_divergent=False,
        stage_used=None,
        divergence_quantity=None,
        divergence_percent=None,
    )


def needs_third_count(expected: Number, count1: Optional[Number], count2: Optional[Number]) -> bool:
    """True when the first two counts cannot settle the line on their own."""
    return reconcile_quantity(expected, count1, count2).is_incomplete
