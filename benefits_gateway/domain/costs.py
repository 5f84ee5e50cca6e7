"""Cost calculator - splits a subscription's monthly cost between employer and employee"""

from decimal import Decimal
from typing import Iterable, List

from benefits_gateway.domain.exceptions import InvalidPlanConfiguration, InvalidRole
from benefits_gateway.domain.models import CostBreakdown, HealthcarePlan, ItemCost, Role, RoleCost, SubscriptionItem
from benefits_gateway.domain.money import Money

MIN_PERCENTAGE = Decimal(0)
MAX_PERCENTAGE = Decimal(100)


def validate_percentage(percentage: Decimal) -> Decimal:
    """Reject employer percentages that are not Decimals in [0, 100]"""
    if not isinstance(percentage, Decimal) or not percentage.is_finite():
        raise InvalidPlanConfiguration(f"Employer percentage must be a finite decimal, got {percentage!r}")
    if percentage < MIN_PERCENTAGE or percentage > MAX_PERCENTAGE:
        raise InvalidPlanConfiguration(f"Employer percentage {percentage} outside [0, 100]")
    return percentage


def validate_plan(plan: HealthcarePlan) -> None:
    """Plan-creation check: every role priced, costs non-negative, percentages in range"""
    for role in Role:
        role_cost = plan.costs.get(role)
        if role_cost is None:
            raise InvalidPlanConfiguration(f"Plan {plan.name!r} has no cost for role {role.value}")
        if role_cost.cost_cents < 0:
            raise InvalidPlanConfiguration(f"Plan {plan.name!r} has negative {role.value} cost")
        validate_percentage(role_cost.employer_percentage)


def compute_item_cost(plan: HealthcarePlan, item: SubscriptionItem) -> ItemCost:
    try:
        role = Role(item.role)
        role_cost: RoleCost = plan.costs[role]
    except (ValueError, KeyError) as e:
        raise InvalidRole(f"Plan {plan.id} cannot price role {item.role!r}") from e

    percentage = item.employer_percentage_override
    if percentage is None:
        percentage = role_cost.employer_percentage
    validate_percentage(percentage)

    base = Money(role_cost.cost_cents, plan.currency)
    employer_share = base.percentage(percentage)
    # Employee share is the remainder so the split always sums to the base cost
    employee_share = base - employer_share

    return ItemCost(
        role=role,
        total_cents=base.cents,
        employer_cents=employer_share.cents,
        employee_cents=employee_share.cents,
    )


def compute_cost(plan: HealthcarePlan, items: Iterable[SubscriptionItem]) -> CostBreakdown:
    """
    Compute a subscription's monthly cost.

    Per item:
        employer = round_half_up(cost * percentage / 100)
        employee = cost - employer

    Example:
        employee 12000 @100%, spouse 8000 @50%, child 4000 @50%
        -> total 24000, employer 18000, employee 6000

    Raises:
        InvalidRole: item role not priced by the plan
        InvalidPlanConfiguration: percentage outside [0, 100]
    """
    item_costs: List[ItemCost] = [compute_item_cost(plan, item) for item in items]

    return CostBreakdown(
        total_cents=sum(c.total_cents for c in item_costs),
        employer_cents=sum(c.employer_cents for c in item_costs),
        employee_cents=sum(c.employee_cents for c in item_costs),
        items=tuple(item_costs),
    )
