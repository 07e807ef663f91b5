"""
Budget Optimizer

Reallocates ad budget between sub-ids from historical ROI.

Passes (in order):
    1. Current allocation: each sub-id's share of attributed spend times the
       total budget, or an equal split when no spend is attributed
    2. Low performers (roi < roi_threshold_low) give up
       min(current * 0.5, current - min_per_entity), never below zero
    3. The freed budget is shared equally among reliable high performers
       (roi > roi_threshold_high with enough orders), each capped by the
       per-entity maximum and by current * maxReallocationPercentage
    4. Normalization: what is left unallocated is water-filled into non-low
       entities in proportion to their recommendation and within their
       headroom; any remainder goes back to low performers in proportion to
       what they gave up

Guarantees:
    - sum(recommendedBudget) == totalBudget (within 0.01)
    - a low performer's recommendation never exceeds its current budget
    - a high performer's recommendation never falls below its current budget

Usage:
    from affiliate_analytics.services.budget_optimizer import optimize_budget

    result = optimize_budget(ai_data, sub_id_performance, platform_performance)
    for allocation in result.optimization.recommendedAllocation:
        print(allocation.subId, allocation.recommendedBudget)
"""

import logging
from typing import Dict, List, Optional, Sequence

from affiliate_analytics.core.config import Settings, get_settings
from affiliate_analytics.core.exceptions import ConfigurationError
from affiliate_analytics.models import (
    AIAnalysisData,
    BudgetAllocation,
    BudgetConstraint,
    BudgetOptimization,
    BudgetOptimizationResult,
    CalculatedMetrics,
    ConstraintOverrides,
    ConstraintValidation,
    ExpectedImprovement,
    OptimizationConstraints,
    PlatformPerformance,
    RiskLevel,
    SubIdPerformance,
)
from affiliate_analytics.services.stats import clamp, mean, population_std

logger = logging.getLogger(__name__)

TOTAL_TOLERANCE = 0.01
EPSILON = 1e-9


# =============================================================================
# Constraints
# =============================================================================


def build_constraints(
    total_budget: float,
    overrides: Optional[ConstraintOverrides] = None,
    settings: Optional[Settings] = None,
) -> OptimizationConstraints:
    """Default constraints for total_budget, with any caller values applied on top.

    Raises:
        ConfigurationError: If the resulting budget is negative or min exceeds max.
    """
    settings = settings or get_settings()
    overrides = overrides or ConstraintOverrides()
    total = overrides.totalBudget if overrides.totalBudget is not None else total_budget
    if total < 0:
        raise ConfigurationError(f"Total budget must not be negative: {total}")

    def pick(value, default):
        return value if value is not None else default

    constraints = OptimizationConstraints(
        totalBudget=total,
        minBudgetPerSubId=pick(overrides.minBudgetPerSubId, total * settings.min_budget_share),
        maxBudgetPerSubId=pick(overrides.maxBudgetPerSubId, total * settings.max_budget_share),
        maxReallocationPercentage=pick(overrides.maxReallocationPercentage, settings.max_reallocation_percentage),
        preserveTopPerformers=pick(overrides.preserveTopPerformers, True),
    )
    if constraints.minBudgetPerSubId > constraints.maxBudgetPerSubId:
        raise ConfigurationError(
            f"Minimum budget per Sub ID ({constraints.minBudgetPerSubId:.2f}) exceeds maximum "
            f"({constraints.maxBudgetPerSubId:.2f})"
        )
    return constraints


def validate_constraints(
    allocations: Sequence[BudgetAllocation],
    constraints: OptimizationConstraints,
) -> ConstraintValidation:
    """Check an allocation against its constraints; reports, never raises."""
    violations: List[str] = []

    allocated = sum(a.recommendedBudget for a in allocations)
    if abs(allocated - constraints.totalBudget) > TOTAL_TOLERANCE:
        violations.append(
            f"Total allocated budget ({allocated:.2f}) doesn't match constraint "
            f"({constraints.totalBudget:.2f})"
        )

    minimum = constraints.minBudgetPerSubId
    maximum = constraints.maxBudgetPerSubId
    limit = constraints.maxReallocationPercentage
    for a in allocations:
        if minimum > 0 and a.recommendedBudget < minimum - EPSILON:
            violations.append(
                f"{a.subId} budget ({a.recommendedBudget:.2f}) below minimum ({minimum:.2f})"
            )
        if maximum > 0 and a.recommendedBudget > maximum + EPSILON:
            violations.append(
                f"{a.subId} budget ({a.recommendedBudget:.2f}) exceeds maximum ({maximum:.2f})"
            )
        if limit > 0 and a.currentBudget > 0:
            moved = abs(a.recommendedBudget - a.currentBudget) / a.currentBudget
            if moved > limit + EPSILON:
                violations.append(
                    f"{a.subId} reallocation ({moved * 100:.1f}%) exceeds maximum ({limit * 100:.1f}%)"
                )

    return ConstraintValidation(isValid=not violations, violations=violations)


# =============================================================================
# Allocation Passes
# =============================================================================


def calculate_current_allocation(
    sub_ids: Sequence[SubIdPerformance],
    total_budget: float,
) -> List[BudgetAllocation]:
    total_spend = sum(s.adSpend for s in sub_ids)
    allocations: List[BudgetAllocation] = []
    for s in sub_ids:
        if total_spend > 0:
            current = s.adSpend / total_spend * total_budget
        else:
            current = total_budget / len(sub_ids)
        allocations.append(BudgetAllocation(
            subId=s.id,
            platform=s.platform,
            currentBudget=current,
            recommendedBudget=current,
            expectedROI=s.roi,
            confidence=s.confidenceScore,
            reasoning=f"Current allocation based on historical spend of {s.adSpend:.2f} THB",
        ))
    return allocations


def water_fill(amount: float, weights: Dict[str, float], headroom: Dict[str, float]) -> Dict[str, float]:
    """
    Distribute amount in proportion to weights, capping each key at its headroom
    and redistributing the overflow. Returns the amount given to each key.
    """
    given = {key: 0.0 for key in headroom}
    remaining = amount
    active = [k for k in headroom if headroom[k] > EPSILON]

    while remaining > EPSILON and active:
        total_weight = sum(weights.get(k, 0.0) for k in active)
        if total_weight > EPSILON:
            shares = {k: remaining * weights.get(k, 0.0) / total_weight for k in active}
        else:
            shares = {k: remaining / len(active) for k in active}

        distributed = 0.0
        for k in active:
            give = min(shares[k], headroom[k] - given[k])
            given[k] += give
            distributed += give
        remaining -= distributed

        active = [k for k in active if headroom[k] - given[k] > EPSILON]
        if distributed <= EPSILON:
            break
    return given


def generate_optimized_allocation(
    current: Sequence[BudgetAllocation],
    sub_ids: Sequence[SubIdPerformance],
    constraints: OptimizationConstraints,
    settings: Optional[Settings] = None,
) -> List[BudgetAllocation]:
    settings = settings or get_settings()
    by_id = {s.id: s for s in sub_ids}
    rec: Dict[str, float] = {a.subId: a.currentBudget for a in current}
    cur: Dict[str, float] = dict(rec)
    expected_roi: Dict[str, float] = {a.subId: a.expectedROI for a in current}
    reasoning: Dict[str, str] = {a.subId: a.reasoning for a in current}

    low_ids = [k for k in rec if by_id[k].roi < settings.roi_threshold_low]
    high_ids = [
        k for k in rec
        if by_id[k].roi > settings.roi_threshold_high and by_id[k].orders >= settings.min_reliable_orders
    ]

    # Pass 2: take budget from low performers
    reductions: Dict[str, float] = {}
    for k in low_ids:
        reduction = max(0.0, min(
            cur[k] * settings.low_performer_reduction,
            cur[k] * constraints.maxReallocationPercentage,
            cur[k] - constraints.minBudgetPerSubId,
        ))
        rec[k] = cur[k] - reduction
        reductions[k] = reduction
        reasoning[k] = f"Reduced budget due to low ROI ({by_id[k].roi:.1f}%)"
    freed = sum(reductions.values())

    # Pass 3: hand it to reliable high performers
    if freed > 0 and high_ids:
        per_entity = freed / len(high_ids)
        for k in high_ids:
            increase = min(per_entity, constraints.maxBudgetPerSubId - cur[k])
            if cur[k] > 0:
                increase = min(increase, cur[k] * constraints.maxReallocationPercentage)
            increase = max(0.0, increase)
            rec[k] = cur[k] + increase
            expected_roi[k] = by_id[k].roi * 1.1
            reasoning[k] = f"Increased budget due to high ROI ({by_id[k].roi:.1f}%) and strong performance"

    # Pass 4: place whatever is still unallocated
    drift = max(0.0, constraints.totalBudget - sum(rec.values()))
    if drift > EPSILON:
        others = [k for k in rec if k not in reductions]
        headroom: Dict[str, float] = {}
        for k in others:
            ceiling = constraints.maxBudgetPerSubId
            if cur[k] > 0:
                ceiling = min(ceiling, cur[k] * (1 + constraints.maxReallocationPercentage))
            headroom[k] = max(0.0, ceiling - rec[k])
        for k, amount in water_fill(drift, {k: rec[k] for k in others}, headroom).items():
            rec[k] += amount
            drift -= amount

    if drift > EPSILON and reductions:
        for k, amount in water_fill(drift, reductions, dict(reductions)).items():
            rec[k] += amount
            drift -= amount

    if drift > EPSILON and rec:
        logger.debug(f"Spreading {drift:.4f} of residual budget across all entities")
        total_rec = sum(rec.values())
        for k in rec:
            rec[k] += drift * (rec[k] / total_rec if total_rec > 0 else 1 / len(rec))

    return [
        a.model_copy(update={
            'recommendedBudget': rec[a.subId],
            'expectedROI': expected_roi[a.subId],
            'reasoning': reasoning[a.subId],
        })
        for a in current
    ]


# =============================================================================
# Assessment
# =============================================================================


def _weighted_roi(allocations: Sequence[BudgetAllocation], recommended: bool) -> float:
    budgets = [a.recommendedBudget if recommended else a.currentBudget for a in allocations]
    total = sum(budgets)
    if total <= 0:
        return 0.0
    return sum(a.expectedROI * b for a, b in zip(allocations, budgets)) / total


def calculate_expected_improvement(
    current: Sequence[BudgetAllocation],
    recommended: Sequence[BudgetAllocation],
    sub_ids: Sequence[SubIdPerformance],
) -> ExpectedImprovement:
    roi_gain = _weighted_roi(recommended, True) - _weighted_roi(current, False)
    total = sum(a.recommendedBudget for a in recommended)
    revenue_gain = roi_gain / 100 * total
    per_order = mean([s.revenue / max(s.orders, 1) for s in sub_ids]) if sub_ids else 100.0
    orders_gain = revenue_gain / per_order if per_order > 0 else 0.0
    return ExpectedImprovement(roi=roi_gain, revenue=revenue_gain, orders=round(orders_gain))


def calculate_reallocation_amount(
    current: Sequence[BudgetAllocation],
    recommended: Sequence[BudgetAllocation],
) -> float:
    before = {a.subId: a.currentBudget for a in current}
    return sum(abs(a.recommendedBudget - before.get(a.subId, 0.0)) for a in recommended)


def assess_optimization_risk(
    current: Sequence[BudgetAllocation],
    recommended: Sequence[BudgetAllocation],
    sub_ids: Sequence[SubIdPerformance],
) -> float:
    """0-100 risk score from reallocation size, low-confidence sub-ids and ROI spread."""
    score = 0.0
    total = sum(a.currentBudget for a in current)
    moved = calculate_reallocation_amount(current, recommended) / total if total > 0 else 0.0
    if moved > 0.4:
        score += 30
    elif moved > 0.2:
        score += 15

    score += 10 * sum(1 for s in sub_ids if s.confidenceScore < 60)

    roi_spread = population_std([s.roi for s in sub_ids])
    if roi_spread > 30:
        score += 20
    elif roi_spread > 15:
        score += 10
    return clamp(score, 0.0, 100.0)


def risk_level_from_score(score: float) -> RiskLevel:
    if score >= 50:
        return RiskLevel.HIGH
    if score >= 25:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def generate_justification(
    sub_ids: Sequence[SubIdPerformance],
    improvement: ExpectedImprovement,
    settings: Settings,
) -> List[str]:
    lines: List[str] = []
    if improvement.roi > 0:
        lines.append(f"Budget reallocation is expected to improve overall ROI by {improvement.roi:.1f}%")
    if improvement.revenue > 0:
        lines.append(f"Projected additional revenue of {improvement.revenue:.2f} THB from optimization")

    high = [s for s in sub_ids if s.roi > settings.roi_threshold_high]
    low = [s for s in sub_ids if s.roi < settings.roi_threshold_low]
    if high:
        lines.append(
            f"{len(high)} Sub IDs with ROI > {settings.roi_threshold_high:.0f}% deserve increased budget allocation"
        )
    if low:
        lines.append(
            f"{len(low)} Sub IDs with ROI < {settings.roi_threshold_low:.0f}% should have reduced budget allocation"
        )

    total_orders = sum(s.orders for s in sub_ids)
    lines.append(f"Optimization based on analysis of {total_orders} orders across {len(sub_ids)} Sub IDs")
    return lines


def calculate_optimization_confidence(
    sub_ids: Sequence[SubIdPerformance],
    days: int,
    settings: Optional[Settings] = None,
) -> float:
    settings = settings or get_settings()
    confidence = 60.0
    reliable = sum(1 for s in sub_ids if s.orders >= settings.min_reliable_orders)
    confidence += min(20, reliable * 2)

    if days >= 30:
        confidence += 15
    elif days >= 14:
        confidence += 10
    elif days >= 7:
        confidence += 5

    avg_confidence = mean([s.confidenceScore for s in sub_ids])
    confidence += (avg_confidence - 60) * 0.2
    return clamp(confidence, 50.0, 90.0)


def generate_budget_recommendations(
    metrics: CalculatedMetrics,
    sub_ids: Sequence[SubIdPerformance],
    platforms: Sequence[PlatformPerformance],
    settings: Optional[Settings] = None,
) -> List[str]:
    """Plain-text budget advice derived from the same performance buckets."""
    settings = settings or get_settings()
    high_roi = settings.roi_threshold_high
    low_roi = settings.roi_threshold_low
    total_budget = metrics.totalAdsSpent
    lines: List[str] = []

    high = [s for s in sub_ids if s.roi > high_roi and s.orders >= settings.min_reliable_orders]
    low = [s for s in sub_ids if s.roi < low_roi and s.orders >= 5]

    if high:
        high_spend = sum(s.adSpend for s in high)
        potential = min(total_budget * 0.3, high_spend * 0.5)
        lines.append(
            f"Scale budget for {len(high)} high-performing Sub IDs (ROI > {high_roi:.0f}%) "
            f"by up to {potential:.2f} THB"
        )
        for s in high[:3]:
            lines.append(f"Increase {s.id} budget by {s.adSpend * 0.3:.2f} THB (current ROI: {s.roi:.1f}%)")

    if low:
        savings = sum(s.adSpend for s in low) * 0.7
        lines.append(
            f"Reduce or pause budget for {len(low)} underperforming Sub IDs (ROI < {low_roi:.0f}%) "
            f"to save {savings:.2f} THB"
        )
        for s in low[:3]:
            lines.append(f"Reduce {s.id} budget by {s.adSpend * 0.5:.2f} THB (current ROI: {s.roi:.1f}%)")

    if len(platforms) > 1:
        best, worst = platforms[0], platforms[-1]
        if abs(best.roi - worst.roi) > 5:
            lines.append(
                f"Reallocate {worst.adSpend * 0.2:.2f} THB from {worst.platform} ({worst.roi:.1f}% ROI) "
                f"to {best.platform} ({best.roi:.1f}% ROI)"
            )

    if metrics.roi < low_roi:
        lines.append(
            f"Overall ROI of {metrics.roi:.1f}% is below target. Consider reducing total budget by 20% "
            f"and focusing on proven performers"
        )
    elif metrics.roi > high_roi:
        lines.append(
            f"Strong overall ROI of {metrics.roi:.1f}% indicates opportunity to scale total budget by 20-30%"
        )
    return lines


# =============================================================================
# Entry Point
# =============================================================================


def optimize_budget(
    ai_data: AIAnalysisData,
    sub_ids: Sequence[SubIdPerformance],
    platforms: Sequence[PlatformPerformance],
    overrides: Optional[ConstraintOverrides] = None,
    settings: Optional[Settings] = None,
) -> BudgetOptimizationResult:
    """
    Compute and validate a budget reallocation across sub-ids.

    Args:
        ai_data: Snapshot; its total ad spend is the default budget.
        sub_ids: Scored sub-ids from the performance analyzer.
        platforms: Scored platforms, best first.
        overrides: Caller constraint values replacing the defaults.

    Returns:
        BudgetOptimizationResult with both allocations, the validation report
        and plain-text recommendations.
    """
    settings = settings or get_settings()
    constraints = build_constraints(ai_data.calculatedMetrics.totalAdsSpent, overrides, settings)

    current = calculate_current_allocation(sub_ids, constraints.totalBudget)
    recommended = generate_optimized_allocation(current, sub_ids, constraints, settings)
    improvement = calculate_expected_improvement(current, recommended, sub_ids)
    risk_score = assess_optimization_risk(current, recommended, sub_ids)
    validation = validate_constraints(recommended, constraints)
    if not validation.isValid:
        logger.warning(f"Budget allocation has {len(validation.violations)} constraint violations")

    optimization = BudgetOptimization(
        id=f"budget-optimization-{ai_data.dateRange.start.isoformat()}-{ai_data.dateRange.end.isoformat()}",
        currentAllocation=current,
        recommendedAllocation=recommended,
        expectedImprovement=improvement,
        riskAssessment=risk_level_from_score(risk_score),
        justification=generate_justification(sub_ids, improvement, settings),
        constraints=[
            BudgetConstraint(
                type='total_budget',
                value=constraints.totalBudget,
                description='Total budget to distribute across Sub IDs',
            ),
            BudgetConstraint(
                type='min_budget',
                value=constraints.minBudgetPerSubId,
                description='Minimum budget per Sub ID',
            ),
            BudgetConstraint(
                type='max_budget',
                value=constraints.maxBudgetPerSubId,
                description='Maximum budget per Sub ID',
            ),
        ],
    )

    result = BudgetOptimizationResult(
        optimization=optimization,
        confidence=calculate_optimization_confidence(sub_ids, len(ai_data.dailyMetrics), settings),
        reallocationAmount=calculate_reallocation_amount(current, recommended),
        riskScore=risk_score,
        validation=validation,
        recommendations=generate_budget_recommendations(ai_data.calculatedMetrics, sub_ids, platforms, settings),
    )
    logger.info(
        f"Optimized budget of {constraints.totalBudget:.2f} across {len(sub_ids)} sub-ids; "
        f"reallocated {result.reallocationAmount:.2f}"
    )
    return result
