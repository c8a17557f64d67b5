"""
End-to-end walkthrough of the calculation engine on reference scenarios.

This script checks:
1. Configuration loading and validation
2. Coverage allocation through the deductible stage
3. Coverage allocation capped by the out-of-pocket maximum
4. Zero-income classification
5. Loan payoff projection
6. Condition risk aggregation

Run with: uv run python check_scenarios.py
"""

from collections.abc import Callable
from datetime import date

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from healthfin.config import get_config, validate_config
from healthfin.domain.models import (
    ConditionCategory,
    FinanceSnapshot,
    HealthTier,
    LoanFacts,
    MedicalConditionFact,
    PolicyCoverageState,
    Severity,
)
from healthfin.services.engine import HealthFinanceEngine

console = Console()


def check_configuration(engine: HealthFinanceEngine) -> bool:
    console.print(Panel("🔧 Configuration", style="blue"))
    validate_config()
    config = engine.config

    table = Table(title="Active thresholds")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Environment", config.environment)
    table.add_row("Log level", config.logging.level)
    table.add_row("Allocation tolerance", f"{config.allocation_tolerance}")
    table.add_row("Poor debt-to-income", f"{config.classifier.poor_debt_to_income:.0%}")
    table.add_row("Target savings rate", f"{config.classifier.target_savings_rate:.0%}")
    table.add_row("Near payoff window", f"{config.loans.near_payoff_months} months")
    console.print(table)
    return True


def _allocation_table(title: str, rows: dict[str, float]) -> Table:
    table = Table(title=title)
    table.add_column("Field", style="cyan")
    table.add_column("Amount", style="green", justify="right")
    for name, value in rows.items():
        table.add_row(name, f"{value:,.2f}")
    return table


def check_deductible_allocation(engine: HealthFinanceEngine) -> bool:
    console.print(Panel("🏥 Deductible then coinsurance", style="blue"))
    state = PolicyCoverageState(
        deductible=2000.0,
        deductible_met=1800.0,
        out_of_pocket_max=6000.0,
        out_of_pocket_current=1800.0,
        coverage_percentage=80.0,
    )
    allocation = engine.allocate(state, 500.0)

    console.print(
        _allocation_table(
            "Expense of 500.00",
            {
                "Deductible applied": allocation.deductible_applied,
                "Insurer pays": allocation.insurer_pays,
                "Patient pays": allocation.patient_pays,
                "Deductible met after": allocation.new_state.deductible_met,
            },
        )
    )
    return (
        abs(allocation.insurer_pays - 240.0) < 0.01
        and abs(allocation.patient_pays - 260.0) < 0.01
        and allocation.new_state.is_deductible_met
    )


def check_out_of_pocket_cap(engine: HealthFinanceEngine) -> bool:
    console.print(Panel("🧾 Out-of-pocket maximum", style="blue"))
    state = PolicyCoverageState(
        deductible=1000.0,
        deductible_met=1000.0,
        out_of_pocket_max=5000.0,
        out_of_pocket_current=4900.0,
        coverage_percentage=70.0,
    )
    allocation = engine.allocate(state, 2000.0)

    console.print(
        _allocation_table(
            "Expense of 2,000.00",
            {
                "Insurer pays": allocation.insurer_pays,
                "Patient pays": allocation.patient_pays,
                "Out of pocket after": allocation.new_state.out_of_pocket_current,
            },
        )
    )
    return allocation.out_of_pocket_capped and abs(allocation.patient_pays - 100.0) < 0.01


def check_zero_income(engine: HealthFinanceEngine) -> bool:
    console.print(Panel("💰 Zero-income classification", style="blue"))
    report = engine.classifier.classify(
        FinanceSnapshot(monthly_income=0.0, monthly_expenses=0.0, monthly_loan_payments=0.0)
    )
    console.print(f"Tier: {report.tier.value} (rule: {report.matched_rule})", style="yellow")
    return report.tier is HealthTier.POOR


def check_loan_projection(engine: HealthFinanceEngine) -> bool:
    console.print(Panel("🏦 Loan payoff", style="blue"))
    loan = LoanFacts(
        loan_id="reference",
        principal=10_000.0,
        remaining_balance=10_000.0,
        monthly_payment=500.0,
        annual_interest_rate_percent=5.0,
    )
    projection = engine.project_loan(loan, today=date.today())

    table = Table(title="Balance 10,000.00 at 5% paying 500.00")
    table.add_column("Months", style="magenta")
    table.add_column("Total interest", style="green")
    table.add_column("Payoff date", style="yellow")
    table.add_row(
        str(projection.months_remaining),
        f"{projection.total_interest:,.2f}",
        projection.payoff_date.isoformat(),
    )
    console.print(table)
    return 19 <= projection.months_remaining <= 23


def check_condition_risk(engine: HealthFinanceEngine) -> bool:
    console.print(Panel("🩺 Condition risk", style="blue"))
    assessment = engine.risk_aggregator.aggregate(
        [
            MedicalConditionFact(name="chronic", category=ConditionCategory.CHRONIC, severity=Severity.SEVERE),
            MedicalConditionFact(name="checkup", category=ConditionCategory.PREVENTIVE, severity=Severity.MILD),
        ]
    )

    table = Table(title=f"Total risk {assessment.total_risk:g} ({assessment.level.value})")
    table.add_column("Condition", style="cyan")
    table.add_column("Contribution", style="green", justify="right")
    for contribution in assessment.contributions:
        table.add_row(contribution.name, f"{contribution.contribution:g}")
    console.print(table)
    return assessment.total_risk == 10.0


def run_all_checks() -> None:
    console.print(Panel("🧪 Health-Finance Engine - Scenario Checks", style="bold blue"))
    engine = HealthFinanceEngine(get_config())

    checks: list[tuple[str, Callable[[HealthFinanceEngine], bool]]] = [
        ("Configuration", check_configuration),
        ("Deductible allocation", check_deductible_allocation),
        ("Out-of-pocket cap", check_out_of_pocket_cap),
        ("Zero income", check_zero_income),
        ("Loan projection", check_loan_projection),
        ("Condition risk", check_condition_risk),
    ]

    results = []
    for name, check in checks:
        console.print(f"\n{'=' * 60}")
        try:
            results.append((name, check(engine)))
        except Exception as e:
            console.print(f"❌ {name} failed with exception: {e}", style="red")
            results.append((name, False))

    console.print(f"\n{'=' * 60}")
    console.print(Panel("📋 Results Summary", style="bold"))

    summary_table = Table()
    summary_table.add_column("Scenario", style="cyan")
    summary_table.add_column("Result", style="white")
    passed = 0
    for name, ok in results:
        summary_table.add_row(name, "✅ PASSED" if ok else "❌ FAILED")
        passed += ok

    console.print(summary_table)
    console.print(f"\n🎯 Results: {passed}/{len(results)} scenarios passed")


if __name__ == "__main__":
    try:
        run_all_checks()
    except KeyboardInterrupt:
        console.print("\n👋 Checks stopped by user", style="yellow")
