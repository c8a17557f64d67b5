"""
Insurance coverage allocation.

Splits each medical expense between insurer and patient by walking the
policy's cost-sharing stages in order:

1. Deductible: the patient pays until the remaining deductible is exhausted
2. Coinsurance: the insurer pays coverage_percentage of what is left
3. Out-of-pocket maximum: patient liability is capped at the remaining
   out-of-pocket room and the insurer absorbs the rest

The allocator never mutates the policy. It returns the next
PolicyCoverageState, which the caller persists and passes to the following
call. Two allocations against the same policy must be serialized by the
caller: each one reads and then advances the cumulative counters.
"""

from collections.abc import Iterable

import structlog
from pydantic import BaseModel, ConfigDict, Field, computed_field

from healthfin.domain.errors import InvalidInputError
from healthfin.domain.models import PolicyCoverageState

logger = structlog.get_logger(__name__)


class CoverageAllocation(BaseModel):
    """Outcome of allocating one expense against a policy."""

    model_config = ConfigDict(frozen=True)

    expense_amount: float = Field(ge=0.0)
    insurer_pays: float = Field(ge=0.0)
    patient_pays: float = Field(ge=0.0)
    deductible_applied: float = Field(ge=0.0, description="Amount credited toward the deductible")
    coinsurance_amount: float = Field(ge=0.0, description="Part of patient_pays beyond the deductible")
    out_of_pocket_capped: bool = Field(description="True when the out-of-pocket maximum limited the patient share")
    new_state: PolicyCoverageState

    @computed_field(return_type=bool)
    def deductible_completed(self) -> bool:
        return self.new_state.is_deductible_met

    @computed_field(return_type=bool)
    def out_of_pocket_max_reached(self) -> bool:
        return self.new_state.is_out_of_pocket_max_reached


class CoverageAllocator:
    """
    Apportions expenses between insurer and patient.

    Not idempotent: every call advances the returned state's counters, so
    replaying the same (state, amount) pair against the advanced state
    charges the expense twice.
    """

    def __init__(self, tolerance: float = 0.01) -> None:
        self.tolerance = tolerance
        self.logger = logger.bind(component="coverage_allocator")

    def allocate(self, state: PolicyCoverageState, expense_amount: float) -> CoverageAllocation:
        if expense_amount < 0:
            self.logger.warning("negative_expense_rejected", expense_amount=expense_amount)
            raise InvalidInputError("expense amount", expense_amount, "must be non-negative")

        if not state.is_active:
            self.logger.info("inactive_policy_patient_pays_all", expense_amount=expense_amount)
            return CoverageAllocation(
                expense_amount=expense_amount,
                insurer_pays=0.0,
                patient_pays=expense_amount,
                deductible_applied=0.0,
                coinsurance_amount=expense_amount,
                out_of_pocket_capped=False,
                new_state=state,
            )

        # Deductible stage
        deductible_portion = min(expense_amount, state.remaining_deductible)
        subject_to_coverage = expense_amount - deductible_portion

        # Coinsurance stage
        insurer_share = min(subject_to_coverage * state.coverage_percentage / 100, subject_to_coverage)
        coinsurance_share = subject_to_coverage - insurer_share
        patient_liability = deductible_portion + coinsurance_share

        # Out-of-pocket maximum: 100% coverage once the cap is reached
        remaining_oop = state.remaining_out_of_pocket
        capped = patient_liability > remaining_oop
        if capped:
            patient_liability = remaining_oop
            insurer_share = max(expense_amount - patient_liability, 0.0)

        # The full deductible portion counts toward deductible_met, capped or not
        coinsurance_applied = max(patient_liability - deductible_portion, 0.0)

        new_state = state.model_copy(
            update={
                "deductible_met": min(state.deductible_met + deductible_portion, state.deductible),
                "out_of_pocket_current": min(
                    state.out_of_pocket_current + patient_liability, state.out_of_pocket_max
                ),
            }
        )

        allocation = CoverageAllocation(
            expense_amount=expense_amount,
            insurer_pays=insurer_share,
            patient_pays=patient_liability,
            deductible_applied=deductible_portion,
            coinsurance_amount=coinsurance_applied,
            out_of_pocket_capped=capped,
            new_state=new_state,
        )

        drift = abs(allocation.insurer_pays + allocation.patient_pays - expense_amount)
        if drift > self.tolerance:
            self.logger.warning("allocation_conservation_drift", drift=drift, expense_amount=expense_amount)

        self.logger.debug(
            "coverage_allocated",
            expense_amount=expense_amount,
            insurer_pays=allocation.insurer_pays,
            patient_pays=allocation.patient_pays,
            deductible_applied=deductible_portion,
            out_of_pocket_capped=capped,
            deductible_met=new_state.deductible_met,
            out_of_pocket_current=new_state.out_of_pocket_current,
        )
        return allocation

    def allocate_many(
        self, state: PolicyCoverageState, expense_amounts: Iterable[float]
    ) -> tuple[list[CoverageAllocation], PolicyCoverageState]:
        """Allocate expenses in order, threading the state from one call to the next."""
        allocations: list[CoverageAllocation] = []
        current = state
        for amount in expense_amounts:
            allocation = self.allocate(current, amount)
            allocations.append(allocation)
            current = allocation.new_state

        self.logger.info(
            "coverage_batch_allocated",
            expense_count=len(allocations),
            total_insurer_pays=sum(a.insurer_pays for a in allocations),
            total_patient_pays=sum(a.patient_pays for a in allocations),
        )
        return allocations, current
