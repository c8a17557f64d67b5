"""
Tests for insurance coverage allocation in `healthfin/services/coverage.py`.

The allocator walks deductible, coinsurance and out-of-pocket stages and
returns the next policy state; these tests check each stage, the threading of
state across calls and the conservation of every expense.
"""

import pytest
from hypothesis import given
from hypothesis import strategies as st

from healthfin.domain.errors import InvalidInputError
from healthfin.domain.models import PolicyCoverageState
from healthfin.services.coverage import CoverageAllocator

TOLERANCE = 1e-2


@st.composite
def coverage_states(draw: st.DrawFn) -> PolicyCoverageState:
    deductible = draw(st.floats(min_value=0.0, max_value=10_000.0))
    out_of_pocket_max = draw(st.floats(min_value=1.0, max_value=20_000.0))
    return PolicyCoverageState(
        deductible=deductible,
        deductible_met=draw(st.floats(min_value=0.0, max_value=deductible)),
        out_of_pocket_max=out_of_pocket_max,
        out_of_pocket_current=draw(st.floats(min_value=0.0, max_value=out_of_pocket_max)),
        coverage_percentage=draw(st.floats(min_value=0.0, max_value=100.0)),
    )


expense_amounts = st.floats(min_value=0.0, max_value=50_000.0)


@pytest.fixture
def allocator() -> CoverageAllocator:
    return CoverageAllocator()


@pytest.fixture
def fresh_policy() -> PolicyCoverageState:
    return PolicyCoverageState(
        deductible=1000.0,
        out_of_pocket_max=3000.0,
        coverage_percentage=80.0,
    )


class TestAllocationStages:
    """Deductible, coinsurance and out-of-pocket clamp in isolation."""

    def test_partially_met_deductible_then_coinsurance(self, allocator: CoverageAllocator) -> None:
        state = PolicyCoverageState(
            deductible=2000.0,
            deductible_met=1800.0,
            out_of_pocket_max=6000.0,
            out_of_pocket_current=1800.0,
            coverage_percentage=80.0,
        )

        allocation = allocator.allocate(state, 500.0)

        assert allocation.deductible_applied == pytest.approx(200.0)
        assert allocation.insurer_pays == pytest.approx(240.0)
        assert allocation.patient_pays == pytest.approx(260.0)
        assert allocation.coinsurance_amount == pytest.approx(60.0)
        assert allocation.new_state.deductible_met == pytest.approx(2000.0)
        assert allocation.new_state.out_of_pocket_current == pytest.approx(2060.0)
        assert allocation.deductible_completed is True
        assert allocation.out_of_pocket_capped is False

    def test_out_of_pocket_maximum_caps_patient_share(self, allocator: CoverageAllocator) -> None:
        state = PolicyCoverageState(
            deductible=1000.0,
            deductible_met=1000.0,
            out_of_pocket_max=5000.0,
            out_of_pocket_current=4900.0,
            coverage_percentage=70.0,
        )

        allocation = allocator.allocate(state, 2000.0)

        assert allocation.patient_pays == pytest.approx(100.0)
        assert allocation.insurer_pays == pytest.approx(1900.0)
        assert allocation.out_of_pocket_capped is True
        assert allocation.out_of_pocket_max_reached is True
        assert allocation.new_state.out_of_pocket_current == pytest.approx(5000.0)

    def test_zero_deductible_goes_straight_to_coinsurance(self, allocator: CoverageAllocator) -> None:
        state = PolicyCoverageState(deductible=0.0, out_of_pocket_max=4000.0, coverage_percentage=90.0)

        allocation = allocator.allocate(state, 1000.0)

        assert allocation.deductible_applied == 0.0
        assert allocation.insurer_pays == pytest.approx(900.0)
        assert allocation.patient_pays == pytest.approx(100.0)

    def test_zero_coverage_still_honors_out_of_pocket_maximum(self, allocator: CoverageAllocator) -> None:
        state = PolicyCoverageState(
            deductible=500.0,
            deductible_met=500.0,
            out_of_pocket_max=1000.0,
            out_of_pocket_current=800.0,
            coverage_percentage=0.0,
        )

        allocation = allocator.allocate(state, 1500.0)

        assert allocation.patient_pays == pytest.approx(200.0)
        assert allocation.insurer_pays == pytest.approx(1300.0)

    def test_reached_maximum_means_insurer_pays_everything(self, allocator: CoverageAllocator) -> None:
        state = PolicyCoverageState(
            deductible=500.0,
            deductible_met=500.0,
            out_of_pocket_max=1000.0,
            out_of_pocket_current=1000.0,
            coverage_percentage=50.0,
        )

        allocation = allocator.allocate(state, 750.0)

        assert allocation.patient_pays == 0.0
        assert allocation.insurer_pays == pytest.approx(750.0)

    def test_cap_inside_deductible_still_credits_full_deductible_portion(
        self, allocator: CoverageAllocator
    ) -> None:
        state = PolicyCoverageState(
            deductible=2000.0,
            out_of_pocket_max=1500.0,
            out_of_pocket_current=1400.0,
            coverage_percentage=80.0,
        )

        allocation = allocator.allocate(state, 1000.0)

        assert allocation.patient_pays == pytest.approx(100.0)
        assert allocation.insurer_pays == pytest.approx(900.0)
        assert allocation.deductible_applied == pytest.approx(1000.0)
        assert allocation.coinsurance_amount == 0.0
        assert allocation.new_state.deductible_met == pytest.approx(1000.0)

    def test_deductible_larger_than_out_of_pocket_maximum(self, allocator: CoverageAllocator) -> None:
        state = PolicyCoverageState(deductible=5000.0, out_of_pocket_max=3000.0, coverage_percentage=80.0)

        allocation = allocator.allocate(state, 4000.0)

        assert allocation.patient_pays == pytest.approx(3000.0)
        assert allocation.insurer_pays == pytest.approx(1000.0)
        assert allocation.out_of_pocket_capped is True
        assert allocation.new_state.deductible_met == pytest.approx(4000.0)
        assert allocation.deductible_completed is False
        assert allocation.out_of_pocket_max_reached is True

    def test_zero_expense_changes_nothing(
        self, allocator: CoverageAllocator, fresh_policy: PolicyCoverageState
    ) -> None:
        allocation = allocator.allocate(fresh_policy, 0.0)

        assert allocation.insurer_pays == 0.0
        assert allocation.patient_pays == 0.0
        assert allocation.new_state == fresh_policy

    def test_negative_expense_is_rejected(
        self, allocator: CoverageAllocator, fresh_policy: PolicyCoverageState
    ) -> None:
        with pytest.raises(InvalidInputError, match="expense amount"):
            allocator.allocate(fresh_policy, -10.0)

    def test_inactive_policy_leaves_patient_paying_everything(self, allocator: CoverageAllocator) -> None:
        state = PolicyCoverageState(
            deductible=100.0, out_of_pocket_max=1000.0, coverage_percentage=80.0, is_active=False
        )

        allocation = allocator.allocate(state, 400.0)

        assert allocation.patient_pays == 400.0
        assert allocation.insurer_pays == 0.0
        assert allocation.new_state is state


class TestStateThreading:
    """Sequential calls accumulate; the input state is never mutated."""

    def test_sequential_allocations_accumulate(
        self, allocator: CoverageAllocator, fresh_policy: PolicyCoverageState
    ) -> None:
        first = allocator.allocate(fresh_policy, 600.0)
        second = allocator.allocate(first.new_state, 600.0)

        assert first.patient_pays == pytest.approx(600.0)
        assert first.new_state.deductible_met == pytest.approx(600.0)

        # 400 finishes the deductible, 20% of the remaining 200 is coinsurance
        assert second.patient_pays == pytest.approx(440.0)
        assert second.insurer_pays == pytest.approx(160.0)
        assert second.new_state.deductible_met == pytest.approx(1000.0)
        assert second.new_state.out_of_pocket_current == pytest.approx(1040.0)

    def test_replaying_the_same_state_does_not_accumulate(
        self, allocator: CoverageAllocator, fresh_policy: PolicyCoverageState
    ) -> None:
        first = allocator.allocate(fresh_policy, 600.0)
        replay = allocator.allocate(fresh_policy, 600.0)

        assert fresh_policy.deductible_met == 0.0
        assert replay.new_state == first.new_state

    def test_allocate_many_threads_state(
        self, allocator: CoverageAllocator, fresh_policy: PolicyCoverageState
    ) -> None:
        allocations, final_state = allocator.allocate_many(fresh_policy, [600.0, 600.0, 10_000.0])

        assert len(allocations) == 3
        assert final_state == allocations[-1].new_state
        assert final_state.is_out_of_pocket_max_reached
        assert sum(a.patient_pays for a in allocations) == pytest.approx(3000.0)

    def test_allocate_many_with_no_expenses(
        self, allocator: CoverageAllocator, fresh_policy: PolicyCoverageState
    ) -> None:
        allocations, final_state = allocator.allocate_many(fresh_policy, [])

        assert allocations == []
        assert final_state is fresh_policy


class TestAllocationProperties:
    @given(state=coverage_states(), expense=expense_amounts)
    def test_insurer_plus_patient_equals_expense(self, state: PolicyCoverageState, expense: float) -> None:
        allocation = CoverageAllocator().allocate(state, expense)

        assert abs(allocation.insurer_pays + allocation.patient_pays - expense) <= TOLERANCE
        assert allocation.patient_pays <= state.remaining_out_of_pocket + TOLERANCE

    @given(state=coverage_states(), expenses=st.lists(expense_amounts, max_size=8))
    def test_counters_never_decrease_or_exceed_maxima(
        self, state: PolicyCoverageState, expenses: list[float]
    ) -> None:
        allocator = CoverageAllocator()
        current = state
        for expense in expenses:
            nxt = allocator.allocate(current, expense).new_state

            assert nxt.deductible_met >= current.deductible_met
            assert nxt.out_of_pocket_current >= current.out_of_pocket_current
            assert nxt.deductible_met <= nxt.deductible
            assert nxt.out_of_pocket_current <= nxt.out_of_pocket_max
            current = nxt
