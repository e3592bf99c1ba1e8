"""
Unit Tests for the Payment Simulator
"""

import pytest
from decimal import Decimal

from split_ledger.schemas.balance_schema import GroupBalanceSummary, OptimizedPayment, UserBalance
from split_ledger.utils.balance_calculator import calculate_group_balances
from split_ledger.utils.exceptions import InvalidInputError
from split_ledger.utils.payment_simulator import find_payment, simulate_payment
from split_ledger.tests.conftest import balance_of, make_expense


@pytest.fixture
def two_user_summary() -> GroupBalanceSummary:
    return GroupBalanceSummary(
        group_id="group1",
        group_name="Test Group",
        total_expenses=Decimal("100"),
        user_balances=[
            UserBalance(user_id="user1", user_name="Alice", email="alice@example.com",
                        total_owed=Decimal("20"), total_owing=Decimal("0"), net_balance=Decimal("20")),
            UserBalance(user_id="user2", user_name="Bob", email="bob@example.com",
                        total_owed=Decimal("0"), total_owing=Decimal("20"), net_balance=Decimal("-20")),
        ],
        optimized_payments=[
            OptimizedPayment(from_user_id="user2", from_user_name="Bob", to_user_id="user1",
                             to_user_name="Alice", amount=Decimal("20"), description="Settlement payment"),
        ],
        is_settled=False
    )


@pytest.mark.unit
class TestSimulatePayment:
    """Test simulate_payment()."""

    def test_single_payment_settles_group(self, two_user_summary):
        result = simulate_payment(two_user_summary, two_user_summary.optimized_payments[0])

        assert result.is_settled
        assert result.optimized_payments == []
        assert balance_of(result, "user1").net_balance == Decimal("0")
        assert balance_of(result, "user2").net_balance == Decimal("0")
        assert balance_of(result, "user1").total_owed == Decimal("0")
        assert balance_of(result, "user2").total_owing == Decimal("0")

    def test_input_is_not_mutated(self, two_user_summary):
        before = two_user_summary.model_dump()

        simulate_payment(two_user_summary, two_user_summary.optimized_payments[0])

        assert two_user_summary.model_dump() == before
        assert not two_user_summary.is_settled

    def test_step_by_step_settlement(self, users):
        """Lunch paid by Alice: Bob pays, then Charlie pays."""
        expenses = [make_expense("lunch", 60, "user1", {"user1": 20, "user2": 20, "user3": 20})]
        initial = calculate_group_balances(expenses, users)

        bob_payment = next(p for p in initial.optimized_payments if p.from_user_id == "user2")
        after_bob = simulate_payment(initial, bob_payment)

        assert balance_of(after_bob, "user1").net_balance == Decimal("20")
        assert balance_of(after_bob, "user2").net_balance == Decimal("0")
        assert balance_of(after_bob, "user3").net_balance == Decimal("-20")
        assert [p.from_user_id for p in after_bob.optimized_payments] == ["user3"]
        assert not after_bob.is_settled

        final = simulate_payment(after_bob, after_bob.optimized_payments[0])

        assert final.is_settled
        assert final.optimized_payments == []

    def test_applying_every_payment_settles(self, trip_expenses, trip_users):
        summary = calculate_group_balances(trip_expenses, trip_users)

        for payment in list(summary.optimized_payments):
            summary = simulate_payment(summary, payment)

        assert summary.is_settled
        assert summary.optimized_payments == []
        assert all(abs(b.net_balance) < Decimal("0.01") for b in summary.user_balances)

    def test_passthrough_fields(self, trip_expenses, trip_users):
        summary = calculate_group_balances(trip_expenses, trip_users, group_id="g1", group_name="Trip")

        result = simulate_payment(summary, summary.optimized_payments[0])

        assert result.debt_relationships == summary.debt_relationships
        assert result.total_expenses == summary.total_expenses
        assert (result.group_id, result.group_name) == ("g1", "Trip")
        # Charlie -> Alice is simulated; Bob is untouched
        assert summary.optimized_payments[0].from_user_id == "charlie"
        assert balance_of(result, "bob") == balance_of(summary, "bob")

    def test_owed_and_owing_are_floored(self, two_user_summary):
        overpayment = two_user_summary.optimized_payments[0].model_copy(update={"amount": Decimal("25")})

        result = simulate_payment(two_user_summary, overpayment)

        assert balance_of(result, "user2").total_owing == Decimal("0")
        assert balance_of(result, "user2").net_balance == Decimal("5")
        assert balance_of(result, "user1").total_owed == Decimal("0")
        assert balance_of(result, "user1").net_balance == Decimal("-5")
        assert not result.is_settled

    def test_unlisted_payment_keeps_plan(self, two_user_summary):
        reverse = OptimizedPayment(from_user_id="user1", from_user_name="Alice", to_user_id="user2",
                                   to_user_name="Bob", amount=Decimal("5"))

        result = simulate_payment(two_user_summary, reverse)

        assert len(result.optimized_payments) == 1
        assert balance_of(result, "user1").net_balance == Decimal("25")

    def test_rejects_non_positive_amount(self, two_user_summary):
        payment = two_user_summary.optimized_payments[0].model_copy(update={"amount": Decimal("0")})
        with pytest.raises(InvalidInputError, match="positive"):
            simulate_payment(two_user_summary, payment)

    def test_rejects_self_payment(self, two_user_summary):
        payment = two_user_summary.optimized_payments[0].model_copy(update={"to_user_id": "user2"})
        with pytest.raises(InvalidInputError, match="themselves"):
            simulate_payment(two_user_summary, payment)


@pytest.mark.unit
class TestFindPayment:
    """Test lookup by payment id."""

    def test_found(self, two_user_summary):
        assert find_payment(two_user_summary, "user2-user1") == two_user_summary.optimized_payments[0]

    def test_not_found(self, two_user_summary):
        assert find_payment(two_user_summary, "user1-user2") is None
