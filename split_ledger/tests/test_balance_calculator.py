"""
Unit Tests for the Balance Calculator

Tests cover:
- Per-user paid/owed aggregation
- Gross debt relationships
- The combined group summary, including the trip scenarios
- Referential gaps (splits and payers outside the user list)
- User payment plans
"""

import pytest
from decimal import Decimal

from split_ledger.schemas.balance_schema import UserInput
from split_ledger.schemas.expense_schema import SplitParticipant
from split_ledger.utils.balance_calculator import (
    aggregate_user_balances,
    build_debt_relationships,
    calculate_group_balances,
    get_user_payment_plan
)
from split_ledger.utils.exceptions import ReferentialGapWarning
from split_ledger.utils.split_calculator import calculate_split_amounts
from split_ledger.tests.conftest import balance_of, make_expense


@pytest.mark.unit
class TestAggregateUserBalances:
    """Test the per-user aggregation."""

    def test_simple_expense(self, users):
        """Alice pays 30 split three ways: +20 for her, -10 for the others."""
        expenses = [make_expense("exp1", 30, "user1", {"user1": 10, "user2": 10, "user3": 10})]

        balances = aggregate_user_balances(expenses, users)

        assert [b.user_id for b in balances] == ["user1", "user2", "user3"]
        alice, bob, charlie = balances
        assert (alice.net_balance, alice.total_owed, alice.total_owing) == (Decimal("20"), Decimal("20"), Decimal("0"))
        assert (bob.net_balance, bob.total_owed, bob.total_owing) == (Decimal("-10"), Decimal("0"), Decimal("10"))
        assert (charlie.net_balance, charlie.total_owed, charlie.total_owing) == (Decimal("-10"), Decimal("0"), Decimal("10"))

    def test_multiple_expenses(self, users):
        expenses = [
            make_expense("exp1", 30, "user1", {"user1": 10, "user2": 10, "user3": 10}),
            make_expense("exp2", 60, "user2", {"user1": 20, "user2": 20, "user3": 20}),
        ]

        alice, bob, charlie = aggregate_user_balances(expenses, users)

        assert alice.net_balance == Decimal("0")
        assert bob.net_balance == Decimal("30")
        assert charlie.net_balance == Decimal("-30")

    def test_only_one_side_is_non_zero(self, users):
        expenses = [make_expense("exp1", 90, "user2", {"user1": 45, "user3": 45})]

        for balance in aggregate_user_balances(expenses, users):
            assert balance.total_owed == 0 or balance.total_owing == 0
            assert balance.net_balance == balance.total_owed - balance.total_owing

    def test_many_small_amounts_do_not_drift(self, users):
        """A thousand 0.10 expenses add up exactly."""
        expenses = [
            make_expense(f"coffee{i}", "0.10", "user1", {"user2": "0.10"})
            for i in range(1000)
        ]

        alice, bob, charlie = aggregate_user_balances(expenses, users)

        assert alice.net_balance == Decimal("100.00")
        assert bob.net_balance == Decimal("-100.00")
        assert charlie.net_balance == Decimal("0")

    def test_display_name_falls_back_to_email(self):
        users = [UserInput(id="u1", full_name=None, email="nobody@example.com")]

        balances = aggregate_user_balances([], users)

        assert balances[0].user_name == "nobody@example.com"

    def test_unknown_split_user_is_dropped_with_warning(self, users):
        expenses = [make_expense("exp1", 30, "user1", {"user1": 10, "user2": 10, "ghost": 10})]

        with pytest.warns(ReferentialGapWarning, match="ghost"):
            alice, bob, charlie = aggregate_user_balances(expenses, users)

        assert alice.net_balance == Decimal("20")
        assert bob.net_balance == Decimal("-10")
        assert charlie.net_balance == Decimal("0")

    def test_unknown_payer_is_dropped_with_warning(self, users):
        expenses = [make_expense("exp1", 30, "ghost", {"user1": 15, "user2": 15})]

        with pytest.warns(ReferentialGapWarning, match="payer ghost"):
            alice, bob, _ = aggregate_user_balances(expenses, users)

        assert alice.net_balance == Decimal("-15")
        assert bob.net_balance == Decimal("-15")


@pytest.mark.unit
class TestBuildDebtRelationships:
    """Test the gross debt matrix."""

    def test_expenses_between_same_pair_collapse(self, users):
        expenses = [
            make_expense("exp1", 20, "user1", {"user1": 10, "user2": 10}),
            make_expense("exp2", 12, "user1", {"user1": 6, "user2": 6}),
        ]

        debts = build_debt_relationships(expenses, users)

        assert len(debts) == 1
        assert (debts[0].from_user_id, debts[0].to_user_id, debts[0].amount) == ("user2", "user1", Decimal("16"))
        assert (debts[0].from_user_name, debts[0].to_user_name) == ("Bob", "Alice")

    def test_reverse_directions_are_not_netted(self, users):
        """A owes B 10 and B owes A 5: both rows appear."""
        expenses = [
            make_expense("exp1", 20, "user2", {"user1": 10, "user2": 10}),
            make_expense("exp2", 10, "user1", {"user1": 5, "user2": 5}),
        ]

        debts = {(d.from_user_id, d.to_user_id): d.amount for d in build_debt_relationships(expenses, users)}

        assert debts == {("user1", "user2"): Decimal("10"), ("user2", "user1"): Decimal("5")}

    def test_payer_share_is_not_a_debt(self, users):
        expenses = [make_expense("exp1", 30, "user1", {"user1": 30})]
        assert build_debt_relationships(expenses, users) == []

    def test_zero_splits_are_skipped(self, users):
        expenses = [make_expense("exp1", 10, "user1", {"user1": 10, "user2": 0})]
        assert build_debt_relationships(expenses, users) == []

    def test_currency_is_tagged(self, users):
        expenses = [make_expense("exp1", 10, "user1", {"user2": 10}, currency="EUR")]

        debts = build_debt_relationships(expenses, users, currency="EUR")

        assert debts[0].currency == "EUR"

    def test_unknown_user_is_dropped_with_warning(self, users):
        expenses = [make_expense("exp1", 20, "user1", {"ghost": 10, "user2": 10})]

        with pytest.warns(ReferentialGapWarning):
            debts = build_debt_relationships(expenses, users)

        assert [(d.from_user_id, d.to_user_id) for d in debts] == [("user2", "user1")]


@pytest.mark.unit
class TestCalculateGroupBalances:
    """Test the combined group summary."""

    def test_trip_scenario(self, trip_expenses, trip_users):
        """Hotel, dinner and gas: Alice is owed 120, paid by Bob and Charlie."""
        result = calculate_group_balances(trip_expenses, trip_users, group_id="g1", group_name="Trip")

        assert result.group_id == "g1"
        assert result.group_name == "Trip"
        assert result.total_expenses == Decimal("540")
        assert balance_of(result, "alice").net_balance == Decimal("120")
        assert balance_of(result, "bob").net_balance == Decimal("-30")
        assert balance_of(result, "charlie").net_balance == Decimal("-90")

        assert len(result.optimized_payments) == 2
        assert all(p.to_user_id == "alice" for p in result.optimized_payments)
        assert sum(p.amount for p in result.optimized_payments) == Decimal("120")
        assert not result.is_settled

    def test_complex_multi_expense_scenario(self, trip_users):
        """Four expenses totalling 405: Bob's 45 fans out to both creditors."""
        expenses = [
            make_expense("hotel-day1", 120, "alice", {"alice": 40, "bob": 40, "charlie": 40}),
            make_expense("dinner-day1", 90, "bob", {"alice": 30, "bob": 30, "charlie": 30}),
            make_expense("activities-day2", 150, "charlie", {"alice": 50, "bob": 50, "charlie": 50}),
            make_expense("lunch-day2", 45, "alice", {"alice": 15, "bob": 15, "charlie": 15}),
        ]

        result = calculate_group_balances(expenses, trip_users)

        assert result.total_expenses == Decimal("405")
        assert balance_of(result, "alice").net_balance == Decimal("30")
        assert balance_of(result, "bob").net_balance == Decimal("-45")
        assert balance_of(result, "charlie").net_balance == Decimal("15")

        payments = [(p.from_user_id, p.to_user_id, p.amount) for p in result.optimized_payments]
        assert payments == [("bob", "alice", Decimal("30")), ("bob", "charlie", Decimal("15"))]
        assert len(result.optimized_payments) <= len(result.debt_relationships)

    def test_unequal_splits(self, trip_users):
        expenses = [make_expense("dinner-with-wine", 200, "alice", {"alice": 120, "bob": 40, "charlie": 40})]

        result = calculate_group_balances(expenses, trip_users)

        assert balance_of(result, "alice").net_balance == Decimal("80")
        assert [p.amount for p in result.optimized_payments] == [Decimal("40"), Decimal("40")]

    def test_self_paid_expense_is_settled(self, users):
        """The sole participant is also the payer: nothing to settle."""
        expenses = [make_expense("exp1", 30, "user1", {"user1": 30})]

        result = calculate_group_balances(expenses, users)

        assert balance_of(result, "user1").net_balance == Decimal("0")
        assert result.optimized_payments == []
        assert result.is_settled

    def test_no_expenses(self, users):
        result = calculate_group_balances([], users)

        assert result.total_expenses == Decimal("0")
        assert result.currency == "USD"
        assert result.is_settled
        assert len(result.user_balances) == 3

    @pytest.mark.parametrize("total,count", [(100, 3), ("10.01", 7), ("0.05", 4), ("999.99", 6)])
    def test_conservation(self, total, count):
        """Net balances sum to zero for equal splits with rounding remainders."""
        members = [UserInput(id=f"u{i}", email=f"u{i}@example.com") for i in range(count)]
        expenses = []
        for i, payer in enumerate(members):
            splits = calculate_split_amounts(
                Decimal(str(total)) + i, "EQUAL", [SplitParticipant(user_id=m.id) for m in members]
            )
            expenses.append(make_expense(f"e{i}", Decimal(str(total)) + i, payer.id,
                                         {s.user_id: s.amount for s in splits}))

        result = calculate_group_balances(expenses, members)

        assert abs(sum(b.net_balance for b in result.user_balances)) <= Decimal("0.01")
        assert sum(p.amount for p in result.optimized_payments) == \
            sum(b.net_balance for b in result.user_balances if b.net_balance > 0)

    def test_currency_follows_first_expense(self, users):
        expenses = [make_expense("exp1", 10, "user1", {"user2": 10}, currency="EUR")]

        result = calculate_group_balances(expenses, users)

        assert result.currency == "EUR"
        assert result.optimized_payments[0].currency == "EUR"
        assert result.debt_relationships[0].currency == "EUR"

    def test_payment_description(self, users):
        expenses = [make_expense("exp1", 10, "user1", {"user2": 10})]

        payment = calculate_group_balances(expenses, users).optimized_payments[0]

        assert payment.description == "Settlement payment from Bob to Alice"
        assert payment.payment_id == "user2-user1"

    def test_camel_case_json(self, users):
        expenses = [make_expense("exp1", 10, "user1", {"user2": 10})]

        data = calculate_group_balances(expenses, users).model_dump(mode="json", by_alias=True)

        assert set(data) >= {"userBalances", "debtRelationships", "optimizedPayments", "isSettled", "totalExpenses"}
        assert data["totalExpenses"] == 10.0
        assert data["userBalances"][0]["netBalance"] == 10.0
        assert data["optimizedPayments"][0]["paymentId"] == "user2-user1"


@pytest.mark.unit
class TestUserPaymentPlan:
    """Test the per-user view of the plan."""

    def test_plan_for_creditor_and_debtor(self, trip_expenses, trip_users):
        summary = calculate_group_balances(trip_expenses, trip_users)

        alice = get_user_payment_plan("alice", summary)
        charlie = get_user_payment_plan("charlie", summary)

        assert alice.payments_to_make == []
        assert len(alice.payments_to_receive) == 2
        assert alice.net_amount == Decimal("120")
        assert charlie.payments_to_receive == []
        assert charlie.net_amount == Decimal("-90")

    def test_plan_for_uninvolved_user(self, trip_expenses, trip_users):
        summary = calculate_group_balances(trip_expenses, trip_users)

        plan = get_user_payment_plan("nobody", summary)

        assert plan.payments_to_make == [] and plan.payments_to_receive == []
        assert plan.net_amount == Decimal("0")
