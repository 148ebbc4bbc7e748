"""Tests for the immutable ledger entities."""

from datetime import date
from decimal import Decimal

import pytest

from finance_ledger.config import settings
from finance_ledger.models import AccountType, TransactionStatus, TransactionType
from finance_ledger.services.ledger import (
    Account,
    CategoryRegistry,
    InsufficientFundsError,
    InvalidStateError,
    LedgerError,
    ValidationError,
    can_transition,
    format_money,
    to_money,
)
from tests.factories import AccountFactory, TransactionFactory


class TestTransactionInvariants:
    def test_rejects_non_positive_amount(self):
        with pytest.raises(LedgerError, match="positive"):
            TransactionFactory.build(amount=Decimal("0"))
        with pytest.raises(LedgerError):
            TransactionFactory.build(amount=Decimal("-5.00"))

    def test_rejects_due_date_before_transaction_date(self):
        with pytest.raises(LedgerError, match="Due date"):
            TransactionFactory.build(transaction_date=date(2025, 3, 10), due_date=date(2025, 3, 9))

    def test_invariant_errors_name_the_field(self):
        with pytest.raises(ValidationError) as exc_info:
            TransactionFactory.build(amount=Decimal("0"))
        assert [v.field for v in exc_info.value.violations] == ["amount"]

        with pytest.raises(ValidationError) as exc_info:
            TransactionFactory.build(transaction_date=date(2025, 3, 10), due_date=date(2025, 3, 9))
        assert [v.field for v in exc_info.value.violations] == ["due_date"]

    def test_due_date_equal_to_transaction_date_is_allowed(self):
        txn = TransactionFactory.build(transaction_date=date(2025, 3, 10), due_date=date(2025, 3, 10))
        assert txn.due_date == txn.transaction_date


class TestMarkAsPaid:
    def test_revenue_becomes_received(self):
        txn = TransactionFactory.build(type=TransactionType.REVENUE)
        paid = txn.mark_as_paid(date(2025, 3, 5))

        assert paid.status == TransactionStatus.RECEIVED
        assert paid.payment_date == date(2025, 3, 5)

    def test_expense_becomes_paid(self):
        txn = TransactionFactory.build(type=TransactionType.EXPENSE)
        paid = txn.mark_as_paid()

        assert paid.status == TransactionStatus.PAID
        assert paid.payment_date is not None

    def test_original_is_unchanged(self):
        txn = TransactionFactory.build()
        paid = txn.mark_as_paid(date(2025, 3, 5))

        assert paid is not txn
        assert txn.status == TransactionStatus.PENDING
        assert txn.payment_date is None

    def test_overdue_can_be_settled(self):
        txn = TransactionFactory.build(status=TransactionStatus.OVERDUE)
        assert txn.mark_as_paid().is_paid

    def test_cancelled_cannot_be_settled(self):
        txn = TransactionFactory.build(status=TransactionStatus.CANCELLED)
        with pytest.raises(InvalidStateError):
            txn.mark_as_paid()

    def test_refreshes_updated_at(self):
        txn = TransactionFactory.build()
        assert txn.mark_as_paid().updated_at >= txn.updated_at


class TestStateMachine:
    @pytest.mark.parametrize(
        ("current", "target", "allowed"),
        [
            (TransactionStatus.PENDING, TransactionStatus.PAID, True),
            (TransactionStatus.PENDING, TransactionStatus.OVERDUE, True),
            (TransactionStatus.PENDING, TransactionStatus.CANCELLED, True),
            (TransactionStatus.OVERDUE, TransactionStatus.RECEIVED, True),
            (TransactionStatus.OVERDUE, TransactionStatus.PENDING, False),
            (TransactionStatus.PAID, TransactionStatus.PENDING, True),
            (TransactionStatus.PAID, TransactionStatus.CANCELLED, False),
            (TransactionStatus.CANCELLED, TransactionStatus.PENDING, False),
        ],
    )
    def test_can_transition(self, current, target, allowed):
        assert can_transition(current, target) is allowed

    def test_mark_as_overdue_only_from_pending(self):
        txn = TransactionFactory.build()
        overdue = txn.mark_as_overdue()
        assert overdue.status == TransactionStatus.OVERDUE

        with pytest.raises(InvalidStateError):
            overdue.mark_as_overdue()

    def test_mark_as_pending_reverts_settlement(self):
        paid = TransactionFactory.build().mark_as_paid(date(2025, 3, 5))
        reverted = paid.mark_as_pending()

        assert reverted.status == TransactionStatus.PENDING
        assert reverted.payment_date is None

    def test_mark_as_pending_rejects_open_records(self):
        with pytest.raises(InvalidStateError):
            TransactionFactory.build(status=TransactionStatus.OVERDUE).mark_as_pending()

    def test_cancel_settled_is_illegal(self):
        with pytest.raises(InvalidStateError):
            TransactionFactory.build(status=TransactionStatus.PAID).cancel()

    def test_transition_to_rejects_mismatched_settled_status(self):
        txn = TransactionFactory.build(type=TransactionType.REVENUE)
        with pytest.raises(InvalidStateError):
            txn.transition_to(TransactionStatus.PAID)
        assert txn.transition_to(TransactionStatus.RECEIVED).status == TransactionStatus.RECEIVED


class TestFieldTransitions:
    def test_update_notes_and_attachments(self):
        txn = TransactionFactory.build()
        updated = txn.update_notes("checked").add_attachment("receipt.pdf").add_attachment("nf.xml")

        assert updated.notes == "checked"
        assert updated.attachments == ("receipt.pdf", "nf.xml")
        assert txn.attachments == ()

    def test_field_edits_blocked_on_cancelled(self):
        txn = TransactionFactory.build(status=TransactionStatus.CANCELLED)
        with pytest.raises(InvalidStateError):
            txn.update_notes("late")
        with pytest.raises(InvalidStateError):
            txn.add_attachment("x.pdf")
        with pytest.raises(InvalidStateError):
            txn.with_fields(category="expense_other")

    def test_with_fields_without_changes_returns_same_value(self):
        txn = TransactionFactory.build()
        assert txn.with_fields() is txn

    def test_with_fields_applies_only_given_values(self):
        txn = TransactionFactory.build(cost_center="ops", notes="keep")
        updated = txn.with_fields(category="expense_marketing")

        assert updated.category == "expense_marketing"
        assert updated.cost_center == "ops"
        assert updated.notes == "keep"


class TestReadAccessors:
    def test_is_overdue(self):
        txn = TransactionFactory.build(transaction_date=date(2025, 3, 1), due_date=date(2025, 3, 10))

        assert txn.is_overdue(date(2025, 3, 11))
        assert not txn.is_overdue(date(2025, 3, 10))
        assert not txn.mark_as_paid().is_overdue(date(2025, 4, 1))

    def test_is_overdue_without_due_date(self):
        assert not TransactionFactory.build().is_overdue(date(2099, 1, 1))

    def test_formatted_amount(self):
        txn = TransactionFactory.build(amount=Decimal("1234.5"))
        assert txn.formatted_amount() == "BRL 1,234.50"

    def test_formatted_amount_follows_base_currency(self, monkeypatch):
        monkeypatch.setattr(settings, "base_currency", "USD")
        txn = TransactionFactory.build(amount=Decimal("10"))

        assert txn.formatted_amount() == "USD 10.00"
        assert txn.formatted_amount("EUR") == "EUR 10.00"
        assert Account(name="Cash", type=AccountType.CASH).currency == "USD"

    def test_type_flags(self):
        revenue = TransactionFactory.build(type=TransactionType.REVENUE)
        assert revenue.is_revenue and not revenue.is_expense
        assert revenue.settled_status == TransactionStatus.RECEIVED
        assert revenue.is_open


class TestAccount:
    def test_credit_and_debit_return_new_values(self):
        account = AccountFactory.build(balance=Decimal("100.00"))

        credited = account.credit(Decimal("50.00"))
        debited = credited.debit(Decimal("150.00"))

        assert credited.balance == Decimal("150.00")
        assert debited.balance == Decimal("0.00")
        assert account.balance == Decimal("100.00")

    def test_debit_beyond_balance_raises(self):
        account = AccountFactory.build(balance=Decimal("100.00"))

        with pytest.raises(InsufficientFundsError) as exc_info:
            account.debit(Decimal("100.01"))

        assert exc_info.value.balance == Decimal("100.00")
        assert exc_info.value.amount == Decimal("100.01")

    def test_overdraft_bypass(self):
        account = AccountFactory.build(balance=Decimal("10.00"))
        assert account.debit(Decimal("25.00"), allow_overdraft=True).balance == Decimal("-15.00")

    def test_non_positive_amounts_rejected(self):
        account = AccountFactory.build()
        with pytest.raises(LedgerError):
            account.credit(Decimal("0"))
        with pytest.raises(LedgerError):
            account.debit(Decimal("-1"))

    def test_can_debit(self):
        account = AccountFactory.build(balance=Decimal("10.00"))
        assert account.can_debit(Decimal("10.00"))
        assert not account.can_debit(Decimal("10.01"))

    def test_apply_and_reverse_settlement(self):
        account = Account(name="Main", type=AccountType.CHECKING, balance=Decimal("100.00"))
        expense = TransactionFactory.build(amount=Decimal("40.00"), account_id=account.id)

        after = account.apply_settlement(expense)
        assert after.balance == Decimal("60.00")
        assert after.reverse_settlement(expense).balance == Decimal("100.00")

    def test_formatted_balance_and_deactivate(self):
        account = AccountFactory.build(balance=Decimal("-1500"), currency="USD")
        assert account.formatted_balance == "USD -1,500.00"
        assert not account.deactivate().is_active
        assert account.is_active


class TestMoney:
    def test_to_money_rounds_half_up(self):
        assert to_money("2.675") == Decimal("2.68")
        assert to_money(3) == Decimal("3.00")

    def test_format_money(self):
        assert format_money(Decimal("999999999.99"), "BRL") == "BRL 999,999,999.99"


class TestCategoryRegistry:
    def test_builtin_categories_are_compatible_with_their_type(self):
        registry = CategoryRegistry()
        for key in registry.categories_for(TransactionType.REVENUE):
            assert registry.is_compatible(key, TransactionType.REVENUE)
            assert not registry.is_compatible(key, TransactionType.EXPENSE)

    def test_custom_category_with_type_tag_is_accepted(self):
        registry = CategoryRegistry()
        assert registry.is_compatible("expense_rent", TransactionType.EXPENSE)
        assert not registry.is_compatible("rent", TransactionType.EXPENSE)
        assert not registry.is_compatible("expense_", TransactionType.EXPENSE)

    def test_register_and_label(self):
        registry = CategoryRegistry()
        registry.register(TransactionType.EXPENSE, "expense_rent", "Rent")

        assert registry.label("expense_rent") == "Rent"
        assert "expense_rent" in list(registry)
        assert registry.label("unknown") == "unknown"

    def test_register_rejects_untagged_key(self):
        with pytest.raises(LedgerError):
            CategoryRegistry().register(TransactionType.REVENUE, "expense_rent")

