"""
Service-level tests for LedgerService.

Runs against InMemoryKeyValueStore and InMemoryAuditStorage; the advice
model is a stub.
"""

from decimal import Decimal

import pytest

from src.agents import FALLBACK_ADVICE, PLACEHOLDER_ADVICE, AdviceAgent
from src.audit import AuditLogger
from src.config import AppSettings
from src.ledger import NotFoundError, ValidationError, View
from src.models.audit import AuditEventType
from src.models.ledger import PaymentMethod, PayrollOutcome, Transaction, TransactionType
from src.orchestrator import LedgerService
from src.services.storage import (
    PROFILE_KEY,
    STAFF_KEY,
    TRANSACTIONS_KEY,
    InMemoryAuditStorage,
    InMemoryKeyValueStore,
    StorageError,
)

pytestmark = pytest.mark.asyncio


class StubResponse:
    def __init__(self, text):
        self.text = text


class StubModel:
    def __init__(self, text="Good week. Watch milk costs."):
        self.text = text
        self.prompts = []

    async def generate_content_async(self, prompt):
        self.prompts.append(prompt)
        return StubResponse(self.text)


class BrokenStore(InMemoryKeyValueStore):
    """Reads work, writes fail."""

    async def set(self, key, value):
        raise StorageError(f"disk full while saving {key}")


@pytest.fixture
def storage():
    return InMemoryKeyValueStore()


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def model():
    return StubModel()


class StaffSaveFailingStore(InMemoryKeyValueStore):
    """Fails staff writes once `fail_staff` is switched on."""

    fail_staff = False

    async def set(self, key, value):
        if self.fail_staff and key == STAFF_KEY:
            raise StorageError("quota exceeded while saving shop_staff")
        await super().set(key, value)


def build_service(storage, audit_storage=None, model=None, app_settings=None) -> LedgerService:
    return LedgerService(
        storage=storage,
        audit_logger=AuditLogger(audit_storage),
        advice_agent=AdviceAgent(model=model),
        app_settings=app_settings or AppSettings(),
    )


@pytest.fixture
def service(storage, audit_storage, model):
    return build_service(storage, audit_storage, model)


def event_types(audit_storage):
    return [event.event_type for event in audit_storage.events]


class TestLoad:
    """Loading saved state."""

    async def test_empty_storage(self, service):
        await service.load()
        assert service.list_transactions() == []
        assert service.list_staff() == []
        assert service.resolve_view() == View.SETUP

    async def test_state_survives_restart(self, storage, service):
        await service.complete_onboarding("Raju Tea Stall", "MG Road")
        sale = await service.record_entry("500", "Tea Sales", TransactionType.INCOME)
        ravi = await service.register_staff(name="Ravi", phone="1", weekly_base_pay="1000")
        await service.process_weekly_pay(ravi.id)

        restarted = build_service(storage)
        await restarted.load()

        assert restarted.resolve_view() == View.DASHBOARD
        assert restarted.profile.business_name == "Raju Tea Stall"
        assert sale.id in [t.id for t in restarted.list_transactions()]
        assert restarted.total_escrow_liability() == Decimal("600.00")
        assert restarted.compute_totals() == service.compute_totals()

    async def test_stored_records_use_camel_case(self, storage, service):
        await service.record_entry("20", "Snacks", "INCOME", payment_method="GPAY")
        stored = await storage.get(TRANSACTIONS_KEY)
        assert stored[0]["paymentMethod"] == "GPAY"
        assert stored[0]["amount"] == "20"

    async def test_invalid_stored_data(self, audit_storage):
        storage = InMemoryKeyValueStore({TRANSACTIONS_KEY: [{"amount": "-1"}]})
        service = build_service(storage, audit_storage)
        with pytest.raises(StorageError):
            await service.load()
        assert AuditEventType.SYSTEM_ERROR in event_types(audit_storage)


class TestTransactions:
    """Recording, editing and deleting entries."""

    async def test_record_entry(self, storage, audit_storage, service):
        transaction = await service.record_entry(
            amount="120.50",
            category="Tea Sales",
            transaction_type="INCOME",
            payment_method=PaymentMethod.PHONEPE,
            notes="Evening rush",
        )

        assert service.list_transactions() == [transaction]
        assert len(await storage.get(TRANSACTIONS_KEY)) == 1
        assert AuditEventType.TRANSACTION_ADDED in event_types(audit_storage)

    async def test_rejected_entry_is_audited_and_not_saved(self, storage, audit_storage, service):
        with pytest.raises(ValidationError):
            await service.record_entry("", "Tea Sales", "INCOME")

        assert service.list_transactions() == []
        assert storage.write_count == 0
        assert event_types(audit_storage) == [AuditEventType.VALIDATION_FAILED]
        assert audit_storage.events[0].details["field"] == "amount"

    async def test_edit_keeps_id_and_date(self, service):
        original = await service.record_entry("100", "Tea Sales", "INCOME")

        edited = await service.edit_entry(
            original.id,
            amount="150",
            category="Snacks",
            transaction_type="INCOME",
        )

        assert edited.id == original.id
        assert edited.date == original.date
        assert service.list_transactions() == [edited]
        assert service.compute_totals().income == Decimal("150")

    async def test_edit_unknown_entry(self, service):
        with pytest.raises(NotFoundError):
            await service.edit_entry("missing", "10", "Snacks", "INCOME")

    async def test_remove(self, storage, service):
        transaction = await service.record_entry("100", "Tea Sales", "INCOME")
        await service.remove_transaction(transaction.id)
        assert service.list_transactions() == []
        assert await storage.get(TRANSACTIONS_KEY) == []

    async def test_remove_unknown_id_writes_nothing(self, storage, audit_storage, service):
        await service.remove_transaction("missing")
        assert storage.write_count == 0
        assert event_types(audit_storage) == [AuditEventType.TRANSACTION_REMOVED]

    async def test_figures_follow_every_change(self, service):
        sale = await service.record_entry("500", "Tea Sales", "INCOME")
        await service.record_entry("200", "Milk", "EXPENSE")
        assert service.compute_totals().profit == Decimal("300")
        assert service.compute_daily_trend()[-1].income == Decimal("500")

        await service.remove_transaction(sale.id)
        assert service.compute_totals().profit == Decimal("-200")
        assert service.compute_payment_breakdown() == {}


class TestPayroll:
    """Weekly pay and month-end settlement through the service."""

    async def test_weekly_pay_saves_both_collections(self, storage, service):
        ravi = await service.register_staff(name="Ravi", phone="1", weekly_base_pay="1000")

        result = await service.process_weekly_pay(ravi.id)

        assert result.transaction.amount == Decimal("400.00")
        stored_staff = await storage.get(STAFF_KEY)
        stored_transactions = await storage.get(TRANSACTIONS_KEY)
        assert stored_staff[0]["totalHeldBalance"] == "600.00"
        assert stored_transactions[0]["staffId"] == ravi.id
        assert service.compute_totals().expenses == Decimal("400.00")

    async def test_settlement_then_no_op(self, storage, audit_storage, service):
        ravi = await service.register_staff(name="Ravi", phone="1", weekly_base_pay="1000")
        for _ in range(3):
            await service.process_weekly_pay(ravi.id)

        settled = await service.settle_monthly_hold(ravi.id)
        assert settled.transaction.amount == Decimal("1800.00")
        assert service.total_escrow_liability() == 0

        writes = storage.write_count
        skipped = await service.settle_monthly_hold(ravi.id)

        assert skipped.outcome == PayrollOutcome.NO_OP
        assert storage.write_count == writes
        assert event_types(audit_storage)[-1] == AuditEventType.SETTLEMENT_SKIPPED

    async def test_register_invalid_staff(self, audit_storage, service):
        with pytest.raises(ValidationError):
            await service.register_staff(name="Ravi", phone="", weekly_base_pay="1000")
        assert event_types(audit_storage) == [AuditEventType.VALIDATION_FAILED]

    async def test_update_staff(self, storage, service):
        ravi = await service.register_staff(name="Ravi", phone="1", weekly_base_pay="1000")
        await service.update_staff(ravi.id, weekly_base_pay="1200")
        stored = await storage.get(STAFF_KEY)
        assert stored[0]["weeklyBasePay"] == "1200"

    async def test_pay_unknown_staff(self, service):
        with pytest.raises(NotFoundError):
            await service.process_weekly_pay("missing")


class TestProfile:
    """Onboarding, settings and reset."""

    async def test_onboarding_unlocks_views(self, storage, service):
        assert service.resolve_view("reports") == View.SETUP
        await service.complete_onboarding("Raju Tea Stall", "MG Road")
        assert service.resolve_view("reports") == View.REPORTS
        stored = await storage.get(PROFILE_KEY)
        assert stored["isConfigured"] is True
        assert stored["businessName"] == "Raju Tea Stall"

    async def test_onboarding_requires_name(self, service):
        with pytest.raises(ValidationError):
            await service.complete_onboarding("", "MG Road")
        assert service.resolve_view() == View.SETUP

    async def test_update_profile(self, service):
        await service.complete_onboarding("Raju Tea Stall", "MG Road")
        profile = await service.update_profile(name="Raju", email="raju@example.com")
        assert profile.email == "raju@example.com"

    async def test_reset_keeps_ledger(self, service):
        await service.complete_onboarding("Raju Tea Stall", "MG Road")
        await service.record_entry("10", "Snacks", "INCOME")
        await service.reset_profile()
        assert service.resolve_view() == View.SETUP
        assert len(service.list_transactions()) == 1


class TestInsights:
    """AI advice through the service."""

    async def test_placeholder_below_three_transactions(self, model, service):
        await service.record_entry("10", "Snacks", "INCOME")
        await service.record_entry("10", "Snacks", "INCOME")
        assert await service.fetch_insights() == PLACEHOLDER_ADVICE
        assert model.prompts == []

    async def test_advice_from_model(self, model, service):
        for amount in ("100", "200", "300"):
            await service.record_entry(amount, "Tea Sales", "INCOME")
        await service.complete_onboarding("Raju Tea Stall", "MG Road")

        advice = await service.fetch_insights()

        assert advice == "Good week. Watch milk costs."
        assert '"Raju Tea Stall"' in model.prompts[0]

    async def test_prompt_uses_five_newest(self, model, service):
        for amount in range(1, 8):
            await service.record_entry(str(amount), "Tea Sales", "INCOME")
        await service.fetch_insights()
        prompt = model.prompts[0]
        assert "₹7.00" in prompt
        assert "₹3.00 (Tea Sales)" in prompt
        assert "₹2.00 (Tea Sales)" not in prompt

    async def test_fallback_without_model(self, storage, audit_storage):
        service = build_service(storage, audit_storage, model=None)
        for _ in range(3):
            await service.record_entry("10", "Snacks", "INCOME")
        assert await service.fetch_insights() == FALLBACK_ADVICE
        assert event_types(audit_storage)[-1] == AuditEventType.ADVICE_FALLBACK


class TestExport:
    """CSV export through the service."""

    async def test_exports(self, audit_storage, service):
        await service.record_entry("10", "Snacks", "INCOME")
        await service.register_staff(name="Ravi", phone="1", weekly_base_pay="1000")

        transactions_csv = await service.export_transactions_csv()
        staff_csv = await service.export_staff_csv()

        assert transactions_csv.count("\n") == 2
        assert "Ravi" in staff_csv
        assert event_types(audit_storage)[-2:] == [
            AuditEventType.DATA_EXPORTED,
            AuditEventType.DATA_EXPORTED,
        ]


class TestPersistenceFailure:
    """Storage errors are audited and surfaced."""

    async def test_failed_save_is_audited_and_raised(self, audit_storage):
        service = build_service(BrokenStore(), audit_storage)

        with pytest.raises(StorageError):
            await service.record_entry("10", "Snacks", "INCOME")

        assert AuditEventType.PERSISTENCE_FAILED in event_types(audit_storage)
        # The in-memory ledger keeps the entry for this session
        assert len(service.list_transactions()) == 1


class TestPayrollPersistenceFailure:
    """A payroll step that cannot be saved in full is undone."""

    async def test_weekly_pay_rolled_back_when_staff_save_fails(self, audit_storage):
        storage = StaffSaveFailingStore()
        service = build_service(storage, audit_storage)
        ravi = await service.register_staff(name="Ravi", phone="1", weekly_base_pay="1000")
        storage.fail_staff = True

        with pytest.raises(StorageError):
            await service.process_weekly_pay(ravi.id)

        assert service.list_transactions() == []
        assert service.total_escrow_liability() == 0
        assert await storage.get(TRANSACTIONS_KEY) == []
        assert AuditEventType.PERSISTENCE_FAILED in event_types(audit_storage)

        restarted = build_service(storage)
        await restarted.load()
        assert restarted.list_transactions() == []
        assert restarted.total_escrow_liability() == 0

    async def test_settlement_rolled_back_when_staff_save_fails(self):
        storage = StaffSaveFailingStore()
        service = build_service(storage)
        ravi = await service.register_staff(name="Ravi", phone="1", weekly_base_pay="1000")
        await service.process_weekly_pay(ravi.id)
        storage.fail_staff = True

        with pytest.raises(StorageError):
            await service.settle_monthly_hold(ravi.id)

        assert len(service.list_transactions()) == 1
        assert service.total_escrow_liability() == Decimal("600.00")

        restarted = build_service(storage)
        await restarted.load()
        assert len(restarted.list_transactions()) == 1
        assert restarted.total_escrow_liability() == Decimal("600.00")

        storage.fail_staff = False
        settled = await service.settle_monthly_hold(ravi.id)
        assert settled.transaction.amount == Decimal("600.00")


class TestAmountCap:
    """The amount cap applies to entered amounts, not payroll."""

    @pytest.fixture
    def capped(self, storage):
        return build_service(
            storage,
            app_settings=AppSettings(max_transaction_amount=Decimal("1000")),
        )

    async def test_entered_amount_above_cap_is_rejected(self, capped):
        with pytest.raises(ValidationError):
            await capped.record_entry("1500", "Tea Sales", "INCOME")
        with pytest.raises(ValidationError):
            await capped.add_transaction(
                Transaction(amount=Decimal("1500"), category="Rent", type="EXPENSE")
            )
        assert capped.list_transactions() == []

    async def test_edit_above_cap_is_rejected(self, capped):
        entry = await capped.record_entry("900", "Tea Sales", "INCOME")
        with pytest.raises(ValidationError):
            await capped.update_transaction(entry.model_copy(update={"amount": Decimal("1500")}))
        assert capped.list_transactions() == [entry]

    async def test_payroll_above_cap_still_runs(self, capped):
        member = await capped.register_staff(name="Ravi", phone="1", weekly_base_pay="5000")

        weekly = await capped.process_weekly_pay(member.id)
        await capped.process_weekly_pay(member.id)
        settled = await capped.settle_monthly_hold(member.id)

        assert weekly.transaction.amount == Decimal("2000.00")
        assert settled.transaction.amount == Decimal("6000.00")
        assert capped.total_escrow_liability() == 0
