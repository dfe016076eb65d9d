"""
Main Orchestrator for Shop Ledger

Ties the ledger core to storage, the audit log and the advice agent.
LedgerService is the only thing the UI talks to:

1. Entries   (add / edit / delete / list transactions)
2. Payroll   (register staff, weekly pay, month-end settlement)
3. Reports   (totals, payment breakdown, 7-day trend, escrow liability)
4. Profile   (onboarding, settings, which view to show)
5. Extras    (AI advice, CSV export)

Every mutation is applied in memory, audited, and then the affected
collection is saved in full. Reads never touch storage.
"""

from datetime import date
from decimal import Decimal
from typing import Any, Optional, Union
from uuid import UUID

import structlog
from pydantic import ValidationError as PydanticValidationError

from src.agents import PLACEHOLDER_ADVICE, AdviceAgent, BusinessSnapshot
from src.audit import AuditLogger, configure_logging, create_correlation_id
from src.config import AppSettings, Settings, get_settings, optional_gemini_settings
from src.ledger import (
    LedgerError,
    LedgerStore,
    SessionManager,
    StaffPayrollLedger,
    View,
    compute_daily_trend,
    compute_payment_breakdown,
    compute_totals,
    new_transaction,
    recent_transactions,
)
from src.ledger.store import AmountInput, check_amount
from src.models.ledger import (
    GeoLocation,
    LedgerTotals,
    PaymentMethod,
    PayrollResult,
    ShopProfile,
    StaffMember,
    Transaction,
    TransactionType,
    TrendPoint,
)
from src.reports import staff_to_csv, transactions_to_csv
from src.services.storage import (
    PROFILE_KEY,
    STAFF_KEY,
    TRANSACTIONS_KEY,
    AuditStorageInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsKeyValueStore,
    InMemoryKeyValueStore,
    KeyValueStore,
    LocalJsonKeyValueStore,
    StorageError,
)


logger = structlog.get_logger(__name__)


class LedgerService:
    """
    The ledger's interface to its collaborators.

    Owns one LedgerStore, one StaffPayrollLedger and one SessionManager,
    and keeps them in step with the key-value store.
    """

    def __init__(
        self,
        storage: KeyValueStore,
        audit_logger: Optional[AuditLogger] = None,
        advice_agent: Optional[AdviceAgent] = None,
        app_settings: Optional[AppSettings] = None,
    ):
        self._settings = app_settings or get_settings().app
        self._storage = storage
        self._audit = audit_logger or AuditLogger()
        self._advice = advice_agent or AdviceAgent(
            currency_symbol=self._settings.currency_symbol
        )

        # No cap here: payroll entries are never capped, entered amounts are
        # checked in add_transaction / update_transaction.
        self._store = LedgerStore()
        self._payroll = StaffPayrollLedger(
            self._store,
            paid_now_fraction=self._settings.weekly_paid_now_fraction,
            held_fraction=self._settings.weekly_held_fraction,
            currency_symbol=self._settings.currency_symbol,
        )
        self._session = SessionManager()

    # -------------------------------------------------------------------------
    # Wiring
    # -------------------------------------------------------------------------

    @property
    def store(self) -> LedgerStore:
        return self._store

    @property
    def payroll(self) -> StaffPayrollLedger:
        return self._payroll

    @property
    def profile(self) -> ShopProfile:
        return self._session.profile

    async def load(self) -> None:
        """
        Load profile, transactions and staff from storage.

        Raises:
            StorageError: the backend failed or a stored blob is invalid
        """
        profile_data = await self._storage.get(PROFILE_KEY)
        transaction_data = await self._storage.get(TRANSACTIONS_KEY)
        staff_data = await self._storage.get(STAFF_KEY)

        try:
            profile = ShopProfile.model_validate(profile_data or {})
            transactions = [
                Transaction.model_validate(item) for item in transaction_data or []
            ]
            staff = [StaffMember.model_validate(item) for item in staff_data or []]
        except PydanticValidationError as e:
            await self._audit.log_error("invalid_stored_data", str(e))
            raise StorageError(f"Stored ledger data is invalid: {e}")

        try:
            self._store.load(transactions)
            self._payroll.load(staff)
        except LedgerError as e:
            await self._audit.log_error("invalid_stored_data", str(e))
            raise StorageError(f"Stored ledger data is invalid: {e}")
        self._session.load(profile)

        await self._audit.log_ledger_loaded(
            transaction_count=len(transactions),
            staff_count=len(staff),
            configured=profile.is_configured,
        )

    async def _persist(self, *keys: str, correlation_id: Optional[UUID] = None) -> None:
        """Save the named collections in full."""
        for key in keys:
            if key == TRANSACTIONS_KEY:
                value = [t.to_record() for t in self._store.list()]
            elif key == STAFF_KEY:
                value = [s.to_record() for s in self._payroll.list()]
            elif key == PROFILE_KEY:
                value = self._session.profile.to_record()
            else:
                raise ValueError(f"Unknown ledger key: {key}")

            try:
                await self._storage.set(key, value)
            except StorageError as e:
                await self._audit.log_persistence_failed(
                    key=key,
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
                raise

    async def _persist_payroll(
        self,
        result: PayrollResult,
        previous: StaffMember,
        correlation_id: Optional[UUID],
    ) -> None:
        """
        Save a payroll step: both collections or neither.

        If either save fails the step is reverted in memory and the
        transaction list is saved again without it.
        """
        try:
            await self._persist(TRANSACTIONS_KEY, STAFF_KEY, correlation_id=correlation_id)
        except StorageError:
            self._payroll.revert(result.transaction, previous)
            try:
                await self._persist(TRANSACTIONS_KEY, correlation_id=correlation_id)
            except StorageError as e:
                # Already audited by _persist; the original failure is raised below
                logger.error(
                    "payroll_revert_not_saved",
                    staff_id=previous.id,
                    transaction_id=result.transaction.id,
                    error=str(e),
                )
            raise

    async def _rejected(
        self,
        operation: str,
        error: LedgerError,
        correlation_id: Optional[UUID],
    ) -> None:
        await self._audit.log_validation_failed(
            operation=operation,
            field=getattr(error, "field", None),
            message=str(error),
            correlation_id=correlation_id,
        )

    # -------------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------------

    async def add_transaction(
        self,
        transaction: Transaction,
        correlation_id: Optional[UUID] = None,
    ) -> Transaction:
        """
        Record a new transaction.

        Raises:
            ValidationError: bad amount or category, or reused id
        """
        try:
            check_amount(transaction.amount, max_amount=self._settings.max_transaction_amount)
            self._store.add(transaction)
        except LedgerError as e:
            await self._rejected("add_transaction", e, correlation_id)
            raise

        await self._audit.log_transaction_added(
            transaction_id=transaction.id,
            transaction_type=transaction.type.value,
            amount=transaction.amount,
            category=transaction.category,
            correlation_id=correlation_id,
        )
        await self._persist(TRANSACTIONS_KEY, correlation_id=correlation_id)
        return transaction

    async def record_entry(
        self,
        amount: Optional[AmountInput],
        category: str,
        transaction_type: Union[TransactionType, str],
        payment_method: Union[PaymentMethod, str] = PaymentMethod.CASH,
        notes: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> Transaction:
        """Entry-form submit: new id, dated now."""
        try:
            transaction = new_transaction(
                amount=amount,
                category=category,
                transaction_type=transaction_type,
                payment_method=payment_method,
                notes=notes,
                max_amount=self._settings.max_transaction_amount,
            )
        except LedgerError as e:
            await self._rejected("record_entry", e, correlation_id)
            raise
        return await self.add_transaction(transaction, correlation_id=correlation_id)

    async def edit_entry(
        self,
        transaction_id: str,
        amount: Optional[AmountInput],
        category: str,
        transaction_type: Union[TransactionType, str],
        payment_method: Union[PaymentMethod, str] = PaymentMethod.CASH,
        notes: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> Transaction:
        """
        Entry-form submit in edit mode.

        Keeps the original id, date and staff link.
        """
        try:
            original = self._store.get(transaction_id)
            transaction = new_transaction(
                amount=amount,
                category=category,
                transaction_type=transaction_type,
                payment_method=payment_method,
                notes=notes,
                staff_id=original.staff_id,
                transaction_id=original.id,
                date=original.date,
                max_amount=self._settings.max_transaction_amount,
            )
        except LedgerError as e:
            await self._rejected("edit_entry", e, correlation_id)
            raise
        await self.update_transaction(transaction, correlation_id=correlation_id)
        return transaction

    async def update_transaction(
        self,
        transaction: Transaction,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """
        Replace a transaction, matched by id.

        Raises:
            NotFoundError: no transaction has this id
            ValidationError: bad amount or category
        """
        try:
            check_amount(transaction.amount, max_amount=self._settings.max_transaction_amount)
            self._store.update(transaction)
        except LedgerError as e:
            await self._rejected("update_transaction", e, correlation_id)
            raise

        await self._audit.log_transaction_updated(
            transaction_id=transaction.id,
            amount=transaction.amount,
            category=transaction.category,
            correlation_id=correlation_id,
        )
        await self._persist(TRANSACTIONS_KEY, correlation_id=correlation_id)

    async def remove_transaction(
        self,
        transaction_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Delete a transaction. Unknown ids change nothing."""
        removed = self._store.remove(transaction_id)
        await self._audit.log_transaction_removed(
            transaction_id=transaction_id,
            existed=removed,
            correlation_id=correlation_id,
        )
        if removed:
            await self._persist(TRANSACTIONS_KEY, correlation_id=correlation_id)

    def list_transactions(self) -> list[Transaction]:
        return self._store.list()

    # -------------------------------------------------------------------------
    # Staff and payroll
    # -------------------------------------------------------------------------

    async def register_staff(
        self,
        name: Optional[str],
        phone: Optional[str],
        address: Optional[str] = "",
        aadhaar: Optional[str] = "",
        weekly_base_pay: Optional[AmountInput] = None,
        correlation_id: Optional[UUID] = None,
    ) -> StaffMember:
        """
        Register a staff member.

        Raises:
            ValidationError: name, phone or a positive weekly pay missing
        """
        try:
            member = self._payroll.register(
                name=name,
                phone=phone,
                address=address,
                aadhaar=aadhaar,
                weekly_base_pay=weekly_base_pay,
            )
        except LedgerError as e:
            await self._rejected("register_staff", e, correlation_id)
            raise

        await self._audit.log_staff_registered(
            staff_id=member.id,
            name=member.name,
            weekly_base_pay=member.weekly_base_pay,
            correlation_id=correlation_id,
        )
        await self._persist(STAFF_KEY, correlation_id=correlation_id)
        return member

    async def update_staff(
        self,
        staff_id: str,
        correlation_id: Optional[UUID] = None,
        **changes: Any,
    ) -> StaffMember:
        """Correct a staff member's details or base pay."""
        try:
            member = self._payroll.update_profile(staff_id, **changes)
        except LedgerError as e:
            await self._rejected("update_staff", e, correlation_id)
            raise

        await self._audit.log_staff_updated(
            staff_id=staff_id,
            fields=sorted(changes),
            correlation_id=correlation_id,
        )
        await self._persist(STAFF_KEY, correlation_id=correlation_id)
        return member

    def list_staff(self) -> list[StaffMember]:
        return self._payroll.list()

    async def process_weekly_pay(
        self,
        staff_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> PayrollResult:
        """
        Pay 40% now, hold 60%.

        Raises:
            NotFoundError: unknown staff id
        """
        correlation_id = correlation_id or create_correlation_id()
        try:
            previous = self._payroll.get(staff_id)
            result = self._payroll.process_weekly_pay(staff_id)
        except LedgerError as e:
            await self._rejected("process_weekly_pay", e, correlation_id)
            raise

        await self._audit.log_weekly_pay(
            staff_id=staff_id,
            transaction_id=result.transaction.id,
            paid_now=result.transaction.amount,
            held=result.staff.weekly_base_pay - result.transaction.amount,
            correlation_id=correlation_id,
        )
        await self._persist_payroll(result, previous, correlation_id)
        return result

    async def settle_monthly_hold(
        self,
        staff_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> PayrollResult:
        """
        Pay out the held balance. NO_OP when nothing is held.

        Raises:
            NotFoundError: unknown staff id
        """
        correlation_id = correlation_id or create_correlation_id()
        try:
            previous = self._payroll.get(staff_id)
            result = self._payroll.settle_monthly_hold(staff_id)
        except LedgerError as e:
            await self._rejected("settle_monthly_hold", e, correlation_id)
            raise

        if not result.applied:
            await self._audit.log_settlement_skipped(
                staff_id=staff_id,
                correlation_id=correlation_id,
            )
            return result

        await self._audit.log_monthly_settlement(
            staff_id=staff_id,
            transaction_id=result.transaction.id,
            amount=result.transaction.amount,
            correlation_id=correlation_id,
        )
        await self._persist_payroll(result, previous, correlation_id)
        return result

    # -------------------------------------------------------------------------
    # Reports
    # -------------------------------------------------------------------------

    def compute_totals(self) -> LedgerTotals:
        return compute_totals(self._store.list())

    def compute_payment_breakdown(self) -> dict[PaymentMethod, Decimal]:
        return compute_payment_breakdown(self._store.list())

    def compute_daily_trend(self, today: Optional[date] = None) -> list[TrendPoint]:
        return compute_daily_trend(
            self._store.list(),
            today=today,
            days=self._settings.trend_days,
        )

    def total_escrow_liability(self) -> Decimal:
        return self._payroll.total_escrow_liability()

    # -------------------------------------------------------------------------
    # Profile and views
    # -------------------------------------------------------------------------

    async def complete_onboarding(
        self,
        business_name: Optional[str],
        business_address: Optional[str],
        location: Optional[Union[GeoLocation, dict]] = None,
        shop_image: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> ShopProfile:
        """
        Finish setup.

        Raises:
            ValidationError: shop name or address missing
        """
        try:
            profile = self._session.complete_onboarding(
                business_name=business_name,
                business_address=business_address,
                location=location,
                shop_image=shop_image,
            )
        except LedgerError as e:
            await self._rejected("complete_onboarding", e, correlation_id)
            raise

        await self._audit.log_onboarding_completed(
            business_name=profile.business_name,
            has_location=profile.location is not None,
            correlation_id=correlation_id,
        )
        await self._persist(PROFILE_KEY, correlation_id=correlation_id)
        return profile

    async def update_profile(
        self,
        correlation_id: Optional[UUID] = None,
        **changes: Any,
    ) -> ShopProfile:
        try:
            profile = self._session.update_profile(**changes)
        except LedgerError as e:
            await self._rejected("update_profile", e, correlation_id)
            raise

        await self._audit.log_profile_updated(
            fields=sorted(changes),
            correlation_id=correlation_id,
        )
        await self._persist(PROFILE_KEY, correlation_id=correlation_id)
        return profile

    async def reset_profile(self, correlation_id: Optional[UUID] = None) -> ShopProfile:
        """Back to setup. Transactions and staff are kept."""
        profile = self._session.reset()
        await self._audit.log_profile_reset(correlation_id=correlation_id)
        await self._persist(PROFILE_KEY, correlation_id=correlation_id)
        return profile

    def resolve_view(self, requested: Union[View, str, None] = None) -> View:
        return self._session.resolve_view(requested)

    # -------------------------------------------------------------------------
    # Advice and export
    # -------------------------------------------------------------------------

    def business_snapshot(self) -> BusinessSnapshot:
        transactions = self._store.list()
        return BusinessSnapshot(
            business_name=self._session.profile.business_name or "My Shop",
            totals=compute_totals(transactions),
            recent=recent_transactions(
                transactions, limit=self._settings.advice_recent_count
            ),
            transaction_count=len(transactions),
        )

    async def fetch_insights(self, correlation_id: Optional[UUID] = None) -> str:
        """
        Short business advice for the dashboard.

        Below the minimum number of transactions the model is not asked
        and a placeholder is returned. Never raises.
        """
        count = len(self._store)
        if count < self._settings.advice_min_transactions:
            return PLACEHOLDER_ADVICE

        result = await self._advice.advise(self.business_snapshot())
        await self._audit.log_advice(
            transaction_count=count,
            used_fallback=result.used_fallback,
            correlation_id=correlation_id,
        )
        return result.text

    async def export_transactions_csv(self, correlation_id: Optional[UUID] = None) -> str:
        transactions = self._store.list()
        await self._audit.log_export("transactions", len(transactions), correlation_id)
        return transactions_to_csv(transactions)

    async def export_staff_csv(self, correlation_id: Optional[UUID] = None) -> str:
        staff = self._payroll.list()
        await self._audit.log_export("staff", len(staff), correlation_id)
        return staff_to_csv(staff)


def create_storage(settings: Settings) -> tuple[KeyValueStore, Optional[AuditStorageInterface]]:
    """Pick the key-value backend (and audit sink) from settings."""
    backend = settings.storage.backend
    if backend == "memory":
        return InMemoryKeyValueStore(), None
    if backend == "google_sheets":
        client = GoogleSheetsClient(settings.google_sheets)
        return GoogleSheetsKeyValueStore(client), GoogleSheetsAuditStorage(client)
    return LocalJsonKeyValueStore(settings.storage.data_dir), None


def create_app_components(settings: Optional[Settings] = None) -> LedgerService:
    """
    Factory function to create the application service.

    Falls back to local JSON storage if Google Sheets is selected but not
    configured, and to fallback-only advice if no Gemini key is set.
    """
    settings = settings or get_settings()
    app_settings = settings.app
    configure_logging(level=app_settings.log_level, format=app_settings.log_format)

    try:
        storage, audit_storage = create_storage(settings)
    except ValueError as e:
        # Sheets settings missing - continue with local files
        logger.warning("storage_not_configured", error=str(e))
        storage, audit_storage = LocalJsonKeyValueStore(settings.storage.data_dir), None

    gemini = optional_gemini_settings()
    if gemini is None:
        logger.warning("advice_not_configured")

    return LedgerService(
        storage=storage,
        audit_logger=AuditLogger(audit_storage),
        advice_agent=AdviceAgent(
            settings=gemini,
            currency_symbol=app_settings.currency_symbol,
        ),
        app_settings=app_settings,
    )
