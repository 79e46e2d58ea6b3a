"""
Main Orchestrator for Expense Ledger

This module ties together all the components and defines the
end-to-end flows for:
1. Purchase submission (raw rows → validate → month sheet → week block → row)
2. Reporting (month sheet → aggregates → chart data / e-mail)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Nothing is written until the whole submission has validated
- Purchases are written one at a time, each with a fresh scan
- Every step is audited

The ledger engine never sees raw form input and the reporting side
never writes to a month sheet.
"""

from decimal import Decimal
from typing import Any, Iterable, Mapping, Optional
from uuid import UUID

import structlog
from gspread.exceptions import APIError
from pydantic import ValidationError

from expense_ledger.audit import AuditLogger, create_correlation_id
from expense_ledger.config import LedgerSettings, get_settings
from expense_ledger.ledger import (
    BlockBuilder,
    BlockLocator,
    InvalidArgument,
    InvalidTransaction,
    LedgerError,
    LedgerWriter,
    PartitionNotFound,
    PeriodResolver,
)
from expense_ledger.ledger.layout import VALUE_COLUMN, is_blank, parse_amount, week_label
from expense_ledger.models.ledger import (
    BlockCoordinates,
    PeriodSummary,
    ReportDelivery,
    ReportPayload,
    SubmissionResult,
    Transaction,
    WeekTotal,
)
from expense_ledger.reporting import Aggregator, ChartDataWriter, ReportFormatter
from expense_ledger.services.delivery import DeliveryError, ReportMailer, is_valid_address
from expense_ledger.services.storage import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsGridStore,
    GridStore,
    InMemoryGridStore,
    StorageError,
)
from expense_ledger.validation import TransactionValidator


logger = structlog.get_logger(__name__)


class PurchaseFlow:
    """
    Orchestrates purchase submission.

    Flow:
    1. Validate → every row of the submission, before any write
    2. Resolve → month sheet for the purchase date (created if missing)
    3. Locate → week block by label (created at the end if missing)
    4. Append → row above the block total, totals rewritten

    Steps 2-4 run per purchase, in submission order.
    """

    def __init__(
        self,
        store: GridStore,
        validator: Optional[TransactionValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._validator = validator or TransactionValidator()
        self._resolver = PeriodResolver(store)
        self._locator = BlockLocator(store)
        self._builder = BlockBuilder(store)
        self._writer = LedgerWriter(store)
        self._audit_logger = audit_logger

    def submit(
        self,
        raw_items: Iterable[Mapping[str, Any]],
        correlation_id: Optional[UUID] = None,
    ) -> SubmissionResult:
        """
        Validate and write a batch of purchases.

        Returns:
            SubmissionResult with the count and the month sheets touched

        Raises:
            InvalidArgument / InvalidTransaction: Nothing was written
            LedgerError / StorageError: Purchases before the failing one
                                        are already in the ledger
        """
        correlation_id = correlation_id or create_correlation_id()
        items = list(raw_items)

        if self._audit_logger:
            self._audit_logger.log_submission_received(len(items), correlation_id)

        try:
            transactions = self._validator.parse_batch(items)
        except InvalidTransaction as e:
            if self._audit_logger:
                self._audit_logger.log_submission_rejected(
                    reason=str(e),
                    field=e.field or None,
                    index=e.index if e.index >= 0 else None,
                    correlation_id=correlation_id,
                )
            raise
        except InvalidArgument as e:
            if self._audit_logger:
                self._audit_logger.log_submission_rejected(
                    reason=str(e),
                    field=None,
                    index=None,
                    correlation_id=correlation_id,
                )
            raise

        periods: list[str] = []
        for transaction in transactions:
            key = self.add(transaction, correlation_id)
            if key not in periods:
                periods.append(key)

        if self._audit_logger:
            self._audit_logger.log_submission_completed(
                added=len(transactions),
                periods=periods,
                correlation_id=correlation_id,
            )

        return SubmissionResult(added=len(transactions), periods=periods)

    def add(
        self,
        transaction: Transaction,
        correlation_id: Optional[UUID] = None,
    ) -> str:
        """
        Write one validated purchase.

        Returns:
            The period key of the month sheet written to
        """
        try:
            handle = self._resolver.resolve(transaction.date)
            if handle.created and self._audit_logger:
                self._audit_logger.log_partition_created(handle.key, correlation_id)

            block = self._locate_or_create(handle.key, week_label(transaction.date), correlation_id)
            updated = self._writer.append(handle.key, block, transaction)
        except StorageError as e:
            if self._audit_logger:
                self._audit_logger.log_external_service_error(
                    service="google_sheets",
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            raise
        except LedgerError as e:
            if self._audit_logger:
                self._audit_logger.log_error(
                    error_type=type(e).__name__,
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            raise

        if self._audit_logger:
            block_total = parse_amount(
                self._store.read_cell(handle.key, updated.total_row, VALUE_COLUMN)
            )
            self._audit_logger.log_transaction_appended(
                period_key=handle.key,
                week_label=updated.week_label,
                row=updated.total_row - 1,
                amount=transaction.total,
                block_total=block_total,
                correlation_id=correlation_id,
            )
        return handle.key

    def _locate_or_create(
        self,
        partition: str,
        label: str,
        correlation_id: Optional[UUID],
    ) -> BlockCoordinates:
        block = self._locator.locate(partition, label)
        if block is not None:
            return block

        block = self._builder.create(partition, label)
        if self._audit_logger:
            self._audit_logger.log_block_created(
                period_key=partition,
                week_label=label,
                label_row=block.label_row,
                correlation_id=correlation_id,
            )
        return block

    def recompute(
        self,
        period_key: str,
        correlation_id: Optional[UUID] = None,
    ) -> Decimal:
        """
        Rebuild every total of a month sheet from its rows.

        Raises:
            PartitionNotFound: If the month sheet does not exist
        """
        handle = self._resolver.get(period_key)
        total = self._writer.recompute_totals(handle.key)
        if self._audit_logger:
            self._audit_logger.log_totals_recomputed(
                period_key=handle.key,
                block_count=len(self._locator.blocks(handle.key)),
                period_total=total,
                correlation_id=correlation_id,
            )
        return total


class ReportFlow:
    """
    Orchestrates the read side: chart data, the yearly overview and
    e-mailed reports.

    Never writes to a month sheet. Chart tables go to the helper sheet.
    """

    def __init__(
        self,
        store: GridStore,
        ledger_settings: Optional[LedgerSettings] = None,
        formatter: Optional[ReportFormatter] = None,
        mailer: Optional[ReportMailer] = None,
        audit_logger: Optional[AuditLogger] = None,
        excluded_partitions: Iterable[str] = (),
    ):
        """
        Args:
            store: Grid holding the month sheets
            ledger_settings: Helper sheet names and currency format
            formatter: Defaults to one built from `ledger_settings`
            mailer: Created on first send if None
            audit_logger: Optional audit trail
            excluded_partitions: Extra non-ledger sheets (e.g. the audit log)
        """
        settings = ledger_settings or get_settings().ledger
        excluded = {settings.helper_sheet_name, settings.dashboard_sheet_name}
        excluded.update(excluded_partitions)

        self._aggregator = Aggregator(store, excluded)
        self._formatter = formatter or ReportFormatter.from_settings(settings)
        self._charts = ChartDataWriter(store, settings.helper_sheet_name)
        self._mailer = mailer
        self._audit_logger = audit_logger

    @property
    def formatter(self) -> ReportFormatter:
        return self._formatter

    def list_periods(self) -> list[str]:
        """Month sheet keys, in sheet order."""
        return self._aggregator.ledger_partitions()

    def _ledger_period(self, period_key: str) -> str:
        if not isinstance(period_key, str) or is_blank(period_key):
            raise InvalidArgument("A month must be selected")
        period_key = period_key.strip()
        if not self._aggregator.is_ledger_partition(period_key):
            raise PartitionNotFound(period_key)
        return period_key

    def _chart_written(self, chart: str, period_key: Optional[str], points: int) -> None:
        if self._audit_logger:
            self._audit_logger.log_charts_generated(chart, period_key, points)

    def weekly_chart(self, period_key: str) -> list[WeekTotal]:
        """
        Weekly totals of one month, also written to the chart sheet.

        An empty list means the month has no blocks yet.
        """
        period_key = self._ledger_period(period_key)
        weeks = self._aggregator.weekly_totals(period_key)
        if weeks:
            points = self._charts.write_weekly(self._formatter.weekly_chart_table(weeks))
            self._chart_written("weekly", period_key, points)
        return weeks

    def store_chart(self, period_key: str) -> dict[str, Decimal]:
        """Spend per store for one month, also written to the chart sheet."""
        period_key = self._ledger_period(period_key)
        stores = self._aggregator.store_totals(period_key)
        if stores:
            points = self._charts.write_stores(self._formatter.store_chart_table(stores))
            self._chart_written("store", period_key, points)
        return stores

    def yearly_overview(self) -> list[PeriodSummary]:
        """Totals of every month sheet, also written to the chart sheet."""
        periods = self._aggregator.period_totals()
        if periods:
            points = self._charts.write_periods(self._formatter.period_chart_table(periods))
            self._chart_written("yearly", None, points)
        return periods

    def build_report(self, period_key: str) -> ReportPayload:
        period_key = self._ledger_period(period_key)
        total = self._aggregator.period_total(period_key)
        return self._formatter.build_report(
            period_key=period_key,
            total_spent=total if total is not None else Decimal(0),
            weekly=self._aggregator.weekly_totals(period_key),
            stores=self._aggregator.store_totals(period_key),
        )

    def send_report(
        self,
        period_key: str,
        email: str,
        correlation_id: Optional[UUID] = None,
    ) -> ReportDelivery:
        """
        E-mail the report of one month.

        Raises:
            InvalidArgument: If the month or the address is missing or malformed
            PartitionNotFound: If the month sheet does not exist
            DeliveryError: If e-mail is not configured or the send failed
        """
        if not isinstance(email, str) or is_blank(email):
            raise InvalidArgument("An e-mail address is required")
        if not is_valid_address(email):
            raise InvalidArgument(f"Invalid e-mail address: {email!r}")

        payload = self.build_report(period_key)

        try:
            delivery = self._get_mailer().send(payload, email)
        except DeliveryError as e:
            if self._audit_logger:
                self._audit_logger.log_external_service_error(
                    service="smtp",
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            raise

        if self._audit_logger:
            self._audit_logger.log_report_sent(
                period_key=payload.period_key,
                to_address=delivery.to_address,
                total=payload.total_spent,
                correlation_id=correlation_id,
            )
        return delivery

    def _get_mailer(self) -> ReportMailer:
        if self._mailer is None:
            try:
                self._mailer = ReportMailer(formatter=self._formatter)
            except ValidationError as e:
                raise DeliveryError(f"E-mail is not configured: {e}") from e
        return self._mailer


def create_app_components(
    use_storage: bool = True,
) -> tuple[PurchaseFlow, ReportFlow, GridStore]:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to connect to Google Sheets.
                     Set to False to run on the in-memory store.

    Returns:
        (purchase_flow, report_flow, store)
    """
    store: Optional[GridStore] = None
    audit_logger = None
    excluded: list[str] = []

    if use_storage:
        try:
            sheets_client = GoogleSheetsClient()
            sheets_client.get_spreadsheet()
            store = GoogleSheetsGridStore(sheets_client)
            audit_logger = AuditLogger(GoogleSheetsAuditStorage(sheets_client))
            excluded.append(get_settings().google_sheets.audit_sheet_name)
        except (ValidationError, StorageError, APIError) as e:
            # Storage not configured - continue in memory
            logger.warning("storage_not_configured", error=str(e))
            store = None

    if store is None:
        store = InMemoryGridStore()
        audit_logger = AuditLogger()  # Local-only logging

    purchase_flow = PurchaseFlow(store, audit_logger=audit_logger)
    report_flow = ReportFlow(
        store,
        audit_logger=audit_logger,
        excluded_partitions=excluded,
    )
    return purchase_flow, report_flow, store
