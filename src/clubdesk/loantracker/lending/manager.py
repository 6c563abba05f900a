"""Lending manager for material loan operations.

Inventory counts are a best-effort side effect of loan writes: the loan
record (its existence, its returned status) is committed first, and a
failure to adjust the material's available quantity is logged and reported
in the result, never rolled back. Periodic inventory review reconciles any
drift.
"""

from datetime import datetime, timedelta
from typing import Any, Callable, Iterable, Optional

from loguru import logger
from pydantic import ValidationError

from ..activities.manager import ActivityManager
from ..activities.schemas import ACTIVITIES_COLLECTION, Activity, ActivityStatus
from ..db.store import SERVER_TIMESTAMP, DocumentStore
from ..exceptions import LoanStateError, LoanTrackerError, LoanValidationError, NotFoundError
from ..materials.manager import MaterialManager
from ..materials.schemas import Incident, IncidentKind
from ..settings.schemas import ThresholdConfig, as_utc, utc_now
from .cache import OverdueQueryCache
from .schemas import (
    AUTO_MARK_TAG,
    LOANS_COLLECTION,
    OUTSTANDING_STATUSES,
    RETURNED_STATUSES,
    BulkReturnResult,
    DerivedLoanState,
    DerivedStatus,
    Loan,
    LoanCreate,
    LoanPermission,
    LoanResult,
    LoanStatus,
    OperationError,
    SweepResult,
    incident_tag,
    status_for_incident,
)
from .state import derive_state, is_overdue

# Finished activities older than this get their loans flagged for return
AUTO_MARK_AFTER_DAYS = 7

# Statuses a loan can never be returned from
NOT_RETURNABLE = RETURNED_STATUSES | {LoanStatus.REJECTED, LoanStatus.CANCELLED}


def append_observation(existing: Optional[str], *notes: Optional[str]) -> str:
    """Append notes on new lines; existing text is never replaced."""
    parts = [existing.rstrip()] if existing and existing.strip() else []
    parts.extend(n.strip() for n in notes if n and n.strip())
    return "\n".join(parts)


class LendingManager:
    """Manages the loan lifecycle: lending, returns and overdue handling."""

    def __init__(
        self,
        store: DocumentStore,
        config: ThresholdConfig,
        materials: Optional[MaterialManager] = None,
        activities: Optional[ActivityManager] = None,
        cache: Optional[OverdueQueryCache[Loan]] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        """Initialize lending manager.

        Args:
            store: Document store
            config: Threshold snapshot used for every derived state
            materials: Material manager (built on ``store`` if not provided)
            activities: Activity manager (built on ``store`` if not provided)
            cache: Overdue query cache (wraps this manager's scan if not provided)
            clock: Source of the current UTC time
        """
        self.store = store
        self.config = config
        self.materials = materials or MaterialManager(store)
        self.activities = activities or ActivityManager(store)
        self.overdue_cache = cache or OverdueQueryCache(self._scan_overdue_loans)
        self._now = clock

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def get_loan(self, loan_id: str) -> Loan:
        """Get a loan by ID, read fresh from the store.

        Raises:
            NotFoundError: Loan does not exist
        """
        doc = self.store.get_by_id(LOANS_COLLECTION, loan_id)
        if doc is None:
            raise NotFoundError(LOANS_COLLECTION, loan_id)
        return Loan.model_validate(doc)

    def _parse_loans(self, docs: Iterable[dict[str, Any]]) -> list[Loan]:
        loans = []
        for doc in docs:
            try:
                loans.append(Loan.model_validate(doc))
            except ValidationError as e:
                logger.warning(f"Skipping malformed loan {doc.get('id')}: {e.error_count()} error(s)")
        return loans

    def list_loans_for_user(self, user_id: str, include_returned: bool = True) -> list[Loan]:
        """List a member's loans, newest first."""
        docs = self.store.query_by_field(
            LOANS_COLLECTION, "user_id", user_id, order_by="loan_date", descending=True
        )
        loans = self._parse_loans(docs)
        if not include_returned:
            loans = [l for l in loans if l.status not in RETURNED_STATUSES]
        return loans

    def list_loans_by_activity(self, activity_id: str) -> list[Loan]:
        docs = self.store.query_by_field(LOANS_COLLECTION, "activity_id", activity_id, order_by="loan_date")
        return self._parse_loans(docs)

    def list_outstanding_loans(self) -> list[Loan]:
        """Loans still out with members, oldest first."""
        docs = self.store.query_by_field(
            LOANS_COLLECTION,
            "status",
            sorted(s.value for s in OUTSTANDING_STATUSES),
            order_by="loan_date",
            op="in",
        )
        return self._parse_loans(docs)

    def list_loans_for_responsible(self, user_id: str) -> list[Loan]:
        """A member's own loans plus those of activities they are responsible for.

        When the activity lookup fails only the member's own loans are
        returned.
        """
        direct = self.list_loans_for_user(user_id)
        try:
            extra = []
            for activity in self.activities.list_by_responsible(user_id):
                extra.extend(self.list_loans_by_activity(activity.id))
        except (LoanTrackerError, ValidationError) as e:
            logger.warning(f"Activity lookup for {user_id} failed, listing direct loans only: {e}")
            return direct

        merged = {l.id: l for l in direct}
        for loan in extra:
            merged.setdefault(loan.id, loan)
        return sorted(merged.values(), key=lambda l: as_utc(l.loan_date), reverse=True)

    def derive_state(self, loan: Loan, now: Optional[datetime] = None) -> DerivedLoanState:
        return derive_state(loan, self.config, now or self._now())

    # -------------------------------------------------------------------------
    # Overdue queries
    # -------------------------------------------------------------------------

    def _scan_overdue_loans(self) -> list[Loan]:
        now = self._now()
        return [l for l in self.list_outstanding_loans() if is_overdue(l, self.config, now)]

    def get_overdue_loans(self) -> list[Loan]:
        """Outstanding loans past their return deadline (cached for 30s)."""
        return self.overdue_cache.get()

    # -------------------------------------------------------------------------
    # Lending
    # -------------------------------------------------------------------------

    def create_loan(self, data: LoanCreate) -> LoanResult:
        """Create a loan and take its quantity out of the material's stock.

        Args:
            data: Loan creation data

        Returns:
            LoanResult; ``errors`` lists a failed stock update, if any

        Raises:
            NotFoundError: Material or activity does not exist
            LoanValidationError: Quantity unavailable or dates inconsistent
        """
        now = self._now()
        material = self.materials.get_material(data.material_id)
        if data.quantity_borrowed > material.available:
            raise LoanValidationError(
                f"Only {material.available} unit(s) of {material.name} available, "
                f"{data.quantity_borrowed} requested"
            )

        expected_return = data.expected_return_date
        if expected_return is None:
            if not data.activity_id:
                raise LoanValidationError("expected_return_date is required for loans outside an activity")
            expected_return = self.activities.get_activity(data.activity_id).end_date

        loan_date = data.loan_date or now
        if as_utc(expected_return) < as_utc(loan_date):
            raise LoanValidationError("expected_return_date must not precede loan_date")

        loan_id = self.store.insert(
            LOANS_COLLECTION,
            {
                "material_id": data.material_id,
                "user_id": data.user_id,
                "activity_id": data.activity_id,
                "quantity_borrowed": data.quantity_borrowed,
                "status": LoanStatus.IN_USE,
                "loan_date": loan_date,
                "expected_return_date": expected_return,
                "actual_return_date": None,
                "last_updated": SERVER_TIMESTAMP,
                "observations": data.observations,
                "material_name": data.material_name or material.name,
                "user_name": data.user_name,
            },
        )
        logger.info(f"Loan {loan_id} created: {data.quantity_borrowed} x {data.material_id} to {data.user_id}")

        errors = []
        try:
            self.materials.adjust_available(data.material_id, -data.quantity_borrowed)
        except LoanTrackerError as e:
            logger.error(f"Loan {loan_id} stands but stock of {data.material_id} was not decremented: {e}")
            errors.append(OperationError(target_id=loan_id, operation="decrement_stock", message=str(e)))

        self.overdue_cache.invalidate()
        return LoanResult(loan=self.get_loan(loan_id), errors=errors)

    def can_create_loan(self, user_id: str, material_id: str, now: Optional[datetime] = None) -> LoanPermission:
        """Check whether a member may borrow a material right now.

        Refuses members holding a gravely overdue loan, and repeat loans of
        the same material within ``min_days_between_loans`` (0 disables).
        """
        now = as_utc(now or self._now())
        loans = self.list_loans_for_user(user_id)

        for loan in loans:
            if loan.actual_return_date is None and self.derive_state(loan, now).status == DerivedStatus.OVERDUE_GRAVE:
                return LoanPermission(
                    allowed=False,
                    reason=(
                        f"Loan {loan.id} is more than {self.config.block_delay_days} days overdue; "
                        "return it before borrowing again"
                    ),
                )

        min_days = self.config.min_days_between_loans
        if min_days > 0:
            same_material = [l for l in loans if l.material_id == material_id]
            if same_material:
                last = max(as_utc(l.loan_date) for l in same_material)
                available_at = last + timedelta(days=min_days)
                if now < available_at:
                    return LoanPermission(
                        allowed=False,
                        reason=f"This material was borrowed on {last.date().isoformat()}; "
                        f"it can be borrowed again from {available_at.date().isoformat()}",
                    )

        return LoanPermission(allowed=True)

    # -------------------------------------------------------------------------
    # Returns
    # -------------------------------------------------------------------------

    def _return_update(
        self,
        loan: Loan,
        observations: Optional[str],
        incident: Optional[Incident],
        returned_at: Optional[datetime],
    ) -> dict[str, Any]:
        incident_note = None
        if incident is not None:
            incident_note = append_observation(incident_tag(incident), incident.description)
        update: dict[str, Any] = {
            "status": status_for_incident(incident),
            "actual_return_date": returned_at or SERVER_TIMESTAMP,
            "last_updated": SERVER_TIMESTAMP,
            "observations": append_observation(loan.observations, observations, incident_note),
        }
        if incident is not None:
            update["incident"] = incident
        return update

    def _restock(self, loan: Loan, incident: Optional[Incident]) -> Optional[OperationError]:
        if incident is not None and incident.kind == IncidentKind.LOSS:
            logger.info(f"Loan {loan.id} lost; {loan.material_id} stock not restored")
            return None
        try:
            self.materials.adjust_available(loan.material_id, loan.quantity_borrowed)
        except LoanTrackerError as e:
            logger.error(f"Loan {loan.id} returned but stock of {loan.material_id} was not restored: {e}")
            return OperationError(target_id=loan.id, operation="restore_stock", message=str(e))
        return None

    def _report_incident(self, loan: Loan, incident: Optional[Incident]) -> Optional[OperationError]:
        if incident is None:
            return None
        try:
            self.materials.record_incident(loan.material_id, incident, reported_by=loan.user_id, loan_id=loan.id)
        except LoanTrackerError as e:
            logger.error(f"Incident for loan {loan.id} was not recorded: {e}")
            return OperationError(target_id=loan.id, operation="record_incident", message=str(e))
        return None

    def register_return(
        self,
        loan_id: str,
        observations: Optional[str] = None,
        incident: Optional[Incident] = None,
        returned_at: Optional[datetime] = None,
    ) -> LoanResult:
        """Register the return of a loan.

        Losses end as ``lost`` and keep the stock down; high or critical
        incidents end as ``damaged``; everything else as ``returned``.

        Args:
            loan_id: Loan ID
            observations: Note appended to the loan's observations
            incident: Problem reported with the returned material
            returned_at: Return instant (default: store write time)

        Returns:
            LoanResult; ``errors`` lists failed stock or incident writes

        Raises:
            NotFoundError: Loan does not exist
            LoanStateError: Loan was already returned or never handed out
        """
        loan = self.get_loan(loan_id)
        if loan.status in NOT_RETURNABLE or loan.actual_return_date is not None:
            raise LoanStateError(f"Loan {loan_id} cannot be returned from status {loan.status.value}")

        self.store.update_by_id(
            LOANS_COLLECTION, loan_id, self._return_update(loan, observations, incident, returned_at)
        )
        logger.info(f"Loan {loan_id} returned as {status_for_incident(incident).value}")

        errors = [e for e in (self._restock(loan, incident), self._report_incident(loan, incident)) if e]
        self.overdue_cache.invalidate()
        return LoanResult(loan=self.get_loan(loan_id), errors=errors)

    def mark_for_return(self, loan_id: str, observations: Optional[str] = None) -> Loan:
        """Flag an in-use loan as due back (manual counterpart of the sweep)."""
        loan = self.get_loan(loan_id)
        if loan.status != LoanStatus.IN_USE:
            raise LoanStateError(f"Only in-use loans can be marked for return (is {loan.status.value})")
        self.store.update_by_id(
            LOANS_COLLECTION,
            loan_id,
            {
                "status": LoanStatus.MARKED_FOR_RETURN,
                "last_updated": SERVER_TIMESTAMP,
                "observations": append_observation(loan.observations, observations),
            },
        )
        self.overdue_cache.invalidate()
        return self.get_loan(loan_id)

    def bulk_return_by_activity(
        self,
        activity_id: str,
        observations: Optional[str] = None,
        incident: Optional[Incident] = None,
        returned_at: Optional[datetime] = None,
    ) -> BulkReturnResult:
        """Return every outstanding loan of an activity.

        Status changes go out in one batch; loans that cannot be staged are
        reported in ``errors`` without stopping the others. Stock is then
        restored loan by loan, sequentially, and failures there land in
        ``inventory_errors`` while the returns stand.

        Raises:
            NotFoundError: Activity does not exist
        """
        self.activities.get_activity(activity_id)
        docs = self.store.query_by_field(LOANS_COLLECTION, "activity_id", activity_id, order_by="loan_date")
        outstanding = {s.value for s in OUTSTANDING_STATUSES}
        candidates = [d for d in docs if d.get("status") in outstanding]

        result = BulkReturnResult()
        batch = self.store.batch()
        staged: list[Loan] = []
        for doc in candidates:
            try:
                loan = Loan.model_validate(doc)
                batch.update(LOANS_COLLECTION, loan.id, self._return_update(loan, observations, incident, returned_at))
                staged.append(loan)
            except (ValidationError, LoanTrackerError) as e:
                logger.warning(f"Bulk return of activity {activity_id}: loan {doc.get('id')} skipped: {e}")
                result.errors.append(
                    OperationError(target_id=str(doc.get("id")), operation="bulk_return", message=str(e))
                )

        try:
            batch.commit()
        except LoanTrackerError as e:
            logger.error(f"Bulk return of activity {activity_id} could not be committed: {e}")
            result.errors.extend(
                OperationError(target_id=l.id, operation="bulk_return", message=str(e)) for l in staged
            )
            return result

        result.success_count = len(staged)

        # One at a time so no material is touched by two concurrent increments
        for loan in staged:
            for error in (self._restock(loan, incident), self._report_incident(loan, incident)):
                if error:
                    result.inventory_errors.append(error)

        if staged:
            self.overdue_cache.invalidate()
        logger.info(
            f"Bulk return of activity {activity_id}: {result.success_count} returned, "
            f"{len(result.errors)} failed, {len(result.inventory_errors)} stock error(s)"
        )
        return result

    # -------------------------------------------------------------------------
    # Automatic sweep
    # -------------------------------------------------------------------------

    def auto_mark_overdue_sweep(self, now: Optional[datetime] = None) -> SweepResult:
        """Flag in-use loans of long-finished activities for return.

        Looks at activities finished more than ``AUTO_MARK_AFTER_DAYS`` ago and
        moves their ``in_use`` loans to ``marked_for_return`` in one batch per
        activity. Per-activity and per-loan failures are collected; only a
        failure to list activities propagates.
        """
        now = as_utc(now or self._now())
        cutoff = now - timedelta(days=AUTO_MARK_AFTER_DAYS)
        result = SweepResult()

        docs = self.store.query_by_field(
            ACTIVITIES_COLLECTION, "status", ActivityStatus.FINISHED, order_by="end_date"
        )
        for doc in docs:
            try:
                activity = Activity.model_validate(doc)
            except ValidationError as e:
                result.errors.append(
                    OperationError(target_id=str(doc.get("id")), operation="auto_mark", message=str(e))
                )
                continue
            if as_utc(activity.end_date) >= cutoff:
                continue

            try:
                result.marked_loans += self._mark_activity_loans(activity, result)
                result.processed_activities += 1
            except LoanTrackerError as e:
                logger.error(f"Sweep could not process activity {activity.id}: {e}")
                result.errors.append(OperationError(target_id=activity.id, operation="auto_mark", message=str(e)))

        if result.marked_loans:
            self.overdue_cache.invalidate()
        logger.info(
            f"Overdue sweep: {result.processed_activities} activities, "
            f"{result.marked_loans} loans marked, {len(result.errors)} error(s)"
        )
        return result

    def _mark_activity_loans(self, activity: Activity, result: SweepResult) -> int:
        docs = self.store.query_by_field(LOANS_COLLECTION, "activity_id", activity.id)
        note = (
            f"{AUTO_MARK_TAG} Activity '{activity.name}' ({activity.id}) finished on "
            f"{as_utc(activity.end_date).date().isoformat()}; material pending return."
        )

        batch = self.store.batch()
        for doc in docs:
            if doc.get("status") != LoanStatus.IN_USE.value:
                continue
            try:
                loan = Loan.model_validate(doc)
            except ValidationError as e:
                result.errors.append(OperationError(target_id=str(doc.get("id")), operation="auto_mark", message=str(e)))
                continue
            batch.update(
                LOANS_COLLECTION,
                loan.id,
                {
                    "status": LoanStatus.MARKED_FOR_RETURN,
                    "auto_marked_overdue": True,
                    "auto_marked_at": SERVER_TIMESTAMP,
                    "last_updated": SERVER_TIMESTAMP,
                    "observations": append_observation(loan.observations, note),
                },
            )
        return batch.commit()
