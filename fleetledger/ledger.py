"""
FleetLedger - the command and query surface consumed by the dashboard.

Every command runs under a single write lock, so the read-then-write checks in
the scheduling and billing engines never interleave. Queries return deep
copies taken under the same lock. Business-rule rejections come back as
``None`` (the structured reason is kept in ``last_outcome``); ids that do not
resolve raise ``EntityNotFoundError``.
"""

import asyncio
from concurrent.futures import Executor
from datetime import datetime
from threading import RLock
from typing import Any, Iterable, Optional, TypeVar

import structlog
from pydantic import BaseModel

from fleetledger.core.config import ConfigManager, LedgerRules, get_config
from fleetledger.data.models import (
    AvailableEquipmentPost,
    BrokerLoad,
    BrokerLoadDraft,
    Carrier,
    CarrierDocument,
    CarrierDocumentDraft,
    CarrierDraft,
    DispatchFeeRecord,
    Driver,
    DriverDraft,
    EquipmentPostDraft,
    EquipmentPostStatus,
    FeeStatus,
    FmcsaAuthorityStatus,
    Invoice,
    InvoiceStatus,
    LoadDocument,
    LoadDocumentDraft,
    LoadStatus,
    ManualLineItem,
    ManualLineItemDraft,
    Outcome,
    ScheduleEntry,
    ScheduleEntryDraft,
    Session,
    Shipper,
    ShipperDraft,
    Truck,
    TruckDraft,
)
from fleetledger.data.seed import seed_demo_data
from fleetledger.data.store import Clock, EntityStore
from fleetledger.engines import (
    BillingEngine,
    BookabilityPolicy,
    BrokerLoadAssignmentWorkflow,
    SchedulingEngine,
)
from fleetledger.engines.base import as_utc
from fleetledger.tools.fmcsa import FmcsaClient, VerificationCollaborator, VerificationResult
from fleetledger.tools.notifications import NotificationDispatcher, Notifier

ModelT = TypeVar("ModelT", bound=BaseModel)

# Lookup detail keys copied onto empty carrier fields
_VERIFICATION_FIELD_MAP = {"carrierName": "dba"}


def _copy(model: Optional[ModelT]) -> Optional[ModelT]:
    return model.model_copy(deep=True) if model is not None else None


def _copy_all(models: Iterable[ModelT]) -> list[ModelT]:
    return [m.model_copy(deep=True) for m in models]


class FleetLedger:
    """
    In-memory fleet-operations ledger.

    Owns the entity store and wires the scheduling, billing, bookability and
    broker-assignment engines around it.
    """

    def __init__(
        self,
        config_manager: Optional[ConfigManager] = None,
        rules: Optional[LedgerRules] = None,
        clock: Optional[Clock] = None,
        verifier: Optional[VerificationCollaborator] = None,
        notifier: Optional[Notifier] = None,
        notification_executor: Optional[Executor] = None,
        logger: Optional[structlog.BoundLogger] = None,
    ) -> None:
        """
        Build a ledger.

        Args:
            config_manager: Configuration source (defaults to the global instance)
            rules: Business rules; read from the configuration when omitted
            clock: Callable returning "now"; defaults to the UTC wall clock
            verifier: FMCSA collaborator; an FmcsaClient from config by default
            notifier: Delivery channel for booking notifications
            notification_executor: Executor for fire-and-forget notifications
            logger: Optional structured logger
        """
        self.config_manager = config_manager or get_config()
        self.rules = rules or self.config_manager.get_rules()
        self.logger = logger or structlog.get_logger(component="fleet_ledger")

        self.store = EntityStore(clock=clock)
        self.bookability = BookabilityPolicy(self.store, rules=self.rules)
        self.scheduling = SchedulingEngine(self.store, rules=self.rules)
        self.billing = BillingEngine(self.store, self.bookability, rules=self.rules)
        self.broker = BrokerLoadAssignmentWorkflow(
            self.store,
            self.scheduling,
            NotificationDispatcher(notifier, executor=notification_executor),
            rules=self.rules,
        )
        self.verifier: VerificationCollaborator = verifier or FmcsaClient(
            base_url=self.rules.verification_base_url,
            api_key=self.config_manager.get_api_key("fmcsa"),
            timeout=self.rules.verification_timeout_seconds,
        )

        self._lock = RLock()
        self.last_outcome: Optional[Outcome] = None

        if self.rules.seed_demo_data:
            self.seed_demo_data()

    def seed_demo_data(self) -> dict[str, str]:
        """Load the demo fleet; returns demo key -> id."""
        with self._lock:
            return seed_demo_data(self.store)

    def now(self) -> datetime:
        return as_utc(self.store.clock())

    def _finish(self, outcome: Outcome) -> Any:
        self.last_outcome = outcome
        if not outcome.ok:
            return None
        entity = outcome.entity
        return entity.model_copy(deep=True) if isinstance(entity, BaseModel) else entity

    # ------------------------------------------------------------------
    # trucks

    def add_truck(self, draft: TruckDraft) -> Truck:
        with self._lock:
            self.store.require_carrier(draft.carrier_id)
            if draft.driver_id is not None:
                self.store.require_driver(draft.driver_id)
            return _copy(self.store.add_truck(draft))

    def update_truck(self, truck: Truck) -> Truck:
        with self._lock:
            self.store.require_carrier(truck.carrier_id)
            if truck.driver_id is not None:
                self.store.require_driver(truck.driver_id)
            return _copy(self.store.update_truck(truck))

    def remove_truck(self, truck_id: str) -> None:
        with self._lock:
            self.store.remove_truck(truck_id)

    def get_truck(self, truck_id: str) -> Optional[Truck]:
        with self._lock:
            return _copy(self.store.get_truck(truck_id))

    def list_trucks(self, carrier_id: Optional[str] = None) -> list[Truck]:
        with self._lock:
            return _copy_all(
                t
                for t in self.store.trucks.values()
                if carrier_id is None or t.carrier_id == carrier_id
            )

    # ------------------------------------------------------------------
    # drivers

    def add_driver(self, draft: DriverDraft) -> Driver:
        with self._lock:
            return _copy(self.store.add_driver(draft))

    def update_driver(self, driver: Driver) -> Driver:
        with self._lock:
            return _copy(self.store.update_driver(driver))

    def remove_driver(self, driver_id: str) -> None:
        with self._lock:
            self.store.remove_driver(driver_id)

    def get_driver(self, driver_id: str) -> Optional[Driver]:
        with self._lock:
            return _copy(self.store.get_driver(driver_id))

    def list_drivers(self) -> list[Driver]:
        with self._lock:
            return _copy_all(self.store.drivers.values())

    # ------------------------------------------------------------------
    # carriers

    def add_carrier(self, draft: CarrierDraft) -> Carrier:
        with self._lock:
            return _copy(self.store.add_carrier(draft))

    def update_carrier(self, carrier: Carrier) -> Carrier:
        """Replace a carrier's profile; bookability and FMCSA fields are kept."""
        with self._lock:
            return _copy(self.store.update_carrier(carrier))

    def remove_carrier(self, carrier_id: str) -> None:
        """Delete a carrier with its trucks, schedule, documents, fees and invoices."""
        with self._lock:
            self.store.remove_carrier(carrier_id)

    def get_carrier(self, carrier_id: str) -> Optional[Carrier]:
        """Carrier with a freshly derived bookable flag."""
        with self._lock:
            if self.store.get_carrier(carrier_id) is None:
                return None
            self.bookability.recompute_bookable(carrier_id)
            return _copy(self.store.get_carrier(carrier_id))

    def list_carriers(self) -> list[Carrier]:
        with self._lock:
            self.bookability.recompute_all()
            return _copy_all(self.store.carriers.values())

    def is_carrier_bookable(self, carrier_id: str) -> bool:
        """
        Recompute and return a carrier's bookable flag.

        Raises:
            EntityNotFoundError: If the carrier does not exist
        """
        with self._lock:
            return self.bookability.recompute_bookable(carrier_id)

    def refresh_bookability(self) -> dict[str, bool]:
        """Re-derive every carrier's flag; catches invoices that went overdue with time."""
        with self._lock:
            return self.bookability.recompute_all()

    async def verify_carrier(self, carrier_id: str) -> Optional[Carrier]:
        """
        Check a carrier's operating authority with the FMCSA collaborator.

        The write lock is released while the lookup runs. Failures and
        timeouts are recorded as Verification Failed. If the carrier is
        deleted before the lookup returns, the result is discarded.

        Returns:
            The updated carrier, or None when the result was discarded

        Raises:
            EntityNotFoundError: If the carrier does not exist when called
        """
        with self._lock:
            carrier = self.store.require_carrier(carrier_id)
            mc_number, us_dot_number = carrier.mc_number, carrier.us_dot_number
            previous_status = carrier.fmcsa_authority_status
            self.store.put_carrier(
                carrier.model_copy(
                    update={"fmcsa_authority_status": FmcsaAuthorityStatus.PENDING_VERIFICATION}
                )
            )

        if not (mc_number or us_dot_number):
            result = VerificationResult(
                status=FmcsaAuthorityStatus.VERIFICATION_FAILED,
                message="MC number or US DOT number is required",
            )
        else:
            try:
                result = await self._lookup_authority(carrier_id, mc_number, us_dot_number)
            except asyncio.CancelledError:
                self._restore_authority_status(carrier_id, previous_status)
                raise

        with self._lock:
            current = self.store.get_carrier(carrier_id)
            if current is None:
                self.logger.warning(
                    "verification_result_discarded",
                    carrier_id=carrier_id,
                    status=result.status.value,
                )
                return None

            update: dict[str, Any] = {
                "fmcsa_authority_status": result.status,
                "fmcsa_last_checked": self.now(),
            }
            for source_key, field in _VERIFICATION_FIELD_MAP.items():
                value = result.details.get(source_key)
                if value and not getattr(current, field):
                    update[field] = str(value)

            updated = self.store.put_carrier(current.model_copy(update=update))
            self.logger.info(
                "carrier_verified",
                carrier_id=carrier_id,
                status=result.status.value,
                message=result.message,
            )
            return _copy(updated)

    def _restore_authority_status(
        self, carrier_id: str, status: FmcsaAuthorityStatus
    ) -> None:
        with self._lock:
            current = self.store.get_carrier(carrier_id)
            if current is None:
                return
            if current.fmcsa_authority_status == FmcsaAuthorityStatus.PENDING_VERIFICATION:
                self.store.put_carrier(
                    current.model_copy(update={"fmcsa_authority_status": status})
                )
            self.logger.warning(
                "verification_cancelled", carrier_id=carrier_id, status=status.value
            )

    async def _lookup_authority(
        self, carrier_id: str, mc_number: Optional[str], us_dot_number: Optional[str]
    ) -> VerificationResult:
        timeout = self.rules.verification_timeout_seconds
        try:
            return await asyncio.wait_for(
                self.verifier.lookup(mc_number=mc_number, us_dot_number=us_dot_number),
                timeout=timeout,
            )
        except asyncio.TimeoutError:
            self.logger.error("verification_timed_out", carrier_id=carrier_id, timeout=timeout)
            return VerificationResult(
                status=FmcsaAuthorityStatus.VERIFICATION_FAILED,
                message=f"Verification timed out after {timeout:g}s",
            )
        except Exception as e:
            self.logger.error("verification_failed", carrier_id=carrier_id, error=str(e))
            return VerificationResult(
                status=FmcsaAuthorityStatus.VERIFICATION_FAILED,
                message=str(e),
            )

    # ------------------------------------------------------------------
    # schedule

    def propose_schedule_entry(self, draft: ScheduleEntryDraft) -> Optional[ScheduleEntry]:
        """Create a schedule entry; None on conflict, HOS violation or bad range."""
        with self._lock:
            return self._finish(self.scheduling.propose_schedule_entry(draft))

    def revise_schedule_entry(
        self, entry_id: str, draft: ScheduleEntryDraft
    ) -> Optional[ScheduleEntry]:
        """Update a schedule entry; None when the revision breaks a rule."""
        with self._lock:
            return self._finish(self.scheduling.revise_schedule_entry(entry_id, draft))

    def remove_schedule_entry(self, entry_id: str) -> None:
        with self._lock:
            self.store.remove_schedule_entry(entry_id)

    def get_schedule_entry(self, entry_id: str) -> Optional[ScheduleEntry]:
        with self._lock:
            return _copy(self.store.get_schedule_entry(entry_id))

    def list_schedule_entries(self, truck_id: Optional[str] = None) -> list[ScheduleEntry]:
        with self._lock:
            entries = (
                self.store.schedule_entries.values()
                if truck_id is None
                else self.store.entries_for_truck(truck_id)
            )
            return _copy_all(sorted(entries, key=lambda e: e.start))

    # ------------------------------------------------------------------
    # billing

    def create_dispatch_fee_record(
        self, schedule_entry_id: str, carrier_id: str, original_load_amount: Any
    ) -> Optional[DispatchFeeRecord]:
        with self._lock:
            return self._finish(
                self.billing.create_dispatch_fee_record(
                    schedule_entry_id, carrier_id, original_load_amount
                )
            )

    def create_fee_for_schedule_entry(self, schedule_entry_id: str) -> Optional[DispatchFeeRecord]:
        with self._lock:
            return self._finish(self.billing.create_fee_for_schedule_entry(schedule_entry_id))

    def eligible_fee_entries(self) -> list[ScheduleEntry]:
        with self._lock:
            return _copy_all(self.billing.eligible_fee_entries())

    def get_dispatch_fee_record(self, record_id: str) -> Optional[DispatchFeeRecord]:
        with self._lock:
            return _copy(self.store.dispatch_fee_records.get(record_id))

    def list_dispatch_fee_records(
        self, carrier_id: Optional[str] = None, status: Optional[FeeStatus] = None
    ) -> list[DispatchFeeRecord]:
        with self._lock:
            return _copy_all(
                r
                for r in self.store.dispatch_fee_records.values()
                if (carrier_id is None or r.carrier_id == carrier_id)
                and (status is None or r.status == status)
            )

    def generate_invoice(self, carrier_id: str, fee_record_ids: Iterable[str]) -> Optional[Invoice]:
        """Invoice the carrier's selected pending fees; None if none qualify."""
        with self._lock:
            return self._finish(self.billing.generate_invoice(carrier_id, list(fee_record_ids)))

    def set_invoice_status(self, invoice_id: str, new_status: InvoiceStatus) -> Invoice:
        with self._lock:
            return self._finish(self.billing.set_invoice_status(invoice_id, new_status))

    def get_invoice(self, invoice_id: str) -> Optional[Invoice]:
        with self._lock:
            return _copy(self.store.invoices.get(invoice_id))

    def list_invoices(self, carrier_id: Optional[str] = None) -> list[Invoice]:
        with self._lock:
            return _copy_all(
                i
                for i in self.store.invoices.values()
                if carrier_id is None or i.carrier_id == carrier_id
            )

    def add_manual_line_item(self, invoice_id: str, draft: ManualLineItemDraft) -> ManualLineItem:
        with self._lock:
            return self._finish(self.billing.add_manual_line_item(invoice_id, draft))

    def remove_manual_line_item(self, invoice_id: str, item_id: str) -> Invoice:
        with self._lock:
            return self._finish(self.billing.remove_manual_line_item(invoice_id, item_id))

    def approve_manual_line_item(self, invoice_id: str, item_id: str) -> Invoice:
        with self._lock:
            return self._finish(self.billing.approve_manual_line_item(invoice_id, item_id))

    def reject_manual_line_item(self, invoice_id: str, item_id: str) -> Invoice:
        with self._lock:
            return self._finish(self.billing.reject_manual_line_item(invoice_id, item_id))

    # ------------------------------------------------------------------
    # broker board

    def add_shipper(self, draft: ShipperDraft) -> Shipper:
        with self._lock:
            return _copy(self.store.add_shipper(draft))

    def update_shipper(self, shipper: Shipper) -> Shipper:
        with self._lock:
            return _copy(self.store.update_shipper(shipper))

    def remove_shipper(self, shipper_id: str) -> None:
        with self._lock:
            self.store.remove_shipper(shipper_id)

    def get_shipper(self, shipper_id: str) -> Optional[Shipper]:
        with self._lock:
            return _copy(self.store.get_shipper(shipper_id))

    def list_shippers(self) -> list[Shipper]:
        with self._lock:
            return _copy_all(self.store.shippers.values())

    def post_broker_load(self, session: Session, draft: BrokerLoadDraft) -> BrokerLoad:
        """Post a load as Available on behalf of the session's broker."""
        with self._lock:
            self.store.require_shipper(draft.shipper_id)
            load = self.store.add_broker_load(draft, posted_by=session.user_id)
            self.logger.info("broker_load_posted", load_id=load.id, posted_by=session.user_id)
            return _copy(load)

    def update_broker_load(self, load: BrokerLoad) -> BrokerLoad:
        with self._lock:
            return _copy(self.store.update_broker_load(load))

    def remove_broker_load(self, load_id: str) -> None:
        with self._lock:
            self.store.remove_broker_load(load_id)

    def get_broker_load(self, load_id: str) -> Optional[BrokerLoad]:
        with self._lock:
            return _copy(self.store.get_broker_load(load_id))

    def list_broker_loads(self, status: Optional[LoadStatus] = None) -> list[BrokerLoad]:
        with self._lock:
            return _copy_all(
                load
                for load in self.store.broker_loads.values()
                if status is None or load.status == status
            )

    def available_broker_loads(self) -> list[BrokerLoad]:
        return self.list_broker_loads(LoadStatus.AVAILABLE)

    def loads_posted_by(self, session: Session) -> list[BrokerLoad]:
        with self._lock:
            return _copy_all(
                load
                for load in self.store.broker_loads.values()
                if load.posted_by_broker_id == session.user_id
            )

    def loads_booked_by(self, carrier_id: str) -> list[BrokerLoad]:
        with self._lock:
            return _copy_all(
                load
                for load in self.store.broker_loads.values()
                if load.assigned_carrier_id == carrier_id
            )

    def accept_load(
        self,
        load_id: str,
        carrier_id: str,
        truck_id: str,
        driver_id: Optional[str] = None,
    ) -> Optional[BrokerLoad]:
        """Book a load onto a carrier's truck; None if any rule refuses it."""
        with self._lock:
            if carrier_id in self.store.carriers:
                self.bookability.recompute_bookable(carrier_id)
            return self._finish(self.broker.accept_load(load_id, carrier_id, truck_id, driver_id))

    # ------------------------------------------------------------------
    # documents and equipment posts

    def add_load_document(self, session: Session, draft: LoadDocumentDraft) -> LoadDocument:
        with self._lock:
            self.store.require_broker_load(draft.broker_load_id)
            return _copy(self.store.add_load_document(draft, uploaded_by=session.user_id))

    def remove_load_document(self, doc_id: str) -> None:
        with self._lock:
            self.store.remove_load_document(doc_id)

    def get_load_document(self, doc_id: str) -> Optional[LoadDocument]:
        with self._lock:
            return _copy(self.store.load_documents.get(doc_id))

    def list_load_documents(self, broker_load_id: str) -> list[LoadDocument]:
        with self._lock:
            return _copy_all(
                d
                for d in self.store.load_documents.values()
                if d.broker_load_id == broker_load_id
            )

    def add_carrier_document(self, draft: CarrierDocumentDraft) -> CarrierDocument:
        with self._lock:
            self.store.require_carrier(draft.carrier_id)
            return _copy(self.store.add_carrier_document(draft))

    def remove_carrier_document(self, doc_id: str) -> None:
        with self._lock:
            self.store.remove_carrier_document(doc_id)

    def get_carrier_document(self, doc_id: str) -> Optional[CarrierDocument]:
        with self._lock:
            return _copy(self.store.carrier_documents.get(doc_id))

    def list_carrier_documents(self, carrier_id: str) -> list[CarrierDocument]:
        with self._lock:
            return _copy_all(
                d
                for d in self.store.carrier_documents.values()
                if d.carrier_id == carrier_id
            )

    def post_equipment(self, draft: EquipmentPostDraft) -> AvailableEquipmentPost:
        with self._lock:
            self.store.require_carrier(draft.carrier_id)
            return _copy(self.store.add_equipment_post(draft))

    def update_equipment_post(self, post: AvailableEquipmentPost) -> AvailableEquipmentPost:
        with self._lock:
            return _copy(self.store.update_equipment_post(post))

    def remove_equipment_post(self, post_id: str) -> None:
        with self._lock:
            self.store.remove_equipment_post(post_id)

    def get_equipment_post(self, post_id: str) -> Optional[AvailableEquipmentPost]:
        with self._lock:
            return _copy(self.store.equipment_posts.get(post_id))

    def list_equipment_posts(
        self, status: Optional[EquipmentPostStatus] = None
    ) -> list[AvailableEquipmentPost]:
        with self._lock:
            return _copy_all(
                p
                for p in self.store.equipment_posts.values()
                if status is None or p.status == status
            )
