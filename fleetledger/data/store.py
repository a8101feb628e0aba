"""
Entity store - authoritative in-memory collections for the ledger.

The store assigns ids, performs plain CRUD and runs the referential cleanup
cascades on delete. It holds no cross-entity policy: callers that need
scheduling or billing rules go through the engines first.
"""

from datetime import datetime, timezone
from typing import Callable, Optional, TypeVar
from uuid import uuid4

import structlog
from pydantic import BaseModel

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
    Invoice,
    LoadDocument,
    LoadDocumentDraft,
    ScheduleEntry,
    ScheduleEntryDraft,
    Shipper,
    ShipperDraft,
    Truck,
    TruckDraft,
)

ModelT = TypeVar("ModelT", bound=BaseModel)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Default clock."""
    return datetime.now(timezone.utc)


class EntityNotFoundError(LookupError):
    """Raised when an id does not resolve to a stored entity."""

    def __init__(self, kind: str, entity_id: str) -> None:
        super().__init__(f"{kind} not found: {entity_id}")
        self.kind = kind
        self.entity_id = entity_id


class EntityStore:
    """
    In-memory collections for every ledger entity.

    Collections are insertion-ordered dicts keyed by id. Stored models are
    replaced, never mutated in place, so a reference handed out earlier keeps
    describing the state it was read from.
    """

    def __init__(
        self,
        clock: Optional[Clock] = None,
        logger: Optional[structlog.BoundLogger] = None,
    ) -> None:
        self.clock = clock or utc_now
        self.logger = logger or structlog.get_logger(component="entity_store")

        self.trucks: dict[str, Truck] = {}
        self.drivers: dict[str, Driver] = {}
        self.carriers: dict[str, Carrier] = {}
        self.schedule_entries: dict[str, ScheduleEntry] = {}
        self.shippers: dict[str, Shipper] = {}
        self.broker_loads: dict[str, BrokerLoad] = {}
        self.load_documents: dict[str, LoadDocument] = {}
        self.carrier_documents: dict[str, CarrierDocument] = {}
        self.equipment_posts: dict[str, AvailableEquipmentPost] = {}
        self.dispatch_fee_records: dict[str, DispatchFeeRecord] = {}
        self.invoices: dict[str, Invoice] = {}

        # Invoice sequence per calendar year; never reused after deletes
        self._invoice_sequences: dict[int, int] = {}

    # ------------------------------------------------------------------
    # helpers

    @staticmethod
    def new_id(prefix: str) -> str:
        """Generate an opaque unique id."""
        return f"{prefix}-{uuid4().hex[:12]}"

    @staticmethod
    def _require(collection: dict[str, ModelT], kind: str, entity_id: str) -> ModelT:
        entity = collection.get(entity_id)
        if entity is None:
            raise EntityNotFoundError(kind, entity_id)
        return entity

    def _replace(self, collection: dict[str, ModelT], kind: str, entity: ModelT) -> ModelT:
        self._require(collection, kind, entity.id)  # type: ignore[attr-defined]
        collection[entity.id] = entity  # type: ignore[attr-defined]
        self.logger.debug("entity_updated", kind=kind, entity_id=entity.id)  # type: ignore[attr-defined]
        return entity

    def _insert(self, collection: dict[str, ModelT], kind: str, entity: ModelT) -> ModelT:
        collection[entity.id] = entity  # type: ignore[attr-defined]
        self.logger.debug("entity_created", kind=kind, entity_id=entity.id)  # type: ignore[attr-defined]
        return entity

    def next_invoice_number(self, year: int, prefix: str = "INV") -> str:
        """Allocate the next 1-based invoice number for a calendar year."""
        seq = self._invoice_sequences.get(year, 0) + 1
        self._invoice_sequences[year] = seq
        return f"{prefix}-{year}-{seq:03d}"

    # ------------------------------------------------------------------
    # trucks

    def add_truck(self, draft: TruckDraft) -> Truck:
        truck = Truck(id=self.new_id("truck"), **draft.model_dump(exclude={"id"}))
        return self._insert(self.trucks, "truck", truck)

    def update_truck(self, truck: Truck) -> Truck:
        return self._replace(self.trucks, "truck", truck)

    def get_truck(self, truck_id: str) -> Optional[Truck]:
        return self.trucks.get(truck_id)

    def require_truck(self, truck_id: str) -> Truck:
        return self._require(self.trucks, "truck", truck_id)

    def remove_truck(self, truck_id: str) -> None:
        self._require(self.trucks, "truck", truck_id)
        self._cascade_truck(truck_id)

    # ------------------------------------------------------------------
    # drivers

    def add_driver(self, draft: DriverDraft) -> Driver:
        driver = Driver(id=self.new_id("driver"), **draft.model_dump(exclude={"id"}))
        return self._insert(self.drivers, "driver", driver)

    def update_driver(self, driver: Driver) -> Driver:
        return self._replace(self.drivers, "driver", driver)

    def get_driver(self, driver_id: str) -> Optional[Driver]:
        return self.drivers.get(driver_id)

    def require_driver(self, driver_id: str) -> Driver:
        return self._require(self.drivers, "driver", driver_id)

    def remove_driver(self, driver_id: str) -> None:
        self._require(self.drivers, "driver", driver_id)
        self._cascade_driver(driver_id)

    # ------------------------------------------------------------------
    # carriers

    def add_carrier(self, draft: CarrierDraft) -> Carrier:
        profile = draft.model_dump(
            exclude={"id", "is_bookable", "fmcsa_authority_status", "fmcsa_last_checked"}
        )
        carrier = Carrier(id=self.new_id("carrier"), is_bookable=True, **profile)
        return self._insert(self.carriers, "carrier", carrier)

    def update_carrier(self, carrier: Carrier) -> Carrier:
        """
        Replace a carrier's profile.

        Bookability and FMCSA fields are owned by the policy and the
        verification path, so the stored values win over the caller's.
        """
        current = self._require(self.carriers, "carrier", carrier.id)
        merged = carrier.model_copy(
            update={
                "is_bookable": current.is_bookable,
                "fmcsa_authority_status": current.fmcsa_authority_status,
                "fmcsa_last_checked": current.fmcsa_last_checked,
            }
        )
        return self._replace(self.carriers, "carrier", merged)

    def put_carrier(self, carrier: Carrier) -> Carrier:
        """Write a carrier as-is, derived fields included."""
        return self._replace(self.carriers, "carrier", carrier)

    def get_carrier(self, carrier_id: str) -> Optional[Carrier]:
        return self.carriers.get(carrier_id)

    def require_carrier(self, carrier_id: str) -> Carrier:
        return self._require(self.carriers, "carrier", carrier_id)

    def remove_carrier(self, carrier_id: str) -> None:
        self._require(self.carriers, "carrier", carrier_id)
        self._cascade_carrier(carrier_id)

    # ------------------------------------------------------------------
    # schedule entries

    def insert_schedule_entry(self, draft: ScheduleEntryDraft) -> ScheduleEntry:
        entry = ScheduleEntry(id=self.new_id("sch"), **draft.model_dump(exclude={"id"}))
        return self._insert(self.schedule_entries, "schedule_entry", entry)

    def replace_schedule_entry(self, entry: ScheduleEntry) -> ScheduleEntry:
        return self._replace(self.schedule_entries, "schedule_entry", entry)

    def get_schedule_entry(self, entry_id: str) -> Optional[ScheduleEntry]:
        return self.schedule_entries.get(entry_id)

    def require_schedule_entry(self, entry_id: str) -> ScheduleEntry:
        return self._require(self.schedule_entries, "schedule_entry", entry_id)

    def remove_schedule_entry(self, entry_id: str) -> None:
        self._require(self.schedule_entries, "schedule_entry", entry_id)
        del self.schedule_entries[entry_id]

    def entries_for_truck(self, truck_id: str) -> list[ScheduleEntry]:
        return [e for e in self.schedule_entries.values() if e.truck_id == truck_id]

    # ------------------------------------------------------------------
    # shippers

    def add_shipper(self, draft: ShipperDraft) -> Shipper:
        shipper = Shipper(id=self.new_id("shipper"), **draft.model_dump(exclude={"id"}))
        return self._insert(self.shippers, "shipper", shipper)

    def update_shipper(self, shipper: Shipper) -> Shipper:
        return self._replace(self.shippers, "shipper", shipper)

    def get_shipper(self, shipper_id: str) -> Optional[Shipper]:
        return self.shippers.get(shipper_id)

    def require_shipper(self, shipper_id: str) -> Shipper:
        return self._require(self.shippers, "shipper", shipper_id)

    def remove_shipper(self, shipper_id: str) -> None:
        self._require(self.shippers, "shipper", shipper_id)
        del self.shippers[shipper_id]

    # ------------------------------------------------------------------
    # broker loads

    def add_broker_load(self, draft: BrokerLoadDraft, posted_by: str) -> BrokerLoad:
        load = BrokerLoad(
            id=self.new_id("bload"),
            posted_by_broker_id=posted_by,
            posted_date=self.clock(),
            **draft.model_dump(exclude={"id"}),
        )
        return self._insert(self.broker_loads, "broker_load", load)

    def update_broker_load(self, load: BrokerLoad) -> BrokerLoad:
        return self._replace(self.broker_loads, "broker_load", load)

    def get_broker_load(self, load_id: str) -> Optional[BrokerLoad]:
        return self.broker_loads.get(load_id)

    def require_broker_load(self, load_id: str) -> BrokerLoad:
        return self._require(self.broker_loads, "broker_load", load_id)

    def remove_broker_load(self, load_id: str) -> None:
        self._require(self.broker_loads, "broker_load", load_id)
        del self.broker_loads[load_id]
        for doc_id in [d.id for d in self.load_documents.values() if d.broker_load_id == load_id]:
            del self.load_documents[doc_id]

    # ------------------------------------------------------------------
    # documents

    def add_load_document(self, draft: LoadDocumentDraft, uploaded_by: str) -> LoadDocument:
        doc = LoadDocument(
            id=self.new_id("ldoc"),
            uploaded_by=uploaded_by,
            upload_date=self.clock(),
            **draft.model_dump(exclude={"id"}),
        )
        return self._insert(self.load_documents, "load_document", doc)

    def remove_load_document(self, doc_id: str) -> None:
        self._require(self.load_documents, "load_document", doc_id)
        del self.load_documents[doc_id]

    def add_carrier_document(self, draft: CarrierDocumentDraft) -> CarrierDocument:
        doc = CarrierDocument(
            id=self.new_id("cdoc"), upload_date=self.clock(), **draft.model_dump(exclude={"id"})
        )
        return self._insert(self.carrier_documents, "carrier_document", doc)

    def remove_carrier_document(self, doc_id: str) -> None:
        self._require(self.carrier_documents, "carrier_document", doc_id)
        del self.carrier_documents[doc_id]

    # ------------------------------------------------------------------
    # equipment posts

    def add_equipment_post(self, draft: EquipmentPostDraft) -> AvailableEquipmentPost:
        post = AvailableEquipmentPost(
            id=self.new_id("equip"), posted_date=self.clock(), **draft.model_dump(exclude={"id"})
        )
        return self._insert(self.equipment_posts, "equipment_post", post)

    def update_equipment_post(self, post: AvailableEquipmentPost) -> AvailableEquipmentPost:
        return self._replace(self.equipment_posts, "equipment_post", post)

    def remove_equipment_post(self, post_id: str) -> None:
        self._require(self.equipment_posts, "equipment_post", post_id)
        del self.equipment_posts[post_id]

    # ------------------------------------------------------------------
    # billing records

    def insert_fee_record(self, record: DispatchFeeRecord) -> DispatchFeeRecord:
        return self._insert(self.dispatch_fee_records, "dispatch_fee_record", record)

    def replace_fee_record(self, record: DispatchFeeRecord) -> DispatchFeeRecord:
        return self._replace(self.dispatch_fee_records, "dispatch_fee_record", record)

    def require_fee_record(self, record_id: str) -> DispatchFeeRecord:
        return self._require(self.dispatch_fee_records, "dispatch_fee_record", record_id)

    def insert_invoice(self, invoice: Invoice) -> Invoice:
        return self._insert(self.invoices, "invoice", invoice)

    def replace_invoice(self, invoice: Invoice) -> Invoice:
        return self._replace(self.invoices, "invoice", invoice)

    def require_invoice(self, invoice_id: str) -> Invoice:
        return self._require(self.invoices, "invoice", invoice_id)

    def invoices_for_carrier(self, carrier_id: str) -> list[Invoice]:
        return [i for i in self.invoices.values() if i.carrier_id == carrier_id]

    # ------------------------------------------------------------------
    # cascades

    def _cascade_truck(self, truck_id: str) -> None:
        """Delete a truck and every schedule entry booked on it."""
        del self.trucks[truck_id]
        doomed = [e.id for e in self.schedule_entries.values() if e.truck_id == truck_id]
        for entry_id in doomed:
            del self.schedule_entries[entry_id]
        self.logger.info("truck_removed", truck_id=truck_id, schedule_entries_removed=len(doomed))

    def _cascade_driver(self, driver_id: str) -> None:
        """Delete a driver and clear every reference to them."""
        del self.drivers[driver_id]
        for truck in list(self.trucks.values()):
            if truck.driver_id == driver_id:
                self.trucks[truck.id] = truck.model_copy(update={"driver_id": None})
        for entry in list(self.schedule_entries.values()):
            if entry.driver_id == driver_id:
                self.schedule_entries[entry.id] = entry.model_copy(update={"driver_id": None})
        for load in list(self.broker_loads.values()):
            if load.assigned_driver_id == driver_id:
                self.broker_loads[load.id] = load.model_copy(update={"assigned_driver_id": None})
        self.logger.info("driver_removed", driver_id=driver_id)

    def _cascade_carrier(self, carrier_id: str) -> None:
        """Delete a carrier with its trucks, documents, fees, invoices and posts."""
        del self.carriers[carrier_id]

        for truck_id in [t.id for t in self.trucks.values() if t.carrier_id == carrier_id]:
            self._cascade_truck(truck_id)

        removed = {
            "carrier_documents": self._drop_where(
                self.carrier_documents, lambda d: d.carrier_id == carrier_id
            ),
            "dispatch_fee_records": self._drop_where(
                self.dispatch_fee_records, lambda r: r.carrier_id == carrier_id
            ),
            "invoices": self._drop_where(self.invoices, lambda i: i.carrier_id == carrier_id),
            "equipment_posts": self._drop_where(
                self.equipment_posts, lambda p: p.carrier_id == carrier_id
            ),
        }
        self.logger.info("carrier_removed", carrier_id=carrier_id, **removed)

    @staticmethod
    def _drop_where(collection: dict[str, ModelT], predicate: Callable[[ModelT], bool]) -> int:
        doomed = [key for key, value in collection.items() if predicate(value)]
        for key in doomed:
            del collection[key]
        return len(doomed)
