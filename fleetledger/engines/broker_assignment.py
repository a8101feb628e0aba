"""
Broker Load Assignment Workflow - booking a posted load onto a carrier's truck.

This workflow:
- Checks the load is still Available and the truck belongs to the carrier
- Refuses carriers that are not bookable
- Turns the load into a schedule entry through the scheduling engine
- Marks the load Booked only once the entry exists
- Notifies the carrier and driver after the booking is committed

Nothing is written before the scheduling engine accepts the entry, so a
rejected booking leaves the load exactly as it was.
"""

from typing import Any, Optional

from fleetledger.data.models import (
    BrokerLoad,
    Carrier,
    LoadStatus,
    Outcome,
    RejectionReason,
    ScheduleEntry,
    ScheduleEntryDraft,
    ScheduleType,
)
from fleetledger.data.store import EntityStore
from fleetledger.engines.base import BaseEngine
from fleetledger.engines.scheduling import SchedulingEngine
from fleetledger.tools.notifications import Notification, NotificationDispatcher


class BrokerLoadAssignmentWorkflow(BaseEngine):
    """Orchestrates carrier acceptance of broker-posted loads."""

    def __init__(
        self,
        store: EntityStore,
        scheduling: SchedulingEngine,
        notifications: Optional[NotificationDispatcher] = None,
        **kwargs: Any,
    ) -> None:
        """
        Initialize the workflow.

        Args:
            store: Entity store
            scheduling: Engine that validates the derived schedule entry
            notifications: Dispatcher for booking notifications
        """
        super().__init__(engine_name="broker_assignment", store=store, **kwargs)
        self.scheduling = scheduling
        self.notifications = notifications or NotificationDispatcher()

    def accept_load(
        self,
        load_id: str,
        carrier_id: str,
        truck_id: str,
        driver_id: Optional[str] = None,
    ) -> Outcome:
        """
        Book an available broker load for a carrier.

        Args:
            load_id: Broker load being accepted
            carrier_id: Accepting carrier
            truck_id: Carrier's truck that will haul it
            driver_id: Optional driver

        Returns:
            Outcome whose entity is the Booked BrokerLoad on success

        Raises:
            EntityNotFoundError: If the load, truck, carrier or driver does not exist
        """
        operation = "accept_load"
        load = self.store.require_broker_load(load_id)
        if load.status != LoadStatus.AVAILABLE:
            return self.reject_one(
                operation,
                RejectionReason.LOAD_NOT_AVAILABLE,
                f"Load {load.id} is {load.status.value}, not Available",
                load_id=load.id,
                status=load.status.value,
            )

        truck = self.store.require_truck(truck_id)
        if truck.carrier_id != carrier_id:
            return self.reject_one(
                operation,
                RejectionReason.TRUCK_CARRIER_MISMATCH,
                f'Truck "{truck.name}" does not belong to the accepting carrier',
                truck_id=truck.id,
                carrier_id=carrier_id,
            )

        carrier = self.store.require_carrier(carrier_id)
        if not carrier.is_bookable:
            return self.reject_one(
                operation,
                RejectionReason.CARRIER_UNBOOKABLE,
                f'Carrier "{carrier.name}" has overdue invoices and cannot book loads',
                carrier_id=carrier_id,
            )

        confirmation_number = load.confirmation_number or self.store.new_id("CONF").upper()
        scheduled = self.scheduling.propose_schedule_entry(
            self._build_schedule_draft(load, truck_id, driver_id, confirmation_number)
        )
        if not scheduled.ok:
            self.logger.warning(
                "broker_load_booking_rolled_back",
                load_id=load.id,
                reasons=[v.reason.value for v in scheduled.violations],
            )
            return self.reject(operation, scheduled.violations)

        entry: ScheduleEntry = scheduled.entity
        booked = load.model_copy(
            update={
                "status": LoadStatus.BOOKED,
                "assigned_carrier_id": carrier_id,
                "assigned_truck_id": truck_id,
                "assigned_driver_id": driver_id,
                "confirmation_number": confirmation_number,
            }
        )
        try:
            self.store.update_broker_load(booked)
        except Exception:
            # The load write failed; drop the entry created for it
            self.store.remove_schedule_entry(entry.id)
            raise

        self.logger.info(
            "broker_load_booked",
            load_id=load.id,
            carrier_id=carrier_id,
            truck_id=truck_id,
            schedule_entry_id=entry.id,
            confirmation_number=confirmation_number,
        )
        self.notifications.dispatch(self._booking_notifications(booked, carrier, driver_id))
        return self.accept(operation, booked)

    def _build_schedule_draft(
        self,
        load: BrokerLoad,
        truck_id: str,
        driver_id: Optional[str],
        confirmation_number: str,
    ) -> ScheduleEntryDraft:
        """Schedule entry representing the hauled load."""
        shipper = self.store.get_shipper(load.shipper_id)
        shipper_name = shipper.name if shipper else load.shipper_id

        notes = [
            f"Broker Load ID: {load.id}",
            f"Shipper: {shipper_name}",
            f"Confirmation #: {confirmation_number}",
        ]
        if load.notes:
            notes.append(f"Original Notes: {load.notes}")

        return ScheduleEntryDraft(
            truck_id=truck_id,
            driver_id=driver_id,
            title=f"Load: {load.commodity} ({shipper_name})",
            start=load.pickup_date,
            end=load.delivery_date,
            origin=load.origin_address,
            destination=load.destination_address,
            load_value=load.offered_rate,
            notes="\n".join(notes),
            schedule_type=ScheduleType.DELIVERY,
            is_partial_load=False,
            is_team_driven=False,
            broker_load_id=load.id,
        )

    def _booking_notifications(
        self, load: BrokerLoad, carrier: Carrier, driver_id: Optional[str]
    ) -> list[Notification]:
        subject = f"Load booked: {load.commodity} (Conf# {load.confirmation_number})"
        body = (
            f"{load.origin_address} -> {load.destination_address}\n"
            f"Pickup {load.pickup_date.isoformat()}, delivery {load.delivery_date.isoformat()}\n"
            f"Rate ${load.offered_rate}"
        )
        notifications = [
            Notification(
                recipient_kind="carrier",
                recipient_id=carrier.id,
                recipient_contact=carrier.contact_email,
                subject=subject,
                body=body,
            )
        ]
        driver = self.store.get_driver(driver_id) if driver_id else None
        if driver is not None:
            notifications.append(
                Notification(
                    recipient_kind="driver",
                    recipient_id=driver.id,
                    recipient_contact=driver.contact_phone,
                    subject=subject,
                    body=body,
                )
            )
        return notifications
