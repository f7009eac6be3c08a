"""Repositories for RTO events and the external entities they touch.

Lookup failures are translated into RTO errors here, so the workflow never
branches on Protean's storage exceptions.
"""

from protean.exceptions import ObjectNotFoundError

from rto.domain import rto
from rto.errors import OrderNotFound, RTONotFound, ShipmentNotFound
from rto.rto_event.rto_event import RTOEvent
from rto.shipment.ndr import NDREvent
from rto.shipment.order import Order
from rto.shipment.shipment import Shipment


@rto.repository(part_of=RTOEvent)
class RTOEventRepository:
    def get_rto(self, rto_event_id: str) -> RTOEvent:
        try:
            return self.get(rto_event_id)
        except ObjectNotFoundError as exc:
            raise RTONotFound(rto_event_id) from exc

    def find_by_reverse_awb(self, reverse_awb: str) -> RTOEvent | None:
        matches = self._dao.query.filter(reverse_awb=reverse_awb).all().items
        return matches[0] if matches else None

    def find_by_ndr_event(self, ndr_event_id: str) -> RTOEvent | None:
        matches = self._dao.query.filter(ndr_event_id=ndr_event_id).all().items
        return matches[0] if matches else None

    def find_for_shipment(self, shipment_id: str) -> list[RTOEvent]:
        return self._dao.query.filter(shipment_id=shipment_id).all().items

    def find_active_for_shipment(self, shipment_id: str) -> list[RTOEvent]:
        return [event for event in self.find_for_shipment(shipment_id) if event.is_active()]

    def find_for_company(self, company_id: str) -> list[RTOEvent]:
        return self._dao.query.filter(company_id=company_id).all().items


@rto.repository(part_of=Shipment)
class ShipmentRepository:
    def get_shipment(self, shipment_id: str) -> Shipment:
        try:
            return self.get(shipment_id)
        except ObjectNotFoundError as exc:
            raise ShipmentNotFound(shipment_id) from exc

    def find_for_company(self, company_id: str) -> list[Shipment]:
        return self._dao.query.filter(company_id=company_id).all().items


@rto.repository(part_of=NDREvent)
class NDREventRepository:
    def find_ndr(self, ndr_event_id: str) -> NDREvent | None:
        try:
            return self.get(ndr_event_id)
        except ObjectNotFoundError:
            return None


@rto.repository(part_of=Order)
class OrderRepository:
    def get_order(self, order_id: str) -> Order:
        try:
            return self.get(order_id)
        except ObjectNotFoundError as exc:
            raise OrderNotFound(order_id) from exc
