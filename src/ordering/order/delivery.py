"""Delivery status and back-office notes: commands and handler."""

from protean import handle
from protean.fields import Boolean, Identifier, Text
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.order.order import Order
from ordering.order.queries import load_order


@ordering.command(part_of="Order")
class SetDeliveryStatus:
    order_id = Identifier(required=True)
    delivered = Boolean(required=True)


@ordering.command(part_of="Order")
class UpdateOrderNotes:
    order_id = Identifier(required=True)
    notes = Text()


@ordering.command_handler(part_of=Order)
class OrderAdministrationHandler:
    @handle(SetDeliveryStatus)
    def set_delivery_status(self, command):
        order = load_order(command.order_id)
        changed = order.set_delivery_status(command.delivered)
        if changed:
            current_domain.repository_for(Order).add(order)
        return changed

    @handle(UpdateOrderNotes)
    def update_notes(self, command):
        order = load_order(command.order_id)
        order.update_notes(command.notes)
        current_domain.repository_for(Order).add(order)
