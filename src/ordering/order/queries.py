"""Read-side helpers for orders."""

from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from ordering.errors import NotFoundError
from ordering.order.order import Order


def load_order(order_id) -> Order:
    try:
        return current_domain.repository_for(Order).get(order_id)
    except ObjectNotFoundError as exc:
        raise NotFoundError(f"Order {order_id} does not exist") from exc


def order_for_payment_intent(payment_intent_id) -> Order | None:
    repo = current_domain.repository_for(Order)
    matches = repo._dao.query.filter(payment_intent_id=payment_intent_id).all().items
    if not matches:
        return None
    return repo.get(matches[0].id)


def orders_for_customer(customer_id):
    repo = current_domain.repository_for(Order)
    records = repo._dao.query.filter(customer_id=customer_id).all().items
    return [repo.get(record.id) for record in records]


def all_orders():
    repo = current_domain.repository_for(Order)
    return [repo.get(record.id) for record in repo._dao.query.all().items]
