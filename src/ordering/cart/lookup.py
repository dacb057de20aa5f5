"""Session-keyed cart lookups.

A session owns at most one active cart at a time; older carts stay behind
as Converted or Expired records, which is what lets a retried checkout be
recognised as a duplicate.
"""

from datetime import UTC, datetime

from protean.utils.globals import current_domain

from ordering.cart.cart import CartStatus, ShoppingCart


def _created(cart):
    created_at = cart.created_at or datetime.min.replace(tzinfo=UTC)
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=UTC)
    return created_at


def carts_for_session(session_id):
    """All carts ever opened for a session, most recent first."""
    repo = current_domain.repository_for(ShoppingCart)
    carts = repo._dao.query.filter(session_id=session_id).all().items
    return sorted(carts, key=_created, reverse=True)


def latest_cart(session_id) -> ShoppingCart | None:
    """The most recent cart of a session, whatever its status."""
    carts = carts_for_session(session_id)
    if not carts:
        return None
    return current_domain.repository_for(ShoppingCart).get(carts[0].id)


def active_cart(session_id, include_expired=False) -> ShoppingCart | None:
    """The session's active cart, or ``None``.

    Carts past their ``expires_at`` are skipped unless ``include_expired``
    is set; the caller decides whether to expire them.
    """
    for cart in carts_for_session(session_id):
        if cart.status != CartStatus.ACTIVE.value:
            continue
        cart = current_domain.repository_for(ShoppingCart).get(cart.id)
        if include_expired or not cart.is_expired():
            return cart
    return None
