"""Cart expiry: sweep active carts whose retention window has elapsed.

Meant to be triggered periodically by an external scheduler through the
maintenance endpoint. Carts are also expired lazily when their session adds
an item after the deadline.
"""

from datetime import UTC, datetime

import structlog
from protean import handle
from protean.exceptions import InvalidOperationError, ValidationError
from protean.fields import DateTime
from protean.utils.globals import current_domain

from ordering.cart.cart import CartStatus, ShoppingCart
from ordering.domain import ordering

logger = structlog.get_logger(__name__)


@ordering.command(part_of="ShoppingCart")
class ExpireCarts:
    """Expire every active cart past its ``expires_at``."""

    as_of = DateTime()  # Optional: defaults to now


@ordering.command_handler(part_of=ShoppingCart)
class ExpireCartsHandler:
    @handle(ExpireCarts)
    def expire_carts(self, command):
        as_of = command.as_of or datetime.now(UTC)
        repo = current_domain.repository_for(ShoppingCart)

        active_carts = repo._dao.query.filter(status=CartStatus.ACTIVE.value).all().items
        stale = [cart for cart in active_carts if cart.is_expired(as_of)]
        if not stale:
            logger.info("No expired carts found", as_of=as_of.isoformat())
            return 0

        expired_count = 0
        for record in stale:
            cart = repo.get(record.id)
            try:
                cart.expire(as_of)
            except (ValidationError, InvalidOperationError) as exc:
                logger.warning("Failed to expire cart", cart_id=str(cart.id), error=str(exc))
                continue
            repo.add(cart)
            expired_count += 1
            logger.info(
                "Expired cart",
                cart_id=str(cart.id),
                session_id=cart.session_id,
                expires_at=str(cart.expires_at),
            )

        logger.info("Cart expiry sweep complete", expired_count=expired_count)
        return expired_count
