"""Application container: the collaborators built once at startup.

The container is stored on ``app.state`` and reaches routes through
``ordering.api.dependencies``; tests build their own with fakes.
"""

from dataclasses import dataclass, field

from catalogue.lookup import Catalogue, build_catalogue
from notifications.channel import EmailPort, build_email_adapter
from ordering.cart.locking import CartLocks, InProcessCartLocks, RedisCartLocks
from ordering.checkout.service import CheckoutService
from payments.gateway import PaymentGateway, build_gateway
from settings import Settings


@dataclass
class Container:
    settings: Settings
    catalogue: Catalogue
    gateway: PaymentGateway
    mailer: EmailPort
    cart_locks: CartLocks
    checkout: CheckoutService = field(init=False)

    def __post_init__(self):
        self.checkout = CheckoutService(
            gateway=self.gateway,
            mailer=self.mailer,
            cart_locks=self.cart_locks,
            currency=self.settings.currency,
        )


def build_container(settings: Settings) -> Container:
    if settings.redis_url:
        cart_locks = RedisCartLocks.from_url(settings.redis_url, blocking_timeout=settings.cart_lock_timeout)
    else:
        cart_locks = InProcessCartLocks(timeout=settings.cart_lock_timeout)

    return Container(
        settings=settings,
        catalogue=build_catalogue(settings.catalogue_url, timeout=settings.catalogue_timeout),
        gateway=build_gateway(settings.payment_gateway, base_url=settings.payment_gateway_url),
        mailer=build_email_adapter(
            smtp_host=settings.smtp_host,
            smtp_port=settings.smtp_port,
            sender=settings.mail_sender,
            username=settings.smtp_username,
            password=settings.smtp_password,
            use_tls=settings.smtp_use_tls,
        ),
        cart_locks=cart_locks,
    )
