"""Template registry: maps message kinds to template classes."""

from notifications.templates.order_confirmation import OrderConfirmationTemplate

ORDER_CONFIRMATION = "order_confirmation"

TEMPLATE_REGISTRY: dict[str, type] = {
    ORDER_CONFIRMATION: OrderConfirmationTemplate,
}


def render_template(kind: str, data: dict) -> dict:
    """Render ``data`` with the template registered for ``kind``."""
    try:
        template = TEMPLATE_REGISTRY[kind]
    except KeyError:
        raise ValueError(f"Unknown template: {kind}") from None
    return template.render(data)
