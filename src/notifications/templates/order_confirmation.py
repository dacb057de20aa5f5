"""Order confirmation template: rendered from the confirmation data of a placed order."""

import html


def _esc(value) -> str:
    # Product names come from the catalogue and are not trusted as markup
    return html.escape(str(value))


def _address_lines(address: dict | None) -> list[str]:
    if not address:
        return []
    return [address["address"], f"{address['postal_code']} {address['city']}", address["country"]]


class OrderConfirmationTemplate:
    @staticmethod
    def render(data: dict) -> dict:
        """Render subject, text and HTML bodies.

        Every amount in ``data`` is already formatted; the template only lays
        them out.
        """
        order_id = data["order_id"]
        currency = data.get("currency", "eur").upper()
        customer = data["customer"]
        totals = data["totals"]

        lines = [f"Hello {customer.get('name') or customer['email']},", "", f"Thank you for your order #{order_id}.", ""]
        for item in data["items"]:
            lines.append(
                f"  {item['quantity']} x {item['name']} @ {item['unit_price']} "
                f"= {currency} {item['total_price']} (VAT {item['vat_rate']}%)"
            )
        lines += ["", f"Subtotal (excl. VAT): {currency} {totals['subtotal_ht']}"]
        for vat in data.get("vat_breakdown", []):
            lines.append(f"VAT {vat['rate']}%: {currency} {vat['amount']}")
        lines += [f"Total: {currency} {totals['total_ttc']}", "", "Shipping to:"]
        lines += [f"  {line}" for line in _address_lines(data.get("shipping_address"))]
        lines += ["", "Thank you for shopping with Boutique!"]

        rows = "".join(
            f"<tr><td>{_esc(item['name'])}</td><td>{_esc(item['quantity'])}</td>"
            f"<td>{_esc(item['unit_price'])}</td><td>{_esc(item['total_price'])}</td></tr>"
            for item in data["items"]
        )
        html_body = (
            f"<h1>Order #{_esc(order_id)}</h1>"
            f"<table><tr><th>Product</th><th>Qty</th><th>Unit</th><th>Total</th></tr>{rows}</table>"
            f"<p>Total: {_esc(currency)} {_esc(totals['total_ttc'])}</p>"
        )

        return {
            "subject": f"Order #{order_id} confirmed",
            "body": "\n".join(lines),
            "html_body": html_body,
        }
