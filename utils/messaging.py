"""WhatsApp order handoff: message text and the wa.me link that opens it."""

from __future__ import annotations

import re
from typing import Any, Dict, Iterable, Optional
from urllib.parse import quote

from utils.formatting import format_price

PAYMENT_LABELS = {
    "pix": "PIX",
    "card": "Cartão",
    "cash": "Dinheiro",
}


def payment_label(method) -> str:
    value = getattr(method, "value", method)
    return PAYMENT_LABELS.get(value, str(value).title())


def _format_line(item: Dict[str, Any]) -> str:
    lines = [f"• {item['quantity']}x {item['name']} - {format_price(item['line_total'])}"]
    for option in item.get("selected_options") or []:
        extra = f" (+{format_price(option['price'])})" if option.get("price") else ""
        lines.append(f"   + {option['name']}{extra}")
    for name in item.get("removed_ingredient_names") or []:
        lines.append(f"   - Sem {name}")
    if item.get("notes"):
        lines.append(f"   _Obs: {item['notes']}_")
    return "\n".join(lines)


def format_order_message(
    *,
    store_name: str,
    order_id: Optional[int],
    customer_name: str,
    customer_address: Optional[str],
    items: Iterable[Dict[str, Any]],
    subtotal,
    delivery_fee,
    discount,
    total,
    payment_method,
    coupon_code: Optional[str] = None,
    notes: Optional[str] = None,
) -> str:
    header = f"🍔 *NOVO PEDIDO - {store_name.upper()}*"
    if order_id is not None:
        header += f" #{order_id}"

    parts = [header, ""]
    parts.append(f"*Cliente:* {customer_name}")
    if customer_address:
        parts.append(f"*Endereço:* {customer_address}")

    parts += ["", "*ITENS:*"]
    parts += [_format_line(item) for item in items]

    parts += ["", f"Subtotal: {format_price(subtotal)}", f"Entrega: {format_price(delivery_fee)}"]
    if discount:
        label = f"Desconto ({coupon_code})" if coupon_code else "Desconto"
        parts.append(f"{label}: -{format_price(discount)}")
    parts.append(f"*TOTAL: {format_price(total)}*")
    parts += ["", f"*Pagamento:* {payment_label(payment_method)}"]
    if notes:
        parts.append(f"*Obs:* {notes}")
    parts += ["", "Obrigado pela preferência! 🤘"]
    return "\n".join(parts)


def whatsapp_url(phone_number: str, message: str) -> str:
    digits = re.sub(r"\D", "", phone_number or "")
    return f"https://wa.me/{digits}?text={quote(message)}"
