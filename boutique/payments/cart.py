"""
Logique panier pure (pas de Stripe, pas de DB).
Tous les montants sont calculés en unités mineures entières (centimes).
"""
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import List, Dict, Any
import json

from boutique.errors import InvalidCart

# Limites Stripe sur les metadata: 50 clés, 500 caractères par valeur
METADATA_VALUE_LIMIT = 500
METADATA_MAX_PRODUCT_CHUNKS = 45

# module boutique.payments.cart
def _round_half_up(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))

def to_decimal(value: Any) -> Decimal:
    """Convertit str|float|int|Decimal en Decimal sans passer par la représentation binaire du float."""
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise InvalidCart(f"Prix invalide: {value!r}")

def to_minor_units(price: Any) -> int:
    """Prix unitaire (unités majeures) -> centimes, arrondi au plus proche (half-up)."""
    return _round_half_up(to_decimal(price) * 100)

def validate_lines(products: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Valide et normalise les lignes du panier avant tout effet de bord.
    - InvalidCart si la liste est vide, si un id manque, si une quantité n'est pas
      un entier strictement positif ou si un prix est négatif.
    - Retourne [{id, name, image, price(Decimal), quantity(int)}, ...]
    """
    if not isinstance(products, list) or not products:
        raise InvalidCart("Panier vide ou invalide")
    lines: List[Dict[str, Any]] = []
    for p in products:
        if not isinstance(p, dict):
            raise InvalidCart("Ligne de panier invalide")
        product_id = str(p.get("id") or p.get("_id") or "").strip()
        if not product_id:
            raise InvalidCart("Identifiant produit manquant")
        qty = p.get("quantity")
        if isinstance(qty, bool) or not isinstance(qty, int) or qty <= 0:
            raise InvalidCart(f"Quantité invalide pour {product_id}")
        price = to_decimal(p.get("price"))
        if price < 0:
            raise InvalidCart(f"Prix invalide pour {product_id}")
        lines.append({
            "id": product_id,
            "name": p.get("name") or "Article",
            "image": p.get("image") or None,
            "price": price,
            "quantity": qty,
        })
    return lines

def total_minor_units(lines: List[Dict[str, Any]]) -> int:
    """Somme des lignes: chaque prix est converti en centimes AVANT multiplication et somme."""
    return sum(to_minor_units(line["price"]) * int(line["quantity"]) for line in lines)

def discount_minor_units(total: int, discount_percentage: int) -> int:
    """Montant de la remise, un seul arrondi sur le total avant remise."""
    return _round_half_up(Decimal(total) * Decimal(discount_percentage) / 100)

def apply_discount(total: int, discount_percentage: int) -> int:
    return total - discount_minor_units(total, discount_percentage)

def to_line_items(lines: List[Dict[str, Any]], currency: str) -> List[Dict[str, Any]]:
    """
    Construit les line_items Stripe aux prix unitaires NON remisés.
    La remise éventuelle passe par le mécanisme 'discounts' de Stripe.
    """
    line_items: List[Dict[str, Any]] = []
    for line in lines:
        product_data: Dict[str, Any] = {"name": line["name"]}
        if line.get("image"):
            product_data["images"] = [line["image"]]
        line_items.append({
            "quantity": line["quantity"],
            "price_data": {
                "currency": currency,
                "unit_amount": to_minor_units(line["price"]),
                "product_data": product_data,
            },
        })
    return line_items

def snapshot_products(lines: List[Dict[str, Any]]) -> str:
    """Instantané JSON compact [{id, quantity, price}] suffisant pour reconstruire la commande."""
    snapshot = [
        {"id": line["id"], "quantity": line["quantity"], "price": float(line["price"])}
        for line in lines
    ]
    return json.dumps(snapshot, separators=(",", ":"))

def make_metadata(user_id: str, coupon_code: str, lines: List[Dict[str, Any]]) -> Dict[str, str]:
    """
    Sérialise les métadonnées Stripe associées à la session.
    - userId, couponCode ("" si aucun)
    - products: instantané du panier; découpé en products_0..n (+ products_chunks)
      s'il dépasse la limite de 500 caractères par valeur.
    - InvalidCart si le panier ne tient pas dans les metadata.
    """
    metadata = {"userId": str(user_id), "couponCode": coupon_code or ""}
    snapshot = snapshot_products(lines)
    if len(snapshot) <= METADATA_VALUE_LIMIT:
        metadata["products"] = snapshot
        return metadata
    chunks = [snapshot[i:i + METADATA_VALUE_LIMIT] for i in range(0, len(snapshot), METADATA_VALUE_LIMIT)]
    if len(chunks) > METADATA_MAX_PRODUCT_CHUNKS:
        raise InvalidCart("Panier trop volumineux")
    metadata["products_chunks"] = str(len(chunks))
    for i, chunk in enumerate(chunks):
        metadata[f"products_{i}"] = chunk
    return metadata
