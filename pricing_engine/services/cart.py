"""
Cart line operations.

Carts are lists of CartLine; every operation returns a new list. A line whose
quantity would drop below 1 is removed rather than kept at zero.
"""
from dataclasses import replace
from typing import List, Optional, Sequence

from pricing_engine.services.rules import CartLine, ProductSnapshot


def find_line(lines: Sequence[CartLine], product_id: str) -> Optional[CartLine]:
    for line in lines:
        if line.product_id == product_id:
            return line
    return None


def add_to_cart(lines: Sequence[CartLine], product: ProductSnapshot, quantity: int = 1) -> List[CartLine]:
    """Add a product, merging into the existing line for that product."""
    if quantity < 1:
        raise ValueError("Quantity to add must be at least 1")

    existing = find_line(lines, product.id)
    if existing is None:
        return list(lines) + [CartLine(
            product_id=product.id,
            quantity=quantity,
            unit_price=product.price,
            mrp=product.mrp,
            category_id=product.category_id,
        )]

    return [
        replace(line, quantity=line.quantity + quantity) if line.product_id == product.id else line
        for line in lines
    ]


def merge_lines(lines: Sequence[CartLine]) -> List[CartLine]:
    """
    Collapse lines for the same product into one, summing quantities.

    The first line's prices are kept and the original order is preserved.
    """
    merged: List[CartLine] = []
    for line in lines:
        existing = find_line(merged, line.product_id)
        if existing is None:
            merged.append(line)
        else:
            merged = [
                replace(m, quantity=m.quantity + line.quantity) if m.product_id == line.product_id else m
                for m in merged
            ]
    return merged


def update_quantity(lines: Sequence[CartLine], product_id: str, quantity: int) -> List[CartLine]:
    """Set a line's quantity; below 1 removes the line."""
    if quantity < 1:
        return remove_from_cart(lines, product_id)
    return [
        replace(line, quantity=quantity) if line.product_id == product_id else line
        for line in lines
    ]


def remove_from_cart(lines: Sequence[CartLine], product_id: str) -> List[CartLine]:
    return [line for line in lines if line.product_id != product_id]


def clear_cart(lines: Sequence[CartLine]) -> List[CartLine]:
    return []
