"""Booking price computation."""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class PriceQuote:
    """Final service selection and the resulting price."""

    food: bool
    accommodation: bool
    total_price: float


def _adjust(total: float, included: bool, selected: bool, price: float) -> float:
    if included and not selected:
        return total - price
    if not included and selected:
        return total + price
    return total


def quote_price(
    base_price: float,
    included_food: bool,
    included_accommodation: bool,
    food_price: float,
    accommodation_price: float,
    selected_food: Optional[bool] = None,
    selected_accommodation: Optional[bool] = None,
) -> PriceQuote:
    """
    Compute the price of a booking.

    Each selected flag left as None falls back to the package default.
    A service included in the base price but deselected is subtracted;
    a service not included but selected is added.
    """
    food = included_food if selected_food is None else selected_food
    accommodation = included_accommodation if selected_accommodation is None else selected_accommodation

    total = base_price
    total = _adjust(total, included_food, food, food_price)
    total = _adjust(total, included_accommodation, accommodation, accommodation_price)

    return PriceQuote(food=food, accommodation=accommodation, total_price=total)
