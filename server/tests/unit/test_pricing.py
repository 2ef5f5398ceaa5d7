"""Unit tests for booking price computation."""

from travelbook.services.pricing import PriceQuote, quote_price

PACKAGE = {
    "base_price": 1000.0,
    "included_food": True,
    "included_accommodation": False,
    "food_price": 100.0,
    "accommodation_price": 200.0,
}


def test_defaults_keep_base_price():
    """Test that omitted selections fall back to the package defaults."""
    quote = quote_price(**PACKAGE)

    assert quote == PriceQuote(food=True, accommodation=False, total_price=1000.0)


def test_deselecting_included_service_subtracts():
    quote = quote_price(**PACKAGE, selected_food=False)

    assert quote.food is False
    assert quote.total_price == 900.0


def test_selecting_extra_service_adds():
    quote = quote_price(**PACKAGE, selected_accommodation=True)

    assert quote.accommodation is True
    assert quote.total_price == 1200.0


def test_both_adjustments():
    quote = quote_price(**PACKAGE, selected_food=False, selected_accommodation=True)

    assert quote == PriceQuote(food=False, accommodation=True, total_price=1100.0)


def test_explicit_selection_matching_defaults():
    quote = quote_price(**PACKAGE, selected_food=True, selected_accommodation=False)

    assert quote.total_price == 1000.0


def test_total_may_drop_below_base():
    """Deselecting everything included can leave only part of the base price."""
    quote = quote_price(
        base_price=150.0,
        included_food=True,
        included_accommodation=True,
        food_price=100.0,
        accommodation_price=100.0,
        selected_food=False,
        selected_accommodation=False,
    )

    assert quote.total_price == -50.0
