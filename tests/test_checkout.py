from datetime import date, timedelta

import pytest

from src.ordering import checkout

TEN_PERCENT = {"id": 1, "name": "10%", "discount_type": "percentage", "discount_value": 10, "min_purchase": 20}
THREE_OFF = {"id": 2, "name": "$3", "discount_type": "fixed", "discount_value": 3, "min_purchase": 0}


def test_largest_discount_wins():
    promo, discount = checkout.select_promotion(50.0, [THREE_OFF, TEN_PERCENT])
    assert promo is TEN_PERCENT
    assert discount == pytest.approx(5.0)


def test_minimum_purchase_is_respected():
    promo, discount = checkout.select_promotion(15.0, [TEN_PERCENT, THREE_OFF])
    assert promo is THREE_OFF
    assert discount == pytest.approx(3.0)


def test_ties_keep_the_first_promotion():
    same = dict(THREE_OFF, id=3, name="otro $3")
    promo, _ = checkout.select_promotion(10.0, [THREE_OFF, same])
    assert promo is THREE_OFF


def test_used_up_promotion_is_skipped():
    exhausted = dict(TEN_PERCENT, max_uses=5, current_uses=5)
    promo, discount = checkout.select_promotion(50.0, [exhausted])
    assert promo is None and discount == 0.0


def test_fixed_discount_never_exceeds_subtotal():
    big = dict(THREE_OFF, discount_value=30)
    assert checkout.promotion_discount(big, 12.5) == pytest.approx(12.5)


def test_place_order_applies_and_counts_promotion(seeded):
    products = {p["name"]: p for p in seeded.list_products()}
    welcome = seeded.list_active_promotions()[0]

    order = checkout.place_order(
        checkout.Customer(name="Luis", email="luis@example.com"),
        [
            checkout.OrderLine(product_id=products["Combo Deluxe"]["id"], quantity=1),
            checkout.OrderLine(product_id=products["Papas Fritas"]["id"], quantity=2, unit_price=2.5),
        ],
        notes="sin cubiertos",
    )

    assert order["order_number"] == f"ORD-{order['id']:04d}"
    assert order["total_amount"] == pytest.approx(17.99)
    assert order["discount_amount"] == pytest.approx(1.80)
    assert order["final_amount"] == pytest.approx(16.19)
    assert order["appliedPromotion"]["id"] == welcome["id"]
    assert [item["quantity"] for item in order["items"]] == [1, 2]
    assert order["items"][1]["total_price"] == pytest.approx(5.0)
    assert seeded.get_promotion(welcome["id"])["current_uses"] == 1


def test_expired_promotion_is_not_applied(seeded):
    welcome = seeded.list_promotions()[0]
    seeded.update_promotion(welcome["id"], end_date=(date.today() - timedelta(days=1)).isoformat())
    product = seeded.list_products()[0]

    order = checkout.place_order(
        checkout.Customer(), [checkout.OrderLine(product_id=product["id"], quantity=5, unit_price=10)]
    )

    assert order["appliedPromotion"] is None
    assert order["final_amount"] == pytest.approx(50.0)


def test_empty_order_is_rejected(database):
    with pytest.raises(checkout.CheckoutError):
        checkout.place_order(checkout.Customer(), [])


def test_unknown_product_is_rejected(database):
    with pytest.raises(checkout.CheckoutError, match="no existe"):
        checkout.place_order(checkout.Customer(), [checkout.OrderLine(product_id=999, quantity=1)])
