import pytest

from src.catalog import resolver, snapshot
from src.catalog.resolver import CatalogItem


def _product(id, name, price=1.0, category=None):
    return CatalogItem(id=id, name=name, price=price, source="product", category=category)


def _ingredient(id, name, price=0.5):
    return CatalogItem(id=id, name=name, price=price, source="ingredient")


CATALOG = [
    _product(1, "SmartBurger Clásica", 5.99, "Hamburguesas"),
    _product(2, "Papas Fritas", 2.99, "Acompañamientos"),
    _product(3, "Coca-Cola 500ml", 1.99, "Bebidas"),
    _ingredient(10, "Papas"),
    _ingredient(11, "Queso cheddar", 0.75),
]


@pytest.mark.parametrize(
    "text",
    ["Coca-Cola 500ml", "  Crème   BRÛLÉE ", "S.mart-Burger", "", "ñandú"],
)
def test_normalize_is_idempotent(text):
    once = resolver.normalize(text)
    assert resolver.normalize(once) == once


def test_normalize_strips_accents_hyphens_and_periods():
    assert resolver.normalize("  Clásica  Coca-Cola 0.5L ") == "clasica cocacola 05l"


@pytest.mark.parametrize(
    ("query", "candidate", "expected"),
    [
        ("smartburger clasica", "SmartBurger Clásica", resolver.EXACT),
        ("coca", "Coca-Cola 500ml", resolver.CANDIDATE_CONTAINS_QUERY),
        ("papas fritas grandes", "Papas Fritas", resolver.QUERY_CONTAINS_CANDIDATE),
        ("fritas papa", "Papas Fritas", resolver.ALL_TOKENS),
        ("hamburguesa queso", "Doble Queso Deluxe", resolver.PARTIAL_TOKEN),
        ("ensalada", "Papas Fritas", resolver.NO_MATCH),
        ("", "Papas Fritas", resolver.NO_MATCH),
    ],
)
def test_match_score_rules(query, candidate, expected):
    assert resolver.match_score(query, candidate) == expected


def test_short_tokens_never_give_partial_credit():
    assert resolver.match_score("la xy", "Aros de Cebolla") == resolver.NO_MATCH


def test_score_only_grows_as_the_query_approaches_the_name():
    name = "Combo SmartBurger"
    queries = ["combo extra", "smartburger combo", "smartburger", "combo smartburger"]
    scores = [resolver.match_score(q, name) for q in queries]
    assert scores == sorted(scores)


def test_products_outrank_ingredients_even_with_lower_score():
    match = resolver.resolve("papas", CATALOG)
    assert match.item.name == "Papas Fritas"
    assert match.item.source == "product"
    assert match.score == resolver.CANDIDATE_CONTAINS_QUERY


def test_equal_scores_keep_catalog_order():
    catalog = [_product(1, "Combo SmartBurger"), _product(2, "SmartBurger Clásica")]
    assert resolver.resolve("smartburger", catalog).item.id == 1
    assert resolver.resolve("smartburger", list(reversed(catalog))).item.id == 2


def test_ingredient_resolves_when_no_product_matches():
    match = resolver.resolve("queso extra", CATALOG)
    assert match.item.id == 11
    assert not match.item.is_product


def test_no_match_returns_none():
    assert resolver.resolve("pizza hawaiana", CATALOG) is None


def test_coca_and_papas_both_resolve():
    coca = resolver.resolve("coca", CATALOG)
    papas = resolver.resolve("papas", CATALOG)
    assert coca.item.name == "Coca-Cola 500ml" and coca.score >= resolver.ALL_TOKENS
    assert papas.item.name == "Papas Fritas" and papas.score >= resolver.ALL_TOKENS


def test_find_by_name_matches_either_direction():
    rows = [{"name": "Pan brioche"}, {"name": "Queso cheddar"}]
    assert resolver.find_by_name(rows, "queso")["name"] == "Queso cheddar"
    assert resolver.find_by_name(rows, "queso cheddar extra")["name"] == "Queso cheddar"
    assert resolver.find_by_name(rows, "tocino") is None
    assert resolver.find_by_name(rows, "  ") is None


def test_sellable_catalog_excludes_drinks_and_empty_ingredients(seeded):
    seeded.update_ingredient(
        next(i["id"] for i in seeded.list_ingredients() if i["name"] == "Aguacate"),
        stock_quantity=0,
    )
    seeded.create_ingredient("Coca-Cola jarabe", price=0.5, stock_quantity=10)

    catalog = snapshot.sellable_catalog()
    ingredient_names = {i.name for i in catalog if not i.is_product}
    assert "Aguacate" not in ingredient_names
    assert "Coca-Cola jarabe" not in ingredient_names
    assert "Queso cheddar" in ingredient_names
    # products come first
    sources = [i.source for i in catalog]
    assert sources == sorted(sources, key=lambda s: s != "product")


def test_combo_and_beverage_detection_uses_category(seeded):
    items = {i.name: i for i in snapshot.product_items()}
    assert snapshot.is_combo(items["Combo Deluxe"])
    assert snapshot.is_beverage(items["Sprite 500ml"])
    assert not snapshot.is_combo(items["Papas Fritas"])
