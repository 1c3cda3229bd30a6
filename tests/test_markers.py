import pytest

from src.ordering import markers
from src.ordering.markers import CartAction


def test_combo_with_confirm_leaves_no_display_text():
    parsed = markers.parse_response("[ADD_TO_CART:Combo Deluxe:2:::][CONFIRM_ORDER]")
    assert parsed.actions == [CartAction(product_name="Combo Deluxe", quantity=2)]
    assert parsed.confirm_order is True
    assert parsed.display_text == ""


def test_all_fields():
    text = "[ADD_TO_CART:SmartBurger Clásica:1:bacon, queso cheddar:cebolla:bien cocida]"
    (action,) = markers.parse_actions(text)
    assert action.product_name == "SmartBurger Clásica"
    assert action.quantity == 1
    assert action.additions == ("bacon", "queso cheddar")
    assert action.removals == ("cebolla",)
    assert action.notes == "bien cocida"


def test_notes_may_contain_colons():
    (action,) = markers.parse_actions("[ADD_TO_CART:Combo SmartBurger:1:::bebida: Sprite, hora: 12:30]")
    assert action.notes == "bebida: Sprite, hora: 12:30"
    assert action.additions is None and action.removals is None


@pytest.mark.parametrize(
    ("text", "additions", "removals"),
    [
        ("[ADD_TO_CART:Papas Fritas:1:::]", None, None),
        ("[ADD_TO_CART:Papas Fritas:1:ketchup::]", ("ketchup",), None),
        ("[ADD_TO_CART:Papas Fritas:1::sal:]", None, ("sal",)),
        ("[ADD_TO_CART:Papas Fritas:1: , :  :]", None, None),
    ],
)
def test_empty_optional_fields(text, additions, removals):
    (action,) = markers.parse_actions(text)
    assert action.additions == additions
    assert action.removals == removals
    assert action.notes is None


def test_several_markers_keep_order():
    text = "Listo!\n[ADD_TO_CART:Coca-Cola 500ml:1:::]\n[ADD_TO_CART:Papas Fritas:2:::]"
    assert [a.product_name for a in markers.parse_actions(text)] == ["Coca-Cola 500ml", "Papas Fritas"]


@pytest.mark.parametrize("qty", ["0", "-1"])
def test_non_positive_quantity_is_dropped(qty):
    assert markers.parse_actions(f"[ADD_TO_CART:Agua:{qty}:::]") == []


def test_missing_product_name_is_dropped():
    assert markers.parse_actions("[ADD_TO_CART::1:::]") == []


def test_marker_is_case_insensitive():
    parsed = markers.parse_response("[add_to_cart:Agua:1:::] [confirm_order]")
    assert len(parsed.actions) == 1
    assert parsed.confirm_order


def test_malformed_marker_is_stripped_without_action():
    parsed = markers.parse_response("[ADD_TO_CART:Agua:uno] ¡Claro! Te agrego agua.")
    assert parsed.actions == []
    assert parsed.display_text == "¡Claro! Te agrego agua."


def test_unclosed_marker_keeps_the_rest_of_the_reply():
    parsed = markers.parse_response("Te agrego la coca [ADD_TO_CART:Coca-Cola ¿Quieres papas también?")
    assert parsed.actions == []
    assert parsed.display_text == "Te agrego la coca Coca-Cola ¿Quieres papas también?"


def test_unclosed_marker_does_not_swallow_a_later_marker():
    parsed = markers.parse_response("[ADD_TO_CART:Agua ok [ADD_TO_CART:Sprite:1:::] ¡Listo!")
    assert [a.product_name for a in parsed.actions] == ["Sprite"]
    assert parsed.display_text == "Agua ok  ¡Listo!"


def test_confirm_is_independent_of_cart_markers():
    assert markers.should_confirm("¡Orden confirmada! [CONFIRM_ORDER]")
    assert not markers.should_confirm("[ADD_TO_CART:Agua:1:::] ¿confirmas?")
    parsed = markers.parse_response("[CONFIRM_ORDER]\n¡Listo!")
    assert parsed.actions == [] and parsed.confirm_order


def test_speaker_prefix_is_removed():
    assert markers.strip_markers("María: [ADD_TO_CART:Agua:1:::]¡Aquí tienes!") == "¡Aquí tienes!"


def test_display_text_keeps_surrounding_prose():
    text = "[ADD_TO_CART:SmartBurger Clásica:1:::]\n¡Perfecto! 1 SmartBurger Clásica 🛒"
    assert markers.strip_markers(text) == "¡Perfecto! 1 SmartBurger Clásica 🛒"
