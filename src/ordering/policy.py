"""Business rules checked on resolved cart lines.

The ordering prompt states these rules too, but the model does not always
follow them, so they are enforced here on what it produced.
"""

import dataclasses
from collections.abc import Callable

from src.catalog import snapshot
from src.catalog.resolver import CatalogItem, find_by_name, normalize
from src.database import db
from src.utils.logger import get_logger

logger = get_logger(__name__)

_MIN_PRINCIPAL_MATCH = 3


@dataclasses.dataclass
class ResolvedCartLine:
    item: CatalogItem
    quantity: int
    additions: list[str] = dataclasses.field(default_factory=list)
    removals: list[str] = dataclasses.field(default_factory=list)
    notes: str | None = None

    def customizations(self) -> dict | None:
        data: dict = {}
        if self.additions:
            data["additions"] = list(self.additions)
        if self.removals:
            data["removals"] = list(self.removals)
        if self.notes:
            data["notes"] = self.notes
        return data or None

    def to_dict(self) -> dict:
        data = {"product": self.item.to_dict(), "quantity": self.quantity}
        customizations = self.customizations()
        if customizations:
            data["customizations"] = customizations
        return data


@dataclasses.dataclass
class PolicyResult:
    lines: list[ResolvedCartLine]
    notices: list[str]


RecipeLookup = Callable[[int], list[dict]]


def _fmt_qty(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else f"{value:g}"


def _is_principal(removal: str, item: CatalogItem, recipe: list[dict]) -> bool:
    target = normalize(removal)
    if len(target) >= _MIN_PRINCIPAL_MATCH and target in normalize(item.name):
        return True
    ingredient = find_by_name(recipe, removal, key="ingredient_name")
    return ingredient is not None and not ingredient.get("is_removable", True)


def reject_principal_removals(
    lines: list[ResolvedCartLine],
    recipe_for: RecipeLookup = db.list_product_ingredients,
) -> list[str]:
    """Drops removals of an item's defining ingredient, one notice per refusal."""
    notices = []
    for line in lines:
        if not line.removals or not line.item.is_product:
            continue
        recipe = recipe_for(line.item.id)
        kept = []
        for removal in line.removals:
            if _is_principal(removal, line.item, recipe):
                logger.info("Refusing to remove %r from %s", removal, line.item.name)
                notices.append(
                    f"No puedo quitar {removal} de {line.item.name}: es su ingrediente principal."
                )
            else:
                kept.append(removal)
        line.removals = kept
    return notices


def limit_additions_to_stock(
    lines: list[ResolvedCartLine],
    ingredients: list[dict],
) -> list[str]:
    """Removes additions the kitchen cannot cover and says exactly what is left."""
    notices = []
    for line in lines:
        if not line.additions:
            continue
        kept = []
        for addition in line.additions:
            ingredient = find_by_name(ingredients, addition)
            if ingredient is None:
                kept.append(addition)
                continue
            stock = ingredient.get("stock_quantity") or 0
            if ingredient.get("available") and stock >= line.quantity:
                kept.append(addition)
                continue
            if not ingredient.get("available") or stock <= 0:
                notices.append(
                    f"Lo siento, {ingredient['name']} no está disponible en este momento."
                )
            else:
                notices.append(
                    f"Solo quedan {_fmt_qty(stock)} {ingredient.get('unit') or 'unidades'} de "
                    f"{ingredient['name']}. ¿Te parece bien agregar solo {_fmt_qty(stock)}?"
                )
        line.additions = kept
    return notices


def fold_combo_drinks(lines: list[ResolvedCartLine]) -> tuple[list[ResolvedCartLine], list[str]]:
    """Absorbs drinks ordered alongside combos into the combo lines."""
    combos = [line for line in lines if snapshot.is_combo(line.item)]
    if not combos:
        return lines, []

    capacity = {id(line): line.quantity for line in combos}
    notices = []
    result = []
    for line in lines:
        if not snapshot.is_beverage(line.item):
            result.append(line)
            continue
        remaining = line.quantity
        for combo in combos:
            free = capacity[id(combo)]
            if remaining == 0 or free == 0:
                continue
            absorbed = min(free, remaining)
            capacity[id(combo)] -= absorbed
            remaining -= absorbed
            drink = line.item.name if absorbed == 1 else f"{line.item.name} x{absorbed}"
            combo.notes = "; ".join(filter(None, [combo.notes, f"bebida: {drink}"]))
            notices.append(f"{line.item.name} va incluida en tu {combo.item.name}.")
        if remaining:
            line.quantity = remaining
            result.append(line)
    return result, notices


def apply_policies(
    lines: list[ResolvedCartLine],
    *,
    ingredients: list[dict] | None = None,
    recipe_for: RecipeLookup = db.list_product_ingredients,
) -> PolicyResult:
    if not lines:
        return PolicyResult(lines=[], notices=[])
    notices = reject_principal_removals(lines, recipe_for)
    notices += limit_additions_to_stock(
        lines, ingredients if ingredients is not None else db.list_ingredients()
    )
    lines, folded = fold_combo_drinks(lines)
    return PolicyResult(lines=lines, notices=notices + folded)
