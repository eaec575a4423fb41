"""
cart.py — Shopping Cart Reducer

The cart is an immutable ``CartState`` that only changes through four actions:

    AddItem      merge into an existing line or append a new one
    RemoveItem   drop a line regardless of its quantity
    SetQuantity  replace the quantity; below one it removes the line
    ClearCart    empty the cart

``reduce()`` is pure. It returns the new state together with the follow-on
actions it derived (the companion stand for a tree), and ``CartSession``
applies them. The session is the single writer of the cart.
"""

import logging
import re
from enum import Enum
from typing import List, Optional, Tuple, Union

from pydantic import BaseModel, Field

from .config import StoreConfig
from .models import CartItem, Catalog, CatalogItem

log = logging.getLogger(__name__)


class AddItem(BaseModel):
    itemId: str
    variationId: str
    quantity: int = Field(1, gt=0)


class RemoveItem(BaseModel):
    itemId: str
    variationId: str


class SetQuantity(BaseModel):
    itemId: str
    variationId: str
    quantity: int


class ClearCart(BaseModel):
    pass


CartAction = Union[AddItem, RemoveItem, SetQuantity, ClearCart]


class CartState(BaseModel):
    items: Tuple[CartItem, ...] = ()

    def find(self, item_id: str, variation_id: str) -> Optional[CartItem]:
        return next((i for i in self.items if i.key == (item_id, variation_id)), None)

    def quantity_of(self, item_id: str, variation_id: str) -> int:
        item = self.find(item_id, variation_id)
        return item.quantity if item else 0

    @property
    def item_count(self) -> int:
        return sum(i.quantity for i in self.items)

    def subtotal(self, catalog: Catalog) -> int:
        """Sum of unit price × quantity in minor units; lines unknown to the catalog count as zero."""
        total = 0
        for line in self.items:
            variation = catalog.find_variation(line.itemId, line.variationId)
            if variation:
                total += variation.price.amount * line.quantity
        return total


class Transition(BaseModel):
    state: CartState
    effects: List[AddItem] = Field(default_factory=list)


class SizeClass(str, Enum):
    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"
    EXTRA_LARGE = "extra-large"


# Tree height keywords per stand size, checked in this order
TREE_SIZE_KEYWORDS = [
    (SizeClass.SMALL, ("3-4", "4-5")),
    (SizeClass.MEDIUM, ("5-6",)),
    (SizeClass.LARGE, ("6-7", "7-8")),
    (SizeClass.EXTRA_LARGE, ("8-9",)),
]

# "large" is a substring of "x-large", so extra-large is matched first
STAND_SIZE_KEYWORDS = [
    (SizeClass.EXTRA_LARGE, ("extra-large", "extra large", "x-large", "xl")),
    (SizeClass.LARGE, ("large",)),
    (SizeClass.MEDIUM, ("medium",)),
    (SizeClass.SMALL, ("small",)),
]


def tree_size_class(variation_name: str) -> SizeClass:
    """Stand size needed for a tree variation such as '6-7 ft'. Defaults to small."""
    name = variation_name.lower()
    for size, keywords in TREE_SIZE_KEYWORDS:
        if any(k in name for k in keywords):
            return size
    return SizeClass.SMALL


def stand_size_class(variation_name: str) -> Optional[SizeClass]:
    name = variation_name.lower()
    for size, keywords in STAND_SIZE_KEYWORDS:
        if any(k in name for k in keywords):
            return size
    return None


def _names_word(name: str, keyword: str) -> bool:
    """Whole-word, case-insensitive match, so 'stand' does not match 'Standard'."""
    return re.search(rf"\b{re.escape(keyword)}\b", name, re.IGNORECASE) is not None


def find_stand(catalog: Catalog, config: StoreConfig) -> Optional[CatalogItem]:
    return next((i for i in catalog.items if _names_word(i.name, config.stand_keyword)), None)


def _has_height_variations(item: CatalogItem) -> bool:
    return any(
        k in v.name.lower()
        for v in item.variations
        for _, keywords in TREE_SIZE_KEYWORDS
        for k in keywords
    )


def is_tree(item: CatalogItem, config: StoreConfig) -> bool:
    """A tree is named like one or sold by height ('6-7 ft'); fee items and the stand never are."""
    name = item.name.lower()
    if name.startswith(config.delivery_item_prefix.lower()) or _names_word(name, config.stand_keyword):
        return False
    return config.tree_keyword.lower() in name or _has_height_variations(item)


def companion_for(action: AddItem, state: CartState, catalog: Catalog, config: StoreConfig) -> Optional[AddItem]:
    """
    Derives the stand that goes with a tree.

    Args:
        action (AddItem): The add that was just applied.
        state (CartState): Cart state after the add.
        catalog (Catalog): Normalized catalog.
        config (StoreConfig): Tree and stand keywords.

    Returns:
        AddItem | None: An add of one matching stand, or None if the item is
        not a tree, no stand of that size exists, or it is already in the cart.
    """
    item = catalog.find_item(action.itemId)
    if not item or not is_tree(item, config):
        return None
    variation = item.find_variation(action.variationId)
    if not variation:
        return None

    stand = find_stand(catalog, config)
    if not stand:
        return None
    size = tree_size_class(variation.name)
    stand_variation = next((v for v in stand.variations if stand_size_class(v.name) == size), None)
    if not stand_variation:
        log.info(f"Kein Ständer der Größe '{size.value}' für '{item.name} {variation.name}' im Katalog.")
        return None

    if state.find(stand.id, stand_variation.id):
        return None
    return AddItem(itemId=stand.id, variationId=stand_variation.id, quantity=1)


def _without(state: CartState, item_id: str, variation_id: str) -> CartState:
    return CartState(items=tuple(i for i in state.items if i.key != (item_id, variation_id)))


def reduce(state: CartState, action: CartAction, catalog: Catalog = None,
           config: StoreConfig = None) -> Transition:
    """
    Applies one action to the cart.

    Args:
        state (CartState): Current cart.
        action (CartAction): AddItem, RemoveItem, SetQuantity or ClearCart.
        catalog (Catalog): Optional; enables the companion stand rule on AddItem.
        config (StoreConfig): Keywords for the companion rule, defaults apply if omitted.

    Returns:
        Transition: The new state and the follow-on actions to apply.
    """
    if isinstance(action, AddItem):
        existing = state.find(action.itemId, action.variationId)
        if existing:
            merged = existing.model_copy(update={"quantity": existing.quantity + action.quantity})
            items = tuple(merged if i.key == existing.key else i for i in state.items)
        else:
            line = CartItem(itemId=action.itemId, variationId=action.variationId, quantity=action.quantity)
            items = state.items + (line,)
        new_state = CartState(items=items)

        effects = []
        if catalog is not None:
            companion = companion_for(action, new_state, catalog, config or StoreConfig())
            if companion:
                effects.append(companion)
        return Transition(state=new_state, effects=effects)

    if isinstance(action, RemoveItem):
        return Transition(state=_without(state, action.itemId, action.variationId))

    if isinstance(action, SetQuantity):
        if action.quantity < 1:
            return Transition(state=_without(state, action.itemId, action.variationId))
        items = tuple(
            i.model_copy(update={"quantity": action.quantity}) if i.key == (action.itemId, action.variationId) else i
            for i in state.items
        )
        return Transition(state=CartState(items=items))

    if isinstance(action, ClearCart):
        return Transition(state=CartState())

    raise TypeError(f"Unknown cart action: {action!r}")


class CartSession:
    """
    Owner of the cart for one shopper.

    All writes go through ``dispatch``; effects derived by the reducer are
    applied right after the action that produced them.
    """

    def __init__(self, config: StoreConfig = None, state: CartState = None):
        self.config = config or StoreConfig()
        self.state = state or CartState()

    def dispatch(self, action: CartAction, catalog: Catalog = None) -> CartState:
        transition = reduce(self.state, action, catalog, self.config)
        self.state = transition.state
        for effect in transition.effects:
            log.info(f"Cart: füge Zubehör hinzu ({effect.itemId}/{effect.variationId}).")
            self.state = reduce(self.state, effect).state
        return self.state

    def add(self, item_id: str, variation_id: str, quantity: int = 1, catalog: Catalog = None) -> CartState:
        return self.dispatch(AddItem(itemId=item_id, variationId=variation_id, quantity=quantity), catalog)

    def remove(self, item_id: str, variation_id: str) -> CartState:
        return self.dispatch(RemoveItem(itemId=item_id, variationId=variation_id))

    def set_quantity(self, item_id: str, variation_id: str, quantity: int) -> CartState:
        return self.dispatch(SetQuantity(itemId=item_id, variationId=variation_id, quantity=quantity))

    def clear(self) -> CartState:
        return self.dispatch(ClearCart())

    @property
    def items(self) -> List[CartItem]:
        return list(self.state.items)
