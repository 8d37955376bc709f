"""Attach active discount and 2+1 promotions to catalog products."""

import logging
from datetime import datetime, timezone
from typing import Iterable

from pydantic import ValidationError

from .models import Product, Promotion, PromotionRef, id_key

logger = logging.getLogger(__name__)

# Box promotions are sold as whole bundles, never merged onto products.
PRODUCT_PROMOTION_TYPES = ("discount", "2+1")

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def _created_at(promotion: Promotion) -> datetime:
    if promotion.created_at is None:
        return _EPOCH
    if promotion.created_at.tzinfo is None:
        return promotion.created_at.replace(tzinfo=timezone.utc)
    return promotion.created_at


def _precedence_order(promotions: list[Promotion]) -> list[Promotion]:
    """Oldest first, so newer promotions overwrite older ones.

    Without timestamps the input order is kept and the later entry wins.
    """
    if not any(promotion.created_at for promotion in promotions):
        return promotions
    return sorted(promotions, key=_created_at)


def to_promotion_ref(promotion: Promotion) -> PromotionRef:
    return PromotionRef(
        id=promotion.id,
        title=promotion.title,
        type=promotion.type,
        discount_value=promotion.discount_value,
        price=promotion.price,
        quantity_required=promotion.quantity_required,
        quantity_free=promotion.quantity_free,
    )


def index_promotions(active_promotions: Iterable[Promotion]) -> dict[str, PromotionRef]:
    """Map product id to the promotion descriptor that applies to it.

    A promotion whose terms cannot be turned into a descriptor is skipped
    and does not shadow older promotions on the same products.
    """
    offers = [p for p in active_promotions if p.type in PRODUCT_PROMOTION_TYPES]
    index: dict[str, PromotionRef] = {}
    for promotion in _precedence_order(offers):
        try:
            ref = to_promotion_ref(promotion)
        except ValidationError as e:
            logger.warning(f"Skipping promotion {promotion.id}: {e.error_count()} invalid field(s)")
            continue
        for product in promotion.products or []:
            key = id_key(product.id)
            previous = index.get(key)
            if previous is not None and previous.id != ref.id:
                logger.debug(f"Product {key}: promotion {ref.id} overrides {previous.id}")
            index[key] = ref
    return index


def merge_promotions(
    products: Iterable[Product], active_promotions: Iterable[Promotion]
) -> list[Product]:
    """
    Return products with their matching promotion attached.

    Only ``discount`` and ``2+1`` promotions are considered. When several
    promotions list the same product, the most recently created one wins;
    ties (or missing timestamps) go to the later one in ``active_promotions``.

    Args:
        products: Catalog products
        active_promotions: Active promotions with their product lists

    Returns:
        New list; matched products are copies, the rest are passed through
    """
    index = index_promotions(active_promotions)
    merged = []
    matched = 0
    for product in products:
        ref = index.get(id_key(product.id))
        if ref is None:
            merged.append(product)
            continue
        matched += 1
        merged.append(product.model_copy(update={"promotion": ref}))

    logger.info(f"Merged promotions onto {matched} product(s)")
    return merged
