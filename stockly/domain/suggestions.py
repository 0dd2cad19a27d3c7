"""Order padding: propose stock items that lift an order over a supplier minimum.

Candidates are the supplier's items sitting below their par level. Items
that keep longest are ranked first because over-ordering them carries the
least wastage risk. Auto-selection then takes the ranked list greedily until
the shortfall is covered.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from ..config import settings
from ..db import get_session, to_decimal
from ..errors import NotFoundError
from ..metrics import SUGGESTION_QUERY_FALLBACKS_TOTAL, SUGGESTIONS_SERVED_TOTAL
from ..models import ProductVariant, StockItem, StockLevel, Supplier

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")
ONE = Decimal("1")


@dataclass
class Candidate:
    """Stock item row with the figures the scoring needs."""

    stock_item_id: int
    name: str
    stock_unit: str
    quantity: Decimal
    unit_price: Optional[Decimal]
    shelf_life_days: Optional[int] = None
    is_perishable: bool = False
    reorder_point: Optional[Decimal] = None
    par_level: Optional[Decimal] = None
    avg_daily_usage: Decimal = ZERO
    days_until_reorder: Optional[int] = None


@dataclass
class Suggestion:
    stock_item_id: int
    item_name: str
    current_quantity: Decimal
    suggested_quantity: Decimal
    unit_price: Decimal
    line_total: Decimal
    stock_unit: str
    shelf_life_days: Optional[int]
    is_perishable: bool
    days_until_reorder: Optional[int]
    avg_daily_usage: Decimal
    suggestion_reason: str
    priority_score: int
    badges: List[str] = field(default_factory=list)
    selected: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stock_item_id": self.stock_item_id,
            "item_name": self.item_name,
            "current_quantity": float(self.current_quantity),
            "suggested_quantity": float(self.suggested_quantity),
            "unit_price": float(self.unit_price),
            "line_total": float(self.line_total),
            "stock_unit": self.stock_unit,
            "shelf_life_days": self.shelf_life_days,
            "is_perishable": self.is_perishable,
            "days_until_reorder": self.days_until_reorder,
            "avg_daily_usage": float(self.avg_daily_usage),
            "suggestion_reason": self.suggestion_reason,
            "priority_score": self.priority_score,
            "badges": list(self.badges),
            "selected": self.selected,
        }


def compute_shortfall(current_total, minimum_order) -> Decimal:
    """Return how far ``current_total`` is below ``minimum_order`` (never negative)."""
    if minimum_order is None:
        return ZERO
    return max(ZERO, to_decimal(minimum_order) - to_decimal(current_total))


def _effective_par(candidate: Candidate) -> Optional[Decimal]:
    if candidate.par_level:
        return to_decimal(candidate.par_level)
    if candidate.reorder_point:
        return to_decimal(candidate.reorder_point) * 2
    return None


def _reason(shelf_life_days: Optional[int]) -> str:
    if shelf_life_days and shelf_life_days > settings.LONG_SHELF_LIFE_DAYS:
        return f"Long shelf life ({shelf_life_days} days)"
    return "Below target level"


def _badges(candidate: Candidate) -> List[str]:
    badges = []
    if candidate.shelf_life_days and candidate.shelf_life_days >= settings.LONG_LIFE_BADGE_DAYS:
        badges.append("long_life")
    if (
        candidate.days_until_reorder is not None
        and candidate.days_until_reorder <= settings.REORDER_SOON_DAYS
    ):
        badges.append("reorder_soon")
    if not candidate.is_perishable:
        badges.append("non_perishable")
    return badges


def _rank_key(suggestion: Suggestion):
    urgency = suggestion.days_until_reorder
    return (
        -suggestion.priority_score,
        urgency is None,
        urgency if urgency is not None else 0,
        suggestion.item_name.lower(),
    )


def build_suggestions(
    candidates: Iterable[Candidate], existing_item_ids: Iterable[int] = ()
) -> List[Suggestion]:
    """Score ``candidates`` and return them ranked, best padding first.

    Items already on the order and items at or above par are dropped.
    """
    excluded = set(existing_item_ids)
    suggestions = []
    for candidate in candidates:
        if candidate.stock_item_id in excluded:
            continue
        par = _effective_par(candidate)
        quantity = to_decimal(candidate.quantity)
        if par is None or quantity >= par:
            continue

        suggested = max(ONE, par - quantity)
        unit_price = to_decimal(candidate.unit_price)
        suggestions.append(
            Suggestion(
                stock_item_id=candidate.stock_item_id,
                item_name=candidate.name,
                current_quantity=quantity,
                suggested_quantity=suggested,
                unit_price=unit_price,
                line_total=to_decimal(suggested * unit_price),
                stock_unit=candidate.stock_unit,
                shelf_life_days=candidate.shelf_life_days,
                is_perishable=bool(candidate.is_perishable),
                days_until_reorder=candidate.days_until_reorder,
                avg_daily_usage=to_decimal(candidate.avg_daily_usage),
                suggestion_reason=_reason(candidate.shelf_life_days),
                priority_score=candidate.shelf_life_days or settings.DEFAULT_SHELF_LIFE_DAYS,
                badges=_badges(candidate),
            )
        )
    suggestions.sort(key=_rank_key)
    return suggestions


def auto_select(suggestions: List[Suggestion], shortfall) -> List[Suggestion]:
    """Mark the shortest ranked prefix whose value covers ``shortfall``.

    Zero-value lines are never selected. Returns the selected suggestions;
    when the shortfall cannot be reached every priced line is selected.
    """
    shortfall = to_decimal(shortfall)
    running = ZERO
    selected = []
    for suggestion in suggestions:
        if running < shortfall and suggestion.line_total > 0:
            running += suggestion.line_total
            suggestion.selected = True
            selected.append(suggestion)
        else:
            suggestion.selected = False
    return selected


def _primary_candidates(db, supplier_id, company_id, site_id=None) -> List[Candidate]:
    levels = db.query(
        StockLevel.stock_item_id.label("stock_item_id"),
        func.sum(StockLevel.quantity).label("quantity"),
    )
    if site_id is not None:
        levels = levels.filter(StockLevel.site_id == site_id)
    levels = levels.group_by(StockLevel.stock_item_id).subquery()

    rows = (
        db.query(StockItem, ProductVariant.unit_price, levels.c.quantity)
        .join(ProductVariant, ProductVariant.stock_item_id == StockItem.id)
        .outerjoin(levels, levels.c.stock_item_id == StockItem.id)
        .filter(
            StockItem.company_id == company_id,
            StockItem.is_active.is_(True),
            ProductVariant.supplier_id == supplier_id,
            ProductVariant.is_discontinued.is_(False),
        )
        .order_by(ProductVariant.is_preferred.desc(), ProductVariant.id.asc())
        .all()
    )

    candidates: Dict[int, Candidate] = {}
    for item, unit_price, quantity in rows:
        if item.id in candidates:
            continue
        candidates[item.id] = _candidate(item, quantity, unit_price)
    return list(candidates.values())


def _fallback_candidates(db, supplier_id, company_id) -> List[Candidate]:
    variants = (
        db.query(ProductVariant.stock_item_id, ProductVariant.unit_price)
        .filter(
            ProductVariant.supplier_id == supplier_id,
            ProductVariant.is_discontinued.is_(False),
        )
        .all()
    )
    prices = {stock_item_id: unit_price for stock_item_id, unit_price in variants}
    if not prices:
        return []

    items = (
        db.query(StockItem)
        .filter(
            StockItem.company_id == company_id,
            StockItem.is_active.is_(True),
            StockItem.id.in_(list(prices)),
        )
        .limit(settings.SUGGESTION_FALLBACK_LIMIT)
        .all()
    )
    candidates = []
    for item in items:
        # Only the first level row is considered here, not the company total.
        quantity = item.stock_levels[0].quantity if item.stock_levels else ZERO
        candidates.append(_candidate(item, quantity, prices.get(item.id)))
    return candidates


def _candidate(item: StockItem, quantity, unit_price) -> Candidate:
    return Candidate(
        stock_item_id=item.id,
        name=item.name,
        stock_unit=item.stock_unit,
        quantity=to_decimal(quantity),
        unit_price=None if unit_price is None else to_decimal(unit_price),
        shelf_life_days=item.shelf_life_days,
        is_perishable=bool(item.is_perishable),
        reorder_point=item.reorder_point,
        par_level=item.par_level,
        avg_daily_usage=to_decimal(item.avg_daily_usage),
        days_until_reorder=item.days_until_reorder,
    )


def load_candidates(supplier_id, company_id, site_id=None) -> List[Candidate]:
    """Fetch padding candidates, degrading to a coarser query and then to nothing."""
    try:
        with get_session() as db:
            return _primary_candidates(db, supplier_id, company_id, site_id)
    except SQLAlchemyError as exc:
        SUGGESTION_QUERY_FALLBACKS_TOTAL.labels(stage="primary").inc()
        logger.error(
            "Padding query failed for supplier %s, using fallback: %s", supplier_id, exc
        )

    try:
        with get_session() as db:
            return _fallback_candidates(db, supplier_id, company_id)
    except SQLAlchemyError as exc:
        SUGGESTION_QUERY_FALLBACKS_TOTAL.labels(stage="fallback").inc()
        logger.error(
            "Fallback padding query failed for supplier %s: %s", supplier_id, exc
        )
        return []


def get_order_padding_suggestions(
    supplier_id,
    company_id,
    shortfall,
    existing_item_ids: Iterable[int] = (),
    site_id=None,
) -> List[Suggestion]:
    """Return ranked suggestions with the auto-selection for ``shortfall`` applied."""
    candidates = load_candidates(supplier_id, company_id, site_id)
    suggestions = build_suggestions(candidates, existing_item_ids)
    auto_select(suggestions, shortfall)
    SUGGESTIONS_SERVED_TOTAL.inc(len(suggestions))
    logger.debug(
        "Supplier %s: %d padding suggestions for shortfall %s",
        supplier_id,
        len(suggestions),
        shortfall,
    )
    return suggestions


def padding_summary(
    supplier: Supplier,
    current_total,
    suggestions: List[Suggestion],
) -> Dict[str, Any]:
    current_total = to_decimal(current_total)
    shortfall = compute_shortfall(current_total, supplier.minimum_order_value)
    selected_total = sum((s.line_total for s in suggestions if s.selected), ZERO)
    new_total = current_total + selected_total
    minimum = supplier.minimum_order_value
    return {
        "supplier_id": supplier.id,
        "minimum_order": None if minimum is None else float(minimum),
        "current_total": float(current_total),
        "shortfall": float(shortfall),
        "above_minimum": shortfall == 0,
        "suggestions": [s.to_dict() for s in suggestions],
        "selected_total": float(selected_total),
        "new_total": float(new_total),
        "would_meet_minimum": minimum is None or new_total >= to_decimal(minimum),
    }


def suggest_for_supplier(
    supplier_id,
    company_id,
    current_total,
    existing_item_ids: Iterable[int] = (),
    site_id=None,
) -> Dict[str, Any]:
    """Build the padding panel payload for a draft order with ``supplier_id``.

    Nothing is suggested once the order already meets the minimum.
    """
    with get_session() as db:
        supplier = (
            db.query(Supplier)
            .filter_by(id=supplier_id, company_id=company_id)
            .first()
        )
    if supplier is None:
        raise NotFoundError(f"Supplier {supplier_id} not found")

    shortfall = compute_shortfall(current_total, supplier.minimum_order_value)
    if shortfall == 0:
        return padding_summary(supplier, current_total, [])

    suggestions = get_order_padding_suggestions(
        supplier.id, company_id, shortfall, existing_item_ids, site_id
    )
    return padding_summary(supplier, current_total, suggestions)


__all__ = [
    "Candidate",
    "Suggestion",
    "compute_shortfall",
    "build_suggestions",
    "auto_select",
    "load_candidates",
    "get_order_padding_suggestions",
    "padding_summary",
    "suggest_for_supplier",
]
