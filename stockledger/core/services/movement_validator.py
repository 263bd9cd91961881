"""
Movement validation.

Pure decision logic: given a balance and a proposed movement, compute
the resulting balance and accept or reject it. No I/O, no side effects.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from stockledger.core.entities.inventory import InventoryItem, MovementType, ReferenceType
from stockledger.core.exceptions import (
    InsufficientStockError,
    InvalidQuantityError,
    MovementRejectedError,
)


class BalanceEffect(str, Enum):
    """How a movement type changes the balance."""

    INCREASE = "increase"
    DECREASE = "decrease"
    ABSOLUTE = "absolute"


@dataclass(frozen=True)
class MovementTypeInfo:
    """Static description of a movement type."""

    movement_type: MovementType
    label: str
    description: str
    effect: BalanceEffect
    reference_types: tuple[ReferenceType, ...] = ()


MOVEMENT_TYPES: dict[MovementType, MovementTypeInfo] = {
    MovementType.IN: MovementTypeInfo(
        MovementType.IN,
        label="Stock In",
        description="Goods received into stock",
        effect=BalanceEffect.INCREASE,
        reference_types=(
            ReferenceType.PROCUREMENT,
            ReferenceType.PRODUCTION,
            ReferenceType.RETURN,
            ReferenceType.DONATION,
            ReferenceType.TRANSFER_IN,
        ),
    ),
    MovementType.OUT: MovementTypeInfo(
        MovementType.OUT,
        label="Stock Out",
        description="Goods consumed or issued from stock",
        effect=BalanceEffect.DECREASE,
        reference_types=(ReferenceType.PRODUCTION, ReferenceType.DISTRIBUTION),
    ),
    MovementType.ADJUSTMENT: MovementTypeInfo(
        MovementType.ADJUSTMENT,
        label="Adjustment",
        description="Balance set to a counted quantity",
        effect=BalanceEffect.ABSOLUTE,
        reference_types=(ReferenceType.COUNT_ADJUSTMENT, ReferenceType.SYSTEM_CORRECTION),
    ),
    MovementType.EXPIRED: MovementTypeInfo(
        MovementType.EXPIRED,
        label="Expired",
        description="Goods written off past their expiry date",
        effect=BalanceEffect.DECREASE,
        reference_types=(ReferenceType.EXPIRED, ReferenceType.WASTE),
    ),
    MovementType.DAMAGED: MovementTypeInfo(
        MovementType.DAMAGED,
        label="Damaged",
        description="Goods written off as damaged or spoiled",
        effect=BalanceEffect.DECREASE,
        reference_types=(ReferenceType.DAMAGED, ReferenceType.WASTE),
    ),
    MovementType.TRANSFER: MovementTypeInfo(
        MovementType.TRANSFER,
        label="Transfer",
        description="Outbound leg of a transfer to another location",
        effect=BalanceEffect.DECREASE,
        reference_types=(ReferenceType.TRANSFER_OUT,),
    ),
}


def compute_stock_after(
    movement_type: MovementType,
    stock_before: float,
    quantity: float,
) -> float:
    """Resulting balance of a movement; the single source of truth for deltas."""
    match MOVEMENT_TYPES[movement_type].effect:
        case BalanceEffect.INCREASE:
            return stock_before + quantity
        case BalanceEffect.DECREASE:
            return stock_before - quantity
        case BalanceEffect.ABSOLUTE:
            return quantity


class RejectionReason(str, Enum):
    INVALID_QUANTITY = "INVALID_QUANTITY"
    INSUFFICIENT_STOCK = "INSUFFICIENT_STOCK"


class WarningCode(str, Enum):
    BELOW_MINIMUM = "BELOW_MINIMUM"
    ABOVE_MAXIMUM = "ABOVE_MAXIMUM"


@dataclass(frozen=True)
class MovementWarning:
    """Non-blocking notice attached to an accepted movement."""

    code: WarningCode
    message: str


@dataclass(frozen=True)
class MovementDecision:
    """Outcome of validating one proposed movement."""

    accepted: bool
    movement_type: MovementType
    quantity: Any
    stock_before: float
    stock_after: float | None = None
    warnings: tuple[MovementWarning, ...] = ()
    reason: RejectionReason | None = None
    detail: str | None = None
    shortfall: float | None = None

    def to_exception(self, inventory_id: int) -> MovementRejectedError:
        """Typed exception for a rejected decision."""
        if self.accepted:
            raise ValueError("accepted decision has no exception")
        if self.reason is RejectionReason.INSUFFICIENT_STOCK:
            return InsufficientStockError(
                inventory_id=inventory_id,
                requested=float(self.quantity),
                available=self.stock_before,
            )
        return InvalidQuantityError(self.quantity, self.movement_type.value)

    def to_dict(self) -> dict[str, Any]:
        if self.accepted:
            return {
                "accepted": True,
                "stock_before": self.stock_before,
                "stock_after": self.stock_after,
                "warnings": [w.message for w in self.warnings],
            }
        return {
            "accepted": False,
            "reason": self.reason.value if self.reason else None,
            "detail": self.detail,
            "shortfall": self.shortfall,
        }


@dataclass
class MovementValidator:
    """Accepts or rejects proposed movements against the balance invariants."""

    types: dict[MovementType, MovementTypeInfo] = field(
        default_factory=lambda: MOVEMENT_TYPES
    )

    def validate(
        self,
        movement_type: MovementType,
        quantity: Any,
        stock_before: float,
        min_stock: float = 0.0,
        max_stock: float | None = None,
    ) -> MovementDecision:
        """
        Validate a movement against a balance.

        Rules, in order: quantity must be a positive finite number
        (ADJUSTMENT also allows zero); a decreasing type must not take the
        balance below zero; crossing the minimum or reaching the maximum
        only produces warnings.
        """
        effect = self.types[movement_type].effect

        if not _is_valid_quantity(quantity, allow_zero=effect is BalanceEffect.ABSOLUTE):
            return MovementDecision(
                accepted=False,
                movement_type=movement_type,
                quantity=quantity,
                stock_before=stock_before,
                reason=RejectionReason.INVALID_QUANTITY,
                detail=_quantity_detail(quantity, effect),
            )

        stock_after = compute_stock_after(movement_type, stock_before, float(quantity))

        if effect is BalanceEffect.DECREASE and stock_after < 0:
            shortfall = float(quantity) - stock_before
            return MovementDecision(
                accepted=False,
                movement_type=movement_type,
                quantity=quantity,
                stock_before=stock_before,
                stock_after=stock_after,
                reason=RejectionReason.INSUFFICIENT_STOCK,
                detail=(
                    f"Requested {quantity} but only {stock_before} on hand "
                    f"(short by {shortfall})"
                ),
                shortfall=shortfall,
            )

        return MovementDecision(
            accepted=True,
            movement_type=movement_type,
            quantity=quantity,
            stock_before=stock_before,
            stock_after=stock_after,
            warnings=_warnings(stock_before, stock_after, min_stock, max_stock),
        )

    def validate_for_item(
        self,
        item: InventoryItem,
        movement_type: MovementType,
        quantity: Any,
        stock_before: float | None = None,
    ) -> MovementDecision:
        """Validate against an item's thresholds, optionally from a simulated balance."""
        return self.validate(
            movement_type,
            quantity,
            stock_before=item.current_stock if stock_before is None else stock_before,
            min_stock=item.min_stock,
            max_stock=item.max_stock,
        )


def _is_valid_quantity(quantity: Any, allow_zero: bool) -> bool:
    if isinstance(quantity, bool) or not isinstance(quantity, int | float):
        return False
    if not math.isfinite(quantity):
        return False
    return quantity >= 0 if allow_zero else quantity > 0


def _quantity_detail(quantity: Any, effect: BalanceEffect) -> str:
    if effect is BalanceEffect.ABSOLUTE:
        return f"Adjustment quantity must be zero or positive, got {quantity!r}"
    return f"Quantity must be greater than zero, got {quantity!r}"


def _warnings(
    stock_before: float,
    stock_after: float,
    min_stock: float,
    max_stock: float | None,
) -> tuple[MovementWarning, ...]:
    warnings: list[MovementWarning] = []
    if stock_after < stock_before and stock_after < min_stock:
        warnings.append(
            MovementWarning(
                WarningCode.BELOW_MINIMUM,
                f"Stock will drop below minimum ({stock_after} < {min_stock})",
            )
        )
    if stock_after > stock_before and max_stock is not None and stock_after >= max_stock:
        warnings.append(
            MovementWarning(
                WarningCode.ABOVE_MAXIMUM,
                f"Stock will exceed maximum ({stock_after} >= {max_stock})",
            )
        )
    return tuple(warnings)
