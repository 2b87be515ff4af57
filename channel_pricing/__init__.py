from .interface import (
    ChannelConfig,
    ChannelType,
    DeliveryType,
    IChannelPriceCalculator,
    PriceBreakdown,
    Product,
)
from .factory import PriceCalculatorFactory, resolve_channel_price
from .overrides import PricingOverride, register_override, unregister_override
from .logistics import resolve_logistics_cost
from .discount import (
    CapType,
    DecimalPoint,
    DiscountTierConfig,
    DiscountType,
    RoundType,
    SecondCouponConfig,
    TierSlot,
    apply_discount_tier,
    reset_discounts,
)
from .metrics import (
    FeeDiscountPolicy,
    average_cost_ratio,
    average_discount_rate,
    average_profit_margin,
    clear_metrics,
    compute_commission_fee,
    compute_cost_ratio,
    compute_net_profit,
    compute_profit_margin,
    compute_settlement_amount,
    recompute_metrics,
)
from .snapshot import CalculationSnapshot, revert, snapshot
from .engine import PricingContext, PricingSession, recompute_all, recompute_product

__all__ = [
    "ChannelConfig",
    "ChannelType",
    "DeliveryType",
    "IChannelPriceCalculator",
    "PriceBreakdown",
    "Product",
    "PriceCalculatorFactory",
    "resolve_channel_price",
    "PricingOverride",
    "register_override",
    "unregister_override",
    "resolve_logistics_cost",
    "CapType",
    "DecimalPoint",
    "DiscountTierConfig",
    "DiscountType",
    "RoundType",
    "SecondCouponConfig",
    "TierSlot",
    "apply_discount_tier",
    "reset_discounts",
    "FeeDiscountPolicy",
    "average_cost_ratio",
    "average_discount_rate",
    "average_profit_margin",
    "clear_metrics",
    "compute_commission_fee",
    "compute_cost_ratio",
    "compute_net_profit",
    "compute_profit_margin",
    "compute_settlement_amount",
    "recompute_metrics",
    "CalculationSnapshot",
    "revert",
    "snapshot",
    "PricingContext",
    "PricingSession",
    "recompute_all",
    "recompute_product",
]
