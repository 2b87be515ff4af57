"""
Custo, comissão, liquidação e margens por item.

Funções puras: recebem o produto já com preço de lista/cascata e a
configuração do canal. Canal ausente resulta em None ("não calculável"),
nunca em exceção, para que um item ruim não interrompa o lote.
"""
from decimal import ROUND_FLOOR
from typing import List, Optional

from pydantic import BaseModel, Field

from channel_pricing.common import round_half_up, safe_divide, to_decimal
from channel_pricing.interface import ChannelConfig, ChannelType, Product


# Divisor fixo (tipo IVA) aplicado ao custo em canais domésticos
DOMESTIC_VAT_DIVISOR = 1.1

METRIC_FIELDS = (
    "expected_commission_fee",
    "expected_commission_fee_rate",
    "expected_settlement_amount",
    "expected_net_profit",
    "expected_net_profit_margin",
    "cost_ratio",
)


class FeeDiscountPolicy(BaseModel):
    """
    Redução da taxa de comissão quando o desconto de taxa está ligado:
    a cada ``step_percent``% de desconto imediato, a taxa cai
    ``points_per_step`` pontos percentuais.
    """
    step_percent: float = Field(10.0, gt=0)
    points_per_step: float = Field(1.0, ge=0)


DEFAULT_FEE_POLICY = FeeDiscountPolicy()


def final_price(product: Product) -> Optional[float]:
    """Preço de venda efetivo: preço com desconto imediato, senão preço de lista"""
    if product.discount_price and product.discount_price > 0:
        return product.discount_price
    return product.pricing_price


def base_cost(
    product: Product,
    channel: Optional[ChannelConfig],
    vat_divisor: float = DOMESTIC_VAT_DIVISOR,
) -> Optional[float]:
    """
    Converte org_price para a moeda do canal.

    Doméstico: org_price / divisor de IVA
    Demais: org_price / câmbio do canal
    """
    if channel is None or not product.org_price:
        return None
    if channel.channel_type == ChannelType.DOMESTIC:
        return product.org_price / vat_divisor if vat_divisor else None
    exchange_rate = channel.exchange_rate_value
    if not exchange_rate:
        return None
    return product.org_price / exchange_rate


def adjusted_cost(
    product: Product,
    channel: Optional[ChannelConfig],
    vat_divisor: float = DOMESTIC_VAT_DIVISOR,
) -> Optional[float]:
    """Custo ajustado manualmente quando informado, senão o custo base"""
    if product.adjusted_cost:
        return product.adjusted_cost
    return base_cost(product, channel, vat_divisor)


def commission_fee_rate(
    product: Product,
    channel: Optional[ChannelConfig],
    fee_discount_enabled: bool = False,
    policy: FeeDiscountPolicy = DEFAULT_FEE_POLICY,
) -> Optional[float]:
    """Taxa de comissão efetiva (em %), reduzida pelo desconto imediato se habilitado"""
    if channel is None:
        return None

    average_fee_rate = channel.average_fee_rate_value or 0.0
    if not fee_discount_enabled:
        return average_fee_rate

    pricing_price = to_decimal(product.pricing_price)
    price = to_decimal(final_price(product))
    if pricing_price <= 0 or price >= pricing_price:
        return average_fee_rate

    discount_percent = (pricing_price - price) / pricing_price * 100
    steps = (discount_percent / to_decimal(policy.step_percent)).to_integral_value(rounding=ROUND_FLOOR)
    reduction = float(steps * to_decimal(policy.points_per_step))
    return max(average_fee_rate - reduction, 0.0)


def compute_commission_fee(
    product: Product,
    channel: Optional[ChannelConfig],
    fee_discount_enabled: bool = False,
    policy: FeeDiscountPolicy = DEFAULT_FEE_POLICY,
) -> Optional[float]:
    """Comissão = preço final x taxa efetiva, arredondada para unidade inteira"""
    rate = commission_fee_rate(product, channel, fee_discount_enabled, policy)
    price = final_price(product)
    if rate is None or price is None:
        return None
    return round_half_up(price * rate / 100)


def compute_settlement_amount(product: Product) -> Optional[float]:
    """Valor a liquidar: preço final - comissão - parcela de desconto do lojista"""
    price = final_price(product)
    if price is None:
        return None
    return price - (product.expected_commission_fee or 0.0) - (product.discount_burden_amount or 0.0)


def compute_net_profit(
    product: Product,
    channel: Optional[ChannelConfig],
    vat_divisor: float = DOMESTIC_VAT_DIVISOR,
) -> Optional[float]:
    """Lucro líquido = liquidação - custo ajustado - frete"""
    if channel is None:
        return None
    settlement = compute_settlement_amount(product)
    cost = adjusted_cost(product, channel, vat_divisor)
    if settlement is None or cost is None:
        return None
    return settlement - cost - (product.logistics_cost or 0.0)


def compute_profit_margin(
    product: Product,
    channel: Optional[ChannelConfig],
    vat_divisor: float = DOMESTIC_VAT_DIVISOR,
) -> Optional[float]:
    """Margem líquida (0-1) sobre o preço final; preço zero resulta em 0"""
    if channel is None:
        return None
    price = final_price(product)
    if not price:
        return 0.0
    net_profit = compute_net_profit(product, channel, vat_divisor)
    if net_profit is None:
        return None
    return safe_divide(net_profit, price)


def compute_cost_ratio(
    product: Product,
    channel: Optional[ChannelConfig],
    vat_divisor: float = DOMESTIC_VAT_DIVISOR,
) -> Optional[float]:
    """Custo / (preço final - parcela de desconto), em % com duas casas"""
    if channel is None:
        return None
    cost = adjusted_cost(product, channel, vat_divisor)
    if cost is None:
        return 0.0
    realized = (final_price(product) or 0.0) - (product.discount_burden_amount or 0.0)
    return round_half_up(safe_divide(cost, realized) * 100, 2)


def recompute_metrics(
    product: Product,
    channel: Optional[ChannelConfig],
    fee_discount_enabled: bool = False,
    policy: FeeDiscountPolicy = DEFAULT_FEE_POLICY,
    vat_divisor: float = DOMESTIC_VAT_DIVISOR,
) -> Product:
    """Recalcula todas as métricas na ordem de dependência e devolve uma cópia"""
    updated = product.model_copy(update={
        "expected_commission_fee_rate": commission_fee_rate(product, channel, fee_discount_enabled, policy),
        "expected_commission_fee": compute_commission_fee(product, channel, fee_discount_enabled, policy),
    })
    updated = updated.model_copy(update={"expected_settlement_amount": compute_settlement_amount(updated)})
    return updated.model_copy(update={
        "expected_net_profit": compute_net_profit(updated, channel, vat_divisor),
        "expected_net_profit_margin": compute_profit_margin(updated, channel, vat_divisor),
        "cost_ratio": compute_cost_ratio(updated, channel, vat_divisor),
    })


def clear_metrics(product: Product) -> Product:
    """Marca as métricas como não calculadas (sem canal para recalcular)"""
    return product.model_copy(update={field: None for field in METRIC_FIELDS})


# ---------------------------------------------------------------------------
# Médias do lote
# ---------------------------------------------------------------------------

def average_discount_rate(products: List[Product]) -> int:
    """Média da taxa de desconto imediato (%)"""
    if not products:
        return 0
    total = 0.0
    for product in products:
        if product.discount_price and product.pricing_price:
            total += (product.pricing_price - product.discount_price) / product.pricing_price * 100
    return int(round_half_up(total / len(products)))


def average_cost_ratio(products: List[Product]) -> int:
    if not products:
        return 0
    return int(round_half_up(sum(product.cost_ratio or 0.0 for product in products) / len(products)))


def average_profit_margin(
    products: List[Product],
    channel: Optional[ChannelConfig],
    vat_divisor: float = DOMESTIC_VAT_DIVISOR,
) -> int:
    """Média da margem líquida (%); sem produtos ou sem canal resulta em 0"""
    if not products or channel is None:
        return 0
    total = sum((compute_profit_margin(product, channel, vat_divisor) or 0.0) * 100 for product in products)
    return int(round_half_up(total / len(products)))
