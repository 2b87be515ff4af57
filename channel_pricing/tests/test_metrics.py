import math

import pytest
from channel_pricing import (
    ChannelConfig,
    FeeDiscountPolicy,
    Product,
    average_cost_ratio,
    average_discount_rate,
    average_profit_margin,
    compute_commission_fee,
    compute_cost_ratio,
    compute_net_profit,
    compute_profit_margin,
    compute_settlement_amount,
    recompute_metrics,
)
from channel_pricing.metrics import adjusted_cost, base_cost, commission_fee_rate, final_price


def domestic_channel(**kwargs):
    values = {
        "channel_name_2": "국내_자사",
        "type": "국내",
        "markup_ratio": "3,000",
        "applied_exchange_rate": "1",
        "average_fee_rate": "10%",
    }
    values.update(kwargs)
    return ChannelConfig(**values)


def overseas_channel(**kwargs):
    values = {
        "channel_name_2": "SG_SHOPEE_SG",
        "type": "해외",
        "markup_ratio": "1.2",
        "applied_exchange_rate": "1,000",
        "rounddown": "0",
        "average_fee_rate": "15",
    }
    values.update(kwargs)
    return ChannelConfig(**values)


def priced_product(**kwargs):
    values = {"product_id": "P1", "org_price": 11000, "shop_price": 29000, "pricing_price": 32000}
    values.update(kwargs)
    return Product(**values)


def test_final_price_prefers_immediate_discount():
    """Testa preço final: desconto imediato quando positivo, senão preço de lista"""
    assert final_price(priced_product()) == 32000
    assert final_price(priced_product(discount_price=28800)) == 28800
    assert final_price(priced_product(discount_price=0)) == 32000


def test_base_cost_by_channel_type():
    """Testa custo base: doméstico / 1.1, demais / câmbio"""
    product = priced_product(org_price=50000)

    assert base_cost(priced_product(), domestic_channel()) == pytest.approx(10000)
    assert base_cost(product, overseas_channel()) == pytest.approx(50)
    assert base_cost(product, None) is None


def test_adjusted_cost_overrides_base_cost():
    """Testa custo manual substituindo o custo base"""
    assert adjusted_cost(priced_product(adjusted_cost=9000), domestic_channel()) == 9000
    assert adjusted_cost(priced_product(), domestic_channel()) == pytest.approx(10000)


def test_commission_fee_without_fee_discount():
    """Testa comissão = preço final x taxa média"""
    product = priced_product()

    assert commission_fee_rate(product, domestic_channel()) == 10
    assert compute_commission_fee(product, domestic_channel()) == 3200


def test_fee_discount_reduces_rate_per_step():
    """Testa redução de 1 ponto na taxa a cada 10% de desconto imediato"""
    channel = domestic_channel()
    ten_percent = priced_product(discount_price=28800)
    twenty_five_percent = priced_product(discount_price=24000)

    assert commission_fee_rate(ten_percent, channel, fee_discount_enabled=True) == 9
    assert compute_commission_fee(ten_percent, channel, fee_discount_enabled=True) == 2592
    assert commission_fee_rate(twenty_five_percent, channel, fee_discount_enabled=True) == 8
    assert compute_commission_fee(twenty_five_percent, channel, fee_discount_enabled=True) == 1920
    assert commission_fee_rate(twenty_five_percent, channel, fee_discount_enabled=False) == 10


def test_fee_discount_policy_is_configurable():
    """Testa política de desconto de taxa com outros parâmetros"""
    policy = FeeDiscountPolicy(step_percent=5, points_per_step=0.5)
    product = priced_product(discount_price=24000)

    # 25% -> 5 passos x 0.5 ponto
    assert commission_fee_rate(product, domestic_channel(), True, policy) == pytest.approx(7.5)


def test_commission_fee_rounds_half_up():
    """Testa comissão arredondada para unidade inteira"""
    product = priced_product(pricing_price=1005)

    # 1005 x 15% = 150.75
    assert compute_commission_fee(product, overseas_channel()) == 151


def test_settlement_subtracts_commission_and_burden():
    """Testa liquidação = preço final - comissão - parcela do lojista"""
    product = priced_product(discount_price=28800, expected_commission_fee=2880, discount_burden_amount=500)

    assert compute_settlement_amount(product) == 28800 - 2880 - 500
    assert compute_settlement_amount(Product(product_id="X")) is None


def test_net_profit_margin_and_cost_ratio():
    """Testa lucro líquido, margem e custo sobre o preço final"""
    channel = domestic_channel()
    product = recompute_metrics(priced_product(logistics_cost=0), channel)

    assert product.expected_commission_fee == 3200
    assert product.expected_settlement_amount == 28800
    assert product.expected_net_profit == pytest.approx(18800)
    assert product.expected_net_profit_margin == pytest.approx(0.5875)
    assert product.cost_ratio == pytest.approx(31.25)


def test_net_profit_subtracts_logistics():
    """Testa lucro líquido descontando o frete"""
    product = priced_product(expected_commission_fee=3200, logistics_cost=800)

    assert compute_net_profit(product, domestic_channel()) == pytest.approx(18000)


def test_cost_ratio_uses_realized_price():
    """Testa custo / (preço final - parcela de desconto) em %"""
    product = priced_product(discount_burden_amount=2000)

    assert compute_cost_ratio(product, domestic_channel()) == pytest.approx(33.33)


def test_zero_final_price_guards():
    """Testa preço final zero sem NaN nem Infinity"""
    channel = domestic_channel()
    product = priced_product(pricing_price=0)

    margin = compute_profit_margin(product, channel)
    ratio = compute_cost_ratio(product, channel)

    assert margin == 0
    assert ratio == 0
    assert not math.isnan(ratio) and not math.isinf(ratio)


def test_missing_channel_is_uncomputable():
    """Testa canal ausente: métricas como None, sem exceção"""
    product = recompute_metrics(priced_product(), None)

    assert product.expected_commission_fee is None
    assert product.expected_commission_fee_rate is None
    assert product.expected_net_profit is None
    assert product.expected_net_profit_margin is None
    assert product.cost_ratio is None
    # liquidação não depende do canal: preço final sem comissão
    assert product.expected_settlement_amount == 32000


def test_recompute_metrics_returns_copy():
    """Testa se recompute_metrics não altera o produto original"""
    product = priced_product()

    result = recompute_metrics(product, domestic_channel())

    assert result is not product
    assert product.expected_commission_fee is None


def test_batch_averages():
    """Testa médias do lote"""
    channel = domestic_channel()
    products = [
        recompute_metrics(priced_product(product_id="A", discount_price=28800), channel),
        recompute_metrics(priced_product(product_id="B"), channel),
    ]

    assert average_discount_rate(products) == 5
    assert average_cost_ratio([Product(product_id="A", cost_ratio=30), Product(product_id="B", cost_ratio=40)]) == 35
    assert average_profit_margin(products, channel) > 0
    assert average_discount_rate([]) == 0
    assert average_cost_ratio([]) == 0
    assert average_profit_margin(products, None) == 0
