import logging

import pytest
from channel_pricing import ChannelConfig, Product, resolve_channel_price
from channel_pricing.calculators import (
    DomesticPriceCalculator,
    JapanPriceCalculator,
    OverseasPriceCalculator,
    OwnShopPriceCalculator,
)
from channel_pricing.calculators.base import BasePriceCalculator
from channel_pricing.interface import ChannelType


def domestic_channel(**kwargs):
    values = {
        "channel_name_2": "국내_자사",
        "type": "국내",
        "markup_ratio": "3,000",
        "applied_exchange_rate": "1",
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
    }
    values.update(kwargs)
    return ChannelConfig(**values)


def japan_channel(**kwargs):
    values = {
        "channel_name_2": "JP_RAKUTEN",
        "type": "일본",
        "markup_ratio": "1",
        "applied_exchange_rate": "110",
        "rounddown": "2",
    }
    values.update(kwargs)
    return ChannelConfig(**values)


def test_domestic_markup_is_additive():
    """Testa o exemplo doméstico: 29000 + 3000 = 32000"""
    product = Product(product_id="P1", shop_price=29000)

    assert resolve_channel_price(product, domestic_channel()) == 32000


def test_domestic_does_not_require_rounddown():
    """Testa se canal doméstico calcula mesmo sem rounddown"""
    product = Product(product_id="P1", shop_price=29000)
    channel = domestic_channel(rounddown=None, digit_adjustment="500")

    # digit_adjustment não se aplica ao regime doméstico
    assert DomesticPriceCalculator().get_listing_price(product, channel) == 32000


def test_overseas_floor_after_markup_and_exchange():
    """Testa fórmula do exterior: floor(shop x markup / câmbio) + ajuste"""
    product = Product(product_id="P1", shop_price=25500)

    # 25500 x 1.2 / 1000 = 30.6 -> 30
    assert resolve_channel_price(product, overseas_channel()) == 30
    assert resolve_channel_price(product, overseas_channel(digit_adjustment="0.9")) == pytest.approx(30.9)


def test_overseas_zalora_surcharges():
    """Testa sobretaxas fixas dos canais ZALORA depois do arredondamento"""
    product = Product(product_id="P1", shop_price=25500)

    sg = resolve_channel_price(product, overseas_channel(channel_name_2="SG_ZALORA_SG"))
    my = resolve_channel_price(product, overseas_channel(channel_name_2="SG_ZALORA_MY"))

    assert sg == pytest.approx(30 * 1.09)
    assert my == pytest.approx(30 * 1.10)


def test_overseas_requires_rounddown():
    """Testa se canal do exterior sem rounddown não tem preço"""
    product = Product(product_id="P1", shop_price=25500)

    assert OverseasPriceCalculator().get_listing_price(product, overseas_channel(rounddown=None)) is None


def test_japan_rounddown_precision():
    """Testa arredondamento para baixo na precisão rounddown"""
    product = Product(product_id="P1", global_price=15000)

    # 15000 / 110 = 136.3636...
    assert resolve_channel_price(product, japan_channel()) == pytest.approx(136.36)
    assert resolve_channel_price(product, japan_channel(rounddown="0")) == 136


def test_negative_rounddown_floors_to_tens_and_hundreds():
    """Testa rounddown negativo (dezenas/centenas)"""
    product = Product(product_id="P1", global_price=15555)

    assert resolve_channel_price(product, japan_channel(applied_exchange_rate="1", rounddown="-1")) == 15550
    assert resolve_channel_price(product, japan_channel(applied_exchange_rate="1", rounddown="-2")) == 15500


def test_amazon_us_includes_amazon_shipping():
    """Testa se Amazon US soma o frete Amazon ao preço de lista"""
    product = Product(product_id="P1", global_price=2000)
    channel = ChannelConfig(
        channel_name_2="SG_아마존US",
        type="자사몰",
        markup_ratio="1",
        applied_exchange_rate="100",
        rounddown="2",
        amazon_shipping_cost="5.5",
    )

    assert resolve_channel_price(product, channel) == pytest.approx(25.5)


def test_channel_override_only_applies_to_its_regime():
    """Testa se a sobretaxa ZALORA não vale para canal de outro regime"""
    product = Product(product_id="P1", global_price=15000)
    channel = japan_channel(channel_name_2="SG_ZALORA_SG", rounddown="0")

    assert resolve_channel_price(product, channel) == 136


def test_own_shop_uses_japan_formula():
    """Testa se loja própria usa preço global convertido pelo câmbio"""
    product = Product(product_id="P1", global_price=15000)
    channel = japan_channel(type="자사몰")

    calc = OwnShopPriceCalculator()
    assert calc.channel_type.value == "own_shop"
    assert calc.get_listing_price(product, channel) == JapanPriceCalculator().get_listing_price(product, channel)


def test_japan_calculator_accepts_channel_type():
    """Testa regime informado no construtor da calculadora do Japão"""
    assert JapanPriceCalculator().channel_type == ChannelType.JAPAN
    assert JapanPriceCalculator(channel_type=ChannelType.OWN_SHOP).channel_type == ChannelType.OWN_SHOP
    assert isinstance(OwnShopPriceCalculator(), JapanPriceCalculator)


def test_base_calculator_requires_formula():
    """Testa se a classe base sem fórmula não pode ser instanciada"""
    with pytest.raises(TypeError):
        BasePriceCalculator(channel_type=ChannelType.DOMESTIC)

    class NoFormulaCalculator(BasePriceCalculator):
        pass

    with pytest.raises(TypeError):
        NoFormulaCalculator(channel_type=ChannelType.DOMESTIC)


def test_missing_required_channel_fields_yield_none():
    """Testa se tipo, markup ou câmbio ausentes resultam em None"""
    product = Product(product_id="P1", shop_price=29000, global_price=15000)

    assert resolve_channel_price(product, None) is None
    assert resolve_channel_price(product, domestic_channel(type=None)) is None
    assert resolve_channel_price(product, domestic_channel(markup_ratio=None)) is None
    assert resolve_channel_price(product, domestic_channel(applied_exchange_rate=None)) is None
    assert resolve_channel_price(product, domestic_channel(type="desconhecido")) is None


def test_unparsable_markup_is_not_treated_as_zero(caplog):
    """Testa se markup não numérico não vira 0 silencioso"""
    product = Product(product_id="P1", shop_price=29000)

    with caplog.at_level(logging.WARNING):
        price = resolve_channel_price(product, domestic_channel(markup_ratio="abc"))

    assert price is None
    assert "markup_ratio" in caplog.text


def test_missing_source_price_yields_none():
    """Testa se produto sem preço de origem não é precificado"""
    assert resolve_channel_price(Product(product_id="P1"), domestic_channel()) is None
    assert resolve_channel_price(Product(product_id="P1", shop_price=100), japan_channel()) is None


def test_min_price_floors_listing_price():
    """Testa se min_price funciona como piso"""
    product = Product(product_id="P1", shop_price=1000)

    assert resolve_channel_price(product, domestic_channel(markup_ratio="100", min_price="2,000")) == 2000
    assert resolve_channel_price(product, domestic_channel(markup_ratio="100", min_price="500")) == 1100


def test_price_is_deterministic():
    """Testa se mesmo produto + canal sempre produz o mesmo preço"""
    product = Product(product_id="P1", shop_price=25500, global_price=15000)

    for channel in (domestic_channel(), overseas_channel(), japan_channel()):
        prices = {resolve_channel_price(product, channel) for _ in range(5)}
        assert len(prices) == 1


def test_breakdown_lists_steps_up_to_listing_price():
    """Testa se breakdown termina no preço de lista"""
    product = Product(product_id="P1", global_price=15000)
    channel = japan_channel()

    breakdown = JapanPriceCalculator().get_breakdown(product, channel)

    assert breakdown.steps[0]["value"] == 15000
    assert breakdown.steps[-1]["label"] == "Preço de lista"
    assert breakdown.steps[-1]["value"] == pytest.approx(136.36)
    assert any("Regime" in note for note in breakdown.notes)


def test_breakdown_notes_incomplete_channel():
    """Testa breakdown de canal com configuração incompleta"""
    product = Product(product_id="P1", shop_price=25500)

    breakdown = OverseasPriceCalculator().get_breakdown(product, overseas_channel(rounddown=None))

    assert breakdown.steps == []
    assert any("incompleta" in note for note in breakdown.notes)


def test_display_decimals_by_currency():
    """Testa casas decimais de exibição por moeda"""
    assert overseas_channel(currency_2="USD").display_decimals == 2
    assert overseas_channel(currency="SGD").display_decimals == 2
    assert domestic_channel(currency="KRW").display_decimals == 0
