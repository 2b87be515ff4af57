import pytest
from pydantic import ValidationError
from channel_pricing import (
    ChannelConfig,
    DiscountTierConfig,
    Product,
    apply_discount_tier,
    recompute_metrics,
    resolve_logistics_cost,
    revert,
    snapshot,
)
from channel_pricing.snapshot import SNAPSHOT_FIELDS


def overseas_channel():
    return ChannelConfig(
        channel_name_2="SG_SHOPEE_SG",
        type="해외",
        markup_ratio="1.2",
        applied_exchange_rate="1,000",
        rounddown="0",
        average_fee_rate="15",
        free_shipping="5,000",
        conditional_shipping="3,000",
    )


def computed_products():
    channel = overseas_channel()
    products = [
        Product(product_id="A", org_price=10000, shop_price=25500, pricing_price=30, logistics_cost=3.0),
        Product(product_id="B", org_price=12000, shop_price=30000, pricing_price=36, logistics_cost=3.0),
    ]
    return [recompute_metrics(product, channel) for product in products]


def test_snapshot_excludes_logistics_cost():
    """Testa se o snapshot não cobre o frete"""
    taken = snapshot(computed_products(), ["A"])

    assert "logistics_cost" not in taken.fields
    assert "logistics_cost" not in taken.entries["A"]
    assert set(taken.fields) == set(SNAPSHOT_FIELDS)
    assert taken.product_ids == ["A"]
    assert taken.version == 1
    assert taken.captured_at is not None


def test_snapshot_is_immutable():
    """Testa se o snapshot é imutável"""
    taken = snapshot(computed_products(), ["A"])

    with pytest.raises(ValidationError):
        taken.version = 2


def test_revert_restores_fields_and_rederives_logistics():
    """Testa revert(apply(produtos)) == produtos, exceto frete recalculado"""
    channel = overseas_channel()
    products = computed_products()
    taken = snapshot(products, ["A", "B"])

    discounted = apply_discount_tier(
        products, ["A", "B"], DiscountTierConfig(discount_value=5, self_ratio=50), "coupon1"
    )
    discounted = [recompute_metrics(product, channel) for product in discounted]

    reverted = revert(discounted, ["A", "B"], taken, "free", channel=channel)

    for original, restored in zip(products, reverted):
        assert restored.model_dump(exclude={"logistics_cost"}) == original.model_dump(exclude={"logistics_cost"})
        assert restored.logistics_cost == resolve_logistics_cost(channel, "free")


def test_revert_only_touches_selected_products():
    """Testa revert restrito aos selecionados"""
    products = computed_products()
    taken = snapshot(products, ["A", "B"])
    discounted = apply_discount_tier(products, ["A", "B"], DiscountTierConfig(discount_value=5), "coupon1")

    reverted = revert(discounted, ["A"], taken, "conditional", channel=overseas_channel())

    assert reverted[0].coupon_price_1 is None
    assert reverted[1] is discounted[1]
    assert reverted[1].coupon_price_1 == 31


def test_revert_is_all_or_nothing():
    """Testa revert cancelado quando o snapshot não cobre todos os selecionados"""
    products = computed_products()
    taken = snapshot(products, ["A"])
    discounted = apply_discount_tier(products, ["A", "B"], DiscountTierConfig(discount_value=5), "coupon1")

    reverted = revert(discounted, ["A", "B"], taken, "conditional", channel=overseas_channel())

    assert reverted is discounted
    assert reverted[0].coupon_price_1 == 25


def test_revert_without_channel_leaves_logistics_uncomputed():
    """Testa revert sem canal: frete vira None"""
    products = computed_products()
    taken = snapshot(products, ["A"])

    reverted = revert(products, ["A"], taken, "free")

    assert reverted[0].logistics_cost is None
    assert reverted[1] is products[1]
