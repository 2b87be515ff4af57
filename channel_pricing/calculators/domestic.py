
from channel_pricing.interface import ChannelConfig, ChannelType
from .base import BasePriceCalculator


class DomesticPriceCalculator(BasePriceCalculator):
    """
    Calculadora de preços para canais domésticos.

    Características:
    - Markup aditivo sobre o preço da loja (shop_price + markup)
    - Sem câmbio nem arredondamento
    - rounddown não é exigido
    """

    SOURCE_FIELD = "shop_price"
    REQUIRES_ROUNDDOWN = False

    def __init__(self):
        super().__init__(channel_type=ChannelType.DOMESTIC)

    def calculate_base_price(self, source_price: float, channel: ChannelConfig) -> float:
        return source_price + channel.markup_ratio_value

    def apply_rounding(self, price: float, channel: ChannelConfig) -> float:
        return price

    def apply_digit_adjustment(self, price: float, channel: ChannelConfig) -> float:
        return price

    def describe_formula(self, channel: ChannelConfig) -> str:
        return f"shop_price + {channel.markup_ratio_value:g}"
