from channel_pricing.interface import ChannelConfig, ChannelType
from .base import BasePriceCalculator


class OverseasPriceCalculator(BasePriceCalculator):
    """
    Calculadora de preços para marketplaces no exterior.

    Características:
    - Markup multiplicativo sobre o preço da loja, convertido pelo câmbio
    - Arredondamento para baixo na precisão rounddown
    - Sobretaxas por canal (ex.: ZALORA) aplicadas depois do arredondamento
    """

    SOURCE_FIELD = "shop_price"
    REQUIRES_ROUNDDOWN = True

    def __init__(self):
        super().__init__(channel_type=ChannelType.OVERSEAS)

    def calculate_base_price(self, source_price: float, channel: ChannelConfig) -> float:
        return source_price * channel.markup_ratio_value / channel.exchange_rate_value

    def describe_formula(self, channel: ChannelConfig) -> str:
        return f"shop_price x {channel.markup_ratio_value:g} / {channel.exchange_rate_value:g}"
