from channel_pricing.interface import ChannelConfig, ChannelType
from .base import BasePriceCalculator


class JapanPriceCalculator(BasePriceCalculator):
    """
    Calculadora de preços para canais do Japão.

    Características:
    - Parte do preço global (global_price), convertido pelo câmbio
    - Arredondamento para baixo na precisão rounddown + ajuste de dígito
    - Amazon US inclui o frete Amazon no preço de lista
    """

    SOURCE_FIELD = "global_price"
    REQUIRES_ROUNDDOWN = True

    def __init__(self, channel_type: ChannelType = ChannelType.JAPAN):
        super().__init__(channel_type=channel_type)

    def calculate_base_price(self, source_price: float, channel: ChannelConfig) -> float:
        return source_price / channel.exchange_rate_value

    def describe_formula(self, channel: ChannelConfig) -> str:
        return f"global_price / {channel.exchange_rate_value:g}"


class OwnShopPriceCalculator(JapanPriceCalculator):
    """
    Calculadora de preços para loja própria.

    Mesma fórmula do Japão (preço global convertido pelo câmbio).
    """

    def __init__(self):
        super().__init__(channel_type=ChannelType.OWN_SHOP)
