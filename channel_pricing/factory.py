import logging
from typing import Dict, Optional

from channel_pricing.interface import ChannelConfig, ChannelType, IChannelPriceCalculator, Product
from channel_pricing.calculators import (
    DomesticPriceCalculator,
    OverseasPriceCalculator,
    JapanPriceCalculator,
    OwnShopPriceCalculator,
)

logger = logging.getLogger(__name__)


class PriceCalculatorFactory:
    """
    Factory para instanciar calculadoras de preço por regime de canal.

    Usa mapeamento centralizado tipo -> classe para garantir
    consistência e facilitar manutenção.
    """

    # Mapeamento canônico: regime -> Calculator class
    _CALCULATORS: Dict[ChannelType, type] = {
        ChannelType.DOMESTIC: DomesticPriceCalculator,
        ChannelType.OVERSEAS: OverseasPriceCalculator,
        ChannelType.JAPAN: JapanPriceCalculator,
        ChannelType.OWN_SHOP: OwnShopPriceCalculator,
    }

    @classmethod
    def get(cls, channel_type: str) -> IChannelPriceCalculator:
        """
        Retorna a calculadora apropriada para o regime especificado.

        Args:
            channel_type: Regime do canal (nome em inglês ou rótulo do diretório)

        Returns:
            Instância de IChannelPriceCalculator

        Raises:
            ValueError: Se o regime não for suportado
        """
        parsed = ChannelType.parse(channel_type)
        calculator_class = cls._CALCULATORS.get(parsed) if parsed else None

        if not calculator_class:
            supported = ", ".join(t.value for t in cls._CALCULATORS)
            raise ValueError(
                f"Tipo de canal '{channel_type}' não suportado. "
                f"Tipos disponíveis: {supported}"
            )

        return calculator_class()

    @classmethod
    def get_supported_types(cls) -> list:
        """Retorna lista de regimes suportados"""
        return [t.value for t in cls._CALCULATORS]

    @classmethod
    def is_supported(cls, channel_type: Optional[str]) -> bool:
        """Verifica se um regime é suportado"""
        return ChannelType.parse(channel_type) in cls._CALCULATORS


def resolve_channel_price(product: Product, channel: Optional[ChannelConfig]) -> Optional[float]:
    """
    Preço de lista do produto no canal, ou None quando não calculável.

    Nunca levanta exceção: canal ausente, regime desconhecido ou
    configuração incompleta resultam em None.
    """
    if channel is None or not PriceCalculatorFactory.is_supported(channel.type):
        logger.debug(f"[{product.product_id}] Canal ausente ou tipo desconhecido, preço não calculado")
        return None
    return PriceCalculatorFactory.get(channel.type).get_listing_price(product, channel)
