"""
Custo logístico por unidade a partir das tabelas de frete do canal.
"""
import logging
from typing import Optional, Union

from channel_pricing.common import parse_number
from channel_pricing.interface import ChannelConfig, DeliveryType
from channel_pricing.overrides import is_amazon_logistics

logger = logging.getLogger(__name__)


def _parse_delivery_type(delivery_type: Union[DeliveryType, str, None]) -> DeliveryType:
    try:
        return DeliveryType(delivery_type)
    except ValueError:
        logger.debug(f"Tipo de entrega desconhecido '{delivery_type}', usando frete condicional")
        return DeliveryType.CONDITIONAL


def resolve_logistics_cost(
    channel: Optional[ChannelConfig],
    delivery_type: Union[DeliveryType, str, None],
    amazon_override: Union[float, str, None] = None,
) -> Optional[float]:
    """
    Retorna o custo de frete por unidade.

    Regras:
    - Amazon US + frete grátis: 2x o frete Amazon
    - Amazon US + frete condicional: frete Amazon
    - Demais canais: free_shipping ou conditional_shipping convertidos pelo câmbio

    Canal ausente retorna None; câmbio ausente/zero retorna 0.0.
    """
    if channel is None:
        return None

    delivery = _parse_delivery_type(delivery_type)

    if is_amazon_logistics(channel):
        amazon_cost = parse_number(amazon_override, "amazon_shipping_cost")
        if amazon_cost is None:
            amazon_cost = channel.amazon_shipping_cost_value
        return amazon_cost * 2 if delivery == DeliveryType.FREE else amazon_cost

    exchange_rate = channel.exchange_rate_value
    if not exchange_rate or exchange_rate <= 0:
        return 0.0

    if delivery == DeliveryType.FREE:
        return channel.free_shipping_value / exchange_rate
    return channel.conditional_shipping_value / exchange_rate
