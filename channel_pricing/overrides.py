"""
Ajustes específicos por canal, aplicados depois da fórmula geral do regime.

Cada canal com tratamento especial é registrado aqui pelo nome, em vez de
comparações de texto espalhadas pelas calculadoras.
"""
import logging
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

from channel_pricing.interface import ChannelConfig, ChannelType

logger = logging.getLogger(__name__)

AMAZON_US_CHANNELS = ("SG_아마존US", "SG_AMAZON_US")


@dataclass(frozen=True)
class PricingOverride:
    """Pós-ajuste de preço de um canal"""
    label: str
    adjust: Callable[[float, ChannelConfig], float]
    applies_to: Tuple[ChannelType, ...] = tuple(ChannelType)
    amazon_logistics: bool = False


def surcharge(multiplier: float) -> Callable[[float, ChannelConfig], float]:
    def _apply(price: float, channel: ChannelConfig) -> float:
        return price * multiplier
    return _apply


def add_amazon_shipping(price: float, channel: ChannelConfig) -> float:
    return price + channel.amazon_shipping_cost_value


_OVERRIDES: Dict[str, PricingOverride] = {
    "SG_ZALORA_SG": PricingOverride(label="ZALORA SG (x1.09)", adjust=surcharge(1.09),
                                   applies_to=(ChannelType.OVERSEAS,)),
    "SG_ZALORA_MY": PricingOverride(label="ZALORA MY (x1.10)", adjust=surcharge(1.10),
                                   applies_to=(ChannelType.OVERSEAS,)),
}
for _name in AMAZON_US_CHANNELS:
    _OVERRIDES[_name] = PricingOverride(
        label="Amazon US (+frete Amazon)",
        adjust=add_amazon_shipping,
        applies_to=(ChannelType.JAPAN, ChannelType.OWN_SHOP),
        amazon_logistics=True,
    )


def get_override(channel: Optional[ChannelConfig]) -> Optional[PricingOverride]:
    if channel is None or not channel.channel_name:
        return None
    return _OVERRIDES.get(channel.channel_name.strip())


def register_override(channel_name: str, override: PricingOverride) -> None:
    """Registra (ou substitui) o ajuste de um canal"""
    logger.info(f"Registrando ajuste de preço para canal '{channel_name}': {override.label}")
    _OVERRIDES[channel_name.strip()] = override


def unregister_override(channel_name: str) -> None:
    _OVERRIDES.pop(channel_name.strip(), None)


def is_amazon_logistics(channel: Optional[ChannelConfig]) -> bool:
    override = get_override(channel)
    return bool(override and override.amazon_logistics)


def apply_override(price: float, channel: ChannelConfig) -> float:
    override = get_override(channel)
    if override is None or channel.channel_type not in override.applies_to:
        return price
    adjusted = override.adjust(price, channel)
    logger.debug(f"Ajuste '{override.label}' aplicado: {price} -> {adjusted}")
    return adjusted
