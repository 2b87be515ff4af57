import logging
from abc import abstractmethod
from typing import Any, Dict, List, Optional

from channel_pricing.common import floor_to_digits
from channel_pricing.interface import (
    ChannelConfig,
    IChannelPriceCalculator,
    PriceBreakdown,
    Product,
)
from channel_pricing.overrides import apply_override, get_override

logger = logging.getLogger(__name__)


class BasePriceCalculator(IChannelPriceCalculator):
    """
    Classe base com o fluxo comum a todos os regimes:
    validação da configuração -> fórmula do regime -> ajuste do canal -> piso.
    """

    # Campo de preço do produto usado como origem
    SOURCE_FIELD = "shop_price"
    # Regimes que só calculam com rounddown configurado
    REQUIRES_ROUNDDOWN = True

    def has_required_config(self, channel: Optional[ChannelConfig]) -> bool:
        """Tipo, markup e câmbio são obrigatórios; sem eles não há preço"""
        if channel is None or channel.channel_type is None:
            return False
        if channel.markup_ratio_value is None or not channel.exchange_rate_value:
            return False
        if self.REQUIRES_ROUNDDOWN and channel.rounddown_value is None:
            return False
        return True

    def source_price(self, product: Product) -> Optional[float]:
        value = getattr(product, self.SOURCE_FIELD, None)
        return value if value else None

    @abstractmethod
    def calculate_base_price(self, source_price: float, channel: ChannelConfig) -> float:
        """Fórmula do regime antes do arredondamento"""
        pass

    def apply_rounding(self, price: float, channel: ChannelConfig) -> float:
        """Arredonda para baixo na precisão rounddown do canal"""
        return floor_to_digits(price, channel.rounddown_value or 0)

    def apply_digit_adjustment(self, price: float, channel: ChannelConfig) -> float:
        return price + channel.digit_adjustment_value

    def get_listing_price(self, product: Product, channel: ChannelConfig) -> Optional[float]:
        if not self.has_required_config(channel):
            logger.debug(f"[{product.product_id}] Canal sem configuração completa, preço não calculado")
            return None

        source = self.source_price(product)
        if source is None:
            logger.debug(f"[{product.product_id}] Sem {self.SOURCE_FIELD}, preço não calculado")
            return None

        base_price = self.calculate_base_price(source, channel)
        price = self.apply_digit_adjustment(self.apply_rounding(base_price, channel), channel)
        price = apply_override(price, channel)

        return self.ensure_min_price(price, channel)

    def describe_formula(self, channel: ChannelConfig) -> str:
        return ""

    def get_breakdown(self, product: Product, channel: ChannelConfig) -> PriceBreakdown:
        steps: List[Dict[str, Any]] = []
        notes = [f"Regime: {self.channel_type.value}"]

        if channel is not None:
            notes.append(f"Canal: {channel.channel_name or '-'}")

        if not self.has_required_config(channel):
            notes.append("Configuração do canal incompleta (tipo, markup, câmbio ou rounddown)")
            return PriceBreakdown(steps=steps, notes=notes)

        source = self.source_price(product)
        steps.append({"label": f"Preço de origem ({self.SOURCE_FIELD})", "value": source})
        if source is None:
            notes.append("Produto sem preço de origem")
            return PriceBreakdown(steps=steps, notes=notes)

        base_price = self.calculate_base_price(source, channel)
        rounded = self.apply_rounding(base_price, channel)
        adjusted = self.apply_digit_adjustment(rounded, channel)
        steps.extend([
            {"label": f"Fórmula ({self.describe_formula(channel)})", "value": base_price},
            {"label": f"Arredondamento (rounddown {channel.rounddown_value})", "value": rounded},
            {"label": "Ajuste de dígito", "value": adjusted},
        ])

        override = get_override(channel)
        with_override = apply_override(adjusted, channel)
        if with_override != adjusted and override is not None:
            steps.append({"label": f"Ajuste do canal: {override.label}", "value": with_override})

        final_price = self.ensure_min_price(with_override, channel)
        if final_price != with_override:
            steps.append({"label": "Preço mínimo do canal", "value": final_price})
        steps.append({"label": "Preço de lista", "value": final_price})

        return PriceBreakdown(steps=steps, notes=notes)
