from abc import ABC, abstractmethod
from enum import Enum
from typing import List, Dict, Any, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from channel_pricing.common import parse_number

Numeric = Optional[Union[float, str]]


class ChannelType(str, Enum):
    """Regime de precificação do canal"""
    DOMESTIC = "domestic"
    OVERSEAS = "overseas"
    JAPAN = "japan"
    OWN_SHOP = "own_shop"

    @classmethod
    def parse(cls, raw: Optional[str]) -> Optional["ChannelType"]:
        """Aceita os rótulos do diretório de canais (국내, 해외, 일본, 자사몰) e os nomes em inglês."""
        if raw is None:
            return None
        if isinstance(raw, ChannelType):
            return raw
        key = str(raw).strip().lower()
        return _CHANNEL_TYPE_LABELS.get(key)


_CHANNEL_TYPE_LABELS: Dict[str, ChannelType] = {
    "국내": ChannelType.DOMESTIC,
    "domestic": ChannelType.DOMESTIC,
    "해외": ChannelType.OVERSEAS,
    "overseas": ChannelType.OVERSEAS,
    "일본": ChannelType.JAPAN,
    "japan": ChannelType.JAPAN,
    "자사몰": ChannelType.OWN_SHOP,
    "own_shop": ChannelType.OWN_SHOP,
    "own-shop": ChannelType.OWN_SHOP,
}


class DeliveryType(str, Enum):
    FREE = "free"
    CONDITIONAL = "conditional"


class ChannelConfig(BaseModel):
    """
    Política de preço de um canal de venda.

    Os campos numéricos são mantidos como vieram do diretório de canais
    (texto com separador de milhar ou número); as propriedades ``*_value``
    devolvem o número já interpretado ou None quando ausente/inválido.
    """
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    channel_name: str = Field("", validation_alias=AliasChoices("channel_name", "channel_name_2"))
    type: Optional[str] = None
    markup_ratio: Numeric = None
    applied_exchange_rate: Numeric = None
    rounddown: Numeric = None
    digit_adjustment: Numeric = None
    average_fee_rate: Numeric = None
    free_shipping: Numeric = None
    conditional_shipping: Numeric = None
    amazon_shipping_cost: Numeric = None
    min_price: Numeric = None
    currency: Optional[str] = None
    currency_2: Optional[str] = None

    @property
    def channel_type(self) -> Optional[ChannelType]:
        return ChannelType.parse(self.type)

    @property
    def markup_ratio_value(self) -> Optional[float]:
        return parse_number(self.markup_ratio, "markup_ratio")

    @property
    def exchange_rate_value(self) -> Optional[float]:
        return parse_number(self.applied_exchange_rate, "applied_exchange_rate")

    @property
    def rounddown_value(self) -> Optional[int]:
        value = parse_number(self.rounddown, "rounddown")
        return int(value) if value is not None else None

    @property
    def digit_adjustment_value(self) -> float:
        return parse_number(self.digit_adjustment, "digit_adjustment") or 0.0

    @property
    def average_fee_rate_value(self) -> Optional[float]:
        return parse_number(self.average_fee_rate, "average_fee_rate")

    @property
    def free_shipping_value(self) -> float:
        return parse_number(self.free_shipping, "free_shipping") or 0.0

    @property
    def conditional_shipping_value(self) -> float:
        return parse_number(self.conditional_shipping, "conditional_shipping") or 0.0

    @property
    def amazon_shipping_cost_value(self) -> float:
        return parse_number(self.amazon_shipping_cost, "amazon_shipping_cost") or 0.0

    @property
    def min_price_value(self) -> Optional[float]:
        return parse_number(self.min_price, "min_price")

    @property
    def display_decimals(self) -> int:
        """Casas decimais para exibição (USD/SGD com centavos)"""
        return 2 if (self.currency_2 or self.currency or "").upper() in ("USD", "SGD") else 0


class Product(BaseModel):
    """
    Item do catálogo com campos base e campos derivados pelo motor.

    Campos derivados são Optional: None significa "não calculado",
    diferente de um valor calculado igual a zero.
    """
    model_config = ConfigDict(extra="allow")

    product_id: str
    org_price: Optional[float] = None
    shop_price: Optional[float] = None
    global_price: Optional[float] = None

    pricing_price: Optional[float] = None
    discount_price: Optional[float] = None
    discount: Optional[float] = None
    discount_rate: Optional[float] = None
    coupon_price_1: Optional[float] = None
    coupon_price_2: Optional[float] = None
    coupon_price_3: Optional[float] = None
    adjusted_cost: Optional[float] = None
    logistics_cost: Optional[float] = None
    expected_commission_fee: Optional[float] = None
    expected_commission_fee_rate: Optional[float] = None
    expected_net_profit: Optional[float] = None
    expected_net_profit_margin: Optional[float] = None
    expected_settlement_amount: Optional[float] = None
    cost_ratio: Optional[float] = None
    immediate_self_burden: Optional[float] = None
    self_burden_1: Optional[float] = None
    self_burden_2: Optional[float] = None
    self_burden_3: Optional[float] = None
    discount_burden_amount: Optional[float] = None

    def price_at(self, field: str) -> float:
        """Lê um campo de preço por nome; ausente/inválido vira 0."""
        return parse_number(getattr(self, field, None), field) or 0.0


class PriceBreakdown(BaseModel):
    """Breakdown detalhado do cálculo de preço"""
    steps: List[Dict[str, Any]]
    notes: Optional[List[str]] = None


class IChannelPriceCalculator(ABC):
    """
    Interface para calculadoras de preço por regime de canal.

    Todos os métodos recebem o produto e a configuração do canal e nunca
    levantam exceção por dado faltante: devolvem None ("sem preço neste canal").
    """

    def __init__(self, channel_type: ChannelType):
        self.channel_type = channel_type

    @abstractmethod
    def get_listing_price(self, product: Product, channel: ChannelConfig) -> Optional[float]:
        """
        Calcula o preço de lista do produto no canal.

        Args:
            product: Produto com preços base
            channel: Configuração do canal

        Returns:
            Preço de lista ou None quando não calculável
        """
        pass

    @abstractmethod
    def get_breakdown(self, product: Product, channel: ChannelConfig) -> PriceBreakdown:
        """
        Retorna breakdown detalhado do cálculo de preço.

        Args:
            product: Produto com preços base
            channel: Configuração do canal

        Returns:
            PriceBreakdown com steps e notes
        """
        pass

    def ensure_min_price(self, price: Optional[float], channel: ChannelConfig) -> Optional[float]:
        """Aplica o piso de preço (min_price) configurado no canal"""
        min_price = channel.min_price_value
        if price is None or not min_price or min_price <= 0:
            return price
        return max(price, min_price)
