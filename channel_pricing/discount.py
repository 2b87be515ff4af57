"""
Cascata de descontos: desconto imediato -> cupom 1 -> cupom 2 -> cupom 3.

Cada faixa lê o preço base de um campo configurável do produto, verifica o
valor mínimo (hurdle), calcula o desconto (valor fixo ou percentual, com
arredondamento e teto) e registra a parcela assumida pelo lojista
(self-burden). A cascata não assume encadeamento: cada faixa usa o campo que
a configuração indicar.
"""
import logging
from dataclasses import dataclass
from decimal import Decimal, ROUND_FLOOR
from enum import Enum
from typing import Dict, Iterable, List, Optional, Union

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from channel_pricing.common import round_half_up, round_to_step, to_decimal
from channel_pricing.interface import Product
from channel_pricing.metrics import METRIC_FIELDS

logger = logging.getLogger(__name__)

HUNDRED = Decimal("100")


class TierSlot(str, Enum):
    IMMEDIATE = "immediate"
    COUPON1 = "coupon1"
    COUPON2 = "coupon2"
    COUPON3 = "coupon3"

    @property
    def price_field(self) -> str:
        return _SLOT_PRICE_FIELDS[self]

    @property
    def burden_field(self) -> str:
        return _SLOT_BURDEN_FIELDS[self]

    @property
    def supports_double_coupon(self) -> bool:
        return self != TierSlot.IMMEDIATE

    @property
    def output_fields(self) -> tuple:
        fields = (self.price_field, self.burden_field)
        if self == TierSlot.IMMEDIATE:
            fields += ("discount", "discount_rate")
        return fields


_SLOT_PRICE_FIELDS = {
    TierSlot.IMMEDIATE: "discount_price",
    TierSlot.COUPON1: "coupon_price_1",
    TierSlot.COUPON2: "coupon_price_2",
    TierSlot.COUPON3: "coupon_price_3",
}

_SLOT_BURDEN_FIELDS = {
    TierSlot.IMMEDIATE: "immediate_self_burden",
    TierSlot.COUPON1: "self_burden_1",
    TierSlot.COUPON2: "self_burden_2",
    TierSlot.COUPON3: "self_burden_3",
}

TIER_ORDER = (TierSlot.IMMEDIATE, TierSlot.COUPON1, TierSlot.COUPON2, TierSlot.COUPON3)

COUPON_BURDEN_FIELDS = ("self_burden_1", "self_burden_2", "self_burden_3")

CASCADE_FIELDS = (
    "discount_price",
    "discount",
    "discount_rate",
    "coupon_price_1",
    "coupon_price_2",
    "coupon_price_3",
    "immediate_self_burden",
    "self_burden_1",
    "self_burden_2",
    "self_burden_3",
    "discount_burden_amount",
)


class DiscountType(str, Enum):
    AMOUNT = "amount"
    RATE = "rate"


class RoundType(str, Enum):
    FLOOR = "floor"
    CEIL = "ceil"
    ROUND = "round"


class DecimalPoint(str, Enum):
    HUNDREDTH = "0.01"
    TENTH = "0.1"
    UNIT = "1"
    NONE = "none"


class CapType(str, Enum):
    MAX = "max"
    FIXED = "fixed"


class CouponDefinition(BaseModel):
    """Definição de um desconto (aceita as chaves camelCase do front: hurdleAmount, discountBase...)"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    hurdle_target: Optional[str] = None
    hurdle_amount: float = 0.0
    discount_base: str = "pricing_price"
    discount_type: DiscountType = DiscountType.AMOUNT
    discount_value: float = 0.0
    decimal_point: DecimalPoint = DecimalPoint.NONE
    round_type: RoundType = RoundType.FLOOR
    discount_cap: float = 0.0
    discount_cap_type: CapType = CapType.MAX
    self_ratio: float = 0.0

    @property
    def hurdle_field(self) -> str:
        """Campo usado no teste de elegibilidade; sem hurdle_target usa o próprio discount_base"""
        return self.hurdle_target or self.discount_base

    def discounted_price(self, base_price: Decimal) -> Decimal:
        """
        Preço após o desconto.

        - amount: base - valor
        - rate + teto max: o teto limita o desconto (teto 0 = sem teto)
        - rate + teto fixed: se o desconto calculado for <= teto, o preço
          passa a ser exatamente base - teto
        """
        value = to_decimal(self.discount_value)
        if self.discount_type == DiscountType.AMOUNT:
            return base_price - value

        raw_price = round_to_step(
            base_price * (1 - value / HUNDRED),
            self.decimal_point.value,
            self.round_type.value,
        )
        discount_amount = base_price - raw_price
        cap = to_decimal(self.discount_cap)

        if self.discount_cap_type == CapType.MAX:
            if cap == 0:
                return raw_price
            return max(base_price - cap, raw_price)

        # Teto fixo: desconto calculado acima do teto mantém o preço calculado,
        # caso contrário o desconto é forçado para o valor do teto.
        if discount_amount > cap:
            return raw_price
        return base_price - cap

    def self_burden(self, discount_amount: Decimal) -> Decimal:
        return (discount_amount * to_decimal(self.self_ratio) / HUNDRED).quantize(
            Decimal("1"), rounding=ROUND_FLOOR
        )


class SecondCouponConfig(CouponDefinition):
    """Segunda definição do cupom duplo (selecionada por faixa de hurdle)"""


class DiscountTierConfig(CouponDefinition):
    """Configuração de uma faixa da cascata, com cupom duplo opcional"""
    is_double_coupon: bool = False
    second_coupon: Optional[SecondCouponConfig] = None

    @property
    def double_coupon_enabled(self) -> bool:
        if self.second_coupon is None:
            return False
        # second_coupon informado sem a flag explícita também liga o modo duplo
        return self.is_double_coupon or "is_double_coupon" not in self.model_fields_set


@dataclass(frozen=True)
class TierOutcome:
    """Resultado da aplicação de uma faixa em um produto"""
    definition: CouponDefinition
    base_price: Decimal
    new_price: Decimal
    self_burden: Decimal

    @property
    def discount_amount(self) -> Decimal:
        return self.base_price - self.new_price


def _apply_definition(product: Product, definition: CouponDefinition) -> TierOutcome:
    base_price = to_decimal(product.price_at(definition.discount_base))
    new_price = definition.discounted_price(base_price)
    return TierOutcome(
        definition=definition,
        base_price=base_price,
        new_price=new_price,
        self_burden=definition.self_burden(base_price - new_price),
    )


def evaluate_tier(product: Product, config: DiscountTierConfig, slot: TierSlot) -> Optional[TierOutcome]:
    """
    Avalia uma faixa para um produto.

    Retorna None quando o produto não é elegível (abaixo do hurdle) e
    deve passar pela faixa sem alteração.
    """
    if config.double_coupon_enabled and slot.supports_double_coupon:
        second = config.second_coupon
        first_value = product.price_at(config.hurdle_field)
        second_value = product.price_at(second.hurdle_field)

        if config.hurdle_amount <= first_value < second.hurdle_amount:
            return _apply_definition(product, config)
        if second_value >= second.hurdle_amount:
            return _apply_definition(product, second)
        logger.debug(f"[{product.product_id}] Abaixo dos dois hurdles do cupom duplo ({slot.value})")
        return None

    hurdle_value = product.price_at(config.hurdle_field)
    if hurdle_value < config.hurdle_amount:
        logger.debug(
            f"[{product.product_id}] {config.hurdle_field}={hurdle_value} abaixo do hurdle "
            f"{config.hurdle_amount} ({slot.value}), faixa ignorada"
        )
        return None
    return _apply_definition(product, config)


def sum_coupon_burdens(product: Product) -> float:
    return sum(getattr(product, field) or 0.0 for field in COUPON_BURDEN_FIELDS)


def _tier_updates(product: Product, slot: TierSlot, outcome: TierOutcome) -> dict:
    new_price = float(outcome.new_price)
    updates = {
        slot.price_field: new_price,
        slot.burden_field: float(outcome.self_burden),
    }
    if slot == TierSlot.IMMEDIATE:
        pricing_price = product.pricing_price or 0.0
        updates["discount"] = float(outcome.discount_amount)
        updates["discount_rate"] = (
            (pricing_price - new_price) / pricing_price * 100 if pricing_price else 0.0
        )

    burdens = {field: getattr(product, field) for field in COUPON_BURDEN_FIELDS}
    if slot.burden_field in burdens:
        burdens[slot.burden_field] = float(outcome.self_burden)
    updates["discount_burden_amount"] = sum(value or 0.0 for value in burdens.values())
    return updates


def apply_discount_tier(
    products: List[Product],
    selected_ids: Iterable[str],
    tier_config: DiscountTierConfig,
    tier_slot: Union[TierSlot, str],
) -> List[Product]:
    """
    Aplica uma faixa da cascata aos produtos selecionados.

    Produtos fora da seleção ou não elegíveis são devolvidos como o mesmo
    objeto (identidade preservada); os demais são copiados com os campos
    da faixa atualizados.
    """
    slot = TierSlot(tier_slot)
    selected = set(selected_ids)
    result = []
    applied = 0

    for product in products:
        if product.product_id not in selected:
            result.append(product)
            continue

        outcome = evaluate_tier(product, tier_config, slot)
        if outcome is None:
            result.append(product)
            continue

        result.append(product.model_copy(update=_tier_updates(product, slot, outcome)))
        applied += 1

    logger.info(f"Faixa {slot.value} aplicada em {applied}/{len(selected)} produtos selecionados")
    return result


def tier_values(product: Product, slot: Union[TierSlot, str]) -> Dict[str, Optional[float]]:
    """Valores atuais dos campos escritos pela faixa no produto"""
    return {field: getattr(product, field) for field in TierSlot(slot).output_fields}


def restore_tiers(
    products: List[Product],
    values: Dict[str, Dict[str, Optional[float]]],
) -> List[Product]:
    """
    Regrava campos de faixa por product_id e refaz a soma das parcelas dos cupons.

    Produtos ausentes de ``values`` voltam intactos (mesmo objeto).
    """
    result = []
    for product in products:
        update = values.get(product.product_id)
        if not update:
            result.append(product)
            continue
        updated = product.model_copy(update=update)
        if product.discount_burden_amount is not None:
            updated = updated.model_copy(update={"discount_burden_amount": sum_coupon_burdens(updated)})
        result.append(updated)
    return result


def reset_discounts(products: List[Product]) -> List[Product]:
    """Limpa todos os campos da cascata e as métricas derivadas"""
    cleared = {field: None for field in CASCADE_FIELDS + METRIC_FIELDS}
    cleared["adjusted_cost"] = None
    cleared["logistics_cost"] = None
    return [product.model_copy(update=cleared) for product in products]


# ---------------------------------------------------------------------------
# Taxas de desconto (leitura para exibição)
# ---------------------------------------------------------------------------

def calculate_discount_rate(original_price: Optional[float], discounted_price: Optional[float]) -> int:
    """Taxa de desconto em % inteiro; 0 quando algum dos lados está ausente"""
    if not original_price or original_price <= 0 or discounted_price is None:
        return 0
    return int(round_half_up((original_price - discounted_price) / original_price * 100))


def immediate_discount_rate(product: Product) -> int:
    if not product.pricing_price or not product.discount_price:
        return 0
    return calculate_discount_rate(product.pricing_price, product.discount_price)


def coupon_discount_rate(product: Product, slot: Union[TierSlot, str]) -> int:
    """Taxa do cupom em relação à faixa anterior da cascata"""
    slot = TierSlot(slot)
    if slot == TierSlot.IMMEDIATE:
        return immediate_discount_rate(product)
    previous = TIER_ORDER[TIER_ORDER.index(slot) - 1]
    before = getattr(product, previous.price_field)
    after = getattr(product, slot.price_field)
    if not before or not after:
        return 0
    return calculate_discount_rate(before, after)


def deepest_price(product: Product) -> Optional[float]:
    """Preço mais profundo da cascata (cupom 3 -> ... -> preço de lista)"""
    for field in ("coupon_price_3", "coupon_price_2", "coupon_price_1", "discount_price", "pricing_price"):
        value = getattr(product, field)
        if value:
            return value
    return None


def final_discount_rate(product: Product) -> int:
    if not product.pricing_price:
        return 0
    return calculate_discount_rate(product.pricing_price, deepest_price(product))
