"""
Orquestração do motor: contexto de precificação, recálculo e sessão.

``PricingContext`` concentra o estado que antes ficava espalhado pela tela
(canal selecionado, tipo de entrega, desconto de taxa e faixas aplicadas).
Qualquer mudança de contexto passa por ``recompute_all``, que refaz todos os
campos derivados a partir dos campos base.
"""
import logging
import threading
from collections import deque
from typing import Deque, Dict, Iterable, List, Optional, Tuple, Union

from pydantic import BaseModel, Field

from channel_pricing.discount import (
    TIER_ORDER,
    DiscountTierConfig,
    TierSlot,
    apply_discount_tier,
    restore_tiers,
    tier_values,
)
from channel_pricing.factory import resolve_channel_price
from channel_pricing.interface import ChannelConfig, DeliveryType, Product
from channel_pricing.logistics import resolve_logistics_cost
from channel_pricing.metrics import (
    DEFAULT_FEE_POLICY,
    DOMESTIC_VAT_DIVISOR,
    FeeDiscountPolicy,
    recompute_metrics,
)
from channel_pricing.snapshot import CalculationSnapshot, revert, snapshot

logger = logging.getLogger(__name__)


class AppliedTier(BaseModel):
    """
    Registro de uma faixa aplicada (usado para refazer a cascata).

    ``seq`` cresce a cada faixa registrada no contexto. ``baseline`` guarda,
    por product_id, os campos do slot antes da faixa.
    """
    slot: TierSlot
    tier_config: DiscountTierConfig
    product_ids: List[str] = Field(default_factory=list)
    seq: int = 0
    baseline: Dict[str, Dict[str, Optional[float]]] = Field(default_factory=dict)


class PricingContext(BaseModel):
    channel: Optional[ChannelConfig] = None
    delivery_type: DeliveryType = DeliveryType.CONDITIONAL
    fee_discount_enabled: bool = False
    fee_policy: FeeDiscountPolicy = DEFAULT_FEE_POLICY
    vat_divisor: float = DOMESTIC_VAT_DIVISOR
    amazon_shipping_override: Optional[float] = None
    applied_tiers: List[AppliedTier] = Field(default_factory=list)
    tier_sequence: int = 0

    def next_tier_seq(self) -> int:
        recorded = max((tier.seq + 1 for tier in self.applied_tiers), default=0)
        return max(self.tier_sequence, recorded)

    def record_tier(
        self,
        slot: TierSlot,
        config: DiscountTierConfig,
        product_ids: Iterable[str],
        baseline: Optional[Dict[str, Dict[str, Optional[float]]]] = None,
    ) -> AppliedTier:
        tier = AppliedTier(
            slot=slot,
            tier_config=config,
            product_ids=list(product_ids),
            seq=self.next_tier_seq(),
            baseline=baseline or {},
        )
        self.applied_tiers.append(tier)
        self.tier_sequence = tier.seq + 1
        return tier

    def ordered_tiers(self) -> List[AppliedTier]:
        """Faixas em ordem de cascata; dentro do mesmo slot segue a ordem de registro"""
        return sorted(self.applied_tiers, key=lambda tier: (TIER_ORDER.index(tier.slot), tier.seq))

    def logistics_cost(self) -> Optional[float]:
        return resolve_logistics_cost(self.channel, self.delivery_type, self.amazon_shipping_override)


def _with_list_price(product: Product, context: PricingContext) -> Product:
    return product.model_copy(update={
        "pricing_price": resolve_channel_price(product, context.channel),
        "logistics_cost": context.logistics_cost(),
    })


def _with_metrics(product: Product, context: PricingContext) -> Product:
    return recompute_metrics(
        product,
        context.channel,
        fee_discount_enabled=context.fee_discount_enabled,
        policy=context.fee_policy,
        vat_divisor=context.vat_divisor,
    )


def recompute_product(product: Product, context: PricingContext) -> Product:
    """Recalcula preço de lista, frete e métricas de um produto (sem refazer a cascata)"""
    return _with_metrics(_with_list_price(product, context), context)


def _baseline_values(tiers: List[AppliedTier]) -> Dict[str, Dict[str, Optional[float]]]:
    """Valores de cada (slot, produto) antes da primeira faixa registrada sobre ele"""
    seen = set()
    values: Dict[str, Dict[str, Optional[float]]] = {}
    for tier in sorted(tiers, key=lambda tier: tier.seq):
        for product_id in tier.product_ids:
            if (tier.slot, product_id) in seen:
                continue
            seen.add((tier.slot, product_id))
            # Faixa sem baseline (vinda de fora): o valor atual do slot é mantido
            if product_id in tier.baseline:
                values.setdefault(product_id, {}).update(tier.baseline[product_id])
    return values


def replay_cascade(products: List[Product], context: PricingContext) -> List[Product]:
    """
    Reaplica as faixas registradas no contexto, em ordem de cascata.

    Cada slot registrado volta ao valor que tinha antes da primeira faixa e
    as faixas são reaplicadas por cima; produto abaixo do hurdle fica com
    esse valor. Slots fora do registro não são tocados.
    """
    tiers = context.ordered_tiers()
    products = restore_tiers(products, _baseline_values(tiers))
    for tier in tiers:
        products = apply_discount_tier(products, tier.product_ids, tier.tier_config, tier.slot)
    return products


def recompute_all(products: List[Product], context: PricingContext) -> List[Product]:
    """
    Recalcula todos os campos derivados do lote.

    Ordem: preço de lista e frete -> cascata (faixas registradas) -> métricas.
    """
    priced = [_with_list_price(product, context) for product in products]
    if context.applied_tiers:
        priced = replay_cascade(priced, context)
    result = [_with_metrics(product, context) for product in priced]

    logger.debug(
        f"Recálculo completo: {len(result)} produtos, canal="
        f"{context.channel.channel_name if context.channel else '-'}, entrega={context.delivery_type.value}"
    )
    return result


class PricingSession:
    """
    Lista de produtos + contexto, com gatilhos serializados.

    Cada gatilho (canal, entrega, desconto de taxa, faixa, revert, custo
    manual) roda sob o mesmo lock, então dois recálculos nunca se intercalam
    sobre a mesma lista. Antes de cada faixa é tirado um snapshot dos
    produtos afetados; o histórico guarda no máximo ``history_limit`` entradas.
    """

    def __init__(
        self,
        products: Optional[List[Product]] = None,
        context: Optional[PricingContext] = None,
        history_limit: int = 20,
    ):
        self.products: List[Product] = list(products or [])
        self.context = context or PricingContext()
        # (snapshot, seq da faixa registrada logo após a captura)
        self.history: Deque[Tuple[CalculationSnapshot, int]] = deque(maxlen=max(history_limit, 1))
        self._lock = threading.RLock()

    def _recompute(self) -> List[Product]:
        self.products = recompute_all(self.products, self.context)
        return self.products

    def recompute(self) -> List[Product]:
        with self._lock:
            return self._recompute()

    def set_products(self, products: List[Product]) -> List[Product]:
        with self._lock:
            self.products = list(products)
            return self._recompute()

    def set_channel(self, channel: Optional[ChannelConfig]) -> List[Product]:
        with self._lock:
            self.context.channel = channel
            logger.info(f"Canal selecionado: {channel.channel_name if channel else '-'}")
            return self._recompute()

    def set_delivery_type(self, delivery_type: Union[DeliveryType, str]) -> List[Product]:
        with self._lock:
            self.context.delivery_type = DeliveryType(delivery_type)
            return self._recompute()

    def set_fee_discount(self, enabled: bool) -> List[Product]:
        with self._lock:
            self.context.fee_discount_enabled = enabled
            return self._recompute()

    def set_adjusted_cost(self, product_id: str, cost: Optional[float]) -> List[Product]:
        """Custo manual de um produto; None volta ao custo base"""
        with self._lock:
            self.products = [
                product.model_copy(update={"adjusted_cost": cost}) if product.product_id == product_id else product
                for product in self.products
            ]
            return self._recompute()

    def apply_tier(
        self,
        selected_ids: Iterable[str],
        tier_config: DiscountTierConfig,
        tier_slot: Union[TierSlot, str],
    ) -> List[Product]:
        """Tira snapshot dos selecionados, registra a faixa e recalcula o lote"""
        slot = TierSlot(tier_slot)
        selected = list(selected_ids)
        with self._lock:
            targets = set(selected)
            baseline = {
                product.product_id: tier_values(product, slot)
                for product in self.products
                if product.product_id in targets
            }
            taken = snapshot(self.products, selected)
            tier = self.context.record_tier(slot, tier_config, selected, baseline)
            self.history.append((taken, tier.seq))
            return self._recompute()

    def latest_snapshot(self) -> Optional[CalculationSnapshot]:
        return self.history[-1][0] if self.history else None

    def revert(
        self,
        selected_ids: Iterable[str],
        saved: Optional[CalculationSnapshot] = None,
    ) -> List[Product]:
        """
        Restaura os selecionados a partir de ``saved`` (ou do último snapshot).

        As faixas registradas depois do snapshot deixam de valer para os
        produtos restaurados, senão o próximo recálculo refaria o desconto
        revertido.
        """
        selected = list(selected_ids)
        with self._lock:
            if saved is None and not self.history:
                logger.warning("Revert solicitado sem snapshot disponível")
                return self.products

            target, since_seq = self._resolve_history_entry(saved)
            reverted = revert(
                self.products,
                selected,
                target,
                self.context.delivery_type,
                channel=self.context.channel,
                amazon_override=self.context.amazon_shipping_override,
            )
            if reverted is self.products:
                return self.products

            self.products = reverted
            self._forget_tiers(selected, since_seq=since_seq)
            if saved is None:
                self.history.pop()
            return self.products

    def _resolve_history_entry(self, saved: Optional[CalculationSnapshot]) -> Tuple[CalculationSnapshot, int]:
        if saved is None:
            return self.history[-1]
        for entry, since_seq in self.history:
            if entry is saved or entry == saved:
                return entry, since_seq
        # Snapshot externo (ex.: vindo da API): não se sabe quando foi tirado
        return saved, 0

    def _forget_tiers(self, product_ids: Iterable[str], since_seq: int = 0) -> None:
        """Tira os produtos das faixas com seq >= since_seq; faixa sem produto sai do registro"""
        removed = set(product_ids)
        remaining = []
        for tier in self.context.applied_tiers:
            if tier.seq < since_seq:
                remaining.append(tier)
                continue
            ids = [product_id for product_id in tier.product_ids if product_id not in removed]
            if ids:
                baseline = {product_id: values for product_id, values in tier.baseline.items() if product_id in ids}
                remaining.append(tier.model_copy(update={"product_ids": ids, "baseline": baseline}))
        self.context.applied_tiers = remaining
