"""
Snapshot e revert dos campos calculados.

O snapshot é tirado antes de aplicar uma faixa da cascata e guarda uma cópia
dos campos derivados dos produtos selecionados. O frete (logistics_cost) fica
de fora de propósito: no revert ele é recalculado com o tipo de entrega atual.
"""
import logging
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

from channel_pricing.discount import CASCADE_FIELDS
from channel_pricing.interface import ChannelConfig, DeliveryType, Product
from channel_pricing.logistics import resolve_logistics_cost
from channel_pricing.metrics import METRIC_FIELDS

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1

SNAPSHOT_FIELDS: Tuple[str, ...] = ("pricing_price", "adjusted_cost") + CASCADE_FIELDS + METRIC_FIELDS


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CalculationSnapshot(BaseModel):
    """Cópia imutável dos campos calculados de um subconjunto de produtos"""
    model_config = ConfigDict(frozen=True)

    version: int = SNAPSHOT_VERSION
    captured_at: datetime = Field(default_factory=_utcnow)
    fields: Tuple[str, ...] = SNAPSHOT_FIELDS
    entries: Dict[str, Dict[str, Optional[float]]] = Field(default_factory=dict)

    @property
    def product_ids(self) -> List[str]:
        return list(self.entries)

    def covers(self, product_ids: Iterable[str]) -> bool:
        return all(product_id in self.entries for product_id in product_ids)


def snapshot(products: List[Product], selected_ids: Iterable[str]) -> CalculationSnapshot:
    """Captura os campos calculados dos produtos selecionados, por product_id"""
    selected = set(selected_ids)
    entries = {
        product.product_id: {field: getattr(product, field) for field in SNAPSHOT_FIELDS}
        for product in products
        if product.product_id in selected
    }
    logger.debug(f"Snapshot capturado para {len(entries)} produtos")
    return CalculationSnapshot(entries=entries)


def revert(
    products: List[Product],
    selected_ids: Iterable[str],
    saved: CalculationSnapshot,
    current_delivery_type: Union[DeliveryType, str, None],
    channel: Optional[ChannelConfig] = None,
    amazon_override: Union[float, str, None] = None,
) -> List[Product]:
    """
    Restaura os campos do snapshot nos produtos selecionados.

    Tudo ou nada: se algum produto selecionado (presente na lista) não
    estiver no snapshot, nenhum produto é alterado. O frete é recalculado
    com o canal e o tipo de entrega atuais; as demais métricas voltam
    exatamente como estavam.
    """
    selected = set(selected_ids)
    targets = [product.product_id for product in products if product.product_id in selected]

    if not saved.covers(targets):
        missing = [product_id for product_id in targets if product_id not in saved.entries]
        logger.warning(f"Revert cancelado: snapshot não contém os produtos {missing}")
        return products

    logistics_cost = resolve_logistics_cost(channel, current_delivery_type, amazon_override)

    result = []
    for product in products:
        if product.product_id not in selected:
            result.append(product)
            continue
        restored = {field: value for field, value in saved.entries[product.product_id].items() if field in saved.fields}
        restored["logistics_cost"] = logistics_cost
        result.append(product.model_copy(update=restored))

    logger.info(f"Revert aplicado em {len(targets)} produtos (snapshot de {saved.captured_at.isoformat()})")
    return result
