# -*- coding: utf-8 -*-
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from sqlalchemy import JSON, Column, DateTime, Integer, String, create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from config import settings
from channel_pricing import (
    CalculationSnapshot,
    ChannelConfig,
    DeliveryType,
    DiscountTierConfig,
    FeeDiscountPolicy,
    PriceCalculatorFactory,
    PricingContext,
    PricingSession,
    Product,
    TierSlot,
    apply_discount_tier,
    average_cost_ratio,
    average_discount_rate,
    average_profit_margin,
    clear_metrics,
    recompute_all,
    recompute_metrics,
    resolve_channel_price,
    resolve_logistics_cost,
    revert,
    snapshot,
)

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Channel Pricing API", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# -----------------------------------------------------------------------------
# Database configuration for cart persistence
# -----------------------------------------------------------------------------

_connect_args = {"check_same_thread": False} if settings.database_url.startswith("sqlite") else {}
engine = create_engine(settings.database_url, future=True, connect_args=_connect_args)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)
Base = declarative_base()


class CartState(Base):
    __tablename__ = "cart_state"

    id = Column(Integer, primary_key=True, index=True)
    session_id = Column(String, unique=True, index=True, nullable=False)
    data = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )


def get_db():
    db: Session = SessionLocal()
    try:
        yield db
    finally:
        db.close()


Base.metadata.create_all(bind=engine)


def default_context(**overrides) -> PricingContext:
    """Contexto com os parâmetros de negócio vindos das settings"""
    values = {
        "vat_divisor": settings.domestic_vat_divisor,
        "fee_policy": FeeDiscountPolicy(
            step_percent=settings.fee_discount_step_percent,
            points_per_step=settings.fee_discount_points,
        ),
    }
    values.update(overrides)
    return PricingContext(**values)


def _resolve_context(context: Optional[PricingContext]) -> PricingContext:
    """Completa com as settings os campos que o cliente não enviou"""
    if context is None:
        return default_context()
    explicit = {name: getattr(context, name) for name in context.model_fields_set}
    return default_context(**explicit)


def _default_cart_payload() -> Dict[str, Any]:
    return {
        "products": [],
        "context": default_context().model_dump(mode="json"),
    }


# ============================================================================
# PRICING ENDPOINTS
# ============================================================================

class ChannelPriceRequest(BaseModel):
    """Request para preço de lista de um produto em um canal"""
    product: Product
    channel: Optional[ChannelConfig] = None
    include_breakdown: bool = Field(False, description="Inclui o passo a passo do cálculo")


class ChannelPriceResponse(BaseModel):
    product_id: str
    pricing_price: Optional[float] = None
    display_decimals: int = 0
    breakdown: Optional[Dict[str, Any]] = None


class LogisticsRequest(BaseModel):
    channel: Optional[ChannelConfig] = None
    delivery_type: DeliveryType = DeliveryType.CONDITIONAL
    amazon_shipping_cost: Optional[float] = Field(None, ge=0, description="Frete Amazon informado na tela")


class DiscountTierRequest(BaseModel):
    """Request para aplicar uma faixa da cascata"""
    products: List[Product]
    selected_ids: List[str]
    tier_slot: TierSlot
    tier_config: DiscountTierConfig
    context: Optional[PricingContext] = Field(
        None, description="Quando informado, as métricas são recalculadas após a faixa"
    )


class DiscountTierResponse(BaseModel):
    products: List[Product]
    snapshot: CalculationSnapshot


class ProductsRequest(BaseModel):
    products: List[Product]
    context: Optional[PricingContext] = None


class ProductsResponse(BaseModel):
    products: List[Product]
    average_discount_rate: int = 0
    average_cost_ratio: int = 0
    average_profit_margin: int = 0


class SnapshotRequest(BaseModel):
    products: List[Product]
    selected_ids: List[str]


class RevertRequest(BaseModel):
    products: List[Product]
    selected_ids: List[str]
    snapshot: CalculationSnapshot
    delivery_type: DeliveryType = DeliveryType.CONDITIONAL
    channel: Optional[ChannelConfig] = None
    amazon_shipping_cost: Optional[float] = None


class CartPayload(BaseModel):
    products: List[Product] = Field(default_factory=list)
    context: Optional[PricingContext] = None


def _products_response(products: List[Product], context: PricingContext) -> ProductsResponse:
    return ProductsResponse(
        products=products,
        average_discount_rate=average_discount_rate(products),
        average_cost_ratio=average_cost_ratio(products),
        average_profit_margin=average_profit_margin(products, context.channel, context.vat_divisor),
    )


@app.post("/pricing/channel-price", response_model=ChannelPriceResponse)
async def pricing_channel_price(request: ChannelPriceRequest):
    """
    Calcula o preço de lista do produto no canal.

    Returns:
        ChannelPriceResponse com pricing_price (None quando não calculável)

    Raises:
        422: breakdown pedido para regime de canal não suportado
    """
    channel = request.channel
    breakdown = None

    if request.include_breakdown:
        try:
            calculator = PriceCalculatorFactory.get(channel.type if channel else None)
        except ValueError as e:
            raise HTTPException(
                status_code=422,
                detail={
                    "message": str(e),
                    "supported_types": PriceCalculatorFactory.get_supported_types()
                }
            )
        breakdown = calculator.get_breakdown(request.product, channel).model_dump()

    return ChannelPriceResponse(
        product_id=request.product.product_id,
        pricing_price=resolve_channel_price(request.product, channel),
        display_decimals=channel.display_decimals if channel else 0,
        breakdown=breakdown,
    )


@app.post("/pricing/logistics")
async def pricing_logistics(request: LogisticsRequest):
    """Custo de frete por unidade para o canal e tipo de entrega"""
    return {
        "logistics_cost": resolve_logistics_cost(
            request.channel, request.delivery_type, request.amazon_shipping_cost
        ),
        "delivery_type": request.delivery_type.value,
    }


@app.post("/pricing/discount-tier", response_model=DiscountTierResponse)
async def pricing_discount_tier(request: DiscountTierRequest):
    """
    Aplica uma faixa (imediato, cupom 1-3) aos produtos selecionados.

    O snapshot devolvido é anterior à faixa e pode ser enviado para
    /pricing/revert.
    """
    before = snapshot(request.products, request.selected_ids)
    products = apply_discount_tier(
        request.products, request.selected_ids, request.tier_config, request.tier_slot
    )

    if request.context is not None:
        context = _resolve_context(request.context)
        products = [
            recompute_metrics(
                product,
                context.channel,
                fee_discount_enabled=context.fee_discount_enabled,
                policy=context.fee_policy,
                vat_divisor=context.vat_divisor,
            )
            for product in products
        ]
    else:
        # Sem contexto não há como recalcular: métricas de quem mudou ficam None
        products = [
            product if product is original else clear_metrics(product)
            for product, original in zip(products, request.products)
        ]

    return DiscountTierResponse(products=products, snapshot=before)


@app.post("/pricing/metrics", response_model=ProductsResponse)
async def pricing_metrics(request: ProductsRequest):
    """Recalcula só as métricas (comissão, liquidação, lucro, margem, custo)"""
    context = _resolve_context(request.context)
    products = [
        recompute_metrics(
            product,
            context.channel,
            fee_discount_enabled=context.fee_discount_enabled,
            policy=context.fee_policy,
            vat_divisor=context.vat_divisor,
        )
        for product in request.products
    ]
    return _products_response(products, context)


@app.post("/pricing/recompute", response_model=ProductsResponse)
async def pricing_recompute(request: ProductsRequest):
    """Recalcula preço de lista, frete, cascata registrada e métricas"""
    context = _resolve_context(request.context)
    return _products_response(recompute_all(request.products, context), context)


@app.post("/pricing/snapshot", response_model=CalculationSnapshot)
async def pricing_snapshot(request: SnapshotRequest):
    return snapshot(request.products, request.selected_ids)


@app.post("/pricing/revert")
async def pricing_revert(request: RevertRequest):
    """
    Restaura os produtos selecionados a partir do snapshot.

    Returns:
        products: lista resultante
        reverted: False quando o snapshot não cobre todos os selecionados
    """
    products = revert(
        request.products,
        request.selected_ids,
        request.snapshot,
        request.delivery_type,
        channel=request.channel,
        amazon_override=request.amazon_shipping_cost,
    )
    return {
        "products": [product.model_dump(mode="json") for product in products],
        "reverted": products is not request.products,
    }


@app.get("/pricing/channel-types")
async def pricing_channel_types():
    """Lista os regimes de canal suportados"""
    return {"supported_types": PriceCalculatorFactory.get_supported_types()}


# -----------------------------------------------------------------------------
# API endpoints for cart persistence
# -----------------------------------------------------------------------------

@app.get("/api/cart/{session_id}")
async def get_cart(session_id: str, db: Session = Depends(get_db)):
    try:
        cart = db.query(CartState).filter(CartState.session_id == session_id).first()
    except SQLAlchemyError as e:
        logger.error(f"Erro ao carregar carrinho {session_id}: {e}")
        raise HTTPException(status_code=503, detail={"message": "Armazenamento indisponível"})

    base = _default_cart_payload()
    if cart:
        base.update(cart.data or {})
    return JSONResponse(content=base)


@app.post("/api/cart/{session_id}")
async def save_cart(session_id: str, payload: CartPayload, db: Session = Depends(get_db)):
    """
    Recalcula o carrinho e grava o resultado.

    A gravação é best effort: em caso de falha o estado calculado é
    devolvido mesmo assim, com ``persisted: false``.
    """
    context = _resolve_context(payload.context)
    session = PricingSession(payload.products, context, history_limit=settings.snapshot_history_limit)
    products = session.recompute()

    data = {
        "products": [product.model_dump(mode="json") for product in products],
        "context": session.context.model_dump(mode="json"),
    }

    persisted = True
    try:
        cart = db.query(CartState).filter(CartState.session_id == session_id).first()
        if cart is None:
            cart = CartState(session_id=session_id, data=data)
            db.add(cart)
        else:
            cart.data = data
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        persisted = False
        logger.error(f"Falha ao gravar carrinho {session_id}, estado em memória mantido: {e}")

    return JSONResponse(content={**data, "persisted": persisted})


# ========= MAIN PARA RODAR DEBUGANDO =========


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app:app", host="127.0.0.1", port=5002, reload=True)
