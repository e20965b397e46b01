"""
商店路由模块

商品目录、购买、恢复购买和权益查询。
"""
from __future__ import annotations

from fastapi import APIRouter

from froth.api.deps import StoreDep
from froth.api.errors import AppError
from froth.api.schemas import (
    ApiEnvelope,
    EntitledData,
    ProductPublic,
    PurchaseData,
    PurchaseRequest,
    RestoreRequest,
    StoreStateData,
)
from froth.services.entitlements import EntitlementFacade

router = APIRouter(prefix="/store", tags=["store"])


def _state_data(store: EntitlementFacade) -> StoreStateData:
    return StoreStateData.from_state(
        store.state.value, is_pro_user=store.is_pro_user(), pro_expiry=store.pro_expiry()
    )


@router.get("/products", response_model=ApiEnvelope)
async def products(store: StoreDep) -> ApiEnvelope:
    """
    商品列表

    目录为空时（启动时加载失败等）先重新加载一次。
    """
    if not store.state.value.products:
        await store.load_catalog()
    return ApiEnvelope(
        data=[ProductPublic.from_product(p) for p in store.state.value.products]
    )


@router.post("/purchase", response_model=ApiEnvelope)
async def purchase(store: StoreDep, body: PurchaseRequest) -> ApiEnvelope:
    """
    购买接口

    取消和待处理都算成功响应，通过 data.status 区分；
    服务商验证失败返回 400（code=402101）。

    请求路径: POST /api/v1/store/purchase
    """
    product = store.find_product(body.product_id)
    if product is None:
        raise AppError(code=404101, message="Product not found", status_code=404)
    outcome = await store.purchase(product, body.fetch_token)
    return ApiEnvelope(data=PurchaseData.from_outcome(product.identifier, outcome))


@router.post("/restore", response_model=ApiEnvelope)
async def restore(store: StoreDep, body: RestoreRequest) -> ApiEnvelope:
    await store.restore(body.fetch_token)
    return ApiEnvelope(data=_state_data(store))


@router.get("/entitlements", response_model=ApiEnvelope)
def entitlements(store: StoreDep) -> ApiEnvelope:
    return ApiEnvelope(data=_state_data(store))


@router.get("/entitlements/{product_id}", response_model=ApiEnvelope)
def entitled(store: StoreDep, product_id: str) -> ApiEnvelope:
    return ApiEnvelope(
        data=EntitledData(product_id=product_id, is_entitled=store.is_entitled(product_id))
    )
