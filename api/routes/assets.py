"""
api/routes/assets.py -- Asset record routes for the Warden REST API.

Routes:
  POST   /assets             -- create an asset record
  GET    /assets             -- list active assets
  GET    /assets/{asset_id}  -- asset detail
  DELETE /assets/{asset_id}  -- soft delete

Records describe files hosted elsewhere; nothing here uploads or stores
file content.
"""

from fastapi import APIRouter, Depends, HTTPException, Request, Response

from api.limiter import limiter
from api.models import AssetCreate, AssetResponse, ErrorDetail
from auth.dependencies import get_current_user
from inventory.models import Asset
from inventory.store import AssetStore

# Router-level dependency: every asset route requires a valid bearer token.
router = APIRouter(dependencies=[Depends(get_current_user)])


def _not_found(asset_id: int) -> HTTPException:
    return HTTPException(
        status_code=404,
        detail=ErrorDetail(
            code="asset_not_found",
            message=f"Asset {asset_id} not found.",
        ).model_dump(exclude_none=True),
    )


@limiter.limit("30/minute")
@router.post("/assets", response_model=AssetResponse, status_code=201)
def create_asset(request: Request, body: AssetCreate) -> AssetResponse:
    """Record a hosted file."""
    store: AssetStore = request.app.state.asset_store
    asset_id = store.create_asset(
        Asset(
            file_id=body.file_id,
            url=body.url,
            name=body.name,
            path=body.path,
            type=body.type,
            size=body.size,
            hosted_at=body.hosted_at,
        )
    )
    return AssetResponse.from_asset(store.get_asset(asset_id))


@limiter.limit("60/minute")
@router.get("/assets", response_model=list[AssetResponse])
def list_assets(request: Request) -> list[AssetResponse]:
    store: AssetStore = request.app.state.asset_store
    return [AssetResponse.from_asset(a) for a in store.list_assets()]


@limiter.limit("60/minute")
@router.get("/assets/{asset_id}", response_model=AssetResponse)
def get_asset(request: Request, asset_id: int) -> AssetResponse:
    store: AssetStore = request.app.state.asset_store
    asset = store.get_asset(asset_id)
    if asset is None:
        raise _not_found(asset_id)
    return AssetResponse.from_asset(asset)


@limiter.limit("30/minute")
@router.delete("/assets/{asset_id}", status_code=204)
def delete_asset(request: Request, asset_id: int) -> Response:
    """Soft-delete an asset. Deleted assets disappear from every read."""
    store: AssetStore = request.app.state.asset_store
    if not store.soft_delete_asset(asset_id):
        raise _not_found(asset_id)
    return Response(status_code=204)
