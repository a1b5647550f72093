from fastapi import APIRouter, Body, Depends, Query, status
from sqlalchemy.orm import Session

from kata.auth.dependencies import get_current_user, require_admin
from kata.database import get_db
from kata.models.sweet import SweetCategory
from kata.schemas import (
    PurchaseRequest,
    RestockRequest,
    SweetCreate,
    SweetResponse,
    SweetSearch,
    SweetUpdate,
    success_response,
)
from kata.services import sweet_service

# Every sweet route needs an authenticated caller; mutations add require_admin.
router = APIRouter(tags=['sweets'], dependencies=[Depends(get_current_user)])


def _serialize(sweets) -> list[SweetResponse]:
    return [SweetResponse.model_validate(sweet) for sweet in sweets]


@router.get('/search')
def search_sweets(
    name: str | None = Query(default=None),
    category: SweetCategory | None = Query(default=None),
    min_price: float | None = Query(default=None, alias='minPrice'),
    max_price: float | None = Query(default=None, alias='maxPrice'),
    db: Session = Depends(get_db),
):
    criteria = SweetSearch(name=name, category=category, min_price=min_price, max_price=max_price)
    sweets = _serialize(sweet_service.search_sweets(db, criteria))
    return success_response(sweets, count=len(sweets))


@router.get('')
def list_sweets(db: Session = Depends(get_db)):
    sweets = _serialize(sweet_service.list_sweets(db))
    return success_response(sweets, count=len(sweets))


@router.get('/{sweet_id}')
def get_sweet(sweet_id: int, db: Session = Depends(get_db)):
    sweet = sweet_service.get_sweet(db, sweet_id)
    return success_response(SweetResponse.model_validate(sweet))


@router.post('', status_code=status.HTTP_201_CREATED, dependencies=[Depends(require_admin)])
def create_sweet(data: SweetCreate, db: Session = Depends(get_db)):
    sweet = sweet_service.create_sweet(db, data)
    return success_response(SweetResponse.model_validate(sweet), message='Sweet created successfully')


@router.put('/{sweet_id}', dependencies=[Depends(require_admin)])
def update_sweet(sweet_id: int, data: SweetUpdate, db: Session = Depends(get_db)):
    sweet = sweet_service.update_sweet(db, sweet_id, data)
    return success_response(SweetResponse.model_validate(sweet), message='Sweet updated successfully')


@router.delete('/{sweet_id}', dependencies=[Depends(require_admin)])
def delete_sweet(sweet_id: int, db: Session = Depends(get_db)):
    sweet_service.delete_sweet(db, sweet_id)
    return success_response(message='Sweet deleted successfully')


@router.post('/{sweet_id}/purchase')
def purchase_sweet(
    sweet_id: int,
    data: PurchaseRequest | None = Body(default=None),
    db: Session = Depends(get_db),
):
    quantity = data.quantity if data is not None else None
    sweet = sweet_service.purchase_sweet(db, sweet_id, quantity)
    return success_response(SweetResponse.model_validate(sweet), message='Purchase successful')


@router.post('/{sweet_id}/restock', dependencies=[Depends(require_admin)])
def restock_sweet(sweet_id: int, data: RestockRequest, db: Session = Depends(get_db)):
    sweet = sweet_service.restock_sweet(db, sweet_id, data.quantity)
    return success_response(SweetResponse.model_validate(sweet), message='Restock successful')
