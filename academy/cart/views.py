from typing import Any, Dict

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from academy.utils.security import require_user
from academy.cart import service

router = APIRouter(prefix="/api/v1/cart", tags=["Cart API"])


class CartItemIn(BaseModel):
    course_id: str


# module academy.cart.views
@router.get("")
def get_cart(user: Dict[str, Any] = Depends(require_user)):
    return service.list_cart(user["id"])

@router.post("/items")
def add_item(payload: CartItemIn, user: Dict[str, Any] = Depends(require_user)):
    return service.add_to_cart(user["id"], payload.course_id)

@router.delete("/items/{course_id}")
def remove_item(course_id: str, user: Dict[str, Any] = Depends(require_user)):
    return service.remove_from_cart(user["id"], course_id)

@router.delete("")
def clear(user: Dict[str, Any] = Depends(require_user)):
    return service.clear_cart(user["id"])
