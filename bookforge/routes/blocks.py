"""Block routes, including the per-chapter bulk edit."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Response

from bookforge.http.actor import current_actor
from bookforge.logic import blocks as block_service
from bookforge.models.requests import BlockBulkUpdate, BlockCreate, BlockUpdate, PositionUpdate

router = APIRouter()


@router.get("/chapters/{chapter_id}/blocks")
def list_blocks(chapter_id: str, actor: Optional[str] = Depends(current_actor)) -> dict:
    return {"blocks": block_service.list_blocks(actor, chapter_id)}


@router.post("/chapters/{chapter_id}/blocks", status_code=201)
def create_block(chapter_id: str, body: BlockCreate, actor: Optional[str] = Depends(current_actor)) -> dict:
    return block_service.create_block(actor, chapter_id, body.model_dump())


@router.patch("/chapters/{chapter_id}/blocks")
def bulk_update_blocks(chapter_id: str, body: BlockBulkUpdate, actor: Optional[str] = Depends(current_actor)) -> dict:
    items = [item.model_dump(exclude_unset=True) for item in body.blocks]
    return {"blocks": block_service.bulk_update_blocks(actor, chapter_id, items)}


@router.get("/blocks/{block_id}")
def get_block(block_id: str, actor: Optional[str] = Depends(current_actor)) -> dict:
    return block_service.get_block(actor, block_id)


@router.patch("/blocks/{block_id}")
def update_block(block_id: str, body: BlockUpdate, actor: Optional[str] = Depends(current_actor)) -> dict:
    return block_service.update_block(actor, block_id, body.model_dump(exclude_unset=True))


@router.put("/blocks/{block_id}/position")
def reorder_block(block_id: str, body: PositionUpdate, actor: Optional[str] = Depends(current_actor)) -> dict:
    return block_service.reorder_block(actor, block_id, body.position)


@router.delete("/blocks/{block_id}", status_code=204)
def delete_block(block_id: str, actor: Optional[str] = Depends(current_actor)) -> Response:
    block_service.delete_block(actor, block_id)
    return Response(status_code=204)


__all__ = ["router"]
