from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from say2me.core import constants
from say2me.core.database import get_db
from say2me.schemas.common import ErrorResponse, ValidationErrorResponse
from say2me.schemas.message import MessageCreate, MessageCreateResponse, MessageListResponse, MessageOut
from say2me.services.message_service import list_messages, post_message

router = APIRouter(prefix="/messages", tags=["messages"])

# page는 문자열로 받아 서비스에서 해석 (숫자가 아니면 1페이지)
PageQuery = Query(None, description="1부터 시작하는 페이지 번호")


@router.get("", response_model=MessageListResponse)
async def list_global_messages(
    page: Optional[str] = PageQuery,
    db: AsyncSession = Depends(get_db),
):
    messages = await list_messages(db, page=page)
    return MessageListResponse(data=[MessageOut.model_validate(m) for m in messages])


@router.post(
    "",
    response_model=MessageCreateResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ValidationErrorResponse}},
)
async def post_global_message(
    body: MessageCreate,
    db: AsyncSession = Depends(get_db),
):
    message = await post_message(db, body.text)
    return MessageCreateResponse(data=MessageOut.model_validate(message), message=constants.MSG_MESSAGE_SAVED)


@router.get("/{user_id}", response_model=MessageListResponse)
async def list_page_messages(
    user_id: str,
    page: Optional[str] = PageQuery,
    db: AsyncSession = Depends(get_db),
):
    """
    특정 페이지(유저)가 받은 메시지를 최신순으로 조회합니다.
    """
    messages = await list_messages(db, user_id=user_id, page=page)
    return MessageListResponse(data=[MessageOut.model_validate(m) for m in messages])


@router.post(
    "/{user_id}",
    response_model=MessageCreateResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ValidationErrorResponse}, 404: {"model": ErrorResponse}},
)
async def post_page_message(
    user_id: str,
    body: MessageCreate,
    db: AsyncSession = Depends(get_db),
):
    message = await post_message(db, body.text, user_id=user_id)
    return MessageCreateResponse(data=MessageOut.model_validate(message), message=constants.MSG_MESSAGE_SAVED)
