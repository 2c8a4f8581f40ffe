from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from say2me.core import constants
from say2me.core.database import get_db
from say2me.schemas.common import ErrorResponse, ValidationErrorResponse
from say2me.schemas.page import PageCreate, PageCreateResponse, PageOut, PageResponse
from say2me.services.page_service import create_page, get_page

router = APIRouter(prefix="/pages", tags=["pages"])


@router.post(
    "",
    response_model=PageCreateResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ValidationErrorResponse}},
)
async def create_page_endpoint(
    body: Optional[PageCreate] = None,
    db: AsyncSession = Depends(get_db),
):
    """
    새 페이지를 만듭니다. username을 생략하면 랜덤 닉네임이 배정됩니다.
    """
    created = await create_page(db, body.username if body else None)
    return PageCreateResponse(data=created, message=constants.MSG_PAGE_CREATED)


@router.get("/{username}", response_model=PageResponse, responses={404: {"model": ErrorResponse}})
async def get_page_endpoint(
    username: str,
    db: AsyncSession = Depends(get_db),
):
    user = await get_page(db, username)
    return PageResponse(data=PageOut.model_validate(user))
