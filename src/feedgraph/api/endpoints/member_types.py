"""
Read-only REST endpoints for membership tiers.
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ...dbmodels import MEMBER_TYPE_IDS
from ...errors import InputValidationError, NotFoundError
from ...logging import get_logger
from ...registry import MEMBER_TYPE
from ...storage.base import Row, StorageGateway
from ..dependencies import call_gateway, get_gateway

logger = get_logger(__name__)

router = APIRouter()


class MemberTypeResponse(BaseModel):
    """Response model for a membership tier."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str = Field(..., description="Member type identifier (BASIC or BUSINESS)")
    discount: float = Field(..., description="Discount percentage")
    posts_limit_per_month: int = Field(..., description="Monthly post quota")

    @classmethod
    def from_row(cls, row: Row) -> "MemberTypeResponse":
        return cls(
            id=row["id"],
            discount=row["discount"],
            posts_limit_per_month=row["posts_limit_per_month"],
        )


async def _find_member_type(gateway: StorageGateway, member_type_id: str) -> Row:
    if member_type_id not in MEMBER_TYPE_IDS:
        raise InputValidationError(f"Invalid member type: {member_type_id!r}")
    row = await gateway.find_one(MEMBER_TYPE, member_type_id)
    if row is None:
        logger.info("Member type not found", member_type_id=member_type_id)
        raise NotFoundError(MEMBER_TYPE, member_type_id)
    return row


@router.get("", response_model=list[MemberTypeResponse])
async def list_member_types(
    gateway: StorageGateway = Depends(get_gateway),
) -> list[MemberTypeResponse]:
    """List every membership tier."""
    rows = await call_gateway(lambda: gateway.find_many(MEMBER_TYPE))
    return [MemberTypeResponse.from_row(row) for row in rows]


@router.get("/{member_type_id}", response_model=MemberTypeResponse)
async def get_member_type(
    member_type_id: str,
    gateway: StorageGateway = Depends(get_gateway),
) -> MemberTypeResponse:
    """Get one membership tier by its identifier."""
    row = await call_gateway(lambda: _find_member_type(gateway, member_type_id))
    return MemberTypeResponse.from_row(row)
