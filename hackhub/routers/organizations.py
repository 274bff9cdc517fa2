"""Organizations router — hosts that hackathons can be published under."""

import logging
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hackhub.database import get_db
from hackhub.errors import NotFound
from hackhub.models.organization import Organization
from hackhub.models.user import User
from hackhub.routers.auth import require_user
from hackhub.schemas.hackathon import OrganizationCreate, OrganizationOut
from hackhub.services.policy import Action, authorize, role_relations
from hackhub.utils.slug import unique_slug

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/organizations", tags=["organizations"])


@router.post("", response_model=OrganizationOut, status_code=status.HTTP_201_CREATED)
async def create_organization(
    data: OrganizationCreate,
    current_user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    authorize(Action.CREATE_HACKATHON, role_relations(current_user))
    organization = Organization(
        name=data.name,
        description=data.description,
        owner_id=current_user.id,
        slug=await unique_slug(db, Organization, data.name),
    )
    db.add(organization)
    await db.commit()
    await db.refresh(organization)
    logger.info("Organization %s created by user %s", organization.id, current_user.id)
    return organization


@router.get("", response_model=List[OrganizationOut])
async def list_organizations(db: AsyncSession = Depends(get_db)):
    result = await db.execute(select(Organization).order_by(Organization.name))
    return result.scalars().all()


@router.get("/{organization_id}", response_model=OrganizationOut)
async def get_organization(organization_id: int, db: AsyncSession = Depends(get_db)):
    result = await db.execute(select(Organization).where(Organization.id == organization_id))
    organization = result.scalar_one_or_none()
    if not organization:
        raise NotFound("Organization not found.")
    return organization
