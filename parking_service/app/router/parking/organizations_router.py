from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from shared.core.database import get_parking_db as get_db
from shared.core.schemas import CommonQueryParams
from ...crud.parking import inventory_crud as crud
from ...schemas.parking.organization_schemas import OrganizationCreate, OrganizationOut, OrganizationsResponse

router = APIRouter(
    prefix="/api/organizations",
    tags=["organizations"]
)


@router.get("/all", response_model=OrganizationsResponse)
def get_organizations(
    params: CommonQueryParams = Depends(),
    db: Session = Depends(get_db)
):
    return crud.list_organizations(db, params.skip, params.limit)


@router.get("/{organization_id}", response_model=OrganizationOut)
def get_organization(organization_id: int, db: Session = Depends(get_db)):
    return crud.get_organization(db, organization_id)


@router.post("/", response_model=OrganizationOut)
def register_organization(
    organization: OrganizationCreate,
    db: Session = Depends(get_db)
):
    return crud.register_organization(db, organization)
