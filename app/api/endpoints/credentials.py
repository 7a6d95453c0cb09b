"""
Contractor credential endpoints (licenses, insurance, certifications).

Credentials can be read for any technician visible to the organization and
changed only for technicians it owns. Every change is audited.
"""

import logging
from typing import Dict, List
from uuid import UUID
from fastapi import APIRouter, HTTPException, Depends, Query, Response, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.deps import get_current_user, get_current_org_id
from app.models.user import User
from app.schemas.credential import (
    CertificationCreate,
    CertificationResponse,
    CertificationUpdate,
    InsuranceCreate,
    InsuranceResponse,
    InsuranceUpdate,
    LicenseCreate,
    LicenseResponse,
    LicenseUpdate,
)
from app.services.credential_service import (
    CredentialError,
    CredentialNotFoundError,
    create_credential,
    delete_credential,
    get_credential,
    get_technician_for_org,
    list_credentials,
    update_credential,
)
from app.services.technician_service import get_technician

router = APIRouter(prefix="/credentials", tags=["Credentials"])
logger = logging.getLogger(__name__)

# URL segment -> (credential type, response schema)
CREDENTIAL_KINDS: Dict[str, tuple] = {
    "licenses": ("license", LicenseResponse),
    "insurance": ("insurance", InsuranceResponse),
    "certifications": ("certification", CertificationResponse),
}


def _kind(kind: str) -> tuple:
    if kind not in CREDENTIAL_KINDS:
        raise HTTPException(status_code=404, detail=f"Unknown credential type: {kind}")
    return CREDENTIAL_KINDS[kind]


def _owned_technician_or_404(db: Session, technician_id: UUID, org_id: UUID):
    technician = get_technician_for_org(db, technician_id, org_id)
    if technician is None:
        raise HTTPException(status_code=404, detail="Technician not found")
    return technician


def _credential_or_404(db: Session, credential_type: str, credential_id: UUID, org_id: UUID, owned: bool):
    try:
        credential = get_credential(db, credential_type, credential_id)
    except CredentialNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    if owned:
        technician = get_technician_for_org(db, credential.technician_id, org_id)
    else:
        technician = get_technician(db, credential.technician_id, org_id)
    if technician is None:
        raise HTTPException(status_code=404, detail=f"{credential_type.capitalize()} {credential_id} not found")
    return credential


def _create(db: Session, credential_type: str, request: BaseModel, user: User, org_id: UUID):
    _owned_technician_or_404(db, request.technician_id, org_id)
    try:
        return create_credential(db, credential_type, request.model_dump(), actor_id=user.id, org_id=org_id)
    except CredentialError as e:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


def _update(db: Session, credential_type: str, credential_id: UUID, request: BaseModel, user: User, org_id: UUID):
    _credential_or_404(db, credential_type, credential_id, org_id, owned=True)
    return update_credential(
        db, credential_type, credential_id, request.model_dump(exclude_unset=True),
        actor_id=user.id, org_id=org_id,
    )


@router.post("/licenses", status_code=201, response_model=LicenseResponse)
def create_license(
    request: LicenseCreate,
    current_user: User = Depends(get_current_user),
    org_id: UUID = Depends(get_current_org_id),
    db: Session = Depends(get_db)
):
    """Add a license to a technician of the organization."""
    return _create(db, "license", request, current_user, org_id)


@router.patch("/licenses/{credential_id}", response_model=LicenseResponse)
def update_license(
    credential_id: UUID,
    request: LicenseUpdate,
    current_user: User = Depends(get_current_user),
    org_id: UUID = Depends(get_current_org_id),
    db: Session = Depends(get_db)
):
    return _update(db, "license", credential_id, request, current_user, org_id)


@router.post("/insurance", status_code=201, response_model=InsuranceResponse)
def create_insurance(
    request: InsuranceCreate,
    current_user: User = Depends(get_current_user),
    org_id: UUID = Depends(get_current_org_id),
    db: Session = Depends(get_db)
):
    """Add an insurance certificate (COI) to a technician of the organization."""
    return _create(db, "insurance", request, current_user, org_id)


@router.patch("/insurance/{credential_id}", response_model=InsuranceResponse)
def update_insurance(
    credential_id: UUID,
    request: InsuranceUpdate,
    current_user: User = Depends(get_current_user),
    org_id: UUID = Depends(get_current_org_id),
    db: Session = Depends(get_db)
):
    return _update(db, "insurance", credential_id, request, current_user, org_id)


@router.post("/certifications", status_code=201, response_model=CertificationResponse)
def create_certification(
    request: CertificationCreate,
    current_user: User = Depends(get_current_user),
    org_id: UUID = Depends(get_current_org_id),
    db: Session = Depends(get_db)
):
    """Add a trade certification to a technician of the organization."""
    return _create(db, "certification", request, current_user, org_id)


@router.patch("/certifications/{credential_id}", response_model=CertificationResponse)
def update_certification(
    credential_id: UUID,
    request: CertificationUpdate,
    current_user: User = Depends(get_current_user),
    org_id: UUID = Depends(get_current_org_id),
    db: Session = Depends(get_db)
):
    return _update(db, "certification", credential_id, request, current_user, org_id)


@router.get("/{kind}")
def list_technician_credentials(
    kind: str,
    technician_id: UUID = Query(...),
    org_id: UUID = Depends(get_current_org_id),
    db: Session = Depends(get_db)
) -> List[dict]:
    """Credentials of one kind for a technician, soonest expiration first."""
    credential_type, schema = _kind(kind)
    if get_technician(db, technician_id, org_id) is None:
        raise HTTPException(status_code=404, detail="Technician not found")
    return [
        schema.model_validate(credential).model_dump(mode="json")
        for credential in list_credentials(db, credential_type, technician_id)
    ]


@router.get("/{kind}/{credential_id}")
def get_single_credential(
    kind: str,
    credential_id: UUID,
    org_id: UUID = Depends(get_current_org_id),
    db: Session = Depends(get_db)
) -> dict:
    credential_type, schema = _kind(kind)
    credential = _credential_or_404(db, credential_type, credential_id, org_id, owned=False)
    return schema.model_validate(credential).model_dump(mode="json")


@router.delete("/{kind}/{credential_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_credential(
    kind: str,
    credential_id: UUID,
    current_user: User = Depends(get_current_user),
    org_id: UUID = Depends(get_current_org_id),
    db: Session = Depends(get_db)
):
    """Delete a credential of a technician the organization owns."""
    credential_type, _ = _kind(kind)
    _credential_or_404(db, credential_type, credential_id, org_id, owned=True)
    delete_credential(db, credential_type, credential_id, actor_id=current_user.id, org_id=org_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
