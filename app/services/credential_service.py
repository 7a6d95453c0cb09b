"""
Credential CRUD for licenses, insurance certificates and certifications.

Every create, update and delete is audited as entity "credential" with the
credential type and technician id in the metadata.
"""

import logging
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from app.models.credential import ContractorCertification, ContractorInsurance, ContractorLicense
from app.models.technician import Technician
from app.services.audit_service import diff_changes, log_credential_change

logger = logging.getLogger(__name__)

CREDENTIAL_MODELS = {
    "license": ContractorLicense,
    "insurance": ContractorInsurance,
    "certification": ContractorCertification,
}


class CredentialError(Exception):
    """Credential could not be saved (bad type, unknown technician)"""
    pass


class CredentialNotFoundError(Exception):
    pass


def _model_for(credential_type: str):
    model = CREDENTIAL_MODELS.get(credential_type)
    if model is None:
        raise CredentialError(f"Unknown credential type: {credential_type}")
    return model


def get_technician_for_org(db: Session, technician_id: UUID, org_id: UUID) -> Optional[Technician]:
    """A technician the organization may manage credentials for."""
    return (
        db.query(Technician)
        .filter(Technician.id == technician_id, Technician.org_id == org_id)
        .first()
    )


def create_credential(
    db: Session,
    credential_type: str,
    data: Dict[str, Any],
    actor_id: Optional[UUID] = None,
    org_id: Optional[UUID] = None,
):
    model = _model_for(credential_type)

    technician = db.query(Technician).filter(Technician.id == data["technician_id"]).first()
    if technician is None:
        raise CredentialError(f"Technician {data['technician_id']} not found")

    credential = model(**data)
    db.add(credential)
    db.flush()

    log_credential_change(
        db, credential_type, credential.id, "created", actor_id, technician.id, org_id=org_id,
    )
    db.commit()
    db.refresh(credential)

    logger.info(f"Created {credential_type} {credential.id} for technician {technician.id}")
    return credential


def get_credential(db: Session, credential_type: str, credential_id: UUID):
    model = _model_for(credential_type)
    credential = db.query(model).filter(model.id == credential_id).first()
    if credential is None:
        raise CredentialNotFoundError(f"{credential_type.capitalize()} {credential_id} not found")
    return credential


def update_credential(
    db: Session,
    credential_type: str,
    credential_id: UUID,
    updates: Dict[str, Any],
    actor_id: Optional[UUID] = None,
    org_id: Optional[UUID] = None,
):
    """
    Apply updates and audit the fields that actually changed.

    Updating with no effective change writes no audit entry.
    """
    credential = get_credential(db, credential_type, credential_id)

    changes = diff_changes(credential, updates)
    if not changes:
        return credential

    for field, (_, new_value) in changes.items():
        setattr(credential, field, new_value)

    log_credential_change(
        db, credential_type, credential.id, "updated", actor_id, credential.technician_id,
        org_id=org_id, changes=changes,
    )
    db.commit()
    db.refresh(credential)
    return credential


def delete_credential(
    db: Session,
    credential_type: str,
    credential_id: UUID,
    actor_id: Optional[UUID] = None,
    org_id: Optional[UUID] = None,
) -> None:
    credential = get_credential(db, credential_type, credential_id)
    technician_id = credential.technician_id

    db.delete(credential)
    log_credential_change(
        db, credential_type, credential_id, "deleted", actor_id, technician_id, org_id=org_id,
    )
    db.commit()
    logger.info(f"Deleted {credential_type} {credential_id}")


def list_credentials(db: Session, credential_type: str, technician_id: UUID) -> List:
    model = _model_for(credential_type)
    return (
        db.query(model)
        .filter(model.technician_id == technician_id)
        .order_by(model.expiration_date.asc())
        .all()
    )


def get_all_credentials(db: Session, technician_id: UUID) -> Dict[str, List]:
    return {
        "licenses": list_credentials(db, "license", technician_id),
        "insurance": list_credentials(db, "insurance", technician_id),
        "certifications": list_credentials(db, "certification", technician_id),
    }
