"""
Database models package.
"""

from app.models.user import User
from app.models.organization import Organization, OrgMembership, MembershipRole
from app.models.job import Job, JobStatus, JobUrgency, JobCandidate
from app.models.technician import Technician
from app.models.credential import ContractorLicense, ContractorInsurance, ContractorCertification, InsuranceType
from app.models.compliance import CompliancePolicy, CompliancePolicyItem
from app.models.lead import LicenseRecord, ColdLead, OutreachUnsubscribe
from app.models.outreach import WorkOrderOutreach, WorkOrderRecipient, OutreachStatus, DispatchMethod
from app.models.sla import SLATimer, SLAAlert, SLAStage, SLAAlertType
from app.models.rating import JobRating
from app.models.audit_log import AuditLog

__all__ = [
    "User", "Organization", "OrgMembership", "MembershipRole",
    "Job", "JobStatus", "JobUrgency", "JobCandidate",
    "Technician",
    "ContractorLicense", "ContractorInsurance", "ContractorCertification", "InsuranceType",
    "CompliancePolicy", "CompliancePolicyItem",
    "LicenseRecord", "ColdLead", "OutreachUnsubscribe",
    "WorkOrderOutreach", "WorkOrderRecipient", "OutreachStatus", "DispatchMethod",
    "SLATimer", "SLAAlert", "SLAStage", "SLAAlertType",
    "JobRating",
    "AuditLog",
]
