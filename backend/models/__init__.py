"""
Models package - SQLAlchemy models for the HSSE record stores (read-only)
"""
from models.database import db
from models.hazard import Hazard, HazardMitigationAction
from models.incident import Incident
from models.ppe import PPEItem
from models.training import Training, TrainingParticipant
from models.inspection import Inspection, InspectionFinding
from models.work_permit import WorkPermit
from models.waste import WasteReport
from models.security_incident import SecurityIncident
from models.health import HealthIncident
from models.audit import Audit, AuditFinding
from models.rollup import HSSERollup

__all__ = [
    'db',
    'Hazard',
    'HazardMitigationAction',
    'Incident',
    'PPEItem',
    'Training',
    'TrainingParticipant',
    'Inspection',
    'InspectionFinding',
    'WorkPermit',
    'WasteReport',
    'SecurityIncident',
    'HealthIncident',
    'Audit',
    'AuditFinding',
    'HSSERollup',
]
