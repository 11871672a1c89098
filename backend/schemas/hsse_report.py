"""
HSSE composite report contract.

Every domain block is a frozen pydantic model tagged with `status`:
    "ok"          -> the block carries real statistics
    "unavailable" -> the block's aggregator failed; `reason` says why

Each report slot is a discriminated union of the two, so one failed domain
never changes the overall report shape.

JSON is camelCase (alias generator); Python attributes stay snake_case.
The same JSON is what the cache stores, so `to_json_bytes()` /
`from_json_bytes()` must round-trip exactly.
"""

from datetime import date, datetime
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, NonNegativeInt
from pydantic.alias_generators import to_camel

from constants import HSSE_REPORT_SCHEMA_VERSION

Percentage = Annotated[float, Field(ge=0, le=100)]
NonNegativeRate = Annotated[float, Field(ge=0)]


class ReportModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra='forbid',  # unknown fields in a cached payload = stale shape = miss
    )


class DomainStatistics(ReportModel):
    """Base for every successfully computed domain block."""
    status: Literal['ok'] = 'ok'
    source: Literal['live', 'rollup'] = 'live'


class DomainUnavailable(ReportModel):
    """Marker placed in a slot whose aggregator failed."""
    status: Literal['unavailable'] = 'unavailable'
    reason: str


# =============================================================================
# CORE HAZARD BLOCKS
# =============================================================================

class HazardStatistics(DomainStatistics):
    total_hazards: NonNegativeInt = 0
    near_miss: NonNegativeInt = 0
    accidents: NonNegativeInt = 0
    open_cases: NonNegativeInt = 0
    closed_cases: NonNegativeInt = 0
    completion_rate: Percentage = 0.0


class MonthlyHazardRow(ReportModel):
    year: int
    month: int
    month_name: str
    hazard_count: NonNegativeInt = 0
    near_miss_count: NonNegativeInt = 0
    accident_count: NonNegativeInt = 0
    risk_level: str


class MonthlyHazardTrend(DomainStatistics):
    items: List[MonthlyHazardRow] = Field(default_factory=list)


class HazardClassificationRow(ReportModel):
    type: str
    count: NonNegativeInt
    percentage: Percentage
    color: str


class HazardClassificationBreakdown(DomainStatistics):
    total: NonNegativeInt = 0
    items: List[HazardClassificationRow] = Field(default_factory=list)


class NonConformanceRow(ReportModel):
    category: str
    count: NonNegativeInt
    description: str
    location: str


class NonConformanceCriteria(DomainStatistics):
    items: List[NonConformanceRow] = Field(default_factory=list)


class UnsafeConditionRow(ReportModel):
    rank: int = Field(ge=1)
    description: str
    count: NonNegativeInt
    percentage: Percentage
    severity: str


class TopUnsafeConditions(DomainStatistics):
    items: List[UnsafeConditionRow] = Field(default_factory=list)


class ResponsibleActionItem(ReportModel):
    id: int
    description: str
    status: str
    due_date: Optional[datetime] = None
    assigned_to: Optional[str] = None
    priority: Optional[str] = None


class ResponsibleActionSummary(DomainStatistics):
    total_actions: NonNegativeInt = 0
    open_actions: NonNegativeInt = 0
    closed_actions: NonNegativeInt = 0
    overdue_actions: NonNegativeInt = 0
    completion_rate: Percentage = 0.0
    top_actions: List[ResponsibleActionItem] = Field(default_factory=list)


class HazardCaseStatus(DomainStatistics):
    total_cases: NonNegativeInt = 0
    open_cases: NonNegativeInt = 0
    closed_cases: NonNegativeInt = 0
    open_percentage: Percentage = 0.0
    closed_percentage: Percentage = 0.0
    start_date: date
    end_date: date


# =============================================================================
# EXTENDED MODULE BLOCKS
# =============================================================================

class PPECategoryCompliance(ReportModel):
    category: str
    total_assigned: NonNegativeInt
    compliant_count: NonNegativeInt
    compliance_rate: Percentage


class PPECompliance(DomainStatistics):
    total_ppe_assignments: NonNegativeInt = 0
    compliance_count: NonNegativeInt = 0
    compliance_rate: Percentage = 0.0
    overdue_inspections: NonNegativeInt = 0
    non_compliant_users: NonNegativeInt = 0
    defective_equipment: NonNegativeInt = 0
    category_compliance: List[PPECategoryCompliance] = Field(default_factory=list)


class TrainingSafety(DomainStatistics):
    total_safety_trainings: NonNegativeInt = 0
    completed_trainings: NonNegativeInt = 0
    completion_rate: Percentage = 0.0
    overdue_trainings: NonNegativeInt = 0
    certification_expiries: NonNegativeInt = 0
    mandatory_trainings: NonNegativeInt = 0
    mandatory_completed: NonNegativeInt = 0
    mandatory_completion_rate: Percentage = 0.0


class InspectionSafety(DomainStatistics):
    total_inspections: NonNegativeInt = 0
    safety_inspections: NonNegativeInt = 0
    total_findings: NonNegativeInt = 0
    critical_findings: NonNegativeInt = 0
    high_priority_findings: NonNegativeInt = 0
    corrective_actions: NonNegativeInt = 0
    completed_actions: NonNegativeInt = 0
    correction_rate: Percentage = 0.0
    inspection_compliance_rate: Percentage = 100.0


class PermitSafety(DomainStatistics):
    total_active_permits: NonNegativeInt = 0
    safety_compliant_permits: NonNegativeInt = 0
    safety_compliance_rate: Percentage = 100.0
    overdue_permits: NonNegativeInt = 0
    safety_violations: NonNegativeInt = 0
    hot_work_permits: NonNegativeInt = 0
    confined_space_permits: NonNegativeInt = 0
    completed_safety_inductions: NonNegativeInt = 0


class WasteEnvironmental(DomainStatistics):
    total_waste_reports: NonNegativeInt = 0
    environmental_incidents: NonNegativeInt = 0
    compliance_issues: NonNegativeInt = 0
    waste_compliance_rate: Percentage = 100.0
    hazardous_waste_reports: NonNegativeInt = 0
    waste_reduction_initiatives: NonNegativeInt = 0
    environmental_impact_score: Percentage = 100.0


class SecurityIncidents(DomainStatistics):
    total_security_incidents: NonNegativeInt = 0
    physical_security_incidents: NonNegativeInt = 0
    data_security_incidents: NonNegativeInt = 0
    resolved_incidents: NonNegativeInt = 0
    resolution_rate: Percentage = 0.0
    critical_security_incidents: NonNegativeInt = 0
    security_violations: NonNegativeInt = 0
    security_compliance_rate: Percentage = 100.0


class HealthMonitoring(DomainStatistics):
    total_health_incidents: NonNegativeInt = 0
    occupational_health_cases: NonNegativeInt = 0
    health_surveillance_records: NonNegativeInt = 0
    medical_emergencies: NonNegativeInt = 0
    health_compliance_issues: NonNegativeInt = 0
    health_compliance_rate: Percentage = 100.0
    preventive_measures_implemented: NonNegativeInt = 0


class AuditFindings(DomainStatistics):
    total_audits: NonNegativeInt = 0
    safety_audits: NonNegativeInt = 0
    total_findings: NonNegativeInt = 0
    major_non_conformities: NonNegativeInt = 0
    minor_non_conformities: NonNegativeInt = 0
    corrective_actions: NonNegativeInt = 0
    completed_actions: NonNegativeInt = 0
    action_completion_rate: Percentage = 0.0
    audit_compliance_score: Percentage = 100.0


# =============================================================================
# TREND BLOCKS (only when include_trends)
# =============================================================================

class FrequencyRateRow(ReportModel):
    year: int
    incident_count: NonNegativeInt = 0
    lost_work_days: NonNegativeInt = 0
    total_recordable_incident_frequency_rate: NonNegativeRate = 0.0  # TRIFR
    total_recordable_severity_rate: NonNegativeRate = 0.0  # TRSR
    study_related_ifr: NonNegativeRate = 0.0
    work_related_ifr: NonNegativeRate = 0.0
    study_related_sr: NonNegativeRate = 0.0
    work_related_sr: NonNegativeRate = 0.0


class FrequencyRateSeries(DomainStatistics):
    items: List[FrequencyRateRow] = Field(default_factory=list)


class SafetyPerformanceRow(ReportModel):
    year: int
    near_miss: NonNegativeInt = 0
    hazards: NonNegativeInt = 0
    accidents: NonNegativeInt = 0
    ifr_study_related: NonNegativeRate = 0.0
    ifr_work_related: NonNegativeRate = 0.0
    total_ifr: NonNegativeRate = 0.0
    performance_level: str
    color_code: str


class SafetyPerformanceSeries(DomainStatistics):
    items: List[SafetyPerformanceRow] = Field(default_factory=list)


class LostTimeInjury(DomainStatistics):
    year: int
    total_lti_cases: NonNegativeInt = 0
    study_related_cases: NonNegativeInt = 0
    work_related_cases: NonNegativeInt = 0
    lti_study_related_rate: NonNegativeRate = 0.0
    lti_work_related_rate: NonNegativeRate = 0.0
    total_lti_case_rate: NonNegativeRate = 0.0


# =============================================================================
# COMPOSITE
# =============================================================================

def _slot(model):
    return Annotated[Union[model, DomainUnavailable], Field(discriminator='status')]


class ReportFilter(ReportModel):
    start_date: date
    end_date: date
    department: Optional[str] = None
    location: Optional[str] = None
    include_trends: bool = True
    include_comparisons: bool = True


class CompositeReport(ReportModel):
    schema_version: str = HSSE_REPORT_SCHEMA_VERSION
    generated_at: datetime
    filter: ReportFilter

    # Core
    hazard_statistics: _slot(HazardStatistics)
    monthly_hazards: _slot(MonthlyHazardTrend)
    hazard_classifications: _slot(HazardClassificationBreakdown)
    non_conformance: _slot(NonConformanceCriteria)
    top_unsafe_conditions: _slot(TopUnsafeConditions)
    responsible_actions: _slot(ResponsibleActionSummary)
    case_status: _slot(HazardCaseStatus)

    # Extended
    ppe_compliance: _slot(PPECompliance)
    training_safety: _slot(TrainingSafety)
    inspection_safety: _slot(InspectionSafety)
    permit_safety: _slot(PermitSafety)
    waste_environmental: _slot(WasteEnvironmental)
    security_incidents: _slot(SecurityIncidents)
    health_monitoring: _slot(HealthMonitoring)
    audit_findings: _slot(AuditFindings)

    # Trends
    frequency_rates: Optional[_slot(FrequencyRateSeries)] = None
    safety_performance: Optional[_slot(SafetyPerformanceSeries)] = None
    lost_time_injury: Optional[_slot(LostTimeInjury)] = None

    def unavailable_slots(self) -> List[str]:
        return [
            name for name in self.slot_names()
            if isinstance(getattr(self, name), DomainUnavailable)
        ]

    @classmethod
    def slot_names(cls) -> List[str]:
        return [name for name in cls.model_fields if name not in ('schema_version', 'generated_at', 'filter')]

    def to_json_bytes(self) -> bytes:
        return self.model_dump_json(by_alias=True).encode('utf-8')

    @classmethod
    def from_json_bytes(cls, raw) -> 'CompositeReport':
        return cls.model_validate_json(raw)

    def to_response(self) -> Dict[str, Any]:
        return self.model_dump(mode='json', by_alias=True)
