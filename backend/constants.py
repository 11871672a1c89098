"""
Centralized Constants - SINGLE SOURCE OF TRUTH

Status values, severity scales, category colours and the numeric policies
shared by every HSSE domain aggregator are defined here and imported elsewhere.

DO NOT duplicate these definitions in other files.

Reference: HSSE record domains
- Hazards (and their mitigation actions)
- Incidents (frequency / lost-time rates)
- PPE, Training, Inspections, Work Permits
- Waste, Security, Health, Audits
"""

from typing import Optional

# =============================================================================
# REPORT CONTRACT
# =============================================================================

# Bump whenever the CompositeReport shape changes. Folded into every cache key
# so a new deployment never deserialises a structurally stale report.
HSSE_REPORT_SCHEMA_VERSION = "v2"

# Slot name -> domain tier. Trend slots only run when include_trends is set.
TIER_CORE = "core"
TIER_EXTENDED = "extended"
TIER_TREND = "trend"

# =============================================================================
# RATE POLICIES
# =============================================================================

# Default when the denominator is zero.
# Incidence / progress rates (completion, resolution, share-of-total): no
# records means nothing was achieved -> 0.
# Compliance rates: no records means nothing was violated -> 100.
INCIDENCE_EMPTY_RATE = 0.0
COMPLIANCE_EMPTY_RATE = 100.0

RATE_DECIMALS = 2

# OSHA-style normalisation base: 100 full-time workers x 2000 hours.
FREQUENCY_RATE_BASE = 200000

# Approximate annual exposure hours when no timesheet source exists
# (2080 hours x 100 workers).
DEFAULT_ANNUAL_WORKING_HOURS = 2080 * 100

# =============================================================================
# TREND / RANKING WINDOWS
# =============================================================================

TREND_YEARS = 6  # current year and the preceding 5
TOP_UNSAFE_CONDITIONS_LIMIT = 10
NON_CONFORMANCE_LIMIT = 5
TOP_RESPONSIBLE_ACTIONS_LIMIT = 5
CERTIFICATION_EXPIRY_WINDOW_DAYS = 30

# =============================================================================
# HAZARDS
# =============================================================================

HAZARD_SEVERITY_NEGLIGIBLE = "Negligible"
HAZARD_SEVERITY_MINOR = "Minor"
HAZARD_SEVERITY_MODERATE = "Moderate"
HAZARD_SEVERITY_MAJOR = "Major"
HAZARD_SEVERITY_CATASTROPHIC = "Catastrophic"

# Ordered scale, lowest first
HAZARD_SEVERITY_SCALE = [
    HAZARD_SEVERITY_NEGLIGIBLE,
    HAZARD_SEVERITY_MINOR,
    HAZARD_SEVERITY_MODERATE,
    HAZARD_SEVERITY_MAJOR,
    HAZARD_SEVERITY_CATASTROPHIC,
]

# "Accident" = severity >= Major
ACCIDENT_SEVERITIES = [HAZARD_SEVERITY_MAJOR, HAZARD_SEVERITY_CATASTROPHIC]

HAZARD_STATUS_REPORTED = "Reported"
HAZARD_STATUS_UNDER_ASSESSMENT = "UnderAssessment"
HAZARD_STATUS_ACTION_REQUIRED = "ActionRequired"
HAZARD_STATUS_MITIGATING = "Mitigating"
HAZARD_STATUS_RESOLVED = "Resolved"
HAZARD_STATUS_CLOSED = "Closed"

HAZARD_CLOSED_STATUSES = [HAZARD_STATUS_RESOLVED, HAZARD_STATUS_CLOSED]

NEAR_MISS_MARKER = "near miss"
UNKNOWN_CATEGORY = "Unknown"

MITIGATION_STATUS_COMPLETED = "Completed"

# Category -> chart colour. Lookup is case-insensitive.
CATEGORY_COLORS = {
    "biological": "#FF6B6B",
    "chemical": "#4ECDC4",
    "physical": "#45B7D1",
    "mechanical": "#96CEB4",
    "ergonomic": "#FFEAA7",
    "psychosocial": "#DDA0DD",
    "environmental": "#98FB98",
}
DEFAULT_CATEGORY_COLOR = "#FFA07A"

# Monthly hazard volume -> risk level
RISK_LEVEL_HIGH_THRESHOLD = 10
RISK_LEVEL_MEDIUM_THRESHOLD = 5

NON_CONFORMANCE_DESCRIPTION = "Hazard-related non-conformances"


def get_category_color(category: Optional[str]) -> str:
    """
    Get the chart colour for a hazard category.

    Unrecognised (or missing) categories fall back to DEFAULT_CATEGORY_COLOR.
    """
    if not category:
        return DEFAULT_CATEGORY_COLOR
    return CATEGORY_COLORS.get(category.strip().lower(), DEFAULT_CATEGORY_COLOR)


def get_severity_rank(severity: Optional[str]) -> int:
    """Position of a severity on HAZARD_SEVERITY_SCALE (0 if unknown)."""
    try:
        return HAZARD_SEVERITY_SCALE.index(severity) + 1
    except ValueError:
        return 0


def classify_risk_level(hazard_count: int) -> str:
    """Risk level for one month of hazard volume."""
    if hazard_count > RISK_LEVEL_HIGH_THRESHOLD:
        return "High"
    if hazard_count > RISK_LEVEL_MEDIUM_THRESHOLD:
        return "Medium"
    return "Low"


# =============================================================================
# INCIDENTS
# =============================================================================

INJURY_TYPE_NONE = "None"
RELATED_TO_WORK = "Work"
RELATED_TO_STUDY = "Study"

# Total IFR -> (performance level, colour code)
PERFORMANCE_BANDS = [
    (2, "Excellent", "Green"),
    (5, "Good", "LightGreen"),
]
PERFORMANCE_FALLBACK = ("Average", "Yellow")


def classify_performance(total_ifr: float) -> tuple:
    """Map a total incident frequency rate to (level, colour)."""
    for upper, level, color in PERFORMANCE_BANDS:
        if total_ifr < upper:
            return level, color
    return PERFORMANCE_FALLBACK


# =============================================================================
# PPE
# =============================================================================

PPE_STATUS_ASSIGNED = "Assigned"
PPE_CONDITION_DAMAGED = "Damaged"
PPE_CONDITION_EXPIRED = "Expired"
PPE_NON_COMPLIANT_CONDITIONS = [PPE_CONDITION_DAMAGED, PPE_CONDITION_EXPIRED]

# =============================================================================
# TRAINING
# =============================================================================

TRAINING_CATEGORY_SAFETY = "SafetyTraining"
SAFETY_TRAINING_TITLE_MARKERS = ["safety", "hse"]
PARTICIPANT_STATUS_COMPLETED = "Completed"

# =============================================================================
# INSPECTIONS / AUDITS (shared finding scale)
# =============================================================================

INSPECTION_TYPE_SAFETY = "Safety"
AUDIT_TYPE_SAFETY = "Safety"

FINDING_SEVERITY_CRITICAL = "Critical"
FINDING_SEVERITY_MAJOR = "Major"
FINDING_SEVERITY_MINOR = "Minor"
FINDING_SEVERITY_OBSERVATION = "Observation"

FINDING_CLOSED_STATUSES = ["Closed", "Verified"]

AUDIT_MAJOR_PENALTY = 10
AUDIT_MINOR_PENALTY = 5

# =============================================================================
# WORK PERMITS
# =============================================================================

PERMIT_STATUS_APPROVED = "Approved"
PERMIT_STATUS_IN_PROGRESS = "InProgress"
PERMIT_STATUS_SUSPENDED = "Suspended"
PERMIT_ACTIVE_STATUSES = [PERMIT_STATUS_APPROVED, PERMIT_STATUS_IN_PROGRESS]

PERMIT_TYPE_HOT_WORK = "HotWork"
PERMIT_TYPE_CONFINED_SPACE = "ConfinedSpace"

# =============================================================================
# WASTE
# =============================================================================

WASTE_CATEGORY_HAZARDOUS = "Hazardous"
WASTE_DISPOSAL_PENDING = "Pending"
WASTE_HAZARDOUS_PENALTY = 10

# =============================================================================
# SECURITY
# =============================================================================

SECURITY_TYPE_PHYSICAL = "PhysicalSecurity"
SECURITY_TYPE_INFORMATION = "InformationSecurity"
SECURITY_VIOLATION_TYPES = ["AccessViolation", "PolicyViolation"]
SECURITY_RESOLVED_STATUSES = ["Resolved", "Closed"]
SECURITY_SEVERITY_CRITICAL = "Critical"

# =============================================================================
# HEALTH
# =============================================================================

HEALTH_TYPE_INJURY = "Injury"
HEALTH_TYPE_ILLNESS = "Illness"
HEALTH_TYPE_SURVEILLANCE = "MedicalSurveillance"
HEALTH_TYPE_EMERGENCY = "EmergencyResponse"
OCCUPATIONAL_HEALTH_TYPES = [HEALTH_TYPE_INJURY, HEALTH_TYPE_ILLNESS]

# =============================================================================
# ROLLUPS
# =============================================================================

ROLLUP_PERIOD_MONTH = "month"
ROLLUP_PERIOD_YEAR = "year"

ROLLUP_DOMAIN_HAZARDS = "hazards"
ROLLUP_DOMAIN_SECURITY = "security"
ROLLUP_DOMAIN_WASTE = "waste"
