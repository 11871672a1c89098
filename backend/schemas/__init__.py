# API Schema Contract Package
from .hsse_report import (
    CompositeReport,
    DomainStatistics,
    DomainUnavailable,
    ReportFilter,
)

__all__ = [
    'CompositeReport',
    'DomainStatistics',
    'DomainUnavailable',
    'ReportFilter',
]
