from .report_store import (
    ReportStore,
    ReportFilters,
    new_report_id,
    is_valid_report_id,
)

__all__ = ['ReportStore', 'ReportFilters', 'new_report_id', 'is_valid_report_id']
