"""
payroll_services -- orchestration over the payroll engines.

Looks up jurisdiction tables and runs the computation pipeline for
previews, monthly runs and bonus runs.
"""

from payroll_services.preview import PayrollPreviewService, PayrollRequest

__all__ = ["PayrollPreviewService", "PayrollRequest"]
