# Dashboard
from .main import index

# Mark distributions
from .setup import (
    distributions,
    distribution_create,
    distribution_edit,
    distribution_delete,
    distribution_load_defaults,
)

# Score entry
from .scores import (
    score_entry,
    score_sheet,
    score_audit_history,
)

# Bulk import / export
from .import_export import (
    score_import_template,
    score_import_upload,
    score_import_confirm,
    results_export,
)

# Results, promotion and locks
from .calculations import (
    class_results,
    promotion,
    promotion_override,
    promotion_finalize,
    toggle_result_lock,
    result_lock_edit,
    result_lock_status,
)

# Report cards and traits
from .reports import (
    report_cards,
    student_report,
    download_report_pdf,
    export_class_reports,
    student_traits,
)

__all__ = [
    'index',
    # Distributions
    'distributions',
    'distribution_create',
    'distribution_edit',
    'distribution_delete',
    'distribution_load_defaults',
    # Scores
    'score_entry',
    'score_sheet',
    'score_audit_history',
    # Import / export
    'score_import_template',
    'score_import_upload',
    'score_import_confirm',
    'results_export',
    # Results
    'class_results',
    'promotion',
    'promotion_override',
    'promotion_finalize',
    'toggle_result_lock',
    'result_lock_edit',
    'result_lock_status',
    # Reports
    'report_cards',
    'student_report',
    'download_report_pdf',
    'export_class_reports',
    'student_traits',
]
