# Student CRUD views
from .students import (
    index,
    student_create,
    student_edit,
    student_delete,
    student_detail,
)

# Guardian views
from .guardians import (
    guardian_index,
    guardian_create,
    guardian_edit,
    guardian_delete,
    guardian_detail,
    guardian_link,
    guardian_unlink,
)

# Portal accounts
from .accounts import (
    student_create_account,
    guardian_create_account,
)

# Bulk import views
from .bulk_import import (
    bulk_import,
    bulk_import_confirm,
    bulk_import_template,
)

# Export views
from .export import export_students

__all__ = [
    # Students
    'index',
    'student_create',
    'student_edit',
    'student_delete',
    'student_detail',
    # Guardians
    'guardian_index',
    'guardian_create',
    'guardian_edit',
    'guardian_delete',
    'guardian_detail',
    'guardian_link',
    'guardian_unlink',
    # Accounts
    'student_create_account',
    'guardian_create_account',
    # Bulk import
    'bulk_import',
    'bulk_import_confirm',
    'bulk_import_template',
    # Export
    'export_students',
]
