# Teacher CRUD views
from .teachers import (
    index,
    teacher_create,
    teacher_edit,
    teacher_detail,
    teacher_delete,
)

# Account management views
from .accounts import (
    create_account,
    deactivate_account,
)

__all__ = [
    # Teachers
    'index',
    'teacher_create',
    'teacher_edit',
    'teacher_detail',
    'teacher_delete',
    # Accounts
    'create_account',
    'deactivate_account',
]
