from .schools import (
    index,
    school_create,
    school_edit,
    school_detail,
    school_delete,
)

__all__ = [
    'index',
    'school_create',
    'school_edit',
    'school_detail',
    'school_delete',
]
