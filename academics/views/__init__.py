"""
Academics views package.

- dashboard: index
- classes: Class CRUD, detail and subject-teacher allocation
- subjects: Subject CRUD
- exams: Exam CRUD
- attendance: daily registers
"""

from .dashboard import index

from .classes import (
    classes_list,
    class_create,
    class_edit,
    class_delete,
    class_detail,
    class_subject_create,
    class_subject_edit,
    class_subject_delete,
)

from .subjects import (
    subjects_list,
    subject_create,
    subject_edit,
    subject_delete,
)

from .exams import (
    exams_list,
    exam_create,
    exam_edit,
    exam_delete,
)

from .attendance import (
    attendance_index,
    class_attendance_take,
    class_attendance_history,
)

__all__ = [
    'index',
    # Classes
    'classes_list',
    'class_create',
    'class_edit',
    'class_delete',
    'class_detail',
    'class_subject_create',
    'class_subject_edit',
    'class_subject_delete',
    # Subjects
    'subjects_list',
    'subject_create',
    'subject_edit',
    'subject_delete',
    # Exams
    'exams_list',
    'exam_create',
    'exam_edit',
    'exam_delete',
    # Attendance
    'attendance_index',
    'class_attendance_take',
    'class_attendance_history',
]
