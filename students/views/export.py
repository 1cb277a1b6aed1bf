"""Student list export to Excel."""
import io
import logging

from django.contrib.auth.decorators import login_required
from django.http import HttpResponse
from django.utils import timezone
from openpyxl import Workbook
from openpyxl.utils import get_column_letter

from core.utils import admin_required
from gradebook.exports import XLSX_CONTENT_TYPE, THIN_BORDER, write_header
from students.models import Student

logger = logging.getLogger(__name__)

COLUMNS = [
    ('Admission Number', 'admission_number', 18),
    ('Last Name', 'last_name', 18),
    ('First Name', 'first_name', 18),
    ('Other Names', 'other_names', 18),
    ('Gender', 'get_gender_display', 10),
    ('Date of Birth', 'date_of_birth', 14),
    ('Class', 'current_class', 14),
    ('School', 'school', 24),
    ('Category', 'category', 14),
    ('Status', 'get_status_display', 12),
    ('Guardian', 'guardian_name', 22),
    ('Guardian Phone', 'guardian_phone', 16),
    ('Guardian Email', 'guardian_email', 26),
    ('Admission Date', 'admission_date', 14),
]


def _cell_value(student, attr):
    value = getattr(student, attr)
    if callable(value):
        value = value()
    if value is None:
        return ''
    if hasattr(value, 'isoformat'):
        return value.isoformat()
    return str(value)


@login_required
@admin_required
def export_students(request):
    """Download the (filtered) student list as XLSX."""
    students = Student.objects.select_related('current_class', 'school').order_by('last_name', 'first_name')

    class_filter = request.GET.get('class', '')
    if class_filter.isdigit():
        students = students.filter(current_class_id=class_filter)
    status_filter = request.GET.get('status', '')
    if status_filter:
        students = students.filter(status=status_filter)

    wb = Workbook()
    ws = wb.active
    ws.title = 'Students'

    write_header(ws, [header for header, _, _ in COLUMNS])
    for col, (_, _, width) in enumerate(COLUMNS, start=1):
        ws.column_dimensions[get_column_letter(col)].width = width

    count = 0
    for row, student in enumerate(students, start=2):
        count += 1
        for col, (_, attr, _) in enumerate(COLUMNS, start=1):
            ws.cell(row=row, column=col, value=_cell_value(student, attr)).border = THIN_BORDER
    ws.freeze_panes = 'A2'

    output = io.BytesIO()
    wb.save(output)
    logger.info(f"{count} student(s) exported by {request.user}")

    filename = f"students_{timezone.now():%Y%m%d}.xlsx"
    response = HttpResponse(output.getvalue(), content_type=XLSX_CONTENT_TYPE)
    response['Content-Disposition'] = f'attachment; filename="{filename}"'
    return response
