"""
Excel workbooks for score sheets and class results (openpyxl).
"""
import openpyxl
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from core.choices import ExamType, Term
from . import config
from .grading import round1
from .models import ScoreRecord
from .results import aligned_class_records, class_summaries, template_for

XLSX_CONTENT_TYPE = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'

THIN_BORDER = Border(
    left=Side(style='thin'),
    right=Side(style='thin'),
    top=Side(style='thin'),
    bottom=Side(style='thin')
)


def write_header(ws, headers):
    header_font = Font(bold=True, color="FFFFFF")
    header_fill = PatternFill(
        start_color=config.EXCEL_HEADER_COLOR,
        end_color=config.EXCEL_HEADER_COLOR,
        fill_type="solid"
    )
    for col, header in enumerate(headers, 1):
        cell = ws.cell(row=1, column=col, value=header)
        cell.font = header_font
        cell.fill = header_fill
        cell.alignment = Alignment(horizontal='center', wrap_text=True)
        cell.border = THIN_BORDER


def _size_columns(ws, count, first=15, second=28, rest=16):
    ws.column_dimensions['A'].width = first
    ws.column_dimensions['B'].width = second
    for col in range(3, count + 1):
        ws.column_dimensions[get_column_letter(col)].width = rest


def component_header(component):
    return f"{component['label']} (/{component['weight']})"


def score_sheet_workbook(class_obj, subject, session, term, exam_type, students):
    """
    Import template for one score sheet, pre-filled with stored scores.

    A hidden _metadata sheet records the scope and the component ids in
    column order so uploads can be checked against the sheet they came from.
    """
    template = template_for(class_obj, session, term, exam_type)
    components = template['components']

    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = "Scores"

    headers = ["Admission Number", "Student Name"] + [component_header(c) for c in components]
    write_header(ws, headers)

    stored = {
        record.student_id: {c.get('id'): c.get('score') for c in record.components or []}
        for record in ScoreRecord.objects.filter(
            class_assigned=class_obj, subject=subject, session=session,
            term=term, exam_type=exam_type,
        )
    }

    for row, student in enumerate(students, 2):
        ws.cell(row=row, column=1, value=student.admission_number).border = THIN_BORDER
        ws.cell(row=row, column=2, value=f"{student.last_name}, {student.first_name}").border = THIN_BORDER
        scores = stored.get(student.pk, {})
        for col, component in enumerate(components, 3):
            cell = ws.cell(row=row, column=col, value=scores.get(component['id']))
            cell.border = THIN_BORDER
            cell.alignment = Alignment(horizontal='center')

    _size_columns(ws, len(headers))

    meta_ws = wb.create_sheet("_metadata")
    meta = [
        ('class_id', class_obj.pk),
        ('subject_id', subject.pk),
        ('session_id', session.pk),
        ('term', term),
        ('exam_type', exam_type),
    ]
    for row, (key, value) in enumerate(meta, 1):
        meta_ws.cell(row=row, column=1, value=key)
        meta_ws.cell(row=row, column=2, value=str(value))
    for col, component in enumerate(components, 1):
        meta_ws.cell(row=len(meta) + 1, column=col, value=component['id'])
    meta_ws.sheet_state = 'hidden'

    return wb


def results_workbook(class_obj, session, term, exam_type=ExamType.FINAL):
    """
    Class results: a summary sheet (average, grade, position) followed by
    one column per subject with the aligned percentage.
    """
    summaries = class_summaries(class_obj, session, term, exam_type)
    records = [r for r in aligned_class_records(class_obj, session, term) if r['exam_type'] == exam_type]

    subjects = sorted({r['subject'] for r in records}, key=str.lower)
    by_student = {}
    for record in records:
        by_student.setdefault(record['student_id'], {})[record['subject']] = record['percentage']

    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = "Results"

    headers = ["Position", "Student Name"] + subjects + ["Average", "Grade", "Remark"]
    write_header(ws, headers)

    for row, summary in enumerate(summaries, 2):
        values = [summary['position'], summary['student_name']]
        scores = by_student.get(summary['student_id'], {})
        values += [round1(scores[name]) if name in scores else None for name in subjects]
        values += [summary['average_score'], summary['grade'], summary['remark']]
        for col, value in enumerate(values, 1):
            cell = ws.cell(row=row, column=col, value=value)
            cell.border = THIN_BORDER

    _size_columns(ws, len(headers), first=10)

    info = wb.create_sheet("Info")
    info.append(["Class", class_obj.name])
    info.append(["Session", session.name])
    info.append(["Term", str(Term(term).label)])
    info.append(["Exam", str(ExamType(exam_type).label)])
    info.append(["Students", len(summaries)])

    return wb
