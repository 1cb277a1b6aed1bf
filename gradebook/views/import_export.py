import json
import logging

import pandas as pd
from django.contrib.auth.decorators import login_required
from django.http import HttpResponse
from django.shortcuts import get_object_or_404, render

from academics.models import Class, Subject
from core.utils import clean_value
from .base import (
    teacher_or_admin_required, check_score_access, get_client_ip,
    get_teacher_classes, resolve_scope,
)
from .scores import class_students, requested_exam_type
from ..exports import XLSX_CONTENT_TYPE, results_workbook, score_sheet_workbook
from ..forms import ScoreImportForm
from ..models import ScoreRecord
from ..results import save_score_sheet, template_for

logger = logging.getLogger(__name__)

IMPORT_SESSION_KEY = 'score_import'


def _scope_or_error(request):
    session, term = resolve_scope(request)
    exam_type = requested_exam_type(request)
    if session is None:
        return None, None, None, HttpResponse("No academic session is configured.", status=400)
    if exam_type is None:
        return None, None, None, HttpResponse("Unknown exam type.", status=400)
    return session, term, exam_type, None


def _import_error(request, error, details=None):
    return render(request, 'gradebook/partials/import_error.html', {
        'error': error,
        'details': details or [],
    })


def _read_upload(file):
    if file.name.lower().endswith('.csv'):
        return pd.read_csv(file, dtype=str)
    return pd.read_excel(file, sheet_name=0, dtype=str)


# ============ Bulk Score Import ============

@login_required
@teacher_or_admin_required
def score_import_template(request, class_id, subject_id):
    """Download the Excel score sheet for offline entry."""
    class_obj = get_object_or_404(Class, pk=class_id)
    subject = get_object_or_404(Subject, pk=subject_id)
    session, term, exam_type, error = _scope_or_error(request)
    if error:
        return error

    refusal = check_score_access(request.user, class_obj, subject, session, term, exam_type)
    if refusal is not None:
        return refusal

    wb = score_sheet_workbook(class_obj, subject, session, term, exam_type, class_students(class_obj))

    response = HttpResponse(content_type=XLSX_CONTENT_TYPE)
    filename = f"scores_{class_obj.name}_{subject.code}_{term}_{exam_type}.xlsx".replace(' ', '_')
    response['Content-Disposition'] = f'attachment; filename="{filename}"'
    wb.save(response)
    return response


@login_required
@teacher_or_admin_required
def score_import_upload(request, class_id, subject_id):
    """Parse an uploaded score sheet and show a preview before saving."""
    if request.method != 'POST':
        return HttpResponse(status=405)

    class_obj = get_object_or_404(Class, pk=class_id)
    subject = get_object_or_404(Subject, pk=subject_id)
    session, term, exam_type, error = _scope_or_error(request)
    if error:
        return error

    refusal = check_score_access(request.user, class_obj, subject, session, term, exam_type)
    if refusal is not None:
        return refusal

    form = ScoreImportForm(request.POST, request.FILES)
    if not form.is_valid():
        return _import_error(request, 'Please upload a valid file.', form.errors.get('file'))

    try:
        df = _read_upload(form.cleaned_data['file'])
    except (ValueError, KeyError, OSError) as e:
        logger.exception("Error parsing score import file")
        return _import_error(request, f'Error reading file: {e}')

    template = template_for(class_obj, session, term, exam_type)
    components = template['components']
    if len(df.columns) < 2 + len(components):
        return _import_error(
            request,
            f'Expected {2 + len(components)} columns (admission number, name and one per component).'
        )

    students_by_number = {s.admission_number: s for s in class_students(class_obj)}
    stored = {
        record.student_id: {c.get('id'): c.get('score') for c in record.components or []}
        for record in ScoreRecord.objects.filter(
            class_assigned=class_obj, subject=subject, session=session,
            term=term, exam_type=exam_type,
        )
    }

    preview_data = []
    errors = []
    import_data = {}
    for index, row in df.iterrows():
        row_num = index + 2
        admission_number = clean_value(row.iloc[0])
        if not admission_number:
            continue

        student = students_by_number.get(admission_number)
        row_data = {
            'row_num': row_num,
            'admission_number': admission_number,
            'student_name': clean_value(row.iloc[1]),
            'student': student,
            'scores': [],
            'has_error': False,
        }
        if student is None:
            row_data['has_error'] = True
            errors.append(f"Row {row_num}: Admission number '{admission_number}' not found in this class.")

        entered = []
        for offset, component in enumerate(components):
            raw = clean_value(row.iloc[2 + offset])
            score_data = {'component': component, 'value': raw, 'error': None}
            if raw == '':
                previous = stored.get(student.pk, {}).get(component['id']) if student else None
                score = previous if previous is not None else 0
            else:
                try:
                    score = float(raw)
                except ValueError:
                    score = None
                    score_data['error'] = 'Invalid number'
                    errors.append(f"Row {row_num}, {component['label']}: Invalid number '{raw}'.")
                else:
                    if score < 0 or score > component['weight']:
                        score_data['error'] = f"Out of range (0-{component['weight']})"
                        errors.append(
                            f"Row {row_num}, {component['label']}: Value {raw} is outside 0-{component['weight']}."
                        )
            if score_data['error']:
                row_data['has_error'] = True
            score_data['value'] = score if score is not None else raw
            row_data['scores'].append(score_data)
            entered.append({'id': component['id'], 'label': component['label'], 'score': score})

        if student and not row_data['has_error']:
            import_data[str(student.pk)] = entered
        preview_data.append(row_data)

    request.session[IMPORT_SESSION_KEY] = json.dumps({
        'class_id': class_obj.pk,
        'subject_id': subject.pk,
        'session_id': session.pk,
        'term': term,
        'exam_type': exam_type,
        'entries': import_data,
    })
    logger.info(
        f"Score import preview for {class_obj} / {subject}: "
        f"{len(import_data)} valid row(s), {len(errors)} error(s)"
    )

    return render(request, 'gradebook/partials/import_preview.html', {
        'class_obj': class_obj,
        'subject': subject,
        'session': session,
        'term': term,
        'exam_type': exam_type,
        'components': components,
        'preview_data': preview_data,
        'errors': errors,
        'total_rows': len(import_data),
        'has_errors': len(errors) > 0,
    })


@login_required
@teacher_or_admin_required
def score_import_confirm(request, class_id, subject_id):
    """Save the previewed rows through the normal score-sheet path."""
    if request.method != 'POST':
        return HttpResponse(status=405)

    class_obj = get_object_or_404(Class, pk=class_id)
    subject = get_object_or_404(Subject, pk=subject_id)

    payload = request.session.get(IMPORT_SESSION_KEY)
    if not payload:
        return _import_error(request, 'No import data found. Please upload the file again.')
    try:
        payload = json.loads(payload)
    except json.JSONDecodeError:
        return _import_error(request, 'Invalid import data. Please upload the file again.')

    if payload.get('class_id') != class_obj.pk or payload.get('subject_id') != subject.pk:
        return _import_error(request, 'Import data mismatch. Please upload the file again.')

    session, term, exam_type, error = _scope_or_error(request)
    if error:
        return error
    if (payload.get('session_id'), payload.get('term'), payload.get('exam_type')) != (session.pk, term, exam_type):
        return _import_error(request, 'Import data mismatch. Please upload the file again.')

    refusal = check_score_access(request.user, class_obj, subject, session, term, exam_type)
    if refusal is not None:
        return refusal

    students = class_students(class_obj)
    valid_ids = {student.pk for student in students}
    entries = {}
    invalid_items = []
    for student_id, components in payload.get('entries', {}).items():
        if int(student_id) not in valid_ids:
            invalid_items.append(f"Student ID {student_id} is not in this class")
            continue
        entries[int(student_id)] = components

    if invalid_items:
        logger.warning(f"Score import validation failed: {invalid_items[:5]}")
        return _import_error(
            request,
            f'Data validation failed. {len(invalid_items)} row(s) reference students outside this class.',
            invalid_items[:10]
        )

    saved = save_score_sheet(
        class_obj, subject, session, term, exam_type, students, entries,
        user=request.user, ip_address=get_client_ip(request), action='IMPORT',
    )
    request.session.pop(IMPORT_SESSION_KEY, None)

    return render(request, 'gradebook/partials/import_success.html', {
        'total_count': len(saved),
        'class_obj': class_obj,
        'subject': subject,
    })


# ============ Export ============

@login_required
@teacher_or_admin_required
def results_export(request, class_id):
    """Download a class's results for the selected exam as Excel."""
    class_obj = get_object_or_404(Class, pk=class_id)
    if not get_teacher_classes(request.user).filter(pk=class_obj.pk).exists():
        return HttpResponse("Not authorized", status=403)
    session, term, exam_type, error = _scope_or_error(request)
    if error:
        return error

    wb = results_workbook(class_obj, session, term, exam_type)
    response = HttpResponse(content_type=XLSX_CONTENT_TYPE)
    filename = f"results_{class_obj.name}_{session.name}_{term}_{exam_type}.xlsx".replace(' ', '_').replace('/', '-')
    response['Content-Disposition'] = f'attachment; filename="{filename}"'
    wb.save(response)
    logger.info(f"Results exported for {class_obj} ({session}, {term}, {exam_type}) by {request.user}")
    return response
