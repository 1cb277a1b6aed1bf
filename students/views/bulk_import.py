import io
import json
import logging
import zipfile

from django.contrib import messages
from django.contrib.auth.decorators import login_required
from django.db import IntegrityError, transaction
from django.http import FileResponse, HttpResponse
from django.shortcuts import redirect, render
import pandas as pd

from academics.models import Class
from core.utils import admin_required, clean_value, parse_date
from schools.models import School
from students.forms import BulkImportForm
from students.models import Student

logger = logging.getLogger(__name__)

SESSION_KEY = 'bulk_import_data'

EXPECTED_COLUMNS = [
    'first_name', 'last_name', 'other_names', 'date_of_birth', 'gender',
    'guardian_name', 'guardian_phone', 'guardian_email', 'category',
    'admission_number', 'admission_date', 'class_name', 'school_code',
]


def _upload_error(request, error):
    return render(request, 'students/partials/modal_bulk_import.html', {
        'expected_columns': EXPECTED_COLUMNS,
        'form': BulkImportForm(),
        'error': error,
    })


def read_student_rows(df, class_map, school_map, existing_admissions):
    """
    Validate spreadsheet rows.

    Returns (valid_rows, all_errors); row numbers are the spreadsheet's,
    counting the header as row 1.
    """
    all_errors = []
    valid_rows = []

    for idx, row in df.iterrows():
        row_num = idx + 2
        errors = []

        first_name = clean_value(row.get('first_name', ''))
        last_name = clean_value(row.get('last_name', ''))
        gender = clean_value(row.get('gender', '')).upper()
        admission_number = clean_value(row.get('admission_number', ''))
        class_name = clean_value(row.get('class_name', ''))
        school_code = clean_value(row.get('school_code', '')).upper()
        date_of_birth = parse_date(row.get('date_of_birth'))
        admission_date = parse_date(row.get('admission_date'))

        # Normalize gender
        if gender in ['M', 'MALE']:
            gender = 'M'
        elif gender in ['F', 'FEMALE']:
            gender = 'F'
        else:
            gender = ''

        if not first_name:
            errors.append('First name is required')
        if not last_name:
            errors.append('Last name is required')
        if not gender:
            errors.append('Gender must be M or F')
        if not admission_number:
            errors.append('Admission number is required')
        elif admission_number in existing_admissions:
            errors.append(f'Admission number "{admission_number}" already exists')

        class_pk = None
        if class_name:
            class_pk = class_map.get(class_name)
            if class_pk is None:
                errors.append(f'Class "{class_name}" not found')

        school_pk = None
        if school_code:
            school_pk = school_map.get(school_code)
            if school_pk is None:
                errors.append(f'School "{school_code}" not found')

        if errors:
            all_errors.append({'row': row_num, 'errors': errors})
            continue

        valid_rows.append({
            'row_num': row_num,
            'first_name': first_name,
            'last_name': last_name,
            'other_names': clean_value(row.get('other_names', '')),
            'date_of_birth': date_of_birth.isoformat() if date_of_birth else '',
            'gender': gender,
            'guardian_name': clean_value(row.get('guardian_name', '')),
            'guardian_phone': clean_value(row.get('guardian_phone', '')),
            'guardian_email': clean_value(row.get('guardian_email', '')),
            'category': clean_value(row.get('category', '')),
            'admission_number': admission_number,
            'admission_date': admission_date.isoformat() if admission_date else '',
            'class_name': class_name,
            'class_pk': class_pk,
            'school_pk': school_pk,
        })
        existing_admissions.add(admission_number)

    return valid_rows, all_errors


@login_required
@admin_required
def bulk_import(request):
    """Upload a CSV/XLSX of students and preview the rows that would be created."""
    if request.method == 'GET':
        return render(request, 'students/partials/modal_bulk_import.html', {
            'expected_columns': EXPECTED_COLUMNS,
            'form': BulkImportForm(),
        })
    if request.method != 'POST':
        return HttpResponse(status=405)

    form = BulkImportForm(request.POST, request.FILES)
    if not form.is_valid():
        return render(request, 'students/partials/modal_bulk_import.html', {
            'expected_columns': EXPECTED_COLUMNS,
            'form': form,
        })

    file = form.cleaned_data['file']
    try:
        if file.name.lower().endswith('.xlsx'):
            df = pd.read_excel(file, engine='openpyxl', dtype=str)
        else:
            df = pd.read_csv(file, dtype=str)
    except (ValueError, OSError, zipfile.BadZipFile) as e:
        logger.warning(f"Student import file could not be read: {e}")
        return _upload_error(request, f'Error reading file: {e}')

    if df.empty:
        return _upload_error(request, 'The file is empty.')

    # Normalize column names
    df.columns = df.columns.str.strip().str.lower().str.replace(' ', '_')
    if 'first_name' not in df.columns or 'admission_number' not in df.columns:
        return _upload_error(request, 'The file must have first_name and admission_number columns.')

    class_map = {c.name: c.pk for c in Class.objects.filter(is_active=True)}
    school_map = {s.code: s.pk for s in School.objects.all()}
    existing = set(Student.objects.values_list('admission_number', flat=True))

    valid_rows, all_errors = read_student_rows(df, class_map, school_map, existing)
    request.session[SESSION_KEY] = json.dumps(valid_rows)
    logger.info(f"Student import preview by {request.user}: {len(valid_rows)} valid, {len(all_errors)} invalid")

    return render(request, 'students/partials/modal_bulk_preview.html', {
        'valid_rows': valid_rows,
        'all_errors': all_errors,
        'total_rows': len(df),
        'valid_count': len(valid_rows),
        'error_count': len(all_errors),
    })


@login_required
@admin_required
def bulk_import_confirm(request):
    """Create the students previewed by bulk_import."""
    if request.method != 'POST':
        return HttpResponse(status=405)

    data = request.session.get(SESSION_KEY)
    if not data:
        return _upload_error(request, 'Session expired. Please upload the file again.')

    try:
        rows = json.loads(data)
    except json.JSONDecodeError:
        return _upload_error(request, 'Invalid session data. Please upload the file again.')

    students = [
        Student(
            first_name=row['first_name'],
            last_name=row['last_name'],
            other_names=row['other_names'],
            date_of_birth=parse_date(row['date_of_birth']),
            gender=row['gender'],
            guardian_name=row['guardian_name'],
            guardian_phone=row['guardian_phone'],
            guardian_email=row['guardian_email'],
            category=row['category'],
            admission_number=row['admission_number'],
            admission_date=parse_date(row['admission_date']),
            current_class_id=row['class_pk'],
            school_id=row['school_pk'],
            status=Student.Status.ACTIVE,
        )
        for row in rows
    ]

    request.session.pop(SESSION_KEY, None)
    try:
        with transaction.atomic():
            created = Student.objects.bulk_create(students)
    except IntegrityError as e:
        # Another import may have claimed an admission number since the preview
        logger.warning(f"Student import failed: {e}")
        messages.error(request, "Import failed: an admission number is already in use. Please upload again.")
    else:
        logger.info(f"{len(created)} student(s) imported by {request.user}")
        messages.success(request, f"{len(created)} student(s) imported successfully.")

    if request.htmx:
        response = HttpResponse(status=200)
        response['HX-Refresh'] = 'true'
        return response
    return redirect('students:index')


@login_required
@admin_required
def bulk_import_template(request):
    """Download a sample import template."""
    sample_data = {
        'first_name': ['John', 'Jane'],
        'last_name': ['Doe', 'Smith'],
        'other_names': ['', 'Marie'],
        'date_of_birth': ['2010-05-15', '2011-08-22'],
        'gender': ['M', 'F'],
        'guardian_name': ['James Doe', 'Mary Smith'],
        'guardian_phone': ['08031234567', '08051234567'],
        'guardian_email': ['james@email.com', ''],
        'category': ['Day', 'Boarding'],
        'admission_number': ['STU-2024-001', 'STU-2024-002'],
        'admission_date': ['2024-09-01', '2024-09-01'],
        'class_name': ['JSS 1A', 'JSS 2A'],
        'school_code': ['', ''],
    }

    df = pd.DataFrame(sample_data)
    output = io.BytesIO()
    with pd.ExcelWriter(output, engine='openpyxl') as writer:
        df.to_excel(writer, index=False, sheet_name='Students')

    output.seek(0)
    return FileResponse(
        output,
        as_attachment=True,
        filename='student_import_template.xlsx',
        content_type='application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'
    )
