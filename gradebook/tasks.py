"""
Celery tasks for gradebook exports.

Class-wide report-card exports run here so the request
returns immediately; files land under MEDIA_ROOT/exports.
"""
import logging
import os
import time
import uuid
import zipfile

from celery import shared_task
from django.conf import settings
from django.db import OperationalError

from . import config

logger = logging.getLogger(__name__)


def _export_dir():
    export_dir = os.path.join(settings.MEDIA_ROOT, 'exports')
    os.makedirs(export_dir, exist_ok=True)
    return export_dir


def _safe_name(value):
    return str(value).replace(' ', '_').replace('/', '-')


@shared_task(
    bind=True,
    max_retries=config.TASK_MAX_RETRIES,
    default_retry_delay=config.TASK_RETRY_DELAY,
    soft_time_limit=config.TASK_SOFT_TIME_LIMIT,
    time_limit=config.TASK_TIME_LIMIT,
)
def export_class_report_cards(self, class_id, session_id, term):
    """
    Generate a ZIP of PDF report cards for every active student in a class.

    Updates task state with progress so the frontend can poll for status.
    Students without final records are listed in `skipped`; database
    hiccups are retried with exponential backoff.

    Returns:
        dict with success, filename, total, skipped and errors
    """
    from academics.models import Class
    from core.models import AcademicSession
    from students.models import Student
    from .reports import RecordNotFound, build_report_card, render_report_card_pdf

    try:
        class_obj = Class.objects.get(pk=class_id)
        session = AcademicSession.objects.get(pk=session_id)
    except (Class.DoesNotExist, AcademicSession.DoesNotExist):
        logger.error(f"Report-card export: class {class_id} or session {session_id} not found")
        return {'success': False, 'error': 'Class or session not found'}

    students = list(Student.objects.filter(
        current_class=class_obj, status=Student.Status.ACTIVE
    ).order_by('last_name', 'first_name'))
    total = len(students)
    if total == 0:
        return {'success': False, 'error': 'No students found for this class'}

    zip_filename = f"{_safe_name(class_obj.name)}_{_safe_name(session.name)}_{term}_{uuid.uuid4().hex[:8]}.zip"
    zip_path = os.path.join(_export_dir(), zip_filename)

    skipped = []
    errors = []
    try:
        with zipfile.ZipFile(zip_path, 'w', zipfile.ZIP_DEFLATED) as zf:
            for i, student in enumerate(students):
                self.update_state(state='PROGRESS', meta={'current': i + 1, 'total': total})
                try:
                    report = build_report_card(student, session, term)
                except RecordNotFound:
                    skipped.append(student.full_name)
                    continue
                try:
                    pdf = render_report_card_pdf(report)
                except (OSError, ValueError) as e:
                    logger.error(f"PDF generation failed for {student}: {e}")
                    errors.append(f"{student.full_name}: {str(e)[:100]}")
                    continue
                zf.writestr(f"report_card_{_safe_name(student.admission_number)}.pdf", pdf)
    except OperationalError as e:
        logger.warning(f"Report-card export for class {class_id} hit a database error, retrying: {e}")
        if os.path.exists(zip_path):
            os.remove(zip_path)
        raise self.retry(exc=e, countdown=config.TASK_RETRY_DELAY * (2 ** self.request.retries))

    logger.info(
        f"Report-card export for {class_obj} ({session}, {term}): "
        f"{total - len(skipped) - len(errors)} generated, {len(skipped)} skipped, {len(errors)} failed"
    )
    return {
        'success': True,
        'filename': f"exports/{zip_filename}",
        'total': total,
        'skipped': skipped,
        'errors': errors,
    }


@shared_task
def cleanup_exports():
    """
    Remove export files older than EXPORT_ZIP_MAX_AGE_HOURS.

    Intended to be registered as a periodic task in django_celery_beat admin.
    """
    exports_root = os.path.join(settings.MEDIA_ROOT, 'exports')
    if not os.path.exists(exports_root):
        return {'deleted': 0}

    cutoff = time.time() - (config.EXPORT_ZIP_MAX_AGE_HOURS * 3600)
    deleted = 0
    for filename in os.listdir(exports_root):
        if not filename.endswith(('.zip', '.xlsx')):
            continue
        filepath = os.path.join(exports_root, filename)
        if os.path.getmtime(filepath) < cutoff:
            os.remove(filepath)
            deleted += 1

    if deleted:
        logger.info(f"Removed {deleted} expired export file(s)")
    return {'deleted': deleted}
