"""
Signals keeping derived gradebook data in step.

- A new academic session gets the default mark distributions.
- Saving a midterm record re-aligns the matching final record so its
  carried midterm aggregate stays current.
"""
import logging
import threading

from django.db.models.signals import post_save
from django.dispatch import receiver

from core.choices import ExamType
from core.models import AcademicSession
from .models import ScoreRecord

logger = logging.getLogger(__name__)

# Thread-local storage for signal disabling (thread-safe)
_thread_locals = threading.local()


def _is_signals_disabled():
    """Check if signals are disabled for the current thread."""
    return getattr(_thread_locals, 'signals_disabled', False)


def disable_signals():
    """Disable gradebook signals for the current thread (for bulk operations)."""
    _thread_locals.signals_disabled = True


def enable_signals():
    """Re-enable gradebook signals for the current thread."""
    _thread_locals.signals_disabled = False


class signals_disabled:
    """Context manager to temporarily disable signals (thread-safe)."""

    def __enter__(self):
        self._previous_state = _is_signals_disabled()
        disable_signals()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if not self._previous_state:
            enable_signals()
        return False


def refresh_final_carry(midterm_record):
    """
    Re-align the final record that carries this midterm's total.
    Returns the updated final record, or None when there is none.
    """
    from .calculations import align_record
    from .results import template_for

    final = ScoreRecord.objects.filter(
        student_id=midterm_record.student_id,
        subject_id=midterm_record.subject_id,
        session_id=midterm_record.session_id,
        term=midterm_record.term,
        exam_type=ExamType.FINAL,
    ).select_related('student', 'subject', 'class_assigned', 'session').first()
    if final is None:
        return None

    class_obj = final.class_assigned
    midterm_totals = {}
    align_record(
        midterm_record.as_dict(),
        template_for(class_obj, final.session, final.term, ExamType.MIDTERM),
        midterm_totals,
    )
    aligned = align_record(
        final.as_dict(),
        template_for(class_obj, final.session, final.term, ExamType.FINAL),
        midterm_totals,
    )

    previous = final.total_score
    final.apply_aligned(aligned)
    if final.total_score != previous:
        with signals_disabled():
            final.save(update_fields=['components', 'total_score', 'max_score', 'percentage', 'updated_at'])
        logger.info(f"Final record {final.pk} re-aligned after midterm change ({previous} -> {final.total_score})")
    return final


@receiver(post_save, sender=ScoreRecord)
def on_score_record_saved(sender, instance, **kwargs):
    if _is_signals_disabled() or instance.exam_type != ExamType.MIDTERM:
        return
    refresh_final_carry(instance)


@receiver(post_save, sender=AcademicSession)
def on_session_created(sender, instance, created, **kwargs):
    if _is_signals_disabled() or not created:
        return
    from .distributions import ensure_default_distributions

    ensure_default_distributions(instance)
