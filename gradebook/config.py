"""
Configuration settings for the gradebook app.

These values can be overridden in Django settings by prefixing with GRADEBOOK_.
For example, to change the promotion threshold:
    GRADEBOOK_PROMOTION_THRESHOLD = 45

All configuration values are lazily loaded to avoid Django setup issues.
"""


def _get_setting(name, default):
    """Get a gradebook setting from Django settings or use default."""
    from django.conf import settings
    return getattr(settings, f'GRADEBOOK_{name}', default)


_DEFAULTS = {
    # Promotion
    'PROMOTION_THRESHOLD': 50,

    # Fallback maximum totals when a record has no component maxima
    'DEFAULT_MIDTERM_MAX': 50,
    'DEFAULT_FINAL_MAX': 100,

    # Component id of the midterm aggregate inside final distributions
    'MIDTERM_CARRY_COMPONENT': 'midtermCarry',
    'MIDTERM_CARRY_LABEL': 'Aggregated Midterm Score',

    # (minimum percentage, grade, remark), highest minimum first
    'GRADE_BANDS': (
        (75, 'A1', 'Excellent'),
        (70, 'B2', 'Very Good'),
        (65, 'B3', 'Good'),
        (60, 'C4', 'Credit'),
        (55, 'C5', 'Credit'),
        (50, 'C6', 'Credit'),
        (45, 'D7', 'Pass'),
        (40, 'E8', 'Pass'),
        (0, 'F9', 'Fail'),
    ),

    # Report cards
    'POSITION_TOLERANCE': 0.01,
    'TOTAL_MISMATCH_TOLERANCE': 0.5,

    # File upload limits
    'MAX_FILE_SIZE': 5 * 1024 * 1024,  # 5 MB

    # Bulk operation settings
    'BULK_UPDATE_BATCH_SIZE': 500,

    # Export settings
    'EXCEL_HEADER_COLOR': '4F46E5',

    # Celery task settings
    'TASK_MAX_RETRIES': 3,
    'TASK_RETRY_DELAY': 60,  # seconds
    'TASK_SOFT_TIME_LIMIT': 300,
    'TASK_TIME_LIMIT': 360,

    # Class report-card exports (ZIP files under MEDIA_ROOT/exports)
    'EXPORT_ZIP_MAX_AGE_HOURS': 24,
}


class _ConfigProxy:
    """
    Lazy configuration proxy that loads settings only when accessed.
    This avoids Django setup issues during module import.
    """

    def __getattr__(self, name):
        if name in _DEFAULTS:
            return _get_setting(name, _DEFAULTS[name])
        raise AttributeError(f"Unknown config setting: {name}")


# Module-level proxy object for attribute access
_config = _ConfigProxy()


def __getattr__(name):
    """Enable module-level attribute access via the config proxy."""
    return getattr(_config, name)
