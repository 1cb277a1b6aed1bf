def school_branding(request):
    """
    Add the user's school to template context.
    Makes 'school' available in all templates.
    """
    user = getattr(request, 'user', None)
    if user is None or not user.is_authenticated:
        return {'school': None}

    profile = getattr(user, 'teacher_profile', None) or getattr(user, 'student_profile', None)
    school = getattr(profile, 'school', None) if profile else None
    if school is None:
        from schools.models import School
        school = School.objects.filter(is_active=True).order_by('name').first()
    return {'school': school}


def academic_session(request):
    """
    Add current academic session to template context.
    Makes 'current_session' and 'current_term' available in all templates.
    """
    from .choices import Term
    from .models import AcademicSession

    session = AcademicSession.get_current()
    if session is None:
        return {'current_session': None, 'current_term': None, 'current_term_label': None}

    term = session.current_term()
    return {
        'current_session': session,
        'current_term': term,
        'current_term_label': Term(term).label,
    }
