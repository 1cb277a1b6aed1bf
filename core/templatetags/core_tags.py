from django import template
from django.urls import reverse, NoReverseMatch

register = template.Library()


# Navigation config with role-based access
# roles: 'all', 'school_admin', 'teacher', 'student', 'parent', 'superuser'
NAVIGATION_CONFIG = [
    {
        'label': 'Dashboard',
        'icon': 'fa-solid fa-gauge',
        'url_name': 'core:index',
        'roles': ['all'],
    },
    # School Admin / Superuser navigation
    {
        'label': 'Schools',
        'icon': 'fa-solid fa-school',
        'url_name': 'schools:index',
        'roles': ['school_admin', 'superuser'],
    },
    {
        'label': 'Sessions',
        'icon': 'fa-solid fa-calendar',
        'url_name': 'core:sessions',
        'roles': ['school_admin', 'superuser'],
    },
    {
        'label': 'Students',
        'icon': 'fa-solid fa-user-graduate',
        'url_name': 'students:index',
        'roles': ['school_admin', 'superuser'],
    },
    {
        'label': 'Guardians',
        'icon': 'fa-solid fa-people-roof',
        'url_name': 'students:guardian_index',
        'roles': ['school_admin', 'superuser'],
    },
    {
        'label': 'Teachers',
        'icon': 'fa-solid fa-chalkboard-user',
        'url_name': 'teachers:index',
        'roles': ['school_admin', 'superuser'],
    },
    {
        'label': 'Academics',
        'icon': 'fa-solid fa-graduation-cap',
        'url_name': 'academics:index',
        'roles': ['school_admin', 'superuser'],
        'children': [
            {
                'label': 'Classes',
                'icon': 'fa-solid fa-chalkboard',
                'url_name': 'academics:classes',
            },
            {
                'label': 'Subjects',
                'icon': 'fa-solid fa-book',
                'url_name': 'academics:subjects',
            },
            {
                'label': 'Exams',
                'icon': 'fa-solid fa-file-pen',
                'url_name': 'academics:exams',
            },
        ]
    },
    {
        'label': 'Gradebook',
        'icon': 'fa-solid fa-pen-to-square',
        'url_name': 'gradebook:index',
        'roles': ['school_admin', 'superuser', 'teacher'],
        'children': [
            {
                'label': 'Score Entry',
                'icon': 'fa-solid fa-keyboard',
                'url_name': 'gradebook:score_entry',
            },
            {
                'label': 'Report Cards',
                'icon': 'fa-solid fa-file-lines',
                'url_name': 'gradebook:reports',
            },
        ]
    },
    {
        'label': 'Mark Distributions',
        'icon': 'fa-solid fa-scale-balanced',
        'url_name': 'gradebook:distributions',
        'roles': ['school_admin', 'superuser'],
    },
    # Teacher navigation
    {
        'label': 'Attendance',
        'icon': 'fa-solid fa-clipboard-user',
        'url_name': 'academics:attendance',
        'roles': ['teacher'],
    },
    # Student / parent portal
    {
        'label': 'My Results',
        'icon': 'fa-solid fa-square-poll-vertical',
        'url_name': 'core:my_results',
        'roles': ['student'],
    },
    {
        'label': 'My Children',
        'icon': 'fa-solid fa-children',
        'url_name': 'core:my_wards',
        'roles': ['parent'],
    },
]


ROLE_FLAGS = (
    ('superuser', 'is_superuser'),
    ('school_admin', 'is_school_admin'),
    ('teacher', 'is_teacher'),
    ('student', 'is_student'),
    ('parent', 'is_parent'),
)


def get_user_roles(user):
    if not user or not user.is_authenticated:
        return set()
    return {role for role, flag in ROLE_FLAGS if getattr(user, flag, False)}


def _link(entry, request):
    try:
        url = reverse(entry['url_name'])
    except NoReverseMatch:
        url = '#'

    path = request.path
    if url == '#':
        active = False
    elif url == '/' or path == '/':
        active = path == url
    else:
        active = path == url or path.startswith(url.rstrip('/') + '/')
    return {'label': entry['label'], 'icon': entry['icon'], 'url': url, 'is_active': active}


@register.simple_tag(takes_context=True)
def get_navigation_items(context):
    """
    Sidebar entries the current user may see, with the current page
    (or the parent of the current page) marked active.
    """
    request = context.get('request')
    if not request:
        return []

    roles = get_user_roles(getattr(request, 'user', None))
    nav_items = []
    for entry in NAVIGATION_CONFIG:
        allowed = entry.get('roles', ['all'])
        if 'all' not in allowed and not roles.intersection(allowed):
            continue
        item = _link(entry, request)
        if 'children' in entry:
            item['children'] = [_link(child, request) for child in entry['children']]
            item['is_active'] = item['is_active'] or any(c['is_active'] for c in item['children'])
        nav_items.append(item)
    return nav_items


@register.filter
def get_item(mapping, key):
    """Dictionary lookup in templates: {{ scores|get_item:student.pk }}"""
    if not mapping:
        return None
    return mapping.get(key)


@register.filter
def grade_color(grade):
    """Badge class for a grade code (A1 ... F9)."""
    if not grade:
        return 'badge-ghost'
    letter = str(grade)[0].upper()
    return {
        'A': 'badge-success',
        'B': 'badge-info',
        'C': 'badge-primary',
        'D': 'badge-warning',
        'E': 'badge-warning',
    }.get(letter, 'badge-error')
