from django.contrib import admin

from unfold.admin import ModelAdmin, TabularInline

from .models import AttendanceRecord, AttendanceSession, Class, ClassSubject, Exam, Subject


class ClassSubjectInline(TabularInline):
    model = ClassSubject
    extra = 0
    fields = ('subject', 'teacher')


@admin.register(Class)
class ClassAdmin(ModelAdmin):
    list_display = ('name', 'school', 'grade', 'form_teacher', 'capacity', 'is_active')
    list_filter = ('school', 'is_active', 'category')
    search_fields = ('name', 'code')
    inlines = [ClassSubjectInline]


@admin.register(Subject)
class SubjectAdmin(ModelAdmin):
    list_display = ('name', 'code', 'credit_hours', 'is_active')
    list_filter = ('is_active',)
    search_fields = ('name', 'code')


@admin.register(Exam)
class ExamAdmin(ModelAdmin):
    list_display = ('name', 'exam_type', 'term', 'session', 'class_assigned', 'subject', 'exam_date')
    list_filter = ('exam_type', 'term', 'session')
    search_fields = ('name', 'subject__name', 'class_assigned__name')


class AttendanceRecordInline(TabularInline):
    model = AttendanceRecord
    extra = 0
    fields = ('student', 'status', 'remarks')
    raw_id_fields = ('student',)


@admin.register(AttendanceSession)
class AttendanceSessionAdmin(ModelAdmin):
    list_display = ('class_assigned', 'date', 'academic_session', 'term', 'created_by')
    list_filter = ('academic_session', 'term', 'class_assigned')
    date_hierarchy = 'date'
    inlines = [AttendanceRecordInline]
