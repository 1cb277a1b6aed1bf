from django.contrib import admin

from unfold.admin import ModelAdmin, TabularInline

from .models import Guardian, Student, StudentGuardian


class StudentGuardianInline(TabularInline):
    model = StudentGuardian
    extra = 0
    raw_id_fields = ('student',)


@admin.register(Student)
class StudentAdmin(ModelAdmin):
    list_display = ('admission_number', 'full_name', 'current_class', 'school', 'status')
    list_filter = ('status', 'school', 'current_class', 'gender')
    search_fields = ('admission_number', 'first_name', 'last_name', 'other_names')
    raw_id_fields = ('user',)
    list_select_related = ('current_class', 'school')


@admin.register(Guardian)
class GuardianAdmin(ModelAdmin):
    list_display = ('full_name', 'phone_number', 'email', 'school')
    list_filter = ('school',)
    search_fields = ('full_name', 'phone_number', 'email')
    raw_id_fields = ('user',)
    inlines = [StudentGuardianInline]
