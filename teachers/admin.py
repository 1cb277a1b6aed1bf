from django.contrib import admin

from unfold.admin import ModelAdmin

from .models import Teacher


@admin.register(Teacher)
class TeacherAdmin(ModelAdmin):
    list_display = ('teacher_code', 'full_name', 'school', 'status', 'email')
    list_filter = ('status', 'school', 'gender')
    search_fields = ('teacher_code', 'first_name', 'last_name', 'email')
    raw_id_fields = ('user',)
