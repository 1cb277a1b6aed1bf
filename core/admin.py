from django.contrib import admin

from unfold.admin import ModelAdmin, TabularInline

from .models import AcademicSession, TermSchedule


class TermScheduleInline(TabularInline):
    model = TermSchedule
    extra = 0
    fields = ('term', 'starts_at')


@admin.register(AcademicSession)
class AcademicSessionAdmin(ModelAdmin):
    list_display = ('name', 'start_date', 'end_date', 'is_current')
    list_filter = ('is_current',)
    search_fields = ('name',)
    filter_horizontal = ('schools',)
    inlines = [TermScheduleInline]
