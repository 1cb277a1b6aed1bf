from django.contrib import admin

from unfold.admin import ModelAdmin, TabularInline

from .models import (
    MarkDistribution, MarkDistributionComponent, PromotionDecision,
    ResultLock, ScoreAuditLog, ScoreRecord, StudentTrait,
)


class MarkDistributionComponentInline(TabularInline):
    model = MarkDistributionComponent
    extra = 0
    fields = ('component_id', 'label', 'weight', 'order')


@admin.register(MarkDistribution)
class MarkDistributionAdmin(ModelAdmin):
    list_display = ('title', 'exam_type', 'session', 'term', 'school', 'total_weight')
    list_filter = ('exam_type', 'term', 'session', 'school')
    search_fields = ('title',)
    inlines = [MarkDistributionComponentInline]


@admin.register(ScoreRecord)
class ScoreRecordAdmin(ModelAdmin):
    list_display = ('student', 'subject', 'class_assigned', 'exam_type', 'term', 'session', 'total_score', 'percentage')
    list_filter = ('exam_type', 'term', 'session', 'class_assigned')
    search_fields = ('student__first_name', 'student__last_name', 'student__admission_number', 'subject__name')
    raw_id_fields = ('student',)
    readonly_fields = ('total_score', 'max_score', 'percentage', 'updated_by', 'created_at', 'updated_at')


@admin.register(ScoreAuditLog)
class ScoreAuditLogAdmin(ModelAdmin):
    list_display = ('created_at', 'action', 'student', 'subject', 'old_total', 'new_total', 'user', 'ip_address')
    list_filter = ('action',)
    search_fields = ('student__last_name', 'student__admission_number', 'subject__name')

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False


@admin.register(ResultLock)
class ResultLockAdmin(ModelAdmin):
    list_display = ('class_assigned', 'session', 'term', 'exam_type', 'is_locked', 'locked_by', 'locked_at')
    list_filter = ('is_locked', 'term', 'exam_type', 'session')
    filter_horizontal = ('allowed_teachers',)


@admin.register(StudentTrait)
class StudentTraitAdmin(ModelAdmin):
    list_display = ('student', 'session', 'term', 'category', 'trait', 'score')
    list_filter = ('category', 'term', 'session')
    raw_id_fields = ('student',)


@admin.register(PromotionDecision)
class PromotionDecisionAdmin(ModelAdmin):
    list_display = ('student', 'class_assigned', 'session', 'decision', 'decided_by', 'decided_at')
    list_filter = ('decision', 'session')
    raw_id_fields = ('student',)
