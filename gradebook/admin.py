from django.contrib import admin

from .models import EvaluationCriterion, Assignment, Grade


@admin.register(EvaluationCriterion)
class EvaluationCriterionAdmin(admin.ModelAdmin):
    list_display = ('name', 'subject', 'type', 'percentage', 'grading_period')
    list_filter = ('subject', 'type', 'grading_period')


@admin.register(Assignment)
class AssignmentAdmin(admin.ModelAdmin):
    list_display = ('name', 'subject', 'evaluation_criterion', 'created_at')
    list_filter = ('subject',)


@admin.register(Grade)
class GradeAdmin(admin.ModelAdmin):
    list_display = ('student', 'assignment', 'score', 'updated_at')
    list_filter = ('assignment__subject',)
    search_fields = ('student__name', 'assignment__name')
