from django.contrib import admin

from .models import Subject, AttendanceSession, AttendanceRecord, Participation


@admin.register(Subject)
class SubjectAdmin(admin.ModelAdmin):
    list_display = ('name', 'term', 'created_at')
    list_filter = ('term',)
    search_fields = ('name',)


class AttendanceRecordInline(admin.TabularInline):
    model = AttendanceRecord
    extra = 0
    fields = ('student', 'created_at')
    readonly_fields = ('student', 'created_at')

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(AttendanceSession)
class AttendanceSessionAdmin(admin.ModelAdmin):
    list_display = ('subject', 'created_at')
    list_filter = ('subject',)
    date_hierarchy = 'created_at'
    inlines = [AttendanceRecordInline]


@admin.register(Participation)
class ParticipationAdmin(admin.ModelAdmin):
    list_display = ('student', 'subject', 'points', 'date')
    list_filter = ('subject', 'date')
    search_fields = ('student__name',)
