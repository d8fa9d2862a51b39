from django.contrib import admin

from .models import PlannedClass


@admin.register(PlannedClass)
class PlannedClassAdmin(admin.ModelAdmin):
    list_display = ('title', 'subject', 'class_date', 'status')
    list_filter = ('subject', 'status')
    search_fields = ('title',)
    date_hierarchy = 'class_date'
