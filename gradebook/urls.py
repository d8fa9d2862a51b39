from django.urls import path
from . import views

app_name = 'gradebook'

urlpatterns = [
    # Criteria
    path('subjects/<int:subject_pk>/criteria/', views.criteria_list, name='criteria_list'),
    path('criteria/<uuid:pk>/delete/', views.criterion_delete, name='criterion_delete'),

    # Assignments and grades
    path('subjects/<int:subject_pk>/assignments/', views.assignment_list, name='assignment_list'),
    path('assignments/<uuid:pk>/delete/', views.assignment_delete, name='assignment_delete'),
    path('assignments/<uuid:pk>/grades/', views.assignment_grades, name='assignment_grades'),
    path('assignments/<uuid:pk>/scan/', views.assignment_scan, name='assignment_scan'),
    path('subjects/<int:subject_pk>/students/<int:student_pk>/grades/', views.student_grades, name='student_grades'),

    # Reports
    path('subjects/<int:subject_pk>/periods/', views.periods, name='periods'),
    path('subjects/<int:subject_pk>/students/<int:student_pk>/report/', views.student_report, name='student_report'),
    path('subjects/<int:subject_pk>/report/', views.class_report, name='class_report'),
    path('subjects/<int:subject_pk>/export/', views.export_class_report, name='export_class_report'),
]
