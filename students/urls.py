from django.urls import path
from . import views

app_name = 'students'

urlpatterns = [
    path('subjects/<int:subject_pk>/', views.student_list, name='student_list'),
    path('subjects/<int:subject_pk>/bulk-add/', views.bulk_add, name='bulk_add'),
    path('subjects/<int:subject_pk>/import/', views.bulk_import, name='bulk_import'),
    path('subjects/<int:subject_pk>/import/template/', views.bulk_import_template, name='bulk_import_template'),
    path('subjects/<int:subject_pk>/qr/', views.subject_qr_codes, name='subject_qr_codes'),
    path('<int:pk>/delete/', views.student_delete, name='student_delete'),
    path('<int:pk>/qr/', views.student_qr, name='student_qr'),
]
