from django.urls import path
from . import views

app_name = 'planner'

urlpatterns = [
    path('subjects/<int:pk>/classes/', views.class_list, name='class_list'),
    path('subjects/<int:pk>/bulk-add/', views.bulk_add, name='bulk_add'),
    path('subjects/<int:pk>/generate/', views.generate, name='generate'),
    path('subjects/<int:pk>/delete-all/', views.delete_all, name='delete_all'),
    path('classes/<int:class_pk>/status/', views.class_status, name='class_status'),
    path('classes/<int:class_pk>/organizer/', views.class_organizer, name='class_organizer'),
]
