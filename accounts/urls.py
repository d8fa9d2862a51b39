from django.urls import path
from . import views

app_name = 'accounts'

urlpatterns = [
    path('login/', views.login, name='login'),
    path('logout/', views.logout, name='logout'),
    path('session/', views.status, name='status'),
    path('verify-manual-attendance/', views.verify_manual_attendance, name='verify_manual_attendance'),
]
