from django.urls import path
from . import views

app_name = 'academics'

urlpatterns = [
    # Subject routes
    path('subjects/', views.subject_list, name='subject_list'),
    path('subjects/<int:pk>/', views.subject_detail, name='subject_detail'),
    path('subjects/<int:pk>/delete/', views.subject_delete, name='subject_delete'),
    path('subjects/<int:pk>/schedule/', views.subject_schedule, name='subject_schedule'),
    path('subjects/<int:pk>/grading-periods/', views.subject_grading_periods, name='subject_grading_periods'),
    path('subjects/<int:pk>/session-dates/', views.subject_session_dates, name='subject_session_dates'),

    # Attendance routes
    path('subjects/<int:pk>/sessions/', views.session_list, name='session_list'),
    path('sessions/<int:session_pk>/scan/', views.session_scan, name='session_scan'),
    path('subjects/<int:pk>/roll-call/', views.roll_call, name='roll_call'),
    path('subjects/<int:pk>/manual-attendance/', views.manual_attendance, name='manual_attendance'),
    path('subjects/<int:pk>/calendar/<int:year>/<int:month>/', views.attendance_calendar, name='attendance_calendar'),

    # Participation routes
    path('subjects/<int:pk>/participations/', views.participation_list, name='participation_list'),
    path('participations/<int:participation_pk>/delete/', views.participation_delete, name='participation_delete'),
]
