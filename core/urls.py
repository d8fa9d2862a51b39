from django.urls import path
from . import views

app_name = 'core'

urlpatterns = [
    path('', views.index, name='index'),
    path('calendar/', views.calendar_events, name='calendar_events'),
    path('calendar/<int:year>/<int:month>/', views.calendar_month, name='calendar_month'),
]
