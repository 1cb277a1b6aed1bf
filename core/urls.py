from django.urls import path
from . import views

app_name = 'core'

urlpatterns = [
    # Dashboard
    path('', views.index, name='index'),

    # Academic Sessions
    path('sessions/', views.sessions, name='sessions'),
    path('sessions/create/', views.session_create, name='session_create'),
    path('sessions/<int:pk>/edit/', views.session_edit, name='session_edit'),
    path('sessions/<int:pk>/delete/', views.session_delete, name='session_delete'),
    path('sessions/<int:pk>/set-current/', views.session_set_current, name='session_set_current'),

    # Term Schedule
    path('sessions/<int:pk>/terms/', views.term_schedule, name='term_schedule'),

    # Results portal
    path('my-results/', views.my_results, name='my_results'),
    path('my-children/', views.my_wards, name='my_wards'),
]
