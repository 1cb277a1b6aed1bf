from django.urls import path
from . import views

app_name = 'academics'

urlpatterns = [
    path('', views.index, name='index'),

    # Classes
    path('classes/', views.classes_list, name='classes'),
    path('classes/create/', views.class_create, name='class_create'),
    path('classes/<int:pk>/', views.class_detail, name='class_detail'),
    path('classes/<int:pk>/edit/', views.class_edit, name='class_edit'),
    path('classes/<int:pk>/delete/', views.class_delete, name='class_delete'),
    path('classes/<int:pk>/subjects/add/', views.class_subject_create, name='class_subject_create'),
    path('classes/<int:class_pk>/subjects/<int:pk>/edit/', views.class_subject_edit, name='class_subject_edit'),
    path('classes/<int:class_pk>/subjects/<int:pk>/delete/', views.class_subject_delete, name='class_subject_delete'),

    # Subjects
    path('subjects/', views.subjects_list, name='subjects'),
    path('subjects/create/', views.subject_create, name='subject_create'),
    path('subjects/<int:pk>/edit/', views.subject_edit, name='subject_edit'),
    path('subjects/<int:pk>/delete/', views.subject_delete, name='subject_delete'),

    # Exams
    path('exams/', views.exams_list, name='exams'),
    path('exams/create/', views.exam_create, name='exam_create'),
    path('exams/<int:pk>/edit/', views.exam_edit, name='exam_edit'),
    path('exams/<int:pk>/delete/', views.exam_delete, name='exam_delete'),

    # Attendance
    path('attendance/', views.attendance_index, name='attendance'),
    path('classes/<int:pk>/attendance/', views.class_attendance_take, name='class_attendance_take'),
    path('classes/<int:pk>/attendance/history/', views.class_attendance_history, name='class_attendance_history'),
]
