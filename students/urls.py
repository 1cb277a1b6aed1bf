from django.urls import path
from . import views

app_name = 'students'

urlpatterns = [
    path('', views.index, name='index'),
    path('create/', views.student_create, name='student_create'),
    path('import/', views.bulk_import, name='bulk_import'),
    path('import/confirm/', views.bulk_import_confirm, name='bulk_import_confirm'),
    path('import/template/', views.bulk_import_template, name='bulk_import_template'),
    path('export/', views.export_students, name='export'),
    path('<int:pk>/', views.student_detail, name='student_detail'),
    path('<int:pk>/edit/', views.student_edit, name='student_edit'),
    path('<int:pk>/delete/', views.student_delete, name='student_delete'),
    path('<int:pk>/account/', views.student_create_account, name='student_create_account'),

    # Guardians
    path('guardians/', views.guardian_index, name='guardian_index'),
    path('guardians/create/', views.guardian_create, name='guardian_create'),
    path('guardians/<int:pk>/', views.guardian_detail, name='guardian_detail'),
    path('guardians/<int:pk>/edit/', views.guardian_edit, name='guardian_edit'),
    path('guardians/<int:pk>/delete/', views.guardian_delete, name='guardian_delete'),
    path('guardians/<int:pk>/link/', views.guardian_link, name='guardian_link'),
    path('guardians/<int:pk>/unlink/<int:link_id>/', views.guardian_unlink, name='guardian_unlink'),
    path('guardians/<int:pk>/account/', views.guardian_create_account, name='guardian_create_account'),
]
