from django.urls import path
from . import views

app_name = 'teachers'

urlpatterns = [
    path('', views.index, name='index'),
    path('create/', views.teacher_create, name='teacher_create'),
    path('<uuid:pk>/', views.teacher_detail, name='teacher_detail'),
    path('<uuid:pk>/edit/', views.teacher_edit, name='teacher_edit'),
    path('<uuid:pk>/delete/', views.teacher_delete, name='teacher_delete'),
    path('<uuid:pk>/account/', views.create_account, name='create_account'),
    path('<uuid:pk>/account/deactivate/', views.deactivate_account, name='deactivate_account'),
]
