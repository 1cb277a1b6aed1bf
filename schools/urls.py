from django.urls import path
from . import views

app_name = 'schools'

urlpatterns = [
    path('', views.index, name='index'),
    path('create/', views.school_create, name='school_create'),
    path('<int:pk>/', views.school_detail, name='school_detail'),
    path('<int:pk>/edit/', views.school_edit, name='school_edit'),
    path('<int:pk>/delete/', views.school_delete, name='school_delete'),
]
