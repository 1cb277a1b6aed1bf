from django.urls import path
from . import views

app_name = 'gradebook'

urlpatterns = [
    path('', views.index, name='index'),

    # Mark Distributions
    path('distributions/', views.distributions, name='distributions'),
    path('distributions/create/', views.distribution_create, name='distribution_create'),
    path('distributions/defaults/', views.distribution_load_defaults, name='distribution_load_defaults'),
    path('distributions/<uuid:pk>/edit/', views.distribution_edit, name='distribution_edit'),
    path('distributions/<uuid:pk>/delete/', views.distribution_delete, name='distribution_delete'),

    # Score Entry
    path('scores/', views.score_entry, name='score_entry'),
    path('scores/<int:class_id>/<int:subject_id>/', views.score_sheet, name='score_sheet'),
    path('scores/audit/<int:record_id>/', views.score_audit_history, name='score_audit'),

    # Bulk Import
    path('scores/<int:class_id>/<int:subject_id>/import/template/', views.score_import_template, name='import_template'),
    path('scores/<int:class_id>/<int:subject_id>/import/upload/', views.score_import_upload, name='import_upload'),
    path('scores/<int:class_id>/<int:subject_id>/import/confirm/', views.score_import_confirm, name='import_confirm'),

    # Results
    path('results/<int:class_id>/', views.class_results, name='class_results'),
    path('results/<int:class_id>/export/', views.results_export, name='results_export'),

    # Promotion
    path('promotion/<int:class_id>/', views.promotion, name='promotion'),
    path('promotion/<int:class_id>/finalize/', views.promotion_finalize, name='promotion_finalize'),
    path('promotion/<int:class_id>/<int:student_id>/', views.promotion_override, name='promotion_override'),

    # Result Locking
    path('lock/<int:class_id>/toggle/', views.toggle_result_lock, name='toggle_lock'),
    path('lock/<int:class_id>/status/', views.result_lock_status, name='lock_status'),
    path('lock/<int:pk>/edit/', views.result_lock_edit, name='lock_edit'),

    # Report Cards
    path('reports/', views.report_cards, name='reports'),
    path('reports/class/<int:class_id>/export/', views.export_class_reports, name='export_class_reports'),
    path('reports/<str:student_id>/', views.student_report, name='student_report'),
    path('reports/<str:student_id>/pdf/', views.download_report_pdf, name='report_pdf'),

    # Traits
    path('traits/<int:student_id>/', views.student_traits, name='student_traits'),
]
