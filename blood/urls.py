from django.urls import path
from . import views

urlpatterns = [
    # Emergency requests
    path('requests/create', views.create_request_view, name='request-create'),
    path('requests/active', views.active_requests_view, name='request-active'),

    # Donors
    path('donors/search', views.donor_search_view, name='donor-search'),
    path('donors/match', views.donor_match_view, name='donor-match'),

    # Admin request workflow
    path('admin/requests', views.admin_request_list_view, name='admin-request-list'),
    path('admin/requests/<int:pk>/approve', views.admin_approve_request_view, name='admin-request-approve'),
    path('admin/requests/<int:pk>/reject', views.admin_reject_request_view, name='admin-request-reject'),
    path('admin/requests/<int:pk>/complete', views.admin_complete_request_view, name='admin-request-complete'),

    # Utility
    path('statistics', views.statistics_view, name='statistics'),
    path('health', views.health_view, name='health'),
]
