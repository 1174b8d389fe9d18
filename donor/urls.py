from django.urls import path
from . import views

urlpatterns = [
    path('donors/register', views.register_donor_view, name='donor-register'),
    path('donors/<int:pk>', views.donor_detail_view, name='donor-detail'),
    path('donors/<int:pk>/donations', views.record_donation_view, name='donor-donation'),
]
