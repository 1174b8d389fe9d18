from django.contrib import admin
from .forms import DonorForm
from .models import Donor


@admin.register(Donor)
class DonorAdmin(admin.ModelAdmin):
    form = DonorForm
    list_display = ['full_name', 'bloodgroup', 'city', 'area', 'phone', 'last_donated_at', 'is_active']
    list_filter = ['bloodgroup', 'is_active', 'city']
    search_fields = ['full_name', 'phone', 'email', 'city', 'area']
    actions = ['deactivate_donors', 'reactivate_donors']

    @admin.action(description="Deactivate selected donors")
    def deactivate_donors(self, request, queryset):
        for donor in queryset.filter(is_active=True):
            donor.deactivate()

    @admin.action(description="Reactivate selected donors")
    def reactivate_donors(self, request, queryset):
        for donor in queryset.filter(is_active=False):
            donor.reactivate()
