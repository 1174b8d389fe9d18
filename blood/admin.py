from django.contrib import admin
from .models import DonorMatch, EmergencyRequest


class DonorMatchInline(admin.TabularInline):
    model = DonorMatch
    extra = 0
    fields = ['rank', 'donor', 'created_at']
    readonly_fields = ['rank', 'donor', 'created_at']
    can_delete = False


@admin.register(EmergencyRequest)
class EmergencyRequestAdmin(admin.ModelAdmin):
    list_display = ['hospital_name', 'bloodgroup', 'units_required', 'urgency', 'city', 'area', 'status', 'matched_count', 'created_at']
    list_filter = ['bloodgroup', 'status', 'urgency', 'city']
    search_fields = ['hospital_name', 'patient_name', 'contact_phone', 'city', 'area']
    readonly_fields = ['status', 'approved_at', 'approved_by', 'completed_at', 'matched_count']
    inlines = [DonorMatchInline]
