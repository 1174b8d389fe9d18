from django import forms

from . import models
from .services.matching import LOCALITIES, Urgency


class EmergencyRequestForm(forms.ModelForm):
    class Meta:
        model = models.EmergencyRequest
        fields = [
            'bloodgroup', 'units_required', 'urgency', 'patient_name', 'hospital_name',
            'contact_name', 'contact_phone', 'notes', 'required_by', 'city', 'area',
        ]

    def clean_city(self):
        city = (self.cleaned_data.get('city') or '').strip()
        if not city:
            raise forms.ValidationError('City is required so donors can be located.')
        return city

    def clean_area(self):
        return (self.cleaned_data.get('area') or '').strip()

    def clean_contact_phone(self):
        phone = (self.cleaned_data.get('contact_phone') or '').strip()
        if len(phone) < 6:
            raise forms.ValidationError('Please provide a valid contact number.')
        return phone


class MatchSearchForm(forms.Form):
    bloodGroup = forms.CharField(max_length=8)
    city = forms.CharField(max_length=80, required=False)
    area = forms.CharField(max_length=80, required=False)
    urgency = forms.ChoiceField(choices=[(u.value, u.value) for u in Urgency], required=False)
    limit = forms.IntegerField(min_value=1, max_value=500, required=False)
    locality = forms.ChoiceField(choices=[('', 'Any')] + [(value, value) for value in LOCALITIES], required=False)

    def clean_locality(self):
        return self.cleaned_data.get('locality') or None

    def clean_urgency(self):
        return self.cleaned_data.get('urgency') or Urgency.MEDIUM.value


class DonorSearchForm(forms.Form):
    bloodGroup = forms.CharField(max_length=8, required=False)
    city = forms.CharField(max_length=80, required=False)
    area = forms.CharField(max_length=80, required=False)
    available = forms.NullBooleanField(required=False)


class RejectRequestForm(forms.Form):
    reason = forms.CharField(max_length=500, required=False)
