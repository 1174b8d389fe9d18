from django import forms
from django.utils import timezone

from blood.services.matching import BloodGroup, InvalidBloodGroup
from .models import Donor

MINIMUM_DONOR_AGE = 18


class DonorForm(forms.ModelForm):
    bloodgroup = forms.CharField(max_length=8)

    class Meta:
        model = Donor
        fields = [
            'full_name', 'email', 'phone', 'alternate_phone', 'gender', 'date_of_birth',
            'bloodgroup', 'city', 'area', 'address', 'latitude', 'longitude', 'last_donated_at', 'is_active',
        ]
        widgets = {
            'address': forms.Textarea(attrs={'rows': 3}),
        }

    def clean_bloodgroup(self):
        try:
            return BloodGroup.parse(self.cleaned_data.get('bloodgroup')).value
        except InvalidBloodGroup:
            raise forms.ValidationError('Please select a valid blood group.')

    def clean_date_of_birth(self):
        born = self.cleaned_data.get('date_of_birth')
        if born is None:
            return born
        today = timezone.localdate()
        age = today.year - born.year - ((today.month, today.day) < (born.month, born.day))
        if age < MINIMUM_DONOR_AGE:
            raise forms.ValidationError('Donor must be 18 or above.')
        return born

    def clean_last_donated_at(self):
        donated = self.cleaned_data.get('last_donated_at')
        if donated and donated > timezone.localdate():
            raise forms.ValidationError('Last donation date cannot be in the future.')
        return donated

    def _active_others(self):
        queryset = Donor.objects.filter(is_active=True)
        if self.instance.pk:
            queryset = queryset.exclude(pk=self.instance.pk)
        return queryset

    def clean_email(self):
        email = (self.cleaned_data.get('email') or '').strip()
        if email and self._active_others().filter(email__iexact=email).exists():
            raise forms.ValidationError('Email already registered.')
        return email

    def clean_phone(self):
        phone = (self.cleaned_data.get('phone') or '').strip()
        if self._active_others().filter(phone=phone).exists():
            raise forms.ValidationError('Phone number already registered.')
        return phone

    def clean(self):
        cleaned = super().clean()
        latitude = cleaned.get('latitude')
        longitude = cleaned.get('longitude')
        if (latitude is None) != (longitude is None):
            raise forms.ValidationError('Please provide both latitude and longitude or leave both blank.')
        return cleaned


class DonorProfileForm(DonorForm):
    """Self-service registration and profile edits; activation stays with admins."""

    class Meta(DonorForm.Meta):
        fields = [field for field in DonorForm.Meta.fields if field != 'is_active']


class DonationForm(forms.Form):
    donationDate = forms.DateField(required=False)

    def clean_donationDate(self):
        donated = self.cleaned_data.get('donationDate') or timezone.localdate()
        if donated > timezone.localdate():
            raise forms.ValidationError('Donation date cannot be in the future.')
        return donated
