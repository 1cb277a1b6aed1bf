import logging

from django import forms
from django.conf import settings
from django.contrib import admin
from django.contrib.auth import get_user_model
from django.contrib.auth.password_validation import validate_password
from django.core.exceptions import ValidationError
from django.db import transaction

from unfold.admin import ModelAdmin

from .models import School

User = get_user_model()
logger = logging.getLogger(__name__)


class SchoolCreationForm(forms.ModelForm):
    """School form that can also create the school's first administrator."""

    admin_email = forms.EmailField(
        required=False,
        label="Principal Email",
        help_text="Email address for the school administrator",
        widget=forms.EmailInput(attrs={'placeholder': 'admin@school.com'})
    )
    admin_password = forms.CharField(
        required=False,
        label="Principal Password",
        help_text="Initial password; the administrator must change it on first login",
        widget=forms.PasswordInput()
    )

    class Meta:
        model = School
        fields = '__all__'

    def clean_code(self):
        return self.cleaned_data['code'].strip().upper()

    def clean_admin_email(self):
        email = self.cleaned_data.get('admin_email')
        if email and User.objects.filter(email__iexact=email).exists():
            raise ValidationError("A user with this email already exists.")
        return email

    def clean_admin_password(self):
        password = self.cleaned_data.get('admin_password')
        if password:
            try:
                validate_password(password)
            except ValidationError as e:
                if not settings.DEBUG:
                    raise forms.ValidationError(e.messages)
        return password

    def clean(self):
        cleaned_data = super().clean()
        if bool(cleaned_data.get('admin_email')) != bool(cleaned_data.get('admin_password')):
            raise ValidationError("Provide both the principal email and password, or neither.")
        return cleaned_data


@admin.register(School)
class SchoolAdmin(ModelAdmin):
    form = SchoolCreationForm

    list_display = ('name', 'code', 'city', 'principal', 'is_active', 'created_at')
    list_filter = ('is_active', 'state')
    search_fields = ('name', 'code', 'city')
    readonly_fields = ('created_at', 'updated_at')

    def save_model(self, request, obj, form, change):
        """Save the school and create its admin user when details were given."""
        with transaction.atomic():
            super().save_model(request, obj, form, change)

            admin_email = form.cleaned_data.get('admin_email')
            admin_password = form.cleaned_data.get('admin_password')
            if not change and admin_email and admin_password:
                User.objects.create_school_admin(email=admin_email, password=admin_password)
                logger.info(f"School admin {admin_email} created for {obj.name}")
                self.message_user(request, f"Admin {admin_email} created successfully.")
