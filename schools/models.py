from django.db import models


class School(models.Model):
    """A school whose classes, students and results are managed here."""
    name = models.CharField(max_length=150)
    code = models.CharField(max_length=20, unique=True, help_text="Short unique code, e.g. SHS-01")
    address = models.TextField(blank=True, default='')
    city = models.CharField(max_length=100, blank=True)
    state = models.CharField(max_length=100, blank=True)
    country = models.CharField(max_length=100, blank=True, default='Nigeria')
    phone = models.CharField(max_length=20, blank=True)
    email = models.EmailField(blank=True)
    principal = models.CharField(max_length=150, blank=True)
    established = models.PositiveSmallIntegerField(null=True, blank=True, help_text="Year founded")
    logo = models.ImageField(upload_to='school_logos/', blank=True, null=True)
    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['name']

    def __str__(self):
        return self.name

    @property
    def location(self):
        return ", ".join(filter(None, [self.city, self.state, self.country]))
