import logging

from django.contrib import messages
from django.contrib.auth.views import PasswordChangeView
from django.urls import reverse_lazy

logger = logging.getLogger(__name__)


class ForcePasswordChangeView(PasswordChangeView):
    """
    Password change view that clears the must_change_password flag.
    """
    template_name = 'accounts/password_change.html'
    success_url = reverse_lazy('core:index')

    def form_valid(self, form):
        response = super().form_valid(form)

        user = self.request.user
        if user.must_change_password:
            user.must_change_password = False
            user.save(update_fields=['must_change_password'])
            logger.info(f"User {user.email} replaced their initial password")

        messages.success(self.request, 'Your password has been changed successfully.')
        return response

    def get_context_data(self, **kwargs):
        context = super().get_context_data(**kwargs)
        context['is_forced'] = self.request.user.must_change_password
        return context
