from django.test import TestCase
from django.contrib.auth import get_user_model
from django.urls import reverse

User = get_user_model()


class UserManagerTests(TestCase):
    """Tests for the custom UserManager."""

    def test_create_user(self):
        """Test creating a regular user with email."""
        user = User.objects.create_user(
            email='test@example.com',
            password='testpass123'
        )
        self.assertEqual(user.email, 'test@example.com')
        self.assertTrue(user.check_password('testpass123'))
        self.assertFalse(user.is_staff)
        self.assertFalse(user.is_superuser)
        self.assertTrue(user.is_active)

    def test_create_user_without_email_raises_error(self):
        """Test that creating a user without email raises ValueError."""
        with self.assertRaises(ValueError):
            User.objects.create_user(email='', password='testpass123')

    def test_create_user_normalizes_email(self):
        """Test that email is normalized (lowercase domain)."""
        user = User.objects.create_user(
            email='test@EXAMPLE.COM',
            password='testpass123'
        )
        self.assertEqual(user.email, 'test@example.com')

    def test_create_superuser(self):
        """Test creating a superuser."""
        user = User.objects.create_superuser(
            email='admin@example.com',
            password='adminpass123'
        )
        self.assertTrue(user.is_staff)
        self.assertTrue(user.is_superuser)
        self.assertTrue(user.is_active)

    def test_create_superuser_without_is_staff_raises_error(self):
        """Test that superuser must have is_staff=True."""
        with self.assertRaises(ValueError):
            User.objects.create_superuser(
                email='admin@example.com',
                password='adminpass123',
                is_staff=False
            )

    def test_create_superuser_without_is_superuser_raises_error(self):
        """Test that superuser must have is_superuser=True."""
        with self.assertRaises(ValueError):
            User.objects.create_superuser(
                email='admin@example.com',
                password='adminpass123',
                is_superuser=False
            )

    def test_create_school_admin(self):
        """Test creating a school admin."""
        user = User.objects.create_school_admin(
            email='principal@school.com',
            password='schoolpass123'
        )
        self.assertTrue(user.is_school_admin)
        self.assertFalse(user.is_staff)
        self.assertFalse(user.is_teacher)
        self.assertFalse(user.is_student)

    def test_create_teacher(self):
        """Test creating a teacher."""
        user = User.objects.create_teacher(
            email='teacher@school.com',
            password='teacherpass123'
        )
        self.assertTrue(user.is_teacher)
        self.assertFalse(user.is_school_admin)

    def test_create_student(self):
        user = User.objects.create_student(email='student@school.com', password='studentpass123')
        self.assertTrue(user.is_student)
        self.assertFalse(user.is_teacher)

    def test_create_parent(self):
        user = User.objects.create_parent(email='parent@example.com', password='parentpass123')
        self.assertTrue(user.is_parent)


class UserModelTests(TestCase):
    """Tests for the User model."""

    def test_user_str_returns_email(self):
        user = User.objects.create_user(email='test@example.com', password='testpass123')
        self.assertEqual(str(user), 'test@example.com')

    def test_role_labels(self):
        """Test role_label for each role, superuser first."""
        cases = [
            (User.objects.create_superuser(email='a@example.com', password='x1y2z3w4'), 'Super Admin'),
            (User.objects.create_school_admin(email='b@example.com', password='x1y2z3w4'), 'School Admin'),
            (User.objects.create_teacher(email='c@example.com', password='x1y2z3w4'), 'Teacher'),
            (User.objects.create_student(email='d@example.com', password='x1y2z3w4'), 'Student'),
            (User.objects.create_parent(email='e@example.com', password='x1y2z3w4'), 'Parent'),
            (User.objects.create_user(email='f@example.com', password='x1y2z3w4'), 'User'),
        ]
        for user, label in cases:
            self.assertEqual(user.role_label, label)

    def test_username_field_is_email(self):
        self.assertEqual(User.USERNAME_FIELD, 'email')


class AuthenticationTests(TestCase):
    """Tests for login and the forced password change."""

    def setUp(self):
        self.user = User.objects.create_teacher(
            email='teacher@school.com',
            password='InitialPass!2024',
        )

    def test_login_with_email(self):
        response = self.client.post(reverse('accounts:login'), {
            'username': 'teacher@school.com',
            'password': 'InitialPass!2024',
        })
        self.assertRedirects(response, reverse('core:index'))

    def test_login_wrong_password(self):
        response = self.client.post(reverse('accounts:login'), {
            'username': 'teacher@school.com',
            'password': 'wrong',
        })
        self.assertEqual(response.status_code, 200)
        self.assertContains(response, 'Invalid email or password')

    def test_must_change_password_redirects(self):
        """Flagged users are sent to the password page until they change it."""
        self.user.must_change_password = True
        self.user.save()
        self.client.force_login(self.user)

        response = self.client.get(reverse('core:index'))
        self.assertRedirects(response, reverse('accounts:password_change'))

        response = self.client.get(reverse('accounts:password_change'))
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.context['is_forced'])

    def test_password_change_clears_flag(self):
        self.user.must_change_password = True
        self.user.save()
        self.client.force_login(self.user)

        response = self.client.post(reverse('accounts:password_change'), {
            'old_password': 'InitialPass!2024',
            'new_password1': 'Brand-New-Pass-77',
            'new_password2': 'Brand-New-Pass-77',
        })
        self.assertRedirects(response, reverse('core:index'))
        self.user.refresh_from_db()
        self.assertFalse(self.user.must_change_password)
        self.assertTrue(self.user.check_password('Brand-New-Pass-77'))
