"""
Test suite for the core module
Tests: registration, e-mail verification, login, password flows, profile settings, user management
"""
import io
import re
import shutil
import tempfile

from django.contrib.auth.tokens import default_token_generator
from django.core import mail
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase, override_settings
from django.utils.encoding import force_bytes
from django.utils.http import urlsafe_base64_encode
from PIL import Image
from rest_framework import status
from rest_framework_simplejwt.tokens import RefreshToken

from .tokens import email_verification_token
from .test_utils import TestDataFactory, AuthenticatedAPIClient, TEST_PASSWORD
from .validators import is_dummy_email, password_strength, validate_phone_number


def make_image_file(name='avatar.png', size=(20, 20)):
    buffer = io.BytesIO()
    Image.new('RGB', size, color=(200, 30, 30)).save(buffer, format='PNG')
    return SimpleUploadedFile(name, buffer.getvalue(), content_type='image/png')


class ValidatorTests(TestCase):
    """Test e-mail, password and phone helpers"""

    def test_dummy_email_detection(self):
        self.assertTrue(is_dummy_email('someone@example.com'))
        self.assertTrue(is_dummy_email('test@shopmail.in'))
        self.assertTrue(is_dummy_email('not-an-email'))
        self.assertFalse(is_dummy_email('ravi.kumar@shopmail.in'))

    def test_password_strength_scores(self):
        self.assertEqual(password_strength('')['label'], 'Very Weak')
        self.assertEqual(password_strength('abc')['score'], 1)
        self.assertEqual(password_strength(TEST_PASSWORD)['label'], 'Strong')

    def test_phone_rules_per_country(self):
        self.assertIsNone(validate_phone_number('98765 43210', '+91'))
        self.assertIsNotNone(validate_phone_number('98765', '+91'))
        self.assertIsNone(validate_phone_number('91234567', '+65'))
        # Unknown codes fall back to 7-15 digits
        self.assertIsNone(validate_phone_number('1234567', '+999'))
        self.assertIsNotNone(validate_phone_number('123456', '+999'))


class AuthTests(TestCase):
    """Test registration and login"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()

    def test_register(self):
        """Test registering sends a verification link instead of tokens"""
        response = self.client.post('/api/v1/auth/register/', {
            'username': 'ravi',
            'email': 'ravi.kumar@shopmail.in',
            'password': TEST_PASSWORD,
            'password_confirm': TEST_PASSWORD,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertNotIn('access', response.data)
        self.assertFalse(response.data['user']['email_verified'])
        self.assertEqual(mail.outbox[0].to, ['ravi.kumar@shopmail.in'])
        self.assertIn('/verify-email?uid=', mail.outbox[0].body)
        self.assertEqual(response.data['user']['role'], 'user')
        self.assertFalse(response.data['user']['is_admin'])

    def test_register_rejects_dummy_email(self):
        response = self.client.post('/api/v1/auth/register/', {
            'username': 'ravi',
            'email': 'ravi@example.com',
            'password': TEST_PASSWORD,
            'password_confirm': TEST_PASSWORD,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('email', response.data)

    def test_register_rejects_weak_password(self):
        response = self.client.post('/api/v1/auth/register/', {
            'username': 'ravi',
            'email': 'ravi.kumar@shopmail.in',
            'password': 'weakpass',
            'password_confirm': 'weakpass',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_register_rejects_duplicate_username_case_insensitive(self):
        TestDataFactory.create_user(username='ravi')
        response = self.client.post('/api/v1/auth/register/', {
            'username': 'RAVI',
            'email': 'ravi.kumar@shopmail.in',
            'password': TEST_PASSWORD,
            'password_confirm': TEST_PASSWORD,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('username', response.data)

    def test_login_with_email(self):
        """Test the e-mail address works as login identifier"""
        user = TestDataFactory.create_user(username='meera', email='meera@shopmail.in')
        response = self.client.post('/api/v1/auth/login/', {
            'username': 'Meera@ShopMail.in',
            'password': TEST_PASSWORD,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)
        self.assertEqual(response.data['user']['id'], user.id)

    def test_login_deactivated_account(self):
        TestDataFactory.create_user(username='meera', is_active=False)
        response = self.client.post('/api/v1/auth/login/', {
            'username': 'meera',
            'password': TEST_PASSWORD,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_refresh(self):
        refresh = RefreshToken.for_user(TestDataFactory.create_user())
        response = self.client.post('/api/v1/auth/refresh/', {'refresh': str(refresh)}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)

    def test_refresh_for_deleted_user(self):
        """Test a refresh token of a removed account is rejected"""
        user = TestDataFactory.create_user()
        refresh = RefreshToken.for_user(user)
        user.delete()
        response = self.client.post('/api/v1/auth/refresh/', {'refresh': str(refresh)}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertNotIn('access', response.data)

    def test_me(self):
        user = TestDataFactory.create_admin()
        self.client.authenticate_user(user)
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['is_admin'])

    def test_me_requires_authentication(self):
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_password_strength_endpoint(self):
        response = self.client.post('/api/v1/auth/password-strength/', {'password': 'abc'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data['criteria']['has_uppercase'])
        self.assertIn('At least one uppercase letter (A-Z)', response.data['unmet'])
        self.assertEqual(response.data['strength']['label'], 'Weak')


class EmailVerificationTests(TestCase):
    """Test e-mail verification before sign-in"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.user = TestDataFactory.create_user(username='nisha', email='nisha@shopmail.in', email_verified_at=None)

    def login(self):
        return self.client.post('/api/v1/auth/login/', {
            'username': 'nisha',
            'password': TEST_PASSWORD,
        }, format='json')

    def verification_payload(self):
        return {
            'uid': urlsafe_base64_encode(force_bytes(self.user.pk)),
            'token': email_verification_token.make_token(self.user),
        }

    def test_login_requires_verified_email(self):
        response = self.login()
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(
            str(response.data['detail']),
            'Please verify your email address before signing in. Check your inbox for the verification link.',
        )

    def test_unverified_login_with_wrong_password_is_generic(self):
        response = self.client.post('/api/v1/auth/login/', {
            'username': 'nisha',
            'password': 'Wr0ng!Pass00',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertNotIn('verify', str(response.data['detail']))

    def test_verify_then_login(self):
        response = self.client.post('/api/v1/auth/verify-email/', self.verification_payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.user.refresh_from_db()
        self.assertIsNotNone(self.user.email_verified_at)

        response = self.login()
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['user']['email_verified'])

    def test_registration_link_verifies_account(self):
        """Test the link mailed at registration activates sign-in"""
        self.client.post('/api/v1/auth/register/', {
            'username': 'arjun',
            'email': 'arjun.mehta@shopmail.in',
            'password': TEST_PASSWORD,
            'password_confirm': TEST_PASSWORD,
        }, format='json')
        match = re.search(r'uid=([^&\s]+)&token=(\S+)', mail.outbox[-1].body)
        response = self.client.post('/api/v1/auth/verify-email/', {
            'uid': match.group(1),
            'token': match.group(2),
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        response = self.client.post('/api/v1/auth/login/', {
            'username': 'arjun.mehta@shopmail.in',
            'password': TEST_PASSWORD,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_verify_bad_token(self):
        payload = self.verification_payload()
        payload['token'] = 'bad-token'
        response = self.client.post('/api/v1/auth/verify-email/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('error', response.data)
        self.user.refresh_from_db()
        self.assertIsNone(self.user.email_verified_at)

    def test_resend_verification(self):
        response = self.client.post('/api/v1/auth/verify-email/resend/', {'email': 'NISHA@shopmail.in'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(mail.outbox[0].to, ['nisha@shopmail.in'])

    def test_resend_skips_verified_and_unknown_addresses(self):
        verified = TestDataFactory.create_user(email='done@shopmail.in')
        for email in [verified.email, 'nobody@shopmail.in']:
            response = self.client.post('/api/v1/auth/verify-email/resend/', {'email': email}, format='json')
            self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(mail.outbox), 0)

class PasswordFlowTests(TestCase):
    """Test password change and reset"""

    def setUp(self):
        self.user = TestDataFactory.create_user(username='asha', email='asha@shopmail.in')
        self.client = AuthenticatedAPIClient()

    def test_change_password(self):
        self.client.authenticate_user(self.user)
        response = self.client.post('/api/v1/profile/change-password/', {
            'old_password': TEST_PASSWORD,
            'new_password': 'N3w!Secret#42',
            'new_password_confirm': 'N3w!Secret#42',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.user.refresh_from_db()
        self.assertTrue(self.user.check_password('N3w!Secret#42'))

    def test_change_password_wrong_old_password(self):
        self.client.authenticate_user(self.user)
        response = self.client.post('/api/v1/profile/change-password/', {
            'old_password': 'Wr0ng!Pass99',
            'new_password': 'N3w!Secret#42',
            'new_password_confirm': 'N3w!Secret#42',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('old_password', response.data)

    def test_reset_request_sends_mail(self):
        response = self.client.post('/api/v1/auth/password-reset/', {'email': 'asha@shopmail.in'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(mail.outbox), 1)
        self.assertIn('reset-password?uid=', mail.outbox[0].body)

    def test_reset_request_unknown_email_does_not_leak(self):
        response = self.client.post('/api/v1/auth/password-reset/', {'email': 'nobody@shopmail.in'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(mail.outbox), 0)

    def test_reset_confirm(self):
        uid = urlsafe_base64_encode(force_bytes(self.user.pk))
        token = default_token_generator.make_token(self.user)
        response = self.client.post('/api/v1/auth/password-reset/confirm/', {
            'uid': uid,
            'token': token,
            'new_password': 'N3w!Secret#42',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.user.refresh_from_db()
        self.assertTrue(self.user.check_password('N3w!Secret#42'))

    def test_reset_confirm_bad_token(self):
        uid = urlsafe_base64_encode(force_bytes(self.user.pk))
        response = self.client.post('/api/v1/auth/password-reset/confirm/', {
            'uid': uid,
            'token': 'bad-token',
            'new_password': 'N3w!Secret#42',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('error', response.data)


class ProfileTests(TestCase):
    """Test profile settings"""

    def setUp(self):
        self.media_root = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, self.media_root, ignore_errors=True)
        self.user = TestDataFactory.create_user(username='kiran')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_update_profile_mobile(self):
        response = self.client.patch('/api/v1/profile/', {
            'mobile': '98765 43210',
            'country_code': '+91',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['mobile'], '9876543210')

    def test_update_profile_invalid_mobile(self):
        response = self.client.patch('/api/v1/profile/', {'mobile': '12345', 'country_code': '+91'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('mobile', response.data)

    def test_update_profile_username_taken(self):
        TestDataFactory.create_user(username='taken')
        response = self.client.patch('/api/v1/profile/', {'username': 'Taken'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_upload_and_remove_avatar(self):
        with override_settings(MEDIA_ROOT=self.media_root):
            response = self.client.post('/api/v1/profile/avatar/', {'avatar': make_image_file()}, format='multipart')
            self.assertEqual(response.status_code, status.HTTP_200_OK)
            self.assertIn(f'/media/avatars/{self.user.pk}-', response.data['avatar_url'])

            response = self.client.delete('/api/v1/profile/avatar/')
            self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.user.refresh_from_db()
        self.assertFalse(self.user.avatar)

    def test_upload_avatar_rejects_non_image(self):
        with override_settings(MEDIA_ROOT=self.media_root):
            upload = SimpleUploadedFile('notes.txt', b'plain text', content_type='text/plain')
            response = self.client.post('/api/v1/profile/avatar/', {'avatar': upload}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_upload_avatar_size_limit(self):
        with override_settings(MEDIA_ROOT=self.media_root, AVATAR_MAX_UPLOAD_SIZE=10):
            response = self.client.post('/api/v1/profile/avatar/', {'avatar': make_image_file()}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('avatar', response.data)


class UserManagementTests(TestCase):
    """Test admin-only user management"""

    def setUp(self):
        self.admin = TestDataFactory.create_admin(username='boss')
        self.user = TestDataFactory.create_user(username='clerk')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)

    def test_list_users(self):
        response = self.client.get('/api/v1/users/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([u['username'] for u in response.data], ['boss', 'clerk'])

    def test_list_users_forbidden_for_regular_user(self):
        self.client.authenticate_user(self.user)
        response = self.client.get('/api/v1/users/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_update_role(self):
        response = self.client.patch(f'/api/v1/users/{self.user.pk}/', {'role': 'admin'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['is_admin'])

    def test_deactivate_and_activate(self):
        response = self.client.post(f'/api/v1/users/{self.user.pk}/deactivate/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data['is_active'])

        response = self.client.post(f'/api/v1/users/{self.user.pk}/activate/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['is_active'])

    def test_cannot_deactivate_self(self):
        response = self.client.post(f'/api/v1/users/{self.admin.pk}/deactivate/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.admin.refresh_from_db()
        self.assertTrue(self.admin.is_active)

    def test_send_password_reset(self):
        response = self.client.post(f'/api/v1/users/{self.user.pk}/send-password-reset/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(mail.outbox[0].to, [self.user.email])

    def test_upload_avatar_for_user(self):
        """Test an admin can set another user's avatar"""
        media_root = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, media_root, ignore_errors=True)
        with override_settings(MEDIA_ROOT=media_root):
            response = self.client.post(f'/api/v1/users/{self.user.pk}/avatar/',
                                        {'avatar': make_image_file()}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn(f'/media/avatars/{self.user.pk}-', response.data['avatar_url'])
        self.user.refresh_from_db()
        self.assertTrue(self.user.avatar)

    def test_upload_avatar_for_user_requires_admin(self):
        self.client.authenticate_user(self.user)
        response = self.client.post(f'/api/v1/users/{self.admin.pk}/avatar/',
                                    {'avatar': make_image_file()}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
