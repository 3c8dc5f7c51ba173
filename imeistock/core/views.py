import logging
from django.conf import settings
from django.contrib.auth import get_user_model
from django.contrib.auth.password_validation import validate_password
from django.contrib.auth.tokens import default_token_generator
from django.core.exceptions import ObjectDoesNotExist, ValidationError as DjangoValidationError
from django.core.mail import send_mail
from django.shortcuts import get_object_or_404
from django.utils.encoding import force_bytes, force_str
from django.utils import timezone
from django.utils.http import urlsafe_base64_decode, urlsafe_base64_encode
from rest_framework import status
from rest_framework.decorators import api_view, parser_classes, permission_classes
from rest_framework.parsers import FormParser, MultiPartParser
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework_simplejwt.exceptions import AuthenticationFailed, InvalidToken, TokenError
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer, TokenRefreshSerializer
from rest_framework_simplejwt.settings import api_settings
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView
from .permissions import IsAppAdmin
from .serializers import (
    UserSerializer, UserCreateSerializer, ProfileUpdateSerializer, AdminUserUpdateSerializer,
    AvatarUploadSerializer, PasswordChangeSerializer, PasswordResetRequestSerializer,
    PasswordResetConfirmSerializer, PasswordStrengthSerializer,
    EmailVerificationSerializer, ResendVerificationSerializer,
)
from .tokens import email_verification_token
from .validators import password_criteria, password_strength, unmet_criteria_messages

User = get_user_model()

logger = logging.getLogger('imeistock.core')

EMAIL_NOT_VERIFIED_MESSAGE = (
    'Please verify your email address before signing in. '
    'Check your inbox for the verification link.'
)


class CustomTokenObtainPairSerializer(TokenObtainPairSerializer):
    """Accepts either the username or the e-mail address as identifier"""

    def validate(self, attrs):
        identifier = (attrs.get(self.username_field) or '').strip()
        if '@' in identifier:
            match = User.objects.filter(email__iexact=identifier).first()
            if match:
                identifier = match.username
        attrs[self.username_field] = identifier

        candidate = User.objects.filter(username=identifier).first()
        if candidate and candidate.check_password(attrs.get('password', '')):
            if not candidate.is_active:
                raise AuthenticationFailed('User account is disabled.')
            if not candidate.is_email_verified:
                raise AuthenticationFailed(EMAIL_NOT_VERIFIED_MESSAGE, code='email_not_verified')

        data = super().validate(attrs)
        data['user'] = UserSerializer(self.user, context=self.context).data
        return data

    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        token['username'] = user.username
        token['role'] = user.role
        return token


class CustomTokenObtainPairView(TokenObtainPairView):
    serializer_class = CustomTokenObtainPairSerializer


class CustomTokenRefreshSerializer(TokenRefreshSerializer):
    """Token refresh that reports deleted users as an invalid token"""
    def validate(self, attrs):
        try:
            refresh = self.token_class(attrs['refresh'])
        except TokenError:
            raise InvalidToken('Token is invalid or expired.')
        user_id = refresh.payload.get(api_settings.USER_ID_CLAIM)
        if user_id is not None and not User.objects.filter(**{api_settings.USER_ID_FIELD: user_id}).exists():
            raise InvalidToken('Token is invalid. User no longer exists.')

        try:
            return super().validate(attrs)
        except (InvalidToken, TokenError):
            raise InvalidToken('Token is invalid or expired.')
        except (ObjectDoesNotExist, User.DoesNotExist):
            raise InvalidToken('Token is invalid. User no longer exists.')


class CustomTokenRefreshView(TokenRefreshView):
    serializer_class = CustomTokenRefreshSerializer


def send_verification_email(user):
    """Mail a one-time confirmation link for the user's address"""
    uid = urlsafe_base64_encode(force_bytes(user.pk))
    token = email_verification_token.make_token(user)
    link = f"{settings.FRONTEND_URL.rstrip('/')}/verify-email?uid={uid}&token={token}"
    send_mail(
        subject='Verify your email address',
        message=f"Hello {user.username},\n\nConfirm your email address to start using your account:\n{link}\n",
        from_email=settings.DEFAULT_FROM_EMAIL,
        recipient_list=[user.email],
    )
    logger.info(f"Verification e-mail sent to user {user.pk}")


def send_password_reset_email(user):
    """Mail a one-time reset link for the user"""
    uid = urlsafe_base64_encode(force_bytes(user.pk))
    token = default_token_generator.make_token(user)
    link = f"{settings.FRONTEND_URL.rstrip('/')}/reset-password?uid={uid}&token={token}"
    send_mail(
        subject='Reset your password',
        message=f"Hello {user.username},\n\nUse the link below to choose a new password:\n{link}\n",
        from_email=settings.DEFAULT_FROM_EMAIL,
        recipient_list=[user.email],
    )
    logger.info(f"Password reset e-mail sent to user {user.pk}")


@api_view(['POST'])
@permission_classes([AllowAny])
def register(request):
    """User registration endpoint; sign-in is allowed once the e-mail is verified"""
    serializer = UserCreateSerializer(data=request.data)
    if serializer.is_valid():
        user = serializer.save()
        logger.info(f"Registered user '{user.username}'")
        send_verification_email(user)
        return Response({
            'user': UserSerializer(user, context={'request': request}).data,
            'message': 'Account created. Check your inbox for the verification link before signing in.',
        }, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['POST'])
@permission_classes([AllowAny])
def verify_email(request):
    """Confirm an address from the uid and token in the verification link"""
    serializer = EmailVerificationSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    data = serializer.validated_data
    try:
        user = User.objects.get(pk=force_str(urlsafe_base64_decode(data['uid'])))
    except (TypeError, ValueError, OverflowError, User.DoesNotExist):
        user = None

    if user is not None and user.email_verified_at is not None:
        return Response({'message': 'Email is already verified. You can log in.'})
    if user is None or not email_verification_token.check_token(user, data['token']):
        return Response({'error': 'Verification link is invalid or has expired.'}, status=status.HTTP_400_BAD_REQUEST)

    user.email_verified_at = timezone.now()
    user.save(update_fields=['email_verified_at', 'updated_at'])
    logger.info(f"User {user.pk} verified their email address")
    return Response({'message': 'Email verified successfully! You can now log in.'})


@api_view(['POST'])
@permission_classes([AllowAny])
def resend_verification(request):
    """Send a new verification link; the response never reveals whether the address exists"""
    serializer = ResendVerificationSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    user = User.objects.filter(
        email__iexact=serializer.validated_data['email'], is_active=True, email_verified_at__isnull=True,
    ).first()
    if user:
        send_verification_email(user)
    return Response({'message': 'If an unverified account exists for this email, a verification link has been sent.'})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def user_me(request):
    """Current user with role information"""
    return Response(UserSerializer(request.user, context={'request': request}).data)


@api_view(['GET', 'PATCH', 'PUT'])
@permission_classes([IsAuthenticated])
def profile(request):
    """Read or update the signed-in user's profile"""
    user = request.user
    if request.method == 'GET':
        return Response(UserSerializer(user, context={'request': request}).data)

    serializer = ProfileUpdateSerializer(user, data=request.data, partial=True)
    if serializer.is_valid():
        serializer.save()
        logger.info(f"User {user.pk} updated their profile")
        return Response(UserSerializer(user, context={'request': request}).data)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


def _store_avatar(request, user):
    serializer = AvatarUploadSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    upload = serializer.validated_data['avatar']
    previous = user.avatar.name if user.avatar else None
    user.avatar.save(upload.name, upload, save=True)
    if previous and previous != user.avatar.name:
        user.avatar.storage.delete(previous)
    logger.info(f"Stored avatar for user {user.pk}: {user.avatar.name}")
    return Response(UserSerializer(user, context={'request': request}).data)


@api_view(['POST', 'DELETE'])
@permission_classes([IsAuthenticated])
@parser_classes([MultiPartParser, FormParser])
def profile_avatar(request):
    """Upload (replacing any previous file) or remove the user's avatar"""
    user = request.user
    if request.method == 'DELETE':
        if user.avatar:
            user.avatar.delete(save=False)
            user.avatar = None
            user.save(update_fields=['avatar', 'updated_at'])
        return Response(status=status.HTTP_204_NO_CONTENT)
    return _store_avatar(request, user)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def change_password(request):
    serializer = PasswordChangeSerializer(data=request.data, context={'request': request})
    if serializer.is_valid():
        request.user.set_password(serializer.validated_data['new_password'])
        request.user.save()
        logger.info(f"User {request.user.pk} changed their password")
        return Response({'message': 'Password updated successfully.'})
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['POST'])
@permission_classes([AllowAny])
def password_reset_request(request):
    """Send a reset link; the response never reveals whether the address exists"""
    serializer = PasswordResetRequestSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    user = User.objects.filter(email__iexact=serializer.validated_data['email'], is_active=True).first()
    if user:
        send_password_reset_email(user)
    return Response({'message': 'If an account exists for this email, a reset link has been sent.'})


@api_view(['POST'])
@permission_classes([AllowAny])
def password_reset_confirm(request):
    serializer = PasswordResetConfirmSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    data = serializer.validated_data
    try:
        user = User.objects.get(pk=force_str(urlsafe_base64_decode(data['uid'])))
    except (TypeError, ValueError, OverflowError, User.DoesNotExist):
        user = None

    if user is None or not default_token_generator.check_token(user, data['token']):
        return Response({'error': 'Reset link is invalid or has expired.'}, status=status.HTTP_400_BAD_REQUEST)

    try:
        validate_password(data['new_password'], user=user)
    except DjangoValidationError as e:
        return Response({'new_password': list(e.messages)}, status=status.HTTP_400_BAD_REQUEST)

    user.set_password(data['new_password'])
    user.save()
    logger.info(f"Password reset completed for user {user.pk}")
    return Response({'message': 'Password has been reset. You can sign in now.'})


@api_view(['POST'])
@permission_classes([AllowAny])
def password_strength_check(request):
    serializer = PasswordStrengthSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    password = serializer.validated_data['password']
    criteria = password_criteria(password)
    return Response({
        'criteria': criteria,
        'strength': password_strength(password),
        'unmet': unmet_criteria_messages(criteria),
    })


# User management views (admin only)
@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAppAdmin])
def user_list(request):
    """List all user profiles"""
    users = User.objects.all().order_by('username')
    serializer = UserSerializer(users, many=True, context={'request': request})
    return Response(serializer.data)


@api_view(['GET', 'PATCH', 'PUT'])
@permission_classes([IsAuthenticated, IsAppAdmin])
def user_detail(request, pk):
    """Retrieve or update any user's profile"""
    user = get_object_or_404(User, pk=pk)
    if request.method == 'GET':
        return Response(UserSerializer(user, context={'request': request}).data)

    serializer = AdminUserUpdateSerializer(user, data=request.data, partial=True)
    if serializer.is_valid():
        serializer.save()
        logger.info(f"Admin {request.user.pk} updated user {user.pk}")
        return Response(UserSerializer(user, context={'request': request}).data)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


def _set_user_active(request, pk, is_active):
    user = get_object_or_404(User, pk=pk)
    if not is_active and user.pk == request.user.pk:
        return Response({'error': 'You cannot deactivate your own account.'}, status=status.HTTP_400_BAD_REQUEST)
    user.is_active = is_active
    user.save(update_fields=['is_active', 'updated_at'])
    logger.info(f"Admin {request.user.pk} set is_active={is_active} for user {user.pk}")
    return Response(UserSerializer(user, context={'request': request}).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAppAdmin])
def user_activate(request, pk):
    return _set_user_active(request, pk, True)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAppAdmin])
def user_deactivate(request, pk):
    return _set_user_active(request, pk, False)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAppAdmin])
def user_send_password_reset(request, pk):
    user = get_object_or_404(User, pk=pk)
    if not user.email:
        return Response({'error': 'This user has no email address.'}, status=status.HTTP_400_BAD_REQUEST)
    send_password_reset_email(user)
    return Response({'message': f'Password reset email sent to {user.email}.'})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAppAdmin])
@parser_classes([MultiPartParser, FormParser])
def user_avatar(request, pk):
    """Upload an avatar on behalf of a user"""
    user = get_object_or_404(User, pk=pk)
    return _store_avatar(request, user)
