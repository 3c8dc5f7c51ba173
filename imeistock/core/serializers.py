from django.conf import settings
from django.contrib.auth.password_validation import validate_password
from rest_framework import serializers
from .models import User
from .utils import absolute_media_url, sanitize_user_input
from .validators import validate_email_address, validate_phone_number


class UserSerializer(serializers.ModelSerializer):
    avatar_url = serializers.SerializerMethodField()
    is_admin = serializers.BooleanField(source='is_app_admin', read_only=True)
    email_verified = serializers.BooleanField(source='is_email_verified', read_only=True)

    class Meta:
        model = User
        fields = ['id', 'username', 'email', 'first_name', 'last_name', 'mobile', 'country_code',
                  'role', 'is_admin', 'email_verified', 'avatar_url', 'is_active', 'created_at', 'updated_at']
        read_only_fields = ['role', 'is_active', 'created_at', 'updated_at']

    def get_avatar_url(self, obj):
        return absolute_media_url(self.context.get('request'), obj.avatar)


def _validate_username(value, instance=None):
    username = sanitize_user_input(value)
    if not username:
        raise serializers.ValidationError("Username cannot be empty.")
    clash = User.objects.filter(username__iexact=username)
    if instance is not None:
        clash = clash.exclude(pk=instance.pk)
    if clash.exists():
        raise serializers.ValidationError("This username is already taken.")
    return username


def _validate_mobile(attrs, instance=None):
    mobile = attrs.get('mobile', getattr(instance, 'mobile', ''))
    country_code = attrs.get('country_code', getattr(instance, 'country_code', '+91'))
    if 'mobile' in attrs and mobile:
        error = validate_phone_number(mobile, country_code)
        if error:
            raise serializers.ValidationError({'mobile': error})
        attrs['mobile'] = ''.join(ch for ch in mobile if ch.isdigit())
    return attrs


class UserCreateSerializer(serializers.ModelSerializer):
    password = serializers.CharField(write_only=True)
    password_confirm = serializers.CharField(write_only=True)

    class Meta:
        model = User
        fields = ['username', 'email', 'password', 'password_confirm', 'first_name', 'last_name',
                  'mobile', 'country_code']
        extra_kwargs = {'email': {'required': True}}

    def validate_username(self, value):
        return _validate_username(value)

    def validate_email(self, value):
        error = validate_email_address(value)
        if error:
            raise serializers.ValidationError(error)
        email = value.strip().lower()
        if User.objects.filter(email__iexact=email).exists():
            raise serializers.ValidationError("An account with this email already exists.")
        return email

    def validate(self, attrs):
        if attrs['password'] != attrs['password_confirm']:
            raise serializers.ValidationError({"password": "Passwords don't match"})
        candidate = User(username=attrs.get('username'), email=attrs.get('email'))
        validate_password(attrs['password'], user=candidate)
        return _validate_mobile(attrs)

    def create(self, validated_data):
        validated_data.pop('password_confirm')
        password = validated_data.pop('password')
        user = User.objects.create(**validated_data, is_active=True, role=User.ROLE_USER)
        user.set_password(password)
        user.save()
        return user


class ProfileUpdateSerializer(serializers.ModelSerializer):
    """Fields a user may change on their own profile"""

    class Meta:
        model = User
        fields = ['username', 'email', 'first_name', 'last_name', 'mobile', 'country_code']

    def validate_username(self, value):
        return _validate_username(value, instance=self.instance)

    def validate_email(self, value):
        error = validate_email_address(value)
        if error:
            raise serializers.ValidationError(error)
        email = value.strip().lower()
        if User.objects.filter(email__iexact=email).exclude(pk=self.instance.pk).exists():
            raise serializers.ValidationError("An account with this email already exists.")
        return email

    def validate(self, attrs):
        return _validate_mobile(attrs, instance=self.instance)


class AdminUserUpdateSerializer(ProfileUpdateSerializer):
    """Fields an administrator may change on any profile"""

    class Meta(ProfileUpdateSerializer.Meta):
        fields = ['username', 'mobile', 'country_code', 'role']


class AvatarUploadSerializer(serializers.Serializer):
    avatar = serializers.ImageField()

    def validate_avatar(self, value):
        content_type = getattr(value, 'content_type', '') or ''
        if not content_type.startswith('image/'):
            raise serializers.ValidationError('Please select an image file')
        if value.size > settings.AVATAR_MAX_UPLOAD_SIZE:
            limit_mb = settings.AVATAR_MAX_UPLOAD_SIZE // (1024 * 1024)
            raise serializers.ValidationError(f'Image size must be less than {limit_mb}MB')
        return value


class PasswordChangeSerializer(serializers.Serializer):
    old_password = serializers.CharField(write_only=True)
    new_password = serializers.CharField(write_only=True)
    new_password_confirm = serializers.CharField(write_only=True)

    def validate_old_password(self, value):
        if not self.context['request'].user.check_password(value):
            raise serializers.ValidationError("Current password is incorrect.")
        return value

    def validate(self, attrs):
        if attrs['new_password'] != attrs['new_password_confirm']:
            raise serializers.ValidationError({"new_password": "Passwords don't match"})
        validate_password(attrs['new_password'], user=self.context['request'].user)
        return attrs


class PasswordResetRequestSerializer(serializers.Serializer):
    email = serializers.EmailField()


class PasswordResetConfirmSerializer(serializers.Serializer):
    uid = serializers.CharField()
    token = serializers.CharField()
    new_password = serializers.CharField(write_only=True)


class PasswordStrengthSerializer(serializers.Serializer):
    password = serializers.CharField(allow_blank=True, trim_whitespace=False)


class EmailVerificationSerializer(serializers.Serializer):
    uid = serializers.CharField()
    token = serializers.CharField()


class ResendVerificationSerializer(serializers.Serializer):
    email = serializers.EmailField()
