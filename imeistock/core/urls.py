from django.urls import path
from .views import (
    CustomTokenObtainPairView, CustomTokenRefreshView, register, verify_email, resend_verification, user_me,
    profile, profile_avatar, change_password,
    password_reset_request, password_reset_confirm, password_strength_check,
    user_list, user_detail, user_activate, user_deactivate,
    user_send_password_reset, user_avatar,
)

urlpatterns = [
    # Auth endpoints
    path('auth/register/', register, name='register'),
    path('auth/verify-email/', verify_email, name='verify-email'),
    path('auth/verify-email/resend/', resend_verification, name='verify-email-resend'),
    path('auth/login/', CustomTokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('auth/refresh/', CustomTokenRefreshView.as_view(), name='token_refresh'),
    path('auth/me/', user_me, name='user-me'),
    path('auth/password-reset/', password_reset_request, name='password-reset'),
    path('auth/password-reset/confirm/', password_reset_confirm, name='password-reset-confirm'),
    path('auth/password-strength/', password_strength_check, name='password-strength'),

    # Profile settings
    path('profile/', profile, name='profile'),
    path('profile/avatar/', profile_avatar, name='profile-avatar'),
    path('profile/change-password/', change_password, name='change-password'),

    # User management (admin)
    path('users/', user_list, name='user-list'),
    path('users/<int:pk>/', user_detail, name='user-detail'),
    path('users/<int:pk>/activate/', user_activate, name='user-activate'),
    path('users/<int:pk>/deactivate/', user_deactivate, name='user-deactivate'),
    path('users/<int:pk>/send-password-reset/', user_send_password_reset, name='user-send-password-reset'),
    path('users/<int:pk>/avatar/', user_avatar, name='user-avatar'),
]
