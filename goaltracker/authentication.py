from rest_framework.authentication import BaseAuthentication
from rest_framework.exceptions import AuthenticationFailed
from rest_framework.permissions import BasePermission
from django.utils import timezone
from core.models import AuthToken, User


class HasValidToken(BasePermission):
    def has_permission(self, request, view):
        if request.auth is None:
            raise AuthenticationFailed('Токен не найден')
        if not request.auth.is_active:
            raise AuthenticationFailed('Токен деактивирован')

        if request.auth.expires_at < timezone.now():
            request.auth.is_active = False
            request.auth.save(update_fields=['is_active'])
            raise AuthenticationFailed('Токен истек')
        return bool(request.user and request.auth)


class IsAdmin(BasePermission):
    def has_permission(self, request, view):
        return bool(request.auth) and request.user.role == User.UserRole.ADMIN


class TokenAuthentication(BaseAuthentication):
    def authenticate(self, request):
        token_key = request.headers.get('Authorization', '')

        if not token_key:
            return None

        try:
            token = AuthToken.objects.select_related('user').get(key=token_key)
        except AuthToken.DoesNotExist:
            raise AuthenticationFailed('Неверный токен')

        if not token.user.is_active:
            raise AuthenticationFailed('Пользователь неактивен')

        token.last_used = timezone.now()
        token.save(update_fields=['last_used'])

        return token.user, token

    def authenticate_header(self, request):
        return 'Token'
