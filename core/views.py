from django.utils import timezone
from drf_spectacular.utils import extend_schema, OpenApiExample, OpenApiResponse
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from goaltracker.authentication import TokenAuthentication, HasValidToken
from goaltracker.error_responses import BAD_REQUEST_RESPONSE, UNAUTHORIZED_RESPONSE, INTERNAL_SERVER_ERROR
from .models import AuthToken
from .serializers import UserSerializer, UserCreateSerializer, LoginSerializer, LoginResponseSerializer


class RegisterView(APIView):
    authentication_classes = []
    permission_classes = []

    @extend_schema(
        summary='Регистрация пользователя',
        description='''
            Регистрация нового пользователя

            Создает учетную запись с ролью user.

            Обязательные поля:
            - username: Уникальное имя (латинские буквы, цифры, подчеркивание, от 3 символов)
            - password: Пароль (строчная и заглавная буква, цифра, от 5 символов)
            - confirm_password: Подтверждение пароля
            ''',
        request=UserCreateSerializer,
        responses={
            201: OpenApiResponse(response=UserSerializer, description='Created'),
            400: BAD_REQUEST_RESPONSE,
            500: INTERNAL_SERVER_ERROR
        },
        tags=['Пользователи']
    )
    def post(self, request):
        serializer = UserCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return Response(serializer.data, status=status.HTTP_201_CREATED)


class LoginView(APIView):
    authentication_classes = []
    permission_classes = []

    @extend_schema(
        summary='Вход в систему',
        description='''
            Аутентификация пользователя

            Получение токена доступа для работы с API.

            Процесс аутентификации:
            - Проверка существования пользователя, пароля и активности учетной записи
            - Создание токена с временем жизни TOKEN_TTL_HOURS
            - Обновление last_login

            Токен передается в заголовке Authorization без префикса.
            ''',
        request=LoginSerializer,
        responses={
            200: OpenApiResponse(
                response=LoginResponseSerializer,
                description='OK',
                examples=[
                    OpenApiExample(
                        name='Успешный вход',
                        summary='Стандартный успешный ответ',
                        value={
                            'success': True,
                            'message': 'Авторизация успешна',
                            'token': 'a1b2c3d4e5f67890123456789abcdef0123456789abcdef0123456789abcdef',
                            'expires_at': '2024-01-16T10:30:00Z',
                            'user': {
                                'id': 123,
                                'username': 'john_doe',
                                'role': 'user',
                                'is_active': True,
                                'created_at': '2024-01-10T09:15:30Z',
                                'updated_at': '2024-01-15T14:20:45Z'
                            }
                        }
                    )
                ]
            ),
            401: UNAUTHORIZED_RESPONSE
        },
        tags=['Пользователи']
    )
    def post(self, request):
        serializer = LoginSerializer(data=request.data)

        if serializer.is_valid():
            user = serializer.validated_data['user']

            token = AuthToken.create_token(user)

            user.last_login = timezone.now()
            user.save(update_fields=['last_login'])

            return Response({
                'success': True,
                'message': 'Авторизация успешна',
                'token': token.key,
                'expires_at': token.expires_at,
                'user': UserSerializer(user).data
            })

        return Response({
            'success': False,
            'errors': serializer.errors
        }, status=status.HTTP_401_UNAUTHORIZED)


class LogoutView(APIView):
    authentication_classes = [TokenAuthentication]
    permission_classes = [HasValidToken]

    @extend_schema(
        summary='Выход из системы',
        description='''
            Завершение сессии пользователя

            Деактивирует текущий токен авторизации. Другие токены пользователя остаются действительными.
            ''',
        request=None,
        responses={
            200: OpenApiResponse(description='OK'),
            401: UNAUTHORIZED_RESPONSE
        },
        tags=['Пользователи']
    )
    def post(self, request):
        token = request.auth

        token.is_active = False
        token.save(update_fields=['is_active'])

        return Response(status=status.HTTP_200_OK)
