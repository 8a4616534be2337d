import logging

from django.db import transaction
from drf_spectacular.utils import extend_schema, OpenApiParameter, OpenApiResponse, OpenApiExample
from rest_framework import viewsets, status
from rest_framework.pagination import LimitOffsetPagination
from rest_framework.response import Response

from goaltracker.authentication import TokenAuthentication, HasValidToken
from goaltracker.error_responses import (BAD_REQUEST_RESPONSE, UNAUTHORIZED_RESPONSE, NOT_FOUND_RESPONSE,
                                         INTERNAL_SERVER_ERROR)
from progress.aggregation import recalculate_goal_from_subgoals
from progress.mutator import ProgressMutator
from progress.periods import current_period
from .models import Goal, Subgoal
from .serializers import (GoalSerializer, GoalCreateSerializer, GoalUpdateSerializer, GoalPartialUpdateSerializer,
                          SubgoalSerializer, SubgoalCreateSerializer, SubgoalUpdateSerializer)

logger = logging.getLogger(__name__)

PAGINATION_PARAMETERS = [
    OpenApiParameter(
        name='limit',
        type=int,
        location=OpenApiParameter.QUERY,
        description='Количество записей на странице (макс. 100)',
        required=False,
        default=10
    ),
    OpenApiParameter(
        name='offset',
        type=int,
        location=OpenApiParameter.QUERY,
        description='Смещение от начала списка',
        required=False,
        default=0
    )
]


class GoalLimitOffsetPagination(LimitOffsetPagination):
    default_limit = 10
    limit_query_param = 'limit'
    offset_query_param = 'offset'
    max_limit = 100


class GoalViewSet(viewsets.ModelViewSet):
    pagination_class = GoalLimitOffsetPagination
    authentication_classes = [TokenAuthentication]
    permission_classes = [HasValidToken]

    def get_queryset(self):
        return Goal.objects.owned_by(self.request.user).active().order_by('-created_at', '-id')

    def get_serializer_class(self):
        return {
            'create': GoalCreateSerializer,
            'update': GoalUpdateSerializer,
            'partial_update': GoalPartialUpdateSerializer,
        }.get(self.action, GoalSerializer)

    @extend_schema(
        summary='Получить список целей',
        description='''
            Получение списка активных целей текущего пользователя

            Результаты упорядочены по дате создания (новые первыми).

            Пагинация:
            - limit: Количество записей на странице (макс. 100)
            - offset: Смещение от начала списка
            ''',
        parameters=PAGINATION_PARAMETERS,
        responses={
            200: OpenApiResponse(response=GoalSerializer(many=True), description='OK'),
            401: UNAUTHORIZED_RESPONSE,
            500: INTERNAL_SERVER_ERROR
        },
        tags=['Цели']
    )
    def list(self, request, *args, **kwargs):
        return super().list(request, *args, **kwargs)

    @extend_schema(
        summary='Создать цель',
        description='''
            Создание новой цели текущего пользователя

            Обязательные поля:
            - title: Название цели (максимум 255 символов)
            - kind: one_time (разовая) или recurring (повторяющаяся)

            Опциональные поля:
            - target_count: Целевое количество за период (не меньше 1, по умолчанию 1)
            - counting: direct (прямое увеличение) или subgoals (по числу выполненных подцелей)
            - start_date, end_date, background_color
            ''',
        request=GoalCreateSerializer,
        responses={
            201: OpenApiResponse(
                response=GoalSerializer,
                description='Created',
                examples=[
                    OpenApiExample(
                        name='Цель создана',
                        value={
                            'id': 45,
                            'user_id': 123,
                            'title': 'Тренировки',
                            'kind': 'recurring',
                            'target_count': 12,
                            'counting': 'direct',
                            'start_date': '2024-01-15',
                            'end_date': None,
                            'background_color': '#e0f2fe',
                            'is_active': True,
                            'created_at': '2024-01-15T10:30:00Z',
                            'updated_at': '2024-01-15T10:30:00Z'
                        }
                    )
                ]
            ),
            400: BAD_REQUEST_RESPONSE,
            401: UNAUTHORIZED_RESPONSE,
            500: INTERNAL_SERVER_ERROR
        },
        tags=['Цели']
    )
    def create(self, request, *args, **kwargs):
        return super().create(request, *args, **kwargs)

    def perform_create(self, serializer):
        goal = serializer.save(user=self.request.user)
        logger.info(f'Пользователь {self.request.user.id} создал цель {goal.id}')

    @extend_schema(
        summary='Получить цель',
        responses={
            200: OpenApiResponse(response=GoalSerializer, description='OK'),
            401: UNAUTHORIZED_RESPONSE,
            404: NOT_FOUND_RESPONSE
        },
        tags=['Цели']
    )
    def retrieve(self, request, *args, **kwargs):
        return super().retrieve(request, *args, **kwargs)

    @extend_schema(
        summary='Обновить цель',
        description='''
            Полное обновление цели

            При смене способа подсчета на subgoals или изменении целевого количества
            прогресс цели за текущий период пересчитывается по подцелям.
            Перевод на прямой подсчет невозможен, пока у цели есть активные подцели.
            ''',
        request=GoalUpdateSerializer,
        responses={
            200: OpenApiResponse(response=GoalSerializer, description='OK'),
            400: BAD_REQUEST_RESPONSE,
            401: UNAUTHORIZED_RESPONSE,
            404: NOT_FOUND_RESPONSE
        },
        tags=['Цели']
    )
    def update(self, request, *args, **kwargs):
        return super().update(request, *args, **kwargs)

    @extend_schema(
        summary='Частично обновить цель',
        request=GoalPartialUpdateSerializer,
        responses={
            200: OpenApiResponse(response=GoalSerializer, description='OK'),
            400: BAD_REQUEST_RESPONSE,
            401: UNAUTHORIZED_RESPONSE,
            404: NOT_FOUND_RESPONSE
        },
        tags=['Цели']
    )
    def partial_update(self, request, *args, **kwargs):
        return super().partial_update(request, *args, **kwargs)

    def perform_update(self, serializer):
        with transaction.atomic():
            goal = serializer.save()
            if goal.counts_subgoals:
                recalculate_goal_from_subgoals(goal, current_period())

    @extend_schema(
        summary='Удалить цель',
        description='''
            Удаление цели

            Цель деактивируется (is_active=false). История прогресса сохраняется.
            ''',
        responses={
            204: OpenApiResponse(description='No Content'),
            401: UNAUTHORIZED_RESPONSE,
            404: NOT_FOUND_RESPONSE
        },
        tags=['Цели']
    )
    def destroy(self, request, *args, **kwargs):
        return super().destroy(request, *args, **kwargs)

    def perform_destroy(self, instance):
        instance.is_active = False
        instance.save(update_fields=['is_active', 'updated_at'])
        logger.info(f'Пользователь {self.request.user.id} удалил цель {instance.id}')


class SubgoalViewSet(viewsets.ModelViewSet):
    pagination_class = GoalLimitOffsetPagination
    authentication_classes = [TokenAuthentication]
    permission_classes = [HasValidToken]

    def get_queryset(self):
        queryset = Subgoal.objects.owned_by(self.request.user).active().filter(goal__is_active=True)

        goal_id = self.request.query_params.get('goal')
        if goal_id and self.action == 'list':
            queryset = queryset.filter(goal_id=goal_id)

        return queryset.order_by('created_at', 'id')

    def get_serializer_class(self):
        return {
            'create': SubgoalCreateSerializer,
            'update': SubgoalUpdateSerializer,
            'partial_update': SubgoalUpdateSerializer,
        }.get(self.action, SubgoalSerializer)

    @extend_schema(
        summary='Получить список подцелей',
        description='''
            Получение списка активных подцелей текущего пользователя

            Фильтрация:
            - goal: ID родительской цели
            ''',
        parameters=[
            OpenApiParameter(
                name='goal',
                type=int,
                location=OpenApiParameter.QUERY,
                description='ID родительской цели',
                required=False
            ),
            *PAGINATION_PARAMETERS
        ],
        responses={
            200: OpenApiResponse(response=SubgoalSerializer(many=True), description='OK'),
            401: UNAUTHORIZED_RESPONSE
        },
        tags=['Подцели']
    )
    def list(self, request, *args, **kwargs):
        return super().list(request, *args, **kwargs)

    @extend_schema(
        summary='Создать подцель',
        description='''
            Создание подцели

            Родительская цель должна принадлежать текущему пользователю, быть активной
            и считаться по подцелям (counting=subgoals).
            ''',
        request=SubgoalCreateSerializer,
        responses={
            201: OpenApiResponse(response=SubgoalSerializer, description='Created'),
            400: BAD_REQUEST_RESPONSE,
            401: UNAUTHORIZED_RESPONSE
        },
        tags=['Подцели']
    )
    def create(self, request, *args, **kwargs):
        return super().create(request, *args, **kwargs)

    def perform_create(self, serializer):
        with transaction.atomic():
            subgoal = serializer.save(user=self.request.user)
            recalculate_goal_from_subgoals(subgoal.goal, current_period())

    @extend_schema(
        summary='Получить подцель',
        responses={
            200: OpenApiResponse(response=SubgoalSerializer, description='OK'),
            401: UNAUTHORIZED_RESPONSE,
            404: NOT_FOUND_RESPONSE
        },
        tags=['Подцели']
    )
    def retrieve(self, request, *args, **kwargs):
        return super().retrieve(request, *args, **kwargs)

    @extend_schema(
        summary='Обновить подцель',
        description='''
            Обновление подцели

            Изменение целевого количества может изменить выполненность подцели,
            поэтому родительская цель пересчитывается.
            ''',
        request=SubgoalUpdateSerializer,
        responses={
            200: OpenApiResponse(response=SubgoalSerializer, description='OK'),
            400: BAD_REQUEST_RESPONSE,
            401: UNAUTHORIZED_RESPONSE,
            404: NOT_FOUND_RESPONSE
        },
        tags=['Подцели']
    )
    def update(self, request, *args, **kwargs):
        return super().update(request, *args, **kwargs)

    @extend_schema(
        summary='Частично обновить подцель',
        request=SubgoalUpdateSerializer,
        responses={
            200: OpenApiResponse(response=SubgoalSerializer, description='OK'),
            400: BAD_REQUEST_RESPONSE,
            401: UNAUTHORIZED_RESPONSE,
            404: NOT_FOUND_RESPONSE
        },
        tags=['Подцели']
    )
    def partial_update(self, request, *args, **kwargs):
        return super().partial_update(request, *args, **kwargs)

    def perform_update(self, serializer):
        with transaction.atomic():
            subgoal = serializer.save()
            recalculate_goal_from_subgoals(subgoal.goal, current_period())

    @extend_schema(
        summary='Удалить подцель',
        description='''
            Удаление подцели

            Подцель деактивируется, родительская цель пересчитывается в той же транзакции.
            ''',
        responses={
            204: OpenApiResponse(description='No Content'),
            401: UNAUTHORIZED_RESPONSE,
            404: NOT_FOUND_RESPONSE
        },
        tags=['Подцели']
    )
    def destroy(self, request, *args, **kwargs):
        subgoal = self.get_object()
        ProgressMutator(request.user).delete_subgoal_and_recalculate(subgoal.id)
        return Response(status=status.HTTP_204_NO_CONTENT)
