from drf_spectacular.utils import extend_schema, OpenApiParameter, OpenApiResponse, OpenApiExample
from rest_framework import status
from rest_framework.pagination import LimitOffsetPagination
from rest_framework.response import Response
from rest_framework.views import APIView

from goaltracker.authentication import TokenAuthentication, HasValidToken, IsAdmin
from goaltracker.error_responses import (BAD_REQUEST_RESPONSE, UNAUTHORIZED_RESPONSE, FORBIDDEN_RESPONSE,
                                         NOT_FOUND_RESPONSE, STORAGE_ERROR_RESPONSE, INTERNAL_SERVER_ERROR)
from goals.models import Goal
from .aggregation import build_goal_views, goal_history, monthly_totals
from .exceptions import NotFoundError, StorageError
from .models import RolloverLog
from .mutator import ProgressMutator
from .periods import current_period, next_period, parse_period
from .rollover import PeriodRolloverJob
from .serializers import (GoalProgressSerializer, SubgoalProgressSerializer, GoalIncrementSerializer,
                          SubgoalIncrementSerializer, SubgoalDecrementSerializer, InitializePeriodSerializer,
                          InitializePeriodResponseSerializer, CurrentPeriodSerializer, GoalViewSerializer,
                          PeriodPointSerializer, PeriodTotalSerializer, RolloverRequestSerializer,
                          RolloverResponseSerializer, RolloverLogSerializer)

PERIOD_PARAMETER = OpenApiParameter(
    name='period',
    type=str,
    location=OpenApiParameter.QUERY,
    description='Период в формате YYYY-MM (по умолчанию текущий)',
    required=False
)

COMMAND_RESPONSES = {
    400: BAD_REQUEST_RESPONSE,
    401: UNAUTHORIZED_RESPONSE,
    404: NOT_FOUND_RESPONSE,
    503: STORAGE_ERROR_RESPONSE,
    500: INTERNAL_SERVER_ERROR
}


class RolloverLogLimitOffsetPagination(LimitOffsetPagination):
    default_limit = 10
    limit_query_param = 'limit'
    offset_query_param = 'offset'
    max_limit = 100


class ProgressAPIView(APIView):
    authentication_classes = [TokenAuthentication]
    permission_classes = [HasValidToken]

    def get_period(self):
        period = self.request.query_params.get('period')
        if period:
            parse_period(period)
            return period
        return current_period()

    def get_mutator(self):
        return ProgressMutator(self.request.user)


class CurrentPeriodView(ProgressAPIView):
    @extend_schema(
        summary='Текущий период',
        description='''
            Получение текущего периода учета прогресса

            Период - календарный месяц в формате YYYY-MM, вычисляется по текущей дате сервера.
            ''',
        responses={
            200: OpenApiResponse(
                response=CurrentPeriodSerializer,
                description='OK',
                examples=[
                    OpenApiExample(
                        name='Текущий период',
                        value={'period': '2024-12', 'next_period': '2025-01'}
                    )
                ]
            ),
            401: UNAUTHORIZED_RESPONSE
        },
        tags=['Прогресс']
    )
    def get(self, request):
        period = self.get_mutator().get_current_period()
        return Response({'period': period, 'next_period': next_period(period)})


class CurrentProgressView(ProgressAPIView):
    @extend_schema(
        summary='Прогресс целей за период',
        description='''
            Получение активных целей пользователя с прогрессом за период

            Возвращает активные цели (новые первыми) вместе с активными подцелями.

            Для каждой цели и подцели:
            - current_progress: Выполнено за период (0, если записи нет)
            - completion_percentage: Процент выполнения, не более 100
            - is_completed: Достигнуто ли целевое количество
            ''',
        parameters=[PERIOD_PARAMETER],
        responses={
            200: OpenApiResponse(response=GoalViewSerializer(many=True), description='OK'),
            400: BAD_REQUEST_RESPONSE,
            401: UNAUTHORIZED_RESPONSE,
            503: STORAGE_ERROR_RESPONSE
        },
        tags=['Прогресс']
    )
    def get(self, request):
        views = build_goal_views(request.user, self.get_period())
        return Response(GoalViewSerializer(views, many=True).data)


class GoalHistoryView(ProgressAPIView):
    @extend_schema(
        summary='История прогресса цели',
        description='''
            Получение прогресса цели по периодам

            Возвращает все периоды от первой записи прогресса до текущего периода без пропусков.
            Периоды без записи возвращаются с нулевым прогрессом.
            ''',
        parameters=[
            OpenApiParameter(
                name='goal_id',
                type=int,
                location=OpenApiParameter.PATH,
                description='ID цели'
            )
        ],
        responses={
            200: OpenApiResponse(response=PeriodPointSerializer(many=True), description='OK'),
            401: UNAUTHORIZED_RESPONSE,
            404: NOT_FOUND_RESPONSE
        },
        tags=['Прогресс']
    )
    def get(self, request, goal_id):
        goal = Goal.objects.owned_by(request.user).filter(pk=goal_id).first()
        if goal is None:
            raise NotFoundError(f'Цель с ID {goal_id} не найдена')

        points = goal_history(goal, current_period())
        return Response(PeriodPointSerializer(points, many=True).data)


class MonthlyTotalsView(ProgressAPIView):
    @extend_schema(
        summary='Итоги по месяцам',
        description='''
            Получение суммарного прогресса пользователя по месяцам

            Сумма выполненного по всем целям пользователя за каждый из последних месяцев,
            включая текущий. Месяцы без прогресса возвращаются с нулем.
            ''',
        parameters=[
            OpenApiParameter(
                name='months',
                type=int,
                location=OpenApiParameter.QUERY,
                description='Количество месяцев (от 1 до 60)',
                required=False,
                default=12
            )
        ],
        responses={
            200: OpenApiResponse(response=PeriodTotalSerializer(many=True), description='OK'),
            400: BAD_REQUEST_RESPONSE,
            401: UNAUTHORIZED_RESPONSE
        },
        tags=['Прогресс']
    )
    def get(self, request):
        try:
            months = int(request.query_params.get('months', 12))
        except ValueError:
            return Response({'detail': 'months должно быть целым числом'}, status=status.HTTP_400_BAD_REQUEST)

        if not 1 <= months <= 60:
            return Response({'detail': 'months должно быть от 1 до 60'}, status=status.HTTP_400_BAD_REQUEST)

        totals = monthly_totals(request.user, current_period(), months)
        return Response(PeriodTotalSerializer(totals, many=True).data)


class GoalIncrementView(ProgressAPIView):
    @extend_schema(
        summary='Увеличить прогресс цели',
        description='''
            Изменение счетчика цели за текущий период

            Доступно только для целей с прямым подсчетом (counting=direct).
            Отрицательное значение уменьшает счетчик, но не ниже нуля.
            ''',
        request=GoalIncrementSerializer,
        responses={200: OpenApiResponse(response=GoalProgressSerializer, description='OK'), **COMMAND_RESPONSES},
        examples=[
            OpenApiExample(
                name='Увеличение на 1',
                value={'increment_by': 1},
                request_only=True
            )
        ],
        tags=['Прогресс']
    )
    def post(self, request, goal_id):
        serializer = GoalIncrementSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        row = self.get_mutator().increment_goal(goal_id, serializer.validated_data['increment_by'])
        return Response(GoalProgressSerializer(row).data)


class GoalRecalculateView(ProgressAPIView):
    @extend_schema(
        summary='Пересчитать прогресс цели',
        description='''
            Пересчет счетчика цели по подцелям

            Счетчик цели за текущий период становится равным числу выполненных активных подцелей.
            Повторный вызов без изменений подцелей дает тот же результат.
            Для целей с прямым подсчетом счетчик не меняется.
            ''',
        request=None,
        responses={200: OpenApiResponse(response=GoalProgressSerializer, description='OK'), **COMMAND_RESPONSES},
        tags=['Прогресс']
    )
    def post(self, request, goal_id):
        row = self.get_mutator().recalculate_goal(goal_id)
        return Response(GoalProgressSerializer(row).data)


class SubgoalIncrementView(ProgressAPIView):
    @extend_schema(
        summary='Увеличить прогресс подцели',
        description='''
            Увеличение счетчика подцели за текущий период

            Если подцель при этом становится выполненной, счетчик родительской цели пересчитывается.
            ''',
        request=SubgoalIncrementSerializer,
        responses={200: OpenApiResponse(response=SubgoalProgressSerializer, description='OK'), **COMMAND_RESPONSES},
        tags=['Прогресс']
    )
    def post(self, request, subgoal_id):
        serializer = SubgoalIncrementSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        row = self.get_mutator().increment_subgoal(subgoal_id, serializer.validated_data['increment_by'])
        return Response(SubgoalProgressSerializer(row).data)


class SubgoalDecrementView(ProgressAPIView):
    @extend_schema(
        summary='Уменьшить прогресс подцели',
        description='''
            Уменьшение счетчика подцели за текущий период

            Счетчик не опускается ниже нуля. Если подцель перестает быть выполненной,
            счетчик родительской цели пересчитывается.
            ''',
        request=SubgoalDecrementSerializer,
        responses={200: OpenApiResponse(response=SubgoalProgressSerializer, description='OK'), **COMMAND_RESPONSES},
        tags=['Прогресс']
    )
    def post(self, request, subgoal_id):
        serializer = SubgoalDecrementSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        row = self.get_mutator().decrement_subgoal(subgoal_id, serializer.validated_data['decrement_by'])
        return Response(SubgoalProgressSerializer(row).data)


class SubgoalDeleteView(ProgressAPIView):
    @extend_schema(
        summary='Удалить подцель с пересчетом',
        description='''
            Удаление подцели и пересчет родительской цели

            Подцель деактивируется (is_active=false), история прогресса сохраняется.
            Деактивация и пересчет выполняются в одной транзакции; повторный вызов безопасен.
            Возвращает счетчик родительской цели за текущий период.
            ''',
        request=None,
        responses={200: OpenApiResponse(response=GoalProgressSerializer, description='OK'), **COMMAND_RESPONSES},
        tags=['Прогресс']
    )
    def post(self, request, subgoal_id):
        row = self.get_mutator().delete_subgoal_and_recalculate(subgoal_id)
        return Response(GoalProgressSerializer(row).data)


class InitializePeriodView(ProgressAPIView):
    @extend_schema(
        summary='Инициализировать прогресс за период',
        description='''
            Создание нулевых записей прогресса

            Создает записи с нулевым прогрессом для всех активных целей и подцелей пользователя
            за период. Существующие записи не изменяются.
            ''',
        request=InitializePeriodSerializer,
        responses={
            200: OpenApiResponse(response=InitializePeriodResponseSerializer, description='OK'),
            **COMMAND_RESPONSES
        },
        tags=['Прогресс']
    )
    def post(self, request):
        serializer = InitializePeriodSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = self.get_mutator().initialize_period(serializer.validated_data.get('period'))
        return Response(InitializePeriodResponseSerializer(result).data)


class RolloverView(ProgressAPIView):
    permission_classes = [HasValidToken, IsAdmin]
    pagination_class = RolloverLogLimitOffsetPagination

    @extend_schema(
        summary='Журнал переходов периода',
        description='''
            Получение журнала запусков перехода периода

            Права доступа:
            - Только администраторы
            ''',
        responses={
            200: OpenApiResponse(response=RolloverLogSerializer(many=True), description='OK'),
            401: UNAUTHORIZED_RESPONSE,
            403: FORBIDDEN_RESPONSE
        },
        tags=['Переход периода']
    )
    def get(self, request):
        logs = RolloverLog.objects.all()

        paginator = self.pagination_class()
        page = paginator.paginate_queryset(logs, request)
        if page is not None:
            return paginator.get_paginated_response(RolloverLogSerializer(page, many=True).data)

        return Response(RolloverLogSerializer(logs, many=True).data)

    @extend_schema(
        summary='Выполнить переход периода',
        description='''
            Переход всех пользователей в следующий период

            Вызывается планировщиком (можно чаще, чем раз в месяц: повторный запуск ничего не меняет).

            Для каждой активной подцели с прогрессом за текущий период:
            - Разовая и выполненная: удаляется с пересчетом цели
            - Разовая и не выполненная: накопленный прогресс переносится в следующий период
            - Повторяющаяся: создается нулевая запись за следующий период, цель пересчитывается

            Затем для всех активных целей создаются нулевые записи за следующий период.
            Ошибка по отдельной подцели или цели не прерывает обработку остальных.

            Права доступа:
            - Только администраторы
            ''',
        request=RolloverRequestSerializer,
        responses={
            200: OpenApiResponse(
                response=RolloverResponseSerializer,
                description='OK',
                examples=[
                    OpenApiExample(
                        name='Успешный переход',
                        value={
                            'success': True,
                            'message': 'Переход периода выполнен',
                            'currentPeriod': '2024-12',
                            'nextPeriod': '2025-01',
                            'deletedSubgoals': 3,
                            'resetSubgoals': 5,
                            'carriedSubgoals': 1,
                            'seededGoals': 7,
                            'failed': 0,
                            'firstErrorType': None,
                            'totalProcessed': 8
                        }
                    )
                ]
            ),
            401: UNAUTHORIZED_RESPONSE,
            403: FORBIDDEN_RESPONSE,
            500: OpenApiResponse(
                response={
                    'type': 'object',
                    'properties': {
                        'success': {'type': 'boolean', 'example': False},
                        'error': {'type': 'string', 'example': 'Не удалось получить активные цели'}
                    }
                },
                description='Internal Server Error'
            )
        },
        tags=['Переход периода']
    )
    def post(self, request):
        serializer = RolloverRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        job = PeriodRolloverJob(
            period=serializer.validated_data.get('period'),
            triggered_by=request.user
        )

        try:
            summary = job.run()
        except StorageError as e:
            return Response(
                {'success': False, 'error': str(e.detail)},
                status=status.HTTP_500_INTERNAL_SERVER_ERROR
            )

        return Response(summary.as_response())
