from rest_framework import serializers

from .models import GoalProgress, SubgoalProgress, RolloverLog
from .exceptions import ValidationError
from .periods import parse_period


class GoalProgressSerializer(serializers.ModelSerializer):
    class Meta:
        model = GoalProgress
        fields = [
            'id', 'goal_id', 'period', 'completed_count',
            'created_at', 'updated_at'
        ]


class SubgoalProgressSerializer(serializers.ModelSerializer):
    class Meta:
        model = SubgoalProgress
        fields = [
            'id', 'subgoal_id', 'period', 'completed_count',
            'created_at', 'updated_at'
        ]


class GoalIncrementSerializer(serializers.Serializer):
    increment_by = serializers.IntegerField(
        required=False,
        default=1,
        min_value=-10000,
        max_value=10000
    )

    def validate_increment_by(self, value):
        if value == 0:
            raise serializers.ValidationError('increment_by не может быть равно 0')
        return value


class SubgoalIncrementSerializer(serializers.Serializer):
    increment_by = serializers.IntegerField(
        required=False,
        default=1,
        min_value=1,
        max_value=10000
    )


class SubgoalDecrementSerializer(serializers.Serializer):
    decrement_by = serializers.IntegerField(
        required=False,
        default=1,
        min_value=1,
        max_value=10000
    )


class PeriodField(serializers.CharField):
    default_error_messages = {
        'invalid': 'Период должен быть в формате YYYY-MM'
    }

    def to_internal_value(self, data):
        period = super().to_internal_value(data)
        try:
            parse_period(period)
        except ValidationError:
            self.fail('invalid')
        return period


class InitializePeriodSerializer(serializers.Serializer):
    period = PeriodField(required=False)


class InitializePeriodResponseSerializer(serializers.Serializer):
    period = serializers.CharField()
    seeded_goals = serializers.IntegerField()
    seeded_subgoals = serializers.IntegerField()


class CurrentPeriodSerializer(serializers.Serializer):
    period = serializers.CharField()
    next_period = serializers.CharField()


class SubgoalViewSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    goal_id = serializers.IntegerField()
    title = serializers.CharField()
    kind = serializers.CharField()
    target_count = serializers.IntegerField()
    current_progress = serializers.IntegerField()
    completion_percentage = serializers.FloatField()
    is_completed = serializers.BooleanField()

    def to_representation(self, instance):
        data = super().to_representation(instance)
        data['completion_percentage'] = round(data['completion_percentage'], 2)
        return data


class GoalViewSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    title = serializers.CharField()
    kind = serializers.CharField()
    counting = serializers.CharField()
    target_count = serializers.IntegerField()
    start_date = serializers.DateField()
    end_date = serializers.DateField(allow_null=True)
    background_color = serializers.CharField(allow_null=True)
    created_at = serializers.DateTimeField()
    period = serializers.CharField()
    current_progress = serializers.IntegerField()
    completion_percentage = serializers.FloatField()
    is_completed = serializers.BooleanField()
    subgoals = SubgoalViewSerializer(many=True)

    def to_representation(self, instance):
        data = super().to_representation(instance)
        data['completion_percentage'] = round(data['completion_percentage'], 2)
        return data


class PeriodPointSerializer(serializers.Serializer):
    period = serializers.CharField()
    completed_count = serializers.IntegerField()
    completion_percentage = serializers.FloatField()
    is_completed = serializers.BooleanField()


class PeriodTotalSerializer(serializers.Serializer):
    period = serializers.CharField()
    total_completed = serializers.IntegerField()


class RolloverRequestSerializer(serializers.Serializer):
    period = PeriodField(required=False)


class RolloverResponseSerializer(serializers.Serializer):
    success = serializers.BooleanField()
    message = serializers.CharField()
    currentPeriod = serializers.CharField()
    nextPeriod = serializers.CharField()
    deletedSubgoals = serializers.IntegerField()
    resetSubgoals = serializers.IntegerField()
    carriedSubgoals = serializers.IntegerField()
    seededGoals = serializers.IntegerField()
    failed = serializers.IntegerField()
    firstErrorType = serializers.CharField(allow_null=True)
    totalProcessed = serializers.IntegerField()


class RolloverLogSerializer(serializers.ModelSerializer):
    class Meta:
        model = RolloverLog
        fields = [
            'id', 'current_period', 'next_period', 'triggered_by_id', 'success',
            'deleted_subgoals', 'reset_subgoals', 'carried_subgoals', 'seeded_goals', 'failed',
            'errors', 'created_at'
        ]
