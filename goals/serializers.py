from rest_framework import serializers
from .models import Goal, Subgoal


class GoalSerializer(serializers.ModelSerializer):
    class Meta:
        model = Goal
        fields = [
            'id', 'user_id', 'title', 'kind', 'target_count', 'counting',
            'start_date', 'end_date', 'background_color', 'is_active',
            'created_at', 'updated_at'
        ]


class GoalCreateSerializer(serializers.ModelSerializer):
    class Meta:
        model = Goal
        fields = [
            'title', 'kind', 'target_count', 'counting',
            'start_date', 'end_date', 'background_color'
        ]
        extra_kwargs = {
            'title': {'required': True},
            'kind': {'required': True},
        }

    def validate(self, data):
        start_date = data.get('start_date', getattr(self.instance, 'start_date', None))
        end_date = data.get('end_date', getattr(self.instance, 'end_date', None))
        if start_date and end_date and end_date < start_date:
            raise serializers.ValidationError({
                'end_date': 'Дата окончания не может быть раньше даты начала'
            })

        counting = data.get('counting')
        if (self.instance is not None and counting == Goal.Counting.DIRECT
                and self.instance.subgoals.active().exists()):
            raise serializers.ValidationError({
                'counting': 'Нельзя перевести на прямой подсчет цель с активными подцелями'
            })
        return data

    def to_representation(self, instance):
        return GoalSerializer(instance, context=self.context).data


class GoalUpdateSerializer(GoalCreateSerializer):
    class Meta(GoalCreateSerializer.Meta):
        extra_kwargs = {
            'title': {'required': True},
            'kind': {'required': True},
            'target_count': {'required': True},
            'counting': {'required': True},
        }


class GoalPartialUpdateSerializer(GoalCreateSerializer):
    class Meta(GoalCreateSerializer.Meta):
        extra_kwargs = {}


class SubgoalSerializer(serializers.ModelSerializer):
    class Meta:
        model = Subgoal
        fields = [
            'id', 'goal_id', 'user_id', 'title', 'kind', 'target_count',
            'is_active', 'created_at', 'updated_at'
        ]


class SubgoalCreateSerializer(serializers.ModelSerializer):
    goal = serializers.PrimaryKeyRelatedField(queryset=Goal.objects.none())

    class Meta:
        model = Subgoal
        fields = [
            'goal', 'title', 'kind', 'target_count'
        ]
        extra_kwargs = {
            'title': {'required': True},
            'kind': {'required': True},
        }

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        request = self.context.get('request')
        if request is not None:
            self.fields['goal'].queryset = Goal.objects.owned_by(request.user).active()

    def validate_goal(self, goal):
        if not goal.counts_subgoals:
            raise serializers.ValidationError(
                'Подцели можно добавлять только к целям с подсчетом по подцелям'
            )
        return goal

    def to_representation(self, instance):
        return SubgoalSerializer(instance, context=self.context).data


class SubgoalUpdateSerializer(serializers.ModelSerializer):
    class Meta:
        model = Subgoal
        fields = [
            'title', 'kind', 'target_count'
        ]

    def to_representation(self, instance):
        return SubgoalSerializer(instance, context=self.context).data
