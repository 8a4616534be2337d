from django.urls import path
from .views import (CurrentPeriodView, CurrentProgressView, GoalHistoryView, MonthlyTotalsView, GoalIncrementView,
                    GoalRecalculateView, SubgoalIncrementView, SubgoalDecrementView, SubgoalDeleteView,
                    InitializePeriodView, RolloverView)

urlpatterns = [
    path('period/', CurrentPeriodView.as_view(), name='current-period'),
    path('current/', CurrentProgressView.as_view(), name='current-progress'),
    path('totals/', MonthlyTotalsView.as_view(), name='monthly-totals'),
    path('initialize/', InitializePeriodView.as_view(), name='initialize-period'),
    path('rollover/', RolloverView.as_view(), name='rollover'),

    path('goals/<int:goal_id>/history/', GoalHistoryView.as_view(), name='goal-history'),
    path('goals/<int:goal_id>/increment/', GoalIncrementView.as_view(), name='goal-increment'),
    path('goals/<int:goal_id>/recalculate/', GoalRecalculateView.as_view(), name='goal-recalculate'),

    path('subgoals/<int:subgoal_id>/increment/', SubgoalIncrementView.as_view(), name='subgoal-increment'),
    path('subgoals/<int:subgoal_id>/decrement/', SubgoalDecrementView.as_view(), name='subgoal-decrement'),
    path('subgoals/<int:subgoal_id>/delete/', SubgoalDeleteView.as_view(), name='subgoal-delete'),
]
