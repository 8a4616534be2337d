from django.urls import path
from .views import GoalViewSet, SubgoalViewSet

urlpatterns = [
    path('', GoalViewSet.as_view({'get': 'list', 'post': 'create'}), name='goal-list'),
    path('<int:pk>/', GoalViewSet.as_view({
        'get': 'retrieve',
        'put': 'update',
        'patch': 'partial_update',
        'delete': 'destroy'
    }), name='goal-detail'),

    path('subgoals/', SubgoalViewSet.as_view({'get': 'list', 'post': 'create'}), name='subgoal-list'),
    path('subgoals/<int:pk>/', SubgoalViewSet.as_view({
        'get': 'retrieve',
        'put': 'update',
        'patch': 'partial_update',
        'delete': 'destroy'
    }), name='subgoal-detail'),
]
