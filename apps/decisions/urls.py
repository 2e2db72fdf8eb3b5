from django.urls import path, include
from rest_framework.routers import DefaultRouter
from . import views

app_name = 'decisions'

# Router for ViewSets
router = DefaultRouter()
router.register(r'', views.DecisionViewSet, basename='decision')

urlpatterns = [
    # Decision ViewSet routes
    # GET    /api/decisions/              - List decisions
    # POST   /api/decisions/              - Create decision
    # GET    /api/decisions/{id}/         - Decision with tallies (polled by clients)

    # Custom decision actions
    # POST   /api/decisions/{id}/participants/                    - Add participant
    # POST   /api/decisions/{id}/participants/{pid}/mandatory/    - Toggle mandatory
    # POST   /api/decisions/{id}/rsvp/                            - Update RSVP
    # POST   /api/decisions/{id}/options/                         - Add option
    # POST   /api/decisions/{id}/time_options/                    - Add time slot
    # POST   /api/decisions/{id}/vote/                            - Cast vote
    # POST   /api/decisions/{id}/time_vote/                       - Cast time vote
    # POST   /api/decisions/{id}/close_voting/                    - End voting early
    # POST   /api/decisions/{id}/transition/                      - Status change
    # GET    /api/decisions/{id}/messages/                        - System messages

    # Include router URLs
    path('', include(router.urls)),
]
