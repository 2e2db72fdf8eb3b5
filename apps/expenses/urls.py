from django.urls import path, include
from rest_framework.routers import DefaultRouter
from . import views

app_name = 'expenses'

# Router for ViewSets
router = DefaultRouter()
router.register(r'', views.ExpenseViewSet, basename='expense')

urlpatterns = [
    # Expense ViewSet routes
    # GET    /api/expenses/?decision={id}   - List ledger with total
    # POST   /api/expenses/                 - Record expense
    # DELETE /api/expenses/{id}/            - Delete expense

    # Additional endpoints
    # GET    /api/expenses/settlement/?decision={id} - Compute settlement
    path('settlement/', views.settlement, name='settlement'),

    # Include router URLs
    path('', include(router.urls)),
]
