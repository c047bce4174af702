from django.urls import path, include
from rest_framework.routers import DefaultRouter
from . import views

app_name = 'expenses'

# Router for ViewSets
router = DefaultRouter()
router.register(r'', views.ExpenseViewSet, basename='expense')

urlpatterns = [
    # Expense ViewSet routes
    # GET    /api/expenses/                       - List (start_date, end_date)
    # POST   /api/expenses/                       - Record expense
    # GET    /api/expenses/period/?period=        - Grouped by period
    # GET    /api/expenses/{id}/                  - Expense details
    # PATCH  /api/expenses/{id}/                  - Edit expense
    # DELETE /api/expenses/{id}/                  - Delete expense

    # Include router URLs
    path('', include(router.urls)),
]
