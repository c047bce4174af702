from django.urls import path, include
from rest_framework.routers import DefaultRouter
from . import views

app_name = 'inventory'

# Router for ViewSets
router = DefaultRouter()
router.register(r'', views.VehicleViewSet, basename='vehicle')

urlpatterns = [
    # Vehicle ViewSet routes
    # GET    /api/vehicles/                        - List inventory (filters)
    # POST   /api/vehicles/                        - Create vehicle (editor/admin)
    # GET    /api/vehicles/{id}/                   - Vehicle details
    # PATCH  /api/vehicles/{id}/                   - Edit vehicle (editor/admin)
    # DELETE /api/vehicles/{id}/                   - Delete vehicle (admin)

    # Sale lifecycle
    # POST   /api/vehicles/{id}/sell/              - Mark sold (Paid | Installment)
    # PATCH  /api/vehicles/{id}/edit-sale/         - Correct cash sale
    # PATCH  /api/vehicles/{id}/edit-installment/  - Correct installment terms
    # POST   /api/vehicles/{id}/transfer/          - Owner book transfer

    # Repairs and ledger
    # POST   /api/vehicles/{id}/repairs/           - Add repair
    # POST   /api/vehicles/{id}/payments/          - Upsert/remove monthly payment
    # POST   /api/vehicles/{id}/payments/record/   - Append payment
    # GET    /api/vehicles/{id}/payment-summary/   - Ledger summary
    # GET    /api/vehicles/{id}/profit/            - Profit breakdown

    # Include router URLs
    path('', include(router.urls)),
]
