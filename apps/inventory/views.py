from rest_framework import viewsets, status
from rest_framework.decorators import action
from rest_framework.parsers import JSONParser, MultiPartParser, FormParser
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.pagination import PageNumberPagination
from drf_spectacular.utils import extend_schema

from apps.accounts.permissions import (
    CanManageInventory,
    CanManageInventoryOrReadOnly,
    CanViewFinancials,
    IsDealershipAdmin,
)
from .models import BoughtType
from .serializers import (
    VehicleSerializer,
    VehicleListSerializer,
    VehicleCreateSerializer,
    VehicleUpdateSerializer,
    SellVehicleSerializer,
    EditSaleSerializer,
    EditInstallmentSerializer,
    RepairInputSerializer,
    MonthlyPaymentSerializer,
    RecordPaymentSerializer,
    TransferOwnershipSerializer,
    PaymentSummarySerializer,
    ProfitSerializer,
    VehicleFilterSerializer,
)
from .services import (
    vehicle_queryset,
    filter_vehicles,
    get_vehicle,
    create_vehicle,
    update_vehicle,
    add_repair,
    delete_vehicle,
    mark_sold_paid,
    mark_sold_installment,
    update_sale_details,
    update_installment_details,
    transfer_ownership,
    upsert_monthly_payment,
    record_payment,
    get_payment_summary,
    calculate_profit,
)


class VehiclePagination(PageNumberPagination):
    """Pagination for the inventory list."""
    page_size = 20
    page_size_query_param = 'page_size'
    max_page_size = 100


def _service_kwargs(validated_data):
    """Validated input as service kwargs; ``revision`` becomes ``expected_revision``."""
    kwargs = dict(validated_data)
    if 'revision' in kwargs:
        kwargs['expected_revision'] = kwargs.pop('revision')
    return kwargs


class VehicleViewSet(viewsets.ModelViewSet):
    """
    ViewSet for the dealership inventory.

    All business logic is handled by services.
    Views are thin HTTP handlers only; service errors are rendered by
    ``config.exceptions.api_exception_handler``.

    list: Inventory with filters (status, brand, year, transmission, drivetrain, search)
    create: Take a vehicle into inventory (editor/admin, multipart for images)
    retrieve: Full record with sale state and profit
    partial_update: Edit attributes, images, repairs (editor/admin)
    destroy: Delete vehicle and its images (admin only)
    """

    serializer_class = VehicleSerializer
    permission_classes = [IsAuthenticated, CanManageInventoryOrReadOnly]
    pagination_class = VehiclePagination
    parser_classes = [JSONParser, MultiPartParser, FormParser]
    http_method_names = ['get', 'post', 'patch', 'delete', 'head', 'options']

    def get_queryset(self):
        """Apply list filters from the query string."""
        if self.action != 'list':
            return vehicle_queryset()
        filters = VehicleFilterSerializer(data=self.request.query_params)
        filters.is_valid(raise_exception=True)
        return filter_vehicles(**filters.validated_data)

    def get_serializer_class(self):
        """Use different serializers for different actions."""
        if self.action == 'list':
            return VehicleListSerializer
        elif self.action == 'create':
            return VehicleCreateSerializer
        elif self.action == 'partial_update':
            return VehicleUpdateSerializer
        return VehicleSerializer

    def get_permissions(self):
        """Deleting is admin only; financial reads need editor/admin."""
        if self.action == 'destroy':
            return [IsAuthenticated(), IsDealershipAdmin()]
        if self.action in ['profit', 'payment_summary']:
            return [IsAuthenticated(), CanViewFinancials()]
        return super().get_permissions()

    def _respond(self, vehicle, status_code=status.HTTP_200_OK):
        serializer = VehicleSerializer(vehicle, context=self.get_serializer_context())
        return Response(serializer.data, status=status_code)

    def retrieve(self, request, *args, **kwargs):
        return self._respond(get_vehicle(self.kwargs['pk']))

    @extend_schema(request=VehicleCreateSerializer, responses={201: VehicleSerializer})
    def create(self, request, *args, **kwargs):
        """Create a vehicle; images are uploaded before the record is written."""
        serializer = VehicleCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        vehicle = create_vehicle(actor=request.user, **serializer.validated_data)
        return self._respond(vehicle, status.HTTP_201_CREATED)

    @extend_schema(request=VehicleUpdateSerializer, responses={200: VehicleSerializer})
    def partial_update(self, request, *args, **kwargs):
        serializer = VehicleUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        vehicle = update_vehicle(
            self.kwargs['pk'],
            actor=request.user,
            **_service_kwargs(serializer.validated_data),
        )
        return self._respond(vehicle)

    def destroy(self, request, *args, **kwargs):
        delete_vehicle(self.kwargs['pk'], actor=request.user)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(request=SellVehicleSerializer, responses={200: VehicleSerializer})
    @action(detail=True, methods=['post'], permission_classes=[IsAuthenticated, CanManageInventory])
    def sell(self, request, pk=None):
        """Mark as sold, for cash (``Paid``) or on ``Installment``."""
        serializer = SellVehicleSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        revision = data.get('revision')

        if data['bought_type'] == BoughtType.PAID:
            vehicle = mark_sold_paid(
                pk,
                actor=request.user,
                expected_revision=revision,
                **data['sale'],
            )
        else:
            vehicle = mark_sold_installment(
                pk,
                actor=request.user,
                expected_revision=revision,
                **data['installment'],
            )
        return self._respond(vehicle)

    @extend_schema(request=EditSaleSerializer, responses={200: VehicleSerializer})
    @action(
        detail=True,
        methods=['patch'],
        url_path='edit-sale',
        permission_classes=[IsAuthenticated, CanManageInventory],
    )
    def edit_sale(self, request, pk=None):
        """Correct cash sale details."""
        serializer = EditSaleSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        vehicle = update_sale_details(
            pk,
            actor=request.user,
            **_service_kwargs(serializer.validated_data),
        )
        return self._respond(vehicle)

    @extend_schema(request=EditInstallmentSerializer, responses={200: VehicleSerializer})
    @action(
        detail=True,
        methods=['patch'],
        url_path='edit-installment',
        permission_classes=[IsAuthenticated, CanManageInventory],
    )
    def edit_installment(self, request, pk=None):
        """Correct installment terms or buyer details."""
        serializer = EditInstallmentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        vehicle = update_installment_details(
            pk,
            actor=request.user,
            **_service_kwargs(serializer.validated_data),
        )
        return self._respond(vehicle)

    @extend_schema(request=RepairInputSerializer, responses={201: VehicleSerializer})
    @action(detail=True, methods=['post'], permission_classes=[IsAuthenticated, CanManageInventory])
    def repairs(self, request, pk=None):
        """Add a repair entry."""
        serializer = RepairInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        vehicle = add_repair(pk, actor=request.user, **serializer.validated_data)
        return self._respond(vehicle, status.HTTP_201_CREATED)

    @extend_schema(request=MonthlyPaymentSerializer, responses={200: PaymentSummarySerializer})
    @action(detail=True, methods=['post'], permission_classes=[IsAuthenticated, CanManageInventory])
    def payments(self, request, pk=None):
        """Mark a contract month paid (upsert) or unpaid (remove)."""
        serializer = MonthlyPaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        summary = upsert_monthly_payment(
            pk,
            actor=request.user,
            **_service_kwargs(serializer.validated_data),
        )
        return Response(PaymentSummarySerializer(summary).data)

    @extend_schema(request=RecordPaymentSerializer, responses={201: PaymentSummarySerializer})
    @action(
        detail=True,
        methods=['post'],
        url_path='payments/record',
        permission_classes=[IsAuthenticated, CanManageInventory],
    )
    def record(self, request, pk=None):
        """Append a payment under the next month number."""
        serializer = RecordPaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        summary = record_payment(
            pk,
            actor=request.user,
            **_service_kwargs(serializer.validated_data),
        )
        return Response(PaymentSummarySerializer(summary).data, status=status.HTTP_201_CREATED)

    @extend_schema(responses={200: PaymentSummarySerializer})
    @action(detail=True, methods=['get'], url_path='payment-summary')
    def payment_summary(self, request, pk=None):
        summary = get_payment_summary(pk)
        return Response(PaymentSummarySerializer(summary).data)

    @extend_schema(request=TransferOwnershipSerializer, responses={200: VehicleSerializer})
    @action(detail=True, methods=['post'], permission_classes=[IsAuthenticated, CanManageInventory])
    def transfer(self, request, pk=None):
        """Record the owner-book transfer."""
        serializer = TransferOwnershipSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        vehicle = transfer_ownership(
            pk,
            actor=request.user,
            **_service_kwargs(serializer.validated_data),
        )
        return self._respond(vehicle)

    @extend_schema(responses={200: ProfitSerializer})
    @action(detail=True, methods=['get'])
    def profit(self, request, pk=None):
        """Profit breakdown; ``null`` while the vehicle is unsold."""
        breakdown = calculate_profit(get_vehicle(pk))
        if breakdown is None:
            return Response(None)
        return Response(ProfitSerializer(breakdown).data)
