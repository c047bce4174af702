from rest_framework import viewsets, status
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.pagination import PageNumberPagination
from drf_spectacular.utils import extend_schema, OpenApiParameter
from drf_spectacular.types import OpenApiTypes

from apps.accounts.permissions import CanViewFinancials
from .serializers import (
    GeneralExpenseSerializer,
    ExpenseInputSerializer,
    ExpenseUpdateSerializer,
    ExpenseFilterSerializer,
    ExpensePeriodQuerySerializer,
    ExpensePeriodSerializer,
    ExpenseTotalsSerializer,
)
from .services import (
    list_expenses,
    get_expense,
    create_expense,
    update_expense,
    delete_expense,
    expense_totals,
    expenses_by_period,
)


class ExpensePagination(PageNumberPagination):
    """Pagination for the expense list."""
    page_size = 50
    page_size_query_param = 'limit'
    max_page_size = 100


class ExpenseViewSet(viewsets.ModelViewSet):
    """
    ViewSet for general expenses.

    All business logic is handled by services.

    list: Expenses newest first (start_date, end_date) with summary totals
    create: Record an expense
    retrieve: Expense details
    partial_update: Edit an expense
    destroy: Delete an expense
    period: Expenses of a reporting period, grouped (monthly | 6months | yearly)
    """

    serializer_class = GeneralExpenseSerializer
    permission_classes = [IsAuthenticated, CanViewFinancials]
    pagination_class = ExpensePagination
    http_method_names = ['get', 'post', 'patch', 'delete', 'head', 'options']

    def get_queryset(self):
        if self.action != 'list':
            return list_expenses()
        filters = ExpenseFilterSerializer(data=self.request.query_params)
        filters.is_valid(raise_exception=True)
        return list_expenses(
            filters.validated_data.get('start_date'),
            filters.validated_data.get('end_date'),
        )

    @extend_schema(
        parameters=[
            OpenApiParameter('start_date', OpenApiTypes.DATE, description='From (YYYY-MM-DD), inclusive'),
            OpenApiParameter('end_date', OpenApiTypes.DATE, description='Until (YYYY-MM-DD), inclusive'),
        ],
    )
    def list(self, request, *args, **kwargs):
        """Paginated list plus ``summary`` totals over the whole filtered set."""
        queryset = self.get_queryset()
        page = self.paginate_queryset(queryset)
        serializer = GeneralExpenseSerializer(page, many=True)
        response = self.get_paginated_response(serializer.data)
        response.data['summary'] = ExpenseTotalsSerializer(expense_totals(queryset)).data
        return response

    def retrieve(self, request, *args, **kwargs):
        expense = get_expense(self.kwargs['pk'])
        return Response(GeneralExpenseSerializer(expense).data)

    @extend_schema(request=ExpenseInputSerializer, responses={201: GeneralExpenseSerializer})
    def create(self, request, *args, **kwargs):
        serializer = ExpenseInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        expense = create_expense(actor=request.user, **serializer.validated_data)
        return Response(GeneralExpenseSerializer(expense).data, status=status.HTTP_201_CREATED)

    @extend_schema(request=ExpenseUpdateSerializer, responses={200: GeneralExpenseSerializer})
    def partial_update(self, request, *args, **kwargs):
        serializer = ExpenseUpdateSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)

        expense = update_expense(self.kwargs['pk'], actor=request.user, **serializer.validated_data)
        return Response(GeneralExpenseSerializer(expense).data)

    def destroy(self, request, *args, **kwargs):
        delete_expense(self.kwargs['pk'], actor=request.user)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(
        parameters=[
            OpenApiParameter('period', OpenApiTypes.STR, description='monthly | 6months | yearly', required=True),
        ],
        responses={200: ExpensePeriodSerializer},
    )
    @action(detail=False, methods=['get'])
    def period(self, request):
        """Expenses of the period, by day (monthly) or by month."""
        query = ExpensePeriodQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)

        data = expenses_by_period(query.validated_data['period'])
        return Response(ExpensePeriodSerializer(data).data)
