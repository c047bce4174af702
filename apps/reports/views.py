from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from drf_spectacular.utils import extend_schema, OpenApiParameter
from drf_spectacular.types import OpenApiTypes

from apps.accounts.permissions import CanViewFinancials
from .reporting import ProfitReports
from .serializers import (
    PeriodQuerySerializer,
    ProfitReportSerializer,
    NetProfitReportSerializer,
)

PERIOD_PARAMETER = OpenApiParameter(
    'period',
    OpenApiTypes.STR,
    description='monthly | 6months | yearly',
    required=True,
)


@extend_schema(
    parameters=[PERIOD_PARAMETER],
    responses={200: ProfitReportSerializer},
    description="Profit of vehicles sold for cash or transferred after a completed installment in the period.",
    tags=['reports'],
)
@api_view(['GET'])
@permission_classes([IsAuthenticated, CanViewFinancials])
def profit_report(request):
    """Profit report - thin HTTP handler."""
    query = PeriodQuerySerializer(data=request.query_params)
    query.is_valid(raise_exception=True)

    report = ProfitReports.profit_report(query.validated_data['period'])
    return Response(ProfitReportSerializer(report).data)


@extend_schema(
    parameters=[PERIOD_PARAMETER],
    responses={200: NetProfitReportSerializer},
    description="Profit report plus general expenses and net profit for the period.",
    tags=['reports'],
)
@api_view(['GET'])
@permission_classes([IsAuthenticated, CanViewFinancials])
def net_profit_report(request):
    """Net profit report - thin HTTP handler."""
    query = PeriodQuerySerializer(data=request.query_params)
    query.is_valid(raise_exception=True)

    report = ProfitReports.net_profit_report(query.validated_data['period'])
    return Response(NetProfitReportSerializer(report).data)
