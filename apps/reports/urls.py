from django.urls import path
from . import views

app_name = 'reports'

urlpatterns = [
    # GET /api/reports/profit/?period=monthly|6months|yearly
    path('profit/', views.profit_report, name='profit'),

    # GET /api/reports/net-profit/?period=monthly|6months|yearly
    path('net-profit/', views.net_profit_report, name='net-profit'),
]
