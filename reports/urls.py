"""
REPORTS App - URL Configuration
"""

from django.urls import path

from . import views

urlpatterns = [
    path('reports/attendance/', views.AttendanceReportView.as_view(), name='report-attendance'),
    path('reports/performance/', views.PerformanceReportView.as_view(), name='report-performance'),
    path('reports/cod/', views.CodReportView.as_view(), name='report-cod'),
    path('reports/monthly/', views.MonthlySummaryReportView.as_view(), name='report-monthly'),
    path('reports/dashboard/', views.DashboardSummaryReportView.as_view(), name='report-dashboard'),
    path('reports/import-users/', views.ImportUsersView.as_view(), name='import-users'),
]
