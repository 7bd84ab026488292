from django.urls import path, include
from rest_framework.authtoken.views import obtain_auth_token
from rest_framework_simplejwt.views import TokenRefreshView

from . import views
from .admin_api import router as admin_router

urlpatterns = [
    path("health/", views.health, name="health"),
    path("auth/login", views.login, name="auth_login"),
    path("auth/refresh", TokenRefreshView.as_view(), name="auth_refresh"),
    path("auth/me", views.me, name="me"),
    path("bills/generate", views.generate_bill, name="generate_bill"),
    path("bookings/<int:booking_id>/checkout", views.checkout_booking, name="checkout_booking"),
    path("bookings/<int:booking_id>/food-invoice", views.food_invoice, name="food_invoice"),
    path("bookings/<int:booking_id>/kitchen-bill", views.kitchen_bill, name="kitchen_bill"),
    path("invoices/<int:invoice_id>/download", views.download_invoice, name="download_invoice"),
    path("police-verification", views.police_verification, name="police_verification"),
    path("admin/login/", obtain_auth_token, name="api_token_auth"),
    path("admin/", include(admin_router.urls)),
]
