from django.urls import path
from .views import booking_list, booking_detail

urlpatterns = [
    path('admin/bookings/', booking_list, name='admin-booking-list'),
    path('admin/bookings/<str:booking_id>/', booking_detail, name='admin-booking-detail'),
]
