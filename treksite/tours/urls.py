from django.urls import path
from .views import (
    region_tour_counts, region_tours, tour_detail,
    admin_tour_create, admin_tour_detail,
)

urlpatterns = [
    # Public endpoints
    path('regions/counts/', region_tour_counts, name='region-tour-counts'),
    path('regions/<str:region>/tours/', region_tours, name='region-tours'),
    path('tours/<slug:slug>/', tour_detail, name='tour-detail'),

    # Admin tour editor
    path('admin/tours/', admin_tour_create, name='admin-tour-create'),
    path('admin/tours/<str:tour_id>/', admin_tour_detail, name='admin-tour-detail'),
]
