import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAdminUser, IsAuthenticated
from rest_framework.response import Response

from treksite.core.error_utils import map_tour_load_error
from treksite.core.hosted_backend import HostedBackendError
from treksite.core.utils import backend_error_response, create_audit_log
from .serializers import TourSerializer
from .services import (
    TourNotFound,
    create_tour,
    get_published_tours_by_region,
    get_region_tour_counts,
    get_tour_by_id,
    get_tour_by_slug,
    update_tour,
)
from .validation import validate_tour_for_display

logger = logging.getLogger(__name__)

REGION_COUNT_SORTS = ('name', 'count')


# Public views
@api_view(['GET'])
@permission_classes([AllowAny])
def region_tour_counts(request):
    """Tour counts per region (?sort=name|count)"""
    sort_by = request.query_params.get('sort', 'name')
    if sort_by not in REGION_COUNT_SORTS:
        return Response({'error': f"sort must be one of: {', '.join(REGION_COUNT_SORTS)}"},
                        status=status.HTTP_400_BAD_REQUEST)
    try:
        return Response(get_region_tour_counts(sort_by=sort_by))
    except HostedBackendError as e:
        return backend_error_response(e, 'Failed to load tour counts')


@api_view(['GET'])
@permission_classes([AllowAny])
def region_tours(request, region):
    """Published tours of one region"""
    try:
        return Response(get_published_tours_by_region(region))
    except HostedBackendError as e:
        logger.error(f"Error fetching tours by region {region}: {str(e)}")
        return backend_error_response(e, 'Failed to load tours')


@api_view(['GET'])
@permission_classes([AllowAny])
def tour_detail(request, slug):
    """
    Published tour by URL slug, with its display validation.
    Failures are returned as a user-friendly error payload.
    """
    try:
        tour = get_tour_by_slug(slug)
        if tour.get('status') != 'Published':
            raise TourNotFound(f"Tour not found: {slug}")
    except TourNotFound as e:
        return Response(map_tour_load_error(e).to_dict(), status=status.HTTP_404_NOT_FOUND)
    except HostedBackendError as e:
        logger.error(f"Failed to load tour {slug}: {str(e)}")
        response_status = e.status if e.status and 400 <= e.status < 500 else status.HTTP_502_BAD_GATEWAY
        return Response(map_tour_load_error(e).to_dict(), status=response_status)

    return Response({
        'tour': tour,
        'validation': validate_tour_for_display(tour),
    })


# Admin views
@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminUser])
def admin_tour_create(request):
    """Create a tour from the admin tour editor"""
    serializer = TourSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    payload = {**request.data, **serializer.validated_data}
    try:
        tour = create_tour(payload)
    except (HostedBackendError, TourNotFound) as e:
        return backend_error_response(e, 'Failed to create tour')

    create_audit_log(
        request=request,
        action='tour_create',
        model_name='Tour',
        object_id=tour.get('id'),
        object_name=tour.get('name'),
        changes=serializer.validated_data,
    )
    return Response(tour, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PATCH'])
@permission_classes([IsAuthenticated, IsAdminUser])
def admin_tour_detail(request, tour_id):
    """Retrieve or update a tour (pricing, itinerary, FAQ and inclusion tabs all PATCH here)"""
    if request.method == 'GET':
        try:
            tour = get_tour_by_id(tour_id)
        except TourNotFound as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
        except HostedBackendError as e:
            return backend_error_response(e, 'Failed to load tour')
        return Response({'tour': tour, 'validation': validate_tour_for_display(tour)})

    serializer = TourSerializer(data=request.data, partial=True)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    updates = {**request.data, **serializer.validated_data}
    try:
        tour = update_tour(tour_id, updates)
    except TourNotFound as e:
        return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
    except HostedBackendError as e:
        return backend_error_response(e, 'Failed to update tour')

    action = 'tour_update'
    if updates.get('status') == 'Published':
        action = 'tour_publish'
    elif updates.get('status') == 'Draft':
        action = 'tour_unpublish'

    create_audit_log(
        request=request,
        action=action,
        model_name='Tour',
        object_id=tour_id,
        object_name=tour.get('name'),
        changes=serializer.validated_data,
    )
    return Response(tour)
