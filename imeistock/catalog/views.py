from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from imeistock.core.exceptions import ServiceError
from .serializers import ReferenceNameSerializer, DeviceModelInputSerializer
from .services import REFERENCE_KINDS, KIND_SECTIONS, get_reference_service


def _reference_list_create(request, kind):
    service = get_reference_service(request.user)
    if request.method == 'GET':
        return Response(service.list(kind, request.query_params))

    input_class = DeviceModelInputSerializer if kind == 'model' else ReferenceNameSerializer
    serializer = input_class(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    try:
        row = service.add(kind, **serializer.validated_data)
    except ServiceError as e:
        return Response(e.as_response_data(), status=e.status_code)
    return Response(row, status=status.HTTP_201_CREATED)


def _reference_detail(request, kind, pk):
    service = get_reference_service(request.user)
    try:
        if request.method == 'GET':
            return Response(service.retrieve(kind, pk))
        elif request.method in ('PUT', 'PATCH'):
            serializer = ReferenceNameSerializer(data=request.data)
            if not serializer.is_valid():
                return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
            return Response(service.rename(kind, pk, serializer.validated_data['name']))
        else:  # DELETE
            service.delete(kind, pk)
            return Response(status=status.HTTP_204_NO_CONTENT)
    except ServiceError as e:
        return Response(e.as_response_data(), status=e.status_code)


# Brand views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def brand_list_create(request):
    """List all brands or create a new brand"""
    return _reference_list_create(request, 'brand')


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def brand_detail(request, pk):
    """Retrieve, rename or delete a brand"""
    return _reference_detail(request, 'brand', pk)


# Model views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def model_list_create(request):
    """List models (optionally of one brand) or create a new model"""
    return _reference_list_create(request, 'model')


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def model_detail(request, pk):
    return _reference_detail(request, 'model', pk)


# Seller views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def seller_list_create(request):
    return _reference_list_create(request, 'seller')


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def seller_detail(request, pk):
    return _reference_detail(request, 'seller', pk)


# Booking person views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def booking_person_list_create(request):
    return _reference_list_create(request, 'booking_person')


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def booking_person_detail(request, pk):
    return _reference_detail(request, 'booking_person', pk)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def reference_data(request):
    """All four reference lists of the current user in one response"""
    service = get_reference_service(request.user)
    return Response({KIND_SECTIONS[kind]: service.list(kind) for kind in REFERENCE_KINDS})
