import logging

from django.contrib.auth import get_user_model
from django.http import HttpResponse
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, parser_classes, permission_classes
from rest_framework.parsers import FormParser, MultiPartParser
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from imeistock.core.exceptions import ServiceError
from imeistock.core.permissions import IsAppAdmin
from .assignment import assign_orphan_data, orphan_counts
from .csv_io import EXPORT_FILENAME, entries_to_csv, read_entries_csv
from .imei import extract_imeis
from .serializers import (
    EntryInputSerializer, BulkEntrySerializer, CSVImportSerializer,
    ImeiExtractSerializer, AssignOrphanDataSerializer,
)
from .services import get_entry_service
from .stock import filter_options

logger = logging.getLogger('imeistock.inventory')

User = get_user_model()


def _error(exc):
    return Response(exc.as_response_data(), status=exc.status_code)


# Entry views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def entry_list_create(request):
    """List entries (with search filters) or add a new entry"""
    service = get_entry_service(request.user)
    if request.method == 'GET':
        return Response(service.list(request.query_params))

    serializer = EntryInputSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    try:
        entry = service.add(serializer.validated_data)
    except ServiceError as e:
        return _error(e)
    return Response(entry, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def entry_detail(request, imei):
    """Search, update or delete an entry by IMEI"""
    service = get_entry_service(request.user)
    try:
        if request.method == 'GET':
            return Response(service.get(imei))
        elif request.method in ('PUT', 'PATCH'):
            if request.method == 'PATCH':
                data = dict(service.get(imei))
                data.update(request.data.items())
            else:
                data = dict(request.data.items())
                data.setdefault('imei', imei)
            serializer = EntryInputSerializer(data=data)
            if not serializer.is_valid():
                return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
            return Response(service.update(imei, serializer.validated_data))
        else:  # DELETE
            service.delete(imei)
            return Response(status=status.HTTP_204_NO_CONTENT)
    except ServiceError as e:
        return _error(e)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def entry_bulk_create(request):
    """Add many entries at once, skipping missing and duplicate IMEIs"""
    serializer = BulkEntrySerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    try:
        result = get_entry_service(request.user).bulk_add(serializer.validated_data['entries'])
    except ServiceError as e:
        return _error(e)
    return Response(result, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def entry_reset(request):
    """Permanently remove all of the current user's entries"""
    deleted = get_entry_service(request.user).reset()
    return Response({'deleted': deleted, 'message': 'All entries have been removed.'})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
@parser_classes([MultiPartParser, FormParser])
def entry_import(request):
    """Import entries from an uploaded CSV file"""
    serializer = CSVImportSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    try:
        content = serializer.validated_data['file'].read()
        try:
            text = content.decode('utf-8-sig')
        except UnicodeDecodeError:
            return Response({'error': 'Failed to read file. Please upload a UTF-8 CSV file.'},
                            status=status.HTTP_400_BAD_REQUEST)
        rows = read_entries_csv(text)
        result = get_entry_service(request.user).bulk_add(rows)
    except ServiceError as e:
        return _error(e)
    except Exception as e:
        logger.error(f"Unexpected error importing CSV for user {request.user.pk}: {str(e)}", exc_info=True)
        raise
    logger.info(f"User {request.user.pk} imported CSV: {result}")
    return Response(result, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def entry_export(request):
    """Download the visible entries as inventory_data.csv"""
    rows = get_entry_service(request.user).rows(request.query_params)
    if not rows:
        return Response({'error': 'No data to export.'}, status=status.HTTP_400_BAD_REQUEST)
    response = HttpResponse(entries_to_csv(rows), content_type='text/csv')
    response['Content-Disposition'] = f'attachment; filename="{EXPORT_FILENAME}"'
    return response


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def extract_imei(request):
    """Find IMEI numbers in text read off a label or scanner"""
    serializer = ImeiExtractSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    candidates = extract_imeis(serializer.validated_data['text'])
    return Response({'imeis': candidates, 'count': len(candidates)})


# Stock views
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def stock_summary(request):
    """Per-model stock of the current user plus overall totals"""
    params = request.query_params
    summary = get_entry_service(request.user).stock_summary(
        brand=params.get('brand') or None,
        model=params.get('model') or None,
        booking_person=params.get('booking_person') or None,
    )
    return Response(summary)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def stock_filter_options(request):
    return Response(filter_options(request.user, brand=request.query_params.get('brand') or None))


# Data assignment views (admin only)
@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAppAdmin])
def orphan_data_counts(request):
    """Total and owner-less row counts per table"""
    return Response(orphan_counts())


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAppAdmin])
def orphan_data_assign(request):
    serializer = AssignOrphanDataSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    target_id = serializer.validated_data.get('user')
    target = get_object_or_404(User, pk=target_id) if target_id else None
    try:
        result = assign_orphan_data(target)
    except ServiceError as e:
        return _error(e)
    return Response(result)
