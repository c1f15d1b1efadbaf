"""
API views for driver credit: top-up requests, balance, and the
superadmin review queue.
"""
from rest_framework.decorators import api_view, permission_classes, parser_classes
from rest_framework.parsers import MultiPartParser, FormParser, JSONParser
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework import status

from users.decorators import driver_required, superadmin_required
from credit import ledger, services
from credit.serializers import (
    CreditRequestSerializer, CreditRequestSubmitSerializer,
    CreditTransactionSerializer, BalanceAdjustmentSerializer,
)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
@parser_classes([MultiPartParser, FormParser])
@driver_required
def submit_request(request):
    """Driver submits a top-up request with a payment screenshot."""
    serializer = CreditRequestSubmitSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    credit_request = services.submit_credit_request(
        request.driver.id,
        serializer.validated_data['amount'],
        serializer.validated_data.get('proof_image'),
    )
    return Response({
        'message': 'Credit request submitted. It will be reviewed shortly.',
        'request': CreditRequestSerializer(credit_request, context={'request': request}).data
    }, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
@driver_required
def request_status(request):
    """Polled by the driver app while a request is pending."""
    result = services.get_credit_request_status(request.driver.id)
    pending = result['pending_request']
    last_decision = result['last_decision']
    return Response({
        'balance': result['balance'],
        'currency': result['currency'],
        'pending_request': CreditRequestSerializer(pending, context={'request': request}).data if pending else None,
        'last_decision': CreditRequestSerializer(last_decision, context={'request': request}).data if last_decision else None,
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
@driver_required
def my_transactions(request):
    entries = ledger.list_transactions(request.driver.id, limit=50)
    return Response({
        'balance': ledger.get_balance(request.driver.id),
        'currency': ledger.currency(),
        'transactions': CreditTransactionSerializer(entries, many=True).data
    })


# Superadmin

@api_view(['GET'])
@permission_classes([IsAuthenticated])
@superadmin_required
def pending_requests(request):
    requests = services.list_pending_credit_requests()
    return Response({
        'count': requests.count(),
        'requests': CreditRequestSerializer(requests, many=True, context={'request': request}).data
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
@superadmin_required
def approve_request(request, request_id):
    credit_request = services.approve_credit_request(request_id, admin=request.user)
    return Response({
        'message': f'Credit request approved. {credit_request.amount} {ledger.currency()} added.',
        'new_balance': credit_request.driver.credit_balance,
        'request': CreditRequestSerializer(credit_request, context={'request': request}).data
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
@parser_classes([JSONParser, FormParser, MultiPartParser])
@superadmin_required
def reject_request(request, request_id):
    credit_request = services.reject_credit_request(
        request_id, admin=request.user, reason=request.data.get('reason', '')
    )
    return Response({
        'message': 'Credit request rejected.',
        'request': CreditRequestSerializer(credit_request, context={'request': request}).data
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
@superadmin_required
def adjust_balance(request, driver_id):
    """Manual credit/debit of a driver's balance."""
    serializer = BalanceAdjustmentSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    entry = ledger.adjust_balance(
        driver_id,
        serializer.validated_data['operation'],
        serializer.validated_data['amount'],
        actor=request.user,
        note=serializer.validated_data['note'],
    )
    return Response({
        'message': 'Balance updated',
        'new_balance': entry.balance_after,
        'transaction': CreditTransactionSerializer(entry).data
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
@superadmin_required
def driver_transactions(request, driver_id):
    entries = ledger.list_transactions(driver_id)
    return Response({
        'balance': ledger.get_balance(driver_id),
        'currency': ledger.currency(),
        'transactions': CreditTransactionSerializer(entries, many=True).data
    })
