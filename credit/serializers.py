"""
DRF Serializers for credit requests and ledger entries.
"""
from rest_framework import serializers
from .models import CreditRequest, CreditTransaction


class CreditRequestSerializer(serializers.ModelSerializer):
    driver_name = serializers.CharField(source='driver.name', read_only=True)
    driver_phone = serializers.CharField(source='driver.phone_number', read_only=True)
    current_balance = serializers.DecimalField(
        source='driver.credit_balance',
        max_digits=12,
        decimal_places=2,
        read_only=True
    )
    decided_by_username = serializers.CharField(source='decided_by.username', read_only=True, default=None)

    class Meta:
        model = CreditRequest
        fields = [
            'id', 'driver', 'driver_name', 'driver_phone', 'amount', 'proof_image',
            'status', 'rejection_reason', 'current_balance',
            'decided_by_username', 'decided_at', 'created_at'
        ]
        read_only_fields = fields


class CreditRequestSubmitSerializer(serializers.Serializer):
    # Multipart form: the amount arrives as text and is validated by the service
    amount = serializers.CharField()
    proof_image = serializers.ImageField(required=False, allow_null=True)


class CreditTransactionSerializer(serializers.ModelSerializer):
    actor_username = serializers.CharField(source='actor.username', read_only=True, default=None)
    order_number = serializers.CharField(source='order.order_number', read_only=True, default=None)

    class Meta:
        model = CreditTransaction
        fields = [
            'id', 'kind', 'amount', 'balance_after', 'credit_request',
            'order_number', 'actor_username', 'note', 'created_at'
        ]
        read_only_fields = fields


class BalanceAdjustmentSerializer(serializers.Serializer):
    operation = serializers.ChoiceField(choices=['add', 'deduct'])
    amount = serializers.CharField()
    note = serializers.CharField(max_length=255, required=False, allow_blank=True, default='')
