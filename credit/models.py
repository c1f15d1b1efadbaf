"""
Driver credit models: top-up requests and the balance audit trail.
"""
from django.db import models
from django.db.models import Q
from django.conf import settings


class CreditRequest(models.Model):
    """
    A driver's request to top up their credit balance, backed by a
    payment proof image. Decided once by a superadmin, then immutable.
    """
    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('approved', 'Approved'),
        ('rejected', 'Rejected'),
    ]

    driver = models.ForeignKey(
        'delivery.Driver',
        on_delete=models.CASCADE,
        related_name='credit_requests'
    )
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    proof_image = models.ImageField(upload_to='credit_requests/')

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='pending')
    rejection_reason = models.TextField(blank=True)

    decided_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='decided_credit_requests'
    )
    decided_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status', 'created_at'], name='credit_request_status_idx'),
        ]
        constraints = [
            # One open request per driver, enforced by the database
            models.UniqueConstraint(
                fields=['driver'],
                condition=Q(status='pending'),
                name='one_pending_credit_request_per_driver'
            ),
            models.CheckConstraint(
                condition=Q(amount__gt=0),
                name='credit_request_amount_positive'
            ),
        ]

    def __str__(self):
        return f"Credit request {self.id} - {self.driver.name} - {self.amount} ({self.status})"

    @property
    def is_pending(self):
        return self.status == 'pending'


class CreditTransaction(models.Model):
    """
    Append-only record of every change to a driver's credit balance.
    amount is signed: positive for credits, negative for debits.
    """
    KIND_CHOICES = [
        ('top_up', 'Approved Top-up'),
        ('manual_credit', 'Manual Credit'),
        ('manual_debit', 'Manual Debit'),
        ('cod_settlement', 'Cash Order Settlement'),
    ]

    driver = models.ForeignKey(
        'delivery.Driver',
        on_delete=models.CASCADE,
        related_name='credit_transactions'
    )
    kind = models.CharField(max_length=20, choices=KIND_CHOICES)
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    balance_after = models.DecimalField(max_digits=12, decimal_places=2)

    # A request is applied to the balance at most once
    credit_request = models.OneToOneField(
        CreditRequest,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='transaction'
    )
    order = models.ForeignKey(
        'orders.Order',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='credit_transactions'
    )
    actor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='credit_transactions'
    )
    note = models.CharField(max_length=255, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['driver', '-created_at'], name='credit_txn_driver_idx'),
        ]

    def __str__(self):
        return f"{self.get_kind_display()} {self.amount} for {self.driver.name}"
