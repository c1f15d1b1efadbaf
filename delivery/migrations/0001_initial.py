import django.db.models.deletion
from decimal import Decimal
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Driver',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=150)),
                ('phone_number', models.CharField(max_length=17, unique=True)),
                ('license_number', models.CharField(blank=True, max_length=50)),
                ('vehicle_type', models.CharField(choices=[('bike', 'Motorcycle'), ('bicycle', 'Bicycle'), ('car', 'Car'), ('scooter', 'Scooter')], default='bike', max_length=20)),
                ('vehicle_plate', models.CharField(blank=True, max_length=20)),
                ('license_image', models.ImageField(blank=True, null=True, upload_to='drivers/licenses/')),
                ('id_card_image', models.ImageField(blank=True, null=True, upload_to='drivers/id_cards/')),
                ('is_approved', models.BooleanField(default=False)),
                ('rejection_reason', models.TextField(blank=True)),
                ('approved_at', models.DateTimeField(blank=True, null=True)),
                ('is_online', models.BooleanField(default=False)),
                ('is_available', models.BooleanField(default=False)),
                ('credit_balance', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('current_latitude', models.DecimalField(blank=True, decimal_places=6, max_digits=9, null=True)),
                ('current_longitude', models.DecimalField(blank=True, decimal_places=6, max_digits=9, null=True)),
                ('last_online', models.DateTimeField(blank=True, null=True)),
                ('last_location_update', models.DateTimeField(blank=True, null=True)),
                ('total_deliveries', models.PositiveIntegerField(default=0)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('user', models.OneToOneField(limit_choices_to={'user_type': 'driver'}, on_delete=django.db.models.deletion.CASCADE, related_name='driver_profile', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['is_approved', 'is_online', 'is_available'], name='driver_assignable_idx')],
                'constraints': [models.CheckConstraint(condition=models.Q(('credit_balance__gte', 0)), name='driver_credit_balance_non_negative')],
            },
        ),
    ]
